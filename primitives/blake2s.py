"""
BLAKE2s Transcript Commitment
RFC 7693 BLAKE2s-256 natively (hashlib) and as an R1CS gadget over UInt32 words
"""

import hashlib
from typing import List, Sequence

from zk.gadgets import UInt8, UInt32

DIGEST_SIZE = 32
BLOCK_SIZE = 64
ROUNDS = 10

IV = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
)

SIGMA = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
    (14, 10, 4, 8, 9, 15, 13, 6, 1, 12, 0, 2, 11, 7, 5, 3),
    (11, 8, 12, 0, 5, 2, 15, 13, 10, 14, 3, 6, 7, 1, 9, 4),
    (7, 9, 3, 1, 13, 12, 11, 14, 2, 6, 5, 10, 4, 0, 15, 8),
    (9, 0, 5, 7, 2, 4, 10, 15, 14, 1, 11, 12, 6, 8, 3, 13),
    (2, 12, 6, 10, 0, 11, 8, 3, 4, 13, 7, 5, 15, 14, 1, 9),
    (12, 5, 1, 15, 14, 13, 4, 10, 0, 7, 6, 3, 9, 2, 8, 11),
    (13, 11, 7, 14, 12, 1, 3, 9, 5, 0, 15, 4, 8, 6, 2, 10),
    (6, 15, 14, 9, 11, 3, 0, 8, 12, 2, 13, 7, 1, 4, 10, 5),
    (10, 2, 8, 4, 7, 6, 1, 5, 15, 11, 9, 14, 3, 12, 13, 0),
)

# digest length 32, no key, fanout 1, depth 1
PARAMETER_BLOCK = 0x01010000 | DIGEST_SIZE


class Blake2sCommitment:
    """Native transcript commitment"""

    @staticmethod
    def commit(data: bytes) -> bytes:
        return hashlib.blake2s(data, digest_size=DIGEST_SIZE).digest()


def _mix(v: List[UInt32], a: int, b: int, c: int, d: int, x: UInt32, y: UInt32):
    v[a] = UInt32.addmany([v[a], v[b], x])
    v[d] = v[d].xor(v[a]).rotr(16)
    v[c] = UInt32.addmany([v[c], v[d]])
    v[b] = v[b].xor(v[c]).rotr(12)
    v[a] = UInt32.addmany([v[a], v[b], y])
    v[d] = v[d].xor(v[a]).rotr(8)
    v[c] = UInt32.addmany([v[c], v[d]])
    v[b] = v[b].xor(v[c]).rotr(7)


def _compress(h: List[UInt32], m: List[UInt32], counter: int, last: bool) -> List[UInt32]:
    v = list(h) + [UInt32.constant(word) for word in IV]
    v[12] = v[12].xor(UInt32.constant(counter & 0xFFFFFFFF))
    v[13] = v[13].xor(UInt32.constant(counter >> 32))
    if last:
        v[14] = v[14].xor(UInt32.constant(0xFFFFFFFF))
    for r in range(ROUNDS):
        s = SIGMA[r]
        _mix(v, 0, 4, 8, 12, m[s[0]], m[s[1]])
        _mix(v, 1, 5, 9, 13, m[s[2]], m[s[3]])
        _mix(v, 2, 6, 10, 14, m[s[4]], m[s[5]])
        _mix(v, 3, 7, 11, 15, m[s[6]], m[s[7]])
        _mix(v, 0, 5, 10, 15, m[s[8]], m[s[9]])
        _mix(v, 1, 6, 11, 12, m[s[10]], m[s[11]])
        _mix(v, 2, 7, 8, 13, m[s[12]], m[s[13]])
        _mix(v, 3, 4, 9, 14, m[s[14]], m[s[15]])
    return [h[i].xor(v[i]).xor(v[i + 8]) for i in range(8)]


class Blake2sGadget:
    """In-circuit BLAKE2s-256; output bytes equal ``Blake2sCommitment.commit``"""

    @staticmethod
    def evaluate(data: Sequence[UInt8]) -> List[UInt8]:
        h = [UInt32.constant(word) for word in IV]
        h[0] = h[0].xor(UInt32.constant(PARAMETER_BLOCK))
        data = list(data)
        offsets = range(0, len(data), BLOCK_SIZE) if data else [0]
        for offset in offsets:
            block = data[offset:offset + BLOCK_SIZE]
            block += [UInt8.constant(0)] * (BLOCK_SIZE - len(block))
            words = [
                UInt32([bit for byte in block[i:i + 4] for bit in byte.to_bits_le()])
                for i in range(0, BLOCK_SIZE, 4)
            ]
            last = offset + BLOCK_SIZE >= len(data)
            counter = min(offset + BLOCK_SIZE, len(data))
            h = _compress(h, words, counter, last)
        return [byte for word in h for byte in word.to_bytes_le()]
