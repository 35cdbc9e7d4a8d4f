"""
Schnorr Signatures over JubJub
Native key generation, signing and verification with a BLAKE2s challenge,
and the in-circuit verification gadget
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from zk.constraint_system import ZKError
from zk.gadgets import AllocVar, Allocator, Boolean, UInt8, bits_less_than, uint8_slices_is_eq

from .blake2s import Blake2sCommitment, Blake2sGadget
from .field import SerializationError
from .jubjub import (
    SCALAR_BYTES,
    SCALAR_FIELD_MODULUS,
    AffinePoint,
    AffineVar,
    random_scalar,
    scalar_from_bytes,
    scalar_to_bytes,
)

logger = logging.getLogger(__name__)

# Each attempt is rejected with probability 1 - r / 2**256 (about 0.943),
# so exhausting 1024 attempts happens with probability below 2**-80.
MAX_SIGNING_ATTEMPTS = 1024
SIGNATURE_BYTES = 2 * SCALAR_BYTES


class ChallengeRejected(ZKError):
    """Challenge digest does not map to a canonical scalar"""
    pass


class SigningFailure(ZKError):
    """Every signing attempt produced a rejected challenge"""
    pass


@dataclass(frozen=True)
class SchnorrParameters:
    generator: AffinePoint


@dataclass(frozen=True)
class SecretKey:
    scalar: int = field(repr=False)


PublicKey = AffinePoint


@dataclass(frozen=True)
class Signature:
    """Scalars are range-checked by `from_bytes` and by verification, not on construction"""
    prover_response: int
    verifier_challenge: int

    def to_bytes(self) -> bytes:
        return scalar_to_bytes(self.prover_response) + scalar_to_bytes(self.verifier_challenge)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Signature':
        if len(data) != SIGNATURE_BYTES:
            raise SerializationError(f"Expected {SIGNATURE_BYTES} signature bytes, got {len(data)}")
        return cls(scalar_from_bytes(data[:SCALAR_BYTES]), scalar_from_bytes(data[SCALAR_BYTES:]))


def challenge_input(public_key: AffinePoint, commitment: AffinePoint, message: bytes) -> bytes:
    return public_key.to_bytes() + commitment.to_bytes() + message


def digest_to_scalar(digest: bytes) -> int:
    value = int.from_bytes(digest, 'little')
    if value >= SCALAR_FIELD_MODULUS:
        raise ChallengeRejected("Challenge digest exceeds the scalar field")
    return value


class Schnorr:
    """Native Schnorr signature scheme"""

    @staticmethod
    def setup(rng) -> SchnorrParameters:
        return SchnorrParameters(generator=AffinePoint.random(rng))

    @staticmethod
    def keygen(params: SchnorrParameters, rng) -> Tuple[PublicKey, SecretKey]:
        secret = random_scalar(rng)
        return params.generator.mul(secret), SecretKey(secret)

    @staticmethod
    def sign(params: SchnorrParameters, secret_key: SecretKey, public_key: PublicKey,
             message: bytes, rng, max_attempts: int = MAX_SIGNING_ATTEMPTS) -> Signature:
        for attempt in range(1, max_attempts + 1):
            nonce = random_scalar(rng)
            commitment = params.generator.mul(nonce)
            try:
                challenge = digest_to_scalar(
                    Blake2sCommitment.commit(challenge_input(public_key, commitment, message)))
            except ChallengeRejected:
                continue
            logger.debug(f"Signature produced after {attempt} attempt(s)")
            response = (nonce - challenge * secret_key.scalar) % SCALAR_FIELD_MODULUS
            return Signature(prover_response=response, verifier_challenge=challenge)
        raise SigningFailure(f"No valid challenge after {max_attempts} attempts")

    @staticmethod
    def verify(params: SchnorrParameters, public_key: PublicKey, message: bytes,
               signature: Signature) -> bool:
        s, e = signature.prover_response, signature.verifier_challenge
        if not (0 <= s < SCALAR_FIELD_MODULUS and 0 <= e < SCALAR_FIELD_MODULUS):
            return False
        claimed = params.generator.mul(s) + public_key.mul(e)
        try:
            obtained = digest_to_scalar(
                Blake2sCommitment.commit(challenge_input(public_key, claimed, message)))
        except ChallengeRejected:
            return False
        return obtained == e


# ============================================================================
# VERIFICATION GADGET
# ============================================================================


class SchnorrParametersVar(AllocVar):

    def __init__(self, generator: AffineVar):
        self.generator = generator

    @classmethod
    def new_variable(cls, cs, params: SchnorrParameters, allocator: Allocator) -> 'SchnorrParametersVar':
        return cls(AffineVar.new_variable(cs, params.generator, allocator))


class SignatureVar(AllocVar):
    """Signature scalars as 32 little-endian bytes each"""

    def __init__(self, prover_response: List[UInt8], verifier_challenge: List[UInt8]):
        self.prover_response = prover_response
        self.verifier_challenge = verifier_challenge

    @classmethod
    def new_variable(cls, cs, signature: Signature, allocator: Allocator) -> 'SignatureVar':
        response = [UInt8.new_variable(cs, byte, allocator)
                    for byte in scalar_to_bytes(signature.prover_response)]
        challenge = [UInt8.new_variable(cs, byte, allocator)
                     for byte in scalar_to_bytes(signature.verifier_challenge)]
        return cls(response, challenge)


class SchnorrSignatureVerifyGadget:

    @staticmethod
    def verify(parameters: SchnorrParametersVar, public_key: AffineVar, message: Sequence[UInt8],
               signature: SignatureVar,
               public_key_bytes: Optional[List[UInt8]] = None) -> Boolean:
        """Boolean that is true iff ``signature`` verifies; the caller enforces it"""
        response_bits = [bit for byte in signature.prover_response for bit in byte.to_bits_le()]
        challenge_bits = [bit for byte in signature.verifier_challenge for bit in byte.to_bits_le()]
        claimed = parameters.generator.scalar_mul_le(response_bits) + public_key.scalar_mul_le(challenge_bits)
        if public_key_bytes is None:
            public_key_bytes = public_key.to_bytes_le()
        obtained = Blake2sGadget.evaluate(public_key_bytes + claimed.to_bytes_le() + list(message))
        # Both scalars must be canonical, as in the native check
        canonical = bits_less_than(response_bits, SCALAR_FIELD_MODULUS).and_(
            bits_less_than(challenge_bits, SCALAR_FIELD_MODULUS))
        return uint8_slices_is_eq(obtained, signature.verifier_challenge).and_(canonical)
