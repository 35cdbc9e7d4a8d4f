"""
BLAKE2s Gadget Tests
The in-circuit hash must agree with hashlib on every input length class
"""
import hashlib

import pytest

from primitives.blake2s import Blake2sCommitment, Blake2sGadget
from zk.constraint_system import ConstraintSystem
from zk.gadgets import UInt8, uint8_values


class TestBlake2s:

    @pytest.mark.parametrize("length", [0, 3, 64, 65])
    def test_gadget_matches_hashlib(self, length):
        data = bytes((7 * i + 1) % 256 for i in range(length))
        cs = ConstraintSystem()
        digest = Blake2sGadget.evaluate(UInt8.new_witness_vec(cs, data))
        assert uint8_values(digest) == hashlib.blake2s(data).digest()
        assert cs.is_satisfied()

    def test_constant_input_folds(self):
        digest = Blake2sGadget.evaluate(UInt8.constant_vec(b"abc"))
        assert all(byte.is_constant for byte in digest)
        assert uint8_values(digest) == Blake2sCommitment.commit(b"abc")

    def test_tampered_word_detected(self):
        cs = ConstraintSystem()
        Blake2sGadget.evaluate(UInt8.new_witness_vec(cs, b"ledger"))
        cs.witness_assignment[-1] ^= 1
        assert not cs.is_satisfied()
