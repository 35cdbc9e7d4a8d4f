"""
Schnorr Signature Tests
Native signing and verification, encodings, and agreement of the verification gadget
"""
import random

import pytest

from primitives import schnorr
from primitives.field import SerializationError
from primitives.jubjub import SCALAR_FIELD_MODULUS, AffineVar
from primitives.schnorr import (
    Schnorr,
    SchnorrParametersVar,
    SchnorrSignatureVerifyGadget,
    Signature,
    SignatureVar,
    SigningFailure,
)
from zk.constraint_system import ConstraintSystem
from zk.gadgets import UInt8

MESSAGE = b"transfer 30 to bob"


@pytest.fixture(scope="module")
def signer():
    rng = random.Random(21)
    params = Schnorr.setup(rng)
    public_key, secret_key = Schnorr.keygen(params, rng)
    signature = Schnorr.sign(params, secret_key, public_key, MESSAGE, rng)
    return params, public_key, secret_key, signature


class TestNativeSchnorr:

    def test_sign_and_verify(self, signer):
        params, public_key, _, signature = signer
        assert Schnorr.verify(params, public_key, MESSAGE, signature)

    def test_wrong_message(self, signer):
        params, public_key, _, signature = signer
        assert not Schnorr.verify(params, public_key, MESSAGE + b"!", signature)

    def test_wrong_key(self, signer):
        params, _, _, signature = signer
        other_key, _ = Schnorr.keygen(params, random.Random(22))
        assert not Schnorr.verify(params, other_key, MESSAGE, signature)

    def test_out_of_range_scalars_rejected(self, signer):
        params, public_key, _, signature = signer
        forged = Signature(signature.prover_response + SCALAR_FIELD_MODULUS, signature.verifier_challenge)
        assert not Schnorr.verify(params, public_key, MESSAGE, forged)

    def test_secret_not_in_repr(self, signer):
        _, _, secret_key, _ = signer
        assert str(secret_key.scalar) not in repr(secret_key)

    def test_signing_failure_after_rejected_challenges(self, signer, monkeypatch):
        params, public_key, secret_key, _ = signer
        monkeypatch.setattr(schnorr.Blake2sCommitment, "commit", staticmethod(lambda data: b"\xff" * 32))
        with pytest.raises(SigningFailure):
            Schnorr.sign(params, secret_key, public_key, MESSAGE, random.Random(0), max_attempts=3)

    def test_signature_bytes_roundtrip(self, signer):
        signature = signer[3]
        assert Signature.from_bytes(signature.to_bytes()) == signature
        with pytest.raises(SerializationError):
            Signature.from_bytes(signature.to_bytes()[:-1])


class TestSchnorrGadget:

    def _verify_in_circuit(self, signer, message, public_key=None, signature=None):
        params, signer_key, _, genuine = signer
        signature = signature or genuine
        cs = ConstraintSystem()
        params_var = SchnorrParametersVar.new_constant(cs, params)
        pk_var = AffineVar.new_witness(cs, public_key or signer_key)
        sig_var = SignatureVar.new_witness(cs, signature)
        result = SchnorrSignatureVerifyGadget.verify(params_var, pk_var, UInt8.new_witness_vec(cs, message), sig_var)
        return cs, result

    def test_valid_signature(self, signer):
        cs, result = self._verify_in_circuit(signer, MESSAGE)
        assert result.value is True
        assert cs.is_satisfied()

    def test_wrong_message_yields_false(self, signer):
        cs, result = self._verify_in_circuit(signer, MESSAGE[:-1] + b"?")
        assert result.value is False
        assert cs.is_satisfied()

    def test_wrong_key_yields_false(self, signer):
        other_key, _ = Schnorr.keygen(signer[0], random.Random(23))
        cs, result = self._verify_in_circuit(signer, MESSAGE, public_key=other_key)
        assert result.value is False
        assert cs.is_satisfied()

    @pytest.mark.parametrize("shift_response", [True, False])
    def test_non_canonical_scalar_agrees_with_native(self, signer, shift_response):
        params, public_key, _, genuine = signer
        s, e = genuine.prover_response, genuine.verifier_challenge
        mauled = (Signature(s + SCALAR_FIELD_MODULUS, e) if shift_response
                  else Signature(s, e + SCALAR_FIELD_MODULUS))
        assert not Schnorr.verify(params, public_key, MESSAGE, mauled)
        cs, result = self._verify_in_circuit(signer, MESSAGE, signature=mauled)
        assert result.value is False
        assert cs.is_satisfied()
