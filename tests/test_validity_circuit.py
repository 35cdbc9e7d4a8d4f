"""
Validity Circuit Tests
Each way a transaction can be invalid must leave the circuit unsatisfiable,
and the shape must not depend on the witness
"""
import pytest

from conftest import TREE_DEPTH, make_validity_circuit
from ledger import ValidityCircuit
from primitives.jubjub import SCALAR_FIELD_MODULUS
from primitives.schnorr import Signature
from zk.constraint_system import SynthesisError


@pytest.fixture(scope="module")
def valid_cs(params, ledger):
    return make_validity_circuit(params, ledger).synthesize()


class TestValidityCircuit:

    def test_valid_transfer_satisfied(self, valid_cs, ledger):
        assert valid_cs.is_satisfied()
        assert valid_cs.public_inputs() == [ledger['tree'].root]

    def test_shape_matches_blank(self, valid_cs, params):
        blank = ValidityCircuit.blank(params, TREE_DEPTH).synthesize()
        assert blank.shape().digest() == valid_cs.shape().digest()

    @pytest.mark.parametrize("kwargs,failing", [
        (dict(sender=2), "balances"),
        (dict(recipient=3), "balances"),
        (dict(sign_message=b"\x00" * 72), "authorization"),
    ])
    def test_invalid_transfer_unsatisfied(self, build_validity_circuit, kwargs, failing):
        cs = build_validity_circuit(**kwargs).synthesize()
        assert not cs.is_satisfied()
        assert cs.which_is_unsatisfied().startswith(failing)

    def test_non_canonical_response_unsatisfied(self, build_validity_circuit):
        circuit = build_validity_circuit()
        genuine = circuit.signature
        circuit.signature = Signature(genuine.prover_response + SCALAR_FIELD_MODULUS,
                                      genuine.verifier_challenge)
        assert not circuit.check_native().signature
        cs = circuit.synthesize()
        assert not cs.is_satisfied()
        assert cs.which_is_unsatisfied().startswith("authorization")

    def test_wrong_root_unsatisfied(self, build_validity_circuit, ledger):
        cs = build_validity_circuit(root=ledger['tree'].root + 1).synthesize()
        assert cs.which_is_unsatisfied().startswith("membership")

    def test_sender_may_spend_entire_balance(self, build_validity_circuit):
        assert build_validity_circuit(sender=1, recipient=0, amount=50).synthesize().is_satisfied()

    def test_empty_path_rejected(self, params):
        with pytest.raises(SynthesisError):
            ValidityCircuit.blank(params, 0).synthesize()


class TestNativeCheck:

    def test_valid_report(self, build_validity_circuit):
        report = build_validity_circuit().check_native(expected_depth=TREE_DEPTH)
        assert report.is_valid

    def test_overspend_report(self, build_validity_circuit):
        report = build_validity_circuit(sender=2).check_native()
        assert report.membership and report.signature
        assert not report.balances

    def test_bad_signature_report(self, build_validity_circuit):
        report = build_validity_circuit(sign_message=b"forged").check_native()
        assert not report.signature
        assert not report.is_valid

    def test_depth_mismatch_report(self, build_validity_circuit):
        assert not build_validity_circuit().check_native(expected_depth=TREE_DEPTH + 1).membership
