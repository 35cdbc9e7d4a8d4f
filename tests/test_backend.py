"""
Proof Backend Tests
Setup, proving and verification through the reference backend
"""
import random

import pytest

from conftest import TREE_DEPTH, make_validity_circuit
from ledger import ValidityCircuit
from zk.backend import ReferenceBackend, get_backend, prove_batch
from zk.constraint_system import ConstraintSynthesizer, ConstraintViolation, SetupFailure


class _Cube(ConstraintSynthesizer):
    """Knowledge of x with x^3 equal to the public input"""

    def __init__(self, x, claimed=None):
        self.x = x
        self.claimed = x ** 3 if claimed is None else claimed

    def generate_constraints(self, cs):
        out = cs.new_input_variable(self.claimed)
        x = cs.new_witness_variable(self.x)
        x2 = cs.new_witness_variable(self.x * self.x)
        cs.enforce_constraint(x, x, x2)
        cs.enforce_constraint(x2, x, out)


class _CountingCube(_Cube):

    def __init__(self, x):
        super().__init__(x)
        self.synthesized = 0

    def generate_constraints(self, cs):
        self.synthesized += 1
        super().generate_constraints(cs)


class _Other(ConstraintSynthesizer):

    def generate_constraints(self, cs):
        x = cs.new_input_variable(1)
        cs.enforce_constraint(x, x, x)


@pytest.fixture(scope="module")
def backend():
    return ReferenceBackend()


@pytest.fixture(scope="module")
def keys(backend):
    return backend.setup(_Cube(0), random.Random(0))


class TestReferenceBackend:

    def test_prove_and_verify(self, backend, keys):
        pk, vk = keys
        proof = backend.prove(pk, _Cube(3), random.Random(1))
        assert backend.verify(vk, proof, [27])

    def test_wrong_public_input(self, backend, keys):
        pk, vk = keys
        proof = backend.prove(pk, _Cube(3), random.Random(1))
        assert not backend.verify(vk, proof, [28])
        assert not backend.verify(vk, proof, [27, 1])

    def test_unsatisfied_instance_cannot_be_proven(self, backend, keys):
        pk, _ = keys
        with pytest.raises(ConstraintViolation):
            backend.prove(pk, _Cube(3, claimed=28), random.Random(1))

    def test_shape_mismatch(self, backend, keys):
        pk, _ = keys
        with pytest.raises(SetupFailure):
            backend.prove(pk, _Other(), random.Random(1))

    @pytest.mark.parametrize("mangle", [
        lambda proof: b"",
        lambda proof: b"XXXX" + proof[4:],
        lambda proof: proof[:-1],
        lambda proof: proof[:-32] + b"\xff" * 32,
    ])
    def test_malformed_proof_rejected(self, backend, keys, mangle):
        pk, vk = keys
        proof = backend.prove(pk, _Cube(3), random.Random(1))
        assert not backend.verify(vk, mangle(proof), [27])

    def test_proof_for_other_shape_rejected(self, backend, keys):
        _, vk = keys
        other_pk, _ = backend.setup(_Other(), random.Random(0))
        proof = backend.prove(other_pk, _Other(), random.Random(1))
        assert not backend.verify(vk, proof, [1])

    def test_artifact_metadata(self, backend, keys):
        pk, vk = keys
        artifact = backend.prove_artifact(pk, vk, _Cube(2), random.Random(1))
        assert artifact.public_inputs == [8]
        assert artifact.verification_key_hash == vk.key_hash()
        assert artifact.size_bytes == len(artifact.proof)
        assert backend.verify(vk, artifact.proof, artifact.public_inputs)

    def test_artifact_synthesizes_once(self, backend, keys):
        pk, vk = keys
        circuit = _CountingCube(4)
        artifact = backend.prove_artifact(pk, vk, circuit, random.Random(1))
        assert circuit.synthesized == 1
        assert artifact.public_inputs == [64]

    def test_prove_batch(self, backend, keys):
        pk, vk = keys
        artifacts = prove_batch(backend, pk, vk, [_Cube(x) for x in range(1, 6)],
                                rng_factory=random.Random, max_workers=3)
        assert [a.public_inputs for a in artifacts] == [[x ** 3] for x in range(1, 6)]
        assert all(backend.verify(vk, a.proof, a.public_inputs) for a in artifacts)


class TestBackendRegistry:

    def test_reference_backend_by_name(self):
        assert isinstance(get_backend("reference"), ReferenceBackend)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="groth16"):
            get_backend("groth16")


class TestValidityProofs:

    def test_end_to_end(self, backend, params, ledger):
        pk, vk = backend.setup(ValidityCircuit.blank(params, TREE_DEPTH), random.Random(0))
        artifact = backend.prove_artifact(pk, vk, make_validity_circuit(params, ledger), random.Random(1))
        root = ledger['tree'].root
        assert artifact.public_inputs == [root]
        assert backend.verify(vk, artifact.proof, [root])
        assert not backend.verify(vk, artifact.proof, [root + 1])
