"""
Proof Backends
External proof-system interface and a transparent reference backend that
re-checks the full constraint system during verification
"""

import hashlib
import logging
import struct
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Type

from .constraint_system import (
    FIELD_BYTES,
    FIELD_MODULUS,
    CircuitShape,
    ConstraintSynthesizer,
    ConstraintSystem,
    ConstraintViolation,
    SetupFailure,
    ZKError,
)

logger = logging.getLogger(__name__)

PROOF_MAGIC = b"RPF1"


@dataclass(frozen=True)
class ProvingKey:
    shape: CircuitShape
    shape_digest: str


@dataclass(frozen=True)
class VerifyingKey:
    shape: CircuitShape
    shape_digest: str

    @property
    def num_public_inputs(self) -> int:
        return self.shape.num_public_inputs

    def key_hash(self) -> str:
        return hashlib.blake2b(self.shape_digest.encode(), digest_size=16).hexdigest()


@dataclass
class ProofArtifact:
    """Container for proof and metadata"""
    proof: bytes
    public_inputs: List[int]
    generation_time: float
    verification_key_hash: str
    timestamp: float = field(default_factory=time.time)

    @property
    def size_bytes(self) -> int:
        return len(self.proof)


class ProofBackend(ABC):
    """A proof system consuming synthesized constraint systems"""

    @abstractmethod
    def setup(self, circuit: ConstraintSynthesizer, rng) -> Tuple[ProvingKey, VerifyingKey]:
        ...

    @abstractmethod
    def prove_synthesized(self, proving_key: ProvingKey, cs: ConstraintSystem, rng) -> bytes:
        ...

    @abstractmethod
    def verify(self, verifying_key: VerifyingKey, proof: bytes, public_inputs: Sequence[int]) -> bool:
        ...

    def prove(self, proving_key: ProvingKey, circuit: ConstraintSynthesizer, rng) -> bytes:
        return self.prove_synthesized(proving_key, circuit.synthesize(), rng)

    def prove_artifact(self, proving_key: ProvingKey, verifying_key: VerifyingKey,
                       circuit: ConstraintSynthesizer, rng) -> ProofArtifact:
        start_time = time.time()
        cs = circuit.synthesize()
        proof = self.prove_synthesized(proving_key, cs, rng)
        return ProofArtifact(
            proof=proof,
            public_inputs=cs.public_inputs(),
            generation_time=time.time() - start_time,
            verification_key_hash=verifying_key.key_hash(),
        )


class ReferenceBackend(ProofBackend):
    """Transparent backend: the proof is the witness assignment.

    Neither succinct nor zero-knowledge. Verification recomputes every
    constraint from the key's shape, the supplied public inputs and the
    carried witness.
    """

    def setup(self, circuit, rng):
        cs = circuit.synthesize()
        shape = cs.shape()
        digest = shape.digest()
        logger.info(f"Reference setup: {shape.num_constraints} constraints, "
                    f"{shape.num_public_inputs} public inputs, shape {digest[:16]}")
        return ProvingKey(shape=shape, shape_digest=digest), VerifyingKey(shape=shape, shape_digest=digest)

    def prove_synthesized(self, proving_key, cs, rng):
        failing = cs.which_is_unsatisfied()
        if failing is not None:
            raise ConstraintViolation(f"Cannot prove unsatisfied instance: {failing}", constraint=failing)
        digest = cs.shape().digest()
        if digest != proving_key.shape_digest:
            raise SetupFailure("Circuit shape does not match the proving key")
        return self._encode(digest, cs.witness_assignment)

    def verify(self, verifying_key, proof, public_inputs):
        try:
            digest, witness = self._decode(proof)
        except ZKError as e:
            logger.warning(f"Rejected malformed proof: {e}")
            return False
        if digest != verifying_key.shape_digest:
            logger.warning("Proof was produced for a different circuit shape")
            return False
        shape = verifying_key.shape
        if len(public_inputs) != shape.num_public_inputs or len(witness) != shape.num_witness_variables:
            logger.warning("Assignment size does not match the verifying key")
            return False
        if any(not 0 <= value < FIELD_MODULUS for value in public_inputs):
            return False
        instance = [1] + list(public_inputs)
        failing = shape.first_unsatisfied(instance, witness)
        if failing is not None:
            logger.debug(f"Proof rejected at constraint #{failing}")
            return False
        return True

    @staticmethod
    def _encode(digest: str, witness: List[int]) -> bytes:
        body = b"".join(value.to_bytes(FIELD_BYTES, 'little') for value in witness)
        return PROOF_MAGIC + bytes.fromhex(digest) + struct.pack('<I', len(witness)) + body

    @staticmethod
    def _decode(proof: bytes) -> Tuple[str, List[int]]:
        header = len(PROOF_MAGIC) + 32 + 4
        if len(proof) < header or proof[:len(PROOF_MAGIC)] != PROOF_MAGIC:
            raise ZKError("Bad proof header")
        digest = proof[len(PROOF_MAGIC):len(PROOF_MAGIC) + 32].hex()
        (count,) = struct.unpack('<I', proof[header - 4:header])
        if len(proof) != header + count * FIELD_BYTES:
            raise ZKError("Proof length does not match its witness count")
        witness = []
        for offset in range(header, len(proof), FIELD_BYTES):
            value = int.from_bytes(proof[offset:offset + FIELD_BYTES], 'little')
            if value >= FIELD_MODULUS:
                raise ZKError("Non-canonical witness value")
            witness.append(value)
        return digest, witness


BACKENDS: Dict[str, Type[ProofBackend]] = {
    'reference': ReferenceBackend,
}


def get_backend(name: str) -> ProofBackend:
    """Instantiate a registered backend by its configuration name"""
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"Unknown proof backend '{name}'; available: {sorted(BACKENDS)}") from None


def prove_batch(backend: ProofBackend, proving_key: ProvingKey, verifying_key: VerifyingKey,
                circuits: Sequence[ConstraintSynthesizer], rng_factory,
                max_workers: Optional[int] = None) -> List[ProofArtifact]:
    """Prove independent instances concurrently; keys are shared read-only.

    ``rng_factory(i)`` supplies a private rng per instance.
    """
    logger.info(f"Proving batch of {len(circuits)} instance(s)")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(backend.prove_artifact, proving_key, verifying_key, circuit, rng_factory(i))
            for i, circuit in enumerate(circuits)
        ]
        return [future.result() for future in futures]
