"""
Ledger Parameters
One-time generation, validation and serialization of the signature and hash
parameters shared by every ledger circuit
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import galois

from config import AccumulatorConfig
from primitives.field import SerializationError
from primitives.jubjub import (
    BASE_FIELD_MODULUS,
    POINT_BYTES,
    SCALAR_FIELD_MODULUS,
    AffinePoint,
)
from primitives.pedersen import (
    PedersenCRH,
    PedersenHashFamily,
    PedersenHashFamilyGadget,
    PedersenParameters,
)
from primitives.schnorr import Schnorr, SchnorrParameters, SchnorrParametersVar
from zk.constraint_system import SetupFailure, SynthesisError
from zk.gadgets import AllocVar, Allocator

from .transaction import ACCOUNT_LEAF_BYTES

logger = logging.getLogger(__name__)

PARAMETERS_MAGIC = b"LVP1"
# Two-to-one input is two 32-byte digests
TWO_TO_ONE_INPUT_BITS = 2 * 32 * 8


def validate_group_parameters():
    """Check the curve description before any parameters are derived"""
    if not galois.is_prime(BASE_FIELD_MODULUS):
        raise SetupFailure("Base field modulus is not prime")
    if not galois.is_prime(SCALAR_FIELD_MODULUS):
        raise SetupFailure("Subgroup order is not prime")


@dataclass(frozen=True)
class Parameters:
    """Immutable public parameters, safe to share across threads"""
    sig_params: SchnorrParameters
    leaf_crh_params: PedersenParameters
    two_to_one_crh_params: PedersenParameters

    @classmethod
    def setup(cls, rng, config: Optional[AccumulatorConfig] = None) -> 'Parameters':
        config = config or AccumulatorConfig()
        validate_group_parameters()
        if config.leaf_size != ACCOUNT_LEAF_BYTES:
            raise SetupFailure(f"Configured leaf size {config.leaf_size} does not match "
                               f"the {ACCOUNT_LEAF_BYTES}-byte account leaf")
        logger.info(f"Generating ledger parameters ({config.num_windows} windows of {config.window_size} bits)")
        sig_params = Schnorr.setup(rng)
        if sig_params.generator.is_identity() or not sig_params.generator.is_in_prime_order_subgroup():
            raise SetupFailure("Degenerate signature generator")
        leaf_crh_params = PedersenCRH.setup(rng, config.window_size, config.num_windows)
        two_to_one_windows = -(-TWO_TO_ONE_INPUT_BITS // config.window_size)
        two_to_one_crh_params = PedersenCRH.setup(rng, config.window_size, two_to_one_windows)
        return cls(sig_params, leaf_crh_params, two_to_one_crh_params)

    def hash_family(self) -> PedersenHashFamily:
        return PedersenHashFamily(self.leaf_crh_params, self.two_to_one_crh_params)

    # --- serialization ---

    def to_bytes(self) -> bytes:
        header = PARAMETERS_MAGIC + struct.pack(
            '<HHH', self.leaf_crh_params.window_size, self.leaf_crh_params.num_windows,
            self.two_to_one_crh_params.num_windows)
        points = [self.sig_params.generator] + self.leaf_crh_params.bases + self.two_to_one_crh_params.bases
        return header + b"".join(point.to_bytes() for point in points)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Parameters':
        header_size = len(PARAMETERS_MAGIC) + 6
        if len(data) < header_size or data[:len(PARAMETERS_MAGIC)] != PARAMETERS_MAGIC:
            raise SerializationError("Bad parameters header")
        window_size, leaf_windows, node_windows = struct.unpack('<HHH', data[len(PARAMETERS_MAGIC):header_size])
        count = 1 + leaf_windows + node_windows
        if window_size == 0 or len(data) != header_size + count * POINT_BYTES:
            raise SerializationError("Parameters length does not match the header")
        points = [
            AffinePoint.from_bytes(data[offset:offset + POINT_BYTES])
            for offset in range(header_size, len(data), POINT_BYTES)
        ]
        return cls(
            sig_params=SchnorrParameters(generator=points[0]),
            leaf_crh_params=PedersenParameters.from_bases(window_size, points[1:1 + leaf_windows]),
            two_to_one_crh_params=PedersenParameters.from_bases(window_size, points[1 + leaf_windows:]),
        )

    def save(self, path: Path):
        Path(path).write_bytes(self.to_bytes())
        logger.info(f"Saved parameters to {path}")

    @classmethod
    def load(cls, path: Path) -> 'Parameters':
        return cls.from_bytes(Path(path).read_bytes())


class ParametersVar(AllocVar):
    """Parameters as circuit constants"""

    def __init__(self, sig_params: SchnorrParametersVar, hash_gadget: PedersenHashFamilyGadget):
        self.sig_params = sig_params
        self.hash_gadget = hash_gadget

    @classmethod
    def new_variable(cls, cs, params: Parameters, allocator: Allocator) -> 'ParametersVar':
        if not allocator.is_constant:
            raise SynthesisError("Ledger parameters are only allocated as constants")
        return cls(
            SchnorrParametersVar.new_variable(cs, params.sig_params, allocator),
            params.hash_family().gadget(),
        )
