"""
Pedersen Collision-Resistant Hash
Windowed Pedersen hash over JubJub, compressed to the x-coordinate, plus the
hash-family capability consumed by the accumulator
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from zk.constraint_system import SynthesisError
from zk.gadgets import FpVar, UInt8

from .field import to_bytes_le
from .jubjub import AffinePoint, AffineVar

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 4
DEFAULT_NUM_WINDOWS = 256


@dataclass(frozen=True)
class PedersenParameters:
    """Per-window base powers: ``generators[w][j] = 2**j * base_w``"""
    window_size: int
    num_windows: int
    generators: Tuple[Tuple[AffinePoint, ...], ...]

    @property
    def max_input_bits(self) -> int:
        return self.window_size * self.num_windows

    @property
    def max_input_bytes(self) -> int:
        return self.max_input_bits // 8

    @property
    def bases(self) -> List[AffinePoint]:
        return [window[0] for window in self.generators]

    @classmethod
    def from_bases(cls, window_size: int, bases: Sequence[AffinePoint]) -> 'PedersenParameters':
        generators = []
        for base in bases:
            powers = []
            for _ in range(window_size):
                powers.append(base)
                base = base.double()
            generators.append(tuple(powers))
        return cls(window_size=window_size, num_windows=len(generators), generators=tuple(generators))


def bytes_to_bits_le(data: bytes) -> List[int]:
    return [(byte >> i) & 1 for byte in data for i in range(8)]


class PedersenCRH:
    """Native windowed Pedersen hash"""

    @staticmethod
    def setup(rng, window_size: int = DEFAULT_WINDOW_SIZE,
              num_windows: int = DEFAULT_NUM_WINDOWS) -> PedersenParameters:
        if window_size * num_windows % 8:
            raise ValueError("Pedersen input capacity must be a whole number of bytes")
        bases = [AffinePoint.random(rng) for _ in range(num_windows)]
        logger.debug(f"Generated Pedersen parameters: {num_windows} windows of {window_size} bits")
        return PedersenParameters.from_bases(window_size, bases)

    @staticmethod
    def evaluate_point(params: PedersenParameters, data: bytes) -> AffinePoint:
        if len(data) > params.max_input_bytes:
            raise ValueError(f"Pedersen input of {len(data)} bytes exceeds {params.max_input_bytes}")
        result = AffinePoint.identity()
        for i, bit in enumerate(bytes_to_bits_le(data)):
            if bit:
                result = result + params.generators[i // params.window_size][i % params.window_size]
        return result

    @staticmethod
    def evaluate(params: PedersenParameters, data: bytes) -> int:
        return PedersenCRH.evaluate_point(params, data).x


class PedersenCRHGadget:
    """In-circuit Pedersen hash with constant bases"""

    @staticmethod
    def evaluate_point(params: PedersenParameters, data: Sequence[UInt8]) -> AffineVar:
        bits = [bit for byte in data for bit in byte.to_bits_le()]
        if len(bits) > params.max_input_bits:
            raise SynthesisError(f"Pedersen input of {len(data)} bytes exceeds {params.max_input_bytes}")
        result = AffineVar.identity()
        for i, bit in enumerate(bits):
            base = params.generators[i // params.window_size][i % params.window_size]
            addend = AffineVar.conditionally_select(bit, AffineVar.constant(base), AffineVar.identity())
            result = result + addend
        return result

    @staticmethod
    def evaluate(params: PedersenParameters, data: Sequence[UInt8]) -> FpVar:
        return PedersenCRHGadget.evaluate_point(params, data).x


# ============================================================================
# HASH FAMILY CAPABILITY
# ============================================================================


class HashFamily(ABC):
    """Leaf hash plus two-to-one compression over field-element digests"""

    @abstractmethod
    def hash(self, data: bytes) -> int:
        ...

    @abstractmethod
    def compress(self, left: int, right: int) -> int:
        ...


class HashFamilyGadget(ABC):
    """In-circuit counterpart of a HashFamily"""

    @abstractmethod
    def hash(self, data: Sequence[UInt8]) -> FpVar:
        ...

    @abstractmethod
    def compress(self, left: FpVar, right: FpVar) -> FpVar:
        ...


class PedersenHashFamily(HashFamily):

    def __init__(self, leaf_params: PedersenParameters, two_to_one_params: PedersenParameters):
        self.leaf_params = leaf_params
        self.two_to_one_params = two_to_one_params

    def hash(self, data: bytes) -> int:
        return PedersenCRH.evaluate(self.leaf_params, data)

    def compress(self, left: int, right: int) -> int:
        return PedersenCRH.evaluate(self.two_to_one_params, to_bytes_le(left) + to_bytes_le(right))

    def gadget(self) -> 'PedersenHashFamilyGadget':
        return PedersenHashFamilyGadget(self.leaf_params, self.two_to_one_params)


class PedersenHashFamilyGadget(HashFamilyGadget):

    def __init__(self, leaf_params: PedersenParameters, two_to_one_params: PedersenParameters):
        self.leaf_params = leaf_params
        self.two_to_one_params = two_to_one_params

    def hash(self, data: Sequence[UInt8]) -> FpVar:
        return PedersenCRHGadget.evaluate(self.leaf_params, data)

    def compress(self, left: FpVar, right: FpVar) -> FpVar:
        return PedersenCRHGadget.evaluate(self.two_to_one_params, left.to_bytes_le() + right.to_bytes_le())
