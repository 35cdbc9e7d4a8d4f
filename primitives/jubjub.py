"""
JubJub Twisted Edwards Curve
Native affine arithmetic over Python integers and the matching R1CS gadget.
Curve: -x^2 + y^2 = 1 + d x^2 y^2 over the BLS12-381 scalar field.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from zk.constraint_system import FIELD_MODULUS, ConstraintSystem, SetupFailure
from zk.gadgets import AllocVar, Allocator, Boolean, FpVar, UInt8

from .field import SerializationError, from_bytes_le, inverse, sqrt, to_bytes_le

logger = logging.getLogger(__name__)

# ============================================================================
# CURVE CONSTANTS
# ============================================================================

BASE_FIELD_MODULUS = FIELD_MODULUS
SCALAR_FIELD_MODULUS = 0x0e7db4ea6533afa906673b0101343b00a6682093ccc81082d0970e5ed6f72cb7
COFACTOR = 8
COFACTOR_INV = pow(COFACTOR, -1, SCALAR_FIELD_MODULUS)
COEFF_A = FIELD_MODULUS - 1
COEFF_D = (-10240 * pow(10241, -1, FIELD_MODULUS)) % FIELD_MODULUS

SCALAR_BYTES = 32
POINT_BYTES = 64
COMPRESSED_POINT_BYTES = 32
MAX_SAMPLING_ATTEMPTS = 256

_SIGN_BIT = 1 << 255


# ============================================================================
# NATIVE POINTS
# ============================================================================


@dataclass(frozen=True)
class AffinePoint:
    """Affine JubJub point with canonical integer coordinates"""
    x: int
    y: int

    @classmethod
    def identity(cls) -> 'AffinePoint':
        return cls(0, 1)

    def is_identity(self) -> bool:
        return self.x == 0 and self.y == 1

    def is_on_curve(self) -> bool:
        if not (0 <= self.x < FIELD_MODULUS and 0 <= self.y < FIELD_MODULUS):
            return False
        x2 = self.x * self.x % FIELD_MODULUS
        y2 = self.y * self.y % FIELD_MODULUS
        return (COEFF_A * x2 + y2) % FIELD_MODULUS == (1 + COEFF_D * x2 % FIELD_MODULUS * y2) % FIELD_MODULUS

    def __add__(self, other: 'AffinePoint') -> 'AffinePoint':
        x1x2 = self.x * other.x % FIELD_MODULUS
        y1y2 = self.y * other.y % FIELD_MODULUS
        dxy = COEFF_D * x1x2 % FIELD_MODULUS * y1y2 % FIELD_MODULUS
        x3 = (self.x * other.y + self.y * other.x) * inverse(1 + dxy) % FIELD_MODULUS
        y3 = (y1y2 - COEFF_A * x1x2) * inverse(1 - dxy) % FIELD_MODULUS
        return AffinePoint(x3, y3)

    def __neg__(self) -> 'AffinePoint':
        return AffinePoint((-self.x) % FIELD_MODULUS, self.y)

    def __sub__(self, other: 'AffinePoint') -> 'AffinePoint':
        return self + (-other)

    def double(self) -> 'AffinePoint':
        return self + self

    def mul(self, scalar: int) -> 'AffinePoint':
        """Double-and-add over the bits of a non-negative integer"""
        if scalar < 0:
            return (-self).mul(-scalar)
        result = AffinePoint.identity()
        addend = self
        while scalar:
            if scalar & 1:
                result = result + addend
            addend = addend.double()
            scalar >>= 1
        return result

    def __mul__(self, scalar: int) -> 'AffinePoint':
        if not isinstance(scalar, int):
            return NotImplemented
        return self.mul(scalar)

    __rmul__ = __mul__

    def mul_by_cofactor(self) -> 'AffinePoint':
        return self.double().double().double()

    def is_in_prime_order_subgroup(self) -> bool:
        return self.mul(SCALAR_FIELD_MODULUS).is_identity()

    # --- serialization ---

    def to_bytes(self) -> bytes:
        """Uncompressed ``x || y``, each 32 bytes little-endian"""
        return to_bytes_le(self.x) + to_bytes_le(self.y)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'AffinePoint':
        if len(data) != POINT_BYTES:
            raise SerializationError(f"Expected {POINT_BYTES} point bytes, got {len(data)}")
        point = cls(from_bytes_le(data[:32]), from_bytes_le(data[32:]))
        point._validate()
        return point

    def to_compressed_bytes(self) -> bytes:
        encoded = self.y | (_SIGN_BIT if self.x & 1 else 0)
        return encoded.to_bytes(COMPRESSED_POINT_BYTES, 'little')

    @classmethod
    def from_compressed_bytes(cls, data: bytes) -> 'AffinePoint':
        if len(data) != COMPRESSED_POINT_BYTES:
            raise SerializationError(
                f"Expected {COMPRESSED_POINT_BYTES} compressed point bytes, got {len(data)}")
        encoded = int.from_bytes(data, 'little')
        odd = bool(encoded & _SIGN_BIT)
        y = encoded & (_SIGN_BIT - 1)
        if y >= FIELD_MODULUS:
            raise SerializationError("Encoded y-coordinate is not reduced")
        x = cls._recover_x(y)
        if x is None:
            raise SerializationError("No curve point has this y-coordinate")
        if x == 0 and odd:
            raise SerializationError("Invalid sign bit for x = 0")
        if bool(x & 1) != odd:
            x = FIELD_MODULUS - x
        point = cls(x, y)
        point._validate()
        return point

    def _validate(self):
        if not self.is_on_curve():
            raise SerializationError("Point is not on the curve")
        if not self.is_in_prime_order_subgroup():
            raise SerializationError("Point is not in the prime-order subgroup")

    @staticmethod
    def _recover_x(y: int) -> Optional[int]:
        y2 = y * y % FIELD_MODULUS
        denominator = (COEFF_A - COEFF_D * y2) % FIELD_MODULUS
        if denominator == 0:
            return None
        return sqrt((1 - y2) * inverse(denominator) % FIELD_MODULUS)

    @classmethod
    def random(cls, rng) -> 'AffinePoint':
        """Uniform non-identity point of the prime-order subgroup"""
        for _ in range(MAX_SAMPLING_ATTEMPTS):
            y = rng.randrange(FIELD_MODULUS)
            x = cls._recover_x(y)
            if x is None:
                continue
            if rng.randrange(2):
                x = (-x) % FIELD_MODULUS
            point = cls(x, y).mul_by_cofactor()
            if not point.is_identity():
                return point
        raise SetupFailure(f"No subgroup point found after {MAX_SAMPLING_ATTEMPTS} attempts")

    def __repr__(self) -> str:
        return f"AffinePoint(x={self.x:#x}, y={self.y:#x})"


def random_scalar(rng) -> int:
    """Non-zero element of the prime subgroup's scalar field"""
    return rng.randrange(1, SCALAR_FIELD_MODULUS)


def scalar_to_bytes(scalar: int) -> bytes:
    return to_bytes_le(scalar, SCALAR_BYTES)


def scalar_from_bytes(data: bytes) -> int:
    return from_bytes_le(data, SCALAR_FIELD_MODULUS, SCALAR_BYTES)


# ============================================================================
# POINT GADGET
# ============================================================================


class AffineVar(AllocVar):
    """In-circuit JubJub point using the complete twisted Edwards addition law"""

    __slots__ = ('x', 'y')

    def __init__(self, x: FpVar, y: FpVar):
        self.x = x
        self.y = y

    @property
    def value(self) -> AffinePoint:
        return AffinePoint(self.x.value, self.y.value)

    @property
    def cs(self) -> Optional[ConstraintSystem]:
        return self.x.cs or self.y.cs

    @property
    def is_constant(self) -> bool:
        return self.x.is_constant and self.y.is_constant

    @classmethod
    def constant(cls, point: AffinePoint) -> 'AffineVar':
        return cls(FpVar.constant(point.x), FpVar.constant(point.y))

    @classmethod
    def identity(cls) -> 'AffineVar':
        return cls.constant(AffinePoint.identity())

    @classmethod
    def new_variable(cls, cs, point: AffinePoint, allocator: Allocator) -> 'AffineVar':
        if allocator.is_constant:
            return cls.constant(point)
        if allocator.is_public:
            var = cls(FpVar.new_variable(cs, point.x, allocator), FpVar.new_variable(cs, point.y, allocator))
            var.enforce_on_curve()
            return var
        # Witnesses are pinned to the prime-order subgroup: allocate P / 8
        # and multiply back by the cofactor in-circuit.
        reduced = point.mul(COFACTOR_INV)
        var = cls(FpVar.new_witness(cs, reduced.x), FpVar.new_witness(cs, reduced.y))
        var.enforce_on_curve()
        return var.double().double().double()

    def enforce_on_curve(self):
        x2 = self.x.square()
        y2 = self.y.square()
        (x2 * COEFF_A + y2).enforce_equal(x2 * y2 * COEFF_D + 1)

    def __add__(self, other: 'AffineVar') -> 'AffineVar':
        if self.is_constant and other.is_constant:
            return AffineVar.constant(self.value + other.value)
        x1, y1, x2, y2 = self.x, self.y, other.x, other.y
        u = (x1 * (-COEFF_A) + y1) * (x2 + y2)
        v0 = y2 * x1
        v1 = x2 * y1
        v2 = v0 * v1 * COEFF_D
        x3 = (v0 + v1).div(v2 + 1)
        y3 = (u + v0 * COEFF_A - v1).div(1 - v2)
        return AffineVar(x3, y3)

    def __neg__(self) -> 'AffineVar':
        return AffineVar(-self.x, self.y)

    def double(self) -> 'AffineVar':
        return self + self

    @classmethod
    def conditionally_select(cls, condition: Boolean, true_value: 'AffineVar',
                             false_value: 'AffineVar') -> 'AffineVar':
        return cls(FpVar.conditionally_select(condition, true_value.x, false_value.x),
                   FpVar.conditionally_select(condition, true_value.y, false_value.y))

    def scalar_mul_le(self, bits: Sequence[Boolean]) -> 'AffineVar':
        """Multiply by the integer encoded in little-endian ``bits``"""
        result = AffineVar.identity()
        if self.is_constant:
            base = self.value
            for bit in bits:
                addend = AffineVar.conditionally_select(bit, AffineVar.constant(base), AffineVar.identity())
                result = result + addend
                base = base.double()
            return result
        base = self
        for position, bit in enumerate(bits):
            result = AffineVar.conditionally_select(bit, result + base, result)
            if position + 1 < len(bits):
                base = base.double()
        return result

    def enforce_equal(self, other: 'AffineVar'):
        self.x.enforce_equal(other.x)
        self.y.enforce_equal(other.y)

    def is_eq(self, other: 'AffineVar') -> Boolean:
        return self.x.is_eq(other.x).and_(self.y.is_eq(other.y))

    def to_bytes_le(self) -> List[UInt8]:
        """Matches ``AffinePoint.to_bytes`` byte for byte"""
        return self.x.to_bytes_le() + self.y.to_bytes_le()

    def __repr__(self) -> str:
        return f"AffineVar({self.value!r})"
