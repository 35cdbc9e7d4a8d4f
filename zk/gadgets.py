"""
Circuit Gadgets
Allocation capabilities, booleans, field elements and fixed-width unsigned
integers expressed as R1CS constraints
"""

import logging
from abc import ABC, abstractmethod
from functools import reduce
from typing import List, Optional, Sequence, Union

from .constraint_system import (
    FIELD_BITS,
    FIELD_BYTES,
    FIELD_CAPACITY,
    FIELD_MODULUS,
    ConstraintSystem,
    LinearCombination,
    SynthesisError,
)

logger = logging.getLogger(__name__)

# ============================================================================
# ALLOCATION CAPABILITIES
# ============================================================================


class Allocator(ABC):
    """How a value enters a constraint system"""
    kind = ""
    is_constant = False
    is_public = False

    @abstractmethod
    def allocate(self, cs: Optional[ConstraintSystem], value: int) -> LinearCombination:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class WitnessAllocator(Allocator):
    kind = "witness"

    def allocate(self, cs, value):
        if cs is None:
            raise SynthesisError("Witness allocation requires a constraint system")
        return cs.new_witness_variable(value)


class PublicInputAllocator(Allocator):
    kind = "input"
    is_public = True

    def allocate(self, cs, value):
        if cs is None:
            raise SynthesisError("Public input allocation requires a constraint system")
        return cs.new_input_variable(value)


class ConstantAllocator(Allocator):
    kind = "constant"
    is_constant = True

    def allocate(self, cs, value):
        return LinearCombination.constant(value)


WITNESS = WitnessAllocator()
PUBLIC_INPUT = PublicInputAllocator()
CONSTANT = ConstantAllocator()


class AllocVar:
    """Mixin giving a gadget type its three allocation entry points"""

    @classmethod
    def new_variable(cls, cs: Optional[ConstraintSystem], value, allocator: Allocator):
        raise NotImplementedError

    @classmethod
    def new_witness(cls, cs: ConstraintSystem, value):
        return cls.new_variable(cs, value, WITNESS)

    @classmethod
    def new_input(cls, cs: ConstraintSystem, value):
        return cls.new_variable(cs, value, PUBLIC_INPUT)

    @classmethod
    def new_constant(cls, cs: Optional[ConstraintSystem], value):
        return cls.new_variable(cs, value, CONSTANT)


def _first_cs(*gadgets) -> Optional[ConstraintSystem]:
    for gadget in gadgets:
        if gadget.cs is not None:
            return gadget.cs
    return None


# ============================================================================
# BOOLEAN
# ============================================================================


class Boolean(AllocVar):
    """A wire constrained to 0 or 1"""

    __slots__ = ('cs', 'lc', 'value')

    def __init__(self, cs: Optional[ConstraintSystem], lc: LinearCombination, value: bool):
        self.cs = cs
        self.lc = lc
        self.value = bool(value)

    @classmethod
    def constant(cls, value) -> 'Boolean':
        return cls(None, LinearCombination.constant(int(bool(value))), bool(value))

    @classmethod
    def new_variable(cls, cs, value, allocator: Allocator) -> 'Boolean':
        value = bool(value)
        if allocator.is_constant:
            return cls.constant(value)
        lc = allocator.allocate(cs, int(value))
        # b * (1 - b) = 0
        cs.enforce_constraint(lc, 1 - lc, LinearCombination())
        return cls(cs, lc, value)

    @property
    def is_constant(self) -> bool:
        return self.lc.is_constant()

    def not_(self) -> 'Boolean':
        return Boolean(self.cs, 1 - self.lc, not self.value)

    def and_(self, other: 'Boolean') -> 'Boolean':
        if self.is_constant:
            return other if self.value else FALSE
        if other.is_constant:
            return self if other.value else FALSE
        cs = _first_cs(self, other)
        value = self.value and other.value
        lc = cs.new_witness_variable(int(value))
        cs.enforce_constraint(self.lc, other.lc, lc)
        return Boolean(cs, lc, value)

    def or_(self, other: 'Boolean') -> 'Boolean':
        return self.not_().and_(other.not_()).not_()

    def xor(self, other: 'Boolean') -> 'Boolean':
        if self.is_constant:
            return other.not_() if self.value else other
        if other.is_constant:
            return self.not_() if other.value else self
        cs = _first_cs(self, other)
        value = self.value != other.value
        lc = cs.new_witness_variable(int(value))
        # 2a * b = a + b - (a xor b)
        cs.enforce_constraint(self.lc * 2, other.lc, self.lc + other.lc - lc)
        return Boolean(cs, lc, value)

    def enforce_equal(self, other: 'Boolean'):
        cs = _first_cs(self, other)
        if cs is None or (self.is_constant and other.is_constant):
            if self.value != other.value:
                raise SynthesisError("Constant booleans are not equal")
            return
        cs.enforce_constraint(self.lc - other.lc, LinearCombination.constant(1), LinearCombination())

    def enforce_true(self):
        self.enforce_equal(TRUE)

    @staticmethod
    def kary_and(bits: Sequence['Boolean']) -> 'Boolean':
        if not bits:
            return TRUE
        return reduce(lambda acc, bit: acc.and_(bit), bits[1:], bits[0])

    @staticmethod
    def le_bits_to_fp(bits: Sequence['Boolean']) -> 'FpVar':
        """Pack little-endian bits into one field element (no range check)"""
        if len(bits) > FIELD_BITS:
            raise SynthesisError(f"Cannot pack {len(bits)} bits into a field element")
        lc = LinearCombination.combine((1 << i, bit.lc) for i, bit in enumerate(bits))
        value = sum(int(bit.value) << i for i, bit in enumerate(bits))
        return FpVar(_first_cs(*bits), lc, value)

    def __repr__(self) -> str:
        kind = "constant" if self.is_constant else "variable"
        return f"Boolean({self.value}, {kind})"


TRUE = Boolean.constant(True)
FALSE = Boolean.constant(False)


def enforce_bits_at_most(bits: Sequence[Boolean], bound: int):
    """Enforce that little-endian ``bits`` encode an integer ``<= bound``.

    Walks the bound from the most significant bit: every run of ones is
    folded into a "prefix still equal" flag, and wherever the bound has a
    zero the bit may only be set once the prefix has already dropped below.
    """
    if bound >> len(bits):
        return
    cs = _first_cs(*bits)
    if cs is None:
        return
    last_run: Optional[Boolean] = None
    current_run: List[Boolean] = []
    for position in reversed(range(len(bits))):
        bit = bits[position]
        if (bound >> position) & 1:
            current_run.append(bit)
            continue
        if current_run:
            if last_run is not None:
                current_run.append(last_run)
            last_run = Boolean.kary_and(current_run)
            current_run = []
        if last_run is None:
            bit.enforce_equal(FALSE)
        else:
            cs.enforce_constraint(last_run.lc, bit.lc, LinearCombination())


def bits_less_than(bits: Sequence[Boolean], bound: int) -> Boolean:
    """Boolean that is true iff little-endian ``bits`` encode an integer ``< bound``"""
    if bound >> len(bits):
        return TRUE
    less = FALSE
    equal = TRUE
    for position in reversed(range(len(bits))):
        bit = bits[position]
        if (bound >> position) & 1:
            less = less.or_(equal.and_(bit.not_()))
            equal = equal.and_(bit)
        else:
            equal = equal.and_(bit.not_())
    return less


# ============================================================================
# FIELD ELEMENT
# ============================================================================


class FpVar(AllocVar):
    """A wire carrying an element of the constraint field"""

    __slots__ = ('cs', 'lc', 'value')

    def __init__(self, cs: Optional[ConstraintSystem], lc: LinearCombination, value: int):
        self.cs = cs
        self.lc = lc
        self.value = value % FIELD_MODULUS

    @classmethod
    def constant(cls, value: int) -> 'FpVar':
        return cls(None, LinearCombination.constant(value), value)

    @classmethod
    def new_variable(cls, cs, value: int, allocator: Allocator) -> 'FpVar':
        value %= FIELD_MODULUS
        if allocator.is_constant:
            return cls.constant(value)
        return cls(cs, allocator.allocate(cs, value), value)

    @property
    def is_constant(self) -> bool:
        return self.lc.is_constant()

    @staticmethod
    def _coerce(other: Union['FpVar', int]) -> 'FpVar':
        if isinstance(other, FpVar):
            return other
        if isinstance(other, int):
            return FpVar.constant(other)
        raise TypeError(f"Cannot combine FpVar with {type(other).__name__}")

    def __add__(self, other) -> 'FpVar':
        other = self._coerce(other)
        return FpVar(self.cs or other.cs, self.lc + other.lc, self.value + other.value)

    __radd__ = __add__

    def __sub__(self, other) -> 'FpVar':
        other = self._coerce(other)
        return FpVar(self.cs or other.cs, self.lc - other.lc, self.value - other.value)

    def __rsub__(self, other) -> 'FpVar':
        return self._coerce(other) - self

    def __neg__(self) -> 'FpVar':
        return FpVar(self.cs, -self.lc, -self.value)

    def __mul__(self, other) -> 'FpVar':
        other = self._coerce(other)
        cs = self.cs or other.cs
        value = self.value * other.value % FIELD_MODULUS
        if self.is_constant:
            return FpVar(cs, other.lc * self.value, value)
        if other.is_constant:
            return FpVar(cs, self.lc * other.value, value)
        lc = cs.new_witness_variable(value)
        cs.enforce_constraint(self.lc, other.lc, lc)
        return FpVar(cs, lc, value)

    __rmul__ = __mul__

    def square(self) -> 'FpVar':
        return self * self

    def div(self, other) -> 'FpVar':
        """``self / other``; a zero divisor yields an unsatisfiable witness"""
        other = self._coerce(other)
        if other.is_constant:
            if other.value == 0:
                raise SynthesisError("Division by constant zero")
            return self * pow(other.value, -1, FIELD_MODULUS)
        cs = self.cs or other.cs
        inverse = pow(other.value, -1, FIELD_MODULUS) if other.value else 0
        value = self.value * inverse % FIELD_MODULUS
        lc = cs.new_witness_variable(value)
        cs.enforce_constraint(lc, other.lc, self.lc)
        return FpVar(cs, lc, value)

    def is_zero(self) -> Boolean:
        if self.is_constant:
            return Boolean.constant(self.value == 0)
        cs = self.cs
        is_zero = self.value == 0
        inverse = 0 if is_zero else pow(self.value, -1, FIELD_MODULUS)
        flag = cs.new_witness_variable(int(is_zero))
        inverse_lc = cs.new_witness_variable(inverse)
        cs.enforce_constraint(self.lc, inverse_lc, 1 - flag)
        cs.enforce_constraint(self.lc, flag, LinearCombination())
        return Boolean(cs, flag, is_zero)

    def is_eq(self, other) -> Boolean:
        return (self - self._coerce(other)).is_zero()

    def enforce_equal(self, other):
        difference = self - self._coerce(other)
        if difference.is_constant:
            if difference.value != 0:
                raise SynthesisError("Constant field elements are not equal")
            return
        difference.cs.enforce_constraint(difference.lc, LinearCombination.constant(1), LinearCombination())

    @staticmethod
    def conditionally_select(condition: Boolean, true_value, false_value) -> 'FpVar':
        true_value = FpVar._coerce(true_value)
        false_value = FpVar._coerce(false_value)
        if condition.is_constant:
            return true_value if condition.value else false_value
        cs = _first_cs(condition, true_value, false_value)
        value = true_value.value if condition.value else false_value.value
        if true_value.is_constant and false_value.is_constant:
            delta = (true_value.value - false_value.value) % FIELD_MODULUS
            return FpVar(cs, condition.lc * delta + false_value.value, value)
        lc = cs.new_witness_variable(value)
        # c * (t - f) = out - f
        cs.enforce_constraint(condition.lc, true_value.lc - false_value.lc, lc - false_value.lc)
        return FpVar(cs, lc, value)

    def to_bits_le(self) -> List[Boolean]:
        """Canonical little-endian decomposition (value < modulus enforced)"""
        if self.is_constant:
            return [Boolean.constant((self.value >> i) & 1) for i in range(FIELD_BITS)]
        bits = [Boolean.new_witness(self.cs, (self.value >> i) & 1) for i in range(FIELD_BITS)]
        enforce_bits_at_most(bits, FIELD_MODULUS - 1)
        self.enforce_equal(Boolean.le_bits_to_fp(bits))
        return bits

    def to_bytes_le(self) -> List['UInt8']:
        bits = self.to_bits_le() + [FALSE] * (FIELD_BYTES * 8 - FIELD_BITS)
        return [UInt8(bits[i:i + 8]) for i in range(0, len(bits), 8)]

    def __repr__(self) -> str:
        kind = "constant" if self.is_constant else "variable"
        return f"FpVar({self.value:#x}, {kind})"


# ============================================================================
# UNSIGNED INTEGERS
# ============================================================================


class UInt(AllocVar):
    """Fixed-width unsigned integer as little-endian Booleans"""

    WIDTH = 0
    __slots__ = ('bits',)

    def __init__(self, bits: Sequence[Boolean]):
        if len(bits) != self.WIDTH:
            raise SynthesisError(f"{type(self).__name__} needs {self.WIDTH} bits, got {len(bits)}")
        self.bits = list(bits)

    @property
    def value(self) -> int:
        return sum(int(bit.value) << i for i, bit in enumerate(self.bits))

    @property
    def cs(self) -> Optional[ConstraintSystem]:
        return _first_cs(*self.bits)

    @property
    def is_constant(self) -> bool:
        return all(bit.is_constant for bit in self.bits)

    @classmethod
    def constant(cls, value: int):
        return cls([Boolean.constant((value >> i) & 1) for i in range(cls.WIDTH)])

    @classmethod
    def new_variable(cls, cs, value: int, allocator: Allocator):
        if not 0 <= value < (1 << cls.WIDTH):
            raise ValueError(f"{value} does not fit in {cls.WIDTH} bits")
        return cls([Boolean.new_variable(cs, (value >> i) & 1, allocator) for i in range(cls.WIDTH)])

    @classmethod
    def from_bits_le(cls, bits: Sequence[Boolean]):
        return cls(bits)

    def to_bits_le(self) -> List[Boolean]:
        return list(self.bits)

    def to_fp(self) -> FpVar:
        return Boolean.le_bits_to_fp(self.bits)

    def to_bytes_le(self) -> List['UInt8']:
        return [UInt8(self.bits[i:i + 8]) for i in range(0, self.WIDTH, 8)]

    def xor(self, other: 'UInt'):
        return type(self)([a.xor(b) for a, b in zip(self.bits, other.bits)])

    def rotr(self, by: int):
        by %= self.WIDTH
        return type(self)(self.bits[by:] + self.bits[:by])

    def enforce_equal(self, other: 'UInt'):
        for a, b in zip(self.bits, other.bits):
            a.enforce_equal(b)

    def is_eq(self, other: 'UInt') -> Boolean:
        return bits_is_eq(self.bits, other.bits)

    @classmethod
    def addmany(cls, operands: Sequence['UInt']):
        """Sum modulo ``2**WIDTH`` via one field-level sum and a bit decomposition"""
        if not operands:
            raise SynthesisError("addmany needs at least one operand")
        total = sum(op.value for op in operands)
        if all(op.is_constant for op in operands):
            return cls.constant(total % (1 << cls.WIDTH))
        cs = _first_cs(*(bit for op in operands for bit in op.bits))
        max_bits = (len(operands) * ((1 << cls.WIDTH) - 1)).bit_length()
        if max_bits > FIELD_CAPACITY:
            raise SynthesisError(f"Too many operands for a {cls.WIDTH}-bit addmany")
        operand_sum = LinearCombination.combine(
            (1 << i, bit.lc) for op in operands for i, bit in enumerate(op.bits))
        result_bits = [Boolean.new_witness(cs, (total >> i) & 1) for i in range(max_bits)]
        packed = LinearCombination.combine((1 << i, bit.lc) for i, bit in enumerate(result_bits))
        cs.enforce_constraint(packed - operand_sum, LinearCombination.constant(1), LinearCombination())
        return cls(result_bits[:cls.WIDTH])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value:#x})"


class UInt8(UInt):
    WIDTH = 8

    @classmethod
    def new_witness_vec(cls, cs: ConstraintSystem, data: bytes) -> List['UInt8']:
        return [cls.new_witness(cs, byte) for byte in data]

    @classmethod
    def new_input_vec(cls, cs: ConstraintSystem, data: bytes) -> List['UInt8']:
        return [cls.new_input(cs, byte) for byte in data]

    @classmethod
    def constant_vec(cls, data: bytes) -> List['UInt8']:
        return [cls.constant(byte) for byte in data]


class UInt32(UInt):
    WIDTH = 32


class UInt64(UInt):
    WIDTH = 64


def uint8_values(data: Sequence[UInt8]) -> bytes:
    return bytes(byte.value for byte in data)


def bits_is_eq(left: Sequence[Boolean], right: Sequence[Boolean]) -> Boolean:
    """Equality of two bit vectors, packed into field-sized chunks"""
    if len(left) != len(right):
        raise SynthesisError(f"Cannot compare {len(left)} bits against {len(right)} bits")
    chunk = FIELD_CAPACITY - FIELD_CAPACITY % 8
    flags = []
    for start in range(0, len(left), chunk):
        a = Boolean.le_bits_to_fp(left[start:start + chunk])
        b = Boolean.le_bits_to_fp(right[start:start + chunk])
        flags.append(a.is_eq(b))
    return Boolean.kary_and(flags)


def uint8_slices_is_eq(left: Sequence[UInt8], right: Sequence[UInt8]) -> Boolean:
    return bits_is_eq([bit for byte in left for bit in byte.bits],
                      [bit for byte in right for bit in byte.bits])
