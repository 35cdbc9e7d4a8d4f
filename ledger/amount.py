"""
Amounts
Unsigned 64-bit balances with overflow-checked arithmetic, natively and
in-circuit
"""

from dataclasses import dataclass
from typing import List, Optional

from primitives.field import SerializationError
from zk.gadgets import FALSE, AllocVar, Allocator, UInt8, UInt64

AMOUNT_BITS = 64
AMOUNT_BYTES = AMOUNT_BITS // 8
MAX_AMOUNT = (1 << AMOUNT_BITS) - 1


@dataclass(frozen=True, order=True)
class Amount:
    value: int

    def __post_init__(self):
        if not 0 <= self.value <= MAX_AMOUNT:
            raise ValueError(f"Amount {self.value} does not fit in {AMOUNT_BITS} bits")

    def checked_add(self, other: 'Amount') -> Optional['Amount']:
        total = self.value + other.value
        return Amount(total) if total <= MAX_AMOUNT else None

    def checked_sub(self, other: 'Amount') -> Optional['Amount']:
        difference = self.value - other.value
        return Amount(difference) if difference >= 0 else None

    def to_bytes(self) -> bytes:
        return self.value.to_bytes(AMOUNT_BYTES, 'little')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Amount':
        if len(data) != AMOUNT_BYTES:
            raise SerializationError(f"Expected {AMOUNT_BYTES} amount bytes, got {len(data)}")
        return cls(int.from_bytes(data, 'little'))


class AmountVar(AllocVar):
    """In-circuit amount; checked operations are total and fail only by unsatisfiability"""

    def __init__(self, inner: UInt64):
        self.inner = inner

    @classmethod
    def new_variable(cls, cs, amount, allocator: Allocator) -> 'AmountVar':
        value = amount.value if isinstance(amount, Amount) else amount
        return cls(UInt64.new_variable(cs, value, allocator))

    @property
    def value(self) -> int:
        return self.inner.value

    def to_bytes_le(self) -> List[UInt8]:
        return self.inner.to_bytes_le()

    def checked_add(self, other: 'AmountVar') -> 'AmountVar':
        total = self.inner.to_fp() + other.inner.to_fp()
        total_bytes = total.to_bytes_le()
        # Any carry out of 64 bits lands in byte 8
        total_bytes[AMOUNT_BYTES].enforce_equal(UInt8.constant(0))
        return AmountVar(UInt64.addmany([self.inner, other.inner]))

    def checked_sub(self, other: 'AmountVar') -> 'AmountVar':
        difference = self.inner.to_fp() - other.inner.to_fp()
        bits = difference.to_bits_le()
        padded = bits + [FALSE] * (256 - len(bits))
        # A negative difference wraps to near the modulus, setting the top byte
        UInt8(padded[248:256]).enforce_equal(UInt8.constant(0))
        return AmountVar(UInt64(bits[:AMOUNT_BITS]))
