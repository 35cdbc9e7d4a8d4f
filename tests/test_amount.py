"""
Checked Amount Tests
64-bit overflow and underflow detection natively and in-circuit
"""
import pytest

from ledger import Amount, AmountVar
from ledger.amount import MAX_AMOUNT
from primitives.field import SerializationError
from zk.constraint_system import ConstraintSystem


def _pair(a, b):
    cs = ConstraintSystem()
    return cs, AmountVar.new_witness(cs, Amount(a)), AmountVar.new_witness(cs, b)


class TestNativeAmount:

    def test_range(self):
        with pytest.raises(ValueError):
            Amount(MAX_AMOUNT + 1)
        with pytest.raises(ValueError):
            Amount(-1)

    def test_checked_add(self):
        assert Amount(5).checked_add(Amount(7)) == Amount(12)
        assert Amount(MAX_AMOUNT).checked_add(Amount(0)) == Amount(MAX_AMOUNT)
        assert Amount(MAX_AMOUNT).checked_add(Amount(1)) is None

    def test_checked_sub(self):
        assert Amount(10).checked_sub(Amount(3)) == Amount(7)
        assert Amount(3).checked_sub(Amount(3)) == Amount(0)
        assert Amount(3).checked_sub(Amount(10)) is None

    def test_ordering(self):
        assert Amount(3) < Amount(10)

    def test_bytes_roundtrip(self):
        amount = Amount(0x0102030405060708)
        assert amount.to_bytes() == bytes([8, 7, 6, 5, 4, 3, 2, 1])
        assert Amount.from_bytes(amount.to_bytes()) == amount
        with pytest.raises(SerializationError):
            Amount.from_bytes(b"\x00" * 7)


class TestAmountGadget:

    def test_add_within_range(self):
        cs, a, b = _pair(5, 7)
        assert a.checked_add(b).value == 12
        assert cs.is_satisfied()

    def test_add_at_maximum(self):
        cs, a, b = _pair(MAX_AMOUNT - 1, 1)
        assert a.checked_add(b).value == MAX_AMOUNT
        assert cs.is_satisfied()

    def test_add_overflow_unsatisfiable(self):
        cs, a, b = _pair(MAX_AMOUNT, 1)
        a.checked_add(b)
        assert not cs.is_satisfied()

    def test_sub_within_range(self):
        cs, a, b = _pair(10, 3)
        assert a.checked_sub(b).value == 7
        assert cs.is_satisfied()

    def test_sub_to_zero(self):
        cs, a, b = _pair(MAX_AMOUNT, MAX_AMOUNT)
        assert a.checked_sub(b).value == 0
        assert cs.is_satisfied()

    def test_sub_underflow_unsatisfiable(self):
        cs, a, b = _pair(3, 10)
        a.checked_sub(b)
        assert not cs.is_satisfied()

    def test_bytes_match_native(self):
        cs = ConstraintSystem()
        var = AmountVar.new_input(cs, 0xABCDEF)
        assert bytes(byte.value for byte in var.to_bytes_le()) == Amount(0xABCDEF).to_bytes()
