"""
Constraint System Unit Tests
Linear combinations, satisfaction checking, namespaces and shape digests
"""
import pytest

from zk.constraint_system import (
    FIELD_MODULUS,
    ONE,
    ConstraintSystem,
    ConstraintSynthesizer,
    ConstraintViolation,
    LinearCombination,
)


class TestLinearCombination:

    def test_cancellation_drops_terms(self):
        lc = LinearCombination.variable(-1) + LinearCombination.variable(2)
        assert (lc - LinearCombination.variable(-1)).terms == {2: 1}

    def test_coefficients_reduced(self):
        lc = LinearCombination.variable(-1) * (FIELD_MODULUS + 3)
        assert lc.terms == {-1: 3}

    def test_constant_detection(self):
        assert LinearCombination.constant(5).is_constant()
        assert LinearCombination.zero().is_constant()
        assert not LinearCombination.variable(-1).is_constant()
        assert LinearCombination.constant(5).constant_value() == 5

    def test_int_on_either_side(self):
        lc = 1 - LinearCombination.variable(-1)
        assert lc.terms == {ONE: 1, -1: FIELD_MODULUS - 1}

    def test_combine_matches_repeated_addition(self):
        a, b = LinearCombination.variable(-1), LinearCombination.variable(-2)
        combined = LinearCombination.combine([(2, a), (3, b), (5, a)])
        assert combined.canonical() == (a * 7 + b * 3).canonical()


class TestConstraintSystem:

    def test_variable_indices_deterministic(self):
        cs = ConstraintSystem()
        x = cs.new_input_variable(3)
        w = cs.new_witness_variable(4)
        assert x.terms == {1: 1}
        assert w.terms == {-1: 1}
        assert cs.num_instance_variables == 2
        assert cs.num_witness_variables == 1

    def test_satisfied_product(self):
        cs = ConstraintSystem()
        x = cs.new_input_variable(3)
        y = cs.new_witness_variable(4)
        z = cs.new_witness_variable(12)
        cs.enforce_constraint(x, y, z)
        assert cs.is_satisfied()
        assert cs.public_inputs() == [3]

    def test_unsatisfied_reports_namespace(self):
        cs = ConstraintSystem()
        x = cs.new_witness_variable(3)
        with cs.namespace("outer"):
            with cs.namespace("inner"):
                cs.enforce_constraint(x, x, LinearCombination.constant(10))
        assert not cs.is_satisfied()
        assert cs.which_is_unsatisfied() == "outer/inner#0"
        with pytest.raises(ConstraintViolation) as excinfo:
            cs.assert_satisfied()
        assert excinfo.value.constraint == "outer/inner#0"

    def test_namespace_restored_after_exception(self):
        cs = ConstraintSystem()
        with pytest.raises(RuntimeError):
            with cs.namespace("broken"):
                raise RuntimeError("boom")
        cs.enforce_constraint(0, 0, 0)
        assert cs.constraints[0].label == ""


class _Square(ConstraintSynthesizer):

    def __init__(self, x):
        self.x = x

    def generate_constraints(self, cs):
        x = cs.new_input_variable(self.x)
        y = cs.new_witness_variable(self.x * self.x)
        cs.enforce_constraint(x, x, y)


class TestShape:

    def test_shape_independent_of_witness(self):
        assert _Square(3).synthesize().shape().digest() == _Square(11).synthesize().shape().digest()

    def test_shape_first_unsatisfied(self):
        shape = _Square(3).synthesize().shape()
        assert shape.first_unsatisfied([1, 3], [9]) is None
        assert shape.first_unsatisfied([1, 3], [10]) == 0

    def test_shape_rejects_wrong_assignment_size(self):
        shape = _Square(3).synthesize().shape()
        with pytest.raises(ConstraintViolation):
            shape.first_unsatisfied([1], [9])
