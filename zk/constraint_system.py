"""
Rank-1 Constraint System
Deterministic R1CS over the BLS12-381 scalar field with namespaced
constraints, satisfaction checking and witness-independent shape digests
"""

import hashlib
import logging
import struct
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# ============================================================================
# FIELD CONSTANTS
# ============================================================================

# BLS12-381 scalar field, which is also the JubJub base field
FIELD_MODULUS = 0x73eda753299d7d483339d80809a1d80553bda402fffe5bfeffffffff00000001
FIELD_BITS = FIELD_MODULUS.bit_length()
FIELD_BYTES = 32
# Widest bit vector that packs into a field element without wrapping
FIELD_CAPACITY = FIELD_BITS - 1

# Instance index of the constant-one variable
ONE = 0


# ============================================================================
# EXCEPTIONS
# ============================================================================


class ZKError(Exception):
    """Base exception for ZK operations"""
    pass


class SynthesisError(ZKError):
    """Structural misuse while synthesizing a circuit"""
    pass


class ConstraintViolation(ZKError):
    """A constraint system instance is not satisfied"""

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


class SetupFailure(ZKError):
    """Parameter or key generation failed"""
    pass


# ============================================================================
# LINEAR COMBINATIONS
# ============================================================================


class LinearCombination:
    """Sparse map from variable index to a non-zero field coefficient.

    Instance variables use indices ``>= 0`` (``0`` is the constant one),
    witness ``k`` uses index ``-(k + 1)``.
    """

    __slots__ = ('terms',)

    def __init__(self, terms: Optional[Dict[int, int]] = None):
        self.terms: Dict[int, int] = terms if terms is not None else {}

    @classmethod
    def zero(cls) -> 'LinearCombination':
        return cls({})

    @classmethod
    def constant(cls, value: int) -> 'LinearCombination':
        value %= FIELD_MODULUS
        return cls({ONE: value} if value else {})

    @classmethod
    def variable(cls, index: int) -> 'LinearCombination':
        return cls({index: 1})

    @classmethod
    def combine(cls, pairs: Iterable[Tuple[int, 'LinearCombination']]) -> 'LinearCombination':
        """Sum of ``coeff * lc`` over ``pairs`` built in a single pass"""
        terms: Dict[int, int] = {}
        for coeff, lc in pairs:
            for idx, c in lc.terms.items():
                terms[idx] = (terms.get(idx, 0) + coeff * c) % FIELD_MODULUS
        return cls({idx: c for idx, c in terms.items() if c})

    def is_constant(self) -> bool:
        return all(idx == ONE for idx in self.terms)

    def constant_value(self) -> int:
        return self.terms.get(ONE, 0)

    def canonical(self) -> Tuple[Tuple[int, int], ...]:
        return tuple(sorted(self.terms.items()))

    def __add__(self, other) -> 'LinearCombination':
        other = as_lc(other)
        terms = dict(self.terms)
        for idx, coeff in other.terms.items():
            c = (terms.get(idx, 0) + coeff) % FIELD_MODULUS
            if c:
                terms[idx] = c
            else:
                terms.pop(idx, None)
        return LinearCombination(terms)

    __radd__ = __add__

    def __neg__(self) -> 'LinearCombination':
        return LinearCombination({idx: FIELD_MODULUS - c for idx, c in self.terms.items()})

    def __sub__(self, other) -> 'LinearCombination':
        return self + (-as_lc(other))

    def __rsub__(self, other) -> 'LinearCombination':
        return as_lc(other) - self

    def __mul__(self, scalar: int) -> 'LinearCombination':
        if not isinstance(scalar, int):
            return NotImplemented
        scalar %= FIELD_MODULUS
        if not scalar:
            return LinearCombination()
        return LinearCombination({idx: c * scalar % FIELD_MODULUS for idx, c in self.terms.items()})

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"LinearCombination({self.canonical()})"


def as_lc(value: Union[LinearCombination, int]) -> LinearCombination:
    if isinstance(value, LinearCombination):
        return value
    if isinstance(value, int):
        return LinearCombination.constant(value)
    raise TypeError(f"Cannot use {type(value).__name__} as a linear combination")


def _evaluate(terms: Iterable[Tuple[int, int]], instance: List[int], witness: List[int]) -> int:
    total = 0
    for idx, coeff in terms:
        total += coeff * (instance[idx] if idx >= 0 else witness[-idx - 1])
    return total % FIELD_MODULUS


# ============================================================================
# CONSTRAINT SYSTEM
# ============================================================================


@dataclass
class Constraint:
    """A single ``a * b = c`` row"""
    a: LinearCombination
    b: LinearCombination
    c: LinearCombination
    label: str

    def is_satisfied_by(self, instance: List[int], witness: List[int]) -> bool:
        a = _evaluate(self.a.terms.items(), instance, witness)
        b = _evaluate(self.b.terms.items(), instance, witness)
        return a * b % FIELD_MODULUS == _evaluate(self.c.terms.items(), instance, witness)


Row = Tuple[Tuple[Tuple[int, int], ...], Tuple[Tuple[int, int], ...], Tuple[Tuple[int, int], ...]]


@dataclass(frozen=True)
class CircuitShape:
    """Witness-independent structure of a synthesized circuit"""
    num_instance_variables: int
    num_witness_variables: int
    constraints: Tuple[Row, ...]

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_public_inputs(self) -> int:
        return self.num_instance_variables - 1

    def digest(self) -> str:
        """BLAKE2b digest over the variable counts and the A/B/C matrices"""
        hasher = hashlib.blake2b(digest_size=32)
        hasher.update(struct.pack('<QQQ', self.num_instance_variables,
                                  self.num_witness_variables, len(self.constraints)))
        for row in self.constraints:
            for terms in row:
                hasher.update(struct.pack('<I', len(terms)))
                for idx, coeff in terms:
                    hasher.update(struct.pack('<q', idx))
                    hasher.update(coeff.to_bytes(FIELD_BYTES, 'little'))
        return hasher.hexdigest()

    def first_unsatisfied(self, instance: List[int], witness: List[int]) -> Optional[int]:
        """Index of the first unsatisfied row, or ``None``"""
        if len(instance) != self.num_instance_variables or len(witness) != self.num_witness_variables:
            raise ConstraintViolation(
                f"Assignment size ({len(instance)}, {len(witness)}) does not match shape "
                f"({self.num_instance_variables}, {self.num_witness_variables})")
        for position, (a, b, c) in enumerate(self.constraints):
            if _evaluate(a, instance, witness) * _evaluate(b, instance, witness) % FIELD_MODULUS \
                    != _evaluate(c, instance, witness):
                return position
        return None


class ConstraintSystem:
    """Mutable R1CS builder holding both the matrices and the assignment"""

    def __init__(self):
        self.instance_assignment: List[int] = [1]
        self.witness_assignment: List[int] = []
        self.constraints: List[Constraint] = []
        self._namespace: List[str] = []
        self._label = ""

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_instance_variables(self) -> int:
        return len(self.instance_assignment)

    @property
    def num_witness_variables(self) -> int:
        return len(self.witness_assignment)

    def new_input_variable(self, value: int) -> LinearCombination:
        self.instance_assignment.append(value % FIELD_MODULUS)
        return LinearCombination.variable(len(self.instance_assignment) - 1)

    def new_witness_variable(self, value: int) -> LinearCombination:
        self.witness_assignment.append(value % FIELD_MODULUS)
        return LinearCombination.variable(-len(self.witness_assignment))

    def enforce_constraint(self, a, b, c, label: Optional[str] = None):
        self.constraints.append(Constraint(as_lc(a), as_lc(b), as_lc(c), label or self._label))

    @contextmanager
    def namespace(self, name: str):
        """Label every constraint created inside the block with ``name``"""
        self._namespace.append(name)
        self._label = "/".join(self._namespace)
        try:
            yield self
        finally:
            self._namespace.pop()
            self._label = "/".join(self._namespace)

    def evaluate(self, lc: LinearCombination) -> int:
        return _evaluate(lc.terms.items(), self.instance_assignment, self.witness_assignment)

    def which_is_unsatisfied(self) -> Optional[str]:
        """Label of the first unsatisfied constraint, or ``None``"""
        for position, constraint in enumerate(self.constraints):
            if not constraint.is_satisfied_by(self.instance_assignment, self.witness_assignment):
                return f"{constraint.label or '<root>'}#{position}"
        return None

    def is_satisfied(self) -> bool:
        return self.which_is_unsatisfied() is None

    def assert_satisfied(self):
        failing = self.which_is_unsatisfied()
        if failing is not None:
            raise ConstraintViolation(f"Unsatisfied constraint: {failing}", constraint=failing)

    def public_inputs(self) -> List[int]:
        return list(self.instance_assignment[1:])

    def shape(self) -> CircuitShape:
        return CircuitShape(
            num_instance_variables=self.num_instance_variables,
            num_witness_variables=self.num_witness_variables,
            constraints=tuple(
                (c.a.canonical(), c.b.canonical(), c.c.canonical()) for c in self.constraints
            ),
        )

    def summary(self) -> Dict[str, int]:
        return {
            'constraints': self.num_constraints,
            'public_inputs': self.num_instance_variables - 1,
            'witnesses': self.num_witness_variables,
        }


class ConstraintSynthesizer(ABC):
    """A circuit that can lay out its constraints into a ConstraintSystem"""

    @abstractmethod
    def generate_constraints(self, cs: ConstraintSystem) -> None:
        ...

    def synthesize(self) -> ConstraintSystem:
        cs = ConstraintSystem()
        self.generate_constraints(cs)
        logger.debug(f"Synthesized {type(self).__name__}: {cs.summary()}")
        return cs
