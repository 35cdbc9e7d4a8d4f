"""
Zero-Knowledge Constraint Module
R1CS construction, gadget library and proof backends
"""

from .constraint_system import (
    # Core classes
    ConstraintSystem,
    ConstraintSynthesizer,
    CircuitShape,
    LinearCombination,
    FIELD_MODULUS,

    # Exceptions
    ZKError,
    SynthesisError,
    ConstraintViolation,
    SetupFailure,
)
from .gadgets import Boolean, FpVar, UInt8, UInt32, UInt64, WITNESS, PUBLIC_INPUT, CONSTANT
from .backend import (
    ProofBackend,
    ReferenceBackend,
    BACKENDS,
    get_backend,
    ProvingKey,
    VerifyingKey,
    ProofArtifact,
    prove_batch,
)

__version__ = "1.0.0"

__all__ = [
    # Constraint system
    'ConstraintSystem',
    'ConstraintSynthesizer',
    'CircuitShape',
    'LinearCombination',
    'FIELD_MODULUS',

    # Gadgets
    'Boolean',
    'FpVar',
    'UInt8',
    'UInt32',
    'UInt64',
    'WITNESS',
    'PUBLIC_INPUT',
    'CONSTANT',

    # Backends
    'ProofBackend',
    'ReferenceBackend',
    'BACKENDS',
    'get_backend',
    'ProvingKey',
    'VerifyingKey',
    'ProofArtifact',
    'prove_batch',

    # Exceptions
    'ZKError',
    'SynthesisError',
    'ConstraintViolation',
    'SetupFailure',
]
