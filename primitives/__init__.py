"""
Cryptographic Primitives
JubJub arithmetic, Pedersen and BLAKE2s hashing and Schnorr signatures,
each with a native implementation and an R1CS gadget
"""

from .field import SerializationError
from .jubjub import AffinePoint, AffineVar, SCALAR_FIELD_MODULUS
from .pedersen import (
    HashFamily,
    HashFamilyGadget,
    PedersenCRH,
    PedersenCRHGadget,
    PedersenHashFamily,
    PedersenParameters,
)
from .blake2s import Blake2sCommitment, Blake2sGadget
from .schnorr import (
    Schnorr,
    SchnorrParameters,
    SchnorrParametersVar,
    SchnorrSignatureVerifyGadget,
    SecretKey,
    Signature,
    SignatureVar,
    SigningFailure,
)

__all__ = [
    # Curve
    'AffinePoint',
    'AffineVar',
    'SCALAR_FIELD_MODULUS',

    # Hashing
    'HashFamily',
    'HashFamilyGadget',
    'PedersenCRH',
    'PedersenCRHGadget',
    'PedersenHashFamily',
    'PedersenParameters',
    'Blake2sCommitment',
    'Blake2sGadget',

    # Signatures
    'Schnorr',
    'SchnorrParameters',
    'SchnorrParametersVar',
    'SchnorrSignatureVerifyGadget',
    'SecretKey',
    'Signature',
    'SignatureVar',

    # Exceptions
    'SerializationError',
    'SigningFailure',
]
