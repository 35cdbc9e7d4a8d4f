"""
Field Helpers
Canonical encodings, inversion, square roots and sampling for the JubJub
base field and scalar field
"""

from typing import Optional

import galois
import numpy as np

from zk.constraint_system import FIELD_BYTES, FIELD_MODULUS, ZKError


class SerializationError(ZKError):
    """Malformed or non-canonical encoding"""
    pass


def inverse(value: int, modulus: int = FIELD_MODULUS) -> int:
    """Modular inverse; zero maps to zero"""
    value %= modulus
    return pow(value, -1, modulus) if value else 0


def to_bytes_le(value: int, length: int = FIELD_BYTES) -> bytes:
    return value.to_bytes(length, 'little')


def from_bytes_le(data: bytes, modulus: int = FIELD_MODULUS, length: int = FIELD_BYTES) -> int:
    """Decode a canonical little-endian element of ``Z_modulus``"""
    if len(data) != length:
        raise SerializationError(f"Expected {length} bytes, got {len(data)}")
    value = int.from_bytes(data, 'little')
    if value >= modulus:
        raise SerializationError("Encoded value is not reduced")
    return value


def random_element(rng, modulus: int = FIELD_MODULUS, nonzero: bool = False) -> int:
    """Uniform element using any rng exposing ``randrange``"""
    return rng.randrange(1 if nonzero else 0, modulus)


# 7 generates the multiplicative group of the BLS12-381 scalar field
GF = galois.GF(FIELD_MODULUS, primitive_element=7, verify=False)


def is_square(value: int) -> bool:
    return bool(GF(value % FIELD_MODULUS).is_square())


def sqrt(value: int) -> Optional[int]:
    """Square root in the base field, ``None`` for non-residues"""
    element = GF(value % FIELD_MODULUS)
    if not element.is_square():
        return None
    return int(np.sqrt(np.atleast_1d(element))[0])
