"""Account leaves and transfer messages."""

from dataclasses import dataclass

from primitives.field import SerializationError
from primitives.jubjub import POINT_BYTES, AffinePoint
from primitives.schnorr import Schnorr, SchnorrParameters, SecretKey, Signature

from .amount import AMOUNT_BYTES, Amount

ACCOUNT_LEAF_BYTES = POINT_BYTES + AMOUNT_BYTES
TRANSFER_MESSAGE_BYTES = POINT_BYTES + AMOUNT_BYTES


@dataclass(frozen=True)
class AccountInformation:
    """Leaf payload: ``public_key || balance``"""
    public_key: AffinePoint
    balance: Amount

    def to_leaf(self) -> bytes:
        return self.public_key.to_bytes() + self.balance.to_bytes()

    @classmethod
    def from_leaf(cls, data: bytes) -> 'AccountInformation':
        if len(data) != ACCOUNT_LEAF_BYTES:
            raise SerializationError(f"Expected {ACCOUNT_LEAF_BYTES} leaf bytes, got {len(data)}")
        return cls(AffinePoint.from_bytes(data[:POINT_BYTES]), Amount.from_bytes(data[POINT_BYTES:]))


@dataclass(frozen=True)
class Transfer:
    """Signed message: ``recipient public key || amount``"""
    recipient: AffinePoint
    amount: Amount

    def to_message(self) -> bytes:
        return self.recipient.to_bytes() + self.amount.to_bytes()

    def sign(self, params: SchnorrParameters, secret_key: SecretKey, public_key: AffinePoint,
             rng, max_attempts: int) -> Signature:
        return Schnorr.sign(params, secret_key, public_key, self.to_message(), rng, max_attempts)

    def verify(self, params: SchnorrParameters, public_key: AffinePoint, signature: Signature) -> bool:
        return Schnorr.verify(params, public_key, self.to_message(), signature)
