"""
Transaction Validity Circuit
Composes membership, signature verification and checked balance arithmetic
into one constraint system with the ledger root as its only public input
"""

import logging
from dataclasses import dataclass
from typing import Optional

from primitives.jubjub import AffineVar
from primitives.schnorr import SchnorrSignatureVerifyGadget, Signature, SignatureVar
from zk.constraint_system import ConstraintSystem, ConstraintSynthesizer, SynthesisError
from zk.gadgets import FpVar, UInt8

from .accumulator import AuthenticationPath, AuthenticationPathVar, Right, verify_membership
from .amount import Amount, AmountVar
from .parameters import Parameters, ParametersVar
from .transaction import AccountInformation, Transfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidityReport:
    """Outcome of checking a transaction without constraints"""
    membership: bool
    signature: bool
    balances: bool

    @property
    def is_valid(self) -> bool:
        return self.membership and self.signature and self.balances


class ValidityCircuit(ConstraintSynthesizer):
    """A sender in the ledger authorizes a transfer it can afford.

    Public input: the ledger root. Everything else is witness. The shape
    depends only on the path depth, the leaf and message sizes and the curve.
    """

    def __init__(self, params: Parameters, root: int, account: AccountInformation,
                 path: AuthenticationPath, transfer: Transfer, signature: Signature,
                 recipient_balance: Amount):
        self.params = params
        self.root = root
        self.account = account
        self.path = path
        self.transfer = transfer
        self.signature = signature
        self.recipient_balance = recipient_balance

    @classmethod
    def blank(cls, params: Parameters, depth: int) -> 'ValidityCircuit':
        """Structurally identical placeholder used for key generation"""
        generator = params.sig_params.generator
        return cls(
            params=params,
            root=0,
            account=AccountInformation(generator, Amount(0)),
            path=AuthenticationPath(tuple(Right(0) for _ in range(depth))),
            transfer=Transfer(generator, Amount(0)),
            signature=Signature(0, 0),
            recipient_balance=Amount(0),
        )

    @property
    def depth(self) -> int:
        return self.path.depth

    def check_native(self, expected_depth: Optional[int] = None) -> ValidityReport:
        membership = verify_membership(self.params.hash_family(), self.root, self.account.to_leaf(),
                                       self.path, expected_depth)
        signature = self.transfer.verify(self.params.sig_params, self.account.public_key, self.signature)
        balances = (self.account.balance.checked_sub(self.transfer.amount) is not None
                    and self.recipient_balance.checked_add(self.transfer.amount) is not None)
        report = ValidityReport(membership=membership, signature=signature, balances=balances)
        if not report.is_valid:
            logger.warning(f"Transaction failed native validation: {report}")
        return report

    def generate_constraints(self, cs: ConstraintSystem) -> None:
        if self.depth < 1:
            raise SynthesisError("Authentication path must have at least one level")

        with cs.namespace("parameters"):
            params = ParametersVar.new_constant(cs, self.params)

        with cs.namespace("root"):
            root = FpVar.new_input(cs, self.root)

        with cs.namespace("account"):
            public_key = AffineVar.new_witness(cs, self.account.public_key)
            balance = AmountVar.new_witness(cs, self.account.balance)
            public_key_bytes = public_key.to_bytes_le()
            leaf = public_key_bytes + balance.to_bytes_le()

        with cs.namespace("path"):
            path = AuthenticationPathVar.new_witness(cs, self.path)

        with cs.namespace("transfer"):
            recipient = UInt8.new_witness_vec(cs, self.transfer.recipient.to_bytes())
            amount = AmountVar.new_witness(cs, self.transfer.amount)
            recipient_balance = AmountVar.new_witness(cs, self.recipient_balance)
            message = recipient + amount.to_bytes_le()

        with cs.namespace("signature"):
            signature = SignatureVar.new_witness(cs, self.signature)

        with cs.namespace("membership"):
            path.enforce_membership(params.hash_gadget, root, leaf)

        with cs.namespace("authorization"):
            SchnorrSignatureVerifyGadget.verify(
                params.sig_params, public_key, message, signature,
                public_key_bytes=public_key_bytes,
            ).enforce_true()

        with cs.namespace("balances"):
            balance.checked_sub(amount)
            recipient_balance.checked_add(amount)

        logger.debug(f"Validity circuit synthesized: {cs.summary()}")
