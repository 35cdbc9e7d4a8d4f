#!/usr/bin/env python3
"""
Integrated Private Ledger Validity System
=========================================
Combines the Merkle accumulator, Schnorr authorization and checked balance
arithmetic into proved transaction validity.

Flow per transfer:
1. The sender's account leaf is looked up in the current ledger snapshot
2. The transfer message is signed with the sender's key
3. The validity instance is checked natively, then proved
4. The proof is verified against the published ledger root
"""

import asyncio
import logging
import random
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import SystemConfig
from ledger import (
    AccountInformation,
    Amount,
    MerkleTree,
    Parameters,
    Transfer,
    ValidityCircuit,
)
from primitives import Schnorr, SecretKey
from primitives.jubjub import AffinePoint
from zk import ProofArtifact, ZKError, get_backend, prove_batch

logger = logging.getLogger(__name__)

# ============================================================================
# INTEGRATED LEDGER SYSTEM
# ============================================================================


@dataclass
class AccountIdentity:
    """Registered account with its signing credentials"""
    name: str
    index: int
    public_key: AffinePoint
    secret_key: SecretKey = field(repr=False)
    balance: Amount
    registration_time: float = field(default_factory=time.time)

    @property
    def information(self) -> AccountInformation:
        return AccountInformation(self.public_key, self.balance)


@dataclass
class VerifiedTransfer:
    """Receipt for a proved and verified transfer"""
    sender: str
    recipient: str
    amount: int
    root: int
    artifact: ProofArtifact
    verified: bool
    processing_time: float


class IntegratedLedgerSystem:
    """
    Ledger validity pipeline:
    1. Parameters: one-time Pedersen and Schnorr parameter generation
    2. Accumulator: Merkle snapshot over account leaves
    3. Proofs: validity circuit proved and verified through a backend
    """

    def __init__(self, config: Optional[SystemConfig] = None, rng=None):
        self.config = config or SystemConfig()
        if rng is None:
            rng = (random.Random(self.config.seed) if self.config.seed is not None
                   else secrets.SystemRandom())
        self.rng = rng

        self.backend = get_backend(self.config.circuit.backend)
        self.params: Optional[Parameters] = None
        self.proving_key = None
        self.verifying_key = None

        self.accounts: Dict[str, AccountIdentity] = {}
        self.tree: Optional[MerkleTree] = None
        self.transfers: List[VerifiedTransfer] = []
        self._initialized = False
        self._lock = asyncio.Lock()

        logger.info("Integrated Ledger System created")

    @property
    def depth(self) -> int:
        return self.config.accumulator.tree_depth

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def initialize(self):
        """Generate parameters and circuit keys"""
        async with self._lock:
            if self._initialized:
                return

            logger.info("Generating ledger parameters...")
            self.params = await self._run_blocking(Parameters.setup, self.rng, self.config.accumulator)

            logger.info("Generating circuit keys from a blank instance...")
            blank = ValidityCircuit.blank(self.params, self.depth)
            self.proving_key, self.verifying_key = await self._run_blocking(
                self.backend.setup, blank, self.rng)

            self._initialized = True
            logger.info(f"System initialization complete "
                        f"({self.verifying_key.shape.num_constraints} constraints)")

    async def register_account(self, name: str, balance: int) -> AccountIdentity:
        if not self._initialized:
            await self.initialize()
        if name in self.accounts:
            raise ValueError(f"Account {name} already registered")
        if len(self.accounts) >= self.capacity:
            raise ValueError(f"Ledger is full ({self.capacity} accounts)")

        public_key, secret_key = Schnorr.keygen(self.params.sig_params, self.rng)
        account = AccountIdentity(
            name=name,
            index=len(self.accounts),
            public_key=public_key,
            secret_key=secret_key,
            balance=Amount(balance),
        )
        self.accounts[name] = account
        self.tree = None
        logger.info(f"Registered account {name} at index {account.index} with balance {balance}")
        return account

    def snapshot(self) -> MerkleTree:
        """Merkle tree over the current account leaves"""
        if self.tree is None:
            leaves = [account.information.to_leaf()
                      for account in sorted(self.accounts.values(), key=lambda a: a.index)]
            self.tree = MerkleTree(self.params.hash_family(), leaves, depth=self.depth,
                                   workers=self.config.accumulator.parallel_workers)
            logger.info(f"Ledger snapshot root: {self.tree.root:#x}")
        return self.tree

    def build_transfer(self, sender: str, recipient: str, amount: int) -> ValidityCircuit:
        """Sign a transfer and assemble its validity instance against the current snapshot"""
        sender_account = self.accounts[sender]
        recipient_account = self.accounts[recipient]
        tree = self.snapshot()

        transfer = Transfer(recipient_account.public_key, Amount(amount))
        signature = transfer.sign(self.params.sig_params, sender_account.secret_key,
                                  sender_account.public_key, self.rng,
                                  self.config.signature.max_signing_attempts)
        return ValidityCircuit(
            params=self.params,
            root=tree.root,
            account=sender_account.information,
            path=tree.generate_proof(sender_account.index),
            transfer=transfer,
            signature=signature,
            recipient_balance=recipient_account.balance,
        )

    async def process_transfer(self, sender: str, recipient: str, amount: int) -> VerifiedTransfer:
        """
        Complete transfer workflow:
        1. Build and sign the validity instance
        2. Check it natively
        3. Prove it
        4. Verify the proof against the snapshot root
        5. Apply the balance change and invalidate the snapshot
        """
        if not self._initialized:
            await self.initialize()
        for name in (sender, recipient):
            if name not in self.accounts:
                raise ValueError(f"Account {name} not registered")
        if sender == recipient:
            raise ValueError("Sender and recipient must differ")

        logger.info(f"Processing transfer {sender} -> {recipient} ({amount})")
        start_time = time.time()

        circuit = self.build_transfer(sender, recipient, amount)
        if self.config.circuit.check_native_before_proving:
            report = circuit.check_native(self.depth)
            if not report.is_valid:
                raise ValueError(f"Transfer rejected before proving: {report}")

        artifact = await self._run_blocking(
            self.backend.prove_artifact, self.proving_key, self.verifying_key, circuit, self.rng)
        verified = await self.verify(artifact, circuit.root)
        if not verified:
            raise ZKError("Freshly generated proof failed verification")

        self.accounts[sender].balance = self.accounts[sender].balance.checked_sub(Amount(amount))
        self.accounts[recipient].balance = self.accounts[recipient].balance.checked_add(Amount(amount))
        self.tree = None

        receipt = VerifiedTransfer(
            sender=sender,
            recipient=recipient,
            amount=amount,
            root=circuit.root,
            artifact=artifact,
            verified=verified,
            processing_time=time.time() - start_time,
        )
        self.transfers.append(receipt)
        logger.info(f"Transfer verified in {receipt.processing_time:.2f}s "
                    f"(proof {artifact.size_bytes} bytes)")
        return receipt

    async def prove_many(self, transfers: List[tuple]) -> List[ProofArtifact]:
        """Prove several transfers against one snapshot concurrently"""
        if not self._initialized:
            await self.initialize()
        circuits = [self.build_transfer(*transfer) for transfer in transfers]
        seed = self.rng.getrandbits(64)
        return await self._run_blocking(
            prove_batch, self.backend, self.proving_key, self.verifying_key, circuits,
            lambda i: _instance_rng(seed, i), self.config.circuit.batch_workers)

    async def verify(self, artifact: ProofArtifact, root: int) -> bool:
        if artifact.verification_key_hash != self.verifying_key.key_hash():
            logger.warning("Proof was generated for a different verifying key")
            return False
        return await self._run_blocking(self.backend.verify, self.verifying_key, artifact.proof, [root])

    def get_system_metrics(self) -> Dict[str, Any]:
        return {
            'accounts': len(self.accounts),
            'capacity': self.capacity,
            'transfers': len(self.transfers),
            'constraints': self.verifying_key.shape.num_constraints if self.verifying_key else 0,
            'shape_digest': self.verifying_key.shape_digest if self.verifying_key else None,
            'balances': {name: account.balance.value for name, account in self.accounts.items()},
        }


def _instance_rng(seed: int, index: int) -> random.Random:
    return random.Random(seed * 1_000_003 + index)


# ============================================================================
# DEMONSTRATION
# ============================================================================


async def demonstrate_integrated_system(config: Optional[SystemConfig] = None) -> Dict[str, Any]:
    config = config or SystemConfig()
    system = IntegratedLedgerSystem(config)
    await system.initialize()

    for name, balance in [("alice", 100), ("bob", 50), ("carol", 0)]:
        await system.register_account(name, balance)

    await system.process_transfer("alice", "bob", 30)
    await system.process_transfer("bob", "carol", 60)

    metrics = system.get_system_metrics()
    logger.info(f"Final balances: {metrics['balances']}")
    return metrics


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(demonstrate_integrated_system())
