"""Shared fixtures for the ledger validity test suite."""

import random

import pytest

from config import AccumulatorConfig
from ledger import (
    AccountInformation,
    Amount,
    MerkleTree,
    Parameters,
    Transfer,
    ValidityCircuit,
)
from primitives import Schnorr

TREE_DEPTH = 3


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture(scope="session")
def params():
    """Ledger parameters are expensive to sample; share one set per session."""
    return Parameters.setup(random.Random(42), AccumulatorConfig(tree_depth=TREE_DEPTH))


@pytest.fixture(scope="session")
def hash_family(params):
    return params.hash_family()


@pytest.fixture(scope="session")
def ledger(params):
    """Four funded accounts in a depth-3 tree, plus their secret keys."""
    rng = random.Random(7)
    keys = [Schnorr.keygen(params.sig_params, rng) for _ in range(4)]
    balances = [100, 50, 0, (1 << 64) - 1]
    accounts = [AccountInformation(pk, Amount(balance)) for (pk, _), balance in zip(keys, balances)]
    tree = MerkleTree(params.hash_family(), [account.to_leaf() for account in accounts], depth=TREE_DEPTH)
    return {
        'accounts': accounts,
        'secret_keys': [sk for _, sk in keys],
        'tree': tree,
    }


def make_validity_circuit(params, ledger, sender=0, recipient=1, amount=30, rng=None,
                          sign_message=None, root=None):
    """Build a signed transfer instance from the session ledger."""
    rng = rng or random.Random(99)
    accounts = ledger['accounts']
    tree = ledger['tree']
    transfer = Transfer(accounts[recipient].public_key, Amount(amount))
    message = sign_message if sign_message is not None else transfer.to_message()
    signature = Schnorr.sign(params.sig_params, ledger['secret_keys'][sender],
                             accounts[sender].public_key, message, rng)
    return ValidityCircuit(
        params=params,
        root=tree.root if root is None else root,
        account=accounts[sender],
        path=tree.generate_proof(sender),
        transfer=transfer,
        signature=signature,
        recipient_balance=accounts[recipient].balance,
    )


@pytest.fixture
def build_validity_circuit(params, ledger):
    def build(**kwargs):
        return make_validity_circuit(params, ledger, **kwargs)
    return build
