"""
Ledger Circuits
Parameters, the Merkle accumulator, checked amounts and the transaction
validity circuit
"""

from .parameters import Parameters, ParametersVar, validate_group_parameters
from .accumulator import (
    AuthenticationPath,
    AuthenticationPathVar,
    Left,
    MembershipCircuit,
    MerkleTree,
    Right,
    verify_membership,
)
from .amount import Amount, AmountVar
from .transaction import AccountInformation, Transfer
from .circuit import ValidityCircuit, ValidityReport

__all__ = [
    # Parameters
    'Parameters',
    'ParametersVar',
    'validate_group_parameters',

    # Accumulator
    'AuthenticationPath',
    'AuthenticationPathVar',
    'Left',
    'Right',
    'MembershipCircuit',
    'MerkleTree',
    'verify_membership',

    # Transactions
    'Amount',
    'AmountVar',
    'AccountInformation',
    'Transfer',
    'ValidityCircuit',
    'ValidityReport',
]
