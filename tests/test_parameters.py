"""
Parameter and Hash Tests
Pedersen hashing natively and in-circuit, parameter persistence and account leaves
"""
import random

import pytest

from config import AccumulatorConfig
from ledger import AccountInformation, Amount, Parameters, ParametersVar
from ledger.transaction import ACCOUNT_LEAF_BYTES
from primitives.field import SerializationError
from primitives.pedersen import PedersenCRH, PedersenCRHGadget
from zk.constraint_system import ConstraintSystem, SetupFailure, SynthesisError
from zk.gadgets import FpVar, UInt8


class TestPedersen:

    def test_gadget_matches_native(self, params):
        data = bytes(range(40))
        cs = ConstraintSystem()
        digest = PedersenCRHGadget.evaluate(params.leaf_crh_params, UInt8.new_witness_vec(cs, data))
        assert digest.value == PedersenCRH.evaluate(params.leaf_crh_params, data)
        assert cs.is_satisfied()

    def test_compress_gadget_matches_native(self, hash_family):
        cs = ConstraintSystem()
        left, right = 12345, 67890
        digest = hash_family.gadget().compress(FpVar.new_witness(cs, left), FpVar.new_witness(cs, right))
        assert digest.value == hash_family.compress(left, right)
        assert cs.is_satisfied()

    def test_compress_is_ordered(self, hash_family):
        assert hash_family.compress(1, 2) != hash_family.compress(2, 1)

    def test_input_too_long(self, params):
        with pytest.raises(ValueError):
            PedersenCRH.evaluate(params.leaf_crh_params, bytes(params.leaf_crh_params.max_input_bytes + 1))


class TestParameters:

    def test_bytes_roundtrip(self, params):
        restored = Parameters.from_bytes(params.to_bytes())
        assert restored.sig_params == params.sig_params
        assert restored.hash_family().hash(b"leaf") == params.hash_family().hash(b"leaf")

    def test_save_and_load(self, params, tmp_path):
        path = tmp_path / "ledger.params"
        params.save(path)
        assert Parameters.load(path).to_bytes() == params.to_bytes()

    def test_bad_header(self, params):
        with pytest.raises(SerializationError):
            Parameters.from_bytes(b"XXXX" + params.to_bytes()[4:])

    def test_truncated(self, params):
        with pytest.raises(SerializationError):
            Parameters.from_bytes(params.to_bytes()[:-1])

    def test_setup_is_deterministic_for_seed(self):
        config = AccumulatorConfig(num_windows=144)
        first = Parameters.setup(random.Random(1), config)
        second = Parameters.setup(random.Random(1), config)
        assert first.to_bytes() == second.to_bytes()

    def test_leaf_size_must_match_account_leaf(self):
        with pytest.raises(SetupFailure):
            Parameters.setup(random.Random(1), AccumulatorConfig(leaf_size=64))

    def test_parameters_var_only_constant(self, params):
        with pytest.raises(SynthesisError):
            ParametersVar.new_witness(ConstraintSystem(), params)


class TestAccountInformation:

    def test_leaf_roundtrip(self, ledger):
        account = ledger['accounts'][0]
        leaf = account.to_leaf()
        assert len(leaf) == ACCOUNT_LEAF_BYTES
        assert AccountInformation.from_leaf(leaf) == account

    def test_leaf_length_checked(self, ledger):
        with pytest.raises(SerializationError):
            AccountInformation.from_leaf(ledger['accounts'][0].to_leaf()[:-1])

    def test_balance_changes_leaf(self, ledger):
        account = ledger['accounts'][1]
        richer = AccountInformation(account.public_key, Amount(account.balance.value + 1))
        assert richer.to_leaf() != account.to_leaf()
