from __future__ import annotations

import pytest
from eth.db.atomic import AtomicDB
from eth_utils.address import to_canonical_address
from trie.exceptions import MissingTrieNode

from conftest import BYSTANDER, SENDER
from stateless_runner.fixtures import select_test_cases
from stateless_runner.state.loader import load_pre_state
from stateless_runner.state.recorder import NodeStore, WitnessSet
from stateless_runner.state.witness_trie import build_witness_trie


@pytest.fixture
def loaded(unsealed_vector):
    case = select_test_cases("Byzantium", unsealed_vector())[0]
    store = NodeStore()
    state_root = load_pre_state(AtomicDB(store), case.pre)
    return store, state_root


class TestBuildWitnessTrie:
    def test_full_witness_resolves_accounts(self, loaded):
        store, state_root = loaded
        trie = build_witness_trie(state_root, WitnessSet({key: store[key] for key in store}))
        account_db = trie.account_db()
        assert account_db.get_balance(to_canonical_address(SENDER)) == 10**18
        assert account_db.get_storage(to_canonical_address(BYSTANDER), 2) == 7
        assert len(trie) == len(store)

    def test_independent_of_source_store(self, loaded):
        store, state_root = loaded
        trie = build_witness_trie(state_root, WitnessSet({key: store[key] for key in store}))
        for key in list(store):
            del store[key]
        assert trie.account_db().get_nonce(to_canonical_address(BYSTANDER)) == 1

    def test_empty_witness(self, loaded):
        _, state_root = loaded
        trie = build_witness_trie(state_root, WitnessSet())
        assert len(trie) == 0
        assert trie.state_root == state_root
        with pytest.raises(MissingTrieNode):
            trie.account_db().get_balance(to_canonical_address(SENDER))
