from __future__ import annotations

import pytest
from eth.db.account import AccountDB
from eth.db.atomic import AtomicDB
from eth_utils.address import to_canonical_address

from stateless_runner.exceptions import HarnessError
from stateless_runner.state.recorder import NodeStore, WitnessRecorder, WitnessSet

A = b"\x0a" * 32
B = b"\x0b" * 32
C = b"\x0c" * 32


@pytest.fixture
def store() -> NodeStore:
    store = NodeStore()
    store.batch_write([(A, b"node-a"), (B, b"node-b")])
    return store


class TestNodeStore:
    def test_iterates_keys(self, store):
        assert set(store) == {A, B}
        assert len(store) == 2

    def test_batch_write_overwrites(self, store):
        store.batch_write([(A, b"other"), (C, b"node-c")])
        assert store[A] == b"other"
        assert len(store) == 3


class TestWitnessRecorder:
    def test_records_reads_of_existing_nodes(self, store):
        with WitnessRecorder(store) as recorder:
            assert recorder[A] == b"node-a"
        assert dict(recorder.witness) == {A: b"node-a"}

    def test_unread_nodes_are_not_recorded(self, store):
        with WitnessRecorder(store) as recorder:
            recorder[B]
        assert A not in recorder.witness

    def test_nodes_written_during_recording_are_not_recorded(self, store):
        with WitnessRecorder(store) as recorder:
            recorder[C] = b"node-c"
            assert recorder[C] == b"node-c"
        assert store[C] == b"node-c"
        assert len(recorder.witness) == 0

    def test_deletes_reach_the_store(self, store):
        with WitnessRecorder(store) as recorder:
            del recorder[B]
        assert B not in store
        assert len(recorder.witness) == 0

    def test_membership_test_is_recorded(self, store):
        with WitnessRecorder(store) as recorder:
            assert A in recorder
            assert C not in recorder
        assert set(recorder.witness) == {A}

    def test_reads_after_exit_are_not_recorded(self, store):
        recorder = WitnessRecorder(store)
        with recorder:
            pass
        assert recorder[A] == b"node-a"
        assert len(recorder.witness) == 0

    def test_reads_before_enter_are_not_recorded(self, store):
        recorder = WitnessRecorder(store)
        recorder[A]
        with recorder:
            recorder[B]
        assert set(recorder.witness) == {B}

    def test_missing_node_raises(self, store):
        with WitnessRecorder(store) as recorder:
            with pytest.raises(KeyError):
                recorder[C]
        assert len(recorder.witness) == 0

    def test_witness_survives_exception(self, store):
        recorder = WitnessRecorder(store)
        with pytest.raises(RuntimeError):
            with recorder:
                recorder[A]
                raise RuntimeError("engine blew up")
        assert set(recorder.witness) == {A}

    def test_snapshot_taken_on_enter(self, store):
        recorder = WitnessRecorder(store)
        store[C] = b"node-c"
        with recorder:
            recorder[C]
        assert recorder.existing_keys == frozenset({A, B, C})
        assert set(recorder.witness) == {C}

    def test_witness_before_exit(self, store):
        recorder = WitnessRecorder(store)
        with pytest.raises(HarnessError):
            recorder.witness
        with recorder:
            with pytest.raises(HarnessError):
                recorder.witness

    def test_records_only_once(self, store):
        recorder = WitnessRecorder(store)
        with recorder:
            with pytest.raises(HarnessError):
                with recorder:
                    pass
        with pytest.raises(HarnessError):
            with recorder:
                pass

    def test_account_lookup_through_atomic_db(self):
        store = NodeStore()
        address = to_canonical_address("0x1000000000000000000000000000000000000001")
        account_db = AccountDB(AtomicDB(store))
        account_db.set_balance(address, 7)
        account_db.persist()
        state_root = account_db.state_root

        with WitnessRecorder(store) as recorder:
            assert AccountDB(AtomicDB(recorder), state_root).get_balance(address) == 7
        assert state_root in recorder.witness
        assert set(recorder.witness) <= set(store)


class TestWitnessSet:
    def test_nodes_ordered_by_key(self):
        witness = WitnessSet({B: b"node-b", A: b"node-a", C: b"node-c"})
        assert witness.nodes() == [b"node-a", b"node-b", b"node-c"]
        assert [key for key, _ in witness.sorted_items()] == [A, B, C]

    def test_size(self):
        witness = WitnessSet({A: b"12", B: b"345"})
        assert witness.size == 5
        assert len(witness) == 2

    def test_empty(self):
        witness = WitnessSet()
        assert len(witness) == 0
        assert witness.nodes() == []

    def test_immutable(self):
        witness = WitnessSet({A: b"node-a"})
        with pytest.raises(TypeError):
            witness[B] = b"node-b"  # type: ignore[index]

    def test_copies_input(self):
        nodes = {A: b"node-a"}
        witness = WitnessSet(nodes)
        nodes[B] = b"node-b"
        assert B not in witness
