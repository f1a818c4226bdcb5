#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

from eth.db.backends.base import BaseDB
from eth.db.backends.memory import MemoryDB

from ..exceptions import HarnessError

if TYPE_CHECKING:
    from types import TracebackType

class NodeStore(MemoryDB):
    '''
    Content-addressed node store backing one trie. Keys are node hashes (or code hashes),
    values the encoded node (or code).
    '''
    def __iter__(self) -> Iterator[bytes]:
        return iter(self.kv_store)

    def __len__(self) -> int:
        return len(self.kv_store)

    def batch_write(self, items: Iterable[tuple[bytes, bytes]]) -> None:
        self.kv_store.update(items)

class WitnessSet(Mapping[bytes, bytes]):
    '''
    The pre-existing nodes one execution read, keyed by node hash. Immutable.
    '''
    def __init__(self, nodes: Mapping[bytes, bytes] | None = None) -> None:
        self._nodes: dict[bytes, bytes] = dict(nodes) if nodes is not None else {}

    def __getitem__(self, key: bytes) -> bytes:
        return self._nodes[key]

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return 'WitnessSet({0} nodes, {1} bytes)'.format(len(self), self.size)

    @property
    def size(self) -> int:
        return sum(len(value) for value in self._nodes.values())

    def sorted_items(self) -> list[tuple[bytes, bytes]]:
        return sorted(self._nodes.items())

    def nodes(self) -> list[bytes]:
        return [value for _, value in self.sorted_items()]

class WitnessRecorder(BaseDB):
    '''
    Sits in front of a node store for the duration of one execution and records every
    read of a node that was already in the store when recording started.

        with WitnessRecorder(store) as recorder:
            engine.execute(AtomicDB(recorder), ...)
        witness = recorder.witness

    Nodes written during the execution are never recorded, even when read back later.
    Writes and deletes reach the store unchanged. Once the block exits, reads pass
    through without being recorded.
    '''
    def __init__(self, wrapped_db: NodeStore) -> None:
        self.wrapped_db = wrapped_db
        self._existing_keys: frozenset[bytes] = frozenset()
        self._accessed: dict[bytes, bytes] = {}
        self._recording = False
        self._witness: WitnessSet | None = None

    def __enter__(self) -> WitnessRecorder:
        if self._recording or self._witness is not None:
            raise HarnessError('A witness recorder records exactly one execution')
        self._existing_keys = frozenset(self.wrapped_db)
        self._accessed = {}
        self._recording = True
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> None:
        self._recording = False
        self._witness = WitnessSet(self._accessed)
        self._accessed = {}

    @property
    def existing_keys(self) -> frozenset[bytes]:
        return self._existing_keys

    @property
    def witness(self) -> WitnessSet:
        if self._witness is None:
            raise HarnessError('The witness is only available once recording has finished')
        return self._witness

    def _record(self, key: bytes, value: bytes) -> None:
        if self._recording and key in self._existing_keys:
            self._accessed[key] = value

    def __getitem__(self, key: bytes) -> bytes:
        value = self.wrapped_db[key]
        self._record(key, value)
        return value

    def __setitem__(self, key: bytes, value: bytes) -> None:
        self.wrapped_db[key] = value

    def __delitem__(self, key: bytes) -> None:
        del self.wrapped_db[key]

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.wrapped_db)

    def __len__(self) -> int:
        return len(self.wrapped_db)

    def _exists(self, key: bytes) -> bool:
        if key not in self.wrapped_db:
            return False
        # a membership test decides execution just like a read does
        self._record(key, self.wrapped_db[key])
        return True
