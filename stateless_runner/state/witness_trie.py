#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING

from dataclasses import dataclass

from eth.db.account import AccountDB
from eth.db.atomic import AtomicDB

from .recorder import NodeStore

if TYPE_CHECKING:
    from eth_typing import Hash32
    from .recorder import WitnessSet

@dataclass(frozen=True)
class WitnessTrie:
    state_root: Hash32
    store: NodeStore
    db: AtomicDB

    def account_db(self) -> AccountDB:
        return AccountDB(self.db, self.state_root)

    def __len__(self) -> int:
        return len(self.store)

def build_witness_trie(state_root: Hash32, witness: WitnessSet) -> WitnessTrie:
    '''
    A standalone trie holding only the witness nodes, rooted at the pre-state root.
    '''
    store = NodeStore()
    store.batch_write(witness.sorted_items())
    return WitnessTrie(state_root=state_root, store=store, db=AtomicDB(store))
