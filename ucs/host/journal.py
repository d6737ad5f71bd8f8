"""
ucs.host.journal — journaling writes, checkpoints, revert/commit.

A deterministic in-memory write journal layered over a WorldState. Nested
checkpoints are a stack of overlays: writes go to the top overlay, reads
consult overlays from top to base. `commit()` merges the top overlay into its
parent (or into the base state when it is the last one) and `revert()` drops
it. The engine opens one checkpoint per call frame, so a failing frame
discards exactly its own effects and those of its children.

    j = Journal(state)
    j.begin()
    j.storage_set(addr, slot, 7)
    j.commit()               # applied to state
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .state import Account, Log, WorldState

log = logging.getLogger(__name__)


@dataclass
class _Overlay:
    accounts: Dict[int, Account] = field(default_factory=dict)
    storage: Dict[int, Dict[int, int]] = field(default_factory=dict)
    logs: List[Log] = field(default_factory=list)


class Journal:
    """
    Copy-on-write journal with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert() / checkpoint()
    - get_account(), account_for_write(), create_account()
    - storage_get(), storage_set()
    - emit_log()
    """

    def __init__(self, state: WorldState) -> None:
        self._state = state
        self._layers: List[_Overlay] = []

    @property
    def state(self) -> WorldState:
        return self._state

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._merge(self._layers[-1], top)
        else:
            self._apply_to_base(top)
        log.debug("journal commit", extra={"journal_depth": len(self._layers)})

    def revert(self) -> None:
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()
        log.debug("journal revert", extra={"journal_depth": len(self._layers)})

    @contextmanager
    def checkpoint(self) -> Iterator["Journal"]:
        """Commit on normal exit, revert if an exception escapes."""
        self.begin()
        try:
            yield self
        except BaseException:
            self.revert()
            raise
        self.commit()

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #

    def get_account(self, addr: int) -> Optional[Account]:
        for layer in reversed(self._layers):
            acc = layer.accounts.get(addr)
            if acc is not None:
                return acc
        return self._state.get_account(addr)

    def account_for_write(self, addr: int) -> Account:
        """Copy the account into the top overlay (creating an empty one if absent)."""
        top = self._top()
        acc = top.accounts.get(addr)
        if acc is not None:
            return acc
        current = self.get_account(addr)
        acc = current.copy() if current is not None else Account()
        top.accounts[addr] = acc
        return acc

    def create_account(self, addr: int, *, balance: int = 0, code=b"") -> Account:
        existing = self.get_account(addr)
        if existing is not None and (existing.has_code or existing.nonce):
            raise RuntimeError(f"account collision at {addr:#042x}")
        acc = self.account_for_write(addr)
        acc.code = code
        acc.balance += int(balance)
        return acc

    # ------------------------------------------------------------------ #
    # Storage
    # ------------------------------------------------------------------ #

    def storage_get(self, addr: int, slot: int) -> int:
        for layer in reversed(self._layers):
            m = layer.storage.get(addr)
            if m is not None and slot in m:
                return m[slot]
        return self._state.storage_get(addr, slot)

    def storage_set(self, addr: int, slot: int, value: int) -> None:
        self._top().storage.setdefault(addr, {})[slot] = value

    # ------------------------------------------------------------------ #
    # Logs
    # ------------------------------------------------------------------ #

    def emit_log(self, entry: Log) -> None:
        self._top().logs.append(entry)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _top(self) -> _Overlay:
        if not self._layers:
            raise RuntimeError("journal write without an open checkpoint")
        return self._layers[-1]

    @staticmethod
    def _merge(parent: _Overlay, child: _Overlay) -> None:
        parent.accounts.update(child.accounts)
        for addr, m in child.storage.items():
            parent.storage.setdefault(addr, {}).update(m)
        parent.logs.extend(child.logs)

    def _apply_to_base(self, top: _Overlay) -> None:
        self._state.accounts.update(top.accounts)
        for addr, m in top.storage.items():
            for slot, value in m.items():
                self._state.storage_set(addr, slot, value)
        self._state.logs.extend(top.logs)


__all__ = ["Journal"]
