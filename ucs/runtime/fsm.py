"""
Runtime-checked finite state machines.

A machine is a tagged enumeration plus an explicit allowed-transition table.
`StateMachine.transition(current, target)` validates the edge at every
mutation and raises InvalidTransition otherwise; states are stored as their
integer tag so they fit one storage word.

    class Phase(IntEnum):
        INIT = 0
        FUNDED = 1
        RELEASED = 2

    PHASES = StateMachine(Phase, {Phase.INIT: {Phase.FUNDED}, Phase.FUNDED: {Phase.RELEASED}})
    PHASES.transition(Phase.INIT, Phase.FUNDED)   # -> Phase.FUNDED
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, FrozenSet, Generic, Iterable, Mapping, Type, TypeVar

from ..errors import InvalidTransition

__all__ = ["StateMachine"]

S = TypeVar("S", bound=IntEnum)


class StateMachine(Generic[S]):
    def __init__(self, states: Type[S], transitions: Mapping[S, Iterable[S]]) -> None:
        self._states = states
        table: Dict[S, FrozenSet[S]] = {}
        for src, dsts in transitions.items():
            src = states(src)
            table[src] = frozenset(states(d) for d in dsts)
        self._table = table

    @property
    def states(self) -> Type[S]:
        return self._states

    def coerce(self, tag: int) -> S:
        try:
            return self._states(tag)
        except ValueError as e:
            raise InvalidTransition(f"unknown state tag {tag}", src=tag) from e

    def allowed(self, src: S) -> FrozenSet[S]:
        return self._table.get(self._states(src), frozenset())

    def can(self, src: S, dst: S) -> bool:
        return self._states(dst) in self.allowed(src)

    def is_terminal(self, state: S) -> bool:
        return not self.allowed(state)

    def transition(self, src: int, dst: int) -> S:
        s, d = self.coerce(src), self.coerce(dst)
        if d not in self.allowed(s):
            raise InvalidTransition(src=s.name, dst=d.name)
        return d
