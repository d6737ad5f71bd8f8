"""
ucs.runtime — what contract code runs against: dispatch, capability,
execution context, gas metering, checked arithmetic and state machines.
"""

from __future__ import annotations

from . import checked
from .context import ExecutionContext
from .dispatch import (Call, Contract, Entry, Handler, StorageCapability,
                       dispatch, external)
from .fsm import StateMachine
from .gasmeter import GasMeter

__all__ = [
    "checked",
    "ExecutionContext",
    "GasMeter",
    "StorageCapability",
    "Entry",
    "Handler",
    "dispatch",
    "external",
    "Call",
    "Contract",
    "StateMachine",
]
