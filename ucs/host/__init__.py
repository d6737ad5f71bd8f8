"""
ucs.host — in-process reference engine (state, journal, interpreter, frames).
"""

from __future__ import annotations

from .engine import DEFAULT_DEPLOYER, CallKind, CallResult, Frame, Host, Message
from .interpreter import Interpreter, InvalidCode
from .journal import Journal
from .state import Account, Log, Program, WorldState

__all__ = [
    "Host",
    "Frame",
    "CallResult",
    "CallKind",
    "Message",
    "DEFAULT_DEPLOYER",
    "Interpreter",
    "InvalidCode",
    "Journal",
    "Account",
    "Log",
    "Program",
    "WorldState",
]
