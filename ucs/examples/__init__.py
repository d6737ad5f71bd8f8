"""
Example implementation modules used by the tests: they sit behind proxies
and clones exactly like production implementations would.
"""

from __future__ import annotations

from .counter import Counter
from .echo import Echo
from .escrow import Escrow, Phase
from .token import Token

__all__ = ["Counter", "Echo", "Escrow", "Phase", "Token"]
