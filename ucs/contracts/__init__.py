"""
ucs.contracts — the forwarding protocol: Dictionary, Proxy, minimal clones.
"""

from __future__ import annotations

from .clone import (CLONE_SIZE, CloneFactory, clone_target,
                    create_minimal_proxy, minimal_clone_code)
from .dictionary import Dictionary
from .proxy import ForwardingStrategy, Proxy, dictionary_slot

__all__ = [
    "Dictionary",
    "Proxy",
    "ForwardingStrategy",
    "dictionary_slot",
    "CloneFactory",
    "CLONE_SIZE",
    "minimal_clone_code",
    "clone_target",
    "create_minimal_proxy",
]
