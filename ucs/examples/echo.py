"""
Echo: returns its calldata verbatim, and reverts with it when the first byte
is 0xff. Used to compare a clone against its target byte for byte.
"""

from __future__ import annotations

from ..errors import Revert
from ..runtime.dispatch import Call, Contract

REVERT_MARKER = 0xFF


class Echo(Contract):
    def fallback(self, call: Call) -> bytes:
        data = call.calldata
        if data[:1] == bytes([REVERT_MARKER]):
            raise Revert("echo: revert requested", return_data=data)
        return data
