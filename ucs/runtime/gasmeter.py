"""
ucs.runtime.gasmeter — deterministic gas metering with OOG semantics.

- Gas is charged *before* executing an operation.
- If the meter would exceed its limit, OutOfGas is raised and the meter is
  left untouched.
- Nested frames receive their own meter; `forwardable()` applies the
  all-but-one-64th rule so a caller always keeps some gas to handle a failed
  nested call.
"""
from __future__ import annotations

from ..errors import OutOfGas


class GasMeter:
    """
    Typical usage:
        gm = GasMeter(limit=200_000)
        gm.consume(3)
        child = GasMeter(limit=gm.forwardable(requested))
        ...
        gm.consume(child.used)

    `used` is monotonically non-decreasing; `remaining` never goes below zero.
    """

    __slots__ = ("_limit", "_used")

    def __init__(self, *, limit: int) -> None:
        self._limit = self._require_int_ge(limit, 0, "limit")
        self._used = 0

    # -------------------------- properties -------------------------- #

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return self._limit - self._used

    # --------------------------- actions ---------------------------- #

    def consume(self, amount: int) -> None:
        """Charge `amount` gas; raise OutOfGas if this would exceed the limit."""
        amt = self._require_int_ge(amount, 0, "consume amount")
        new_used = self._used + amt
        if new_used > self._limit:
            raise OutOfGas(need=amt, remaining=self.remaining)
        self._used = new_used

    def exhaust(self) -> None:
        """Burn everything left (failed frame that ran out of gas)."""
        self._used = self._limit

    def forwardable(self, requested: int | None = None) -> int:
        """Gas a nested call may receive: min(requested, remaining - remaining // 64)."""
        cap = self.remaining - self.remaining // 64
        if requested is None:
            return cap
        return min(self._require_int_ge(requested, 0, "requested gas"), cap)

    # --------------------------- helpers ---------------------------- #

    @staticmethod
    def _require_int_ge(v: int, lb: int, name: str) -> int:
        if isinstance(v, bool) or not isinstance(v, int):
            raise TypeError(f"{name} must be int, got {type(v).__name__}")
        if v < lb:
            raise ValueError(f"{name} must be >= {lb}, got {v}")
        return v

    def __repr__(self) -> str:  # pragma: no cover
        return f"GasMeter(limit={self._limit}, used={self._used})"


__all__ = ["GasMeter"]
