from __future__ import annotations

from enum import IntEnum

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ucs.errors import (ArithmeticOverflow, ArithmeticUnderflow,
                        InvalidTransition, OutOfGas)
from ucs.runtime import checked
from ucs.runtime.fsm import StateMachine
from ucs.runtime.gasmeter import GasMeter

U256_MAX = (1 << 256) - 1
U256 = st.integers(min_value=0, max_value=U256_MAX)


# ---------------------------------------------------------------------------
# checked arithmetic
# ---------------------------------------------------------------------------


def test_add_overflow() -> None:
    assert checked.add(1, 2) == 3
    with pytest.raises(ArithmeticOverflow):
        checked.add(U256_MAX, 1)
    with pytest.raises(ArithmeticOverflow):
        checked.add(255, 1, bits=8)


def test_sub_underflow() -> None:
    assert checked.sub(5, 5) == 0
    with pytest.raises(ArithmeticUnderflow):
        checked.sub(0, 1)


def test_mul_and_div() -> None:
    assert checked.mul(1 << 128, (1 << 128) - 1) == (1 << 256) - (1 << 128)
    with pytest.raises(ArithmeticOverflow):
        checked.mul(1 << 128, 1 << 128)
    assert checked.div(7, 2) == 3
    with pytest.raises(ArithmeticOverflow):
        checked.div(1, 0)


def test_operands_are_validated() -> None:
    with pytest.raises(ArithmeticUnderflow):
        checked.add(-1, 1)
    with pytest.raises(TypeError):
        checked.add(True, 1)
    with pytest.raises(ValueError):
        checked.uint_max(7)


@given(U256, U256)
def test_add_is_exact_or_fails(a: int, b: int) -> None:
    if a + b > U256_MAX:
        with pytest.raises(ArithmeticOverflow):
            checked.add(a, b)
    else:
        assert checked.add(a, b) == a + b


# ---------------------------------------------------------------------------
# state machines
# ---------------------------------------------------------------------------


class Light(IntEnum):
    RED = 0
    GREEN = 1
    AMBER = 2
    OFF = 3


LIGHTS = StateMachine(
    Light,
    {
        Light.RED: {Light.GREEN, Light.OFF},
        Light.GREEN: {Light.AMBER},
        Light.AMBER: {Light.RED},
    },
)


def test_allowed_transitions() -> None:
    assert LIGHTS.transition(Light.RED, Light.GREEN) is Light.GREEN
    assert LIGHTS.transition(1, 2) is Light.AMBER
    assert LIGHTS.can(Light.AMBER, Light.RED)
    assert not LIGHTS.can(Light.AMBER, Light.GREEN)


def test_forbidden_transition_fails() -> None:
    with pytest.raises(InvalidTransition) as ei:
        LIGHTS.transition(Light.GREEN, Light.RED)
    assert ei.value.data == {"from": "GREEN", "to": "RED"}


def test_unknown_tag_fails() -> None:
    with pytest.raises(InvalidTransition):
        LIGHTS.transition(9, 0)


def test_terminal_states() -> None:
    assert LIGHTS.is_terminal(Light.OFF)
    assert not LIGHTS.is_terminal(Light.RED)


# ---------------------------------------------------------------------------
# gas meter
# ---------------------------------------------------------------------------


def test_consume_is_all_or_nothing() -> None:
    gm = GasMeter(limit=100)
    gm.consume(60)
    with pytest.raises(OutOfGas):
        gm.consume(41)
    assert gm.used == 60
    assert gm.remaining == 40


def test_forwardable_keeps_one_64th() -> None:
    gm = GasMeter(limit=6_400)
    assert gm.forwardable() == 6_300
    assert gm.forwardable(1_000) == 1_000
    assert gm.forwardable(10_000) == 6_300
