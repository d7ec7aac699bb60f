"""
Test Suite: Models
===================
Configuration validation, leg params and the execution state machine.
"""

import pytest

from models import (
    ExecutionContext,
    ExecutionState,
    SecurityConfig,
    SwapLeg,
    TradeConfig,
    decode_legs,
    default_security_config,
    default_trade_config,
    encode_legs,
)


def test_defaults_load_from_config():
    trade = default_trade_config()
    assert trade.slippage_tolerance_bps == 50
    assert trade.max_consecutive_failures == 3
    assert default_security_config().max_price_impact_bps == 200


@pytest.mark.parametrize("overrides", [
    {"max_price_impact_bps": 10_001},
    {"slippage_tolerance_bps": -1},
    {"circuit_breaker_threshold_bps": 0},
    {"max_consecutive_failures": 0},
    {"max_trade_size": -1},
])
def test_trade_config_validation(trade_config, overrides):
    fields = trade_config.to_dict()
    fields.update(overrides)
    with pytest.raises(ValueError):
        TradeConfig.from_dict(fields)


def test_trade_config_round_trip(trade_config):
    assert TradeConfig.from_dict(trade_config.to_dict()) == trade_config


def test_security_config_validation():
    with pytest.raises(ValueError):
        SecurityConfig(max_gas_price=1, min_timestamp=0, max_price_impact_bps=20_000)


def test_swap_leg_validation():
    with pytest.raises(ValueError):
        SwapLeg("0xROUTER", ("0xTKA",))
    with pytest.raises(ValueError):
        SwapLeg("0xROUTER", ("0xTKA", "0xTKB"), amount_in=-5)


def test_swap_leg_hops():
    leg = SwapLeg("0xROUTER", ["0xTKA", "0xTKB", "0xTKA"])
    assert leg.path == ("0xTKA", "0xTKB", "0xTKA")
    assert leg.hops == [("0xTKA", "0xTKB"), ("0xTKB", "0xTKA")]


def test_legs_travel_as_params():
    legs = [SwapLeg("0xR1", ("0xTKA", "0xTKB"), 500), SwapLeg("0xR2", ("0xTKB", "0xTKA"))]
    params = encode_legs(legs)
    assert isinstance(params, bytes)
    assert decode_legs(params) == legs


@pytest.mark.parametrize("params", [
    b"\xff\xfe",
    b"not json",
    b"[1, 2]",
    b'[{"path": ["0xTKA", "0xTKB"]}]',
    b'[{"venue": "0xR1", "path": ["0xTKA"]}]',
])
def test_malformed_params(params):
    with pytest.raises(ValueError):
        decode_legs(params)


def test_state_machine_happy_path(trade_config, security_config):
    ctx = ExecutionContext("0xTKA", 500, 1, [], trade_config, security_config)
    assert ctx.repayment == 501
    for state in (ExecutionState.BORROWED, ExecutionState.SWAPPING,
                  ExecutionState.REPAYING, ExecutionState.SETTLED):
        ctx.transition(state)
    assert ctx.is_terminal


def test_state_machine_rejects_skips(trade_config, security_config):
    ctx = ExecutionContext("0xTKA", 500, 1, [], trade_config, security_config)
    with pytest.raises(RuntimeError):
        ctx.transition(ExecutionState.SWAPPING)
    ctx.transition(ExecutionState.BORROWED)
    ctx.transition(ExecutionState.REVERTED)
    assert ctx.is_terminal
    with pytest.raises(RuntimeError):
        ctx.transition(ExecutionState.SETTLED)
