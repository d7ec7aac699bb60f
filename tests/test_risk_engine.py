"""
Test Suite: Risk Engine
========================
Threshold checks, ceiling-rounded impact math and the detector hook.
"""

import pytest

from errors import RiskRejected
from models import SecurityConfig
from risk_engine import (
    LegAssessment,
    OracleDeviationDetector,
    RiskEngine,
    oracle_deviation_bps,
    price_impact_bps,
)


def assessment(**overrides):
    fields = dict(
        leg_index=0,
        venue="0xROUTER",
        path=("0xTKA", "0xTKB"),
        amount_in=500,
        quoted_out=1000,
        reserves=[(1_000_000, 2_000_000)],
        prices={"0xTKA": 2 * 10**8, "0xTKB": 10**8},
        security_config=SecurityConfig(max_gas_price=1, min_timestamp=0, max_price_impact_bps=200),
    )
    fields.update(overrides)
    return LegAssessment(**fields)


def test_accepts_within_limits(trade_config):
    decision = RiskEngine().evaluate(1000, 10000, 200, trade_config)
    assert decision.accepted
    assert decision.reason is None


@pytest.mark.parametrize("size, liquidity, impact, fragment", [
    (1001, 10000, 0, "trade size"),
    (500, 9999, 0, "liquidity"),
    (500, 10000, 201, "price impact"),
    (0, 10000, 0, "positive"),
])
def test_rejects_past_each_threshold(trade_config, size, liquidity, impact, fragment):
    decision = RiskEngine().evaluate(size, liquidity, impact, trade_config)
    assert not decision.accepted
    assert fragment in decision.reason


def test_price_impact_zero_when_quote_matches_spot():
    assert price_impact_bps(500, 1000, [(1_000_000, 2_000_000)]) == 0


def test_price_impact_rounds_toward_rejection():
    # spot 3, quote 2 -> exactly 3333.33bps, reported as 3334
    assert price_impact_bps(3, 2, [(1, 1)]) == 3334


def test_price_impact_multi_hop():
    # 1000 -> 2000 -> 1000 at spot; quote 990 is 100bps short
    assert price_impact_bps(1000, 990, [(100, 200), (200, 100)]) == 100


def test_price_impact_empty_pool_is_total():
    assert price_impact_bps(10, 0, [(0, 0)]) == 10_000


def test_boundary_impact_rejected_after_rounding(trade_config):
    engine = RiskEngine(detectors=[])
    # 999 in against 1:1 spot, 979 out: 200.2bps -> reported 201 -> rejected
    rejected = engine.assess(assessment(
        amount_in=999, quoted_out=979, reserves=[(100_000, 100_000)],
    ), trade_config)
    assert not rejected.accepted
    # 1000 in, 980 out: exactly 200bps -> accepted
    accepted = engine.assess(assessment(
        amount_in=1000, quoted_out=980, reserves=[(100_000, 100_000)],
    ), trade_config)
    assert accepted.accepted


def test_oracle_deviation_math():
    assert oracle_deviation_bps(1_000_000, 2_000_000, 2, 1) == 0
    assert oracle_deviation_bps(1_000_000, 2_100_000, 2, 1) == 500
    assert oracle_deviation_bps(0, 100, 1, 1) == 10_000


def test_oracle_detector_flags_out_of_line_pool():
    detector = OracleDeviationDetector()
    assert detector(assessment()) is None
    reason = detector(assessment(reserves=[(1_000_000, 2_100_000)]))
    assert "500bps" in reason


def test_custom_detector_extends_engine(trade_config):
    engine = RiskEngine()
    engine.add_detector(lambda a: "sandwich suspected" if a.amount_in > 100 else None)
    assert len(engine.detectors) == 2

    with pytest.raises(RiskRejected, match="sandwich suspected") as exc_info:
        engine.require(assessment(), trade_config)
    assert exc_info.value.leg_index == 0

    engine.require(assessment(amount_in=100, quoted_out=200), trade_config)
