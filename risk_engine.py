"""
risk_engine.py
===============
Accepts or rejects a proposed swap leg.

All arithmetic is exact integer basis-point math.  Every ratio that feeds a
rejection threshold is rounded up, so boundary cases land on the rejecting
side.

Extension point
---------------
Extra heuristics (sandwich / front-running detection and the like) plug in as
detectors: callables taking a ``LegAssessment`` and returning a rejection
reason, or ``None`` to pass.  ``OracleDeviationDetector`` is installed by
default.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config import BPS, get_logger
from errors import RiskRejected
from models import SecurityConfig, TradeConfig

logger = get_logger(__name__)


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True)
class RiskDecision:
    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "RiskDecision":
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> "RiskDecision":
        return cls(False, reason)


@dataclass
class LegAssessment:
    """Everything known about a leg right before it is swapped."""
    leg_index: int
    venue: str
    path: Tuple[str, ...]
    amount_in: int
    quoted_out: int
    reserves: List[Tuple[int, int]]          # (reserve_in, reserve_out) per hop
    prices: Dict[str, int] = field(default_factory=dict)
    security_config: Optional[SecurityConfig] = None

    @property
    def liquidity(self) -> int:
        """Depth of the first hop, in units of the leg's input token."""
        return self.reserves[0][0] if self.reserves else 0


Detector = Callable[[LegAssessment], Optional[str]]


def price_impact_bps(amount_in: int, quoted_out: int, reserves: Sequence[Tuple[int, int]]) -> int:
    """
    Impact of a trade as the shortfall of the execution quote against the
    pre-trade spot quote implied by pool reserves, rounded up.

    spot_out = amount_in * prod(reserve_out) / prod(reserve_in)
    impact   = ceil((spot_out - quoted_out) * BPS / spot_out), floored at 0
    """
    if amount_in <= 0:
        return 0
    numerator = amount_in
    denominator = 1
    for reserve_in, reserve_out in reserves:
        numerator *= reserve_out
        denominator *= reserve_in
    if numerator == 0 or denominator == 0:
        return BPS  # empty pool: every unit is lost
    shortfall = numerator - quoted_out * denominator
    if shortfall <= 0:
        return 0
    return min(BPS, ceil_div(shortfall * BPS, numerator))


def oracle_deviation_bps(reserve_in: int, reserve_out: int, price_in: int, price_out: int) -> int:
    """Distance between a pool's spot rate and the oracle-implied rate, rounded up."""
    reference = reserve_in * price_in
    if reference <= 0:
        return BPS
    spread = abs(reserve_out * price_out - reference)
    return ceil_div(spread * BPS, reference)


class OracleDeviationDetector:
    """
    Rejects legs routed through a pool whose spot rate strays from the oracle
    rate by more than ``SecurityConfig.max_price_impact_bps`` on any hop,
    the footprint of a pool pushed out of line ahead of our swap.
    """

    def __call__(self, assessment: LegAssessment) -> Optional[str]:
        security = assessment.security_config
        if security is None or not assessment.prices:
            return None
        hops = zip(assessment.path, assessment.path[1:])
        for (token_in, token_out), (reserve_in, reserve_out) in zip(hops, assessment.reserves):
            price_in = assessment.prices.get(token_in)
            price_out = assessment.prices.get(token_out)
            if price_in is None or price_out is None:
                continue
            deviation = oracle_deviation_bps(reserve_in, reserve_out, price_in, price_out)
            if deviation > security.max_price_impact_bps:
                return (
                    f"{token_in}->{token_out} spot deviates {deviation}bps from oracle "
                    f"(max {security.max_price_impact_bps}bps)"
                )
        return None


class RiskEngine:
    def __init__(self, detectors: Optional[List[Detector]] = None) -> None:
        self._detectors: List[Detector] = (
            list(detectors) if detectors is not None else [OracleDeviationDetector()]
        )

    def add_detector(self, detector: Detector) -> None:
        self._detectors.append(detector)

    @property
    def detectors(self) -> List[Detector]:
        return list(self._detectors)

    def evaluate(
        self,
        trade_size: int,
        liquidity: int,
        price_impact: int,
        config: TradeConfig,
    ) -> RiskDecision:
        if trade_size <= 0:
            return RiskDecision.reject("trade size must be positive")
        if trade_size > config.max_trade_size:
            return RiskDecision.reject(
                f"trade size {trade_size} exceeds max {config.max_trade_size}"
            )
        if liquidity < config.min_liquidity:
            return RiskDecision.reject(
                f"liquidity {liquidity} below min {config.min_liquidity}"
            )
        if price_impact > config.max_price_impact_bps:
            return RiskDecision.reject(
                f"price impact {price_impact}bps exceeds max {config.max_price_impact_bps}bps"
            )
        return RiskDecision.accept()

    def assess(self, assessment: LegAssessment, config: TradeConfig) -> RiskDecision:
        """Threshold checks first, then every detector in registration order."""
        impact = price_impact_bps(assessment.amount_in, assessment.quoted_out, assessment.reserves)
        decision = self.evaluate(assessment.amount_in, assessment.liquidity, impact, config)
        if not decision.accepted:
            return decision
        for detector in self._detectors:
            reason = detector(assessment)
            if reason:
                return RiskDecision.reject(reason)
        return decision

    def require(self, assessment: LegAssessment, config: TradeConfig) -> None:
        decision = self.assess(assessment, config)
        if not decision.accepted:
            logger.warning("Leg %d rejected: %s", assessment.leg_index, decision.reason)
            raise RiskRejected(decision.reason or "rejected", assessment.leg_index)
