"""
models.py
==========
Value objects shared across the executor: owner-mutable configuration,
swap legs and the per-invocation execution context.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import BPS, SECURITY, TRADE


def _check_bps(name: str, value: int) -> None:
    if not 0 <= value <= BPS:
        raise ValueError(f"{name} must be within [0, {BPS}] bps, got {value}")


@dataclass(frozen=True)
class TradeConfig:
    """Limits governing every execution.  Replaced whole, never mutated."""
    max_trade_size: int
    min_liquidity: int
    max_price_impact_bps: int
    circuit_breaker_threshold_bps: int
    min_profit: int = 0
    slippage_tolerance_bps: int = 50
    max_consecutive_failures: int = 3

    def __post_init__(self) -> None:
        _check_bps("max_price_impact_bps", self.max_price_impact_bps)
        _check_bps("slippage_tolerance_bps", self.slippage_tolerance_bps)
        if self.circuit_breaker_threshold_bps <= 0:
            raise ValueError("circuit_breaker_threshold_bps must be positive")
        if self.max_consecutive_failures <= 0:
            raise ValueError("max_consecutive_failures must be positive")
        if min(self.max_trade_size, self.min_liquidity, self.min_profit) < 0:
            raise ValueError("trade limits must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TradeConfig":
        return cls(**d)


@dataclass(frozen=True)
class SecurityConfig:
    """Per-call execution guards."""
    max_gas_price: int
    min_timestamp: int
    max_price_impact_bps: int

    def __post_init__(self) -> None:
        _check_bps("max_price_impact_bps", self.max_price_impact_bps)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SecurityConfig":
        return cls(**d)


def default_trade_config() -> TradeConfig:
    return TradeConfig.from_dict(TRADE)


def default_security_config() -> SecurityConfig:
    return SecurityConfig.from_dict(SECURITY)


@dataclass(frozen=True)
class SwapLeg:
    """
    One swap through a venue.

    ``amount_in`` of 0 means "everything held in ``path[0]`` beyond what the
    executor held before the loan", which is how later legs consume the output
    of earlier ones.
    """
    venue: str
    path: Tuple[str, ...]
    amount_in: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))
        if len(self.path) < 2:
            raise ValueError("a swap path needs at least two tokens")
        if self.amount_in < 0:
            raise ValueError("amount_in must be non-negative")

    @property
    def hops(self) -> List[Tuple[str, str]]:
        return list(zip(self.path, self.path[1:]))

    def to_dict(self) -> Dict[str, Any]:
        return {"venue": self.venue, "path": list(self.path), "amount_in": self.amount_in}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SwapLeg":
        return cls(venue=d["venue"], path=tuple(d["path"]), amount_in=int(d.get("amount_in", 0)))


def encode_legs(legs: Sequence[SwapLeg]) -> bytes:
    """Pack legs into the opaque params blob carried through the loan source."""
    return json.dumps([leg.to_dict() for leg in legs], separators=(",", ":")).encode("utf-8")


def decode_legs(params: bytes) -> List[SwapLeg]:
    try:
        raw = json.loads(params.decode("utf-8"))
        return [SwapLeg.from_dict(item) for item in raw]
    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as exc:
        raise ValueError(f"malformed leg params: {exc}") from exc


class ExecutionState(Enum):
    IDLE = "IDLE"
    BORROWED = "BORROWED"
    SWAPPING = "SWAPPING"
    REPAYING = "REPAYING"
    SETTLED = "SETTLED"
    REVERTED = "REVERTED"


_TRANSITIONS: Dict[ExecutionState, Tuple[ExecutionState, ...]] = {
    ExecutionState.IDLE: (ExecutionState.BORROWED,),
    ExecutionState.BORROWED: (ExecutionState.SWAPPING, ExecutionState.REVERTED),
    ExecutionState.SWAPPING: (ExecutionState.REPAYING, ExecutionState.REVERTED),
    ExecutionState.REPAYING: (ExecutionState.SETTLED, ExecutionState.REVERTED),
    ExecutionState.SETTLED: (),
    ExecutionState.REVERTED: (),
}


@dataclass
class ExecutionContext:
    """State of one invocation.  Created by the borrow callback, dropped at its end."""
    asset: str
    amount: int
    fee: int
    legs: List[SwapLeg]
    trade_config: TradeConfig
    security_config: SecurityConfig
    opening_balances: Dict[str, int] = field(default_factory=dict)   # held before the loan, per token
    state: ExecutionState = ExecutionState.IDLE
    leg_index: Optional[int] = None
    leg_outputs: List[int] = field(default_factory=list)
    profit: int = 0

    @property
    def opening_balance(self) -> int:
        return self.opening_balances.get(self.asset, 0)

    @property
    def repayment(self) -> int:
        return self.amount + self.fee

    @property
    def is_terminal(self) -> bool:
        return self.state in (ExecutionState.SETTLED, ExecutionState.REVERTED)

    def transition(self, new_state: ExecutionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {new_state.value}")
        self.state = new_state
