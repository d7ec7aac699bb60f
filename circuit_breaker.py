"""
circuit_breaker.py
===================
Halts new executions after a run of failures or an accumulated loss.

Once tripped the breaker stays open until the owner resets it; there is no
time-based resumption.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict

from config import get_logger
from errors import CircuitOpen
from models import TradeConfig

logger = get_logger(__name__)


@dataclass
class CircuitBreakerState:
    consecutive_failures: int = 0
    cumulative_loss_bps: int = 0
    total_failures: int = 0
    halted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CircuitBreaker:
    def __init__(self) -> None:
        self._state = CircuitBreakerState()

    @property
    def halted(self) -> bool:
        return self._state.halted

    def state(self) -> CircuitBreakerState:
        return replace(self._state)

    def check_open(self) -> None:
        if self._state.halted:
            raise CircuitOpen(self._state.consecutive_failures, self._state.cumulative_loss_bps)

    def record_outcome(self, success: bool, loss_bps: int, config: TradeConfig) -> None:
        if loss_bps < 0:
            raise ValueError("loss_bps must be non-negative")
        state = self._state
        if success:
            state.consecutive_failures = 0
        else:
            state.consecutive_failures += 1
            state.total_failures += 1
        state.cumulative_loss_bps += loss_bps

        if state.halted:
            return
        if state.cumulative_loss_bps >= config.circuit_breaker_threshold_bps:
            state.halted = True
            logger.critical(
                "CIRCUIT BREAKER TRIPPED: cumulative loss %dbps >= %dbps",
                state.cumulative_loss_bps, config.circuit_breaker_threshold_bps,
            )
        elif state.consecutive_failures >= config.max_consecutive_failures:
            state.halted = True
            logger.critical(
                "CIRCUIT BREAKER TRIPPED: %d consecutive failures",
                state.consecutive_failures,
            )

    def reset(self) -> None:
        self._state = CircuitBreakerState()
        logger.warning("Circuit breaker reset")

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> CircuitBreakerState:
        return replace(self._state)

    def restore(self, snapshot: CircuitBreakerState) -> None:
        self._state = replace(snapshot)
