"""
analytics.py
=============
Append-only execution counters for the executor.

Only invocations that reach settlement are recorded; a reverted attempt's
update is rolled back with everything else.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from config import get_logger

logger = get_logger(__name__)


@dataclass
class AnalyticsState:
    total_trades: int = 0
    successful_trades: int = 0
    total_volume: int = 0
    total_profit: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AnalyticsRecorder:
    def __init__(self) -> None:
        self._state = AnalyticsState()

    def state(self) -> AnalyticsState:
        return replace(self._state)

    def record(self, success: bool, profit: int, volume: int) -> None:
        if profit < 0 or volume < 0:
            raise ValueError("profit and volume must be non-negative")
        self._state.total_trades += 1
        if success:
            self._state.successful_trades += 1
        self._state.total_volume += volume
        self._state.total_profit += profit

    def success_rate(self) -> float:
        if self._state.total_trades == 0:
            return 0.0
        return self._state.successful_trades / self._state.total_trades

    def reset(self) -> None:
        self._state = AnalyticsState()
        logger.warning("Analytics counters reset")

    def summary(self) -> Dict[str, Any]:
        summary = self._state.to_dict()
        summary["success_rate_pct"] = round(self.success_rate() * 100, 4)
        return summary

    def print_status_table(self, extra: Optional[Dict[str, Any]] = None) -> None:
        """Print counters (and any ``extra`` rows) as a console table."""
        rows: List[List[Any]] = [[k, v] for k, v in self.summary().items()]
        rows.extend([k, v] for k, v in (extra or {}).items())
        print("\n" + "─" * 50)
        print("  FLASH LOAN ARBITRAGE: EXECUTION STATUS")
        print("─" * 50)
        print(tabulate(rows, headers=["Metric", "Value"], tablefmt="simple"))
        print("─" * 50 + "\n")

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> AnalyticsState:
        return replace(self._state)

    def restore(self, snapshot: AnalyticsState) -> None:
        self._state = replace(snapshot)
