"""
interfaces.py
=============
Call contracts of the executor's external collaborators.

The executor depends on these abstractions only, so production adapters and
test stand-ins are interchangeable.
"""
from __future__ import annotations

from typing import Any, List, Protocol, Sequence, Tuple, runtime_checkable


# ── Loan Source ──────────────────────────────────────────────────────────────

@runtime_checkable
class ILoanSource(Protocol):
    """Lends ``amount`` for one invocation and calls the receiver back."""

    address: str

    def flash_fee(self, asset: str, amount: int) -> int: ...

    def flash_loan(self, receiver: Any, asset: str, amount: int,
                   params: bytes, *, sender: str) -> None: ...


# ── Exchange Venue ───────────────────────────────────────────────────────────

@runtime_checkable
class IVenue(Protocol):
    """Uniswap V2 router shaped exchange venue."""

    address: str

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> List[int]: ...

    def get_reserves(self, token_in: str, token_out: str) -> Tuple[int, int]: ...

    def swap_exact_tokens_for_tokens(self, amount_in: int, amount_out_min: int,
                                     path: Sequence[str], to: str, *,
                                     sender: str) -> List[int]: ...


# ── Price Feed ───────────────────────────────────────────────────────────────

@runtime_checkable
class IPriceFeed(Protocol):
    """Chainlink aggregator shaped price feed."""

    def latest_round_data(self) -> Tuple[int, int, int, int, int]:
        """Return (round_id, answer, started_at, updated_at, answered_in_round)."""
        ...
