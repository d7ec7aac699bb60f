"""
errors.py
==========
Failure signals raised by the executor.

Every signal aborts the whole invocation; the enclosing ``Chain.atomic()``
scope rolls back all state before the exception reaches the caller.

Taxonomy
--------
AuthorizationError : Unauthorized, UnauthorizedCaller
AvailabilityError  : Paused, CircuitOpen
ConfigurationError : NoFeedConfigured, UnsupportedVenue
MarketError        : StalePrice, InvalidPrice, RiskRejected,
                     SlippageExceeded, InsufficientProfit
IntegrityError     : SecurityViolation, ReentrancyDetected, InsufficientBalance
"""

from __future__ import annotations

from typing import Optional


class ArbitrageError(Exception):
    """Base class for every executor failure signal."""


# ─────────────────────────────────────────────────────────────────────────────
# CATEGORIES
# ─────────────────────────────────────────────────────────────────────────────


class AuthorizationError(ArbitrageError):
    """Caller lacks the required privilege or identity."""


class AvailabilityError(ArbitrageError):
    """The executor deliberately refuses new work."""


class ConfigurationError(ArbitrageError):
    """Setup is missing or incomplete."""


class MarketError(ArbitrageError):
    """Runtime condition produced by current market state."""


class IntegrityError(ArbitrageError):
    """Invariant violation indicating misuse or attack."""


# ─────────────────────────────────────────────────────────────────────────────
# AUTHORIZATION
# ─────────────────────────────────────────────────────────────────────────────


class Unauthorized(AuthorizationError):
    def __init__(self, sender: str, action: str = "") -> None:
        self.sender = sender
        self.action = action
        super().__init__(f"{sender} is not allowed to {action or 'call this'}")


class UnauthorizedCaller(AuthorizationError):
    def __init__(self, sender: str, initiator: Optional[str] = None) -> None:
        self.sender = sender
        self.initiator = initiator
        super().__init__(
            f"borrow callback from untrusted caller {sender} (initiator={initiator})"
        )


# ─────────────────────────────────────────────────────────────────────────────
# AVAILABILITY
# ─────────────────────────────────────────────────────────────────────────────


class Paused(AvailabilityError):
    def __init__(self) -> None:
        super().__init__("executor is paused")


class CircuitOpen(AvailabilityError):
    def __init__(self, consecutive_failures: int = 0, cumulative_loss_bps: int = 0) -> None:
        self.consecutive_failures = consecutive_failures
        self.cumulative_loss_bps = cumulative_loss_bps
        super().__init__(
            f"circuit breaker halted (failures={consecutive_failures}, "
            f"loss={cumulative_loss_bps}bps)"
        )


# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURATION
# ─────────────────────────────────────────────────────────────────────────────


class NoFeedConfigured(ConfigurationError):
    def __init__(self, asset: str) -> None:
        self.asset = asset
        super().__init__(f"no price feed configured for {asset}")


class UnsupportedVenue(ConfigurationError):
    def __init__(self, venue: str) -> None:
        self.venue = venue
        super().__init__(f"venue {venue} is not supported")


# ─────────────────────────────────────────────────────────────────────────────
# MARKET
# ─────────────────────────────────────────────────────────────────────────────


class StalePrice(MarketError):
    def __init__(self, asset: str, age: int, bound: int) -> None:
        self.asset = asset
        self.age = age
        self.bound = bound
        super().__init__(f"price for {asset} is {age}s old (bound {bound}s)")


class InvalidPrice(MarketError):
    def __init__(self, asset: str, answer: Optional[int], reason: Optional[str] = None) -> None:
        self.asset = asset
        self.answer = answer
        self.reason = reason or f"non-positive price {answer}"
        super().__init__(f"feed for {asset} answered {self.reason}")


class RiskRejected(MarketError):
    def __init__(self, reason: str, leg_index: Optional[int] = None) -> None:
        self.reason = reason
        self.leg_index = leg_index
        where = f"leg {leg_index}: " if leg_index is not None else ""
        super().__init__(f"{where}{reason}")


class SlippageExceeded(MarketError):
    def __init__(self, leg_index: int, realized: int, min_out: int) -> None:
        self.leg_index = leg_index
        self.realized = realized
        self.min_out = min_out
        super().__init__(f"leg {leg_index}: realized {realized} < minimum out {min_out}")


class InsufficientProfit(MarketError):
    def __init__(self, final_balance: int, required: int) -> None:
        self.final_balance = final_balance
        self.required = required
        super().__init__(f"final balance {final_balance} below required {required}")


# ─────────────────────────────────────────────────────────────────────────────
# INTEGRITY
# ─────────────────────────────────────────────────────────────────────────────


class SecurityViolation(IntegrityError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ReentrancyDetected(IntegrityError):
    def __init__(self) -> None:
        super().__init__("re-entrant call while an execution is in progress")


class InsufficientBalance(IntegrityError):
    def __init__(self, token: str, holder: str, balance: int, amount: int) -> None:
        self.token = token
        self.holder = holder
        self.balance = balance
        self.amount = amount
        super().__init__(f"{holder} holds {balance} {token}, needs {amount}")
