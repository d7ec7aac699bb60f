"""
flash_loan_arbitrage.py
========================
Flash Loan Arbitrage executor.

Strategy:
  - Borrow ``amount`` of an asset from the trusted loan source
  - Route it through one or more whitelisted venues, leg by leg
  - Repay loan + fee, keep the remainder only if it clears ``min_profit``

Each borrow callback is one all-or-nothing invocation:

    IDLE -> BORROWED -> SWAPPING -> REPAYING -> SETTLED
    any non-idle state -> REVERTED

Any failure reverts every ledger transfer, analytics update and breaker
update made during the attempt; only the raised signal is left behind.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from access_control import AccessControl, privileged
from analytics import AnalyticsRecorder, AnalyticsState
from chain import Chain
from circuit_breaker import CircuitBreaker, CircuitBreakerState
from config import BPS, ORACLE, get_logger
from errors import (
    ReentrancyDetected,
    RiskRejected,
    SecurityViolation,
    SlippageExceeded,
    InsufficientProfit,
    UnauthorizedCaller,
)
from interfaces import ILoanSource, IPriceFeed, IVenue
from models import (
    ExecutionContext,
    ExecutionState,
    SecurityConfig,
    SwapLeg,
    TradeConfig,
    decode_legs,
    encode_legs,
)
from price_oracle import PriceOracleGateway
from risk_engine import LegAssessment, RiskEngine, ceil_div
from venue_registry import VenueRegistry

logger = get_logger(__name__)


class _Status(Enum):
    IDLE = "IDLE"
    BORROWING = "BORROWING"   # loan requested, waiting for the callback
    BUSY = "BUSY"             # inside the borrow callback


class FlashLoanArbitrage:
    """
    Parameters
    ----------
    chain           : Ledger and block context the executor lives on.
    address         : This executor's address on ``chain``.
    loan_source     : The only caller trusted to deliver borrow callbacks.
    venues          : Initially whitelisted venues.
    price_feeds     : Initial {asset: feed} bindings.
    trade_config    : Limits for every execution.
    security_config : Per-call execution guards.
    owner           : Address allowed to use the management surface.
    beneficiary     : Receives residual profit (defaults to ``owner``).
    staleness_bound : Maximum oracle reading age in seconds.
    risk_engine     : Custom risk engine (defaults to one with the oracle
                      deviation detector installed).
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        loan_source: ILoanSource,
        venues: Sequence[IVenue],
        price_feeds: Optional[Dict[str, IPriceFeed]],
        trade_config: TradeConfig,
        security_config: SecurityConfig,
        owner: str,
        beneficiary: Optional[str] = None,
        staleness_bound: int = ORACLE["staleness_seconds"],
        risk_engine: Optional[RiskEngine] = None,
    ) -> None:
        self.chain = chain
        self.address = address
        self.loan_source = loan_source
        self.access = AccessControl(owner)
        self.registry = VenueRegistry(list(venues))
        self.oracle = PriceOracleGateway(chain, staleness_bound, price_feeds)
        self.risk = risk_engine or RiskEngine()
        self.circuit_breaker = CircuitBreaker()
        self.analytics = AnalyticsRecorder()
        self.trade_config = trade_config
        self.security_config = security_config
        self.beneficiary = beneficiary or owner
        self._status = _Status.IDLE

        for participant in (self.circuit_breaker, self.analytics, self.registry,
                            self.oracle, self.access, self):
            chain.register(participant)

    # ── Read surface ─────────────────────────────────────────────────────────

    def owner(self) -> str:
        return self.access.owner

    def is_paused(self) -> bool:
        return self.access.paused

    def is_supported(self, venue: str) -> bool:
        return self.registry.is_supported(venue)

    def price_feed(self, asset: str) -> Optional[IPriceFeed]:
        return self.oracle.price_feed(asset)

    def success_rate(self) -> float:
        return self.analytics.success_rate()

    def circuit_breaker_state(self) -> CircuitBreakerState:
        return self.circuit_breaker.state()

    def analytics_state(self) -> AnalyticsState:
        return self.analytics.state()

    # ── Management surface ───────────────────────────────────────────────────

    @privileged("add_venue")
    def add_venue(self, venue: IVenue) -> None:
        self.registry.add(venue)

    @privileged("remove_venue")
    def remove_venue(self, address: str) -> None:
        self.registry.remove(address)

    @privileged("set_price_feed")
    def set_price_feed(self, asset: str, feed: IPriceFeed) -> None:
        self.oracle.set_feed(asset, feed)

    @privileged("set_trade_config")
    def set_trade_config(self, config: TradeConfig) -> None:
        # Running invocations keep the config captured in their context
        self.trade_config = config
        logger.info("Trade config updated: %s", config.to_dict())

    @privileged("set_security_config")
    def set_security_config(self, config: SecurityConfig) -> None:
        self.security_config = config
        logger.info("Security config updated: %s", config.to_dict())

    @privileged("pause")
    def pause(self) -> None:
        self.access.pause()

    @privileged("unpause")
    def unpause(self) -> None:
        self.access.unpause()

    @privileged("reset_circuit_breaker")
    def reset_circuit_breaker(self) -> None:
        self.circuit_breaker.reset()

    @privileged("report_failure")
    def report_failure(self, loss_bps: int = 0) -> None:
        """Feed a failed attempt observed off-ledger into the circuit breaker."""
        self.circuit_breaker.record_outcome(False, loss_bps, self.trade_config)

    @privileged("reset_analytics")
    def reset_analytics(self) -> None:
        self.analytics.reset()

    @privileged("set_beneficiary")
    def set_beneficiary(self, beneficiary: str) -> None:
        self.beneficiary = beneficiary

    @privileged("transfer_ownership")
    def transfer_ownership(self, new_owner: str) -> None:
        self.access.transfer_ownership(new_owner)

    @privileged("withdraw")
    def withdraw(self, asset: str, amount: int, to: str) -> None:
        """Move residual profit held by the executor out to ``to``."""
        self.chain.transfer(asset, self.address, to, amount)
        logger.info("Withdrew %d %s to %s", amount, asset, to)

    # ── Execution ────────────────────────────────────────────────────────────

    @privileged("start_arbitrage")
    def start_arbitrage(self, asset: str, amount: int, legs: Sequence[SwapLeg]) -> int:
        """
        Ask the loan source for ``amount`` of ``asset`` and run ``legs`` in the
        callback.  Returns the profit paid out to the beneficiary.
        """
        if self._status is not _Status.IDLE:
            raise ReentrancyDetected()
        if amount <= 0:
            raise ValueError("borrow amount must be positive")

        profit_before = self.analytics.state().total_profit
        self._status = _Status.BORROWING
        try:
            self.loan_source.flash_loan(
                self, asset, amount, encode_legs(legs), sender=self.address
            )
        finally:
            self._status = _Status.IDLE
        return self.analytics.state().total_profit - profit_before

    def execute_operation(
        self,
        asset: str,
        amount: int,
        fee: int,
        initiator: str,
        params: bytes,
        *,
        sender: str,
    ) -> bool:
        """Borrow callback.  Returns True once the loan is repaid; raises otherwise."""
        with self.chain.atomic():
            if self._status is _Status.BUSY:
                raise ReentrancyDetected()
            if sender != self.loan_source.address or initiator != self.address:
                logger.warning("Borrow callback rejected: sender=%s initiator=%s", sender, initiator)
                raise UnauthorizedCaller(sender, initiator)

            previous = self._status
            self._status = _Status.BUSY
            ctx = ExecutionContext(
                asset=asset,
                amount=amount,
                fee=fee,
                legs=decode_legs(params),
                trade_config=self.trade_config,
                security_config=self.security_config,
            )
            try:
                self._execute(ctx)
            except Exception as exc:
                stage = ctx.state.value
                if ctx.state is not ExecutionState.IDLE and not ctx.is_terminal:
                    ctx.transition(ExecutionState.REVERTED)
                logger.warning(
                    "Flash arb REVERTED at %s | %s | borrow=%d | %s: %s",
                    stage, asset, amount, type(exc).__name__, exc,
                )
                raise
            finally:
                self._status = previous
        return True

    def _execute(self, ctx: ExecutionContext) -> None:
        self._check_gates(ctx)

        held = self.chain.balance_of(ctx.asset, self.address)
        if held < ctx.amount:
            raise SecurityViolation(f"loan not received: hold {held}, expected {ctx.amount}")
        for leg in ctx.legs:
            for token in leg.path:
                ctx.opening_balances[token] = self.chain.balance_of(token, self.address)
        ctx.opening_balances[ctx.asset] = held - ctx.amount
        ctx.transition(ExecutionState.BORROWED)

        prices = self._fetch_prices(ctx.legs)

        ctx.transition(ExecutionState.SWAPPING)
        for index, leg in enumerate(ctx.legs):
            ctx.leg_index = index
            ctx.leg_outputs.append(self._swap_leg(ctx, index, leg, prices))

        ctx.transition(ExecutionState.REPAYING)
        self._settle(ctx)
        ctx.transition(ExecutionState.SETTLED)

    def _check_gates(self, ctx: ExecutionContext) -> None:
        self.access.require_not_paused()
        self.circuit_breaker.check_open()

        security = ctx.security_config
        if self.chain.gas_price > security.max_gas_price:
            raise SecurityViolation(
                f"gas price {self.chain.gas_price} above max {security.max_gas_price}"
            )
        if self.chain.timestamp < security.min_timestamp:
            raise SecurityViolation(
                f"timestamp {self.chain.timestamp} before min {security.min_timestamp}"
            )
        if not ctx.legs:
            raise RiskRejected("no swap legs")

    def _fetch_prices(self, legs: Sequence[SwapLeg]) -> Dict[str, int]:
        """Oracle price of every token touched, read before any swap runs."""
        prices: Dict[str, int] = {}
        for leg in legs:
            for token in leg.path:
                if token not in prices:
                    prices[token], _ = self.oracle.get_price(token)
        return prices

    def _swap_leg(
        self,
        ctx: ExecutionContext,
        index: int,
        leg: SwapLeg,
        prices: Dict[str, int],
    ) -> int:
        venue = self.registry.resolve(leg.venue)
        token_in, token_out = leg.path[0], leg.path[-1]
        amount_in = leg.amount_in or max(
            0, self.chain.balance_of(token_in, self.address) - ctx.opening_balances.get(token_in, 0)
        )

        quoted_out = venue.get_amounts_out(amount_in, leg.path)[-1]
        reserves = [venue.get_reserves(a, b) for a, b in leg.hops]
        self.risk.require(
            LegAssessment(
                leg_index=index,
                venue=leg.venue,
                path=leg.path,
                amount_in=amount_in,
                quoted_out=quoted_out,
                reserves=reserves,
                prices=prices,
                security_config=ctx.security_config,
            ),
            ctx.trade_config,
        )

        min_out = ceil_div(quoted_out * (BPS - ctx.trade_config.slippage_tolerance_bps), BPS)
        before = self.chain.balance_of(token_out, self.address)
        venue.swap_exact_tokens_for_tokens(
            amount_in, min_out, leg.path, self.address, sender=self.address
        )
        realized = self.chain.balance_of(token_out, self.address) - before
        if token_in == token_out:
            realized += amount_in

        if realized < min_out:
            raise SlippageExceeded(index, realized, min_out)
        logger.debug(
            "Leg %d via %s | %s | in=%d quoted=%d realized=%d",
            index, leg.venue, "->".join(leg.path), amount_in, quoted_out, realized,
        )
        return realized

    def _settle(self, ctx: ExecutionContext) -> None:
        final_balance = self.chain.balance_of(ctx.asset, self.address) - ctx.opening_balance
        required = ctx.repayment + ctx.trade_config.min_profit
        if final_balance < required:
            raise InsufficientProfit(final_balance, required)

        ctx.profit = final_balance - ctx.repayment
        self.chain.transfer(ctx.asset, self.address, self.loan_source.address, ctx.repayment)
        if ctx.profit > 0 and self.beneficiary != self.address:
            self.chain.transfer(ctx.asset, self.address, self.beneficiary, ctx.profit)

        self.analytics.record(True, ctx.profit, ctx.amount)
        self.circuit_breaker.record_outcome(True, 0, ctx.trade_config)
        logger.info(
            "Flash arb SETTLED | %s | borrow=%d fee=%d profit=%d legs=%d",
            ctx.asset, ctx.amount, ctx.fee, ctx.profit, len(ctx.legs),
        )

    # ── Planning helpers ─────────────────────────────────────────────────────

    def simulate(self, asset: str, amount: int, legs: Sequence[SwapLeg]) -> Dict[str, Any]:
        """
        Quote ``legs`` against current venue state without touching any
        balance.  Skips oracle and risk gating.
        """
        held: Dict[str, int] = {asset: amount}
        leg_outputs: List[int] = []
        for leg in legs:
            venue = self.registry.resolve(leg.venue)
            amount_in = leg.amount_in or held.get(leg.path[0], 0)
            out = venue.get_amounts_out(amount_in, leg.path)[-1]
            held[leg.path[0]] = held.get(leg.path[0], 0) - amount_in
            held[leg.path[-1]] = held.get(leg.path[-1], 0) + out
            leg_outputs.append(out)

        fee = self.loan_source.flash_fee(asset, amount)
        expected_profit = held.get(asset, 0) - amount - fee
        return {
            "asset": asset,
            "borrow_amount": amount,
            "flash_fee": fee,
            "leg_outputs": leg_outputs,
            "expected_profit": expected_profit,
            "profitable": expected_profit >= self.trade_config.min_profit,
        }

    def print_status(self) -> None:
        state = self.circuit_breaker.state()
        self.analytics.print_status_table(extra={
            "owner": self.access.owner,
            "paused": self.access.paused,
            "circuit_halted": state.halted,
            "consecutive_failures": state.consecutive_failures,
            "cumulative_loss_bps": state.cumulative_loss_bps,
            "venues": ", ".join(self.registry.venues()) or "-",
        })

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> Tuple[TradeConfig, SecurityConfig, str]:
        return self.trade_config, self.security_config, self.beneficiary

    def restore(self, snapshot: Tuple[TradeConfig, SecurityConfig, str]) -> None:
        self.trade_config, self.security_config, self.beneficiary = snapshot
