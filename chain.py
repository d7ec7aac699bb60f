"""
chain.py
=========
Execution platform the executor runs on.

Holds integer token balances, the current block context (timestamp, gas
price) and provides ``atomic()``: a serialized, all-or-nothing scope.  Every
state-mutating entry point runs inside it; when the body raises, ledger
balances and every registered participant are restored to the values they
held on entry and the exception propagates unchanged.

Participants are objects exposing ``snapshot() -> Any`` and
``restore(snapshot) -> None``.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from config import get_logger
from errors import InsufficientBalance

logger = get_logger(__name__)


class Chain:
    """
    In-process ledger with block context and atomic invocations.

    Parameters
    ----------
    timestamp : Block timestamp in epoch seconds (defaults to now).
    gas_price : Current gas price in wei.
    """

    def __init__(self, timestamp: Optional[int] = None, gas_price: int = 0) -> None:
        self.timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self.gas_price = gas_price
        self._balances: Dict[str, Dict[str, int]] = {}   # token -> holder -> amount
        self._participants: List[Any] = []
        self._lock = threading.RLock()
        self._depth = 0

    # ── Block context ────────────────────────────────────────────────────────

    def advance(self, seconds: int) -> int:
        self.timestamp += int(seconds)
        return self.timestamp

    def set_gas_price(self, gas_price: int) -> None:
        self.gas_price = int(gas_price)

    # ── Ledger ───────────────────────────────────────────────────────────────

    def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get(token, {}).get(holder, 0)

    def mint(self, token: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("mint amount must be non-negative")
        holders = self._balances.setdefault(token, {})
        holders[to] = holders.get(to, 0) + amount

    def transfer(self, token: str, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("transfer amount must be non-negative")
        balance = self.balance_of(token, sender)
        if balance < amount:
            raise InsufficientBalance(token, sender, balance, amount)
        holders = self._balances.setdefault(token, {})
        holders[sender] = balance - amount
        holders[to] = holders.get(to, 0) + amount
        logger.debug("transfer %d %s %s -> %s", amount, token, sender, to)

    # ── Atomic invocations ───────────────────────────────────────────────────

    def register(self, participant: Any) -> None:
        """Include ``participant`` in every snapshot taken by ``atomic()``."""
        if participant not in self._participants:
            self._participants.append(participant)

    @property
    def in_invocation(self) -> bool:
        return self._depth > 0

    def _snapshot(self) -> Tuple[Dict[str, Dict[str, int]], List[Tuple[Any, Any]]]:
        balances = {token: dict(holders) for token, holders in self._balances.items()}
        states = [(p, p.snapshot()) for p in self._participants]
        return balances, states

    def _restore(self, snapshot: Tuple[Dict[str, Dict[str, int]], List[Tuple[Any, Any]]]) -> None:
        balances, states = snapshot
        self._balances = balances
        for participant, state in states:
            participant.restore(state)

    @contextmanager
    def atomic(self) -> Iterator["Chain"]:
        """Run the body all-or-nothing; nested scopes undo only their own changes."""
        with self._lock:
            snapshot = self._snapshot()
            self._depth += 1
            try:
                yield self
            except BaseException as exc:
                self._restore(snapshot)
                logger.debug("invocation reverted (depth=%d): %s", self._depth, exc)
                raise
            finally:
                self._depth -= 1
