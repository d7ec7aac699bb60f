"""
access_control.py
==================
Ownership and the emergency pause switch.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Tuple, TypeVar

from config import get_logger
from errors import Paused, Unauthorized

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class AccessControl:
    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._paused = False

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def paused(self) -> bool:
        return self._paused

    def only_owner(self, sender: str, action: str = "") -> None:
        if sender != self._owner:
            logger.warning("Unauthorized %s attempt by %s", action or "call", sender)
            raise Unauthorized(sender, action)

    def require_not_paused(self) -> None:
        if self._paused:
            raise Paused()

    def pause(self) -> None:
        self._paused = True
        logger.warning("Executor PAUSED")

    def unpause(self) -> None:
        self._paused = False
        logger.warning("Executor unpaused")

    def transfer_ownership(self, new_owner: str) -> None:
        if not new_owner:
            raise ValueError("new owner must be a non-empty address")
        logger.warning("Ownership transferred %s -> %s", self._owner, new_owner)
        self._owner = new_owner

    # ── Chain participant ────────────────────────────────────────────────────

    def snapshot(self) -> Tuple[str, bool]:
        return self._owner, self._paused

    def restore(self, snapshot: Tuple[str, bool]) -> None:
        self._owner, self._paused = snapshot


def privileged(action: str) -> Callable[[F], F]:
    """
    Restrict a method of an object exposing ``chain`` and ``access`` to the
    owner.  The caller identity is passed as the keyword-only ``sender``; the
    body runs inside one atomic invocation.
    """
    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: Any, *args: Any, sender: str, **kwargs: Any) -> Any:
            with self.chain.atomic():
                self.access.only_owner(sender, action)
                return fn(self, *args, **kwargs)
        return wrapper  # type: ignore[return-value]
    return decorator
