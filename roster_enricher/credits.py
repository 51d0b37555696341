"""Local bookkeeping for the paid provider's credit balance."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .errors import InsufficientCredits

LOGGER = logging.getLogger(__name__)

BalanceQuery = Callable[[], Optional[int]]


class CreditLedger:
    """Tracks the last known balance and gates paid reveals behind a pre-flight check.

    The balance belongs to the provider. Every read is treated as stale: the
    ledger re-queries it right before a reveal and again after the attempt.
    The check only avoids obviously unaffordable calls; the provider remains
    the final authority. A lock held across pre-flight and reveal keeps two
    paid calls from spending against the same balance read.
    """

    def __init__(
        self,
        query_balance: BalanceQuery,
        *,
        provider: str = "paid_people_search",
        allow_unknown_balance: bool = True,
    ) -> None:
        self._query_balance = query_balance
        self._provider = provider
        self._allow_unknown_balance = allow_unknown_balance
        self._lock = threading.Lock()
        self._remaining: Optional[int] = None
        self._used = 0

    @property
    def remaining(self) -> Optional[int]:
        """Last known balance; ``None`` when it has never been read successfully."""

        return self._remaining

    @property
    def used(self) -> int:
        """Credits consumed by reveals made through this ledger."""

        return self._used

    def refresh(self) -> Optional[int]:
        """Re-read the balance; returns the fresh value or ``None`` if the query gave nothing."""

        try:
            balance = self._query_balance()
        except Exception:  # pragma: no cover - query callables should not raise
            LOGGER.exception("Credit balance query failed for %s", self._provider)
            return None
        if balance is None:
            LOGGER.debug("Credit balance for %s unavailable; keeping %s", self._provider, self._remaining)
            return None
        self._remaining = int(balance)
        LOGGER.debug("Credit balance for %s: %s", self._provider, self._remaining)
        return self._remaining

    def check(self, cost: int) -> None:
        """Raise :class:`InsufficientCredits` when ``cost`` exceeds the known balance."""

        if cost <= 0:
            return
        if self._remaining is None:
            if self._allow_unknown_balance:
                LOGGER.warning(
                    "Credit balance for %s is unknown; proceeding with a %s credit reveal",
                    self._provider,
                    cost,
                )
                return
            raise InsufficientCredits(self._provider, cost, None)
        if cost > self._remaining:
            raise InsufficientCredits(self._provider, cost, self._remaining)

    @contextmanager
    def reserve(self, cost: int) -> Iterator["CreditLedger"]:
        """Serialise a paid call: re-read, check, run the body, then re-read again.

        Credits are recorded as used only when the body completes. The balance
        is re-read after the body whether it succeeded or failed.
        """

        with self._lock:
            self.refresh()
            self.check(cost)
            try:
                yield self
            except BaseException:
                self.refresh()
                raise
            self._used += cost
            if self.refresh() is None and self._remaining is not None:
                self._remaining = max(self._remaining - cost, 0)


__all__ = ["CreditLedger", "BalanceQuery"]
