"""Utilities for applying delay and rate limiting to provider calls."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import List, Optional

from .errors import RateLimited
from .models import ContactRecord, ProviderResult, SearchCriteria

LOGGER = logging.getLogger(__name__)


@dataclass
class DelayPolicy:
    """Simple policy describing artificial delay behaviour after a provider call."""

    delay_seconds: float = 0.0


class RateLimiter:
    """Spaces provider calls at least ``60 / calls_per_minute`` seconds apart.

    A provider that answered 429 can push the next slot back with
    :meth:`cool_down`; the held-off call waits instead of hitting the
    provider again too early. ``None`` or ``0`` means no spacing.
    """

    def __init__(self, calls_per_minute: Optional[float]) -> None:
        self.interval = 60.0 / float(calls_per_minute) if calls_per_minute else 0.0
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def acquire(self) -> None:
        with self._lock:
            now = time.monotonic()
            if now < self._next_slot:
                time.sleep(self._next_slot - now)
                now = time.monotonic()
            self._next_slot = now + self.interval

    def cool_down(self, seconds: float) -> None:
        with self._lock:
            self._next_slot = max(self._next_slot, time.monotonic() + seconds)


class RateLimitedProvider:
    """Wrapper that enforces delay and rate limiting when invoking a provider."""

    def __init__(
        self,
        provider,
        *,
        display_name: Optional[str] = None,
        cost_rank: Optional[int] = None,
        delay_policy: Optional[DelayPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._provider = provider
        self._display_name = display_name
        self._cost_rank = cost_rank
        self._delay_policy = delay_policy or DelayPolicy()
        self._rate_limiter = rate_limiter or RateLimiter(None)

    @property
    def name(self) -> str:
        if self._display_name:
            return self._display_name
        return getattr(self._provider, "name", self._provider.__class__.__name__)

    @property
    def cost_rank(self) -> int:
        if self._cost_rank is not None:
            return self._cost_rank
        return getattr(self._provider, "cost_rank", 0)

    @property
    def wrapped(self):
        return self._provider

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        self._rate_limiter.acquire()
        try:
            return self._provider.search(criteria, limit)
        finally:
            self._sleep()

    def fetch(self, criteria: SearchCriteria, limit: int, *, raise_on_error: bool = False) -> ProviderResult:
        self._rate_limiter.acquire()
        try:
            result = self._provider.fetch(criteria, limit, raise_on_error=raise_on_error)
        finally:
            self._sleep()
        if isinstance(result.error, RateLimited) and result.error.retry_after:
            LOGGER.info("%s asked to retry after %ss; holding off further calls", self.name, result.error.retry_after)
            self._rate_limiter.cool_down(result.error.retry_after)
        result.provider = self.name
        return result

    def _sleep(self) -> None:
        if self._delay_policy.delay_seconds > 0:
            time.sleep(self._delay_policy.delay_seconds)

    def __getattr__(self, item):  # pragma: no cover - simple delegation
        return getattr(self._provider, item)


__all__ = ["DelayPolicy", "RateLimiter", "RateLimitedProvider"]
