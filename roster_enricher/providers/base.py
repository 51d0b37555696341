"""Common contract and HTTP plumbing shared by all contact providers."""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..errors import (
    EnrichmentCancelled,
    InsufficientCredits,
    MalformedQuery,
    NotConfigured,
    ProviderError,
    ProviderUnavailable,
    RateLimited,
    RevealFailed,
)
from ..models import ContactRecord, ContactSource, ProviderResult, SearchCriteria

LOGGER = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    """Credential settings shared by every provider."""

    api_key: Optional[str] = None
    api_key_env: Optional[str] = None

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.getenv(self.api_key_env) or None
        return None


@dataclass
class HttpProviderConfig(ProviderConfig):
    """Runtime configuration shared by HTTP based providers."""

    base_url: str = ""
    timeout_seconds: float = 20.0
    user_agent: str = "roster-enricher/0.1"


class ProviderAdapter:
    """Base class for providers.

    Subclasses implement :meth:`search`, raising :class:`ProviderError`
    subclasses on failure. :meth:`fetch` is the isolation boundary: it never
    raises and always returns a :class:`ProviderResult`.
    """

    name: str = "provider"
    source: ContactSource = ContactSource.MANUAL
    cost_rank: int = 0
    paid: bool = False

    def is_configured(self) -> bool:
        return True

    def search(self, criteria: SearchCriteria, limit: int) -> List[ContactRecord]:
        raise NotImplementedError

    def fetch(self, criteria: SearchCriteria, limit: int, *, raise_on_error: bool = False) -> ProviderResult:
        started = time.monotonic()
        contacts: List[ContactRecord] = []
        error: Optional[Exception] = None
        try:
            contacts = list(self.search(criteria, limit))
        except NotConfigured as exc:
            LOGGER.info("Skipping %s: %s", self.name, exc.message)
            error = exc
        except RevealFailed as exc:
            LOGGER.warning("%s reveal failed, keeping %s masked contact(s): %s", self.name, len(exc.fallback_contacts), exc.message)
            contacts = list(exc.fallback_contacts)
            error = exc
        except ProviderError as exc:
            LOGGER.warning("%s failed (%s): %s", self.name, exc.status, exc.message)
            error = exc
        except EnrichmentCancelled:
            raise
        except Exception as exc:
            LOGGER.exception("Provider %s raised unexpectedly", self.name)
            if raise_on_error:
                raise
            error = exc
        return ProviderResult(
            provider=self.name,
            contacts=contacts,
            error=error,
            elapsed_seconds=time.monotonic() - started,
        )


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _snippet(response: httpx.Response, limit: int = 200) -> str:
    try:
        text = response.text
    except Exception:  # pragma: no cover - undecodable body
        return ""
    return text[:limit].strip()


class HttpProvider(ProviderAdapter):
    """Provider backed by an :class:`httpx.Client` with bounded timeouts."""

    config_class = HttpProviderConfig
    requires_credential: bool = True

    def __init__(
        self,
        config: Optional[Union[HttpProviderConfig, Dict[str, Any]]] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if isinstance(config, dict):
            config = self.config_class(**config)
        self.config = config or self.config_class()
        self._client = client
        self._owns_client = client is None

    def __enter__(self):
        self._ensure_client()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            LOGGER.debug("Closing HTTP client for %s", self.name)
            self._client.close()
            self._client = None

    def is_configured(self) -> bool:
        if not self.requires_credential:
            return True
        return bool(self.config.resolve_api_key())

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
            )
        return self._client

    def _require_api_key(self) -> str:
        api_key = self.config.resolve_api_key()
        if not api_key:
            variable = self.config.api_key_env or "api_key"
            raise NotConfigured(self.name, f"credential {variable} is not set")
        return api_key

    def _request(self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs: Any) -> httpx.Response:
        client = self._ensure_client()
        target = url.split("?", 1)[0]
        seconds = timeout if timeout is not None else self.config.timeout_seconds
        try:
            response = client.request(method, url, timeout=seconds, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderUnavailable(self.name, f"timed out after {seconds:g}s calling {target}") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.name, f"{method} {target} failed: {exc}") from exc
        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 429:
            raise RateLimited(self.name, _retry_after(response))
        if status in (400, 422):
            raise MalformedQuery(self.name, f"query rejected ({status}): {_snippet(response)}")
        if status == 402:
            raise InsufficientCredits(self.name, None, None)
        if status in (401, 403):
            raise ProviderUnavailable(self.name, f"credential rejected ({status})")
        raise ProviderUnavailable(self.name, f"unexpected response {status}: {_snippet(response)}")

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderUnavailable(self.name, "response was not valid JSON") from exc


__all__ = [
    "ProviderConfig",
    "HttpProviderConfig",
    "ProviderAdapter",
    "HttpProvider",
]
