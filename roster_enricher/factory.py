"""Factory helpers for constructing provider instances from configuration."""
from __future__ import annotations

import importlib
from typing import Any, Dict, List

from .config import ConfigurationError, iter_enabled_provider_configs
from .rate_limit import DelayPolicy, RateLimitedProvider, RateLimiter


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid provider class path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Could not import provider module '{module_name}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_providers(config: Dict[str, Any]) -> List[RateLimitedProvider]:
    """Instantiate provider classes defined in the configuration file."""

    providers: List[RateLimitedProvider] = []
    for provider_cfg in iter_enabled_provider_configs(config):
        class_path = provider_cfg.get("class")
        if not class_path:
            raise ConfigurationError("Provider configuration missing required 'class' field")

        options = provider_cfg.get("options", {}) or {}
        provider_cls = _load_class(class_path)
        try:
            provider_instance = provider_cls(**options)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid options for provider '{class_path}': {exc}") from exc

        display_name = provider_cfg.get("name")
        cost_rank = provider_cfg.get("cost_rank")
        delay_seconds = float(provider_cfg.get("delay_seconds", 0) or 0)
        calls_per_minute = provider_cfg.get("rate_limit_per_minute")
        rate_limiter = RateLimiter(float(calls_per_minute)) if calls_per_minute else RateLimiter(None)

        providers.append(
            RateLimitedProvider(
                provider_instance,
                display_name=display_name,
                cost_rank=int(cost_rank) if cost_rank is not None else None,
                delay_policy=DelayPolicy(delay_seconds=delay_seconds),
                rate_limiter=rate_limiter,
            )
        )
    return providers
