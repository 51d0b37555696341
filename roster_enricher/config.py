"""Configuration helpers for the enrichment pipeline."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .merge import DEFAULT_MAX_ROSTER_SIZE
from .regions import DEFAULT_FOCUS_REGION, get_focus_region

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


@dataclass
class PipelineSettings:
    """Orchestrator-wide knobs read from the top level of the configuration file."""

    max_roster_size: int = DEFAULT_MAX_ROSTER_SIZE
    sufficient_contacts: int = DEFAULT_MAX_ROSTER_SIZE
    default_focus_region: str = DEFAULT_FOCUS_REGION
    concurrent: bool = False
    max_workers: Optional[int] = None


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        data = yaml.safe_load(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def iter_enabled_provider_configs(config: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    providers = config.get("providers", [])
    for provider in providers:
        if provider.get("enabled", True):
            yield provider
        else:
            LOGGER.debug("Skipping disabled provider %s", provider.get("name"))


def pipeline_settings(config: Dict[str, Any]) -> PipelineSettings:
    section = config.get("pipeline", {}) or {}
    settings = PipelineSettings()
    try:
        if "max_roster_size" in section:
            settings.max_roster_size = int(section["max_roster_size"])
        if "sufficient_contacts" in section:
            settings.sufficient_contacts = int(section["sufficient_contacts"])
        if section.get("max_workers") is not None:
            settings.max_workers = int(section["max_workers"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid pipeline setting: {exc}") from exc
    if "concurrent" in section:
        settings.concurrent = bool(section["concurrent"])
    if section.get("focus_region"):
        try:
            settings.default_focus_region = get_focus_region(section["focus_region"]).code
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
    if settings.max_roster_size < 1:
        raise ConfigurationError("pipeline.max_roster_size must be at least 1")
    return settings


__all__ = [
    "ConfigurationError",
    "PipelineSettings",
    "load_configuration",
    "iter_enabled_provider_configs",
    "pipeline_settings",
]
