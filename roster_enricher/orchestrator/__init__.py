"""Cascade orchestration: run providers, merge, store."""

from .service import EnrichmentOrchestrator, ProviderDescriptor, ProviderProtocol, order_providers

__all__ = ["EnrichmentOrchestrator", "ProviderDescriptor", "ProviderProtocol", "order_providers"]
