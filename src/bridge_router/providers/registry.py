"""Explicit registry of bridge adapters and their declared route support."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from bridge_router.domain.interfaces import IBridgeAdapter
from bridge_router.domain.models import ProviderDescriptor, QuoteRequest


@dataclass(frozen=True)
class RegisteredProvider:
    adapter: IBridgeAdapter
    descriptor: ProviderDescriptor

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.display_name


class ProviderRegistry:
    """Holds adapters keyed by stable provider id, in registration order.

    The registry is populated once at startup and only read while requests
    are processed.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._providers: Dict[str, RegisteredProvider] = {}
        self._logger = logger or logging.getLogger(__name__)

    def register(self, adapter: IBridgeAdapter, descriptor: ProviderDescriptor) -> None:
        if descriptor.id in self._providers:
            self._logger.warning(
                "provider_overwritten", extra={"provider": descriptor.id}
            )
        self._providers[descriptor.id] = RegisteredProvider(adapter, descriptor)
        self._logger.info("provider_registered", extra={"provider": descriptor.id})

    def unregister(self, provider_id: str) -> None:
        self._providers.pop(provider_id, None)

    def get(self, provider_id: str) -> Optional[RegisteredProvider]:
        return self._providers.get(provider_id)

    def descriptors(self) -> List[ProviderDescriptor]:
        return [entry.descriptor for entry in self._providers.values()]

    def eligible(self, request: QuoteRequest) -> List[RegisteredProvider]:
        """Active providers whose declared and adapter-level support match."""

        return [
            entry
            for entry in self._providers.values()
            if entry.descriptor.supports(
                request.source_chain, request.destination_chain, request.source_token
            )
            and entry.adapter.supports_route(
                request.source_chain, request.destination_chain, request.source_token
            )
        ]

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers
