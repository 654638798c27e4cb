"""
Provider registry and fallback chain construction
"""

from typing import Iterable, Iterator, Mapping, Optional

from ..core.exceptions import ConfigurationError
from ..core.interfaces import TranscriptionProvider
from ..core.logging import get_logger

logger = get_logger(__name__)


class ProviderRegistry(Mapping[str, TranscriptionProvider]):
    """
    Read-only mapping from provider name to adapter instance

    Built once at startup and shared by every transcription call.
    """

    def __init__(self, providers: Iterable[TranscriptionProvider] = ()):
        self._providers: dict[str, TranscriptionProvider] = {}
        for provider in providers:
            name = provider.name
            if name in self._providers:
                raise ConfigurationError(f"Duplicate transcription provider: {name}")
            self._providers[name] = provider

    def __getitem__(self, name: str) -> TranscriptionProvider:
        return self._providers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __repr__(self) -> str:
        return f"ProviderRegistry({list(self._providers)})"

    @property
    def names(self) -> list[str]:
        return list(self._providers)

    async def close(self) -> None:
        """Close every provider's network resources"""
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Failed to close provider {provider.name}: {e}")


def build_fallback_chain(
    preferred: Optional[str],
    configured_order: Iterable[str],
    registry: Mapping[str, TranscriptionProvider],
) -> list[TranscriptionProvider]:
    """
    Build the ordered, duplicate-free list of providers to try

    The preferred provider comes first when it is registered; the rest
    follow the configured order. Unregistered names are skipped silently.

    Args:
        preferred: Preferred provider name
        configured_order: Configured fallback order
        registry: Provider name to adapter mapping

    Returns:
        Providers in the order they should be attempted
    """
    chain: list[TranscriptionProvider] = []
    added: set[str] = set()

    if preferred is not None and preferred in registry:
        chain.append(registry[preferred])
        added.add(preferred)

    for name in configured_order:
        if name in added or name not in registry:
            continue
        chain.append(registry[name])
        added.add(name)

    return chain
