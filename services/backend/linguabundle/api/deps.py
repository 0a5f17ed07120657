from linguabundle.core.config import get_settings
from linguabundle.integrations.bundle_store import BundleStore, create_bundle_store
from linguabundle.integrations.providers import TranslationProvider, create_provider
from linguabundle.services.resolver import TranslationResolver, create_translation_resolver

_bundle_store: BundleStore | None = None
_provider: TranslationProvider | None = None
_resolver: TranslationResolver | None = None


async def get_bundle_store() -> BundleStore:
    """Provide the configured BundleStore singleton."""
    global _bundle_store
    if _bundle_store is None:
        _bundle_store = create_bundle_store(get_settings())
    return _bundle_store


async def get_translation_provider() -> TranslationProvider:
    """Provide the active TranslationProvider singleton."""
    global _provider
    if _provider is None:
        _provider = create_provider(get_settings())
    return _provider


async def get_translation_resolver() -> TranslationResolver:
    """Provide the process-wide TranslationResolver and its session cache."""
    global _resolver
    if _resolver is None:
        _resolver = create_translation_resolver(
            get_settings(),
            store=await get_bundle_store(),
            provider=await get_translation_provider(),
        )
    return _resolver


def reset_dependencies() -> None:
    """Drop cached singletons so the next request rebuilds them from settings."""
    global _bundle_store, _provider, _resolver
    _bundle_store = None
    _provider = None
    _resolver = None
