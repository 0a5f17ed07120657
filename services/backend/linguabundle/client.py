from __future__ import annotations

from linguabundle.integrations.bundle_store import HttpBundleStore
from linguabundle.integrations.providers import RemoteGenerationProvider
from linguabundle.services.paths import DEFAULT_PATH_TEMPLATE, PathResolver
from linguabundle.services.resolver import TranslationResolver


def create_remote_resolver(
    api_endpoint: str = "/api",
    *,
    base_language: str = "en",
    context: str = "A web application interface",
    path_template: str = DEFAULT_PATH_TEMPLATE,
    default_namespace: str = "common",
    timeout: float = 60.0,
) -> TranslationResolver:
    """Return a resolver that reads, generates and saves bundles through a linguabundle server.

    The server owns the store and the provider credentials; this side only
    keeps the session cache.
    """
    return TranslationResolver(
        HttpBundleStore(api_endpoint, timeout=timeout),
        RemoteGenerationProvider(api_endpoint, timeout=timeout),
        base_language=base_language,
        context=context,
        path_resolver=PathResolver(path_template),
        default_namespace=default_namespace,
    )
