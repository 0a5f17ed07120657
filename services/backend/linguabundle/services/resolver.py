from __future__ import annotations

import asyncio
import logging

from linguabundle.core.config import AppSettings
from linguabundle.core.errors import NotFoundError, PersistenceError
from linguabundle.integrations.bundle_store import BundleStore, create_bundle_store
from linguabundle.integrations.providers import TranslationProvider, create_provider
from linguabundle.schemas.translation import Bundle, GenerationRequest
from linguabundle.services.cache import SessionCache
from linguabundle.services.paths import PathResolver

logger = logging.getLogger(__name__)


class TranslationResolver:
    """Resolve bundles from cache or store, generating missing ones from the base language.

    A bundle that is absent from the store is produced by translating the
    base-language bundle of the same namespace, written back to the store,
    and cached for the lifetime of this resolver. Only a missing target
    bundle triggers generation; every other store failure propagates.
    """

    def __init__(
        self,
        store: BundleStore,
        provider: TranslationProvider,
        *,
        base_language: str = "en",
        context: str = "A web application interface",
        path_resolver: PathResolver | None = None,
        default_namespace: str = "common",
        cache: SessionCache | None = None,
        deduplicate: bool = True,
    ) -> None:
        self._store = store
        self._provider = provider
        self._base_language = base_language
        self._context = context
        self._paths = path_resolver or PathResolver()
        self._default_namespace = default_namespace
        self._cache = cache if cache is not None else SessionCache()
        self._deduplicate = deduplicate
        self._inflight: dict[str, asyncio.Task[Bundle]] = {}
        self.generation_count = 0

    @property
    def base_language(self) -> str:
        return self._base_language

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    @property
    def path_resolver(self) -> PathResolver:
        return self._paths

    def cached_keys(self) -> list[str]:
        return self._cache.keys()

    async def get_translations(self, language: str, namespace: str | None = None) -> Bundle:
        namespace = namespace or self._default_namespace
        key = self._paths.resolve(language, namespace)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if not self._deduplicate:
            return await self._resolve(key, language, namespace)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve(key, language, namespace))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._release(key, done))
        # Abandoning this caller must not cancel the resolution other callers share.
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[Bundle]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve(self, key: str, language: str, namespace: str) -> Bundle:
        try:
            bundle = await self._store.fetch(key)
        except NotFoundError:
            if language == self._base_language:
                raise
            logger.info("No bundle stored at %s; generating from '%s'.", key, self._base_language)
        else:
            self._cache.put(key, bundle)
            return bundle

        return await self._generate_and_save(key, language, namespace)

    async def _generate_and_save(self, key: str, language: str, namespace: str) -> Bundle:
        base_key = self._paths.resolve(self._base_language, namespace)
        base_bundle = await self._store.fetch(base_key)

        generated = await self._provider.generate(
            GenerationRequest(
                target_language=language,
                base_bundle=base_bundle,
                context=self._context,
            )
        )
        self.generation_count += 1

        try:
            await self._store.put(key, generated)
        except PersistenceError as exc:
            logger.error(
                "Generated bundle %s could not be persisted; returning it uncached.",
                key,
                exc_info=exc,
            )
            return generated

        self._cache.put(key, generated)
        return generated


def create_translation_resolver(
    settings: AppSettings,
    *,
    store: BundleStore | None = None,
    provider: TranslationProvider | None = None,
) -> TranslationResolver:
    """Build a resolver wired from settings, reusing a store or provider when given."""
    return TranslationResolver(
        store if store is not None else create_bundle_store(settings),
        provider if provider is not None else create_provider(settings),
        base_language=settings.base_language,
        context=settings.generation_context,
        path_resolver=PathResolver(settings.path_template),
        default_namespace=settings.default_namespace,
        deduplicate=settings.deduplicate_generation,
    )
