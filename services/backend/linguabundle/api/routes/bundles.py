from typing import Any

from fastapi import APIRouter, Depends, Query

from linguabundle.api.deps import get_translation_resolver
from linguabundle.services.resolver import TranslationResolver

router = APIRouter()


@router.get(
    "/{language}",
    summary="Resolve a bundle, generating and saving it when it does not exist yet.",
)
async def resolve_bundle(
    language: str,
    namespace: str | None = Query(default=None, description="Bundle namespace (defaults to DEFAULT_NAMESPACE)."),
    resolver: TranslationResolver = Depends(get_translation_resolver),
) -> dict[str, Any]:
    return await resolver.get_translations(language, namespace)
