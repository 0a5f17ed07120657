from typing import Any

from fastapi import APIRouter, Body, Depends, status

from linguabundle.api.deps import get_translation_provider
from linguabundle.core.errors import BadRequestError
from linguabundle.integrations.providers import TranslationProvider
from linguabundle.schemas.translation import GenerateTranslationPayload, GenerationRequest

router = APIRouter()


@router.post(
    "/generate-translation",
    status_code=status.HTTP_200_OK,
    summary="Translate a base bundle with the active provider.",
)
async def generate_translation(
    payload: GenerateTranslationPayload | None = Body(default=None),
    provider: TranslationProvider = Depends(get_translation_provider),
) -> dict[str, Any]:
    """Return the generated bundle without persisting it."""
    payload = payload or GenerateTranslationPayload()
    if not payload.target_language or payload.base_translations is None:
        raise BadRequestError("Missing target language or base translations.")
    if not isinstance(payload.target_language, str):
        raise BadRequestError("targetLanguage must be a string.")
    if not isinstance(payload.base_translations, dict):
        raise BadRequestError("baseTranslations must be a JSON object.")

    return await provider.generate(
        GenerationRequest(
            target_language=payload.target_language,
            base_bundle=payload.base_translations,
            context=payload.context or "",
            model=payload.model,
        )
    )
