from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Bundle = dict[str, Any]


@dataclass(frozen=True)
class GenerationRequest:
    """Provider-agnostic request to translate a base bundle."""

    target_language: str
    base_bundle: Bundle
    context: str
    model: str | None = None


class GenerateTranslationPayload(BaseModel):
    """Body accepted by the generation proxy endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    # Shape checks happen in the route so malformed input answers 400, not 422.
    target_language: Any = Field(
        default=None,
        alias="targetLanguage",
        description="Language code the bundle should be translated into.",
    )
    base_translations: Any = Field(
        default=None,
        alias="baseTranslations",
        description="Base-language bundle used as the translation source.",
    )
    context: str | None = Field(
        default="",
        description="Free-text hint describing where the strings are used.",
    )
    model: str | None = Field(
        default=None,
        description="Optional override of the active provider's default model.",
    )


class BundleSavedResponse(BaseModel):
    message: str = Field(..., description="Human-readable confirmation.")
    path: str = Field(..., description="Store-relative path the bundle was written to.")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable failure description.")
