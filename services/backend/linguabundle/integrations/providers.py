from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

import aioboto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from openai import APIError, APIStatusError, AsyncAzureOpenAI, AsyncOpenAI

from linguabundle.core.config import AppSettings
from linguabundle.core.errors import (
    GenerationError,
    ProviderNotConfiguredError,
    UnknownProviderError,
)
from linguabundle.schemas.translation import Bundle, GenerationRequest


logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*[^{}]+?\s*\}\}")


def build_translation_prompt(request: GenerationRequest) -> str:
    """Render the provider-agnostic instruction for translating a bundle."""
    serialized = json.dumps(request.base_bundle, ensure_ascii=False, indent=2)
    return (
        f'Translate this JSON object to the language code "{request.target_language}". '
        f"Context: {request.context}. "
        "IMPORTANT: Only return the raw, valid JSON object, with no markdown, comments, or other text. "
        "The JSON should have the exact same structure and keys as the source. "
        "Preserve HTML tags and placeholders like {{name}} exactly as written. "
        f"Terms: {serialized}"
    )


def strip_code_fences(value: str) -> str:
    value = value.strip()
    if value.startswith("```"):
        if value.lower().startswith("```json"):
            value = value[7:]
        else:
            value = value[3:]
        if value.endswith("```"):
            value = value[:-3]
    return value.strip()


def parse_bundle_text(text: str) -> Bundle:
    """Parse provider output into a bundle, tolerating markdown code fences."""
    sanitized = strip_code_fences(text or "")
    try:
        parsed = json.loads(sanitized)
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Provider returned text that is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise GenerationError("Provider returned JSON that is not an object.")
    return parsed


def flatten_bundle(bundle: Bundle, prefix: str = "") -> dict[str, Any]:
    flattened: dict[str, Any] = {}
    for key, value in bundle.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flattened.update(flatten_bundle(value, path))
        else:
            flattened[path] = value
    return flattened


def _placeholders(value: Any) -> list[str]:
    if not isinstance(value, str):
        return []
    return sorted(_PLACEHOLDER_PATTERN.findall(value))


class TranslationProvider:
    """Abstract machine-translation backend producing whole bundles."""

    name = "abstract"

    def __init__(self, *, strict_keys: bool = False) -> None:
        self._strict_keys = strict_keys

    async def generate(self, request: GenerationRequest) -> Bundle:
        prompt = build_translation_prompt(request)
        text = await self._complete(prompt, model=request.model)
        bundle = parse_bundle_text(text)
        self._check_shape(request, bundle)
        return bundle

    async def _complete(self, prompt: str, *, model: str | None) -> str:
        raise NotImplementedError

    def _check_shape(self, request: GenerationRequest, bundle: Bundle) -> None:
        source = flatten_bundle(request.base_bundle)
        generated = flatten_bundle(bundle)

        missing = sorted(set(source) - set(generated))
        unexpected = sorted(set(generated) - set(source))
        if missing or unexpected:
            message = (
                f"{self.name} returned a bundle for '{request.target_language}' with mismatched keys "
                f"(missing={missing}, unexpected={unexpected})."
            )
            if self._strict_keys:
                raise GenerationError(message)
            logger.warning(message)

        for key in sorted(set(source) & set(generated)):
            if _placeholders(source[key]) != _placeholders(generated[key]):
                logger.warning(
                    "Placeholders changed for key %s in '%s' translation: %s -> %s",
                    key,
                    request.target_language,
                    _placeholders(source[key]),
                    _placeholders(generated[key]),
                )


class GeminiProvider(TranslationProvider):
    """Google Gemini `generateContent` REST backend."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.5-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
        timeout: float = 60.0,
        strict_keys: bool = False,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        super().__init__(strict_keys=strict_keys)
        self._api_key = api_key
        self._model = model
        self._api_base = api_base.rstrip("/")
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        )

    async def _complete(self, prompt: str, *, model: str | None) -> str:
        if not self._api_key:
            raise ProviderNotConfiguredError(
                "Server is not configured with a GEMINI_API_KEY."
            )

        endpoint = f"{self._api_base}/models/{model or self._model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

        try:
            async with self._client_factory() as client:
                response = await client.post(
                    endpoint,
                    json=payload,
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise GenerationError(response.text or f"Gemini returned status {response.status_code}.")

        try:
            data = response.json()
        except ValueError as exc:
            raise GenerationError("Gemini returned a non-JSON payload.") from exc

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerationError("Gemini response did not contain candidate text.") from exc


class OpenAIProvider(TranslationProvider):
    """OpenAI chat completions backend."""

    name = "openai"

    def __init__(
        self,
        client: AsyncOpenAI | None,
        *,
        model: str | None,
        temperature: float = 0.2,
        max_output_tokens: int = 8192,
        strict_keys: bool = False,
    ):
        super().__init__(strict_keys=strict_keys)
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    def _missing_configuration_message(self) -> str:
        return "Server is not configured with an OPENAI_API_KEY."

    async def _complete(self, prompt: str, *, model: str | None) -> str:
        if self._client is None or not (model or self._model):
            raise ProviderNotConfiguredError(self._missing_configuration_message())

        try:
            response = await self._client.chat.completions.create(
                model=model or self._model,
                messages=[
                    {
                        "role": "system",
                        "content": "You translate JSON localization bundles and reply with JSON only.",
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_output_tokens,
                response_format={"type": "json_object"},
            )
        except APIStatusError as exc:
            raise GenerationError(f"{self.name} returned status {exc.status_code}: {exc.message}") from exc
        except APIError as exc:
            raise GenerationError(f"{self.name} request failed: {exc.message}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationError(f"{self.name} response did not contain message content.")
        return content


class AzureOpenAIProvider(OpenAIProvider):
    """Azure-hosted OpenAI deployment backend."""

    name = "azure_openai"

    def _missing_configuration_message(self) -> str:
        return (
            "Server is not configured with AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT "
            "and AZURE_OPENAI_DEPLOYMENT."
        )


class BedrockProvider(TranslationProvider):
    """AWS Bedrock text model backend."""

    name = "bedrock"

    def __init__(self, settings: AppSettings, *, strict_keys: bool = False):
        super().__init__(strict_keys=strict_keys)
        self._settings = settings

    async def _complete(self, prompt: str, *, model: str | None) -> str:
        model_id = model or self._settings.bedrock_model_id
        if not self._settings.bedrock_region or not model_id:
            raise ProviderNotConfiguredError(
                "Server is not configured with BEDROCK_REGION and BEDROCK_MODEL_ID."
            )

        body = json.dumps(
            {
                "inputText": prompt,
                "textGenerationConfig": {
                    "maxTokenCount": self._settings.generation_max_output_tokens,
                    "temperature": self._settings.generation_temperature,
                    "topP": 0.9,
                },
            }
        )
        try:
            async with self._bedrock_client() as client:
                response = await client.invoke_model(modelId=model_id, body=body)
                payload = await response["body"].read()
        except (BotoCoreError, ClientError) as exc:
            raise GenerationError(f"Bedrock invocation failed: {exc}") from exc

        try:
            parsed = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise GenerationError("Bedrock returned a non-JSON payload.") from exc

        results = parsed.get("results") if isinstance(parsed, dict) else None
        text = results[0].get("outputText") if results else None
        if not text:
            raise GenerationError("Bedrock response did not contain output text.")
        return text

    def _bedrock_client(self):
        session_kwargs: dict[str, Any] = {"region_name": self._settings.bedrock_region}
        if self._settings.aws_access_key_id and self._settings.aws_secret_access_key:
            session_kwargs.update(
                {
                    "aws_access_key_id": self._settings.aws_access_key_id.get_secret_value(),
                    "aws_secret_access_key": self._settings.aws_secret_access_key.get_secret_value(),
                }
            )

        session = aioboto3.Session()
        return session.client("bedrock-runtime", **session_kwargs)


class RemoteGenerationProvider(TranslationProvider):
    """Delegates generation to a linguabundle server's `/generate-translation` proxy."""

    name = "remote"

    def __init__(
        self,
        api_endpoint: str | None,
        *,
        timeout: float = 60.0,
        strict_keys: bool = False,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        super().__init__(strict_keys=strict_keys)
        self._api_endpoint = (api_endpoint or "").rstrip("/")
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        )

    async def generate(self, request: GenerationRequest) -> Bundle:
        if not self._api_endpoint:
            raise ProviderNotConfiguredError("REMOTE_API_ENDPOINT is not configured.")

        payload: dict[str, Any] = {
            "targetLanguage": request.target_language,
            "baseTranslations": request.base_bundle,
            "context": request.context,
        }
        if request.model:
            payload["model"] = request.model

        try:
            async with self._client_factory() as client:
                response = await client.post(
                    f"{self._api_endpoint}/generate-translation",
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation proxy request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise GenerationError(self._extract_error(response))

        bundle = parse_bundle_text(response.text)
        self._check_shape(request, bundle)
        return bundle

    def _extract_error(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return "AI generation via server failed."


def create_provider(settings: AppSettings) -> TranslationProvider:
    """Build the provider selected by TRANSLATION_PROVIDER."""
    provider_id = (settings.translation_provider or "").strip().lower()
    strict = settings.strict_key_validation

    if provider_id == "gemini":
        return GeminiProvider(
            settings.gemini_api_key.get_secret_value() if settings.gemini_api_key else None,
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            temperature=settings.generation_temperature,
            max_output_tokens=settings.generation_max_output_tokens,
            timeout=settings.request_timeout_seconds,
            strict_keys=strict,
        )

    if provider_id == "openai":
        client = None
        if settings.openai_api_key:
            client = AsyncOpenAI(
                api_key=settings.openai_api_key.get_secret_value(),
                timeout=settings.request_timeout_seconds,
            )
        return OpenAIProvider(
            client,
            model=settings.openai_model,
            temperature=settings.generation_temperature,
            max_output_tokens=settings.generation_max_output_tokens,
            strict_keys=strict,
        )

    if provider_id == "azure_openai":
        client = None
        if settings.azure_openai_api_key and settings.azure_openai_endpoint:
            client = AsyncAzureOpenAI(
                api_key=settings.azure_openai_api_key.get_secret_value(),
                azure_endpoint=settings.azure_openai_endpoint,
                api_version=settings.azure_openai_api_version or "2024-02-15-preview",
                timeout=settings.request_timeout_seconds,
            )
        return AzureOpenAIProvider(
            client,
            model=settings.azure_openai_deployment,
            temperature=settings.generation_temperature,
            max_output_tokens=settings.generation_max_output_tokens,
            strict_keys=strict,
        )

    if provider_id == "bedrock":
        return BedrockProvider(settings, strict_keys=strict)

    if provider_id == "remote":
        return RemoteGenerationProvider(
            settings.remote_api_endpoint,
            timeout=settings.request_timeout_seconds,
            strict_keys=strict,
        )

    raise UnknownProviderError(
        f"Unsupported translation provider '{settings.translation_provider}'."
    )
