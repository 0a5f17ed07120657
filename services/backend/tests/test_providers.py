from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from linguabundle.core.config import AppSettings
from linguabundle.core.errors import (
    ConfigurationError,
    GenerationError,
    ProviderNotConfiguredError,
    UnknownProviderError,
)
from linguabundle.integrations import providers as providers_module
from linguabundle.integrations.providers import (
    AzureOpenAIProvider,
    BedrockProvider,
    GeminiProvider,
    OpenAIProvider,
    RemoteGenerationProvider,
    build_translation_prompt,
    create_provider,
    parse_bundle_text,
)
from linguabundle.schemas.translation import GenerationRequest


class DummyAsyncClient:
    """Minimal async client stub recording POST requests."""

    def __init__(self, response: httpx.Response):
        self._response = response
        self.calls: list[dict[str, object]] = []

    async def __aenter__(self) -> DummyAsyncClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        return None

    async def post(self, url: str, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self._response


class StubCompletions:
    def __init__(self, content: str | None) -> None:
        self._content = content
        self.calls: list[dict[str, object]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _stub_openai_client(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=StubCompletions(content)))


def _gemini_envelope(text: str) -> dict[str, object]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


REQUEST = GenerationRequest(
    target_language="fr",
    base_bundle={"title": "Welcome", "greeting": "Hello <b>{{name}}</b>!"},
    context="A bakery ordering app",
)


def test_prompt_names_language_context_and_embeds_bundle() -> None:
    prompt = build_translation_prompt(REQUEST)

    assert '"fr"' in prompt
    assert "A bakery ordering app" in prompt
    assert "raw, valid JSON object" in prompt
    assert "same structure and keys" in prompt
    assert "{{name}}" in prompt
    assert "HTML tags" in prompt
    assert json.dumps(REQUEST.base_bundle, ensure_ascii=False, indent=2) in prompt


@pytest.mark.parametrize(
    "text",
    [
        '{"title": "Bienvenue"}',
        '```json\n{"title": "Bienvenue"}\n```',
        '```\n{"title": "Bienvenue"}\n```',
        '  ```JSON\n{"title": "Bienvenue"}```  ',
    ],
)
def test_parse_bundle_text_strips_code_fences(text: str) -> None:
    assert parse_bundle_text(text) == {"title": "Bienvenue"}


@pytest.mark.parametrize("text", ["not json", "```json\n[1, 2]\n```", "", '"just a string"'])
def test_parse_bundle_text_rejects_non_objects(text: str) -> None:
    with pytest.raises(GenerationError):
        parse_bundle_text(text)


@pytest.mark.asyncio
async def test_gemini_provider_posts_prompt_and_parses_fenced_candidate() -> None:
    response = httpx.Response(
        200,
        json=_gemini_envelope('```json\n{"title": "Bienvenue", "greeting": "Bonjour <b>{{name}}</b> !"}\n```'),
    )
    client = DummyAsyncClient(response)
    provider = GeminiProvider("gm-key", client_factory=lambda: client)

    bundle = await provider.generate(REQUEST)

    assert bundle == {"title": "Bienvenue", "greeting": "Bonjour <b>{{name}}</b> !"}
    call = client.calls[-1]
    assert str(call["url"]).endswith("/models/gemini-2.5-flash:generateContent")
    assert call["headers"] == {"x-goog-api-key": "gm-key"}
    body = call["json"]
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert body["generationConfig"]["temperature"] == 0.2
    assert '"fr"' in body["contents"][0]["parts"][0]["text"]


@pytest.mark.asyncio
async def test_gemini_provider_honours_model_override() -> None:
    client = DummyAsyncClient(httpx.Response(200, json=_gemini_envelope('{"title": "Bienvenue", "greeting": "Salut {{name}}"}')))
    provider = GeminiProvider("gm-key", client_factory=lambda: client)

    await provider.generate(
        GenerationRequest(
            target_language="fr",
            base_bundle=REQUEST.base_bundle,
            context="",
            model="gemini-2.5-pro",
        )
    )

    assert str(client.calls[-1]["url"]).endswith("/models/gemini-2.5-pro:generateContent")


@pytest.mark.asyncio
async def test_gemini_provider_without_key_is_not_configured() -> None:
    provider = GeminiProvider(None)

    with pytest.raises(ProviderNotConfiguredError) as excinfo:
        await provider.generate(REQUEST)

    assert isinstance(excinfo.value, GenerationError)
    assert isinstance(excinfo.value, ConfigurationError)
    assert "GEMINI_API_KEY" in str(excinfo.value)


@pytest.mark.asyncio
async def test_gemini_provider_surfaces_error_status_body() -> None:
    client = DummyAsyncClient(httpx.Response(429, text="Resource has been exhausted"))
    provider = GeminiProvider("gm-key", client_factory=lambda: client)

    with pytest.raises(GenerationError) as excinfo:
        await provider.generate(REQUEST)

    assert excinfo.value.provider_message == "Resource has been exhausted"


@pytest.mark.asyncio
async def test_gemini_provider_rejects_non_json_envelope() -> None:
    client = DummyAsyncClient(httpx.Response(200, text="<html>gateway</html>"))
    provider = GeminiProvider("gm-key", client_factory=lambda: client)

    with pytest.raises(GenerationError, match="non-JSON"):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_gemini_provider_rejects_envelope_without_candidates() -> None:
    client = DummyAsyncClient(httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))
    provider = GeminiProvider("gm-key", client_factory=lambda: client)

    with pytest.raises(GenerationError, match="candidate"):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_openai_provider_reads_chat_choice_and_strips_fences() -> None:
    client = _stub_openai_client('```json\n{"title": "Bienvenue", "greeting": "Bonjour {{name}}"}\n```')
    provider = OpenAIProvider(client, model="gpt-4o-mini")  # type: ignore[arg-type]

    bundle = await provider.generate(REQUEST)

    assert bundle["title"] == "Bienvenue"
    call = client.chat.completions.calls[-1]
    assert call["model"] == "gpt-4o-mini"
    assert call["response_format"] == {"type": "json_object"}
    assert '"fr"' in call["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_openai_provider_uses_request_model_override() -> None:
    client = _stub_openai_client('{"title": "Bienvenue", "greeting": "Bonjour {{name}}"}')
    provider = OpenAIProvider(client, model="gpt-4o-mini")  # type: ignore[arg-type]

    await provider.generate(
        GenerationRequest(
            target_language="fr",
            base_bundle=REQUEST.base_bundle,
            context="",
            model="gpt-4.1",
        )
    )

    assert client.chat.completions.calls[-1]["model"] == "gpt-4.1"


@pytest.mark.asyncio
async def test_openai_provider_without_client_is_not_configured() -> None:
    provider = OpenAIProvider(None, model="gpt-4o-mini")

    with pytest.raises(ProviderNotConfiguredError, match="OPENAI_API_KEY"):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_azure_provider_without_deployment_is_not_configured() -> None:
    provider = AzureOpenAIProvider(_stub_openai_client("{}"), model=None)  # type: ignore[arg-type]

    with pytest.raises(ProviderNotConfiguredError, match="AZURE_OPENAI_DEPLOYMENT"):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_openai_provider_rejects_empty_content() -> None:
    provider = OpenAIProvider(_stub_openai_client(None), model="gpt-4o-mini")  # type: ignore[arg-type]

    with pytest.raises(GenerationError, match="message content"):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_key_mismatch_is_tolerated_unless_strict(caplog: pytest.LogCaptureFixture) -> None:
    partial = '{"title": "Bienvenue"}'

    lenient = OpenAIProvider(_stub_openai_client(partial), model="gpt-4o-mini")  # type: ignore[arg-type]
    with caplog.at_level("WARNING"):
        assert await lenient.generate(REQUEST) == {"title": "Bienvenue"}
    assert "mismatched keys" in caplog.text

    strict = OpenAIProvider(  # type: ignore[arg-type]
        _stub_openai_client(partial), model="gpt-4o-mini", strict_keys=True
    )
    with pytest.raises(GenerationError, match="greeting"):
        await strict.generate(REQUEST)


@pytest.mark.asyncio
async def test_altered_placeholder_is_accepted_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    altered = '{"title": "Bienvenue", "greeting": "Bonjour {{nom}} !"}'
    provider = OpenAIProvider(  # type: ignore[arg-type]
        _stub_openai_client(altered), model="gpt-4o-mini", strict_keys=True
    )

    with caplog.at_level("WARNING"):
        bundle = await provider.generate(REQUEST)

    assert bundle["greeting"] == "Bonjour {{nom}} !"
    assert "Placeholders changed for key greeting" in caplog.text


@pytest.mark.asyncio
async def test_nested_bundles_are_compared_by_key_path() -> None:
    request = GenerationRequest(
        target_language="it",
        base_bundle={"nav": {"home": "Home", "about": "About"}},
        context="",
    )
    provider = OpenAIProvider(  # type: ignore[arg-type]
        _stub_openai_client('{"nav": {"home": "Inizio", "about": "Chi siamo"}}'),
        model="gpt-4o-mini",
        strict_keys=True,
    )

    assert await provider.generate(request) == {"nav": {"home": "Inizio", "about": "Chi siamo"}}


@pytest.mark.asyncio
async def test_bedrock_provider_invokes_model(monkeypatch: pytest.MonkeyPatch) -> None:
    invocations: list[dict[str, object]] = []

    class StubBody:
        def __init__(self, payload: bytes) -> None:
            self._payload = payload

        async def read(self) -> bytes:
            return self._payload

    class StubBedrockClient:
        async def __aenter__(self) -> StubBedrockClient:
            return self

        async def __aexit__(self, exc_type, exc, tb) -> None:
            return None

        async def invoke_model(self, *, modelId: str, body: str) -> dict[str, object]:
            invocations.append({"model_id": modelId, "body": json.loads(body)})
            text = '```json\n{"title": "Bienvenue", "greeting": "Bonjour {{name}}"}\n```'
            payload = json.dumps({"results": [{"outputText": text}]}).encode("utf-8")
            return {"body": StubBody(payload)}

    class StubSession:
        def client(self, *args, **kwargs):
            invocations.append({"client_args": args, "client_kwargs": kwargs})
            return StubBedrockClient()

    monkeypatch.setattr(providers_module.aioboto3, "Session", lambda: StubSession())

    settings = AppSettings(BEDROCK_REGION="us-east-1", BEDROCK_MODEL_ID="amazon.titan-text-express-v1")
    provider = BedrockProvider(settings)

    bundle = await provider.generate(REQUEST)

    assert bundle["title"] == "Bienvenue"
    assert any(entry.get("model_id") == "amazon.titan-text-express-v1" for entry in invocations)
    assert any(entry.get("client_args") == ("bedrock-runtime",) for entry in invocations)


@pytest.mark.asyncio
async def test_bedrock_provider_requires_region_and_model() -> None:
    provider = BedrockProvider(AppSettings(BEDROCK_REGION=None, BEDROCK_MODEL_ID=None))

    with pytest.raises(ProviderNotConfiguredError):
        await provider.generate(REQUEST)


@pytest.mark.asyncio
async def test_remote_provider_posts_generation_payload() -> None:
    client = DummyAsyncClient(httpx.Response(200, json={"title": "Bienvenue", "greeting": "Bonjour {{name}}"}))
    provider = RemoteGenerationProvider("http://bundles.local/api/", client_factory=lambda: client)

    bundle = await provider.generate(
        GenerationRequest(
            target_language="fr",
            base_bundle=REQUEST.base_bundle,
            context="A bakery ordering app",
            model="gpt-4.1",
        )
    )

    assert bundle["title"] == "Bienvenue"
    call = client.calls[-1]
    assert call["url"] == "http://bundles.local/api/generate-translation"
    assert call["json"] == {
        "targetLanguage": "fr",
        "baseTranslations": REQUEST.base_bundle,
        "context": "A bakery ordering app",
        "model": "gpt-4.1",
    }


@pytest.mark.asyncio
async def test_remote_provider_surfaces_server_error_message() -> None:
    client = DummyAsyncClient(httpx.Response(500, json={"error": "AI Generation Failed: quota"}))
    provider = RemoteGenerationProvider("http://bundles.local/api", client_factory=lambda: client)

    with pytest.raises(GenerationError, match="AI Generation Failed: quota"):
        await provider.generate(REQUEST)


@pytest.mark.parametrize(
    ("provider_id", "expected"),
    [
        ("gemini", GeminiProvider),
        ("openai", OpenAIProvider),
        ("azure_openai", AzureOpenAIProvider),
        ("bedrock", BedrockProvider),
        ("remote", RemoteGenerationProvider),
        (" Gemini ", GeminiProvider),
    ],
)
def test_create_provider_selects_variant(provider_id: str, expected: type) -> None:
    provider = create_provider(AppSettings(TRANSLATION_PROVIDER=provider_id))
    assert type(provider) is expected


def test_create_provider_rejects_unknown_identifier() -> None:
    with pytest.raises(UnknownProviderError, match="deepl"):
        create_provider(AppSettings(TRANSLATION_PROVIDER="deepl"))
