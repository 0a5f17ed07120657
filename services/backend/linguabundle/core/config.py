from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application configuration loaded from environment or .env."""

    app_name: str = Field(default="linguabundle")
    app_env: str = Field(default="dev", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=3000, alias="API_PORT")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS"
    )
    static_dir: Optional[str] = Field(default=None, alias="STATIC_DIR")

    translation_provider: str = Field(default="gemini", alias="TRANSLATION_PROVIDER")
    gemini_api_key: Optional[SecretStr] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_BASE",
    )
    openai_api_key: Optional[SecretStr] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    azure_openai_endpoint: Optional[str] = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_key: Optional[SecretStr] = Field(default=None, alias="AZURE_OPENAI_API_KEY")
    azure_openai_deployment: Optional[str] = Field(default=None, alias="AZURE_OPENAI_DEPLOYMENT")
    azure_openai_api_version: Optional[str] = Field(default=None, alias="AZURE_OPENAI_API_VERSION")
    bedrock_region: Optional[str] = Field(default=None, alias="BEDROCK_REGION")
    bedrock_model_id: Optional[str] = Field(default=None, alias="BEDROCK_MODEL_ID")
    aws_region: Optional[str] = Field(default=None, alias="AWS_REGION")
    aws_access_key_id: Optional[SecretStr] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[SecretStr] = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    remote_api_endpoint: Optional[str] = Field(default=None, alias="REMOTE_API_ENDPOINT")

    generation_temperature: float = Field(default=0.2, alias="GENERATION_TEMPERATURE")
    generation_max_output_tokens: int = Field(
        default=8192, alias="GENERATION_MAX_OUTPUT_TOKENS"
    )
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    strict_key_validation: bool = Field(default=False, alias="STRICT_KEY_VALIDATION")

    bundle_store: str = Field(default="filesystem", alias="BUNDLE_STORE")
    translations_dir: str = Field(default="translations", alias="TRANSLATIONS_DIR")
    s3_translations_bucket: Optional[str] = Field(
        default=None, alias="S3_TRANSLATIONS_BUCKET"
    )
    s3_translations_prefix: Optional[str] = Field(
        default="translations/", alias="S3_TRANSLATIONS_PREFIX"
    )

    base_language: str = Field(default="en", alias="BASE_LANGUAGE")
    default_namespace: str = Field(default="common", alias="DEFAULT_NAMESPACE")
    path_template: str = Field(default="{{lng}}/{{ns}}.json", alias="PATH_TEMPLATE")
    generation_context: str = Field(
        default="A web application interface", alias="GENERATION_CONTEXT"
    )
    deduplicate_generation: bool = Field(default=True, alias="DEDUPLICATE_GENERATION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings."""
    return AppSettings()  # type: ignore[call-arg]
