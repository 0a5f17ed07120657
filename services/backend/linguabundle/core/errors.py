from __future__ import annotations


class LinguaBundleError(Exception):
    """Base class for errors surfaced through the bundle resolution pipeline."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(LinguaBundleError):
    """Invalid or incomplete configuration (path template, provider credentials)."""


class BadRequestError(LinguaBundleError):
    status_code = 400


class UnknownProviderError(BadRequestError):
    """The configured translation provider identifier is not recognized."""


class NotFoundError(LinguaBundleError):
    """The requested bundle does not exist in the store."""

    status_code = 404


class ForbiddenError(LinguaBundleError):
    """The bundle key is empty or resolves outside the store root."""

    status_code = 403


class BundleStoreError(LinguaBundleError):
    """The store failed for a reason other than a missing or forbidden key."""


class PersistenceError(BundleStoreError):
    """Writing a bundle to the store failed."""


class GenerationError(LinguaBundleError):
    """A translation provider failed or returned content that is not a bundle."""

    def __init__(self, provider_message: str) -> None:
        super().__init__(provider_message)
        self.provider_message = provider_message


class ProviderNotConfiguredError(GenerationError, ConfigurationError):
    """The active provider is missing its credentials."""
