from __future__ import annotations

import logging

from linguabundle.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

LANGUAGE_TOKEN = "{{lng}}"
NAMESPACE_TOKEN = "{{ns}}"
DEFAULT_PATH_TEMPLATE = f"{LANGUAGE_TOKEN}/{NAMESPACE_TOKEN}.json"


class PathResolver:
    """Map a (language, namespace) pair to a store-relative bundle path."""

    def __init__(self, template: str = DEFAULT_PATH_TEMPLATE) -> None:
        if LANGUAGE_TOKEN not in template:
            raise ConfigurationError(
                f"Path template {template!r} must include '{LANGUAGE_TOKEN}'."
            )
        if NAMESPACE_TOKEN not in template:
            logger.warning(
                "Path template %r has no '%s'; every namespace shares one bundle per language.",
                template,
                NAMESPACE_TOKEN,
            )
        self._template = template

    @property
    def template(self) -> str:
        return self._template

    def resolve(self, language: str, namespace: str) -> str:
        return self._template.replace(LANGUAGE_TOKEN, language).replace(
            NAMESPACE_TOKEN, namespace
        )
