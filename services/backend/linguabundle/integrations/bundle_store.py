from __future__ import annotations

import asyncio
import json
import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote

import aioboto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from linguabundle.core.config import AppSettings
from linguabundle.core.errors import (
    BundleStoreError,
    ConfigurationError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
)
from linguabundle.schemas.translation import Bundle


logger = logging.getLogger(__name__)


class BundleStore:
    """Abstract whole-bundle persistence keyed by resolved path."""

    async def fetch(self, key: str) -> Bundle:
        raise NotImplementedError

    async def put(self, key: str, bundle: Bundle) -> None:
        raise NotImplementedError


def _decode_bundle(raw: bytes | str, *, key: str) -> Bundle:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BundleStoreError(f"Stored bundle '{key}' is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise BundleStoreError(f"Stored bundle '{key}' is not a JSON object.")
    return payload


def _encode_bundle(bundle: Bundle) -> str:
    return json.dumps(bundle, ensure_ascii=False, indent=2)


class FileSystemBundleStore(BundleStore):
    """Bundles stored as JSON files in a directory tree under a single root."""

    def __init__(self, root: str | os.PathLike[str]):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _locate(self, key: str) -> Path:
        if not key:
            raise ForbiddenError("Bundle path must not be empty.")
        candidate = (self._root / key).resolve()
        if candidate == self._root or self._root not in candidate.parents:
            raise ForbiddenError(f"Bundle path '{key}' is outside the translations root.")
        return candidate

    async def fetch(self, key: str) -> Bundle:
        path = self._locate(key)
        try:
            raw = await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise NotFoundError(f"No bundle stored at '{key}'.") from exc
        except OSError as exc:
            raise BundleStoreError(f"Failed to read bundle '{key}': {exc}") from exc
        return _decode_bundle(raw, key=key)

    async def put(self, key: str, bundle: Bundle) -> None:
        path = self._locate(key)
        body = _encode_bundle(bundle)
        try:
            await asyncio.to_thread(self._write_atomic, path, body)
        except OSError as exc:
            logger.error("Failed to write translation file %s", key, exc_info=exc)
            raise PersistenceError(f"Failed to write bundle '{key}': {exc}") from exc
        logger.info("Wrote translation file %s", key)

    def _write_atomic(self, path: Path, body: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
            os.replace(temp_name, path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise


class HttpBundleStore(BundleStore):
    """Client for a remote `<api>/translations/<path>` endpoint."""

    def __init__(
        self,
        api_endpoint: str,
        *,
        timeout: float = 30.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self._api_endpoint = api_endpoint.rstrip("/")
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        )

    def _url(self, key: str) -> str:
        return f"{self._api_endpoint}/translations/{quote(key, safe='/')}"

    async def fetch(self, key: str) -> Bundle:
        try:
            async with self._client_factory() as client:
                response = await client.get(self._url(key))
        except httpx.HTTPError as exc:
            raise BundleStoreError(f"Failed to fetch {key}: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"No bundle stored at '{key}'.")
        if response.status_code == 403:
            raise ForbiddenError(f"Bundle path '{key}' was rejected by the store.")
        if response.status_code < 200 or response.status_code >= 300:
            raise BundleStoreError(
                f"Failed to fetch {key}: store returned status {response.status_code}."
            )
        return _decode_bundle(response.content, key=key)

    async def put(self, key: str, bundle: Bundle) -> None:
        try:
            async with self._client_factory() as client:
                response = await client.post(
                    self._url(key),
                    content=_encode_bundle(bundle).encode("utf-8"),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Failed to save {key}: {exc}") from exc

        if response.status_code == 403:
            raise ForbiddenError(f"Bundle path '{key}' was rejected by the store.")
        if response.status_code < 200 or response.status_code >= 300:
            raise PersistenceError(
                f"Failed to save {key}: store returned status {response.status_code}."
            )


class S3BundleStore(BundleStore):
    """Bundles stored as JSON objects under a prefix of an S3-compatible bucket."""

    _MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})
    _DENIED_CODES = frozenset({"AccessDenied", "403", "Forbidden"})

    def __init__(self, settings: AppSettings):
        if not settings.s3_translations_bucket:
            raise ConfigurationError("S3_TRANSLATIONS_BUCKET is not configured.")
        self._settings = settings
        self._bucket = settings.s3_translations_bucket
        self._prefix = (settings.s3_translations_prefix or "").strip("/")

    def _object_key(self, key: str) -> str:
        if not key:
            raise ForbiddenError("Bundle path must not be empty.")
        normalized = posixpath.normpath(key)
        if key.startswith("/") or normalized in {".", ".."} or normalized.startswith("../"):
            raise ForbiddenError(f"Bundle path '{key}' is outside the translations root.")
        return f"{self._prefix}/{normalized}" if self._prefix else normalized

    async def fetch(self, key: str) -> Bundle:
        object_key = self._object_key(key)
        try:
            async with self._s3_client() as client:
                response = await client.get_object(Bucket=self._bucket, Key=object_key)
                raw = await response["Body"].read()
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in self._MISSING_CODES:
                raise NotFoundError(f"No bundle stored at '{key}'.") from exc
            if code in self._DENIED_CODES:
                raise ForbiddenError(f"Access to bundle '{key}' was denied.") from exc
            raise BundleStoreError(f"Failed to read s3://{self._bucket}/{object_key}: {exc}") from exc
        except BotoCoreError as exc:
            raise BundleStoreError(f"Failed to read s3://{self._bucket}/{object_key}: {exc}") from exc
        return _decode_bundle(raw, key=key)

    async def put(self, key: str, bundle: Bundle) -> None:
        object_key = self._object_key(key)
        try:
            async with self._s3_client() as client:
                await client.put_object(
                    Bucket=self._bucket,
                    Key=object_key,
                    Body=_encode_bundle(bundle).encode("utf-8"),
                    ContentType="application/json",
                )
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in self._DENIED_CODES:
                raise ForbiddenError(f"Access to bundle '{key}' was denied.") from exc
            raise PersistenceError(f"Failed to write s3://{self._bucket}/{object_key}: {exc}") from exc
        except BotoCoreError as exc:
            logger.error("Failed to write translation object %s", object_key, exc_info=exc)
            raise PersistenceError(f"Failed to write s3://{self._bucket}/{object_key}: {exc}") from exc
        logger.info("Persisted bundle to s3://%s/%s", self._bucket, object_key)

    def _s3_client(self):
        client_kwargs: dict[str, Any] = {}
        if self._settings.aws_region:
            client_kwargs["region_name"] = self._settings.aws_region
        if self._settings.aws_access_key_id and self._settings.aws_secret_access_key:
            client_kwargs["aws_access_key_id"] = self._settings.aws_access_key_id.get_secret_value()
            client_kwargs["aws_secret_access_key"] = self._settings.aws_secret_access_key.get_secret_value()

        session = aioboto3.Session()
        return session.client("s3", **client_kwargs)


def create_bundle_store(settings: AppSettings) -> BundleStore:
    """Build the bundle store selected by BUNDLE_STORE."""
    backend = (settings.bundle_store or "filesystem").strip().lower()
    if backend == "filesystem":
        return FileSystemBundleStore(settings.translations_dir)
    if backend == "http":
        if not settings.remote_api_endpoint:
            raise ConfigurationError("REMOTE_API_ENDPOINT is required when BUNDLE_STORE=http.")
        return HttpBundleStore(
            settings.remote_api_endpoint,
            timeout=settings.request_timeout_seconds,
        )
    if backend == "s3":
        return S3BundleStore(settings)
    raise ConfigurationError(f"Unsupported bundle store '{settings.bundle_store}'.")
