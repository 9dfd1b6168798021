"""S3-compatible object storage for kata images."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from dojo.config import settings
from katalog.errors import GatewayError, NotFound
from katalog.gateway import ObjectStorage

logger = logging.getLogger(__name__)

# Retryable S3 error codes
_RETRYABLE_CODES = {"RequestTimeout", "ServiceUnavailable", "SlowDown", "ThrottlingException", "Throttling"}


def _error_message(e: ClientError) -> str:
    error = e.response.get("Error", {})
    return error.get("Message") or error.get("Code") or str(e)


class StorageService(ObjectStorage):
    """
    Kata image storage using the S3-compatible API.

    Storage layout:
        {bucket}/{path_hint}/{name}_{millis}{ext}

    where path_hint is the kata id, or uploads/{token} for images uploaded
    before their kata exists. References handed out are public URLs.
    """

    def __init__(
        self,
        session: Any | None = None,
        bucket: str | None = None,
        public_url: str | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Initialize storage with credentials from settings."""
        self.session = session or aioboto3.Session()
        self.endpoint = settings.STORAGE_ENDPOINT
        self.access_key = settings.STORAGE_ACCESS_KEY
        self.secret_key = settings.STORAGE_SECRET_KEY
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.public_url = (public_url or settings.STORAGE_PUBLIC_URL).rstrip("/")
        self.max_retries = settings.STORAGE_MAX_RETRIES if max_retries is None else max_retries

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        )

    # -- keys and urls --

    @staticmethod
    def key_for(path: Path, path_hint: str, now: datetime | None = None) -> str:
        """
        Object key for an image: hint, file stem, a millisecond stamp and a
        random fragment, so same-named files picked together never collide.
        """
        now = now or datetime.now(UTC)
        millis = int(now.timestamp() * 1000)
        suffix = path.suffix.lower() or ".jpg"
        return f"{path_hint.strip('/')}/{path.stem}_{millis}_{uuid4().hex[:8]}{suffix}"

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def key_from_url(self, url: str) -> str:
        prefix = f"{self.public_url}/"
        if not url.startswith(prefix):
            raise GatewayError(f"Not an image in bucket {self.bucket}: {url}")
        return url[len(prefix) :]

    # -- calls --

    async def _call(self, action: str, op: Callable[[Any], Awaitable[Any]]) -> Any:
        """
        Run one S3 operation, retrying transient failures.

        Args:
            action: What is being done, for logs and error messages
            op: Coroutine function taking the S3 client

        Returns:
            Whatever op returns

        Raises:
            GatewayError: With the storage service's own message
        """
        for attempt in range(self.max_retries + 1):
            try:
                async with self._client() as s3:
                    return await op(s3)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "")
                if error_code in _RETRYABLE_CODES and attempt < self.max_retries:
                    wait_time = 2**attempt
                    logger.warning(
                        "storage: %s failed (attempt %d), retrying in %ds: %s", action, attempt + 1, wait_time, e
                    )
                    await asyncio.sleep(wait_time)
                    continue
                if error_code in ("NoSuchKey", "404"):
                    raise NotFound(_error_message(e)) from e
                raise GatewayError(_error_message(e)) from e
            except (BotoCoreError, OSError) as e:
                # Network errors, timeouts, etc.
                if attempt < self.max_retries:
                    wait_time = 2**attempt
                    logger.warning(
                        "storage: %s failed (attempt %d), retrying in %ds: %s", action, attempt + 1, wait_time, e
                    )
                    await asyncio.sleep(wait_time)
                    continue
                raise GatewayError(f"Could not {action}: {e}") from e
        raise GatewayError(f"Could not {action}")

    async def upload(self, path: Path, path_hint: str) -> str:
        """
        Upload one image file.

        Args:
            path: Local image file
            path_hint: Key prefix (kata id or uploads/{token})

        Returns:
            Public URL of the stored image
        """
        path = Path(path)
        try:
            body = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise GatewayError(f"Could not read {path.name}: {e.strerror or e}") from e

        key = self.key_for(path, path_hint)
        content_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"

        async def put(s3: Any) -> None:
            await s3.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)

        await self._call(f"upload {path.name}", put)
        logger.info("storage: uploaded %s (%d bytes)", key, len(body))
        return self.url_for(key)

    async def delete(self, url: str) -> None:
        key = self.key_from_url(url)

        async def remove(s3: Any) -> None:
            await s3.delete_object(Bucket=self.bucket, Key=key)

        await self._call(f"delete {key}", remove)

    async def list_keys(self) -> list[str]:
        """Every object key in the bucket, following continuation tokens."""

        async def page_through(s3: Any) -> list[str]:
            keys: list[str] = []
            kwargs: dict[str, Any] = {"Bucket": self.bucket}
            while True:
                response = await s3.list_objects_v2(**kwargs)
                keys.extend(obj["Key"] for obj in response.get("Contents", []))
                if not response.get("IsTruncated"):
                    return keys
                kwargs["ContinuationToken"] = response["NextContinuationToken"]

        return await self._call("list images", page_through)

    async def list_orphaned(self, existing_references: set[str]) -> list[str]:
        """
        Stored images no kata references.

        Args:
            existing_references: Image URLs currently held by katas

        Returns:
            Public URLs of unreferenced objects
        """
        urls = [self.url_for(key) for key in await self.list_keys()]
        return [url for url in urls if url not in existing_references]
