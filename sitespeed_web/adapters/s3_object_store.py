from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from sitespeed_web.adapters.owned_stream import OwnedStream
from sitespeed_web.config import StorageSettings
from sitespeed_web.domain.errors import ObjectNotFoundError, StorageError
from sitespeed_web.domain.models import StoredObject

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


def _is_not_found(exc: ClientError) -> bool:
    error = exc.response.get("Error", {}) or {}
    status = (exc.response.get("ResponseMetadata", {}) or {}).get("HTTPStatusCode")
    return error.get("Code") in _NOT_FOUND_CODES or status == 404


class _ConnectionRelease:
    """Returns the body's pooled HTTP connection once the body is closed."""

    def __init__(self, body):
        self._body = body

    def close(self) -> None:
        raw = getattr(self._body, "_raw_stream", None)
        release = getattr(raw, "release_conn", None)
        if release is not None:
            release()


class S3ObjectStore:
    """
    Single-bucket blob store over an S3-compatible endpoint.
    Every failure is translated: missing key -> ObjectNotFoundError, anything else -> StorageError.
    """

    def __init__(self, settings: StorageSettings, client=None):
        self.bucket_name = settings.bucket_name
        self._client = client or self._make_client(settings)

    @staticmethod
    def _make_client(settings: StorageSettings):
        cfg = Config(
            region_name=settings.region,
            s3={
                "addressing_style": "path",
                "payload_signing_enabled": not settings.disable_payload_signing,
            },
        )
        return boto3.client(
            "s3",
            endpoint_url=settings.service_url,
            aws_access_key_id=settings.access_key or None,
            aws_secret_access_key=settings.secret_key or None,
            config=cfg,
        )

    def put(self, key: str, source: Union[str, Path, BinaryIO]) -> None:
        """Upload a local file path or an open binary stream under `key`."""
        try:
            if isinstance(source, (str, Path)):
                with open(source, "rb") as fh:
                    self._client.put_object(Bucket=self.bucket_name, Key=key, Body=fh)
            else:
                self._client.put_object(Bucket=self.bucket_name, Key=key, Body=source)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e

    def get(self, key: str) -> StoredObject:
        try:
            resp = self._client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(key) from e
            raise StorageError(f"Failed to fetch {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to fetch {key}: {e}") from e

        body = resp["Body"]
        return StoredObject(
            stream=OwnedStream(body, _ConnectionRelease(body)),
            content_type=resp.get("ContentType"),
            last_modified=resp.get("LastModified"),
            etag=resp.get("ETag"),
        )

    def download(self, key: str, destination: Path) -> None:
        """
        Stream `key` into `destination`. The file is written beside the target
        and renamed into place, so readers never see a partial file.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        obj = self.get(key)
        fd, tmp_name = tempfile.mkstemp(prefix=destination.name + ".", suffix=".part", dir=destination.parent)
        try:
            with obj.stream as src, os.fdopen(fd, "wb") as dst:
                shutil.copyfileobj(src, dst)
            os.replace(tmp_name, destination)
        except (ClientError, BotoCoreError) as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to download {key}: {e}") from e
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
        logger.info("Deleted s3://%s/%s", self.bucket_name, key)
