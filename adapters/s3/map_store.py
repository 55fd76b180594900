from __future__ import annotations

import logging
from typing import Any, cast

from botocore.client import BaseClient  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore[import-untyped]
from botocore.response import StreamingBody  # type: ignore[import-untyped]

from adapters.s3.s3_client import create_s3_client
from domain.errors import MapStoreError
from domain.ports.repositories import MapStore

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class S3MapStore(MapStore):
    def __init__(self, client: BaseClient, bucket: str, key: str = "map/map_info.json") -> None:
        self._client = client
        self._bucket = bucket
        self._key = key.lstrip("/")

    @classmethod
    def from_settings(cls, settings: Any) -> S3MapStore:
        client = create_s3_client(
            region=settings.region,
            endpoint_url=settings.endpoint_url,
            access_key_id=settings.access_key_id,
            secret_access_key=settings.secret_access_key,
            session_token=settings.session_token,
            use_path_style=settings.use_path_style,
            timeout_seconds=settings.timeout_seconds,
        )
        return cls(client, settings.bucket, settings.key)

    @property
    def location(self) -> str:
        return f"s3://{self._bucket}/{self._key}"

    def load_text(self) -> str:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=self._key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in _MISSING_KEY_CODES:
                logger.info("No map document at %s yet", self.location)
                return ""
            msg = f"Failed to read {self.location}: {exc}"
            raise MapStoreError(msg) from exc
        except BotoCoreError as exc:
            msg = f"Failed to read {self.location}: {exc}"
            raise MapStoreError(msg) from exc
        return self._read_body(response.get("Body")).decode("utf-8")

    def save_text(self, text: str) -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._key,
                Body=text.encode("utf-8"),
                ContentType="application/json",
            )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to write {self.location}: {exc}"
            raise MapStoreError(msg) from exc
        return self.location

    def _read_body(self, body: Any) -> bytes:
        if isinstance(body, bytes | bytearray):
            return bytes(body)
        if isinstance(body, StreamingBody):
            return cast(bytes, body.read())
        if hasattr(body, "read"):
            return cast(bytes, body.read())
        return b""
