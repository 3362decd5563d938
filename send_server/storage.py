"""
Object storage for uploads on Amazon S3 (or any S3-compatible endpoint).

Each upload is stored as two objects:

    <id>            encrypted file contents
    <id>.meta.json  upload metadata plus the owner's signing key
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
from datetime import datetime, timezone
from typing import IO, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from send_server.config import Config
from send_server.errors import StorageError, UploadRejected
from send_server.metadata import UploadMetadata

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".meta.json"


def new_upload_id() -> str:
    """Random 16 hex character id, used as the object key."""
    return secrets.token_hex(8)


def create_store(config: Config) -> ObjectStore:
    client = boto3.client(
        "s3",
        endpoint_url=config.s3_endpoint or None,
        region_name=config.s3_region,
        aws_access_key_id=config.s3_access_key_id,
        aws_secret_access_key=config.s3_secret_key,
    )
    return ObjectStore(client, config.s3_bucket)


class ObjectStore:
    client: Any
    bucket: str

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(
        self,
        key: str,
        stream: IO[bytes],
        *,
        part_size: int,
        size_limit: int,
    ) -> int:
        """Stream `stream` into `key` and return the number of bytes stored.

        Data that fits in one part is written with a single `put_object`.
        Anything larger goes through a multipart upload with `part_size`
        parts; the multipart upload is aborted on any failure so no partial
        parts are left behind in the bucket.
        """
        first = _read_part(stream, part_size)
        _check_size(len(first), size_limit)
        second = _read_part(stream, part_size) if len(first) == part_size else b""
        if not second:
            self._call("put_object", Bucket=self.bucket, Key=key, Body=first)
            return len(first)

        _check_size(len(first) + len(second), size_limit)
        result = self._call("create_multipart_upload", Bucket=self.bucket, Key=key)
        upload_id = result["UploadId"]
        parts: list[dict] = []
        total = 0
        try:
            chunk = first
            pending = second
            while chunk:
                total += len(chunk)
                _check_size(total, size_limit)
                part_number = len(parts) + 1
                response = self._call(
                    "upload_part",
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                chunk = pending
                pending = _read_part(stream, part_size) if chunk else b""
            self._call(
                "complete_multipart_upload",
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except Exception:
            self._abort(key, upload_id)
            raise
        return total

    def put_metadata(
        self,
        key: str,
        metadata: UploadMetadata,
        signing_key: bytes,
    ) -> None:
        document = json.loads(metadata.to_json())
        document["signing_key"] = base64.b64encode(signing_key).decode("ascii")
        document["created_at"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        self._call(
            "put_object",
            Bucket=self.bucket,
            Key=key + METADATA_SUFFIX,
            Body=json.dumps(document).encode("utf-8"),
            ContentType="application/json",
        )

    def delete(self, key: str) -> None:
        self._call("delete_object", Bucket=self.bucket, Key=key)

    def _abort(self, key: str, upload_id: str) -> None:
        try:
            self.client.abort_multipart_upload(
                Bucket=self.bucket, Key=key, UploadId=upload_id
            )
        except (BotoCoreError, ClientError) as exc:
            # The original error is re-raised by the caller; this one is only logged.
            logger.warning("error aborting multipart upload %s for %s: %s", upload_id, key, exc)

    def _call(self, method: str, **kwargs: Any) -> Any:
        try:
            return getattr(self.client, method)(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 {method} failed for {kwargs.get('Key')}") from exc


def _read_part(stream: IO[bytes], part_size: int) -> bytes:
    # read() may return short chunks before EOF; keep reading until the part is full.
    buffer = bytearray()
    while len(buffer) < part_size:
        chunk = stream.read(part_size - len(buffer))
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


def _check_size(size: int, size_limit: int) -> None:
    if size > size_limit:
        raise UploadRejected(f"upload exceeds the {size_limit} byte limit", status_code=413)
