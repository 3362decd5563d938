"""
Upload metadata sent by clients along with the encrypted file.

Wire format (JSON):

    {"duration": 86400, "download_limit": 1, "file_metadata": "<base64>"}

`duration` is an integer number of seconds, `file_metadata` is the
client-encrypted file description in standard base64.
"""

from __future__ import annotations

import base64
import binascii
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator

from send_server.errors import MetadataError, UploadRejected

# Largest number of seconds that still fits in signed 64-bit milliseconds.
MAX_DURATION_SECONDS = (2**63 - 1) // 1000
I32_MIN = -(2**31)
I32_MAX = 2**31 - 1
AUTH_SCHEME = "send-v1"


class UploadMetadata(BaseModel):
    duration: timedelta
    download_limit: int = Field(ge=I32_MIN, le=I32_MAX, strict=True)
    file_metadata: bytes

    @field_validator("duration", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> Any:
        if isinstance(value, timedelta):
            seconds = value.total_seconds()
        elif isinstance(value, int) and not isinstance(value, bool):
            seconds = value
        else:
            raise ValueError("duration must be an integer number of seconds")
        if not 0 <= seconds <= MAX_DURATION_SECONDS:
            raise ValueError(f"duration must be a value between 0 and {MAX_DURATION_SECONDS}")
        try:
            return timedelta(seconds=seconds)
        except OverflowError as exc:
            raise ValueError(f"duration of {seconds} seconds is too large") from exc

    @field_validator("file_metadata", mode="before")
    @classmethod
    def _parse_file_metadata(cls, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if not isinstance(value, str):
            raise ValueError("file_metadata must be a base64 string")
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"invalid base64: {exc}") from exc

    @field_serializer("duration")
    def _serialize_duration(self, value: timedelta) -> int:
        return int(value.total_seconds())

    @field_serializer("file_metadata")
    def _serialize_file_metadata(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    def to_json(self) -> str:
        return self.model_dump_json()


def parse_metadata(raw: bytes | str) -> UploadMetadata:
    try:
        return UploadMetadata.model_validate_json(raw)
    except ValidationError as exc:
        raise MetadataError(_first_error(exc)) from exc


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors(include_url=False)
    if not errors:
        return "invalid metadata"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def parse_authorization(header: str | None) -> bytes:
    """
    Extract the signing key from an `Authorization: send-v1 <key>` header.

    Clients encode the key as URL-safe base64, usually without padding.
    """
    if not header:
        raise UploadRejected("missing Authorization header")
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if scheme != AUTH_SCHEME or not token:
        raise UploadRejected("unsupported Authorization scheme")
    padded = token + "=" * (-len(token) % 4)
    try:
        key = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise UploadRejected("invalid signing key encoding") from exc
    if not key:
        raise UploadRejected("empty signing key")
    return key
