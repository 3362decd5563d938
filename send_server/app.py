"""
HTTP API of the upload service.

    POST /v1/upload
    Authorization: send-v1 <signing key>
    multipart/form-data: `metadata` (JSON) first, then `data` (file)

Returns `{"id": "<upload id>"}`.
"""

from __future__ import annotations

import io
import logging
from typing import IO, Any

from fastapi import FastAPI, Request
from fastapi import Response as FastAPIResponse
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import Message, Receive

from send_server.config import Config
from send_server.errors import MetadataError, StorageError, UploadRejected, describe
from send_server.metadata import parse_authorization, parse_metadata
from send_server.storage import ObjectStore, new_upload_id

logger = logging.getLogger(__name__)

METADATA_FIELD = "metadata"
DATA_FIELD = "data"
# Room for the metadata field, part headers and boundaries next to the file data.
MULTIPART_OVERHEAD = 64 * 1024


class JsonError(BaseModel):
    error: str


class UploadResult(BaseModel):
    id: str


def _bad_request() -> FastAPIResponse:
    return FastAPIResponse(status_code=400)


def _json_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=JsonError(error=message).model_dump())


async def _field_bytes(value: Any) -> bytes:
    if isinstance(value, UploadFile):
        return await value.read()
    return value.encode("utf-8")


def _field_stream(value: Any) -> IO[bytes]:
    if isinstance(value, UploadFile):
        return value.file
    return io.BytesIO(value.encode("utf-8"))


def limit_body(receive: Receive, max_bytes: int) -> Receive:
    """
    Wrap an ASGI `receive` so the request fails once the body passes `max_bytes`.

    Multipart parsing spools file fields to disk as it reads; this stops it
    at `max_bytes` for bodies sent without a `Content-Length`.
    """
    received = 0

    async def receive_limited() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_bytes:
                raise UploadRejected(
                    f"request body exceeds the {max_bytes} byte limit", status_code=413
                )
        return message

    return receive_limited


async def _discard(store: ObjectStore, key: str) -> None:
    try:
        await run_in_threadpool(store.delete, key)
    except StorageError as e:
        logger.warning("error deleting orphaned upload %s: %s", key, describe(e))


def create_app(config: Config, store: ObjectStore) -> FastAPI:
    app = FastAPI(title="Send", docs_url=None, redoc_url=None)

    @app.post("/v1/upload", response_model=UploadResult)
    async def upload(request: Request) -> Any:
        try:
            signing_key = parse_authorization(request.headers.get("Authorization"))
        except UploadRejected as e:
            logger.debug("rejected upload: %s", e)
            return _bad_request()

        max_body = config.upload_size_limit + MULTIPART_OVERHEAD
        content_length = request.headers.get("Content-Length")
        if content_length is not None:
            if not content_length.isdigit():
                return _bad_request()
            if int(content_length) > max_body:
                # Refused before any of the body is read.
                return _json_error(
                    413, f"upload exceeds the {config.upload_size_limit} byte limit"
                )

        try:
            form = await Request(request.scope, limit_body(request.receive, max_body)).form()
        except StarletteHTTPException as e:
            logger.debug("malformed multipart body: %s", e.detail)
            return _bad_request()
        except UploadRejected as e:
            return _json_error(e.status_code, str(e))

        try:
            # Field order is part of the protocol: metadata must come first.
            items = form.multi_items()
            if len(items) < 2:
                return _bad_request()
            (metadata_name, metadata_value), (data_name, data_value) = items[:2]
            if metadata_name != METADATA_FIELD or data_name != DATA_FIELD:
                return _bad_request()

            metadata = parse_metadata(await _field_bytes(metadata_value))

            upload_id = new_upload_id()
            size = await run_in_threadpool(
                store.upload,
                upload_id,
                _field_stream(data_value),
                part_size=config.upload_buffer_size,
                size_limit=config.upload_size_limit,
            )
            try:
                await run_in_threadpool(store.put_metadata, upload_id, metadata, signing_key)
            except Exception:
                # Data without its metadata sidecar can never be downloaded.
                await _discard(store, upload_id)
                raise
        except MetadataError as e:
            return _json_error(400, f"error parsing metadata as JSON: {e}")
        except UploadRejected as e:
            return _json_error(e.status_code, str(e))
        except Exception as e:
            logger.debug("handler returned error: %s", describe(e))
            return FastAPIResponse(status_code=500)
        finally:
            await form.close()

        logger.info("stored upload %s (%d bytes)", upload_id, size)
        return UploadResult(id=upload_id)

    return app
