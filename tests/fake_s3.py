"""In-memory stand-in for the subset of the boto3 S3 client the store uses."""

from __future__ import annotations

from botocore.exceptions import ClientError


class FakeS3Client:
    """
    `fail_on` names a client method that raises `ClientError` once it has
    succeeded `fail_after` times. With `fail_key_suffix` set, only calls for
    keys ending in that suffix fail.
    """

    def __init__(
        self,
        fail_on: str | None = None,
        fail_after: int = 0,
        fail_key_suffix: str | None = None,
    ):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.uploads: dict[str, dict[int, bytes]] = {}
        self.aborted: list[str] = []
        self.calls: list[str] = []
        self._fail_on = fail_on
        self._fail_after = fail_after
        self._fail_key_suffix = fail_key_suffix
        self._next_id = 0

    def _record(self, method: str, key: str) -> None:
        self.calls.append(method)
        if method != self._fail_on:
            return
        if self._fail_key_suffix is not None and not key.endswith(self._fail_key_suffix):
            return
        if self._fail_after > 0:
            self._fail_after -= 1
            return
        raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, method)

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, **_kwargs: object) -> dict:
        self._record("put_object", Key)
        self.objects[(Bucket, Key)] = bytes(Body)
        return {"ETag": '"etag"'}

    def delete_object(self, *, Bucket: str, Key: str) -> dict:
        self._record("delete_object", Key)
        self.objects.pop((Bucket, Key), None)
        return {}

    def create_multipart_upload(self, *, Bucket: str, Key: str) -> dict:
        self._record("create_multipart_upload", Key)
        self._next_id += 1
        upload_id = f"upload-{self._next_id}"
        self.uploads[upload_id] = {}
        return {"UploadId": upload_id}

    def upload_part(
        self, *, Bucket: str, Key: str, UploadId: str, PartNumber: int, Body: bytes
    ) -> dict:
        self._record("upload_part", Key)
        self.uploads[UploadId][PartNumber] = bytes(Body)
        return {"ETag": f'"part-{PartNumber}"'}

    def complete_multipart_upload(
        self, *, Bucket: str, Key: str, UploadId: str, MultipartUpload: dict
    ) -> dict:
        self._record("complete_multipart_upload", Key)
        parts = self.uploads.pop(UploadId)
        numbers = [part["PartNumber"] for part in MultipartUpload["Parts"]]
        self.objects[(Bucket, Key)] = b"".join(parts[number] for number in numbers)
        return {}

    def abort_multipart_upload(self, *, Bucket: str, Key: str, UploadId: str) -> dict:
        self.calls.append("abort_multipart_upload")
        self.uploads.pop(UploadId, None)
        self.aborted.append(UploadId)
        return {}
