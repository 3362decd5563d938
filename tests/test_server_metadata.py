"""
Script: tests/test_server_metadata.py
What: Tests the upload metadata codec and Authorization parsing.
Doing: Parses valid and invalid metadata JSON and signing key headers.
Why: Clients depend on the exact JSON shape (seconds and base64 fields).
Goal: Reject malformed uploads before any data reaches storage.
"""

from __future__ import annotations

import base64
import json
import unittest
from datetime import timedelta

from send_server.errors import MetadataError, UploadRejected
from send_server.metadata import (
    MAX_DURATION_SECONDS,
    UploadMetadata,
    parse_authorization,
    parse_metadata,
)


def _metadata_json(**overrides: object) -> str:
    document = {
        "duration": 86400,
        "download_limit": 3,
        "file_metadata": base64.b64encode(b"encrypted-name").decode("ascii"),
    }
    document.update(overrides)
    return json.dumps(document)


class ParseMetadataTests(unittest.TestCase):
    def test_parses_valid_metadata(self) -> None:
        metadata = parse_metadata(_metadata_json())
        self.assertEqual(metadata.duration, timedelta(days=1))
        self.assertEqual(metadata.download_limit, 3)
        self.assertEqual(metadata.file_metadata, b"encrypted-name")

    def test_serializes_back_to_wire_format(self) -> None:
        metadata = parse_metadata(_metadata_json())
        self.assertEqual(json.loads(metadata.to_json()), json.loads(_metadata_json()))

    def test_builds_from_python_values(self) -> None:
        metadata = UploadMetadata(
            duration=timedelta(minutes=5), download_limit=1, file_metadata=b"\x00\x01"
        )
        self.assertEqual(json.loads(metadata.to_json())["duration"], 300)
        self.assertEqual(json.loads(metadata.to_json())["file_metadata"], "AAE=")

    def test_rejects_invalid_json(self) -> None:
        with self.assertRaises(MetadataError):
            parse_metadata(b"{not json")

    def test_rejects_invalid_base64(self) -> None:
        with self.assertRaises(MetadataError) as ctx:
            parse_metadata(_metadata_json(file_metadata="***"))
        self.assertIn("invalid base64", str(ctx.exception))

    def test_rejects_out_of_range_durations(self) -> None:
        for value in (-1, MAX_DURATION_SECONDS + 1, 1.5, True, "60"):
            with self.subTest(value=value):
                with self.assertRaises(MetadataError):
                    parse_metadata(_metadata_json(duration=value))

    def test_rejects_download_limit_outside_int32(self) -> None:
        for value in (2**31, -(2**31) - 1, "1"):
            with self.subTest(value=value):
                with self.assertRaises(MetadataError):
                    parse_metadata(_metadata_json(download_limit=value))

    def test_requires_all_fields(self) -> None:
        with self.assertRaises(MetadataError):
            parse_metadata(json.dumps({"duration": 60}))


class ParseAuthorizationTests(unittest.TestCase):
    def test_decodes_unpadded_urlsafe_key(self) -> None:
        key = b"\xfb\xff signing key"
        token = base64.urlsafe_b64encode(key).decode("ascii").rstrip("=")
        self.assertEqual(parse_authorization(f"send-v1 {token}"), key)

    def test_rejects_missing_or_foreign_headers(self) -> None:
        for header in (None, "", "Bearer abc", "send-v1", "send-v1 ", "send-v1 !!!!"):
            with self.subTest(header=header):
                with self.assertRaises(UploadRejected):
                    parse_authorization(header)


if __name__ == "__main__":
    unittest.main()
