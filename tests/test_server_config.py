"""
Script: tests/test_server_config.py
What: Tests config loading in `send_server/config.py`.
Doing: Loads YAML files, applies `SEND_` environment overrides, and checks validation errors.
Why: A bad config should stop the service at startup with a clear message.
Goal: Keep file plus environment configuration predictable.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import yaml

from send_server.config import MIN_UPLOAD_BUFFER_SIZE, load_config
from send_server.errors import ConfigError, describe

BASE_CONFIG = {
    "s3_bucket": "send-uploads",
    "s3_endpoint": "http://localhost:9000",
    "s3_access_key_id": "minio",
    "s3_secret_key": "minio-secret",
    "s3_region": "us-east-1",
    "upload_buffer_size": MIN_UPLOAD_BUFFER_SIZE,
    "upload_size_limit": 1024 * 1024 * 1024,
    "listen_addr": "127.0.0.1:8080",
}


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self._temp_dir.cleanup)
        self.dir = Path(self._temp_dir.name)

    def _write(self, name: str, data: object) -> Path:
        path = self.dir / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    def test_loads_yaml_file(self) -> None:
        path = self._write("config.yaml", BASE_CONFIG)
        config = load_config(path, environ={})
        self.assertEqual(config.s3_bucket, "send-uploads")
        self.assertEqual(config.listen_host, "127.0.0.1")
        self.assertEqual(config.listen_port, 8080)

    def test_finds_file_without_extension(self) -> None:
        self._write("config.yml", BASE_CONFIG)
        config = load_config(self.dir / "config", environ={})
        self.assertEqual(config.s3_region, "us-east-1")

    def test_environment_overrides_file(self) -> None:
        path = self._write("config.yaml", BASE_CONFIG)
        config = load_config(
            path,
            environ={
                "SEND_S3_BUCKET": "other-bucket",
                "SEND_UPLOAD_SIZE_LIMIT": "2048",
                "SEND_UNKNOWN": "ignored",
                "HOME": "/root",
            },
        )
        self.assertEqual(config.s3_bucket, "other-bucket")
        self.assertEqual(config.upload_size_limit, 2048)

    def test_environment_can_supply_missing_fields(self) -> None:
        partial = dict(BASE_CONFIG)
        del partial["s3_secret_key"]
        path = self._write("config.yaml", partial)
        config = load_config(path, environ={"SEND_S3_SECRET_KEY": "from-env"})
        self.assertEqual(config.s3_secret_key, "from-env")

    def test_rejects_small_upload_buffer(self) -> None:
        path = self._write("config.yaml", {**BASE_CONFIG, "upload_buffer_size": 1024})
        with self.assertRaises(ConfigError) as ctx:
            load_config(path, environ={})
        self.assertIn("upload_buffer_size", describe(ctx.exception))

    def test_rejects_bad_listen_addr(self) -> None:
        for addr in ("localhost", ":8080", "localhost:http", "localhost:70000"):
            with self.subTest(addr=addr):
                path = self._write("config.yaml", {**BASE_CONFIG, "listen_addr": addr})
                with self.assertRaises(ConfigError):
                    load_config(path, environ={})

    def test_ipv6_listen_addr(self) -> None:
        path = self._write("config.yaml", {**BASE_CONFIG, "listen_addr": "[::1]:8443"})
        config = load_config(path, environ={})
        self.assertEqual(config.listen_host, "::1")
        self.assertEqual(config.listen_port, 8443)

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(self.dir / "nope.yaml", environ={})

    def test_non_mapping_file(self) -> None:
        path = self._write("config.yaml", ["not", "a", "mapping"])
        with self.assertRaises(ConfigError):
            load_config(path, environ={})


if __name__ == "__main__":
    unittest.main()
