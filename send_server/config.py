"""
Service configuration.

Values come from a YAML (or JSON) file and can be overridden per field with
`SEND_<FIELD>` environment variables, e.g. `SEND_S3_BUCKET=uploads`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from send_server.errors import ConfigError

ENV_PREFIX = "SEND_"
# S3 rejects multipart parts below 5 MiB (except the last one).
MIN_UPLOAD_BUFFER_SIZE = 5 * 1024 * 1024
CONFIG_SUFFIXES = (".yaml", ".yml", ".json")


class Config(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    s3_bucket: str
    s3_endpoint: str
    s3_access_key_id: str
    s3_secret_key: str
    s3_region: str
    upload_buffer_size: int = Field(ge=MIN_UPLOAD_BUFFER_SIZE, le=2**31 - 1)
    upload_size_limit: int = Field(gt=0, le=2**31 - 1)
    listen_addr: str

    @field_validator("listen_addr")
    @classmethod
    def _check_listen_addr(cls, value: str) -> str:
        _split_listen_addr(value)
        return value

    @property
    def listen_host(self) -> str:
        return _split_listen_addr(self.listen_addr)[0]

    @property
    def listen_port(self) -> int:
        return _split_listen_addr(self.listen_addr)[1]


def _split_listen_addr(value: str) -> tuple[str, int]:
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"expected host:port, got {value!r}")
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"port out of range: {port_number}")
    # IPv6 literals are written as `[::1]:8080`.
    return host.strip("[]"), port_number


def resolve_config_path(path: str | Path) -> Path:
    """
    Find the config file for `path`.

    `path` may name the file exactly or omit its extension
    (`config` finds `config.yaml`, `config.yml` or `config.json`).
    """
    candidate = Path(path)
    if candidate.is_file():
        return candidate
    for suffix in CONFIG_SUFFIXES:
        with_suffix = candidate.with_name(candidate.name + suffix)
        if with_suffix.is_file():
            return with_suffix
    raise ConfigError(f"config file not found: {path}")


def env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    fields = set(Config.model_fields)
    overrides = {}
    for key, value in environ.items():
        if not key.upper().startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in fields:
            overrides[name] = value
    return overrides


def load_config(
    path: str | Path,
    environ: Mapping[str, str] | None = None,
) -> Config:
    config_path = resolve_config_path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data: Any = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"error reading config file {config_path}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping")

    values = dict(data)
    values.update(env_overrides(os.environ if environ is None else environ))
    try:
        return Config.model_validate(values)
    except ValidationError as exc:
        raise ConfigError("error parsing config") from exc
