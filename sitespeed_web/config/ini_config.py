########## ini_config.py

from __future__ import annotations

import os
import tempfile
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

INI_DEFAULT_NAME = "sitespeed_web.ini"


@dataclass(frozen=True)
class StorageSettings:
    service_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str
    disable_payload_signing: bool


@dataclass(frozen=True)
class AppSettings:
    node_bin: str
    sitespeed_bin: str
    timeout_seconds: int
    temp_root: Path

    storage: StorageSettings

    # Empty token disables the /api bearer check
    auth_token: str

    cleanup_interval_seconds: int
    cleanup_max_age_seconds: int
    # Where Chromium leaks its profile dirs; independent of temp_root
    reaper_root: Path

    flask_host: str
    flask_port: int
    flask_debug: bool


class IniConfig:
    """
    Adapter around ConfigParser plus environment overrides.
    Precedence per value: environment variable, INI value, built-in default.
    """

    def __init__(self, ini_path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None):
        self._ini_path = ini_path
        self._env = os.environ if environ is None else environ
        self._cfg = ConfigParser()
        if ini_path is not None:
            read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
            if not read_ok:
                raise FileNotFoundError(f"INI file not found or unreadable: {ini_path}")

    @staticmethod
    def from_env_or_default(environ: Optional[Mapping[str, str]] = None) -> "IniConfig":
        env = os.environ if environ is None else environ
        ini_raw = (env.get("APP_INI") or "").strip()
        if ini_raw:
            return IniConfig(Path(ini_raw), environ=env)
        # Default location is optional; a container may configure everything via env
        default_path = Path(__file__).resolve().parents[2] / INI_DEFAULT_NAME
        return IniConfig(default_path if default_path.exists() else None, environ=env)

    def _str(self, env_key: str, section: str, key: str, default: str = "") -> str:
        raw = self._env.get(env_key)
        if raw is not None and raw.strip():
            return raw.strip()
        return (self._cfg.get(section, key, fallback=default) or "").strip() or default

    def _int(self, env_key: str, section: str, key: str, default: int) -> int:
        raw = self._str(env_key, section, key, "")
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"Invalid integer for {section}.{key}: {raw!r}") from e

    def _bool(self, env_key: str, section: str, key: str, default: bool) -> bool:
        raw = self._str(env_key, section, key, "").lower()
        if not raw:
            return default
        return raw in ("1", "true", "yes", "on")

    def _path(self, env_key: str, section: str, key: str) -> Path:
        # Unset means the system temp directory
        raw = self._str(env_key, section, key, "")
        if not raw:
            return Path(tempfile.gettempdir())
        return Path(os.path.expandvars(os.path.expanduser(raw))).resolve()

    def load_settings(self) -> AppSettings:
        # Process
        node_bin = self._str("NODE_BIN", "sitespeed", "node_bin", "node")
        sitespeed_bin = self._str("SITESPEED_BIN", "sitespeed", "sitespeed_bin", "sitespeed.io")
        timeout_seconds = self._int("SITESPEED_TIMEOUT", "sitespeed", "timeout_seconds", 1800)

        temp_root = self._path("SITESPEED_TEMP_ROOT", "paths", "temp_root")

        # Storage. Payload signing stays disabled unless explicitly set to "false".
        signing_raw = self._str("S3_DISABLE_PAYLOAD_SIGNING", "s3", "disable_payload_signing", "")
        storage = StorageSettings(
            service_url=self._str("S3_SERVICE_URL", "s3", "service_url", "") or None,
            access_key=self._str("S3_ACCESS_KEY", "s3", "access_key", ""),
            secret_key=self._str("S3_SECRET_KEY", "s3", "secret_key", ""),
            bucket_name=self._str("S3_BUCKET_NAME", "s3", "bucket_name", "sitespeed-results"),
            region=self._str("S3_REGION", "s3", "region", "us-east-1"),
            disable_payload_signing=signing_raw.lower() != "false",
        )

        auth_token = self._str("AUTH_TOKEN", "auth", "token", "")

        cleanup_interval_seconds = self._int("", "cleanup", "interval_seconds", 300)
        cleanup_max_age_seconds = self._int("", "cleanup", "max_age_seconds", 300)
        reaper_root = self._path("", "cleanup", "root")

        # Flask
        flask_host = self._str("HOST", "flask", "host", "0.0.0.0")
        flask_port = self._int("PORT", "flask", "port", 8080)
        flask_debug = self._bool("FLASK_DEBUG", "flask", "debug", False)

        # Validate
        if not sitespeed_bin:
            raise ValueError("sitespeed.sitespeed_bin is empty")
        if timeout_seconds <= 0:
            raise ValueError(f"sitespeed.timeout_seconds must be positive: {timeout_seconds}")

        return AppSettings(
            node_bin=node_bin,
            sitespeed_bin=sitespeed_bin,
            timeout_seconds=timeout_seconds,
            temp_root=temp_root,
            storage=storage,
            auth_token=auth_token,
            cleanup_interval_seconds=cleanup_interval_seconds,
            cleanup_max_age_seconds=cleanup_max_age_seconds,
            reaper_root=reaper_root,
            flask_host=flask_host,
            flask_port=flask_port,
            flask_debug=flask_debug,
        )
