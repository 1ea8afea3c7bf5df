from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError

DEFAULT_REQUEST_TIMEOUT_MS = 120000

_WHITESPACE = re.compile(r"\s")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

ENV_PREFIX = "COUNTGATE_"


@dataclass(frozen=True)
class ConnectionConfig:
    host: str
    use_tls: bool = False
    user: str | None = None
    password: str | None = None
    indexes: str | None = None
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS

    @property
    def credentials(self) -> tuple[str, str] | None:
        if not self.user:
            return None
        return (self.user, self.password or "")

    @property
    def explicit_indexes(self) -> str | None:
        if self.indexes is None or not self.indexes.strip():
            return None
        return self.indexes

    @property
    def scheme(self) -> str:
        return "https" if self.use_tls else "http"

    def masked(self) -> dict[str, Any]:
        """Return the config as a dict safe to print."""
        return {
            "host": self.host,
            "use_tls": self.use_tls,
            "user": self.user or "",
            "password": "****" if self.password else "",
            "indexes": self.indexes or "",
            "query_request_timeout_ms": self.request_timeout_ms,
        }


def _as_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not re.fullmatch(r"[+-]?\d+", text):
        return None
    return int(text)


def validate_query(value: str | None) -> None:
    if value is None or not value.strip():
        raise ConfigError("Please set a query")


def validate_indexes(value: str | None) -> None:
    if value is None or not value.strip():
        return
    if _WHITESPACE.search(value):
        raise ConfigError("Indexes cannot contain whitespace")
    if value.endswith(","):
        raise ConfigError("Indexes cannot end with a comma")


def validate_threshold(value: object) -> None:
    number = _as_int(value)
    if number is None or number < 0:
        raise ConfigError("Please set a threshold greater than or equal to 0")


def validate_since(value: object) -> None:
    number = _as_int(value)
    if number is None or number < 1:
        raise ConfigError("Please set a since value greater than 0")


def validate_request_timeout(value: object) -> None:
    number = _as_int(value)
    if number is None or number < 1:
        raise ConfigError("Please set a value greater than 0")


def validate_connection(config: ConnectionConfig) -> None:
    """Pre-flight checks run before any request is issued."""
    if bool(config.user) != bool(config.password):
        raise ConfigError(
            "user and password must both be provided or empty! "
            "Set 'user' and 'password' in the countgate config "
            f"or {ENV_PREFIX}USER / {ENV_PREFIX}PASSWORD."
        )
    if not config.host or not config.host.strip():
        raise ConfigError(
            f"Host cannot be empty! Set 'host' in the countgate config or {ENV_PREFIX}HOST."
        )
    validate_indexes(config.indexes)


def resolve_timeout_ms(value: object) -> int:
    number = _as_int(value)
    if number is None or number < 1:
        return DEFAULT_REQUEST_TIMEOUT_MS
    return number


def _parse_bool(key: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Config '{key}' must be a boolean.")


def _expect_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"Config '{key}' must be a string.")
    return value


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    mapping = {
        "HOST": "host",
        "INDEXES": "indexes",
        "USER": "user",
        "PASSWORD": "password",
        "USE_TLS": "use_tls",
        "QUERY_REQUEST_TIMEOUT_MS": "query_request_timeout_ms",
    }
    overrides: dict[str, Any] = {}
    for suffix, key in mapping.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value is not None:
            overrides[key] = value
    return overrides


def config_from_dict(raw: Mapping[str, Any]) -> ConnectionConfig:
    """Normalize raw settings the way the settings form stored them.

    Host, indexes and password are trimmed; an unparseable timeout falls
    back to the default.
    """
    host = (_expect_str(raw, "host") or "").strip()
    indexes = (_expect_str(raw, "indexes") or "").strip() or None
    user = _expect_str(raw, "user") or None
    password = (_expect_str(raw, "password") or "").strip() or None
    use_tls = _parse_bool("use_tls", raw.get("use_tls", False))
    timeout = _as_int(raw.get("query_request_timeout_ms"))
    return ConnectionConfig(
        host=host,
        use_tls=use_tls,
        user=user,
        password=password,
        indexes=indexes,
        request_timeout_ms=timeout if timeout is not None else DEFAULT_REQUEST_TIMEOUT_MS,
    )


def get_config_path() -> Path | None:
    env_val = os.getenv(ENV_PREFIX + "CONFIG")
    if env_val:
        return Path(env_val)
    return None


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConnectionConfig:
    """Load connection settings from a JSON file, then apply env overrides."""
    raw: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file is not valid JSON: {path} ({exc})") from exc
        if not isinstance(loaded, dict):
            raise ConfigError("Config must be a JSON object.")
        raw.update(loaded)

    raw.update(_env_overrides(os.environ if environ is None else environ))
    return config_from_dict(raw)
