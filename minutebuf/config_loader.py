"""Utilities to load :mod:`minutebuf.config` structures from YAML files."""
from __future__ import annotations

import datetime as _dt
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .config import (
    DEFAULT_COMMIT_INTERVAL,
    BufferConfig,
    MinuteBufConfig,
    PublisherConfig,
    PublisherCredentials,
)

_DURATION_UNITS = {
    "ms": _dt.timedelta(milliseconds=1),
    "s": _dt.timedelta(seconds=1),
    "m": _dt.timedelta(minutes=1),
    "h": _dt.timedelta(hours=1),
}

_TRUE_VALUES = {"1", "true", "yes", "on"}

ENV_PREFIX = "MINUTEBUF_"


def load_config(path: Path, environ: Optional[Mapping[str, str]] = None) -> MinuteBufConfig:
    """Load a configuration file into :class:`MinuteBufConfig`.

    Durations accept bare integers, read as milliseconds, or strings such as
    ``"500ms"``, ``"5s"`` or ``"1m"``.  Variables prefixed with
    ``MINUTEBUF_`` in ``environ`` (``os.environ`` by default) take precedence
    over the values found in the file.
    """

    raw = _load_yaml(path)
    return build_config(raw, os.environ if environ is None else environ)


def build_config(raw: Mapping[str, Any], environ: Mapping[str, str]) -> MinuteBufConfig:
    publisher_section = dict(raw.get("publisher") or {})
    if not publisher_section.get("endpoint_url"):
        raise ValueError("publisher.endpoint_url is required")

    credentials_section = dict(publisher_section.get("credentials") or {})
    for field_name in ("access_key_id", "secret_access_key", "session_token"):
        override = environ.get(ENV_PREFIX + field_name.upper())
        if override:
            credentials_section[field_name] = override

    credentials = None
    if credentials_section.get("access_key_id") or credentials_section.get("secret_access_key"):
        credentials = PublisherCredentials(
            access_key_id=str(credentials_section.get("access_key_id", "")),
            secret_access_key=str(credentials_section.get("secret_access_key", "")),
            session_token=(
                str(credentials_section["session_token"]) if credentials_section.get("session_token") else None
            ),
        )

    region = environ.get(ENV_PREFIX + "REGION") or publisher_section.get("region")
    publisher = PublisherConfig(
        endpoint_url=str(publisher_section["endpoint_url"]),
        region=str(region) if region else None,
        credentials=credentials,
        request_timeout=float(publisher_section.get("request_timeout", 5.0)),
    )

    buffer_section = raw.get("buffer") or {}
    commit_interval = environ.get(ENV_PREFIX + "COMMIT_INTERVAL") or buffer_section.get("commit_interval")
    debug = environ.get(ENV_PREFIX + "DEBUG")
    buffer = BufferConfig(
        commit_interval=(
            parse_duration(commit_interval) if commit_interval is not None else DEFAULT_COMMIT_INTERVAL
        ),
        debug=_parse_bool(debug) if debug is not None else _coerce_bool(buffer_section.get("debug", False)),
        autostart=_coerce_bool(buffer_section.get("autostart", False)),
    )

    return MinuteBufConfig(publisher=publisher, buffer=buffer)


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if not isinstance(data, Mapping):
        raise ValueError("configuration root must be a mapping")
    return data


def parse_duration(value: Any) -> _dt.timedelta:
    if isinstance(value, _dt.timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"unsupported duration value: {value!r}")
    if isinstance(value, (int, float)):
        return _dt.timedelta(milliseconds=float(value))
    if not isinstance(value, str):
        raise ValueError(f"unsupported duration value: {value!r}")
    value = value.strip().lower()
    if value.isdigit():
        return _dt.timedelta(milliseconds=int(value))
    unit = "ms" if value.endswith("ms") else value[-1:]
    if unit not in _DURATION_UNITS:
        raise ValueError(f"unknown duration unit: {value}")
    amount = float(value[: -len(unit)])
    base = _DURATION_UNITS[unit]
    return _dt.timedelta(seconds=base.total_seconds() * amount)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return _parse_bool(value)
    return bool(value)
