"""Shared logging configuration utilities."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from entity_compiler.config.env import parse_bool_env


DEFAULT_JSON_ENV_KEYS = ("LOG_JSON", "LOG_FORMAT")


def _should_use_json(env: dict[str, str]) -> bool:
    for key in DEFAULT_JSON_ENV_KEYS:
        if key in env:
            parsed = parse_bool_env(env.get(key))
            if parsed is not None:
                return parsed
    return True


def _resolve_context_value(record: logging.LogRecord, key: str, env_key: str) -> str:
    if hasattr(record, key):
        value = getattr(record, key)
        if value is not None:
            return str(value)
    env_value = os.getenv(env_key)
    return env_value if env_value is not None else ""


class JsonLogFormatter(logging.Formatter):
    """Formats logs as structured JSON with standard fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "run_id": _resolve_context_value(record, "run_id", "RUN_ID"),
            "species_id": _resolve_context_value(record, "species_id", "SPECIES_ID"),
            "message": record.getMessage(),
        }
        compiler_error = getattr(record, "compiler_error", None)
        if compiler_error is not None:
            payload["compiler_error"] = compiler_error
        for key in ("error_category", "error_severity", "diagnostic_category", "identifier"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = self._serialize_enum(value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)

    @staticmethod
    def _serialize_enum(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value


class PlainTextFormatter(logging.Formatter):
    """Human-friendly formatter for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        record.run_id = _resolve_context_value(record, "run_id", "RUN_ID")
        record.species_id = _resolve_context_value(record, "species_id", "SPECIES_ID")
        return super().format(record)


def init_logging(
    *,
    level: Optional[int] = None,
    json_enabled: Optional[bool] = None,
    stream: Optional[Any] = None,
) -> None:
    """Initialize shared logging configuration."""

    if level is None:
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        level = logging.getLevelName(level_name)
        if isinstance(level, str):
            level = logging.INFO

    if json_enabled is None:
        json_enabled = _should_use_json(dict(os.environ))

    # stdout is reserved for command output such as --print-config.
    handler_stream = stream if stream is not None else sys.stderr
    handler = logging.StreamHandler(handler_stream)
    if json_enabled:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(
            PlainTextFormatter(
                "%(asctime)s %(levelname)s %(module)s "
                "[run_id=%(run_id)s species_id=%(species_id)s] "
                "%(message)s"
            )
        )

    logging.basicConfig(level=level, handlers=[handler], force=True)
