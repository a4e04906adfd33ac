"""Logging helpers for compiler errors."""

from __future__ import annotations

import logging
from typing import Optional, Union

from entity_compiler.error_handling.errors import CompilerError


def log_compiler_error(
    compiler_error: CompilerError,
    message: str,
    *,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    level: int = logging.ERROR,
) -> None:
    """Log a compiler error with structured taxonomy fields."""
    log = logger or logging.getLogger(__name__)
    payload = compiler_error.to_dict()
    log.log(
        level,
        message,
        extra={
            "compiler_error": payload,
            "error_category": payload.get("category"),
            "error_severity": payload.get("severity"),
            "species_id": payload.get("context", {}).get("species_id"),
        },
    )
