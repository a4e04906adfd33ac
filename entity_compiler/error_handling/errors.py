"""
Exception classes for the entity descriptor compiler.

Only conditions that make the whole run meaningless are raised: broken
configuration, an unloadable customization schema or species table, missing
templates, or an output that cannot be written. Asset problems found while
resolving a species are never raised; they are recorded as diagnostics.
"""

from __future__ import annotations

import json
import os
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(str, Enum):
    """Severity levels for compiler errors."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Categories of compiler errors."""
    CONFIGURATION = "configuration"
    SCHEMA = "schema"
    DATA = "data"
    TEMPLATE = "template"
    OUTPUT = "output"
    PROCESSING = "processing"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    species_id: Optional[str] = None
    path: Optional[str] = None
    step: Optional[str] = None
    additional: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "species_id": self.species_id,
            "path": self.path,
            "step": self.step,
            "additional": self.additional,
        }


class CompilerError(Exception):
    """
    Base exception for all compiler errors.

    Carries structured information so the command line and the log
    formatter can report the failure without parsing the message.
    """

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self._debug_enabled = os.getenv("ENTITY_COMPILER_DEBUG", "0").strip().lower() in {
            "1", "true", "yes", "y", "on",
        }
        self.traceback_str = traceback.format_exc() if cause and self._debug_enabled else None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "traceback": self.traceback_str if self._debug_enabled else None,
        }

    def to_json(self) -> str:
        """Serialize error to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class ConfigurationError(CompilerError):
    """Invalid compiler configuration (config file, env vars, CLI flags)."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext()
        context.additional["config_key"] = config_key

        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            **kwargs,
        )
        self.config_key = config_key


class InputLoadError(CompilerError):
    """Base for run-wide input files that could not be loaded.

    ``issues`` holds one line per validation problem so a single failure
    reports everything wrong with the file.
    """

    load_step = "load_input"
    load_category = ErrorCategory.DATA

    def __init__(self, message: str, path: Optional[str] = None, issues: Optional[List[str]] = None, **kwargs):
        self.path = path
        self.issues = list(issues or [])
        context = kwargs.pop("context", None) or ErrorContext(path=path, step=self.load_step)
        context.additional.setdefault("issues", self.issues)
        super().__init__(
            message,
            category=self.load_category,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            **kwargs,
        )


class SchemaLoadError(InputLoadError):
    """The customization schema could not be read, parsed or validated."""

    load_step = "load_customizations"
    load_category = ErrorCategory.SCHEMA


class SpeciesTableError(InputLoadError):
    """The species table is missing or malformed."""

    load_step = "load_species_table"


class TemplateError(CompilerError):
    """A document template is missing or is not valid JSON."""

    def __init__(
        self,
        message: str,
        template_name: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext()
        context.step = "load_templates"
        context.additional["template_name"] = template_name

        super().__init__(
            message,
            category=ErrorCategory.TEMPLATE,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            **kwargs,
        )
        self.template_name = template_name


class EmitError(CompilerError):
    """An output document could not be written."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext()
        context.path = path
        context.step = "emit"

        super().__init__(
            message,
            category=ErrorCategory.OUTPUT,
            context=context,
            **kwargs,
        )
        self.path = path


class SpeciesProcessingError(CompilerError):
    """Unexpected failure while compiling a single species."""

    def __init__(
        self,
        message: str,
        species_id: str,
        step: str = "compile_species",
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext()
        context.species_id = species_id
        context.step = step

        super().__init__(
            message,
            category=ErrorCategory.PROCESSING,
            context=context,
            **kwargs,
        )
        self.species_id = species_id
        self.step = step
