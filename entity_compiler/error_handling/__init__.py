"""
Error handling for the entity descriptor compiler.

Usage:
    from entity_compiler.error_handling import (
        CompilerError,
        SchemaLoadError,
        process_species_with_partial_failure,
    )
"""

from .errors import (
    CompilerError,
    ConfigurationError,
    EmitError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InputLoadError,
    SchemaLoadError,
    SpeciesProcessingError,
    SpeciesTableError,
    TemplateError,
)

from .logging import log_compiler_error

from .partial_failure import (
    SpeciesBatchResult,
    process_species_with_partial_failure,
)

__all__ = [
    # Errors
    "CompilerError",
    "ConfigurationError",
    "EmitError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InputLoadError",
    "SchemaLoadError",
    "SpeciesProcessingError",
    "SpeciesTableError",
    "TemplateError",
    # Logging
    "log_compiler_error",
    # Partial Failure
    "SpeciesBatchResult",
    "process_species_with_partial_failure",
]
