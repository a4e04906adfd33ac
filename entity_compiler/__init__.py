"""Offline entity descriptor compiler.

Expands per-species customization schemas into appearance variants, resolves
geometry, texture, animation and particle assets with fallbacks and
diagnostics, and compiles render controller selection expressions.
"""

from entity_compiler.compiler import CompileResult, EntityCompiler, SpeciesCompilation, compile_pack
from entity_compiler.config import CompilerConfig, load_compiler_config
from entity_compiler.diagnostics import DiagnosticCategory, DiagnosticsReport
from entity_compiler.variants import AppearanceVariant, Gender, expand_variants

__version__ = "0.4.0"

__all__ = [
    "AppearanceVariant",
    "CompileResult",
    "CompilerConfig",
    "DiagnosticCategory",
    "DiagnosticsReport",
    "EntityCompiler",
    "Gender",
    "SpeciesCompilation",
    "compile_pack",
    "expand_variants",
    "load_compiler_config",
]
