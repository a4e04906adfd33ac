"""Customization schema: per-species appearance differences."""

from .loader import load_customizations, parse_customizations
from .schema import (
    KNOWN_BEHAVIORS,
    AnimatedTextureConfig,
    CustomizationCatalog,
    CustomizationSchema,
    SkinSpec,
    local_effect_name,
)

__all__ = [
    "KNOWN_BEHAVIORS",
    "AnimatedTextureConfig",
    "CustomizationCatalog",
    "CustomizationSchema",
    "SkinSpec",
    "load_customizations",
    "local_effect_name",
    "parse_customizations",
]
