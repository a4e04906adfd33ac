"""Descriptor Resolver: geometry, animations, particle effects and textures."""

from .animations import BEHAVIOR_REQUIREMENTS, parse_animation_key
from .descriptor import ResolutionContext, ResolvedDescriptor
from .resolver import DescriptorResolver, ResolutionResult, resolve_materials

__all__ = [
    "BEHAVIOR_REQUIREMENTS",
    "DescriptorResolver",
    "ResolutionContext",
    "ResolutionResult",
    "ResolvedDescriptor",
    "parse_animation_key",
    "resolve_materials",
]
