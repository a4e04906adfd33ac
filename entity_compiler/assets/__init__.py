"""On-disk asset access: existence probe and sprite handling."""

from .probe import AnimationDocument, AssetProbe, GeometryDocument, extract_geometry_identifiers
from .sprites import ItemTextureAtlas, SpriteCheckResult, SpriteProcessor, make_dark_sprite

__all__ = [
    "AnimationDocument",
    "AssetProbe",
    "GeometryDocument",
    "ItemTextureAtlas",
    "SpriteCheckResult",
    "SpriteProcessor",
    "extract_geometry_identifiers",
    "make_dark_sprite",
]
