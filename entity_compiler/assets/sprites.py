"""
Sprite checks and dark sprite generation.

Every species (and each of its skins) needs a menu sprite. For each sprite
that exists, a dark silhouette with the same alpha channel is written to the
dark sprite directory, and the item texture atlas gets an entry pointing at
the sprite.
"""

from __future__ import annotations

import io
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from entity_compiler.config import AssetLayout
from entity_compiler.diagnostics import DiagnosticCategory, DiagnosticsReport
from entity_compiler.error_handling.errors import EmitError
from entity_compiler.utils.atomic_write import write_bytes_atomic, write_json_atomic

logger = logging.getLogger(__name__)

SILHOUETTE_VALUE = 10


def sprite_names(species_id: str, skin_ids: List[str]) -> List[str]:
    return [species_id] + [f"{species_id}_{skin_id}" for skin_id in skin_ids]


def make_dark_sprite(image: Image.Image) -> Image.Image:
    """Flatten every RGB channel to a near-black value, keeping alpha."""
    rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
    rgba[..., :3] = SILHOUETTE_VALUE
    return Image.fromarray(rgba)


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@dataclass
class SpriteCheckResult:
    species_id: str
    present: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    dark_written: List[str] = field(default_factory=list)
    texture_entries: Dict[str, str] = field(default_factory=dict)


class SpriteProcessor:
    """Checks sprites and derives dark sprites for one asset pack."""

    def __init__(self, root: Path, layout: Optional[AssetLayout] = None, *, generate_dark: bool = True):
        self.root = Path(root)
        self.layout = layout or AssetLayout()
        self.generate_dark = generate_dark

    def check(self, species_id: str, skin_ids: List[str], report: DiagnosticsReport) -> SpriteCheckResult:
        result = SpriteCheckResult(species_id=species_id)
        for name in sprite_names(species_id, skin_ids):
            relative = self.layout.sprite_file(name)
            sprite_path = self.root / relative
            if not sprite_path.is_file():
                report.record(
                    DiagnosticCategory.MISSING_SPRITE,
                    species_id,
                    name,
                    f"Missing sprite for {name} at {relative}",
                )
                result.missing.append(name)
                continue

            result.present.append(name)
            result.texture_entries[name] = relative
            if self.generate_dark and self._write_dark_sprite(name, sprite_path):
                result.dark_written.append(name)
        return result

    def _write_dark_sprite(self, name: str, sprite_path: Path) -> bool:
        dark_path = self.root / self.layout.dark_sprite_dir / f"{name}.png"
        try:
            with Image.open(sprite_path) as image:
                dark = make_dark_sprite(image)
        except (OSError, UnidentifiedImageError) as exc:
            logger.error(f"Could not process sprite {sprite_path}: {exc}")
            return False

        written = write_bytes_atomic(dark_path, encode_png(dark))
        if written:
            logger.info(f"Dark sprite generated for {name}")
        return written


class ItemTextureAtlas:
    """The ``item_texture.json`` document; only ``texture_data`` entries are touched."""

    def __init__(self, path: Path, payload: Optional[dict] = None):
        self.path = Path(path)
        self.payload = payload
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: Path) -> "ItemTextureAtlas":
        path = Path(path)
        if not path.is_file():
            logger.info(f"No item texture atlas at {path}; sprite entries will not be written")
            return cls(path, None)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error(f"Item texture atlas {path} is not valid JSON: {exc}")
            return cls(path, None)
        if not isinstance(payload, dict):
            logger.error(f"Item texture atlas {path} must contain an object")
            return cls(path, None)
        payload.setdefault("texture_data", {})
        return cls(path, payload)

    @property
    def available(self) -> bool:
        return self.payload is not None

    def update(self, entries: Dict[str, str]) -> None:
        if self.payload is None:
            return
        with self._lock:
            texture_data = self.payload["texture_data"]
            for name, texture_path in entries.items():
                texture_data[name] = {"textures": texture_path}

    def save(self) -> bool:
        if self.payload is None:
            return False
        try:
            return write_json_atomic(self.path, self.payload)
        except OSError as exc:
            raise EmitError(f"Could not write item texture atlas {self.path}: {exc}", path=str(self.path)) from exc
