"""
Asset Existence Probe.

Reads the on-disk geometry, animation and texture assets of an asset pack and
exposes only the minimal structure the resolver needs. The probe never raises
for a missing or malformed asset: absence and parse failures are part of the
returned view so the caller can record a diagnostic and fall back.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from entity_compiler.config import AssetLayout

logger = logging.getLogger(__name__)


GEOMETRY_PREFIX = "geometry."
ANIMATION_PREFIX = "animation."


@dataclass(frozen=True)
class GeometryDocument:
    """Parsed view of one ``<name>.geo.json`` file."""
    name: str
    path: str
    exists: bool
    identifiers: Tuple[str, ...] = ()
    parse_error: Optional[str] = None

    @property
    def parsed(self) -> bool:
        return self.exists and self.parse_error is None

    def declares(self, identifier: str) -> bool:
        return identifier in self.identifiers


@dataclass(frozen=True)
class AnimationDocument:
    """Parsed view of one ``<species>.animation.json`` file."""
    species_id: str
    path: str
    exists: bool
    animations: Optional[Dict[str, Any]] = None
    parse_error: Optional[str] = None

    @property
    def usable(self) -> bool:
        """Present, parseable and carrying an ``animations`` table."""
        return self.exists and self.parse_error is None and self.animations is not None

    def keys(self) -> List[str]:
        return list(self.animations or {})

    def has_key(self, key: str) -> bool:
        return key in (self.animations or {})

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        body = (self.animations or {}).get(key)
        return body if isinstance(body, dict) else None

    def used_effects(self) -> List[str]:
        """Every ``particle_effects.*.effect`` referenced by any animation, in order."""
        effects: List[str] = []
        for body in (self.animations or {}).values():
            if not isinstance(body, dict):
                continue
            particle_effects = body.get("particle_effects")
            if isinstance(particle_effects, dict):
                entries = list(particle_effects.values())
            elif isinstance(particle_effects, list):
                entries = particle_effects
            else:
                continue
            for entry in entries:
                # A keyframe may hold a single effect or a list of them.
                candidates = entry if isinstance(entry, list) else [entry]
                for candidate in candidates:
                    if isinstance(candidate, dict):
                        effect = candidate.get("effect")
                        if isinstance(effect, str) and effect and effect not in effects:
                            effects.append(effect)
        return effects

    def animated_bones(self, key: str) -> List[str]:
        body = self.get(key)
        if not body or not isinstance(body.get("bones"), dict):
            return []
        return list(body["bones"])


def extract_geometry_identifiers(payload: Any) -> Tuple[str, ...]:
    """Collect declared geometry identifiers.

    Supports the current ``minecraft:geometry`` list format and the legacy
    format where each geometry is a top-level ``geometry.<name>`` key
    (optionally ``geometry.<name>:geometry.<parent>``).
    """
    identifiers: List[str] = []
    if not isinstance(payload, dict):
        return ()
    geometries = payload.get("minecraft:geometry")
    if isinstance(geometries, list):
        for geometry in geometries:
            if not isinstance(geometry, dict):
                continue
            description = geometry.get("description")
            if isinstance(description, dict):
                identifier = description.get("identifier")
                if isinstance(identifier, str) and identifier:
                    identifiers.append(identifier)
    for key in payload:
        if isinstance(key, str) and key.startswith(GEOMETRY_PREFIX):
            identifiers.append(key.split(":", 1)[0])
    return tuple(dict.fromkeys(identifiers))


class AssetProbe:
    """File-existence and minimal-structure probe over one asset pack root.

    Parsed documents are cached; the cache is shared by worker threads.
    """

    def __init__(self, root: Path, layout: Optional[AssetLayout] = None):
        self.root = Path(root)
        self.layout = layout or AssetLayout()
        self._lock = threading.Lock()
        self._geometry_cache: Dict[str, GeometryDocument] = {}
        self._animation_cache: Dict[str, AnimationDocument] = {}
        self._texture_listing_cache: Dict[str, Tuple[str, ...]] = {}

    def resolve(self, relative_path: str) -> Path:
        return self.root / relative_path

    def geometry(self, name: str) -> GeometryDocument:
        """Probe ``<geometry_dir>/<name>.geo.json``."""
        with self._lock:
            cached = self._geometry_cache.get(name)
        if cached is not None:
            return cached

        relative = self.layout.geometry_file(name)
        path = self.resolve(relative)
        if not path.is_file():
            document = GeometryDocument(name=name, path=relative, exists=False)
        else:
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.debug(f"Geometry file {relative} could not be parsed: {exc}")
                document = GeometryDocument(name=name, path=relative, exists=True, parse_error=str(exc))
            else:
                document = GeometryDocument(
                    name=name,
                    path=relative,
                    exists=True,
                    identifiers=extract_geometry_identifiers(payload),
                )

        with self._lock:
            self._geometry_cache.setdefault(name, document)
        return document

    def animation(self, species_id: str) -> AnimationDocument:
        """Probe ``<animation_dir>/<species>.animation.json``."""
        with self._lock:
            cached = self._animation_cache.get(species_id)
        if cached is not None:
            return cached

        relative = self.layout.animation_file(species_id)
        path = self.resolve(relative)
        if not path.is_file():
            document = AnimationDocument(species_id=species_id, path=relative, exists=False)
        else:
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                document = AnimationDocument(
                    species_id=species_id, path=relative, exists=True, parse_error=str(exc)
                )
            else:
                animations = payload.get("animations") if isinstance(payload, dict) else None
                if isinstance(animations, dict):
                    document = AnimationDocument(
                        species_id=species_id, path=relative, exists=True, animations=animations
                    )
                else:
                    document = AnimationDocument(
                        species_id=species_id,
                        path=relative,
                        exists=True,
                        parse_error="missing 'animations' table",
                    )

        with self._lock:
            self._animation_cache.setdefault(species_id, document)
        return document

    def texture_files(self, species_id: str) -> Tuple[str, ...]:
        """File names in the species' texture directory (empty if absent)."""
        with self._lock:
            cached = self._texture_listing_cache.get(species_id)
        if cached is not None:
            return cached

        directory = self.resolve(f"{self.layout.texture_dir}/{species_id}")
        if directory.is_dir():
            listing = tuple(sorted(entry.name for entry in directory.iterdir() if entry.is_file()))
        else:
            logger.debug(f"No texture directory for {species_id} at {directory}")
            listing = ()

        with self._lock:
            self._texture_listing_cache.setdefault(species_id, listing)
        return listing

    def texture_exists(self, species_id: str, file_name: str) -> bool:
        return file_name in self.texture_files(species_id)

    def texture_path(self, species_id: str, file_name: str) -> str:
        """Pack-relative, forward-slash texture path as written into descriptors."""
        return self.layout.texture_file(species_id, file_name)

    def sprite_path(self, sprite_name: str) -> Path:
        return self.resolve(self.layout.sprite_file(sprite_name))

    def sprite_exists(self, sprite_name: str) -> bool:
        return self.sprite_path(sprite_name).is_file()
