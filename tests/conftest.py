"""
Shared pytest fixtures for the entity compiler tests.

``asset_pack`` builds a throwaway asset pack under ``tmp_path``: species
table, customization schema, geometry/animation/texture files and sprites.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pytest
import yaml
from PIL import Image

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from entity_compiler.config import AssetLayout, CompilerConfig


def behavior(**flags: bool) -> Dict[str, bool]:
    """Behavior capability record with every flag off unless given."""
    record = {
        "canMove": True,
        "canWalk": False,
        "canSwim": False,
        "canFly": False,
        "canLook": False,
        "canSleep": False,
    }
    record.update(flags)
    return record


class AssetPackBuilder:
    """Writes asset pack inputs using the default ``pokemon`` layout."""

    def __init__(self, root: Path):
        self.root = root
        self.layout = AssetLayout()
        self.species: Dict[str, Dict[str, Any]] = {}
        self.with_models: list = []

    def path(self, relative: str) -> Path:
        return self.root / relative

    def _write_json(self, relative: str, payload: Any) -> Path:
        path = self.path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    def add_species(self, species_id: str, *, has_model: bool = True, **flags: bool) -> "AssetPackBuilder":
        self.species[species_id] = {
            "name": species_id.title(),
            "genderless": False,
            "skins": [],
            "canMount": False,
            "behavior": behavior(**flags),
        }
        if has_model:
            self.with_models.append(species_id)
        self.write_species_table()
        return self

    def write_species_table(self) -> Path:
        return self._write_json("pokemon.json", {"pokemonWithModels": self.with_models, "pokemon": self.species})

    def customizations(self, payload: Dict[str, Any]) -> Path:
        path = self.path("customizations.yaml")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return path

    def geometry(self, name: str, identifier: Optional[str] = None) -> Path:
        identifier = identifier or f"geometry.{name}"
        return self._write_json(
            self.layout.geometry_file(name),
            {
                "format_version": "1.12.0",
                "minecraft:geometry": [{"description": {"identifier": identifier}, "bones": []}],
            },
        )

    def raw_geometry(self, name: str, text: str) -> Path:
        path = self.path(self.layout.geometry_file(name))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def animations(
        self,
        species_id: str,
        names: Iterable[str] = (),
        *,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Path:
        animations: Dict[str, Any] = {f"animation.{species_id}.{name}": {"loop": True} for name in names}
        animations.update(extra or {})
        return self._write_json(
            self.layout.animation_file(species_id),
            {"format_version": "1.8.0", "animations": animations},
        )

    def raw_animations(self, species_id: str, payload: Any) -> Path:
        return self._write_json(self.layout.animation_file(species_id), payload)

    def textures(self, species_id: str, *file_names: str) -> None:
        directory = self.path(f"{self.layout.texture_dir}/{species_id}")
        directory.mkdir(parents=True, exist_ok=True)
        for file_name in file_names:
            Image.new("RGBA", (2, 2), (120, 200, 80, 255)).save(directory / file_name)

    def sprite(self, name: str) -> Path:
        path = self.path(self.layout.sprite_file(name))
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.new("RGBA", (4, 4), (200, 120, 40, 255))
        image.putpixel((0, 0), (200, 120, 40, 0))
        image.save(path)
        return path

    def item_texture_atlas(self, texture_data: Optional[Dict[str, Any]] = None) -> Path:
        return self._write_json(
            self.layout.item_texture_path,
            {"resource_pack_name": "test", "texture_name": "atlas.items", "texture_data": texture_data or {}},
        )

    def complete_species(self, species_id: str, animations: Iterable[str] = ("ground_idle",)) -> None:
        """Geometry, animations, textures and sprite for a plain species."""
        self.geometry(species_id)
        self.animations(species_id, animations)
        self.textures(species_id, f"{species_id}.png", f"shiny_{species_id}.png")
        self.sprite(species_id)

    def config(self, **overrides: Any) -> CompilerConfig:
        if not self.path("customizations.yaml").exists():
            self.customizations({})
        config = CompilerConfig(root=self.root)
        return config.with_overrides(**overrides)


@pytest.fixture
def asset_pack(tmp_path: Path) -> AssetPackBuilder:
    return AssetPackBuilder(tmp_path / "pack")


@pytest.fixture(autouse=True)
def restore_root_logging():
    """``init_logging`` reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
