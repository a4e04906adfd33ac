from __future__ import annotations

import json

import numpy as np
from PIL import Image

from entity_compiler.assets.sprites import (
    SILHOUETTE_VALUE,
    ItemTextureAtlas,
    SpriteProcessor,
    make_dark_sprite,
    sprite_names,
)
from entity_compiler.diagnostics import DiagnosticCategory, DiagnosticsReport


def test_sprite_names():
    assert sprite_names("eevee", ["winter", "summer"]) == ["eevee", "eevee_winter", "eevee_summer"]


def test_make_dark_sprite_keeps_alpha():
    image = Image.new("RGBA", (2, 1), (255, 128, 0, 255))
    image.putpixel((1, 0), (40, 50, 60, 0))

    dark = np.array(make_dark_sprite(image))

    assert dark.shape == (1, 2, 4)
    assert (dark[..., :3] == SILHOUETTE_VALUE).all()
    assert dark[0, 0, 3] == 255
    assert dark[0, 1, 3] == 0


def test_make_dark_sprite_converts_rgb():
    dark = make_dark_sprite(Image.new("RGB", (1, 1), (200, 200, 200)))
    assert dark.mode == "RGBA"
    assert dark.getpixel((0, 0)) == (SILHOUETTE_VALUE, SILHOUETTE_VALUE, SILHOUETTE_VALUE, 255)


class TestSpriteProcessor:
    def test_missing_and_present(self, asset_pack):
        asset_pack.sprite("eevee")
        report = DiagnosticsReport()

        result = SpriteProcessor(asset_pack.root).check("eevee", ["winter"], report)

        assert result.present == ["eevee"]
        assert result.missing == ["eevee_winter"]
        assert result.dark_written == ["eevee"]
        assert result.texture_entries == {"eevee": "textures/sprites/default/eevee.png"}
        assert report.identifiers(DiagnosticCategory.MISSING_SPRITE, "eevee") == ["eevee_winter"]

        with Image.open(asset_pack.path("textures/sprites/dark/eevee.png")) as dark:
            assert dark.getpixel((1, 1)) == (SILHOUETTE_VALUE, SILHOUETTE_VALUE, SILHOUETTE_VALUE, 255)
            assert dark.getpixel((0, 0))[3] == 0

    def test_rerun_does_not_rewrite(self, asset_pack):
        asset_pack.sprite("eevee")
        processor = SpriteProcessor(asset_pack.root)
        processor.check("eevee", [], DiagnosticsReport())
        assert processor.check("eevee", [], DiagnosticsReport()).dark_written == []

    def test_dark_generation_disabled(self, asset_pack):
        asset_pack.sprite("eevee")
        result = SpriteProcessor(asset_pack.root, generate_dark=False).check("eevee", [], DiagnosticsReport())
        assert result.present == ["eevee"]
        assert not asset_pack.path("textures/sprites/dark").exists()

    def test_unreadable_sprite_is_logged_not_raised(self, asset_pack, caplog):
        path = asset_pack.path("textures/sprites/default/eevee.png")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"not a png")

        result = SpriteProcessor(asset_pack.root).check("eevee", [], DiagnosticsReport())

        assert result.present == ["eevee"]
        assert result.dark_written == []
        assert "Could not process sprite" in caplog.text


class TestItemTextureAtlas:
    def test_missing_atlas_is_unavailable(self, tmp_path):
        atlas = ItemTextureAtlas.load(tmp_path / "item_texture.json")
        assert not atlas.available
        atlas.update({"eevee": "textures/sprites/default/eevee.png"})
        assert atlas.save() is False

    def test_update_preserves_other_keys(self, asset_pack):
        path = asset_pack.item_texture_atlas({"apple": {"textures": "textures/items/apple"}})
        atlas = ItemTextureAtlas.load(path)
        atlas.update({"eevee": "textures/sprites/default/eevee.png"})
        assert atlas.save() is True

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["resource_pack_name"] == "test"
        assert payload["texture_data"]["apple"] == {"textures": "textures/items/apple"}
        assert payload["texture_data"]["eevee"] == {"textures": "textures/sprites/default/eevee.png"}
        assert ItemTextureAtlas.load(path).save() is False

    def test_invalid_atlas(self, tmp_path):
        path = tmp_path / "item_texture.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert not ItemTextureAtlas.load(path).available
