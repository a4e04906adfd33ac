from __future__ import annotations

from entity_compiler.assets.probe import AnimationDocument, AssetProbe, extract_geometry_identifiers


class TestGeometryIdentifiers:
    def test_current_format(self):
        payload = {
            "format_version": "1.12.0",
            "minecraft:geometry": [
                {"description": {"identifier": "geometry.pikachu"}},
                {"description": {"identifier": "geometry.pikachu_hat"}},
                "garbage",
            ],
        }
        assert extract_geometry_identifiers(payload) == ("geometry.pikachu", "geometry.pikachu_hat")

    def test_legacy_format_strips_parent(self):
        payload = {"format_version": "1.8.0", "geometry.eevee:geometry.base": {"bones": []}}
        assert extract_geometry_identifiers(payload) == ("geometry.eevee",)

    def test_non_mapping(self):
        assert extract_geometry_identifiers([1, 2]) == ()


class TestAssetProbe:
    def test_geometry_states(self, asset_pack):
        asset_pack.geometry("pikachu")
        asset_pack.raw_geometry("raichu", "{broken")
        probe = AssetProbe(asset_pack.root)

        found = probe.geometry("pikachu")
        assert found.parsed and found.declares("geometry.pikachu")
        assert found.path == "models/entity/pokemon/pikachu.geo.json"

        broken = probe.geometry("raichu")
        assert broken.exists and not broken.parsed

        missing = probe.geometry("mew")
        assert not missing.exists and not missing.parsed

    def test_documents_are_cached(self, asset_pack):
        asset_pack.geometry("pikachu")
        probe = AssetProbe(asset_pack.root)
        first = probe.geometry("pikachu")
        asset_pack.path(asset_pack.layout.geometry_file("pikachu")).unlink()
        assert probe.geometry("pikachu") is first

    def test_animation_states(self, asset_pack):
        asset_pack.animations("pikachu", ["ground_idle", "walking"])
        asset_pack.raw_animations("raichu", {"format_version": "1.8.0"})
        probe = AssetProbe(asset_pack.root)

        pikachu = probe.animation("pikachu")
        assert pikachu.usable
        assert pikachu.keys() == ["animation.pikachu.ground_idle", "animation.pikachu.walking"]
        assert pikachu.has_key("animation.pikachu.walking")

        raichu = probe.animation("raichu")
        assert raichu.exists and not raichu.usable
        assert raichu.parse_error == "missing 'animations' table"

        assert not probe.animation("mew").exists

    def test_textures_listing(self, asset_pack):
        asset_pack.textures("pikachu", "pikachu.png", "shiny_pikachu.png")
        probe = AssetProbe(asset_pack.root)
        assert probe.texture_files("pikachu") == ("pikachu.png", "shiny_pikachu.png")
        assert probe.texture_exists("pikachu", "shiny_pikachu.png")
        assert not probe.texture_exists("pikachu", "female_pikachu.png")
        assert probe.texture_files("mew") == ()
        assert probe.texture_path("pikachu", "pikachu.png") == "textures/entity/pokemon/pikachu/pikachu.png"

    def test_sprites(self, asset_pack):
        asset_pack.sprite("pikachu")
        probe = AssetProbe(asset_pack.root)
        assert probe.sprite_exists("pikachu")
        assert not probe.sprite_exists("pikachu_halloween")


class TestAnimationDocument:
    def _document(self, animations):
        return AnimationDocument(species_id="gastly", path="gastly.animation.json", exists=True, animations=animations)

    def test_used_effects_dict_and_list_forms(self):
        document = self._document(
            {
                "animation.gastly.ground_idle": {
                    "particle_effects": {
                        "0.0": {"effect": "poison_smoke", "locator": "body"},
                        "0.5": [{"effect": "spark"}, {"effect": "poison_smoke"}],
                    }
                },
                "animation.gastly.faint": {"particle_effects": [{"effect": "fade"}]},
                "animation.gastly.walking": {"loop": True},
            }
        )
        assert document.used_effects() == ["poison_smoke", "spark", "fade"]

    def test_animated_bones(self):
        document = self._document({"animation.gastly.blink": {"bones": {"eyelid_left": {}, "eyelid_right": {}}}})
        assert document.animated_bones("animation.gastly.blink") == ["eyelid_left", "eyelid_right"]
        assert document.animated_bones("animation.gastly.walking") == []
