from __future__ import annotations

import json

import pytest

from entity_compiler.config import DEFAULT_TEMPLATES_DIR
from entity_compiler.customization import CustomizationSchema
from entity_compiler.emitter import (
    DocumentEmitter,
    TemplateSet,
    build_entity_document,
    build_render_controller_document,
)
from entity_compiler.error_handling import TemplateError
from entity_compiler.resolution import ResolvedDescriptor
from entity_compiler.selection import compile_selection
from entity_compiler.variants import expand_variants

CLIENT_ENTITY = "minecraft:client_entity"


@pytest.fixture
def templates():
    return TemplateSet.load(DEFAULT_TEMPLATES_DIR)


def _selection(species_id, payload):
    schema = CustomizationSchema.model_validate(payload)
    return compile_selection(species_id, schema, expand_variants(species_id, schema))


def _descriptor(species_id="pikachu", **overrides):
    values = {
        "geometry": {"default": f"geometry.{species_id}"},
        "textures": {"default": f"textures/entity/pokemon/{species_id}/{species_id}.png"},
        "animations": {"ground_idle": f"animation.{species_id}.ground_idle"},
    }
    values.update(overrides)
    return ResolvedDescriptor(species_id=species_id, **values)


class TestTemplates:
    def test_instantiate_substitutes_placeholders(self, templates):
        document = templates.instantiate("entity", "pikachu", "pokemon")
        description = document[CLIENT_ENTITY]["description"]
        assert description["identifier"] == "pokemon:pikachu"
        assert description["animations"]["controller"] == "controller.animation.pokemon"

    def test_missing_template(self, tmp_path):
        with pytest.raises(TemplateError, match="not found"):
            TemplateSet.load(tmp_path)

    def test_invalid_template(self, tmp_path):
        for name in ("entity.json", "substitute.entity.json", "render_controller.json"):
            (tmp_path / name).write_text((DEFAULT_TEMPLATES_DIR / name).read_text(encoding="utf-8"), encoding="utf-8")
        (tmp_path / "entity.json").write_text("{", encoding="utf-8")
        with pytest.raises(TemplateError) as exc_info:
            TemplateSet.load(tmp_path)
        assert exc_info.value.template_name == "entity"

    def test_unknown_template_name(self, templates):
        with pytest.raises(TemplateError):
            templates.instantiate("nope", "pikachu")


class TestEntityDocument:
    def test_static_controller_without_selection(self, templates):
        document = build_entity_document(templates, _descriptor(), None)
        description = document[CLIENT_ENTITY]["description"]

        assert description["geometry"] == {"default": "geometry.pikachu"}
        assert description["animations"]["look_at_target"] == "animation.common.look_at_target"
        assert description["animations"]["ground_idle"] == "animation.pikachu.ground_idle"
        assert description["render_controllers"] == [
            {"controller.render.pokemon": "query.variant==0"},
            {"controller.render.evolve": "query.variant==1"},
        ]

    def test_custom_controllers(self, templates):
        selection = _selection("pikachu", {"genderDifferences": ["model"]})
        description = build_entity_document(templates, _descriptor(), selection)[CLIENT_ENTITY]["description"]
        assert description["render_controllers"] == [
            {"controller.render.pokemon:pikachu": "query.variant==0"},
            {"controller.render.pokemon:pikachu.evolve": "query.variant==1"},
        ]

    def test_texture_only_customization_keeps_shared_evolve(self, templates):
        selection = _selection("shellos", {"skins": {"east": ["texture"]}})
        description = build_entity_document(templates, _descriptor("shellos"), selection)[CLIENT_ENTITY]["description"]
        assert description["render_controllers"][1] == {"controller.render.evolve": "query.variant==1"}

    def test_materials_keep_aura_last(self, templates):
        descriptor = _descriptor(materials={"default": "custom_animated", "stpatrick": "custom_animated"})
        description = build_entity_document(templates, descriptor, None)[CLIENT_ENTITY]["description"]
        assert list(description["materials"].items()) == [
            ("default", "custom_animated"),
            ("stpatrick", "custom_animated"),
            ("aura", "charged_creeper"),
        ]

    def test_particle_effects(self, templates):
        descriptor = _descriptor(particle_effects={"poison_smoke": "pokeb:poison_smoke"})
        description = build_entity_document(templates, descriptor, None)[CLIENT_ENTITY]["description"]
        assert description["particle_effects"] == {"poison_smoke": "pokeb:poison_smoke"}

    def test_substitute(self, templates):
        descriptor = ResolvedDescriptor(species_id="missingno", has_model=False)
        description = build_entity_document(templates, descriptor, None)[CLIENT_ENTITY]["description"]
        assert description["identifier"] == "pokemon:missingno"
        assert description["geometry"] == {"default": "geometry.substitute"}
        assert description["render_controllers"] == ["controller.render.default"]


class TestRenderControllerDocument:
    def test_arrays_and_expressions(self, templates):
        selection = _selection("sandshrew", {"skins": {"halloween": ["model"]}})
        document = build_render_controller_document(templates, selection)
        controllers = document["render_controllers"]

        primary = controllers["controller.render.pokemon:sandshrew"]
        assert primary["arrays"]["geometries"]["Array.geometryVariants"] == ["Geometry.default", "Geometry.halloween"]
        assert primary["arrays"]["textures"]["Array.textureVariants"] == [
            "Texture.default",
            "Texture.shiny_default",
            "Texture.halloween",
        ]
        assert primary["geometry"] == selection.geometry.expression
        assert primary["textures"] == [selection.textures.expression]
        assert primary["materials"] == [{"*": "Material.default"}]
        assert "uv_anim" not in primary

        evolve = controllers["controller.render.pokemon:sandshrew.evolve"]
        assert evolve["geometry"] == selection.geometry.expression
        assert evolve["materials"] == [{"*": "Material.evolve"}]

    def test_shared_evolve_drops_custom_evolve(self, templates):
        selection = _selection("shellos", {"skins": {"east": ["texture"]}})
        controllers = build_render_controller_document(templates, selection)["render_controllers"]
        assert list(controllers) == ["controller.render.pokemon:shellos"]

    def test_uv_anim(self, templates):
        selection = _selection("magikarp", {"animatedTextureConfig": [4, 10]})
        primary = build_render_controller_document(templates, selection)["render_controllers"][
            "controller.render.pokemon:magikarp"
        ]
        assert primary["uv_anim"]["scale"] == [1.0, "1.0 / 4"]


class TestDocumentEmitter:
    def test_emit_writes_both_documents(self, templates, tmp_path):
        emitter = DocumentEmitter(tmp_path, templates)
        selection = _selection("pikachu", {"genderDifferences": ["model"]})

        emitted = emitter.emit(_descriptor(), selection)

        assert emitted.entity_path == tmp_path / "entity/pokemon/pikachu.entity.json"
        assert emitted.render_controller_path == tmp_path / "render_controllers/pokemon/pikachu.rc.json"
        assert emitted.written == [emitted.entity_path, emitted.render_controller_path]
        payload = json.loads(emitted.entity_path.read_text(encoding="utf-8"))
        assert payload[CLIENT_ENTITY]["description"]["identifier"] == "pokemon:pikachu"

    def test_unchanged_documents_are_not_rewritten(self, templates, tmp_path):
        emitter = DocumentEmitter(tmp_path, templates)
        emitter.emit(_descriptor(), None)
        first = emitter.entity_path("pikachu").read_bytes()

        emitted = emitter.emit(_descriptor(), None)

        assert emitted.written == []
        assert emitter.entity_path("pikachu").read_bytes() == first

    def test_namespace(self, templates, tmp_path):
        emitter = DocumentEmitter(tmp_path, templates, namespace="digimon")
        emitted = emitter.emit(_descriptor("agumon"), None)
        assert emitted.entity_path == tmp_path / "entity/digimon/agumon.entity.json"
        description = json.loads(emitted.entity_path.read_text(encoding="utf-8"))[CLIENT_ENTITY]["description"]
        assert description["identifier"] == "digimon:agumon"
        assert description["render_controllers"][0] == {"controller.render.digimon": "query.variant==0"}

    def test_prune(self, templates, tmp_path):
        emitter = DocumentEmitter(tmp_path, templates)
        emitter.emit(_descriptor("pikachu"), _selection("pikachu", {"genderDifferences": ["model"]}))
        emitter.emit(_descriptor("eevee"), None)
        (emitter.entity_dir / "notes.txt").write_text("keep me", encoding="utf-8")

        removed = emitter.prune(keep_entities={"eevee"}, keep_render_controllers=set())

        assert sorted(path.name for path in removed) == ["pikachu.entity.json", "pikachu.rc.json"]
        assert emitter.entity_path("eevee").exists()
        assert (emitter.entity_dir / "notes.txt").exists()
