"""
Unit tests for template archive creation and loading.
"""
import json
import zipfile
from io import BytesIO

import pytest

from bgart.errors import TemplateError
from bgart.models import LightingColor, LightingOptions, Placement, ShadingOptions
from bgart.services.template_codec import (
    MANIFEST_NAME,
    create_template,
    load_template,
    stored_file_name,
)
from bgart.utils.images import data_url_to_bytes


@pytest.fixture
def shading():
    return ShadingOptions(enabled=True, angle=90, distance=25, blur=12, opacity=80)


@pytest.fixture
def lighting():
    colors = (LightingColor("c1", "#ff00ff"), LightingColor("c2", "#00ffff"))
    return LightingOptions(enabled=True, intensity=22, background_darkness=40, colors=colors, active_color_id="c2")


@pytest.fixture
def placed_backgrounds(item_factory):
    return [
        item_factory("beach scene.png", 30, 20, (0, 128, 255, 255),
                     placement=Placement(0.1, 0.2, 0.3, 0.4),
                     logo_placement=Placement(0.7, 0.7, 0.2, 0.2), item_id="bg-a"),
        item_factory("desk.png", 20, 30, (90, 60, 30, 255),
                     placement=Placement(0.5, 0.5, 0.25, 0.25), item_id="bg-b"),
    ]


def _manifest(archive: bytes) -> dict:
    with zipfile.ZipFile(BytesIO(archive)) as zf:
        return json.loads(zf.read(MANIFEST_NAME))


@pytest.mark.unit
class TestCreateTemplate:
    """Tests for create_template."""

    def test_manifest_lists_placed_backgrounds(self, placed_backgrounds, shading, lighting):
        archive = create_template("Summer", placed_backgrounds, shading, lighting)

        manifest = _manifest(archive)
        assert manifest["name"] == "Summer"
        assert [b["name"] for b in manifest["backgrounds"]] == ["beach scene.png", "desk.png"]
        assert manifest["backgrounds"][0]["placement"] == {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}
        assert manifest["backgrounds"][1]["logoPlacement"] is None
        assert manifest["shadingOptions"] == shading.to_dict()
        assert manifest["lightingOptions"]["backgroundDarkness"] == 40
        assert "logo" not in manifest

    def test_stored_files_match_manifest(self, placed_backgrounds, shading, lighting):
        archive = create_template("t", placed_backgrounds, shading, lighting)

        manifest = _manifest(archive)
        with zipfile.ZipFile(BytesIO(archive)) as zf:
            for entry, bg in zip(manifest["backgrounds"], placed_backgrounds):
                assert zf.read(entry["fileName"]) == data_url_to_bytes(bg.data_url)

    def test_unplaced_backgrounds_are_left_out(self, placed_backgrounds, item_factory, shading, lighting):
        unplaced = item_factory("loose.png", 10, 10)

        manifest = _manifest(create_template("t", placed_backgrounds + [unplaced], shading, lighting))

        assert "loose.png" not in [b["name"] for b in manifest["backgrounds"]]

    def test_logo_stored_once(self, placed_backgrounds, logo_item, shading, lighting):
        archive = create_template("t", placed_backgrounds, shading, lighting, logo=logo_item)

        manifest = _manifest(archive)
        assert manifest["logo"]["name"] == "logo.png"
        with zipfile.ZipFile(BytesIO(archive)) as zf:
            assert len(zf.namelist()) == 4
            assert zf.read(manifest["logo"]["fileName"]) == data_url_to_bytes(logo_item.data_url)

    def test_stored_file_names_are_unique_and_sanitized(self):
        a = stored_file_name("../my photo.png")
        b = stored_file_name("../my photo.png")

        assert a != b
        assert a.endswith("_my_photo.png")
        assert "/" not in a


@pytest.mark.unit
class TestLoadTemplate:
    """Tests for load_template."""

    def test_round_trip(self, placed_backgrounds, logo_item, shading, lighting):
        archive = create_template("Round", placed_backgrounds, shading, lighting, logo=logo_item)

        loaded = load_template(archive)

        assert loaded.name == "Round"
        assert [b.name for b in loaded.backgrounds] == [b.name for b in placed_backgrounds]
        assert [b.placement for b in loaded.backgrounds] == [b.placement for b in placed_backgrounds]
        assert [b.logo_placement for b in loaded.backgrounds] == [b.logo_placement for b in placed_backgrounds]
        assert loaded.shading == shading
        assert loaded.lighting == lighting
        assert loaded.logo.name == "logo.png"

    def test_round_trip_preserves_image_bytes(self, placed_backgrounds, shading, lighting):
        loaded = load_template(create_template("t", placed_backgrounds, shading, lighting))

        for original, restored in zip(placed_backgrounds, loaded.backgrounds):
            assert restored.data_url.startswith("data:image/png;base64,")
            assert data_url_to_bytes(restored.data_url) == data_url_to_bytes(original.data_url)

    def test_accepts_file_objects(self, placed_backgrounds, shading, lighting):
        archive = create_template("t", placed_backgrounds, shading, lighting)

        loaded = load_template(BytesIO(archive))

        assert len(loaded.backgrounds) == 2

    def test_missing_manifest_raises(self, png_bytes):
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("background.png", png_bytes(10, 10))

        with pytest.raises(TemplateError, match="template.json not found"):
            load_template(buf.getvalue())

    def test_not_a_zip_raises(self):
        with pytest.raises(TemplateError):
            load_template(b"definitely not a zip")

    def test_invalid_manifest_json_raises(self):
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr(MANIFEST_NAME, "{not json")

        with pytest.raises(TemplateError):
            load_template(buf.getvalue())

    def test_missing_stored_file_is_skipped(self, png_bytes):
        manifest = {
            "name": "partial",
            "backgrounds": [
                {"id": "a", "name": "a.png", "placement": {"x": 0, "y": 0, "width": 1, "height": 1},
                 "fileName": "a_file.png"},
                {"id": "b", "name": "b.png", "placement": {"x": 0, "y": 0, "width": 1, "height": 1},
                 "fileName": "gone.png"},
            ],
            "shadingOptions": ShadingOptions().to_dict(),
            "lightingOptions": LightingOptions().to_dict(),
        }
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr(MANIFEST_NAME, json.dumps(manifest))
            zf.writestr("a_file.png", png_bytes(5, 5))

        loaded = load_template(buf.getvalue())

        assert [b.id for b in loaded.backgrounds] == ["a"]

    def test_missing_id_gets_fresh_one(self, png_bytes):
        manifest = {
            "name": "no ids",
            "backgrounds": [
                {"name": "x.jpg", "placement": {"x": 0.1, "y": 0.1, "width": 0.5, "height": 0.5},
                 "fileName": "x.jpg"},
            ],
            "shadingOptions": ShadingOptions().to_dict(),
            "lightingOptions": LightingOptions().to_dict(),
        }
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr(MANIFEST_NAME, json.dumps(manifest))
            zf.writestr("x.jpg", png_bytes(5, 5, fmt="JPEG"))

        loaded = load_template(buf.getvalue())

        assert loaded.backgrounds[0].id
        assert loaded.backgrounds[0].data_url.startswith("data:image/jpeg;base64,")
        assert loaded.logo is None
