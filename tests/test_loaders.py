"""
Tests for the IO module - record models and aggregate JSON loading.
"""

import json

import pytest
from pydantic import ValidationError

from toolcrib.enums import MaterialCategory, ProductIdSource, ToolType
from toolcrib.io.loaders import (
    Library,
    LibraryAggregate,
    LibraryTool,
    Machine,
    MachineMaterialPreset,
    Material,
    PostProcessSettings,
    Tool,
    ToolHolder,
    load_aggregate_json,
    save_aggregate_json,
)


class TestRecords:
    """Tests for record parsing."""

    def test_tool_type_coerced_from_string(self):
        tool = Tool(id="t", name="T", tool_type="BALL_ENDMILL", geometry={"diameter_mm": 6})
        assert tool.tool_type == ToolType.BALL_ENDMILL

    def test_unknown_tool_type_rejected(self):
        with pytest.raises(ValidationError):
            Tool(id="t", name="T", tool_type="spoon", geometry={"diameter_mm": 6})

    def test_unknown_record_columns_ignored(self):
        tool = Tool(id="t", name="T", tool_type="drill",
                    geometry={"diameter_mm": 6, "stock_level": 4}, user_id="u1")
        assert not hasattr(tool, "user_id")

    def test_material_category_coerced(self):
        m = Material(id="m", name="304", category="Stainless Steel")
        assert m.category == MaterialCategory.STAINLESS_STEEL

    def test_chip_load_factor_must_be_positive(self):
        with pytest.raises(ValidationError):
            Material(id="m", name="M", category="steel", chip_load_factor=0)

    def test_system_holder(self):
        assert ToolHolder(id="h", name="H").is_system
        assert not ToolHolder(id="h", name="H", user_id="u1").is_system

    def test_library_defaults(self):
        lib = Library(id="l", name="L", product_id_source=None)
        assert lib.product_id_source == ProductIdSource.PRODUCT_ID
        assert lib.export_count == 0
        assert lib.library_tools == []

    def test_tool_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            LibraryTool(tool_id="t", tool_number=0)


class TestPostProcessSettings:
    """Post-process overrides are a closed type."""

    def test_known_fields(self):
        pp = PostProcessSettings(comment="finish", turret=1)
        assert pp.comment == "finish"
        assert pp.turret == 1
        assert pp.live is None

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            PostProcessSettings(comment="x", spindle_direction="ccw")

    def test_unknown_key_rejected_inside_binding(self):
        with pytest.raises(ValidationError):
            LibraryTool(tool_id="t", post_process={"coolant": "flood"})


class TestAggregate:
    """Tests for LibraryAggregate."""

    def test_entries_in_binding_order(self, shop_a):
        entries = shop_a.entries()
        assert [e.tool_id for e in entries] == ["em-10", "dr-6"]
        assert entries[0].holder.id == "er20"
        assert entries[1].holder is None

    def test_unresolved_references_kept(self, shop_a):
        shop_a.library.library_tools[0].tool_id = "missing"
        shop_a.library.library_tools[0].tool_holder_id = "also-missing"
        entry = shop_a.entries()[0]
        assert entry.tool is None
        assert entry.tool_id == "missing"
        assert entry.holder is None
        assert entry.holder_id == "also-missing"


class TestLoadAggregateJson:
    """Tests for load_aggregate_json and save_aggregate_json."""

    def test_load(self, shop_a_file):
        aggregate = load_aggregate_json(shop_a_file)
        assert isinstance(aggregate, LibraryAggregate)
        assert aggregate.library.name == "Shop-A"
        assert aggregate.machine.max_rpm == 18000
        assert len(aggregate.tools) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_aggregate_json(tmp_path / "nope.json")

    def test_missing_library_section(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"tools": []}))
        with pytest.raises(ValueError, match="library"):
            load_aggregate_json(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not valid json {")
        with pytest.raises(ValueError):
            load_aggregate_json(path)

    def test_save_and_reload(self, tmp_path, shop_a):
        path = tmp_path / "copy.json"
        save_aggregate_json(shop_a, path)
        reloaded = load_aggregate_json(path)
        assert reloaded == shop_a


class TestFiniteNumbers:
    """Records reject infinite and NaN numbers."""

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_preset_surface_speed(self, value):
        with pytest.raises(ValidationError):
            MachineMaterialPreset(machine_id="m", material_id="a",
                                  surface_speed_m_min=value, chip_load_mm=0.05)

    def test_material_surface_speed(self):
        with pytest.raises(ValidationError):
            Material(id="m", name="M", category="steel", surface_speed_max_m_min=float("nan"))

    def test_machine_rpm(self):
        with pytest.raises(ValidationError):
            Machine(id="m", name="M", max_rpm=float("inf"))

    def test_json_infinity_rejected(self, tmp_path, shop_a_data):
        shop_a_data["presets"] = [{"machine_id": "router-1", "material_id": "alu-6061",
                                   "surface_speed_m_min": float("inf"), "chip_load_mm": 0.05}]
        path = tmp_path / "inf.json"
        path.write_text(json.dumps(shop_a_data))
        with pytest.raises(ValueError):
            load_aggregate_json(path)
