"""
Pytest configuration and shared fixtures for toolcrib tests.
"""

import copy
import json
from datetime import datetime, timezone

import pytest

from toolcrib.io.loaders import (
    LibraryAggregate,
    Machine,
    MachineMaterialPreset,
    Material,
    Tool,
    ToolHolder,
)


# ─── Records ─────────────────────────────────────────────────────────────


@pytest.fixture
def machine():
    """Router with a 1000-18000 RPM spindle and BT30 taper."""
    return Machine.model_validate(_machine())


@pytest.fixture
def aluminum():
    """Aluminum 6061, surface speed 200-300 m/min."""
    return Material.model_validate(_aluminum())


@pytest.fixture
def steel():
    """Mild steel with no recorded surface speed range."""
    return Material(id="steel-1018", name="Steel 1018", category="steel")


@pytest.fixture
def endmill():
    """10mm 4-flute flat end mill."""
    return Tool.model_validate(_endmill())


@pytest.fixture
def drill():
    """6mm 2-flute drill."""
    return Tool.model_validate(_drill())


@pytest.fixture
def er20_holder():
    """ER20 collet chuck, 1-13mm."""
    return ToolHolder.model_validate(_er20_holder())


@pytest.fixture
def er11_holder():
    """ER11 collet chuck, 1-7mm."""
    return ToolHolder.model_validate(_er11_holder())


@pytest.fixture
def alu_preset():
    """Tuned aluminium preset for the test machine."""
    return MachineMaterialPreset(
        machine_id="router-1",
        material_id="alu-6061",
        surface_speed_m_min=300,
        chip_load_mm=0.05,
        max_rpm_override=8000,
        coolant_type="flood",
    )


# ─── Aggregates ──────────────────────────────────────────────────────────


@pytest.fixture
def shop_a_data():
    """Raw Shop-A aggregate dict (end mill + drill, aluminium)."""
    return _shop_a()


@pytest.fixture
def shop_a(shop_a_data):
    """Shop-A LibraryAggregate."""
    return LibraryAggregate.model_validate(shop_a_data)


@pytest.fixture
def shop_a_file(tmp_path, shop_a_data):
    """Shop-A aggregate written to a JSON file."""
    path = tmp_path / "shop-a.json"
    path.write_text(json.dumps(shop_a_data, indent=2))
    return path


@pytest.fixture
def fixed_now():
    """Clock returning a fixed UTC timestamp."""
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return lambda: stamp


# ─── Helper functions (no pytest dependency) ──────────────────────────────


def _machine():
    return {
        "id": "router-1",
        "name": "Shop Router",
        "min_rpm": 1000,
        "max_rpm": 18000,
        "max_feed_xy_mm_min": 10000,
        "max_feed_z_mm_min": 5000,
        "tool_holder_type": "BT30",
        "max_tool_diameter_mm": 50,
    }


def _aluminum():
    return {
        "id": "alu-6061",
        "name": "Aluminum 6061",
        "category": "aluminum",
        "surface_speed_min_m_min": 200,
        "surface_speed_max_m_min": 300,
        "chip_load_factor": 1.0,
    }


def _endmill():
    return {
        "id": "em-10",
        "name": "10mm 4FL Flat End Mill",
        "tool_type": "flat_endmill",
        "vendor": "Harvey",
        "product_id": "HV-10-4",
        "internal_reference": "EM-10",
        "substrate": "carbide",
        "updated_at": "2024-03-01T08:00:00+00:00",
        "geometry": {
            "diameter_mm": 10.0,
            "number_of_flutes": 4,
            "overall_length_mm": 75.0,
            "flute_length_mm": 22.0,
            "shank_diameter_mm": 10.0,
        },
    }


def _drill():
    return {
        "id": "dr-6",
        "name": "6mm Jobber Drill",
        "tool_type": "drill",
        "vendor": "Guhring",
        "product_id": "GU-6",
        "geometry": {
            "diameter_mm": 6.0,
            "number_of_flutes": 2,
            "overall_length_mm": 93.0,
            "flute_length_mm": 57.0,
            "point_angle_deg": 118.0,
        },
    }


def _er20_holder():
    return {
        "id": "er20",
        "name": "BT30 ER20 Collet Chuck",
        "taper_type": "BT30",
        "collet_type": "ER20",
        "collet_min_mm": 1.0,
        "collet_max_mm": 13.0,
        "gauge_length_mm": 60.0,
        "segments": [
            {"height": 30.0, "lower_diameter": 32.0, "upper_diameter": 32.0},
            {"height": 30.0, "lower_diameter": 46.0, "upper_diameter": 46.0},
        ],
    }


def _er11_holder():
    return {
        "id": "er11",
        "name": "BT30 ER11 Collet Chuck",
        "taper_type": "BT30",
        "collet_type": "ER11",
        "collet_min_mm": 1.0,
        "collet_max_mm": 7.0,
        "gauge_length_mm": 50.0,
    }


def _shop_a():
    return copy.deepcopy({
        "library": {
            "id": "shop-a",
            "name": "Shop-A",
            "machine_id": "router-1",
            "library_tools": [
                {"tool_id": "em-10", "tool_holder_id": "er20"},
                {"tool_id": "dr-6"},
            ],
            "default_material_ids": ["alu-6061"],
        },
        "tools": [_endmill(), _drill()],
        "holders": [_er20_holder(), _er11_holder()],
        "machine": _machine(),
        "materials": [_aluminum()],
        "presets": [],
        "machine_holders": [
            {"machine_id": "router-1", "tool_holder_id": "er20", "is_default": True},
            {"machine_id": "router-1", "tool_holder_id": "er11"},
        ],
    })
