"""
Records consumed by the export core, and JSON input/output for them.

The persistence collaborator hands the core one LibraryAggregate per
export: the library, its ordered tool bindings and every tool, holder,
machine, material and preset they reference. Rows may carry columns the
core does not use, so records ignore unknown keys. Post-process overrides
are user-authored configuration and reject unknown keys.

Uses Pydantic for validation and enum coercion.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import MaterialCategory, ProductIdSource, ToolType


class _Record(BaseModel):
    """Base for database-backed records. Numbers must be finite."""
    model_config = ConfigDict(extra='ignore', allow_inf_nan=False)


class ToolGeometry(_Record):
    """Cutting geometry of a tool, all lengths in mm."""
    diameter_mm: float
    number_of_flutes: int = 0
    overall_length_mm: float = 0.0
    flute_length_mm: float = 0.0
    shank_diameter_mm: Optional[float] = None
    corner_radius_mm: Optional[float] = None
    point_angle_deg: Optional[float] = None
    helix_angle_deg: Optional[float] = None
    shoulder_length_mm: Optional[float] = None
    body_length_mm: Optional[float] = None
    length_below_holder_mm: Optional[float] = None


class Tool(_Record):
    """A cutting tool owned by a user."""
    id: str
    name: str
    tool_type: ToolType
    geometry: ToolGeometry
    vendor: Optional[str] = None
    product_id: Optional[str] = None
    internal_reference: Optional[str] = None
    product_url: Optional[str] = None
    coating: Optional[str] = None
    substrate: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_validator('tool_type', mode='before')
    @classmethod
    def coerce_tool_type(cls, v):
        if isinstance(v, str):
            return ToolType(v.lower())
        return v


class HolderSegment(_Record):
    """One conical section of a holder profile, bottom to top."""
    height: float
    lower_diameter: float
    upper_diameter: float


class ToolHolder(_Record):
    """A tool holder. user_id None marks a system holder."""
    id: str
    name: str
    taper_type: str = "other"
    collet_type: Optional[str] = None
    collet_min_mm: Optional[float] = None
    collet_max_mm: Optional[float] = None
    gauge_length_mm: float = 0.0
    segments: List[HolderSegment] = Field(default_factory=list)
    vendor: Optional[str] = None
    product_id: Optional[str] = None
    product_url: Optional[str] = None
    user_id: Optional[str] = None
    is_public: bool = False
    updated_at: Optional[datetime] = None

    @property
    def is_system(self) -> bool:
        return self.user_id is None


class Material(_Record):
    """Workpiece material with generic cutting data."""
    id: str
    name: str
    category: MaterialCategory
    hardness_hrc_min: Optional[float] = None
    hardness_hrc_max: Optional[float] = None
    surface_speed_min_m_min: Optional[float] = None
    surface_speed_max_m_min: Optional[float] = None
    chip_load_factor: float = Field(default=1.0, gt=0)

    @field_validator('category', mode='before')
    @classmethod
    def coerce_category(cls, v):
        if isinstance(v, str):
            return MaterialCategory(v.lower().replace(' ', '_'))
        return v


class Machine(_Record):
    """A CNC machine profile."""
    id: str
    name: str
    min_rpm: float = 0.0
    max_rpm: float
    spindle_power_kw: Optional[float] = None
    travel_x_mm: Optional[float] = None
    travel_y_mm: Optional[float] = None
    travel_z_mm: Optional[float] = None
    max_feed_xy_mm_min: Optional[float] = None
    max_feed_z_mm_min: Optional[float] = None
    tool_holder_type: Optional[str] = None
    max_tool_diameter_mm: Optional[float] = None


class MachineHolder(_Record):
    """Association between a machine and a holder it accepts."""
    machine_id: str
    tool_holder_id: str
    is_default: bool = False


class MachineMaterialPreset(_Record):
    """Tuned cutting data for one (machine, material) pair."""
    machine_id: str
    material_id: str
    surface_speed_m_min: float
    chip_load_mm: float
    axial_depth_factor: float = 1.0
    radial_depth_factor: float = 0.5
    plunge_rate_factor: float = 0.5
    max_rpm_override: Optional[float] = None
    coolant_type: Optional[str] = None


class PostProcessSettings(BaseModel):
    """Per-tool post-processor overrides. Unknown keys are rejected."""
    model_config = ConfigDict(extra='forbid')

    break_control: Optional[bool] = None
    comment: Optional[str] = None
    diameter_offset: Optional[int] = None
    length_offset: Optional[int] = None
    live: Optional[bool] = None
    manual_tool_change: Optional[bool] = None
    turret: Optional[int] = None


class LibraryTool(_Record):
    """Binding of a tool into a library.

    tool_number None asks the allocator for the next free number in the
    tool's category. number_override allows a number outside that range.
    """
    tool_id: str
    tool_number: Optional[int] = Field(default=None, ge=1)
    tool_holder_id: Optional[str] = None
    post_process: Optional[PostProcessSettings] = None
    number_override: bool = False


class Library(_Record):
    """A user's tool library and its export bookkeeping."""
    id: str
    name: str
    machine_id: Optional[str] = None
    library_tools: List[LibraryTool] = Field(default_factory=list)
    default_material_ids: List[str] = Field(default_factory=list)
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID
    export_count: int = 0
    last_exported_at: Optional[datetime] = None

    @field_validator('product_id_source', mode='before')
    @classmethod
    def coerce_product_id_source(cls, v):
        if v is None:
            return ProductIdSource.PRODUCT_ID
        return v


@dataclass
class ToolEntry:
    """One resolved library binding as the compiler consumes it.

    tool/holder are None when the referenced record could not be found;
    the ids are kept so the compiler can report which one.
    """
    tool_id: str
    tool: Optional[Tool]
    tool_number: Optional[int] = None
    holder_id: Optional[str] = None
    holder: Optional[ToolHolder] = None
    post_process: Optional[PostProcessSettings] = None
    number_override: bool = False


class LibraryAggregate(_Record):
    """Everything one export needs, as fetched by the persistence layer."""
    library: Library
    tools: List[Tool] = Field(default_factory=list)
    holders: List[ToolHolder] = Field(default_factory=list)
    machine: Optional[Machine] = None
    materials: List[Material] = Field(default_factory=list)
    presets: List[MachineMaterialPreset] = Field(default_factory=list)
    machine_holders: List[MachineHolder] = Field(default_factory=list)

    def tool_index(self) -> Dict[str, Tool]:
        return {t.id: t for t in self.tools}

    def holder_index(self) -> Dict[str, ToolHolder]:
        return {h.id: h for h in self.holders}

    def entries(self) -> List[ToolEntry]:
        """Resolve the library's bindings in order."""
        tools = self.tool_index()
        holders = self.holder_index()
        return [
            ToolEntry(
                tool_id=lt.tool_id,
                tool=tools.get(lt.tool_id),
                tool_number=lt.tool_number,
                holder_id=lt.tool_holder_id,
                holder=holders.get(lt.tool_holder_id) if lt.tool_holder_id else None,
                post_process=lt.post_process,
                number_override=lt.number_override,
            )
            for lt in self.library.library_tools
        ]


def load_aggregate_json(filepath: Union[str, Path]) -> LibraryAggregate:
    """
    Load a library aggregate from a JSON file.

    Args:
        filepath: Path to the aggregate JSON

    Returns:
        LibraryAggregate with all referenced records

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If JSON is invalid or missing required fields
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Library file not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if 'library' not in data:
        raise ValueError("Invalid library JSON - must contain a 'library' section")

    return LibraryAggregate.model_validate(data)


def save_aggregate_json(aggregate: LibraryAggregate, filepath: Union[str, Path]) -> None:
    """Save a library aggregate to a JSON file."""
    filepath = Path(filepath)
    data = aggregate.model_dump(mode='json', exclude_none=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
