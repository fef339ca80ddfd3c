"""
Fusion 360 tool library document model.

A Fusion 360 ``.tools`` file is a ZIP archive holding one ``tools.json``
with ``{"data": [tool, ...], "version": 36}``. Fusion is particular about
key spelling (some hyphenated, some underscored) and key order, so the
models below declare fields in the order Fusion writes them and dump with
aliases.

Geometry keys follow ISO 13399 symbols:
    DC   cutting diameter          NOF  number of flutes
    DCX  maximum diameter          LCF  length of cut (flute length)
    OAL  overall length            SFDM shank diameter
    RE   corner radius             SIG  point angle
    HA   helix angle               TA   taper angle
    LB   body length               CSP  centre cutting
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..calculator.constants import FUSION360_LIBRARY_VERSION, FUSION360_UNIT
from ..enums import ToolType

SCHEMA_VERSION = FUSION360_LIBRARY_VERSION

FUSION360_TOOL_TYPES: Dict[ToolType, str] = {
    ToolType.FLAT_ENDMILL: "flat end mill",
    ToolType.BALL_ENDMILL: "ball end mill",
    ToolType.BULL_ENDMILL: "bull nose end mill",
    ToolType.DRILL: "drill",
    ToolType.SPOT_DRILL: "spot drill",
    ToolType.CHAMFER_MILL: "chamfer mill",
    ToolType.FACE_MILL: "face mill",
    ToolType.THREAD_MILL: "thread mill",
    ToolType.REAMER: "reamer",
    ToolType.TAP: "tap right hand",
    ToolType.ENGRAVING_TOOL: "tapered mill",
    ToolType.PROBE: "probe",
}

_missing_types = set(ToolType) - set(FUSION360_TOOL_TYPES)
if _missing_types:
    raise RuntimeError(
        "Tool types without a Fusion 360 label: "
        + ", ".join(sorted(t.value for t in _missing_types))
    )


class _FusionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class FusionGeometry(_FusionModel):
    DC: float
    DCX: Optional[float] = None
    NOF: Optional[int] = None
    LCF: Optional[float] = None
    OAL: Optional[float] = None
    SFDM: Optional[float] = None
    RE: Optional[float] = None
    SIG: Optional[float] = None
    HA: Optional[float] = None
    TA: Optional[float] = None
    CSP: Optional[bool] = None
    HAND: Optional[bool] = None
    LB: Optional[float] = None
    assembly_gauge_length: Optional[float] = Field(default=None, alias="assemblyGaugeLength")
    shoulder_length: Optional[float] = Field(default=None, alias="shoulder-length")
    shoulder_diameter: Optional[float] = Field(default=None, alias="shoulder-diameter")
    upper_radius: Optional[float] = Field(default=None, alias="upper-radius")


class FusionPresetMaterial(_FusionModel):
    category: str = "all"
    query: str = ""
    use_hardness: bool = Field(default=False, alias="use-hardness")


class FusionPreset(_FusionModel):
    """Start values for one material.

    End mills fill the v_f_* cutting feeds; drills use plunge/retract.
    """
    f_n: Optional[float] = None
    f_z: Optional[float] = None
    guid: str
    material: FusionPresetMaterial = Field(default_factory=FusionPresetMaterial)
    n: float
    n_ramp: Optional[float] = None
    name: str
    ramp_angle: Optional[float] = Field(default=None, alias="ramp-angle")
    stepdown: Optional[float] = None
    stepover: Optional[float] = None
    tool_coolant: str = Field(default="disabled", alias="tool-coolant")
    use_feed_per_revolution: Optional[bool] = Field(default=None, alias="use-feed-per-revolution")
    use_stepdown: Optional[bool] = Field(default=None, alias="use-stepdown")
    use_stepover: Optional[bool] = Field(default=None, alias="use-stepover")
    v_c: Optional[float] = None
    v_f: Optional[float] = None
    v_f_leadIn: Optional[float] = None
    v_f_leadOut: Optional[float] = None
    v_f_plunge: Optional[float] = None
    v_f_ramp: Optional[float] = None
    v_f_retract: Optional[float] = None
    v_f_transition: Optional[float] = None


class FusionHolderSegment(_FusionModel):
    height: float
    lower_diameter: float = Field(alias="lower-diameter")
    upper_diameter: float = Field(alias="upper-diameter")


class FusionHolder(_FusionModel):
    description: str
    expressions: Dict[str, str] = Field(default_factory=dict)
    gauge_length: float = Field(alias="gaugeLength")
    guid: str
    last_modified: Optional[int] = None
    product_id: Optional[str] = Field(default=None, alias="product-id")
    product_link: Optional[str] = Field(default=None, alias="product-link")
    reference_guid: Optional[str] = None
    segments: List[FusionHolderSegment] = Field(default_factory=list)
    type: str = "holder"
    unit: str = FUSION360_UNIT
    vendor: Optional[str] = None


class FusionPostProcess(_FusionModel):
    break_control: bool = Field(default=False, alias="break-control")
    comment: str = ""
    diameter_offset: int = Field(alias="diameter-offset")
    length_offset: int = Field(alias="length-offset")
    live: bool = True
    manual_tool_change: bool = Field(default=False, alias="manual-tool-change")
    number: int
    turret: int = 0


class FusionStartValues(_FusionModel):
    presets: List[FusionPreset] = Field(default_factory=list)


class FusionTool(_FusionModel):
    BMC: Optional[str] = None
    description: str
    expressions: Dict[str, str] = Field(default_factory=dict)
    geometry: FusionGeometry
    guid: str
    holder: Optional[FusionHolder] = None
    last_modified: int = 0
    post_process: FusionPostProcess = Field(alias="post-process")
    product_id: Optional[str] = Field(default=None, alias="product-id")
    product_link: Optional[str] = Field(default=None, alias="product-link")
    reference_guid: str
    start_values: FusionStartValues = Field(default_factory=FusionStartValues, alias="start-values")
    type: str
    unit: str = FUSION360_UNIT
    vendor: Optional[str] = None

    @property
    def number(self) -> int:
        return self.post_process.number


class FusionLibrary(_FusionModel):
    data: List[FusionTool] = Field(default_factory=list)
    version: int = SCHEMA_VERSION


def validate_tools_json(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check raw ``tools.json`` content for the fields Fusion requires.

    Returns:
        {"valid": bool, "errors": List[str], "warnings": List[str],
         "version": Any}
    """
    errors = []
    warnings = []

    version = data.get("version")
    if version is None:
        errors.append("Missing 'version' field")
    elif version != SCHEMA_VERSION:
        warnings.append(f"Library version {version} != expected {SCHEMA_VERSION}")

    tools = data.get("data")
    if not isinstance(tools, list):
        errors.append("Missing 'data' list")
        tools = []

    for i, tool in enumerate(tools, start=1):
        for key in ("description", "geometry", "guid", "post-process", "type"):
            if key not in tool:
                errors.append(f"Tool {i}: missing '{key}'")
        if "DC" not in tool.get("geometry", {}):
            errors.append(f"Tool {i}: missing geometry 'DC'")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "version": version,
    }
