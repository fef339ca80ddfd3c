"""
Fusion 360 tool library compiler.

Turns a library's ordered tool bindings, its machine, the selected
materials and the machine/material presets into a FusionLibrary document:

1. Input checks (tools present, machine bound, every reference resolvable,
   tool numbers unique and in range). All failures are collected.
2. Per tool: holder compatibility re-check, machine fit checks, and one
   cutting preset per material. Problems here are warnings.
3. Structural validation of the assembled document.

The output is a pure function of the input: GUIDs are name-based and
timestamps come from the records, so equal inputs give equal documents.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from math import isfinite
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..calculator.compatibility import classify, resolve_shank_diameter
from ..calculator.constants import (
    BODY_LENGTH_FLUTE_FACTOR,
    BODY_LENGTH_OVERALL_FACTOR,
    DRILL_RETRACT_MULTIPLIER,
    FUSION360_RAMP_ANGLE_DEG,
    HOLDER_CLEARANCE_MM,
    SHOULDER_LENGTH_BUFFER_MM,
)
from ..calculator.feeds_speeds import CuttingParameters, is_drill_type, resolve
from ..calculator.numbering import NumberRequest, assign_library_numbers
from ..calculator.validation import (
    Severity,
    ValidationMessage,
    error,
    has_errors,
    info,
    warning,
)
from ..enums import Compatibility, ProductIdSource, ToolType
from ..errors import CuttingDataError, ShankDiameterMissing
from .loaders import (
    Machine,
    MachineMaterialPreset,
    Material,
    PostProcessSettings,
    Tool,
    ToolEntry,
    ToolGeometry,
    ToolHolder,
)
from .schema import (
    FUSION360_TOOL_TYPES,
    FusionGeometry,
    FusionHolder,
    FusionHolderSegment,
    FusionLibrary,
    FusionPostProcess,
    FusionPreset,
    FusionStartValues,
    FusionTool,
)

logger = logging.getLogger(__name__)

# Namespace for name-based GUIDs of exported tools, holders and presets
TOOLCRIB_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://toolcrib.invalid/fusion360")

_NON_ENDMILL_TYPES = frozenset({
    ToolType.DRILL,
    ToolType.SPOT_DRILL,
    ToolType.REAMER,
    ToolType.TAP,
    ToolType.PROBE,
})

PresetMap = Dict[Tuple[str, str], MachineMaterialPreset]


@dataclass
class CompileResult:
    """Compiler output. document is None when any ERROR was found."""
    library_name: str
    document: Optional[FusionLibrary]
    messages: List[ValidationMessage] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.document is not None and not has_errors(self.messages)

    @property
    def errors(self) -> List[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.WARNING]


def _guid(*parts: object) -> str:
    return str(uuid.uuid5(TOOLCRIB_NAMESPACE, "/".join(str(p) for p in parts)))


def _epoch_ms(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    return int(value.timestamp() * 1000)


def _num(value: float) -> str:
    """Plain number text: 3.0 -> '3', 3.175 -> '3.175'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_fusion_number(value: float) -> str:
    """
    Format a number for a Fusion 360 expression.

    Fusion expressions write decimals as ``(X,Y)``: 1.7 becomes ``(1,7)``
    and 3.175 becomes ``(3,175)``. Whole numbers are written plainly.
    """
    text = _num(value)
    if "." in text:
        return "(" + text.replace(".", ",") + ")"
    return text


def map_coolant(coolant_type: Optional[str]) -> str:
    """Map a stored coolant name to Fusion's coolant setting."""
    key = (coolant_type or "").lower()
    if key == "flood":
        return "flood"
    if key == "mist":
        return "mist"
    if key == "air":
        return "air blast"
    if key in ("through", "through_tool"):
        return "through tool"
    return "disabled"


def map_geometry(
    geometry: ToolGeometry,
    tool_type: ToolType,
    holder_gauge_length: Optional[float] = None,
) -> FusionGeometry:
    """Map tool geometry to Fusion's ISO 13399 keys, filling estimates."""
    is_endmill = tool_type not in _NON_ENDMILL_TYPES
    g = FusionGeometry(DC=geometry.diameter_mm, CSP=False, HAND=True)

    if geometry.number_of_flutes:
        g.NOF = geometry.number_of_flutes
    if geometry.flute_length_mm:
        g.LCF = geometry.flute_length_mm
    if geometry.overall_length_mm:
        g.OAL = geometry.overall_length_mm

    g.SFDM = geometry.shank_diameter_mm or geometry.diameter_mm

    if is_endmill:
        g.RE = geometry.corner_radius_mm or 0.0
        g.DCX = geometry.diameter_mm
        g.TA = 0.0
        g.upper_radius = 0.0
    elif geometry.corner_radius_mm is not None:
        g.RE = geometry.corner_radius_mm

    if geometry.point_angle_deg and tool_type in (ToolType.DRILL, ToolType.SPOT_DRILL):
        g.SIG = geometry.point_angle_deg

    if geometry.helix_angle_deg and is_endmill:
        g.HA = geometry.helix_angle_deg

    shoulder = geometry.shoulder_length_mm
    if shoulder is None and geometry.flute_length_mm:
        shoulder = geometry.flute_length_mm + SHOULDER_LENGTH_BUFFER_MM
    if shoulder is not None:
        g.shoulder_length = shoulder
        if is_endmill:
            g.shoulder_diameter = geometry.diameter_mm

    below_holder = geometry.length_below_holder_mm
    if below_holder is None and shoulder is not None:
        below_holder = shoulder + HOLDER_CLEARANCE_MM

    if below_holder is not None:
        body = below_holder
    elif geometry.body_length_mm:
        body = geometry.body_length_mm
    elif geometry.flute_length_mm:
        body = geometry.flute_length_mm * BODY_LENGTH_FLUTE_FACTOR
    else:
        body = geometry.overall_length_mm * BODY_LENGTH_OVERALL_FACTOR
    g.LB = round(body, 2)

    # Assembly gauge length = holder gauge length + stick-out
    if holder_gauge_length and geometry.overall_length_mm:
        stickout = g.LB or geometry.overall_length_mm * BODY_LENGTH_OVERALL_FACTOR
        g.assembly_gauge_length = round(holder_gauge_length + stickout, 2)

    return g


def build_tool_expressions(tool: Tool, tool_number: int, holder: Optional[ToolHolder] = None) -> Dict[str, str]:
    """Parametric expressions Fusion shows on the tool's dialog."""
    expr: Dict[str, str] = {}
    geom = tool.geometry

    if holder is not None:
        expr["holder_description"] = f"'{holder.name}'"
        if holder.product_id:
            expr["holder_productId"] = f"'{holder.product_id}'"
        if holder.product_url:
            expr["holder_productLink"] = f"'{holder.product_url}'"
        if holder.vendor:
            expr["holder_vendor"] = f"'{holder.vendor}'"

    body_length = geom.flute_length_mm or geom.overall_length_mm * BODY_LENGTH_OVERALL_FACTOR
    expr["tool_bodyLength"] = f"{_num(body_length)} mm"
    expr["tool_description"] = f"'{tool.name}'"
    expr["tool_diameter"] = f"{format_fusion_number(geom.diameter_mm)} mm"
    if geom.flute_length_mm:
        expr["tool_fluteLength"] = f"{_num(geom.flute_length_mm)} mm"
    if tool.substrate:
        expr["tool_material"] = f"'{tool.substrate}'"
    expr["tool_number"] = str(tool_number)
    expr["tool_overallLength"] = f"{_num(geom.overall_length_mm)} mm"
    if tool.product_id:
        expr["tool_productId"] = f"'{tool.product_id}'"
    if tool.product_url:
        expr["tool_productLink"] = f"'{tool.product_url}'"
    expr["tool_shaftDiameter"] = f"{_num(geom.shank_diameter_mm or geom.diameter_mm)} mm"
    if geom.flute_length_mm:
        expr["tool_shoulderLength"] = f"{_num(geom.flute_length_mm)} mm"
    if tool.vendor:
        expr["tool_vendor"] = f"'{tool.vendor}'"
    return expr


def map_holder(holder: ToolHolder, guid: str) -> FusionHolder:
    """Map a holder record to Fusion's embedded holder object."""
    expressions = {"tool_description": f"'{holder.name}'"}
    if holder.segments:
        expressions["tool_holderGaugeLength"] = " + ".join(
            f"segment_{i}_height" for i in range(1, len(holder.segments) + 1)
        )
    if holder.product_id:
        expressions["tool_productId"] = f"'{holder.product_id}'"
    if holder.product_url:
        expressions["tool_productLink"] = f"'{holder.product_url}'"
    if holder.vendor:
        expressions["tool_vendor"] = f"'{holder.vendor}'"

    return FusionHolder(
        description=holder.name,
        expressions=expressions,
        gauge_length=holder.gauge_length_mm,
        guid=guid,
        last_modified=_epoch_ms(holder.updated_at),
        product_id=holder.product_id,
        product_link=holder.product_url,
        reference_guid=guid,
        segments=[
            FusionHolderSegment(
                height=s.height,
                lower_diameter=s.lower_diameter,
                upper_diameter=s.upper_diameter,
            )
            for s in holder.segments
        ],
        vendor=holder.vendor,
    )


def create_preset(
    material: Material,
    params: CuttingParameters,
    tool_type: ToolType,
    number_of_flutes: int,
    guid: str,
) -> FusionPreset:
    """Build Fusion start values; drill-like tools get the drilling shape."""
    coolant = map_coolant(params.coolant)

    if is_drill_type(tool_type):
        return FusionPreset(
            guid=guid,
            n=params.rpm,
            name=material.name,
            tool_coolant=coolant,
            use_feed_per_revolution=False,
            v_c=params.surface_speed_m_min,
            v_f_plunge=params.plunge_feed_mm_min,
            v_f_retract=round(params.plunge_feed_mm_min * DRILL_RETRACT_MULTIPLIER),
        )

    return FusionPreset(
        f_n=params.chip_load_mm * number_of_flutes,
        f_z=params.chip_load_mm,
        guid=guid,
        n=params.rpm,
        n_ramp=params.rpm,
        name=material.name,
        ramp_angle=FUSION360_RAMP_ANGLE_DEG,
        stepdown=params.axial_depth_mm,
        stepover=params.radial_depth_mm,
        tool_coolant=coolant,
        use_stepdown=True,
        use_stepover=True,
        v_c=params.surface_speed_m_min,
        v_f=params.feed_mm_min,
        v_f_leadIn=params.feed_mm_min,
        v_f_leadOut=params.feed_mm_min,
        v_f_plunge=params.plunge_feed_mm_min,
        v_f_ramp=params.feed_mm_min,
        v_f_transition=params.feed_mm_min,
    )


def _post_process(post: Optional[PostProcessSettings], tool: Tool, tool_number: int) -> FusionPostProcess:
    post = post or PostProcessSettings()
    return FusionPostProcess(
        break_control=post.break_control if post.break_control is not None else False,
        comment=post.comment if post.comment is not None else (tool.notes or ""),
        diameter_offset=post.diameter_offset if post.diameter_offset is not None else tool_number,
        length_offset=post.length_offset if post.length_offset is not None else tool_number,
        live=post.live if post.live is not None else True,
        manual_tool_change=post.manual_tool_change if post.manual_tool_change is not None else False,
        number=tool_number,
        turret=post.turret if post.turret is not None else 0,
    )


def _holder_checks(
    tool: Tool, holder: ToolHolder, machine: Machine, tool_number: int,
) -> List[ValidationMessage]:
    messages = []
    try:
        shank = resolve_shank_diameter(tool.geometry)
    except ShankDiameterMissing:
        messages.append(warning(
            "HOLDER_UNCHECKED",
            f"T{tool_number} '{tool.name}': no shank or cutting diameter; "
            f"holder '{holder.name}' could not be checked",
            tool_number=tool_number,
        ))
    else:
        if classify(shank, holder) == Compatibility.INCOMPATIBLE:
            lo = "-" if holder.collet_min_mm is None else f"{holder.collet_min_mm:g}"
            hi = "-" if holder.collet_max_mm is None else f"{holder.collet_max_mm:g}"
            messages.append(warning(
                "HOLDER_INCOMPATIBLE",
                f"T{tool_number} '{tool.name}': shank {shank:g} mm is outside holder "
                f"'{holder.name}' collet range {lo}..{hi} mm",
                suggestion="Pick a holder whose collet range covers the shank diameter",
                tool_number=tool_number,
            ))

    if (machine.tool_holder_type and holder.taper_type
            and holder.taper_type != "other"
            and holder.taper_type.upper() != machine.tool_holder_type.upper()):
        messages.append(warning(
            "HOLDER_TAPER_MISMATCH",
            f"T{tool_number} '{tool.name}': holder '{holder.name}' is {holder.taper_type}, "
            f"machine '{machine.name}' takes {machine.tool_holder_type}",
            tool_number=tool_number,
        ))
    return messages


def _check_inputs(
    entries: Sequence[ToolEntry],
    machine: Optional[Machine],
    materials: Sequence[Material],
    material_ids: Optional[Sequence[str]],
) -> Tuple[List[ValidationMessage], List[Material]]:
    messages: List[ValidationMessage] = []

    if not entries:
        messages.append(error("LIBRARY_EMPTY", "Library has no tools",
                              suggestion="Add at least one tool before exporting"))
    if machine is None:
        messages.append(error("NO_MACHINE", "Library has no machine assigned",
                              suggestion="Assign a machine to the library"))
    elif machine.max_rpm <= 0 or machine.min_rpm < 0 or machine.min_rpm > machine.max_rpm:
        messages.append(error(
            "MACHINE_RPM_RANGE",
            f"Machine '{machine.name}' has an invalid spindle range "
            f"{machine.min_rpm:g}-{machine.max_rpm:g} RPM",
        ))

    for i, entry in enumerate(entries, start=1):
        if entry.tool is None:
            messages.append(error(
                "TOOL_NOT_FOUND",
                f"Entry {i}: tool '{entry.tool_id}' not found",
                tool_number=entry.tool_number,
            ))
        if entry.holder_id and entry.holder is None:
            messages.append(error(
                "HOLDER_NOT_FOUND",
                f"Entry {i}: holder '{entry.holder_id}' not found",
                tool_number=entry.tool_number,
            ))

    by_id = {m.id: m for m in materials}
    if material_ids is None:
        selected = list(materials)
    else:
        selected = []
        for mid in material_ids:
            if mid in by_id:
                selected.append(by_id[mid])
            else:
                messages.append(error("MATERIAL_NOT_FOUND", f"Material '{mid}' not found"))

    return messages, selected


def _preset_map(presets: Union[PresetMap, Iterable[MachineMaterialPreset], None]) -> PresetMap:
    if presets is None:
        return {}
    if isinstance(presets, dict):
        return dict(presets)
    return {(p.machine_id, p.material_id): p for p in presets}


def compile_library(
    library_name: str,
    entries: Sequence[ToolEntry],
    machine: Optional[Machine],
    materials: Sequence[Material] = (),
    presets: Union[PresetMap, Iterable[MachineMaterialPreset], None] = None,
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
    material_ids: Optional[Sequence[str]] = None,
) -> CompileResult:
    """
    Compile a tool library into a Fusion 360 document.

    Args:
        library_name: Library display name
        entries: Ordered tool bindings (output keeps this order)
        machine: Target machine; required
        materials: Materials available for cutting presets
        presets: MachineMaterialPresets, as a list or keyed by
            (machine_id, material_id)
        product_id_source: Tool field exported as product id
        material_ids: Materials to generate presets for, in order. None
            means every material in ``materials``.

    Returns:
        CompileResult with the document, or with document None and every
        ERROR found
    """
    messages, selected = _check_inputs(entries, machine, materials, material_ids)

    resolvable = [(i, e) for i, e in enumerate(entries) if e.tool is not None]
    numbers, numbering_messages = assign_library_numbers([
        NumberRequest(
            tool_type=e.tool.tool_type,
            requested=e.tool_number,
            number_override=e.number_override,
            label=f"'{e.tool.name}'",
        )
        for _, e in resolvable
    ])
    messages.extend(numbering_messages)

    if has_errors(messages):
        logger.debug("Library '%s' failed input checks with %d error(s)",
                     library_name, sum(1 for m in messages if m.severity == Severity.ERROR))
        return CompileResult(library_name=library_name, document=None, messages=messages)

    preset_map = _preset_map(presets)
    if not selected:
        messages.append(info(
            "NO_MATERIALS",
            "No materials selected; tools are exported without cutting presets",
        ))

    document = FusionLibrary()
    for (_, entry), number in zip(resolvable, numbers):
        tool, msgs = compile_tool(
            library_name, entry, number, machine, selected, preset_map, product_id_source,
        )
        document.data.append(tool)
        messages.extend(msgs)

    messages.extend(validate_document(document))
    if has_errors(messages):
        return CompileResult(library_name=library_name, document=None, messages=messages)

    logger.debug("Compiled library '%s': %d tool(s), %d warning(s)",
                 library_name, len(document.data),
                 sum(1 for m in messages if m.severity == Severity.WARNING))
    return CompileResult(library_name=library_name, document=document, messages=messages)


def compile_tool(
    library_name: str,
    entry: ToolEntry,
    tool_number: int,
    machine: Machine,
    materials: Sequence[Material],
    presets: PresetMap,
    product_id_source: ProductIdSource = ProductIdSource.PRODUCT_ID,
) -> Tuple[FusionTool, List[ValidationMessage]]:
    """Compile one binding. Cutting-data failures degrade to warnings."""
    tool = entry.tool
    holder = entry.holder
    geom = tool.geometry
    messages: List[ValidationMessage] = []

    if holder is not None:
        messages.extend(_holder_checks(tool, holder, machine, tool_number))

    if machine.max_tool_diameter_mm and geom.diameter_mm > machine.max_tool_diameter_mm:
        messages.append(warning(
            "TOOL_EXCEEDS_MACHINE",
            f"T{tool_number} '{tool.name}': diameter {geom.diameter_mm:g} mm exceeds "
            f"machine maximum {machine.max_tool_diameter_mm:g} mm",
            tool_number=tool_number,
        ))

    fusion_presets: List[FusionPreset] = []
    flutes = geom.number_of_flutes or 1
    for material in materials:
        preset = presets.get((machine.id, material.id))
        try:
            result = resolve(tool, material, machine, preset)
        except CuttingDataError as e:
            logger.warning("No cutting data for T%d in %s: %s", tool_number, material.name, e)
            messages.append(warning(
                "CUTTING_DATA_UNAVAILABLE",
                f"T{tool_number} '{tool.name}' in {material.name}: {e}",
                suggestion="Check the tool's diameter and the machine's spindle range",
                tool_number=tool_number,
            ))
            continue
        for m in result.messages:
            m.tool_number = tool_number
            m.message = f"T{tool_number} '{tool.name}': {m.message}"
        messages.extend(result.messages)
        if result.parameters is None:
            continue
        fusion_presets.append(create_preset(
            material, result.parameters, tool.tool_type, flutes,
            guid=_guid(library_name, "preset", tool.id, tool_number, material.id),
        ))

    tool_guid = _guid(library_name, "tool", tool.id, tool_number)

    if product_id_source == ProductIdSource.INTERNAL_REFERENCE:
        product_id = tool.internal_reference
    else:
        product_id = tool.product_id

    fusion_tool = FusionTool(
        BMC=tool.substrate or None,
        description=tool.name,
        expressions=build_tool_expressions(tool, tool_number, holder),
        geometry=map_geometry(geom, tool.tool_type, holder.gauge_length_mm if holder else None),
        guid=tool_guid,
        holder=map_holder(holder, _guid(library_name, "holder", holder.id, tool_number)) if holder else None,
        last_modified=_epoch_ms(tool.updated_at),
        post_process=_post_process(entry.post_process, tool, tool_number),
        product_id=product_id or None,
        product_link=tool.product_url or None,
        reference_guid=tool_guid,
        start_values=FusionStartValues(presets=fusion_presets),
        type=FUSION360_TOOL_TYPES[tool.tool_type],
        vendor=tool.vendor or None,
    )
    return fusion_tool, messages


def validate_document(document: FusionLibrary) -> List[ValidationMessage]:
    """
    Structural checks on an assembled document. Reports every failure.

    Rules: at least one tool, unique tool numbers, finite non-negative
    diameters, a tool type on every tool, positive RPM and non-negative
    feeds in every preset, non-negative holder gauge lengths.
    """
    messages: List[ValidationMessage] = []

    if not document.data:
        messages.append(error("LIBRARY_EMPTY", "Library contains no tools"))

    seen: Dict[int, int] = {}
    for i, tool in enumerate(document.data, start=1):
        number = tool.post_process.number
        if number in seen:
            messages.append(error(
                "TOOL_NUMBER_DUPLICATE",
                f"Tool {i}: tool number {number} already used by tool {seen[number]}",
                tool_number=number,
            ))
        else:
            seen[number] = i

        dc = tool.geometry.DC
        if not isfinite(dc) or dc < 0:
            messages.append(error(
                "INVALID_DIAMETER",
                f"Tool {i}: invalid diameter {dc}",
                tool_number=number,
            ))

        if not tool.type:
            messages.append(error("MISSING_TOOL_TYPE", f"Tool {i}: missing tool type",
                                  tool_number=number))

        if tool.holder is not None and not (tool.holder.gauge_length >= 0):
            messages.append(error(
                "INVALID_HOLDER",
                f"Tool {i}: holder gauge length {tool.holder.gauge_length} is negative",
                tool_number=number,
            ))

        for preset in tool.start_values.presets:
            if not isfinite(preset.n) or preset.n <= 0:
                messages.append(error(
                    "INVALID_RPM",
                    f"Tool {i}, preset \"{preset.name}\": invalid RPM {preset.n}",
                    tool_number=number,
                ))
            for key in ("v_f", "v_f_plunge", "v_f_retract", "v_c"):
                value = getattr(preset, key)
                if value is not None and (not isfinite(value) or value < 0):
                    messages.append(error(
                        "INVALID_FEED",
                        f"Tool {i}, preset \"{preset.name}\": invalid {key} {value}",
                        tool_number=number,
                    ))

    return messages
