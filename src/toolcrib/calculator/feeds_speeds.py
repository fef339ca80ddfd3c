"""
Toolcrib - Feeds and speeds

Pure functions that turn tool geometry, material cutting data and machine
limits into a cutting-parameter preset for one tool in one material.

Source precedence, highest first:
1. MachineMaterialPreset for this exact (machine, material) pair
2. Generic material defaults scaled by tool geometry
3. No data: the tool is exported without a preset

Formulas:
- Spindle speed  N  = (Vc x 1000) / (pi x D)      [rpm]
- Feed rate      F  = N x fz x z                  [mm/min]
- Surface speed  Vc = (pi x D x N) / 1000         [m/min]

Every clamp to a machine limit is reported as a WARNING message on the
result; nothing is adjusted silently.
"""

import logging
from dataclasses import dataclass, field
from math import isfinite, pi, sqrt
from typing import TYPE_CHECKING, List, Optional

from ..enums import ToolType
from ..errors import CuttingDataError
from .constants import (
    BALL_ENDMILL_STEPOVER_FACTOR,
    CHIP_LOAD_BANDS_MM,
    CHIP_LOAD_LARGE_MM,
    CHIP_THINNING_MAX_FACTOR,
    DEFAULT_AXIAL_DEPTH_FACTOR,
    DEFAULT_PLUNGE_RATE_FACTOR,
    DEFAULT_RADIAL_DEPTH_FACTOR,
    DEFAULT_SURFACE_SPEEDS_M_MIN,
    FALLBACK_MAX_FEED_MM_MIN,
)
from .validation import ValidationMessage, info, warning

if TYPE_CHECKING:
    from ..io.loaders import Machine, MachineMaterialPreset, Material, Tool

logger = logging.getLogger(__name__)

DRILL_LIKE_TYPES = frozenset({
    ToolType.DRILL,
    ToolType.SPOT_DRILL,
    ToolType.TAP,
    ToolType.REAMER,
})


def is_drill_type(tool_type: ToolType) -> bool:
    """Drill-like tools cut axially; their feed is the plunge feed."""
    return tool_type in DRILL_LIKE_TYPES


def calculate_rpm(surface_speed_m_min: float, diameter_mm: float) -> int:
    """
    Spindle speed for a surface speed and cutting diameter.

    N = (Vc x 1000) / (pi x D)

    Raises:
        CuttingDataError: Diameter is zero, negative or not finite, or the
            surface speed or resulting RPM is not finite
    """
    if not isfinite(diameter_mm) or diameter_mm <= 0:
        raise CuttingDataError(f"Cannot compute RPM for diameter {diameter_mm} mm")
    if not isfinite(surface_speed_m_min):
        raise CuttingDataError(f"Cannot compute RPM for surface speed {surface_speed_m_min} m/min")
    rpm = (surface_speed_m_min * 1000) / (pi * diameter_mm)
    if not isfinite(rpm):
        raise CuttingDataError(f"RPM for {surface_speed_m_min} m/min at {diameter_mm} mm is not finite")
    return round(rpm)


def calculate_feed_rate(rpm: float, chip_load_mm: float, flutes: int) -> int:
    """Feed rate F = N x fz x z (mm/min)."""
    feed = rpm * chip_load_mm * flutes
    if not isfinite(feed):
        raise CuttingDataError(f"Feed for {rpm} rpm, {chip_load_mm} mm/tooth is not finite")
    return round(feed)


def calculate_surface_speed(rpm: float, diameter_mm: float) -> float:
    """Surface speed Vc = (pi x D x N) / 1000 (m/min)."""
    return (pi * diameter_mm * rpm) / 1000


def calculate_chip_thinning_feed(base_feed: float, tool_diameter: float, radial_depth: float) -> int:
    """
    Chip-thinning adjusted feed for light radial engagement.

    Below 50% engagement the real chip is thinner than the programmed feed
    per tooth, so feed can rise by 1 / sqrt(1 - (1 - 2ae/D)^2), capped at
    CHIP_THINNING_MAX_FACTOR.
    """
    if tool_diameter <= 0:
        raise CuttingDataError(f"Cannot compute chip thinning for diameter {tool_diameter} mm")
    if radial_depth >= tool_diameter / 2:
        return round(base_feed)
    if radial_depth <= 0:
        return round(base_feed * CHIP_THINNING_MAX_FACTOR)
    ratio = 1 - (2 * radial_depth) / tool_diameter
    factor = 1 / sqrt(1 - ratio * ratio)
    return round(base_feed * min(factor, CHIP_THINNING_MAX_FACTOR))


def calculate_mrr(feed_rate: float, axial_depth: float, radial_depth: float) -> float:
    """Material removal rate in cm^3/min (ap x ae x Vf / 1000)."""
    return (axial_depth * radial_depth * feed_rate) / 1000


def default_chip_load(diameter_mm: float) -> float:
    """Starting chip load for a cutting diameter."""
    for upper, chip_load in CHIP_LOAD_BANDS_MM:
        if diameter_mm < upper:
            return chip_load
    return CHIP_LOAD_LARGE_MM


def representative_surface_speed(material: "Material") -> float:
    """
    Surface speed to use when no preset applies.

    Midpoint of the material's range; the single bound if only one is
    recorded; otherwise the default for its category.
    """
    lo = material.surface_speed_min_m_min
    hi = material.surface_speed_max_m_min
    if lo and hi:
        return (lo + hi) / 2
    if hi:
        return hi
    if lo:
        return lo
    return DEFAULT_SURFACE_SPEEDS_M_MIN[material.category]


@dataclass
class CuttingParameters:
    """One resolved feeds/speeds set."""
    rpm: int
    feed_mm_min: float
    plunge_feed_mm_min: float
    axial_depth_mm: float
    radial_depth_mm: float
    surface_speed_m_min: float
    chip_load_mm: float
    coolant: Optional[str] = None
    source: str = "material"  # "preset" or "material"


@dataclass
class CuttingResult:
    """Resolver output: parameters (None when there is no data) and findings."""
    parameters: Optional[CuttingParameters]
    messages: List[ValidationMessage] = field(default_factory=list)


def _machine_feed_cap(machine: "Machine", plunge: bool) -> float:
    if plunge:
        return machine.max_feed_z_mm_min or machine.max_feed_xy_mm_min or FALLBACK_MAX_FEED_MM_MIN
    return machine.max_feed_xy_mm_min or FALLBACK_MAX_FEED_MM_MIN


def resolve(
    tool: "Tool",
    material: Optional["Material"],
    machine: "Machine",
    preset: Optional["MachineMaterialPreset"] = None,
) -> CuttingResult:
    """
    Resolve cutting parameters for one tool in one material on one machine.

    A preset is only used when it belongs to this machine and material.

    Args:
        tool: Tool with geometry
        material: Target material, or None for no material data
        machine: Machine whose limits clamp the result
        preset: Optional tuned preset

    Returns:
        CuttingResult; parameters is None when there is no material

    Raises:
        CuttingDataError: Geometry or machine limits make the numbers
            meaningless (zero diameter, zero RPM, non-finite values)
    """
    geom = tool.geometry
    messages: List[ValidationMessage] = []

    if material is None:
        return CuttingResult(parameters=None)

    if preset is not None and (preset.machine_id != machine.id or preset.material_id != material.id):
        logger.debug("Ignoring preset for %s/%s on %s/%s",
                     preset.machine_id, preset.material_id, machine.id, material.id)
        preset = None

    diameter = geom.diameter_mm
    if not isfinite(diameter) or diameter <= 0:
        raise CuttingDataError(
            f"Tool '{tool.name}' has diameter {diameter} mm; cannot compute cutting data"
        )

    flutes = geom.number_of_flutes
    if flutes < 1:
        messages.append(info(
            "FLUTES_ASSUMED",
            f"{material.name}: no flute count recorded; assuming 1 flute",
        ))
        flutes = 1

    if preset is not None:
        surface_speed = preset.surface_speed_m_min
        chip_load = preset.chip_load_mm
        axial_factor = preset.axial_depth_factor
        radial_factor = preset.radial_depth_factor
        plunge_factor = preset.plunge_rate_factor
        source = "preset"
    else:
        surface_speed = representative_surface_speed(material)
        chip_load = default_chip_load(diameter) * material.chip_load_factor
        axial_factor = DEFAULT_AXIAL_DEPTH_FACTOR
        radial_factor = DEFAULT_RADIAL_DEPTH_FACTOR
        plunge_factor = DEFAULT_PLUNGE_RATE_FACTOR
        source = "material"

    for label, value in (("surface speed", surface_speed), ("chip load", chip_load),
                         ("axial depth factor", axial_factor),
                         ("radial depth factor", radial_factor),
                         ("plunge rate factor", plunge_factor)):
        if not isfinite(value) or value < 0:
            raise CuttingDataError(
                f"Tool '{tool.name}' in {material.name}: invalid {label} {value} ({source})"
            )

    rpm = calculate_rpm(surface_speed, diameter)

    if preset is not None and preset.max_rpm_override and rpm > preset.max_rpm_override:
        messages.append(info(
            "RPM_PRESET_LIMIT",
            f"{material.name}: RPM {rpm} limited to preset maximum {preset.max_rpm_override:g}",
        ))
        rpm = round(preset.max_rpm_override)

    if rpm > machine.max_rpm:
        messages.append(warning(
            "RPM_CLAMPED",
            f"{material.name}: computed RPM {rpm} exceeds machine maximum "
            f"{machine.max_rpm:g}; clamped",
            suggestion="Cutting speed will be below the material's recommendation",
        ))
        rpm = round(machine.max_rpm)
    elif rpm < machine.min_rpm:
        messages.append(warning(
            "RPM_CLAMPED",
            f"{material.name}: computed RPM {rpm} is below machine minimum "
            f"{machine.min_rpm:g}; clamped",
            suggestion="Cutting speed will exceed the material's recommendation",
        ))
        rpm = round(machine.min_rpm)

    if rpm <= 0:
        raise CuttingDataError(
            f"Tool '{tool.name}' in {material.name}: spindle speed resolves to {rpm} RPM"
        )

    actual_surface_speed = calculate_surface_speed(rpm, diameter)

    feed = calculate_feed_rate(rpm, chip_load, flutes)
    feed_cap = _machine_feed_cap(machine, plunge=False)
    if feed > feed_cap:
        messages.append(warning(
            "FEED_CLAMPED",
            f"{material.name}: computed feed {feed} mm/min exceeds machine maximum "
            f"{feed_cap:g} mm/min; clamped",
        ))
        feed = round(feed_cap)

    plunge = round(feed * plunge_factor)
    plunge_cap = _machine_feed_cap(machine, plunge=True)
    if plunge > plunge_cap:
        messages.append(warning(
            "PLUNGE_CLAMPED",
            f"{material.name}: computed plunge feed {plunge} mm/min exceeds machine "
            f"Z maximum {plunge_cap:g} mm/min; clamped",
        ))
        plunge = round(plunge_cap)

    for value in (feed, plunge, chip_load, actual_surface_speed):
        if not isfinite(value) or value < 0:
            raise CuttingDataError(
                f"Tool '{tool.name}' in {material.name}: invalid cutting value {value}"
            )

    axial = round(diameter * axial_factor, 2)
    radial = round(diameter * radial_factor, 2)

    if is_drill_type(tool.tool_type):
        params = CuttingParameters(
            rpm=rpm,
            feed_mm_min=plunge,
            plunge_feed_mm_min=plunge,
            axial_depth_mm=geom.flute_length_mm,
            radial_depth_mm=diameter / 2,
            surface_speed_m_min=round(actual_surface_speed, 1),
            chip_load_mm=chip_load,
            source=source,
        )
    else:
        if tool.tool_type == ToolType.BALL_ENDMILL:
            radial = round(radial * BALL_ENDMILL_STEPOVER_FACTOR, 2)
        params = CuttingParameters(
            rpm=rpm,
            feed_mm_min=feed,
            plunge_feed_mm_min=plunge,
            axial_depth_mm=axial,
            radial_depth_mm=radial,
            surface_speed_m_min=round(actual_surface_speed, 1),
            chip_load_mm=chip_load,
            source=source,
        )

    if preset is not None:
        params.coolant = preset.coolant_type

    return CuttingResult(parameters=params, messages=messages)
