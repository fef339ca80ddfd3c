"""
Tool/holder compatibility.

A holder grips a tool by its shank. The holder's collet range
[collet_min_mm, collet_max_mm] must contain the shank diameter; an unset
bound leaves that side unconstrained.

Used as an interactive filter (compatible/incompatible holder lists for a
tool, with the machine's default holder marked) and as a re-check inside
the compiler before a holder binding is exported.
"""

from dataclasses import dataclass, field
from math import isfinite
from typing import TYPE_CHECKING, Iterable, List, Optional

from ..enums import Compatibility
from ..errors import ShankDiameterMissing

if TYPE_CHECKING:
    from ..io.loaders import MachineHolder, Tool, ToolGeometry, ToolHolder


def resolve_shank_diameter(geometry: "ToolGeometry") -> float:
    """
    Holding diameter of a tool.

    Prefers the recorded shank diameter and falls back to the cutting
    diameter.

    Raises:
        ShankDiameterMissing: Neither diameter is a positive number
    """
    for value in (geometry.shank_diameter_mm, geometry.diameter_mm):
        if value is not None and isfinite(value) and value > 0:
            return float(value)
    raise ShankDiameterMissing("Tool geometry does not have diameter information")


def classify(shank_diameter_mm: float, holder: "ToolHolder") -> Compatibility:
    """Check a shank diameter against a holder's collet range."""
    lo = holder.collet_min_mm
    hi = holder.collet_max_mm
    if lo is not None and shank_diameter_mm < lo:
        return Compatibility.INCOMPATIBLE
    if hi is not None and shank_diameter_mm > hi:
        return Compatibility.INCOMPATIBLE
    return Compatibility.COMPATIBLE


def is_compatible(shank_diameter_mm: float, holder: "ToolHolder") -> bool:
    return classify(shank_diameter_mm, holder) == Compatibility.COMPATIBLE


@dataclass
class HolderClassification:
    """Holders split by compatibility with one tool's shank."""
    shank_diameter_mm: float
    compatible: List["ToolHolder"] = field(default_factory=list)
    incompatible: List["ToolHolder"] = field(default_factory=list)
    default_holder_id: Optional[str] = None

    @property
    def all(self) -> List["ToolHolder"]:
        return sorted(self.compatible + self.incompatible, key=lambda h: h.name)

    @property
    def default_is_compatible(self) -> bool:
        return any(h.id == self.default_holder_id for h in self.compatible)


def visible_holders(holders: Iterable["ToolHolder"], user_id: Optional[str]) -> List["ToolHolder"]:
    """Holders a user may pick from: own, public, and system holders."""
    return [
        h for h in holders
        if h.is_system or h.is_public or (user_id is not None and h.user_id == user_id)
    ]


def classify_holders(
    tool: "Tool | ToolGeometry",
    holders: Iterable["ToolHolder"],
    machine_holders: Optional[Iterable["MachineHolder"]] = None,
    machine_id: Optional[str] = None,
) -> HolderClassification:
    """
    Split holders into compatible and incompatible lists for a tool.

    Args:
        tool: Tool or bare ToolGeometry
        holders: Candidate holders
        machine_holders: Machine/holder associations
        machine_id: If given, only holders associated with this machine are
            considered, and its default holder is reported

    Returns:
        HolderClassification, each list ordered by holder name

    Raises:
        ShankDiameterMissing: Tool has no usable diameter
    """
    geometry = getattr(tool, "geometry", tool)
    shank = resolve_shank_diameter(geometry)
    candidates = list(holders)
    default_id = None

    if machine_id is not None:
        links = [mh for mh in (machine_holders or []) if mh.machine_id == machine_id]
        allowed = {mh.tool_holder_id for mh in links}
        candidates = [h for h in candidates if h.id in allowed]
        for mh in links:
            if mh.is_default:
                default_id = mh.tool_holder_id
                break

    result = HolderClassification(shank_diameter_mm=shank, default_holder_id=default_id)
    for holder in sorted(candidates, key=lambda h: h.name):
        if is_compatible(shank, holder):
            result.compatible.append(holder)
        else:
            result.incompatible.append(holder)
    return result
