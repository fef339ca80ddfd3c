"""Type-safe enums shared by the calculator, IO and export layers."""

from enum import Enum


class ToolType(Enum):
    """Cutting tool type as stored on a tool record"""
    FLAT_ENDMILL = "flat_endmill"
    BALL_ENDMILL = "ball_endmill"
    BULL_ENDMILL = "bull_endmill"
    DRILL = "drill"
    SPOT_DRILL = "spot_drill"
    CHAMFER_MILL = "chamfer_mill"
    FACE_MILL = "face_mill"
    THREAD_MILL = "thread_mill"
    REAMER = "reamer"
    TAP = "tap"
    ENGRAVING_TOOL = "engraving_tool"
    PROBE = "probe"


class ToolCategory(Enum):
    """Tool-number category.

    Each member owns a closed, contiguous range of tool numbers.
    Ranges do not overlap.
    """
    TEMPORARY = ("temporary", "One-offs/Temporary", 1, 98)
    PROBE = ("probe", "Probe", 99, 99)
    DRILL = ("drill", "Drills", 100, 199)
    ENDMILL = ("endmill", "End Mills", 200, 299)
    FACEMILL = ("facemill", "Face Mills", 300, 399)
    TAP = ("tap", "Taps/Thread Mills", 400, 499)
    REAMER = ("reamer", "Reamers", 500, 599)
    CHAMFER = ("chamfer", "Chamfer/Countersink", 600, 699)
    SPECIALTY = ("specialty", "Specialty/Engraving", 700, 799)

    def __init__(self, key: str, label: str, minimum: int, maximum: int):
        self.key = key
        self.label = label
        self.minimum = minimum
        self.maximum = maximum

    @property
    def numbers(self) -> range:
        return range(self.minimum, self.maximum + 1)

    def __contains__(self, number: int) -> bool:
        return self.minimum <= number <= self.maximum


class MaterialCategory(Enum):
    """Workpiece material family"""
    ALUMINUM = "aluminum"
    STEEL = "steel"
    STAINLESS_STEEL = "stainless_steel"
    TITANIUM = "titanium"
    CAST_IRON = "cast_iron"
    BRASS = "brass"
    COPPER = "copper"
    PLASTIC = "plastic"
    WOOD = "wood"
    COMPOSITE = "composite"


class ProductIdSource(Enum):
    """Which tool field is written as the exported product id"""
    PRODUCT_ID = "product_id"  # Vendor SKU
    INTERNAL_REFERENCE = "internal_reference"  # Shop's own reference


class Compatibility(Enum):
    """Result of checking a shank diameter against a holder's collet range"""
    COMPATIBLE = "compatible"
    INCOMPATIBLE = "incompatible"
