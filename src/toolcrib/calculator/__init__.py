"""
Toolcrib Calculator - numbering, compatibility and feeds/speeds.

Pure functions with no IO. Records from toolcrib.io are accepted by duck
typing, so importing the calculator does not import Pydantic models.

Example:
    >>> from toolcrib.calculator import next_tool_number, calculate_rpm
    >>> from toolcrib.enums import ToolType
    >>>
    >>> next_tool_number(ToolType.FLAT_ENDMILL, {200, 201})
    202
    >>> calculate_rpm(250, 10)
    7958
"""

from .constants import (
    DEFAULT_SURFACE_SPEEDS_M_MIN,
    FUSION360_LIBRARY_VERSION,
)

from .numbering import (
    TOOL_TYPE_CATEGORIES,
    NumberRequest,
    category_for_tool_type,
    is_in_category_range,
    next_tool_number,
    allocate_tool_number,
    assign_library_numbers,
)

from .compatibility import (
    HolderClassification,
    resolve_shank_diameter,
    classify,
    is_compatible,
    classify_holders,
    visible_holders,
)

from .feeds_speeds import (
    CuttingParameters,
    CuttingResult,
    calculate_rpm,
    calculate_feed_rate,
    calculate_surface_speed,
    calculate_chip_thinning_feed,
    calculate_mrr,
    default_chip_load,
    representative_surface_speed,
    is_drill_type,
    resolve,
)

from .validation import (
    Severity,
    ValidationMessage,
    ValidationResult,
    make_result,
)

from .output import (
    to_summary,
    to_report_json,
)

__all__ = [
    # Constants
    "DEFAULT_SURFACE_SPEEDS_M_MIN",
    "FUSION360_LIBRARY_VERSION",

    # Numbering
    "TOOL_TYPE_CATEGORIES",
    "NumberRequest",
    "category_for_tool_type",
    "is_in_category_range",
    "next_tool_number",
    "allocate_tool_number",
    "assign_library_numbers",

    # Compatibility
    "HolderClassification",
    "resolve_shank_diameter",
    "classify",
    "is_compatible",
    "classify_holders",
    "visible_holders",

    # Feeds and speeds
    "CuttingParameters",
    "CuttingResult",
    "calculate_rpm",
    "calculate_feed_rate",
    "calculate_surface_speed",
    "calculate_chip_thinning_feed",
    "calculate_mrr",
    "default_chip_load",
    "representative_surface_speed",
    "is_drill_type",
    "resolve",

    # Validation
    "Severity",
    "ValidationMessage",
    "ValidationResult",
    "make_result",

    # Output formatters
    "to_summary",
    "to_report_json",
]
