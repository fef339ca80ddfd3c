"""
Engineering and format constants for toolcrib calculations.

This module centralizes the numerical constants used by the feeds/speeds
resolver, the compiler and the packager. Each constant is documented with
its source (tooling vendor starting points, Fusion 360 library format, or
shop practice).

MODIFICATION GUIDELINES:
- Shop-practice constants may be tuned; keep them conservative
- Fusion 360 format constants must match what Fusion imports
- Add new constants here rather than hardcoding in functions
- Always include units in constant names (_MM, _M_MIN, _MM_MIN, _DEG)

Constants are grouped by category:
- Cutting data: chip loads, surface speeds, depth/plunge factors
- Machine limits: fallbacks when a machine record omits a limit
- Fusion 360: exchange format details
- Packaging: deterministic archive settings
"""

from typing import Dict, Tuple

from ..enums import MaterialCategory

# =============================================================================
# Cutting data - carbide tooling starting points
# =============================================================================

# Feed per tooth by cutting diameter, for carbide in aluminium.
# (upper diameter bound in mm, exclusive; chip load in mm). Conservative.
CHIP_LOAD_BANDS_MM: Tuple[Tuple[float, float], ...] = (
    (3.0, 0.025),
    (6.0, 0.05),
    (10.0, 0.075),
    (16.0, 0.1),
    (25.0, 0.125),
)
CHIP_LOAD_LARGE_MM: float = 0.15  # 25 mm and above

# Surface speed by material family (m/min), used when a material record has
# no surface speed range of its own
DEFAULT_SURFACE_SPEEDS_M_MIN: Dict[MaterialCategory, float] = {
    MaterialCategory.ALUMINUM: 250.0,
    MaterialCategory.BRASS: 150.0,
    MaterialCategory.COPPER: 100.0,
    MaterialCategory.PLASTIC: 200.0,
    MaterialCategory.WOOD: 300.0,
    MaterialCategory.STEEL: 80.0,
    MaterialCategory.STAINLESS_STEEL: 50.0,
    MaterialCategory.TITANIUM: 40.0,
    MaterialCategory.COMPOSITE: 100.0,
    MaterialCategory.CAST_IRON: 70.0,
}

# Generic depth-of-cut factors (fraction of cutting diameter)
DEFAULT_AXIAL_DEPTH_FACTOR: float = 1.0
DEFAULT_RADIAL_DEPTH_FACTOR: float = 0.5

# Plunge feed as a fraction of the cutting feed
DEFAULT_PLUNGE_RATE_FACTOR: float = 0.5

# Ball end mills lose effective diameter at shallow cuts; step-over is reduced
BALL_ENDMILL_STEPOVER_FACTOR: float = 0.5

# Chip thinning factor cap for light radial engagement
CHIP_THINNING_MAX_FACTOR: float = 2.0

# =============================================================================
# Machine limits
# =============================================================================

# Used when a machine record has no XY (or Z) feed limit
FALLBACK_MAX_FEED_MM_MIN: float = 10000.0

# =============================================================================
# Fusion 360 tool library format
# =============================================================================

FUSION360_LIBRARY_VERSION: int = 36
FUSION360_UNIT: str = "millimeters"
FUSION360_RAMP_ANGLE_DEG: float = 2.0

# Retract is faster than plunge for drilling cycles
DRILL_RETRACT_MULTIPLIER: float = 2.0

# Shoulder length estimate when not recorded: flute length plus this buffer
SHOULDER_LENGTH_BUFFER_MM: float = 2.0

# Length below holder estimate: shoulder length plus this clearance
HOLDER_CLEARANCE_MM: float = 2.0

# Body length estimates when neither shoulder nor holder length is known
BODY_LENGTH_FLUTE_FACTOR: float = 1.2
BODY_LENGTH_OVERALL_FACTOR: float = 0.6

# =============================================================================
# Packaging
# =============================================================================

TOOLS_JSON_NAME: str = "tools.json"
TOOLS_FILE_SUFFIX: str = ".tools"

# Fixed member timestamp (earliest date ZIP can store) for reproducible archives
ZIP_TIMESTAMP: Tuple[int, int, int, int, int, int] = (1980, 1, 1, 0, 0, 0)
ZIP_COMPRESSLEVEL: int = 9
