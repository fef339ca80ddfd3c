"""
Toolcrib IO - input records, Fusion 360 document model, compiler and
packaging.

Example:
    >>> from toolcrib.io import load_aggregate_json, compile_library, package_library
    >>>
    >>> aggregate = load_aggregate_json("shop-a.json")
    >>> result = compile_library(
    ...     aggregate.library.name,
    ...     aggregate.entries(),
    ...     aggregate.machine,
    ...     materials=aggregate.materials,
    ...     presets=aggregate.presets,
    ... )
    >>> files = package_library(result.document, aggregate.library.name)
"""

from .loaders import (
    load_aggregate_json,
    save_aggregate_json,
    ToolGeometry,
    Tool,
    HolderSegment,
    ToolHolder,
    Material,
    Machine,
    MachineHolder,
    MachineMaterialPreset,
    PostProcessSettings,
    LibraryTool,
    Library,
    LibraryAggregate,
    ToolEntry,
)

from .schema import (
    SCHEMA_VERSION,
    FUSION360_TOOL_TYPES,
    FusionGeometry,
    FusionPreset,
    FusionHolder,
    FusionTool,
    FusionLibrary,
    validate_tools_json,
)

from .fusion360 import (
    CompileResult,
    compile_library,
    compile_tool,
    validate_document,
    format_fusion_number,
    map_coolant,
)

from .package import (
    PackageFiles,
    sanitize_filename,
    tools_filename,
    to_tools_json,
    create_tools_zip,
    package_library,
    read_tools_zip,
    save_package,
)

__all__ = [
    # Loaders
    "load_aggregate_json",
    "save_aggregate_json",

    # Records
    "ToolGeometry",
    "Tool",
    "HolderSegment",
    "ToolHolder",
    "Material",
    "Machine",
    "MachineHolder",
    "MachineMaterialPreset",
    "PostProcessSettings",
    "LibraryTool",
    "Library",
    "LibraryAggregate",
    "ToolEntry",

    # Fusion 360 document
    "SCHEMA_VERSION",
    "FUSION360_TOOL_TYPES",
    "FusionGeometry",
    "FusionPreset",
    "FusionHolder",
    "FusionTool",
    "FusionLibrary",
    "validate_tools_json",

    # Compiler
    "CompileResult",
    "compile_library",
    "compile_tool",
    "validate_document",
    "format_fusion_number",
    "map_coolant",

    # Packaging
    "PackageFiles",
    "sanitize_filename",
    "tools_filename",
    "to_tools_json",
    "create_tools_zip",
    "package_library",
    "read_tools_zip",
    "save_package",
]
