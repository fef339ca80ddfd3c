"""
Toolcrib - CNC tool library management and Fusion 360 export.

Compiles a shop's tools, holders, materials and machine into a Fusion 360
``.tools`` library with per-material cutting presets.

Example:
    >>> from toolcrib import InMemoryLibraryRepository, export_library
    >>> from toolcrib import load_aggregate_json
    >>>
    >>> repo = InMemoryLibraryRepository()
    >>> repo.add(load_aggregate_json("shop-a.json"))
    >>> result = export_library("shop-a", repo)
    >>> open(result.filename, "wb").write(result.content)

Note: All imports are lazy-loaded. The calculator can be imported without
triggering the IO (Pydantic) imports.
"""

__version__ = "0.3.0"

# Define which names come from which submodule
# All imports are lazy to minimize startup time

_ENUMS = {"ToolType", "ToolCategory", "MaterialCategory", "ProductIdSource", "Compatibility"}

_ERRORS = {
    "ToolcribError",
    "InputError",
    "ShankDiameterMissing",
    "ToolNumberExhausted",
    "CuttingDataError",
    "LibraryNotFound",
    "LibraryValidationError",
    "ExportError",
}

_CALCULATOR = {
    "next_tool_number",
    "allocate_tool_number",
    "assign_library_numbers",
    "category_for_tool_type",
    "classify",
    "classify_holders",
    "resolve_shank_diameter",
    "resolve",
    "calculate_rpm",
    "calculate_feed_rate",
    "Severity",
    "ValidationMessage",
    "ValidationResult",
}

_IO = {
    "load_aggregate_json",
    "save_aggregate_json",
    "Tool",
    "ToolGeometry",
    "ToolHolder",
    "Material",
    "Machine",
    "MachineMaterialPreset",
    "PostProcessSettings",
    "Library",
    "LibraryTool",
    "LibraryAggregate",
    "compile_library",
    "create_tools_zip",
    "sanitize_filename",
}

_EXPORT = {
    "export_library",
    "ExportResult",
    "ExportStage",
    "InMemoryLibraryRepository",
    "JsonLibraryRepository",
}

_SUBMODULES = (
    (_ENUMS, "enums"),
    (_ERRORS, "errors"),
    (_CALCULATOR, "calculator"),
    (_IO, "io"),
    (_EXPORT, "export"),
)

# Cache for lazy-loaded modules
_modules = {}


def __getattr__(name):
    """Lazy load submodules when their attributes are accessed."""
    for names, module_name in _SUBMODULES:
        if name in names:
            if module_name not in _modules:
                import importlib
                _modules[module_name] = importlib.import_module(f".{module_name}", __name__)
            return getattr(_modules[module_name], name)

    raise AttributeError(f"module 'toolcrib' has no attribute {name!r}")


__all__ = ["__version__"] + sorted(_ENUMS | _ERRORS | _CALCULATOR | _IO | _EXPORT)
