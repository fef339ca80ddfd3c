"""Output formatters for compiled libraries.

Turns a compiled FusionLibrary and its validation messages into the text
summary the CLI prints and a JSON report for other tools.
"""

import json
from typing import TYPE_CHECKING, List, Optional

from .validation import Severity, ValidationMessage

if TYPE_CHECKING:
    from ..io.schema import FusionLibrary

_SEVERITY_MARK = {
    Severity.ERROR: "✗",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


def format_message(message: ValidationMessage) -> str:
    line = f"{_SEVERITY_MARK[message.severity]} {message.message}"
    if message.suggestion:
        line += f"\n    → {message.suggestion}"
    return line


def to_report_json(
    library_name: str,
    messages: List[ValidationMessage],
    document: Optional["FusionLibrary"] = None,
    indent: int = 2,
) -> str:
    """JSON report with the library name, tool count and all messages."""
    report = {
        "library": library_name,
        "valid": not any(m.severity == Severity.ERROR for m in messages),
        "tool_count": len(document.data) if document is not None else 0,
        "messages": [m.to_dict() for m in messages],
    }
    return json.dumps(report, indent=indent, ensure_ascii=False)


def to_summary(
    library_name: str,
    document: Optional["FusionLibrary"],
    messages: Optional[List[ValidationMessage]] = None,
) -> str:
    """
    Multi-line text summary of a compile.

    Lists each tool with its number, type, diameter and preset count,
    followed by errors, warnings and notes.
    """
    messages = messages or []
    lines = [f"═══ Tool Library: {library_name} ═══"]

    if document is not None:
        lines.append(f"Tools: {len(document.data)} | Format version: {document.version}")
        lines.append("")
        for tool in document.data:
            presets = tool.start_values.presets
            lines.append(
                f"  T{tool.number:<4d} {tool.type:<20s} Ø{tool.geometry.DC:g} mm"
                f"  {tool.description}"
            )
            for p in presets:
                feed = p.v_f if p.v_f is not None else (p.v_f_plunge or 0)
                lines.append(f"         {p.name}: {p.n:g} rpm, {feed:g} mm/min")
            if not presets:
                lines.append("         (no cutting presets)")
            if tool.holder is not None:
                lines.append(f"         holder: {tool.holder.description}")

    for severity, title in ((Severity.ERROR, "Errors"),
                            (Severity.WARNING, "Warnings"),
                            (Severity.INFO, "Notes")):
        group = [m for m in messages if m.severity == severity]
        if group:
            lines.append("")
            lines.append(f"{title}:")
            lines.extend("  " + format_message(m) for m in group)

    return "\n".join(lines)
