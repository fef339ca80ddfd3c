"""
Toolcrib - Validation messages

Shared finding types used by the numbering allocator, the feeds/speeds
resolver and the library compiler. Every check appends ValidationMessage
objects instead of raising, so a caller sees all problems at once.

Severity rules:
- ERROR: the library cannot be exported
- WARNING: export goes ahead, the user should look at this tool
- INFO: something was decided on the user's behalf
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional


class Severity(Enum):
    """Validation message severity"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationMessage:
    """A single validation finding"""
    severity: Severity
    code: str
    message: str
    suggestion: Optional[str] = None
    tool_number: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        if self.tool_number is not None:
            data["tool_number"] = self.tool_number
        return data


@dataclass
class ValidationResult:
    """Complete validation result"""
    valid: bool  # True if no errors
    messages: List[ValidationMessage] = field(default_factory=list)

    @property
    def errors(self) -> List[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.WARNING]

    @property
    def infos(self) -> List[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.INFO]


def has_errors(messages: Iterable[ValidationMessage]) -> bool:
    return any(m.severity == Severity.ERROR for m in messages)


def make_result(messages: Iterable[ValidationMessage]) -> ValidationResult:
    """Build a ValidationResult; valid when no message is an error."""
    messages = list(messages)
    return ValidationResult(valid=not has_errors(messages), messages=messages)


def error(code: str, message: str, suggestion: Optional[str] = None,
          tool_number: Optional[int] = None) -> ValidationMessage:
    return ValidationMessage(Severity.ERROR, code, message, suggestion, tool_number)


def warning(code: str, message: str, suggestion: Optional[str] = None,
            tool_number: Optional[int] = None) -> ValidationMessage:
    return ValidationMessage(Severity.WARNING, code, message, suggestion, tool_number)


def info(code: str, message: str, suggestion: Optional[str] = None,
         tool_number: Optional[int] = None) -> ValidationMessage:
    return ValidationMessage(Severity.INFO, code, message, suggestion, tool_number)
