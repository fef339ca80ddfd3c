"""Exception types raised by toolcrib.

Validation findings that do not stop an export travel as
ValidationMessage warnings instead (see calculator.validation).
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .calculator.validation import ValidationMessage
    from .enums import ToolCategory


class ToolcribError(Exception):
    """Base class for all toolcrib errors."""

    # Stages export_library() ran, ending in FAILED, when it raised this
    stages: Optional[list] = None


class InputError(ToolcribError, ValueError):
    """A record is missing data the core needs."""


class ShankDiameterMissing(InputError):
    """Tool geometry has neither a shank nor a cutting diameter."""


class ToolNumberExhausted(ToolcribError):
    """Every number in a tool category's range is already in use."""

    def __init__(self, category: "ToolCategory"):
        self.category = category
        super().__init__(
            f"No free tool number in category '{category.key}' "
            f"({category.minimum}-{category.maximum})"
        )


class CuttingDataError(ToolcribError, ArithmeticError):
    """Feeds/speeds could not be computed for one tool."""


class LibraryNotFound(ToolcribError, LookupError):
    """The persistence collaborator has no library with the given id."""


class LibraryValidationError(ToolcribError):
    """A library failed validation; carries every violated rule."""

    def __init__(self, messages: List["ValidationMessage"]):
        self.messages = list(messages)
        lines = [m.message for m in self.messages]
        super().__init__(
            "Library validation failed: " + "; ".join(lines) if lines
            else "Library validation failed"
        )

    @property
    def errors(self) -> List[str]:
        return [m.message for m in self.messages]


class ExportError(ToolcribError):
    """Unexpected fault during an export stage."""

    def __init__(self, message: str, stage: Optional[object] = None):
        self.stage = stage
        super().__init__(message)
