"""
Tool numbering - category-ranged tool number allocation.

Every tool type belongs to exactly one ToolCategory, and every category
owns a closed range of tool numbers (drills 100-199, end mills 200-299,
...). New tools take the lowest free number in their category's range.

Allocation never wraps around and never reuses a number. When a range is
full the caller is told so (None / ToolNumberExhausted) and can offer a
manual override.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from ..enums import ToolCategory, ToolType
from ..errors import ToolNumberExhausted
from .validation import ValidationMessage, error

TOOL_TYPE_CATEGORIES: Dict[ToolType, ToolCategory] = {
    ToolType.DRILL: ToolCategory.DRILL,
    ToolType.SPOT_DRILL: ToolCategory.DRILL,
    ToolType.FLAT_ENDMILL: ToolCategory.ENDMILL,
    ToolType.BALL_ENDMILL: ToolCategory.ENDMILL,
    ToolType.BULL_ENDMILL: ToolCategory.ENDMILL,
    ToolType.FACE_MILL: ToolCategory.FACEMILL,
    ToolType.TAP: ToolCategory.TAP,
    ToolType.THREAD_MILL: ToolCategory.TAP,
    ToolType.REAMER: ToolCategory.REAMER,
    ToolType.CHAMFER_MILL: ToolCategory.CHAMFER,
    ToolType.ENGRAVING_TOOL: ToolCategory.SPECIALTY,
    ToolType.PROBE: ToolCategory.PROBE,
}

_unmapped = set(ToolType) - set(TOOL_TYPE_CATEGORIES)
if _unmapped:
    raise RuntimeError(
        "Tool types without a numbering category: "
        + ", ".join(sorted(t.value for t in _unmapped))
    )

CategoryLike = Union[ToolCategory, ToolType]


def category_for_tool_type(tool_type: ToolType) -> ToolCategory:
    """Return the numbering category a tool type belongs to."""
    return TOOL_TYPE_CATEGORIES[tool_type]


def _as_category(value: CategoryLike) -> ToolCategory:
    if isinstance(value, ToolType):
        return category_for_tool_type(value)
    return value


def is_in_category_range(number: int, category: CategoryLike) -> bool:
    """Check whether a tool number lies inside the category's range."""
    return number in _as_category(category)


def next_tool_number(category: CategoryLike, used_numbers: Iterable[int]) -> Optional[int]:
    """
    Lowest number in the category's range that is not already used.

    Args:
        category: ToolCategory, or a ToolType to look its category up
        used_numbers: Numbers already taken in the library

    Returns:
        Free tool number, or None if the whole range is taken
    """
    cat = _as_category(category)
    used = set(used_numbers)
    for n in cat.numbers:
        if n not in used:
            return n
    return None


def allocate_tool_number(
    category: CategoryLike,
    used_numbers: Iterable[int],
    fallback: Optional[int] = None,
) -> int:
    """
    Allocate a tool number, raising when the category is full.

    Args:
        category: ToolCategory or ToolType
        used_numbers: Numbers already taken in the library
        fallback: Explicit manual-override number to use when the range is
            exhausted. Only honoured if it is not already used.

    Returns:
        Allocated tool number

    Raises:
        ToolNumberExhausted: Range is full and no usable fallback was given
    """
    used = set(used_numbers)
    number = next_tool_number(category, used)
    if number is not None:
        return number
    if fallback is not None and fallback >= 1 and fallback not in used:
        return fallback
    raise ToolNumberExhausted(_as_category(category))


@dataclass
class NumberRequest:
    """A library binding's numbering needs."""
    tool_type: ToolType
    requested: Optional[int] = None  # None = allocate
    number_override: bool = False
    label: str = ""


def assign_library_numbers(
    requests: Sequence[NumberRequest],
) -> Tuple[List[Optional[int]], List[ValidationMessage]]:
    """
    Confirm explicit tool numbers and allocate the missing ones.

    Explicit numbers are confirmed first so allocation never takes a number
    a later binding asked for. Allocation then runs in list order.

    Returns:
        (numbers, messages): one number per request (None where allocation
        failed) and every numbering problem found
    """
    messages: List[ValidationMessage] = []
    numbers: List[Optional[int]] = [None] * len(requests)
    used: Set[int] = set()
    seen: Dict[int, str] = {}

    for i, req in enumerate(requests):
        if req.requested is None:
            continue
        n = req.requested
        label = req.label or f"entry {i + 1}"
        if n in seen:
            messages.append(error(
                "TOOL_NUMBER_DUPLICATE",
                f"Tool number {n} is used by both {seen[n]} and {label}",
                suggestion="Give each tool in the library its own number",
                tool_number=n,
            ))
        else:
            seen[n] = label
        cat = category_for_tool_type(req.tool_type)
        if n not in cat and not req.number_override:
            messages.append(error(
                "TOOL_NUMBER_OUT_OF_RANGE",
                f"Tool number {n} for {label} is outside the {cat.label} range "
                f"{cat.minimum}-{cat.maximum}",
                suggestion="Pick a number in range or mark the binding as a manual override",
                tool_number=n,
            ))
        used.add(n)
        numbers[i] = n

    for i, req in enumerate(requests):
        if req.requested is not None:
            continue
        cat = category_for_tool_type(req.tool_type)
        n = next_tool_number(cat, used)
        if n is None:
            label = req.label or f"entry {i + 1}"
            messages.append(error(
                "TOOL_NUMBER_EXHAUSTED",
                f"No free tool number for {label}: {cat.label} range "
                f"{cat.minimum}-{cat.maximum} is full",
                suggestion="Assign a number manually with number_override",
            ))
            continue
        used.add(n)
        numbers[i] = n

    return numbers, messages
