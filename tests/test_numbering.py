"""
Tests for category-ranged tool number allocation.
"""

import random

import pytest

from toolcrib.calculator.numbering import (
    TOOL_TYPE_CATEGORIES,
    NumberRequest,
    allocate_tool_number,
    assign_library_numbers,
    category_for_tool_type,
    is_in_category_range,
    next_tool_number,
)
from toolcrib.enums import ToolCategory, ToolType
from toolcrib.errors import ToolcribError, ToolNumberExhausted


class TestCategories:
    """Tests for the tool type to category mapping."""

    def test_every_tool_type_has_a_category(self):
        """Every ToolType maps to exactly one category."""
        assert set(TOOL_TYPE_CATEGORIES) == set(ToolType)

    @pytest.mark.parametrize("tool_type,category", [
        (ToolType.DRILL, ToolCategory.DRILL),
        (ToolType.SPOT_DRILL, ToolCategory.DRILL),
        (ToolType.FLAT_ENDMILL, ToolCategory.ENDMILL),
        (ToolType.BALL_ENDMILL, ToolCategory.ENDMILL),
        (ToolType.FACE_MILL, ToolCategory.FACEMILL),
        (ToolType.THREAD_MILL, ToolCategory.TAP),
        (ToolType.CHAMFER_MILL, ToolCategory.CHAMFER),
        (ToolType.ENGRAVING_TOOL, ToolCategory.SPECIALTY),
        (ToolType.PROBE, ToolCategory.PROBE),
    ])
    def test_category_for_tool_type(self, tool_type, category):
        assert category_for_tool_type(tool_type) == category

    def test_ranges_do_not_overlap(self):
        """No tool number belongs to two categories."""
        seen = {}
        for category in ToolCategory:
            for n in category.numbers:
                assert n not in seen, f"{n} in both {seen.get(n)} and {category}"
                seen[n] = category

    def test_range_bounds_are_inclusive(self):
        assert is_in_category_range(100, ToolCategory.DRILL)
        assert is_in_category_range(199, ToolCategory.DRILL)
        assert not is_in_category_range(200, ToolCategory.DRILL)
        assert is_in_category_range(250, ToolType.BALL_ENDMILL)


class TestNextToolNumber:
    """Tests for next_tool_number."""

    def test_empty_library_gets_range_start(self):
        assert next_tool_number(ToolCategory.DRILL, set()) == 100
        assert next_tool_number(ToolType.FLAT_ENDMILL, []) == 200

    def test_skips_used_numbers(self):
        assert next_tool_number(ToolCategory.ENDMILL, {200, 201, 202}) == 203

    def test_fills_lowest_gap(self):
        assert next_tool_number(ToolCategory.ENDMILL, {200, 202, 203}) == 201

    def test_numbers_in_other_ranges_are_ignored(self):
        assert next_tool_number(ToolCategory.ENDMILL, {100, 101, 300}) == 200

    def test_exhausted_range_returns_none(self):
        used = set(ToolCategory.DRILL.numbers)
        assert next_tool_number(ToolCategory.DRILL, used) is None

    def test_single_number_probe_range(self):
        assert next_tool_number(ToolType.PROBE, set()) == 99
        assert next_tool_number(ToolType.PROBE, {99}) is None

    def test_random_used_sets(self):
        """Result is in range and unused, or None only when the range is full."""
        rng = random.Random(1234)
        for category in ToolCategory:
            for _ in range(25):
                size = rng.randint(0, len(category.numbers))
                used = set(rng.sample(list(category.numbers), size))
                used |= {rng.randint(1, 999) for _ in range(5)}
                result = next_tool_number(category, used)
                if result is None:
                    assert set(category.numbers) <= used
                else:
                    assert result in category
                    assert result not in used


class TestAllocateToolNumber:
    """Tests for allocate_tool_number."""

    def test_allocates_next_free(self):
        assert allocate_tool_number(ToolCategory.REAMER, {500}) == 501

    def test_exhaustion_raises_with_category(self):
        used = set(ToolCategory.CHAMFER.numbers)
        with pytest.raises(ToolNumberExhausted) as excinfo:
            allocate_tool_number(ToolCategory.CHAMFER, used)

        assert excinfo.value.category == ToolCategory.CHAMFER
        assert "600-699" in str(excinfo.value)
        assert isinstance(excinfo.value, ToolcribError)

    def test_fallback_used_only_when_exhausted(self):
        used = set(ToolCategory.CHAMFER.numbers)
        assert allocate_tool_number(ToolCategory.CHAMFER, used, fallback=950) == 950
        assert allocate_tool_number(ToolCategory.CHAMFER, set(), fallback=950) == 600

    def test_fallback_never_reuses_a_number(self):
        used = set(ToolCategory.CHAMFER.numbers) | {1}
        with pytest.raises(ToolNumberExhausted):
            allocate_tool_number(ToolCategory.CHAMFER, used, fallback=1)


class TestAssignLibraryNumbers:
    """Tests for assign_library_numbers."""

    def test_allocates_in_list_order(self):
        numbers, messages = assign_library_numbers([
            NumberRequest(ToolType.FLAT_ENDMILL),
            NumberRequest(ToolType.DRILL),
            NumberRequest(ToolType.BALL_ENDMILL),
        ])
        assert numbers == [200, 100, 201]
        assert messages == []

    def test_explicit_numbers_confirmed_before_allocation(self):
        """A later explicit 200 is not taken by an earlier allocation."""
        numbers, messages = assign_library_numbers([
            NumberRequest(ToolType.FLAT_ENDMILL),
            NumberRequest(ToolType.FLAT_ENDMILL, requested=200),
        ])
        assert numbers == [201, 200]
        assert messages == []

    def test_duplicate_request_is_error(self):
        numbers, messages = assign_library_numbers([
            NumberRequest(ToolType.FLAT_ENDMILL, requested=205, label="'A'"),
            NumberRequest(ToolType.BALL_ENDMILL, requested=205, label="'B'"),
        ])
        dupes = [m for m in messages if m.code == "TOOL_NUMBER_DUPLICATE"]
        assert len(dupes) == 1
        assert "205" in dupes[0].message
        assert "'A'" in dupes[0].message and "'B'" in dupes[0].message
        assert dupes[0].severity.value == "error"

    def test_out_of_range_without_override_is_error(self):
        _, messages = assign_library_numbers([
            NumberRequest(ToolType.FLAT_ENDMILL, requested=150),
        ])
        assert [m.code for m in messages] == ["TOOL_NUMBER_OUT_OF_RANGE"]

    def test_out_of_range_with_override_is_accepted(self):
        numbers, messages = assign_library_numbers([
            NumberRequest(ToolType.FLAT_ENDMILL, requested=150, number_override=True),
        ])
        assert numbers == [150]
        assert messages == []

    def test_exhaustion_is_reported(self):
        requests = [NumberRequest(ToolType.PROBE), NumberRequest(ToolType.PROBE, label="'Probe 2'")]
        numbers, messages = assign_library_numbers(requests)

        assert numbers == [99, None]
        assert len(messages) == 1
        assert messages[0].code == "TOOL_NUMBER_EXHAUSTED"
        assert "'Probe 2'" in messages[0].message

    def test_assigned_numbers_are_distinct(self):
        requests = [NumberRequest(t) for t in ToolType for _ in range(3) if t != ToolType.PROBE]
        numbers, messages = assign_library_numbers(requests)

        assert messages == []
        assert len(set(numbers)) == len(numbers)
        for req, n in zip(requests, numbers):
            assert is_in_category_range(n, req.tool_type)
