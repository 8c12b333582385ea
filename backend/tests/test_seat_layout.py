"""
Tests for the pure seat layout functions.
"""

from datetime import datetime, timezone

import pytest

from cineclic.services.seat_layout import (
    AVAILABLE,
    OCCUPIED,
    SELECTED,
    LayoutError,
    SeatRef,
    apply_changes,
    build_layout,
    count_states,
    held_by,
    is_available,
    is_held_by,
    is_occupied,
    seat_states,
    selected_state,
    validate_layout,
)

SINCE = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def layout():
    return build_layout(["A", "B"], [1, 2, 3])


def test_build_layout_all_available(layout):
    validate_layout(layout)
    assert layout["seats"]["A"] == {"1": AVAILABLE, "2": AVAILABLE, "3": AVAILABLE}
    assert count_states(layout) == {AVAILABLE: 6, OCCUPIED: 0, SELECTED: 0}


def test_build_layout_rejects_duplicates():
    with pytest.raises(LayoutError):
        build_layout(["A", "A"], [1, 2])
    with pytest.raises(LayoutError):
        build_layout([], [1])


def test_apply_changes_returns_copy(layout):
    updated = apply_changes(layout, {SeatRef("A", 1): OCCUPIED})

    assert is_occupied(updated, SeatRef("A", 1))
    assert is_available(layout, SeatRef("A", 1))
    validate_layout(updated)


def test_apply_changes_unknown_seat(layout):
    with pytest.raises(LayoutError):
        apply_changes(layout, {SeatRef("C", 1): OCCUPIED})


def test_selected_state_and_holder(layout):
    updated = apply_changes(layout, {SeatRef("B", 2): selected_state("viewer-1", SINCE)})
    seat = SeatRef("B", 2)

    assert held_by(updated, seat) == "viewer-1"
    assert is_held_by(updated, seat, "viewer-1")
    assert is_held_by(updated, seat, "viewer-1", SINCE.isoformat())
    assert not is_held_by(updated, seat, "viewer-1", "2026-10-19T18:05:00+00:00")
    assert not is_held_by(updated, seat, "viewer-2")
    assert not is_available(updated, seat)
    assert held_by(updated, SeatRef("B", 1)) is None


def test_seat_states_flattens_in_order(layout):
    updated = apply_changes(layout, {
        SeatRef("A", 2): OCCUPIED,
        SeatRef("B", 3): selected_state("viewer-1", SINCE),
    })
    states = seat_states(updated, include_holders=True)

    assert [(s["row"], s["column"]) for s in states][:4] == [("A", 1), ("A", 2), ("A", 3), ("B", 1)]
    assert states[1]["state"] == OCCUPIED
    assert states[5] == {
        "row": "B",
        "column": 3,
        "state": SELECTED,
        "held_by": "viewer-1",
        "since": SINCE.isoformat(),
    }
    assert seat_states(updated)[5] == {"row": "B", "column": 3, "state": SELECTED}
    assert count_states(updated) == {AVAILABLE: 4, OCCUPIED: 1, SELECTED: 1}


@pytest.mark.parametrize("value, expected", [
    (("A", 1), SeatRef("A", 1)),
    ({"row": "B", "column": 3}, SeatRef("B", 3)),
    (SeatRef("C", 2), SeatRef("C", 2)),
])
def test_seat_ref_from_value(value, expected):
    assert SeatRef.from_value(value) == expected


@pytest.mark.parametrize("value", [
    None,
    {"row": "A"},
    {"row": "", "column": 1},
    {"row": "A", "column": "1"},
    {"row": "A", "column": True},
])
def test_seat_ref_rejects_bad_values(value):
    with pytest.raises(ValueError):
        SeatRef.from_value(value)


def test_validate_layout_catches_corruption(layout):
    broken = apply_changes(layout, {SeatRef("A", 1): "reserved"})
    with pytest.raises(LayoutError):
        validate_layout(broken)

    missing_holder = apply_changes(layout, {SeatRef("A", 1): {"state": SELECTED}})
    with pytest.raises(LayoutError):
        validate_layout(missing_holder)

    extra_column = build_layout(["A"], [1])
    extra_column["seats"]["A"]["2"] = AVAILABLE
    with pytest.raises(LayoutError):
        validate_layout(extra_column)
