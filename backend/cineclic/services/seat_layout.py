"""
Seat layout store: the per-room seat-state document.

LAYOUT DOCUMENT
===============

    {
      "rows": ["A", "B"],
      "columns": [1, 2, 3],
      "seats": {
        "A": {"1": "available", "2": "occupied", "3": {"state": "selected",
                                                       "held_by": "c0ffee",
                                                       "since": "2026-10-19T18:00:00+00:00"}},
        "B": {...}
      }
    }

Seat states progress available -> selected (advisory hold) -> occupied
(committed booking) -> available. Column keys are strings because the
document round-trips through JSON.

Everything in this module is pure: functions read a layout, or return a
new layout with a set of seat-level changes applied. Callers are
responsible for doing that inside the room's lock (see room_locks).
"""

import copy
from datetime import datetime
from typing import Any, Iterable, Mapping, NamedTuple, Optional, Union

AVAILABLE = "available"
OCCUPIED = "occupied"
SELECTED = "selected"

SeatState = Union[str, dict]
Layout = dict


class SeatRef(NamedTuple):
    row: str
    column: int

    @property
    def label(self) -> str:
        return f"{self.row}{self.column}"

    def to_dict(self) -> dict:
        return {"row": self.row, "column": self.column}

    @classmethod
    def from_value(cls, value: Any) -> "SeatRef":
        """Accepts a SeatRef, a (row, column) pair, a mapping or an object with row/column."""
        if isinstance(value, SeatRef):
            return value
        if isinstance(value, Mapping):
            row, column = value.get("row"), value.get("column")
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            row, column = value
        else:
            row, column = getattr(value, "row", None), getattr(value, "column", None)
        if not isinstance(row, str) or not row:
            raise ValueError(f"Invalid seat row: {row!r}")
        if isinstance(column, bool) or not isinstance(column, int):
            raise ValueError(f"Invalid seat column: {column!r}")
        return cls(row, column)


class LayoutError(ValueError):
    pass


def build_layout(rows: Iterable[str], columns: Iterable[int]) -> Layout:
    """Create a layout with every seat available."""
    rows = list(rows)
    columns = list(columns)
    if not rows or not columns:
        raise LayoutError("A layout needs at least one row and one column")
    if len(set(rows)) != len(rows) or len(set(columns)) != len(columns):
        raise LayoutError("Rows and columns must be unique")
    return {
        "rows": rows,
        "columns": columns,
        "seats": {row: {str(column): AVAILABLE for column in columns} for row in rows},
    }


def selected_state(held_by: str, since: datetime) -> dict:
    return {"state": SELECTED, "held_by": held_by, "since": since.isoformat()}


def state_name(state: Optional[SeatState]) -> Optional[str]:
    """Collapse a seat entry to one of available / occupied / selected."""
    if isinstance(state, dict):
        return state.get("state")
    return state


def get_seat(layout: Layout, seat: SeatRef) -> Optional[SeatState]:
    """Raw entry for a seat, or None when the seat is not part of the layout."""
    return layout.get("seats", {}).get(seat.row, {}).get(str(seat.column))


def has_seat(layout: Layout, seat: SeatRef) -> bool:
    return get_seat(layout, seat) is not None


def is_available(layout: Layout, seat: SeatRef) -> bool:
    return state_name(get_seat(layout, seat)) == AVAILABLE


def is_occupied(layout: Layout, seat: SeatRef) -> bool:
    return state_name(get_seat(layout, seat)) == OCCUPIED


def held_by(layout: Layout, seat: SeatRef) -> Optional[str]:
    state = get_seat(layout, seat)
    if isinstance(state, dict) and state.get("state") == SELECTED:
        return state.get("held_by")
    return None


def is_held_by(layout: Layout, seat: SeatRef, client_id: str, since: Optional[str] = None) -> bool:
    """True when `client_id` holds the seat; with `since`, only that exact hold."""
    state = get_seat(layout, seat)
    if not (isinstance(state, dict) and state.get("state") == SELECTED):
        return False
    if state.get("held_by") != client_id:
        return False
    return since is None or state.get("since") == since


def apply_changes(layout: Layout, changes: Mapping[SeatRef, SeatState]) -> Layout:
    """
    Return a copy of `layout` with per-seat changes applied.

    Only the listed seats are touched, so concurrent writers that each
    re-read the document under the room lock never overwrite each
    other's seats.
    """
    updated = copy.deepcopy(layout)
    for seat, state in changes.items():
        if not has_seat(updated, seat):
            raise LayoutError(f"Seat {seat.label} is not part of this layout")
        updated["seats"][seat.row][str(seat.column)] = copy.deepcopy(state)
    return updated


def seat_states(layout: Layout, include_holders: bool = False) -> list[dict]:
    """
    Flatten the layout into [{row, column, state}] in row/column order.

    `held_by` and `since` are added only with `include_holders`; a client id
    is what lets a connection book its own hold, so public views omit it.
    """
    flattened = []
    for row in layout.get("rows", []):
        for column in layout.get("columns", []):
            state = layout["seats"][row][str(column)]
            entry = {"row": row, "column": column, "state": state_name(state)}
            if include_holders and isinstance(state, dict):
                entry["held_by"] = state.get("held_by")
                entry["since"] = state.get("since")
            flattened.append(entry)
    return flattened


def count_states(layout: Layout) -> dict[str, int]:
    counts = {AVAILABLE: 0, OCCUPIED: 0, SELECTED: 0}
    for seat in seat_states(layout):
        counts[seat["state"]] += 1
    return counts


def validate_layout(layout: Any) -> None:
    """
    Check the layout invariant: every (row, column) in rows x columns has
    exactly one well-formed entry, and there are no entries outside it.
    """
    if not isinstance(layout, Mapping):
        raise LayoutError("Layout must be an object")
    rows, columns, seats = layout.get("rows"), layout.get("columns"), layout.get("seats")
    if not isinstance(rows, list) or not isinstance(columns, list) or not isinstance(seats, Mapping):
        raise LayoutError("Layout needs 'rows', 'columns' and 'seats'")
    if set(seats) != set(rows):
        raise LayoutError("Seat rows do not match the declared rows")

    expected_columns = {str(column) for column in columns}
    for row in rows:
        if not isinstance(seats[row], Mapping) or set(seats[row]) != expected_columns:
            raise LayoutError(f"Row {row} does not match the declared columns")
        for column, state in seats[row].items():
            name = state_name(state)
            if name not in (AVAILABLE, OCCUPIED, SELECTED):
                raise LayoutError(f"Seat {row}{column} has unknown state {state!r}")
            if name == SELECTED and not (
                isinstance(state, dict) and state.get("held_by") and state.get("since")
            ):
                raise LayoutError(f"Seat {row}{column} is selected without a holder")
            if isinstance(state, dict) and name != SELECTED:
                raise LayoutError(f"Seat {row}{column} has a malformed state")
