"""Rows of the storage table shown by the interactive viewer."""

from __future__ import annotations

from dataclasses import dataclass

from .decoding import decode_value, format_slot
from .state import DECODE_AS_TYPES, DumpState, StorageSlot

NO_RESULTS = ("No Results Found", "", "", "")


@dataclass(frozen=True)
class Row:
    """One line of the storage table."""

    cells: tuple[str, str, str, str]
    selected: bool = False
    placeholder: bool = False


def _cells(key: bytes, slot: StorageSlot) -> tuple[str, str, str, str]:
    return (
        str(slot.last_modified()),
        format_slot(key),
        DECODE_AS_TYPES[slot.decode_as_type_index],
        decode_value(slot.value, slot.decode_as_type_index),
    )


def _is_selected(
    position: int, shown: int, total: int, scroll_index: int, selection_size: int
) -> bool:
    remaining = total - scroll_index
    if remaining < shown:
        from_bottom = shown - position
        return remaining >= from_bottom > remaining - selection_size
    return position == 0 or position < selection_size


def build_rows(state: DumpState, max_row_height: int) -> list[Row]:
    """Build the visible table rows, clamping the scroll index into range."""
    with state.lock:
        if state.scroll_index >= len(state.storage) and state.scroll_index != 0:
            state.scroll_index = len(state.storage) - 1

        entries = state.visible_storage()
        total = len(entries)
        shown = min(max_row_height, total)

        if state.scroll_index + shown <= total:
            window = entries[state.scroll_index : state.scroll_index + shown]
        else:
            window = entries[total - shown :]

        rows = [
            Row(
                cells=_cells(key, slot),
                selected=_is_selected(
                    position, shown, total, state.scroll_index, state.selection_size
                ),
            )
            for position, (key, slot) in enumerate(window)
        ]

    if not rows:
        rows.append(Row(cells=NO_RESULTS, placeholder=True))
    return rows


def selected_value(state: DumpState) -> str:
    """Return the decoded value of the slot under the cursor."""
    with state.lock:
        entries = state.visible_storage()
        if not 0 <= state.scroll_index < len(entries):
            raise IndexError(f"no storage slot at position {state.scroll_index}")
        _, slot = entries[state.scroll_index]
        return decode_value(slot.value, slot.decode_as_type_index)