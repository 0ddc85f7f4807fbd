"""Export of a storage dump to CSV."""

from __future__ import annotations

from pathlib import Path

from .decoding import decode_value
from .state import DECODE_AS_TYPES, DumpState

CSV_HEADER = "last_modified,alias,slot,decoded_type,value"


def _type_name(index: int) -> str:
    if not 0 <= index < len(DECODE_AS_TYPES):
        raise ValueError(f"invalid decode type index {index}")
    return DECODE_AS_TYPES[index]


def storage_csv_lines(state: DumpState) -> list[str]:
    """Return the CSV lines, header first, for all slots ordered by key."""
    lines = [CSV_HEADER]
    for key, slot in state.sorted_storage():
        fields = (
            str(slot.last_modified()),
            slot.alias if slot.alias is not None else "None",
            key.hex(),
            _type_name(slot.decode_as_type_index),
            decode_value(slot.value, slot.decode_as_type_index),
        )
        lines.append(",".join(f'"{item}"' for item in fields))
    return lines


def write_storage_to_csv(output_dir: str | Path, file_name: str, state: DumpState) -> Path:
    """Write the storage dump to ``output_dir/file_name`` and return the path."""
    path = Path(output_dir) / file_name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(storage_csv_lines(state)), encoding="utf-8")
    return path