import pytest

from slotdump.csv_export import CSV_HEADER, storage_csv_lines, write_storage_to_csv
from slotdump.state import DECODE_AS_TYPES, DumpState, StorageSlot


def _word(n: int) -> bytes:
    return n.to_bytes(32, "big")


@pytest.fixture
def state():
    dump = DumpState()
    dump.storage[_word(2)] = StorageSlot(
        value=_word(42), modifiers=[(10, "0xa"), (30, "0xb")], decode_as_type_index=4
    )
    dump.storage[_word(1)] = StorageSlot(
        value=_word(7), modifiers=[(20, "0xc")], alias="owner"
    )
    return dump


def test_header_first(state):
    lines = storage_csv_lines(state)
    assert lines[0] == "last_modified,alias,slot,decoded_type,value"
    assert len(lines) == 3


def test_empty_state_only_header():
    assert storage_csv_lines(DumpState()) == [CSV_HEADER]


def test_rows_sorted_and_formatted(state):
    _, first, second = storage_csv_lines(state)
    assert first == ",".join(
        f'"{item}"'
        for item in ("20", "owner", _word(1).hex(), DECODE_AS_TYPES[0], "0x" + _word(7).hex())
    )
    assert second == ",".join(
        f'"{item}"' for item in ("30", "None", _word(2).hex(), DECODE_AS_TYPES[4], "42")
    )


def test_invalid_type_index_raises(state):
    state.storage[_word(1)].decode_as_type_index = 9
    with pytest.raises(ValueError):
        storage_csv_lines(state)


def test_write_creates_directory_and_file(tmp_path, state):
    out = tmp_path / "nested" / "dir"
    path = write_storage_to_csv(out, "storage_dump.csv", state)
    assert path == out / "storage_dump.csv"
    assert path.read_text(encoding="utf-8").split("\n") == storage_csv_lines(state)