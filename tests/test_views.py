import pytest

from slotdump.state import (
    ABOUT_TEXT,
    HELP_MENU_COMMANDS,
    HELP_MENU_CONTROLS,
    DumpArgs,
    DumpState,
    Transaction,
)
from slotdump.views import help_sections, progress_label, table_title


def _state(*transactions):
    return DumpState(transactions=list(transactions))


def test_complete_label_when_all_indexed():
    state = _state(Transaction("0x01", 10, True), Transaction("0x02", 20, True))
    assert progress_label(state, 5.0) == "Storage Slot Dump Complete"


def test_progress_requires_transactions():
    with pytest.raises(ValueError):
        progress_label(_state(), 1.0)


def test_partial_progress_reports_blocks():
    state = _state(
        Transaction("0x01", 100, True),
        Transaction("0x02", 200),
        Transaction("0x03", 300),
    )
    label = progress_label(state, 10.0)
    assert label.startswith("Block 100/300 (")
    assert "ETA: " in label


def test_no_indexed_uses_lowest_block():
    state = _state(Transaction("0x01", 50), Transaction("0x02", 80))
    label = progress_label(state, 3.0)
    assert label.startswith("Block 50/80 (0.00%)")


def test_zero_elapsed_has_zero_rate():
    state = _state(Transaction("0x01", 1, True), Transaction("0x02", 2))
    assert "0.00 TPS" in progress_label(state, 0.0)


def test_progress_label_does_not_change_state():
    state = _state(Transaction("0x01", 1, True), Transaction("0x02", 2))
    progress_label(state, 4.0)
    assert [t.indexed for t in state.transactions] == [True, False]


def test_help_sections_order_and_content():
    sections = help_sections()
    assert [title for title, _ in sections] == ["About", "Commands", "Controls"]
    assert sections[0][1] == ABOUT_TEXT
    assert sections[1][1] == HELP_MENU_COMMANDS
    assert sections[2][1] == HELP_MENU_CONTROLS


def test_table_title_names_target():
    state = DumpState(args=DumpArgs(target="0xabc"))
    assert table_title(state) == " Storage for Contract 0xabc "