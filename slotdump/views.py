"""Rendering of the interactive storage viewer."""

from __future__ import annotations

import base64
import curses
import sys
import time
from pathlib import Path
from typing import Optional, Union

from .controller import Key, KeyEvent, MouseEvent, handle_key, handle_mouse
from .state import (
    ABOUT_TEXT,
    HELP_MENU_COMMANDS,
    HELP_MENU_CONTROLS,
    DumpState,
    TUIView,
)
from .table import Row, build_rows

HEADER = ("Last Modified", "Slot", "As Type", "Value")
COLUMN_WIDTHS = (14, 68, 9)
COMPLETE_LABEL = "Storage Slot Dump Complete"
ABOUT_HEIGHT = 6


def _format_eta(seconds: Optional[float]) -> str:
    if seconds is None:
        return "unknown"
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts = [f"{amount}{unit}" for amount, unit in ((days, "d"), (hours, "h"), (minutes, "m")) if amount]
    parts.append(f"{secs}s")
    return " ".join(parts)


def _progress(state: DumpState, elapsed_seconds: float) -> tuple[float, str]:
    with state.lock:
        transactions = list(state.transactions)
    if not transactions:
        raise ValueError("no transactions to report progress on")

    min_block = min(t.block_number for t in transactions)
    max_block = max(t.block_number for t in transactions)
    indexed = [t for t in transactions if t.indexed]
    max_indexed = max((t.block_number for t in indexed), default=min_block)

    total = len(transactions)
    done = len(indexed)
    percent = done / total * 100.0
    if done == total:
        return percent, COMPLETE_LABEL

    rate = done / elapsed_seconds if elapsed_seconds > 0 else 0.0
    eta = (total - done) / rate if rate > 0 else None
    label = (
        f"Block {max_indexed}/{max_block} ({percent:.2f}%). "
        f"{rate:.2f} TPS. ETA: {_format_eta(eta)}"
    )
    return percent, label


def progress_label(state: DumpState, elapsed_seconds: float) -> str:
    """Return the text shown on the dump progress bar."""
    return _progress(state, elapsed_seconds)[1]


def help_sections() -> list[tuple[str, tuple[str, ...]]]:
    """Return the titled paragraphs of the help screen, in display order."""
    return [
        ("About", ABOUT_TEXT),
        ("Commands", HELP_MENU_COMMANDS),
        ("Controls", HELP_MENU_CONTROLS),
    ]


def table_title(state: DumpState) -> str:
    """Return the title of the storage table."""
    return f" Storage for Contract {state.args.target} "


def _put(win, y: int, x: int, text: str, attr: int = 0) -> None:
    height, width = win.getmaxyx()
    if y < 0 or y >= height or x < 0 or x >= width or not text:
        return
    try:
        win.addnstr(y, x, text, width - x, attr)
    except curses.error:
        pass


def _box(win, y: int, x: int, height: int, width: int, title: str = "") -> None:
    try:
        win.derwin(height, width, y, x).box()
    except curses.error:
        return
    if title:
        _put(win, y, x + 1, title[: max(width - 2, 0)])


def _format_row(cells: tuple[str, ...], width: int) -> str:
    widths = list(COLUMN_WIDTHS) + [max(width - sum(COLUMN_WIDTHS) - len(COLUMN_WIDTHS), 0)]
    text = " ".join(cell[:size].ljust(size) for cell, size in zip(cells, widths))
    return text[:width]


def _row_attr(row: Row) -> int:
    if row.selected:
        return curses.A_REVERSE
    if row.placeholder:
        return curses.A_DIM
    return curses.A_NORMAL


def _render_progress(win, state: DumpState, width: int) -> None:
    try:
        percent, label = _progress(state, time.monotonic() - state.start_time)
    except ValueError:
        percent, label = 0.0, "No transactions"
    _box(win, 1, 1, 3, width - 2, " Dump Progress ")
    inner = max(width - 4, 0)
    filled = inner * min(int(percent), 100) // 100
    text = label.center(inner)[:inner]
    _put(win, 2, 2, text[:filled], curses.A_REVERSE)
    _put(win, 2, 2 + filled, text[filled:])


def _render_table(win, state: DumpState, top: int, height: int, width: int) -> None:
    box_height = height - 1 - top
    if box_height < 5:
        return
    _box(win, top, 1, box_height, width - 2, table_title(state))
    inner = max(width - 4, 0)
    _put(win, top + 1, 2, _format_row(HEADER, inner), curses.A_BOLD)
    for offset, row in enumerate(build_rows(state, box_height - 4)):
        _put(win, top + 3 + offset, 2, _format_row(row.cells, inner), _row_attr(row))


def _render_help(win, height: int) -> None:
    heights = (ABOUT_HEIGHT, len(HELP_MENU_COMMANDS) + 2, None)
    y = 1
    for (title, lines), section_height in zip(help_sections(), heights):
        _put(win, y, 1, title, curses.A_BOLD)
        limit = section_height - 1 if section_height else height - y - 2
        for offset, line in enumerate(lines[: max(limit, 0)]):
            _put(win, y + 1 + offset, 1, line)
        y += section_height or 0


def _render(win, state: DumpState) -> None:
    win.erase()
    height, width = win.getmaxyx()
    if height < 10 or width < 20:
        _put(win, 0, 0, "terminal too small")
        win.refresh()
        return
    with state.lock:
        if state.view is TUIView.HELP:
            _render_help(win, height)
        elif state.view is TUIView.COMMAND_PALETTE:
            _box(win, 1, 1, 3, width - 2, " Command ")
            _put(win, 2, 2, state.input_buffer[: max(width - 4, 0)])
            _render_table(win, state, 4, height, width)
        else:
            _render_progress(win, state, width)
            _render_table(win, state, 4, height, width)
    win.refresh()


def _key_event(ch: Union[str, int]) -> Optional[KeyEvent]:
    if isinstance(ch, int):
        special = {
            curses.KEY_UP: Key.UP,
            curses.KEY_DOWN: Key.DOWN,
            curses.KEY_LEFT: Key.LEFT,
            curses.KEY_RIGHT: Key.RIGHT,
            curses.KEY_BACKSPACE: Key.BACKSPACE,
            curses.KEY_ENTER: Key.ENTER,
        }
        code = special.get(ch)
        return KeyEvent(code) if code is not None else None
    if ch == "\x1b":
        return KeyEvent(Key.ESC)
    if ch in ("\n", "\r"):
        return KeyEvent(Key.ENTER)
    if ch in ("\x7f", "\x08"):
        return KeyEvent(Key.BACKSPACE)
    if ch == "\x03":
        return KeyEvent.typed("c", ctrl=True)
    if ch.isprintable():
        return KeyEvent.typed(ch)
    return KeyEvent(Key.OTHER)


def _mouse_event(button_state: int) -> Optional[MouseEvent]:
    shift = bool(button_state & curses.BUTTON_SHIFT)
    if button_state & curses.BUTTON4_PRESSED:
        return MouseEvent(scroll=-1, shift=shift)
    if button_state & getattr(curses, "BUTTON5_PRESSED", 0x00200000):
        return MouseEvent(scroll=1, shift=shift)
    return None


def _copy_to_clipboard(text: str) -> None:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    sys.stdout.write(f"\x1b]52;c;{encoded}\x07")
    sys.stdout.flush()


def _loop(stdscr, state: DumpState, output_dir: Union[str, Path]) -> None:
    curses.raw()
    curses.noecho()
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    try:
        curses.set_escdelay(25)
    except (AttributeError, curses.error):
        pass
    stdscr.keypad(True)
    stdscr.timeout(10)
    curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)
    curses.mouseinterval(0)

    while True:
        with state.lock:
            if state.view is TUIView.KILLED:
                return
        _render(stdscr, state)

        try:
            ch = stdscr.get_wch()
        except curses.error:
            continue

        if ch == curses.KEY_MOUSE:
            try:
                _, _, _, _, button_state = curses.getmouse()
            except curses.error:
                continue
            mouse = _mouse_event(button_state)
            if mouse is not None:
                handle_mouse(state, mouse)
            continue
        if ch == curses.KEY_RESIZE:
            continue

        event = _key_event(ch)
        if event is None:
            continue
        copied = handle_key(state, event, output_dir)
        if copied is not None:
            _copy_to_clipboard(copied)


def run_tui(state: DumpState, output_dir: Union[str, Path]) -> None:
    """Run the interactive viewer until the user quits with ``:q``."""
    curses.wrapper(_loop, state, output_dir)