"""Keyboard, mouse and command-palette handling for the interactive viewer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional, Union

from .csv_export import write_storage_to_csv
from .state import DECODE_AS_TYPES, DumpState, TUIView
from .table import selected_value

_AMOUNT = re.compile(r"\+?[0-9]+")


class Key(Enum):
    """Keys the viewer reacts to."""

    CHAR = auto()
    BACKSPACE = auto()
    ENTER = auto()
    ESC = auto()
    LEFT = auto()
    RIGHT = auto()
    UP = auto()
    DOWN = auto()
    OTHER = auto()


@dataclass(frozen=True)
class KeyEvent:
    """A key press, with the character typed for ``Key.CHAR``."""

    code: Key
    char: str = ""
    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    def __post_init__(self) -> None:
        if self.code is Key.CHAR and len(self.char) != 1:
            raise ValueError("a character key event needs exactly one character")

    @classmethod
    def typed(cls, char: str, *, ctrl: bool = False, alt: bool = False) -> "KeyEvent":
        """Return the event for typing ``char``."""
        return cls(Key.CHAR, char, ctrl=ctrl, alt=alt)

    @property
    def modified(self) -> bool:
        """True when any modifier key is held."""
        return self.ctrl or self.alt or self.shift


@dataclass(frozen=True)
class MouseEvent:
    """A mouse wheel event: positive ``scroll`` is down, negative is up."""

    scroll: int = 0
    shift: bool = False


def _parse_amount(text: str) -> int:
    return int(text) if _AMOUNT.fullmatch(text) else 0


def _seek(state: DumpState, direction: str, amount: int) -> None:
    if direction == "up":
        state.scroll_index = max(state.scroll_index - amount, 0)
    elif direction == "down":
        if state.scroll_index + amount < len(state.storage):
            state.scroll_index += amount
        else:
            state.scroll_index = max(len(state.storage) - 1, 0)


def run_command(state: DumpState, output_dir: Union[str, Path]) -> None:
    """Execute the command held in the input buffer."""
    with state.lock:
        state.filter = ""
        command, *args = state.input_buffer.split(" ")

        if command in (":q", ":quit"):
            state.view = TUIView.KILLED
            return
        if command in (":h", ":help"):
            state.view = TUIView.HELP
            return
        if command in (":f", ":find"):
            if args:
                state.filter = args[0]
        elif command in (":e", ":export"):
            if args:
                write_storage_to_csv(output_dir, args[0], state)
        elif command in (":s", ":seek"):
            if len(args) > 1:
                _seek(state, args[0].lower(), _parse_amount(args[1]))
        state.view = TUIView.MAIN


def cycle_selected(state: DumpState, step: int) -> None:
    """Move the decode type of every selected slot by ``step``, wrapping around."""
    count = len(DECODE_AS_TYPES)
    with state.lock:
        start = state.scroll_index
        end = start + state.selection_size
        for _, slot in state.sorted_storage()[start:end]:
            slot.decode_as_type_index = (slot.decode_as_type_index + step) % count


def _palette_key(state: DumpState, event: KeyEvent, output_dir: Union[str, Path]) -> None:
    if event.code is Key.CHAR:
        state.input_buffer += event.char
    elif event.code is Key.BACKSPACE:
        state.input_buffer = state.input_buffer[:-1]
    elif event.code is Key.ENTER:
        run_command(state, output_dir)
    elif event.code is Key.ESC:
        state.filter = ""
        state.view = TUIView.MAIN


def handle_key(
    state: DumpState, event: KeyEvent, output_dir: Union[str, Path]
) -> Optional[str]:
    """Apply a key press to the state.

    Returns the text to copy to the clipboard when the press asks for a copy,
    otherwise None.
    """
    with state.lock:
        if state.view is TUIView.COMMAND_PALETTE:
            _palette_key(state, event, output_dir)
            return None

        code = event.code
        if code is Key.CHAR and event.char == "c":
            return selected_value(state) if event.modified else None
        if code is Key.ESC:
            state.filter = ""
            state.view = TUIView.MAIN
        elif code is Key.RIGHT:
            cycle_selected(state, 1)
        elif code is Key.LEFT:
            cycle_selected(state, -1)
        elif code is Key.DOWN:
            state.selection_size = 1
            state.scroll_index += 1
        elif code is Key.UP:
            state.selection_size = 1
            if state.scroll_index > 0:
                state.scroll_index -= 1
        elif code is Key.CHAR and event.char == ":":
            if state.view is TUIView.COMMAND_PALETTE:
                state.view = TUIView.MAIN
            else:
                state.input_buffer = ":"
                state.view = TUIView.COMMAND_PALETTE
    return None


def handle_mouse(state: DumpState, event: MouseEvent) -> None:
    """Apply a mouse wheel event to the state."""
    with state.lock:
        if event.scroll > 0:
            if event.shift:
                state.selection_size += 1
            else:
                state.selection_size = 1
                state.scroll_index += 1
        elif event.scroll < 0:
            if event.shift:
                state.selection_size = max(state.selection_size - 1, 0)
            else:
                state.selection_size = 1
                if state.scroll_index > 0:
                    state.scroll_index -= 1