"""Shared state of a storage dump: arguments, transactions, slots and view."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum, auto

SLOT_SIZE = 32

DECODE_AS_TYPES: tuple[str, ...] = ("bytes32", "bool", "address", "string", "uint256")

ABOUT_TEXT: tuple[str, ...] = (
    "slotdump v0.1.0",
    "The storage dump module will fetch all storage slots and values accessed by any EVM contract.",
)

HELP_MENU_COMMANDS: tuple[str, ...] = (
    ":q, :quit                              exit the program",
    ":h, :help                              display this help menu",
    ":f, :find      <VALUE>                 search for a storage slot by slot or value",
    ":e, :export    <FILENAME>              export the current storage dump to a file, preserving decoded values",
    ":s, :seek      <DIRECTION> <AMOUNT>    move the cusor up or down by a specified amount",
)

HELP_MENU_CONTROLS: tuple[str, ...] = (
    "↑, Scroll Up                           move the cursor up one slot",
    "↓, Scroll Down                         move the cursor down one slot",
    "←, →                                   change the decoding type of the selected slot",
    "CTRL + ↑, CTRL + ↓                     move the cursor up or down by 10 slots",
    "ESC                                    clear the search filter",
)


@dataclass
class DumpArgs:
    """Options of a storage dump run."""

    target: str = ""
    verbose: int = 1
    output: str = ""
    rpc_url: str = ""
    transpose_api_key: str = ""
    threads: int = 4
    from_block: int = 0
    to_block: int = 9999999999
    no_tui: bool = False
    chain: str = "ethereum"


@dataclass
class Transaction:
    """A transaction that touched the target contract."""

    hash: str
    block_number: int
    indexed: bool = False


@dataclass
class StorageSlot:
    """The latest known value of a storage slot and every change made to it."""

    value: bytes
    modifiers: list[tuple[int, str]] = field(default_factory=list)
    alias: str | None = None
    decode_as_type_index: int = 0

    def __post_init__(self) -> None:
        if len(self.value) != SLOT_SIZE:
            raise ValueError(
                f"storage value must be {SLOT_SIZE} bytes, got {len(self.value)}"
            )

    def last_modified(self) -> int:
        """Return the highest block number that modified this slot."""
        if not self.modifiers:
            raise ValueError("storage slot has no modifiers")
        return max(block for block, _ in self.modifiers)


class TUIView(Enum):
    """The screens of the interactive viewer."""

    KILLED = auto()
    MAIN = auto()
    COMMAND_PALETTE = auto()
    HELP = auto()


@dataclass
class DumpState:
    """Everything the indexer and the viewer share."""

    args: DumpArgs = field(default_factory=DumpArgs)
    scroll_index: int = 0
    selection_size: int = 1
    transactions: list[Transaction] = field(default_factory=list)
    storage: dict[bytes, StorageSlot] = field(default_factory=dict)
    view: TUIView = TUIView.MAIN
    start_time: float = field(default_factory=time.monotonic)
    input_buffer: str = ""
    filter: str = ""
    lock: threading.RLock = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    def sorted_storage(self) -> list[tuple[bytes, StorageSlot]]:
        """Return all slots ordered by slot key."""
        return sorted(self.storage.items(), key=lambda item: item[0])

    def visible_storage(self) -> list[tuple[bytes, StorageSlot]]:
        """Return the slots matching the current filter, ordered by slot key."""
        if not self.filter:
            return self.sorted_storage()
        return [
            (key, slot)
            for key, slot in self.sorted_storage()
            if self.filter in "0x" + key.hex() or self.filter in "0x" + slot.value.hex()
        ]