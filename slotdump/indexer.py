"""Fetching of per-transaction storage diffs and folding them into the dump."""

from __future__ import annotations

import itertools
import re
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import requests

from .state import SLOT_SIZE, DumpState, StorageSlot, Transaction

StorageDiff = Mapping[bytes, Optional[bytes]]

_HASH = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


class RpcError(Exception):
    """Raised when a state diff cannot be fetched from the RPC provider."""


def _word(hex_value: str) -> bytes:
    try:
        number = int(hex_value, 16)
        return number.to_bytes(SLOT_SIZE, "big")
    except (TypeError, ValueError, OverflowError) as exc:
        raise RpcError(f"invalid storage word {hex_value!r}") from exc


def _parse_storage(storage: Mapping[str, Any]) -> dict[bytes, Optional[bytes]]:
    diff: dict[bytes, Optional[bytes]] = {}
    for slot_hex, change in storage.items():
        if not isinstance(change, Mapping):
            continue
        slot = _word(slot_hex)
        if "+" in change:
            diff[slot] = _word(change["+"])
        elif "*" in change:
            diff[slot] = _word(change["*"]["to"])
        elif "-" in change:
            diff[slot] = None
    return diff


class StateDiffClient:
    """Replays transactions on a JSON-RPC node to obtain their state diffs."""

    def __init__(self, rpc_url: str, timeout: float = 30.0) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._cache: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def _fetch(self, tx_hash: str) -> dict[str, Any]:
        with self._lock:
            request_id = next(self._ids)
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": "trace_replayTransaction",
            "params": [tx_hash, ["stateDiff"]],
        }
        try:
            response = requests.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise RpcError(
                f"failed to replay and trace transaction '{tx_hash}': {exc}"
            ) from exc
        if body.get("error"):
            raise RpcError(
                f"failed to replay and trace transaction '{tx_hash}': {body['error']}"
            )
        result = body.get("result") or {}
        state_diff = result.get("stateDiff") or {}
        return {address.lower(): account for address, account in state_diff.items()}

    def get_storage_diff(self, tx_hash: str, address: str) -> dict[bytes, Optional[bytes]]:
        """Return the storage changes a transaction made to ``address``.

        A value of None marks a slot that was cleared.
        """
        if not self.rpc_url:
            raise RpcError("fetching an on-chain transaction requires an RPC provider")
        if not _HASH.match(tx_hash):
            raise RpcError(f"failed to parse transaction hash '{tx_hash}'")
        normalized = "0x" + tx_hash.lower().removeprefix("0x")

        with self._lock:
            state_diff = self._cache.get(normalized)
        if state_diff is None:
            state_diff = self._fetch(normalized)
            with self._lock:
                self._cache[normalized] = state_diff

        account_key = "0x" + address.lower().removeprefix("0x")
        account = state_diff.get(account_key)
        if not account:
            return {}
        return _parse_storage(account.get("storage") or {})


def apply_storage_diff(
    state: DumpState, tx: Transaction, diff: Optional[StorageDiff]
) -> None:
    """Mark ``tx`` indexed and fold its storage changes into the state."""
    with state.lock:
        tracked = next((t for t in state.transactions if t.hash == tx.hash), None)
        if tracked is None:
            raise LookupError(f"transaction {tx.hash} is not part of the dump")
        tracked.indexed = True

        for key, value in (diff or {}).items():
            if value is None:
                state.storage.pop(key, None)
                continue
            slot = state.storage.get(key)
            if slot is None:
                state.storage[key] = StorageSlot(
                    value=value, modifiers=[(tx.block_number, tx.hash)]
                )
                continue
            if all(block < tx.block_number for block, _ in slot.modifiers):
                slot.value = value
            slot.modifiers.append((tx.block_number, tx.hash))


def index_transactions(
    state: DumpState,
    fetch_diff: Callable[[Transaction], Optional[StorageDiff]],
    threads: int = 4,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Fetch and apply the storage diff of every transaction in the state."""
    with state.lock:
        transactions = [
            Transaction(t.hash, t.block_number, t.indexed) for t in state.transactions
        ]
    if not transactions:
        return
    workers = max(1, min(len(transactions), threads))
    total = len(transactions)

    def work(tx: Transaction) -> None:
        diff = fetch_diff(tx)
        apply_storage_diff(state, tx, diff)
        if on_progress is not None:
            with state.lock:
                done = sum(1 for t in state.transactions if t.indexed)
            on_progress(done, total)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        for _ in pool.map(work, transactions):
            pass