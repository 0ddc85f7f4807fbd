from unittest.mock import patch

import pytest
import requests

from slotdump.indexer import (
    RpcError,
    StateDiffClient,
    apply_storage_diff,
    index_transactions,
)
from slotdump.state import DumpState, Transaction

TX_A = "0x" + "aa" * 32
TX_B = "0x" + "bb" * 32
ADDRESS = "0x" + "11" * 20


def _word(n: int) -> bytes:
    return n.to_bytes(32, "big")


def _state(*txs: Transaction) -> DumpState:
    return DumpState(transactions=list(txs))


def test_apply_inserts_new_slot_and_marks_indexed():
    tx = Transaction(TX_A, 10)
    state = _state(tx)
    apply_storage_diff(state, tx, {_word(1): _word(5)})
    assert state.transactions[0].indexed
    slot = state.storage[_word(1)]
    assert slot.value == _word(5)
    assert slot.modifiers == [(10, TX_A)]


def test_newer_block_overwrites_older_does_not():
    newer = Transaction(TX_A, 20)
    older = Transaction(TX_B, 5)
    state = _state(newer, older)
    apply_storage_diff(state, newer, {_word(1): _word(9)})
    apply_storage_diff(state, older, {_word(1): _word(3)})
    slot = state.storage[_word(1)]
    assert slot.value == _word(9)
    assert slot.last_modified() == 20
    assert len(slot.modifiers) == 2


def test_died_slot_is_removed():
    first = Transaction(TX_A, 1)
    second = Transaction(TX_B, 2)
    state = _state(first, second)
    apply_storage_diff(state, first, {_word(1): _word(2)})
    apply_storage_diff(state, second, {_word(1): None})
    assert _word(1) not in state.storage


def test_missing_diff_only_marks_indexed():
    tx = Transaction(TX_A, 1)
    state = _state(tx)
    apply_storage_diff(state, tx, None)
    assert state.transactions[0].indexed
    assert state.storage == {}


def test_unknown_transaction_raises():
    with pytest.raises(LookupError):
        apply_storage_diff(DumpState(), Transaction(TX_A, 1), {})


def test_index_transactions_applies_all():
    txs = [Transaction(TX_A, 1), Transaction(TX_B, 2)]
    state = _state(*txs)
    diffs = {TX_A: {_word(1): _word(7)}, TX_B: {_word(2): _word(8)}}
    progress = []
    index_transactions(state, lambda tx: diffs[tx.hash], 4, lambda d, t: progress.append((d, t)))
    assert all(t.indexed for t in state.transactions)
    assert state.storage[_word(1)].value == _word(7)
    assert state.storage[_word(2)].value == _word(8)
    assert len(progress) == 2
    assert max(progress) == (2, 2)


def test_index_transactions_propagates_errors():
    state = _state(Transaction(TX_A, 1))

    def fail(tx):
        raise RpcError("boom")

    with pytest.raises(RpcError):
        index_transactions(state, fail, 2, None)


def test_client_requires_rpc_url():
    with pytest.raises(RpcError):
        StateDiffClient("", 5).get_storage_diff(TX_A, ADDRESS)


def test_client_rejects_bad_hash():
    with pytest.raises(RpcError):
        StateDiffClient("http://localhost:8545", 5).get_storage_diff("0x1234", ADDRESS)


def _response(post, body):
    post.return_value.json.return_value = body
    post.return_value.raise_for_status.return_value = None


@patch("slotdump.indexer.requests.post")
def test_client_parses_state_diff_and_caches(post):
    _response(
        post,
        {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {
                "stateDiff": {
                    ADDRESS: {
                        "storage": {
                            "0x" + "00" * 31 + "01": {"+": "0x05"},
                            "0x" + "00" * 31 + "02": {"*": {"from": "0x01", "to": "0x02"}},
                            "0x" + "00" * 31 + "03": {"-": "0x09"},
                            "0x" + "00" * 31 + "04": "=",
                        }
                    }
                }
            },
        },
    )
    client = StateDiffClient("http://localhost:8545", 5)
    diff = client.get_storage_diff(TX_A, ADDRESS)
    assert diff == {_word(1): _word(5), _word(2): _word(2), _word(3): None}
    assert client.get_storage_diff(TX_A, ADDRESS.upper().replace("0X", "0x")) == diff
    assert post.call_count == 1
    payload = post.call_args.kwargs["json"]
    assert payload["method"] == "trace_replayTransaction"
    assert payload["params"] == [TX_A, ["stateDiff"]]


@patch("slotdump.indexer.requests.post")
def test_client_other_address_gives_empty_diff(post):
    _response(post, {"result": {"stateDiff": {ADDRESS: {"storage": {}}}}})
    client = StateDiffClient("http://localhost:8545", 5)
    assert client.get_storage_diff(TX_A, "0x" + "22" * 20) == {}


@patch("slotdump.indexer.requests.post")
def test_client_rpc_error_raises(post):
    _response(post, {"error": {"code": -32601, "message": "method not found"}})
    with pytest.raises(RpcError):
        StateDiffClient("http://localhost:8545", 5).get_storage_diff(TX_A, ADDRESS)


@patch("slotdump.indexer.requests.post")
def test_client_connection_error_raises(post):
    post.side_effect = requests.ConnectionError("down")
    with pytest.raises(RpcError):
        StateDiffClient("http://localhost:8545", 5).get_storage_diff(TX_B, ADDRESS)