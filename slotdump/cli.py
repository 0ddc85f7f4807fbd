"""Command line entry point of the storage dumper."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
import threading
from pathlib import Path
from typing import Any, Optional

import requests

from .csv_export import write_storage_to_csv
from .indexer import RpcError, StateDiffClient, index_transactions
from .state import DumpArgs, DumpState, Transaction
from .views import run_tui

TRANSPOSE_URL = "https://api.transpose.io/sql"
CHAINS = ("ethereum", "polygon", "goerli", "canto", "arbitrum")
RPC_URL_ENV = "SLOTDUMP_RPC_URL"
TRANSPOSE_KEY_ENV = "SLOTDUMP_TRANSPOSE_API_KEY"
CSV_FILE_NAME = "storage_dump.csv"

_ADDRESS = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")

logger = logging.getLogger("slotdump")


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser of the command line."""
    parser = argparse.ArgumentParser(
        prog="slotdump",
        description="Advanced Ethereum smart contract storage analysis.",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    dump_parser = commands.add_parser(
        "dump",
        help="Dump the value of all storage slots accessed by a contract",
        description="Dump the value of all storage slots accessed by a contract",
    )
    dump_parser.add_argument("target", help="The target to find and dump the storage slots of.")
    dump_parser.add_argument("-v", "--verbose", action="count", default=1, help="Increase output verbosity.")
    dump_parser.add_argument("-q", "--quiet", action="count", default=0, help="Decrease output verbosity.")
    dump_parser.add_argument("-o", "--output", default="", help="The output directory to write the output to.")
    dump_parser.add_argument("-r", "--rpc-url", default="", help="The RPC URL to use for fetching data.")
    dump_parser.add_argument("-t", "--transpose-api-key", default="", help="Your Transpose.io API key.")
    dump_parser.add_argument("--threads", type=_positive_int, default=4, help="The number of threads to use when fetching data.")
    dump_parser.add_argument("--from-block", type=int, default=0, help="The block number to start dumping from.")
    dump_parser.add_argument("--to-block", type=int, default=9999999999, help="The block number to stop dumping at.")
    dump_parser.add_argument("--no-tui", action="store_true", help="Whether to skip opening the TUI.")
    dump_parser.add_argument(
        "--chain",
        default="ethereum",
        help="The chain of the target. Valid chains are ethereum, polygon, goerli, canto, and arbitrum.",
    )
    return parser


def _transpose_query(sql: str, parameters: dict[str, Any], api_key: str) -> list[dict[str, Any]]:
    response = requests.post(
        TRANSPOSE_URL,
        json={"sql": sql, "parameters": parameters},
        headers={"X-API-KEY": api_key, "Content-Type": "application/json"},
        timeout=30.0,
    )
    response.raise_for_status()
    try:
        body = response.json()
    except ValueError as exc:
        raise ConnectionError(f"invalid response from Transpose: {exc}") from exc
    if body.get("status") != "success":
        raise ConnectionError(f"Transpose query failed: {body.get('message', 'unknown error')}")
    return list(body.get("results") or [])


def _to_transaction(row: dict[str, Any]) -> Transaction:
    try:
        return Transaction(hash=str(row["transaction_hash"]), block_number=int(row["block_number"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ConnectionError(f"malformed transaction record from Transpose: {row!r}") from exc


def _contract_creation(chain: str, address: str, api_key: str) -> Optional[Transaction]:
    sql = (
        "SELECT created_block AS block_number, creator_transaction_hash AS transaction_hash "
        f"FROM {chain}.accounts WHERE address = {{{{address}}}} LIMIT 1;"
    )
    rows = _transpose_query(sql, {"address": address}, api_key)
    return _to_transaction(rows[0]) if rows else None


def _transaction_list(
    chain: str, address: str, api_key: str, from_block: int, to_block: int
) -> list[Transaction]:
    condition = (
        "WHERE to_address = {{address}} "
        "AND block_number BETWEEN {{from_block}} AND {{to_block}}"
    )
    sql = (
        f"SELECT block_number, transaction_hash FROM {chain}.transactions {condition} "
        f"UNION SELECT block_number, transaction_hash FROM {chain}.traces {condition} "
        "ORDER BY block_number;"
    )
    parameters = {"address": address, "from_block": from_block, "to_block": to_block}
    return [_to_transaction(row) for row in _transpose_query(sql, parameters, api_key)]


def _report_progress(done: int, total: int) -> None:
    if sys.stderr.isatty():
        sys.stderr.write(
            f"\rdumping storage. Progress {done}/{total} ({done / total * 100:.2f}%)"
        )
        sys.stderr.flush()


def dump(args: DumpArgs) -> Path:
    """Dump every storage slot the target touched and return the CSV path."""
    if not args.transpose_api_key:
        raise ValueError(
            "you must provide a Transpose API key, which is used to fetch all normal "
            "and internal transactions for your target."
        )
    if args.chain not in CHAINS:
        raise ValueError(f"unsupported chain '{args.chain}', expected one of {', '.join(CHAINS)}")
    if not _ADDRESS.match(args.target):
        raise ValueError(f"failed to parse target '{args.target}' .")

    output_dir = Path(args.output) if args.output else Path.cwd() / "output" / args.target

    creation = _contract_creation(args.chain, args.target, args.transpose_api_key)
    if creation is None:
        raise ValueError(
            "failed to get contract creation transaction. Is the target a contract address?"
        )

    transactions = [creation]
    seen = {creation.hash}
    for tx in _transaction_list(
        args.chain, args.target, args.transpose_api_key, args.from_block, args.to_block
    ):
        if tx.hash not in seen:
            seen.add(tx.hash)
            transactions.append(tx)

    state = DumpState(args=args, transactions=transactions)
    client = StateDiffClient(args.rpc_url)

    def fetch(tx: Transaction):
        return client.get_storage_diff(tx.hash, args.target)

    if args.no_tui:
        index_transactions(state, fetch, args.threads, _report_progress)
        if sys.stderr.isatty():
            sys.stderr.write("\n")
    else:
        failures: list[BaseException] = []

        def work() -> None:
            try:
                index_transactions(state, fetch, args.threads)
            except Exception as exc:  # reported once the viewer closes
                failures.append(exc)

        threading.Thread(target=work, name="slotdump-indexer", daemon=True).start()
        run_tui(state, output_dir)
        if failures:
            raise failures[0]

    with state.lock:
        path = write_storage_to_csv(output_dir, CSV_FILE_NAME, state)
        count = len(state.storage)
    logger.info("Wrote storage dump to '%s'.", path)
    logger.info("Dumped %d storage values from '%s' .", count, args.target)
    return path


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    logger.setLevel(level)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line and return the exit status."""
    namespace = build_parser().parse_args(argv)
    verbosity = namespace.verbose - namespace.quiet
    _configure_logging(verbosity)

    args = DumpArgs(
        target=namespace.target,
        verbose=verbosity,
        output=namespace.output,
        rpc_url=namespace.rpc_url or os.environ.get(RPC_URL_ENV, ""),
        transpose_api_key=namespace.transpose_api_key or os.environ.get(TRANSPOSE_KEY_ENV, ""),
        threads=namespace.threads,
        from_block=namespace.from_block,
        to_block=namespace.to_block,
        no_tui=namespace.no_tui,
        chain=namespace.chain,
    )
    try:
        dump(args)
    except (ValueError, LookupError, RpcError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())