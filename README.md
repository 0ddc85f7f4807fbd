# slotdump

`slotdump` collects the value of every storage slot that an EVM contract has
written to. It asks Transpose for the contract's creation transaction and the
transactions sent to it, replays each one on an RPC node that supports
`trace_replayTransaction` with state diffs, keeps the newest value for each
slot, and lets you browse the result in a terminal view or write it straight
to CSV.

The terminal view uses the standard `curses` module, so it needs a platform
where `curses` is available.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Usage

```
slotdump dump <TARGET> --rpc-url <URL> --transpose-api-key <KEY> [OPTIONS]
```

`TARGET` is the contract address (40 hex digits, with or without `0x`). A
Transpose API key is required. If `--rpc-url` or `--transpose-api-key` is not
given, the values of the environment variables `SLOTDUMP_RPC_URL` and
`SLOTDUMP_TRANSPOSE_API_KEY` are used.

| Option | Default | Meaning |
| --- | --- | --- |
| `-o`, `--output` | `./output/<TARGET>` | directory the CSV is written to |
| `-r`, `--rpc-url` | | RPC endpoint used to replay transactions |
| `-t`, `--transpose-api-key` | | Transpose API key |
| `--threads` | `4` | number of transactions traced at once (at least 1) |
| `--from-block` | `0` | first block to include |
| `--to-block` | `9999999999` | last block to include |
| `--no-tui` | off | skip the terminal view and just write the CSV |
| `--chain` | `ethereum` | one of ethereum, polygon, goerli, canto, arbitrum |
| `-v`, `--verbose` | | more log output (repeatable) |
| `-q`, `--quiet` | | less log output (repeatable) |

With `--no-tui`, progress is printed to standard error when it is a terminal.
When indexing is done (or the view is closed), the dump is written to
`storage_dump.csv` in the output directory, with the columns
`last_modified,alias,slot,decoded_type,value`. On failure the command logs the
error and exits with status 1.

## The terminal view

The table lists slots sorted by key, with the block that last modified each
slot and the value decoded as one of `bytes32`, `bool`, `address`, `string` or
`uint256`. Above it a bar shows indexing progress, throughput and an estimate
of the time left.

Controls:

- Up / Down, mouse wheel: move the cursor one slot
- Shift + mouse wheel: grow (down) or shrink (up) the selection
- Left / Right: change how the selected slots are decoded
- Ctrl + C: copy the selected value to the clipboard (through the terminal's
  OSC 52 support)
- `:`: open the command palette
- Esc: clear the search filter and return to the table

Commands:

- `:q`, `:quit`: leave the view
- `:h`, `:help`: show the help screen
- `:f`, `:find <VALUE>`: show only slots whose key or value contains `VALUE`
- `:e`, `:export <FILENAME>`: write the current dump, with its decodings, to
  `FILENAME` in the output directory
- `:s`, `:seek <up|down> <AMOUNT>`: move the cursor by `AMOUNT` slots

## Library use

The pieces work without the terminal too:

- `slotdump.state.DumpState` holds the transactions, slots and view state.
- `slotdump.indexer.StateDiffClient` fetches a transaction's storage changes
  for one address; `slotdump.indexer.apply_storage_diff` merges one diff into
  a state, and `slotdump.indexer.index_transactions` does so for every
  transaction using a thread pool.
- `slotdump.decoding.decode_value` renders a 32-byte value as any of the
  supported types.
- `slotdump.csv_export.storage_csv_lines` gives the CSV rows for a state, and
  `slotdump.csv_export.write_storage_to_csv` writes them to a file.
- `slotdump.controller.handle_key` and `slotdump.controller.handle_mouse`
  apply input events to a state.

## Limits

- `dump` is the only command.
- Replayed state diffs are kept in memory for the current run only; nothing is
  cached on disk between runs.
- There is no configuration file; defaults come from the options and the two
  environment variables above.
- Slot aliases are never filled in, so the `alias` column is always `None`.