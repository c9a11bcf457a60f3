#!/usr/bin/env python3
"""Dump the persisted walletcore state snapshot.

Reads the snapshot the store writes when ``WALLET_STATE_CACHE`` is on,
decodes it with the numeric-safe codec, and prints it. Big integers are
printed exactly.

Usage
-----
::

    export WALLET_STATE_DIR=~/.walletcore
    python scripts/dump_state.py

Options::

    --dir DIR        Snapshot directory (default: $WALLET_STATE_DIR or ~/.walletcore)
    --key KEY        Snapshot key (default: $WALLET_STATE_KEY or "state")
    --branch NAME    Only print one top-level branch (e.g. "account")
    --raw            Print the stored text without decoding
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from walletcore import MalformedEncoding, WalletConfig, decode  # noqa: E402
from walletcore._storage import FileStorage  # noqa: E402


def _printable(value: Any) -> Any:
    """Big ints become strings so json.dumps output stays exact for any reader."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int) and abs(value) > 2**53 - 1:
        return str(value)
    if isinstance(value, dict):
        return {k: _printable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_printable(v) for v in value]
    return value


async def _run(args: argparse.Namespace) -> int:
    config = WalletConfig.from_env()
    directory = Path(args.dir).expanduser() if args.dir else config.state_dir
    key = args.key or config.state_key

    text = await FileStorage(directory).get(key)
    if text is None:
        print(f"No snapshot {key!r} in {directory}", file=sys.stderr)
        return 1
    if args.raw:
        print(text)
        return 0

    try:
        state = decode(text)
    except MalformedEncoding as exc:
        print(f"Snapshot is malformed: {exc}", file=sys.stderr)
        return 2

    if args.branch:
        if not isinstance(state, dict) or args.branch not in state:
            print(f"No branch {args.branch!r} in snapshot", file=sys.stderr)
            return 1
        state = state[args.branch]

    print(json.dumps(_printable(state), indent=2, sort_keys=True))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the persisted walletcore state")
    parser.add_argument("--dir", help="Snapshot directory")
    parser.add_argument("--key", help="Snapshot key")
    parser.add_argument("--branch", help="Only print this top-level branch")
    parser.add_argument("--raw", action="store_true", help="Print stored text as-is")
    args = parser.parse_args()
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
