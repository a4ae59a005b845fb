#!/usr/bin/env python3
"""
Rebuild the CSV table from a JSON snapshot.

The snapshot is rewritten after every batch, the table only appended to, so
after a crash or a failed append the snapshot is the one to trust.

- CLI:
  --snapshot PATH (default: output/data.json)
  --out PATH (default: <snapshot dir>/data.csv)
  --force   overwrite an existing table

Exit codes: 0 ok, 2 snapshot missing/unreadable, 3 output exists (no --force)
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from src.errors import PersistenceError
from src.pipeline.export import ProgressSink, load_snapshot


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Rebuild data.csv from data.json")
    ap.add_argument("--snapshot", default="output/data.json")
    ap.add_argument("--out", default=None)
    ap.add_argument("--force", action="store_true")
    args = ap.parse_args(argv)

    snap = Path(args.snapshot)
    try:
        records = load_snapshot(snap)
    except (OSError, ValueError) as e:
        print(f"Snapshot error: {snap}: {e}", file=sys.stderr)
        return 2

    out = Path(args.out) if args.out else snap.with_name("data.csv")
    if out.exists() and not args.force:
        print(f"Refusing to overwrite {out} (use --force)", file=sys.stderr)
        return 3
    if out.exists():
        out.unlink()

    sink = ProgressSink(output_dir=out.parent, snapshot_name=snap.name, table_name=out.name)
    try:
        sink.append_table(records)
    except PersistenceError as e:
        print(e.describe(), file=sys.stderr)
        return 3
    print(json.dumps({"snapshot": str(snap), "table": str(out), "rows": len(records)}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
