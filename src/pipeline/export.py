"""
Progress Sink - Incremental JSON/CSV Persistence

Persists each batch of newly accepted contact records twice:
- a full JSON snapshot of everything accepted so far (overwritten per batch)
- an appended CSV table, header written once

The snapshot is the authoritative recovery artifact. A crash between the two
writes leaves the snapshot at most one batch ahead of the table.
"""

import csv
import json
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..errors import PersistenceError
from ..ops_logger import OpsLogger
from ..schemas import CSV_COLUMNS, ContactRecord


CSV_HEADER = [title for _, title in CSV_COLUMNS]


def load_snapshot(path: Union[str, Path]) -> List[ContactRecord]:
    """Read a snapshot file back into records."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return [ContactRecord.model_validate(item) for item in data]


class ProgressSink:
    """
    Append-only durable sink for the scrape loop.

    persist() never raises: a failed write is reported and the loop keeps
    accumulating in memory; the next successful snapshot covers the gap.
    """

    def __init__(
        self,
        output_dir: Union[str, Path] = "output",
        snapshot_name: str = "data.json",
        table_name: str = "data.csv",
        ops_logger: Optional[OpsLogger] = None,
    ):
        """
        Initialize the sink.

        Args:
            output_dir: Directory for both artifacts (created if missing)
            snapshot_name: File name of the JSON snapshot
            table_name: File name of the CSV table
            ops_logger: Optional JSONL event logger for write failures
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.snapshot_path = self.output_dir / snapshot_name
        self.table_path = self.output_dir / table_name
        self.ops_logger = ops_logger

    def persist(self, new_batch: Sequence[ContactRecord], full_set: Sequence[ContactRecord]) -> bool:
        """
        Write the snapshot and append the batch. Both writes are attempted.

        Returns:
            True when both writes succeeded
        """
        ok = True
        for write, records in ((self.write_snapshot, full_set), (self.append_table, new_batch)):
            try:
                write(records)
            except PersistenceError as e:
                ok = False
                print(f"  ⚠️  {e.describe()}", file=sys.stderr)
                if self.ops_logger:
                    self.ops_logger.emit_event("persist_error", operation=e.operation, target=e.target, error=str(e))
        return ok

    def write_snapshot(self, records: Sequence[ContactRecord]) -> Path:
        """Replace the snapshot with ``records`` (temp file + rename)."""
        tmp_path = self.snapshot_path.with_name(self.snapshot_path.name + ".tmp")
        payload = [r.model_dump() for r in records]
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.snapshot_path)
        except OSError as e:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise PersistenceError(str(e), operation="snapshot write", target=str(self.snapshot_path)) from e
        return self.snapshot_path

    def append_table(self, records: Sequence[ContactRecord]) -> Path:
        """Append rows; header only when the table is new or empty."""
        try:
            needs_header = (not self.table_path.exists()) or self.table_path.stat().st_size == 0
            with open(self.table_path, "a", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_HEADER)
                if needs_header:
                    writer.writeheader()
                for record in records:
                    writer.writerow(record.to_row())
        except OSError as e:
            raise PersistenceError(str(e), operation="table append", target=str(self.table_path)) from e
        return self.table_path
