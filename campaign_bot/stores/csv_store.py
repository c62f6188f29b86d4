"""
Flat-file row store — a CSV with the header on line 1.

Every get/update/add_column re-reads the whole file and every mutation
rewrites the whole file. Writes go to a temp file in the same directory and
are swapped in with os.replace(), so a concurrent reader only ever sees a
complete, previously committed file.

Read-modify-write cycles hold an in-process lock plus an advisory flock on a
sidecar '<file>.lock', because RQ runs each job in a forked work horse and
two jobs updating different rows must not drop each other's write.
"""
import csv
import fcntl
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from campaign_bot.errors import RowNotFound, StorageUnavailable
from campaign_bot.models.contact import ContactRow, format_cell, is_blank_row, resolve_column
from campaign_bot.stores.base import RowStore, resolve_fields

logger = logging.getLogger('stores.csv')


class CsvRowStore(RowStore):

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._lock_path = f'{self.path}.lock'
        self._thread_lock = threading.RLock()
        logger.info("CsvRowStore initialized with file: %s", self.path)

    # ── Public API ────────────────────────────────────────────────────

    def list(self) -> List[ContactRow]:
        with self._locked():
            _, records = self._read()
        rows = [row for row, _ in self._number(records)]
        logger.info("Loaded %d rows from CSV", len(rows))
        return rows

    def get(self, row_id: int) -> Optional[ContactRow]:
        with self._locked():
            _, records = self._read()
        for row, _ in self._number(records):
            if row.row_id == row_id:
                return row
        return None

    def update(self, row_id: int, fields: Dict[str, Any]) -> None:
        with self._locked():
            headers, records = self._read()
            index = next((i for row, i in self._number(records) if row.row_id == row_id), None)
            if index is None:
                raise RowNotFound(row_id)

            fields = resolve_fields(headers, fields)
            for column in fields:
                if column not in headers:
                    headers.append(column)
                    logger.info("Added column: %s", column)

            records[index].update({k: format_cell(v) for k, v in fields.items()})
            self._write(headers, records)
        logger.info("Updated row %d (%s)", row_id, ', '.join(fields))

    def add_column(self, name: str) -> None:
        with self._locked():
            headers, records = self._read()
            if resolve_column(headers, name) in headers:
                logger.warning("Column %s already exists", name)
                return
            headers.append(name)
            self._write(headers, records)
        logger.info("Added column: %s", name)

    def close(self) -> None:
        # Nothing is cached between calls
        logger.debug("CsvRowStore closed")

    # ── File handling ─────────────────────────────────────────────────

    @contextmanager
    def _locked(self):
        with self._thread_lock:
            try:
                os.makedirs(os.path.dirname(self.path), exist_ok=True)
                lock_file = open(self._lock_path, 'a')
            except OSError as e:
                raise StorageUnavailable(f"Cannot lock {self.path}: {e}") from e
            with lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _read(self) -> Tuple[List[str], List[Dict[str, str]]]:
        if not os.path.exists(self.path):
            logger.warning("CSV file not found: %s", self.path)
            return [], []
        try:
            with open(self.path, newline='', encoding='utf-8') as fh:
                reader = csv.reader(fh)
                headers = next(reader, [])
                records = []
                for values in reader:
                    values = values + [''] * (len(headers) - len(values))
                    records.append(dict(zip(headers, values)))
        except (OSError, csv.Error) as e:
            raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e
        return headers, records

    def _write(self, headers: List[str], records: List[Dict[str, str]]) -> None:
        directory = os.path.dirname(self.path)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f'.{os.path.basename(self.path)}.', suffix='.tmp', dir=directory,
        )
        try:
            with os.fdopen(fd, 'w', newline='', encoding='utf-8') as fh:
                writer = csv.writer(fh)
                writer.writerow(headers)
                for record in records:
                    writer.writerow([record.get(h, '') for h in headers])
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            if isinstance(e, OSError):
                raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e
            raise
        logger.debug("Wrote %d rows to CSV", len(records))

    @staticmethod
    def _number(records):
        """Yield (ContactRow, record index), skipping blank rows."""
        row_id = 0
        for index, record in enumerate(records):
            if is_blank_row(record.values()):
                continue
            row_id += 1
            yield ContactRow(row_id, record), index
