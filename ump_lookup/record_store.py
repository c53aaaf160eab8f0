"""Durable index of UMP token outputs."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"
DEFAULT_DB_PATH = Path.home() / ".ump-lookup" / "ump.sqlite"


class StorageError(RuntimeError):
    """Raised when the backing store fails to complete an operation."""


@dataclass(frozen=True)
class UTXOReference:
    """Location of a token output on the ledger."""

    txid: str
    output_index: int

    def to_dict(self) -> dict[str, Any]:
        return {"txid": self.txid, "outputIndex": self.output_index}


@dataclass(frozen=True)
class UMPRecord:
    """An indexed UMP token output. ``sequence`` orders records by insertion."""

    txid: str
    output_index: int
    presentation_hash: str
    recovery_hash: str
    sequence: int

    @property
    def reference(self) -> UTXOReference:
        return UTXOReference(txid=self.txid, output_index=self.output_index)


@dataclass(frozen=True)
class RecordFilter:
    """Equality filter over one record key: a hash column or the identity."""

    presentation_hash: str | None = None
    recovery_hash: str | None = None
    txid: str | None = None
    output_index: int | None = None

    def to_sql(self) -> tuple[str, tuple[Any, ...]]:
        clauses: list[str] = []
        params: list[Any] = []
        if self.presentation_hash is not None:
            clauses.append("presentation_hash = ?")
            params.append(self.presentation_hash)
        if self.recovery_hash is not None:
            clauses.append("recovery_hash = ?")
            params.append(self.recovery_hash)
        if self.txid is not None:
            clauses.append("txid = ?")
            params.append(self.txid)
        if self.output_index is not None:
            clauses.append("output_index = ?")
            params.append(self.output_index)
        if not clauses:
            raise ValueError("RecordFilter requires at least one key")
        return " AND ".join(clauses), tuple(params)


class UMPRecordStore:
    """Interface for storing and retrieving UMP token records."""

    def insert(
        self, txid: str, output_index: int, presentation_hash: str, recovery_hash: str
    ) -> UMPRecord:
        raise NotImplementedError

    def delete_by_identity(self, txid: str, output_index: int) -> bool:
        raise NotImplementedError

    def find_newest(self, record_filter: RecordFilter) -> UMPRecord | None:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the store."""


class SQLiteUMPRecordStore(UMPRecordStore):
    """Persist UMP records to a SQLite database.

    Each mutation is committed before the call returns. Sequence numbers come
    from the ``AUTOINCREMENT`` primary key, so they only ever grow and are
    never reused after a delete.
    """

    DEFAULT_DB_PATH = DEFAULT_DB_PATH

    def __init__(self, db_path: str | Path | None = None) -> None:
        if db_path == MEMORY_DB:
            self.db_path: str | Path = MEMORY_DB
        else:
            self.db_path = Path(db_path).expanduser() if db_path else self.DEFAULT_DB_PATH
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._closed = False
        try:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"Unable to open record store {self.db_path}: {exc}") from exc
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS ump_records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    txid TEXT NOT NULL,
                    output_index INTEGER NOT NULL,
                    presentation_hash TEXT NOT NULL,
                    recovery_hash TEXT NOT NULL,
                    UNIQUE (txid, output_index)
                )
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_ump_presentation ON ump_records(presentation_hash)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_ump_recovery ON ump_records(recovery_hash)"
            )

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            if self._closed:
                raise StorageError(f"Record store {self.db_path} is closed")
            cursor = self.conn.cursor()
            try:
                yield cursor
                self.conn.commit()
            except sqlite3.Error as exc:
                self.conn.rollback()
                raise StorageError(f"Record store operation failed: {exc}") from exc
            finally:
                cursor.close()

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self.conn.close()
                self._closed = True

    def __enter__(self) -> "SQLiteUMPRecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        self.close()

    def insert(
        self, txid: str, output_index: int, presentation_hash: str, recovery_hash: str
    ) -> UMPRecord:
        with self._transaction() as cursor:
            # REPLACE drops the old row, so a repeated identity gets a new seq.
            cursor.execute(
                """
                INSERT OR REPLACE INTO ump_records (txid, output_index, presentation_hash, recovery_hash)
                VALUES (:txid, :output_index, :presentation_hash, :recovery_hash)
                """,
                {
                    "txid": txid,
                    "output_index": output_index,
                    "presentation_hash": presentation_hash,
                    "recovery_hash": recovery_hash,
                },
            )
            sequence = cursor.lastrowid
        logger.debug("Stored UMP record %s.%d as seq %s", txid, output_index, sequence)
        return UMPRecord(
            txid=txid,
            output_index=output_index,
            presentation_hash=presentation_hash,
            recovery_hash=recovery_hash,
            sequence=int(sequence),
        )

    def delete_by_identity(self, txid: str, output_index: int) -> bool:
        with self._transaction() as cursor:
            cursor.execute(
                "DELETE FROM ump_records WHERE txid = ? AND output_index = ?",
                (txid, output_index),
            )
            removed = cursor.rowcount > 0
        if not removed:
            logger.debug("No UMP record for %s.%d; delete skipped", txid, output_index)
        return removed

    def find_newest(self, record_filter: RecordFilter) -> UMPRecord | None:
        where, params = record_filter.to_sql()
        sql = (
            "SELECT seq, txid, output_index, presentation_hash, recovery_hash FROM ump_records "
            f"WHERE {where} ORDER BY seq DESC LIMIT 1"
        )
        with self._transaction() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return self._row_to_record(row) if row is not None else None

    def count(self) -> int:
        with self._transaction() as cursor:
            cursor.execute("SELECT COUNT(*) FROM ump_records")
            (total,) = cursor.fetchone()
        return int(total)

    def _row_to_record(self, row: sqlite3.Row) -> UMPRecord:
        return UMPRecord(
            txid=row["txid"],
            output_index=row["output_index"],
            presentation_hash=row["presentation_hash"],
            recovery_hash=row["recovery_hash"],
            sequence=row["seq"],
        )


__all__ = [
    "RecordFilter",
    "SQLiteUMPRecordStore",
    "StorageError",
    "UMPRecord",
    "UMPRecordStore",
    "UTXOReference",
]
