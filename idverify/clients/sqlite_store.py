"""SQLite-backed append-only log of verification records."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from idverify.models.verification import VerificationRecord

_SELECT_COLUMNS = (
    "id, phone_number, reference_id, transaction_id, api_response, "
    "status, error_message, timestamp"
)
_LATEST_FIRST = "ORDER BY timestamp DESC, id DESC"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationRecordStore:
    """Keyed record log queried by reference id and transaction id.

    Rows are only ever inserted. The store stamps each row itself and keeps the
    stamps strictly increasing, so "most recent" is never ambiguous even when
    two writers append within the same clock tick.
    """

    def __init__(
        self, db_path: str, *, clock: Callable[[], datetime] | None = None
    ) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or _utcnow
        self._write_lock = threading.Lock()
        self._ensure_schema()
        self._last_timestamp = self._load_last_timestamp()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS verification_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    phone_number TEXT NOT NULL DEFAULT '',
                    reference_id TEXT NOT NULL DEFAULT '',
                    transaction_id TEXT NOT NULL,
                    api_response TEXT,
                    status TEXT NOT NULL,
                    error_message TEXT,
                    timestamp TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_records_txn_status
                ON verification_records (transaction_id, status, timestamp)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_records_reference
                ON verification_records (reference_id, timestamp)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_records_txn
                ON verification_records (transaction_id, timestamp)
                """
            )

    def _load_last_timestamp(self) -> Optional[datetime]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT MAX(timestamp) AS latest FROM verification_records"
            ).fetchone()
        if not row or not row["latest"]:
            return None
        return datetime.fromisoformat(row["latest"])

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        now = now.astimezone(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def append(
        self,
        *,
        transaction_id: str,
        status: str,
        phone_number: str = "",
        reference_id: str = "",
        api_response: str | None = None,
        error_message: str | None = None,
    ) -> VerificationRecord:
        """Insert a new row and return it with its assigned id and timestamp."""
        with self._write_lock:
            timestamp = self._next_timestamp()
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO verification_records (
                        phone_number,
                        reference_id,
                        transaction_id,
                        api_response,
                        status,
                        error_message,
                        timestamp
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        phone_number or "",
                        reference_id or "",
                        transaction_id,
                        api_response,
                        status,
                        error_message,
                        timestamp.isoformat(timespec="microseconds"),
                    ),
                )
                record_id = cursor.lastrowid

        return VerificationRecord(
            id=record_id,
            phone_number=phone_number or "",
            reference_id=reference_id or "",
            transaction_id=transaction_id,
            api_response=api_response,
            status=status,
            error_message=error_message,
            timestamp=timestamp,
        )

    def get(self, record_id: int) -> Optional[VerificationRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM verification_records WHERE id = ?",
                (record_id,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def list_all(self) -> list[VerificationRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM verification_records ORDER BY id"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def latest_by_reference(self, reference_id: str) -> Optional[VerificationRecord]:
        return self._latest("reference_id = ?", (reference_id,))

    def latest_by_transaction(
        self, transaction_id: str
    ) -> Optional[VerificationRecord]:
        return self._latest("transaction_id = ?", (transaction_id,))

    def latest_by_transaction_and_status(
        self, transaction_id: str, status: str
    ) -> Optional[VerificationRecord]:
        return self._latest(
            "transaction_id = ? AND status = ?", (transaction_id, status)
        )

    def _latest(
        self, where: str, params: tuple[str, ...]
    ) -> Optional[VerificationRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM verification_records "
                f"WHERE {where} {_LATEST_FIRST} LIMIT 1",
                params,
            ).fetchone()
        return self._row_to_record(row) if row else None

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> VerificationRecord:
        return VerificationRecord(
            id=row["id"],
            phone_number=row["phone_number"],
            reference_id=row["reference_id"],
            transaction_id=row["transaction_id"],
            api_response=row["api_response"],
            status=row["status"],
            error_message=row["error_message"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )


__all__ = ["VerificationRecordStore"]
