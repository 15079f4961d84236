"""SQLite-backed durable storage for the single ShipBob credential record."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from app.models.credentials import CredentialRecord

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.services.credential_cipher import CredentialCipher

_RECORD_KEY = "shipbob"


class CredentialStore:
    """Persist one encrypted credential row.

    Each save is a single upsert inside one transaction, so a failed write
    leaves the previous record authoritative.
    """

    def __init__(self, db_path: str, *, cipher: "CredentialCipher") -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = cipher
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS credentials (
                    name TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def load(self) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM credentials WHERE name = ?", (_RECORD_KEY,)
            ).fetchone()
        if not row:
            return None
        return self._cipher.open(json.loads(row["data"]))

    def save(self, record: CredentialRecord) -> None:
        data_json = json.dumps(self._cipher.seal(record))
        updated_at = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO credentials (name, data, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
                """,
                (_RECORD_KEY, data_json, updated_at),
            )

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM credentials WHERE name = ?", (_RECORD_KEY,))


__all__ = ["CredentialStore"]
