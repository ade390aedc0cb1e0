"""SQLite-backed record storage for tokens and calendar selections."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from crm_calendar.clients.record_store import PersistenceError

_PREFIX_CLAUSE = "pk = ? AND sk LIKE ? ESCAPE '\\'"


def _prefix_pattern(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SQLiteStore:
    """
    Key-value records in one table keyed by ``(pk, sk)``.

    Each item is stored whole as JSON; ``pk`` and ``sk`` are copied into
    their own columns for lookups. Insertion order is kept so prefix
    listings come back in the order records were first written.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS kv_records (
                pk TEXT NOT NULL,
                sk TEXT NOT NULL,
                data TEXT NOT NULL,
                PRIMARY KEY (pk, sk)
            )
            """
        )

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _execute(
        self, sql: str, params: Sequence[Any] = ()
    ) -> Tuple[List[sqlite3.Row], int]:
        """Run one statement in its own transaction; returns (rows, rowcount)."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(sql, params)
                return cursor.fetchall(), cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc

    def put_item(self, item: Dict[str, Any]) -> None:
        pk = item.get("pk")
        sk = item.get("sk")
        if not pk or not sk:
            raise ValueError("Item must include 'pk' and 'sk' keys")

        # Upsert updates in place, so the rowid and listing order survive.
        self._execute(
            """
            INSERT INTO kv_records (pk, sk, data)
            VALUES (?, ?, ?)
            ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
            """,
            (pk, sk, json.dumps(item)),
        )

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        rows, _ = self._execute(
            "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
            (partition_key, sort_key),
        )
        return json.loads(rows[0]["data"]) if rows else None

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        self._execute(
            "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
            (partition_key, sort_key),
        )

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        rows, _ = self._execute(
            f"SELECT data FROM kv_records WHERE {_PREFIX_CLAUSE} ORDER BY rowid",
            (partition_key, _prefix_pattern(sort_key_prefix)),
        )
        return [json.loads(row["data"]) for row in rows]

    def delete_items_with_prefix(self, *, partition_key: str, sort_key_prefix: str) -> int:
        _, removed = self._execute(
            f"DELETE FROM kv_records WHERE {_PREFIX_CLAUSE}",
            (partition_key, _prefix_pattern(sort_key_prefix)),
        )
        return removed


__all__ = ["SQLiteStore"]
