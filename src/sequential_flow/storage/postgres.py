"""PostgreSQL-backed storage with automatic table migration.

Terms:
- Upsert: INSERT ... ON CONFLICT DO UPDATE, so saving an id twice overwrites.
- JSONB: the whole task record lives in one JSON column; id and expiry are
  mirrored into their own columns for lookups and the reclamation sweep.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import UTC, datetime
from typing import Any

from sequential_flow.models import Task

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PostgresTaskStorage:
    """Persist paused tasks in PostgreSQL.

    Postgres has no native row expiry: `load` ignores rows past `expires_at`
    and `purge_expired` deletes them. Scheduling the sweep is up to the caller.
    """

    def __init__(self, database_url: str, *, table_name: str = "sequential_flow_tasks") -> None:
        if not database_url:
            raise ValueError("database_url is required")
        if not _TABLE_NAME_RE.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self.database_url = database_url
        self.table_name = table_name
        # Lock guards DB operations done through this storage instance.
        self._lock = threading.Lock()
        self._psycopg, self._dict_row, self._json_wrapper = self._load_psycopg()

    def migrate(self) -> None:
        """Create the task table and expiry index if they do not already exist."""
        with self._lock, self._connect() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    id TEXT PRIMARY KEY,
                    data JSONB NOT NULL,
                    created_at TIMESTAMPTZ,
                    expires_at TIMESTAMPTZ
                )
                """)
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table_name}_expires_at
                ON {self.table_name}(expires_at)
                """)
            conn.commit()

    def save(self, task: Task) -> None:
        record = task.to_record()
        with self._lock, self._connect() as conn:
            # created_at is written on first insert only and survives later overwrites.
            conn.execute(
                f"""
                INSERT INTO {self.table_name} (id, data, created_at, expires_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE
                SET data = EXCLUDED.data,
                    expires_at = EXCLUDED.expires_at
                """,
                (
                    task.id,
                    self._json_wrapper(record),
                    task.created_at or datetime.now(tz=UTC),
                    task.expires_at,
                ),
            )
            conn.commit()
        logger.debug("Saved task id=%s status=%s", task.id, task.status)

    def load(self, task_id: str) -> Task | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT data
                FROM {self.table_name}
                WHERE id = %s
                  AND (expires_at IS NULL OR expires_at > %s)
                """,
                (task_id, datetime.now(tz=UTC)),
            ).fetchone()
        if row is None:
            return None
        return Task.from_record(self._parse_json_object(row["data"]))

    def delete(self, task_id: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(f"DELETE FROM {self.table_name} WHERE id = %s", (task_id,))
            conn.commit()

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete rows whose expires_at has passed; return how many were removed."""
        moment = now or datetime.now(tz=UTC)
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {self.table_name} WHERE expires_at IS NOT NULL AND expires_at <= %s",
                (moment,),
            )
            conn.commit()
        removed = max(int(getattr(cursor, "rowcount", 0) or 0), 0)
        if removed:
            logger.info("Purged %s expired task(s) from %s", removed, self.table_name)
        return removed

    def _connect(self) -> Any:
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
            from psycopg.types.json import Json
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL storage requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row, Json

    @staticmethod
    def _parse_json_object(raw: Any) -> dict[str, Any]:
        if isinstance(raw, (str, bytes)):
            parsed = json.loads(raw)
        else:
            parsed = raw
        if not isinstance(parsed, dict):
            raise TypeError(f"Unsupported task payload: {type(parsed)!r}")
        return parsed
