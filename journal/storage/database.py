"""SQLite store for trading-journal setups.

Setups live in a per-user collection: every call takes the user id and only
ever touches that user's rows. Records are stored as JSON documents in the
same camelCase layout as backup files.

Every sqlite3 failure is raised as StorageError so callers can show it and
retry; nothing is swallowed here.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from journal.errors import InvalidTransitionError, StorageError, SetupNotFoundError
from journal.lifecycle import close_setup
from journal.models import Setup, ExecutedSetup, setup_from_dict, setup_to_dict
from journal.storage.models import CREATE_TABLES

logger = logging.getLogger(__name__)

# Keys the store owns; partial updates can't overwrite them
_PROTECTED_KEYS = ("id", "createdAt")


class SetupStore:
    """Synchronous SQLite setup store (standard sqlite3 module).

    One trader's journal is tens to a few thousand rows, so plain sqlite3
    with a commit per write is plenty.
    """

    def __init__(self, db_path: str = "data/journal.db"):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Open database connection and create tables if needed."""
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(CREATE_TABLES)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            self._conn = None
            raise StorageError(f"Could not open database {self.db_path}: {e}") from e
        logger.info(f"Database connected: {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SetupStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Setups ---

    def create(self, user_id: str, setup: Setup) -> str:
        """Save a new setup for a user. Returns the assigned id.

        A setup restored from a backup keeps its createdAt so the
        freshest-first order survives the round trip.
        """
        created_at = setup.created_at or datetime.now(timezone.utc).isoformat()
        document = setup_to_dict(setup)
        document["id"] = None
        document["createdAt"] = created_at

        cursor = self._execute(
            """INSERT INTO setups (user_id, status, pair, date, document, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                user_id, setup.status, setup.pair, setup.date,
                json.dumps(document), created_at,
            ),
        )
        setup_id = str(cursor.lastrowid)
        logger.info(f"Created setup {setup_id} ({setup.pair} {setup.direction}, {setup.status})")
        return setup_id

    def fetch_all(self, user_id: str) -> list:
        """All of a user's setups, freshest first by creation time."""
        rows = self._query(
            """SELECT id, document FROM setups WHERE user_id=?
               ORDER BY created_at DESC, id DESC""",
            (user_id,),
        )
        return [self._row_to_setup(r) for r in rows]

    def get(self, user_id: str, setup_id: str) -> Setup:
        """Fetch one setup. Raises SetupNotFoundError if it doesn't exist."""
        row = self._fetch_row(user_id, setup_id)
        if row is None:
            raise SetupNotFoundError(user_id, setup_id)
        return self._row_to_setup(row)

    def update(self, user_id: str, setup_id: str, changes: dict) -> bool:
        """Apply a partial update (camelCase document keys).

        The merged record is validated through the setup model before it is
        written, so a change can't produce an illegal record.

        Returns:
            True if the setup was updated, False if it doesn't exist

        Raises:
            InvalidTransitionError: if the change sets a different status.
                Closing a running setup is done with close_position.
        """
        row = self._fetch_row(user_id, setup_id)
        if row is None:
            return False

        document = json.loads(row["document"])
        target = changes.get("status", document["status"])
        if target != document["status"]:
            # Running -> Executed goes through close_position; the rest are terminal
            raise InvalidTransitionError(document["status"], target)
        document.update({k: v for k, v in changes.items() if k not in _PROTECTED_KEYS})
        document["id"] = str(row["id"])
        setup = setup_from_dict(document)
        self._write(row["id"], setup)
        logger.info(f"Updated setup {setup_id}: {', '.join(sorted(changes))}")
        return True

    def delete(self, user_id: str, setup_id: str) -> bool:
        """Delete a setup. Returns False if it doesn't exist."""
        row_id = _row_id(setup_id)
        if row_id is None:
            return False
        cursor = self._execute(
            "DELETE FROM setups WHERE id=? AND user_id=?",
            (row_id, user_id),
        )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted setup {setup_id}")
        return deleted

    def close_position(self, user_id: str, setup_id: str, outcome: str,
                       pnl: Optional[float] = None) -> ExecutedSetup:
        """Close a running setup and persist the Executed record."""
        setup = self.get(user_id, setup_id)
        closed = close_setup(setup, outcome, pnl)
        self._write(int(setup_id), closed)
        logger.info(f"Closed setup {setup_id} with {outcome}: {closed.pnl:+.2f}")
        return closed

    def count(self, user_id: str) -> int:
        rows = self._query("SELECT COUNT(*) AS n FROM setups WHERE user_id=?", (user_id,))
        return rows[0]["n"]

    # --- Internals ---

    def _write(self, row_id: int, setup: Setup) -> None:
        document = setup_to_dict(setup)
        self._execute(
            """UPDATE setups SET status=?, pair=?, date=?, document=?, updated_at=?
               WHERE id=?""",
            (
                setup.status, setup.pair, setup.date, json.dumps(document),
                datetime.now(timezone.utc).isoformat(), row_id,
            ),
        )

    def _fetch_row(self, user_id: str, setup_id: str) -> Optional[sqlite3.Row]:
        row_id = _row_id(setup_id)
        if row_id is None:
            return None
        rows = self._query(
            "SELECT id, document FROM setups WHERE id=? AND user_id=?",
            (row_id, user_id),
        )
        return rows[0] if rows else None

    def _row_to_setup(self, row: sqlite3.Row) -> Setup:
        document = json.loads(row["document"])
        document["id"] = str(row["id"])
        return setup_from_dict(document)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Database not connected. Call connect() first.")
        return self._conn

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Database write failed: {e}") from e

    def _query(self, sql: str, params: tuple = ()) -> list:
        conn = self._connection()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Database read failed: {e}") from e


def _row_id(setup_id) -> Optional[int]:
    try:
        return int(setup_id)
    except (TypeError, ValueError):
        return None
