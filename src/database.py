"""SQLite storage for family members, with a JSON backup for offline use."""

import json
import logging
from pathlib import Path
import sqlite3

from models import Person
from parsing import SnapshotError, dump_snapshot, load_snapshot

logger = logging.getLogger("clanscroll.database")


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (or create) the database and make sure the members table exists."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS members (
            id TEXT PRIMARY KEY,
            json_content TEXT,
            is_deleted INTEGER DEFAULT 0
        )
    """)

    conn.commit()
    return conn


def load_members(conn: sqlite3.Connection) -> list[Person]:
    """
    All members, soft-deleted ones included, in insertion order.

    Raises SnapshotError when a stored row does not hold a valid record.
    """
    cursor = conn.cursor()
    cursor.execute("SELECT id, json_content FROM members ORDER BY rowid")

    members = []
    for member_id, content in cursor.fetchall():
        try:
            record = json.loads(content)
            if not isinstance(record, dict):
                raise ValueError("not a JSON object")
            members.append(Person.from_record(record))
        except (TypeError, ValueError) as e:
            raise SnapshotError(f"Corrupt member row {member_id}: {e}") from e
    return members


UPSERT = """
    INSERT INTO members (id, json_content, is_deleted)
    VALUES (?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
    json_content = excluded.json_content,
    is_deleted = excluded.is_deleted
"""


def _row(person: Person) -> tuple[str, str, int]:
    return (person.id, json.dumps(person.to_record(), ensure_ascii=False), 1 if person.is_deleted else 0)


def save_member(conn: sqlite3.Connection, person: Person) -> None:
    """Insert or fully replace one member."""
    conn.execute(UPSERT, _row(person))
    conn.commit()


def store_members(conn: sqlite3.Connection, members: list[Person]) -> None:
    """Insert or replace many members in one transaction."""
    conn.executemany(UPSERT, [_row(m) for m in members])
    conn.commit()


def delete_member(conn: sqlite3.Connection, member_id: str) -> int:
    """Hard-delete a member row. Returns the number of rows removed."""
    cursor = conn.execute("DELETE FROM members WHERE id = ?", (member_id,))
    conn.commit()
    return cursor.rowcount


class MemberRepository:
    """
    Database-backed member storage that keeps working without the database.

    Reads fall back to the JSON backup when SQLite fails or holds a corrupt
    row; failed writes are logged and reported as False so the in-memory state
    stays authoritative.
    """

    def __init__(self, db_path: Path | str, backup_path: Path | str | None = None):
        self.db_path = db_path
        self.backup_path = Path(backup_path) if backup_path else None
        self._conn: sqlite3.Connection | None = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = create_database(self.db_path)
        return self._conn

    def load(self) -> list[Person]:
        try:
            members = load_members(self._connection())
            self.write_backup(members)
            return members
        except sqlite3.Error as e:
            logger.warning(f"Database unavailable ({e}), loading local backup")
        except SnapshotError as e:
            logger.error(f"Database content unreadable ({e}), loading local backup")

        if self.backup_path is None or not self.backup_path.exists():
            return []
        try:
            return load_snapshot(self.backup_path)
        except SnapshotError as e:
            logger.error(f"Local backup unreadable: {e}")
            return []

    def save(self, person: Person) -> bool:
        try:
            save_member(self._connection(), person)
            return True
        except sqlite3.Error as e:
            logger.warning(f"Save of {person.id} failed ({e}), keeping it in the local backup only")
            return False

    def delete(self, member_id: str) -> bool:
        try:
            return delete_member(self._connection(), member_id) > 0
        except sqlite3.Error as e:
            logger.error(f"Delete of {member_id} failed: {e}")
            return False

    def write_backup(self, members: list[Person]) -> None:
        if self.backup_path is None or not members:
            return
        try:
            dump_snapshot(members, self.backup_path)
        except OSError as e:
            logger.warning(f"Could not write local backup {self.backup_path}: {e}")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
