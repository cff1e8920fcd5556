"""
Snapshot store for local soundpacks (soundpacks.db).

Each successful import, duplication or metadata edit appends an immutable
snapshot row; the newest row of a uuid is the soundpack's current state.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .models import LocalSoundpack

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    """Persistence sink the packager writes finished soundpacks into."""

    def add_soundpack_snapshot(self, soundpack: LocalSoundpack) -> None:
        ...


class SoundpackDB:
    """SQLite database manager for soundpack snapshots."""

    def __init__(self, db_path: str = "soundpacks.db"):
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Establish database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        self.create_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def create_schema(self) -> None:
        """Create the snapshot tables."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                uuid TEXT NOT NULL,
                name TEXT,
                data_json TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_snapshots_uuid
            ON snapshots(uuid, id)
        """)
        self.conn.commit()

    def add_soundpack_snapshot(self, soundpack: LocalSoundpack) -> int:
        """Append a snapshot of `soundpack`. Returns the snapshot row id."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO snapshots (uuid, name, data_json) VALUES (?, ?, ?)",
            (soundpack.uuid, soundpack.meta.name, json.dumps(soundpack.to_snapshot())),
        )
        self.conn.commit()
        logger.info(f"Stored snapshot of soundpack {soundpack.uuid}")
        return cursor.lastrowid

    def get_soundpack(self, uuid: str) -> Optional[LocalSoundpack]:
        """Latest snapshot of a soundpack, or None."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT data_json FROM snapshots WHERE uuid = ? ORDER BY id DESC LIMIT 1",
            (uuid,),
        )
        row = cursor.fetchone()
        if row:
            return LocalSoundpack.from_snapshot(json.loads(row["data_json"]))
        return None

    def list_soundpacks(self) -> List[LocalSoundpack]:
        """Latest snapshot of every soundpack, oldest soundpack first."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT s.data_json
            FROM snapshots s
            JOIN (
                SELECT uuid, MAX(id) AS latest, MIN(id) AS first
                FROM snapshots
                GROUP BY uuid
            ) g ON s.id = g.latest
            ORDER BY g.first
        """)
        return [LocalSoundpack.from_snapshot(json.loads(row["data_json"])) for row in cursor.fetchall()]

    def snapshot_count(self, uuid: Optional[str] = None) -> int:
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        if uuid:
            cursor.execute("SELECT COUNT(*) as count FROM snapshots WHERE uuid = ?", (uuid,))
        else:
            cursor.execute("SELECT COUNT(*) as count FROM snapshots")
        return cursor.fetchone()["count"]

    def delete_soundpack(self, uuid: str) -> int:
        """Forget every snapshot of a soundpack. Files on disk are left alone."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM snapshots WHERE uuid = ?", (uuid,))
        self.conn.commit()
        return cursor.rowcount

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics."""
        if not self.conn:
            raise RuntimeError("Database not connected")

        cursor = self.conn.cursor()

        stats = {}

        cursor.execute("SELECT COUNT(*) as count FROM snapshots")
        stats['total_snapshots'] = cursor.fetchone()['count']

        cursor.execute("SELECT COUNT(DISTINCT uuid) as count FROM snapshots")
        stats['total_soundpacks'] = cursor.fetchone()['count']

        cursor.execute("SELECT MAX(created_at) as latest FROM snapshots")
        stats['latest_snapshot_at'] = cursor.fetchone()['latest']

        return stats
