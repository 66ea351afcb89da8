"""
Persistence backends for preference profiles and the feedback log.

The learning engine only sees plain records (dictionaries with string keys),
so the storage format can be swapped without touching the algorithm.
"""

import json
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any

from ..constants import DATA_DIR
from ..exceptions import ProfileStoreError
from ..utils import logger, ensure_directory


ProfileRecord = Dict[str, Any]


class ProfileStore(ABC):
    """Named-record save/load seam for preference profiles."""

    @abstractmethod
    def load_profile(self, name: str) -> Optional[ProfileRecord]:
        """Return the stored record for ``name`` or None if absent."""

    @abstractmethod
    def save_profile(self, name: str, record: ProfileRecord):
        """Insert or replace the record for ``name``."""

    @abstractmethod
    def list_profiles(self) -> List[str]:
        """Names of all stored profiles."""

    @abstractmethod
    def delete_profile(self, name: str):
        """Remove a stored profile if present."""

    @abstractmethod
    def append_feedback(self, profile: str, entry: Dict[str, Any]):
        """Append one feedback record to the log of ``profile``."""

    @abstractmethod
    def load_feedback(self, profile: str) -> List[Dict[str, Any]]:
        """All feedback records for ``profile`` in insertion order."""

    @abstractmethod
    def clear_feedback(self, profile: Optional[str] = None):
        """Delete feedback for one profile, or for all when ``profile`` is None."""


class SQLiteProfileStore(ProfileStore):
    """Profile store backed by a local SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        ensure_directory(self.db_path.parent)
        try:
            self._init_db()
        except sqlite3.Error as e:
            # Every later operation will fail and be reported as ProfileStoreError
            logger.error(f"Could not initialize profile database {self.db_path}: {e}")

    def _init_db(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    name TEXT PRIMARY KEY,
                    record TEXT NOT NULL,
                    last_updated TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS feedback (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    profile TEXT NOT NULL,
                    suggestion_id TEXT,
                    suggestion_type TEXT NOT NULL,
                    priority TEXT NOT NULL,
                    applied INTEGER NOT NULL,
                    timestamp REAL NOT NULL,
                    original_confidence REAL NOT NULL,
                    reason TEXT
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_feedback_profile ON feedback(profile)")

    def _execute(self, query: str, params: tuple = ()) -> List[tuple]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise ProfileStoreError(f"Profile database error in {self.db_path}: {e}") from e

    def load_profile(self, name: str) -> Optional[ProfileRecord]:
        rows = self._execute("SELECT record FROM profiles WHERE name = ?", (name,))
        if not rows:
            return None
        try:
            return json.loads(rows[0][0])
        except (TypeError, json.JSONDecodeError) as e:
            raise ProfileStoreError(f"Stored profile '{name}' is not valid JSON: {e}") from e

    def save_profile(self, name: str, record: ProfileRecord):
        self._execute(
            "INSERT OR REPLACE INTO profiles VALUES (?, ?, ?)",
            (name, json.dumps(record, sort_keys=True), datetime.now().isoformat()),
        )

    def list_profiles(self) -> List[str]:
        return [row[0] for row in self._execute("SELECT name FROM profiles ORDER BY name")]

    def delete_profile(self, name: str):
        self._execute("DELETE FROM profiles WHERE name = ?", (name,))

    def append_feedback(self, profile: str, entry: Dict[str, Any]):
        self._execute(
            """
            INSERT INTO feedback (
                profile, suggestion_id, suggestion_type, priority,
                applied, timestamp, original_confidence, reason
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                profile,
                entry.get('suggestion_id'),
                entry['suggestion_type'],
                entry['priority'],
                1 if entry['applied'] else 0,
                entry['timestamp'],
                entry['original_confidence'],
                entry.get('reason'),
            ),
        )

    def load_feedback(self, profile: str) -> List[Dict[str, Any]]:
        rows = self._execute(
            """
            SELECT suggestion_id, suggestion_type, priority, applied,
                   timestamp, original_confidence, reason
            FROM feedback WHERE profile = ?
            ORDER BY id
            """,
            (profile,),
        )
        return [
            {
                'suggestion_id': row[0],
                'suggestion_type': row[1],
                'priority': row[2],
                'applied': bool(row[3]),
                'timestamp': row[4],
                'original_confidence': row[5],
                'reason': row[6],
            }
            for row in rows
        ]

    def clear_feedback(self, profile: Optional[str] = None):
        if profile is None:
            self._execute("DELETE FROM feedback")
        else:
            self._execute("DELETE FROM feedback WHERE profile = ?", (profile,))


class JSONProfileStore(ProfileStore):
    """Profile store kept in a single JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)
        ensure_directory(self.path.parent)
        self._lock = threading.Lock()

    def _read(self, recover: bool = False) -> Dict[str, Any]:
        """Load the document.

        With ``recover`` a corrupt document is moved aside to ``*.corrupt``
        and an empty one is returned, so writes can start over.
        """
        empty = {'profiles': {}, 'feedback': {}}
        if not self.path.exists():
            return empty
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except OSError as e:
            raise ProfileStoreError(f"Could not read profile file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            if recover:
                return self._set_aside(empty, e)
            raise ProfileStoreError(f"Could not read profile file {self.path}: {e}") from e

        if not isinstance(data, dict):
            if recover:
                return self._set_aside(empty, "not an object")
            raise ProfileStoreError(f"Profile file {self.path} does not contain an object")
        data.setdefault('profiles', {})
        data.setdefault('feedback', {})
        return data

    def _set_aside(self, empty: Dict[str, Any], error) -> Dict[str, Any]:
        corrupt_path = self.path.with_suffix(self.path.suffix + '.corrupt')
        try:
            os.replace(self.path, corrupt_path)
        except OSError as e:
            raise ProfileStoreError(f"Could not move corrupt profile file {self.path}: {e}") from e
        logger.warning(f"Profile file {self.path} is corrupt ({error}), moved to {corrupt_path}")
        return empty

    def _write(self, data: Dict[str, Any]):
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise ProfileStoreError(f"Could not write profile file {self.path}: {e}") from e

    def load_profile(self, name: str) -> Optional[ProfileRecord]:
        with self._lock:
            return self._read()['profiles'].get(name)

    def save_profile(self, name: str, record: ProfileRecord):
        with self._lock:
            data = self._read(recover=True)
            data['profiles'][name] = record
            self._write(data)

    def list_profiles(self) -> List[str]:
        with self._lock:
            return sorted(self._read()['profiles'])

    def delete_profile(self, name: str):
        with self._lock:
            data = self._read(recover=True)
            if data['profiles'].pop(name, None) is not None:
                self._write(data)

    def append_feedback(self, profile: str, entry: Dict[str, Any]):
        with self._lock:
            data = self._read(recover=True)
            data['feedback'].setdefault(profile, []).append(entry)
            self._write(data)

    def load_feedback(self, profile: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._read()['feedback'].get(profile, []))

    def clear_feedback(self, profile: Optional[str] = None):
        with self._lock:
            data = self._read(recover=True)
            if profile is None:
                data['feedback'] = {}
            else:
                data['feedback'].pop(profile, None)
            self._write(data)


def create_profile_store(backend: str = "sqlite", path: Optional[Path] = None) -> ProfileStore:
    """Build a profile store for the configured backend."""
    if backend == "json":
        return JSONProfileStore(Path(path) if path else DATA_DIR / "profiles.json")
    if backend == "sqlite":
        return SQLiteProfileStore(Path(path) if path else DATA_DIR / "profiles.db")
    raise ValueError(f"Unknown profile store backend: {backend}")
