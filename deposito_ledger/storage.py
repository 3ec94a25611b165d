"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing)
and SQLite (persistence). All monetary values stored as Decimal strings.

Both backends support an atomic() scope: every write issued inside the scope
becomes visible together at commit, or not at all.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from decimal import Decimal
from datetime import datetime, date, timezone
from enum import Enum
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager


def _to_json_value(value: Any) -> Any:
    """Convert a Python value to its JSON storage form"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: int
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        return {key: _to_json_value(value) for key, value in result.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        data = dict(data)
        if 'created_at' in data and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if 'updated_at' in data and isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])

        return cls(**data)


def utcnow() -> datetime:
    """Current time in UTC"""
    return datetime.now(timezone.utc)


def _matches(record: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, value in filters.items():
        if key not in record or record[key] != value:
            return False
    return True


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def next_sequence(self, name: str) -> int:
        """Return the next value of a strictly increasing named sequence"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


_DELETED = object()


class InMemoryStorage(StorageInterface):
    """
    In-memory storage implementation for testing

    Writes issued inside atomic() are buffered per thread and applied to the
    shared tables in one step at commit, so concurrent scopes on different
    threads never see each other's partial work. A failed nested scope
    restores the buffer to where that scope began.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequences: Dict[str, int] = {}
        self._lock = threading.RLock()
        self._local = threading.local()

    @staticmethod
    def _copy(data: Any) -> Any:
        # Deep copy to prevent external mutation
        return json.loads(json.dumps(data, default=str))

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists"""
        if table not in self._data:
            self._data[table] = {}

    def _pending(self) -> Optional[Dict[str, Dict[str, Any]]]:
        return getattr(self._local, 'pending', None)

    def _view(self, table: str) -> Dict[str, Dict[str, Any]]:
        """Committed table merged with this thread's pending writes"""
        self._ensure_table(table)
        pending = self._pending()
        if not pending or table not in pending:
            return self._data[table]
        merged = dict(self._data[table])
        for key, value in pending[table].items():
            if value is _DELETED:
                merged.pop(key, None)
            else:
                merged[key] = value
        return merged

    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        key = str(record_id)
        copied = self._copy(data)
        pending = self._pending()
        if pending is not None:
            pending.setdefault(table, {})[key] = copied
            return
        with self._lock:
            self._ensure_table(table)
            self._data[table][key] = copied

    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            record = self._view(table).get(str(record_id))
            if record:
                return self._copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            return [self._copy(record) for record in self._view(table).values()]

    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        """Delete a record from memory"""
        key = str(record_id)
        with self._lock:
            existed = key in self._view(table)
        if not existed:
            return False
        pending = self._pending()
        if pending is not None:
            pending.setdefault(table, {})[key] = _DELETED
            return True
        with self._lock:
            del self._data[table][key]
        return True

    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        """Check if a record exists"""
        with self._lock:
            return str(record_id) in self._view(table)

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        with self._lock:
            return [
                self._copy(record) for record in self._view(table).values()
                if _matches(record, filters)
            ]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            return len(self._view(table))

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._data[table] = {}

    def next_sequence(self, name: str) -> int:
        """Sequences advance immediately and are never rolled back"""
        with self._lock:
            value = self._sequences.get(name, 0) + 1
            self._sequences[name] = value
            return value

    def begin_transaction(self) -> None:
        """Start buffering writes; a nested call marks a savepoint"""
        pending = self._pending()
        if pending is None:
            self._local.pending = {}
            self._local.savepoints = []
            return
        self._local.savepoints.append({table: dict(writes) for table, writes in pending.items()})

    def commit(self) -> None:
        """Apply buffered writes once the outermost scope commits"""
        pending = self._pending()
        if pending is None:
            return
        if self._local.savepoints:
            self._local.savepoints.pop()
            return
        with self._lock:
            for table, writes in pending.items():
                self._ensure_table(table)
                for key, value in writes.items():
                    if value is _DELETED:
                        self._data[table].pop(key, None)
                    else:
                        self._data[table][key] = value
        self._local.pending = None

    def rollback(self) -> None:
        """Discard the writes of the innermost open scope"""
        if self._pending() is None:
            return
        if self._local.savepoints:
            self._local.pending = self._local.savepoints.pop()
            return
        self._local.pending = None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def get_all_data(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Get all committed data for debugging/inspection"""
        with self._lock:
            return self._copy(self._data)


class SQLiteStorage(StorageInterface):
    """
    SQLite storage implementation for persistence

    One connection is shared between threads. atomic() holds the connection
    lock for the whole scope, so a scope's writes are never interleaved with
    another thread's commit.

    The price is that atomic scopes on this backend run one at a time, even
    for different accounts: per-account locks still order work on the same
    account, but writes to separate accounts do not overlap here. Nested
    scopes are savepoints and roll back on their own.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._in_transaction = False
        self._savepoint_depth = 0
        self._known_tables = set()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

        with self._lock:
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS _sequences (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
            """)
            self._connection.commit()

    def _maybe_commit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._known_tables:
            return
        with self._lock:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{table}_created_at
                ON {table}(created_at)
            """)
            self._maybe_commit()
            self._known_tables.add(table)

    def save(self, table: str, record_id: Union[int, str], data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock:
            self._ensure_table(table)

            key = str(record_id)
            now = utcnow().isoformat()
            data_json = json.dumps(data, default=str)

            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (key, data_json, key, now, now))

            self._maybe_commit()

    def load(self, table: str, record_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (str(record_id),))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: Union[int, str]) -> bool:
        """Delete a record from SQLite"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (str(record_id),))
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: Union[int, str]) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (str(record_id),))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [record for record in self.load_all(table) if _matches(record, filters)]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            self._maybe_commit()

    def next_sequence(self, name: str) -> int:
        """Advance a named sequence; rolled back together with its scope"""
        with self._lock:
            cursor = self._connection.execute(
                "SELECT value FROM _sequences WHERE name = ?", (name,)
            )
            row = cursor.fetchone()
            value = (row['value'] if row else 0) + 1
            self._connection.execute(
                "INSERT OR REPLACE INTO _sequences (name, value) VALUES (?, ?)",
                (name, value)
            )
            self._maybe_commit()
            return value

    @contextmanager
    def atomic(self):
        """Hold the connection for the whole scope; nested scopes run as savepoints"""
        with self._lock:
            if self._in_transaction:
                with self._savepoint():
                    yield
                return
            self.begin_transaction()
            try:
                yield
                self.commit()
            except Exception:
                self.rollback()
                raise

    @contextmanager
    def _savepoint(self):
        self._savepoint_depth += 1
        name = f"scope_{self._savepoint_depth}"
        self._connection.execute(f"SAVEPOINT {name}")
        try:
            yield
            self._connection.execute(f"RELEASE SAVEPOINT {name}")
        except Exception:
            self._connection.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self._connection.execute(f"RELEASE SAVEPOINT {name}")
            self._known_tables.clear()
            raise
        finally:
            self._savepoint_depth -= 1

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        with self._lock:
            if not self._in_transaction:
                # Explicit BEGIN so a nested SAVEPOINT never opens the outer transaction itself
                if not self._connection.in_transaction:
                    self._connection.execute("BEGIN")
                self._in_transaction = True

    def commit(self) -> None:
        """Commit current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        """Rollback current transaction"""
        with self._lock:
            if self._in_transaction:
                self._connection.rollback()
                self._in_transaction = False
                # Tables created inside the rolled back scope are gone too
                self._known_tables.clear()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a URL

    Supported forms: "memory://", "sqlite:///:memory:", "sqlite:///path/to.db"
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):] or ":memory:")
    raise ValueError(f"Unsupported database_url: {database_url}")
