"""
Key-value store abstraction with in-memory, SQL and Redis implementations.

Values are JSON-compatible Python objects (dicts, lists, strings). The API
never relies on query capability beyond exact-key access and prefix scans.
"""

from __future__ import annotations

import copy
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Protocol

import redis
from sqlalchemy import JSON, Column, String, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class KvStore(Protocol):
    """Interface for the key-value store backing every record and index."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def mget(self, keys: Iterable[str]) -> list[Optional[Any]]:
        ...

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        ...


@dataclass
class InMemoryKvStore:
    """Dictionary-backed store for development and tests."""

    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self.data.get(key)
        # Hand out copies so callers mutating a record don't write through.
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self.data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self.data.pop(key, None)

    def mget(self, keys: Iterable[str]) -> list[Optional[Any]]:
        return [self.get(key) for key in keys]

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        with self._lock:
            matches = {k: v for k, v in self.data.items() if k.startswith(prefix)}
        return copy.deepcopy(matches)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.data.clear()


Base = declarative_base()


class KvRow(Base):
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False)


class SqlKvStore:
    """
    SQLAlchemy-backed implementation storing one row per key. Accepts any
    SQLAlchemy URL (Postgres in production, SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlKvStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[Any]:
        with self.Session() as session:
            row = session.get(KvRow, key)
            return row.value if row else None

    def set(self, key: str, value: Any) -> None:
        with self.Session() as session:
            existing = session.get(KvRow, key)
            if existing:
                existing.value = value
            else:
                session.add(KvRow(key=key, value=value))
            session.commit()

    def delete(self, key: str) -> None:
        with self.Session() as session:
            session.execute(delete(KvRow).where(KvRow.key == key))
            session.commit()

    def mget(self, keys: Iterable[str]) -> list[Optional[Any]]:
        keys = list(keys)
        if not keys:
            return []
        with self.Session() as session:
            rows = session.execute(select(KvRow).where(KvRow.key.in_(keys))).scalars()
            found = {row.key: row.value for row in rows}
        return [found.get(key) for key in keys]

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        escaped = (
            prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        with self.Session() as session:
            rows = session.execute(
                select(KvRow)
                .where(KvRow.key.like(f"{escaped}%", escape="\\"))
                .order_by(KvRow.key.asc())
            ).scalars()
            return {row.key: row.value for row in rows}


@dataclass
class RedisKvStore:
    """Redis-backed store keeping each value as a JSON string."""

    url: str
    key_prefix: str = "huddle:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def _decode(raw: Optional[bytes]) -> Optional[Any]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def get(self, key: str) -> Optional[Any]:
        return self._decode(self.client.get(self._key(key)))

    def set(self, key: str, value: Any) -> None:
        self.client.set(self._key(key), json.dumps(value, default=str))

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    def mget(self, keys: Iterable[str]) -> list[Optional[Any]]:
        keys = list(keys)
        if not keys:
            return []
        raw_values = self.client.mget([self._key(key) for key in keys])
        return [self._decode(raw) for raw in raw_values]

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        full_keys = list(self.client.scan_iter(match=f"{self._key(prefix)}*"))
        if not full_keys:
            return {}
        raw_values = self.client.mget(full_keys)
        results: dict[str, Any] = {}
        strip = len(self.key_prefix)
        for full_key, raw in zip(full_keys, raw_values):
            if raw is None:
                continue
            if isinstance(full_key, bytes):
                full_key = full_key.decode("utf-8")
            results[full_key[strip:]] = self._decode(raw)
        return results
