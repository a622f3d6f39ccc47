"""
Attempt persistence.

The engine only needs a handful of operations from storage: look up today's
daily snippet, count a user's attempts in a time window, insert an attempt,
and credit XP. Two backends are provided: SQLite for local runs and tests,
PostgreSQL for deployment.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

import psycopg2

from .errors import StorageError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AttemptRecord:
    user_id: str
    snippet_id: Optional[str]
    mode: str
    wpm: float
    accuracy: float
    elapsed_ms: int
    keystrokes: int = 0
    flagged: bool = False
    created_at: datetime = field(default_factory=utc_now)


def _ts(dt: datetime) -> str:
    """Fixed-width UTC text so lexical order matches time order."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


class AttemptStore(ABC):
    """Storage interface used by the attempt service."""

    @abstractmethod
    def daily_snippet_id(self, day: date) -> Optional[str]:
        """Snippet bound to the daily challenge for a UTC date."""

    @abstractmethod
    def set_daily_challenge(self, day: date, snippet_id: str):
        ...

    @abstractmethod
    def count_attempts(self, user_id: str, mode: str, start: datetime, end: datetime) -> int:
        """Attempts with start <= created_at < end."""

    @abstractmethod
    def insert_attempt(self, record: AttemptRecord) -> int:
        ...

    @abstractmethod
    def award_xp(self, user_id: str, xp: int):
        ...

    @abstractmethod
    def total_xp(self, user_id: str) -> int:
        ...

    def admit_attempt(self, record: AttemptRecord, limit: int, start: datetime, end: datetime) -> Optional[int]:
        """
        Insert the record unless the user already has `limit` attempts of the
        same mode in [start, end). Returns the new id, or None when full.

        This default is a plain check-then-insert; backends override it to
        make the pair atomic.
        """
        if self.count_attempts(record.user_id, record.mode, start, end) >= limit:
            return None
        return self.insert_attempt(record)

    def close(self):
        pass


# =============================================================================
# SQLite
# =============================================================================

SQLITE_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS attempts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        snippet_id TEXT,
        mode TEXT NOT NULL,
        wpm REAL NOT NULL,
        accuracy REAL NOT NULL,
        elapsed_ms INTEGER NOT NULL,
        keystrokes INTEGER NOT NULL DEFAULT 0,
        flagged INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS attempts_user_mode_created
        ON attempts (user_id, mode, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_challenges (
        challenge_date TEXT PRIMARY KEY,
        snippet_id TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        xp INTEGER NOT NULL DEFAULT 0
    )
    """,
)


class SQLiteAttemptStore(AttemptStore):
    def __init__(self, path: str = ":memory:"):
        self.path = path
        # Autocommit mode; transactions are opened explicitly below
        self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._setup()

    def _setup(self):
        with self._transaction():
            for statement in SQLITE_SCHEMA:
                self._conn.execute(statement)

    @contextmanager
    def _transaction(self):
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield self._conn
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    def daily_snippet_id(self, day: date) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT snippet_id FROM daily_challenges WHERE challenge_date = ?",
                (day.isoformat(),),
            ).fetchone()
        return row["snippet_id"] if row else None

    def set_daily_challenge(self, day: date, snippet_id: str):
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO daily_challenges(challenge_date, snippet_id) VALUES (?, ?)
                ON CONFLICT(challenge_date) DO UPDATE SET snippet_id = excluded.snippet_id
                """,
                (day.isoformat(), snippet_id),
            )

    def _count(self, conn, user_id: str, mode: str, start: datetime, end: datetime) -> int:
        row = conn.execute(
            """
            SELECT COUNT(*) AS n FROM attempts
            WHERE user_id = ? AND mode = ? AND created_at >= ? AND created_at < ?
            """,
            (user_id, mode, _ts(start), _ts(end)),
        ).fetchone()
        return int(row["n"])

    def _insert(self, conn, record: AttemptRecord) -> int:
        cur = conn.execute(
            """
            INSERT INTO attempts
                (user_id, snippet_id, mode, wpm, accuracy, elapsed_ms, keystrokes, flagged, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.user_id, record.snippet_id, record.mode, record.wpm, record.accuracy,
                record.elapsed_ms, record.keystrokes, int(record.flagged), _ts(record.created_at),
            ),
        )
        return cur.lastrowid

    def count_attempts(self, user_id: str, mode: str, start: datetime, end: datetime) -> int:
        with self._lock:
            return self._count(self._conn, user_id, mode, start, end)

    def insert_attempt(self, record: AttemptRecord) -> int:
        try:
            with self._transaction() as conn:
                return self._insert(conn, record)
        except sqlite3.Error as e:
            raise StorageError() from e

    def admit_attempt(self, record: AttemptRecord, limit: int, start: datetime, end: datetime) -> Optional[int]:
        # BEGIN IMMEDIATE takes the write lock before counting, so two
        # concurrent admissions cannot both see a free slot
        try:
            with self._transaction() as conn:
                if self._count(conn, record.user_id, record.mode, start, end) >= limit:
                    return None
                return self._insert(conn, record)
        except sqlite3.Error as e:
            raise StorageError() from e

    def award_xp(self, user_id: str, xp: int):
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO profiles(id, xp) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET xp = COALESCE(profiles.xp, 0) + excluded.xp
                """,
                (user_id, xp),
            )

    def total_xp(self, user_id: str) -> int:
        with self._lock:
            row = self._conn.execute("SELECT xp FROM profiles WHERE id = ?", (user_id,)).fetchone()
        return int(row["xp"]) if row and row["xp"] is not None else 0

    def close(self):
        self._conn.close()


# =============================================================================
# PostgreSQL
# =============================================================================

POSTGRES_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS attempts (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        snippet_id TEXT,
        mode TEXT NOT NULL,
        wpm DOUBLE PRECISION NOT NULL,
        accuracy DOUBLE PRECISION NOT NULL,
        elapsed_ms INTEGER NOT NULL,
        keystrokes INTEGER NOT NULL DEFAULT 0,
        flagged BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS attempts_user_mode_created
        ON attempts (user_id, mode, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_challenges (
        challenge_date DATE PRIMARY KEY,
        snippet_id TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        xp INTEGER NOT NULL DEFAULT 0
    )
    """,
)


class PostgresAttemptStore(AttemptStore):
    def __init__(self, db_url: str):
        self.db_url = db_url
        self.conn = None
        self._lock = threading.Lock()
        self.connect()
        self._setup()

    def connect(self):
        if self.conn is None or self.conn.closed:
            self.conn = psycopg2.connect(self.db_url)

    @contextmanager
    def _cursor(self):
        with self._lock:
            self.connect()
            try:
                with self.conn.cursor() as cur:
                    yield cur
                self.conn.commit()
            except Exception:
                self.conn.rollback()
                raise

    def _setup(self):
        with self._cursor() as cur:
            for statement in POSTGRES_SCHEMA:
                cur.execute(statement)

    def daily_snippet_id(self, day: date) -> Optional[str]:
        with self._cursor() as cur:
            cur.execute("SELECT snippet_id FROM daily_challenges WHERE challenge_date = %s", (day,))
            row = cur.fetchone()
        return row[0] if row else None

    def set_daily_challenge(self, day: date, snippet_id: str):
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO daily_challenges(challenge_date, snippet_id) VALUES (%s, %s)
                ON CONFLICT (challenge_date) DO UPDATE SET snippet_id = EXCLUDED.snippet_id
                """,
                (day, snippet_id),
            )

    def _count(self, cur, user_id: str, mode: str, start: datetime, end: datetime) -> int:
        cur.execute(
            """
            SELECT COUNT(*) FROM attempts
            WHERE user_id = %s AND mode = %s AND created_at >= %s AND created_at < %s
            """,
            (user_id, mode, start, end),
        )
        return int(cur.fetchone()[0])

    def _insert(self, cur, record: AttemptRecord) -> int:
        cur.execute(
            """
            INSERT INTO attempts
                (user_id, snippet_id, mode, wpm, accuracy, elapsed_ms, keystrokes, flagged, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                record.user_id, record.snippet_id, record.mode, record.wpm, record.accuracy,
                record.elapsed_ms, record.keystrokes, record.flagged, record.created_at,
            ),
        )
        return cur.fetchone()[0]

    def count_attempts(self, user_id: str, mode: str, start: datetime, end: datetime) -> int:
        with self._cursor() as cur:
            return self._count(cur, user_id, mode, start, end)

    def insert_attempt(self, record: AttemptRecord) -> int:
        try:
            with self._cursor() as cur:
                return self._insert(cur, record)
        except psycopg2.Error as e:
            raise StorageError() from e

    def admit_attempt(self, record: AttemptRecord, limit: int, start: datetime, end: datetime) -> Optional[int]:
        # Serialise admissions per user for the life of the transaction
        try:
            with self._cursor() as cur:
                cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (record.user_id,))
                if self._count(cur, record.user_id, record.mode, start, end) >= limit:
                    return None
                return self._insert(cur, record)
        except psycopg2.Error as e:
            raise StorageError() from e

    def award_xp(self, user_id: str, xp: int):
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO profiles(id, xp) VALUES (%s, %s)
                ON CONFLICT (id) DO UPDATE SET xp = COALESCE(profiles.xp, 0) + EXCLUDED.xp
                """,
                (user_id, xp),
            )

    def total_xp(self, user_id: str) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT xp FROM profiles WHERE id = %s", (user_id,))
            row = cur.fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    def close(self):
        if self.conn and not self.conn.closed:
            self.conn.close()


def open_store(url: str) -> AttemptStore:
    """Pick a backend from a database URL."""
    if url.startswith("sqlite://"):
        path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else ""
        return SQLiteAttemptStore(path or ":memory:")
    if url.startswith(("postgres://", "postgresql://")):
        return PostgresAttemptStore(url)
    raise ValueError(f"Unsupported database URL: {url}")
