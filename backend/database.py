import os
import re
import sqlite3
from typing import Any, Iterable, Optional

try:
    import psycopg2
    from psycopg2 import IntegrityError as PgIntegrityError
except Exception:  # pragma: no cover - optional dependency at runtime
    psycopg2 = None
    PgIntegrityError = Exception

DB_NAME = os.getenv("PROCTOR_DB", "interviews.db")
SUPABASE_DB_URL = os.getenv("SUPABASE_DB_URL")
USE_SUPABASE = bool(SUPABASE_DB_URL)

IntegrityError = PgIntegrityError if USE_SUPABASE else sqlite3.IntegrityError
DatabaseError = psycopg2.Error if USE_SUPABASE and psycopg2 else sqlite3.Error


class CompatCursor:
    def __init__(self, cursor, use_postgres: bool):
        self._cursor = cursor
        self._use_postgres = use_postgres

    def _adapt(self, query: str) -> str:
        if not self._use_postgres:
            return query
        return re.sub(r"\?", "%s", query)

    def execute(self, query: str, params: Optional[Iterable[Any]] = None):
        sql = self._adapt(query)
        if params is None:
            self._cursor.execute(sql)
        else:
            self._cursor.execute(sql, tuple(params))
        return self

    def fetchone(self):
        return self._cursor.fetchone()

    def fetchall(self):
        return self._cursor.fetchall()

    @property
    def rowcount(self):
        return self._cursor.rowcount


class CompatConnection:
    def __init__(self, conn, use_postgres: bool):
        self._conn = conn
        self._use_postgres = use_postgres

    def cursor(self):
        return CompatCursor(self._conn.cursor(), self._use_postgres)

    def commit(self):
        self._conn.commit()

    def close(self):
        self._conn.close()


def connect(db_name: Optional[str] = None):
    if USE_SUPABASE:
        if psycopg2 is None:
            raise RuntimeError("SUPABASE_DB_URL set but psycopg2 is not installed")
        return CompatConnection(psycopg2.connect(SUPABASE_DB_URL), True)
    return CompatConnection(sqlite3.connect(db_name or DB_NAME), False)


def init_db():
    conn = connect()
    cur = conn.cursor()

    user_id = "BIGSERIAL PRIMARY KEY" if USE_SUPABASE else "INTEGER PRIMARY KEY AUTOINCREMENT"
    stamp = "TIMESTAMP" if USE_SUPABASE else "DATETIME"

    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS users (
            id {user_id},
            name TEXT,
            email TEXT UNIQUE,
            password_hash TEXT
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS interviews (
            id TEXT PRIMARY KEY,
            user_id TEXT,
            role TEXT,
            type TEXT DEFAULT 'interview',
            techstack TEXT,
            questions TEXT,
            created_at {stamp} DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS feedback (
            id TEXT PRIMARY KEY,
            interview_id TEXT,
            user_id TEXT,
            transcript TEXT,
            total_messages INTEGER,
            candidate_messages INTEGER,
            candidate_words INTEGER,
            created_at {stamp} DEFAULT CURRENT_TIMESTAMP
        )
        """
    )

    conn.commit()
    conn.close()
