from __future__ import annotations

import json
import sqlite3
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from tool_chat.core.messages import Message
from tool_chat.stores.memory import StoreError

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chat_session (
    id TEXT NOT NULL PRIMARY KEY,
    title TEXT,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS message (
    id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    tool_name TEXT,
    tool_args TEXT,
    tool_result TEXT,
    is_collapsed INTEGER NOT NULL DEFAULT 0,
    created_at REAL NOT NULL,
    session_id TEXT NOT NULL REFERENCES chat_session (id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS message_session_idx ON message (session_id, id);
"""


def _session_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def _message_row(row: sqlite3.Row) -> Message:
    return Message(
        id=str(row["id"]),
        role=row["role"],
        content=row["content"],
        tool_name=row["tool_name"],
        tool_args=json.loads(row["tool_args"]) if row["tool_args"] else None,
        tool_result=json.loads(row["tool_result"]) if row["tool_result"] else None,
        is_collapsed=bool(row["is_collapsed"]),
        created_at=row["created_at"],
    )


class SQLiteStore:
    """
    SQLite-backed session + message store.
    Tool args and results are stored as JSON text; tool_call rows are collapsed.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def create_session(self, title: Optional[str] = None) -> dict[str, Any]:
        now = time.time()
        session_id = uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO chat_session (id, title, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (session_id, title or "New Chat", now, now),
            )
        return {"id": session_id, "title": title or "New Chat", "createdAt": now, "updatedAt": now}

    def list_sessions(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM chat_session ORDER BY updated_at DESC").fetchall()
        return [_session_row(r) for r in rows]

    def get_session(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM chat_session WHERE id = ?", (session_id,)).fetchone()
        return _session_row(row) if row else None

    def set_title(self, session_id: str, title: str) -> dict[str, Any]:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE chat_session SET title = ?, updated_at = ? WHERE id = ?",
                (title, time.time(), session_id),
            )
            if cur.rowcount == 0:
                raise StoreError(f"Unknown session: {session_id}")
            row = conn.execute("SELECT * FROM chat_session WHERE id = ?", (session_id,)).fetchone()
        return _session_row(row)

    def append(self, session_id: str, message: Message) -> str:
        now = time.time()
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    "INSERT INTO message (role, content, tool_name, tool_args, tool_result, "
                    "is_collapsed, created_at, session_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        message.role,
                        message.content,
                        message.tool_name,
                        json.dumps(message.tool_args) if message.tool_args is not None else None,
                        json.dumps(message.tool_result) if message.tool_result is not None else None,
                        1 if message.role == "tool_call" else 0,
                        now,
                        session_id,
                    ),
                )
                conn.execute(
                    "UPDATE chat_session SET updated_at = ? WHERE id = ?", (now, session_id)
                )
                record_id = str(cur.lastrowid)
        except sqlite3.IntegrityError as e:
            raise StoreError(f"Cannot append message to session {session_id}: {e}") from e
        return record_id

    def update_result(self, record_id: str, result: str) -> None:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE message SET tool_result = ? WHERE id = ?",
                (json.dumps(result), int(record_id)),
            )
            if cur.rowcount == 0:
                raise StoreError(f"Unknown message record: {record_id}")

    def list_messages(self, session_id: str, limit: Optional[int] = None) -> list[Message]:
        sql = "SELECT * FROM message WHERE session_id = ? ORDER BY id ASC"
        params: tuple[Any, ...] = (session_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (session_id, limit)
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_message_row(r) for r in rows]
