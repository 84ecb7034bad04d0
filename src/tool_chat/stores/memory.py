from __future__ import annotations

import itertools
import time
import uuid
from dataclasses import replace
from typing import Any, Optional

from tool_chat.core.messages import Message


class StoreError(RuntimeError):
    pass


class InMemoryStore:
    """
    Process-local session + message store.
    Used by tests and by the app when no database is configured.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, Any]] = {}
        self._messages: dict[str, Message] = {}
        self._by_session: dict[str, list[str]] = {}
        self._ids = itertools.count(1)

    def create_session(self, title: Optional[str] = None) -> dict[str, Any]:
        now = time.time()
        session = {
            "id": uuid.uuid4().hex,
            "title": title or "New Chat",
            "createdAt": now,
            "updatedAt": now,
        }
        self._sessions[session["id"]] = session
        self._by_session[session["id"]] = []
        return dict(session)

    def list_sessions(self) -> list[dict[str, Any]]:
        return sorted(
            (dict(s) for s in self._sessions.values()),
            key=lambda s: s["updatedAt"],
            reverse=True,
        )

    def get_session(self, session_id: str) -> Optional[dict[str, Any]]:
        session = self._sessions.get(session_id)
        return dict(session) if session else None

    def set_title(self, session_id: str, title: str) -> dict[str, Any]:
        session = self._sessions.get(session_id)
        if session is None:
            raise StoreError(f"Unknown session: {session_id}")
        session["title"] = title
        session["updatedAt"] = time.time()
        return dict(session)

    def append(self, session_id: str, message: Message) -> str:
        if session_id not in self._sessions:
            raise StoreError(f"Unknown session: {session_id}")
        record_id = str(next(self._ids))
        self._messages[record_id] = replace(
            message,
            id=record_id,
            created_at=time.time(),
            is_collapsed=message.role == "tool_call",
        )
        self._by_session[session_id].append(record_id)
        self._sessions[session_id]["updatedAt"] = time.time()
        return record_id

    def update_result(self, record_id: str, result: str) -> None:
        message = self._messages.get(record_id)
        if message is None:
            raise StoreError(f"Unknown message record: {record_id}")
        self._messages[record_id] = replace(message, tool_result=result)

    def list_messages(self, session_id: str, limit: Optional[int] = None) -> list[Message]:
        ids = self._by_session.get(session_id, [])
        if limit is not None:
            ids = ids[:limit]
        return [self._messages[i] for i in ids]
