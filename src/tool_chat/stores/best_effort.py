from __future__ import annotations

import asyncio
import logging
from typing import Optional

from tool_chat.core.interfaces import MessageStore
from tool_chat.core.messages import Message

LOGGER = logging.getLogger(__name__)


class BestEffortStore:
    """
    Wraps a MessageStore so persistence never blocks a conversation.
    Writes run in a worker thread; failures are logged and swallowed.
    A missing store or session is a no-op.
    """

    def __init__(self, store: Optional[MessageStore], session_id: Optional[str]) -> None:
        self._store = store
        self._session_id = session_id

    @property
    def active(self) -> bool:
        return self._store is not None and bool(self._session_id)

    async def append(self, message: Message) -> Optional[str]:
        if not self.active:
            return None
        try:
            return await asyncio.to_thread(self._store.append, self._session_id, message)
        except Exception:
            LOGGER.warning("Failed to save %s message", message.role, exc_info=True)
            return None

    async def update_result(self, record_id: Optional[str], result: str) -> None:
        if not self.active or record_id is None:
            return
        try:
            await asyncio.to_thread(self._store.update_result, record_id, result)
        except Exception:
            LOGGER.warning("Failed to save tool result for record %s", record_id, exc_info=True)
