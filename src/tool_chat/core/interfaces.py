from typing import Any, AsyncIterator, Optional, Protocol

from tool_chat.core.messages import Message, ResponseFragment


class ChatModel(Protocol):
    """Streaming chat model interface."""

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        allow_tools: bool = True,
        model: Optional[str] = None,
    ) -> AsyncIterator[ResponseFragment]:
        """
        Send the conversation and yield response fragments as they arrive.
        Called once per round with a growing context.
        """
        ...

    async def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        One-shot completion returning the full text.
        """
        ...


class MessageStore(Protocol):
    """Append/update log of conversation messages."""

    def append(self, session_id: str, message: Message) -> str:
        """
        Persist a message and return its record id.
        """
        ...

    def update_result(self, record_id: str, result: str) -> None:
        """
        Attach a tool result to a previously appended tool_call record.
        """
        ...


class SessionStore(MessageStore, Protocol):
    """Message store that also manages chat sessions."""

    def create_session(self, title: Optional[str] = None) -> dict[str, Any]:
        ...

    def list_sessions(self) -> list[dict[str, Any]]:
        ...

    def get_session(self, session_id: str) -> Optional[dict[str, Any]]:
        ...

    def list_messages(self, session_id: str, limit: Optional[int] = None) -> list[Message]:
        ...

    def set_title(self, session_id: str, title: str) -> dict[str, Any]:
        ...


class SearchProvider(Protocol):
    """Web search provider interface."""

    def search(self, query: str) -> dict[str, Any]:
        """
        Return the raw search payload: {"results": [...], ...}.
        """
        ...
