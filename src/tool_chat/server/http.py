from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from tool_chat.core.factory import build_orchestrator, get_chat_model, get_search_provider, get_store
from tool_chat.core.interfaces import ChatModel, SessionStore
from tool_chat.core.logsetup import setup_logging
from tool_chat.core.messages import Message
from tool_chat.orchestrators.chat_orchestrator import ChatOrchestrator
from tool_chat.orchestrators.title import (
    NotEnoughMessagesError,
    TitleGenerationError,
    generate_title,
)
from tool_chat.providers.models import ModelCatalog

LOGGER = logging.getLogger(__name__)


class ChatMessageIn(BaseModel):
    role: str
    content: str = ""
    toolName: Optional[str] = None
    toolArgs: Optional[dict[str, Any]] = None
    toolResult: Optional[Any] = None


class ChatReq(BaseModel):
    messages: list[ChatMessageIn]
    model: Optional[str] = None
    sessionId: Optional[str] = None


class SessionReq(BaseModel):
    title: Optional[str] = None


def _result_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


def _to_message(m: ChatMessageIn) -> Message:
    try:
        return Message(
            role=m.role,
            content=m.content,
            tool_name=m.toolName,
            tool_args=m.toolArgs,
            tool_result=_result_text(m.toolResult),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def create_app(
    orchestrator: ChatOrchestrator,
    store: SessionStore,
    catalog: ModelCatalog,
    llm: ChatModel,
) -> FastAPI:
    app = FastAPI(title="tool-chat")

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/api/chat")
    async def api_chat(req: ChatReq):
        messages = [_to_message(m) for m in req.messages]
        LOGGER.info("Chat request: %d messages, model=%s, session=%s",
                    len(messages), req.model, req.sessionId)
        return StreamingResponse(
            orchestrator.stream_sse(messages, model=req.model, session_id=req.sessionId),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @app.get("/api/models")
    async def api_models():
        models = await catalog.list_models()
        return {"models": [m.to_dict() for m in models]}

    @app.get("/api/sessions")
    def api_list_sessions():
        return {"sessions": store.list_sessions()}

    @app.post("/api/sessions")
    def api_create_session(req: SessionReq):
        return {"session": store.create_session(req.title)}

    @app.get("/api/sessions/{session_id}")
    def api_get_session(session_id: str):
        session = store.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"session": session}

    @app.get("/api/sessions/{session_id}/messages")
    def api_session_messages(session_id: str):
        return {"messages": [m.to_dict() for m in store.list_messages(session_id)]}

    @app.post("/api/sessions/{session_id}/generate-title")
    async def api_generate_title(session_id: str):
        if store.get_session(session_id) is None:
            raise HTTPException(status_code=404, detail="Session not found")
        messages = store.list_messages(session_id)
        title_model = await catalog.title_model()
        try:
            title = await generate_title(llm, messages, model=title_model.id)
        except NotEnoughMessagesError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except TitleGenerationError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        return {"title": title, "session": store.set_title(session_id, title)}

    return app


def create_app_from_env() -> FastAPI:
    load_dotenv()
    setup_logging()
    llm = get_chat_model("openai")
    search = get_search_provider("exa") if os.getenv("EXA_API_KEY") else None
    store = get_store(os.getenv("CHAT_STORE", "sqlite"))
    orchestrator = build_orchestrator(llm, search=search, store=store)
    return create_app(orchestrator, store, ModelCatalog(llm.list_model_ids), llm)


def main() -> None:
    import uvicorn

    uvicorn.run(
        create_app_from_env(),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
