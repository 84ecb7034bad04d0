from __future__ import annotations

import asyncio
import os
import threading
from typing import Any, AsyncIterator, Coroutine, Iterator, TypeVar

import streamlit as st
from dotenv import load_dotenv

from tool_chat.core.config import ChatConfig
from tool_chat.core.factory import build_orchestrator, get_chat_model, get_search_provider, get_store
from tool_chat.core.interfaces import SessionStore
from tool_chat.core.logsetup import setup_logging
from tool_chat.orchestrators.chat_orchestrator import ChatOrchestrator
from tool_chat.providers.llm_openai import OpenAIChatModel
from tool_chat.providers.models import ModelCatalog, ModelInfo

load_dotenv()

T = TypeVar("T")


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One background loop shared by every script run, so async clients stay on one loop."""
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, name="tool-chat-loop", daemon=True).start()
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


_DONE = object()


async def _anext(agen: AsyncIterator[T]) -> Any:
    try:
        return await agen.__anext__()
    except StopAsyncIteration:
        return _DONE


def iter_async(agen: AsyncIterator[T]) -> Iterator[T]:
    """Drive an async iterator from Streamlit's synchronous script thread."""
    while True:
        item = run_async(_anext(agen))
        if item is _DONE:
            break
        yield item


@st.cache_resource
def get_llm() -> OpenAIChatModel:
    setup_logging()
    return get_chat_model("openai")


@st.cache_resource
def get_session_store() -> SessionStore:
    return get_store(os.getenv("CHAT_STORE", "sqlite"))


@st.cache_resource
def get_orchestrator(tools_enabled: bool = True) -> ChatOrchestrator:
    llm = get_llm()
    search = get_search_provider("exa") if tools_enabled and os.getenv("EXA_API_KEY") else None
    return build_orchestrator(llm, search=search, store=get_session_store(), config=ChatConfig.from_env())


@st.cache_resource
def get_catalog() -> ModelCatalog:
    return ModelCatalog(get_llm().list_model_ids)


def list_models() -> list[ModelInfo]:
    return run_async(get_catalog().list_models())


def render_model_sidebar(default_model: str) -> str:
    """
    Sidebar model picker backed by the cached model catalog.
    Returns the selected model id.
    """
    st.subheader("Model")
    models = list_models()
    ids = [m.id for m in models]
    if default_model not in ids:
        ids.insert(0, default_model)
    names = {m.id: m.name for m in models}

    current = st.session_state.get("model_id", default_model)
    choice = st.selectbox(
        "Chat model",
        ids,
        index=ids.index(current) if current in ids else 0,
        format_func=lambda i: names.get(i, i),
    )
    st.session_state["model_id"] = choice

    if st.button("Refresh model list", use_container_width=True):
        get_catalog().clear()
        st.rerun()
    return choice


def render_session_sidebar(store: SessionStore) -> str:
    """
    Sidebar session list. Creates a session on first use.
    Returns the active session id.
    """
    st.subheader("Sessions")

    if st.button("New chat", use_container_width=True):
        st.session_state["session_id"] = store.create_session()["id"]
        st.rerun()

    sessions = store.list_sessions()
    if "session_id" not in st.session_state or store.get_session(st.session_state["session_id"]) is None:
        st.session_state["session_id"] = sessions[0]["id"] if sessions else store.create_session()["id"]
        sessions = store.list_sessions()

    ids = [s["id"] for s in sessions]
    labels = {s["id"]: s["title"] or "New Chat" for s in sessions}
    chosen = st.radio(
        "Select a session",
        options=ids,
        index=ids.index(st.session_state["session_id"]),
        format_func=lambda i: labels[i],
        label_visibility="collapsed",
    )
    st.session_state["session_id"] = chosen
    return chosen
