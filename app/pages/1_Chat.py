from __future__ import annotations

import json

import streamlit as st
from dotenv import load_dotenv

from tool_chat.core.messages import Message
from tool_chat.orchestrators.title import TitleGenerationError, generate_title
from tool_chat.tools.definitions import ToolTrace
from ui.common import (
    get_catalog,
    get_llm,
    get_orchestrator,
    get_session_store,
    iter_async,
    render_model_sidebar,
    render_session_sidebar,
    run_async,
)

# Load .env once per Streamlit server start
load_dotenv()

st.set_page_config(page_title="Chat | Tool Chat", page_icon="💬", layout="wide")

st.title("💬 Chat")
st.caption("Ask anything. The assistant searches the web when it needs fresh information.")


def render_trace(trace: ToolTrace) -> None:
    state = "error" if trace.error else ("complete" if trace.result is not None else "running")
    with st.status(f"{trace.tool_name}", state=state):
        st.markdown("**Arguments:**")
        st.code(json.dumps(trace.arguments, indent=2), language="json")
        if trace.error:
            st.error(trace.error)
        elif trace.result is not None:
            preview = trace.result
            if len(preview) > 500:
                preview = preview[:500] + "..."
            st.markdown("**Result:**")
            st.code(preview, language="json")


def render_history(messages: list[Message]) -> None:
    for m in messages:
        if m.role == "tool_call":
            with st.chat_message("assistant"):
                render_trace(
                    ToolTrace(
                        call_id=m.id or "",
                        tool_name=m.tool_name or "",
                        arguments=m.tool_args or {},
                        result=m.tool_result,
                    )
                )
        elif m.role in ("user", "assistant"):
            with st.chat_message(m.role):
                st.markdown(m.content)


store = get_session_store()
orchestrator = get_orchestrator()

with st.sidebar:
    st.header("Settings")
    model_id = render_model_sidebar(orchestrator.config.model)
    st.divider()
    session_id = render_session_sidebar(store)

history = store.list_messages(session_id)
render_history(history)

prompt = st.chat_input("Type your message")
if prompt:
    with st.chat_message("user"):
        st.markdown(prompt)

    conversation = [m for m in history if m.role in ("user", "assistant")]
    conversation.append(Message(role="user", content=prompt))

    traces: dict[str, ToolTrace] = {}
    errors: list[str] = []
    with st.chat_message("assistant"):
        tools_box = st.container()
        text_box = st.empty()
        text = ""
        events = orchestrator.run(conversation, model=model_id, session_id=session_id)
        for event in iter_async(events):
            if event.type == "text_chunk":
                text += event.content
                text_box.markdown(text)
            elif event.type == "tool_call":
                traces[event.id] = ToolTrace(call_id=event.id, tool_name=event.name, arguments=event.args)
            elif event.type == "tool_result":
                call = traces.get(event.id)
                traces[event.id] = ToolTrace(
                    call_id=event.id,
                    tool_name=event.name,
                    arguments=call.arguments if call else {},
                    result=event.result,
                )
            elif event.type == "error":
                errors.append(event.message)

        with tools_box:
            for trace in traces.values():
                if trace.result is None:
                    trace = ToolTrace(
                        call_id=trace.call_id,
                        tool_name=trace.tool_name,
                        arguments=trace.arguments,
                        error="No result",
                    )
                render_trace(trace)
        for message in errors:
            st.warning(message)

    session = store.get_session(session_id)
    if session and session["title"] == "New Chat":
        try:
            title_model = run_async(get_catalog().title_model())
            title = run_async(generate_title(get_llm(), store.list_messages(session_id), model=title_model.id))
            store.set_title(session_id, title)
        except TitleGenerationError as e:
            st.caption(f"Session title not generated: {e}")
