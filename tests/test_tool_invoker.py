import asyncio
import threading

import pytest

from helpers import RecordingStore, collect, make_tool
from tool_chat.core.messages import ToolCallFragment
from tool_chat.orchestrators.tool_invoker import ToolInvoker
from tool_chat.tools.registry import ToolRegistry


def _fragment(index, name, arguments, call_id=""):
    return ToolCallFragment(index=index, id=call_id, name=name, arguments=arguments)


def _search(query: str) -> str:
    return f"results for {query}"


def _broken(query: str) -> str:
    raise RuntimeError("search backend exploded")


@pytest.mark.asyncio
async def test_merged_arguments_reach_the_executor():
    seen = []

    def search(query: str) -> str:
        seen.append(query)
        return "ok"

    invoker = ToolInvoker(ToolRegistry([make_tool("search", search)]))
    outcomes = await invoker.invoke(_fragment(0, "search", '{"query":"x"}', "call_1"))

    assert seen == ["x"]
    assert [o.event.type for o in outcomes] == ["tool_call", "tool_result"]
    execution = outcomes[-1].execution
    assert execution.tool_args == {"query": "x"}
    assert execution.result == "ok"
    assert execution.call_id == "call_1"


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_sibling():
    registry = ToolRegistry([make_tool("search", _search), make_tool("broken", _broken)])
    invoker = ToolInvoker(registry)

    outcomes = await collect(
        invoker.invoke_all([
            _fragment(0, "search", '{"query": "x"}', "call_a"),
            _fragment(1, "broken", '{"query": "y"}', "call_b"),
        ])
    )

    executions = [o.execution for o in outcomes if o.execution is not None]
    errors = [o.event for o in outcomes if o.event.type == "error"]
    assert [o.event.type for o in outcomes[:2]] == ["tool_call", "tool_call"]
    assert len(executions) == 1
    assert executions[0].tool_name == "search"
    assert len(errors) == 1
    assert "search backend exploded" in errors[0].message


@pytest.mark.asyncio
async def test_unknown_tool_is_announced_then_reported():
    invoker = ToolInvoker(ToolRegistry([make_tool("search", _search)]))

    outcomes = await collect(
        invoker.invoke_all([
            _fragment(0, "nope", '{"query": "x"}', "call_nope"),
            _fragment(1, "search", '{"query": "y"}', "call_ok"),
        ])
    )

    types = [o.event.type for o in outcomes]
    assert types == ["tool_call", "error", "tool_call", "tool_result"]
    assert outcomes[0].event.id == "call_nope"
    assert "nope" in outcomes[1].event.message


@pytest.mark.asyncio
async def test_arguments_must_be_a_json_object():
    store = RecordingStore()
    invoker = ToolInvoker(ToolRegistry([make_tool("search", _search)]), store=store, session_id="s1")

    outcomes = await invoker.invoke(_fragment(0, "search", '["x"]'))

    assert [o.event.type for o in outcomes] == ["tool_call", "error"]
    assert outcomes[0].event.args == ["x"]
    assert "expected a JSON object" in outcomes[1].event.message
    assert store.appended == []


@pytest.mark.asyncio
async def test_schema_violation_is_an_execution_error_after_the_call_is_recorded():
    store = RecordingStore()
    invoker = ToolInvoker(ToolRegistry([make_tool("search", _search)]), store=store, session_id="s1")

    outcomes = await invoker.invoke(_fragment(0, "search", '{"q": "x"}', "call_1"))

    assert [o.event.type for o in outcomes] == ["tool_call", "error"]
    assert "query" in outcomes[1].event.message
    assert len(store.appended) == 1
    assert store.updates == []


@pytest.mark.asyncio
async def test_pending_record_is_written_before_execution_and_updated_after():
    store = RecordingStore()
    snapshots = []

    def search(query: str) -> str:
        snapshots.append((len(store.appended), len(store.updates)))
        return "found"

    invoker = ToolInvoker(ToolRegistry([make_tool("search", search)]), store=store, session_id="s1")
    outcomes = await invoker.invoke(_fragment(0, "search", '{"query": "x"}'))

    assert snapshots == [(1, 0)]
    session_id, message = store.appended[0]
    assert session_id == "s1"
    assert message.role == "tool_call"
    assert message.tool_name == "search"
    assert message.tool_args == {"query": "x"}
    assert store.updates == [("rec-1", "found")]
    assert outcomes[-1].execution.record_id == "rec-1"


@pytest.mark.asyncio
async def test_persistence_failures_are_swallowed():
    invoker = ToolInvoker(
        ToolRegistry([make_tool("search", _search)]), store=RecordingStore(fail=True), session_id="s1"
    )

    outcomes = await invoker.invoke(_fragment(0, "search", '{"query": "x"}'))

    assert [o.event.type for o in outcomes] == ["tool_call", "tool_result"]
    assert outcomes[-1].execution.record_id is None


@pytest.mark.asyncio
async def test_generated_call_ids_correlate_call_and_result():
    invoker = ToolInvoker(ToolRegistry([make_tool("search", _search)]))

    outcomes = await invoker.invoke(_fragment(0, "search", '{"query": "x"}'))

    call_event, result_event = (o.event for o in outcomes)
    assert call_event.id.startswith("call_")
    assert result_event.id == call_event.id


@pytest.mark.asyncio
async def test_calls_run_concurrently_and_results_arrive_in_completion_order():
    fast_done = asyncio.Event()

    async def slow(query: str) -> str:
        # Only finishes if the fast call runs while this one is waiting.
        await asyncio.wait_for(fast_done.wait(), timeout=2)
        return "slow"

    async def fast(query: str) -> str:
        fast_done.set()
        return "fast"

    invoker = ToolInvoker(ToolRegistry([make_tool("slow", slow), make_tool("fast", fast)]))
    outcomes = await collect(
        invoker.invoke_all([
            _fragment(0, "slow", '{"query": "a"}', "call_slow"),
            _fragment(1, "fast", '{"query": "b"}', "call_fast"),
        ])
    )

    calls = [o.event for o in outcomes if o.event.type == "tool_call"]
    results = [o.event for o in outcomes if o.event.type == "tool_result"]
    assert [c.id for c in calls] == ["call_slow", "call_fast"]
    assert [(r.id, r.result) for r in results] == [("call_fast", "fast"), ("call_slow", "slow")]


@pytest.mark.asyncio
async def test_sync_executors_run_off_the_event_loop():
    threads = []

    def search(query: str) -> str:
        threads.append(threading.get_ident())
        return "ok"

    invoker = ToolInvoker(ToolRegistry([make_tool("search", search)]))
    await invoker.invoke(_fragment(0, "search", '{"query": "x"}'))

    assert threads and threads[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_non_string_results_are_serialized():
    def search(query: str):
        return {"hits": 2}

    invoker = ToolInvoker(ToolRegistry([make_tool("search", search)]))
    outcomes = await invoker.invoke(_fragment(0, "search", '{"query": "x"}'))

    assert outcomes[-1].execution.result == '{"hits": 2}'
