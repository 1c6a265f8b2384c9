# tests/unit/runtime/test_async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from flowhsm.core.events import Event, done_invoke_type, error_type
from flowhsm.core.states import InvokeDescriptor
from flowhsm.runtime.async_support import ServiceInvoker
from flowhsm.runtime.context import Context

FETCH = InvokeDescriptor(src="fetch", id="lookup")


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def invoker(gate, delivered):
    return ServiceInvoker({"fetch": gate}, lambda handle, event: delivered.append((handle, event)))


def test_start_requires_running_loop(invoker):
    with pytest.raises(RuntimeError):
        invoker.start("pending", FETCH, Context(), Event("START"))
    assert invoker.live == []


@pytest.mark.asyncio
async def test_success_is_delivered_with_origin(invoker, gate, delivered):
    handle = invoker.start("pending", FETCH, Context(), Event("START"))
    await asyncio.sleep(0)
    gate.calls[0].set_result({"count": 1})
    await invoker.wait_until_idle()

    ((got_handle, event),) = delivered
    assert got_handle is handle
    assert event.type == done_invoke_type("lookup")
    assert event.data == {"count": 1}
    assert event.origin == ("pending", handle.generation)
    assert invoker.live == []


@pytest.mark.asyncio
async def test_failure_is_delivered_as_error_event(invoker, gate, delivered):
    invoker.start("pending", FETCH, Context(), Event("START"))
    await asyncio.sleep(0)
    failure = ValueError("NOPE")
    gate.calls[0].set_exception(failure)
    await invoker.wait_until_idle()

    ((_, event),) = delivered
    assert event.type == error_type("lookup")
    assert event.data is failure


@pytest.mark.asyncio
async def test_cancelled_call_is_discarded(invoker, gate, delivered):
    handle = invoker.start("pending", FETCH, Context(), Event("START"))
    await asyncio.sleep(0)
    invoker.cancel("pending")
    gate.calls[0].set_result({"count": 1})
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert handle.task.cancelled()
    assert delivered == []
    assert not invoker.is_current(handle)
    assert not invoker.is_current_origin(("pending", handle.generation))


@pytest.mark.asyncio
async def test_restart_starts_new_generation(invoker, gate, delivered):
    first = invoker.start("pending", FETCH, Context(), Event("START"))
    second = invoker.start("pending", FETCH, Context(), Event("START"))
    assert second.generation > first.generation
    assert invoker.live == [second]

    await asyncio.sleep(0)
    assert len(gate.calls) == 1  # the first task was cancelled before it ran
    gate.calls[0].set_result("fresh")
    await invoker.wait_until_idle()

    ((handle, event),) = delivered
    assert handle is second
    assert event.data == "fresh"


@pytest.mark.asyncio
async def test_cancel_bumps_generation_without_live_call(invoker):
    before = invoker.generation("idle")
    invoker.cancel("idle")
    assert invoker.generation("idle") == before + 1


@pytest.mark.asyncio
async def test_cancel_all(invoker, gate, delivered):
    a = invoker.start("a", FETCH, Context(), Event("START"))
    b = invoker.start("b", FETCH, Context(), Event("START"))
    invoker.cancel_all()
    await asyncio.sleep(0)
    assert invoker.live == []
    assert a.task.cancelled() and b.task.cancelled()
    assert delivered == []


@pytest.mark.asyncio
async def test_service_receives_context_and_event(delivered):
    seen = []

    async def echo(ctx, event):
        seen.append((ctx["query"], event.type))
        return "ok"

    invoker = ServiceInvoker({"fetch": echo}, lambda handle, event: delivered.append(event))
    invoker.start("pending", FETCH, Context(query={"ticket": "200"}), Event("AnswerUser"))
    await invoker.wait_until_idle()
    assert seen == [({"ticket": "200"}, "AnswerUser")]
    assert delivered[0].data == "ok"
