# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import asyncio

import pytest

from flowhsm.core.actions import assign
from flowhsm.runtime.graph import StateChart


def pytest_configure(config):
    """Register custom marks."""
    config.addinivalue_line("markers", "property: mark test as a property-based test")
    config.addinivalue_line("markers", "integration: mark test as an end-to-end scenario test")


def trace(label):
    """Action appending ``label`` to the ``trace`` field of the context."""
    return assign(trace=lambda ctx, event: tuple(ctx.get("trace", ())) + (label,))


class RecordingHook:
    """Captures lifecycle callbacks for assertions."""

    def __init__(self):
        self.entered = []
        self.exited = []
        self.transitions = []
        self.errors = []

    def on_enter(self, state):
        self.entered.append(state.id)

    def on_exit(self, state):
        self.exited.append(state.id)

    def on_transition(self, source, target, event):
        self.transitions.append((source, target, event.type))

    def on_error(self, error):
        self.errors.append(error)


class Gate:
    """
    Service whose calls stay pending until the test resolves them. Results are
    shielded so a cancelled call can still be resolved to prove it is ignored.
    """

    def __init__(self):
        self.calls = []

    async def __call__(self, ctx, event):
        future = asyncio.get_running_loop().create_future()
        self.calls.append(future)
        return await asyncio.shield(future)


@pytest.fixture
def hook():
    return RecordingHook()


@pytest.fixture
def gate():
    return Gate()


@pytest.fixture
def nested_config():
    """Three levels of nesting with entry/exit tracing and a sibling branch."""
    return {
        "initial": "a",
        "states": {
            "a": {
                "initial": "b",
                "entry": "enter_a",
                "exit": "exit_a",
                "states": {
                    "b": {
                        "initial": "c",
                        "entry": "enter_b",
                        "exit": "exit_b",
                        "states": {
                            "c": {
                                "entry": "enter_c",
                                "exit": "exit_c",
                                "on": {"GO": {"target": "#x", "actions": "act"}},
                            }
                        },
                    }
                },
            },
            "x": {"initial": "y", "entry": "enter_x", "states": {"y": {"entry": "enter_y"}}},
        },
    }


@pytest.fixture
def nested_chart(nested_config):
    labels = ["enter_a", "exit_a", "enter_b", "exit_b", "enter_c", "exit_c", "act", "enter_x", "enter_y"]
    return StateChart.from_config(nested_config, actions={label: trace(label) for label in labels})


@pytest.fixture
def service_chart(gate):
    """idle -START-> pending(invokes gate) -> ok | failed; CANCEL returns to idle."""
    config = {
        "initial": "idle",
        "states": {
            "idle": {"on": {"START": "pending"}},
            "pending": {
                "on": {"CANCEL": "idle", "RESTART": "pending"},
                "invoke": {
                    "src": "fetch",
                    "on_done": {"target": "ok", "actions": "store"},
                    "on_error": {"target": "failed", "actions": "store"},
                },
            },
            "ok": {"on": {"START": "pending"}},
            "failed": {},
        },
    }
    return StateChart.from_config(
        config,
        actions={"store": assign(result=lambda ctx, event: event.data)},
        services={"fetch": gate},
    )


@pytest.fixture
def tracer():
    """The ``trace`` action factory, for tests building their own charts."""
    return trace
