"""flowhsm: hierarchical statechart engine for guided, multi-step sessions

This package provides an interpreter for nested statecharts with guarded and
eventless transitions, asynchronous service invocation with cancellation on
exit, and completion propagation from child regions to their parents.

Responsibilities:
    - Immutable statechart definitions built from nested configuration
    - Macrostep/microstep event processing with run-to-completion semantics
    - Named guards and context reducers
    - Services started on state entry, discarded when their state is exited
    - The helpdesk session flow in ``flowhsm.flows``

Cross-cutting Concerns:
    Concurrency:
        - One interpreter per session, driven from a single asyncio event loop
        - Events sent during a macrostep are queued in FIFO order

    Error Handling:
        - Structured error hierarchy rooted at FlowHSMError
        - Definition defects fail at construction time

    Logging:
        - Module-level loggers under the ``flowhsm`` namespace
        - No handlers are configured by the library
"""

from flowhsm.core.errors import FlowHSMError
from flowhsm.core.events import Event
from flowhsm.runtime.context import Context, Snapshot
from flowhsm.runtime.graph import StateChart
from flowhsm.runtime.interpreter import Interpreter, InterpreterStatus

__version__ = "0.1.0"

__all__ = [
    "Context",
    "Event",
    "FlowHSMError",
    "Interpreter",
    "InterpreterStatus",
    "Snapshot",
    "StateChart",
]
