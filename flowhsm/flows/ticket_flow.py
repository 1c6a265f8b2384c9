# flowhsm/flows/ticket_flow.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Guided helpdesk session: classify the request, order a peripheral or look up a
ticket, then optionally ping the ticket.

    intro ──new_ticket──> newTicket ──done──> itemOrdered
      └───find_ticket──> findTicket ──done──> pingTicket
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from flowhsm.core.actions import assign
from flowhsm.core.events import Event
from flowhsm.flows import services
from flowhsm.interfaces.types import ServiceFn
from flowhsm.runtime.context import Context
from flowhsm.runtime.graph import StateChart
from flowhsm.runtime.interpreter import Interpreter

logger = logging.getLogger(__name__)

ANSWER_USER = "AnswerUser"

# States
INTRO = "intro"
QUESTION = "question"
NEW_TICKET = "newTicket"
FIND_TICKET = "findTicket"
PENDING = "pending"
DONE = "done"
ERROR = "error"
NO_RESULTS = "noResults"
PING_TICKET = "pingTicket"
SHOULD_SKIP = "shouldSkip"
SKIPPED = "skipped"
ITEM_ORDERED = "itemOrdered"

# Answer values
NEW_TICKET_ANSWER = "new_ticket"
FIND_TICKET_ANSWER = "find_ticket"
PING_ORDER_ANSWER = "ping_order"
SKIP_PING_LABEL = "No"

QUESTIONS: Dict[str, str] = {
    INTRO: "Konnichiwa How may I help you today?",
    NEW_TICKET: "What would you like to order?",
    FIND_TICKET: "Please enter a ticket number",
    PING_TICKET: "What you like to send a ping to this ticket?",
}


def question_for(key: str, questions: Optional[Mapping[str, str]] = None) -> Optional[Dict[str, str]]:
    """Transcript entry for the question asked by state ``key``, or None."""
    catalog = QUESTIONS if questions is None else questions
    if key not in catalog:
        return None
    return {"question": catalog[key], "key": key}


def answer_event(key: str, value: str, label: Optional[str] = None) -> Event:
    """Build the AnswerUser event a front end sends for a chosen answer."""
    return Event(ANSWER_USER, {"key": key, "value": value, "label": value if label is None else label})


def _answer(event: Event) -> Mapping[str, Any]:
    return event.data or {}


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------


def should_create_new_ticket(ctx: Context, event: Event) -> bool:
    return _answer(event).get("value") == NEW_TICKET_ANSWER


def should_find_ticket(ctx: Context, event: Event) -> bool:
    return _answer(event).get("value") == FIND_TICKET_ANSWER


def should_send_ping(ctx: Context, event: Event) -> bool:
    return _answer(event).get("value") == PING_ORDER_ANSWER


def should_ask_ping_ticket(ctx: Context, event: Event) -> bool:
    return not ctx["results"].get("pinged")


def has_items(ctx: Context, event: Event) -> bool:
    return event.data["count"] > 0


def found_ticket(ctx: Context, event: Event) -> Any:
    # any truthy item counts as found
    return event.data.get("item")


GUARDS = {
    "shouldCreateNewTicket": should_create_new_ticket,
    "shouldFindTicket": should_find_ticket,
    "shouldSendPing": should_send_ping,
    "shouldAskPingTicket": should_ask_ping_ticket,
    "hasItems": has_items,
    "foundTicket": found_ticket,
}


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


def update_query(ctx: Context, event: Event) -> Dict[str, Any]:
    data = _answer(event)
    by_key = {
        NEW_TICKET: lambda value: {"peripheral": value},
        FIND_TICKET: lambda value: {"ticket": value},
    }
    build = by_key.get(data.get("key"))
    return build(data.get("value")) if build else {}


def _with_answer(chat: List[Dict[str, Any]], key: str, label: Any) -> List[Dict[str, Any]]:
    return [dict(entry, answer=label) if entry["key"] == key else entry for entry in chat]


def update_chat(ctx: Context, event: Event) -> List[Dict[str, Any]]:
    data = _answer(event)
    return _with_answer(ctx["chat"], data.get("key"), data.get("label"))


def ask_question(key: str, questions: Optional[Mapping[str, str]] = None):
    """Action appending the question of state ``key`` to the transcript."""
    entry = question_for(key, questions)
    return assign(chat=lambda ctx, event: list(ctx["chat"]) + ([entry] if entry else []))


update_ctx_with_answer = assign(query=update_query, chat=update_chat)
update_ctx_with_results = assign(results=lambda ctx, event: event.data)
skip_ping = assign(chat=lambda ctx, event: _with_answer(ctx["chat"], PING_TICKET, SKIP_PING_LABEL))


def make_actions(questions: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    return {
        "updateCtxWithAnswer": update_ctx_with_answer,
        "updateCtxWithResults": update_ctx_with_results,
        "askIntroQuestion": ask_question(INTRO, questions),
        "askNewTicket": ask_question(NEW_TICKET, questions),
        "askFindTicket": ask_question(FIND_TICKET, questions),
        "askPingTicket": ask_question(PING_TICKET, questions),
        "skipPing": skip_ping,
    }


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


def make_services(delay: float = services.DEFAULT_DELAY) -> Dict[str, ServiceFn]:
    """Lookup services seeded from the query recorded by the last answer."""

    async def get_peripheral(ctx: Context, event: Event) -> Dict[str, Any]:
        return await services.get_peripheral(ctx["query"].get("peripheral"), delay)

    async def get_ticket(ctx: Context, event: Event) -> Dict[str, Any]:
        return await services.get_ticket(ctx["query"].get("ticket"), delay)

    return {"getPeripheral": get_peripheral, "getTicket": get_ticket}


# -----------------------------------------------------------------------------
# Chart
# -----------------------------------------------------------------------------


def _lookup_region(ask_action: str, service: str, found_guard: str, next_state: str) -> Dict[str, Any]:
    return {
        "initial": QUESTION,
        "on": {ANSWER_USER: {"target": f".{PENDING}", "actions": "updateCtxWithAnswer"}},
        "states": {
            QUESTION: {"entry": ask_action},
            ERROR: {},
            NO_RESULTS: {},
            PENDING: {
                "invoke": {
                    "src": service,
                    "on_done": [
                        {"target": DONE, "actions": "updateCtxWithResults", "guard": found_guard},
                        {"target": NO_RESULTS},
                    ],
                    "on_error": ERROR,
                }
            },
            DONE: {"type": "final"},
        },
        "on_done": next_state,
    }


FLOW_CONFIG: Dict[str, Any] = {
    "initial": INTRO,
    "states": {
        INTRO: {
            "initial": QUESTION,
            "on": {
                ANSWER_USER: [
                    {"target": NEW_TICKET, "guard": "shouldCreateNewTicket", "actions": "updateCtxWithAnswer"},
                    {"target": FIND_TICKET, "guard": "shouldFindTicket", "actions": "updateCtxWithAnswer"},
                ]
            },
            "states": {QUESTION: {"entry": "askIntroQuestion"}},
        },
        NEW_TICKET: _lookup_region("askNewTicket", "getPeripheral", "hasItems", ITEM_ORDERED),
        FIND_TICKET: _lookup_region("askFindTicket", "getTicket", "foundTicket", PING_TICKET),
        PING_TICKET: {
            "initial": SHOULD_SKIP,
            "on": {
                ANSWER_USER: [
                    {"target": f".{DONE}", "guard": "shouldSendPing", "actions": "updateCtxWithAnswer"},
                    {"target": f".{SKIPPED}", "actions": "skipPing"},
                ]
            },
            "states": {
                SHOULD_SKIP: {
                    "always": [
                        {"target": QUESTION, "guard": "shouldAskPingTicket"},
                        {"target": DONE},
                    ]
                },
                QUESTION: {"entry": "askPingTicket"},
                DONE: {},
                SKIPPED: {},
            },
        },
        ITEM_ORDERED: {},
    },
}


def build_chart(questions: Optional[Mapping[str, str]] = None, delay: float = services.DEFAULT_DELAY) -> StateChart:
    return StateChart.from_config(FLOW_CONFIG, guards=GUARDS, actions=make_actions(questions), services=make_services(delay))


FLOW_CHART = build_chart()


def initial_context() -> Dict[str, Any]:
    return {"query": {}, "results": {}, "chat": []}


def configure(
    *,
    delay: Optional[float] = None,
    questions: Optional[Mapping[str, str]] = None,
    hooks: Optional[List[Any]] = None,
) -> Interpreter:
    """
    Start a new session of the helpdesk flow.

    :param delay: Seconds the lookup collaborators wait before answering;
        defaults to ``services.DEFAULT_DELAY``.
    :param questions: Question texts by state key, replacing ``QUESTIONS``.
    :param hooks: Lifecycle hooks passed to the interpreter.
    :return: A started interpreter exposing ``send``, ``subscribe`` and ``stop``.
    """
    chart = FLOW_CHART if questions is None else build_chart(questions)
    if delay is not None:
        chart = chart.with_services(make_services(delay))
    interpreter = Interpreter(chart, hooks=hooks)
    interpreter.start(initial_context())
    logger.debug("Configured helpdesk session")
    return interpreter
