# flowhsm/flows/services.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

"""
Stand-in lookup collaborators. Each resolves after a delay from a fixed table
and rejects with LookupRejected for anything else.
"""

import asyncio
from typing import Any, Dict

from flowhsm.core.errors import LookupRejected

DEFAULT_DELAY = 0.5

PERIPHERAL_COUNTS: Dict[str, int] = {
    "monitor": 23,
    "laptop": 0,
}

TICKETS: Dict[str, Dict[str, Any]] = {
    "200": {"item": "monitor", "pinged": True},
    "202": {"item": "monitor", "pinged": False},
    "400": {"item": None},
}


async def get_peripheral(item: str, delay: float = DEFAULT_DELAY) -> Dict[str, Any]:
    """
    Look up stock for a peripheral.

    :return: ``{"item": item, "count": n}``
    :raises LookupRejected: For unknown items (and ``"mouse"``).
    """
    await asyncio.sleep(delay)
    if item not in PERIPHERAL_COUNTS:
        raise LookupRejected("NOPE")
    return {"item": item, "count": PERIPHERAL_COUNTS[item]}


async def get_ticket(ticket: str, delay: float = DEFAULT_DELAY) -> Dict[str, Any]:
    """
    Look up a ticket by code.

    :return: ``{"ticket": code, "item": ..., "pinged": ...}``; code ``"400"``
        resolves with a null item and no ``pinged`` field.
    :raises LookupRejected: For ``"500"`` and unknown codes.
    """
    await asyncio.sleep(delay)
    if ticket not in TICKETS:
        raise LookupRejected("NOPE")
    return {"ticket": ticket, **TICKETS[ticket]}
