"""
Concrete session flows built on the engine.
"""

from flowhsm.flows.ticket_flow import FLOW_CHART, answer_event, configure

__all__ = ["FLOW_CHART", "answer_event", "configure"]
