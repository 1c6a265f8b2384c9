# flowhsm/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details


class FlowHSMError(Exception):
    """
    Base exception class for errors within the statechart engine.
    """


class ValidationError(FlowHSMError):
    """
    Raised when validation detects configuration constraint violations.
    """


class ChartDefinitionError(ValidationError):
    """
    Raised when a statechart definition is malformed: unknown targets, compound
    states without an initial child, final states with children or outgoing
    transitions, or references to unregistered guards, actions or services.
    """


class StateNotFoundError(FlowHSMError):
    """
    Raised when a requested state id does not exist in the chart.
    """


class TransitionError(FlowHSMError):
    """
    Raised when an action fails while a transition is being taken. Aborts the
    macrostep.
    """


class GuardError(FlowHSMError):
    """
    Raised when a guard predicate throws. Guards must be total; a throwing guard
    is a definition defect and aborts the macrostep.
    """

    def __init__(self, guard: str, cause: Exception) -> None:
        super().__init__(f"Guard '{guard}' raised: {cause!r}")
        self.guard = guard
        self.cause = cause


class EventlessLoopError(FlowHSMError):
    """
    Raised when eventless transitions keep firing without settling within the
    configured number of microsteps.
    """


class LookupRejected(FlowHSMError):
    """
    Raised by lookup collaborators when a request cannot be served.
    """
