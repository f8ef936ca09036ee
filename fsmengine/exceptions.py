"""Exceptions raised by the state machine engine."""

from enum import Enum


class StateMachineError(Exception):
    """Base class for engine errors."""


class MachineSealedError(StateMachineError, RuntimeError):
    """Raised when a sealed machine's transition table is modified."""


class KeyOverflowError(StateMachineError, ValueError):
    """Raised when a state ordinal does not fit in the composite key."""


class TransitionError(StateMachineError):
    """
    Wraps an action failure in transactional mode.

    The machine stays in ``source`` when this is raised. ``stage`` names
    the action that failed: ``"action"``, ``"exit"`` or ``"entry"``.
    The original exception is available as ``__cause__``.
    """

    def __init__(self, source: Enum, event: Enum, stage: str, message: str = ""):
        self.source = source
        self.event = event
        self.stage = stage
        super().__init__(
            message or f"{stage} action failed on {source.name}--{event.name}"
        )
