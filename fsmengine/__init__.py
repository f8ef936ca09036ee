"""
fsmengine
~~~~~~~~~

An embeddable, event-driven finite state machine engine for Python.

Quick start:
    from fsmengine import StateMachine, IndexPolicy, TransitionEntry
    from fsmengine import register_transitions, ignore_params
"""

from fsmengine.exceptions import (
    KeyOverflowError,
    MachineSealedError,
    StateMachineError,
    TransitionError,
)
from fsmengine.helpers import ignore_params, log_action, register_transitions
from fsmengine.keys import (
    KEY_SHIFT,
    MAX_STATES,
    check_state,
    ordinal,
    split_key,
    transition_key,
)
from fsmengine.machine import StateMachine
from fsmengine.types import (
    DispatchKind,
    DispatchRecord,
    IndexPolicy,
    StateAction,
    TransitionAction,
    TransitionEntry,
)

__all__ = [
    "StateMachine",
    "TransitionEntry",
    "DispatchKind",
    "DispatchRecord",
    "IndexPolicy",
    "StateAction",
    "TransitionAction",
    "StateMachineError",
    "MachineSealedError",
    "KeyOverflowError",
    "TransitionError",
    "KEY_SHIFT",
    "MAX_STATES",
    "check_state",
    "ordinal",
    "split_key",
    "transition_key",
    "register_transitions",
    "ignore_params",
    "log_action",
]
