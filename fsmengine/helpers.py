"""
Helper utilities for wiring state machines.

Provides convenience functions and decorators that reduce boilerplate
when registering transitions and writing actions.
"""

import logging
from enum import Enum
from functools import wraps
from typing import Any, Callable, Iterable, List, Optional, Sequence

from fsmengine.machine import StateMachine
from fsmengine.types import TransitionAction, TransitionEntry

logger = logging.getLogger(__name__)


def register_transitions(
    machine: StateMachine,
    rows: Iterable[Sequence[Any]],
) -> List[TransitionEntry]:
    """
    Register many transitions from a compact table.

    Each row is ``(source, target, event)`` or ``(source, target, event,
    action)``. ``target`` may be None for an internal transition.

    Args:
        machine: The machine to register on.
        rows: Transition rows, registered in order (later rows win).

    Returns:
        The stored entries, in row order.

    Raises:
        ValueError: If a row has fewer than 3 or more than 4 items.

    Example:
        register_transitions(sm, [
            (State.EMPTY, State.SHOW, Event.Select),
            (State.EDIT, State.SHOW, Event.Save, save_item),
            (State.SHOW, None, Event.Refresh, reload_fields),
        ])
    """
    entries = []
    for row in rows:
        if len(row) not in (3, 4):
            raise ValueError(
                f"Transition row must be (source, target, event[, action]), got {row!r}"
            )
        entries.append(machine.register_transition(*row))
    return entries


def ignore_params(func: Callable[[], Any]) -> TransitionAction:
    """
    Adapt a zero-argument callable into a transition action.

    Full transitions pass the ``execute`` params to their action; wrap
    callables that do not take them. The return value is passed through,
    so the wrapped callable may still override the target state.

    Usage:
        sm.register_transition(State.A, State.B, Event.Go, ignore_params(refresh))
    """

    @wraps(func)
    def wrapper(*params: Any) -> Optional[Enum]:
        return func()

    return wrapper


def log_action(func):
    """
    Decorator that adds debug logging around an action.

    Logs the action name, the params it received and any state it
    returned, at DEBUG level.

    Usage:
        @log_action
        def on_save(*params):
            ...
            return State.SHOW
    """

    @wraps(func)
    def wrapper(*params: Any) -> Any:
        name = getattr(func, "__name__", repr(func))
        logger.debug(f"{name}: Starting with {len(params)} params")
        result = func(*params)
        if isinstance(result, Enum):
            logger.debug(f"{name}: Complete, returned {result.name}")
        else:
            logger.debug(f"{name}: Complete")
        return result

    return wrapper
