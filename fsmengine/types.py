"""
State machine data types and structures.

Defines the core types used by the engine:
- StateAction / TransitionAction: The two accepted action shapes
- TransitionEntry: One row of the transition table
- DispatchKind: How a single ``execute`` call was resolved
- DispatchRecord: Tracks dispatch history
- IndexPolicy: What happens to the index when the table changes
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from fsmengine.keys import ordinal

# Entry and exit actions take no arguments; their return value is ignored.
StateAction = Callable[[], Any]

# Transition actions receive the caller's ``execute`` params and may return
# a state member that replaces the configured target.
TransitionAction = Callable[..., Optional[Enum]]


class DispatchKind(Enum):
    """How the engine resolved one ``execute`` call."""

    FULL = "full"           # Target present, exit/entry fired
    INTERNAL = "internal"   # No target, state unchanged, no exit/entry
    IGNORED = "ignored"     # No transition registered for (state, event)


class IndexPolicy(Enum):
    """
    Behaviour of the transition index when the table changes after the
    first dispatch.
    """

    FROZEN = "frozen"     # Built once; late registrations need rebuild_index()
    REBUILD = "rebuild"   # Every registration invalidates the index
    SEALED = "sealed"     # Registration after the first dispatch raises


@dataclass(frozen=True)
class TransitionEntry:
    """
    One row of the transition table.

    Args:
        source: State the transition leaves from.
        target: State the transition leads to. ``None`` marks an internal
                transition that never changes state.
        trigger: Event that fires the transition.
        action: Optional transition action.

    Entries are immutable; register the pair again to change one.
    """

    source: Enum
    target: Optional[Enum]
    trigger: Enum
    action: Optional[TransitionAction] = None

    @property
    def internal(self) -> bool:
        """True if this entry never changes state."""
        return self.target is None

    @property
    def pair(self) -> tuple:
        """The (source, trigger) pair this entry is registered under."""
        return (self.source, self.trigger)

    def sort_key(self) -> Tuple[int, int]:
        """(event ordinal, state ordinal); sorts like the composite key."""
        return ordinal(self.trigger), ordinal(self.source)

    def __lt__(self, other: "TransitionEntry") -> bool:
        return self.sort_key() < other.sort_key()


@dataclass
class DispatchRecord:
    """
    Records the outcome of a single ``execute`` call.

    ``target`` is the state the machine is in after the call, which equals
    ``source`` for internal and ignored dispatches.
    """

    label: str
    source: Enum
    event: Enum
    target: Enum
    kind: DispatchKind
    timestamp: float = field(default_factory=time.time)

    @property
    def changed(self) -> bool:
        """True if the dispatch moved the machine to another state."""
        return self.target != self.source

    @property
    def ignored(self) -> bool:
        return self.kind == DispatchKind.IGNORED

    def to_dict(self) -> dict:
        """Serialise to a plain dictionary."""
        return {
            "label": self.label,
            "source": self.source.name,
            "event": self.event.name,
            "target": self.target.name,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }
