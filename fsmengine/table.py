"""
Transition table and transition index.

The table is the authoritative store, keyed by (source, trigger) pair.
The index is a snapshot of the table keyed by composite int key, built
in one pass and used for dispatch lookups.
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from fsmengine.keys import check_state, transition_key
from fsmengine.types import TransitionAction, TransitionEntry

logger = logging.getLogger(__name__)


class TransitionTable:
    """
    Mapping of (source state, trigger event) to a TransitionEntry.

    At most one entry exists per pair; registering the same pair again
    replaces the previous entry.
    """

    def __init__(self, shift: Optional[int] = None):
        self._shift = shift
        self._entries: Dict[Tuple[Enum, Enum], TransitionEntry] = {}

    def register(
        self,
        source: Enum,
        target: Optional[Enum],
        trigger: Enum,
        action: Optional[TransitionAction] = None,
    ) -> TransitionEntry:
        """
        Insert or overwrite the entry for (source, trigger).

        Args:
            source: State the transition leaves from.
            target: Target state, or None for an internal transition.
            trigger: Event that fires the transition.
            action: Optional transition action.

        Returns:
            The stored entry.

        Raises:
            TypeError: If a state or event is not an Enum member, or the
                       action is not callable.
            KeyOverflowError: If the source or target ordinal does not fit
                              the key.
        """
        if target is not None and not isinstance(target, Enum):
            raise TypeError(f"Target must be an Enum member or None, got {target!r}")
        if action is not None and not callable(action):
            raise TypeError(f"Transition action must be callable, got {action!r}")
        # Validates both members and the key range before storing.
        transition_key(source, trigger, self._shift)
        if target is not None:
            check_state(target, self._shift)

        entry = TransitionEntry(source, target, trigger, action)
        if entry.pair in self._entries:
            logger.debug(f"Replacing transition {source.name}--{trigger.name}")
        self._entries[entry.pair] = entry
        return entry

    def get(self, source: Enum, trigger: Enum) -> Optional[TransitionEntry]:
        """Return the entry for (source, trigger), or None."""
        return self._entries.get((source, trigger))

    def entries(self) -> List[TransitionEntry]:
        """Return all entries ordered by composite key."""
        return sorted(self._entries.values())

    def as_mapping(self) -> Mapping[Tuple[Enum, Enum], TransitionEntry]:
        """Read-only live view keyed by (source, trigger)."""
        return MappingProxyType(self._entries)

    def events_for(self, state: Enum) -> List[Enum]:
        """Return the events with a registered transition out of ``state``."""
        return [e.trigger for e in self.entries() if e.source == state]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TransitionEntry]:
        return iter(self._entries.values())

    def __contains__(self, pair: object) -> bool:
        return pair in self._entries


class TransitionIndex:
    """
    Composite-key lookup built from a TransitionTable.

    The index holds the entries as they were when ``build`` ran; changes
    to the table afterwards are not visible until the next ``build``.
    """

    def __init__(self, shift: Optional[int] = None):
        self._shift = shift
        self._map: Dict[int, TransitionEntry] = {}

    def build(self, table: TransitionTable) -> None:
        """Replace the index contents with a scan of ``table``."""
        self._map = {
            transition_key(entry.source, entry.trigger, self._shift): entry
            for entry in table
        }

    def lookup(self, state: Enum, event: Enum) -> Optional[TransitionEntry]:
        """Return the entry for (state, event), or None if not indexed."""
        return self._map.get(transition_key(state, event, self._shift))

    def clear(self) -> None:
        self._map = {}

    def __len__(self) -> int:
        return len(self._map)

    def __bool__(self) -> bool:
        return bool(self._map)
