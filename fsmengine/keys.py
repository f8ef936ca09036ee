"""
Composite transition keys.

A (state, event) pair is packed into a single int:
``ordinal(state) + (ordinal(event) << shift)``. The state ordinal
must stay below ``1 << shift`` or it would bleed into the event bits.

``shift`` defaults to the module-level ``KEY_SHIFT``, read at call time.
"""

from enum import Enum
from typing import Dict, Optional, Tuple
from weakref import WeakKeyDictionary

from fsmengine.exceptions import KeyOverflowError

KEY_SHIFT: int = 12
MAX_STATES: int = 1 << KEY_SHIFT

# Values hold member names only, so cached enum classes can still be collected.
_POSITIONS: "WeakKeyDictionary[type, Dict[str, int]]" = WeakKeyDictionary()


def _positions(enum_cls: type) -> Dict[str, int]:
    positions = _POSITIONS.get(enum_cls)
    if positions is None:
        positions = {member.name: i for i, member in enumerate(enum_cls)}
        _POSITIONS[enum_cls] = positions
    return positions


def _resolve_shift(shift: Optional[int]) -> int:
    return KEY_SHIFT if shift is None else shift


def ordinal(member: Enum) -> int:
    """
    Return the zero-based definition position of an enum member.

    Aliases resolve to their canonical member's position.

    Raises:
        TypeError: If ``member`` is not an Enum member.
    """
    if not isinstance(member, Enum):
        raise TypeError(f"Expected an Enum member, got {member!r}")
    return _positions(type(member))[member.name]


def check_state(state: Enum, shift: Optional[int] = None) -> int:
    """
    Return the ordinal of ``state`` after checking it fits in a key.

    Raises:
        KeyOverflowError: If the state ordinal needs more than ``shift`` bits.
    """
    shift = _resolve_shift(shift)
    st = ordinal(state)
    if st >= 1 << shift:
        raise KeyOverflowError(
            f"State {state.name} has ordinal {st}, "
            f"composite keys hold at most {1 << shift} states"
        )
    return st


def transition_key(state: Enum, event: Enum, shift: Optional[int] = None) -> int:
    """
    Calculate the composite key for a state and a triggering event.

    Raises:
        KeyOverflowError: If the state ordinal needs more than ``shift`` bits.
    """
    shift = _resolve_shift(shift)
    return check_state(state, shift) + (ordinal(event) << shift)


def split_key(key: int, shift: Optional[int] = None) -> Tuple[int, int]:
    """Return the (state ordinal, event ordinal) packed in ``key``."""
    shift = _resolve_shift(shift)
    return key & ((1 << shift) - 1), key >> shift
