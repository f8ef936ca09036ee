"""
StateMachine — an embeddable, event-driven finite state machine engine.

Features:
- States and events as Enum members
- Transitions keyed by (current state, event), last registration wins
- Exit actions run when leaving a state, entry actions when entering one
- Transition actions run between exit and entry; they receive the
  ``execute`` params and may return a state that replaces the target
- Internal transitions (no target) run their action without changing
  state or firing exit/entry actions
- Events without a registered transition are ignored and logged
- Bounded dispatch history (deque) for debugging and introspection

Usage:
    from enum import Enum
    from fsmengine import StateMachine

    class State(Enum):
        IDLE = 1
        RUNNING = 2

    class Event(Enum):
        Start = 1
        Stop = 2

    sm = StateMachine(State.IDLE, "worker")
    sm.set_entry_action(State.RUNNING, lambda: print("running"))
    sm.register_transition(State.IDLE, State.RUNNING, Event.Start)
    sm.register_transition(State.RUNNING, State.IDLE, Event.Stop)

    sm.execute(Event.Start)   # -> State.RUNNING
    sm.execute(Event.Start)   # ignored, stays State.RUNNING
"""

import logging
from collections import deque
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from fsmengine import keys
from fsmengine.exceptions import MachineSealedError, TransitionError
from fsmengine.table import TransitionIndex, TransitionTable
from fsmengine.types import (
    DispatchKind,
    DispatchRecord,
    IndexPolicy,
    StateAction,
    TransitionAction,
    TransitionEntry,
)

logger = logging.getLogger(__name__)


class StateMachine:
    """
    Finite state machine over caller-defined State and Event enums.

    An instance is owned by a single caller and is not thread safe:
    ``execute`` mutates the current state and may build the index lazily.

    Args:
        initial_state: State the machine starts in.
        label: Identifies the instance in log lines and history.
        index_policy: How late transition registrations are handled, see
                      :class:`IndexPolicy` (default: FROZEN).
        transactional: If True, run the transition action before the exit
                       action and only commit the new state once exit and
                       entry actions succeeded. Failures are raised as
                       :class:`TransitionError`.
        history_size: Number of dispatch records kept (default: HISTORY_SIZE).

    Attributes:
        HISTORY_SIZE: Default bound of the dispatch history (default: 100).
        KEY_SHIFT: Bit width of the state part of composite keys. None means
                   the value of ``fsmengine.keys.KEY_SHIFT`` at construction.
    """

    HISTORY_SIZE: int = 100
    KEY_SHIFT: Optional[int] = None

    def __init__(
        self,
        initial_state: Enum,
        label: str = "default",
        *,
        index_policy: Union[IndexPolicy, str] = IndexPolicy.FROZEN,
        transactional: bool = False,
        history_size: Optional[int] = None,
    ):
        if not isinstance(initial_state, Enum):
            raise TypeError(f"Initial state must be an Enum member, got {initial_state!r}")

        self._shift: int = keys.KEY_SHIFT if self.KEY_SHIFT is None else self.KEY_SHIFT
        keys.check_state(initial_state, self._shift)

        self._state_type: type = type(initial_state)
        self._current_state: Enum = initial_state
        self._label: str = label

        self._index_policy = IndexPolicy(index_policy)
        self._transactional = transactional

        self._table = TransitionTable(self._shift)
        self._index = TransitionIndex(self._shift)
        self._on_entry: Dict[Enum, StateAction] = {}
        self._on_exit: Dict[Enum, StateAction] = {}

        # Set on the first execute(); SEALED refuses registrations afterwards.
        self._dispatched: bool = False

        if history_size is None:
            history_size = self.HISTORY_SIZE
        self._history: deque = deque(maxlen=history_size)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def current_state(self) -> Enum:
        return self._current_state

    @property
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, value: str) -> None:
        self._label = value

    @property
    def index_policy(self) -> IndexPolicy:
        return self._index_policy

    @property
    def transactional(self) -> bool:
        return self._transactional

    @property
    def on_entry(self) -> Mapping[Enum, StateAction]:
        """Read-only view of the registered entry actions."""
        return MappingProxyType(self._on_entry)

    @property
    def on_exit(self) -> Mapping[Enum, StateAction]:
        """Read-only view of the registered exit actions."""
        return MappingProxyType(self._on_exit)

    @property
    def transitions(self) -> Mapping[Tuple[Enum, Enum], TransitionEntry]:
        """Read-only view of the transition table, keyed by (source, event)."""
        return self._table.as_mapping()

    @property
    def index_built(self) -> bool:
        """True if the dispatch index currently holds entries."""
        return bool(self._index)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_entry_action(self, state: Enum, action: StateAction) -> None:
        """Register the zero-argument action run on entering ``state``."""
        self._set_state_action(self._on_entry, "Entry", state, action)

    def set_exit_action(self, state: Enum, action: StateAction) -> None:
        """Register the zero-argument action run on leaving ``state``."""
        self._set_state_action(self._on_exit, "Exit", state, action)

    def _set_state_action(
        self, registry: Dict[Enum, StateAction], kind: str, state: Enum, action: StateAction
    ) -> None:
        if not isinstance(state, Enum):
            raise TypeError(f"{kind} action state must be an Enum member, got {state!r}")
        if not callable(action):
            raise TypeError(f"{kind} action for {state.name} must be callable, got {action!r}")
        registry[state] = action

    def register_transition(
        self,
        source: Enum,
        target: Optional[Enum],
        event: Enum,
        action: Optional[TransitionAction] = None,
    ) -> TransitionEntry:
        """
        Register the transition fired by ``event`` in ``source``.

        A previous registration for the same (source, event) is replaced.

        Args:
            source: State the transition leaves from.
            target: Next state, or None for an internal transition.
            event: Triggering event.
            action: Optional transition action. For full transitions it is
                    called with the ``execute`` params and may return a
                    state overriding ``target``. For internal transitions it
                    is called without arguments and its result is ignored.

        Returns:
            The stored TransitionEntry.

        Raises:
            MachineSealedError: If the policy is SEALED and the machine has
                                already dispatched an event.
            TypeError: On non-Enum states/events or a non-callable action.
            KeyOverflowError: If the source or target does not fit in a
                              composite key.
        """
        if self._dispatched and self._index_policy == IndexPolicy.SEALED:
            raise MachineSealedError(
                f"StateMachine {self._label} is sealed; transitions cannot "
                f"be registered after the first dispatch"
            )

        entry = self._table.register(source, target, event, action)

        if self._index:
            if self._index_policy == IndexPolicy.REBUILD:
                self._index.clear()
            else:
                logger.warning(
                    f"Transition {source.name}--{event.name} registered on "
                    f"{self._label} after the index was built; it takes effect "
                    f"only after rebuild_index()"
                )
        return entry

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def rebuild_index(self) -> None:
        """Rebuild the dispatch index from the current transition table."""
        self._index.build(self._table)
        logger.info(f"Index built for {self._label}: {len(self._index)} transitions")

    def _ensure_index(self) -> None:
        # An index built from an empty table counts as not built.
        if not self._index and len(self._table):
            self.rebuild_index()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def execute(self, event: Enum, *params: Any) -> Enum:
        """
        Dispatch ``event`` in the current state.

        For a full transition the exit action of the current state runs,
        then the transition action with ``params``, then the entry action
        of the next state, and finally the state is updated. For an
        internal transition only the transition action runs, without
        arguments. Unknown (state, event) pairs are ignored.

        Action failures propagate unmodified (or as TransitionError in
        transactional mode). Without transactional mode, effects of actions
        that ran before the failure are not undone and the state is not
        advanced.

        Args:
            event: Triggering event.
            *params: Passed to the transition action of a full transition.

        Returns:
            The current state after dispatch.
        """
        if not isinstance(event, Enum):
            raise TypeError(f"Event must be an Enum member, got {event!r}")

        self._ensure_index()
        self._dispatched = True

        source = self._current_state
        entry = self._index.lookup(source, event)

        if entry is None:
            record = self._record(source, event, source, DispatchKind.IGNORED)
            logger.info(
                f"Ignored event {event.name} in state {source.name} ({self._label})",
                extra={"fsm": record.to_dict()},
            )
            return source

        if entry.internal:
            if entry.action is not None:
                entry.action()
            record = self._record(source, event, source, DispatchKind.INTERNAL)
            logger.info(
                f"Inner Transition {self._label}: "
                f"{source.name}--{event.name}->{source.name}",
                extra={"fsm": record.to_dict()},
            )
            return source

        if self._transactional:
            next_state = self._run_transactional(entry, event, params)
        else:
            next_state = self._run_eager(entry, params)

        self._current_state = next_state
        record = self._record(source, event, next_state, DispatchKind.FULL)
        logger.info(
            f"Transition {self._label}: {source.name}--{event.name}->{next_state.name}",
            extra={"fsm": record.to_dict()},
        )
        return next_state

    def _run_eager(self, entry: TransitionEntry, params: tuple) -> Enum:
        """Exit, action, entry; failures propagate as raised."""
        self._fire(self._on_exit, entry.source)
        result = entry.action(*params) if entry.action is not None else None
        next_state = self._resolve_target(entry, result)
        self._fire(self._on_entry, next_state)
        return next_state

    def _run_transactional(self, entry: TransitionEntry, event: Enum, params: tuple) -> Enum:
        """Action, exit, entry; any failure leaves the state unchanged."""
        stage = "action"
        try:
            result = entry.action(*params) if entry.action is not None else None
            next_state = self._resolve_target(entry, result)
            stage = "exit"
            self._fire(self._on_exit, entry.source)
            stage = "entry"
            self._fire(self._on_entry, next_state)
        except Exception as e:
            logger.error(
                f"Transition {self._label}: {stage} action failed on "
                f"{entry.source.name}--{event.name}, staying in {entry.source.name}",
                exc_info=True,
            )
            raise TransitionError(entry.source, event, stage) from e
        return next_state

    def _resolve_target(self, entry: TransitionEntry, result: Any) -> Enum:
        """
        A returned member of the state enum overrides the configured target.

        Raises:
            KeyOverflowError: If the override does not fit in a composite key.
        """
        if isinstance(result, self._state_type):
            keys.check_state(result, self._shift)
            return result
        return entry.target

    @staticmethod
    def _fire(registry: Dict[Enum, StateAction], state: Enum) -> None:
        action = registry.get(state)
        if action is not None:
            action()

    def _record(
        self, source: Enum, event: Enum, target: Enum, kind: DispatchKind
    ) -> DispatchRecord:
        record = DispatchRecord(
            label=self._label, source=source, event=event, target=target, kind=kind
        )
        self._history.append(record)
        return record

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_current_state(self) -> Enum:
        """Return the current state."""
        return self._current_state

    def can_handle(self, event: Enum) -> bool:
        """
        Check whether ``event`` would fire a transition in the current state.

        Uses the index when it is built, so a FROZEN machine reports what
        ``execute`` would actually do.
        """
        if self._index:
            return self._index.lookup(self._current_state, event) is not None
        return (self._current_state, event) in self._table

    def defined_events(self, state: Optional[Enum] = None) -> List[Enum]:
        """Return the events registered for ``state`` (default: current state)."""
        if state is None:
            state = self._current_state
        return self._table.events_for(state)

    def get_history(self, last_n: Optional[int] = None) -> List[DispatchRecord]:
        """
        Return dispatch history.

        Args:
            last_n: If provided, return only the last N entries.
        """
        history = list(self._history)
        return history[-last_n:] if last_n is not None else history

    def transition_key(self, state: Enum, event: Enum) -> int:
        """Composite int key of (state, event) with this machine's shift."""
        return keys.transition_key(state, event, self._shift)

    def __repr__(self) -> str:
        return f"<StateMachine {self._label!r} in {self._current_state.name}>"
