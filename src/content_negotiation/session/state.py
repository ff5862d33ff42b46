"""Per-session negotiation state machine."""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class NegotiationState(Enum):
    """
    Negotiation lifecycle states for one session.

    State transitions:
        UNINITIALIZED -> NEGOTIATED -> CLOSED
                     \\               /
                      -> CLOSED <----

    A session is closed when its connection closes, whether or not
    negotiation completed. There is no way back to UNINITIALIZED.
    """

    UNINITIALIZED = auto()
    NEGOTIATED = auto()
    CLOSED = auto()

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: NegotiationState, to_state: NegotiationState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


# Type for state transition callbacks
StateTransitionCallback = Callable[[NegotiationState, NegotiationState], None]


class NegotiationStateMachine:
    """
    Tracks one session's negotiation state.

    Enforces the single transition into NEGOTIATED and notifies
    listeners when transitions occur.
    """

    VALID_TRANSITIONS: dict[NegotiationState, list[NegotiationState]] = {
        NegotiationState.UNINITIALIZED: [
            NegotiationState.NEGOTIATED,
            NegotiationState.CLOSED,  # Closed before handshake completed
        ],
        NegotiationState.NEGOTIATED: [NegotiationState.CLOSED],
        NegotiationState.CLOSED: [],  # Terminal state
    }

    def __init__(
        self, initial_state: NegotiationState = NegotiationState.UNINITIALIZED
    ):
        self._state = initial_state
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> NegotiationState:
        """Current negotiation state."""
        return self._state

    @property
    def is_negotiated(self) -> bool:
        """Check if the handshake completed and the session is still open."""
        return self._state == NegotiationState.NEGOTIATED

    @property
    def is_closed(self) -> bool:
        return self._state == NegotiationState.CLOSED

    def can_transition_to(self, new_state: NegotiationState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition(self, new_state: NegotiationState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The target state.

        Raises:
            InvalidStateTransition: If the transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)

        old_state = self._state
        self._state = new_state

        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Error in state transition listener: {e}")

    def on_transition(self, callback: StateTransitionCallback) -> None:
        """
        Register a callback for state transitions.

        Args:
            callback: Function called with (old_state, new_state) on transitions.
        """
        self._listeners.append(callback)

    def __str__(self) -> str:
        return f"NegotiationStateMachine({self._state.name})"

    def __repr__(self) -> str:
        return f"NegotiationStateMachine(state={self._state!r})"
