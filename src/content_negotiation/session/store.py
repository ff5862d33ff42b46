"""Session store holding one negotiated FeatureSet per connection."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from content_negotiation.features.feature_set import EMPTY_FEATURE_SET, FeatureSet
from content_negotiation.session.state import (
    InvalidStateTransition,
    NegotiationState,
    NegotiationStateMachine,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """
    One connection's negotiation record.

    Created empty when the connection opens, negotiated at most once,
    closed when the connection goes away.
    """

    id: str | None
    """Opaque session identifier (None for single-connection transports)."""

    created_at: datetime = field(default_factory=_utcnow)
    """When the connection was registered."""

    negotiated_at: datetime | None = None
    """When the handshake completed."""

    _features: FeatureSet = field(default=EMPTY_FEATURE_SET, repr=False)
    _machine: NegotiationStateMachine = field(
        default_factory=NegotiationStateMachine, repr=False
    )

    def __post_init__(self) -> None:
        self._machine.on_transition(self._log_transition)

    def _log_transition(
        self, old_state: NegotiationState, new_state: NegotiationState
    ) -> None:
        if new_state == NegotiationState.NEGOTIATED:
            logger.debug(f"Session {self.id!r} negotiated: {self._features}")
        else:
            logger.debug(f"Session {self.id!r}: {old_state} -> {new_state}")

    @property
    def features(self) -> FeatureSet:
        """Negotiated features, empty until the handshake completes."""
        return self._features

    @property
    def state(self) -> NegotiationState:
        return self._machine.state

    @property
    def state_machine(self) -> NegotiationStateMachine:
        return self._machine

    def negotiate(self, features: FeatureSet) -> None:
        """
        Record the negotiated features.

        Args:
            features: Features resolved from the handshake.

        Raises:
            InvalidStateTransition: If already negotiated or closed.
        """
        if not self._machine.can_transition_to(NegotiationState.NEGOTIATED):
            raise InvalidStateTransition(
                self._machine.state, NegotiationState.NEGOTIATED
            )
        self._features = features
        self.negotiated_at = _utcnow()
        self._machine.transition(NegotiationState.NEGOTIATED)

    def close(self) -> None:
        """
        Mark the session closed.

        Raises:
            InvalidStateTransition: If already closed.
        """
        self._machine.transition(NegotiationState.CLOSED)


class FeatureStore(ABC):
    """
    Abstract store of per-session feature sets.

    ``set`` is write-once per session and ``get`` never blocks or
    fails: unknown or not-yet-negotiated sessions read as the empty
    FeatureSet. Writes are serialized by a lock; reads take no lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._renegotiation_attempts = 0
        self._unopened_writes = 0

    @abstractmethod
    def _lookup(self, session_id: str | None) -> Session | None:
        """Find the live session for an id (no locking)."""

    @abstractmethod
    def _insert(self, session: Session) -> None:
        """Register a new session (called with the lock held)."""

    @abstractmethod
    def _discard(self, session_id: str | None) -> Session | None:
        """Unregister a session (called with the lock held)."""

    @abstractmethod
    def sessions(self) -> list[Session]:
        """Snapshot of live sessions."""

    @property
    def session_count(self) -> int:
        """Number of live sessions."""
        return len(self.sessions())

    def open(self, session_id: str | None = None) -> Session:
        """
        Register a connection with an empty FeatureSet.

        Opening an already-open session returns the existing record.

        Args:
            session_id: Connection's session identifier.

        Returns:
            The session record.
        """
        with self._lock:
            session = self._lookup(session_id)
            if session is None:
                session = Session(id=session_id)
                self._insert(session)
                logger.debug(f"Opened session {session_id!r}")
            return session

    def get(self, session_id: str | None = None) -> FeatureSet:
        """
        Get the negotiated features for a session.

        Args:
            session_id: Session identifier.

        Returns:
            The negotiated FeatureSet, or the empty FeatureSet if the
            session is unknown or has not negotiated yet.
        """
        session = self._lookup(session_id)
        if session is None:
            return EMPTY_FEATURE_SET
        return session.features

    def get_session(self, session_id: str | None = None) -> Session | None:
        """Get the session record, if the session is open."""
        return self._lookup(session_id)

    def set(self, session_id: str | None, features: FeatureSet) -> bool:
        """
        Store the negotiated features for a session, once.

        The session must have been opened with ``open`` and not yet
        removed. A second call for the same session is ignored and the
        first value is kept.

        Args:
            session_id: Session identifier.
            features: Features resolved from the handshake.

        Returns:
            True if stored, False if the session is not open or had
            already negotiated.
        """
        with self._lock:
            session = self._lookup(session_id)
            if session is None:
                self._unopened_writes += 1
                logger.warning(
                    f"Ignoring negotiation for unopened or closed session {session_id!r}"
                )
                return False
            try:
                session.negotiate(features)
            except InvalidStateTransition:
                self._renegotiation_attempts += 1
                logger.warning(
                    f"Ignoring renegotiation attempt for session {session_id!r}"
                )
                return False

        return True

    def remove(self, session_id: str | None = None) -> bool:
        """
        Release a session on connection teardown.

        Args:
            session_id: Session identifier.

        Returns:
            True if a session was removed.
        """
        with self._lock:
            session = self._discard(session_id)
            if session is None:
                return False
            session.close()

        return True

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        state_counts: dict[str, int] = {}
        for session in self.sessions():
            name = session.state.name.lower()
            state_counts[name] = state_counts.get(name, 0) + 1

        return {
            "total_sessions": sum(state_counts.values()),
            "by_state": state_counts,
            "renegotiation_attempts": self._renegotiation_attempts,
            "unopened_writes": self._unopened_writes,
        }


class SessionStore(FeatureStore):
    """Feature store keyed by session id, for multi-connection transports."""

    def __init__(self) -> None:
        super().__init__()
        self._sessions: dict[str | None, Session] = {}

    def _lookup(self, session_id: str | None) -> Session | None:
        return self._sessions.get(session_id)

    def _insert(self, session: Session) -> None:
        self._sessions[session.id] = session

    def _discard(self, session_id: str | None) -> Session | None:
        return self._sessions.pop(session_id, None)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())


class SingleSessionStore(FeatureStore):
    """
    Feature store with one fixed slot, for single-connection transports.

    Session ids are ignored: every call addresses the same slot.
    """

    def __init__(self) -> None:
        super().__init__()
        self._session: Session | None = None

    def _lookup(self, session_id: str | None) -> Session | None:
        return self._session

    def _insert(self, session: Session) -> None:
        self._session = session

    def _discard(self, session_id: str | None) -> Session | None:
        session, self._session = self._session, None
        return session

    def sessions(self) -> list[Session]:
        session = self._session
        return [session] if session is not None else []
