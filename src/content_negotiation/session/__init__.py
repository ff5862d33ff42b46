"""
Session-scoped negotiation state.

Holds one FeatureSet per connection, written once when the handshake
completes and read by any number of concurrent handlers.
"""

from content_negotiation.session.state import (
    NegotiationState,
    NegotiationStateMachine,
    InvalidStateTransition,
)
from content_negotiation.session.store import (
    Session,
    FeatureStore,
    SessionStore,
    SingleSessionStore,
)

__all__ = [
    # State
    "NegotiationState",
    "NegotiationStateMachine",
    "InvalidStateTransition",
    # Store
    "Session",
    "FeatureStore",
    "SessionStore",
    "SingleSessionStore",
]
