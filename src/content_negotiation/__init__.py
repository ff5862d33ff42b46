"""
Session-scoped feature tag negotiation for MCP servers.

A client declares feature tags once, in its initialize capabilities.
The server parses them into an immutable FeatureSet, stores it for the
session, and derives content-shaping decisions from it on every
operation.

Submodules:
- features: Tag grammar, parser and FeatureSet queries
- session: Per-session state machine and write-once store
- capabilities: Handshake adapter and support advertisement
- config: Configuration loading
"""

# Features
from content_negotiation.features import (
    TagKind,
    FeatureTag,
    OutputFormat,
    Verbosity,
    FeatureSet,
    EMPTY_FEATURE_SET,
    parse_tags,
    parse_token,
)

# Session
from content_negotiation.session import (
    NegotiationState,
    Session,
    FeatureStore,
    SessionStore,
    SingleSessionStore,
)

# Capabilities
from content_negotiation.capabilities import (
    NegotiationAdapter,
    SessionContext,
    extract_tags,
    advertise_support,
    supported_marker,
    EXTENSION_ID,
)

# Config
from content_negotiation.config import NegotiationConfig, load_negotiation_config

__all__ = [
    # Features
    "TagKind",
    "FeatureTag",
    "OutputFormat",
    "Verbosity",
    "FeatureSet",
    "EMPTY_FEATURE_SET",
    "parse_tags",
    "parse_token",
    # Session
    "NegotiationState",
    "Session",
    "FeatureStore",
    "SessionStore",
    "SingleSessionStore",
    # Capabilities
    "NegotiationAdapter",
    "SessionContext",
    "extract_tags",
    "advertise_support",
    "supported_marker",
    "EXTENSION_ID",
    # Config
    "NegotiationConfig",
    "load_negotiation_config",
]
