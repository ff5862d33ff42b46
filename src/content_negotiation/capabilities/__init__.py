"""
Feature Tag Negotiation.

Extracts client-declared feature tags from the capability handshake
and advertises server support for them.
"""

from content_negotiation.capabilities.negotiation import (
    NegotiationAdapter,
    SessionContext,
    extract_tags,
    advertise_support,
    supported_marker,
    session_id_from_headers,
    EXTENSION_ID,
    MCP_SESSION_HEADER,
)

__all__ = [
    "NegotiationAdapter",
    "SessionContext",
    "extract_tags",
    "advertise_support",
    "supported_marker",
    "session_id_from_headers",
    "EXTENSION_ID",
    "MCP_SESSION_HEADER",
]
