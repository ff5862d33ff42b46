"""Feature tag negotiation at the capability handshake boundary."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from content_negotiation.config import DEFAULT_EXTENSION_ID, NegotiationConfig
from content_negotiation.features.feature_set import FeatureSet
from content_negotiation.features.parser import parse_tags
from content_negotiation.session.store import FeatureStore, SessionStore

logger = logging.getLogger(__name__)

EXTENSION_ID = DEFAULT_EXTENSION_ID
MCP_SESSION_HEADER = "Mcp-Session-Id"

# Capability containers searched for the extension, in order
EXTENSIONS_KEY = "extensions"
EXPERIMENTAL_KEY = "experimental"
FEATURES_KEY = "features"


def supported_marker() -> dict[str, Any]:
    """Value advertised by the server to signal feature tag support."""
    return {}


def _tags_in_container(
    capabilities: Mapping[str, Any], container: str, extension_id: str
) -> list[str] | None:
    section = capabilities.get(container)
    if not isinstance(section, Mapping):
        return None
    extension = section.get(extension_id)
    if not isinstance(extension, Mapping):
        return None
    features = extension.get(FEATURES_KEY)
    if not isinstance(features, (list, tuple)):
        return None
    return [tag for tag in features if isinstance(tag, str)]


def extract_tags(
    payload: Any,
    extension_id: str = EXTENSION_ID,
    accept_experimental: bool = True,
) -> list[str]:
    """
    Pull the declared tag list out of a client capability payload.

    Accepts either the full initialize params (with a ``capabilities``
    object) or the bare capabilities object. Tags are read from
    ``capabilities.extensions[extension_id].features``, falling back to
    ``capabilities.experimental[extension_id].features``.

    The payload comes from an untrusted peer: anything missing or of
    the wrong type yields an empty list, and non-string entries are
    skipped.

    Args:
        payload: Decoded capability declaration.
        extension_id: Capability key of the feature tag extension.
        accept_experimental: Whether to search the experimental container.

    Returns:
        Declared tags in order.
    """
    if not isinstance(payload, Mapping):
        return []

    capabilities = payload.get("capabilities", payload)
    if not isinstance(capabilities, Mapping):
        return []

    containers = [EXTENSIONS_KEY]
    if accept_experimental:
        containers.append(EXPERIMENTAL_KEY)

    for container in containers:
        tags = _tags_in_container(capabilities, container, extension_id)
        if tags is not None:
            return tags

    return []


def advertise_support(
    server_capabilities: Mapping[str, Any] | None = None,
    extension_id: str = EXTENSION_ID,
) -> dict[str, Any]:
    """
    Add the support marker to a server capabilities object.

    Args:
        server_capabilities: Capabilities the server already declares.
        extension_id: Capability key of the feature tag extension.

    Returns:
        A new capabilities dict; the input is not modified.
    """
    caps = dict(server_capabilities or {})
    extensions = caps.get(EXTENSIONS_KEY)
    extensions = dict(extensions) if isinstance(extensions, Mapping) else {}
    extensions[extension_id] = supported_marker()
    caps[EXTENSIONS_KEY] = extensions
    return caps


def session_id_from_headers(headers: Any) -> str | None:
    """
    Read the session id from HTTP request headers.

    Args:
        headers: Header mapping or list of pairs (case-insensitive).

    Returns:
        The ``Mcp-Session-Id`` value, or None if absent or blank.
    """
    try:
        value = httpx.Headers(headers).get(MCP_SESSION_HEADER)
    except (TypeError, ValueError, AttributeError):
        return None
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class SessionContext:
    """Session information handed to operation handlers."""

    session_id: str | None = None
    """Session identifier, None for single-connection transports."""

    @classmethod
    def from_headers(cls, headers: Any) -> "SessionContext":
        """Create from HTTP request headers."""
        return cls(session_id=session_id_from_headers(headers))


class NegotiationAdapter:
    """
    Connects the handshake layer to the session store.

    The connection layer calls ``on_connection_open``, then
    ``on_initialize`` when the client's capability declaration arrives,
    and ``on_connection_close`` on teardown. Operation handlers call
    ``get_features`` as often as they like.

    Resolved features shape content only. They must not be used for
    authorization or authentication decisions.
    """

    def __init__(
        self,
        store: FeatureStore | None = None,
        config: NegotiationConfig | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            store: Session store (defaults to a keyed SessionStore).
            config: Negotiation configuration.
        """
        self.store = store if store is not None else SessionStore()
        self.config = config or NegotiationConfig()

    def on_connection_open(self, session_id: str | None = None) -> None:
        """Register a new connection with empty features."""
        self.store.open(session_id)

    def on_initialize(self, session_id: str | None, payload: Any) -> FeatureSet:
        """
        Negotiate features from the client's capability declaration.

        The session must have been registered with ``on_connection_open``.
        A declaration for a session that was never opened, or that has
        already closed, is ignored.

        Args:
            session_id: Session identifier.
            payload: Initialize params or client capabilities object.

        Returns:
            The FeatureSet in effect for the session. If the session had
            already negotiated, the first FeatureSet is returned; if it is
            not open, the empty FeatureSet.
        """
        tokens = extract_tags(
            payload,
            extension_id=self.config.extension_id,
            accept_experimental=self.config.accept_experimental,
        )
        features = parse_tags(tokens)

        dropped = len(tokens) - len(features)
        if dropped:
            logger.debug(
                f"Session {session_id!r}: dropped {dropped} malformed feature tags"
            )

        if self.config.log_unknown_tags:
            unknown = features.unknown_keys()
            if unknown:
                logger.info(f"Session {session_id!r}: unknown feature tags {unknown}")

        if not self.store.set(session_id, features):
            return self.store.get(session_id)

        logger.info(f"Session {session_id!r} negotiated features: {features.to_dict()}")
        return features

    def on_connection_close(self, session_id: str | None = None) -> None:
        """Release the session's store entry."""
        self.store.remove(session_id)

    def get_features(self, context: SessionContext | None = None) -> FeatureSet:
        """
        Get the features for a handler's session.

        Args:
            context: Session context (None reads the default slot).

        Returns:
            Negotiated FeatureSet, or the empty FeatureSet.
        """
        session_id = context.session_id if context is not None else None
        return self.store.get(session_id)

    def advertise_support(
        self, server_capabilities: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Add the support marker to the server's capabilities."""
        return advertise_support(server_capabilities, self.config.extension_id)
