"""Feature tag value types and the standard tag vocabulary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TagKind(Enum):
    """Predicate shapes a declared tag may take."""

    PRESENCE = "presence"  # key
    NEGATION = "negation"  # !key
    EQUALITY = "equality"  # key=value


class OutputFormat(str, Enum):
    """Output formats a client may request with ``format=...``."""

    JSON = "json"
    TEXT = "text"
    MARKDOWN = "markdown"

    def __str__(self) -> str:
        return self.value


class Verbosity(str, Enum):
    """Verbosity levels a client may request with ``verbosity=...``."""

    COMPACT = "compact"
    STANDARD = "standard"
    VERBOSE = "verbose"

    def __str__(self) -> str:
        return self.value


DEFAULT_FORMAT = OutputFormat.MARKDOWN
DEFAULT_VERBOSITY = Verbosity.STANDARD

# Audience tags
TAG_AGENT = "agent"
TAG_HUMAN = "human"
TAG_MCP_CAPABLE = "mcp-capable"
TAG_INTERACTIVE = "interactive"

# Capability presence tags
TAG_SAMPLING = "sampling"
TAG_ELICITATION = "elicitation"
TAG_ROOTS = "roots"
TAG_TASKS = "tasks"

# Equality keys
KEY_FORMAT = "format"
KEY_VERBOSITY = "verbosity"

VENDOR_PREFIX = "x-"

STANDARD_PRESENCE_TAGS = frozenset(
    {
        TAG_AGENT,
        TAG_HUMAN,
        TAG_MCP_CAPABLE,
        TAG_INTERACTIVE,
        TAG_SAMPLING,
        TAG_ELICITATION,
        TAG_ROOTS,
        TAG_TASKS,
    }
)
STANDARD_EQUALITY_KEYS = frozenset({KEY_FORMAT, KEY_VERBOSITY})
STANDARD_KEYS = STANDARD_PRESENCE_TAGS | STANDARD_EQUALITY_KEYS


def is_vendor_key(key: str) -> bool:
    """Check if a key uses the vendor extension prefix."""
    return key.startswith(VENDOR_PREFIX)


def is_known_key(key: str) -> bool:
    """Check if a key is in the standard registry or is a vendor key."""
    return key in STANDARD_KEYS or is_vendor_key(key)


@dataclass(frozen=True)
class FeatureTag:
    """
    One parsed predicate derived from one declared token.

    Tags are produced by the parser only; a tag that exists is
    always well-formed.
    """

    kind: TagKind
    """Predicate shape."""

    key: str
    """Tag identifier, compared byte-for-byte."""

    value: str | None = None
    """Value for equality tags, None otherwise."""

    def to_token(self) -> str:
        """
        Render back to wire syntax.

        Returns:
            ``key``, ``!key`` or ``key=value``.
        """
        if self.kind is TagKind.NEGATION:
            return f"!{self.key}"
        if self.kind is TagKind.EQUALITY:
            return f"{self.key}={self.value}"
        return self.key

    def __str__(self) -> str:
        return self.to_token()
