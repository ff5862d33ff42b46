"""Immutable, queryable result of one session's feature negotiation."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from content_negotiation.features.types import (
    DEFAULT_FORMAT,
    DEFAULT_VERBOSITY,
    KEY_FORMAT,
    KEY_VERBOSITY,
    TAG_AGENT,
    TAG_ELICITATION,
    TAG_HUMAN,
    TAG_INTERACTIVE,
    TAG_MCP_CAPABLE,
    TAG_ROOTS,
    TAG_SAMPLING,
    TAG_TASKS,
    FeatureTag,
    OutputFormat,
    TagKind,
    Verbosity,
    is_known_key,
    is_vendor_key,
)

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class FeatureSet:
    """
    Parsed feature tags declared by a client for one session.

    A FeatureSet never changes after construction. All queries are pure
    and fall back to documented defaults, so the empty set is the
    canonical "no negotiation happened" value.

    Tie-breaks:
        - ``key=value`` lookups take the first token, in declaration order,
          whose value is acceptable. Invalid values are skipped.
        - A negated tag (``!key``) overrides a presence tag with the same key.
    """

    tags: tuple[FeatureTag, ...] = ()
    """Parsed tags in declaration order, duplicates kept."""

    _tokens: frozenset[str] = field(init=False, repr=False, compare=False)
    _present: frozenset[str] = field(init=False, repr=False, compare=False)
    _negated: frozenset[str] = field(init=False, repr=False, compare=False)
    _format: OutputFormat = field(init=False, repr=False, compare=False)
    _verbosity: Verbosity = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        tags = tuple(self.tags)
        object.__setattr__(self, "tags", tags)
        object.__setattr__(self, "_tokens", frozenset(t.to_token() for t in tags))
        object.__setattr__(
            self,
            "_present",
            frozenset(t.key for t in tags if t.kind is TagKind.PRESENCE),
        )
        object.__setattr__(
            self,
            "_negated",
            frozenset(t.key for t in tags if t.kind is TagKind.NEGATION),
        )
        object.__setattr__(
            self, "_format", self._resolve(KEY_FORMAT, OutputFormat, DEFAULT_FORMAT)
        )
        object.__setattr__(
            self,
            "_verbosity",
            self._resolve(KEY_VERBOSITY, Verbosity, DEFAULT_VERBOSITY),
        )

    @classmethod
    def from_tokens(cls, tokens: Iterable[str] | None) -> "FeatureSet":
        """
        Parse raw tokens into a FeatureSet.

        Args:
            tokens: Raw tokens in declaration order.

        Returns:
            FeatureSet of the well-formed tokens.
        """
        from content_negotiation.features.parser import parse_tags

        return parse_tags(tokens)

    def _equality_values(self, key: str) -> Iterator[str]:
        for tag in self.tags:
            if tag.kind is TagKind.EQUALITY and tag.key == key and tag.value:
                yield tag.value

    def _resolve(self, key: str, enum_type: type[E], default: E) -> E:
        for value in self._equality_values(key):
            try:
                return enum_type(value)
            except ValueError:
                continue
        return default

    # Raw membership

    @property
    def tokens(self) -> tuple[str, ...]:
        """Declared tokens in order (malformed tokens already dropped)."""
        return tuple(t.to_token() for t in self.tags)

    def has_tag(self, name: str) -> bool:
        """
        Literal tag membership test.

        True if ``name`` is a declared token verbatim (so ``"!interactive"``
        matches a declared negation), or if a presence or equality tag
        with key ``name`` was declared.

        Args:
            name: Token or key to look up.

        Returns:
            True if declared.
        """
        if name in self._tokens or name in self._present:
            return True
        return any(
            t.kind is TagKind.EQUALITY and t.key == name for t in self.tags
        )

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has_tag(name)

    def __len__(self) -> int:
        return len(self.tags)

    def __iter__(self) -> Iterator[FeatureTag]:
        return iter(self.tags)

    def __bool__(self) -> bool:
        return bool(self.tags)

    # Presence / negation semantics

    def is_negated(self, key: str) -> bool:
        """Check if ``!key`` was declared."""
        return key in self._negated

    def has_capability(self, key: str) -> bool:
        """
        Check a presence tag with negation applied.

        Args:
            key: Tag key.

        Returns:
            True if ``key`` is declared and ``!key`` is not.
        """
        return key in self._present and key not in self._negated

    @property
    def is_agent(self) -> bool:
        """Client declared ``agent``. Not exclusive with ``is_human``."""
        return TAG_AGENT in self._present

    @property
    def is_human(self) -> bool:
        """Client declared ``human``. Not exclusive with ``is_agent``."""
        return TAG_HUMAN in self._present

    @property
    def is_interactive(self) -> bool:
        """Client declared ``interactive`` and not ``!interactive``."""
        return self.has_capability(TAG_INTERACTIVE)

    @property
    def is_mcp_capable(self) -> bool:
        return self.has_capability(TAG_MCP_CAPABLE)

    @property
    def has_sampling(self) -> bool:
        return self.has_capability(TAG_SAMPLING)

    @property
    def has_elicitation(self) -> bool:
        return self.has_capability(TAG_ELICITATION)

    @property
    def has_roots(self) -> bool:
        return self.has_capability(TAG_ROOTS)

    @property
    def has_tasks(self) -> bool:
        return self.has_capability(TAG_TASKS)

    # Derived values

    @property
    def format(self) -> OutputFormat:
        """Requested output format, ``markdown`` if none is valid."""
        return self._format

    @property
    def verbosity(self) -> Verbosity:
        """Requested verbosity, ``standard`` if none is valid."""
        return self._verbosity

    def vendor_value(self, prefix: str) -> str | None:
        """
        Look up a ``key=value`` tag with an unconstrained value.

        Args:
            prefix: The tag key, e.g. ``"x-mycompany-hint"``.

        Returns:
            Value of the first matching tag, or None.
        """
        return next(self._equality_values(prefix), None)

    def vendor_tags(self) -> dict[str, str]:
        """Map each ``x-`` equality key to its first declared value."""
        result: dict[str, str] = {}
        for tag in self.tags:
            if tag.kind is TagKind.EQUALITY and is_vendor_key(tag.key):
                result.setdefault(tag.key, tag.value or "")
        return result

    def unknown_keys(self) -> list[str]:
        """
        List well-formed keys outside the standard vocabulary.

        Vendor keys are not reported. Order follows declaration,
        duplicates removed.
        """
        seen: dict[str, None] = {}
        for tag in self.tags:
            if not is_known_key(tag.key):
                seen.setdefault(tag.key, None)
        return list(seen)

    def to_dict(self) -> dict[str, Any]:
        """
        Summarize resolved values for logging and diagnostics.

        Returns:
            Dict suitable for JSON serialization.
        """
        return {
            "tokens": list(self.tokens),
            "format": self.format.value,
            "verbosity": self.verbosity.value,
            "agent": self.is_agent,
            "human": self.is_human,
            "interactive": self.is_interactive,
        }

    def __str__(self) -> str:
        return (
            f"FeatureSet(tokens={list(self.tokens)}, "
            f"format={self.format}, verbosity={self.verbosity})"
        )


EMPTY_FEATURE_SET = FeatureSet()
"""Canonical value for sessions that have not negotiated."""
