"""Tag grammar and parser.

Turns raw declared tokens into :class:`FeatureTag` predicates. Parsing is
total: malformed tokens are dropped, never raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from content_negotiation.features.feature_set import EMPTY_FEATURE_SET, FeatureSet
from content_negotiation.features.types import FeatureTag, TagKind

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_key(key: str) -> bool:
    """Check if a key matches the tag identifier grammar."""
    return KEY_PATTERN.fullmatch(key) is not None


def parse_token(token: object) -> FeatureTag | None:
    """
    Classify a single raw token.

    Args:
        token: Raw token as declared by the client.

    Returns:
        The parsed tag, or None if the token is malformed.
    """
    if not isinstance(token, str):
        return None

    if token.startswith("!"):
        key = token[1:]
        if is_valid_key(key):
            return FeatureTag(kind=TagKind.NEGATION, key=key)
        return None

    if "=" in token:
        key, _, value = token.partition("=")
        if value and is_valid_key(key):
            return FeatureTag(kind=TagKind.EQUALITY, key=key, value=value)
        return None

    if is_valid_key(token):
        return FeatureTag(kind=TagKind.PRESENCE, key=token)

    return None


def parse_tags(tokens: Iterable[str] | None) -> FeatureSet:
    """
    Parse declared tokens into a FeatureSet.

    Declaration order and duplicates are preserved. Malformed tokens
    are dropped and logged at debug level.

    Args:
        tokens: Raw tokens in declaration order.

    Returns:
        FeatureSet of the valid tokens (empty if none are valid).
    """
    if tokens is None or isinstance(tokens, (str, bytes)):
        return EMPTY_FEATURE_SET

    try:
        items = list(tokens)
    except TypeError:
        return EMPTY_FEATURE_SET

    tags: list[FeatureTag] = []
    for token in items:
        tag = parse_token(token)
        if tag is None:
            logger.debug(f"Dropped malformed feature tag: {token!r}")
            continue
        tags.append(tag)

    if not tags:
        return EMPTY_FEATURE_SET
    return FeatureSet(tags)
