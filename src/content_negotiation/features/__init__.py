"""
Feature tag grammar and resolution.

Parses client-declared feature tags and answers content-shaping
queries (format, verbosity, audience, capability gates).
"""

from content_negotiation.features.types import (
    TagKind,
    FeatureTag,
    OutputFormat,
    Verbosity,
    DEFAULT_FORMAT,
    DEFAULT_VERBOSITY,
    VENDOR_PREFIX,
    STANDARD_KEYS,
    is_known_key,
    is_vendor_key,
)
from content_negotiation.features.feature_set import FeatureSet, EMPTY_FEATURE_SET
from content_negotiation.features.parser import parse_tags, parse_token, is_valid_key

__all__ = [
    # Types
    "TagKind",
    "FeatureTag",
    "OutputFormat",
    "Verbosity",
    "DEFAULT_FORMAT",
    "DEFAULT_VERBOSITY",
    "VENDOR_PREFIX",
    "STANDARD_KEYS",
    "is_known_key",
    "is_vendor_key",
    # Feature sets
    "FeatureSet",
    "EMPTY_FEATURE_SET",
    # Parsing
    "parse_tags",
    "parse_token",
    "is_valid_key",
]
