"""Tests for the negotiation adapter and payload extraction."""

import pytest

from content_negotiation.capabilities import (
    EXTENSION_ID,
    NegotiationAdapter,
    SessionContext,
    advertise_support,
    extract_tags,
    session_id_from_headers,
    supported_marker,
)
from content_negotiation.config import NegotiationConfig
from content_negotiation.features import EMPTY_FEATURE_SET
from content_negotiation.session import NegotiationState, SingleSessionStore


class TestExtractTags:
    """Defensive extraction from untrusted payloads."""

    def test_initialize_params(self, initialize_params):
        assert extract_tags(initialize_params(["agent", "format=json"])) == [
            "agent",
            "format=json",
        ]

    def test_bare_capabilities(self):
        caps = {"extensions": {EXTENSION_ID: {"features": ["human"]}}}
        assert extract_tags(caps) == ["human"]

    def test_experimental_fallback(self):
        caps = {"experimental": {EXTENSION_ID: {"features": ["agent"]}}}
        assert extract_tags(caps) == ["agent"]
        assert extract_tags(caps, accept_experimental=False) == []

    def test_extensions_preferred_over_experimental(self):
        caps = {
            "extensions": {EXTENSION_ID: {"features": ["agent"]}},
            "experimental": {EXTENSION_ID: {"features": ["human"]}},
        }
        assert extract_tags(caps) == ["agent"]

    def test_custom_extension_id(self):
        caps = {"extensions": {"com.example/tags": {"features": ["agent"]}}}
        assert extract_tags(caps, extension_id="com.example/tags") == ["agent"]
        assert extract_tags(caps) == []

    def test_non_string_entries_skipped(self, initialize_params):
        payload = initialize_params(["agent", 3, None, {"x": 1}, "human"])
        assert extract_tags(payload) == ["agent", "human"]

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "agent",
            42,
            [],
            {},
            {"capabilities": None},
            {"capabilities": "agent"},
            {"capabilities": {}},
            {"capabilities": {"extensions": []}},
            {"capabilities": {"extensions": {EXTENSION_ID: True}}},
            {"capabilities": {"extensions": {EXTENSION_ID: {}}}},
            {"capabilities": {"extensions": {EXTENSION_ID: {"features": "agent"}}}},
            {"capabilities": {"extensions": {EXTENSION_ID: {"features": {"agent": 1}}}}},
        ],
    )
    def test_malformed_payloads_yield_empty(self, payload):
        assert extract_tags(payload) == []


class TestAdvertisement:
    """Support marker in the server's capabilities."""

    def test_marker_is_empty_object(self):
        assert supported_marker() == {}
        assert supported_marker() is not supported_marker()

    def test_advertise_adds_marker(self):
        caps = advertise_support({"tools": {"listChanged": False}})
        assert caps["tools"] == {"listChanged": False}
        assert caps["extensions"][EXTENSION_ID] == {}

    def test_advertise_keeps_existing_extensions(self):
        original = {"extensions": {"other": {"a": 1}}}
        caps = advertise_support(original)
        assert caps["extensions"]["other"] == {"a": 1}
        assert EXTENSION_ID not in original["extensions"]

    def test_advertise_from_nothing(self):
        assert advertise_support() == {"extensions": {EXTENSION_ID: {}}}


class TestSessionIdFromHeaders:
    """Session id lookup in request headers."""

    def test_case_insensitive(self):
        assert session_id_from_headers({"mcp-session-id": "abc"}) == "abc"
        assert session_id_from_headers({"Mcp-Session-Id": "abc"}) == "abc"

    def test_list_of_pairs(self):
        assert session_id_from_headers([("MCP-SESSION-ID", "abc")]) == "abc"

    def test_missing_or_blank(self):
        assert session_id_from_headers({}) is None
        assert session_id_from_headers({"Mcp-Session-Id": "  "}) is None
        assert session_id_from_headers(None) is None

    def test_context_from_headers(self):
        context = SessionContext.from_headers({"mcp-session-id": "s-1"})
        assert context.session_id == "s-1"


class TestNegotiationAdapter:
    """Connection lifecycle through the adapter."""

    @pytest.fixture
    def adapter(self):
        adapter = NegotiationAdapter()
        adapter.on_connection_open("s1")
        return adapter

    def test_full_lifecycle(self, adapter, initialize_params, agent_tokens):
        context = SessionContext("s1")
        adapter.on_connection_open("s1")
        assert adapter.get_features(context) is EMPTY_FEATURE_SET

        features = adapter.on_initialize("s1", initialize_params(agent_tokens))
        assert features.is_agent
        assert adapter.get_features(context) is features
        assert adapter.store.get_session("s1").state == NegotiationState.NEGOTIATED

        adapter.on_connection_close("s1")
        assert adapter.get_features(context) is EMPTY_FEATURE_SET

    def test_renegotiation_keeps_first(self, adapter, initialize_params):
        adapter.on_initialize("s1", initialize_params(["format=json"]))
        features = adapter.on_initialize("s1", initialize_params(["format=text"]))
        assert features.format == "json"
        assert adapter.get_features(SessionContext("s1")).format == "json"

    def test_legacy_client_gets_defaults(self, adapter):
        features = adapter.on_initialize("s1", {"capabilities": {"sampling": {}}})
        assert features.format == "markdown"
        assert features.verbosity == "standard"
        assert adapter.store.get_session("s1").state == NegotiationState.NEGOTIATED

    def test_unknown_session_context(self, adapter):
        assert adapter.get_features(SessionContext("ghost")) is EMPTY_FEATURE_SET
        assert adapter.get_features() is EMPTY_FEATURE_SET

    def test_single_connection_transport(self, initialize_params, human_tokens):
        adapter = NegotiationAdapter(store=SingleSessionStore())
        adapter.on_connection_open()
        adapter.on_initialize(None, initialize_params(human_tokens))
        assert adapter.get_features().is_human
        assert adapter.get_features(SessionContext()).is_interactive

    def test_unknown_tags_logged(self, adapter, initialize_params, caplog):
        with caplog.at_level("INFO", logger="content_negotiation.capabilities.negotiation"):
            adapter.on_initialize("s1", initialize_params(["agent", "sparkly"]))
        assert "sparkly" in caplog.text

    def test_unknown_tag_logging_disabled(self, initialize_params, caplog):
        adapter = NegotiationAdapter(config=NegotiationConfig(log_unknown_tags=False))
        adapter.on_connection_open("s1")
        with caplog.at_level("INFO", logger="content_negotiation.capabilities.negotiation"):
            adapter.on_initialize("s1", initialize_params(["sparkly"]))
        assert "unknown feature tags" not in caplog.text

    def test_configured_extension_id(self):
        config = NegotiationConfig(extension_id="com.example/tags")
        adapter = NegotiationAdapter(config=config)
        adapter.on_connection_open("s1")
        payload = {"capabilities": {"extensions": {"com.example/tags": {"features": ["agent"]}}}}
        assert adapter.on_initialize("s1", payload).is_agent
        assert adapter.advertise_support()["extensions"] == {"com.example/tags": {}}

    def test_malformed_tokens_are_dropped(self, adapter, initialize_params):
        features = adapter.on_initialize("s1", initialize_params(["agent", "bad tag", "!"]))
        assert features.tokens == ("agent",)

    def test_initialize_after_close_ignored(self, adapter, initialize_params):
        adapter.on_initialize("s1", initialize_params(["format=json"]))
        adapter.on_connection_close("s1")

        features = adapter.on_initialize("s1", initialize_params(["format=text"]))
        assert features is EMPTY_FEATURE_SET
        assert adapter.get_features(SessionContext("s1")) is EMPTY_FEATURE_SET
        assert adapter.store.session_count == 0

    def test_initialize_without_open_ignored(self, adapter, initialize_params):
        features = adapter.on_initialize("other", initialize_params(["agent"]))
        assert features is EMPTY_FEATURE_SET
        assert adapter.store.get_session("other") is None
