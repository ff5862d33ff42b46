"""Pytest configuration and fixtures."""

import pytest

from content_negotiation.capabilities.negotiation import EXTENSION_ID

pytest_plugins = ["pytest_asyncio"]


def _initialize_params(features):
    return {
        "protocolVersion": "2025-11-25",
        "capabilities": {
            "sampling": {},
            "extensions": {EXTENSION_ID: {"features": features}},
        },
        "clientInfo": {"name": "test-client", "version": "1.0.0"},
    }


@pytest.fixture
def initialize_params():
    """Factory for initialize params declaring the given tags."""
    return _initialize_params


@pytest.fixture
def agent_tokens():
    """Tags declared by a typical agent client."""
    return ["agent", "sampling", "format=json", "verbosity=compact"]


@pytest.fixture
def human_tokens():
    """Tags declared by a typical interactive human client."""
    return ["human", "!mcp-capable", "interactive", "verbosity=standard", "format=markdown"]
