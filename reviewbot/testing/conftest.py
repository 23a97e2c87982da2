"""
Pytest plugin for reviewbot testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
automatically discovered by pytest when this package is installed.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["reviewbot.testing.conftest"]
"""

# Re-export all fixtures for pytest auto-discovery
from reviewbot.testing.fixtures import (
    mock_client,
    mock_client_with_mr,
    sample_configuration,
    sample_merge_request,
    sample_merge_request_event,
    sample_note_event,
    sample_policy,
)

__all__ = [
    "mock_client",
    "mock_client_with_mr",
    "sample_policy",
    "sample_configuration",
    "sample_merge_request",
    "sample_note_event",
    "sample_merge_request_event",
]
