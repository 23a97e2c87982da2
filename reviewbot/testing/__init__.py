"""reviewbot testing utilities.

Provides an in-memory mock client and fixtures for testing merge request
governance without a GitLab instance.
"""

from reviewbot.testing.fixtures import (
    create_mock_freeze_file,
    create_mock_group,
    create_mock_label_event,
    create_mock_merge_request,
    create_mock_merge_request_event,
    create_mock_note,
    create_mock_note_event,
    create_mock_policy,
    create_mock_project,
)
from reviewbot.testing.mock import MockCall, MockGitLabClient

__all__ = [
    # Mock client
    "MockGitLabClient",
    "MockCall",
    # Helper functions
    "create_mock_policy",
    "create_mock_freeze_file",
    "create_mock_project",
    "create_mock_group",
    "create_mock_merge_request",
    "create_mock_label_event",
    "create_mock_note",
    "create_mock_note_event",
    "create_mock_merge_request_event",
]
