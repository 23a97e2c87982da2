"""
Pytest fixtures for reviewbot testing.

Provides common fixtures and builders for testing merge request
governance against the in-memory MockGitLabClient.
"""

import re
from datetime import datetime, timezone
from typing import Any, Generator

import pytest

from reviewbot.config import (
    DEFAULT_SIG_DIR_PATTERN,
    Configuration,
    FreezeFile,
    PolicyConfig,
)
from reviewbot.testing.mock import MockGitLabClient
from reviewbot.types.events import MergeRequestEvent, NoteEvent
from reviewbot.types.merge_requests import LabelEvent, MergeRequest, Note
from reviewbot.types.projects import Group, Project

BOT_USERNAME = "review-bot"
PROJECT_ID = 1
MR_IID = 7
AUTHOR_ID = 100
AUTHOR_USERNAME = "author"
REVIEWER_ID = 200
REVIEWER_USERNAME = "reviewer"
PATH_WITH_NAMESPACE = "community/website"


# ============================================================================
# Mock Client Fixtures
# ============================================================================


@pytest.fixture
def mock_client() -> Generator[MockGitLabClient, None, None]:
    """
    Provide a MockGitLabClient acting as the bot account.

    Example:
        ```python
        def test_my_feature(mock_client):
            mock_client.merge_requests.add_merge_request(create_mock_merge_request())
            my_function(mock_client)
            assert mock_client.was_called("merge_requests.merge")
        ```
    """
    client = MockGitLabClient(username=BOT_USERNAME)
    yield client
    client.reset()


@pytest.fixture
def mock_client_with_mr(mock_client: MockGitLabClient) -> MockGitLabClient:
    """
    Provide a MockGitLabClient seeded with a project, an open merge
    request and a reviewer holding developer access.
    """
    mock_client.projects.add_project(create_mock_project())
    mock_client.projects.add_member(PROJECT_ID, REVIEWER_ID, access_level=30)
    mock_client.merge_requests.add_merge_request(
        create_mock_merge_request(),
        changes=["sig/infra/ci.yaml"],
    )
    return mock_client


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_policy() -> PolicyConfig:
    """Provide a policy governing the community organization."""
    return create_mock_policy()


@pytest.fixture
def sample_configuration(sample_policy: PolicyConfig) -> Configuration:
    return Configuration(bot_username=BOT_USERNAME, config_items=(sample_policy,))


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def sample_merge_request() -> MergeRequest:
    return create_mock_merge_request()


@pytest.fixture
def sample_note_event() -> NoteEvent:
    """Provide a `/lgtm` comment by the reviewer."""
    return create_mock_note_event(body="/lgtm")


@pytest.fixture
def sample_merge_request_event() -> MergeRequestEvent:
    """Provide a push of new commits to the source branch."""
    return create_mock_merge_request_event(action="update", oldrev="abc123")


# ============================================================================
# Helper Functions
# ============================================================================


def create_mock_policy(**kwargs: Any) -> PolicyConfig:
    """
    Create a PolicyConfig with customizable fields.

    Args:
        **kwargs: Fields to override; sig_dir_pattern may be a string

    Returns:
        PolicyConfig object
    """
    defaults: dict[str, Any] = {
        "repos": ("community",),
        "lgtm_counts_required": 1,
        "sig_dir_pattern": DEFAULT_SIG_DIR_PATTERN,
    }
    defaults.update(kwargs)
    if isinstance(defaults["sig_dir_pattern"], str):
        defaults["sig_dir_pattern"] = re.compile(defaults["sig_dir_pattern"])
    defaults["freeze_file"] = tuple(defaults.get("freeze_file", ()))
    return PolicyConfig(**defaults)


def create_mock_freeze_file(**kwargs: Any) -> FreezeFile:
    defaults = {
        "owner": "infra",
        "repo": "release",
        "path": "freeze.yaml",
        "branch": "master",
    }
    defaults.update(kwargs)
    return FreezeFile(**defaults)


def create_mock_project(
    project_id: int = PROJECT_ID,
    path_with_namespace: str = PATH_WITH_NAMESPACE,
    **kwargs: Any,
) -> Project:
    """
    Create a Project with customizable fields.

    Args:
        project_id: Project ID
        path_with_namespace: Full project path
        **kwargs: Additional fields to override

    Returns:
        Project object
    """
    name = path_with_namespace.rpartition("/")[2]
    defaults = {
        "name": name,
        "path": name,
        "default_branch": "master",
    }
    defaults.update(kwargs)
    return Project(
        project_id=project_id,
        path_with_namespace=path_with_namespace,
        **defaults,
    )


def create_mock_group(group_id: int = 10, name: str = "infra", **kwargs: Any) -> Group:
    defaults = {"path": name, "full_path": name}
    defaults.update(kwargs)
    return Group(group_id=group_id, name=name, **defaults)


def create_mock_merge_request(
    project_id: int = PROJECT_ID,
    iid: int = MR_IID,
    **kwargs: Any,
) -> MergeRequest:
    """
    Create an open, conflict-free MergeRequest with customizable fields.

    Args:
        project_id: Project ID
        iid: Merge request iid
        **kwargs: Additional fields to override

    Returns:
        MergeRequest object
    """
    defaults: dict[str, Any] = {
        "title": "Update CI configuration",
        "description": "Bump runner image",
        "state": "opened",
        "author_id": AUTHOR_ID,
        "author_username": AUTHOR_USERNAME,
        "source_branch": "feature",
        "target_branch": "master",
        "merge_status": "can_be_merged",
        "labels": [],
        "assignee_ids": [],
        "reviewer_ids": [],
        "created_at": datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    defaults["labels"] = list(defaults["labels"])
    return MergeRequest(project_id=project_id, iid=iid, **defaults)


def create_mock_label_event(
    label: str = "lgtm",
    username: str = BOT_USERNAME,
    action: str = "add",
    **kwargs: Any,
) -> LabelEvent:
    defaults: dict[str, Any] = {
        "event_id": 1,
        "created_at": datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    return LabelEvent(label=label, action=action, username=username, **defaults)


def create_mock_note(
    body: str = "/lgtm",
    author_username: str = REVIEWER_USERNAME,
    edited: bool = False,
    **kwargs: Any,
) -> Note:
    """
    Create a Note with customizable fields.

    Args:
        body: Comment text
        author_username: Commenter
        edited: Give the note an updated_at later than created_at
        **kwargs: Additional fields to override

    Returns:
        Note object
    """
    created = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    defaults: dict[str, Any] = {
        "note_id": 1,
        "author_id": REVIEWER_ID,
        "created_at": created,
        "updated_at": created.replace(minute=5) if edited else created,
        "system": False,
    }
    defaults.update(kwargs)
    return Note(body=body, author_username=author_username, **defaults)


def create_mock_note_event(
    body: str = "/lgtm",
    actor_id: int = REVIEWER_ID,
    actor_username: str = REVIEWER_USERNAME,
    **kwargs: Any,
) -> NoteEvent:
    defaults: dict[str, Any] = {
        "project_id": PROJECT_ID,
        "path_with_namespace": PATH_WITH_NAMESPACE,
        "mr_iid": MR_IID,
        "mr_author_id": AUTHOR_ID,
        "mr_state": "opened",
        "target_branch": "master",
        "note_id": 1,
    }
    defaults.update(kwargs)
    return NoteEvent(body=body, actor_id=actor_id, actor_username=actor_username, **defaults)


def create_mock_merge_request_event(
    action: str = "open",
    actor_id: int = AUTHOR_ID,
    actor_username: str = AUTHOR_USERNAME,
    **kwargs: Any,
) -> MergeRequestEvent:
    defaults: dict[str, Any] = {
        "project_id": PROJECT_ID,
        "path_with_namespace": PATH_WITH_NAMESPACE,
        "mr_iid": MR_IID,
        "mr_author_id": AUTHOR_ID,
        "mr_state": "opened",
        "target_branch": "master",
        "oldrev": None,
        "assignee_ids": (),
        "changed_fields": frozenset(),
    }
    defaults.update(kwargs)
    return MergeRequestEvent(
        action=action, actor_id=actor_id, actor_username=actor_username, **defaults
    )
