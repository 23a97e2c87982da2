"""Merge request-related data models."""

from dataclasses import dataclass, field
from datetime import datetime

# merge_status value reported by the platform for a conflict-free request
CAN_BE_MERGED = "can_be_merged"


@dataclass
class MergeRequest:
    """Merge request snapshot as reported by the platform."""

    project_id: int
    iid: int
    title: str
    description: str | None
    state: str  # "opened", "closed", "locked", "merged"
    author_id: int
    author_username: str
    source_branch: str
    target_branch: str
    merge_status: str  # "can_be_merged", "cannot_be_merged", "checking", ...
    labels: list[str] = field(default_factory=list)
    assignee_ids: list[int] = field(default_factory=list)
    reviewer_ids: list[int] = field(default_factory=list)
    created_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.state == "opened"

    @property
    def can_be_merged(self) -> bool:
        return self.merge_status == CAN_BE_MERGED


@dataclass(frozen=True)
class LabelEvent:
    """A label add/remove audit record from the merge request history."""

    event_id: int
    label: str
    action: str  # "add" or "remove"
    username: str
    created_at: datetime


@dataclass
class Note:
    """A comment on a merge request."""

    note_id: int
    body: str
    author_id: int
    author_username: str
    created_at: datetime
    updated_at: datetime
    system: bool = False

    @property
    def edited(self) -> bool:
        return self.updated_at != self.created_at


@dataclass
class Label:
    """A label of the project label registry."""

    label_id: int
    name: str
    color: str
    description: str | None = None
