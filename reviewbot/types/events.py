"""Webhook event models.

Each event kind is its own dataclass; the fields every kind carries
(project, actor, merge request identity) live on MergeRequestEventBase so
handlers can read org/repo/actor uniformly.
"""

from dataclasses import dataclass, field
from typing import Any

from reviewbot.exceptions import ValidationError

MERGE_REQUEST_KIND = "merge_request"
NOTE_KIND = "note"


@dataclass(frozen=True)
class MergeRequestEventBase:
    """Fields shared by every merge request related event."""

    project_id: int
    path_with_namespace: str
    actor_id: int
    actor_username: str
    mr_iid: int
    mr_author_id: int
    mr_state: str
    target_branch: str

    @property
    def org(self) -> str:
        return self.path_with_namespace.rpartition("/")[0]

    @property
    def repo(self) -> str:
        return self.path_with_namespace.rpartition("/")[2]

    @property
    def mr_is_open(self) -> bool:
        return self.mr_state == "opened"


@dataclass(frozen=True)
class MergeRequestEvent(MergeRequestEventBase):
    """A merge request was opened, updated, relabeled, closed, ..."""

    action: str = ""
    oldrev: str | None = None
    assignee_ids: tuple[int, ...] = ()
    changed_fields: frozenset[str] = field(default_factory=frozenset)

    @property
    def source_branch_changed(self) -> bool:
        """New commits were pushed to the source branch."""
        return self.action == "update" and bool(self.oldrev)

    @property
    def labels_changed(self) -> bool:
        return "labels" in self.changed_fields


@dataclass(frozen=True)
class NoteEvent(MergeRequestEventBase):
    """A comment was posted on a merge request."""

    note_id: int = 0
    body: str = ""


Event = MergeRequestEvent | NoteEvent


def parse_event(payload: dict[str, Any]) -> Event | None:
    """
    Build a typed event from a decoded GitLab webhook payload.

    Args:
        payload: The JSON body of the webhook request

    Returns:
        MergeRequestEvent or NoteEvent, or None for events this bot does
        not handle (pushes, comments on issues or commits, ...)

    Raises:
        ValidationError: If a supported event is missing required fields
    """
    kind = payload.get("object_kind")
    try:
        if kind == MERGE_REQUEST_KIND:
            return _parse_merge_request_event(payload)
        if kind == NOTE_KIND:
            if payload["object_attributes"].get("noteable_type") != "MergeRequest":
                return None
            return _parse_note_event(payload)
    except (KeyError, TypeError) as e:
        raise ValidationError("INVALID_EVENT", f"malformed {kind} event: missing {e}") from e

    return None


def _parse_merge_request_event(payload: dict[str, Any]) -> MergeRequestEvent:
    attrs = payload["object_attributes"]
    user = payload["user"]
    project = payload["project"]

    return MergeRequestEvent(
        project_id=project["id"],
        path_with_namespace=project["path_with_namespace"],
        actor_id=user["id"],
        actor_username=user["username"],
        mr_iid=attrs["iid"],
        mr_author_id=attrs["author_id"],
        mr_state=attrs["state"],
        target_branch=attrs["target_branch"],
        action=attrs.get("action") or "",
        oldrev=attrs.get("oldrev"),
        assignee_ids=tuple(attrs.get("assignee_ids") or ()),
        changed_fields=frozenset((payload.get("changes") or {}).keys()),
    )


def _parse_note_event(payload: dict[str, Any]) -> NoteEvent:
    attrs = payload["object_attributes"]
    user = payload["user"]
    project = payload["project"]
    mr = payload["merge_request"]

    return NoteEvent(
        project_id=project["id"],
        path_with_namespace=project["path_with_namespace"],
        actor_id=user["id"],
        actor_username=user["username"],
        mr_iid=mr["iid"],
        mr_author_id=mr["author_id"],
        mr_state=mr["state"],
        target_branch=mr["target_branch"],
        note_id=attrs["id"],
        body=attrs.get("note") or "",
    )
