"""Merge requests resource client."""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from reviewbot.types.merge_requests import LabelEvent, MergeRequest, Note

if TYPE_CHECKING:
    from reviewbot.transport import HTTPTransport


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class MergeRequestsClient:
    """Client for merge request operations."""

    def __init__(self, transport: "HTTPTransport") -> None:
        """
        Initialize the merge requests client.

        Args:
            transport: HTTP transport for making requests
        """
        self.transport = transport

    def _path(self, project_id: int, iid: int, suffix: str = "") -> str:
        return f"/projects/{project_id}/merge_requests/{iid}{suffix}"

    def get(self, project_id: int, iid: int) -> MergeRequest:
        """
        Get merge request information.

        Args:
            project_id: Numeric project identifier
            iid: Merge request iid within the project

        Returns:
            MergeRequest snapshot including labels and merge status

        Raises:
            NotFoundError: If the merge request does not exist
        """
        data = self.transport.request("GET", self._path(project_id, iid))
        return self._parse_merge_request(data)

    def get_labels(self, project_id: int, iid: int) -> list[str]:
        """Get the label names currently attached to a merge request."""
        return self.get(project_id, iid).labels

    def add_labels(self, project_id: int, iid: int, labels: list[str]) -> list[str]:
        """
        Attach labels to a merge request.

        Returns:
            The label names attached after the update
        """
        data = self.transport.request(
            "PUT",
            self._path(project_id, iid),
            body={"add_labels": ",".join(labels)},
        )
        return list(data.get("labels", []))

    def remove_labels(self, project_id: int, iid: int, labels: list[str]) -> list[str]:
        """
        Detach labels from a merge request.

        Returns:
            The label names attached after the update
        """
        data = self.transport.request(
            "PUT",
            self._path(project_id, iid),
            body={"remove_labels": ",".join(labels)},
        )
        return list(data.get("labels", []))

    def list_label_events(self, project_id: int, iid: int) -> list[LabelEvent]:
        """
        List the label history of a merge request, oldest first.

        Events whose label was deleted from the project are skipped.
        """
        items = self.transport.paginate(
            self._path(project_id, iid, "/resource_label_events")
        )

        events = []
        for item in items:
            label = item.get("label")
            if not label:
                continue
            events.append(LabelEvent(
                event_id=item["id"],
                label=label["name"],
                action=item["action"],
                username=(item.get("user") or {}).get("username", ""),
                created_at=parse_timestamp(item["created_at"]),
            ))
        return events

    def list_notes(self, project_id: int, iid: int) -> list[Note]:
        """List all comments of a merge request, oldest first."""
        items = self.transport.paginate(
            self._path(project_id, iid, "/notes"),
            params={"sort": "asc", "order_by": "created_at"},
        )
        return [self._parse_note(item) for item in items]

    def create_note(self, project_id: int, iid: int, body: str) -> Note:
        """Post a comment on a merge request."""
        data = self.transport.request(
            "POST",
            self._path(project_id, iid, "/notes"),
            body={"body": body},
        )
        return self._parse_note(data)

    def get_changed_paths(self, project_id: int, iid: int) -> list[str]:
        """
        List the paths of every file the merge request touches.

        A renamed or moved file contributes both its old and its new path.
        """
        items = self.transport.paginate(self._path(project_id, iid, "/diffs"))
        paths: list[str] = []
        for item in items:
            for key in ("old_path", "new_path"):
                path = item.get(key)
                if path and path not in paths:
                    paths.append(path)
        return paths

    def update(
        self,
        project_id: int,
        iid: int,
        description: str | None = None,
        assignee_ids: list[int] | None = None,
        reviewer_ids: list[int] | None = None,
    ) -> MergeRequest:
        """
        Update the description and/or assignee and reviewer fields.

        Fields left as None are not sent; an empty list clears the field.
        """
        body: dict[str, Any] = {}
        if description is not None:
            body["description"] = description
        if assignee_ids is not None:
            body["assignee_ids"] = assignee_ids
        if reviewer_ids is not None:
            body["reviewer_ids"] = reviewer_ids

        data = self.transport.request("PUT", self._path(project_id, iid), body=body)
        return self._parse_merge_request(data)

    def merge(self, project_id: int, iid: int) -> MergeRequest:
        """
        Merge a merge request.

        Raises:
            ConflictError: If the merge request has conflicts
            AuthorizationError: If the bot may not merge into the target branch
        """
        data = self.transport.request("PUT", self._path(project_id, iid, "/merge"))
        return self._parse_merge_request(data)

    def _parse_merge_request(self, data: dict) -> MergeRequest:
        """Parse merge request data from API response."""
        author = data.get("author") or {}
        created_at = None
        if data.get("created_at"):
            created_at = parse_timestamp(data["created_at"])

        return MergeRequest(
            project_id=data["project_id"],
            iid=data["iid"],
            title=data.get("title", ""),
            description=data.get("description"),
            state=data["state"],
            author_id=author.get("id", 0),
            author_username=author.get("username", ""),
            source_branch=data.get("source_branch", ""),
            target_branch=data["target_branch"],
            merge_status=data.get("merge_status", ""),
            labels=list(data.get("labels", [])),
            assignee_ids=[a["id"] for a in data.get("assignees") or []],
            reviewer_ids=[r["id"] for r in data.get("reviewers") or []],
            created_at=created_at,
        )

    def _parse_note(self, data: dict) -> Note:
        """Parse note data from API response."""
        author = data.get("author") or {}
        created_at = parse_timestamp(data["created_at"])
        updated_at = created_at
        if data.get("updated_at"):
            updated_at = parse_timestamp(data["updated_at"])

        return Note(
            note_id=data["id"],
            body=data.get("body", ""),
            author_id=author.get("id", 0),
            author_username=author.get("username", ""),
            created_at=created_at,
            updated_at=updated_at,
            system=data.get("system", False),
        )
