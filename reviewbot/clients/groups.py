"""Groups resource client."""

from typing import TYPE_CHECKING

from reviewbot.types.projects import Group, Project

if TYPE_CHECKING:
    from reviewbot.transport import HTTPTransport


class GroupsClient:
    """Client for group (organization) lookups."""

    def __init__(self, transport: "HTTPTransport") -> None:
        """
        Initialize the groups client.

        Args:
            transport: HTTP transport for making requests
        """
        self.transport = transport

    def list_projects(self, group_id: int) -> list[Project]:
        """List the projects of a group."""
        items = self.transport.paginate(f"/groups/{group_id}/projects")
        return [
            Project(
                project_id=item["id"],
                name=item["name"],
                path=item.get("path", item["name"]),
                path_with_namespace=item.get("path_with_namespace", ""),
                default_branch=item.get("default_branch") or "master",
            )
            for item in items
        ]

    def list(self, search: str | None = None) -> list[Group]:
        """
        List groups visible to the bot.

        Args:
            search: Optional name filter applied by the server
        """
        params = {"search": search} if search else None
        items = self.transport.paginate("/groups", params=params)
        return [
            Group(
                group_id=item["id"],
                name=item["name"],
                path=item.get("path", item["name"]),
                full_path=item.get("full_path", item.get("path", item["name"])),
            )
            for item in items
        ]
