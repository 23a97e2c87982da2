"""Projects resource client: label registry, membership and repository files."""

from typing import TYPE_CHECKING
from urllib.parse import quote

from reviewbot.exceptions import NotFoundError
from reviewbot.types.merge_requests import Label
from reviewbot.types.projects import Project, RepositoryFile, TreeNode

if TYPE_CHECKING:
    from reviewbot.transport import HTTPTransport

# Developer access level; members at or above it may govern labels
DEVELOPER_ACCESS = 30

DEFAULT_LABEL_COLOR = "#428BCA"


class ProjectsClient:
    """Client for project level operations."""

    def __init__(self, transport: "HTTPTransport") -> None:
        """
        Initialize the projects client.

        Args:
            transport: HTTP transport for making requests
        """
        self.transport = transport

    def get(self, project_id: int) -> Project:
        """
        Get project information.

        Raises:
            NotFoundError: If the project does not exist
        """
        data = self.transport.request("GET", f"/projects/{project_id}")
        return Project(
            project_id=data["id"],
            name=data["name"],
            path=data.get("path", data["name"]),
            path_with_namespace=data.get("path_with_namespace", ""),
            default_branch=data.get("default_branch") or "master",
        )

    def list_labels(self, project_id: int) -> list[Label]:
        """List the project's label registry."""
        items = self.transport.paginate(f"/projects/{project_id}/labels")
        return [
            Label(
                label_id=item["id"],
                name=item["name"],
                color=item.get("color", DEFAULT_LABEL_COLOR),
                description=item.get("description"),
            )
            for item in items
        ]

    def create_label(
        self,
        project_id: int,
        name: str,
        color: str = DEFAULT_LABEL_COLOR,
        description: str | None = None,
    ) -> Label:
        """
        Create a label in the project's label registry.

        Raises:
            ConflictError: If the label already exists
        """
        data = self.transport.request(
            "POST",
            f"/projects/{project_id}/labels",
            body={"name": name, "color": color, "description": description},
        )
        return Label(
            label_id=data["id"],
            name=data["name"],
            color=data.get("color", color),
            description=data.get("description"),
        )

    def has_permission(self, project_id: int, user_id: int) -> bool:
        """
        Check whether a user may govern labels of the project directly.

        Inherited memberships count. A user who is not a member has no
        permission; any other failure propagates.

        Args:
            project_id: Numeric project identifier
            user_id: Numeric user identifier

        Returns:
            True if the user is a member with at least Developer access
        """
        try:
            data = self.transport.request(
                "GET", f"/projects/{project_id}/members/all/{user_id}"
            )
        except NotFoundError:
            return False

        return int(data.get("access_level", 0)) >= DEVELOPER_ACCESS

    def list_tree(
        self,
        project_id: int,
        path: str,
        ref: str,
        recursive: bool = True,
    ) -> list[TreeNode]:
        """
        List the repository tree below a path.

        Raises:
            NotFoundError: If the path or ref does not exist
        """
        items = self.transport.paginate(
            f"/projects/{project_id}/repository/tree",
            params={"path": path, "ref": ref, "recursive": recursive},
        )
        return [
            TreeNode(
                node_id=item["id"],
                name=item["name"],
                node_type=item["type"],
                path=item["path"],
                mode=item.get("mode", ""),
            )
            for item in items
        ]

    def get_file(self, project_id: int, file_path: str, ref: str) -> RepositoryFile:
        """
        Fetch a file from the repository.

        Returns:
            RepositoryFile whose content is base64-encoded

        Raises:
            NotFoundError: If the file or ref does not exist
        """
        data = self.transport.request(
            "GET",
            f"/projects/{project_id}/repository/files/{quote(file_path, safe='')}",
            params={"ref": ref},
        )
        return RepositoryFile(
            file_name=data.get("file_name", ""),
            file_path=data.get("file_path", file_path),
            ref=data.get("ref", ref),
            encoding=data.get("encoding", "base64"),
            content=data.get("content", ""),
        )
