"""Project, group and repository data models."""

from dataclasses import dataclass


@dataclass
class Project:
    """Project information."""

    project_id: int
    name: str
    path: str
    path_with_namespace: str
    default_branch: str


@dataclass
class Group:
    """Group (organization) information."""

    group_id: int
    name: str
    path: str
    full_path: str


@dataclass
class TreeNode:
    """An entry of a repository tree listing."""

    node_id: str
    name: str
    node_type: str  # "blob" or "tree"
    path: str
    mode: str

    @property
    def is_blob(self) -> bool:
        return self.node_type == "blob"


@dataclass
class RepositoryFile:
    """A file fetched from a repository; content is base64-encoded."""

    file_name: str
    file_path: str
    ref: str
    encoding: str
    content: str
