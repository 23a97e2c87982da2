"""reviewbot resource clients."""

from reviewbot.clients.groups import GroupsClient
from reviewbot.clients.merge_requests import MergeRequestsClient
from reviewbot.clients.projects import ProjectsClient

__all__ = [
    "MergeRequestsClient",
    "ProjectsClient",
    "GroupsClient",
]
