"""reviewbot type definitions.

This module exports all data model types used by the bot.
"""

from reviewbot.types.events import (
    Event,
    MergeRequestEvent,
    MergeRequestEventBase,
    NoteEvent,
    parse_event,
)
from reviewbot.types.merge_requests import (
    CAN_BE_MERGED,
    Label,
    LabelEvent,
    MergeRequest,
    Note,
)
from reviewbot.types.projects import Group, Project, RepositoryFile, TreeNode

__all__ = [
    # Merge request types
    "CAN_BE_MERGED",
    "MergeRequest",
    "LabelEvent",
    "Note",
    "Label",
    # Project types
    "Project",
    "Group",
    "TreeNode",
    "RepositoryFile",
    # Webhook events
    "Event",
    "MergeRequestEventBase",
    "MergeRequestEvent",
    "NoteEvent",
    "parse_event",
]
