"""
Trust-signal labels: lgtm and approved.

With a reviewer threshold above one every reviewer gets their own
`lgtm-<username>` label so distinct reviews can be counted; otherwise the
plain `lgtm` label is shared. Every label whose name starts with `lgtm`
belongs to the lgtm family.
"""

from typing import TYPE_CHECKING

from reviewbot.exceptions import ConflictError, ReviewBotError
from reviewbot.logging import get_logger

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient
    from reviewbot.config import PolicyConfig
    from reviewbot.merge import MergeEligibilityEngine
    from reviewbot.permission import PermissionResolver
    from reviewbot.types.events import MergeRequestEvent, MergeRequestEventBase, NoteEvent

logger = get_logger("policy")

LGTM_LABEL = "lgtm"
APPROVED_LABEL = "approved"
# the platform limits label names to 20 characters
LABEL_LENGTH_LIMIT = 20

COMMENT_ADD_LGTM_BY_SELF = (
    "***lgtm*** can not be added in your self-own pull request. :astonished:"
)
COMMENT_CLEAR_LABEL = (
    "New code changes of pr are detected and remove these labels ***{labels}***. :flushed: "
)
COMMENT_NO_PERMISSION_FOR_LGTM = (
    "Thanks for your review, ***{commenter}***, your opinion is very important to us.:wave:\n"
    "The maintainers will consider your advice carefully."
)
COMMENT_NO_PERMISSION_FOR_LABEL = (
    "\n***@{commenter}*** has no permission to {action} ***{label}*** label in this pull request. "
    ":astonished:\nPlease contact to the collaborators in this repository."
)
COMMENT_ADD_LABEL = (
    "***{label}*** was added to this pull request by: ***{commenter}***. :wave: \n"
    '**NOTE:** If this pull request is not merged while all conditions are met, '
    'comment "/check-pr" to try again. :smile: '
)
COMMENT_REMOVED_LABEL = (
    "***{label}*** was removed in this pull request by: ***{commenter}***. :flushed: "
)


def gen_lgtm_label(commenter: str, lgtm_count: int) -> str:
    """
    Name the lgtm label a reviewer applies.

    Args:
        commenter: Username of the reviewer
        lgtm_count: Number of distinct reviews the policy requires

    Returns:
        "lgtm" for a threshold of one or less, else "lgtm-<username>"
        truncated to the platform's label length limit
    """
    if lgtm_count <= 1:
        return LGTM_LABEL

    return f"{LGTM_LABEL}-{commenter.lower()}"[:LABEL_LENGTH_LIMIT]


def is_lgtm_label(name: str) -> bool:
    return name.startswith(LGTM_LABEL)


def lgtm_labels_on(labels: "set[str] | list[str]") -> list[str]:
    """Return the lgtm family members among labels, sorted."""
    return sorted({label for label in labels if is_lgtm_label(label)})


class LabelStateMachine:
    """Applies and removes trust-signal labels on behalf of commenters."""

    def __init__(
        self,
        client: "GitLabClient",
        policy: "PolicyConfig",
        permissions: "PermissionResolver",
        engine: "MergeEligibilityEngine",
    ) -> None:
        self.client = client
        self.policy = policy
        self.permissions = permissions
        self.engine = engine

    def _comment(self, event: "MergeRequestEventBase", body: str) -> None:
        self.client.merge_requests.create_note(event.project_id, event.mr_iid, body)

    def _notify(self, event: "MergeRequestEventBase", body: str) -> None:
        """Post a confirmation; the label change already happened, so a failure only gets logged."""
        try:
            self._comment(event, body)
        except ReviewBotError as e:
            logger.error(f"comment on !{event.mr_iid} in project {event.project_id}: {e}")

    def _is_author(self, event: "MergeRequestEventBase") -> bool:
        return event.actor_id == event.mr_author_id

    def _has_permission(self, event: "NoteEvent", check_sig_owners: bool) -> bool:
        return self.permissions.has_permission(
            event.project_id,
            event.mr_iid,
            event.actor_id,
            event.actor_username,
            check_sig_owners=check_sig_owners,
        )

    def ensure_label(self, project_id: int, name: str) -> None:
        """Create a label in the project registry unless it already exists."""
        if any(label.name == name for label in self.client.projects.list_labels(project_id)):
            return

        try:
            self.client.projects.create_label(project_id, name)
        except ConflictError:
            # created concurrently by another evaluation
            logger.debug(f"label {name} already exists in project {project_id}")

    def add_lgtm(self, event: "NoteEvent") -> None:
        """
        Handle `/lgtm`.

        The author may not review their own request. Other commenters need
        permission; on success the label is attached and a merge is attempted.
        """
        if self._is_author(event):
            self._comment(event, COMMENT_ADD_LGTM_BY_SELF)
            return

        commenter = event.actor_username
        if not self._has_permission(event, check_sig_owners=True):
            self._comment(event, COMMENT_NO_PERMISSION_FOR_LGTM.format(commenter=commenter))
            return

        label = gen_lgtm_label(commenter, self.policy.lgtm_counts_required)
        self.ensure_label(event.project_id, label)
        self.client.merge_requests.add_labels(event.project_id, event.mr_iid, [label])
        logger.info(f"{label} added to !{event.mr_iid} by {commenter}")

        self._notify(event, COMMENT_ADD_LABEL.format(label=label, commenter=commenter))
        self.engine.try_merge(
            event.project_id, event.mr_iid, event.org, trigger=commenter, explicit=False
        )

    def remove_lgtm(self, event: "NoteEvent") -> None:
        """
        Handle `/lgtm cancel`.

        A reviewer removes only their own lgtm label. The author may remove
        every lgtm label at once without further permission checks.
        """
        commenter = event.actor_username

        if self._is_author(event):
            labels = self.client.merge_requests.get_labels(event.project_id, event.mr_iid)
            lgtm = lgtm_labels_on(labels)
            if lgtm:
                self.client.merge_requests.remove_labels(event.project_id, event.mr_iid, lgtm)
                logger.info(f"{', '.join(lgtm)} removed from !{event.mr_iid} by its author")
            return

        if not self._has_permission(event, check_sig_owners=True):
            self._comment(event, COMMENT_NO_PERMISSION_FOR_LABEL.format(
                commenter=commenter, action="remove", label=LGTM_LABEL,
            ))
            return

        label = gen_lgtm_label(commenter, self.policy.lgtm_counts_required)
        self.client.merge_requests.remove_labels(event.project_id, event.mr_iid, [label])
        self._comment(event, COMMENT_REMOVED_LABEL.format(label=label, commenter=commenter))

    def add_approved(self, event: "NoteEvent") -> None:
        """Handle `/approved`; approval requires direct project permission."""
        commenter = event.actor_username
        if not self._has_permission(event, check_sig_owners=False):
            self._comment(event, COMMENT_NO_PERMISSION_FOR_LABEL.format(
                commenter=commenter, action="add", label=APPROVED_LABEL,
            ))
            return

        self.client.merge_requests.add_labels(event.project_id, event.mr_iid, [APPROVED_LABEL])
        logger.info(f"{APPROVED_LABEL} added to !{event.mr_iid} by {commenter}")

        self._notify(event, COMMENT_ADD_LABEL.format(label=APPROVED_LABEL, commenter=commenter))
        self.engine.try_merge(
            event.project_id, event.mr_iid, event.org, trigger=commenter, explicit=False
        )

    def remove_approved(self, event: "NoteEvent") -> None:
        """Handle `/approved cancel`."""
        commenter = event.actor_username
        if not self._has_permission(event, check_sig_owners=False):
            self._comment(event, COMMENT_NO_PERMISSION_FOR_LABEL.format(
                commenter=commenter, action="remove", label=APPROVED_LABEL,
            ))
            return

        self.client.merge_requests.remove_labels(event.project_id, event.mr_iid, [APPROVED_LABEL])
        self._comment(event, COMMENT_REMOVED_LABEL.format(label=APPROVED_LABEL, commenter=commenter))

    def clear_on_update(self, event: "MergeRequestEvent") -> None:
        """Strip every review label once new commits arrive on an open request."""
        if not event.mr_is_open or not event.source_branch_changed:
            return

        labels = self.client.merge_requests.get_labels(event.project_id, event.mr_iid)
        stale = lgtm_labels_on(labels)
        if APPROVED_LABEL in labels:
            stale.append(APPROVED_LABEL)

        if not stale:
            return

        self.client.merge_requests.remove_labels(event.project_id, event.mr_iid, stale)
        self._comment(event, COMMENT_CLEAR_LABEL.format(labels=", ".join(stale)))
