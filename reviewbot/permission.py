"""Authorization of privileged label commands."""

from typing import TYPE_CHECKING

from reviewbot.logging import get_logger
from reviewbot.ownership import PathOwnershipResolver

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient
    from reviewbot.config import PolicyConfig

logger = get_logger("policy")


class PermissionResolver:
    """
    Decides whether an identity may apply or remove a governed label.

    An identity is authorized by direct project membership, or, when the
    policy enables it, by owning every sig directory the merge request
    touches. Direct membership is checked first so the tree walk only
    happens for outside contributors.
    """

    def __init__(self, client: "GitLabClient", policy: "PolicyConfig") -> None:
        self.client = client
        self.policy = policy

    def has_permission(
        self,
        project_id: int,
        mr_iid: int,
        user_id: int,
        username: str,
        check_sig_owners: bool = True,
    ) -> bool:
        """
        Check whether a user may govern labels of a merge request.

        Args:
            project_id: Numeric project identifier
            mr_iid: Merge request iid
            user_id: Numeric user identifier, used for the membership lookup
            username: Username, used for the owner file lookup
            check_sig_owners: Allow sig ownership as a fallback; it is still
                subject to the policy toggle

        Returns:
            True if the user is authorized

        Raises:
            ReviewBotError: On transport failures
        """
        if self.client.projects.has_permission(project_id, user_id):
            return True

        if not (check_sig_owners and self.policy.check_permission_based_on_sig_owners):
            return False

        paths = self.client.merge_requests.get_changed_paths(project_id, mr_iid)
        if not paths:
            return False

        branch = self.client.projects.get(project_id).default_branch
        resolver = PathOwnershipResolver(
            self.client, self.policy.sigs_dir, self.policy.sig_dir_pattern
        )
        owner = resolver.is_owner(project_id, branch, paths, username.lower())
        logger.debug(f"sig ownership of {username} on !{mr_iid}: {owner}")
        return owner
