"""
Branch freeze windows.

Freeze declarations are YAML files kept in (possibly other) projects:

    release_management:
      - org: community
        branch: release-*
        frozen: true
        owner: [alice, bob]

The configured files are read in order and the first rule matching the
organization and target branch wins. While a branch is frozen only its
owners may trigger a merge.
"""

import base64
import binascii
import fnmatch
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import yaml

from reviewbot.logging import get_logger

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient
    from reviewbot.config import FreezeFile, PolicyConfig

logger = get_logger("policy")

MSG_FROZEN_WITH_OWNER = (
    "The target branch of PR has been frozen and it can be merged only by branch owners: {owners}"
)
MSG_FREEZE_UNREADABLE = (
    "The freeze declaration {source} could not be read, contact the maintainers"
)


@dataclass(frozen=True)
class FreezeRule:
    """Freeze state of the branches of an organization."""

    org: str
    branch: str  # shell-style pattern
    frozen: bool
    owners: tuple[str, ...] = ()

    def matches(self, org: str, branch: str) -> bool:
        return self.org.lower() == org.lower() and fnmatch.fnmatchcase(branch, self.branch)

    def is_owner(self, identity: str) -> bool:
        identity = identity.lower()
        return any(owner.lower() == identity for owner in self.owners)


@dataclass(frozen=True)
class FreezeStatus:
    """Outcome of a freeze lookup."""

    rule: FreezeRule | None = None
    # set when an unreadable declaration blocks merging
    unreadable: "FreezeFile | None" = None

    @property
    def frozen(self) -> bool:
        return self.unreadable is not None or (self.rule is not None and self.rule.frozen)


def parse_freeze_content(data: Any) -> list[FreezeRule]:
    """
    Validate a decoded freeze declaration.

    Raises:
        ValueError: If the document does not have the expected shape
    """
    if not isinstance(data, dict):
        raise ValueError("freeze declaration must be a mapping")

    entries = data.get("release_management") or []
    if not isinstance(entries, list):
        raise ValueError("release_management must be a list")

    rules = []
    for entry in entries:
        if not isinstance(entry, dict) or "org" not in entry or "branch" not in entry:
            raise ValueError(f"invalid freeze entry: {entry!r}")

        owners = entry.get("owner") or []
        if not isinstance(owners, list):
            raise ValueError(f"owner of {entry['org']}/{entry['branch']} must be a list")

        rules.append(FreezeRule(
            org=str(entry["org"]),
            branch=str(entry["branch"]),
            frozen=bool(entry.get("frozen", True)),
            owners=tuple(str(o) for o in owners),
        ))
    return rules


class FreezeGate:
    """Resolves whether a target branch is frozen for a trigger identity."""

    def __init__(self, client: "GitLabClient", policy: "PolicyConfig") -> None:
        self.client = client
        self.policy = policy

    def resolve_project_id(self, owner: str, repo: str) -> int | None:
        """
        Find the numeric id of owner/repo.

        Returns:
            The project id, or None if no such group or project is visible
        """
        for group in self.client.groups.list(search=owner):
            if owner not in (group.name, group.path, group.full_path):
                continue
            for project in self.client.groups.list_projects(group.group_id):
                if repo in (project.name, project.path):
                    return project.project_id
        return None

    def load_rules(self, freeze_file: "FreezeFile") -> list[FreezeRule] | None:
        """
        Fetch and decode one freeze declaration.

        Returns:
            The declared rules, an empty list if the project cannot be
            resolved, or None if the declaration is malformed

        Raises:
            NotFoundError: If the declaration does not exist
            ReviewBotError: On other transport failures
        """
        pid = self.resolve_project_id(freeze_file.owner, freeze_file.repo)
        if pid is None:
            logger.warning(f"freeze file project {freeze_file.owner}/{freeze_file.repo} not found")
            return []

        file = self.client.projects.get_file(pid, freeze_file.path, freeze_file.branch)

        try:
            data = yaml.safe_load(base64.b64decode(file.content))
            return parse_freeze_content(data)
        except (binascii.Error, yaml.YAMLError, ValueError) as e:
            logger.error(f"get freeze file: {freeze_file}, err: {e}")
            return None

    def find(self, org: str, branch: str) -> FreezeStatus:
        """
        Find the first rule matching org and branch across all declarations.

        Unreadable declarations are skipped unless the policy says they block.
        """
        for freeze_file in self.policy.freeze_file:
            rules = self.load_rules(freeze_file)
            if rules is None:
                if self.policy.freeze_fail_closed:
                    return FreezeStatus(unreadable=freeze_file)
                continue

            for rule in rules:
                if rule.matches(org, branch):
                    return FreezeStatus(rule=rule)

        return FreezeStatus()

    def check(self, org: str, branch: str, trigger: str | None) -> str | None:
        """
        Evaluate the freeze gate.

        Args:
            org: Organization of the merge request's project
            branch: Target branch of the merge request
            trigger: Identity that triggered the evaluation, if any

        Returns:
            A blocking reason, or None if merging is allowed
        """
        status = self.find(org, branch)
        if not status.frozen:
            return None

        if status.unreadable is not None:
            return MSG_FREEZE_UNREADABLE.format(source=status.unreadable)

        rule = status.rule
        if trigger and rule.is_owner(trigger):
            logger.info(f"{branch} of {org} is frozen, merge allowed for owner {trigger}")
            return None

        return MSG_FROZEN_WITH_OWNER.format(owners=", ".join(rule.owners))
