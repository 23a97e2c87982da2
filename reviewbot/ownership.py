"""
Delegated ownership of sig directories.

Every sig directory (`<sigs_dir>/<sig>/`) may carry an `OWNERS` file
(`maintainers` and `committers` lists) or a `sig-info.yaml` file
(`maintainers` records with a `gitee_id`). An identity owns a change set if
it is listed by the owner file of every directory the change touches.

Owner files are matched at exactly one depth: a directory without its own
owner file is not covered by a parent directory's file.
"""

import base64
import binascii
import posixpath
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import yaml

from reviewbot.exceptions import NotFoundError
from reviewbot.logging import get_logger

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient

logger = get_logger("policy")

OWNER_FILE = "OWNERS"
SIG_INFO_FILE = "sig-info.yaml"


def _decode_yaml(content: str, source: str) -> Any:
    try:
        raw = base64.b64decode(content)
    except (binascii.Error, ValueError) as e:
        logger.error(f"decode {source}: {e}")
        return None

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.error(f"parse {source}: {e}")
        return None


def decode_owner_file(content: str, source: str = OWNER_FILE) -> frozenset[str]:
    """
    Read the owners listed by a base64-encoded OWNERS file.

    Returns:
        Lower-cased maintainers and committers; empty if the file is malformed
    """
    data = _decode_yaml(content, source)
    if not isinstance(data, dict):
        return frozenset()

    owners = set()
    for key in ("maintainers", "committers"):
        for name in data.get(key) or []:
            if isinstance(name, str) and name:
                owners.add(name.lower())
    return frozenset(owners)


def decode_sig_info_file(content: str, source: str = SIG_INFO_FILE) -> frozenset[str]:
    """
    Read the maintainers listed by a base64-encoded sig-info file.

    Returns:
        Lower-cased maintainer identities; empty if the file is malformed
    """
    data = _decode_yaml(content, source)
    if not isinstance(data, dict):
        return frozenset()

    owners = set()
    for maintainer in data.get("maintainers") or []:
        if not isinstance(maintainer, dict):
            continue
        identity = maintainer.get("gitee_id")
        if isinstance(identity, str) and identity:
            owners.add(identity.lower())
    return frozenset(owners)


@dataclass(frozen=True)
class OwnerRecord:
    """Owners of one sig directory."""

    directory: str
    source: str
    owners: frozenset[str]

    def has(self, identity: str) -> bool:
        return identity.lower() in self.owners


class PathOwnershipResolver:
    """Resolves whether an identity owns every directory a change touches."""

    def __init__(
        self,
        client: "GitLabClient",
        sigs_dir: str,
        sig_dir_pattern: re.Pattern,
    ) -> None:
        self.client = client
        self.sigs_dir = sigs_dir.strip("/")
        self.sig_dir_pattern = sig_dir_pattern
        # owner files live at <sigs_dir>/<sig>/<file>
        self.owner_file_depth = self.sigs_dir.count("/") + 2

    def touched_directories(self, paths: list[str]) -> set[str] | None:
        """
        Compute the directories a change set touches.

        Returns:
            The distinct containing directories, or None if any path lies
            outside the governed layout
        """
        dirs = set()
        for path in paths:
            if not path:
                continue
            if not self.sig_dir_pattern.search(path) or path.count("/") > self.owner_file_depth:
                logger.info(f"{path} is outside the sig layout, ownership does not apply")
                return None
            dirs.add(posixpath.dirname(path))
        return dirs

    def find_owner_files(self, project_id: int, branch: str) -> dict[str, str]:
        """
        Locate the owner file of every sig directory with one tree walk.

        An OWNERS file wins over a sig-info file in the same directory.

        Returns:
            Mapping of directory to owner file path
        """
        nodes = self.client.projects.list_tree(
            project_id, path=self.sigs_dir, ref=branch, recursive=True
        )

        found: dict[str, str] = {}
        for node in nodes:
            if not node.is_blob or node.path.count("/") != self.owner_file_depth:
                continue
            directory = posixpath.dirname(node.path)
            if node.name == OWNER_FILE:
                found[directory] = node.path
            elif node.name == SIG_INFO_FILE:
                found.setdefault(directory, node.path)
        return found

    def load_record(
        self, project_id: int, branch: str, directory: str, file_path: str
    ) -> OwnerRecord:
        """Fetch and decode one owner file."""
        try:
            file = self.client.projects.get_file(project_id, file_path, branch)
        except NotFoundError:
            logger.warning(f"{file_path} vanished from {branch}")
            return OwnerRecord(directory, file_path, frozenset())

        if posixpath.basename(file_path) == OWNER_FILE:
            owners = decode_owner_file(file.content, file_path)
        else:
            owners = decode_sig_info_file(file.content, file_path)
        return OwnerRecord(directory, file_path, owners)

    def is_owner(
        self,
        project_id: int,
        branch: str,
        paths: list[str],
        identity: str,
    ) -> bool:
        """
        Decide whether identity owns every directory touched by paths.

        Args:
            project_id: Project whose tree holds the owner files
            branch: Branch to read the owner files from (the default branch)
            paths: Changed file paths of the merge request
            identity: Username to check, compared case-insensitively

        Returns:
            True only if every touched directory has an owner file listing identity

        Raises:
            ReviewBotError: On transport failures
        """
        dirs = self.touched_directories(paths)
        if not dirs:
            return False

        try:
            owner_files = self.find_owner_files(project_id, branch)
        except NotFoundError:
            logger.warning(f"{self.sigs_dir} does not exist on {branch}")
            return False

        for directory in sorted(dirs):
            file_path = owner_files.get(directory)
            if file_path is None:
                logger.info(f"{directory} has no owner file")
                return False

            record = self.load_record(project_id, branch, directory, file_path)
            if not record.has(identity):
                logger.info(f"{identity} is not an owner of {directory}")
                return False

        return True
