"""
reviewbot configuration.

The configuration file is YAML:

    bot_username: review-bot
    config_items:
      - repos: [org, org/repo]
        excluded_repos: [org/other]
        labels_for_merge: [ci-passed]
        labels_forbidden_for_merge: [wip]
        lgtm_counts_required: 1
        check_permission_based_on_sig_owners: true
        sigs_dir: sig
        sig_dir_pattern: '^sig/[^/]+/[^/]+$'
        freeze_file:
          - {owner: org, repo: infra, path: release.yaml, branch: master}

Every loaded configuration is an immutable snapshot. ConfigAgent swaps
snapshots atomically so an event handled during a reload keeps seeing the
snapshot it started with.
"""

import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from reviewbot.exceptions import ConfigurationError
from reviewbot.logging import get_logger

logger = get_logger("config")

DEFAULT_SIGS_DIR = "sig"
DEFAULT_SIG_DIR_PATTERN = r"^sig/[^/]+/[^/]+$"
DEFAULT_CLA_LABEL_PREFIX = "cla/"


@dataclass(frozen=True)
class FreezeFile:
    """Location of a freeze declaration file, possibly in another project."""

    owner: str
    repo: str
    path: str
    branch: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}/{self.branch}/{self.path}"


@dataclass(frozen=True)
class PolicyConfig:
    """Merge policy of a set of repositories."""

    repos: tuple[str, ...]
    excluded_repos: tuple[str, ...] = ()
    labels_for_merge: tuple[str, ...] = ()
    labels_forbidden_for_merge: tuple[str, ...] = ()
    lgtm_counts_required: int = 1
    check_permission_based_on_sig_owners: bool = False
    sigs_dir: str = DEFAULT_SIGS_DIR
    sig_dir_pattern: re.Pattern = field(default=re.compile(DEFAULT_SIG_DIR_PATTERN))
    unable_checking_reviewer_for_pr: bool = False
    cla_label_prefix: str = DEFAULT_CLA_LABEL_PREFIX
    # Unreadable freeze declarations block merging instead of being skipped
    freeze_fail_closed: bool = False
    freeze_file: tuple[FreezeFile, ...] = ()

    def matches(self, org: str, repo: str) -> int:
        """
        Rank how specifically this item applies to org/repo.

        Returns:
            2 for an exact org/repo entry, 1 for an org entry, 0 otherwise
        """
        full_name = f"{org}/{repo}"
        if full_name in self.excluded_repos:
            return 0
        if full_name in self.repos:
            return 2
        if org in self.repos:
            return 1
        return 0


@dataclass(frozen=True)
class Configuration:
    """A complete, validated configuration snapshot."""

    bot_username: str
    config_items: tuple[PolicyConfig, ...] = ()

    def config_for(self, org: str, repo: str) -> PolicyConfig | None:
        """
        Find the policy of a repository.

        An exact org/repo entry wins over an org-wide entry; the first item
        wins among equally specific ones.

        Returns:
            The matching PolicyConfig, or None if the repository is not governed
        """
        best: PolicyConfig | None = None
        best_rank = 0
        for item in self.config_items:
            rank = item.matches(org, repo)
            if rank > best_rank:
                best, best_rank = item, rank
        return best


def _str_tuple(item: dict[str, Any], key: str) -> tuple[str, ...]:
    value = item.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return tuple(value)


def _parse_freeze_file(data: Any) -> FreezeFile:
    if not isinstance(data, dict):
        raise ConfigurationError("freeze_file entries must be mappings")
    try:
        return FreezeFile(
            owner=str(data["owner"]),
            repo=str(data["repo"]),
            path=str(data["path"]),
            branch=str(data["branch"]),
        )
    except KeyError as e:
        raise ConfigurationError(f"freeze_file entry is missing {e}") from e


def parse_policy(item: dict[str, Any]) -> PolicyConfig:
    """
    Validate one config item.

    Raises:
        ConfigurationError: If the item is invalid
    """
    if not isinstance(item, dict):
        raise ConfigurationError("config_items entries must be mappings")

    repos = _str_tuple(item, "repos")
    if not repos:
        raise ConfigurationError("repos must not be empty")

    lgtm_counts = item.get("lgtm_counts_required", 1)
    if isinstance(lgtm_counts, bool) or not isinstance(lgtm_counts, int) or lgtm_counts < 0:
        raise ConfigurationError("lgtm_counts_required must be a non-negative integer")

    pattern = item.get("sig_dir_pattern") or DEFAULT_SIG_DIR_PATTERN
    try:
        sig_dir_pattern = re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"invalid sig_dir_pattern {pattern!r}: {e}") from e

    return PolicyConfig(
        repos=repos,
        excluded_repos=_str_tuple(item, "excluded_repos"),
        labels_for_merge=_str_tuple(item, "labels_for_merge"),
        labels_forbidden_for_merge=_str_tuple(item, "labels_forbidden_for_merge"),
        lgtm_counts_required=lgtm_counts,
        check_permission_based_on_sig_owners=bool(
            item.get("check_permission_based_on_sig_owners", False)
        ),
        sigs_dir=str(item.get("sigs_dir") or DEFAULT_SIGS_DIR).strip("/"),
        sig_dir_pattern=sig_dir_pattern,
        unable_checking_reviewer_for_pr=bool(
            item.get("unable_checking_reviewer_for_pr", False)
        ),
        cla_label_prefix=str(item.get("cla_label_prefix") or DEFAULT_CLA_LABEL_PREFIX),
        freeze_fail_closed=bool(item.get("freeze_fail_closed", False)),
        freeze_file=tuple(_parse_freeze_file(f) for f in item.get("freeze_file") or []),
    )


def parse_configuration(data: Any) -> Configuration:
    """
    Validate a decoded configuration document.

    Raises:
        ConfigurationError: If the document is invalid
    """
    if not isinstance(data, dict):
        raise ConfigurationError("configuration must be a mapping")

    bot_username = data.get("bot_username")
    if not bot_username or not isinstance(bot_username, str):
        raise ConfigurationError("bot_username must be set")

    items = data.get("config_items") or []
    if not isinstance(items, list):
        raise ConfigurationError("config_items must be a list")

    return Configuration(
        bot_username=bot_username,
        config_items=tuple(parse_policy(item) for item in items),
    )


def load_configuration(path: str | Path) -> Configuration:
    """
    Load and validate a configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    try:
        payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e

    return parse_configuration(payload)


class ConfigAgent:
    """
    Holds the current configuration snapshot of the process.

    Example:
        ```python
        agent = ConfigAgent("config.yaml")
        cfg = agent.get()       # pin one snapshot for a whole event
        agent.reload()          # e.g. from a SIGHUP handler
        ```
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._current = load_configuration(self.path)

    def get(self) -> Configuration:
        """Return the current snapshot."""
        with self._lock:
            return self._current

    def reload(self) -> Configuration:
        """
        Re-read the configuration file and swap the snapshot.

        A failed reload keeps the previous snapshot.

        Raises:
            ConfigurationError: If the new file is invalid
        """
        try:
            new = load_configuration(self.path)
        except ConfigurationError:
            logger.error(f"reload of {self.path} failed, keeping previous configuration")
            raise

        with self._lock:
            self._current = new
        logger.info(f"configuration reloaded from {self.path}")
        return new
