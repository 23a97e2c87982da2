"""
Event dispatcher.

Every event pins one configuration snapshot, resolves the policy of its
repository and runs the independent handlers for its kind. A failing
handler does not stop the others; their errors are raised together as a
MultiError.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reviewbot import commands
from reviewbot.exceptions import ErrorCollector
from reviewbot.labels import LabelStateMachine
from reviewbot.logging import get_logger
from reviewbot.merge import MergeEligibilityEngine
from reviewbot.permission import PermissionResolver
from reviewbot.types.events import Event, MergeRequestEvent, MergeRequestEventBase, NoteEvent

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient
    from reviewbot.config import Configuration, PolicyConfig

logger = get_logger()

MSG_NOT_SET_REVIEWER = (
    "**@{author}** Thank you for submitting a PullRequest. "
    "It is detected that you have not set a reviewer, please set a one."
)


@dataclass
class Governance:
    """The policy components wired for one event."""

    policy: "PolicyConfig"
    engine: MergeEligibilityEngine
    labels: LabelStateMachine


class Robot:
    """
    Handles merge request and comment webhook events.

    Example:
        ```python
        from reviewbot import ConfigAgent, GitLabClient, Robot, parse_event

        agent = ConfigAgent("config.yaml")
        robot = Robot(GitLabClient.from_env(), agent.get)

        event = parse_event(payload)
        if event is not None:
            robot.handle_event(event)
        ```
    """

    def __init__(
        self,
        client: "GitLabClient",
        get_config: Callable[[], "Configuration"],
    ) -> None:
        """
        Args:
            client: Platform client
            get_config: Returns the current configuration snapshot
        """
        self.client = client
        self.get_config = get_config

    def governance_for(self, event: MergeRequestEventBase) -> Governance | None:
        """Wire the policy components for an event from one configuration snapshot."""
        cfg = self.get_config()
        policy = cfg.config_for(event.org, event.repo)
        if policy is None:
            logger.debug(f"{event.path_with_namespace} is not governed, event ignored")
            return None

        engine = MergeEligibilityEngine(self.client, policy, cfg.bot_username)
        permissions = PermissionResolver(self.client, policy)
        labels = LabelStateMachine(self.client, policy, permissions, engine)
        return Governance(policy=policy, engine=engine, labels=labels)

    def handle_event(self, event: Event) -> None:
        """
        Dispatch an event to the handlers of its kind.

        Raises:
            MultiError: If one or more handlers failed
        """
        if isinstance(event, MergeRequestEvent):
            self.handle_merge_request_event(event)
        elif isinstance(event, NoteEvent):
            self.handle_note_event(event)

    def handle_merge_request_event(self, event: MergeRequestEvent) -> None:
        gov = self.governance_for(event)
        if gov is None:
            return

        errors = ErrorCollector()
        errors.run(gov.labels.clear_on_update, event)
        errors.run(self.do_retest, event)
        errors.run(self.check_reviewer, event, gov)
        errors.run(self.handle_label_update, event, gov)
        self._log_errors(event, errors)
        errors.raise_if_any()

    def handle_note_event(self, event: NoteEvent) -> None:
        if not event.mr_is_open:
            return

        gov = self.governance_for(event)
        if gov is None:
            return

        if event.actor_username.lower() == gov.engine.bot_username.lower():
            # the bot's own comments quote commands
            return

        errors = ErrorCollector()
        errors.run(self.handle_lgtm, event, gov)
        errors.run(self.handle_approve, event, gov)
        errors.run(self.handle_check_pr, event, gov)
        self._log_errors(event, errors)
        errors.raise_if_any()

    def _log_errors(self, event: MergeRequestEventBase, errors: ErrorCollector) -> None:
        for error in errors.errors:
            logger.error(f"handling event on {event.path_with_namespace}!{event.mr_iid}: {error}")

    def do_retest(self, event: MergeRequestEvent) -> None:
        """Ask CI to run again after new commits."""
        if not event.mr_is_open or not event.source_branch_changed:
            return

        self.client.merge_requests.create_note(event.project_id, event.mr_iid, commands.RETEST)

    def check_reviewer(self, event: MergeRequestEvent, gov: Governance) -> None:
        """Remind the author of a newly opened request to pick a reviewer."""
        if gov.policy.unable_checking_reviewer_for_pr or not event.mr_is_open:
            return

        if event.action != "open" or event.assignee_ids:
            return

        self.client.merge_requests.create_note(
            event.project_id,
            event.mr_iid,
            MSG_NOT_SET_REVIEWER.format(author=event.actor_username),
        )

    def handle_label_update(self, event: MergeRequestEvent, gov: Governance) -> None:
        """Re-evaluate silently when labels or the request changed; nobody triggered it."""
        if not event.mr_is_open:
            return

        if event.action != "update" and not event.labels_changed:
            return

        gov.engine.try_merge(event.project_id, event.mr_iid, event.org)

    def handle_lgtm(self, event: NoteEvent, gov: Governance) -> None:
        if commands.ADD_LGTM.search(event.body):
            gov.labels.add_lgtm(event)
        elif commands.REMOVE_LGTM.search(event.body):
            gov.labels.remove_lgtm(event)

    def handle_approve(self, event: NoteEvent, gov: Governance) -> None:
        if commands.ADD_APPROVE.search(event.body):
            gov.labels.add_approved(event)
        elif commands.REMOVE_APPROVE.search(event.body):
            gov.labels.remove_approved(event)

    def handle_check_pr(self, event: NoteEvent, gov: Governance) -> None:
        if not commands.CHECK_PR.search(event.body):
            return

        gov.engine.try_merge(
            event.project_id,
            event.mr_iid,
            event.org,
            trigger=event.actor_username,
            explicit=True,
        )
