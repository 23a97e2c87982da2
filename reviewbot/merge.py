"""
Merge eligibility.

A merge request is merged automatically once every gate passes:

1. the platform reports no conflicts;
2. every required or lgtm label was last added by the bot itself;
3. all required labels (and enough lgtm labels) are present;
4. no forbidden label is present;
5. the target branch is not frozen, or the trigger is a branch owner.

All gates after the conflict gate are evaluated and their reasons
collected. A platform error on any gate aborts the evaluation instead of
producing a decision.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reviewbot.freeze import FreezeGate
from reviewbot.labels import APPROVED_LABEL, LGTM_LABEL, is_lgtm_label, lgtm_labels_on
from reviewbot.logging import get_logger, log_decision
from reviewbot.trailers import generate_trailers
from reviewbot.types.merge_requests import LabelEvent, MergeRequest

if TYPE_CHECKING:
    from reviewbot.client import GitLabClient
    from reviewbot.config import PolicyConfig

logger = get_logger("policy")

MSG_NOT_OPEN = "PR is not open."
MSG_PR_CONFLICTS = "PR conflicts to the target branch."
MSG_MISSING_LABELS = "PR does not have these labels: {labels}"
MSG_INVALID_LABELS = "PR should remove these labels: {labels}"
MSG_NOT_ENOUGH_LGTM = "PR needs {needs} lgtm labels and now gets {gets}"
MSG_LOG_MISSING = (
    "The corresponding operation log is missing. You should remove "
    "the label and add it again the correct way"
)
MSG_ADDED_BY_USER_CLA = (
    "{who} You can't add {label} by yourself, please remove it and use /check-cla to add it"
)
MSG_ADDED_BY_USER = "{who} You can't add {label} by yourself, please contact the maintainers"
MSG_NOT_MERGEABLE = "@{trigger} , this pr is not mergeable and the reasons are below:\n{reasons}"

ACTION_ADD_LABEL = "add"


@dataclass
class Decision:
    """Outcome of a merge eligibility evaluation."""

    reasons: list[str] = field(default_factory=list)

    @property
    def mergeable(self) -> bool:
        return not self.reasons


def latest_add_event(events: list[LabelEvent], label: str) -> LabelEvent | None:
    """Find the most recent event that added label; the earliest wins a tie."""
    latest: LabelEvent | None = None
    for event in events:
        if event.action != ACTION_ADD_LABEL or event.label != label:
            continue
        if latest is None or event.created_at > latest.created_at:
            latest = event
    return latest


def check_label_provenance(
    labels: set[str],
    required: set[str],
    events: list[LabelEvent],
    bot_username: str,
    cla_label_prefix: str,
) -> str | None:
    """
    Verify that governed labels were applied by the bot.

    Every present label that is required or in the lgtm family must have
    been added last by bot_username; otherwise someone bypassed the
    comment commands.

    Returns:
        One reason covering all offending labels, or None
    """
    problems = []
    for label in sorted(labels):
        if label not in required and not is_lgtm_label(label):
            continue

        event = latest_add_event(events, label)
        if event is None or not event.username:
            problems.append(f"{label}: {MSG_LOG_MISSING}")
        elif event.username.lower() != bot_username.lower():
            template = MSG_ADDED_BY_USER
            if cla_label_prefix and label.startswith(cla_label_prefix):
                template = MSG_ADDED_BY_USER_CLA
            problems.append(f"{label}: {template.format(who=event.username, label=label)}")

    if not problems:
        return None

    noun = "labels are" if len(problems) > 1 else "label is"
    return f"**The following {noun} not ready**.\n\n" + "\n\n".join(problems)


class MergeEligibilityEngine:
    """Evaluates the merge gates of a merge request and merges it when they pass."""

    def __init__(
        self,
        client: "GitLabClient",
        policy: "PolicyConfig",
        bot_username: str,
    ) -> None:
        self.client = client
        self.policy = policy
        self.bot_username = bot_username

    def required_labels(self) -> set[str]:
        needs = {APPROVED_LABEL, *self.policy.labels_for_merge}
        if self.policy.lgtm_counts_required == 1:
            needs.add(LGTM_LABEL)
        return needs

    def check_labels(self, labels: set[str], events: list[LabelEvent]) -> list[str]:
        """Run the provenance, completeness and forbidden-label gates."""
        reasons = []
        required = self.required_labels()

        provenance = check_label_provenance(
            labels, required, events, self.bot_username, self.policy.cla_label_prefix
        )
        if provenance:
            reasons.append(provenance)

        threshold = self.policy.lgtm_counts_required
        if threshold > 1:
            count = len(lgtm_labels_on(labels))
            if count < threshold:
                reasons.append(MSG_NOT_ENOUGH_LGTM.format(needs=threshold, gets=count))

        missing = required - labels
        if missing:
            reasons.append(MSG_MISSING_LABELS.format(labels=", ".join(sorted(missing))))

        forbidden = set(self.policy.labels_forbidden_for_merge) & labels
        if forbidden:
            reasons.append(MSG_INVALID_LABELS.format(labels=", ".join(sorted(forbidden))))

        return reasons

    def evaluate(self, mr: MergeRequest, org: str, trigger: str | None = None) -> Decision:
        """
        Evaluate every gate against a fresh merge request snapshot.

        Args:
            mr: The merge request
            org: Organization of the merge request's project
            trigger: Identity that triggered the evaluation, if any

        Returns:
            Decision listing every blocking reason

        Raises:
            ReviewBotError: If any platform call fails; no decision is made
        """
        if not mr.is_open:
            return Decision([MSG_NOT_OPEN])

        if not mr.can_be_merged:
            return Decision([MSG_PR_CONFLICTS])

        events = self.client.merge_requests.list_label_events(mr.project_id, mr.iid)
        reasons = self.check_labels(set(mr.labels), events)

        frozen = FreezeGate(self.client, self.policy).check(org, mr.target_branch, trigger)
        if frozen:
            reasons.append(frozen)

        return Decision(reasons)

    def merge(self, mr: MergeRequest) -> None:
        """Record the trailers, clear assignees and reviewers, then merge."""
        notes = self.client.merge_requests.list_notes(mr.project_id, mr.iid)
        trailers = generate_trailers(notes, mr.author_username)

        self.client.merge_requests.update(
            mr.project_id,
            mr.iid,
            description=trailers or None,
            assignee_ids=[],
            reviewer_ids=[],
        )
        self.client.merge_requests.merge(mr.project_id, mr.iid)
        logger.info(f"!{mr.iid} in project {mr.project_id} merged")

    def try_merge(
        self,
        project_id: int,
        mr_iid: int,
        org: str,
        trigger: str | None = None,
        explicit: bool = False,
    ) -> Decision:
        """
        Evaluate a merge request and merge it if every gate passes.

        Args:
            project_id: Numeric project identifier
            mr_iid: Merge request iid
            org: Organization of the project
            trigger: Identity that triggered the evaluation, if any
            explicit: The evaluation was requested with `/check-pr`; the
                blocking reasons are then posted as a comment

        Returns:
            The decision that was acted upon
        """
        mr = self.client.merge_requests.get(project_id, mr_iid)
        decision = self.evaluate(mr, org, trigger)
        log_decision(project_id, mr_iid, decision.reasons, trigger)

        if decision.mergeable:
            self.merge(mr)
        elif explicit:
            self.client.merge_requests.create_note(
                project_id,
                mr_iid,
                MSG_NOT_MERGEABLE.format(
                    trigger=trigger or "", reasons="\n".join(decision.reasons)
                ),
            )

        return decision
