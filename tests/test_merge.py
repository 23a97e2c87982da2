"""
Tests for merge eligibility and the merge itself.

Feature: reviewbot
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from reviewbot.exceptions import NotFoundError, ServerError
from reviewbot.merge import (
    MSG_LOG_MISSING,
    MSG_NOT_OPEN,
    MSG_PR_CONFLICTS,
    MergeEligibilityEngine,
    check_label_provenance,
    latest_add_event,
)
from reviewbot.testing import (
    MockGitLabClient,
    create_mock_freeze_file,
    create_mock_group,
    create_mock_label_event,
    create_mock_merge_request,
    create_mock_policy,
    create_mock_project,
)
from reviewbot.testing.fixtures import BOT_USERNAME

T0 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def engine_for(client: MockGitLabClient, **policy_kwargs: Any) -> MergeEligibilityEngine:
    return MergeEligibilityEngine(client, create_mock_policy(**policy_kwargs), BOT_USERNAME)


def label_by_bot(client: MockGitLabClient, *labels: str) -> None:
    client.merge_requests.add_labels(1, 7, list(labels))


def label_by_user(client: MockGitLabClient, label: str, username: str) -> None:
    client.merge_requests.merge_requests[(1, 7)].labels.append(label)
    client.merge_requests.record_label_event(1, 7, label, username)


class TestLatestAddEvent:
    """Tests for label history lookup."""

    def test_latest_wins(self) -> None:
        events = [
            create_mock_label_event("lgtm", "alice", created_at=T0),
            create_mock_label_event("lgtm", "review-bot", created_at=T0 + timedelta(minutes=2)),
            create_mock_label_event("lgtm", "bob", action="remove", created_at=T0 + timedelta(minutes=3)),
        ]

        assert latest_add_event(events, "lgtm").username == "review-bot"

    def test_exact_name(self) -> None:
        events = [create_mock_label_event("lgtm-bob", "review-bot")]

        assert latest_add_event(events, "lgtm") is None

    def test_tie_keeps_earliest_record(self) -> None:
        events = [
            create_mock_label_event("lgtm", "review-bot", event_id=1),
            create_mock_label_event("lgtm", "mallory", event_id=2),
        ]

        assert latest_add_event(events, "lgtm").username == "review-bot"


class TestProvenance:
    """Tests for the label provenance gate."""

    def test_all_from_bot(self) -> None:
        events = [create_mock_label_event("lgtm"), create_mock_label_event("approved")]

        assert check_label_provenance(
            {"lgtm", "approved"}, {"lgtm", "approved"}, events, "review-bot", "cla/"
        ) is None

    def test_missing_history(self) -> None:
        reason = check_label_provenance({"approved"}, {"approved"}, [], "review-bot", "cla/")

        assert reason.startswith("**The following label is not ready**.")
        assert f"approved: {MSG_LOG_MISSING}" in reason

    def test_added_by_user(self) -> None:
        events = [create_mock_label_event("approved", "mallory")]

        reason = check_label_provenance({"approved"}, {"approved"}, events, "review-bot", "cla/")

        assert "mallory You can't add approved by yourself" in reason

    def test_cla_label_hint(self) -> None:
        events = [create_mock_label_event("cla/yes", "mallory")]

        reason = check_label_provenance(
            {"cla/yes"}, {"cla/yes"}, events, "review-bot", "cla/"
        )

        assert "use /check-cla to add it" in reason

    def test_several_offenders_in_one_reason(self) -> None:
        reason = check_label_provenance(
            {"approved", "lgtm-bob"}, {"approved"}, [], "review-bot", "cla/"
        )

        assert reason.startswith("**The following labels are not ready**.")
        assert "approved:" in reason
        assert "lgtm-bob:" in reason

    def test_ungoverned_labels_ignored(self) -> None:
        assert check_label_provenance(
            {"bug", "needs-docs"}, {"approved"}, [], "review-bot", "cla/"
        ) is None

    def test_bot_name_case_insensitive(self) -> None:
        events = [create_mock_label_event("approved", "Review-Bot")]

        assert check_label_provenance(
            {"approved"}, {"approved"}, events, "review-bot", "cla/"
        ) is None

    @given(
        label=st.sampled_from(["approved", "lgtm", "lgtm-bob", "ci-passed"]),
        adder=st.sampled_from(["review-bot", "alice", "mallory"]),
    )
    @settings(max_examples=100)
    def test_property_labels_must_come_from_bot(self, label: str, adder: str) -> None:
        """
        Property: Governed labels must be applied by the bot

        For any governed label present on a merge request, provenance SHALL
        pass exactly when its latest add event names the bot.
        """
        events = [create_mock_label_event(label, adder)]

        reason = check_label_provenance(
            {label}, {"approved", "ci-passed"}, events, "review-bot", "cla/"
        )

        assert (reason is None) == (adder == "review-bot")


class TestEvaluate:
    """Tests for the aggregated gate evaluation."""

    def test_mergeable(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm", "approved")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        assert engine_for(mock_client_with_mr).evaluate(mr, "community").mergeable

    def test_not_open(self, mock_client_with_mr: MockGitLabClient) -> None:
        mr = create_mock_merge_request(state="closed")

        decision = engine_for(mock_client_with_mr).evaluate(mr, "community")

        assert decision.reasons == [MSG_NOT_OPEN]

    def test_conflict_is_sole_reason(self, mock_client_with_mr: MockGitLabClient) -> None:
        mr = create_mock_merge_request(merge_status="cannot_be_merged", labels=["wip"])

        decision = engine_for(
            mock_client_with_mr, labels_forbidden_for_merge=("wip",)
        ).evaluate(mr, "community")

        assert decision.reasons == [MSG_PR_CONFLICTS]
        assert not mock_client_with_mr.was_called("merge_requests.list_label_events")

    def test_missing_labels(self, mock_client_with_mr: MockGitLabClient) -> None:
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        decision = engine_for(
            mock_client_with_mr, labels_for_merge=("ci-passed",)
        ).evaluate(mr, "community")

        assert decision.reasons == ["PR does not have these labels: approved, ci-passed, lgtm"]

    def test_forbidden_labels(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm", "approved", "wip")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        decision = engine_for(
            mock_client_with_mr, labels_forbidden_for_merge=("wip", "blocked")
        ).evaluate(mr, "community")

        assert decision.reasons == ["PR should remove these labels: wip"]

    def test_lgtm_threshold(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm-bob", "approved")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        decision = engine_for(mock_client_with_mr, lgtm_counts_required=2).evaluate(
            mr, "community"
        )

        assert decision.reasons == ["PR needs 2 lgtm labels and now gets 1"]

    def test_lgtm_threshold_met(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm-bob", "lgtm-carol", "approved")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        assert engine_for(mock_client_with_mr, lgtm_counts_required=2).evaluate(
            mr, "community"
        ).mergeable

    def test_threshold_of_three(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm-bob", "lgtm-carol", "approved")
        engine = engine_for(mock_client_with_mr, lgtm_counts_required=3)

        mr = mock_client_with_mr.merge_requests.get(1, 7)
        assert engine.evaluate(mr, "community").reasons == [
            "PR needs 3 lgtm labels and now gets 2"
        ]

        label_by_bot(mock_client_with_mr, "lgtm-dave")
        mr = mock_client_with_mr.merge_requests.get(1, 7)
        assert engine.evaluate(mr, "community").mergeable

    def test_no_lgtm_required(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "approved")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        assert engine_for(mock_client_with_mr, lgtm_counts_required=0).evaluate(
            mr, "community"
        ).mergeable

    def test_reasons_are_aggregated(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_user(mock_client_with_mr, "lgtm", "mallory")
        label_by_bot(mock_client_with_mr, "wip")
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        decision = engine_for(
            mock_client_with_mr, labels_forbidden_for_merge=("wip",)
        ).evaluate(mr, "community")

        assert len(decision.reasons) == 3
        assert decision.reasons[0].startswith("**The following label is not ready**")
        assert decision.reasons[1] == "PR does not have these labels: approved"
        assert decision.reasons[2] == "PR should remove these labels: wip"

    def test_frozen_branch(self, mock_client_with_mr: MockGitLabClient) -> None:
        mock_client_with_mr.groups.add_group(
            create_mock_group(10, "infra"), [create_mock_project(5, "infra/release")]
        )
        mock_client_with_mr.projects.add_file(
            5, "freeze.yaml",
            "release_management:\n  - {org: community, branch: master, owner: [lead]}\n",
        )
        label_by_bot(mock_client_with_mr, "lgtm", "approved")
        mr = mock_client_with_mr.merge_requests.get(1, 7)
        engine = engine_for(mock_client_with_mr, freeze_file=(create_mock_freeze_file(),))

        assert not engine.evaluate(mr, "community", trigger="reviewer").mergeable
        assert not engine.evaluate(mr, "community").mergeable
        assert engine.evaluate(mr, "community", trigger="lead").mergeable

    def test_platform_error_aborts(self, mock_client_with_mr: MockGitLabClient) -> None:
        mock_client_with_mr.merge_requests.configure_error(
            "list_label_events", ServerError("HTTP_502", "Bad Gateway")
        )
        mr = mock_client_with_mr.merge_requests.get(1, 7)

        with pytest.raises(ServerError):
            engine_for(mock_client_with_mr).evaluate(mr, "community")


class TestTryMerge:
    """Tests for evaluation followed by merge."""

    def test_merges_with_trailers(self, mock_client_with_mr: MockGitLabClient) -> None:
        mrs = mock_client_with_mr.merge_requests
        mrs.merge_requests[(1, 7)].assignee_ids = [200]
        mrs.merge_requests[(1, 7)].reviewer_ids = [200]
        mrs.add_note(1, 7, "/lgtm", "reviewer", 200)
        mrs.add_note(1, 7, "/approved", "lead", 201)
        label_by_bot(mock_client_with_mr, "lgtm", "approved")

        decision = engine_for(mock_client_with_mr).try_merge(1, 7, "community")

        mr = mrs.merge_requests[(1, 7)]
        assert decision.mergeable
        assert mrs.merged == [(1, 7)]
        assert mr.state == "merged"
        assert mr.description == (
            "From: @author\nReviewed-by: @reviewer\nSigned-off-by: @lead\n"
        )
        assert mr.assignee_ids == []
        assert mr.reviewer_ids == []

    def test_description_kept_without_trailers(
        self, mock_client_with_mr: MockGitLabClient
    ) -> None:
        label_by_bot(mock_client_with_mr, "approved")

        engine_for(mock_client_with_mr, lgtm_counts_required=0).try_merge(1, 7, "community")

        mr = mock_client_with_mr.merge_requests.merge_requests[(1, 7)]
        assert mr.state == "merged"
        assert mr.description == "Bump runner image"

    def test_blocked_silently(self, mock_client_with_mr: MockGitLabClient) -> None:
        decision = engine_for(mock_client_with_mr).try_merge(1, 7, "community")

        assert not decision.mergeable
        assert not mock_client_with_mr.was_called("merge_requests.create_note")
        assert not mock_client_with_mr.was_called("merge_requests.merge")

    def test_missing_freeze_file_never_merges(
        self, mock_client_with_mr: MockGitLabClient
    ) -> None:
        mock_client_with_mr.groups.add_group(
            create_mock_group(10, "infra"), [create_mock_project(5, "infra/release")]
        )
        label_by_bot(mock_client_with_mr, "lgtm", "approved")
        engine = engine_for(
            mock_client_with_mr, freeze_file=(create_mock_freeze_file(path="typo.yaml"),)
        )

        with pytest.raises(NotFoundError):
            engine.try_merge(1, 7, "community", trigger="reviewer")

        assert mock_client_with_mr.merge_requests.merged == []

    def test_explicit_check_reports_reasons(
        self, mock_client_with_mr: MockGitLabClient
    ) -> None:
        engine_for(mock_client_with_mr).try_merge(
            1, 7, "community", trigger="reviewer", explicit=True
        )

        note = mock_client_with_mr.merge_requests.notes[(1, 7)][-1]
        assert note.body == (
            "@reviewer , this pr is not mergeable and the reasons are below:\n"
            "PR does not have these labels: approved, lgtm"
        )

    def test_merge_failure_propagates(self, mock_client_with_mr: MockGitLabClient) -> None:
        label_by_bot(mock_client_with_mr, "lgtm", "approved")
        mock_client_with_mr.merge_requests.configure_error(
            "merge", ServerError("HTTP_500", "Internal Server Error")
        )

        with pytest.raises(ServerError):
            engine_for(mock_client_with_mr).try_merge(1, 7, "community")
