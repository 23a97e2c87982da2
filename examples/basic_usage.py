#!/usr/bin/env python3
"""
Basic reviewbot usage example.

Replays the webhook events of a short review against the in-memory mock
client: a reviewer comments /lgtm, a maintainer comments /approved and the
bot merges the request.

Run with: python examples/basic_usage.py
"""

import logging

from reviewbot import Configuration, Robot, configure_logging, parse_event
from reviewbot.testing import (
    MockGitLabClient,
    create_mock_merge_request,
    create_mock_policy,
    create_mock_project,
)

configure_logging(level=logging.INFO)

print("=== reviewbot Basic Usage Example ===\n")

# 1. A governed project with one open merge request
print("1. Seeding the mock GitLab...")
client = MockGitLabClient(username="review-bot")
client.projects.add_project(create_mock_project(1, "community/website"))
client.projects.add_member(1, 200, access_level=30)  # reviewer: Developer
client.projects.add_member(1, 201, access_level=40)  # maintainer
client.merge_requests.add_merge_request(create_mock_merge_request(1, 7))

cfg = Configuration(bot_username="review-bot", config_items=(create_mock_policy(),))
robot = Robot(client, lambda: cfg)
print("   OK\n")


def note_hook(user_id: int, username: str, body: str) -> dict:
    """Build a GitLab note webhook payload for a comment on !7."""
    client.merge_requests.add_note(1, 7, body, username, user_id)
    return {
        "object_kind": "note",
        "user": {"id": user_id, "username": username},
        "project": {"id": 1, "path_with_namespace": "community/website"},
        "object_attributes": {"id": 1, "note": body, "noteable_type": "MergeRequest"},
        "merge_request": {
            "iid": 7,
            "author_id": 100,
            "state": "opened",
            "target_branch": "master",
        },
    }


# 2. Reviewer approves the change
print("2. reviewer comments /lgtm...")
robot.handle_event(parse_event(note_hook(200, "reviewer", "/lgtm")))
mr = client.merge_requests.get(1, 7)
print(f"   Labels: {mr.labels}, state: {mr.state}\n")

# 3. Maintainer approves; every gate passes and the bot merges
print("3. maintainer comments /approved...")
robot.handle_event(parse_event(note_hook(201, "maintainer", "/approved")))
mr = client.merge_requests.get(1, 7)
print(f"   Labels: {mr.labels}, state: {mr.state}")
print(f"   Description:\n{mr.description}")

assert mr.state == "merged"
print("=== Done ===")
