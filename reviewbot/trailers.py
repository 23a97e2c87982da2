"""Attribution trailers for the merge description."""

import re

from reviewbot.commands import ADD_APPROVE, ADD_LGTM
from reviewbot.types.merge_requests import Note


def _qualifies(note: Note, pattern: re.Pattern, author: str) -> bool:
    # an edited comment could attribute a review retroactively
    return (
        not note.system
        and bool(pattern.search(note.body))
        and not note.edited
        and note.author_username.lower() != author.lower()
    )


def _mentions(names: set[str]) -> str:
    return ", ".join(f"@{name}" for name in sorted(names))


def generate_trailers(notes: list[Note], author: str) -> str:
    """
    Build the Reviewed-by/Signed-off-by block of a merge request.

    Reviewers are authors of unedited `/lgtm` comments, signers authors of
    unedited `/approved` comments; the merge request author never counts.

    Args:
        notes: All comments of the merge request
        author: Username of the merge request author

    Returns:
        The three-line trailer block, or "" if nobody qualifies
    """
    reviewers: set[str] = set()
    signers: set[str] = set()

    for note in notes:
        if _qualifies(note, ADD_LGTM, author):
            reviewers.add(note.author_username)
        if _qualifies(note, ADD_APPROVE, author):
            signers.add(note.author_username)

    if not reviewers and not signers:
        return ""

    return (
        f"From: @{author}\n"
        f"Reviewed-by: {_mentions(reviewers)}\n"
        f"Signed-off-by: {_mentions(signers)}\n"
    )
