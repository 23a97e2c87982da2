"""Comment commands understood by the bot.

A command is a line of its own in a comment; matching is case-insensitive.
"""

import re

ADD_LGTM = re.compile(r"(?mi)^/lgtm\s*$")
REMOVE_LGTM = re.compile(r"(?mi)^/lgtm cancel\s*$")
ADD_APPROVE = re.compile(r"(?mi)^/approved\s*$")
REMOVE_APPROVE = re.compile(r"(?mi)^/approved cancel\s*$")
CHECK_PR = re.compile(r"(?mi)^/check-pr\s*$")

# Posted when the source branch changes so CI runs again
RETEST = "/retest"
