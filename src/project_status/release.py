"""Detect a queued automated release among the open pull requests.

Release automation opens a PR labeled ``autorelease: pending`` whose
title names the upcoming version (e.g. "chore: release 2.3.4").
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from project_status.schemas import PendingRelease, PullRequest

PENDING_LABEL = "autorelease: pending"

# Full semver 2.0.0 version with optional leading "v", unanchored so it
# can be found inside a PR title.
_NUMERIC = r"(?:0|[1-9]\d*)"
_PRERELEASE_ID = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][a-zA-Z0-9-]*)"
_BUILD_ID = r"[0-9A-Za-z-]+"
SEMVER_RE = re.compile(
    rf"v?{_NUMERIC}\.{_NUMERIC}\.{_NUMERIC}"
    rf"(?:-{_PRERELEASE_ID}(?:\.{_PRERELEASE_ID})*)?"
    rf"(?:\+{_BUILD_ID}(?:\.{_BUILD_ID})*)?"
)


def extract_version(title: str) -> str:
    """First semver token in ``title``, or the title itself when there is none."""
    match = SEMVER_RE.search(title)
    return match.group(0) if match else title


def find_pending_release(prs: Sequence[PullRequest] | None) -> PendingRelease | None:
    """Return the first PR labeled as a pending release, or None."""
    if not prs:
        return None
    for pr in prs:
        if pr.has_label(PENDING_LABEL):
            return PendingRelease(
                url=pr.html_url or pr.url,
                version=extract_version(pr.title),
            )
    return None
