"""Display summaries of the open issue and pull request backlog.

Each summary counts the open items, how many still lack labels, and
how the count moved since the previous snapshot. History is supplied
newest first, as one summary (or None) per snapshot for the same kind
of item.
"""

from __future__ import annotations

from collections.abc import Sequence

from project_status.schemas import BacklogSummary, Issue, PullRequest


def summarize_backlog(
    items: Sequence[Issue] | Sequence[PullRequest] | None,
    url: str,
    history: Sequence[BacklogSummary | None] | None = None,
) -> BacklogSummary | None:
    """Summarize ``items``; None when the backlog was never fetched."""
    if items is None:
        return None

    prior = [entry.count for entry in history or () if entry is not None]
    count = len(items)

    return BacklogSummary(
        count=count,
        url=url,
        unlabeled=sum(1 for item in items if not item.labels),
        delta=count - prior[0] if prior else None,
        history=prior,
    )


def project_issues(
    issues: Sequence[Issue] | None,
    repo_html_url: str,
    history: Sequence[BacklogSummary | None] | None = None,
) -> BacklogSummary | None:
    return summarize_backlog(issues, f"{repo_html_url}/issues", history)


def project_prs(
    prs: Sequence[PullRequest] | None,
    repo_html_url: str,
    history: Sequence[BacklogSummary | None] | None = None,
) -> BacklogSummary | None:
    return summarize_backlog(prs, f"{repo_html_url}/pulls", history)
