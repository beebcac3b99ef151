"""Split the combined open-issues list into issues and pull requests.

GitHub's issues endpoint returns both kinds of item; a pull request is
recognized solely by carrying a ``pull_request`` key. Items are typed
once here and consumed as Issue / PullRequest everywhere downstream.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from project_status.schemas import BacklogItem, Issue, PullRequest


@dataclass(frozen=True)
class ClassifiedBacklog:
    prs: list[PullRequest] | None
    issues: list[Issue] | None


def to_backlog_item(raw: dict[str, Any]) -> BacklogItem:
    """Type a raw issues-endpoint item by the presence of ``pull_request``."""
    if "pull_request" in raw:
        return PullRequest.model_validate(raw)
    return Issue.model_validate(raw)


def partition_items(items: Iterable[BacklogItem]) -> tuple[list[PullRequest], list[Issue]]:
    """Stable partition into (prs, issues)."""
    prs: list[PullRequest] = []
    issues: list[Issue] = []
    for item in items:
        if isinstance(item, PullRequest):
            prs.append(item)
        else:
            issues.append(item)
    return prs, issues


def classify(raw_items: list[dict[str, Any]] | None) -> ClassifiedBacklog:
    """Classify a raw combined list; None (never fetched) stays None on both sides."""
    if raw_items is None:
        return ClassifiedBacklog(prs=None, issues=None)
    prs, issues = partition_items(to_backlog_item(raw) for raw in raw_items)
    return ClassifiedBacklog(prs=prs, issues=issues)
