"""Canonical URLs shown on the dashboard."""

from __future__ import annotations

from project_status.schemas import ProjectDescriptor

GITHUB_URL = "https://github.com"
NPM_PACKAGE_URL = "https://www.npmjs.com/package"


def repo_url(project: ProjectDescriptor, host: str = GITHUB_URL) -> str:
    return f"{host.rstrip('/')}/{project.owner}/{project.name}"


def full_url(project: ProjectDescriptor, default_branch: str, host: str = GITHUB_URL) -> str:
    """Repository URL, pointing into the workspace directory when there is one.

    ``default_branch`` must come from the repository lookup.
    """
    url = repo_url(project, host)
    if project.path:
        url += f"/tree/{default_branch}/{project.path}"
    return url


def stargazers_url(base: str) -> str:
    return f"{base}/stargazers"


def status_url(base: str, reported: str | None) -> str:
    """CI link: what the status source reported, else the Actions tab."""
    return reported or f"{base}/actions"


def package_url(pkg_name: str | None) -> str | None:
    return f"{NPM_PACKAGE_URL}/{pkg_name}" if pkg_name else None
