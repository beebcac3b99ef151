"""Exceptions raised while building project status records."""

from __future__ import annotations


class ProjectStatusError(Exception):
    """Base class for all project-status errors."""


class SourceUnavailable(ProjectStatusError):
    """A remote lookup failed (network, auth, not found, bad payload).

    The original exception is always attached as ``__cause__``.

    Attributes:
        source: Name of the lookup that failed (e.g. "commit", "repo", "status")
        project_id: Id of the project being built, when known
    """

    def __init__(self, source: str, project_id: str | None = None, detail: str = "") -> None:
        self.source = source
        self.project_id = project_id
        self.detail = detail
        message = f"lookup '{source}' failed"
        if project_id:
            message += f" for project '{project_id}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ConfigError(ProjectStatusError, ValueError):
    """Settings, catalog or history content could not be loaded."""
