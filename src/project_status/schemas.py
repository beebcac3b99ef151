"""Pydantic models for everything that flows through the status engine.

Three groups of models live here:
- The input descriptor supplied by the project catalog
- The typed results of each remote lookup (one model per source shape)
- The flat output record shown on the dashboard

Key design decisions:
- Sources that come in more than one shape are tagged with a ``kind``
  literal (full vs workspace repository, issue vs pull request) so
  downstream code matches on the tag instead of probing for fields
- Fetched payloads ignore fields we don't read; manifests keep them
  since the coverage helper looks at tool-specific sections
- Output models serialize with camelCase aliases, which is the shape
  the dashboard front end consumes
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class ProjectDescriptor(BaseModel):
    """A tracked project as listed in the catalog.

    Attributes:
        id: Stable identifier used as the record key
        owner: Repository owner (user or organization)
        name: Repository name
        path: Sub-directory of the repository for workspace projects
        pkg: Registry identifier for published projects
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Project identifier")
    owner: str = Field(..., min_length=1, description="Repository owner")
    name: str = Field(..., min_length=1, description="Repository name")
    path: str | None = Field(None, description="Workspace directory in the repository")
    pkg: str | None = Field(None, description="Registry package name")

    @field_validator("path", "pkg", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("path")
    @classmethod
    def _strip_slashes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip("/") or None

    @property
    def is_workspace(self) -> bool:
        return self.path is not None

    @property
    def is_published(self) -> bool:
        return self.pkg is not None


# ---------------------------------------------------------------------------
# Repository host results
# ---------------------------------------------------------------------------


class Commit(BaseModel):
    """Latest commit touching the project."""

    sha: str
    html_url: str
    date: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Commit:
        """Build from a GitHub commit payload (``commit.author.date`` nested)."""
        return cls(
            sha=payload["sha"],
            html_url=payload["html_url"],
            date=payload["commit"]["author"]["date"],
        )


class RepoLicense(BaseModel):
    spdx_id: str | None = None


class FullRepository(BaseModel):
    """Repository lookup for a top-level project."""

    kind: Literal["full"] = "full"
    default_branch: str
    html_url: str
    archived: bool = False
    # kept raw; only a numeric count is displayed
    stargazers_count: Any = None
    license: RepoLicense | None = None


class WorkspaceRepository(BaseModel):
    """Repository lookup restricted to what a workspace displays.

    Workspaces are shown under their parent repository, so stars and
    license are deliberately not carried.
    """

    kind: Literal["workspace"] = "workspace"
    default_branch: str
    html_url: str
    archived: bool = False

    @classmethod
    def from_repository(cls, repo: FullRepository) -> WorkspaceRepository:
        return cls(
            default_branch=repo.default_branch,
            html_url=repo.html_url,
            archived=repo.archived,
        )


class CommitStatus(BaseModel):
    """Aggregated CI result for a commit."""

    url: str | None = None
    conclusion: str | None = None


# ---------------------------------------------------------------------------
# Package results
# ---------------------------------------------------------------------------


class ManifestDist(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unpacked_size: int | None = Field(None, alias="unpackedSize")

    @field_validator("unpacked_size", mode="before")
    @classmethod
    def _integer_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, int) and not isinstance(value, bool) else None


class Manifest(BaseModel):
    """A package manifest, from the registry or from the repository.

    Only the fields the dashboard reads are declared; the rest are kept
    as extras. A declared field holding a value of an unexpected type is
    read as unset rather than rejected, so one odd entry in a hand-edited
    package.json never costs the project its record.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    version: str | None = None
    private: bool | None = None
    license: str | None = None
    engines: dict[str, Any] | None = None
    template_oss: dict[str, Any] | None = Field(None, alias="templateOSS")
    deprecated: str | bool | None = None
    dist: ManifestDist | None = None
    scripts: dict[str, Any] | None = None
    tap: dict[str, Any] | None = None
    c8: dict[str, Any] | None = None

    @field_validator("license", mode="before")
    @classmethod
    def _normalize_license(cls, value: Any) -> Any:
        # legacy manifests use {"type": "MIT"} or a list of those
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            value = value.get("type")
        return value if isinstance(value, str) else None

    @field_validator("name", "version", mode="before")
    @classmethod
    def _string_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("private", mode="before")
    @classmethod
    def _bool_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, bool) else None

    @field_validator("deprecated", mode="before")
    @classmethod
    def _deprecation(cls, value: Any) -> Any:
        return value if isinstance(value, (str, bool)) else None

    @field_validator("engines", "template_oss", "dist", "scripts", "tap", "c8", mode="before")
    @classmethod
    def _mapping_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class Packument(BaseModel):
    """Registry publication metadata for all versions of a package."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    time: dict[str, Any] = Field(default_factory=dict)
    dist_tags: dict[str, str] = Field(default_factory=dict, alias="dist-tags")


# ---------------------------------------------------------------------------
# Issues and pull requests
# ---------------------------------------------------------------------------


class Label(BaseModel):
    name: str


class _BacklogItemBase(BaseModel):
    number: int | None = None
    title: str = ""
    labels: list[Label] = Field(default_factory=list)
    url: str | None = None
    html_url: str | None = None

    def has_label(self, name: str) -> bool:
        return any(label.name == name for label in self.labels)


class Issue(_BacklogItemBase):
    kind: Literal["issue"] = "issue"


class PullRequest(_BacklogItemBase):
    kind: Literal["pull_request"] = "pull_request"


BacklogItem = Annotated[Union[Issue, PullRequest], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class _OutputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class BacklogSummary(_OutputModel):
    """Display summary of open issues or pull requests.

    Attributes:
        count: Number of open items
        url: Link to the list on the repository host
        unlabeled: Items that have no labels yet (need triage)
        delta: Change since the most recent snapshot, None without history
        history: Prior counts, newest first
    """

    count: int = 0
    url: str | None = None
    unlabeled: int = 0
    delta: int | None = None
    history: list[int] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    """A prior snapshot of a project's record (only the backlog is read)."""

    model_config = ConfigDict(extra="ignore")

    prs: BacklogSummary | None = None
    issues: BacklogSummary | None = None


class LastPush(_OutputModel):
    date: str
    url: str


class StatusLink(_OutputModel):
    url: str
    conclusion: str | None = None


class Stars(_OutputModel):
    count: int
    url: str


class PendingRelease(_OutputModel):
    url: str | None = None
    version: str


class NormalizedRecord(_OutputModel):
    """The flat per-project record rendered by the dashboard.

    Every field is independently nullable; there is no partial shape.
    """

    # identity (always from the descriptor)
    id: str
    name: str
    owner: str
    path: str | None = None
    # repository
    default_branch: str
    url: str
    last_push: LastPush
    archived: bool = False
    status: StatusLink | None = None
    stars: Stars | None = None
    # manifest
    pkg_private: bool = False
    pkg_name: str | None = None
    coverage: int | float | None = None
    template_version: str | None = None
    license: str | None = None
    node: str | None = None
    # registry
    version: str | None = None
    last_published: str | None = None
    size: int | None = None
    pkg_url: str | None = None
    deprecated: str | bool = False
    downloads: int | None = None
    # backlog
    pending_release: PendingRelease | None = None
    prs: BacklogSummary | None = None
    issues: BacklogSummary | None = None

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)
