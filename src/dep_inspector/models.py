"""Data models for dep-inspector."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def node_key(name: str, version: str) -> str:
    """Identity of a package inside a dependency graph."""
    return f"{name}@{version}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Dependency graph ──────────────────────────────────────────────────────

class PackageNode(BaseModel):
    """A single package pulled into the build."""

    name: str
    version: str
    path: Optional[str] = None  # directory holding the package sources
    repository: Optional[str] = None  # declared repository URL
    description: Optional[str] = None
    versions: list[str] = Field(default_factory=list)

    def model_post_init(self, _ctx: object) -> None:
        if not self.versions:
            self.versions = [self.version]

    @property
    def node_id(self) -> str:
        return node_key(self.name, self.version)


class EdgeKind(str, Enum):
    """Whether a link starts at the analyzed package or at a dependency."""

    direct = "direct"
    transitive = "transitive"


class DependencyEdge(BaseModel):
    """Directed consumer → dependency reference."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    kind: EdgeKind = EdgeKind.transitive


class DependencyGraph(BaseModel):
    """Resolved dependency graph of the analyzed package.

    ``nodes`` holds third-party packages only.  Direct edges start at a
    workspace member (a name in ``workspace_members``) and point at a node
    listed in ``top_level``.
    """

    root: str = ""
    ecosystem: str = ""  # "cargo" when loaded from cargo metadata
    nodes: dict[str, PackageNode] = Field(default_factory=dict)
    edges: list[DependencyEdge] = Field(default_factory=list)
    top_level: list[str] = Field(default_factory=list)
    workspace_members: list[str] = Field(default_factory=list)

    def adjacency(self) -> dict[str, list[str]]:
        """Map each node to the nodes it depends on (transitive edges only)."""
        adj: dict[str, list[str]] = {node_id: [] for node_id in self.nodes}
        for edge in self.edges:
            if edge.source in adj and edge.target in self.nodes:
                adj[edge.source].append(edge.target)
        return adj

    def importers_of(self, node_id: str) -> list[str]:
        """Workspace members declaring ``node_id`` directly."""
        return sorted(
            {
                e.source
                for e in self.edges
                if e.kind == EdgeKind.direct and e.target == node_id
            }
        )


class LineCounts(BaseModel):
    """Lines of code measured for one package."""

    loc: int = Field(default=0, ge=0)
    unsafe_loc: int = Field(default=0, ge=0)
    files: int = Field(default=0, ge=0)


# ── Diagnostics ───────────────────────────────────────────────────────────

class DeduplicationAmbiguity(BaseModel):
    """Several versions of one dependency were collapsed into one node."""

    name: str
    kept_version: str
    merged_versions: list[str] = Field(default_factory=list)


class NodeMetricWarning(BaseModel):
    """Line counts were unavailable for a node; it contributes zero."""

    node_id: str
    reason: str = ""


class RepositoryUnresolved(BaseModel):
    """A top-level dependency could not be mapped to a hosted repository."""

    dependency: str
    url: Optional[str] = None
    reason: str = ""


# ── Graph metrics ─────────────────────────────────────────────────────────

class AggregateMetrics(BaseModel):
    """Metrics of one top-level dependency, including its transitive tree."""

    node_id: str
    transitive_count: int = 0
    loc: int = 0
    unsafe_loc: int = 0
    dependencies_loc: int = 0
    dependencies_unsafe_loc: int = 0
    direct_dependencies: list[str] = Field(default_factory=list)
    transitive_dependencies: list[str] = Field(default_factory=list)
    exclusive_dependencies: list[str] = Field(default_factory=list)
    root_importers: list[str] = Field(default_factory=list)

    @property
    def total_loc(self) -> int:
        return self.loc + self.dependencies_loc

    @property
    def total_unsafe_loc(self) -> int:
        return self.unsafe_loc + self.dependencies_unsafe_loc


# ── Enrichment ────────────────────────────────────────────────────────────

class CanonicalRepository(BaseModel):
    """A hosted source repository, independent of URL formatting."""

    model_config = ConfigDict(frozen=True)

    host: str
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return f"{self.host}/{self.owner}/{self.name}"


class EnrichmentRecord(BaseModel):
    """Popularity and activity metrics of a hosted repository."""

    model_config = ConfigDict(frozen=True)

    repository: CanonicalRepository
    stargazers_count: Optional[int] = None
    forks_count: Optional[int] = None
    open_issues_count: Optional[int] = None
    archived: bool = False
    last_activity: Optional[datetime] = None
    active_contributors: Optional[int] = None
    fetched_at: datetime = Field(default_factory=_utcnow)
    valid: bool = True  # False when only part of the metrics could be fetched


class RegistryRecord(BaseModel):
    """Package registry metadata (crates.io)."""

    model_config = ConfigDict(frozen=True)

    name: str
    dependents: Optional[int] = None
    last_updated: Optional[str] = None  # YYYY-MM-DD


# ── Report ────────────────────────────────────────────────────────────────

class RiskEntry(BaseModel):
    """Risk summary of one top-level dependency."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    versions: list[str] = Field(default_factory=list)
    transitive_count: int = Field(default=0, ge=0)
    loc: int = Field(default=0, ge=0)
    unsafe_loc: int = Field(default=0, ge=0)
    # sums over the reachable set, excluding the dependency itself
    aggregate_loc: int = Field(default=0, ge=0)
    aggregate_unsafe_loc: int = Field(default=0, ge=0)
    total_loc: int = Field(default=0, ge=0)
    total_unsafe_loc: int = Field(default=0, ge=0)
    direct_dependencies: list[str] = Field(default_factory=list)
    transitive_dependencies: list[str] = Field(default_factory=list)
    exclusive_dependencies: list[str] = Field(default_factory=list)
    root_importers: list[str] = Field(default_factory=list)
    repository: Optional[CanonicalRepository] = None
    repository_url: Optional[str] = None
    enrichment: Optional[EnrichmentRecord] = None
    registry: Optional[RegistryRecord] = None
    score: float = 0.0


class CacheStats(BaseModel):
    """Counters of an enrichment cache after a run."""

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    queries: int = 0
    retries: int = 0
    failures: int = 0


class RiskReport(BaseModel):
    """Complete result of a dependency inspection."""

    root: str
    generated_at: datetime = Field(default_factory=_utcnow)
    entries: list[RiskEntry] = Field(default_factory=list)
    workspace_members: list[str] = Field(default_factory=list)
    total_dependencies: int = 0
    dedup_decisions: list[DeduplicationAmbiguity] = Field(default_factory=list)
    metric_warnings: list[NodeMetricWarning] = Field(default_factory=list)
    unresolved_repositories: list[RepositoryUnresolved] = Field(default_factory=list)
    enrichment_failures: list[str] = Field(default_factory=list)
    cache_stats: CacheStats = Field(default_factory=CacheStats)

    def entry(self, name: str) -> Optional[RiskEntry]:
        """Look up a ranked entry by dependency name."""
        return next((e for e in self.entries if e.name == name), None)
