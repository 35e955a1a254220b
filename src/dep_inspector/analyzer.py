"""Dependency risk analysis engine.

Loads the dependency graph, collapses duplicate versions, measures and
aggregates code volume, correlates top-level dependencies with their GitHub
repositories, and ranks everything into a RiskReport.
"""

import asyncio
import logging
from typing import Callable, Iterable, Mapping, Optional

from dep_inspector.analysis.aggregate import aggregate, find_cycles
from dep_inspector.analysis.dedup import deduplicate
from dep_inspector.analysis.ranking import rank
from dep_inspector.cache import EnrichmentCache
from dep_inspector.config import InspectorConfig
from dep_inspector.counter import LineCounter
from dep_inspector.fetcher import CratesIoFetcher, GitHubFetcher
from dep_inspector.loader import GraphSource, load_graph
from dep_inspector.models import (
    CanonicalRepository,
    EnrichmentRecord,
    LineCounts,
    NodeMetricWarning,
    RegistryRecord,
    RepositoryUnresolved,
    RiskEntry,
    RiskReport,
)
from dep_inspector.repository import parse_repository_url

logger = logging.getLogger(__name__)


class Analyzer:
    """End-to-end dependency inspection."""

    def __init__(
        self,
        config: Optional[InspectorConfig] = None,
        token: Optional[str] = None,
        on_status: Optional[Callable[[str], None]] = None,
        fetcher: Optional[GitHubFetcher] = None,
        registry: Optional[CratesIoFetcher] = None,
        counter: Optional[LineCounter] = None,
    ) -> None:
        self.config = config or InspectorConfig.from_env()
        if token:
            self.config = self.config.model_copy(update={"github_token": token})
        self._on_status = on_status or (lambda _: None)
        self._fetcher = fetcher or GitHubFetcher(
            token=self.config.github_token,
            proxy=self.config.proxy,
            timeout=self.config.request_timeout,
        )
        self._registry = registry or CratesIoFetcher(
            proxy=self.config.proxy, timeout=self.config.request_timeout
        )
        self._counter = counter or LineCounter(test_marker=self.config.test_marker)

    # ── Status helper ─────────────────────────────────────────────────────

    def _status(self, msg: str) -> None:
        logger.info(msg)
        self._on_status(msg)

    def _new_cache(self, fetch) -> EnrichmentCache:  # type: ignore[no-untyped-def]
        return EnrichmentCache(
            fetch,
            max_concurrency=self.config.max_concurrency,
            timeout=self.config.query_timeout,
            max_attempts=self.config.max_attempts,
            backoff=self.config.retry_backoff,
            min_interval=self.config.request_interval,
        )

    async def close(self) -> None:
        """Tear down HTTP clients."""
        await self._fetcher.close()
        await self._registry.close()

    # ── Full inspection ───────────────────────────────────────────────────

    async def inspect(
        self,
        source: GraphSource,
        counts: Optional[Mapping[str, LineCounts]] = None,
        packages: Optional[Iterable[str]] = None,
        ignore: Optional[Iterable[str]] = None,
    ) -> RiskReport:
        """Run the entire pipeline.  Only FatalGraphError propagates."""
        # 1. Graph
        self._status("Loading dependency graph …")
        raw = load_graph(source, packages=packages, ignore=ignore)
        for cycle in find_cycles(raw):
            logger.info("dependency cycle detected: %s", " -> ".join(cycle))

        self._status("Deduplicating versions …")
        graph, decisions = deduplicate(raw)

        # 2. Code volume
        warnings: dict[str, NodeMetricWarning] = {}
        if counts is None:
            self._status(f"Counting lines of code ({len(graph.nodes)} packages) …")
            counts, measured = self._counter.measure(graph)
            warnings.update((w.node_id, w) for w in measured)

        self._status("Aggregating transitive metrics …")
        metrics, missing = aggregate(graph, counts)
        for w in missing:
            warnings.setdefault(w.node_id, w)

        # 3. Repositories
        repos: dict[str, CanonicalRepository] = {}
        unresolved: list[RepositoryUnresolved] = []
        for node_id in graph.top_level:
            node = graph.nodes[node_id]
            repo = parse_repository_url(node.repository, self.config.supported_hosts)
            if repo is None:
                reason = "no repository declared" if not node.repository else "unsupported or malformed URL"
                unresolved.append(
                    RepositoryUnresolved(dependency=node.name, url=node.repository, reason=reason)
                )
                logger.info("no canonical repository for %s: %s", node.name, reason)
                continue
            repos[node_id] = repo

        # 4. Enrichment
        repo_cache: EnrichmentCache[CanonicalRepository, EnrichmentRecord] = self._new_cache(
            self._fetcher.fetch_enrichment
        )
        registry_cache: EnrichmentCache[str, RegistryRecord] = self._new_cache(
            self._registry.fetch_registry
        )
        use_registry = self.config.registry_lookups and graph.ecosystem == "cargo"
        names = [graph.nodes[n].name for n in graph.top_level] if use_registry else []
        self._status(
            f"Fetching repository metrics ({len(set(repos.values()))} repositories) …"
        )
        try:
            enrichment, registry = await asyncio.gather(
                repo_cache.get_many(repos.values()),
                registry_cache.get_many(names),
            )
        finally:
            await repo_cache.aclose()
            await registry_cache.aclose()

        # 5. Ranking
        self._status("Ranking dependencies …")
        entries: list[RiskEntry] = []
        for node_id in graph.top_level:
            node = graph.nodes[node_id]
            m = metrics[node_id]
            repo = repos.get(node_id)
            entries.append(
                RiskEntry(
                    name=node.name,
                    version=node.version,
                    versions=node.versions,
                    transitive_count=m.transitive_count,
                    loc=m.loc,
                    unsafe_loc=m.unsafe_loc,
                    aggregate_loc=m.dependencies_loc,
                    aggregate_unsafe_loc=m.dependencies_unsafe_loc,
                    total_loc=m.total_loc,
                    total_unsafe_loc=m.total_unsafe_loc,
                    direct_dependencies=m.direct_dependencies,
                    transitive_dependencies=m.transitive_dependencies,
                    exclusive_dependencies=m.exclusive_dependencies,
                    root_importers=m.root_importers,
                    repository=repo,
                    repository_url=node.repository,
                    enrichment=enrichment.get(repo) if repo else None,
                    registry=registry.get(node.name),
                )
            )

        failures = [f"{key}: {msg}" for key, msg in repo_cache.failures.items()]
        failures += [f"crates.io/{key}: {msg}" for key, msg in registry_cache.failures.items()]

        self._status("Done!")
        return RiskReport(
            root=graph.root,
            entries=rank(entries, self.config.weights),
            workspace_members=graph.workspace_members,
            total_dependencies=len(graph.nodes),
            dedup_decisions=decisions,
            metric_warnings=sorted(warnings.values(), key=lambda w: w.node_id),
            unresolved_repositories=unresolved,
            enrichment_failures=sorted(failures),
            cache_stats=repo_cache.stats,
        )
