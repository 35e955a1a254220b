"""Report rendering — JSON for machines, Markdown for humans."""

from dep_inspector.models import RiskEntry, RiskReport


def render_json(report: RiskReport, indent: int | None = 2) -> str:
    """Serialize the full report."""
    return report.model_dump_json(indent=indent)


def _stars(entry: RiskEntry) -> str:
    if entry.enrichment is None or entry.enrichment.stargazers_count is None:
        return "—"
    return str(entry.enrichment.stargazers_count)


def _activity(entry: RiskEntry) -> str:
    if entry.enrichment is None or entry.enrichment.last_activity is None:
        return "—"
    return f"{entry.enrichment.last_activity:%Y-%m-%d}"


def render_markdown(report: RiskReport) -> str:
    """Render the ranked report as a Markdown document."""
    lines: list[str] = [
        f"# Dependency risk report: {report.root}",
        "",
        f"Generated {report.generated_at:%Y-%m-%d %H:%M}. "
        f"{len(report.entries)} top-level dependencies, "
        f"{report.total_dependencies} packages in total.",
        "",
        "| # | Dependency | Version | Score | Transitive | Aggregate LOC | Aggregate unsafe LOC | Total LOC | Stars | Last activity | Repository |",
        "|---|---|---|---|---|---|---|---|---|---|---|",
    ]
    for i, e in enumerate(report.entries, start=1):
        repo = str(e.repository) if e.repository else "—"
        lines.append(
            f"| {i} | {e.name} | {e.version} | {e.score:.1f} | {e.transitive_count} "
            f"| {e.aggregate_loc} | {e.aggregate_unsafe_loc} | {e.total_loc} | {_stars(e)} | {_activity(e)} | {repo} |"
        )

    if report.dedup_decisions:
        lines += ["", "## Collapsed versions", ""]
        for d in report.dedup_decisions:
            lines.append(f"- **{d.name}**: kept {d.kept_version}, merged {', '.join(d.merged_versions)}")

    if report.unresolved_repositories:
        lines += ["", "## Repositories not resolved", ""]
        for u in report.unresolved_repositories:
            lines.append(f"- {u.dependency}: {u.reason}" + (f" (`{u.url}`)" if u.url else ""))

    if report.enrichment_failures:
        lines += ["", "## Failed lookups", ""]
        lines += [f"- {f}" for f in report.enrichment_failures]

    if report.metric_warnings:
        lines += ["", "## Packages without line counts", ""]
        lines += [f"- {w.node_id}: {w.reason}" for w in report.metric_warnings]

    return "\n".join(lines) + "\n"
