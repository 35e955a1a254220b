"""Risk ranking — composite score and deterministic ordering."""

from pydantic import BaseModel, Field

from dep_inspector.analysis.dedup import version_key
from dep_inspector.models import RiskEntry


class ScoreWeights(BaseModel):
    """Weights of the composite risk score.

    Non-negative weights keep the score non-decreasing in every metric.
    """

    transitive: float = Field(default=10.0, ge=0)
    loc: float = Field(default=0.01, ge=0)
    unsafe_loc: float = Field(default=1.0, ge=0)


def compute_score(entry: RiskEntry, weights: ScoreWeights) -> float:
    return (
        weights.transitive * entry.transitive_count
        + weights.loc * entry.aggregate_loc
        + weights.unsafe_loc * entry.aggregate_unsafe_loc
    )


def rank(entries: list[RiskEntry], weights: ScoreWeights | None = None) -> list[RiskEntry]:
    """Score entries and sort them, riskiest first; ties break by name."""
    weights = weights or ScoreWeights()
    scored = [
        e.model_copy(update={"score": round(compute_score(e, weights), 6)}) for e in entries
    ]
    return sorted(scored, key=lambda e: (-e.score, e.name, version_key(e.version)))
