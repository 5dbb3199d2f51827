"""Pydantic models for type-safe data structures."""

import math

from pydantic import BaseModel, Field


class ResolutionDistance(BaseModel):
    """Distance between a query and one encoding of a video.

    Attributes:
        resolution: Resolution label (e.g. "480p").
        distance: Partial DTW score (lower is better, inf if unmatchable).
    """
    resolution: str
    distance: float


class VideoMatch(BaseModel):
    """Ranking entry for one catalog video.

    Attributes:
        identifier: Video name in the catalog.
        distance: Best distance over all resolutions.
        resolutions: Per-resolution distances, best first.
    """
    identifier: str
    distance: float
    resolutions: list[ResolutionDistance] = Field(default_factory=list)

    @property
    def best_resolution(self) -> str | None:
        """Resolution that produced the representative distance."""
        return self.resolutions[0].resolution if self.resolutions else None


class QueryReport(BaseModel):
    """Top matches for a single query fingerprint.

    Attributes:
        query: Label of the query (usually its file path).
        matches: Best matches, best first, at most top_k entries.
    """
    query: str
    matches: list[VideoMatch]


class Verification(BaseModel):
    """Outcome of checking a query's best match against its expected identity.

    Attributes:
        query: Label of the query.
        best: Identifier of the best-ranked video.
        distance: Distance of the best-ranked video.
        ok: Whether the best match is the expected video.
    """
    query: str
    best: str
    distance: float
    ok: bool


class VerifySummary(BaseModel):
    """Aggregate verification counts over a session.

    Attributes:
        results: Per-query outcomes, in processing order.
    """
    results: list[Verification] = Field(default_factory=list)

    @property
    def ok(self) -> int:
        """Number of verified queries."""
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        """Number of queries whose best match was wrong."""
        return sum(1 for r in self.results if not r.ok)


def distance_sort_key(distance: float) -> tuple[int, float]:
    """Ascending sort key placing finite distances first, then inf, then NaN."""
    if math.isnan(distance):
        return (2, 0.0)
    if math.isinf(distance):
        return (1, 0.0)
    return (0, distance)
