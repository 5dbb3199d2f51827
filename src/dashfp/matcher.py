"""Ranking of catalog videos against a query fingerprint."""

from __future__ import annotations

import logging
import multiprocessing
from collections.abc import Iterable
from functools import partial
from pathlib import PurePosixPath

from tqdm import tqdm

from .catalog import FingerprintCatalog
from .config import MatchConfig
from .fingerprint import Fingerprint, check_fingerprint
from .models import (
    QueryReport,
    ResolutionDistance,
    Verification,
    VerifySummary,
    VideoMatch,
    distance_sort_key,
)
from .pdtw import partial_dtw

logger = logging.getLogger(__name__)


def _score_template_worker(
    template_item: tuple[str, str, Fingerprint], query: Fingerprint
) -> tuple[str, str, float]:
    """Worker function for parallel template scoring.

    Args:
        template_item: Tuple of (identifier, resolution, template).
        query: Query fingerprint.

    Returns:
        Tuple of (identifier, resolution, distance).
    """
    identifier, resolution, template = template_item
    return identifier, resolution, partial_dtw(query, template)


def is_verified(label: str, identifier: str) -> bool:
    """Whether a query label names the given video.

    The label matches when it equals the identifier, ends with
    ``/<identifier>``, or its file name without extension is the identifier.
    """
    path = PurePosixPath(label)
    return identifier in (label, path.name, path.stem)


class FingerprintMatcher:
    """Scores query fingerprints against every template in a catalog."""

    def __init__(self, catalog: FingerprintCatalog, cfg: MatchConfig | None = None):
        """Initialize matcher.

        Args:
            catalog: Loaded fingerprint catalog
            cfg: Matching configuration (defaults if None)
        """
        self.cfg = cfg if cfg is not None else MatchConfig()
        self.cfg.validate()
        self.catalog = catalog

    def score_templates(self, query: Fingerprint) -> list[tuple[str, str, float]]:
        """Score a query against every (video, resolution) template.

        Uses a process pool when ``num_workers > 1``. Workers are spawned, not
        forked: a fork after the parallel DTW kernel has run inherits the
        locked state of Numba's thread pool and hangs.

        Args:
            query: Query fingerprint.

        Returns:
            List of (identifier, resolution, distance) in catalog order.
        """
        templates = self.catalog.templates()
        worker_func = partial(_score_template_worker, query=query)

        if self.cfg.num_workers > 1 and len(templates) > 1:
            ctx = multiprocessing.get_context("spawn")
            with ctx.Pool(processes=self.cfg.num_workers) as pool:
                return list(
                    tqdm(
                        pool.imap(worker_func, templates),
                        total=len(templates),
                        desc="Scoring templates",
                        disable=not self.cfg.progress,
                    )
                )

        return [
            worker_func(item)
            for item in tqdm(templates, desc="Scoring templates", disable=not self.cfg.progress)
        ]

    def rank(self, query: Fingerprint) -> list[VideoMatch]:
        """Rank all catalog videos by their best resolution.

        Ties keep catalog order. Finite distances come first, then inf, then NaN.

        Args:
            query: Query fingerprint.

        Returns:
            One VideoMatch per catalog video, best first.
        """
        query = check_fingerprint(query, "query")

        per_video: dict[str, list[ResolutionDistance]] = {}
        for identifier, resolution, distance in self.score_templates(query):
            per_video.setdefault(identifier, []).append(
                ResolutionDistance(resolution=resolution, distance=distance)
            )

        matches = []
        for identifier in self.catalog:
            resolutions = sorted(per_video[identifier], key=lambda r: distance_sort_key(r.distance))
            matches.append(
                VideoMatch(
                    identifier=identifier,
                    distance=resolutions[0].distance,
                    resolutions=resolutions,
                )
            )

        matches.sort(key=lambda m: distance_sort_key(m.distance))
        return matches

    def report(self, label: str, query: Fingerprint) -> QueryReport:
        """Top matches for a query, at most ``top_k`` and never more than the catalog holds.

        Args:
            label: Query label (usually its file path).
            query: Query fingerprint.
        """
        matches = self.rank(query)
        return QueryReport(query=label, matches=matches[: self.cfg.top_k])

    def verify(self, label: str, query: Fingerprint) -> Verification:
        """Check whether the best match is the video the query label names.

        Args:
            label: Query label (usually its file path).
            query: Query fingerprint.

        Raises:
            ValueError: If the catalog is empty.
        """
        matches = self.rank(query)
        if not matches:
            msg = "Cannot verify against an empty catalog"
            raise ValueError(msg)

        best = matches[0]
        ok = is_verified(label, best.identifier)
        if not ok:
            logger.debug(f"{label}: got {best.identifier} with distance {best.distance}")

        return Verification(query=label, best=best.identifier, distance=best.distance, ok=ok)

    def verify_all(self, queries: Iterable[tuple[str, Fingerprint]]) -> VerifySummary:
        """Verify queries one after another.

        Args:
            queries: Iterable of (label, fingerprint).

        Returns:
            Per-query outcomes with ok/failed counts.
        """
        summary = VerifySummary()
        for label, query in queries:
            summary.results.append(self.verify(label, query))

        logger.info(f"Verification: {summary.ok} ok, {summary.failed} failed")
        return summary


def format_report(report: QueryReport, verbose: bool = False) -> str:
    """Render a query report as text."""
    lines = [f"- Query: {report.query}"]
    for rank, match in enumerate(report.matches, start=1):
        lines.append(f"\t{rank}) {match.identifier} - {match.distance}")
        if verbose:
            lines.extend(f"\t\t- {r.resolution}: {r.distance}" for r in match.resolutions)
    return "\n".join(lines)


def format_verification(result: Verification, verbose: bool = False) -> str:
    """Render one verification outcome as text."""
    if result.ok:
        return f"- {result.query} : Ok"
    line = f"- {result.query} : Fail"
    if verbose:
        line += f"\n\t- Got {result.best} with distance {result.distance}"
    return line


def format_summary(summary: VerifySummary) -> str:
    """Render aggregate verification counts."""
    return f"✔ {summary.ok}  ❌ {summary.failed}"
