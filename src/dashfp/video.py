"""DASH segment reading and video fingerprinting."""

from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from tqdm import tqdm

from .catalog import FingerprintCatalog
from .config import AUDIO_STREAM, RESOLUTIONS
from .fingerprint import Fingerprint, NoAlignableUnitsError, fingerprint_units

logger = logging.getLogger(__name__)


class SegmentCountMismatchError(ValueError):
    """Raised when resolutions of one video yield fingerprints of different length."""


def segment_path(stream_dir: Path, index: int) -> Path:
    """Path of the ``index``-th media segment (1-based) of a stream."""
    return stream_dir / f"segment_{index}.m4s"


def stream_unit_sizes(video_dir: Path, resolution: str) -> list[int]:
    """Per-unit sizes of one resolution, audio included.

    Video and audio segments are paired by index starting at 1; the walk stops
    at the first index where either stream has no segment.

    Args:
        video_dir: Directory holding one subdirectory per stream
        resolution: Video stream name (e.g. "480p")

    Returns:
        Combined byte size of each paired unit.

    Raises:
        FileNotFoundError: If the video or audio stream directory is missing.
    """
    video_stream = video_dir / resolution
    audio_stream = video_dir / AUDIO_STREAM

    if not video_stream.is_dir():
        msg = f"Missing video stream: {video_stream}"
        raise FileNotFoundError(msg)
    if not audio_stream.is_dir():
        msg = f"Missing audio stream: {audio_stream}"
        raise FileNotFoundError(msg)

    sizes: list[int] = []
    index = 1
    while True:
        video_segment = segment_path(video_stream, index)
        audio_segment = segment_path(audio_stream, index)
        if not (video_segment.is_file() and audio_segment.is_file()):
            break
        sizes.append(video_segment.stat().st_size + audio_segment.stat().st_size)
        index += 1

    return sizes


def fingerprint_stream(video_dir: Path, resolution: str) -> Fingerprint:
    """Fingerprint one resolution of a DASH video.

    Raises:
        FileNotFoundError: If a stream directory is missing.
        NoAlignableUnitsError: If fewer than two paired units exist.
    """
    sizes = stream_unit_sizes(video_dir, resolution)
    try:
        return fingerprint_units(sizes)
    except NoAlignableUnitsError as e:
        msg = f"{video_dir.name}/{resolution}: {e}"
        raise NoAlignableUnitsError(msg) from e


def fingerprint_dash(
    video_dir: Path, resolutions: Sequence[str] = RESOLUTIONS
) -> dict[str, Fingerprint]:
    """Fingerprint every resolution of a DASH video.

    Args:
        video_dir: Directory of one video
        resolutions: Resolution labels to fingerprint, in order

    Returns:
        Resolution label -> fingerprint, all of equal length.

    Raises:
        SegmentCountMismatchError: If resolutions differ in segment count.
    """
    result: dict[str, Fingerprint] = {}
    expected: int | None = None

    for resolution in resolutions:
        fp = fingerprint_stream(video_dir, resolution)

        if expected is None:
            expected = len(fp)
        elif len(fp) != expected:
            msg = (
                f"{video_dir.name}: segment count mismatch for {resolution}, "
                f"expected {expected}, got {len(fp)}"
            )
            raise SegmentCountMismatchError(msg)

        result[resolution] = fp

    return result


def build_catalog(
    dash_dir: Path, resolutions: Sequence[str] = RESOLUTIONS, progress: bool = True
) -> FingerprintCatalog:
    """Fingerprint every video below a DASH directory.

    Args:
        dash_dir: Directory with one subdirectory per video
        resolutions: Resolution labels to fingerprint
        progress: Show a progress bar

    Returns:
        Catalog with one entry per video, in name order.

    Raises:
        FileNotFoundError: If dash_dir does not exist.
        ValueError: If no videos are found.
    """
    if not dash_dir.is_dir():
        msg = f"DASH directory not found: {dash_dir}"
        raise FileNotFoundError(msg)

    videos = sorted(p for p in dash_dir.iterdir() if p.is_dir())
    if not videos:
        msg = f"No videos found in {dash_dir}, nothing to do"
        raise ValueError(msg)

    catalog = FingerprintCatalog()
    for video_dir in tqdm(videos, desc="Fingerprinting videos", disable=not progress):
        logger.info(f"Fingerprinting {video_dir.name}")
        catalog.add(video_dir.name, fingerprint_dash(video_dir, resolutions))

    return catalog


def dump_csv(fingerprints: dict[str, Fingerprint], stream: TextIO) -> None:
    """Write fingerprints as CSV, one row per unit and one column per resolution.

    Args:
        fingerprints: Resolution label -> fingerprint, all of equal length
        stream: Text stream to write to
    """
    writer = csv.writer(stream, lineterminator="\n")
    for row in zip(*(fp.tolist() for fp in fingerprints.values()), strict=True):
        writer.writerow(row)
