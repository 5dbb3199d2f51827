"""Fingerprint catalog and query fingerprint persistence."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

import numpy.typing as npt
from pydantic import BaseModel, ValidationError

from .fingerprint import Fingerprint, check_fingerprint

logger = logging.getLogger(__name__)

CatalogEntry = dict[str, Fingerprint]


class CatalogFile(BaseModel):
    """On-disk catalog document.

    Attributes:
        videos: Video name -> resolution label -> fingerprint values.
    """
    videos: dict[str, dict[str, list[float]]]


class FingerprintCatalog:
    """In-memory mapping from video identifier to per-resolution fingerprints.

    Iteration follows insertion order, which is the order entries were added
    or appear in the catalog file.
    """

    def __init__(self, entries: Mapping[str, Mapping[str, npt.ArrayLike]] | None = None):
        """Initialize catalog.

        Args:
            entries: Optional initial mapping of video -> resolution -> values
        """
        self._entries: dict[str, CatalogEntry] = {}
        for identifier, entry in (entries or {}).items():
            self.add(identifier, entry)

    def add(self, identifier: str, entry: Mapping[str, npt.ArrayLike]) -> None:
        """Add one video.

        Args:
            identifier: Video name
            entry: Resolution label -> fingerprint values

        Raises:
            ValueError: If the video already exists, has no resolutions, or a
                fingerprint is empty.
        """
        if identifier in self._entries:
            msg = f"Duplicate catalog entry: {identifier}"
            raise ValueError(msg)
        if not entry:
            msg = f"Catalog entry {identifier} has no resolutions"
            raise ValueError(msg)

        self._entries[identifier] = {
            resolution: check_fingerprint(values, f"{identifier}/{resolution}")
            for resolution, values in entry.items()
        }

    def __len__(self) -> int:
        """Return number of videos in catalog."""
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __getitem__(self, identifier: str) -> CatalogEntry:
        return self._entries[identifier]

    def items(self) -> Iterator[tuple[str, CatalogEntry]]:
        """Iterate over (identifier, entry) pairs in catalog order."""
        return iter(self._entries.items())

    def templates(self) -> list[tuple[str, str, Fingerprint]]:
        """Flatten the catalog into (identifier, resolution, fingerprint) triples."""
        return [
            (identifier, resolution, fp)
            for identifier, entry in self._entries.items()
            for resolution, fp in entry.items()
        ]

    @classmethod
    def load(cls, path: Path) -> FingerprintCatalog:
        """Load catalog from disk.

        Args:
            path: Path to catalog JSON file

        Returns:
            Loaded catalog.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a valid catalog.
        """
        if not path.exists():
            msg = f"Catalog not found: {path}"
            raise FileNotFoundError(msg)

        try:
            with path.open() as f:
                document = CatalogFile.model_validate(json.load(f))
            catalog = cls(document.videos)
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            msg = f"Malformed catalog {path}: {e}"
            raise ValueError(msg) from e

        logger.info(f"Loaded catalog with {len(catalog)} videos from {path}")
        return catalog

    def save(self, path: Path) -> None:
        """Save catalog to disk as JSON.

        Args:
            path: Destination path; parent directories are created
        """
        document = CatalogFile(
            videos={
                identifier: {res: fp.tolist() for res, fp in entry.items()}
                for identifier, entry in self._entries.items()
            }
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            json.dump(document.model_dump(), f)
        logger.info(f"Catalog with {len(self)} videos written to {path}")


def load_fingerprint(path: Path) -> Fingerprint:
    """Load a single fingerprint.

    ``.csv`` files hold one value per line; anything else is read as a JSON
    list of numbers.

    Args:
        path: Fingerprint file

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the contents are not a valid fingerprint.
    """
    if not path.exists():
        msg = f"Fingerprint file not found: {path}"
        raise FileNotFoundError(msg)

    try:
        if path.suffix.lower() == ".csv":
            with path.open() as f:
                values = [float(line) for line in f if line.strip()]
        else:
            with path.open() as f:
                values = json.load(f)
        return check_fingerprint(values, str(path))
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        msg = f"Malformed fingerprint {path}: {e}"
        raise ValueError(msg) from e


def save_fingerprint(path: Path, values: npt.ArrayLike) -> None:
    """Save a single fingerprint, format chosen by file suffix.

    Args:
        path: Destination path
        values: Fingerprint values
    """
    fp = check_fingerprint(values, str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        if path.suffix.lower() == ".csv":
            f.writelines(f"{v!r}\n" for v in fp.tolist())
        else:
            json.dump(fp.tolist(), f)
