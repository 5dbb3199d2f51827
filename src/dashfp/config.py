#!/usr/bin/env python3
"""Configuration dataclasses for dashfp package."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Default on-disk layout
DASH_PATH = Path("videos/dash")
CATALOG_PATH = Path("videos/fingerprints.json")

# Encodings fingerprinted for every video, in catalog order
RESOLUTIONS: tuple[str, ...] = ("480p", "720p", "1080p")
AUDIO_STREAM = "aac"


@dataclass
class NetworkConfig:
    """Segment-windowed aggregation settings for network fingerprints."""

    # Number of segments to capture (fingerprint length)
    num_samples: int = 40

    # Segment length, in ticks (seconds when polling once per second)
    segment_length: int = 4

    # Minimum per-tick data rate, in bytes, for a tick to count
    epsilon: int = 100

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if self.num_samples < 1:
            msg = f"num_samples must be at least 1, got {self.num_samples}"
            raise ValueError(msg)
        if self.segment_length < 1:
            msg = f"segment_length must be at least 1, got {self.segment_length}"
            raise ValueError(msg)
        if self.epsilon < 0:
            msg = f"epsilon must be non-negative, got {self.epsilon}"
            raise ValueError(msg)


@dataclass
class MatchConfig:
    """Settings for ranking a query against the catalog."""

    top_k: int = 5
    num_workers: int = 1  # 1 = score templates in-process
    progress: bool = True

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if self.top_k < 1:
            msg = f"top_k must be at least 1, got {self.top_k}"
            raise ValueError(msg)
        if self.num_workers < 1:
            msg = f"num_workers must be at least 1, got {self.num_workers}"
            raise ValueError(msg)
