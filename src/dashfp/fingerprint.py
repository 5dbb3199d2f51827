"""Fingerprint construction from raw sample sequences.

A fingerprint is the logistic normalization of the relative change between
successive aggregated magnitudes. Two aggregation policies are provided:

- Segment-windowed aggregation of per-tick network deltas
  (:class:`NetworkFingerprintBuilder`), where segment 0 is defined as a zero
  delta so the fingerprint starts at 0.5.
- Per-unit aggregation of media segment sizes (:func:`fingerprint_units`),
  where the first delta is omitted and ``U`` units yield ``U - 1`` values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

import numpy as np
import numpy.typing as npt
from tqdm import tqdm

from .config import NetworkConfig

logger = logging.getLogger(__name__)

Fingerprint = npt.NDArray[np.float64]


class NoAlignableUnitsError(ValueError):
    """Raised when a unit sequence is too short to produce any delta."""


def relative_change(cur: npt.ArrayLike, prev: npt.ArrayLike) -> Any:
    """Relative change ``(cur - prev) / prev`` in float64.

    A zero ``prev`` does not raise: growth from zero gives ``+inf`` and zero
    over zero gives ``NaN``.
    """
    cur_f = np.asarray(cur, dtype=np.float64)
    prev_f = np.asarray(prev, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return (cur_f - prev_f) / prev_f


def normalize(d: npt.ArrayLike) -> Any:
    """Logistic transform ``1 / (1 + exp(-d))``.

    Args:
        d: Scalar or array of relative changes.

    Returns:
        Values in [0, 1]; ``NaN`` inputs stay ``NaN``.
    """
    d_f = np.asarray(d, dtype=np.float64)
    # exp overflows to inf for large negative deltas, which maps cleanly to 0
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-d_f))


def check_fingerprint(values: npt.ArrayLike, name: str = "fingerprint") -> Fingerprint:
    """Coerce values to a non-empty 1-D float64 fingerprint.

    Args:
        values: Sequence of numbers.
        name: Label used in error messages.

    Returns:
        Read-only float64 array.

    Raises:
        ValueError: If values are not one-dimensional or empty.
    """
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1:
        msg = f"{name}: expected a 1-D sequence, got shape {arr.shape}"
        raise ValueError(msg)
    if arr.size == 0:
        msg = f"{name}: fingerprint is empty"
        raise ValueError(msg)
    arr.setflags(write=False)
    return arr


def fingerprint_units(sizes: npt.ArrayLike) -> Fingerprint:
    """Fingerprint from per-unit magnitudes (media segment path).

    Args:
        sizes: Byte size of each unit, in playback order.

    Returns:
        Array of ``len(sizes) - 1`` normalized deltas.

    Raises:
        NoAlignableUnitsError: If fewer than two units are given.
    """
    units = np.asarray(sizes, dtype=np.float64)
    if units.size < 2:
        msg = f"No alignable units: need at least 2 units, got {units.size}"
        raise NoAlignableUnitsError(msg)

    fp = normalize(relative_change(units[1:], units[:-1]))
    return check_fingerprint(fp)


class BuilderState(Enum):
    """States of the segment-windowed accumulator."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    DONE = "done"


class NetworkFingerprintBuilder:
    """Accumulates per-tick byte deltas into a fixed-length fingerprint.

    The builder stays IDLE until the first qualifying bytes arrive. While
    ACCUMULATING, every tick whose delta reaches ``epsilon`` advances the
    segment timer; once the timer reaches ``segment_length`` the next
    qualifying tick closes the current segment before its own bytes are added
    to the new one. After ``num_samples`` segments the builder is DONE.
    """

    def __init__(self, cfg: NetworkConfig):
        """Initialize builder.

        Args:
            cfg: Network capture configuration

        Raises:
            ValueError: If the configuration is invalid.
        """
        cfg.validate()
        self.cfg = cfg

        self._deltas = np.zeros(cfg.num_samples, dtype=np.float64)
        self._segment_sum = 0
        self._last_sum = 0
        self._segment = 0
        self._timer = 0

    @property
    def state(self) -> BuilderState:
        """Current accumulator state."""
        if self._segment >= self.cfg.num_samples:
            return BuilderState.DONE
        if self._segment_sum > 0 or self._segment > 0:
            return BuilderState.ACCUMULATING
        return BuilderState.IDLE

    @property
    def segments(self) -> int:
        """Number of closed segments."""
        return self._segment

    @property
    def progress(self) -> float:
        """Fraction of the target segment count already closed."""
        return self._segment / self.cfg.num_samples

    def feed(self, rate: int) -> bool:
        """Consume one tick.

        Args:
            rate: Bytes received since the previous tick

        Returns:
            True once the fingerprint is complete.

        Raises:
            ValueError: If rate is negative.
            RuntimeError: If the builder is already done.
        """
        if self.state is BuilderState.DONE:
            msg = "Fingerprint already complete"
            raise RuntimeError(msg)
        if rate < 0:
            msg = f"Sample deltas must be non-negative, got {rate}"
            raise ValueError(msg)

        if rate < self.cfg.epsilon:
            return False

        if self._timer >= self.cfg.segment_length:
            self._close_segment()
            if self.state is BuilderState.DONE:
                return True

        self._segment_sum += rate

        if self.state is BuilderState.ACCUMULATING:
            self._timer += 1

        return False

    def _close_segment(self) -> None:
        """Record the finished segment and start a new one."""
        if self._segment != 0:
            self._deltas[self._segment] = relative_change(self._segment_sum, self._last_sum)

        logger.debug(f"Segment {self._segment} closed with {self._segment_sum} bytes")

        self._last_sum = self._segment_sum
        self._segment_sum = 0
        self._timer = 0
        self._segment += 1

    def fingerprint(self) -> Fingerprint:
        """Return the normalized fingerprint.

        Raises:
            RuntimeError: If fewer than ``num_samples`` segments were closed.
        """
        if self.state is not BuilderState.DONE:
            msg = (
                f"Fingerprint incomplete: {self._segment} of "
                f"{self.cfg.num_samples} segments captured"
            )
            raise RuntimeError(msg)
        return check_fingerprint(normalize(self._deltas))


def build_network_fingerprint(
    rates: Iterable[int], cfg: NetworkConfig, progress: bool = False
) -> Fingerprint:
    """Build a network fingerprint from a stream of per-tick deltas.

    Args:
        rates: Per-tick byte deltas (finite trace or live poller)
        cfg: Network capture configuration
        progress: Show a progress bar over captured segments

    Returns:
        Fingerprint of length ``cfg.num_samples``.

    Raises:
        ValueError: If the configuration is invalid or the rates run out
            before enough segments were captured.
    """
    builder = NetworkFingerprintBuilder(cfg)

    with tqdm(total=cfg.num_samples, desc="Capturing segments", disable=not progress) as pbar:
        for rate in rates:
            done = builder.feed(rate)
            pbar.update(builder.segments - pbar.n)
            if done:
                return builder.fingerprint()

    msg = (
        f"Sample trace ended after {builder.segments} of "
        f"{cfg.num_samples} segments"
    )
    raise ValueError(msg)
