"""Network byte-counter sampling."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

SYSFS_NET = Path("/sys/class/net")


def rx_bytes_path(interface: str, sysfs: Path = SYSFS_NET) -> Path:
    """Path of the received-bytes counter of an interface."""
    return sysfs / interface / "statistics" / "rx_bytes"


def read_rx_bytes(interface: str, sysfs: Path = SYSFS_NET) -> int:
    """Read the cumulative received-bytes counter of an interface.

    Raises:
        FileNotFoundError: If the interface does not exist.
    """
    path = rx_bytes_path(interface, sysfs)
    if not path.exists():
        msg = f"Invalid network interface: {interface}"
        raise FileNotFoundError(msg)
    return int(path.read_text().strip())


def poll_rx_rates(
    interface: str, interval: float = 1.0, sysfs: Path = SYSFS_NET
) -> Iterator[int]:
    """Yield bytes received per tick, forever.

    The first tick is taken right after the initial read; each later tick
    waits ``interval`` seconds.

    Args:
        interface: Network interface name
        interval: Seconds between counter reads
        sysfs: Root of the sysfs network class directory
    """
    last = read_rx_bytes(interface, sysfs)
    while True:
        current = read_rx_bytes(interface, sysfs)
        rate = current - last
        if rate < 0:
            logger.warning(f"rx_bytes counter of {interface} went backwards, treating tick as idle")
            rate = 0
        last = current
        yield rate
        time.sleep(interval)


def load_trace(path: Path) -> list[int]:
    """Load a recorded trace of per-tick byte deltas, one integer per line.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line is not a non-negative integer.
    """
    if not path.exists():
        msg = f"Trace file not found: {path}"
        raise FileNotFoundError(msg)

    rates: list[int] = []
    with path.open() as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                rate = int(line)
            except ValueError as e:
                msg = f"{path}:{lineno}: not an integer: {line.strip()!r}"
                raise ValueError(msg) from e
            if rate < 0:
                msg = f"{path}:{lineno}: negative sample {rate}"
                raise ValueError(msg)
            rates.append(rate)
    return rates
