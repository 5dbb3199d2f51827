"""
Tests for network counter sampling.
"""

import tempfile
from pathlib import Path

import pytest

from dashfp.network import load_trace, poll_rx_rates, read_rx_bytes, rx_bytes_path


def set_counter(sysfs: Path, interface: str, value: int) -> None:
    """Write a fake rx_bytes counter below a sysfs-like root."""
    path = rx_bytes_path(interface, sysfs)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{value}\n")


class TestCounters:
    """Test reading and polling interface counters."""

    def test_read_rx_bytes(self):
        """Test that the counter file is parsed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            sysfs = Path(tmpdir)
            set_counter(sysfs, "eth0", 123456)

            assert read_rx_bytes("eth0", sysfs) == 123456

    def test_unknown_interface(self):
        """Test that a missing interface is reported."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(FileNotFoundError, match="Invalid network interface: wlan9"):
                read_rx_bytes("wlan9", Path(tmpdir))

    def test_poll_yields_deltas(self):
        """Test that polling yields bytes received per tick."""
        with tempfile.TemporaryDirectory() as tmpdir:
            sysfs = Path(tmpdir)
            set_counter(sysfs, "eth0", 1000)
            rates = poll_rx_rates("eth0", interval=0.0, sysfs=sysfs)

            assert next(rates) == 0

            set_counter(sysfs, "eth0", 1500)
            assert next(rates) == 500

            set_counter(sysfs, "eth0", 1700)
            assert next(rates) == 200

    def test_poll_counter_reset(self):
        """Test that a counter going backwards counts as an idle tick."""
        with tempfile.TemporaryDirectory() as tmpdir:
            sysfs = Path(tmpdir)
            set_counter(sysfs, "eth0", 5000)
            rates = poll_rx_rates("eth0", interval=0.0, sysfs=sysfs)
            next(rates)

            set_counter(sysfs, "eth0", 100)
            assert next(rates) == 0

            set_counter(sysfs, "eth0", 400)
            assert next(rates) == 300


class TestTrace:
    """Test recorded trace loading."""

    def test_load_trace(self):
        """Test one integer per line, blank lines ignored."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "trace.txt"
            path.write_text("0\n0\n100\n\n200\n")

            assert load_trace(path) == [0, 0, 100, 200]

    def test_negative_sample_rejected(self):
        """Test that negative deltas are rejected with the line number."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "trace.txt"
            path.write_text("10\n-5\n")

            with pytest.raises(ValueError, match="trace.txt:2"):
                load_trace(path)

    def test_non_integer_rejected(self):
        """Test that garbage lines are rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "trace.txt"
            path.write_text("10\n1.5\n")

            with pytest.raises(ValueError, match="not an integer"):
                load_trace(path)

    def test_missing_trace(self):
        """Test that a missing trace is reported."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(FileNotFoundError):
                load_trace(Path(tmpdir) / "trace.txt")


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
