"""dashfp - Identify DASH videos from network traffic fingerprints."""

from .catalog import FingerprintCatalog, load_fingerprint, save_fingerprint
from .config import MatchConfig, NetworkConfig
from .fingerprint import (
    NetworkFingerprintBuilder,
    NoAlignableUnitsError,
    build_network_fingerprint,
    fingerprint_units,
)
from .matcher import FingerprintMatcher
from .models import QueryReport, ResolutionDistance, Verification, VerifySummary, VideoMatch
from .pdtw import partial_dtw, partial_dtw_serial
from .video import SegmentCountMismatchError, build_catalog, fingerprint_dash

__version__ = "0.1.0"

__all__ = [
    "FingerprintCatalog",
    "FingerprintMatcher",
    "MatchConfig",
    "NetworkConfig",
    "NetworkFingerprintBuilder",
    "NoAlignableUnitsError",
    "QueryReport",
    "ResolutionDistance",
    "SegmentCountMismatchError",
    "Verification",
    "VerifySummary",
    "VideoMatch",
    "build_catalog",
    "build_network_fingerprint",
    "fingerprint_dash",
    "fingerprint_units",
    "load_fingerprint",
    "partial_dtw",
    "partial_dtw_serial",
    "save_fingerprint",
]
