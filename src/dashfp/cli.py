#!/usr/bin/env python3
"""CLI interface for dashfp."""

import argparse
import logging
import sys
from pathlib import Path

from .catalog import FingerprintCatalog, load_fingerprint, save_fingerprint
from .config import CATALOG_PATH, DASH_PATH, RESOLUTIONS, MatchConfig, NetworkConfig
from .fingerprint import build_network_fingerprint
from .matcher import FingerprintMatcher, format_report, format_summary, format_verification
from .network import load_trace, poll_rx_rates, read_rx_bytes
from .video import build_catalog, dump_csv, fingerprint_dash

logger = logging.getLogger(__name__)


def cmd_match(args: argparse.Namespace) -> None:
    """Match query fingerprints against the catalog."""
    # Load queries before the catalog so a bad path fails fast
    queries = [(str(path), load_fingerprint(path)) for path in args.fingerprint]
    catalog = FingerprintCatalog.load(args.catalog)

    cfg = MatchConfig(
        top_k=args.top_k,
        num_workers=args.num_workers,
        progress=not args.no_progress,
    )
    matcher = FingerprintMatcher(catalog, cfg)

    if not args.verify:
        for label, query in queries:
            print(format_report(matcher.report(label, query), verbose=args.verbose))
        return

    summary = matcher.verify_all(queries)
    for result in summary.results:
        print(format_verification(result, verbose=args.verbose))

    print(f"\n{format_summary(summary)}")


def cmd_network(args: argparse.Namespace) -> None:
    """Capture a fingerprint from network traffic or a recorded trace."""
    cfg = NetworkConfig(
        num_samples=args.num_samples,
        segment_length=args.segment_length,
        epsilon=args.epsilon,
    )
    cfg.validate()

    if args.trace is not None:
        rates = load_trace(args.trace)
    else:
        read_rx_bytes(args.interface)
        logger.info(f"Monitoring {args.interface} for {cfg.num_samples} segments")
        rates = poll_rx_rates(args.interface, interval=args.interval)

    fingerprint = build_network_fingerprint(rates, cfg, progress=not args.no_progress)
    save_fingerprint(args.output, fingerprint)
    logger.info(f"Fingerprint written to {args.output}")


def cmd_video(args: argparse.Namespace) -> None:
    """Fingerprint DASH videos: the whole catalog, or dump a single video."""
    if args.video is not None:
        fingerprints = fingerprint_dash(args.dash_dir / args.video, args.resolutions)
        dump_csv(fingerprints, sys.stdout)
        return

    catalog = build_catalog(args.dash_dir, args.resolutions, progress=not args.no_progress)
    catalog.save(args.catalog)
    print(f"\n- Database written to {args.catalog}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with match, network and video subcommands."""
    parser = argparse.ArgumentParser(
        prog="dashfp",
        description="Identify DASH videos from their traffic fingerprints",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--no-progress", action="store_true",
                       help="Disable progress bars")
    subparsers = parser.add_subparsers(dest="command", required=True)

    match = subparsers.add_parser(
        "match", help="Match network fingerprints against the video database",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    match.add_argument("fingerprint", type=Path, nargs="+",
                       help="Files with network fingerprints (.csv or .json)")
    match.add_argument("--verify", action="store_true",
                       help="Check if the best result matches the filename")
    match.add_argument("-v", "--verbose", action="store_true",
                       help="Show more details about the matches")
    match.add_argument("--catalog", type=Path, default=CATALOG_PATH,
                       help="Path to the fingerprint database")
    match.add_argument("--top-k", type=int, default=5,
                       help="Number of best matches to report per query")
    match.add_argument("--num-workers", type=int, default=1,
                       help="Number of worker processes scoring templates")
    match.set_defaults(func=cmd_match)

    network = subparsers.add_parser(
        "network", help="Obtain a fingerprint from network traffic",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    source = network.add_mutually_exclusive_group(required=True)
    source.add_argument("--interface", type=str,
                        help="Network interface to be monitored")
    source.add_argument("--trace", type=Path,
                        help="Recorded per-second byte deltas, one per line")
    network.add_argument("output", type=Path, help="Path to the output file")
    network.add_argument("-n", "--num-samples", type=int, default=40,
                         help="Number of samples to obtain")
    network.add_argument("-l", "--segment-length", type=int, default=4,
                         help="Segment length, in seconds")
    network.add_argument("-e", "--epsilon", type=int, default=100,
                         help="Minimum data rate, in bytes/s")
    network.add_argument("--interval", type=float, default=1.0,
                         help="Seconds between counter reads")
    network.set_defaults(func=cmd_network)

    video = subparsers.add_parser(
        "video", help="Obtain fingerprints from a set of DASH segments",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    video.add_argument("video", type=str, nargs="?", default=None,
                       help="Name of the video to dump as CSV. "
                            "If not specified, the database is generated")
    video.add_argument("--dash-dir", type=Path, default=DASH_PATH,
                       help="Directory with one subdirectory per video")
    video.add_argument("--catalog", type=Path, default=CATALOG_PATH,
                       help="Where to write the fingerprint database")
    video.add_argument("--resolutions", nargs="+", default=list(RESOLUTIONS),
                       help="Resolutions to fingerprint")
    video.set_defaults(func=cmd_video)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for dashfp.

    Parses command-line arguments and runs the selected subcommand.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

    try:
        args.func(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
