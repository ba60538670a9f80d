"""Command-line interface for Wavematch.

Commands:
    fingerprint - Fingerprint an audio file and save the bytes
    info        - Show what a fingerprint file holds
    compare     - Compare two recordings or fingerprints
    rank        - Rank candidate recordings by similarity to a query
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path

from .codec import RECORD_SIZE, decode, frame_count, load_fingerprint, save_fingerprint
from .config import LoggingConfig, WavematchConfig, load_config
from .errors import WavematchError
from .logger import setup_logging

FINGERPRINT_SUFFIX = ".fp"


def _load_or_extract(path: Path, config: WavematchConfig) -> bytes:
    """Read a saved fingerprint, or fingerprint an audio file on the fly."""
    if path.suffix == FINGERPRINT_SUFFIX:
        return load_fingerprint(path)

    from .fingerprint import Fingerprinter

    return Fingerprinter(config.fingerprint).fingerprint_file(path)


def _format_offset(offset: int | None, config: WavematchConfig) -> str:
    if offset is None:
        return "n/a"
    seconds = offset / config.fingerprint.frames_per_second
    return f"{offset} frames ({seconds:+.2f}s)"


def cmd_fingerprint(args: argparse.Namespace, config: WavematchConfig) -> int:
    """Fingerprint an audio file."""
    from .fingerprint import Fingerprinter

    output = args.output or args.file.with_suffix(FINGERPRINT_SUFFIX)
    fingerprinter = Fingerprinter(config.fingerprint, max_workers=args.workers)

    start = time.time()
    fingerprint = fingerprinter.fingerprint_file(args.file)
    elapsed = time.time() - start

    save_fingerprint(fingerprint, output)
    print(f"Fingerprinted {args.file} in {elapsed:.1f}s")
    print(f"  Frames:  {frame_count(fingerprint):,}")
    print(f"  Points:  {len(fingerprint) // RECORD_SIZE:,}")
    print(f"  Saved:   {output}")
    return 0


def cmd_info(args: argparse.Namespace, config: WavematchConfig) -> int:
    """Show fingerprint file statistics."""
    data = load_fingerprint(args.file)
    points = decode(data, strict=not args.lenient)
    frames = frame_count(data)
    populated = len({p.frame for p in points})

    print(f"Fingerprint: {args.file}")
    print("=" * 40)
    print(f"Size:                 {len(data):,} bytes")
    print(f"Robust points:        {len(points):,}")
    print(f"Frames:               {frames:,}")
    print(f"Frames with points:   {populated:,}")
    if frames:
        duration = frames / config.fingerprint.frames_per_second
        print(f"Duration:             {duration:.1f}s")
        print(f"Avg points/frame:     {len(points) / frames:.2f}")
    return 0


def cmd_compare(args: argparse.Namespace, config: WavematchConfig) -> int:
    """Compare two recordings."""
    from .matcher import OffsetVotingMatcher

    fingerprint1 = _load_or_extract(args.first, config)
    fingerprint2 = _load_or_extract(args.second, config)

    result = OffsetVotingMatcher(config.fingerprint).compare(fingerprint1, fingerprint2)

    print(f"Similarity:   {result.similarity:.0%}")
    print(f"Score:        {result.raw_score:.3f}")
    print(f"Best offset:  {_format_offset(result.best_offset, config)}")
    return 0


def cmd_rank(args: argparse.Namespace, config: WavematchConfig) -> int:
    """Rank candidates by similarity to a query."""
    from .matcher import OffsetVotingMatcher

    query = _load_or_extract(args.query, config)

    paths = []
    candidates = []
    for path in args.candidates:
        fingerprint = _load_or_extract(path, config)
        if frame_count(fingerprint) == 0:
            print(f"Skipping {path}: fingerprint has no frames", file=sys.stderr)
            continue
        paths.append(path)
        candidates.append(fingerprint)

    if not candidates:
        print("Error: no candidate has any frames", file=sys.stderr)
        return 1

    matcher = OffsetVotingMatcher(config.fingerprint)
    results = matcher.compare_many(query, candidates, max_workers=args.workers)

    ranked = sorted(
        zip(paths, results),
        key=lambda item: (-item[1].similarity, -item[1].raw_score),
    )

    for i, (path, result) in enumerate(ranked[: args.top_n], 1):
        print(f"{i}. {path}")
        print(f"   Similarity: {result.similarity:.0%}")
        print(f"   Offset: {_format_offset(result.best_offset, config)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wavematch",
        description="Audio content fingerprinting and similarity scoring",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--log-level",
        help="Override the configured log level (DEBUG, INFO, ...)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    default_workers = max(1, (os.cpu_count() or 2) - 1)

    # fingerprint command
    fp_parser = subparsers.add_parser("fingerprint", help="Fingerprint an audio file")
    fp_parser.add_argument("file", type=Path, help="Audio file to fingerprint")
    fp_parser.add_argument(
        "--output", "-o",
        type=Path,
        help=f"Output file (default: input with {FINGERPRINT_SUFFIX} suffix)",
    )
    fp_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Threads used to filter sub-bands (default: 1)",
    )
    fp_parser.set_defaults(func=cmd_fingerprint)

    # info command
    info_parser = subparsers.add_parser("info", help="Show fingerprint file statistics")
    info_parser.add_argument("file", type=Path, help="Fingerprint file")
    info_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Ignore a truncated trailing record",
    )
    info_parser.set_defaults(func=cmd_info)

    # compare command
    compare_parser = subparsers.add_parser(
        "compare",
        help=f"Compare two recordings (audio files or {FINGERPRINT_SUFFIX} files)",
    )
    compare_parser.add_argument("first", type=Path, help="First recording")
    compare_parser.add_argument("second", type=Path, help="Second recording")
    compare_parser.set_defaults(func=cmd_compare)

    # rank command
    rank_parser = subparsers.add_parser("rank", help="Rank candidates against a query")
    rank_parser.add_argument("query", type=Path, help="Query recording")
    rank_parser.add_argument("candidates", type=Path, nargs="+", help="Candidate recordings")
    rank_parser.add_argument(
        "--top-n", "-n",
        type=int,
        default=5,
        help="Show top N candidates (default: 5)",
    )
    rank_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=default_workers,
        help=f"Number of parallel workers (default: {default_workers})",
    )
    rank_parser.set_defaults(func=cmd_rank)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        if args.log_level:
            config.logging = LoggingConfig(level=args.log_level, file=config.logging.file)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    try:
        return args.func(args, config)
    except (WavematchError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
