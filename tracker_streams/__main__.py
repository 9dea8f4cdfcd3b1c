# tracker_streams/__main__.py
"""
Dry-run stream search across the configured trackers.

Run:
    python -m tracker_streams "The Matrix" --year 1999
    python -m tracker_streams "Breaking Bad" --type series --season 1 --episode 3

Prints the stream descriptors as JSON; nothing is downloaded beyond the
``.torrent`` files needed to read info hashes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from tracker_streams.config import get_configuration, logger
from tracker_streams.services.search_logic import (
    SearchQuery,
    StreamAggregator,
    build_clients,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracker_streams",
        description="Search the configured torrent trackers and print playable streams",
    )
    parser.add_argument("title", help="Movie or series title to search for")
    parser.add_argument("--year", type=int, default=None, help="Release year filter")
    parser.add_argument(
        "--type",
        dest="media_type",
        default="movie",
        choices=["movie", "series"],
        help="What kind of title to search for",
    )
    parser.add_argument("--season", type=int, default=None)
    parser.add_argument("--episode", type=int, default=None)
    parser.add_argument(
        "--config", default="config.ini", help="Path to the configuration file"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.media_type == "series" and args.season is None:
        logger.error("--season is required for series searches")
        return 2

    credentials, search_config = get_configuration(args.config)
    aggregator = StreamAggregator(build_clients(credentials, search_config))
    try:
        streams = await aggregator.get_streams(
            SearchQuery(
                title=args.title,
                year=args.year,
                media_type=args.media_type,
                season=args.season,
                episode=args.episode,
            )
        )
    finally:
        await aggregator.aclose()

    print(
        json.dumps(
            {"streams": [stream.to_dict() for stream in streams]},
            ensure_ascii=False,
            indent=2,
        )
    )
    return 0


def run() -> None:
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
