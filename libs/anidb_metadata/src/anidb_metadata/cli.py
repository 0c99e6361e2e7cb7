"""Command line driver: fetch, cache and print AniDB metadata.

Examples:
    python -m anidb_metadata --anidb-id 1
    python -m anidb_metadata --name "Cowboy Bebop" --language en
    python -m anidb_metadata --anidb-id 23 --episode 5 --output ep5.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from common.config import get_settings
from common.models.metadata import EpisodeLookup, SeriesLookup
from http_cache.config import get_cache_config

from .client import AniDBClient
from .providers import AniDBEpisodeProvider, AniDBSeriesProvider
from .series_cache import AniDBSeriesCache

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anidb_metadata", description="Fetch AniDB series or episode metadata"
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--anidb-id", type=str, help="AniDB anime id")
    target.add_argument("--name", type=str, help="Series name to resolve")
    parser.add_argument("--episode", type=int, help="Episode number")
    parser.add_argument("--episode-end", type=int, help="Last episode of a range")
    parser.add_argument(
        "--special",
        action="store_true",
        help="Look the episode up among specials instead of regular episodes",
    )
    parser.add_argument(
        "--language",
        action="append",
        default=[],
        help="Preferred metadata language; repeat for fallbacks",
    )
    parser.add_argument("--output", type=str, help="Write JSON here instead of stdout")
    parser.add_argument("--cache-root", type=str, help="Override the cache root")
    return parser


async def run(args: argparse.Namespace) -> int:
    """Execute one lookup.

    Returns:
        Exit code where 0 indicates success and 1 indicates that no metadata
            was found.
    """
    settings = get_settings()
    cache_config = get_cache_config()
    if args.cache_root:
        cache_config = cache_config.model_copy(update={"cache_root": Path(args.cache_root)})

    async with AniDBClient(settings) as client:
        series_cache = AniDBSeriesCache.create(settings, cache_config, client)
        series_provider = AniDBSeriesProvider(settings, series_cache)

        aid = args.anidb_id
        if aid is None:
            aid = await series_provider.resolve_anidb_id(args.name)
            if aid is None:
                logger.error(f"No AniDB id found for {args.name!r}")
                return 1

        if args.episode is not None:
            result = await AniDBEpisodeProvider(settings, series_cache).get_metadata(
                EpisodeLookup(
                    series_anidb_id=aid,
                    index_number=args.episode,
                    index_number_end=args.episode_end,
                    parent_index_number=0 if args.special else 1,
                    metadata_languages=args.language,
                )
            )
        else:
            result = await series_provider.get_metadata(
                SeriesLookup(anidb_id=aid, metadata_languages=args.language)
            )

    if result is None:
        logger.error("No data found")
        return 1

    payload = json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        logger.info(f"Saved metadata to {args.output}")
    else:
        print(payload)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 1
    except Exception:
        logger.exception("Main execution failed")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
