# =============================================================================
# originmap/cli/cache.py — Origin cache CLI
# =============================================================================
#
# Subcommands:
#
#   resolve NAME...   run the resolution pipeline for the given names
#   clear-unknowns    purge negative cache entries
#   stats             print the cache entry count
#
# Usage examples:
#   python -m originmap.cli resolve "Daft Punk" "The Roots"
#   python -m originmap.cli clear-unknowns
#   python -m originmap.cli stats
# =============================================================================

"""Standalone CLI for resolving artists and maintaining the origin cache."""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx

from originmap.config.settings import Settings
from originmap.interfaces.origin_cache_provider import IOriginCacheProvider
from originmap.pipeline.orchestrator import ResolutionSessionManager
from originmap.providers.cache.sqlite_origin_cache import SQLiteOriginCacheProvider
from originmap.utils.errors import OriginMapError
from originmap.utils.logging import configure_logging
from originmap.utils.text_normalizer import normalize_query_key


def _build_session_manager(
    app_settings: Settings,
    http_client: httpx.AsyncClient,
    cache: IOriginCacheProvider,
) -> ResolutionSessionManager:
    """Wire the resolution pipeline the same way ``main.py`` does."""
    from originmap.pipeline.orchestrator import OriginResolutionPipeline
    from originmap.pipeline.progress_tracker import ProgressTracker
    from originmap.providers.metadata.musicbrainz_provider import MusicBrainzProvider
    from originmap.services.area_resolver import AreaHierarchyResolver
    from originmap.services.artist_origin import ArtistOriginService
    from originmap.services.batch_lookup import BatchLookupService

    metadata = MusicBrainzProvider(http_client=http_client, settings=app_settings)
    area_resolver = AreaHierarchyResolver(metadata=metadata, max_depth=app_settings.area_max_depth)
    origin_service = ArtistOriginService(
        metadata=metadata,
        area_resolver=area_resolver,
        cache=cache,
    )
    pipeline = OriginResolutionPipeline(
        batch_lookup=BatchLookupService(cache=cache),
        origin_service=origin_service,
    )
    return ResolutionSessionManager(pipeline=pipeline, progress_tracker=ProgressTracker())


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_resolve(names: list[str], manager: ResolutionSessionManager) -> int:
    """Resolve *names* and print one ``name → country (source)`` line each."""
    print(f"Resolving {len(names)} artist(s)...")
    state = await manager.resolve_names(names)

    by_key = {result.query_key: result for result in state.results}
    for name in names:
        result = by_key.get(normalize_query_key(name))
        if result is None:
            continue
        country = result.country or "unknown"
        print(f"  {name} → {country} ({result.source.value})")

    for error in state.errors:
        print(f"  error: {error}", file=sys.stderr)

    return 1 if state.errors else 0


async def _handle_clear_unknowns(cache: IOriginCacheProvider) -> int:
    count = await cache.delete_negatives()
    print(f"Cleared {count} unknown artists.")
    return 0


async def _handle_stats(cache: IOriginCacheProvider) -> int:
    """Display cache statistics."""
    total = await cache.count()
    print("Origin Cache Statistics")
    print("=" * 40)
    print(f"  Provider:         {cache.get_provider_name()}")
    print(f"  Total entries:    {total}")
    return 0


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    cache = SQLiteOriginCacheProvider(
        db_path=app_settings.origin_cache_db_path,
        validity_days=app_settings.origin_cache_validity_days,
    )
    await cache.initialize()

    if args.command == "stats":
        return await _handle_stats(cache)
    if args.command == "clear-unknowns":
        return await _handle_clear_unknowns(cache)

    async with httpx.AsyncClient(timeout=30.0, headers={"Accept": "application/json"}) as client:
        manager = _build_session_manager(app_settings, client, cache)
        try:
            return await _handle_resolve(args.names, manager)
        finally:
            await manager.close()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the cache CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m originmap.cli",
        description="Resolve artist origins and maintain the originmap cache.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Cache commands")

    # -- resolve --
    resolve_parser = subparsers.add_parser("resolve", help="Resolve artist names")
    resolve_parser.add_argument("names", nargs="+", metavar="NAME", help="Artist name")

    # -- clear-unknowns --
    subparsers.add_parser("clear-unknowns", help="Delete cached negative results")

    # -- stats --
    subparsers.add_parser("stats", help="Show cache statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point; exits with the handler's status code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    try:
        exit_code = asyncio.run(_run(args, app_settings))
    except OriginMapError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
