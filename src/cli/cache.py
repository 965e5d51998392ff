# =============================================================================
# src/cli/cache.py - CLI Cache Command (act cache maintenance)
# =============================================================================
#
# Operator tool for the act cache, run outside the web server.
#
# Supported subcommands:
#
#   stats   - Cache size, stale count, acts without a Bandsintown relation,
#             and the update errors of the last 7 days
#   clear   - Delete every cached act (asks for --yes)
#   refresh - Re-enrich the given act ids now, or every stale act with --stale
#
# The store is chosen the same way as in the server: MONGODB_URI set means
# MongoDB, unset means the in-memory store (only useful for smoke tests).
#
# Usage examples:
#   python -m src.cli.cache stats
#   python -m src.cli.cache clear --yes
#   python -m src.cli.cache refresh 53b106e7-0cc6-42cc-ac95-ed8d30a3a98e
#   python -m src.cli.cache refresh --stale --delay 5
# =============================================================================

"""Standalone CLI for inspecting and maintaining the act cache.

Usage::

    python -m src.cli.cache stats
    python -m src.cli.cache clear --yes
    python -m src.cli.cache refresh <mbid> [<mbid> ...]
    python -m src.cli.cache refresh --stale
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import timedelta

from src.config.loader import load_settings
from src.config.settings import Settings
from src.interfaces.act_store import IActStore
from src.utils.errors import MusicFavoritesError
from src.utils.logging import configure_logging
from src.utils.timestamps import is_stale


def _build_store(app_settings: Settings) -> IActStore:
    # Deferred imports keep `--help` fast.
    from src.providers.store.memory_act_store import MemoryActStore
    from src.providers.store.mongo_act_store import MongoActStore

    if app_settings.uses_memory_store():
        print("Warning: MONGODB_URI not set, using an empty in-memory store.", file=sys.stderr)
        return MemoryActStore()
    return MongoActStore(app_settings.mongodb_uri, database=app_settings.mongodb_database)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_stats(store: IActStore, app_settings: Settings) -> int:
    threshold = timedelta(hours=app_settings.staleness_threshold_hours)
    entries = await store.get_all_acts_with_metadata()
    without_bandsintown = await store.get_acts_without_bandsintown()
    errors = await store.get_recent_update_errors()
    stale = [e for e in entries if is_stale(e.updated_at, threshold=threshold)]

    print(f"Store:                    {store.get_store_name()}")
    print(f"Cached acts:              {len(entries)}")
    print(f"Stale acts:               {len(stale)}")
    print(f"Without Bandsintown:      {len(without_bandsintown)}")
    print(f"Update errors (7 days):   {len(errors)}")
    for record in errors[:10]:
        print(f"  {record.timestamp}  {record.act_id}  {record.error_message}")
    return 0


async def _handle_clear(args: argparse.Namespace, store: IActStore) -> int:
    if not args.yes:
        print("Refusing to clear the cache without --yes.", file=sys.stderr)
        return 1
    deleted = await store.clear_cache()
    print(f"Deleted {deleted} acts from cache")
    return 0


async def _handle_refresh(
    args: argparse.Namespace, store: IActStore, app_settings: Settings
) -> int:
    import httpx

    from src.providers.event.ld_json_provider import LdJsonEventProvider
    from src.providers.music_db.musicbrainz_provider import MusicBrainzProvider
    from src.services.act_enricher import ActEnricher
    from src.services.cache_updater import CacheUpdater

    if not args.stale and not args.act_ids:
        print("Error: give act ids or --stale", file=sys.stderr)
        return 1

    async with httpx.AsyncClient(
        timeout=app_settings.http_timeout_seconds, follow_redirects=True
    ) as client:
        enricher = ActEnricher(
            MusicBrainzProvider(app_settings), LdJsonEventProvider(http_client=client)
        )
        updater = CacheUpdater(
            enricher,
            store,
            fetch_delay_seconds=args.delay,
            staleness_threshold=timedelta(hours=app_settings.staleness_threshold_hours),
        )

        if args.stale:
            updated = await updater.run_sequential_update()
            print(f"Refreshed {updated} stale acts")
            return 0

        failures = 0
        for index, act_id in enumerate(args.act_ids):
            ok = await updater.update_act(act_id)
            print(f"{'ok    ' if ok else 'FAILED'}  {act_id}")
            failures += 0 if ok else 1
            if index < len(args.act_ids) - 1:
                await asyncio.sleep(args.delay)
    return 1 if failures else 0


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    store = _build_store(app_settings)
    try:
        await store.connect()
        if args.command == "stats":
            return await _handle_stats(store, app_settings)
        if args.command == "clear":
            return await _handle_clear(args, store)
        return await _handle_refresh(args, store, app_settings)
    except MusicFavoritesError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await store.disconnect()


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.cache",
        description="Inspect and maintain the musicFavorites act cache.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Cache commands")

    subparsers.add_parser("stats", help="Show cache statistics")

    clear_parser = subparsers.add_parser("clear", help="Delete every cached act")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")

    refresh_parser = subparsers.add_parser("refresh", help="Re-enrich acts now")
    refresh_parser.add_argument("act_ids", nargs="*", help="MusicBrainz ids to refresh")
    refresh_parser.add_argument("--stale", action="store_true", help="Refresh every stale act")
    refresh_parser.add_argument(
        "--delay", type=float, default=30.0, help="Seconds between acts (default: 30)"
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the cache tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = load_settings()
    configure_logging(log_level=app_settings.log_level)

    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
