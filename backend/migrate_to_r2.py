#!/usr/bin/env python3
"""
Script to migrate wallpaper files from BaaS storage into Cloudflare R2.

Usage:
    # From inside the Docker container:
    docker exec -it wallvault-api python migrate_to_r2.py

    # Show progress only:
    docker exec wallvault-api python migrate_to_r2.py --status

    # Smaller batches, longer pause, stop after 5 batches:
    python migrate_to_r2.py --batch 5 --delay 5 --max-batches 5

Reads the same environment as the API (DATABASE_URL, CLOUDFLARE_R2_*).
Exit codes: 0 done, 1 configuration error, 2 finished with record errors.
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from wallvault.config import settings
from wallvault.database import AsyncSessionLocal, engine
from wallvault.schemas.migration import MAX_BATCH_SIZE
from wallvault.services.migration_service import MigrationService
from wallvault.storage.exceptions import StorageConfigError
from wallvault.utils.logging import configure_logging

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RECORD_ERRORS = 2


def batch_size_arg(value: str) -> int:
    size = int(value)
    if not 1 <= size <= MAX_BATCH_SIZE:
        raise argparse.ArgumentTypeError(f"batch size must be between 1 and {MAX_BATCH_SIZE}")
    return size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Migrate wallpaper files to Cloudflare R2')
    parser.add_argument('--batch', type=batch_size_arg, default=settings.migration_batch_size,
                        help=f'Wallpapers per batch (1-{MAX_BATCH_SIZE})')
    parser.add_argument('--delay', type=float, default=settings.migration_batch_delay_seconds,
                        help='Seconds to wait between batches')
    parser.add_argument('--max-batches', type=int, default=None,
                        help='Stop after this many batches')
    parser.add_argument('--status', action='store_true',
                        help='Print migration progress and exit')
    return parser


async def run(args: argparse.Namespace) -> int:
    async with AsyncSessionLocal() as db:
        service = MigrationService(db)

        status = await service.get_status()
        print(f"Wallpapers: {status.total} total, {status.migrated} migrated, {status.remaining} remaining")
        if args.status:
            return EXIT_OK

        if status.remaining == 0:
            print("\n✅ Nothing to migrate!")
            return EXIT_OK

        print(f"\nMigrating in batches of {args.batch} ({args.delay}s between batches)...")
        try:
            result = await service.run_full_migration(
                batch_size=args.batch,
                delay_seconds=args.delay,
                max_batches=args.max_batches,
            )
        except StorageConfigError as e:
            print(f"ERROR: {e}")
            return EXIT_CONFIG_ERROR

        status = await service.get_status()

    print(f"\n{'='*50}")
    print("SUMMARY:")
    print(f"  Attempted: {result.attempted}")
    print(f"  Migrated: {result.migrated}")
    print(f"  Failed: {result.failed}")
    print(f"  Remaining: {status.remaining}")
    print(f"{'='*50}")

    if result.errors:
        for error in result.errors[:10]:
            print(f"  ERROR: {error}")
        if len(result.errors) > 10:
            print(f"  ... and {len(result.errors) - 10} more errors")
        return EXIT_RECORD_ERRORS

    print("\n✅ Done!")
    return EXIT_OK


async def _main(args: argparse.Namespace) -> int:
    try:
        return await run(args)
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging('wallvault-cli', settings.log_level)
    return asyncio.run(_main(args))


if __name__ == '__main__':
    sys.exit(main())
