#!/usr/bin/env python3
"""
Delete local upload files that no database row references.

Usage:
    python scripts/cleanup_orphans.py            # report and delete
    python scripts/cleanup_orphans.py --dry-run  # only list what would go
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from apps.api.services.file_storage import resolve_local_root
from apps.api.services.orphan_cleanup import collect_valid_urls, reconcile
from apps.api.services.utils.image_utils import format_file_size, get_directory_size
from apps.api.storage.portfolio_store import PortfolioStore


async def main(dry_run: bool):
    store = PortfolioStore()
    settings = await store.get_settings()
    root = resolve_local_root(settings)
    valid_urls = await collect_valid_urls(store)

    print("=" * 60)
    print(f"Upload root: {root}")
    print(f"Referenced URLs: {len(valid_urls)}")
    print(f"Storage used: {format_file_size(get_directory_size(root))}")
    print("=" * 60)

    if dry_run:
        report = await reconcile(root, valid_urls, dry_run=True)
        for rel in sorted(report.deleted):
            print(f"  would delete {rel}")
        print(f"{len(report.deleted)} orphan file(s)")
        return 0

    report = await reconcile(root, valid_urls)
    for rel in report.deleted:
        print(f"  deleted {rel}")
    for error in report.errors:
        print(f"  error: {error}")
    print(f"Deleted {len(report.deleted)} file(s), {len(report.errors)} error(s)")
    print(f"Storage used: {format_file_size(get_directory_size(root))}")
    return 1 if report.errors else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Remove unreferenced local uploads")
    parser.add_argument("--dry-run", action="store_true", help="List orphans without deleting")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.dry_run)))
