#!/usr/bin/env python3
"""
Create or update the system settings row.

Usage:
    python scripts/init_settings.py
    python scripts/init_settings.py --storage-type cos --cos-bucket my-bucket-1250000000 \
        --cos-region ap-guangzhou --cos-secret-id ID --cos-secret-key KEY
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from apps.api.storage.portfolio_store import PortfolioStore


async def main(args) -> int:
    fields = {
        "storage_type": args.storage_type,
        "max_file_size": args.max_file_size_mb * 1024 * 1024,
        "local_storage_path": args.local_storage_path,
        "require_approval": not args.no_approval,
    }
    for name in ("cos_secret_id", "cos_secret_key", "cos_bucket", "cos_region"):
        value = getattr(args, name)
        if value is not None:
            fields[name] = value

    store = PortfolioStore()
    settings = await store.upsert_settings(**fields)

    print("=" * 60)
    print("System settings")
    print("=" * 60)
    print(f"Storage type:       {settings.storage_type}")
    print(f"Max file size:      {settings.max_file_size // 1024 // 1024}MB")
    print(f"Local storage path: {settings.local_storage_path}")
    print(f"Require approval:   {settings.require_approval}")
    if settings.wants_cos and not settings.cos_configured:
        print("WARNING: COS selected but credentials are incomplete; uploads will use local storage")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialise system settings")
    parser.add_argument("--storage-type", choices=["local", "cos"], default="local")
    parser.add_argument("--max-file-size-mb", type=int, default=50)
    parser.add_argument("--local-storage-path", default="uploads")
    parser.add_argument("--no-approval", action="store_true", help="Publish uploads without review")
    parser.add_argument("--cos-secret-id")
    parser.add_argument("--cos-secret-key")
    parser.add_argument("--cos-bucket")
    parser.add_argument("--cos-region")
    raise SystemExit(asyncio.run(main(parser.parse_args())))
