"""
Removal of local upload files that no database row references any more.

Only the local tree is reconciled; objects in the cloud bucket are left alone.
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from apps.api.services.media_storage import LocalAsset, parse_asset_url
from apps.api.services.metrics import ORPHANS_DELETED
from apps.api.services.utils.image_utils import delete_file_with_thumbnails, is_thumbnail_name
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare.cleanup")


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "deleted_count": len(self.deleted),
            "deleted": self.deleted,
            "errors": self.errors,
        }


def normalize_valid_urls(urls: Iterable[Optional[str]]) -> Set[str]:
    """Root-relative POSIX paths of the local URLs; cloud URLs are dropped"""
    paths = set()
    for url in urls:
        location = parse_asset_url(url)
        if isinstance(location, LocalAsset):
            paths.add(location.relative_path.replace("\\", "/").lstrip("/"))
    return paths


async def collect_valid_urls(store: PortfolioStore) -> Set[str]:
    """Item urls and thumbnails, portfolio and album covers, user avatars"""
    return await store.referenced_urls()


def _walk(root: Path) -> Tuple[List[Path], List[Path]]:
    files, dirs = [], []
    for current, dir_names, file_names in os.walk(root):
        base = Path(current)
        dirs.extend(base / d for d in dir_names)
        files.extend(base / f for f in file_names)
    return files, dirs


def find_orphans(root: Path, files: Iterable[Path], valid: Set[str]) -> List[Path]:
    """Non-derivative files whose root-relative path is not referenced"""
    orphans = []
    for path in files:
        if is_thumbnail_name(path.name):
            continue
        if path.relative_to(root).as_posix() not in valid:
            orphans.append(path)
    return orphans


def _reconcile_sync(root: Path, valid: Set[str], dry_run: bool = False) -> CleanupReport:
    report = CleanupReport()

    # Enumerate everything first; nothing below mutates the tree while walking
    files, dirs = _walk(root)

    for path in find_orphans(root, files, valid):
        rel = path.relative_to(root).as_posix()
        if dry_run:
            report.deleted.append(rel)
            continue
        try:
            delete_file_with_thumbnails(path)
        except OSError as e:
            report.errors.append(f"Failed to delete {rel}: {e}")
            continue
        report.deleted.append(rel)
        logger.info(f"Deleted orphan file {rel}")

    if dry_run:
        return report

    # Deepest first so parents emptied by their children are pruned too
    for directory in sorted(dirs, key=lambda d: len(d.parts), reverse=True):
        try:
            if directory.is_dir() and not any(directory.iterdir()):
                directory.rmdir()
                logger.debug(f"Removed empty directory {directory.relative_to(root).as_posix()}")
        except OSError as e:
            report.errors.append(f"Failed to remove directory {directory.relative_to(root).as_posix()}: {e}")

    return report


async def reconcile(root, valid_urls: Iterable[Optional[str]], dry_run: bool = False) -> CleanupReport:
    """
    Delete every non-derivative file under root whose URL is not in valid_urls,
    then prune empty directories. The root itself is kept.

    With dry_run the report lists what would be deleted and nothing is touched.

    Individual failures are collected in the report and never stop the run.
    """
    root = Path(root)
    if not root.is_dir():
        logger.info(f"Upload directory {root} does not exist, nothing to clean")
        return CleanupReport()

    valid = normalize_valid_urls(valid_urls)
    loop = asyncio.get_running_loop()
    report = await loop.run_in_executor(None, _reconcile_sync, root, valid, dry_run)

    if dry_run:
        logger.info(f"Orphan cleanup dry run: {len(report.deleted)} candidates")
        return report
    if report.deleted:
        ORPHANS_DELETED.inc(len(report.deleted))
    logger.info(f"Orphan cleanup: {len(report.deleted)} deleted, {len(report.errors)} errors")
    return report
