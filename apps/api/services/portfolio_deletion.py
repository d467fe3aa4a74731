"""
Portfolio deletion cascade and batch moderation.

Database rows are the source of truth; storage cleanup is best effort and
never blocks removal of the rows. A portfolio that an active home page
carousel album links to cannot be deleted.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from apps.api.auth.models import CurrentUser
from apps.api.services.errors import NotFoundError, PermissionDeniedError, PortfolioInUseError, ValidationError
from apps.api.services.file_storage import delete_files
from apps.api.services.media_storage import DeleteOutcome, StorageSettings
from apps.api.storage.models import STATUS_APPROVED, STATUS_REJECTED
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare.deletion")

MAX_BATCH_SIZE = 100
BATCH_ACTIONS = ("approve", "reject", "delete")

# Strong references to in-flight cleanup tasks
_background_tasks: Set[asyncio.Task] = set()


@dataclass
class CascadeReport:
    portfolio_id: str
    file_urls: List[str]
    # None while cleanup is still running in the background
    files: Optional[DeleteOutcome] = None


@dataclass
class BatchResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "failed": self.failed,
            "errors": self.errors,
            "blocked": self.blocked,
        }


def portfolio_file_urls(portfolio: dict, shared: Iterable[str] = ()) -> List[str]:
    """
    Item urls and thumbnails, plus the cover when it is not one of them.

    A cover that another live row still references (shared) belongs to that
    row and is left in place.
    """
    urls = []
    for item in portfolio.get("items", []):
        urls.append(item["url"])
        if item.get("thumbnail"):
            urls.append(item["thumbnail"])
    cover = portfolio.get("cover")
    if cover and cover not in urls and cover not in shared:
        urls.append(cover)
    return urls


def validate_batch(action: str, ids: List[str]) -> List[str]:
    """Deduplicated ids, or ValidationError for a malformed batch request"""
    if action not in BATCH_ACTIONS:
        raise ValidationError(f"Unknown action: {action}")
    unique = list(dict.fromkeys(i for i in ids if i))
    if not unique:
        raise ValidationError("Please select at least one portfolio")
    if len(unique) > MAX_BATCH_SIZE:
        raise ValidationError(f"At most {MAX_BATCH_SIZE} portfolios can be processed at once")
    return unique


async def _cleanup_files(portfolio_id: str, urls: List[str], settings: StorageSettings) -> DeleteOutcome:
    outcome = await delete_files(urls, settings)
    if outcome.failed:
        logger.warning(
            f"Portfolio {portfolio_id}: {len(outcome.failed)} of {len(urls)} files could not be deleted"
        )
    return outcome


async def _files_to_delete(store: PortfolioStore, portfolio: dict) -> List[str]:
    shared: Set[str] = set()
    if portfolio.get("cover"):
        shared = await store.referenced_urls(exclude_portfolio=portfolio["id"])
    return portfolio_file_urls(portfolio, shared)


def _schedule(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def delete_portfolio(
    store: PortfolioStore,
    portfolio_id: str,
    user: CurrentUser,
    settings: StorageSettings,
    wait_for_files: bool = False
) -> CascadeReport:
    """
    Delete one portfolio, its items, featured markers and stored files.

    File cleanup is started before the rows are deleted and, unless
    wait_for_files is set, finishes in the background.

    Raises:
        NotFoundError, PermissionDeniedError, PortfolioInUseError
    """
    portfolio = await store.fetch_portfolio(portfolio_id, with_items=True)
    if not portfolio:
        raise NotFoundError("Portfolio not found")
    if not user.can_modify_portfolio(portfolio["user_id"]):
        raise PermissionDeniedError("You don't have permission to delete this portfolio")

    if await store.linked_portfolio_ids([portfolio_id], active_only=True):
        raise PortfolioInUseError(
            "This portfolio is shown in the home page carousel. Remove it from the carousel first."
        )

    urls = await _files_to_delete(store, portfolio)
    report = CascadeReport(portfolio_id=portfolio_id, file_urls=urls)

    if wait_for_files:
        report.files = await _cleanup_files(portfolio_id, urls, settings)
    elif urls:
        _schedule(_cleanup_files(portfolio_id, urls, settings))

    await store.delete_portfolio_rows(portfolio_id)
    logger.info(f"Deleted portfolio {portfolio_id} ({len(portfolio.get('items', []))} items)")
    return report


async def batch_delete_portfolios(
    store: PortfolioStore,
    portfolio_ids: Iterable[str],
    settings: StorageSettings
) -> BatchResult:
    """
    Admin batch delete. Portfolios linked from an active carousel album are
    refused and reported; the rest are processed one by one.
    """
    ids = list(dict.fromkeys(portfolio_ids))
    result = BatchResult()

    blocked = await store.linked_portfolio_ids(ids, active_only=True)
    if blocked:
        result.blocked = [pid for pid in ids if pid in blocked]
        result.failed += len(blocked)
        result.errors.append(
            f"{len(blocked)} portfolio(s) are shown in the home page carousel and were not deleted"
        )

    for pid in ids:
        if pid in blocked:
            continue
        portfolio = await store.fetch_portfolio(pid, with_items=True)
        if not portfolio:
            result.failed += 1
            result.errors.append(f"Portfolio {pid} not found")
            continue

        try:
            urls = await _files_to_delete(store, portfolio)
            await _cleanup_files(pid, urls, settings)
            await store.delete_portfolio_rows(pid)
        except Exception as e:
            logger.exception(f"Batch delete of portfolio {pid} failed")
            result.failed += 1
            result.errors.append(f"Failed to delete \"{portfolio['title']}\": {e}")
            continue
        result.success += 1

    logger.info(f"Batch delete: {result.success} deleted, {result.failed} failed")
    return result


async def batch_set_status(store: PortfolioStore, portfolio_ids: Iterable[str], action: str) -> BatchResult:
    """Approve (publish) or reject (hide) many portfolios"""
    ids = list(dict.fromkeys(portfolio_ids))
    if action == "approve":
        changed = await store.set_status_many(ids, STATUS_APPROVED, is_public=True)
    elif action == "reject":
        changed = await store.set_status_many(ids, STATUS_REJECTED, is_public=False)
    else:
        raise ValidationError(f"Unknown action: {action}")
    logger.info(f"Batch {action}: {changed} of {len(ids)} portfolios changed")
    return BatchResult(success=changed, failed=len(ids) - changed)
