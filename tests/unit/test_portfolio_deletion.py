import asyncio
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch

from apps.api.auth.models import CurrentUser
from apps.api.services import portfolio_deletion
from apps.api.services.errors import NotFoundError, PermissionDeniedError, PortfolioInUseError, ValidationError
from apps.api.services.media_storage import DeleteOutcome
from apps.api.services.portfolio_deletion import (
    MAX_BATCH_SIZE,
    batch_delete_portfolios,
    batch_set_status,
    delete_portfolio,
    portfolio_file_urls,
    validate_batch,
)
from apps.api.services.portfolio_media import PortfolioMediaService


@pytest_asyncio.fixture
async def owner(store):
    user = await store.create_user("owner@example.com")
    return CurrentUser(id=user["id"], email=user["email"])


async def portfolio_with_items(store, owner, settings, jpeg_bytes, count=2, **kwargs):
    portfolio = await store.create_portfolio(owner.id, "Works", **kwargs)
    service = PortfolioMediaService(store)
    items = []
    for i in range(count):
        items.append(await service.add_item(portfolio["id"], owner, jpeg_bytes, f"p{i}.jpg", "image/jpeg", settings))
    return portfolio, items


def test_file_urls_include_independent_cover_once():
    portfolio = {
        "cover": "/uploads/u/a.jpg",
        "items": [
            {"url": "/uploads/u/a.jpg", "thumbnail": "/uploads/u/a_thumbnail.webp"},
            {"url": "/uploads/u/v.mp4", "thumbnail": None},
        ],
    }
    assert portfolio_file_urls(portfolio) == [
        "/uploads/u/a.jpg", "/uploads/u/a_thumbnail.webp", "/uploads/u/v.mp4",
    ]

    portfolio["cover"] = "/uploads/admin/custom.jpg"
    assert portfolio_file_urls(portfolio)[-1] == "/uploads/admin/custom.jpg"
    assert "/uploads/admin/custom.jpg" not in portfolio_file_urls(portfolio, {"/uploads/admin/custom.jpg"})


def test_validate_batch():
    assert validate_batch("approve", ["a", "b", "a", ""]) == ["a", "b"]
    with pytest.raises(ValidationError):
        validate_batch("archive", ["a"])
    with pytest.raises(ValidationError):
        validate_batch("delete", [])
    with pytest.raises(ValidationError):
        validate_batch("delete", [str(i) for i in range(MAX_BATCH_SIZE + 1)])


class TestDeletePortfolio:

    @pytest.mark.asyncio
    async def test_removes_rows_and_files(self, store, owner, settings, upload_root, jpeg_bytes):
        portfolio, items = await portfolio_with_items(store, owner, settings, jpeg_bytes)
        await store.feature_portfolio(portfolio["id"])

        report = await delete_portfolio(store, portfolio["id"], owner, settings, wait_for_files=True)

        assert len(report.file_urls) == 4
        assert report.files.ok
        assert await store.fetch_portfolio(portfolio["id"]) is None
        assert await store.count_items(portfolio["id"]) == 0
        assert await store.count_featured(portfolio["id"]) == 0
        assert list((upload_root / owner.id).iterdir()) == []

    @pytest.mark.asyncio
    async def test_background_cleanup_finishes(self, store, owner, settings, upload_root, jpeg_bytes):
        portfolio, items = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)

        report = await delete_portfolio(store, portfolio["id"], owner, settings)

        assert report.files is None
        assert await store.fetch_portfolio(portfolio["id"]) is None
        await asyncio.gather(*portfolio_deletion._background_tasks)
        assert list((upload_root / owner.id).iterdir()) == []

    @pytest.mark.asyncio
    async def test_file_failures_do_not_block_rows(self, store, owner, settings, public_root, jpeg_bytes):
        portfolio, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)

        failing = AsyncMock(return_value=DeleteOutcome(failed=["/uploads/x"]))
        with patch.object(portfolio_deletion, "delete_files", failing):
            report = await delete_portfolio(store, portfolio["id"], owner, settings, wait_for_files=True)

        assert not report.files.ok
        assert await store.fetch_portfolio(portfolio["id"]) is None

    @pytest.mark.asyncio
    async def test_refused_while_in_active_carousel(self, store, owner, settings, public_root, jpeg_bytes):
        portfolio, items = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        await store.create_album("Home", link=f"/portfolio/{portfolio['id']}", is_active=True)

        with pytest.raises(PortfolioInUseError):
            await delete_portfolio(store, portfolio["id"], owner, settings, wait_for_files=True)

        assert await store.fetch_portfolio(portfolio["id"]) is not None
        assert await store.fetch_item(items[0]["id"]) is not None

    @pytest.mark.asyncio
    async def test_inactive_album_does_not_block(self, store, owner, settings, public_root, jpeg_bytes):
        portfolio, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        await store.create_album("Old", link=f"/portfolio/{portfolio['id']}", is_active=False)

        await delete_portfolio(store, portfolio["id"], owner, settings, wait_for_files=True)
        assert await store.fetch_portfolio(portfolio["id"]) is None

    @pytest.mark.asyncio
    async def test_cover_borrowed_from_another_users_item_survives(self, store, owner, settings, upload_root, jpeg_bytes):
        theirs, their_items = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        other = await store.create_user("other@example.com")
        other_user = CurrentUser(id=other["id"], email=other["email"])
        mine = await store.create_portfolio(other_user.id, "Mine")
        await PortfolioMediaService(store).set_cover(mine["id"], other_user, their_items[0]["url"])

        report = await delete_portfolio(store, mine["id"], other_user, settings, wait_for_files=True)

        assert report.file_urls == []
        assert (upload_root / their_items[0]["url"][len("/uploads/"):]).exists()
        assert (upload_root / their_items[0]["thumbnail"][len("/uploads/"):]).exists()
        assert await store.fetch_portfolio(mine["id"]) is None

    @pytest.mark.asyncio
    async def test_unshared_independent_cover_is_deleted(self, store, owner, settings, upload_root, jpeg_bytes):
        portfolio, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        (upload_root / owner.id / "cover.jpg").write_bytes(jpeg_bytes)
        await store.update_portfolio(portfolio["id"], cover=f"/uploads/{owner.id}/cover.jpg")

        report = await delete_portfolio(store, portfolio["id"], owner, settings, wait_for_files=True)

        assert report.file_urls[-1] == f"/uploads/{owner.id}/cover.jpg"
        assert list((upload_root / owner.id).iterdir()) == []

    @pytest.mark.asyncio
    async def test_authorization(self, store, owner, admin, settings, public_root, jpeg_bytes):
        portfolio, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=0)

        with pytest.raises(PermissionDeniedError):
            await delete_portfolio(store, portfolio["id"], CurrentUser(id="x"), settings)
        with pytest.raises(NotFoundError):
            await delete_portfolio(store, "missing", admin, settings)

        await delete_portfolio(store, portfolio["id"], admin, settings)
        assert await store.fetch_portfolio(portfolio["id"]) is None


class TestBatch:

    @pytest.mark.asyncio
    async def test_batch_delete_skips_carousel_portfolios(self, store, owner, settings, upload_root, jpeg_bytes):
        keep, keep_items = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        drop, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        await store.create_album("Home", link=f"/portfolio/{keep['id']}")

        result = await batch_delete_portfolios(store, [keep["id"], drop["id"], "missing"], settings)

        assert result.success == 1
        assert result.failed == 2
        assert result.blocked == [keep["id"]]
        assert len(result.errors) == 2
        assert await store.fetch_portfolio(keep["id"]) is not None
        assert await store.fetch_portfolio(drop["id"]) is None
        assert (upload_root / keep_items[0]["url"][len("/uploads/"):]).exists()

    @pytest.mark.asyncio
    async def test_batch_delete_continues_after_failure(self, store, owner, settings, public_root, jpeg_bytes):
        first, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        second, _ = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)

        real_delete_rows = store.delete_portfolio_rows

        async def flaky(pid):
            if pid == first["id"]:
                raise RuntimeError("database is locked")
            return await real_delete_rows(pid)

        with patch.object(store, "delete_portfolio_rows", side_effect=flaky):
            result = await batch_delete_portfolios(store, [first["id"], second["id"]], settings)

        assert result.success == 1
        assert result.failed == 1
        assert "database is locked" in result.errors[0]
        assert await store.fetch_portfolio(second["id"]) is None

    @pytest.mark.asyncio
    async def test_batch_approve_and_reject(self, store, owner):
        a = await store.create_portfolio(owner.id, "A")
        b = await store.create_portfolio(owner.id, "B", status="approved", is_public=True)

        approved = await batch_set_status(store, [a["id"], b["id"]], "approve")
        assert approved.success == 1
        assert approved.failed == 1
        assert (await store.fetch_portfolio(a["id"]))["is_public"] is True

        rejected = await batch_set_status(store, [a["id"], b["id"]], "reject")
        assert rejected.success == 2
        doc = await store.fetch_portfolio(b["id"])
        assert doc["status"] == "rejected"
        assert doc["is_public"] is False

        with pytest.raises(ValidationError):
            await batch_set_status(store, [a["id"]], "delete")

    @pytest.mark.asyncio
    async def test_batch_delete_keeps_borrowed_cover(self, store, owner, settings, upload_root, jpeg_bytes):
        source, source_items = await portfolio_with_items(store, owner, settings, jpeg_bytes, count=1)
        borrower = await store.create_portfolio(owner.id, "Borrower", cover=source_items[0]["url"])

        result = await batch_delete_portfolios(store, [borrower["id"]], settings)

        assert result.success == 1
        assert (upload_root / source_items[0]["url"][len("/uploads/"):]).exists()
