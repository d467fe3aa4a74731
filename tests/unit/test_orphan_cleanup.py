import pytest

from apps.api.auth.models import CurrentUser
from apps.api.services.file_storage import delete_file, upload_file
from apps.api.services.orphan_cleanup import collect_valid_urls, normalize_valid_urls, reconcile
from apps.api.services.portfolio_media import PortfolioMediaService


def write(root, rel, data=b"x"):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_normalize_keeps_only_local_paths():
    assert normalize_valid_urls([
        "/uploads/u1/a.jpg",
        "uploads/u2/b.png",
        "https://b.cos.ap-shanghai.myqcloud.com/u1/c.jpg",
        None,
        "",
    ]) == {"u1/a.jpg", "u2/b.png"}


@pytest.mark.asyncio
async def test_reconcile_deletes_unreferenced_files(tmp_path):
    write(tmp_path, "u1/keep.jpg")
    write(tmp_path, "u1/keep_thumbnail.webp")
    write(tmp_path, "u1/orphan.jpg")
    write(tmp_path, "u1/orphan_thumbnail.webp")
    write(tmp_path, "u2/gone/deep.png")

    report = await reconcile(tmp_path, {"/uploads/u1/keep.jpg"})

    assert sorted(report.deleted) == ["u1/orphan.jpg", "u2/gone/deep.png"]
    assert report.errors == []
    assert (tmp_path / "u1" / "keep.jpg").exists()
    # Derivative of a kept original is never touched
    assert (tmp_path / "u1" / "keep_thumbnail.webp").exists()
    # Derivative of a deleted original goes with it
    assert not (tmp_path / "u1" / "orphan_thumbnail.webp").exists()
    # Emptied directories are pruned deepest first; the root stays
    assert not (tmp_path / "u2").exists()
    assert tmp_path.exists()


@pytest.mark.asyncio
async def test_reconcile_with_nothing_referenced_empties_tree(tmp_path):
    write(tmp_path, "a/b/c.jpg")
    (tmp_path / "empty").mkdir()

    report = await reconcile(tmp_path, [])

    assert report.deleted == ["a/b/c.jpg"]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_reconcile_missing_root(tmp_path):
    report = await reconcile(tmp_path / "nope", {"/uploads/a.jpg"})
    assert report.deleted == []
    assert report.errors == []


@pytest.mark.asyncio
async def test_reconcile_records_errors_and_continues(tmp_path, monkeypatch):
    write(tmp_path, "u/bad.jpg")
    write(tmp_path, "u/ok.jpg")

    import apps.api.services.orphan_cleanup as orphan_cleanup
    real_delete = orphan_cleanup.delete_file_with_thumbnails

    def flaky_delete(path):
        if path.name == "bad.jpg":
            raise PermissionError("read-only")
        return real_delete(path)

    monkeypatch.setattr(orphan_cleanup, "delete_file_with_thumbnails", flaky_delete)

    report = await reconcile(tmp_path, [])

    assert report.deleted == ["u/ok.jpg"]
    assert len(report.errors) == 1
    assert "u/bad.jpg" in report.errors[0]
    assert (tmp_path / "u" / "bad.jpg").exists()


@pytest.mark.asyncio
async def test_collect_valid_urls(store):
    user = await store.create_user("a@example.com", avatar="/uploads/avatars/a.png")
    p = await store.create_portfolio(user["id"], "Work", cover="/uploads/u/cover.jpg")
    await store.create_item(p["id"], "image", "/uploads/u/a.jpg", 0, thumbnail="/uploads/u/a_thumbnail.webp")
    await store.create_album("Carousel", cover="/uploads/albums/c.jpg")

    assert await collect_valid_urls(store) == {
        "/uploads/avatars/a.png",
        "/uploads/u/cover.jpg",
        "/uploads/u/a.jpg",
        "/uploads/u/a_thumbnail.webp",
        "/uploads/albums/c.jpg",
    }


@pytest.mark.asyncio
async def test_dry_run_reports_without_touching(tmp_path):
    write(tmp_path, "u/orphan.jpg")
    write(tmp_path, "u/orphan_thumbnail.webp")
    write(tmp_path, "u/keep.jpg")

    report = await reconcile(tmp_path, ["/uploads/u/keep.jpg"], dry_run=True)

    assert report.deleted == ["u/orphan.jpg"]
    assert (tmp_path / "u" / "orphan.jpg").exists()
    assert (tmp_path / "u" / "orphan_thumbnail.webp").exists()

    real = await reconcile(tmp_path, ["/uploads/u/keep.jpg"])
    assert real.deleted == report.deleted


@pytest.mark.asyncio
async def test_put_then_delete_leaves_nothing_to_reconcile(upload_root, settings, jpeg_bytes):
    url = await upload_file(jpeg_bytes, "a.jpg", "u1", "image/jpeg", settings)
    assert (upload_root / "u1" / "a.jpg").exists()

    assert await delete_file(url, settings) is True
    report = await reconcile(upload_root, [])

    assert report.deleted == []
    assert report.errors == []
    assert not (upload_root / "u1" / "a.jpg").exists()


@pytest.mark.asyncio
async def test_upload_delete_reconcile_scenario(store, settings, upload_root, jpeg_bytes):
    user = await store.create_user("c@example.com")
    owner = CurrentUser(id=user["id"], email=user["email"])
    service = PortfolioMediaService(store)
    portfolio = await store.create_portfolio(owner.id, "C")

    a = await service.add_item(portfolio["id"], owner, jpeg_bytes, "a.jpg", "image/jpeg", settings)
    b = await service.add_item(portfolio["id"], owner, jpeg_bytes, "b.jpg", "image/jpeg", settings)
    assert (await store.fetch_portfolio(portfolio["id"]))["cover"] == a["url"]

    assert (await service.delete_item(portfolio["id"], a["id"], owner, settings))["cover"] == b["url"]
    assert (await service.delete_item(portfolio["id"], b["id"], owner, settings))["cover"] is None

    report = await reconcile(upload_root, [])

    assert report.errors == []
    assert report.deleted == []
    assert list(upload_root.iterdir()) == []
