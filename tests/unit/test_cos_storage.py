import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from apps.api.services.cos_storage import CosStorage


def make_storage(client):
    return CosStorage("id", "key", "art-1250000000", "ap-shanghai", client=client)


@pytest.mark.asyncio
async def test_put_uploads_public_object():
    client = MagicMock()
    storage = make_storage(client)

    url = await storage.put(b"data", "my photo.jpg", "user-1", "image/jpeg")

    assert url == "https://art-1250000000.cos.ap-shanghai.myqcloud.com/user-1/my%20photo.jpg"
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "art-1250000000"
    assert kwargs["Key"] == "user-1/my photo.jpg"
    assert kwargs["ContentType"] == "image/jpeg"
    assert kwargs["CacheControl"] == "public, max-age=31536000"
    assert kwargs["ACL"] == "public-read"


@pytest.mark.asyncio
async def test_put_errors_propagate():
    client = MagicMock()
    client.put_object.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")

    with pytest.raises(ClientError):
        await make_storage(client).put(b"data", "a.jpg", "u", "image/jpeg")


@pytest.mark.asyncio
async def test_delete_uses_unquoted_key():
    client = MagicMock()
    storage = make_storage(client)

    ok = await storage.delete("https://art-1250000000.cos.ap-shanghai.myqcloud.com/user-1/my%20photo.jpg")

    assert ok is True
    client.delete_object.assert_called_once_with(Bucket="art-1250000000", Key="user-1/my photo.jpg")


@pytest.mark.asyncio
async def test_delete_failure_is_swallowed():
    client = MagicMock()
    client.delete_object.side_effect = ClientError({"Error": {"Code": "NoSuchBucket"}}, "DeleteObject")

    assert await make_storage(client).delete("https://x.cos.ap-shanghai.myqcloud.com/u/a.jpg") is False


@pytest.mark.asyncio
async def test_delete_ignores_local_urls():
    client = MagicMock()
    assert await make_storage(client).delete("/uploads/u/a.jpg") is False
    client.delete_object.assert_not_called()


def test_client_is_built_on_first_use():
    storage = CosStorage("id", "key", "art-1250000000", "ap shanghai")
    assert storage._client is None
