import asyncio
from urllib.parse import parse_qs, urlparse

import pytest

from src.storage import StorageError, build_storage_key, signed_url_or_none
from src.utils import make_media_token


def test_build_storage_key_strips_slashes():
    assert build_storage_key("coins/", "/CON-1-ABC123", "1700000000000-front.png") == "coins/CON-1-ABC123/1700000000000-front.png"


def test_local_storage_round_trip(storage):
    key = asyncio.run(storage.save(b"abc", "coins/x/one.png", "image/png"))
    assert key == "coins/x/one.png"
    assert storage.file_exists(key)
    assert asyncio.run(storage.delete(key)) is True
    assert asyncio.run(storage.delete(key)) is False


def test_local_storage_rejects_path_escape(storage):
    with pytest.raises(StorageError):
        asyncio.run(storage.save(b"abc", "../outside.png", "image/png"))
    assert storage.file_exists("../outside.png") is False


def test_signed_url_passthrough_and_empty(storage):
    assert signed_url_or_none(storage, None) is None
    assert signed_url_or_none(storage, "https://cdn.example.com/a.png") == "https://cdn.example.com/a.png"
    assert "token=" in signed_url_or_none(storage, "coins/a.png")


def test_signed_url_serves_file(client, storage):
    asyncio.run(storage.save(b"\x89PNG-bytes", "coins/c1/front.png", "image/png"))
    url = storage.get_signed_url("coins/c1/front.png")

    res = client.get(url)

    assert res.status_code == 200
    assert res.content == b"\x89PNG-bytes"
    assert res.headers["content-type"] == "image/png"


def test_signed_url_rejects_tampering(client, storage):
    asyncio.run(storage.save(b"secret", "coins/c1/front.png", "image/png"))
    url = urlparse(storage.get_signed_url("coins/c1/front.png"))
    token = parse_qs(url.query)["token"][0]

    assert client.get("/uploads/coins/c1/back.png", params={"token": token}).status_code == 403
    assert client.get("/uploads/coins/c1/front.png", params={"token": token + "x"}).status_code == 403
    assert client.get("/uploads/coins/c1/front.png").status_code == 400


def test_expired_token_is_rejected(client, storage):
    asyncio.run(storage.save(b"old", "coins/c1/old.png", "image/png"))
    token = make_media_token("coins/c1/old.png", expires_in=-10)
    assert client.get("/uploads/coins/c1/old.png", params={"token": token}).status_code == 403


def test_missing_file_is_404(client):
    token = make_media_token("coins/none.png", expires_in=60)
    assert client.get("/uploads/coins/none.png", params={"token": token}).status_code == 404
