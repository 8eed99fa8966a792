from config.media_config import MediaConfig


def _upload(client, coin_id, headers, content, name="front.png", content_type="image/png"):
    return client.post(
        f"/api/coins/{coin_id}/images",
        files={"file": (name, content, content_type)},
        headers=headers,
    )


def test_upload_image_stores_file_and_appends(client, make_user, make_coin, auth_headers, storage, png_bytes):
    owner = make_user()
    coin = make_coin(owner, images=["coins/existing.png"])

    res = _upload(client, coin.id, auth_headers(owner), png_bytes)

    assert res.status_code == 201
    data = res.json()
    assert data["orderIndex"] == 1
    assert data["storageKey"].startswith(f"coins/{coin.id}/")
    assert data["storageKey"].endswith("-front.png")
    assert storage.file_exists(data["storageKey"])


def test_upload_rejects_non_owner(client, make_user, make_coin, auth_headers, png_bytes):
    owner, other = make_user(), make_user()
    coin = make_coin(owner)
    assert _upload(client, coin.id, auth_headers(other), png_bytes).status_code == 403


def test_upload_rejects_unsupported_type(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner)
    res = _upload(client, coin.id, auth_headers(owner), b"hello", name="notes.txt", content_type="text/plain")
    assert res.status_code == 400
    assert "Unsupported file type" in res.json()["message"]


def test_upload_rejects_bytes_that_are_not_an_image(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner)
    res = _upload(client, coin.id, auth_headers(owner), b"definitely not a png")
    assert res.status_code == 400
    assert res.json()["message"] == "File is not a valid image"


def test_upload_rejects_oversized_file(client, make_user, make_coin, auth_headers, png_bytes, monkeypatch):
    monkeypatch.setattr(MediaConfig, "MAX_IMAGE_SIZE", 16)
    owner = make_user()
    coin = make_coin(owner)
    assert _upload(client, coin.id, auth_headers(owner), png_bytes).status_code == 413


def test_upload_rejects_when_coin_is_full(client, make_user, make_coin, auth_headers, png_bytes):
    owner = make_user()
    coin = make_coin(owner, images=[f"coins/{i}.png" for i in range(MediaConfig.MAX_IMAGES_PER_COIN)])
    res = _upload(client, coin.id, auth_headers(owner), png_bytes)
    assert res.status_code == 400
    assert "at most" in res.json()["message"]


def test_reorder_and_list_images(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner, images=["coins/a.png", "coins/b.png"])
    listed = client.get(f"/api/coins/{coin.id}/images").json()
    first, second = listed[0]["id"], listed[1]["id"]

    res = client.post(
        f"/api/coins/{coin.id}/images/reorder",
        json={"images": [{"id": first, "orderIndex": 1}, {"id": second, "orderIndex": 0}]},
        headers=auth_headers(owner),
    )
    assert res.status_code == 200
    assert [i["storageKey"] for i in res.json()] == ["coins/b.png", "coins/a.png"]


def test_reorder_rejects_foreign_image_ids(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner, images=["coins/a.png"])
    res = client.post(
        f"/api/coins/{coin.id}/images/reorder",
        json={"images": [{"id": "IMG-0-OTHER0", "orderIndex": 0}]},
        headers=auth_headers(owner),
    )
    assert res.status_code == 400


def test_delete_image_removes_row_and_file(client, make_user, make_coin, auth_headers, storage, png_bytes):
    owner = make_user()
    coin = make_coin(owner)
    headers = auth_headers(owner)
    uploaded = _upload(client, coin.id, headers, png_bytes).json()

    res = client.delete(f"/api/coins/{coin.id}/images/{uploaded['id']}", headers=headers)

    assert res.status_code == 200
    assert not storage.file_exists(uploaded["storageKey"])
    assert client.get(f"/api/coins/{coin.id}/images").json() == []


def test_delete_unknown_image_is_404(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner)
    res = client.delete(f"/api/coins/{coin.id}/images/IMG-0-NOPE00", headers=auth_headers(owner))
    assert res.status_code == 404
