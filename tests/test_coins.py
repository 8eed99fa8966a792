from src import subscription as subs


def _coin_body(**overrides):
    body = {
        "title": "Walking Liberty Half",
        "country": "USA",
        "year": 1942,
        "condition": "VF",
        "tradeStatus": "open_to_trade",
        "images": [
            {"url": "coins/tmp/front.png", "orderIndex": 0},
            {"url": "coins/tmp/back.png", "orderIndex": 1},
        ],
    }
    body.update(overrides)
    return body


def test_create_coin_returns_camel_case_with_signed_images(client, make_user, auth_headers):
    owner = make_user()
    res = client.post("/api/coins", json=_coin_body(), headers=auth_headers(owner))

    assert res.status_code == 201
    data = res.json()
    assert data["id"].startswith("CON-")
    assert data["userId"] == owner.id
    assert data["tradeStatus"] == "open_to_trade"
    assert data["likeCount"] == 0 and data["commentCount"] == 0
    assert [i["storageKey"] for i in data["images"]] == ["coins/tmp/front.png", "coins/tmp/back.png"]
    assert data["images"][0]["url"].startswith("http://testserver/uploads/coins/tmp/front.png?token=")
    assert data["user"]["username"] == owner.username


def test_create_coin_requires_authentication(client):
    res = client.post("/api/coins", json=_coin_body())
    assert res.status_code == 401
    assert res.json()["code"] == "http_error"


def test_create_coin_rejects_out_of_range_year(client, make_user, auth_headers):
    owner = make_user()
    res = client.post("/api/coins", json=_coin_body(year=1700), headers=auth_headers(owner))
    assert res.status_code == 400
    assert res.json()["code"] == "validation_error"


def test_create_coin_enforces_monthly_limit(client, make_user, auth_headers, monkeypatch):
    monkeypatch.setattr(subs, "FREE_LIMITS", subs.TierLimits(max_coins=1, max_trades=1))
    owner = make_user()
    headers = auth_headers(owner)

    assert client.post("/api/coins", json=_coin_body(), headers=headers).status_code == 201
    res = client.post("/api/coins", json=_coin_body(title="Second"), headers=headers)

    assert res.status_code == 403
    assert "limit" in res.json()["message"]


def test_premium_users_are_not_limited(client, make_user, auth_headers, monkeypatch):
    monkeypatch.setattr(subs, "FREE_LIMITS", subs.TierLimits(max_coins=1, max_trades=1))
    owner = make_user(subscription_tier="premium")
    headers = auth_headers(owner)

    for title in ("One", "Two", "Three"):
        assert client.post("/api/coins", json=_coin_body(title=title), headers=headers).status_code == 201


def test_private_coin_visible_only_to_owner(client, make_user, make_coin, auth_headers):
    owner, other = make_user(), make_user()
    coin = make_coin(owner, visibility="private")

    assert client.get(f"/api/coins/{coin.id}").status_code == 403
    assert client.get(f"/api/coins/{coin.id}", headers=auth_headers(other)).status_code == 403

    res = client.get(f"/api/coins/{coin.id}", headers=auth_headers(owner))
    assert res.status_code == 200
    assert res.json()["isLiked"] is False


def test_get_missing_coin_is_404(client):
    res = client.get("/api/coins/CON-0-NOPE00")
    assert res.status_code == 404
    assert res.json()["message"] == "Coin not found"


def test_update_coin_owner_only_and_replaces_images(client, make_user, make_coin, auth_headers):
    owner, other = make_user(), make_user()
    coin = make_coin(owner, images=["coins/a.png", "coins/b.png"])

    res = client.put(f"/api/coins/{coin.id}", json={"title": "Hacked"}, headers=auth_headers(other))
    assert res.status_code == 403

    res = client.put(
        f"/api/coins/{coin.id}",
        json={"title": "Peace Dollar", "images": [{"url": "coins/c.png", "orderIndex": 0}]},
        headers=auth_headers(owner),
    )
    assert res.status_code == 200
    data = res.json()
    assert data["title"] == "Peace Dollar"
    assert data["country"] == "USA"
    assert [i["storageKey"] for i in data["images"]] == ["coins/c.png"]


def test_delete_coin(client, make_user, make_coin, auth_headers):
    owner, other = make_user(), make_user()
    coin = make_coin(owner)

    assert client.delete(f"/api/coins/{coin.id}", headers=auth_headers(other)).status_code == 403
    res = client.delete(f"/api/coins/{coin.id}", headers=auth_headers(owner))
    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert client.get(f"/api/coins/{coin.id}").status_code == 404


def test_list_coins_filters_and_hides_private(client, make_user, make_coin):
    owner = make_user()
    make_coin(owner, title="Sovereign", country="UK", year=1911)
    make_coin(owner, title="Buffalo Nickel", country="USA", year=1937)
    make_coin(owner, title="Hidden", country="UK", year=1911, visibility="private")

    res = client.get("/api/coins", params={"country": "UK"})
    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 1
    assert data["page"] == 1 and data["limit"] == 20
    assert [c["title"] for c in data["coins"]] == ["Sovereign"]


def test_user_collection_respects_collection_privacy(client, make_user, make_coin, auth_headers):
    owner = make_user(collection_privacy="private")
    make_coin(owner, title="Public but hidden collection")
    make_coin(owner, title="Private", visibility="private")

    res = client.get(f"/api/users/{owner.id}/coins")
    assert res.status_code == 200
    assert res.json()["coins"] == []

    res = client.get(f"/api/users/{owner.id}/coins", headers=auth_headers(owner))
    assert res.json()["total"] == 2


def test_user_collection_for_unknown_user_is_404(client):
    assert client.get("/api/users/USR-0-NOPE00/coins").status_code == 404
