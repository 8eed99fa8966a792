from datetime import timedelta

from src.utils import utcnow


def test_feed_lists_public_coins_newest_first(client, make_user, make_coin):
    owner = make_user()
    now = utcnow()
    make_coin(owner, title="Old", created_at=now - timedelta(days=2))
    make_coin(owner, title="New", created_at=now)
    make_coin(owner, title="Private", visibility="private")
    make_coin(owner, title="Archived", is_archived=True)
    make_coin(owner, title="Offer coin", is_temporary_trade_coin=True)

    res = client.get("/api/coins/feed")

    assert res.status_code == 200
    data = res.json()
    assert [c["title"] for c in data["coins"]] == ["New", "Old"]
    assert data["total"] == 2
    assert data["limit"] == 20 and data["offset"] == 0


def test_feed_pagination_and_filters(client, make_user, make_coin):
    owner = make_user()
    for year in (1900, 1901, 1902):
        make_coin(owner, title=f"Coin {year}", year=year)

    page = client.get("/api/coins/feed", params={"limit": 1, "offset": 1}).json()
    assert page["total"] == 3 and len(page["coins"]) == 1

    filtered = client.get("/api/coins/feed", params={"year": 1901}).json()
    assert [c["title"] for c in filtered["coins"]] == ["Coin 1901"]


def test_trending_orders_by_likes_within_window(client, make_user, make_coin):
    owner = make_user()
    make_coin(owner, title="Meh", like_count=1)
    make_coin(owner, title="Hot", like_count=9)
    make_coin(owner, title="Stale", like_count=50, created_at=utcnow() - timedelta(days=30))

    res = client.get("/api/coins/feed/trending")

    assert res.status_code == 200
    assert [c["title"] for c in res.json()["coins"]] == ["Hot", "Meh"]


def test_trade_feed_excludes_own_coins(client, make_user, make_coin, auth_headers):
    me, other = make_user(), make_user()
    make_coin(me, title="Mine", trade_status="open_to_trade")
    make_coin(other, title="Theirs", trade_status="open_to_trade")
    make_coin(other, title="Keeper")

    res = client.get("/api/coins/feed/trade", headers=auth_headers(me))
    assert [c["title"] for c in res.json()["coins"]] == ["Theirs"]


def test_following_feed(client, make_user, make_coin, auth_headers):
    me, followed, stranger = make_user(), make_user(), make_user()
    make_coin(followed, title="Followed coin")
    make_coin(stranger, title="Stranger coin")
    headers = auth_headers(me)
    client.post(f"/api/users/{followed.id}/follow", headers=headers)

    res = client.get("/api/coins/feed/following", headers=headers)
    assert [c["title"] for c in res.json()["coins"]] == ["Followed coin"]
    assert client.get("/api/coins/feed/following").status_code == 401


def test_search_coins_by_text_and_year_range(client, make_user, make_coin):
    owner = make_user()
    make_coin(owner, title="Silver Eagle", year=1986, description="bullion")
    make_coin(owner, title="Gold Eagle", year=2001, trade_status="open_to_trade")
    make_coin(owner, title="Silver Maple", year=1988, country="Canada")

    res = client.get("/api/search/coins", params={"q": "eagle", "yearFrom": 1990})
    assert [h["title"] for h in res.json()] == ["Gold Eagle"]
    assert res.json()[0]["openToTrade"] is True

    res = client.get("/api/search/coins", params={"country": "can"})
    assert [h["title"] for h in res.json()] == ["Silver Maple"]


def test_search_users_requires_two_characters(client, make_user):
    make_user("numismatist", display_name="Nu Mis")
    assert client.get("/api/search/users", params={"q": "n"}).status_code == 400

    res = client.get("/api/search/users", params={"q": "mis"})
    assert res.status_code == 200
    assert [u["username"] for u in res.json()] == ["numismatist"]


def test_search_treats_wildcards_literally(client, make_user, make_coin):
    owner = make_user("coll_x", display_name="Underscore")
    make_user("collyx", display_name="Plain")
    make_coin(owner, title="100% Silver Round")
    make_coin(owner, title="1000 Silver Round")

    res = client.get("/api/search/users", params={"q": "l_x"})
    assert [u["username"] for u in res.json()] == ["coll_x"]

    res = client.get("/api/search/coins", params={"q": "100%"})
    assert [c["title"] for c in res.json()] == ["100% Silver Round"]


def test_advanced_search_returns_facets(client, make_user, make_coin):
    owner = make_user()
    make_coin(owner, country="USA", unit="Army", condition="MS-65")
    make_coin(owner, country="UK", unit="Navy")
    make_coin(owner, country="France", visibility="private")

    res = client.get("/api/search/advanced")

    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 2
    assert data["facets"]["countries"] == ["UK", "USA"]
    assert data["facets"]["units"] == ["Army", "Navy"]
    assert data["facets"]["conditions"] == ["MS-65"]
    assert data["facets"]["organizations"] == []
