import pytest

from model.coin import Coin


@pytest.fixture
def trade_setup(client, make_user, make_coin, auth_headers):
    """An open-to-trade coin and a pending trade on it."""
    owner, initiator = make_user(), make_user()
    coin = make_coin(owner, title="Trade Dollar", trade_status="open_to_trade")
    owner_h, init_h = auth_headers(owner), auth_headers(initiator)

    res = client.post("/api/trades/initiate", json={"coinId": coin.id}, headers=init_h)
    assert res.status_code == 201
    return {
        "owner": owner,
        "initiator": initiator,
        "coin": coin,
        "owner_h": owner_h,
        "init_h": init_h,
        "trade": res.json(),
    }


def _offer(client, trade_id, headers, **body):
    return client.post(f"/api/trades/{trade_id}/offers", json=body, headers=headers)


def _accepted(client, make_coin, s):
    """Move the setup trade to accepted through an offer."""
    offered = make_coin(s["initiator"], title="Barber Dime")
    trade_id = s["trade"]["id"]
    offer = _offer(client, trade_id, s["init_h"], offeredCoinId=offered.id).json()
    res = client.post(f"/api/trades/{trade_id}/offers/{offer['id']}/accept", headers=s["owner_h"])
    assert res.status_code == 200
    return trade_id


# ------------------------------------------------------------------
# Initiation
# ------------------------------------------------------------------
def test_initiate_trade(client, trade_setup):
    trade = trade_setup["trade"]
    assert trade["id"].startswith("TRD-")
    assert trade["status"] == "pending"
    assert trade["coin"]["id"] == trade_setup["coin"].id
    assert trade["initiator"]["id"] == trade_setup["initiator"].id
    assert trade["coinOwner"]["id"] == trade_setup["owner"].id
    assert trade["shipping"]["initiatorShipped"] is False
    assert trade["offers"] == [] and trade["messages"] == []

    status = client.get("/api/subscription/status", headers=trade_setup["init_h"]).json()
    assert status["tradesInitiatedThisMonth"] == 1


def test_initiate_rejections(client, make_user, make_coin, auth_headers):
    owner, other = make_user(), make_user()
    closed = make_coin(owner, trade_status="not_for_trade")
    hidden = make_coin(owner, visibility="private", trade_status="open_to_trade")
    open_coin = make_coin(owner, trade_status="open_to_trade")
    h = auth_headers(other)

    assert client.post("/api/trades/initiate", json={"coinId": "CON-0-NOPE00"}, headers=h).status_code == 404
    assert client.post("/api/trades/initiate", json={"coinId": hidden.id}, headers=h).status_code == 403

    res = client.post("/api/trades/initiate", json={"coinId": closed.id}, headers=h)
    assert res.status_code == 400
    assert res.json()["message"] == "Coin is not available for trade"

    res = client.post("/api/trades/initiate", json={"coinId": open_coin.id}, headers=auth_headers(owner))
    assert res.status_code == 400
    assert res.json()["message"] == "You cannot trade for your own coin"


def test_duplicate_active_trade_conflicts(client, make_user, make_coin, auth_headers):
    owner, premium = make_user(), make_user(subscription_tier="premium")
    coin = make_coin(owner, trade_status="open_to_trade")
    h = auth_headers(premium)

    first = client.post("/api/trades/initiate", json={"coinId": coin.id}, headers=h).json()
    res = client.post("/api/trades/initiate", json={"coinId": coin.id}, headers=h)

    assert res.status_code == 409
    body = res.json()
    assert body["existingTradeId"] == first["id"]
    assert body["message"] == "You already have an active trade for this coin"


def test_free_tier_trade_limit(client, make_user, make_coin, auth_headers):
    owner, collector = make_user(), make_user()
    a = make_coin(owner, trade_status="open_to_trade")
    b = make_coin(owner, trade_status="open_to_trade")
    h = auth_headers(collector)

    assert client.post("/api/trades/initiate", json={"coinId": a.id}, headers=h).status_code == 201
    res = client.post("/api/trades/initiate", json={"coinId": b.id}, headers=h)
    assert res.status_code == 403
    assert "limit" in res.json()["message"]


# ------------------------------------------------------------------
# Reading
# ------------------------------------------------------------------
def test_trade_visible_to_participants_and_staff(client, make_user, auth_headers, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    assert client.get(f"/api/trades/{trade_id}", headers=trade_setup["owner_h"]).status_code == 200
    assert client.get(f"/api/trades/{trade_id}", headers=auth_headers(make_user())).status_code == 403
    assert client.get(f"/api/trades/{trade_id}", headers=auth_headers(make_user(role="moderator"))).status_code == 200


def test_list_trades_by_role_and_status(client, trade_setup):
    trade_id = trade_setup["trade"]["id"]

    mine = client.get("/api/trades", headers=trade_setup["init_h"]).json()
    assert [t["id"] for t in mine] == [trade_id]
    assert client.get("/api/trades", params={"role": "owner"}, headers=trade_setup["init_h"]).json() == []
    assert client.get("/api/trades", params={"role": "owner"}, headers=trade_setup["owner_h"]).json()[0]["id"] == trade_id
    assert client.get("/api/trades", params={"status": "accepted"}, headers=trade_setup["owner_h"]).json() == []


# ------------------------------------------------------------------
# Offers
# ------------------------------------------------------------------
def test_offers_and_counter_offers(client, make_coin, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    offered = make_coin(trade_setup["initiator"], title="Indian Head Cent")

    res = _offer(client, trade_id, trade_setup["init_h"], offeredCoinId=offered.id, message="Straight swap?")
    assert res.status_code == 201
    offer = res.json()
    assert offer["isCounterOffer"] is False
    assert offer["offeredCoin"]["id"] == offered.id
    assert offer["status"] == "pending"

    counter = _offer(client, trade_id, trade_setup["owner_h"], message="Add a dime?").json()
    assert counter["isCounterOffer"] is True

    trade = client.get(f"/api/trades/{trade_id}", headers=trade_setup["owner_h"]).json()
    assert trade["status"] == "countered"
    assert trade["offerCount"] == 2


def test_cannot_offer_someone_elses_coin(client, make_coin, trade_setup):
    not_mine = make_coin(trade_setup["owner"], title="Owner coin")
    res = _offer(client, trade_setup["trade"]["id"], trade_setup["init_h"], offeredCoinId=not_mine.id)
    assert res.status_code == 403


def test_accept_offer_rejects_the_rest(client, make_coin, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    first = _offer(client, trade_id, trade_setup["init_h"], message="first").json()
    second = _offer(client, trade_id, trade_setup["init_h"], message="second").json()

    assert client.post(f"/api/trades/{trade_id}/offers/{first['id']}/accept", headers=trade_setup["init_h"]).status_code == 403

    res = client.post(f"/api/trades/{trade_id}/offers/{second['id']}/accept", headers=trade_setup["owner_h"])
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["trade"]["status"] == "accepted"
    statuses = {o["id"]: o["status"] for o in body["trade"]["offers"]}
    assert statuses == {first["id"]: "rejected", second["id"]: "accepted"}

    late = _offer(client, trade_id, trade_setup["init_h"], message="too late")
    assert late.status_code == 400


def test_reject_offer(client, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    offer = _offer(client, trade_id, trade_setup["init_h"], message="lowball").json()

    assert client.post(f"/api/trades/{trade_id}/offers/{offer['id']}/reject", headers=trade_setup["owner_h"]).json() == {"success": True}
    res = client.post(f"/api/trades/{trade_id}/offers/{offer['id']}/reject", headers=trade_setup["owner_h"])
    assert res.status_code == 400
    assert client.post(f"/api/trades/{trade_id}/offers/OFR-0-NOPE00/reject", headers=trade_setup["owner_h"]).status_code == 404


def test_offer_with_uploaded_coin(client, db, storage, trade_setup, make_image):
    trade_id = trade_setup["trade"]["id"]
    files = [
        ("images", ("front.png", make_image(), "image/png")),
        ("images", ("back.jpg", make_image("JPEG"), "image/jpeg")),
    ]
    data = {"title": "Challenge Coin", "country": "USA", "year": "2005", "mintMark": "D", "message": "Fresh coin"}

    res = client.post(f"/api/trades/{trade_id}/offers/upload", files=files, data=data, headers=trade_setup["init_h"])

    assert res.status_code == 201
    offer = res.json()
    offered = offer["offeredCoin"]
    assert offered["isTemporaryTradeCoin"] is True
    assert offered["imageUrl"].startswith("http://testserver/uploads/coins/")

    coin = db.get(Coin, offered["id"])
    assert coin.visibility == "private"
    assert coin.mint_mark == "D"
    assert [img.order_index for img in coin.images] == [0, 1]
    assert all(storage.file_exists(img.url) for img in coin.images)

    feed = client.get("/api/coins/feed").json()
    assert offered["id"] not in [c["id"] for c in feed["coins"]]


def test_offer_upload_validates_images_and_year(client, trade_setup, make_image):
    trade_id = trade_setup["trade"]["id"]
    h = trade_setup["init_h"]
    fields = {"title": "Challenge Coin", "country": "USA", "year": "2005"}

    six = [("images", (f"{i}.png", make_image(), "image/png")) for i in range(6)]
    assert client.post(f"/api/trades/{trade_id}/offers/upload", files=six, data=fields, headers=h).status_code == 400

    one = [("images", ("a.png", make_image(), "image/png"))]
    bad_year = dict(fields, year="1500")
    assert client.post(f"/api/trades/{trade_id}/offers/upload", files=one, data=bad_year, headers=h).status_code == 400

    garbage = [("images", ("a.png", b"not an image", "image/png"))]
    assert client.post(f"/api/trades/{trade_id}/offers/upload", files=garbage, data=fields, headers=h).status_code == 400


def test_offer_upload_rolls_back_on_storage_failure(client, db, storage, monkeypatch, trade_setup, make_image):
    from src.storage import StorageError

    trade_id = trade_setup["trade"]["id"]
    real_save = storage.save
    calls = []

    async def flaky_save(data, key, content_type):
        calls.append(key)
        if len(calls) == 2:
            raise StorageError("bucket unavailable")
        return await real_save(data, key, content_type)

    monkeypatch.setattr(storage, "save", flaky_save)
    files = [("images", (f"{i}.png", make_image(), "image/png")) for i in range(3)]
    data = {"title": "Challenge Coin", "country": "USA", "year": "2005"}

    res = client.post(f"/api/trades/{trade_id}/offers/upload", files=files, data=data, headers=trade_setup["init_h"])

    assert res.status_code == 503
    assert len(calls) == 2
    assert not storage.file_exists(calls[0])
    assert [p for p in storage.base_dir.rglob("*") if p.is_file()] == []
    assert db.query(Coin).filter(Coin.is_temporary_trade_coin.is_(True)).count() == 0
    assert client.get(f"/api/trades/{trade_id}", headers=trade_setup["init_h"]).json()["offers"] == []


# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------
def test_messages(client, make_user, auth_headers, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    res = client.post(f"/api/trades/{trade_id}/messages", json={"content": "Hi there"}, headers=trade_setup["init_h"])
    assert res.status_code == 201
    assert res.json()["sender"]["id"] == trade_setup["initiator"].id

    outsider = auth_headers(make_user())
    assert client.post(f"/api/trades/{trade_id}/messages", json={"content": "Me too"}, headers=outsider).status_code == 403

    summary = client.get("/api/trades", headers=trade_setup["owner_h"]).json()[0]
    assert summary["lastMessage"]["content"] == "Hi there"


# ------------------------------------------------------------------
# Shipping, completion and ratings
# ------------------------------------------------------------------
def test_shipping_requires_accepted_trade(client, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    res = client.post(f"/api/trades/{trade_id}/shipping/initiate", json={"trackingNumber": "1Z"}, headers=trade_setup["init_h"])
    assert res.status_code == 400


def test_full_trade_lifecycle(client, make_coin, trade_setup):
    trade_id = _accepted(client, make_coin, trade_setup)
    init_h, owner_h = trade_setup["init_h"], trade_setup["owner_h"]

    shipped = client.post(f"/api/trades/{trade_id}/shipping/initiate", json={"trackingNumber": "1Z999"}, headers=init_h).json()
    assert shipped["initiatorShipped"] is True
    assert shipped["initiatorTrackingNumber"] == "1Z999"
    assert shipped["ownerShipped"] is False

    assert client.post(f"/api/trades/{trade_id}/rate", json={"rating": 5}, headers=init_h).status_code == 400

    first = client.post(f"/api/trades/{trade_id}/shipping/received", headers=owner_h).json()
    assert first["tradeCompleted"] is False
    second = client.post(f"/api/trades/{trade_id}/shipping/received", headers=init_h).json()
    assert second["tradeCompleted"] is True
    assert client.get(f"/api/trades/{trade_id}", headers=init_h).json()["status"] == "completed"

    rating = client.post(f"/api/trades/{trade_id}/rate", json={"rating": 5, "comment": "Smooth"}, headers=init_h)
    assert rating.status_code == 201
    assert rating.json()["ratedUserId"] == trade_setup["owner"].id

    dup = client.post(f"/api/trades/{trade_id}/rate", json={"rating": 4}, headers=init_h)
    assert dup.status_code == 409
    assert client.post(f"/api/trades/{trade_id}/rate", json={"rating": 6}, headers=owner_h).status_code == 400


# ------------------------------------------------------------------
# Reports and cancellation
# ------------------------------------------------------------------
def test_report_disputes_trade(client, make_user, auth_headers, trade_setup):
    trade_id = trade_setup["trade"]["id"]
    res = client.post(
        f"/api/trades/{trade_id}/report",
        json={"reason": "no_show", "description": "Never replied"},
        headers=trade_setup["owner_h"],
    )
    assert res.status_code == 201
    assert res.json()["reportedUserId"] == trade_setup["initiator"].id
    assert res.json()["status"] == "pending"

    assert client.get(f"/api/trades/{trade_id}", headers=trade_setup["owner_h"]).json()["status"] == "disputed"
    assert client.get(f"/api/trades/{trade_id}/reports", headers=trade_setup["owner_h"]).status_code == 403

    admin_h = auth_headers(make_user(role="admin"))
    reports = client.get(f"/api/trades/{trade_id}/reports", headers=admin_h).json()
    assert [r["reason"] for r in reports] == ["no_show"]

    # the other party can still file a counter-report
    res = client.post(f"/api/trades/{trade_id}/report", json={"reason": "false_claim"}, headers=trade_setup["init_h"])
    assert res.status_code == 201
    assert res.json()["reportedUserId"] == trade_setup["owner"].id
    reports = client.get(f"/api/trades/{trade_id}/reports", headers=admin_h).json()
    assert sorted(r["reason"] for r in reports) == ["false_claim", "no_show"]
    assert client.get(f"/api/trades/{trade_id}", headers=admin_h).json()["status"] == "disputed"


def test_report_after_owner_cancels_shipped_trade(client, make_coin, make_user, auth_headers, trade_setup):
    trade_id = _accepted(client, make_coin, trade_setup)
    h = trade_setup["init_h"]
    client.post(f"/api/trades/{trade_id}/shipping/initiate", json={"shipped": True, "trackingNumber": "1Z999"}, headers=h)
    assert client.post(f"/api/trades/{trade_id}/cancel", headers=trade_setup["owner_h"]).status_code == 200

    res = client.post(f"/api/trades/{trade_id}/report", json={"reason": "kept_coin"}, headers=h)

    assert res.status_code == 201
    assert res.json()["reportedUserId"] == trade_setup["owner"].id
    admin_h = auth_headers(make_user(role="admin"))
    assert client.get(f"/api/trades/{trade_id}", headers=admin_h).json()["status"] == "cancelled"
    assert [r["reason"] for r in client.get(f"/api/trades/{trade_id}/reports", headers=admin_h).json()] == ["kept_coin"]


def test_cancel_rules(client, make_coin, trade_setup):
    trade_id = trade_setup["trade"]["id"]

    res = client.post(f"/api/trades/{trade_id}/cancel", headers=trade_setup["owner_h"])
    assert res.status_code == 400

    res = client.post(f"/api/trades/{trade_id}/cancel", headers=trade_setup["init_h"])
    assert res.status_code == 200
    assert res.json()["trade"]["status"] == "cancelled"

    assert client.post(f"/api/trades/{trade_id}/cancel", headers=trade_setup["init_h"]).status_code == 400
    assert _offer(client, trade_id, trade_setup["init_h"], message="hello?").status_code == 400


def test_either_party_can_cancel_accepted_trade(client, make_coin, trade_setup):
    trade_id = _accepted(client, make_coin, trade_setup)
    res = client.post(f"/api/trades/{trade_id}/cancel", headers=trade_setup["owner_h"])
    assert res.status_code == 200
    assert res.json()["trade"]["status"] == "cancelled"
