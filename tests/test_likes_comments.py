from schema.social import DELETED_COMMENT_PLACEHOLDER


def test_like_is_idempotent_and_updates_count(client, make_user, make_coin, auth_headers):
    owner, fan = make_user(), make_user()
    coin = make_coin(owner)
    headers = auth_headers(fan)

    first = client.post(f"/api/coins/{coin.id}/like", headers=headers)
    second = client.post(f"/api/coins/{coin.id}/like", headers=headers)

    assert first.json() == {"liked": True, "likeCount": 1}
    assert second.json() == {"liked": True, "likeCount": 1}

    detail = client.get(f"/api/coins/{coin.id}", headers=headers).json()
    assert detail["likeCount"] == 1
    assert detail["isLiked"] is True


def test_unlike_without_like_is_harmless(client, make_user, make_coin, auth_headers):
    owner, fan = make_user(), make_user()
    coin = make_coin(owner)
    res = client.delete(f"/api/coins/{coin.id}/like", headers=auth_headers(fan))
    assert res.status_code == 200
    assert res.json() == {"liked": False, "likeCount": 0}


def test_likers_list(client, make_user, make_coin, auth_headers):
    owner, a, b = make_user(), make_user(), make_user()
    coin = make_coin(owner)
    client.post(f"/api/coins/{coin.id}/like", headers=auth_headers(a))
    client.post(f"/api/coins/{coin.id}/like", headers=auth_headers(b))
    client.delete(f"/api/coins/{coin.id}/like", headers=auth_headers(a))

    res = client.get(f"/api/coins/{coin.id}/likes")
    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 1
    assert data["users"][0]["id"] == b.id


def test_like_unknown_coin_is_404(client, make_user, auth_headers):
    user = make_user()
    assert client.post("/api/coins/CON-0-NOPE00/like", headers=auth_headers(user)).status_code == 404


def test_comment_thread_oldest_first(client, make_user, make_coin, auth_headers):
    owner, a = make_user(), make_user()
    coin = make_coin(owner)
    client.post(f"/api/coins/{coin.id}/comments", json={"content": "Lovely toning"}, headers=auth_headers(a))
    res = client.post(f"/api/coins/{coin.id}/comments", json={"content": "Thanks!"}, headers=auth_headers(owner))

    assert res.status_code == 201
    assert res.json()["user"]["id"] == owner.id

    thread = client.get(f"/api/coins/{coin.id}/comments").json()
    assert [c["content"] for c in thread] == ["Lovely toning", "Thanks!"]
    assert client.get(f"/api/coins/{coin.id}").json()["commentCount"] == 2


def test_comment_content_is_validated(client, make_user, make_coin, auth_headers):
    owner = make_user()
    coin = make_coin(owner)
    headers = auth_headers(owner)
    assert client.post(f"/api/coins/{coin.id}/comments", json={"content": ""}, headers=headers).status_code == 400
    too_long = "x" * 1001
    assert client.post(f"/api/coins/{coin.id}/comments", json={"content": too_long}, headers=headers).status_code == 400


def test_deleted_comment_shows_placeholder(client, make_user, make_coin, auth_headers):
    owner, author, stranger = make_user(), make_user(), make_user()
    coin = make_coin(owner)
    comment = client.post(
        f"/api/coins/{coin.id}/comments", json={"content": "First!"}, headers=auth_headers(author)
    ).json()

    assert client.delete(f"/api/comments/{comment['id']}", headers=auth_headers(stranger)).status_code == 403
    assert client.delete(f"/api/comments/{comment['id']}", headers=auth_headers(author)).status_code == 200

    thread = client.get(f"/api/coins/{coin.id}/comments").json()
    assert thread[0]["content"] == DELETED_COMMENT_PLACEHOLDER
    assert thread[0]["isDeleted"] is True
    assert thread[0]["user"] is None
    assert client.get(f"/api/coins/{coin.id}").json()["commentCount"] == 0


def test_delete_unknown_comment_is_404(client, make_user, auth_headers):
    user = make_user()
    assert client.delete("/api/comments/CMT-0-NOPE00", headers=auth_headers(user)).status_code == 404
