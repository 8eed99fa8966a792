def test_follow_and_unfollow(client, make_user, auth_headers):
    alice, bob = make_user(), make_user()
    headers = auth_headers(alice)

    res = client.post(f"/api/users/{bob.id}/follow", headers=headers)
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "User followed"}
    assert client.get(f"/api/users/{bob.id}/is-following", headers=headers).json() == {"isFollowing": True}

    again = client.post(f"/api/users/{bob.id}/follow", headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Already following this user"

    res = client.delete(f"/api/users/{bob.id}/follow", headers=headers)
    assert res.json()["message"] == "User unfollowed"
    assert client.delete(f"/api/users/{bob.id}/follow", headers=headers).status_code == 400


def test_cannot_follow_self_or_unknown_user(client, make_user, auth_headers):
    alice = make_user()
    headers = auth_headers(alice)
    res = client.post(f"/api/users/{alice.id}/follow", headers=headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot follow yourself"
    assert client.post("/api/users/USR-0-NOPE00/follow", headers=headers).status_code == 404


def test_followers_and_following_pages(client, make_user, auth_headers):
    alice, bob, carol = make_user(), make_user(), make_user()
    client.post(f"/api/users/{carol.id}/follow", headers=auth_headers(alice))
    client.post(f"/api/users/{carol.id}/follow", headers=auth_headers(bob))

    followers = client.get(f"/api/users/{carol.id}/followers").json()
    assert followers["total"] == 2
    assert {f["id"] for f in followers["followers"]} == {alice.id, bob.id}
    assert all("followedAt" in f for f in followers["followers"])

    following = client.get(f"/api/users/{alice.id}/following", params={"limit": 1}).json()
    assert following["total"] == 1
    assert following["limit"] == 1
    assert following["following"][0]["id"] == carol.id


def test_suggestions_exclude_self_and_already_followed(client, make_user, auth_headers):
    me, popular, quiet, followed = make_user(), make_user(), make_user(), make_user()
    client.post(f"/api/users/{followed.id}/follow", headers=auth_headers(me))
    client.post(f"/api/users/{popular.id}/follow", headers=auth_headers(quiet))

    res = client.get("/api/users/suggestions/follow", headers=auth_headers(me))

    assert res.status_code == 200
    ids = [s["id"] for s in res.json()]
    assert me.id not in ids and followed.id not in ids
    assert ids[0] == popular.id
    assert res.json()[0]["followerCount"] == 1


def test_public_profile_counts(client, make_user, make_coin, auth_headers):
    alice, bob = make_user(), make_user(bio="Morgan dollars only")
    make_coin(bob)
    make_coin(bob, visibility="private")
    client.post(f"/api/users/{bob.id}/follow", headers=auth_headers(alice))

    res = client.get(f"/api/users/{bob.username}", headers=auth_headers(alice))

    assert res.status_code == 200
    data = res.json()
    assert data["bio"] == "Morgan dollars only"
    assert data["followerCount"] == 1
    assert data["followingCount"] == 0
    assert data["coinCount"] == 1
    assert data["isFollowing"] is True
    assert client.get(f"/api/users/{bob.username}").json()["isFollowing"] is False
