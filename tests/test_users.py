from pathlib import Path

from placer.core.config import settings

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_get_profile(client, make_user):
    user = make_user("me@example.com", first_name="Mia")
    res = client.get("/api/users/profile", headers=user["headers"])
    assert res.status_code == 200
    assert res.json()["user"]["firstName"] == "Mia"
    assert client.get("/api/users/profile").status_code == 401


def test_update_profile_fields(client, make_user):
    user = make_user("edit@example.com")
    res = client.put(
        "/api/users/profile",
        data={"firstName": " Nina ", "bio": "Traveler", "location": "Seoul"},
        headers=user["headers"],
    )
    assert res.status_code == 200, res.text
    body = res.json()["user"]
    assert body["firstName"] == "Nina"
    assert body["lastName"] == "User"
    assert body["bio"] == "Traveler"
    assert body["location"] == "Seoul"

    res = client.put("/api/users/profile", data={"bio": ""}, headers=user["headers"])
    assert res.status_code == 200, res.text
    assert res.json()["user"]["bio"] == ""
    assert res.json()["user"]["location"] == "Seoul"


def test_update_profile_validation(client, make_user):
    user = make_user("limits@example.com")
    res = client.put("/api/users/profile", data={"bio": "b" * 501}, headers=user["headers"])
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "bio"

    res = client.put("/api/users/profile", data={"firstName": "  "}, headers=user["headers"])
    assert res.status_code == 400


def test_avatar_upload_replaces_previous_file(client, make_user):
    user = make_user("avatar@example.com")

    first = client.put(
        "/api/users/profile",
        files={"avatar": ("a.png", PNG, "image/png")},
        headers=user["headers"],
    ).json()["user"]["avatar"]
    second = client.put(
        "/api/users/profile",
        files={"avatar": ("b.png", PNG, "image/png")},
        headers=user["headers"],
    ).json()["user"]["avatar"]

    prefix = settings.public_upload_url.rstrip("/") + "/"
    assert first != second
    assert not (Path(settings.upload_dir) / first[len(prefix):]).exists()
    assert (Path(settings.upload_dir) / second[len(prefix):]).exists()


def test_my_places_include_private_and_drafts(client, make_user, make_place):
    user = make_user("mine@example.com")
    other = make_user("theirs@example.com")
    make_place(user, name="Public")
    make_place(user, name="Private", isPublic=False)
    make_place(user, name="Draft", status="draft")
    make_place(other, name="Elsewhere")

    res = client.get("/api/users/places", params={"sortBy": "name", "sortOrder": "asc"}, headers=user["headers"])
    assert res.status_code == 200
    assert [p["name"] for p in res.json()["places"]] == ["Draft", "Private", "Public"]
    assert res.json()["pagination"]["total"] == 3


def test_my_comments(client, make_user, make_place):
    owner = make_user("host@example.com")
    writer = make_user("chatty@example.com")
    place = make_place(owner, name="Talked About")
    for text in ("first", "second"):
        client.post(f"/api/places/{place['id']}/comments", json={"content": text}, headers=writer["headers"])

    res = client.get("/api/users/comments", params={"limit": 1}, headers=writer["headers"])
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert body["comments"][0]["place"] == {"id": place["id"], "name": "Talked About"}


def test_public_profile(client, make_user, make_place):
    user = make_user("public@example.com", first_name="Pat")
    make_place(user, name="Shown")
    make_place(user, name="Anonymous", isAnonymous=True)
    make_place(user, name="Hidden", isPublic=False)

    res = client.get(f"/api/users/{user['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["user"]["firstName"] == "Pat"
    assert body["user"]["placesCount"] == 3
    assert "email" not in body["user"]
    assert [p["name"] for p in body["recentPlaces"]] == ["Shown"]


def test_public_profile_missing_user(client):
    res = client.get("/api/users/unknown-id")
    assert res.status_code == 404
    assert res.json()["kind"] == "NotFound"
