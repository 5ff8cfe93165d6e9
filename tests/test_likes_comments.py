import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from placer.db.session import SessionLocal
from placer.models.place import PlaceLike
from placer.models.user import User
from placer.services.places import toggle_like


def test_like_toggle_is_involutive(client, make_user, make_place):
    owner = make_user("liked@example.com")
    fan = make_user("fan@example.com")
    place = make_place(owner)

    res = client.post(f"/api/places/{place['id']}/like", headers=fan["headers"])
    assert res.status_code == 200
    assert res.json() == {"isLiked": True, "likesCount": 1}

    detail = client.get(f"/api/places/{place['id']}", headers=fan["headers"]).json()["place"]
    assert detail["isLiked"] is True
    assert detail["likesCount"] == 1

    res = client.post(f"/api/places/{place['id']}/like", headers=fan["headers"])
    assert res.json() == {"isLiked": False, "likesCount": 0}


def test_likes_from_different_users_accumulate(client, make_user, make_place):
    owner = make_user("popular@example.com")
    place = make_place(owner)
    for i in range(3):
        fan = make_user(f"fan{i}@example.com")
        res = client.post(f"/api/places/{place['id']}/like", headers=fan["headers"])
        assert res.json()["likesCount"] == i + 1


def test_like_rows_are_unique_per_user(client, make_user, make_place, db):
    owner = make_user("race@example.com")
    fan = make_user("racer@example.com")
    place = make_place(owner)
    client.post(f"/api/places/{place['id']}/like", headers=fan["headers"])

    db.add(PlaceLike(place_id=place["id"], user_id=fan["id"]))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    rows = db.execute(
        select(func.count()).select_from(PlaceLike).where(PlaceLike.place_id == place["id"])
    ).scalar_one()
    assert rows == 1


def test_like_missing_place(client, make_user):
    fan = make_user("lost@example.com")
    assert client.post("/api/places/nope/like", headers=fan["headers"]).status_code == 404


def test_add_comment(client, make_user, make_place):
    owner = make_user("host@example.com")
    guest = make_user("guest@example.com", first_name="Guest")
    place = make_place(owner)

    res = client.post(
        f"/api/places/{place['id']}/comments",
        json={"content": "  Lovely spot  "},
        headers=guest["headers"],
    )
    assert res.status_code == 201, res.text
    comment = res.json()["comment"]
    assert comment["content"] == "Lovely spot"
    assert comment["author"]["firstName"] == "Guest"
    assert comment["placeId"] == place["id"]

    detail = client.get(f"/api/places/{place['id']}").json()["place"]
    assert detail["commentsCount"] == 1
    assert [c["id"] for c in detail["comments"]] == [comment["id"]]


def test_comment_validation(client, make_user, make_place):
    owner = make_user("strict@example.com")
    place = make_place(owner)

    res = client.post(f"/api/places/{place['id']}/comments", json={"content": "   "}, headers=owner["headers"])
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "content"

    res = client.post(
        f"/api/places/{place['id']}/comments", json={"content": "x" * 1001}, headers=owner["headers"]
    )
    assert res.status_code == 400

    res = client.post("/api/places/missing/comments", json={"content": "hi"}, headers=owner["headers"])
    assert res.status_code == 404


def test_anonymous_comment_hides_author_from_others(client, make_user, make_place):
    owner = make_user("anonhost@example.com")
    writer = make_user("shy@example.com")
    place = make_place(owner)
    client.post(
        f"/api/places/{place['id']}/comments",
        json={"content": "secret", "isAnonymous": True},
        headers=writer["headers"],
    )

    public = client.get(f"/api/places/{place['id']}").json()["place"]["comments"][0]
    assert public["isAnonymous"] is True
    assert public["author"] is None

    own = client.get(f"/api/places/{place['id']}", headers=writer["headers"]).json()["place"]["comments"][0]
    assert own["author"]["id"] == writer["id"]


def test_delete_comment_permissions(client, make_user, make_place):
    owner = make_user("place-owner@example.com")
    writer = make_user("writer@example.com")
    admin = make_user("admin@example.com", admin=True)
    place = make_place(owner)

    def comment(text):
        res = client.post(f"/api/places/{place['id']}/comments", json={"content": text}, headers=writer["headers"])
        return res.json()["comment"]["id"]

    first, second = comment("one"), comment("two")
    url = f"/api/places/{place['id']}/comments"

    assert client.delete(f"{url}/{first}", headers=owner["headers"]).status_code == 403
    assert client.delete(f"{url}/{first}", headers=writer["headers"]).status_code == 200
    assert client.delete(f"{url}/{second}", headers=admin["headers"]).status_code == 200
    assert client.delete(f"{url}/{second}", headers=admin["headers"]).status_code == 404

    detail = client.get(f"/api/places/{place['id']}").json()["place"]
    assert detail["commentsCount"] == 0


def test_toggle_like_resolves_a_concurrent_insert_to_liked(client, make_user, make_place, db, monkeypatch):
    owner = make_user("contested@example.com")
    fan = make_user("double@example.com")
    place = make_place(owner)
    user = db.get(User, fan["id"])

    original_add = db.add

    def add_after_competitor(obj, *args, **kwargs):
        # another request inserts the same like between our DELETE and INSERT
        with SessionLocal() as other:
            other.add(PlaceLike(place_id=place["id"], user_id=fan["id"]))
            other.commit()
        return original_add(obj, *args, **kwargs)

    monkeypatch.setattr(db, "add", add_after_competitor)

    assert toggle_like(db, place["id"], user) == (True, 1)
    monkeypatch.undo()

    rows = db.execute(
        select(func.count()).select_from(PlaceLike).where(PlaceLike.place_id == place["id"])
    ).scalar_one()
    assert rows == 1
