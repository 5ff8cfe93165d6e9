from sqlalchemy import func, select

from placer.models.place import Place
from placer.models.user import User
from placer.services.approval import PENDING_APPROVAL_MESSAGE

from conftest import PASSWORD

PLACE_FORM = {
    "name": "Harbor",
    "description": "Nice view",
    "location[address]": "Pier 1",
    "location[coordinates]": "[-74.0060, 40.7128]",
}


def test_pending_user_is_gated_until_approved(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    res = client.post(
        "/api/auth/signup",
        json={"firstName": "A", "email": "a@b.com", "password": PASSWORD},
    )
    assert res.status_code == 201
    user_id = res.json()["user"]["id"]
    headers = {"Authorization": f"Bearer {res.json()['token']}"}

    res = client.post("/api/places", data=PLACE_FORM, headers=headers)
    assert res.status_code == 403
    assert res.json()["kind"] == "PermissionDenied"
    assert res.json()["message"] == PENDING_APPROVAL_MESSAGE

    res = client.put(f"/api/users/admin/approve/{user_id}", headers=admin["headers"])
    assert res.status_code == 200, res.text
    assert res.json()["user"]["isApproved"] is True

    res = client.post("/api/places", data=PLACE_FORM, headers=headers)
    assert res.status_code == 201, res.text
    assert res.json()["place"]["author"]["id"] == user_id


def test_pending_user_cannot_like_or_comment(client, make_user, make_place):
    owner = make_user("owner@example.com")
    pending = make_user("pending@example.com", approved=False)
    place = make_place(owner)

    res = client.post(f"/api/places/{place['id']}/like", headers=pending["headers"])
    assert res.status_code == 403
    res = client.post(
        f"/api/places/{place['id']}/comments", json={"content": "hi"}, headers=pending["headers"]
    )
    assert res.status_code == 403


def test_pending_user_can_update_profile(client, make_user):
    pending = make_user("profile@example.com", approved=False)
    res = client.put("/api/users/profile", data={"bio": "hello"}, headers=pending["headers"])
    assert res.status_code == 200, res.text
    assert res.json()["user"]["bio"] == "hello"


def test_approve_is_idempotent(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    user = make_user("twice@example.com", approved=False)
    for _ in range(2):
        res = client.put(f"/api/users/admin/approve/{user['id']}", headers=admin["headers"])
        assert res.status_code == 200
        assert res.json()["user"]["isApproved"] is True


def test_approve_unknown_user(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    res = client.put("/api/users/admin/approve/missing", headers=admin["headers"])
    assert res.status_code == 404


def test_reject_removes_user_and_their_places(client, make_user, make_place, db):
    admin = make_user("admin@example.com", admin=True)
    user = make_user("bye@example.com")
    other = make_user("stay@example.com")
    make_place(user, name="One")
    make_place(user, name="Two")
    kept = make_place(other, name="Three")

    res = client.delete(f"/api/users/admin/reject/{user['id']}", headers=admin["headers"])
    assert res.status_code == 200, res.text

    assert db.get(User, user["id"]) is None
    assert db.execute(select(func.count()).select_from(Place).where(Place.author_id == user["id"])).scalar_one() == 0
    assert db.get(Place, kept["id"]) is not None
    assert client.get("/api/auth/me", headers=user["headers"]).status_code == 401


def test_admin_cannot_be_rejected(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    other_admin = make_user("admin2@example.com", admin=True)
    res = client.delete(f"/api/users/admin/reject/{other_admin['id']}", headers=admin["headers"])
    assert res.status_code == 400
    assert res.json()["kind"] == "InvalidOperation"


def test_toggle_admin(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    pending = make_user("promote@example.com", approved=False)

    res = client.put(f"/api/users/admin/toggle-admin/{pending['id']}", headers=admin["headers"])
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "admin"
    assert res.json()["user"]["isApproved"] is True

    res = client.put(f"/api/users/admin/toggle-admin/{pending['id']}", headers=admin["headers"])
    assert res.json()["user"]["role"] == "user"
    assert res.json()["user"]["isApproved"] is True


def test_toggle_admin_on_self_is_refused(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    res = client.put(f"/api/users/admin/toggle-admin/{admin['id']}", headers=admin["headers"])
    assert res.status_code == 400
    assert res.json()["kind"] == "InvalidOperation"


def test_admin_endpoints_require_admin(client, make_user):
    user = make_user("plain@example.com")
    assert client.get("/api/users/admin/all", headers=user["headers"]).status_code == 403
    assert client.get("/api/users/admin/pending").status_code == 401
    res = client.put(f"/api/users/admin/approve/{user['id']}", headers=user["headers"])
    assert res.status_code == 403


def test_admin_user_listing(client, make_user):
    admin = make_user("admin@example.com", admin=True)
    make_user("approved@example.com", first_name="Approved")
    make_user("waiting1@example.com", first_name="Waiting", approved=False)
    make_user("waiting2@example.com", first_name="Waiting", approved=False)

    res = client.get("/api/users/admin/pending", headers=admin["headers"])
    assert res.status_code == 200
    assert {u["email"] for u in res.json()["users"]} == {"waiting1@example.com", "waiting2@example.com"}
    assert res.json()["pagination"]["total"] == 2

    res = client.get("/api/users/admin/all", params={"status": "admin"}, headers=admin["headers"])
    assert [u["email"] for u in res.json()["users"]] == ["admin@example.com"]

    res = client.get("/api/users/admin/all", params={"search": "approved"}, headers=admin["headers"])
    assert [u["email"] for u in res.json()["users"]] == ["approved@example.com"]

    res = client.get("/api/users/admin/all", params={"status": "bogus", "limit": "2"}, headers=admin["headers"])
    body = res.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 4, "pages": 2}
    assert len(body["users"]) == 2
