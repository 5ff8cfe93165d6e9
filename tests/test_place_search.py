import math

import pytest

from placer.core.config import settings
from placer.services.place_query import PlaceFilter, haversine_km


def _names(res):
    assert res.status_code == 200, res.text
    return [p["name"] for p in res.json()["places"]]


def test_pagination_invariants(client, make_user, make_place):
    owner = make_user("pager@example.com")
    for i in range(7):
        make_place(owner, name=f"Place {i}")

    seen = []
    for page in (1, 2, 3):
        res = client.get("/api/places", params={"page": page, "limit": 3})
        body = res.json()
        assert body["pagination"] == {"page": page, "limit": 3, "total": 7, "pages": math.ceil(7 / 3)}
        assert len(body["places"]) <= 3
        seen += [p["id"] for p in body["places"]]
    assert len(seen) == len(set(seen)) == 7

    res = client.get("/api/places", params={"page": 4, "limit": 3})
    assert res.json()["places"] == []
    assert res.json()["pagination"]["total"] == 7


def test_paging_parameters_are_clamped(client, make_user, make_place):
    owner = make_user("clamp@example.com")
    make_place(owner)

    res = client.get("/api/places", params={"page": "0", "limit": "1000"})
    assert res.json()["pagination"]["page"] == 1
    assert res.json()["pagination"]["limit"] == settings.max_page_limit

    res = client.get("/api/places", params={"page": "abc", "limit": "-5"})
    assert res.status_code == 200
    assert res.json()["pagination"]["page"] == 1
    assert res.json()["pagination"]["limit"] == 1


def test_invalid_enums_fall_back_to_defaults():
    flt = PlaceFilter.from_params(category="castle", sort_by="rating", sort_order="sideways")
    assert flt.category is None
    assert flt.sort_by == "createdAt"
    assert flt.sort_order == "desc"


def test_invalid_coordinates_disable_geo_filter():
    assert PlaceFilter.from_params(lat="north", lng="10").geo is None
    assert PlaceFilter.from_params(lat="95", lng="10").geo is None
    assert PlaceFilter.from_params(lat="nan", lng="10").geo is None

    flt = PlaceFilter.from_params(lat="10", lng="20", radius="-3")
    assert flt.geo is not None
    assert flt.geo.radius_km == settings.default_radius_km


def test_default_listing_hides_private_and_drafts(client, make_user, make_place):
    owner = make_user("visible@example.com")
    make_place(owner, name="Shown")
    make_place(owner, name="Private", isPublic=False)
    make_place(owner, name="Draft", status="draft")

    assert _names(client.get("/api/places")) == ["Shown"]

    own = client.get("/api/places", params={"author": owner["id"]}, headers=owner["headers"])
    assert sorted(_names(own)) == ["Draft", "Private", "Shown"]

    other = make_user("other@example.com")
    res = client.get("/api/places", params={"author": owner["id"]}, headers=other["headers"])
    assert _names(res) == ["Shown"]


def test_filters_combine(client, make_user, make_place):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    make_place(alice, name="Sunny Cafe", category="restaurant", tags="coffee")
    make_place(alice, name="Rainy Park", category="outdoor", description="Lots of trees", tags="green")
    make_place(bob, name="Bob Cafe", category="restaurant", tags="coffee,cake")

    assert sorted(_names(client.get("/api/places", params={"search": "cafe"}))) == ["Bob Cafe", "Sunny Cafe"]
    assert _names(client.get("/api/places", params={"search": "TREES"})) == ["Rainy Park"]
    assert _names(client.get("/api/places", params={"category": "outdoor"})) == ["Rainy Park"]
    assert _names(client.get("/api/places", params={"tag": "cake"})) == ["Bob Cafe"]
    assert _names(client.get("/api/places", params={"category": "restaurant", "author": alice["id"]})) == [
        "Sunny Cafe"
    ]
    # unknown category is ignored rather than rejected
    assert len(_names(client.get("/api/places", params={"category": "castle"}))) == 3


def test_sort_by_name(client, make_user, make_place):
    owner = make_user("sorter@example.com")
    for name in ("Beta", "Alpha", "Gamma"):
        make_place(owner, name=name)

    assert _names(client.get("/api/places", params={"sortBy": "name", "sortOrder": "asc"})) == [
        "Alpha",
        "Beta",
        "Gamma",
    ]
    assert _names(client.get("/api/places", params={"sortBy": "name", "sortOrder": "desc"})) == [
        "Gamma",
        "Beta",
        "Alpha",
    ]


def test_geo_listing_orders_by_distance(client, make_user, make_place):
    owner = make_user("geo@example.com")
    make_place(owner, name="Pier", lng=-74.0060, lat=40.7128)
    # ~5 km north
    make_place(owner, name="Uptown", lng=-74.0060, lat=40.7578)
    make_place(owner, name="Boston", lng=-71.0589, lat=42.3601)

    res = client.get("/api/places", params={"lat": 40.7128, "lng": -74.0060, "radius": 1})
    assert _names(res) == ["Pier"]
    assert res.json()["places"][0]["distanceKm"] == 0

    res = client.get(
        "/api/places",
        params={"lat": 40.7128, "lng": -74.0060, "radius": 10, "sortBy": "name", "sortOrder": "desc"},
    )
    assert _names(res) == ["Pier", "Uptown"]
    assert res.json()["pagination"]["total"] == 2

    res = client.get("/api/places", params={"lat": 40.7578, "lng": -74.0060, "radius": 0.001})
    assert _names(res) == ["Uptown"]


@pytest.mark.parametrize("delta, included", [(0.0, True), (1e-6, False)])
def test_geo_radius_boundary_is_inclusive(client, make_user, make_place, delta, included):
    owner = make_user("edge@example.com")
    make_place(owner, name="Edge", lng=0.0, lat=0.05)
    exact = haversine_km(0.0, 0.0, 0.05, 0.0)

    res = client.get("/api/places", params={"lat": 0, "lng": 0, "radius": repr(exact - delta)})
    assert (_names(res) == ["Edge"]) is included


def test_geo_listing_across_the_dateline(client, make_user, make_place):
    owner = make_user("dateline@example.com")
    make_place(owner, name="East", lng=179.99, lat=0.0)
    make_place(owner, name="West", lng=-179.99, lat=0.0)

    res = client.get("/api/places", params={"lat": 0, "lng": 179.995, "radius": 5})
    assert sorted(_names(res)) == ["East", "West"]


def test_geo_pagination(client, make_user, make_place):
    owner = make_user("geopage@example.com")
    for i in range(5):
        make_place(owner, name=f"P{i}", lng=0.0, lat=i * 0.01)

    res = client.get("/api/places", params={"lat": 0, "lng": 0, "radius": 50, "page": 2, "limit": 2})
    assert _names(res) == ["P2", "P3"]
    assert res.json()["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}


def test_search_treats_wildcards_literally(client, make_user, make_place):
    owner = make_user("literal@example.com")
    make_place(owner, name="Alpha")
    make_place(owner, name="100% Beef")
    make_place(owner, name="snake_case bar")

    assert _names(client.get("/api/places", params={"search": "%"})) == ["100% Beef"]
    assert _names(client.get("/api/places", params={"search": "_"})) == ["snake_case bar"]
    assert _names(client.get("/api/places", params={"search": "\\"})) == []
