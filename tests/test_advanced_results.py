from datetime import datetime

import pytest
from pymongo import ASCENDING, DESCENDING
from starlette.datastructures import QueryParams

from advanced_results import build_filter, parse_projection, parse_sort
from errors import ValidationError

FIELDS = {
    "title": str,
    "slug": str,
    "author": str,
    "tags": str,
    "views": int,
    "rating": float,
    "isPublished": bool,
    "createdAt": datetime,
}


def test_build_filter_skips_reserved_params_and_types_values():
    params = QueryParams("select=title&sort=-title&page=2&limit=5&isPublished=true&author=abc")
    assert build_filter(params, FIELDS) == {"isPublished": True, "author": "abc"}


def test_build_filter_keeps_numeric_looking_strings_on_string_fields():
    params = QueryParams("slug=2024&title=true&author=nan")
    assert build_filter(params, FIELDS) == {"slug": "2024", "title": "true", "author": "nan"}


def test_build_filter_maps_bracket_operators():
    params = QueryParams("views[gte]=10&rating[lt]=20.5&tags[in]=career,guides&createdAt[gte]=2026-01-01")
    assert build_filter(params, FIELDS) == {
        "views": {"$gte": 10},
        "rating": {"$lt": 20.5},
        "tags": {"$in": ["career", "guides"]},
        "createdAt": {"$gte": datetime(2026, 1, 1)},
    }


@pytest.mark.parametrize("query", ["views[gt]=ten", "rating[lt]=nan", "rating[gte]=inf", "isPublished=yes"])
def test_build_filter_rejects_values_of_the_wrong_type(query):
    with pytest.raises(ValidationError):
        build_filter(QueryParams(query), FIELDS)


@pytest.mark.parametrize("query", ["$where=sleep(5000)||true", "author.id=1", "password=x", "$where[gt]=1"])
def test_build_filter_rejects_unknown_and_operator_keys(query):
    with pytest.raises(ValidationError):
        build_filter(QueryParams(query), FIELDS)


def test_parse_sort_defaults_to_newest_first():
    assert parse_sort(None, FIELDS) == [("createdAt", DESCENDING)]
    assert parse_sort(",", FIELDS) == [("createdAt", DESCENDING)]
    assert parse_sort("title,-createdAt", FIELDS) == [("title", ASCENDING), ("createdAt", DESCENDING)]


@pytest.mark.parametrize("raw", ["-", "title,-", "$natural", "password"])
def test_parse_sort_rejects_empty_and_unknown_names(raw):
    with pytest.raises(ValidationError):
        parse_sort(raw, FIELDS)


def test_parse_projection():
    assert parse_projection(None, FIELDS) is None
    assert parse_projection(",", FIELDS) is None
    assert parse_projection("title, tags", FIELDS) == {"title": 1, "tags": 1}
    with pytest.raises(ValidationError):
        parse_projection("title,$where", FIELDS)


def make_blogs(client, headers, count):
    for i in range(count):
        response = client.post(
            "/blogs",
            json={"title": f"Post {i}", "content": "body", "tags": ["t"], "isPublished": i % 2 == 0},
            headers=headers,
        )
        assert response.status_code == 201


def test_list_paginates(client, admin_headers):
    make_blogs(client, admin_headers, 5)

    first = client.get("/blogs", params={"limit": 2, "sort": "title"}).json()
    assert first["count"] == 2
    assert [b["title"] for b in first["data"]] == ["Post 0", "Post 1"]
    assert first["pagination"] == {"next": {"page": 2, "limit": 2}}

    last = client.get("/blogs", params={"limit": 2, "page": 3, "sort": "title"}).json()
    assert [b["title"] for b in last["data"]] == ["Post 4"]
    assert last["pagination"] == {"prev": {"page": 2, "limit": 2}}


def test_list_filters_and_selects(client, admin_headers):
    make_blogs(client, admin_headers, 4)

    body = client.get("/blogs", params={"isPublished": "true", "select": "title"}).json()
    assert body["count"] == 2
    for blog in body["data"]:
        assert set(blog) == {"id", "title"}


def test_list_rejects_bad_page(client):
    response = client.get("/blogs", params={"page": "zero"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "page must be an integer"}


def test_list_filters_numeric_looking_slug(client, admin_headers):
    make_blogs(client, admin_headers, 2)
    response = client.post(
        "/blogs",
        json={"title": "Year in review", "slug": "2024", "content": "body", "tags": ["t"]},
        headers=admin_headers,
    )
    assert response.status_code == 201

    body = client.get("/blogs", params={"slug": "2024"}).json()
    assert body["count"] == 1
    assert body["data"][0]["title"] == "Year in review"


def test_list_rejects_operator_keys(client, admin_headers):
    make_blogs(client, admin_headers, 1)
    response = client.get("/blogs", params={"$where": "sleep(5000)||true"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown field: $where"}


def test_list_with_blank_sort_uses_default_order(client, admin_headers):
    make_blogs(client, admin_headers, 3)
    response = client.get("/blogs", params={"sort": ","})
    assert response.status_code == 200
    assert response.json()["count"] == 3


def test_list_rejects_sort_without_field_name(client):
    response = client.get("/blogs", params={"sort": "-"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown field: (empty)"}


def test_appointment_list_filters_by_date(client, admin_headers, user_headers, counselor):
    for day in ("2026-11-02", "2026-11-03"):
        booking = {"counselor": str(counselor["_id"]), "type": "15min", "date": day, "time": "09:00"}
        assert client.post("/appointments", json=booking, headers=user_headers).status_code == 201

    body = client.get("/appointments", params={"date[gte]": "2026-11-03"}, headers=admin_headers).json()
    assert body["count"] == 1
    assert body["data"][0]["date"].startswith("2026-11-03")
