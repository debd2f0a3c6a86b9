"""Post listing, search and lifecycle over HTTP."""

import json

import pytest
from sqlalchemy.exc import OperationalError

from app.crud import crud_post
from app.models.post import Post
from app.services.file_store import file_store
from conftest import make_image_bytes, stored_files

BASE = "/api/v1/posts"


def form(category_id, **overrides):
    data = {
        "title": "Amazing Product",
        "body": "A product described in more than ten characters",
        "price": "99.99",
        "category": str(category_id),
    }
    data.update({k: str(v) if not isinstance(v, str) else v for k, v in overrides.items()})
    return data


def create_post(client, headers, category_id, image=None, **overrides):
    files = {"image": ("photo.jpg", image, "image/jpeg")} if image is not None else None
    response = client.post(BASE, data=form(category_id, **overrides), files=files, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ----- Create -----

def test_create_without_image(client, moderator_headers, category):
    response = client.post(
        BASE,
        data=form(category.id, body="Twenty chars exactly"),
        headers=moderator_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Post created successfully"
    data = body["data"]
    assert data["title"] == "Amazing Product"
    assert data["price"] == 99.99
    assert data["image"] is None
    assert data["image_url"] is None
    assert data["status"] == "active"
    assert data["views"] == 0
    assert data["featured"] is False
    assert data["category"]["slug"] == "general-goods"
    assert data["created_by"]["username"] == "moderator1"


def test_short_title_is_a_validation_error(client, moderator_headers, category):
    response = client.post(BASE, data=form(category.id, title="ab"), headers=moderator_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert "title" in {e["field"] for e in body["errors"]}


def test_missing_fields_are_listed(client, moderator_headers):
    response = client.post(BASE, data={"title": "Only a title"}, headers=moderator_headers)
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"body", "price", "category_id"} <= fields


def test_negative_price_rejected(client, moderator_headers, category):
    response = client.post(BASE, data=form(category.id, price="-1"), headers=moderator_headers)
    assert response.status_code == 400
    assert "price" in {e["field"] for e in response.json()["errors"]}


def test_create_requires_login(client, category):
    assert client.post(BASE, data=form(category.id)).status_code == 401


def test_tags_are_trimmed_and_deduplicated(client, moderator_headers, category):
    data = create_post(client, moderator_headers, category.id, tags=" latex, ,orthopedic,latex ")
    assert data["tags"] == ["latex", "orthopedic"]


def test_create_with_image_stores_file_and_thumbnail(client, moderator_headers, category, jpeg_bytes):
    data = create_post(client, moderator_headers, category.id, image=jpeg_bytes)

    assert data["image"] in stored_files()
    assert data["thumbnail"] == f"thumb_{data['image'][:-4]}.jpg"
    assert (file_store.thumbnail_dir / data["thumbnail"]).is_file()
    assert data["image_url"] == f"/api/v1/static/{data['image']}"
    assert data["thumbnail_url"] == f"/api/v1/static/thumbnails/{data['thumbnail']}"

    served = client.get(data["image_url"])
    assert served.status_code == 200
    assert served.content == jpeg_bytes


def test_failed_thumbnail_leaves_no_thumbnail_url(client, moderator_headers, category):
    # JPEG signature with an undecodable body
    broken = b"\xff\xd8\xff" + b"\x00" * 100
    data = create_post(client, moderator_headers, category.id, image=broken)

    assert data["image"] in stored_files()
    assert data["image_url"] == f"/api/v1/static/{data['image']}"
    assert data["thumbnail"] is None
    assert data["thumbnail_url"] is None
    assert not any(file_store.thumbnail_dir.iterdir())

    fetched = client.get(f"{BASE}/{data['id']}").json()["data"]
    assert fetched["thumbnail_url"] is None


def test_png_thumbnail_is_served_as_jpeg(client, moderator_headers, category):
    files = {"image": ("photo.png", make_image_bytes(fmt="PNG"), "image/png")}
    response = client.post(BASE, data=form(category.id), files=files, headers=moderator_headers)
    data = response.json()["data"]

    assert data["image"].endswith(".png")
    assert data["thumbnail"].endswith(".jpg")
    served = client.get(data["thumbnail_url"])
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/jpeg"


def test_database_failure_on_create_removes_upload(client, moderator_headers, category, jpeg_bytes, monkeypatch):
    def failing_create_post(db, **kwargs):
        raise OperationalError("INSERT INTO posts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(crud_post, "create_post", failing_create_post)

    response = client.post(
        BASE,
        data=form(category.id),
        files={"image": ("photo.jpg", jpeg_bytes, "image/jpeg")},
        headers=moderator_headers,
    )
    assert response.status_code == 500
    assert response.json()["message"].startswith("Error creating post: ")
    assert stored_files() == set()
    assert not any(file_store.thumbnail_dir.iterdir())


def test_database_failure_on_edit_keeps_old_image(client, moderator_headers, category, jpeg_bytes, monkeypatch):
    data = create_post(client, moderator_headers, category.id, image=jpeg_bytes)

    def failing_set_tags(post, tags):
        raise OperationalError("INSERT INTO post_tags", {}, Exception("database is locked"))

    monkeypatch.setattr(crud_post, "set_tags", failing_set_tags)

    response = client.put(
        f"{BASE}/{data['id']}",
        data={"tags": "new"},
        files={"image": ("new.jpg", make_image_bytes(), "image/jpeg")},
        headers=moderator_headers,
    )
    assert response.status_code == 500
    assert response.json()["message"].startswith("Error updating post: ")
    assert stored_files() == {data["image"]}
    assert {p.name for p in file_store.thumbnail_dir.iterdir()} == {data["thumbnail"]}


def test_invalid_category_removes_uploaded_image(client, moderator_headers, jpeg_bytes):
    before = stored_files()
    response = client.post(
        BASE,
        data=form(9999),
        files={"image": ("photo.jpg", jpeg_bytes, "image/jpeg")},
        headers=moderator_headers,
    )
    assert response.status_code == 400
    assert stored_files() == before
    assert not any(file_store.thumbnail_dir.iterdir())


def test_rejected_upload_type(client, moderator_headers, category):
    response = client.post(
        BASE,
        data=form(category.id),
        files={"image": ("notes.txt", b"plain text", "text/plain")},
        headers=moderator_headers,
    )
    assert response.status_code == 400
    assert "Invalid file type" in response.json()["message"]


def test_category_properties_are_validated(client, moderator_headers, mattress_category, jpeg_bytes):
    response = client.post(
        BASE,
        data=form(mattress_category.id, category_properties=json.dumps({"firmness": "medium"})),
        files={"image": ("photo.jpg", jpeg_bytes, "image/jpeg")},
        headers=moderator_headers,
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"category_properties.firmness", "category_properties.thickness"}
    assert stored_files() == set()

    data = create_post(
        client,
        moderator_headers,
        mattress_category.id,
        category_properties=json.dumps({"firmness": "qattiq", "thickness": "20", "pillow_top": "yes"}),
    )
    assert data["category_properties"] == {"firmness": "qattiq", "thickness": 20, "pillow_top": True}


def test_category_properties_must_be_json_object(client, moderator_headers, category):
    response = client.post(
        BASE, data=form(category.id, category_properties="[1, 2]"), headers=moderator_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "category_properties"


# ----- Read -----

def test_track_view_counts_each_read(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]

    first = client.get(f"{BASE}/{post_id}", params={"trackView": "true"}).json()["data"]["views"]
    second = client.get(f"{BASE}/{post_id}", params={"trackView": "true"}).json()["data"]["views"]
    untracked = client.get(f"{BASE}/{post_id}").json()["data"]["views"]

    assert (first, second, untracked) == (1, 2, 2)


def test_tracked_view_by_staff_is_logged(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]
    client.get(f"{BASE}/{post_id}", params={"trackView": "true"}, headers=moderator_headers)

    activities = client.get(
        BASE + "/activities/user", params={"action": "POST_VIEWED"}, headers=moderator_headers
    ).json()["data"]["activities"]
    assert [a["resource_id"] for a in activities] == [post_id]


def test_get_missing_post(client):
    response = client.get(f"{BASE}/4242")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Post not found",
        "timestamp": response.json()["timestamp"],
    }


# ----- Listing -----

@pytest.fixture
def priced_posts(client, moderator_headers, category):
    ids = {}
    for title, price, tags in [
        ("Cheap pillow", 10, "pillow"),
        ("Middle mattress", 50, "latex,orthopedic"),
        ("Premium mattress", 100, "memory foam"),
        ("Free sample", 0, ""),
    ]:
        ids[title] = create_post(client, moderator_headers, category.id, title=title, price=price, tags=tags)["id"]
    return ids


def titles(response):
    return {p["title"] for p in response.json()["data"]["posts"]}


@pytest.mark.parametrize(
    "min_price, max_price, expected",
    [
        (0, 0, {"Cheap pillow", "Middle mattress", "Premium mattress", "Free sample"}),
        (20, 0, {"Middle mattress", "Premium mattress"}),
        (0, 50, {"Cheap pillow", "Middle mattress", "Free sample"}),
        (10, 50, {"Cheap pillow", "Middle mattress"}),
    ],
)
def test_price_range(client, priced_posts, min_price, max_price, expected):
    response = client.get(BASE, params={"minPrice": min_price, "maxPrice": max_price})
    assert titles(response) == expected


def test_tags_match_any(client, priced_posts):
    response = client.get(BASE, params={"tags": "pillow, orthopedic"})
    assert titles(response) == {"Cheap pillow", "Middle mattress"}


def test_sort_by_price(client, priced_posts):
    response = client.get(BASE, params={"sortBy": "price", "sortOrder": "asc"})
    prices = [p["price"] for p in response.json()["data"]["posts"]]
    assert prices == [0, 10, 50, 100]


def test_invalid_sort_field(client):
    response = client.get(BASE, params={"sortBy": "password"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "sortBy"


def test_pagination_and_filter_echo(client, priced_posts):
    body = client.get(BASE, params={"limit": 3, "page": 2, "minPrice": 0, "sortBy": "price"}).json()
    data = body["data"]
    assert len(data["posts"]) == 1
    assert data["pagination"] == {
        "current_page": 2,
        "total_pages": 2,
        "total_items": 4,
        "has_next_page": False,
        "has_prev_page": True,
        "limit": 3,
    }
    assert data["filters"]["sort_by"] == "price"
    assert data["filters"]["status"] == "active"


def test_featured_filter(client, moderator_headers, priced_posts):
    client.patch(f"{BASE}/{priced_posts['Premium mattress']}/toggle-featured", headers=moderator_headers)

    assert titles(client.get(BASE, params={"featured": "true"})) == {"Premium mattress"}
    assert len(titles(client.get(BASE, params={"featured": "false"}))) == 3


def test_search_ranks_title_matches_first(client, moderator_headers, category):
    create_post(client, moderator_headers, category.id, title="Pillow cover", body="Mentions mattress in the body")
    create_post(client, moderator_headers, category.id, title="Latex mattress", body="Firm and breathable latex")
    create_post(client, moderator_headers, category.id, title="Desk lamp", body="Nothing related at all")

    response = client.get(BASE, params={"search": "mattress", "sortBy": "price"})
    ordered = [p["title"] for p in response.json()["data"]["posts"]]
    assert ordered == ["Latex mattress", "Pillow cover"]


def test_search_endpoint_only_returns_active(client, moderator_headers, category):
    keep = create_post(client, moderator_headers, category.id, title="Latex mattress")["id"]
    gone = create_post(client, moderator_headers, category.id, title="Latex topper")["id"]
    client.delete(f"{BASE}/{gone}", headers=moderator_headers)

    response = client.get(BASE + "/search", params={"q": "latex"})
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["data"]["posts"]] == [keep]


def test_search_matches_tags(client, moderator_headers, category):
    tagged = create_post(client, moderator_headers, category.id, title="Plain item", tags="hypoallergenic")["id"]
    response = client.get(BASE + "/search", params={"q": "hypoallergenic"})
    assert [p["id"] for p in response.json()["data"]["posts"]] == [tagged]


def test_search_requires_term(client):
    response = client.get(BASE + "/search", params={"q": "   "})
    assert response.status_code == 400
    assert response.json()["message"] == "Search term is required"


# ----- Delete / restore -----

def test_soft_delete_hides_post(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]

    response = client.delete(f"{BASE}/{post_id}", headers=moderator_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "deleted"

    assert post_id not in {p["id"] for p in client.get(BASE).json()["data"]["posts"]}
    assert post_id in {p["id"] for p in client.get(BASE, params={"status": "deleted"}).json()["data"]["posts"]}
    assert post_id in {p["id"] for p in client.get(BASE, params={"status": "all"}).json()["data"]["posts"]}
    assert client.get(f"{BASE}/{post_id}").status_code == 404
    assert client.delete(f"{BASE}/{post_id}", headers=moderator_headers).status_code == 404


def test_restore_only_from_deleted(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]

    assert client.patch(f"{BASE}/{post_id}/restore", headers=moderator_headers).status_code == 409

    client.delete(f"{BASE}/{post_id}", headers=moderator_headers)
    response = client.patch(f"{BASE}/{post_id}/restore", headers=moderator_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "active"

    assert client.patch(f"{BASE}/{post_id}/restore", headers=moderator_headers).status_code == 409
    assert client.patch(f"{BASE}/999/restore", headers=moderator_headers).status_code == 404


def test_moderator_hard_delete_falls_back_to_soft(client, db, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]

    response = client.delete(f"{BASE}/{post_id}", params={"hard": "true"}, headers=moderator_headers)
    assert response.status_code == 200
    db.expire_all()
    assert db.get(Post, post_id).status == "deleted"


def test_owner_hard_delete_purges_row_and_file(client, db, owner_headers, category, jpeg_bytes):
    data = create_post(client, owner_headers, category.id, image=jpeg_bytes)

    response = client.delete(f"{BASE}/{data['id']}", params={"hard": "true"}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Amazing Product"

    db.expire_all()
    assert db.get(Post, data["id"]) is None
    assert data["image"] not in stored_files()
    assert not (file_store.thumbnail_dir / data["thumbnail"]).exists()


# ----- Edit -----

def test_edit_replaces_image(client, moderator_headers, category, jpeg_bytes):
    data = create_post(client, moderator_headers, category.id, image=jpeg_bytes)
    old_image, old_thumbnail = data["image"], data["thumbnail"]

    response = client.put(
        f"{BASE}/{data['id']}",
        data={"title": "Renamed product"},
        files={"image": ("new.png", make_image_bytes(fmt="PNG"), "image/png")},
        headers=moderator_headers,
    )
    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["title"] == "Renamed product"
    assert updated["body"] == data["body"]
    assert updated["image"] != old_image
    assert updated["image"].endswith(".png")
    assert stored_files() == {updated["image"]}
    assert updated["thumbnail"] == f"thumb_{updated['image'][:-4]}.jpg"
    assert not (file_store.thumbnail_dir / old_thumbnail).exists()


def test_edit_failure_keeps_old_image(client, moderator_headers, category, jpeg_bytes):
    data = create_post(client, moderator_headers, category.id, image=jpeg_bytes)

    response = client.put(
        f"{BASE}/{data['id']}",
        data={"category": "9999"},
        files={"image": ("new.jpg", make_image_bytes(), "image/jpeg")},
        headers=moderator_headers,
    )
    assert response.status_code == 400
    assert stored_files() == {data["image"]}


def test_edit_partial_fields_and_tags(client, moderator_headers, category):
    data = create_post(client, moderator_headers, category.id, tags="a,b")

    response = client.put(
        f"{BASE}/{data['id']}",
        data={"price": "12.5", "tags": "b,c", "status": "inactive"},
        headers=moderator_headers,
    )
    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["price"] == 12.5
    assert updated["tags"] == ["b", "c"]
    assert updated["status"] == "inactive"
    assert updated["updated_by"]["username"] == "moderator1"

    # Inactive posts leave the default listing but can still be fetched
    assert data["id"] not in {p["id"] for p in client.get(BASE).json()["data"]["posts"]}
    assert client.get(f"{BASE}/{data['id']}").status_code == 200


def test_inactive_post_only_listed_on_request(client, moderator_headers, category):
    visible = create_post(client, moderator_headers, category.id, title="Still on sale")["id"]
    hidden = create_post(client, moderator_headers, category.id, title="Out of stock")["id"]

    client.put(f"{BASE}/{hidden}", data={"status": "inactive"}, headers=moderator_headers)

    def listed(**params):
        return {p["id"] for p in client.get(BASE, params=params).json()["data"]["posts"]}

    assert listed() == {visible}
    assert listed(status="inactive") == {hidden}
    assert listed(status="all") == {visible, hidden}
    assert client.get(BASE + "/search", params={"q": "stock"}).json()["data"]["posts"] == []


def test_edit_deleted_post_is_not_found(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]
    client.delete(f"{BASE}/{post_id}", headers=moderator_headers)

    response = client.put(f"{BASE}/{post_id}", data={"title": "Back again"}, headers=moderator_headers)
    assert response.status_code == 404


# ----- Featured / statistics -----

def test_toggle_featured(client, moderator_headers, category):
    post_id = create_post(client, moderator_headers, category.id)["id"]

    first = client.patch(f"{BASE}/{post_id}/toggle-featured", headers=moderator_headers)
    assert first.json()["data"]["featured"] is True
    assert first.json()["message"] == "Post featured successfully"

    second = client.patch(f"{BASE}/{post_id}/toggle-featured", headers=moderator_headers)
    assert second.json()["data"]["featured"] is False

    client.delete(f"{BASE}/{post_id}", headers=moderator_headers)
    assert client.patch(f"{BASE}/{post_id}/toggle-featured", headers=moderator_headers).status_code == 404


def test_statistics(client, owner_headers, moderator_headers, category, mattress_category):
    a = create_post(client, moderator_headers, category.id, title="First")["id"]
    create_post(client, moderator_headers, category.id, title="Second")
    create_post(
        client, moderator_headers, mattress_category.id, title="Third",
        category_properties=json.dumps({"firmness": "qattiq", "thickness": 20}),
    )
    client.patch(f"{BASE}/{a}/toggle-featured", headers=moderator_headers)
    deleted = create_post(client, moderator_headers, category.id, title="Fourth")["id"]
    client.delete(f"{BASE}/{deleted}", headers=moderator_headers)

    assert client.get(BASE + "/statistics", headers=moderator_headers).status_code == 403

    stats = client.get(BASE + "/statistics", headers=owner_headers).json()["data"]
    assert stats["totals"] == {"total": 4, "active": 3, "deleted": 1, "featured": 1}
    assert stats["categories"] == [
        {"category_id": category.id, "category_name": "General Goods", "count": 2},
        {"category_id": mattress_category.id, "category_name": "Ortopedik Matras", "count": 1},
    ]
    assert [p["title"] for p in stats["recent"]] == ["Third", "Second", "First"]


def test_category_options(client, category, mattress_category):
    options = client.get(BASE + "/categories").json()["data"]
    assert {o["label"] for o in options} == {"General Goods", "Ortopedik Matras"}
    assert all(set(o) == {"value", "label", "slug"} for o in options)
