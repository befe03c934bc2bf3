def test_create_and_list_categories(client, register):
    user_id, headers = register()

    resp = client.post("/api/categories", json={"category_name": " Health ", "category_emoji": "💪"}, headers=headers)

    assert resp.status_code == 201
    category = resp.json()["category"]
    assert category["category_name"] == "Health"
    assert category["category_emoji"] == "💪"
    assert category["user_id"] == user_id

    listing = client.get("/api/categories")
    assert listing.status_code == 200
    assert [c["category_name"] for c in listing.json()["categories"]] == ["Health"]


def test_create_category_requires_auth(client):
    assert client.post("/api/categories", json={"category_name": "Health"}).status_code == 401


def test_create_category_rejects_bad_emoji(client, register):
    _, headers = register()
    resp = client.post("/api/categories", json={"category_name": "Health", "category_emoji": "🔥🔥"}, headers=headers)
    assert resp.status_code == 400
    assert "single emoji" in resp.json()["message"]


def test_duplicate_category_name_conflicts(client, register):
    _, alice = register("alice")
    _, bob = register("bob")
    client.post("/api/categories", json={"category_name": "Health"}, headers=alice)

    resp = client.post("/api/categories", json={"category_name": "Health"}, headers=bob)

    assert resp.status_code == 409
    assert resp.json() == {"message": "Category name already exists"}


def test_update_category(client, register):
    _, headers = register()
    category = client.post(
        "/api/categories", json={"category_name": "Health", "category_emoji": "💪"}, headers=headers
    ).json()["category"]

    resp = client.patch(
        f"/api/categories/{category['category_id']}",
        json={"category_name": "Fitness", "category_emoji": None},
        headers=headers,
    )

    assert resp.status_code == 200
    assert resp.json()["category"]["category_name"] == "Fitness"
    assert resp.json()["category"]["category_emoji"] is None


def test_update_category_rename_conflict(client, register):
    _, headers = register()
    client.post("/api/categories", json={"category_name": "Health"}, headers=headers)
    other = client.post("/api/categories", json={"category_name": "Work"}, headers=headers).json()["category"]

    resp = client.patch(f"/api/categories/{other['category_id']}", json={"category_name": "Health"}, headers=headers)

    assert resp.status_code == 409


def test_category_changes_require_owner(client, register):
    _, alice = register("alice")
    _, bob = register("bob")
    category = client.post("/api/categories", json={"category_name": "Health"}, headers=alice).json()["category"]
    path = f"/api/categories/{category['category_id']}"

    assert client.patch(path, json={"category_name": "Mine"}, headers=bob).status_code == 403
    assert client.delete(path, headers=bob).status_code == 403


def test_update_category_without_fields(client, register):
    _, headers = register()
    category = client.post("/api/categories", json={"category_name": "Health"}, headers=headers).json()["category"]
    resp = client.patch(f"/api/categories/{category['category_id']}", json={}, headers=headers)
    assert resp.status_code == 400


def test_delete_category_detaches_tasks(client, register, make_task):
    _, headers = register()
    category = client.post("/api/categories", json={"category_name": "Health"}, headers=headers).json()["category"]
    make_task(headers, category_id=category["category_id"])

    resp = client.delete(f"/api/categories/{category['category_id']}", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["deleted"]["category_id"] == category["category_id"]
    [task] = client.get("/api/tasks", headers=headers).json()["tasks"]
    assert task["category_id"] is None


def test_delete_missing_category(client, register):
    _, headers = register()
    resp = client.delete("/api/categories/6f1c2d9e-2f7a-4a43-9a1e-1f8f4b1b2c3d", headers=headers)
    assert resp.status_code == 404


def test_list_categories_newest_first(client, register):
    _, headers = register()
    for name in ("Alpha", "Beta", "Gamma"):
        client.post("/api/categories", json={"category_name": name}, headers=headers)

    names = [c["category_name"] for c in client.get("/api/categories").json()["categories"]]

    assert names == ["Gamma", "Beta", "Alpha"]
