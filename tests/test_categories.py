def test_default_categories_are_seeded(client, auth_headers):
    names = [c["name"] for c in client.get("/api/categories", headers=auth_headers).json()]
    assert "Health" in names
    assert names == sorted(names)


def test_category_crud(client, auth_headers):
    response = client.post("/api/categories", json={"name": "Finance", "description": "Money"}, headers=auth_headers)
    assert response.status_code == 201
    category_id = response.json()["id"]

    response = client.put(f"/api/categories/{category_id}", json={"name": "Budget"}, headers=auth_headers)
    assert response.json()["name"] == "Budget"

    assert client.get(f"/api/categories/{category_id}", headers=auth_headers).json()["name"] == "Budget"
    assert client.delete(f"/api/categories/{category_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/categories/{category_id}", headers=auth_headers).status_code == 404


def test_duplicate_category_name(client, auth_headers):
    response = client.post("/api/categories", json={"name": "Health"}, headers=auth_headers)
    assert response.status_code == 409


def test_category_in_use_cannot_be_deleted(client, auth_headers, category_id):
    client.post("/api/habits", json={"name": "Walk", "category_id": category_id}, headers=auth_headers)
    response = client.delete(f"/api/categories/{category_id}", headers=auth_headers)
    assert response.status_code == 400
