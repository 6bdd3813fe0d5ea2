from __future__ import annotations


def create(client, headers, shortcut="fu", content="Follow up with GP in 1 week"):
    return client.post("/snippets", json={"shortcut": shortcut, "content": content}, headers=headers)


def test_snippet_lifecycle(client, auth_headers):
    created = create(client, auth_headers)
    assert created.status_code == 201
    snippet_id = created.json()["id"]

    response = client.get("/snippets/shortcut/fu", headers=auth_headers)
    assert response.json()["id"] == snippet_id

    response = client.get("/snippets", params={"q": "GP"}, headers=auth_headers)
    assert response.json()["total"] == 1

    response = client.patch(f"/snippets/{snippet_id}", json={"content": "Follow up in 2 weeks"}, headers=auth_headers)
    assert response.json()["content"] == "Follow up in 2 weeks"
    assert response.json()["shortcut"] == "fu"

    response = client.delete(f"/snippets/{snippet_id}", headers=auth_headers)
    assert response.status_code == 204
    assert client.get("/snippets", headers=auth_headers).json()["total"] == 0


def test_get_by_shortcut(client, auth_headers):
    create(client, auth_headers, shortcut="wound")
    response = client.get("/snippets/shortcut/wound", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["shortcut"] == "wound"

    assert client.get("/snippets/shortcut/nothing", headers=auth_headers).status_code == 404


def test_duplicate_shortcut_conflicts(client, auth_headers, other_auth_headers):
    create(client, auth_headers, shortcut="meds")
    assert create(client, auth_headers, shortcut="meds").status_code == 409
    # Shortcuts are per user
    assert create(client, other_auth_headers, shortcut="meds").status_code == 201


def test_rename_to_taken_shortcut_conflicts(client, auth_headers):
    create(client, auth_headers, shortcut="a")
    second = create(client, auth_headers, shortcut="b").json()

    response = client.patch(f"/snippets/{second['id']}", json={"shortcut": "a"}, headers=auth_headers)
    assert response.status_code == 409


def test_preferences_are_merged(client, auth_headers):
    response = client.put("/users/preferences", json={"theme": "dark"}, headers=auth_headers)
    assert response.status_code == 200
    response = client.put("/users/preferences", json={"favoriteDocumentIds": ["d1"]}, headers=auth_headers)
    preferences = response.json()["preferences"]
    assert preferences["theme"] == "dark"
    assert preferences["favoriteDocumentIds"] == ["d1"]

    response = client.put("/users/profile", json={"organization": "RPA"}, headers=auth_headers)
    assert response.json()["organization"] == "RPA"
    assert response.json()["name"] == "Dr Test"


def test_hospitals_list(client, auth_headers):
    response = client.get("/hospitals", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"hospitals": [], "total": 0}
