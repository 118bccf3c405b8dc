import pytest

from app.auth import authenticate, hash_password, register_tree, verify_password


def register_payload(slug="smith", **overrides):
    payload = {
        "tree_name": f"{slug.title()} Family",
        "admin_username": f"{slug}_admin",
        "admin_password": "Secret123",
        "guest_username": f"{slug}_guest",
        "guest_password": "guest123",
        "email": f"{slug}@example.com",
    }
    payload.update(overrides)
    return payload


def test_password_hashing():
    hashed = hash_password("Secret123")
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed)
    assert not verify_password("secret123", hashed)


def test_register_and_authenticate(db):
    tree = register_tree(db, "Smith Family", "smith_admin", "Secret123", "smith_guest", "guest123")

    found, role = authenticate(db, "smith_admin", "Secret123")
    assert (found.id, role) == (tree.id, "admin")

    found, role = authenticate(db, "smith_guest", "guest123")
    assert (found.id, role) == (tree.id, "guest")

    assert authenticate(db, "smith_guest", "Secret123") is None
    assert authenticate(db, "nobody", "Secret123") is None


def test_usernames_are_unique_across_roles(db):
    register_tree(db, "Smith Family", "smith_admin", "Secret123", "smith_guest", "guest123")
    with pytest.raises(ValueError):
        register_tree(db, "Other", "Smith_Guest", "Secret123", "other_guest", "guest123")
    with pytest.raises(ValueError):
        register_tree(db, "Other", "same", "Secret123", "SAME", "guest123")


# ============================================================================
# HTTP
# ============================================================================

def test_register_returns_admin_token(client):
    res = client.post("/auth/register", json=register_payload())
    assert res.status_code == 200
    body = res.json()
    assert body["role"] == "admin"
    assert body["token_type"] == "bearer"
    assert body["tree_name"] == "Smith Family"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["tree_id"] == body["tree_id"]


def test_register_rejects_weak_admin_password(client):
    res = client.post("/auth/register", json=register_payload(admin_password="alllowercase"))
    assert res.status_code == 400


def test_register_rejects_taken_username(client):
    assert client.post("/auth/register", json=register_payload()).status_code == 200
    res = client.post(
        "/auth/register",
        json=register_payload("jones", admin_username="smith_admin"),
    )
    assert res.status_code == 409


def test_guest_login(client):
    client.post("/auth/register", json=register_payload())
    res = client.post("/auth/login", json={"username": "smith_guest", "password": "guest123"})
    assert res.status_code == 200
    assert res.json()["role"] == "guest"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {res.json()['access_token']}"})
    assert "first_name" not in me.json()


def test_bad_credentials(client):
    client.post("/auth/register", json=register_payload())
    res = client.post("/auth/login", json={"username": "smith_admin", "password": "nope"})
    assert res.status_code == 401


def test_garbage_token(client):
    res = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
