import uuid

from fastapi.testclient import TestClient
from sqlmodel import Session

from edusync.database import engine
from edusync.main import app
from edusync.repositories import UserRepository

client = TestClient(app)


def _register(secret="hash-from-client"):
    email = f"{uuid.uuid4().hex[:8]}@edusync.test"
    payload = {
        "userId": str(uuid.uuid4()),
        "name": "Grace Student",
        "email": email,
        "role": "Student",
        "passwordHash": secret,
    }
    r = client.post("/api/UserModels", json=payload)
    assert r.status_code == 201
    return payload


def test_login_with_matching_secret():
    user = _register()
    r = client.post("/api/UserModels/login", json={"email": user["email"], "passwordHash": "hash-from-client"})
    assert r.status_code == 200
    body = r.json()
    assert body["userId"] == user["userId"]
    assert body["email"] == user["email"]
    assert body["passwordHash"] == ""


def test_login_with_wrong_secret_and_unknown_email_look_the_same():
    user = _register()
    wrong = client.post("/api/UserModels/login", json={"email": user["email"], "passwordHash": "nope"})
    unknown = client.post("/api/UserModels/login", json={"email": "nobody@edusync.test", "passwordHash": "nope"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_login_requires_both_fields():
    assert client.post("/api/UserModels/login", json={"email": "", "passwordHash": "x"}).status_code == 400
    assert client.post("/api/UserModels/login", json={"email": "a@b.c", "passwordHash": "  "}).status_code == 400
    assert client.post("/api/UserModels/login", json={}).status_code == 400


def test_secret_is_stored_hashed():
    user = _register(secret="plain-value")
    with Session(engine) as session:
        stored = UserRepository(session).get(uuid.UUID(user["userId"]))
        assert stored.password_hash != "plain-value"
        assert stored.password_hash.startswith("$pbkdf2-sha256$")


def test_update_without_secret_keeps_existing_hash():
    user = _register(secret="keep-me")
    r = client.put(f"/api/UserModels/{user['userId']}", json={**user, "name": "Renamed", "passwordHash": ""})
    assert r.status_code == 204
    ok = client.post("/api/UserModels/login", json={"email": user["email"], "passwordHash": "keep-me"})
    assert ok.status_code == 200
    assert ok.json()["name"] == "Renamed"


def test_update_with_new_secret_replaces_it():
    user = _register(secret="old")
    r = client.put(f"/api/UserModels/{user['userId']}", json={**user, "passwordHash": "new"})
    assert r.status_code == 204
    assert client.post("/api/UserModels/login", json={"email": user["email"], "passwordHash": "old"}).status_code == 401
    assert client.post("/api/UserModels/login", json={"email": user["email"], "passwordHash": "new"}).status_code == 200
