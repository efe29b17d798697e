"""
Tests for accounts, login and the session guard.

Tests cover:
- AuthService: registration rules, password hashing, login
- /auth endpoints: register, login, logout, me, check
- Session guard on catalogue routes, session expiry
- Concurrent registrations and a corrupt users slot
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from bookshelf.auth import USERS_KEY, AuthService, hash_password, verify_password
from bookshelf.errors import (
    AuthenticationError,
    DuplicateEmailError,
    RegistrationError,
    SlotError,
)
from bookshelf.models import PublicUser
from bookshelf.session import SessionManager

from conftest import register_and_login


@pytest.fixture
def auth(storage):
    return AuthService(storage)


# ============================================================================
# AuthService
# ============================================================================

class TestPasswordHashing:
    def test_hash_round_trip(self):
        salt, hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", salt, hashed)
        assert not verify_password("hunter23", salt, hashed)

    def test_salts_differ(self):
        assert hash_password("same")[1] != hash_password("same")[1]


class TestRegister:
    def test_register_returns_public_user(self, auth):
        user = auth.register("alice", "a@b.com", "secret123")
        assert user.model_dump() == {"id": 1, "username": "alice", "email": "a@b.com"}

    def test_password_is_not_stored_in_clear(self, auth, storage):
        auth.register("alice", "a@b.com", "secret123")
        raw = storage.path_for(USERS_KEY).read_text(encoding="utf-8")
        assert "secret123" not in raw
        assert storage.read(USERS_KEY)[0]["password_hash"]

    def test_duplicate_email_rejected(self, auth):
        auth.register("alice", "a@b.com", "secret123")
        with pytest.raises(DuplicateEmailError):
            auth.register("alice2", " A@B.com ", "secret456")

    def test_ids_are_sequential(self, auth):
        auth.register("alice", "a@b.com", "secret123")
        assert auth.register("bob", "bob@b.com", "secret123").id == 2
        assert auth.user_count() == 2

    @pytest.mark.parametrize(
        "username, email, password, confirm",
        [
            ("a", "a@b.com", "secret123", None),
            ("alice", "not-an-email", "secret123", None),
            ("alice", "a@b.com", "123", None),
            ("alice", "a@b.com", "secret123", "secret124"),
        ],
    )
    def test_invalid_registration(self, auth, username, email, password, confirm):
        with pytest.raises(RegistrationError):
            auth.register(username, email, password, confirm)
        assert auth.user_count() == 0


class TestLogin:
    def test_correct_password_returns_user_without_password(self, auth):
        auth.register("alice", "a@b.com", "secret123")
        user = auth.login("a@b.com", "secret123")

        data = user.model_dump()
        assert data["username"] == "alice"
        assert data["email"] == "a@b.com"
        assert "password" not in data
        assert "password_hash" not in data

    def test_wrong_password_fails_without_touching_storage(self, auth, storage):
        auth.register("alice", "a@b.com", "secret123")
        path = storage.path_for(USERS_KEY)
        before = (path.read_bytes(), path.stat().st_mtime_ns)

        with pytest.raises(AuthenticationError):
            auth.login("a@b.com", "wrong-password")

        assert (path.read_bytes(), path.stat().st_mtime_ns) == before
        assert sorted(p.name for p in storage.root.iterdir()) == ["users.json"]

    def test_unknown_email_fails(self, auth):
        with pytest.raises(AuthenticationError):
            auth.login("nobody@b.com", "secret123")

    def test_email_lookup_ignores_case(self, auth):
        auth.register("alice", "a@b.com", "secret123")
        assert auth.login("A@B.COM", "secret123").username == "alice"


# ============================================================================
# HTTP endpoints
# ============================================================================

class TestAuthEndpoints:
    def test_register_and_duplicate(self, client):
        payload = {"username": "alice", "email": "a@b.com", "password": "secret123"}
        first = client.post("/auth/register", json=payload)
        assert first.status_code == 200
        assert first.json() == {"message": "Registration successful"}

        second = client.post("/auth/register", json=payload)
        assert second.status_code == 400
        assert second.json()["detail"] == "Email already registered"

    def test_password_mismatch(self, client):
        response = client.post("/auth/register", json={
            "username": "alice", "email": "a@b.com",
            "password": "secret123", "confirm_password": "other",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Passwords do not match"

    def test_login_success(self, client):
        client.post("/auth/register", json={
            "username": "alice", "email": "a@b.com", "password": "secret123",
        })
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})

        assert response.status_code == 200
        body = response.json()
        assert body["username"] == "alice"
        assert body["email"] == "a@b.com"
        assert body["token"]
        assert "password" not in body
        assert "bookshelf_session" in response.cookies

    def test_login_failure(self, client):
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_me_and_logout(self, client, auth_headers):
        me = client.get("/auth/me", headers=auth_headers)
        assert me.status_code == 200
        assert me.json()["username"] == "reader"

        assert client.post("/auth/logout", headers=auth_headers).status_code == 200
        assert client.get("/auth/me", headers=auth_headers).status_code == 401

    def test_check_reports_user_count(self, client, auth_headers):
        assert client.get("/auth/check").json() == {"status": "ok", "user_count": 1}

    def test_health(self, client):
        assert client.get("/").json()["status"] == "ok"


class TestSessionGuard:
    def test_catalog_requires_login(self, app):
        response = TestClient(app).get("/api/catalog/books")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_unknown_token_rejected(self, app):
        response = TestClient(app).get(
            "/api/catalog/books", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401

    def test_session_cookie_is_accepted(self, app):
        browser = TestClient(app)
        register_and_login(browser)
        # No Authorization header: the cookie from /auth/login is enough
        assert browser.get("/api/catalog/books").status_code == 200


class TestSessionExpiry:
    ALICE = PublicUser(id=1, username="alice", email="a@b.com")

    def test_token_expires_after_ttl(self):
        now = [datetime(2026, 1, 1, tzinfo=timezone.utc)]
        sessions = SessionManager(ttl=60, clock=lambda: now[0])
        session = sessions.create(self.ALICE)

        now[0] += timedelta(seconds=59)
        assert sessions.get(session.token) is not None

        now[0] += timedelta(seconds=1)
        assert sessions.get(session.token) is None
        assert sessions.count() == 0

    def test_login_sweeps_expired_sessions(self):
        now = [datetime(2026, 1, 1, tzinfo=timezone.utc)]
        sessions = SessionManager(ttl=60, clock=lambda: now[0])
        for _ in range(3):
            sessions.create(self.ALICE)

        now[0] += timedelta(minutes=5)
        fresh = sessions.create(self.ALICE)

        assert sessions.count() == 1
        assert sessions.get(fresh.token) is not None

    def test_cookie_carries_max_age(self, client):
        client.post("/auth/register", json={
            "username": "alice", "email": "a@b.com", "password": "secret123",
        })
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "secret123"})

        cookie = response.headers["set-cookie"].lower()
        assert "max-age=604800" in cookie
        assert "httponly" in cookie


# ============================================================================
# Concurrency and storage failures
# ============================================================================

class TestConcurrentRegistration:
    def test_parallel_registrations_are_all_kept(self, auth, storage):
        start = threading.Barrier(6)
        errors = []

        def worker(i):
            start.wait()
            try:
                auth.register(f"user{i}", f"u{i}@example.com", "secret123")
            except Exception as exc:  # pragma: no cover - reported below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        stored = storage.read(USERS_KEY)
        assert sorted(u["id"] for u in stored) == [1, 2, 3, 4, 5, 6]
        assert sorted(u["email"] for u in stored) == sorted(f"u{i}@example.com" for i in range(6))

    def test_parallel_duplicates_register_once(self, auth, storage):
        start = threading.Barrier(4)
        outcomes = []

        def worker():
            start.wait()
            try:
                auth.register("alice", "a@b.com", "secret123")
                outcomes.append("ok")
            except DuplicateEmailError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["duplicate", "duplicate", "duplicate", "ok"]
        assert len(storage.read(USERS_KEY)) == 1


class TestCorruptUsersSlot:
    def _truncate(self, storage):
        path = storage.path_for(USERS_KEY)
        text = path.read_text(encoding="utf-8")
        path.write_text(text[: len(text) // 2], encoding="utf-8")
        return path.read_text(encoding="utf-8")

    def test_register_refuses_to_overwrite(self, auth, storage):
        auth.register("alice", "a@b.com", "secret123")
        damaged = self._truncate(storage)

        with pytest.raises(SlotError):
            auth.register("bob", "bob@b.com", "secret123")

        assert storage.path_for(USERS_KEY).read_text(encoding="utf-8") == damaged

    def test_malformed_records_also_block_registration(self, auth, storage):
        storage.write(USERS_KEY, [{"id": "x", "username": "alice"}])
        with pytest.raises(SlotError):
            auth.register("bob", "bob@b.com", "secret123")
        assert storage.read(USERS_KEY) == [{"id": "x", "username": "alice"}]

    def test_login_and_count_degrade_to_empty(self, auth, storage):
        auth.register("alice", "a@b.com", "secret123")
        self._truncate(storage)

        with pytest.raises(AuthenticationError):
            auth.login("a@b.com", "secret123")
        assert auth.user_count() == 0

    def test_register_endpoint_returns_500(self, client, tmp_path):
        client.post("/auth/register", json={
            "username": "alice", "email": "a@b.com", "password": "secret123",
        })
        path = tmp_path / "users.json"
        path.write_text("[{", encoding="utf-8")

        response = client.post("/auth/register", json={
            "username": "bob", "email": "bob@b.com", "password": "secret123",
        })

        assert response.status_code == 500
        assert response.json()["detail"] == "An error occurred during registration"
        assert path.read_text(encoding="utf-8") == "[{"
