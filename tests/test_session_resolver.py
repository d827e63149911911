"""Admin session resolution: store-backed validity, revocation, token sources."""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from starlette.requests import Request

from apps.dashboard.auth import extract_token, resolve_admin_session
from apps.dashboard.main import app
from apps.dashboard.models.admin import AdminSession
from apps.dashboard.services.admin_sessions import issue_session, purge_expired_sessions

from factories import bearer, login, make_admin, make_superadmin, make_village


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/api/auth/me", "headers": raw})


def _session_for(db, admin):
    session = issue_session(db, admin)
    db.commit()
    return session


def test_cookie_wins_over_bearer_header():
    req = _request({"cookie": "token=from-cookie", "authorization": "Bearer from-header"})
    assert extract_token(req) == "from-cookie"


def test_bearer_header_used_without_cookie():
    assert extract_token(_request({"authorization": "Bearer abc.def.ghi"})) == "abc.def.ghi"
    assert extract_token(_request({"authorization": "bearer   abc "})) == "abc"


@pytest.mark.parametrize("headers", [{}, {"authorization": "Basic xyz"}, {"authorization": "Bearer "}])
def test_no_token_found(headers):
    assert extract_token(_request(headers)) is None


@pytest.mark.timeout(10)
def test_resolves_session_with_tenant_scope(test_db_session):
    village = make_village(test_db_session)
    admin = make_admin(test_db_session, "operator_a", village=village)
    session = _session_for(test_db_session, admin)

    info = resolve_admin_session(test_db_session, session.token)
    assert info is not None
    assert info.id == session.id
    assert info.admin_id == admin.id
    assert info.username == "operator_a"
    assert info.role == "village_admin"
    assert info.village_id == village.id
    assert info.token == session.token
    assert info.is_superadmin is False


@pytest.mark.timeout(10)
def test_superadmin_has_global_scope(test_db_session):
    admin = make_superadmin(test_db_session)
    info = resolve_admin_session(test_db_session, _session_for(test_db_session, admin).token)
    assert info.is_superadmin is True
    assert info.village_id is None


@pytest.mark.timeout(10)
def test_resolution_is_idempotent(test_db_session):
    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = _session_for(test_db_session, admin).token
    first = resolve_admin_session(test_db_session, token)
    second = resolve_admin_session(test_db_session, token)
    assert first == second
    assert len(test_db_session.execute(select(AdminSession)).all()) == 1


@pytest.mark.timeout(10)
def test_stored_expiry_wins_over_token_expiry(test_db_session):
    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    session = _session_for(test_db_session, admin)
    session.expires_at = datetime.utcnow() - timedelta(minutes=1)
    test_db_session.commit()
    assert resolve_admin_session(test_db_session, session.token) is None


@pytest.mark.timeout(10)
def test_valid_token_without_session_row_is_rejected(test_db_session):
    from apps.dashboard.auth import create_access_token
    from apps.dashboard.services.admin_sessions import token_payload_for

    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    orphan = create_access_token(token_payload_for(admin))
    assert resolve_admin_session(test_db_session, orphan) is None


@pytest.mark.timeout(10)
def test_deactivated_admin_is_rejected(test_db_session):
    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = _session_for(test_db_session, admin).token
    admin.is_active = False
    test_db_session.commit()
    assert resolve_admin_session(test_db_session, token) is None


@pytest.mark.timeout(10)
def test_unverifiable_token_matching_a_row_is_rejected(test_db_session):
    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    test_db_session.add(
        AdminSession(admin_id=admin.id, token="plain-string", expires_at=datetime.utcnow() + timedelta(hours=1))
    )
    test_db_session.commit()
    assert resolve_admin_session(test_db_session, "plain-string") is None


@pytest.mark.timeout(20)
def test_me_returns_user_and_honours_stored_expiry(client, test_db_session):
    village = make_village(test_db_session)
    admin = make_admin(test_db_session, "operator_a", village=village)
    token = login(client, "operator_a").json()["token"]

    api = TestClient(app)
    r = api.get("/api/auth/me", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["user"] == {
        "id": admin.id,
        "username": "operator_a",
        "name": admin.name,
        "role": "village_admin",
        "village_id": village.id,
    }

    row = test_db_session.execute(select(AdminSession).where(AdminSession.token == token)).scalar_one()
    row.expires_at = datetime.utcnow() - timedelta(seconds=1)
    test_db_session.commit()
    r2 = api.get("/api/auth/me", headers=bearer(token))
    assert r2.status_code == 401
    assert r2.json() == {"error": "Unauthorized"}


@pytest.mark.timeout(20)
def test_me_via_login_cookie(client, test_db_session):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    assert login(client, "operator_a").status_code == 200
    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "operator_a"


@pytest.mark.timeout(20)
def test_logout_revokes_session_server_side(client, test_db_session):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = login(client, "operator_a").json()["token"]

    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert "token=" in r.headers.get("set-cookie", "")

    assert test_db_session.execute(select(AdminSession).where(AdminSession.token == token)).first() is None
    # the token still verifies cryptographically but is dead
    r2 = TestClient(app).get("/api/auth/me", headers=bearer(token))
    assert r2.status_code == 401


def test_logout_without_token_is_ok(client):
    r = client.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"success": True}


@pytest.mark.timeout(30)
def test_password_change_revokes_other_sessions(client, test_db_session):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    other = login(client, "operator_a", ip="10.0.0.2").json()["token"]
    current = login(client, "operator_a", ip="10.0.0.3").json()["token"]

    api = TestClient(app)
    r = api.patch(
        "/api/auth/password",
        json={"currentPassword": "rahasia-123", "newPassword": "baru-lebih-panjang"},
        headers=bearer(current),
    )
    assert r.status_code == 200
    assert api.get("/api/auth/me", headers=bearer(current)).status_code == 200
    assert api.get("/api/auth/me", headers=bearer(other)).status_code == 401
    assert login(TestClient(app), "operator_a", password="baru-lebih-panjang", ip="10.0.0.4").status_code == 200


@pytest.mark.parametrize(
    "body,message",
    [
        ({"currentPassword": "rahasia-123"}, "Current password and new password are required"),
        ({"currentPassword": "rahasia-123", "newPassword": "short"}, "Password must be at least 8 characters long"),
        ({"currentPassword": "wrong-one", "newPassword": "long-enough-pw"}, "Current password is incorrect"),
    ],
)
@pytest.mark.timeout(20)
def test_password_change_validation(client, test_db_session, body, message):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = login(client, "operator_a").json()["token"]
    r = TestClient(app).patch("/api/auth/password", json=body, headers=bearer(token))
    assert r.status_code == 400
    assert r.json() == {"error": message}


@pytest.mark.timeout(20)
def test_profile_update(client, test_db_session):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = login(client, "operator_a").json()["token"]
    api = TestClient(app)
    assert api.patch("/api/auth/profile", json={"name": "   "}, headers=bearer(token)).status_code == 400
    r = api.patch("/api/auth/profile", json={"name": "  Ibu Sekdes "}, headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Ibu Sekdes"


@pytest.mark.timeout(10)
def test_purge_removes_only_expired_sessions(test_db_session):
    admin = make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    live = _session_for(test_db_session, admin)
    stale = _session_for(test_db_session, admin)
    stale.expires_at = datetime.utcnow() - timedelta(hours=1)
    test_db_session.commit()
    live_token = live.token

    assert purge_expired_sessions(test_db_session) == 1
    remaining = test_db_session.execute(select(AdminSession.token)).scalars().all()
    assert remaining == [live_token]
