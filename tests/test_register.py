"""Village registration by a superadmin."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from apps.dashboard.main import app
from apps.dashboard.models import ActivityLog, AdminUser, KnowledgeCategory, Village, VillageProfile
from apps.dashboard.services import registration
from apps.dashboard.services.knowledge import DEFAULT_KB_CATEGORIES

from factories import bearer, login, make_admin, make_superadmin, make_village

PAYLOAD = {
    "username": "operator_baru",
    "password": "password-desa-1",
    "name": "Operator Baru",
    "village_name": "Desa Sukamaju",
    "village_slug": "sukamaju",
}


@pytest.fixture
def channel_calls(monkeypatch):
    calls = []

    def _provision(village_id):
        calls.append(village_id)
        return True, None

    monkeypatch.setattr(registration, "provision_channel_account", _provision)
    return calls


@pytest.fixture
def superadmin_token(client, test_db_session):
    make_superadmin(test_db_session)
    r = login(client, "superadmin", ip="10.9.9.9")
    assert r.status_code == 200
    client.cookies.clear()
    return r.json()["token"]


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_register_without_session_is_403_and_writes_nothing(client, test_db_session, channel_calls):
    r = client.post("/api/auth/register", json=PAYLOAD)
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden: Only superadmin can register new villages"}
    assert _count(test_db_session, Village) == 0
    assert _count(test_db_session, AdminUser) == 0
    assert channel_calls == []


@pytest.mark.timeout(20)
def test_register_by_tenant_admin_is_403(client, test_db_session, channel_calls):
    make_admin(test_db_session, "operator_a", village=make_village(test_db_session))
    token = login(client, "operator_a").json()["token"]
    client.cookies.clear()
    r = client.post("/api/auth/register", json=PAYLOAD, headers=bearer(token))
    assert r.status_code == 403
    assert _count(test_db_session, Village) == 1


@pytest.mark.timeout(20)
def test_register_creates_village_profile_categories_and_admin(client, test_db_session, superadmin_token, channel_calls):
    r = client.post("/api/auth/register", json=PAYLOAD, headers=bearer(superadmin_token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["user"]["username"] == "operator_baru"
    assert body["user"]["role"] == "village_admin"
    assert body["village"]["slug"] == "sukamaju"

    village = test_db_session.execute(select(Village).where(Village.slug == "sukamaju")).scalar_one()
    assert village.name == "Desa Sukamaju"
    profile = test_db_session.execute(select(VillageProfile).where(VillageProfile.village_id == village.id)).scalar_one()
    assert profile.short_name == "sukamaju"
    names = test_db_session.execute(
        select(KnowledgeCategory.name).where(KnowledgeCategory.village_id == village.id)
    ).scalars().all()
    assert sorted(names) == sorted(DEFAULT_KB_CATEGORIES)
    admin = test_db_session.execute(select(AdminUser).where(AdminUser.username == "operator_baru")).scalar_one()
    assert admin.village_id == village.id
    assert channel_calls == [village.id]
    assert test_db_session.execute(
        select(ActivityLog).where(ActivityLog.action == "register")
    ).scalar_one_or_none() is not None

    # returned token is a live session for the new admin
    me = TestClient(app).get("/api/auth/me", headers=bearer(body["token"]))
    assert me.status_code == 200
    assert me.json()["user"]["village_id"] == village.id


@pytest.mark.timeout(20)
def test_channel_failure_does_not_abort_registration(client, test_db_session, superadmin_token, monkeypatch):
    monkeypatch.setattr(registration, "provision_channel_account", lambda village_id: (False, "timeout"))
    r = client.post("/api/auth/register", json=PAYLOAD, headers=bearer(superadmin_token))
    assert r.status_code == 200
    assert _count(test_db_session, Village) == 1


@pytest.mark.timeout(20)
def test_slug_is_normalized(client, test_db_session, superadmin_token, channel_calls):
    payload = dict(PAYLOAD, village_slug="  Desa   Maju Jaya ")
    r = client.post("/api/auth/register", json=payload, headers=bearer(superadmin_token))
    assert r.status_code == 200
    assert r.json()["village"]["slug"] == "desa-maju-jaya"


@pytest.mark.parametrize("missing", ["username", "password", "name", "village_name", "village_slug"])
@pytest.mark.timeout(20)
def test_missing_fields_are_400(client, superadmin_token, channel_calls, missing):
    payload = {k: v for k, v in PAYLOAD.items() if k != missing}
    r = client.post("/api/auth/register", json=payload, headers=bearer(superadmin_token))
    assert r.status_code == 400
    assert r.json() == {"error": "Username, password, name, village_name, village_slug wajib diisi"}


@pytest.mark.parametrize("username", ["operator baru", "operator\tbaru", "operator\nbaru", "operator\u00a0baru"])
@pytest.mark.timeout(20)
def test_username_with_whitespace_is_400(client, test_db_session, superadmin_token, channel_calls, username):
    r = client.post("/api/auth/register", json=dict(PAYLOAD, username=username), headers=bearer(superadmin_token))
    assert r.status_code == 400
    assert r.json() == {"error": "Username tidak boleh mengandung spasi"}
    assert _count(test_db_session, Village) == 0


@pytest.mark.timeout(20)
def test_existing_username_is_409(client, test_db_session, superadmin_token, channel_calls):
    make_admin(test_db_session, "operator_baru", village=make_village(test_db_session, slug="lain"))
    r = client.post("/api/auth/register", json=PAYLOAD, headers=bearer(superadmin_token))
    assert r.status_code == 409
    assert r.json() == {"error": "Username sudah digunakan"}
    assert test_db_session.execute(select(Village).where(Village.slug == "sukamaju")).first() is None


@pytest.mark.timeout(20)
def test_duplicate_slug_is_409_and_keeps_single_village(client, test_db_session, superadmin_token, channel_calls):
    make_village(test_db_session, slug="sukamaju")
    r = client.post("/api/auth/register", json=PAYLOAD, headers=bearer(superadmin_token))
    assert r.status_code == 409
    assert r.json() == {"error": "Slug desa sudah digunakan"}
    test_db_session.expire_all()
    assert _count(test_db_session, Village) == 1
    assert test_db_session.execute(select(AdminUser).where(AdminUser.username == "operator_baru")).first() is None
    assert channel_calls == []
