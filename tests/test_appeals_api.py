import pytest

from auth.jwt_handler import create_access_token, create_appeal_token
from conftest import run
from database.connection import ensure_indexes
from models.enums import UserRole, UserStatus


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


@pytest.fixture
def banned(make_user):
    return make_user(status=UserStatus.BANNED)


def appeal_token_for(client, user):
    response = client.post(
        "/api/users/login",
        json={"organization_id": user.organization_id, "email": user.email, "password": "password123"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "BANNED"
    return response.json()["appeal_token"]


def file_appeal(client, token, reason="I was misunderstood"):
    return client.post("/api/appeals/", json={"appeal_token": token, "reason": reason})


def test_banned_login_hands_out_an_appeal_token(client, banned):
    token = appeal_token_for(client, banned)
    response = client.get("/api/appeals/token", params={"token": token})
    assert response.status_code == 200
    assert response.json()["email"] == banned.email


def test_appeal_token_is_not_an_access_token(client, banned):
    token = appeal_token_for(client, banned)
    assert client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_garbage_token_is_rejected(client):
    assert file_appeal(client, "not-a-token").status_code == 400
    access = create_access_token("000000000000000000000001", UserRole.USER, "org")
    assert file_appeal(client, access).status_code == 400


def test_one_appeal_per_user(client, db, banned):
    run(ensure_indexes(db))
    token = appeal_token_for(client, banned)
    response = file_appeal(client, token)
    assert response.status_code == 201
    assert response.json()["status"] == "PENDING"

    response = file_appeal(client, token)
    assert response.status_code == 400
    assert "already submitted" in response.json()["detail"]


def test_only_banned_accounts_can_appeal(client, make_user):
    member = make_user()
    token = create_appeal_token(member.id, member.organization_id, member.email)
    assert file_appeal(client, token).status_code == 400


def test_approving_an_appeal_lifts_the_ban(client, admin, banned):
    appeal_id = file_appeal(client, appeal_token_for(client, banned)).json()["id"]

    response = client.patch(f"/api/appeals/{appeal_id}/review", json={"review_notes": "Looking"}, headers=admin.headers)
    assert response.json()["status"] == "UNDER_REVIEW"

    response = client.patch(f"/api/appeals/{appeal_id}/approve", json={}, headers=admin.headers)
    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert response.json()["reviewed_at"] is not None

    assert client.get("/api/users/me", headers=banned.headers).json()["status"] == "APPROVED"


def test_rejected_appeal_is_final(client, admin, banned):
    appeal_id = file_appeal(client, appeal_token_for(client, banned)).json()["id"]
    response = client.patch(f"/api/appeals/{appeal_id}/reject", json={"review_notes": "No"}, headers=admin.headers)
    assert response.json()["status"] == "REJECTED"

    assert client.patch(f"/api/appeals/{appeal_id}/approve", json={}, headers=admin.headers).status_code == 400
    assert client.patch(f"/api/appeals/{appeal_id}/review", json={}, headers=admin.headers).status_code == 400
    assert client.get("/api/users/me", headers=banned.headers).status_code == 403


def test_admin_listing_filters_and_searches(client, admin, make_user):
    first = make_user(status=UserStatus.BANNED, name="Grace Hopper")
    second = make_user(status=UserStatus.BANNED, name="Alan Turing")
    file_appeal(client, appeal_token_for(client, first))
    appeal_id = file_appeal(client, appeal_token_for(client, second)).json()["id"]
    client.patch(f"/api/appeals/{appeal_id}/reject", json={}, headers=admin.headers)

    page = client.get("/api/appeals/?status=PENDING", headers=admin.headers).json()
    assert [a["user_name"] for a in page["appeals"]] == ["Grace Hopper"]
    page = client.get("/api/appeals/?search=turing", headers=admin.headers).json()
    assert [a["status"] for a in page["appeals"]] == ["REJECTED"]


def test_members_cannot_review_appeals(client, make_user):
    member = make_user()
    assert client.get("/api/appeals/", headers=member.headers).status_code == 403
