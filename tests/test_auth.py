from datetime import timedelta

from auth.jwt_handler import create_access_token, verify_token
from auth.password_handler import generate_temp_password, hash_password, verify_password
from models.enums import UserRole


def test_password_round_trip():
    hashed = hash_password("correct horse")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_members_without_login_cannot_authenticate():
    assert not verify_password("anything", None)


def test_temp_password_uses_last_phone_digits():
    assert generate_temp_password("Smith", "(416) 555-1234") == "Smith1234"
    assert generate_temp_password("Li", "12") == "Li001200"


def test_token_carries_role_and_organization():
    payload = verify_token(create_access_token("u1", UserRole.ADMIN, "org1"))
    assert payload["sub"] == "u1"
    assert payload["role"] == "ADMIN"
    assert payload["org"] == "org1"


def test_expired_and_garbage_tokens_are_rejected():
    assert verify_token(create_access_token("u1", UserRole.USER, "org1", expires_delta=timedelta(minutes=-5))) is None
    assert verify_token("not-a-token") is None
