"""Tests for JWTValidator."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from ticketflow.domain.errors import AuthenticationError
from ticketflow.utils.jwt import JWTValidator

SECRET = "unit-test-secret-with-at-least-32-bytes"


@pytest.fixture
def validator() -> JWTValidator:
    return JWTValidator(secret=SECRET, algorithm="HS256")


def _token(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


def test_maps_claims_to_actor(validator):
    token = _token({
        "usu_id": "10", "usu_correo": "ana@example.com", "rol_id": 2,
        "reg_id": 3, "car_id": 100, "es_nacional": False,
    })

    actor = validator.get_actor_context(f"Bearer {token}")

    assert actor.user_id == 10
    assert actor.email == "ana@example.com"
    assert actor.role_id == 2
    assert actor.region_id == 3
    assert actor.position_id == 100
    assert not actor.is_national


def test_expired_token(validator):
    token = _token({"usu_id": 10, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)})
    with pytest.raises(AuthenticationError, match="expired"):
        validator.validate_token(token)


def test_wrong_signature(validator):
    token = _token({"usu_id": 10}, secret="another-secret-that-is-also-32-bytes-long")
    with pytest.raises(AuthenticationError):
        validator.validate_token(token)


def test_missing_user_claim(validator):
    with pytest.raises(AuthenticationError):
        validator.validate_token(_token({"rol_id": 2}))


def test_missing_token(validator):
    with pytest.raises(AuthenticationError):
        validator.validate_token("")
