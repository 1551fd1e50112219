from datetime import timedelta
from uuid import uuid4

from app.core.security import (
    create_access_token,
    create_password_reset_token,
    decode_access_token,
    decode_password_reset_token,
)


def test_access_token_round_trip_keeps_database_role() -> None:
    profile_id = str(uuid4())
    token = create_access_token(profile_id=profile_id, email="a@example.com", app_role="EDITOR")
    claims = decode_access_token(token)
    assert claims["sub"] == profile_id
    assert claims["role"] == "authenticated"
    assert claims["app_role"] == "EDITOR"


def test_expired_token_is_rejected() -> None:
    token = create_access_token(
        profile_id="p",
        email="a@example.com",
        app_role="EDITOR",
        expires_delta=timedelta(seconds=-5),
    )
    assert decode_access_token(token) is None


def test_reset_token_is_not_an_access_token() -> None:
    token = create_password_reset_token(profile_id="p", email="a@example.com")
    assert decode_access_token(token) is None
    assert decode_password_reset_token(token)["email"] == "a@example.com"


def test_tampered_token_is_rejected() -> None:
    token = create_access_token(profile_id="p", email="a@example.com", app_role="EDITOR")
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, "A" * len(signature)])
    assert decode_access_token(forged) is None
