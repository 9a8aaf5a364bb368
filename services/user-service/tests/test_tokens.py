from __future__ import annotations

from datetime import timedelta
import uuid

import jwt
import pytest

from user_service.domain.errors import RoleInvalidError, TokenExpiredError, TokenInvalidError
from user_service.domain.user import Role
from user_service.security.tokens import TokenCodec

from conftest import FIXED_NOW, SIGNING_SECRET


def _forge(payload: dict, secret: str = SIGNING_SECRET, algorithm: str = "HS256") -> str:
    return jwt.encode(payload, secret, algorithm=algorithm)


def _claims(subject: str, **overrides) -> dict:
    payload = {
        "iss": "users.test",
        "sub": subject,
        "role": "user",
        "exp": int((FIXED_NOW + timedelta(hours=1)).timestamp()),
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


def test_round_trip_returns_typed_claims(codec):
    subject = str(uuid.uuid4())
    token = codec.issue(subject, Role.admin, FIXED_NOW)

    claims = codec.verify(token, FIXED_NOW + timedelta(seconds=1))

    assert claims.subject == subject
    assert claims.role is Role.admin
    assert claims.expires_at == FIXED_NOW + timedelta(hours=30)


def test_token_is_compact_three_part(codec):
    token = codec.issue(str(uuid.uuid4()), "user", FIXED_NOW)
    assert token.count(".") == 2


def test_expired_after_ttl(codec):
    token = codec.issue(str(uuid.uuid4()), Role.user, FIXED_NOW)
    with pytest.raises(TokenExpiredError):
        codec.verify(token, FIXED_NOW + timedelta(hours=31))


def test_expiry_boundary_is_exclusive(codec):
    token = codec.issue(str(uuid.uuid4()), Role.user, FIXED_NOW)
    with pytest.raises(TokenExpiredError):
        codec.verify(token, FIXED_NOW + timedelta(hours=30))


def test_custom_ttl():
    short = TokenCodec(SIGNING_SECRET, issuer="users.test", ttl=timedelta(minutes=5))
    token = short.issue(str(uuid.uuid4()), Role.user, FIXED_NOW)
    with pytest.raises(TokenExpiredError):
        short.verify(token, FIXED_NOW + timedelta(minutes=6))


def test_rejects_unknown_role_at_issue(codec):
    with pytest.raises(RoleInvalidError):
        codec.issue(str(uuid.uuid4()), "superuser", FIXED_NOW)


def test_rejects_bad_signature(codec):
    token = _forge(_claims(str(uuid.uuid4())), secret="another-secret-with-enough-entropy!!")
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_other_algorithms(codec):
    token = _forge(_claims(str(uuid.uuid4())), algorithm="HS512")
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_unsigned_token(codec):
    token = jwt.encode(_claims(str(uuid.uuid4())), None, algorithm="none")
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_garbage(codec):
    with pytest.raises(TokenInvalidError):
        codec.verify("not.a.token", FIXED_NOW)


def test_rejects_missing_expiry(codec):
    token = _forge(_claims(str(uuid.uuid4()), exp=None))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_malformed_expiry(codec):
    token = _forge(_claims(str(uuid.uuid4()), exp="tomorrow"))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


@pytest.mark.parametrize("subject", [None, "not-a-uuid"])
def test_rejects_missing_or_malformed_subject(codec, subject):
    token = _forge(_claims(subject))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_unknown_role_claim(codec):
    token = _forge(_claims(str(uuid.uuid4()), role="root"))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_rejects_foreign_issuer(codec):
    token = _forge(_claims(str(uuid.uuid4()), iss="someone-else"))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        TokenCodec("", issuer="users.test")


def test_rejects_subject_outside_canonical_layout(codec):
    token = _forge(_claims(uuid.uuid4().hex))
    with pytest.raises(TokenInvalidError):
        codec.verify(token, FIXED_NOW)
