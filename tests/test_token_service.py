import base64
from datetime import datetime, timedelta, timezone
import json

from jose import jwt
import pytest

from club_admin_api.config import settings
from club_admin_api.errors import TokenExpired, TokenInvalid
from club_admin_api.models.principal_models import PrincipalContext, UserType
from club_admin_api.services.token_service import TokenService


@pytest.fixture
def principal():
    return PrincipalContext(
        id="65a1b2c3d4e5f60718293a4b", email="club@esprit.tn", role="club", user_type=UserType.CLUB, source="clubs"
    )


def test_issue_and_verify(principal):
    service = TokenService()

    claims = service.verify(service.issue(principal))

    assert claims["id"] == principal.id
    assert claims["userType"] == "club"
    assert claims["role"] == "club"
    assert claims["email"] == "club@esprit.tn"
    assert claims["exp"] > claims["iat"]


def test_default_lifetime_is_one_day(principal):
    claims = TokenService().verify(TokenService().issue(principal))

    assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_expired_token(principal):
    service = TokenService()
    token = service.issue(principal, expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenExpired) as exc:
        service.verify(token)
    assert exc.value.message == "Token expiré"


def test_tampered_token(principal):
    service = TokenService()
    header, _, signature = service.issue(principal).split(".")
    forged = base64.urlsafe_b64encode(
        json.dumps({**principal.token_claims(), "userType": "admin", "exp": 4102444800}).encode()
    ).rstrip(b"=").decode()

    with pytest.raises(TokenInvalid):
        service.verify(".".join([header, forged, signature]))


def test_foreign_signature_is_invalid(principal):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {**principal.token_claims(), "iat": now, "exp": now + timedelta(hours=1)}, "another-secret", algorithm="HS256"
    )

    with pytest.raises(TokenInvalid):
        TokenService().verify(token)


def test_missing_identity_claims_are_invalid():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"role": "admin", "iat": now, "exp": now + timedelta(hours=1)},
        settings.SECRET_KEY.get_secret_value(),
        algorithm=settings.ALGORITHM,
    )

    with pytest.raises(TokenInvalid):
        TokenService().verify(token)
