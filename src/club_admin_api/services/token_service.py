"""
Session tokens: HS256 JWTs carrying `{id, role, userType, email, iat, exp}`.

Tokens are stateless. There is no revocation list, so logout only discards the token client side;
the access gate re-checks that the principal still exists and is active on every request.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from club_admin_api.config import settings
from club_admin_api.errors import TokenExpired, TokenInvalid
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import PrincipalContext

logger = get_logger(prefix="[TOKEN]")

REQUIRED_CLAIMS = ("id", "userType")


class TokenService:
    def __init__(self, expire_minutes: Optional[int] = None):
        self.expire_minutes = expire_minutes

    @property
    def _secret(self) -> str:
        return settings.SECRET_KEY.get_secret_value()

    def issue(self, principal: PrincipalContext, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a session token for `principal`."""
        now = datetime.now(timezone.utc)
        if expires_delta is None:
            expires_delta = timedelta(minutes=self.expire_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        claims = principal.token_claims()
        claims.update({"iat": now, "exp": now + expires_delta})
        return jwt.encode(claims, self._secret, algorithm=settings.ALGORITHM)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a session token.

        Raises:
            TokenExpired: The signature is valid but `exp` has passed.
            TokenInvalid: Bad signature, malformed token or missing identity claims.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[settings.ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as e:
            logger.debug("Token rejected: %s", e)
            raise TokenInvalid()

        if any(not claims.get(name) for name in REQUIRED_CLAIMS):
            raise TokenInvalid()
        return claims


token_service = TokenService()
