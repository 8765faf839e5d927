"""
# Authentication Routes

Session endpoints shared by every principal kind (administrators, clubs and staff users).

## Endpoints

- `POST /api/auth/login` - Resolve credentials and issue a session token
- `POST /api/auth/logout` - Record the logout; the token itself stays valid until it expires
- `GET /api/auth/verify` - Return the principal behind the presented token
- `POST /api/auth/change-password` - Change the signed-in principal's password

## Login Outcomes

| Situation | Status | Message |
|-----------|--------|---------|
| Unknown email | 404 | `Utilisateur non trouvé` |
| Club or user not `actif` | 403 | `Compte désactivé ou suspendu` |
| Wrong password | 401 | `Mot de passe incorrect` |

No token is issued in any of these cases.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/auth` prefix
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.auth.dependencies import authenticated, optional_authorize
from club_admin_api.routes.auth.models import ChangePasswordRequest, LoginRequest
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.password_service import password_service
from club_admin_api.services.token_service import token_service
from club_admin_api.utils.logging_utils import get_client_ip

logger = get_logger(prefix="[Auth Routes]")

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(payload: LoginRequest, request: Request):
    """
    Authenticate an administrator, club or staff user.

    Looks up administrators, then users, then clubs; the first collection holding the email wins.

    Returns:
        dict: `{success, message, data: {token, user}}`.

    Raises:
        PrincipalNotFound(404), AccountDisabled(403), InvalidCredentials(401).
    """
    try:
        principal = await identity_resolver.resolve(payload.email, payload.password)
        token = token_service.issue(principal)

        await audit_log_service.log_login(
            principal.id, principal.actor_type, get_client_ip(request), request.headers.get("user-agent")
        )
        logger.info("Login succeeded for %s %s", principal.user_type.value, principal.id)

        return {"success": True, "message": "Connexion réussie", "data": {"token": token, "user": principal.to_public()}}

    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Login failed for %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la connexion")


@router.post("/logout")
async def logout(request: Request, principal: Optional[PrincipalContext] = Depends(optional_authorize)):
    """Record the logout when a valid token is presented. Always succeeds."""
    if principal is not None:
        await audit_log_service.log_logout(principal.id, principal.actor_type, get_client_ip(request))
    return {"success": True, "message": "Déconnexion réussie"}


@router.get("/verify")
async def verify(principal: PrincipalContext = Depends(authenticated)):
    return {"success": True, "data": {"user": principal.to_public()}}


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest, request: Request, principal: PrincipalContext = Depends(authenticated)
):
    """
    Change the signed-in principal's password.

    Raises:
        ValidationFailed(400): Missing fields, new password too short or current password wrong.
    """
    try:
        await password_service.change_password(
            principal, payload.currentPassword, payload.newPassword, get_client_ip(request)
        )
        return {"success": True, "message": "Mot de passe modifié avec succès"}

    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Password change failed for %s: %s", principal.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors du changement de mot de passe")
