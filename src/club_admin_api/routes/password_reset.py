"""
# Password Reset Routes

Self-service password recovery by emailed link, available to every principal kind.

## Flow

1.  `POST /request-reset` stores the sha256 of a fresh random token with a one hour expiry and
    emails `FRONTEND_URL/reset-password?token=...&type=...`. The answer is the same whether or
    not the email exists.
2.  `GET /verify-token` lets the frontend check the link before showing the form.
3.  `POST /reset` sets the new password and consumes the token.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/password-reset` prefix
"""

from fastapi import APIRouter, HTTPException, Query, Request

from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.routes.auth.models import ResetPasswordRequest, ResetRequest
from club_admin_api.services.password_service import GENERIC_RESET_MESSAGE, password_service
from club_admin_api.utils.logging_utils import get_client_ip

logger = get_logger(prefix="[Password Reset Routes]")

router = APIRouter(prefix="/api/password-reset", tags=["password-reset"])


@router.post("/request-reset")
async def request_reset(payload: ResetRequest, request: Request):
    """
    Email a reset link to the principal of kind `userType` owning `email`.

    Returns:
        dict: A generic success message, identical for known and unknown emails.
    """
    try:
        await password_service.request_reset(
            payload.email, payload.userType, get_client_ip(request), request.headers.get("user-agent")
        )
        return {"success": True, "message": GENERIC_RESET_MESSAGE}

    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Reset request failed for %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la demande de réinitialisation")


@router.post("/reset")
async def reset_password(payload: ResetPasswordRequest, request: Request):
    """
    Set a new password using a valid reset token.

    Raises:
        ValidationFailed(400): Passwords differ or are too short, token invalid or expired.
    """
    try:
        await password_service.reset_password(
            payload.token,
            payload.userType,
            payload.newPassword,
            payload.confirmPassword,
            get_client_ip(request),
            request.headers.get("user-agent"),
        )
        return {"success": True, "message": "Mot de passe réinitialisé avec succès"}

    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Password reset failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la réinitialisation du mot de passe")


@router.get("/verify-token")
async def verify_token(token: str = Query(..., min_length=1), type: str = Query(...)):
    try:
        data = await password_service.verify_token(token, type)
        return {"success": True, "message": "Token valide", "data": data}

    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Reset token verification failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la vérification du token")
