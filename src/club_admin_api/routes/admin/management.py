"""
# Admin Management Routes

Administrator account bootstrap and maintenance.

## API Endpoints

- `GET /api/admin-management/check-setup` - Public; reports whether any administrator exists
- `POST /api/admin-management/initial-setup` - Public, one shot; creates the first administrator
- `GET /api/admin-management/list` - Administrators only; every administrator account
- `POST /api/admin-management/reset-password` - Administrators only; replaces an administrator's password

`initial-setup` answers 400 as soon as one administrator exists, including administrators seeded
at startup from `DEFAULT_ADMIN_PASSWORD`.
"""

from fastapi import APIRouter, Depends, HTTPException

from club_admin_api.config import settings
from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.admin.models import AdminPasswordResetRequest, InitialSetupRequest
from club_admin_api.routes.auth.dependencies import authorize
from club_admin_api.services.admin_service import admin_service

logger = get_logger(prefix="[Admin Management]")

router = APIRouter(prefix="/api/admin-management", tags=["admin-management"])

require_admin = authorize("admin")


@router.get("/check-setup")
async def check_setup():
    try:
        return {"success": True, "data": await admin_service.setup_status()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to check setup: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la vérification du setup")


@router.post("/initial-setup")
async def initial_setup(payload: InitialSetupRequest):
    """
    Create the first administrator of a fresh deployment.

    Returns:
        dict: `data` with the new administrator, without its password.
    """
    try:
        admin = await admin_service.initial_setup(payload.nom, payload.prenom, payload.email, payload.password)
        return {"success": True, "message": "Configuration initiale terminée avec succès", "data": admin}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Initial setup failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la configuration initiale")


@router.get("/list")
async def list_admins(admin: PrincipalContext = Depends(require_admin)):
    try:
        admins = await admin_service.list_admins()
        return {
            "success": True,
            "message": "Liste des administrateurs récupérée",
            "data": admins,
            "count": len(admins),
        }
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list administrators: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des admins")


@router.post("/reset-password")
async def reset_admin_password(payload: AdminPasswordResetRequest, admin: PrincipalContext = Depends(require_admin)):
    """
    Replace an administrator's password.

    A password is generated when `newPassword` is omitted. It is echoed back only in debug mode.
    """
    try:
        target, password = await admin_service.reset_admin_password(payload.email, payload.newPassword, admin)
        data = {"id": target["_id"], "email": target["email"]}
        if settings.DEBUG and not payload.newPassword:
            data["motDePasse"] = password
        return {"success": True, "message": f"Mot de passe réinitialisé pour {payload.email}", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to reset password of administrator %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la réinitialisation du mot de passe")
