"""
# Staff User Routes

Administrator management of staff user accounts (`admin`, `moderateur`, `club_manager`).

## API Endpoints

- `GET /api/users` - Paginated listing with `role`, `statut`, `search`
- `GET /api/users/stats` - Counts by status and role
- `GET /api/users/{id}` - One user with its assigned club
- `POST /api/users` - Create a user with a generated, emailed password
- `PUT /api/users/{id}` - Partial update
- `DELETE /api/users/{id}` - Delete a user
- `POST /api/users/{id}/reset-password` - Generate and email a new password

Emails are unique across administrators, users and clubs. An assigned club must exist.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/users` prefix, every route requiring `admin`
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from club_admin_api.config import settings
from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import (
    PrincipalContext,
    UserCreateRequest,
    UserRole,
    UserStatus,
    UserUpdateRequest,
)
from club_admin_api.routes.auth.dependencies import authorize
from club_admin_api.services.user_service import user_service

logger = get_logger(prefix="[User Routes]")

router = APIRouter(prefix="/api/users", tags=["users"])

require_admin = authorize("admin")


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    statut: Optional[UserStatus] = None,
    search: Optional[str] = None,
    admin: PrincipalContext = Depends(require_admin),
):
    try:
        data = await user_service.list_users(
            page, limit, role.value if role else None, statut.value if statut else None, search
        )
        return {"success": True, "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list users: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des utilisateurs")


@router.get("/stats")
async def user_stats(admin: PrincipalContext = Depends(require_admin)):
    try:
        return {"success": True, "data": await user_service.stats()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute user stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques")


@router.get("/{id}")
async def get_user(id: str, admin: PrincipalContext = Depends(require_admin)):
    try:
        return {"success": True, "data": await user_service.get_user(id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load user %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération de l'utilisateur")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, admin: PrincipalContext = Depends(require_admin)):
    """
    Create a staff user and email the generated password.

    Raises:
        Conflict(400): The email is already used by any principal.
        ValidationFailed(400): The assigned club does not exist.
    """
    try:
        user, password = await user_service.create_user(payload, admin)
        body: Dict[str, Any] = {"success": True, "message": "Utilisateur créé avec succès", "data": user}
        if settings.DEBUG:
            body["motDePasse"] = password
        return body
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to create user %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la création de l'utilisateur")


@router.put("/{id}")
async def update_user(id: str, payload: UserUpdateRequest, admin: PrincipalContext = Depends(require_admin)):
    try:
        data = await user_service.update_user(id, payload, admin)
        return {"success": True, "message": "Utilisateur mis à jour avec succès", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update user %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour de l'utilisateur")


@router.delete("/{id}")
async def delete_user(id: str, admin: PrincipalContext = Depends(require_admin)):
    try:
        await user_service.delete_user(id, admin)
        return {"success": True, "message": "Utilisateur supprimé avec succès"}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to delete user %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la suppression de l'utilisateur")


@router.post("/{id}/reset-password")
async def reset_user_password(id: str, admin: PrincipalContext = Depends(require_admin)):
    try:
        password = await user_service.reset_password(id, admin)
        body: Dict[str, Any] = {"success": True, "message": "Mot de passe réinitialisé avec succès"}
        if settings.DEBUG:
            body["nouveauMotDePasse"] = password
        return body
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to reset password of user %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la réinitialisation du mot de passe")
