"""
# Club Routes

This module provides the **REST API endpoints** for student clubs: the public directory, the
administrator's club management, and a club's own profile space.

## Access Overview

- **Public**: the directory of active, validated clubs and their public pages.
- **Club**: its own profile (`/my/*`). The ownership gate rejects any other club id.
- **Staff user**: may edit the profile of the club assigned to them when holding `edit_club`.
- **Admin**: everything, including cascading deletion.

## API Endpoints

### Public
- `GET /api/clubs/public` - Directory with `categorie` and `search` filters
- `GET /api/clubs/{id}/public` - Public page of one club

### Club space
- `GET /api/clubs/my/profile` - Own profile with event counts and recent events
- `GET /api/clubs/my/stats` - Own event statistics
- `PUT /api/clubs/my/profile` - Update own profile
- `POST /api/clubs/my/change-password` - Change own password

### Administration
- `GET /api/clubs` - Paginated listing with `statut`, `categorie`, `search`
- `POST /api/clubs` - Create a pending club account
- `GET /api/clubs/stats` - Global counters
- `GET /api/clubs/{id}` - Full club document (admin, or the club itself)
- `PUT /api/clubs/{id}/profile` - Update a club profile (admin, or staff user on their assigned club)
- `DELETE /api/clubs/{id}` - Delete a club, its events and user assignments

Static paths are declared before `/{id}` so they are never captured as an id.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/clubs` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from club_admin_api.config import settings
from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import ClubCategory, ClubCreateRequest, ClubProfileUpdate, ClubStatus
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.auth.dependencies import authorize, check_permission, ensure_own_resource
from club_admin_api.routes.auth.models import ChangePasswordRequest
from club_admin_api.services.club_service import club_service
from club_admin_api.services.password_service import password_service
from club_admin_api.utils.logging_utils import get_client_ip

logger = get_logger(prefix="[Club Routes]")

router = APIRouter(prefix="/api/clubs", tags=["clubs"])

require_club = authorize("club")
club_readers = authorize("admin", "club")
club_editors = authorize("admin", "user")


# Public directory


@router.get("/public")
async def list_public_clubs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    categorie: Optional[str] = Query(None, description="Category, `Tous` for every category"),
    search: Optional[str] = Query(None, description="Search in name and description"),
):
    try:
        return {"success": True, "data": await club_service.list_public_clubs(page, limit, categorie, search)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list public clubs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des clubs")


# Administration listings


@router.get("")
async def list_clubs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    statut: Optional[ClubStatus] = None,
    categorie: Optional[ClubCategory] = None,
    search: Optional[str] = None,
    admin: PrincipalContext = Depends(authorize("admin")),
):
    """
    Paginated club listing for administrators, newest first.

    Returns:
        dict: `data` with `clubs` and a `pagination` block.
    """
    try:
        data = await club_service.list_clubs(
            page, limit, statut.value if statut else None, categorie.value if categorie else None, search
        )
        return {"success": True, "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list clubs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des clubs")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_club(payload: ClubCreateRequest, admin: PrincipalContext = Depends(authorize("admin"))):
    """Create a pending club account. Same behavior as `POST /api/admin/clubs`."""
    try:
        club, password = await club_service.create_club(payload, admin)
        body: Dict[str, Any] = {"success": True, "message": "Club créé avec succès", "data": club}
        if settings.DEBUG:
            body["motDePasse"] = password
        return body
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to create club %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la création du club")


@router.get("/stats")
async def club_stats(admin: PrincipalContext = Depends(authorize("admin"))):
    try:
        return {"success": True, "data": await club_service.stats()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute club stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques")


# Club space


@router.get("/my/profile")
async def my_profile(club: PrincipalContext = Depends(require_club)):
    try:
        return {"success": True, "data": await club_service.get_my_profile(club.id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load profile of club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération du profil")


@router.get("/my/stats")
async def my_stats(club: PrincipalContext = Depends(require_club)):
    try:
        return {"success": True, "data": await club_service.get_my_stats(club.id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute stats of club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques")


@router.put("/my/profile")
async def update_my_profile(
    payload: ClubProfileUpdate,
    club: PrincipalContext = Depends(require_club),
    _own: PrincipalContext = Depends(ensure_own_resource(gate=require_club)),
):
    """
    Update the signed-in club's profile.

    Only fields present in the body are applied. `profileComplet` is recomputed and the
    first-login phase ends.
    """
    try:
        data = await club_service.update_profile(club.id, payload.changes(), club)
        return {"success": True, "message": "Profil mis à jour avec succès", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update profile of club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour du profil")


@router.post("/my/change-password")
async def change_my_password(
    payload: ChangePasswordRequest, request: Request, club: PrincipalContext = Depends(require_club)
):
    try:
        await password_service.change_password(club, payload.currentPassword, payload.newPassword, get_client_ip(request))
        return {"success": True, "message": "Mot de passe modifié avec succès"}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to change password of club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors du changement de mot de passe")


# Single club


@router.get("/{id}/public")
async def get_public_club(id: str):
    try:
        return {"success": True, "data": await club_service.get_public_club(id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load public club %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération du club")


@router.get("/{id}")
async def get_club(
    id: str,
    principal: PrincipalContext = Depends(club_readers),
    _own: PrincipalContext = Depends(ensure_own_resource(gate=club_readers)),
):
    try:
        return {"success": True, "data": await club_service.get_club(id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load club %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération du club")


@router.put("/{id}/profile")
async def update_club_profile(
    id: str,
    payload: ClubProfileUpdate,
    principal: PrincipalContext = Depends(club_editors),
    _perm: PrincipalContext = Depends(check_permission("edit_club", gate=club_editors)),
    _own: PrincipalContext = Depends(ensure_own_resource(gate=club_editors)),
):
    """
    Update a club profile on behalf of the club.

    **Access Control:**
    Administrators may edit any club. Staff users need the `edit_club` permission and may only
    edit the club assigned to them; anything else is refused with 403 before any write.
    """
    try:
        data = await club_service.update_profile(id, payload.changes(), principal)
        return {"success": True, "message": "Profil du club mis à jour avec succès", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update profile of club %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour du profil")


@router.delete("/{id}")
async def delete_club(id: str, admin: PrincipalContext = Depends(authorize("admin"))):
    """Delete a club together with its events and every staff assignment to it."""
    try:
        await club_service.delete_club(id, admin)
        return {"success": True, "message": "Club supprimé avec succès"}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to delete club %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la suppression du club")
