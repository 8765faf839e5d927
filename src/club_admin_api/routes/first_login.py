"""
# First Login Routes

Guided profile completion for a club signing in for the first time.

A club account is created by an administrator with only a name, an email and a category. On its
first login the frontend walks the club through the guide, saving drafts along the way, and then
submits the profile. Completion requires the president's name and email, a contact phone, a
presentation and at least one objective; missing ones are listed under `missingFields`.

## API Endpoints

- `GET /api/first-login/check` - Whether this is the first login and whether the profile is complete
- `GET /api/first-login/guide` - Steps, fields and categories shown by the wizard
- `POST /api/first-login/complete` - Submit the profile and leave the first-login phase
- `POST /api/first-login/save-draft` - Store partial data without validation

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/first-login` prefix, every route requiring `club`
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.auth.dependencies import authorize
from club_admin_api.services.club_service import club_service

logger = get_logger(prefix="[First Login Routes]")

router = APIRouter(prefix="/api/first-login", tags=["first-login"])

require_club = authorize("club")


@router.get("/check")
async def check_first_login(club: PrincipalContext = Depends(require_club)):
    try:
        return {"success": True, "data": await club_service.check_first_login(club.id)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("First login check failed for club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la vérification de la première connexion")


@router.get("/guide")
async def first_login_guide(club: PrincipalContext = Depends(require_club)):
    return {"success": True, "data": club_service.first_login_guide()}


@router.post("/complete")
async def complete_first_login(
    payload: Dict[str, Any] = Body(...), club: PrincipalContext = Depends(require_club)
):
    """
    Submit the first-login profile.

    Raises:
        ValidationFailed(400): Not a first login, or required fields missing (`missingFields`).
    """
    try:
        data = await club_service.complete_first_login(club.id, payload, club)
        return {"success": True, "message": "Profil complété avec succès", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("First login completion failed for club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la complétion du profil")


@router.post("/save-draft")
async def save_draft(payload: Dict[str, Any] = Body(...), club: PrincipalContext = Depends(require_club)):
    try:
        data = await club_service.save_draft(club.id, payload)
        return {"success": True, "message": "Brouillon sauvegardé", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Draft save failed for club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la sauvegarde du brouillon")
