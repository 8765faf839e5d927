"""
# Event Routes

Endpoints for club events: the public agenda, club-side proposal and editing, and administrator
validation.

## Event Lifecycle

```
en_attente --validate--> valide
     |  ^                  |
  reject |  edit            cancel
     v  |                  v
   rejete               annule
```

- Clubs propose events only while the club is `actif`.
- Pending and rejected events stay editable; editing a rejected event sends it back to review.
- A validated event can only be deleted by an administrator.
- Validation bumps the club's `stats.nombreEventsValides` once per transition.

## API Endpoints

- `GET /api/events/public` - Validated events (`type=upcoming|past|all`)
- `GET /api/events/club/{clubId}` - Validated events of one club
- `GET /api/events` - Listing (clubs only see their own events)
- `GET /api/events/stats` - Global counters (admin)
- `GET /api/events/my/events` - Own events with per-status counts (club)
- `GET /api/events/{id}` - One event
- `POST /api/events` - Propose an event
- `PUT /api/events/{id}` - Edit a pending or rejected event
- `DELETE /api/events/{id}` - Delete an event
- `PUT /api/events/{id}/validate` - Administrator decision

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/events` prefix
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import (
    EventCreateRequest,
    EventStatus,
    EventStatusUpdate,
    EventType,
    EventUpdateRequest,
)
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.auth.dependencies import authorize
from club_admin_api.services.event_service import event_service

logger = get_logger(prefix="[Event Routes]")

router = APIRouter(prefix="/api/events", tags=["events"])

require_staff = authorize("admin", "club")

TIME_WINDOWS = "^(upcoming|past|all)$"


# Public agenda


@router.get("/public")
async def list_public_events(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    type: str = Query("upcoming", pattern=TIME_WINDOWS),
    search: Optional[str] = None,
):
    try:
        return {"success": True, "data": await event_service.list_public_events(page, limit, type, search)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list public events: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des événements")


@router.get("/club/{clubId}")
async def list_club_events(
    clubId: str,
    limit: int = Query(5, ge=1, le=50),
    type: str = Query("upcoming", pattern=TIME_WINDOWS),
    statut: EventStatus = EventStatus.VALIDE,
):
    try:
        events = await event_service.list_club_events(clubId, limit, type, statut.value)
        return {"success": True, "data": events}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list events of club %s: %s", clubId, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des événements du club")


# Listings


@router.get("")
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    statut: Optional[EventStatus] = None,
    typeEvent: Optional[EventType] = None,
    clubId: Optional[str] = None,
    search: Optional[str] = None,
    dateDebut: Optional[datetime] = None,
    dateFin: Optional[datetime] = None,
    principal: PrincipalContext = Depends(require_staff),
):
    """
    Paginated events, newest first, each with its club summary.

    A club principal is always restricted to its own events whatever `clubId` says.
    """
    try:
        data = await event_service.list_events(
            principal,
            page,
            limit,
            statut.value if statut else None,
            typeEvent.value if typeEvent else None,
            clubId,
            search,
            dateDebut,
            dateFin,
        )
        return {"success": True, "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list events: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des événements")


@router.get("/stats")
async def event_stats(admin: PrincipalContext = Depends(authorize("admin"))):
    try:
        return {"success": True, "data": await event_service.stats()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute event stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques")


@router.get("/my/events")
async def my_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    statut: Optional[EventStatus] = None,
    typeEvent: Optional[EventType] = None,
    search: Optional[str] = None,
    club: PrincipalContext = Depends(authorize("club")),
):
    try:
        data = await event_service.list_my_events(
            club.id, page, limit, statut.value if statut else None, typeEvent.value if typeEvent else None, search
        )
        return {"success": True, "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list events of club %s: %s", club.id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des événements")


# Single event


@router.get("/{id}")
async def get_event(id: str, principal: PrincipalContext = Depends(require_staff)):
    try:
        return {"success": True, "data": await event_service.get_event(id, principal)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load event %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération de l'événement")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(payload: EventCreateRequest, principal: PrincipalContext = Depends(require_staff)):
    """
    Propose an event. Clubs create for themselves, administrators must name `clubId`.

    Raises:
        Forbidden(403): The club is not `actif`.
        ResourceNotFound(404): The club does not exist.
    """
    try:
        data = await event_service.create_event(payload, principal)
        return {"success": True, "message": "Événement créé avec succès et en attente de validation", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to create event: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la création de l'événement")


@router.put("/{id}")
async def update_event(id: str, payload: EventUpdateRequest, principal: PrincipalContext = Depends(require_staff)):
    try:
        data = await event_service.update_event(id, payload, principal)
        return {"success": True, "message": "Événement mis à jour avec succès", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update event %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour de l'événement")


@router.delete("/{id}")
async def delete_event(id: str, principal: PrincipalContext = Depends(require_staff)):
    try:
        await event_service.delete_event(id, principal)
        return {"success": True, "message": "Événement supprimé avec succès"}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to delete event %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la suppression de l'événement")


@router.put("/{id}/validate")
async def validate_event(id: str, payload: EventStatusUpdate, admin: PrincipalContext = Depends(authorize("admin"))):
    """Administrator decision on an event, identical to `PUT /api/admin/events/{id}/status`."""
    try:
        data = await event_service.update_status(id, payload, admin)
        return {"success": True, "message": "Statut de l'événement mis à jour", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to review event %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la validation de l'événement")
