"""
# Admin Routes

Endpoints reserved to administrators: the dashboard, the audit log browser and its maintenance
operations, club creation and review, and event review.

## API Endpoints

### Dashboard
- `GET /api/admin/dashboard/stats` - Overview counters, chart series, latest clubs and events

### Audit Log
- `GET /api/admin/logs/recent` - Latest entries with actor and target display data
- `GET /api/admin/logs` - Filtered, paginated listing (`action`, `userId`, `dateFrom`, `dateTo`)
- `GET /api/admin/logs/stats` - Counts by action and by actor type
- `POST /api/admin/logs/test` - Seed sample entries tagged as test data
- `DELETE /api/admin/logs/test` - Remove the tagged sample entries
- `DELETE /api/admin/logs/orphans` - Remove entries whose actor no longer exists

### Clubs and Events
- `POST /api/admin/clubs` - Create a pending club account and email its credentials
- `PUT /api/admin/clubs/{id}/status` - Activate, deactivate, suspend or reject a club
- `PUT /api/admin/events/{id}/status` - Validate, reject or cancel an event

Both maintenance deletions are destructive and cannot be undone.

## Module Attributes

Attributes:
    router (APIRouter): FastAPI router with `/api/admin` prefix, every route requiring `admin`
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from club_admin_api.config import settings
from club_admin_api.errors import ClubAdminError
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import ClubCreateRequest, ClubStatusUpdate, EventStatusUpdate
from club_admin_api.models.log_models import LogFilter
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.routes.admin.models import OrphanCleanupResult, PurgeResult, log_filter_params
from club_admin_api.routes.auth.dependencies import authorize
from club_admin_api.services.admin_service import admin_service
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.club_service import club_service
from club_admin_api.services.event_service import event_service

logger = get_logger(prefix="[Admin Routes]")

router = APIRouter(prefix="/api/admin", tags=["admin"])

require_admin = authorize("admin")


# Dashboard


@router.get("/dashboard/stats")
async def dashboard_stats(admin: PrincipalContext = Depends(require_admin)):
    """
    Aggregate the numbers shown on the administrator dashboard.

    Returns:
        dict: `data` with `overview`, `charts` and `recent` blocks.
    """
    try:
        return {"success": True, "data": await admin_service.dashboard_stats()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute dashboard stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques")


# Audit log


@router.get("/logs/recent")
async def recent_logs(
    limit: int = Query(50, ge=1, le=200), admin: PrincipalContext = Depends(require_admin)
):
    try:
        return {"success": True, "data": await audit_log_service.recent_logs(limit)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to load recent logs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des logs")


@router.get("/logs")
async def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    filters: LogFilter = Depends(log_filter_params),
    admin: PrincipalContext = Depends(require_admin),
):
    """
    Browse the audit log newest first.

    Args:
        page (int): 1-based page number.
        limit (int): Entries per page (default 20).
        filters (LogFilter): Optional `action`, `userId`, `dateFrom`, `dateTo`.

    Returns:
        dict: `data` with `logs`, `totalCount`, `totalPages`, `currentPage`, `hasNext`, `hasPrevious`.
    """
    try:
        return {"success": True, "data": await audit_log_service.list_logs(filters, page, limit)}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to list logs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des logs")


@router.get("/logs/stats")
async def logs_stats(admin: PrincipalContext = Depends(require_admin)):
    try:
        return {"success": True, "data": await audit_log_service.stats()}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to compute log stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la récupération des statistiques des logs")


@router.post("/logs/test", status_code=status.HTTP_201_CREATED)
async def create_test_logs(admin: PrincipalContext = Depends(require_admin)):
    try:
        created = await audit_log_service.create_test_logs(admin.id)
        return {"success": True, "message": f"{created} logs de test créés avec succès", "data": {"count": created}}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to create test logs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la création des logs de test")


@router.delete("/logs/test")
async def delete_test_logs(admin: PrincipalContext = Depends(require_admin)):
    try:
        result: PurgeResult = {"deletedCount": await audit_log_service.delete_test_logs()}
        logger.info("Admin %s purged %d test logs", admin.id, result["deletedCount"])
        return {"success": True, "message": f"{result['deletedCount']} logs de test supprimés", "data": result}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to delete test logs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la suppression des logs de test")


@router.delete("/logs/orphans")
async def clean_orphan_logs(admin: PrincipalContext = Depends(require_admin)):
    """
    Delete entries whose actor no longer exists in its collection.

    Running it twice in a row deletes nothing the second time.

    Returns:
        dict: `data` with `totalLogsChecked`, `orphanLogsFound`, `orphanLogsDeleted`.
    """
    try:
        result: OrphanCleanupResult = await audit_log_service.clean_orphan_logs()
        logger.info("Admin %s removed %d orphan logs", admin.id, result["orphanLogsDeleted"])
        return {
            "success": True,
            "message": f"{result['orphanLogsDeleted']} logs orphelins supprimés",
            "data": result,
        }
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to clean orphan logs: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors du nettoyage des logs orphelins")


# Clubs and events


@router.post("/clubs", status_code=status.HTTP_201_CREATED)
async def create_club(payload: ClubCreateRequest, admin: PrincipalContext = Depends(require_admin)):
    """
    Create a club account in `en_attente` with a generated password emailed to the club.

    The generated password is echoed in the response only when `DEBUG` is enabled.

    Raises:
        Conflict(400): The email already belongs to an administrator, user or club.
    """
    try:
        club, password = await club_service.create_club(payload, admin)
        body: Dict[str, Any] = {
            "success": True,
            "message": "Club créé avec succès",
            "data": {"id": club.get("_id"), "nom": club.get("nom"), "email": club.get("email"), "statut": club.get("statut")},
        }
        if settings.DEBUG:
            body["motDePasse"] = password
        return body
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to create club %s: %s", payload.email, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la création du club")


@router.put("/clubs/{id}/status")
async def update_club_status(id: str, payload: ClubStatusUpdate, admin: PrincipalContext = Depends(require_admin)):
    try:
        data = await club_service.update_status(id, payload, admin)
        return {"success": True, "message": "Statut du club mis à jour", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update status of club %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour du statut")


@router.put("/events/{id}/status")
async def update_event_status(id: str, payload: EventStatusUpdate, admin: PrincipalContext = Depends(require_admin)):
    """
    Validate, reject or cancel an event and notify its club.

    Validation bumps the club's validated-event counter once; a failed notification email does
    not undo the decision.
    """
    try:
        data = await event_service.update_status(id, payload, admin)
        return {"success": True, "message": "Statut de l'événement mis à jour", "data": data}
    except (HTTPException, ClubAdminError):
        raise
    except Exception as e:
        logger.error("Failed to update status of event %s: %s", id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Erreur lors de la mise à jour du statut")
