"""
# Event Service

Business logic for club events: proposal, edition, deletion, administrator review, listings and
statistics.

## Review Transition

`update_status()` applies an administrator decision (`valide`, `rejete`, `annule`). Validation
touches two collections: the event becomes `valide` and the owning club's
`stats.nombreEventsValides` counter grows by one. Both writes run through
`DatabaseManager.run_transaction()`. The event write is conditional on the event not already being
`valide`, and the counter only moves when that write matched, so retrying a validation can never
count the same event twice.

## Counters

- `stats.nombreEvents` grows on creation and shrinks on deletion.
- `stats.nombreEventsValides` grows on validation and shrinks when a validated event is deleted.

## Module Attributes

Attributes:
    REVIEW_NOTIFICATIONS (Dict[str, Tuple[str, str]]): Subject and body template per decision.
    event_service (EventService): Global service instance.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import Forbidden, ResourceNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import (
    EDITABLE_EVENT_STATUSES,
    ClubStatus,
    EventCreateRequest,
    EventStatus,
    EventStatusUpdate,
    EventUpdateRequest,
    new_event_document,
)
from club_admin_api.models.common import build_pagination, serialize_document, serialize_documents
from club_admin_api.models.log_models import LogAction, TargetType
from club_admin_api.models.principal_models import PrincipalContext, UserType
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.club_service import search_filter
from club_admin_api.services.mail_service import mail_service
from club_admin_api.utils.security_utils import to_object_id

logger = get_logger(prefix="[EVENTS]")

REVIEW_NOTIFICATIONS: Dict[str, Tuple[str, str]] = {
    EventStatus.VALIDE.value: (
        "Votre événement a été validé",
        'Félicitations ! Votre événement "{titre}" a été validé et sera publié.',
    ),
    EventStatus.REJETE.value: (
        "Votre événement a été rejeté",
        'Votre événement "{titre}" a été rejeté.\nRaison: {raison}\n\nVous pouvez le modifier et le soumettre à nouveau.',
    ),
    EventStatus.ANNULE.value: (
        "Votre événement a été annulé",
        'Votre événement "{titre}" a été annulé.',
    ),
}

SEARCH_FIELDS = ("titre", "description", "lieu")


def _clubs():
    return db_manager.get_collection(settings.CLUBS_COLLECTION)


def _events():
    return db_manager.get_collection(settings.EVENTS_COLLECTION)


def _time_window(kind: Optional[str]) -> Tuple[Dict[str, Any], int]:
    """`dateDebut` filter and sort direction for `upcoming` / `past` listings."""
    now = datetime.now(timezone.utc)
    if kind == "upcoming":
        return {"dateDebut": {"$gte": now}}, 1
    if kind == "past":
        return {"dateDebut": {"$lt": now}}, -1
    return {}, -1


class EventService:
    async def get_event_document(self, event_id: Any) -> Dict[str, Any]:
        oid = to_object_id(event_id)
        event = await _events().find_one({"_id": oid}) if oid else None
        if not event:
            raise ResourceNotFound("Événement non trouvé")
        return event

    async def _attach_club(self, event: Dict[str, Any], projection: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        data = serialize_document(event)
        club = await _clubs().find_one({"_id": event.get("clubId")}, projection or {"nom": 1, "email": 1})
        data["club"] = serialize_document(club) if club else None
        return data

    def _ensure_owner(self, event: Dict[str, Any], principal: PrincipalContext, message: str) -> None:
        if principal.user_type == UserType.CLUB and str(event.get("clubId")) != principal.id:
            raise Forbidden(message)

    # Listings

    async def list_events(
        self,
        principal: PrincipalContext,
        page: int = 1,
        limit: int = 10,
        statut: Optional[str] = None,
        type_event: Optional[str] = None,
        club_id: Optional[str] = None,
        search: Optional[str] = None,
        date_debut: Optional[datetime] = None,
        date_fin: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Paginated events. Clubs only ever see their own events."""
        query: Dict[str, Any] = search_filter(search, SEARCH_FIELDS)
        if statut:
            query["statut"] = statut
        if type_event:
            query["typeEvent"] = type_event
        if club_id:
            query["clubId"] = to_object_id(club_id) or club_id
        if date_debut or date_fin:
            query["dateDebut"] = {}
            if date_debut:
                query["dateDebut"]["$gte"] = date_debut
            if date_fin:
                query["dateDebut"]["$lte"] = date_fin
        if principal.user_type == UserType.CLUB:
            query["clubId"] = to_object_id(principal.id)

        total = await _events().count_documents(query)
        cursor = _events().find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        events = await cursor.to_list(length=limit)
        return {
            "events": [await self._attach_club(event, {"nom": 1, "email": 1, "categorie": 1}) for event in events],
            "pagination": build_pagination(page, limit, len(events), total),
        }

    async def list_public_events(
        self, page: int = 1, limit: int = 50, kind: str = "upcoming", search: Optional[str] = None
    ) -> Dict[str, Any]:
        """Validated events, upcoming ones soonest first or past ones latest first."""
        window, direction = _time_window(kind)
        query: Dict[str, Any] = search_filter(search, SEARCH_FIELDS)
        query.update(window)
        query["statut"] = EventStatus.VALIDE.value

        total = await _events().count_documents(query)
        cursor = _events().find(query).sort("dateDebut", direction).skip((page - 1) * limit).limit(limit)
        events = await cursor.to_list(length=limit)
        return {
            "events": [await self._attach_club(event, {"nom": 1, "detailsComplets.logo": 1}) for event in events],
            "pagination": build_pagination(page, limit, len(events), total),
        }

    async def list_club_events(
        self, club_id: str, limit: int = 5, kind: str = "upcoming", statut: str = EventStatus.VALIDE.value
    ) -> list:
        club_oid = to_object_id(club_id)
        if club_oid is None:
            raise ValidationFailed("ID de club invalide")
        if not await _clubs().find_one({"_id": club_oid}, {"_id": 1}):
            raise ResourceNotFound("Club non trouvé")

        window, direction = _time_window(kind)
        query = {"clubId": club_oid, "statut": statut, **window}
        events = await _events().find(query).sort("dateDebut", direction).limit(limit).to_list(length=limit)
        return serialize_documents(events)

    async def list_my_events(
        self,
        club_id: str,
        page: int = 1,
        limit: int = 10,
        statut: Optional[str] = None,
        type_event: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        club_oid = to_object_id(club_id)
        query: Dict[str, Any] = search_filter(search, ("titre", "description"))
        query["clubId"] = club_oid
        if statut:
            query["statut"] = statut
        if type_event:
            query["typeEvent"] = type_event

        total = await _events().count_documents(query)
        events = await (
            _events().find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit).to_list(length=limit)
        )
        stats = await (
            _events()
            .aggregate([{"$match": {"clubId": club_oid}}, {"$group": {"_id": "$statut", "count": {"$sum": 1}}}])
            .to_list(length=None)
        )
        return {
            "events": serialize_documents(events),
            "stats": stats,
            "pagination": build_pagination(page, limit, len(events), total),
        }

    async def get_event(self, event_id: Any, principal: PrincipalContext) -> Dict[str, Any]:
        event = await self.get_event_document(event_id)
        self._ensure_owner(event, principal, "Accès refusé")
        return await self._attach_club(event, {"nom": 1, "email": 1, "categorie": 1, "contact": 1})

    async def stats(self) -> Dict[str, Any]:
        by_type = await (
            _events()
            .aggregate([{"$group": {"_id": "$typeEvent", "count": {"$sum": 1}}}, {"$sort": {"count": -1}}])
            .to_list(length=None)
        )
        by_public = await (
            _events()
            .aggregate([{"$match": {"statut": EventStatus.VALIDE.value}}, {"$group": {"_id": "$public", "count": {"$sum": 1}}}])
            .to_list(length=None)
        )
        return {
            "total": await _events().count_documents({}),
            "validated": await _events().count_documents({"statut": EventStatus.VALIDE.value}),
            "pending": await _events().count_documents({"statut": EventStatus.EN_ATTENTE.value}),
            "rejected": await _events().count_documents({"statut": EventStatus.REJETE.value}),
            "byType": by_type,
            "byPublic": by_public,
        }

    # Writes

    async def create_event(self, payload: EventCreateRequest, principal: PrincipalContext) -> Dict[str, Any]:
        """
        Propose an event for the principal's club (or `payload.clubId` for administrators).

        Raises:
            ValidationFailed: An administrator did not name a club.
            ResourceNotFound: The club does not exist.
            Forbidden: The club is not `actif`.
        """
        if principal.user_type == UserType.CLUB:
            club_oid = to_object_id(principal.id)
        else:
            club_oid = to_object_id(payload.clubId)
            if club_oid is None:
                raise ValidationFailed("clubId requis")

        club = await _clubs().find_one({"_id": club_oid})
        if not club:
            raise ResourceNotFound("Club non trouvé")
        if club.get("statut") != ClubStatus.ACTIF.value:
            raise Forbidden("Le club doit être actif pour créer des événements")

        document = new_event_document(payload, club_oid)
        result = await _events().insert_one(document)
        document["_id"] = result.inserted_id
        await _clubs().update_one(
            {"_id": club_oid},
            {"$inc": {"stats.nombreEvents": 1}, "$set": {"stats.derniereActivite": datetime.now(timezone.utc)}},
        )
        logger.info("Event %s created for club %s", result.inserted_id, club_oid)

        await audit_log_service.log_event_creation(principal.id, principal.actor_type, result.inserted_id, payload.titre)
        return await self._attach_club(document)

    async def update_event(
        self, event_id: Any, payload: EventUpdateRequest, principal: PrincipalContext
    ) -> Dict[str, Any]:
        """Edit a pending or rejected event. A rejected event goes back to review."""
        event = await self.get_event_document(event_id)
        self._ensure_owner(event, principal, "Vous ne pouvez modifier que vos propres événements")
        if event.get("statut") not in EDITABLE_EVENT_STATUSES:
            raise Forbidden("Cet événement ne peut plus être modifié")

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        for key in ("typeEvent", "public"):
            if key in changes:
                changes[key] = getattr(payload, key).value

        start = changes.get("dateDebut", event.get("dateDebut"))
        end = changes.get("dateFin", event.get("dateFin"))
        if start and end and start >= end:
            raise ValidationFailed("La date de fin doit être postérieure à la date de début")

        update: Dict[str, Any] = {"$set": {**changes, "updatedAt": datetime.now(timezone.utc)}}
        if event.get("statut") == EventStatus.REJETE.value:
            update["$set"]["statut"] = EventStatus.EN_ATTENTE.value
            update["$unset"] = {"raisonRejet": ""}

        await _events().update_one({"_id": event["_id"]}, update)
        await audit_log_service.append(
            principal.id,
            principal.actor_type,
            LogAction.UPDATE_EVENT,
            f"Modification de l'événement: {changes.get('titre', event.get('titre'))}",
            TargetType.EVENT,
            event["_id"],
            {"updatedFields": sorted(changes)},
        )
        return await self._attach_club(await self.get_event_document(event["_id"]))

    async def delete_event(self, event_id: Any, principal: PrincipalContext) -> None:
        event = await self.get_event_document(event_id)
        self._ensure_owner(event, principal, "Vous ne pouvez supprimer que vos propres événements")
        was_valid = event.get("statut") == EventStatus.VALIDE.value
        if was_valid and not principal.is_admin:
            raise Forbidden("Un événement validé ne peut être supprimé que par un admin")

        async def remove(session):
            result = await _events().delete_one({"_id": event["_id"]}, session=session)
            if result.deleted_count:
                await _clubs().update_one(
                    {"_id": event.get("clubId")},
                    {"$inc": {"stats.nombreEvents": -1, "stats.nombreEventsValides": -1 if was_valid else 0}},
                    session=session,
                )

        await db_manager.run_transaction(remove)
        await audit_log_service.append(
            principal.id,
            principal.actor_type,
            LogAction.DELETE_EVENT,
            f"Suppression de l'événement: {event.get('titre')}",
            TargetType.EVENT,
            event["_id"],
        )

    async def update_status(self, event_id: Any, payload: EventStatusUpdate, admin: PrincipalContext) -> Dict[str, Any]:
        """
        Apply an administrator decision to an event and notify its club.

        Validating increments the club's validated counter exactly once per transition.
        """
        event = await self.get_event_document(event_id)
        statut = payload.statut.value
        now = datetime.now(timezone.utc)

        if statut == EventStatus.VALIDE.value:

            async def validate(session):
                result = await _events().update_one(
                    {"_id": event["_id"], "statut": {"$ne": EventStatus.VALIDE.value}},
                    {"$set": {"statut": statut, "valideBy": to_object_id(admin.id), "dateValidation": now, "updatedAt": now}},
                    session=session,
                )
                if result.modified_count == 1:
                    await _clubs().update_one(
                        {"_id": event.get("clubId")}, {"$inc": {"stats.nombreEventsValides": 1}}, session=session
                    )
                return result.modified_count == 1

            transitioned = await db_manager.run_transaction(validate)
            if not transitioned:
                logger.info("Event %s was already validated", event["_id"])
        else:
            update: Dict[str, Any] = {"statut": statut, "updatedAt": now}
            if statut == EventStatus.REJETE.value and payload.raisonRejet:
                update["raisonRejet"] = payload.raisonRejet
            await _events().update_one({"_id": event["_id"]}, {"$set": update})

        club = await _clubs().find_one({"_id": event.get("clubId")}, {"nom": 1, "email": 1})
        subject, body = REVIEW_NOTIFICATIONS[statut]
        if club and club.get("email"):
            await mail_service.send_mail(
                club["email"], subject, body.format(titre=event.get("titre"), raison=payload.raisonRejet or "Non spécifiée")
            )

        await audit_log_service.log_event_status_update(
            admin.id, event["_id"], event.get("titre", ""), statut, payload.raisonRejet
        )
        return {
            "id": str(event["_id"]),
            "titre": event.get("titre"),
            "statut": statut,
            "club": club.get("nom") if club else None,
        }


event_service = EventService()
