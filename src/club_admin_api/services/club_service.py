"""
# Club Service

Business logic for club accounts: creation by an administrator, status decisions, profile
updates (including the first-login completion flow), listings, statistics and cascading deletion.

## Lifecycle

1. **Creation** (`create_club`): an administrator supplies `nom`, `email` and `categorie`. A
   password is generated, stored as a bcrypt hash and emailed to the club. The club starts
   `en_attente` and cannot log in yet.
2. **Decision** (`update_status`): `actif` activates and publishes the club; `inactif`,
   `suspendu` and `rejete` block it. The club is notified by email.
3. **First login** (`complete_first_login`): the club fills the required profile sections once.
4. **Deletion** (`delete_club`): removes the club, its events and every user assignment to it.

Email notifications never decide the outcome of an operation.

## Module Attributes

Attributes:
    PUBLIC_CLUB_PROJECTION (Dict[str, int]): Fields exposed on the public club pages.
    STATUS_NOTIFICATIONS (Dict[str, Tuple[str, str]]): Subject and body template per status.
    club_service (ClubService): Global service instance.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import ResourceNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import (
    DRAFT_FIELDS,
    FIRST_LOGIN_FIELDS,
    FIRST_LOGIN_REQUIRED_FIELDS,
    ClubCategory,
    ClubCreateRequest,
    ClubStatus,
    ClubStatusUpdate,
    EventStatus,
    merge_profile_changes,
    missing_required_fields,
    new_club_document,
)
from club_admin_api.models.common import build_pagination, serialize_document, serialize_documents
from club_admin_api.models.log_models import LogAction, TargetType
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.mail_service import mail_service
from club_admin_api.utils.security_utils import generate_password, hash_password, to_object_id

logger = get_logger(prefix="[CLUBS]")

PUBLIC_CLUB_PROJECTION = {
    "nom": 1,
    "description": 1,
    "categorie": 1,
    "fondation": 1,
    "images": 1,
    "activites": 1,
    "reseauxSociaux": 1,
    "contact": 1,
    "membres": 1,
    "president.nom": 1,
    "president.prenom": 1,
    "stats": 1,
    "lienRecrutement": 1,
    "imageCouverture": 1,
    "detailsComplets": 1,
    "createdAt": 1,
}

STATUS_NOTIFICATIONS: Dict[str, Tuple[str, str]] = {
    ClubStatus.ACTIF.value: (
        "Votre club a été activé",
        'Félicitations ! Votre club "{nom}" a été activé. Vous pouvez maintenant créer des événements.',
    ),
    ClubStatus.REJETE.value: (
        "Votre demande de club a été rejetée",
        'Votre demande de club "{nom}" a été rejetée. Raison: {raison}',
    ),
    ClubStatus.SUSPENDU.value: (
        "Votre club a été suspendu",
        'Votre club "{nom}" a été temporairement suspendu.',
    ),
}

FIRST_LOGIN_GUIDE = {
    "title": "Guide de première connexion",
    "description": "Complétez votre profil de club pour commencer à créer des événements",
    "steps": [
        {
            "step": 1,
            "title": "Informations générales",
            "description": "Complétez la description de votre club et le nombre de membres",
            "fields": ["description", "membres"],
        },
        {
            "step": 2,
            "title": "Président du club",
            "description": "Renseignez les informations du président",
            "fields": ["president.nom", "president.prenom", "president.email", "president.telephone"],
        },
        {
            "step": 3,
            "title": "Contact",
            "description": "Ajoutez les informations de contact du club",
            "fields": ["contact.telephone", "contact.email", "contact.adresse"],
        },
        {
            "step": 4,
            "title": "Présentation détaillée",
            "description": "Rédigez une présentation complète de votre club",
            "fields": ["detailsComplets.presentation", "detailsComplets.objectifs"],
        },
        {
            "step": 5,
            "title": "Activités et médias",
            "description": "Listez vos activités et ajoutez des liens vers vos réseaux sociaux",
            "fields": ["activites", "reseauxSociaux", "siteWeb"],
        },
    ],
    "requiredFields": list(FIRST_LOGIN_REQUIRED_FIELDS),
    "tips": [
        "Une description claire attirera plus d'étudiants",
        "N'oubliez pas d'ajouter vos réseaux sociaux",
        "Les objectifs doivent être spécifiques et mesurables",
        "Une photo de profil et une couverture amélioreront votre visibilité",
    ],
}


def search_filter(search: Optional[str], fields: Tuple[str, ...]) -> Dict[str, Any]:
    """Case-insensitive `$or` regex filter over `fields`, empty when `search` is blank."""
    if not search:
        return {}
    pattern = {"$regex": re.escape(search), "$options": "i"}
    return {"$or": [{field: pattern} for field in fields]}


def _clubs():
    return db_manager.get_collection(settings.CLUBS_COLLECTION)


def _events():
    return db_manager.get_collection(settings.EVENTS_COLLECTION)


class ClubService:
    async def get_club_document(self, club_id: Any) -> Dict[str, Any]:
        """Raw club document, or `ResourceNotFound` (also for malformed ids)."""
        oid = to_object_id(club_id)
        club = await _clubs().find_one({"_id": oid}) if oid else None
        if not club:
            raise ResourceNotFound("Club non trouvé")
        return club

    # Listings

    async def list_clubs(
        self,
        page: int = 1,
        limit: int = 10,
        statut: Optional[str] = None,
        categorie: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = search_filter(search, ("nom", "email"))
        if statut:
            query["statut"] = statut
        if categorie:
            query["categorie"] = categorie

        total = await _clubs().count_documents(query)
        cursor = _clubs().find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        clubs = await cursor.to_list(length=limit)
        return {"clubs": serialize_documents(clubs), "pagination": build_pagination(page, limit, len(clubs), total)}

    async def list_public_clubs(
        self, page: int = 1, limit: int = 50, categorie: Optional[str] = None, search: Optional[str] = None
    ) -> Dict[str, Any]:
        """Active, validated clubs only, with public fields."""
        query: Dict[str, Any] = search_filter(search, ("nom", "description"))
        query.update({"statut": ClubStatus.ACTIF.value, "valide": True})
        if categorie and categorie != "Tous":
            query["categorie"] = categorie

        total = await _clubs().count_documents(query)
        cursor = (
            _clubs().find(query, PUBLIC_CLUB_PROJECTION).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        )
        clubs = await cursor.to_list(length=limit)
        return {"clubs": serialize_documents(clubs), "pagination": build_pagination(page, limit, len(clubs), total)}

    async def get_public_club(self, club_id: Any) -> Dict[str, Any]:
        oid = to_object_id(club_id)
        club = None
        if oid:
            club = await _clubs().find_one(
                {"_id": oid, "statut": ClubStatus.ACTIF.value, "valide": True}, PUBLIC_CLUB_PROJECTION
            )
        if not club:
            raise ResourceNotFound("Club non trouvé")
        return serialize_document(club)

    async def _event_status_counts(self, club_oid: Any) -> List[Dict[str, Any]]:
        cursor = _events().aggregate([{"$match": {"clubId": club_oid}}, {"$group": {"_id": "$statut", "count": {"$sum": 1}}}])
        return await cursor.to_list(length=None)

    async def get_club(self, club_id: Any) -> Dict[str, Any]:
        """Full club document with per-status event counts."""
        club = await self.get_club_document(club_id)
        data = serialize_document(club)
        data["eventStats"] = await self._event_status_counts(club["_id"])
        return data

    async def get_my_profile(self, club_id: Any) -> Dict[str, Any]:
        club = await self.get_club_document(club_id)
        data = serialize_document(club)
        data["eventStats"] = await self._event_status_counts(club["_id"])
        recent = await (
            _events()
            .find({"clubId": club["_id"]}, {"titre": 1, "dateDebut": 1, "statut": 1, "typeEvent": 1})
            .sort("createdAt", -1)
            .limit(5)
            .to_list(length=5)
        )
        data["recentEvents"] = serialize_documents(recent)
        return data

    async def get_my_stats(self, club_id: Any) -> Dict[str, Any]:
        """Event counters of one club plus monthly creation counts over the last six months."""
        club_oid = to_object_id(club_id)
        six_months_ago = datetime.now(timezone.utc) - timedelta(days=183)
        events_by_month = await (
            _events()
            .aggregate(
                [
                    {"$match": {"clubId": club_oid, "createdAt": {"$gte": six_months_ago}}},
                    {
                        "$group": {
                            "_id": {"year": {"$year": "$createdAt"}, "month": {"$month": "$createdAt"}},
                            "count": {"$sum": 1},
                        }
                    },
                    {"$sort": {"_id.year": 1, "_id.month": 1}},
                ]
            )
            .to_list(length=None)
        )
        return {
            "totalEvents": await _events().count_documents({"clubId": club_oid}),
            "pendingEvents": await _events().count_documents({"clubId": club_oid, "statut": EventStatus.EN_ATTENTE.value}),
            "approvedEvents": await _events().count_documents({"clubId": club_oid, "statut": EventStatus.VALIDE.value}),
            "rejectedEvents": await _events().count_documents({"clubId": club_oid, "statut": EventStatus.REJETE.value}),
            "eventStats": await self._event_status_counts(club_oid),
            "eventsByMonth": events_by_month,
        }

    async def stats(self) -> Dict[str, Any]:
        by_category = await (
            _clubs()
            .aggregate([{"$group": {"_id": "$categorie", "count": {"$sum": 1}}}, {"$sort": {"count": -1}}])
            .to_list(length=None)
        )
        return {
            "total": await _clubs().count_documents({}),
            "active": await _clubs().count_documents({"statut": ClubStatus.ACTIF.value}),
            "pending": await _clubs().count_documents({"statut": ClubStatus.EN_ATTENTE.value}),
            "inactive": await _clubs().count_documents({"statut": ClubStatus.INACTIF.value}),
            "completedProfiles": await _clubs().count_documents({"profileComplet": True}),
            "byCategory": by_category,
        }

    # Administrator operations

    async def create_club(self, payload: ClubCreateRequest, admin: PrincipalContext) -> Tuple[Dict[str, Any], str]:
        """
        Create a pending club account with a generated password.

        Returns:
            Tuple of the serialized club and the generated password.

        Raises:
            Conflict: The email is already used by any principal.
        """
        await identity_resolver.ensure_email_available(payload.email, "Un club avec cet email existe déjà")

        password = generate_password()
        document = new_club_document(payload, hash_password(password))
        result = await _clubs().insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("Club %s created by admin %s", result.inserted_id, admin.id)

        await mail_service.send_mail(
            payload.email,
            "Création de votre compte club - Esprit Student",
            f'Bonjour,\n\nVotre compte club "{payload.nom}" a été créé.\n\n'
            f"Vos identifiants :\nEmail: {payload.email}\nMot de passe: {password}\n\n"
            "Veuillez vous connecter et compléter votre profil.\n\nCordialement,\nL'équipe Esprit Student",
        )
        await audit_log_service.log_club_creation(admin.id, result.inserted_id, payload.nom, admin.actor_type)
        return serialize_document(document), password

    async def update_status(self, club_id: Any, payload: ClubStatusUpdate, admin: PrincipalContext) -> Dict[str, Any]:
        club = await self.get_club_document(club_id)
        statut = payload.statut.value
        update: Dict[str, Any] = {"statut": statut, "updatedAt": datetime.now(timezone.utc)}
        if statut == ClubStatus.ACTIF.value:
            update.update({"valide": True, "valideePar": to_object_id(admin.id), "dateValidation": update["updatedAt"]})
        elif statut == ClubStatus.REJETE.value:
            update["valide"] = False
            if payload.raisonRejet:
                update["raisonRejet"] = payload.raisonRejet

        await _clubs().update_one({"_id": club["_id"]}, {"$set": update})
        logger.info("Club %s status set to %s by %s", club["_id"], statut, admin.id)

        notification = STATUS_NOTIFICATIONS.get(statut)
        if notification:
            subject, body = notification
            await mail_service.send_mail(
                club["email"], subject, body.format(nom=club.get("nom"), raison=payload.raisonRejet or "Non spécifiée")
            )

        await audit_log_service.log_club_status_update(admin.id, club["_id"], club.get("nom", ""), statut, payload.raisonRejet)
        return {"id": str(club["_id"]), "nom": club.get("nom"), "statut": statut}

    async def delete_club(self, club_id: Any, admin: PrincipalContext) -> None:
        """Delete a club together with its events and every user assignment to it."""
        club = await self.get_club_document(club_id)
        club_oid = club["_id"]

        async def cascade(session):
            await _events().delete_many({"clubId": club_oid}, session=session)
            await db_manager.get_collection(settings.USERS_COLLECTION).update_many(
                {"clubAssigne": club_oid}, {"$unset": {"clubAssigne": ""}}, session=session
            )
            await _clubs().delete_one({"_id": club_oid}, session=session)

        await db_manager.run_transaction(cascade)
        logger.info("Club %s deleted by %s", club_oid, admin.id)
        await audit_log_service.append(
            admin.id,
            admin.actor_type,
            LogAction.DELETE_CLUB,
            f"Suppression du club: {club.get('nom')}",
            TargetType.CLUB,
            club_oid,
            {"clubName": club.get("nom")},
        )

    # Profile

    async def update_profile(self, club_id: Any, changes: Dict[str, Any], actor: PrincipalContext) -> Dict[str, Any]:
        """Merge allowed profile fields, end the first-login phase and recompute completeness."""
        club = await self.get_club_document(club_id)
        update = merge_profile_changes(club, changes)
        update["premiereConnexion"] = False
        update["updatedAt"] = datetime.now(timezone.utc)

        await _clubs().update_one({"_id": club["_id"]}, {"$set": update})
        await audit_log_service.log_profile_update(
            actor.id, actor.actor_type, club["_id"], [key for key in changes if key in update]
        )
        return serialize_document({**club, **update})

    async def check_first_login(self, club_id: Any) -> Dict[str, Any]:
        club = serialize_document(await self.get_club_document(club_id))
        return {
            "isFirstLogin": club.get("premiereConnexion", False),
            "profileCompleted": club.get("profileComplet", False),
            "club": club,
        }

    async def complete_first_login(self, club_id: Any, payload: Dict[str, Any], actor: PrincipalContext) -> Dict[str, Any]:
        """
        Fill the required profile sections on the first login.

        Raises:
            ValidationFailed: Not a first login, or required fields missing (listed under
                `missingFields`).
        """
        club = await self.get_club_document(club_id)
        if not club.get("premiereConnexion"):
            raise ValidationFailed("Ce n'est pas votre première connexion")

        missing = missing_required_fields(payload)
        if missing:
            raise ValidationFailed("Champs obligatoires manquants", {"missingFields": missing})

        update = merge_profile_changes(club, payload, FIRST_LOGIN_FIELDS)
        update["premiereConnexion"] = False
        update["updatedAt"] = datetime.now(timezone.utc)
        await _clubs().update_one({"_id": club["_id"]}, {"$set": update})

        await audit_log_service.append(
            actor.id,
            actor.actor_type,
            LogAction.COMPLETE_FIRST_LOGIN,
            "Profil complété lors de la première connexion",
            TargetType.CLUB,
            club["_id"],
        )
        return {
            "club": serialize_document({**club, **update}),
            "profileCompleted": update["profileComplet"],
            "isFirstLogin": False,
        }

    async def save_draft(self, club_id: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Merge partial first-login data without checking required fields."""
        club = await self.get_club_document(club_id)
        update = merge_profile_changes(club, payload, DRAFT_FIELDS)
        update["updatedAt"] = datetime.now(timezone.utc)
        await _clubs().update_one({"_id": club["_id"]}, {"$set": update})
        return {"profileCompleted": update["profileComplet"], "isFirstLogin": club.get("premiereConnexion", False)}

    def first_login_guide(self) -> Dict[str, Any]:
        return {**FIRST_LOGIN_GUIDE, "categories": [c.value for c in ClubCategory]}


club_service = ClubService()
