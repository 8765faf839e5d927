"""
Administrator dashboard aggregates and administrator account management.

Administrators live in `admins`; older deployments also hold them in `users` with `role=admin`.
Every check below counts both sources. The first administrator is created either by startup
seeding (`DEFAULT_ADMIN_PASSWORD` set) or through the one-shot initial setup endpoint.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import PrincipalNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.club_models import ClubStatus, EventStatus
from club_admin_api.models.common import serialize_document, serialize_documents
from club_admin_api.models.log_models import ActorType, LogAction, TargetType
from club_admin_api.models.principal_models import PrincipalContext, UserRole, UserStatus
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.password_service import check_new_password
from club_admin_api.utils.security_utils import generate_password, hash_password

logger = get_logger(prefix="[ADMIN]")

RECENT_ITEMS = 5
ADMIN_LIST_PROJECTION = {"nom": 1, "prenom": 1, "email": 1, "createdAt": 1}


class AdminService:
    @staticmethod
    def _sources() -> List[Tuple[str, Dict[str, Any]]]:
        return [(settings.ADMINS_COLLECTION, {}), (settings.USERS_COLLECTION, {"role": UserRole.ADMIN.value})]

    async def _find_admin(self, query: Dict[str, Any]) -> Optional[Tuple[Any, Dict[str, Any]]]:
        """First administrator matching `query`, as `(collection, document)`."""
        for collection_name, extra in self._sources():
            collection = db_manager.get_collection(collection_name)
            doc = await collection.find_one({**query, **extra})
            if doc is not None:
                return collection, doc
        return None

    async def dashboard_stats(self) -> Dict[str, Any]:
        """Overview counters, chart series and the latest events and clubs."""
        clubs = db_manager.get_collection(settings.CLUBS_COLLECTION)
        events = db_manager.get_collection(settings.EVENTS_COLLECTION)
        users = db_manager.get_collection(settings.USERS_COLLECTION)

        now = datetime.now(timezone.utc)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        overview = {
            "totalClubs": await clubs.count_documents({}),
            "clubsActifs": await clubs.count_documents({"statut": ClubStatus.ACTIF.value}),
            "clubsEnAttente": await clubs.count_documents({"statut": ClubStatus.EN_ATTENTE.value}),
            "totalEvents": await events.count_documents({}),
            "eventsEnAttente": await events.count_documents({"statut": EventStatus.EN_ATTENTE.value}),
            "eventsCeMois": await events.count_documents(
                {"statut": EventStatus.VALIDE.value, "dateValidation": {"$gte": month_start}}
            ),
            "totalUsers": await users.count_documents({}),
            "usersActifs": await users.count_documents({"statut": UserStatus.ACTIF.value}),
        }

        charts = {
            "eventsByCategory": await events.aggregate(
                [
                    {"$match": {"statut": EventStatus.VALIDE.value}},
                    {"$group": {"_id": "$typeEvent", "count": {"$sum": 1}}},
                    {"$sort": {"count": -1}},
                ]
            ).to_list(length=None),
            "clubsByCategory": await clubs.aggregate(
                [
                    {"$match": {"statut": ClubStatus.ACTIF.value}},
                    {"$group": {"_id": "$categorie", "count": {"$sum": 1}}},
                    {"$sort": {"count": -1}},
                ]
            ).to_list(length=None),
            "weeklyActivity": await events.aggregate(
                [
                    {"$match": {"createdAt": {"$gte": now - timedelta(days=7)}}},
                    {"$group": {"_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$createdAt"}}, "count": {"$sum": 1}}},
                    {"$sort": {"_id": 1}},
                ]
            ).to_list(length=None),
        }

        recent_events = await (
            events.find({"statut": EventStatus.VALIDE.value}, {"titre": 1, "dateDebut": 1, "clubId": 1, "typeEvent": 1})
            .sort("createdAt", -1)
            .limit(RECENT_ITEMS)
            .to_list(length=RECENT_ITEMS)
        )
        for event in recent_events:
            club = await clubs.find_one({"_id": event.get("clubId")}, {"nom": 1})
            event["club"] = serialize_document(club) if club else None
        recent_clubs = await (
            clubs.find({}, {"nom": 1, "email": 1, "statut": 1, "createdAt": 1, "categorie": 1})
            .sort("createdAt", -1)
            .limit(RECENT_ITEMS)
            .to_list(length=RECENT_ITEMS)
        )

        return {
            "overview": overview,
            "charts": charts,
            "recent": {"events": serialize_documents(recent_events), "clubs": serialize_documents(recent_clubs)},
        }

    async def ensure_default_admin(self) -> Optional[str]:
        """
        Create the configured default administrator when no administrator exists yet.

        Administrators stored as users with `role=admin` count as existing. Seeding is skipped
        when `DEFAULT_ADMIN_PASSWORD` is not configured.

        Returns:
            Optional[str]: The id of the created administrator, or `None` if nothing was created.
        """
        admins = db_manager.get_collection(settings.ADMINS_COLLECTION)
        found = await self._find_admin({})
        if found is not None:
            logger.info("Administrator account present: %s", found[1].get("email"))
            return None

        if not settings.DEFAULT_ADMIN_PASSWORD:
            logger.warning("No administrator exists and DEFAULT_ADMIN_PASSWORD is not set; skipping seeding")
            return None

        now = datetime.now(timezone.utc)
        result = await admins.insert_one(
            {
                "email": settings.DEFAULT_ADMIN_EMAIL.strip().lower(),
                "password": hash_password(settings.DEFAULT_ADMIN_PASSWORD.get_secret_value()),
                "nom": settings.DEFAULT_ADMIN_NOM,
                "prenom": settings.DEFAULT_ADMIN_PRENOM,
                "role": UserRole.ADMIN.value,
                "createdAt": now,
                "updatedAt": now,
            }
        )
        logger.warning("Default administrator %s created, change its password", settings.DEFAULT_ADMIN_EMAIL)
        return str(result.inserted_id)

    async def count_admins(self) -> int:
        total = 0
        for collection_name, extra in self._sources():
            total += await db_manager.get_collection(collection_name).count_documents(extra)
        return total

    async def setup_status(self) -> Dict[str, Any]:
        """Whether at least one administrator exists, for the first-run screen."""
        admin_count = await self.count_admins()
        return {"isSetup": admin_count > 0, "adminCount": admin_count, "needsInitialSetup": admin_count == 0}

    async def initial_setup(self, nom: str, prenom: str, email: str, password: str) -> Dict[str, Any]:
        """
        Create the first administrator of a fresh deployment.

        Raises:
            ValidationFailed: An administrator already exists, or the password is too short.
            Conflict: `email` is already used by another principal.
        """
        if await self.count_admins() > 0:
            raise ValidationFailed("L'application est déjà configurée")
        check_new_password(password)
        await identity_resolver.ensure_email_available(email)

        now = datetime.now(timezone.utc)
        document = {
            "email": email,
            "password": hash_password(password),
            "nom": nom,
            "prenom": prenom,
            "role": UserRole.ADMIN.value,
            "createdAt": now,
            "updatedAt": now,
        }
        result = await db_manager.get_collection(settings.ADMINS_COLLECTION).insert_one(document)
        document["_id"] = result.inserted_id
        logger.warning("Initial setup created administrator %s", email)

        await audit_log_service.append(
            result.inserted_id,
            ActorType.ADMIN,
            LogAction.SYSTEM_MAINTENANCE,
            f"Configuration initiale: création de l'administrateur {email}",
            TargetType.ADMIN,
            result.inserted_id,
        )
        return serialize_document(document)

    async def list_admins(self) -> List[Dict[str, Any]]:
        """Administrators from both sources, newest first."""
        admins: List[Dict[str, Any]] = []
        for collection_name, extra in self._sources():
            admins.extend(
                await db_manager.get_collection(collection_name).find(extra, ADMIN_LIST_PROJECTION).to_list(length=None)
            )
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        admins.sort(key=lambda doc: doc.get("createdAt") or epoch, reverse=True)
        return serialize_documents(admins)

    async def reset_admin_password(
        self, email: str, new_password: Optional[str], actor: PrincipalContext
    ) -> Tuple[Dict[str, Any], str]:
        """
        Replace an administrator's password, generating one when `new_password` is empty.

        Returns:
            Tuple of the serialized administrator and the password now in effect.
        """
        found = await self._find_admin({"email": email})
        if found is None:
            raise PrincipalNotFound(f"Admin avec l'email {email} non trouvé")
        collection, admin = found

        password = new_password or generate_password()
        check_new_password(password)
        await collection.update_one(
            {"_id": admin["_id"]},
            {"$set": {"password": hash_password(password), "updatedAt": datetime.now(timezone.utc)}},
        )
        logger.info("Administrator %s reset the password of %s", actor.email, email)

        await audit_log_service.append(
            actor.id,
            actor.actor_type,
            LogAction.PASSWORD_RESET_COMPLETED,
            f"Réinitialisation du mot de passe de l'administrateur {email}",
            TargetType.ADMIN,
            admin["_id"],
        )
        return serialize_document(admin), password


admin_service = AdminService()
