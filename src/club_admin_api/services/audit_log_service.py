"""
# Audit Log Service

This module records **who did what** on the platform and serves the administrator's activity
feed.

## Write Path

`append()` validates the action against `LogAction`, normalizes the actor tag and inserts one
document into `logs`. It is **best effort**: audit failures are logged with their traceback and
`None` is returned, so the business operation that triggered the entry is never affected. Callers
use the `log_*` helpers that mirror business events rather than calling `append()` directly.

## Read Path

Entries only hold `(kind, id)` references. `list_logs()` and `recent_logs()` attach:

- `utilisateur`: display data of the actor, from its current document.
- `cible`: display data of the target, or `None` for `system` and missing targets.

Resolution goes through a `ResolutionCache` created **per read call**. It keeps a hit map and a
miss map keyed by `(kind, id)`. Entries are enriched one after the other, so a page with fifty
entries from the same deleted club performs a single lookup. Every failed lookup (missing
document, malformed id, storage error) produces a deterministic tombstone.

## Maintenance

- `create_test_logs()` / `delete_test_logs()`: seed and remove entries tagged with
  `details.note == TEST_LOG_NOTE`.
- `clean_orphan_logs()`: remove entries whose actor no longer exists. Idempotent: a second run
  finds nothing to delete.

## Module Attributes

Attributes:
    ACTOR_PROJECTION (Dict[str, int]): Fields loaded for actor display.
    DEFAULT_PAGE_SIZE (int): Page size of `list_logs()`.
    RECENT_LOGS_LIMIT (int): Number of entries returned by `recent_logs()`.
    audit_log_service (AuditLogService): Global service instance.
"""

import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.common import serialize_document
from club_admin_api.models.log_models import (
    ACTOR_TOMBSTONES,
    EVENT_TOMBSTONE,
    TEST_LOG_NOTE,
    UNKNOWN_ACTOR_TOMBSTONE,
    ActorType,
    LogAction,
    LogFilter,
    TargetType,
    normalize_actor_type,
    normalize_target_type,
)
from club_admin_api.models.principal_models import UserRole
from club_admin_api.utils.security_utils import to_object_id

logger = get_logger(prefix="[AUDIT]")

ACTOR_PROJECTION = {"nom": 1, "prenom": 1, "email": 1}
DEFAULT_PAGE_SIZE = 20
RECENT_LOGS_LIMIT = 50

Display = Dict[str, Any]
CacheKey = Tuple[str, str]

TEST_LOG_TEMPLATES: Tuple[Tuple[LogAction, str, TargetType], ...] = (
    (LogAction.CREATE_CLUB, "Création d'un nouveau club de test", TargetType.CLUB),
    (LogAction.UPDATE_CLUB, "Modification des informations du club", TargetType.CLUB),
    (LogAction.APPROVE_CLUB, "Approbation d'un club en attente", TargetType.CLUB),
    (LogAction.CREATE_EVENT, "Création d'un nouvel événement", TargetType.EVENT),
    (LogAction.APPROVE_EVENT, "Approbation d'un événement", TargetType.EVENT),
    (LogAction.REJECT_EVENT, "Rejet d'un événement", TargetType.EVENT),
    (LogAction.CREATE_USER, "Création d'un nouvel utilisateur", TargetType.USER),
    (LogAction.UPDATE_USER, "Modification d'un utilisateur", TargetType.USER),
    (LogAction.DELETE_USER, "Suppression d'un utilisateur", TargetType.USER),
    (LogAction.LOGOUT, "Déconnexion", TargetType.SYSTEM),
)


class ResolutionCache:
    """
    Request-scoped memo of reference lookups.

    Attributes:
        hits: Display data for references that resolved.
        misses: Tombstones for references that did not.
        lookups: Number of lookups actually performed against storage.
    """

    def __init__(self):
        self.hits: Dict[CacheKey, Display] = {}
        self.misses: Dict[CacheKey, Display] = {}
        self.lookups = 0

    def get(self, key: CacheKey) -> Optional[Display]:
        if key in self.hits:
            return self.hits[key]
        return self.misses.get(key)

    async def resolve(
        self, key: CacheKey, loader: Callable[[], Awaitable[Optional[Display]]], tombstone: Display
    ) -> Display:
        """Return the cached display for `key`, loading it at most once."""
        cached = self.get(key)
        if cached is not None:
            return cached

        self.lookups += 1
        try:
            display = await loader()
        except Exception as e:
            logger.warning("Lookup failed for %s %s: %s", key[0], key[1], e, exc_info=True)
            display = None

        if display is None:
            self.misses[key] = dict(tombstone)
            return self.misses[key]
        self.hits[key] = display
        return display


class ReferenceResolver:
    """One loader per reference kind, sharing a `ResolutionCache`."""

    def __init__(self, cache: Optional[ResolutionCache] = None):
        self.cache = cache or ResolutionCache()

    @staticmethod
    async def _find(
        collection_name: str, oid: Any, query: Optional[Dict[str, Any]] = None, projection: Optional[Dict[str, int]] = None
    ) -> Optional[Dict[str, Any]]:
        if oid is None:
            return None
        return await db_manager.get_collection(collection_name).find_one(
            {"_id": oid, **(query or {})}, projection or ACTOR_PROJECTION
        )

    async def _load_admin(self, oid: Any) -> Optional[Display]:
        doc = await self._find(settings.ADMINS_COLLECTION, oid)
        if doc is None:
            doc = await self._find(settings.USERS_COLLECTION, oid, {"role": UserRole.ADMIN.value})
        if doc is None:
            return None
        return {
            "nom": doc.get("nom") or "Admin",
            "prenom": doc.get("prenom") or "Système",
            "email": doc.get("email") or "admin@esprit.tn",
        }

    async def _load_club(self, oid: Any) -> Optional[Display]:
        doc = await self._find(settings.CLUBS_COLLECTION, oid)
        if doc is None:
            return None
        return {"nom": doc.get("nom") or "Club", "prenom": "Club", "email": doc.get("email") or "club@esprit.tn"}

    async def _load_user(self, oid: Any) -> Optional[Display]:
        doc = await self._find(settings.USERS_COLLECTION, oid)
        if doc is None:
            return None
        return {
            "nom": doc.get("nom") or "Utilisateur",
            "prenom": doc.get("prenom") or "Inconnu",
            "email": doc.get("email") or "user@esprit.tn",
        }

    async def _load_event(self, oid: Any) -> Optional[Display]:
        doc = await self._find(settings.EVENTS_COLLECTION, oid, projection={"titre": 1})
        if doc is None:
            return None
        return {"titre": doc.get("titre") or EVENT_TOMBSTONE["titre"]}

    def _loader_for(self, kind: str) -> Tuple[Optional[Callable[[Any], Awaitable[Optional[Display]]]], Display]:
        loaders = {
            ActorType.ADMIN.value: (self._load_admin, ACTOR_TOMBSTONES[ActorType.ADMIN.value]),
            ActorType.CLUB.value: (self._load_club, ACTOR_TOMBSTONES[ActorType.CLUB.value]),
            ActorType.USER.value: (self._load_user, ACTOR_TOMBSTONES[ActorType.USER.value]),
            TargetType.EVENT.value: (self._load_event, EVENT_TOMBSTONE),
        }
        return loaders.get(kind, (None, UNKNOWN_ACTOR_TOMBSTONE))

    async def _resolve(self, kind: str, ref_id: Any) -> Display:
        loader, tombstone = self._loader_for(kind)
        if loader is None:
            return dict(tombstone)
        oid = to_object_id(ref_id)
        return await self.cache.resolve((kind, str(ref_id)), lambda: loader(oid), tombstone)

    async def actor(self, user_type: Any, user_id: Any) -> Display:
        """Display data for a log actor. Unknown actor kinds get the generic tombstone."""
        kind = normalize_actor_type(user_type)
        if kind is None:
            return dict(UNKNOWN_ACTOR_TOMBSTONE)
        return await self._resolve(kind.value, user_id)

    async def target(self, target_type: Any, target_id: Any) -> Optional[Display]:
        """Display data for a log target, `None` for system or absent targets."""
        kind = normalize_target_type(target_type)
        if kind is None or kind == TargetType.SYSTEM or not target_id:
            return None
        return await self._resolve(kind.value, target_id)


class AuditLogService:
    """Append-only audit log with read-time reference resolution."""

    def _collection(self):
        return db_manager.get_collection(settings.LOGS_COLLECTION)

    # Write path

    async def append(
        self,
        actor_id: Any,
        actor_type: Any,
        action: Any,
        description: str,
        target_type: Any = None,
        target_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Insert one log entry.

        Args:
            actor_id: Id of the acting principal.
            actor_type: Actor tag, any casing of `Admin|Club|User`.
            action: A `LogAction` or its value.
            description: Human readable summary.
            target_type: Optional `TargetType` or its value.
            target_id: Optional id of the target.
            details: Free-form context (ip address, user agent, changed fields).

        Returns:
            Optional[str]: The inserted id, or `None` if the entry could not be written.
        """
        try:
            try:
                log_action = LogAction(action)
            except ValueError:
                logger.error("Refusing to log unknown action %r", action)
                return None

            kind = normalize_actor_type(actor_type)
            actor_oid = to_object_id(actor_id)
            if kind is None or actor_oid is None:
                logger.error("Refusing to log %s with actor %r of type %r", log_action.value, actor_id, actor_type)
                return None

            target_kind = normalize_target_type(target_type)
            document = {
                "userId": actor_oid,
                "userType": kind.value,
                "action": log_action.value,
                "description": description,
                "targetType": target_kind.value if target_kind else None,
                "targetId": to_object_id(target_id),
                "details": dict(details or {}),
                "createdAt": datetime.now(timezone.utc),
            }
            result = await self._collection().insert_one(document)
            logger.debug("Logged %s by %s %s", log_action.value, kind.value, actor_oid)
            return str(result.inserted_id)
        except Exception as e:
            logger.error("Failed to write audit log entry for action %r: %s", action, e, exc_info=True)
            return None

    async def log_login(self, actor_id: Any, actor_type: Any, ip_address: Optional[str] = None, user_agent: Optional[str] = None):
        return await self.append(
            actor_id,
            actor_type,
            LogAction.LOGIN,
            "Connexion réussie",
            TargetType.SYSTEM,
            details={"ipAddress": ip_address, "userAgent": user_agent},
        )

    async def log_logout(self, actor_id: Any, actor_type: Any, ip_address: Optional[str] = None):
        return await self.append(
            actor_id, actor_type, LogAction.LOGOUT, "Déconnexion", TargetType.SYSTEM, details={"ipAddress": ip_address}
        )

    async def log_password_change(self, actor_id: Any, actor_type: Any, ip_address: Optional[str] = None):
        return await self.append(
            actor_id,
            actor_type,
            LogAction.PASSWORD_CHANGE,
            "Changement de mot de passe",
            TargetType.SYSTEM,
            details={"ipAddress": ip_address},
        )

    async def log_club_creation(self, admin_id: Any, club_id: Any, club_name: str, actor_type: Any = ActorType.ADMIN):
        return await self.append(
            admin_id,
            actor_type,
            LogAction.CREATE_CLUB,
            f"Création du club: {club_name}",
            TargetType.CLUB,
            club_id,
            {"clubName": club_name},
        )

    async def log_club_status_update(
        self, admin_id: Any, club_id: Any, club_name: str, new_status: str, reason: Optional[str] = None
    ):
        """`actif` is logged as an approval, every other status as a rejection."""
        action = LogAction.APPROVE_CLUB if new_status == "actif" else LogAction.REJECT_CLUB
        return await self.append(
            admin_id,
            ActorType.ADMIN,
            action,
            f"Statut du club {club_name} changé en {new_status}",
            TargetType.CLUB,
            club_id,
            {"clubName": club_name, "newStatus": new_status, "reason": reason},
        )

    async def log_event_creation(self, actor_id: Any, actor_type: Any, event_id: Any, event_title: str):
        return await self.append(
            actor_id,
            actor_type,
            LogAction.CREATE_EVENT,
            f"Création de l'événement: {event_title}",
            TargetType.EVENT,
            event_id,
            {"eventTitle": event_title},
        )

    async def log_event_status_update(
        self, admin_id: Any, event_id: Any, event_title: str, new_status: str, reason: Optional[str] = None
    ):
        """`valide` is logged as an approval, every other status as a rejection."""
        action = LogAction.APPROVE_EVENT if new_status == "valide" else LogAction.REJECT_EVENT
        return await self.append(
            admin_id,
            ActorType.ADMIN,
            action,
            f"Statut de l'événement {event_title} changé en {new_status}",
            TargetType.EVENT,
            event_id,
            {"eventTitle": event_title, "newStatus": new_status, "reason": reason},
        )

    async def log_profile_update(self, actor_id: Any, actor_type: Any, club_id: Any, updated_fields: List[str]):
        return await self.append(
            actor_id,
            actor_type,
            LogAction.UPDATE_PROFILE,
            "Mise à jour du profil du club",
            TargetType.CLUB,
            club_id,
            {"updatedFields": updated_fields},
        )

    async def log_user_action(
        self,
        actor_id: Any,
        actor_type: Any,
        action: Any,
        description: str,
        target_type: Any = None,
        target_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        return await self.append(actor_id, actor_type, action, description, target_type, target_id, details)

    # Read path

    async def _enrich(self, entries: List[Dict[str, Any]], resolver: ReferenceResolver) -> List[Dict[str, Any]]:
        enriched = []
        for entry in entries:
            item = serialize_document(entry, hide=())
            kind = normalize_actor_type(entry.get("userType"))
            if kind is not None:
                item["userType"] = kind.value
            item["utilisateur"] = await resolver.actor(entry.get("userType"), entry.get("userId"))
            item["cible"] = await resolver.target(entry.get("targetType"), entry.get("targetId"))
            enriched.append(item)
        return enriched

    @staticmethod
    def build_query(filters: Optional[LogFilter]) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if filters is None:
            return query
        if filters.action:
            query["action"] = filters.action.value
        if filters.userId:
            query["userId"] = to_object_id(filters.userId) or filters.userId
        if filters.dateFrom or filters.dateTo:
            query["createdAt"] = {}
            if filters.dateFrom:
                query["createdAt"]["$gte"] = filters.dateFrom
            if filters.dateTo:
                query["createdAt"]["$lte"] = filters.dateTo
        return query

    async def list_logs(
        self, filters: Optional[LogFilter] = None, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        """
        Newest-first page of log entries with actor and target display data.

        Returns:
            Dict with `logs`, `totalCount`, `totalPages`, `currentPage`, `hasNext`, `hasPrevious`.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        query = self.build_query(filters)
        collection = self._collection()

        total_count = await collection.count_documents(query)
        cursor = collection.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        entries = await cursor.to_list(length=limit)

        logs = await self._enrich(entries, ReferenceResolver())
        total_pages = math.ceil(total_count / limit)
        return {
            "logs": logs,
            "totalCount": total_count,
            "totalPages": total_pages,
            "currentPage": page,
            "hasNext": page < total_pages,
            "hasPrevious": page > 1,
        }

    async def recent_logs(self, limit: int = RECENT_LOGS_LIMIT) -> List[Dict[str, Any]]:
        cursor = self._collection().find({}).sort("createdAt", -1).limit(limit)
        entries = await cursor.to_list(length=limit)
        return await self._enrich(entries, ReferenceResolver())

    async def stats(self) -> Dict[str, Any]:
        """Entry counts by action and by actor type, plus the total."""
        collection = self._collection()
        pipeline_tail = [{"$sort": {"count": -1}}]

        action_cursor = collection.aggregate([{"$group": {"_id": "$action", "count": {"$sum": 1}}}, *pipeline_tail])
        action_stats = await action_cursor.to_list(length=None)

        type_cursor = collection.aggregate([{"$group": {"_id": "$userType", "count": {"$sum": 1}}}, *pipeline_tail])
        user_type_counts: Dict[str, int] = {}
        for row in await type_cursor.to_list(length=None):
            kind = normalize_actor_type(row["_id"])
            label = kind.value if kind else str(row["_id"])
            user_type_counts[label] = user_type_counts.get(label, 0) + row["count"]

        return {
            "totalLogs": await collection.count_documents({}),
            "actionStats": [{"_id": row["_id"], "count": row["count"]} for row in action_stats],
            "userTypeStats": [
                {"_id": label, "count": count}
                for label, count in sorted(user_type_counts.items(), key=lambda item: item[1], reverse=True)
            ],
        }

    # Maintenance

    async def create_test_logs(self, admin_id: Any) -> int:
        """Seed one entry per test template on behalf of `admin_id`. Returns how many were written."""
        created = 0
        for action, description, target_type in TEST_LOG_TEMPLATES:
            inserted = await self.append(
                admin_id,
                ActorType.ADMIN,
                action,
                description,
                target_type,
                details={
                    "ipAddress": "127.0.0.1",
                    "userAgent": "Test Agent",
                    "timestamp": datetime.now(timezone.utc),
                    "note": TEST_LOG_NOTE,
                },
            )
            if inserted:
                created += 1
        return created

    async def delete_test_logs(self) -> int:
        result = await self._collection().delete_many({"details.note": TEST_LOG_NOTE})
        logger.info("Deleted %d test log entries", result.deleted_count)
        return result.deleted_count

    @staticmethod
    def _actor_sources(kind: Optional[ActorType]) -> List[Tuple[str, Dict[str, Any]]]:
        """Collections (and extra filters) where an actor of `kind` may live, in lookup order."""
        if kind == ActorType.ADMIN:
            return [(settings.ADMINS_COLLECTION, {}), (settings.USERS_COLLECTION, {"role": UserRole.ADMIN.value})]
        if kind == ActorType.CLUB:
            return [(settings.CLUBS_COLLECTION, {})]
        if kind == ActorType.USER:
            return [(settings.USERS_COLLECTION, {})]
        return []

    async def _actor_exists(self, entry: Dict[str, Any]) -> bool:
        """Whether the actor still resolves, using the same sources as `ReferenceResolver`."""
        sources = self._actor_sources(normalize_actor_type(entry.get("userType")))
        try:
            for collection_name, extra in sources:
                count = await db_manager.get_collection(collection_name).count_documents(
                    {"_id": entry["userId"], **extra}, limit=1
                )
                if count > 0:
                    return True
        except Exception as e:
            logger.warning("Existence check failed for log %s, treating as orphan: %s", entry.get("_id"), e)
            return False
        return False

    async def clean_orphan_logs(self) -> Dict[str, int]:
        """
        Delete entries whose actor no longer exists.

        Returns:
            Dict with `totalLogsChecked`, `orphanLogsFound` and `orphanLogsDeleted`.
        """
        collection = self._collection()
        entries = await collection.find({"userId": {"$exists": True, "$ne": None}}, {"userId": 1, "userType": 1}).to_list(
            length=None
        )

        orphan_ids = []
        for entry in entries:
            if not await self._actor_exists(entry):
                orphan_ids.append(entry["_id"])

        deleted = 0
        if orphan_ids:
            result = await collection.delete_many({"_id": {"$in": orphan_ids}})
            deleted = result.deleted_count

        logger.info("Orphan cleanup checked %d entries, deleted %d", len(entries), deleted)
        return {"totalLogsChecked": len(entries), "orphanLogsFound": len(orphan_ids), "orphanLogsDeleted": deleted}


audit_log_service = AuditLogService()
