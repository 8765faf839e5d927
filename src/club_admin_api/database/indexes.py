"""
# Club Admin Indexes

Declarative index definitions for every collection of the Club Admin API, created idempotently
at startup.

## Index Strategy

- **Principals** (`admins`, `clubs`, `users`): unique `email` per collection, plus lookups used by
  listings (`statut`, `categorie`, `role`) and the password-reset token hash.
- **Events**: `clubId`, `statut`, `dateDebut`, `typeEvent` and a text index on title/description.
- **Logs**: newest-first scans (`createdAt -1`), actor filtering (`userId, action`) and subject
  lookups (`targetType, targetId`).

## Functions

- `create_club_admin_indexes()`: idempotent creation of all indexes.

## Module Attributes

Attributes:
    CLUB_ADMIN_INDEXES (List[Dict]): Index specifications (`collection`, `index`, `options`).
    logger (Logger): Index operations logger (`[Indexes]`).
"""

from typing import Any, Dict, List

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.managers.logging_manager import get_logger

logger = get_logger(prefix="[Indexes]")

CLUB_ADMIN_INDEXES: List[Dict[str, Any]] = [
    # Principal collections
    {"collection": settings.ADMINS_COLLECTION, "index": [("email", 1)], "options": {"name": "admin_email_idx", "unique": True}},
    {"collection": settings.CLUBS_COLLECTION, "index": [("email", 1)], "options": {"name": "club_email_idx", "unique": True}},
    {"collection": settings.CLUBS_COLLECTION, "index": [("nom", 1)], "options": {"name": "club_nom_idx"}},
    {"collection": settings.CLUBS_COLLECTION, "index": [("statut", 1)], "options": {"name": "club_statut_idx"}},
    {"collection": settings.CLUBS_COLLECTION, "index": [("categorie", 1)], "options": {"name": "club_categorie_idx"}},
    {"collection": settings.USERS_COLLECTION, "index": [("email", 1)], "options": {"name": "user_email_idx", "unique": True}},
    {"collection": settings.USERS_COLLECTION, "index": [("role", 1)], "options": {"name": "user_role_idx"}},
    {"collection": settings.USERS_COLLECTION, "index": [("clubAssigne", 1)], "options": {"name": "user_club_idx"}},
    # Password reset lookups
    {
        "collection": settings.ADMINS_COLLECTION,
        "index": [("resetPasswordToken", 1)],
        "options": {"name": "admin_reset_token_idx", "sparse": True},
    },
    {
        "collection": settings.CLUBS_COLLECTION,
        "index": [("resetPasswordToken", 1)],
        "options": {"name": "club_reset_token_idx", "sparse": True},
    },
    {
        "collection": settings.USERS_COLLECTION,
        "index": [("resetPasswordToken", 1)],
        "options": {"name": "user_reset_token_idx", "sparse": True},
    },
    # Events
    {"collection": settings.EVENTS_COLLECTION, "index": [("clubId", 1)], "options": {"name": "event_club_idx"}},
    {"collection": settings.EVENTS_COLLECTION, "index": [("statut", 1)], "options": {"name": "event_statut_idx"}},
    {"collection": settings.EVENTS_COLLECTION, "index": [("dateDebut", 1)], "options": {"name": "event_date_idx"}},
    {"collection": settings.EVENTS_COLLECTION, "index": [("typeEvent", 1)], "options": {"name": "event_type_idx"}},
    {
        "collection": settings.EVENTS_COLLECTION,
        "index": [("titre", "text"), ("description", "text")],
        "options": {"name": "event_text_idx"},
    },
    # Audit log
    {"collection": settings.LOGS_COLLECTION, "index": [("createdAt", -1)], "options": {"name": "log_created_desc_idx"}},
    {
        "collection": settings.LOGS_COLLECTION,
        "index": [("userId", 1), ("action", 1)],
        "options": {"name": "log_actor_action_idx"},
    },
    {
        "collection": settings.LOGS_COLLECTION,
        "index": [("targetType", 1), ("targetId", 1)],
        "options": {"name": "log_target_idx"},
    },
]


async def create_club_admin_indexes():
    """
    Create all indexes listed in `CLUB_ADMIN_INDEXES`.

    Individual failures (for example an existing index with different options) are logged as
    warnings and do not stop the remaining indexes. Connectivity errors propagate.
    """
    logger.info("Creating club admin indexes...")

    created_count = 0
    for index_spec in CLUB_ADMIN_INDEXES:
        collection_name = index_spec["collection"]
        options = index_spec.get("options", {})

        collection = db_manager.get_collection(collection_name)
        try:
            await collection.create_index(index_spec["index"], **options)
            created_count += 1
            logger.debug("Created index %s on collection %s", options.get("name", "unnamed"), collection_name)
        except Exception as e:
            logger.warning(
                "Failed to create index %s on collection %s: %s", options.get("name", "unnamed"), collection_name, e
            )

    logger.info("Index creation completed: %d/%d indexes created", created_count, len(CLUB_ADMIN_INDEXES))
