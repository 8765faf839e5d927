"""
# Audit Log Models

Vocabulary and shapes for the `logs` collection.

Log entries are **immutable** and store only ids plus type tags for the actor and target. Display
names are re-resolved at read time, so a renamed club shows its current name and a deleted one
shows a tombstone.

## Module Attributes

Attributes:
    TEST_LOG_NOTE (str): `details.note` marker carried by seeded test entries.
    ACTOR_TOMBSTONES (Dict[str, Dict[str, str]]): Display shown for actors that no longer exist.
    UNKNOWN_ACTOR_TOMBSTONE (Dict[str, str]): Display for an actor whose kind is not recognized.
    EVENT_TOMBSTONE (Dict[str, str]): Display shown for deleted events.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator, model_validator

TEST_LOG_NOTE = "Log créé pour test"


class LogAction(str, Enum):
    """Closed set of audited actions."""

    # Authentication
    LOGIN = "login"
    LOGOUT = "logout"
    PASSWORD_CHANGE = "password_change"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"

    # Clubs
    CREATE_CLUB = "create_club"
    UPDATE_CLUB = "update_club"
    DELETE_CLUB = "delete_club"
    APPROVE_CLUB = "approve_club"
    REJECT_CLUB = "reject_club"

    # Staff users
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"

    # Events
    APPROVE_EVENT = "approve_event"
    REJECT_EVENT = "reject_event"
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"

    # Profile
    UPDATE_PROFILE = "update_profile"
    COMPLETE_FIRST_LOGIN = "complete_first_login"

    # System
    SYSTEM_BACKUP = "system_backup"
    SYSTEM_MAINTENANCE = "system_maintenance"


class ActorType(str, Enum):
    """Actor tag stored in `userType`. Legacy entries may carry lowercase `admin`."""

    ADMIN = "Admin"
    CLUB = "Club"
    USER = "User"


class TargetType(str, Enum):
    CLUB = "Club"
    EVENT = "Event"
    USER = "User"
    ADMIN = "Admin"
    SYSTEM = "system"


def normalize_actor_type(value: Any) -> Optional[ActorType]:
    """
    Map any casing of an actor tag onto `ActorType`.

    `admin`, `Admin` and `ADMIN` all map to `ActorType.ADMIN`. Unknown tags return `None`.
    """
    if isinstance(value, ActorType):
        return value
    if not isinstance(value, str):
        return None
    for member in ActorType:
        if member.value.lower() == value.strip().lower():
            return member
    return None


def normalize_target_type(value: Any) -> Optional[TargetType]:
    if isinstance(value, TargetType):
        return value
    if not isinstance(value, str):
        return None
    for member in TargetType:
        if member.value.lower() == value.strip().lower():
            return member
    return None


ACTOR_TOMBSTONES: Dict[str, Dict[str, str]] = {
    ActorType.ADMIN.value: {"nom": "Admin", "prenom": "Supprimé", "email": "admin-supprime@esprit.tn"},
    ActorType.CLUB.value: {"nom": "Club", "prenom": "Supprimé", "email": "club-supprime@esprit.tn"},
    ActorType.USER.value: {"nom": "Utilisateur", "prenom": "Supprimé", "email": "user-supprime@esprit.tn"},
}
UNKNOWN_ACTOR_TOMBSTONE: Dict[str, str] = {
    "nom": "Utilisateur",
    "prenom": "Supprimé",
    "email": "utilisateur-supprime@esprit.tn",
}
EVENT_TOMBSTONE: Dict[str, str] = {"titre": "Événement supprimé"}


class LogFilter(BaseModel):
    """Filters accepted by the log listing endpoint."""

    action: Optional[LogAction] = None
    userId: Optional[str] = None
    dateFrom: Optional[datetime] = None
    dateTo: Optional[datetime] = None

    @field_validator("dateFrom", "dateTo")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and not v.tzinfo:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_range(self):
        if self.dateFrom and self.dateTo and self.dateFrom > self.dateTo:
            raise ValueError("dateFrom doit précéder dateTo")
        return self
