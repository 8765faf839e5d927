"""
# Principal Models

Types describing the three authenticable variants (**Admin**, **Club**, **User**) and the
principal context attached to authenticated requests.

## Domain Model Overview

Each variant lives in its own collection with no shared base document:

- **Admin** (`admins`): platform administrators. Never status gated.
- **Club** (`clubs`): a student club account managing its own profile and events.
- **User** (`users`): staff with a `role` (`admin|moderateur|club_manager`), a permission set and
  an optional assigned club. Users with `role=admin` are treated as administrators.

`userType` is the variant tag seen by the access gate (`admin|club|user`); `role` is the finer
permission tier. An admin-role user therefore carries `userType=admin` and `role=admin`.

## Module Attributes

Attributes:
    ACTIVE_STATUS (str): The only status that lets non-admin principals authenticate.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

ACTIVE_STATUS = "actif"


class UserType(str, Enum):
    """Variant tag carried in tokens and principal context."""

    ADMIN = "admin"
    CLUB = "club"
    USER = "user"


class UserRole(str, Enum):
    """Role of a staff `User` document."""

    ADMIN = "admin"
    MODERATEUR = "moderateur"
    CLUB_MANAGER = "club_manager"


class Permission(str, Enum):
    """Fine-grained permissions granted to staff users."""

    CREATE_CLUB = "create_club"
    EDIT_CLUB = "edit_club"
    DELETE_CLUB = "delete_club"
    CREATE_EVENT = "create_event"
    EDIT_EVENT = "edit_event"
    DELETE_EVENT = "delete_event"
    VALIDATE_EVENT = "validate_event"
    MANAGE_USERS = "manage_users"


class UserStatus(str, Enum):
    ACTIF = "actif"
    INACTIF = "inactif"
    SUSPENDU = "suspendu"


class PrincipalContext(BaseModel):
    """
    Authenticated principal attached to a request by the access gate.

    Attributes:
        id: String form of the principal's ObjectId.
        email: Login email.
        role: `admin`, `club`, or the staff user's role.
        user_type: Variant tag (`admin|club|user`).
        user_data: The principal document without password or reset fields.
        source: Collection kind the document was loaded from (`admins|users|clubs`).
    """

    id: str
    email: str
    role: str
    user_type: UserType
    user_data: Dict[str, Any] = Field(default_factory=dict)
    source: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value or self.user_type == UserType.ADMIN

    @property
    def actor_type(self) -> str:
        """Tag recorded as `userType` in audit log entries."""
        return {UserType.ADMIN: "Admin", UserType.CLUB: "Club"}.get(self.user_type, "User")

    @property
    def permissions(self) -> List[str]:
        return list(self.user_data.get("permissions") or [])

    @property
    def assigned_club_id(self) -> Optional[str]:
        club_id = self.user_data.get("clubAssigne")
        return str(club_id) if club_id else None

    def token_claims(self) -> Dict[str, Any]:
        """Identity claims embedded in the session token."""
        return {"id": self.id, "role": self.role, "userType": self.user_type.value, "email": self.email}

    def to_public(self) -> Dict[str, Any]:
        """Shape returned by the login and verify endpoints."""
        public = {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "userType": self.user_type.value,
            "nom": self.user_data.get("nom"),
            "prenom": self.user_data.get("prenom"),
        }
        if self.user_type == UserType.CLUB:
            public.update(
                {
                    "premiereConnexion": self.user_data.get("premiereConnexion"),
                    "profileComplet": self.user_data.get("profileComplet"),
                    "statut": self.user_data.get("statut"),
                }
            )
        return public


class UserCreateRequest(BaseModel):
    """Payload for an administrator creating a staff user."""

    email: EmailStr
    nom: str = Field(..., min_length=1, max_length=100)
    prenom: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.CLUB_MANAGER
    telephone: Optional[str] = None
    permissions: List[Permission] = Field(default_factory=list)
    clubAssigne: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdateRequest(BaseModel):
    """Partial update of a staff user; omitted fields are left untouched."""

    nom: Optional[str] = Field(None, min_length=1, max_length=100)
    prenom: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    telephone: Optional[str] = None
    statut: Optional[UserStatus] = None
    permissions: Optional[List[Permission]] = None
    clubAssigne: Optional[str] = None


def new_user_document(payload: UserCreateRequest, password_hash: str, club_id: Any = None) -> Dict[str, Any]:
    """Build the stored document for a new staff user."""
    now = datetime.now(timezone.utc)
    return {
        "email": payload.email,
        "password": password_hash,
        "nom": payload.nom,
        "prenom": payload.prenom,
        "role": payload.role.value,
        "telephone": payload.telephone,
        "permissions": [p.value for p in payload.permissions],
        "statut": UserStatus.ACTIF.value,
        "clubAssigne": club_id,
        "derniereConnexion": None,
        "createdAt": now,
        "updatedAt": now,
    }
