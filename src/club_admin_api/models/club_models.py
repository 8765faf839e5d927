"""
# Club & Event Models

This module defines the **data structures** for student clubs and their events: enums for the
closed vocabularies, nested profile sections, request payloads and the helpers that build and
maintain stored documents.

## Domain Model Overview

1.  **Club**: a club account created by an administrator. It starts `en_attente`, is activated
    by an administrator and completes its profile at first login.
2.  **Event**: proposed by a club (or an administrator on its behalf), reviewed by an
    administrator, then published once `valide`.

## Key Rules

### 1. Profile Completeness
`profileComplet` is **derived**, never accepted from clients. It is recomputed on every profile
write by `compute_profile_complet()`: presentation, at least one objective, president name and
email, and a contact phone number must all be present.

### 2. Nested Merge on Update
Profile sections (`president`, `contact`, `detailsComplets`, `reseauxSociaux`) are merged key by
key into the stored section instead of replacing it, so partial forms do not erase data.

### 3. Event Lifecycle
- **Editable** only while `en_attente` or `rejete`. Editing a rejected event sends it back to
  `en_attente`.
- **Dates**: `dateDebut` must precede `dateFin`, and a new event cannot start in the past.

## Usage Examples

```python
payload = EventCreateRequest(
    titre="Hackathon IA",
    description="24h de code",
    dateDebut=datetime(2030, 3, 1, 9, tzinfo=timezone.utc),
    dateFin=datetime(2030, 3, 2, 9, tzinfo=timezone.utc),
    lieu="Bloc E",
    typeEvent=EventType.COMPETITION,
)
```

## Module Attributes

Attributes:
    CLUB_PROFILE_FIELDS (Tuple[str]): Fields a club or administrator may update on a profile.
    FIRST_LOGIN_FIELDS (Tuple[str]): Fields accepted when completing the first login.
    DRAFT_FIELDS (Tuple[str]): Fields accepted when saving a first-login draft.
    MERGED_SECTIONS (Tuple[str]): Nested sections merged key by key on update.
    FIRST_LOGIN_REQUIRED_FIELDS (Tuple[str]): Dotted paths required to complete the first login.
    EVENT_EDITABLE_FIELDS (Tuple[str]): Fields accepted when editing an event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

CLUB_PROFILE_FIELDS: Tuple[str, ...] = (
    "nom",
    "description",
    "membres",
    "president",
    "fondation",
    "activites",
    "lienRecrutement",
    "reseauxSociaux",
    "siteWeb",
    "detailsComplets",
    "contact",
    "categorie",
    "images",
    "imageCouverture",
)
FIRST_LOGIN_FIELDS: Tuple[str, ...] = tuple(f for f in CLUB_PROFILE_FIELDS if f not in ("nom", "categorie", "lienRecrutement"))
DRAFT_FIELDS: Tuple[str, ...] = tuple(f for f in FIRST_LOGIN_FIELDS if f not in ("images", "imageCouverture"))
MERGED_SECTIONS: Tuple[str, ...] = ("detailsComplets", "reseauxSociaux", "contact", "president")
FIRST_LOGIN_REQUIRED_FIELDS: Tuple[str, ...] = (
    "description",
    "president.nom",
    "president.prenom",
    "president.email",
    "contact.telephone",
    "membres",
    "detailsComplets.presentation",
    "detailsComplets.objectifs",
)
EVENT_EDITABLE_FIELDS: Tuple[str, ...] = (
    "titre",
    "description",
    "dateDebut",
    "dateFin",
    "heureDebut",
    "heureFin",
    "lieu",
    "adresse",
    "capaciteMax",
    "typeEvent",
    "public",
    "gratuit",
    "prix",
    "lienFormulaire",
    "lienMeet",
    "contact",
    "medias",
    "tags",
)


class ClubCategory(str, Enum):
    """Club categories used for filtering and dashboard charts."""

    SPORTIF = "sportif"
    CULTUREL = "culturel"
    TECHNOLOGIQUE = "technologique"
    SOCIAL = "social"
    ACADEMIQUE = "academique"
    ENTREPRENEURIAL = "entrepreneurial"
    AUTRE = "Autre"


class ClubStatus(str, Enum):
    """
    Club account status.

    *   **EN_ATTENTE**: Created, not yet activated. Cannot log in.
    *   **ACTIF**: Can log in and create events.
    *   **INACTIF** / **SUSPENDU** / **REJETE**: Blocked from logging in.
    """

    EN_ATTENTE = "en_attente"
    ACTIF = "actif"
    INACTIF = "inactif"
    SUSPENDU = "suspendu"
    REJETE = "rejete"


class EventType(str, Enum):
    CONFERENCE = "conference"
    ATELIER = "atelier"
    COMPETITION = "competition"
    SORTIE = "sortie"
    FORMATION = "formation"
    REUNION = "reunion"
    CEREMONIE = "ceremonie"
    AUTRE = "autre"


class EventAudience(str, Enum):
    ETUDIANTS = "etudiants"
    PROFESSEURS = "professeurs"
    EXTERNE = "externe"
    MIXTE = "mixte"


class EventStatus(str, Enum):
    """
    Event review status.

    *   **EN_ATTENTE**: Waiting for an administrator.
    *   **VALIDE**: Approved and publicly visible.
    *   **REJETE**: Refused, can be edited and resubmitted.
    *   **ANNULE** / **TERMINE**: Closed.
    """

    EN_ATTENTE = "en_attente"
    VALIDE = "valide"
    REJETE = "rejete"
    ANNULE = "annule"
    TERMINE = "termine"


EDITABLE_EVENT_STATUSES = (EventStatus.EN_ATTENTE.value, EventStatus.REJETE.value)


# Nested profile sections


class President(BaseModel):
    nom: Optional[str] = None
    prenom: Optional[str] = None
    email: Optional[EmailStr] = None
    telephone: Optional[str] = None


class ClubContact(BaseModel):
    telephone: Optional[str] = None
    adresse: Optional[str] = None
    email: Optional[EmailStr] = None


class SocialLinks(BaseModel):
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None


class ClubDetails(BaseModel):
    nomComplet: Optional[str] = None
    presentation: Optional[str] = Field(None, max_length=2000)
    objectifs: Optional[List[str]] = None
    activitesDetaillees: Optional[List[str]] = None
    valeurs: Optional[List[str]] = None
    benefices: Optional[List[str]] = None
    logo: Optional[str] = None
    localisation: Optional[str] = None
    horairesReunion: Optional[str] = None


# Request payloads


class ClubCreateRequest(BaseModel):
    """Administrator payload for creating a club account."""

    nom: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    categorie: ClubCategory
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ClubStatusUpdate(BaseModel):
    statut: ClubStatus
    raisonRejet: Optional[str] = None

    @field_validator("statut")
    @classmethod
    def not_pending(cls, v: ClubStatus) -> ClubStatus:
        if v == ClubStatus.EN_ATTENTE:
            raise ValueError("Statut invalide")
        return v


class ClubProfileUpdate(BaseModel):
    """Partial profile update. Only fields sent by the client are applied."""

    nom: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    membres: Optional[int] = Field(None, ge=0)
    president: Optional[President] = None
    fondation: Optional[datetime] = None
    activites: Optional[List[str]] = None
    lienRecrutement: Optional[str] = None
    reseauxSociaux: Optional[SocialLinks] = None
    siteWeb: Optional[str] = None
    detailsComplets: Optional[ClubDetails] = None
    contact: Optional[ClubContact] = None
    categorie: Optional[ClubCategory] = None
    images: Optional[List[str]] = Field(None, max_length=3)
    imageCouverture: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly provided by the client, in storage form."""
        changes = self.model_dump(exclude_unset=True, exclude_none=True)
        if self.categorie is not None:
            changes["categorie"] = self.categorie.value
        return changes


class EventCreateRequest(BaseModel):
    """Payload for proposing an event. `clubId` is required only when an administrator creates it."""

    clubId: Optional[str] = None
    titre: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    dateDebut: datetime
    dateFin: datetime
    heureDebut: Optional[str] = None
    heureFin: Optional[str] = None
    lieu: str = Field(..., min_length=1)
    adresse: Optional[str] = None
    capaciteMax: Optional[int] = Field(None, ge=1)
    typeEvent: EventType
    public: EventAudience = EventAudience.ETUDIANTS
    gratuit: bool = True
    prix: float = Field(0, ge=0)
    lienFormulaire: Optional[str] = None
    lienMeet: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("dateDebut", "dateFin")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def check_dates(self):
        """End must follow start, and the event cannot start in the past."""
        if self.dateDebut >= self.dateFin:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        if self.dateDebut < datetime.now(timezone.utc):
            raise ValueError("La date de début ne peut pas être dans le passé")
        return self


class EventUpdateRequest(BaseModel):
    titre: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    dateDebut: Optional[datetime] = None
    dateFin: Optional[datetime] = None
    heureDebut: Optional[str] = None
    heureFin: Optional[str] = None
    lieu: Optional[str] = None
    adresse: Optional[str] = None
    capaciteMax: Optional[int] = Field(None, ge=1)
    typeEvent: Optional[EventType] = None
    public: Optional[EventAudience] = None
    gratuit: Optional[bool] = None
    prix: Optional[float] = Field(None, ge=0)
    lienFormulaire: Optional[str] = None
    lienMeet: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("dateDebut", "dateFin")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and not v.tzinfo:
            return v.replace(tzinfo=timezone.utc)
        return v


class EventStatusUpdate(BaseModel):
    """Administrator decision on an event."""

    statut: EventStatus
    raisonRejet: Optional[str] = None

    @field_validator("statut")
    @classmethod
    def reviewable(cls, v: EventStatus) -> EventStatus:
        if v not in (EventStatus.VALIDE, EventStatus.REJETE, EventStatus.ANNULE):
            raise ValueError("Statut invalide")
        return v


# Document helpers


def compute_profile_complet(club: Dict[str, Any]) -> bool:
    """Whether a club document carries every field required for a complete profile."""
    details = club.get("detailsComplets") or {}
    president = club.get("president") or {}
    contact = club.get("contact") or {}
    return bool(
        details.get("presentation")
        and details.get("objectifs")
        and president.get("nom")
        and president.get("email")
        and contact.get("telephone")
    )


def merge_profile_changes(
    club: Dict[str, Any], changes: Dict[str, Any], allowed: Tuple[str, ...] = CLUB_PROFILE_FIELDS
) -> Dict[str, Any]:
    """
    Apply allowed profile changes to a club document.

    Returns the `$set` payload: merged nested sections, scalar replacements and the recomputed
    `profileComplet` flag. `club` itself is not modified.
    """
    update: Dict[str, Any] = {}
    for key, value in changes.items():
        if key not in allowed:
            continue
        if key in MERGED_SECTIONS and isinstance(value, dict):
            update[key] = {**(club.get(key) or {}), **value}
        else:
            update[key] = value

    merged = {**club, **update}
    update["profileComplet"] = compute_profile_complet(merged)
    return update


def missing_required_fields(payload: Dict[str, Any], required: Tuple[str, ...] = FIRST_LOGIN_REQUIRED_FIELDS) -> List[str]:
    """Dotted paths from `required` that are absent or empty in `payload`."""
    missing = []
    for path in required:
        value: Any = payload
        for key in path.split("."):
            value = value.get(key) if isinstance(value, dict) else None
        if not value:
            missing.append(path)
    return missing


def new_club_document(payload: ClubCreateRequest, password_hash: str) -> Dict[str, Any]:
    """Stored document for a club created by an administrator."""
    now = datetime.now(timezone.utc)
    club = {
        "email": payload.email,
        "password": password_hash,
        "nom": payload.nom,
        "categorie": payload.categorie.value,
        "description": payload.description or "",
        "membres": 0,
        "president": {},
        "contact": {"email": payload.email},
        "detailsComplets": {"objectifs": []},
        "reseauxSociaux": {},
        "images": [],
        "statut": ClubStatus.EN_ATTENTE.value,
        "valide": False,
        "premiereConnexion": True,
        "stats": {"nombreEvents": 0, "nombreEventsValides": 0, "derniereActivite": now},
        "createdAt": now,
        "updatedAt": now,
    }
    club["profileComplet"] = compute_profile_complet(club)
    return club


def new_event_document(payload: EventCreateRequest, club_id: Any) -> Dict[str, Any]:
    """Stored document for a newly proposed event, always `en_attente`."""
    now = datetime.now(timezone.utc)
    event = payload.model_dump(exclude={"clubId"})
    event.update(
        {
            "clubId": club_id,
            "typeEvent": payload.typeEvent.value,
            "public": payload.public.value,
            "statut": EventStatus.EN_ATTENTE.value,
            "raisonRejet": None,
            "valideBy": None,
            "dateValidation": None,
            "stats": {"vues": 0, "inscriptions": 0, "partages": 0},
            "visible": True,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    return event
