from datetime import datetime, timedelta, timezone

from pydantic import ValidationError
import pytest

from club_admin_api.models.club_models import (
    ClubCreateRequest,
    ClubStatusUpdate,
    EventCreateRequest,
    EventStatusUpdate,
    compute_profile_complet,
    merge_profile_changes,
    missing_required_fields,
    new_club_document,
)
from club_admin_api.models.common import build_pagination, serialize_document
from club_admin_api.models.log_models import ActorType, TargetType, normalize_actor_type, normalize_target_type

COMPLETE_PROFILE = {
    "detailsComplets": {"presentation": "Club de robotique", "objectifs": ["Compétitions"]},
    "president": {"nom": "Haddad", "prenom": "Yassine", "email": "president@esprit.tn"},
    "contact": {"telephone": "+216 70 000 001"},
}


def test_profile_completeness():
    assert compute_profile_complet(COMPLETE_PROFILE)
    assert not compute_profile_complet({**COMPLETE_PROFILE, "contact": {}})
    assert not compute_profile_complet({})


def test_merge_keeps_untouched_nested_keys():
    club = {"president": {"nom": "Haddad", "telephone": "1234"}, "nom": "Robotique"}

    update = merge_profile_changes(club, {"president": {"nom": "Jaziri"}, "password": "x", "membres": 30})

    assert update["president"] == {"nom": "Jaziri", "telephone": "1234"}
    assert update["membres"] == 30
    assert "password" not in update
    assert update["profileComplet"] is False
    assert club["president"]["nom"] == "Haddad"


def test_missing_required_fields():
    payload = {**COMPLETE_PROFILE, "description": "Robots", "membres": 12}

    assert missing_required_fields(payload) == []
    assert missing_required_fields({"description": "Robots"}) == [
        "president.nom",
        "president.prenom",
        "president.email",
        "contact.telephone",
        "membres",
        "detailsComplets.presentation",
        "detailsComplets.objectifs",
    ]


def test_new_club_starts_pending():
    payload = ClubCreateRequest(nom="Robotique", email=" Robotique@Esprit.TN ", categorie="technologique")

    club = new_club_document(payload, "$2b$10$hash")

    assert club["email"] == "robotique@esprit.tn"
    assert club["statut"] == "en_attente"
    assert club["valide"] is False
    assert club["premiereConnexion"] is True
    assert club["profileComplet"] is False
    assert club["stats"]["nombreEventsValides"] == 0


def test_status_updates_reject_pending():
    with pytest.raises(ValidationError):
        ClubStatusUpdate(statut="en_attente")
    with pytest.raises(ValidationError):
        EventStatusUpdate(statut="en_attente")
    assert EventStatusUpdate(statut="annule").statut.value == "annule"


def test_event_dates():
    start = datetime.now(timezone.utc) + timedelta(days=1)
    base = {"titre": "Atelier", "description": "Soudure", "lieu": "Bloc E", "typeEvent": "atelier"}

    event = EventCreateRequest(**base, dateDebut=start.replace(tzinfo=None), dateFin=start + timedelta(hours=1))
    assert event.dateDebut.tzinfo is not None

    with pytest.raises(ValidationError):
        EventCreateRequest(**base, dateDebut=start, dateFin=start - timedelta(hours=1))


def test_actor_and_target_normalization():
    assert normalize_actor_type("admin") == ActorType.ADMIN
    assert normalize_actor_type(" CLUB ") == ActorType.CLUB
    assert normalize_actor_type("Robot") is None
    assert normalize_actor_type(None) is None
    assert normalize_target_type("event") == TargetType.EVENT
    assert normalize_target_type("System") == TargetType.SYSTEM


def test_serialize_document_hides_secrets():
    now = datetime(2026, 1, 5, tzinfo=timezone.utc)

    data = serialize_document({"_id": "abc", "password": "hash", "resetPasswordToken": "t", "createdAt": now})

    assert data == {"_id": "abc", "createdAt": "2026-01-05T00:00:00+00:00"}


def test_pagination_block():
    assert build_pagination(2, 10, 5, 15) == {"current": 2, "total": 2, "count": 5, "totalItems": 15}
