from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from bson import ObjectId
import pytest

from club_admin_api.models.log_models import TEST_LOG_NOTE, LogAction, LogFilter
from club_admin_api.services.audit_log_service import AuditLogService, ReferenceResolver, ResolutionCache
from club_admin_api.services.identity_resolver import identity_resolver


@pytest.fixture
def service(fake_db):
    return AuditLogService()


def _entry(fake_db, user_id, user_type, action="login", minutes_ago=0, **fields):
    return fake_db.logs.seed(
        userId=user_id,
        userType=user_type,
        action=action,
        description="entrée",
        targetType=fields.pop("targetType", "system"),
        targetId=fields.pop("targetId", None),
        details=fields.pop("details", {}),
        createdAt=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        **fields,
    )


# Write path


@pytest.mark.asyncio
async def test_append_normalizes_actor_tag(service, fake_db):
    admin_id = ObjectId()

    inserted = await service.append(str(admin_id), "admin", LogAction.LOGIN, "Connexion réussie", "system")

    assert inserted is not None
    entry = fake_db.logs.docs[0]
    assert entry["userId"] == admin_id
    assert entry["userType"] == "Admin"
    assert entry["targetType"] == "system"
    assert entry["createdAt"].tzinfo is not None


@pytest.mark.asyncio
async def test_append_refuses_unknown_action(service, fake_db):
    assert await service.append(str(ObjectId()), "Admin", "drop_database", "?") is None
    assert fake_db.logs.docs == []


@pytest.mark.asyncio
async def test_append_refuses_unknown_actor(service, fake_db):
    assert await service.append(str(ObjectId()), "Robot", "login", "?") is None
    assert await service.append("not-an-id", "Admin", "login", "?") is None
    assert fake_db.logs.docs == []


@pytest.mark.asyncio
async def test_append_swallows_storage_failures(service, fake_db):
    fake_db.logs.fail_inserts = True

    assert await service.log_login(str(ObjectId()), "Club", "127.0.0.1", "pytest") is None


@pytest.mark.asyncio
async def test_status_helpers_pick_approve_or_reject(service, fake_db):
    club_id, event_id, admin_id = ObjectId(), ObjectId(), ObjectId()

    await service.log_club_status_update(admin_id, club_id, "Robotique", "actif")
    await service.log_club_status_update(admin_id, club_id, "Robotique", "suspendu")
    await service.log_event_status_update(admin_id, event_id, "Hackathon", "valide")
    await service.log_event_status_update(admin_id, event_id, "Hackathon", "rejete", "Dates")

    assert [entry["action"] for entry in fake_db.logs.docs] == [
        "approve_club",
        "reject_club",
        "approve_event",
        "reject_event",
    ]
    assert fake_db.logs.docs[-1]["details"]["reason"] == "Dates"


# Read path


@pytest.mark.asyncio
async def test_deleted_actor_resolves_to_tombstone_once(service, fake_db):
    missing_club = ObjectId()
    for minutes in range(5):
        _entry(fake_db, missing_club, "Club", minutes_ago=minutes)

    cache = ResolutionCache()
    with patch("club_admin_api.services.audit_log_service.ReferenceResolver", return_value=ReferenceResolver(cache)):
        result = await service.list_logs()

    assert result["totalCount"] == 5
    assert all(
        log["utilisateur"] == {"nom": "Club", "prenom": "Supprimé", "email": "club-supprime@esprit.tn"}
        for log in result["logs"]
    )
    assert cache.lookups == 1
    assert fake_db.clubs.find_one_calls == 1


@pytest.mark.asyncio
async def test_existing_actor_is_resolved_from_its_document(service, fake_db, seed):
    club = seed.club()
    _entry(fake_db, club["_id"], "Club")

    logs = await service.recent_logs()

    assert logs[0]["utilisateur"] == {"nom": "Robotique", "prenom": "Club", "email": "club@esprit.tn"}
    assert logs[0]["userId"] == str(club["_id"])


@pytest.mark.asyncio
async def test_legacy_lowercase_admin_tag(service, fake_db, seed):
    admin = seed.admin(nom="Trabelsi", prenom="Ines")
    _entry(fake_db, admin["_id"], "admin", minutes_ago=1)
    _entry(fake_db, admin["_id"], "Admin")

    cache = ResolutionCache()
    with patch("club_admin_api.services.audit_log_service.ReferenceResolver", return_value=ReferenceResolver(cache)):
        logs = (await service.list_logs())["logs"]

    assert [log["userType"] for log in logs] == ["Admin", "Admin"]
    assert logs[0]["utilisateur"] == logs[1]["utilisateur"] == {
        "nom": "Trabelsi",
        "prenom": "Ines",
        "email": "admin@esprit.tn",
    }
    assert cache.lookups == 1


@pytest.mark.asyncio
async def test_targets(service, fake_db, seed):
    admin = seed.admin()
    event = fake_db.events.seed(titre="Hackathon")
    _entry(fake_db, admin["_id"], "Admin", action="approve_event", minutes_ago=2, targetType="Event", targetId=event["_id"])
    _entry(fake_db, admin["_id"], "Admin", action="delete_event", minutes_ago=1, targetType="Event", targetId=ObjectId())
    _entry(fake_db, admin["_id"], "Admin", action="logout")

    logs = await service.recent_logs()

    assert logs[0]["cible"] is None
    assert logs[1]["cible"] == {"titre": "Événement supprimé"}
    assert logs[2]["cible"] == {"titre": "Hackathon"}


@pytest.mark.asyncio
async def test_lookup_failure_becomes_tombstone():
    cache = ResolutionCache()
    loader = AsyncMock(side_effect=RuntimeError("connection reset"))

    display = await cache.resolve(("User", "abc"), loader, {"nom": "Utilisateur", "prenom": "Supprimé"})
    again = await cache.resolve(("User", "abc"), loader, {"nom": "Utilisateur", "prenom": "Supprimé"})

    assert display == again == {"nom": "Utilisateur", "prenom": "Supprimé"}
    assert loader.await_count == 1
    assert ("User", "abc") in cache.misses


@pytest.mark.asyncio
async def test_unknown_actor_kind_gets_generic_tombstone(service, fake_db):
    _entry(fake_db, ObjectId(), "Robot")

    logs = await service.recent_logs()

    assert logs[0]["utilisateur"]["email"] == "utilisateur-supprime@esprit.tn"


@pytest.mark.asyncio
async def test_filters_and_pagination(service, fake_db, seed):
    admin, club = seed.admin(), seed.club()
    for _ in range(3):
        await service.log_login(admin["_id"], "Admin")
    await service.log_club_creation(admin["_id"], club["_id"], "Robotique")
    await service.log_login(club["_id"], "Club")

    logins = await service.list_logs(LogFilter(action="login"), page=1, limit=2)

    assert logins["totalCount"] == 4
    assert logins["totalPages"] == 2
    assert logins["hasNext"] and not logins["hasPrevious"]
    assert len(logins["logs"]) == 2
    assert all(log["action"] == "login" for log in logins["logs"])

    by_club = await service.list_logs(LogFilter(userId=str(club["_id"])))
    assert [log["action"] for log in by_club["logs"]] == ["login"]

    future = await service.list_logs(LogFilter(dateFrom=datetime.now(timezone.utc) + timedelta(hours=1)))
    assert future["totalCount"] == 0


@pytest.mark.asyncio
async def test_listed_entry_matches_what_was_appended(service, fake_db, seed):
    admin, club = seed.admin(), seed.club()
    details = {"clubName": "Robotique", "newStatus": "suspendu", "reason": "Dossier incomplet"}
    await service.log_login(admin["_id"], "Admin")
    await service.append(
        admin["_id"], "Admin", LogAction.REJECT_CLUB, "Statut du club Robotique changé en suspendu", "Club", club["_id"], details
    )
    await service.log_club_status_update(admin["_id"], club["_id"], "Robotique", "actif")

    result = await service.list_logs(LogFilter(action="reject_club", userId=str(admin["_id"])))

    assert result["totalCount"] == 1
    entry = result["logs"][0]
    assert entry["action"] == "reject_club"
    assert entry["description"] == "Statut du club Robotique changé en suspendu"
    assert entry["details"] == details
    assert entry["cible"] == {"nom": "Robotique", "prenom": "Club", "email": "club@esprit.tn"}


def test_filter_accepts_mixed_naive_and_aware_bounds():
    filters = LogFilter(dateFrom="2024-01-01T00:00:00Z", dateTo="2024-02-01T00:00:00")

    assert filters.dateTo == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert filters.dateFrom < filters.dateTo


def test_filter_rejects_inverted_range():
    now = datetime.now(timezone.utc)

    with pytest.raises(ValueError):
        LogFilter(dateFrom=now, dateTo=now - timedelta(days=1))


# Maintenance


@pytest.mark.asyncio
async def test_test_logs_are_purged_without_touching_real_entries(service, fake_db, seed):
    admin = seed.admin()
    await service.log_login(admin["_id"], "Admin")

    created = await service.create_test_logs(admin["_id"])
    deleted = await service.delete_test_logs()

    assert created == 10
    assert deleted == 10
    assert [entry["action"] for entry in fake_db.logs.docs] == ["login"]
    assert await service.delete_test_logs() == 0


@pytest.mark.asyncio
async def test_orphan_cleanup_is_idempotent(service, fake_db, seed):
    admin, club = seed.admin(), seed.club()
    _entry(fake_db, admin["_id"], "Admin")
    _entry(fake_db, admin["_id"], "admin")
    _entry(fake_db, club["_id"], "Club")
    _entry(fake_db, ObjectId(), "Club")
    _entry(fake_db, ObjectId(), "User")

    first = await service.clean_orphan_logs()
    second = await service.clean_orphan_logs()

    assert first == {"totalLogsChecked": 5, "orphanLogsFound": 2, "orphanLogsDeleted": 2}
    assert second == {"totalLogsChecked": 3, "orphanLogsFound": 0, "orphanLogsDeleted": 0}
    assert len(fake_db.logs.docs) == 3


@pytest.mark.asyncio
async def test_test_log_note_marks_seeded_entries(service, fake_db, seed):
    admin = seed.admin()

    await service.create_test_logs(admin["_id"])

    assert all(entry["details"]["note"] == TEST_LOG_NOTE for entry in fake_db.logs.docs)


@pytest.mark.asyncio
async def test_orphan_cleanup_keeps_legacy_admin_users(service, fake_db, seed):
    legacy_admin = seed.user(role="admin", email="legacy@esprit.tn")
    principal = await identity_resolver.resolve("legacy@esprit.tn", seed.password)
    await service.log_login(principal.id, principal.actor_type)
    _entry(fake_db, ObjectId(), "Admin", minutes_ago=5)
    _entry(fake_db, seed.user(email="manager@esprit.tn")["_id"], "Admin", minutes_ago=5)

    logs = await service.recent_logs()
    assert logs[0]["utilisateur"]["email"] == "legacy@esprit.tn"

    result = await service.clean_orphan_logs()

    assert result == {"totalLogsChecked": 3, "orphanLogsFound": 2, "orphanLogsDeleted": 2}
    assert [entry["userId"] for entry in fake_db.logs.docs] == [legacy_admin["_id"]]


@pytest.mark.asyncio
async def test_orphan_cleanup_treats_failed_checks_as_orphans(service, fake_db, seed):
    club = seed.club()
    _entry(fake_db, club["_id"], "Club")

    with patch.object(fake_db.clubs, "count_documents", new=AsyncMock(side_effect=RuntimeError("timeout"))):
        result = await service.clean_orphan_logs()

    assert result["orphanLogsDeleted"] == 1
