from bson import ObjectId
import pytest

from club_admin_api.errors import AccountDisabled, Conflict, InvalidCredentials, PrincipalNotFound, ValidationFailed
from club_admin_api.models.principal_models import UserType
from club_admin_api.services.identity_resolver import identity_resolver


@pytest.mark.asyncio
async def test_admin_wins_when_email_exists_in_several_collections(seed):
    admin = seed.admin(email="shared@esprit.tn")
    seed.club(email="shared@esprit.tn")

    principal = await identity_resolver.resolve("Shared@Esprit.tn ", seed.password)

    assert principal.id == str(admin["_id"])
    assert principal.user_type == UserType.ADMIN
    assert principal.source == "admins"


@pytest.mark.asyncio
async def test_user_checked_before_club(seed):
    user = seed.user(email="shared@esprit.tn")
    seed.club(email="shared@esprit.tn")

    principal = await identity_resolver.resolve("shared@esprit.tn", seed.password)

    assert principal.id == str(user["_id"])
    assert principal.user_type == UserType.USER
    assert principal.role == "club_manager"


@pytest.mark.asyncio
async def test_admin_role_user_is_tagged_admin(seed):
    seed.user(role="admin")

    principal = await identity_resolver.resolve("staff@esprit.tn", seed.password)

    assert principal.user_type == UserType.ADMIN
    assert principal.role == "admin"
    assert principal.actor_type == "Admin"


@pytest.mark.asyncio
async def test_pending_club_is_refused_before_password_check(seed):
    seed.club(statut="en_attente")

    with pytest.raises(AccountDisabled):
        await identity_resolver.resolve("club@esprit.tn", "wrong-password")


@pytest.mark.asyncio
async def test_admins_are_never_status_gated(seed):
    seed.admin(statut="suspendu")

    principal = await identity_resolver.resolve("admin@esprit.tn", seed.password)

    assert principal.is_admin


@pytest.mark.asyncio
async def test_wrong_password(seed):
    seed.club()

    with pytest.raises(InvalidCredentials):
        await identity_resolver.resolve("club@esprit.tn", "nope")


@pytest.mark.asyncio
async def test_unknown_email(seed):
    with pytest.raises(PrincipalNotFound) as exc:
        await identity_resolver.resolve("ghost@esprit.tn", "whatever")
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_successful_login_records_last_connection(seed, fake_db):
    club = seed.club()

    principal = await identity_resolver.resolve("club@esprit.tn", seed.password)

    assert fake_db.clubs.get(club["_id"])["derniereConnexion"] is not None
    assert "password" not in principal.user_data


@pytest.mark.asyncio
async def test_resolve_by_id_per_variant(seed):
    admin, club, user = seed.admin(), seed.club(), seed.user()

    assert (await identity_resolver.resolve_by_id(str(admin["_id"]), "admin")).source == "admins"
    assert (await identity_resolver.resolve_by_id(str(club["_id"]), "club")).source == "clubs"
    assert (await identity_resolver.resolve_by_id(str(user["_id"]), "user")).source == "users"
    assert await identity_resolver.resolve_by_id(str(club["_id"]), "user") is None


@pytest.mark.asyncio
async def test_resolve_by_id_falls_back_to_admin_role_users(seed):
    legacy = seed.user(role="admin", email="legacy@esprit.tn")

    principal = await identity_resolver.resolve_by_id(str(legacy["_id"]), "admin")

    assert principal is not None
    assert principal.source == "users"
    assert principal.is_admin


@pytest.mark.asyncio
async def test_resolve_by_id_rejects_bad_input(seed):
    assert await identity_resolver.resolve_by_id("not-an-id", "admin") is None
    assert await identity_resolver.resolve_by_id(str(ObjectId()), "club") is None
    assert await identity_resolver.resolve_by_id(str(ObjectId()), "superuser") is None


@pytest.mark.asyncio
async def test_email_uniqueness_spans_every_collection(seed):
    seed.user(email="taken@esprit.tn")

    with pytest.raises(Conflict) as exc:
        await identity_resolver.ensure_email_available("taken@esprit.tn", "Un club avec cet email existe déjà")
    assert exc.value.message == "Un club avec cet email existe déjà"

    await identity_resolver.ensure_email_available("free@esprit.tn")


def test_collection_for_type(fake_db):
    assert identity_resolver.collection_for_type("Club") is fake_db.clubs
    assert identity_resolver.collection_for_type(" admin ") is fake_db.admins
    assert identity_resolver.collection_for_type("user") is fake_db.users

    with pytest.raises(ValidationFailed):
        identity_resolver.collection_for_type("superuser")
    with pytest.raises(ValidationFailed):
        identity_resolver.collection_for_type(None)
