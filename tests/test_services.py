import smtplib
from unittest.mock import MagicMock, patch

import pytest

from club_admin_api.errors import ValidationFailed
from club_admin_api.models.club_models import ClubStatusUpdate
from club_admin_api.models.principal_models import UserCreateRequest
from club_admin_api.services.admin_service import AdminService
from club_admin_api.services.club_service import club_service
from club_admin_api.services.identity_resolver import build_context
from club_admin_api.services.mail_service import MailService
from club_admin_api.services.user_service import user_service
from club_admin_api.utils.security_utils import verify_password


@pytest.fixture
def mock_mail_settings():
    with patch("club_admin_api.services.mail_service.settings") as mock:
        mock.mail_configured = True
        mock.MAIL_HOST = "smtp.esprit.tn"
        mock.MAIL_PORT = 587
        mock.MAIL_USE_TLS = True
        mock.MAIL_USER = "noreply@esprit.tn"
        mock.MAIL_PASSWORD = MagicMock()
        mock.MAIL_PASSWORD.get_secret_value.return_value = "smtp-password"
        mock.MAIL_FROM_NAME = "ESPRIT Student"
        mock.MAIL_TIMEOUT_SECONDS = 5
        yield mock


# Mail


@pytest.mark.asyncio
async def test_mail_disabled_is_a_quiet_no_op():
    with patch("club_admin_api.services.mail_service.settings") as mock_settings, patch(
        "club_admin_api.services.mail_service.smtplib.SMTP"
    ) as mock_smtp:
        mock_settings.mail_configured = False

        assert await MailService().send_mail("club@esprit.tn", "Sujet", "Texte") is False
        mock_smtp.assert_not_called()


@pytest.mark.asyncio
async def test_mail_delivery(mock_mail_settings):
    with patch("club_admin_api.services.mail_service.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value.__enter__.return_value

        assert await MailService().send_mail("club@esprit.tn", "Sujet", "Texte") is True

        mock_smtp.assert_called_once_with("smtp.esprit.tn", 587, timeout=5)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("noreply@esprit.tn", "smtp-password")
        assert server.sendmail.call_args[0][1] == ["club@esprit.tn"]


@pytest.mark.asyncio
async def test_mail_failure_never_raises(mock_mail_settings):
    with patch("club_admin_api.services.mail_service.smtplib.SMTP") as mock_smtp:
        mock_smtp.return_value.__enter__.return_value.sendmail.side_effect = smtplib.SMTPRecipientsRefused({})

        assert await MailService().send_mail("club@esprit.tn", "Sujet", "Texte") is False


@pytest.mark.asyncio
async def test_mail_encoding_failure_never_raises(mock_mail_settings):
    with patch("club_admin_api.services.mail_service.smtplib.SMTP") as mock_smtp:
        mock_smtp.return_value.__enter__.return_value.login.side_effect = UnicodeEncodeError(
            "ascii", "mot-de-passe-é", 13, 14, "ordinal not in range(128)"
        )

        assert await MailService().send_mail("club@esprit.tn", "Sujet", "Texte") is False


# Default administrator


@pytest.mark.asyncio
async def test_default_admin_is_seeded_once(fake_db):
    with patch("club_admin_api.services.admin_service.settings") as mock_settings:
        mock_settings.ADMINS_COLLECTION = "admins"
        mock_settings.USERS_COLLECTION = "users"
        mock_settings.DEFAULT_ADMIN_EMAIL = "Admin@Esprit.tn"
        mock_settings.DEFAULT_ADMIN_PASSWORD = MagicMock()
        mock_settings.DEFAULT_ADMIN_PASSWORD.get_secret_value.return_value = "Bootstrap123"
        mock_settings.DEFAULT_ADMIN_NOM = "Admin"
        mock_settings.DEFAULT_ADMIN_PRENOM = "Système"

        service = AdminService()
        created = await service.ensure_default_admin()
        again = await service.ensure_default_admin()

    assert created is not None
    assert again is None
    assert len(fake_db.admins.docs) == 1
    stored = fake_db.admins.docs[0]
    assert stored["email"] == "admin@esprit.tn"
    assert verify_password("Bootstrap123", stored["password"])


@pytest.mark.asyncio
async def test_legacy_admin_user_counts_as_existing(fake_db, seed):
    seed.user(role="admin")

    assert await AdminService().ensure_default_admin() is None
    assert fake_db.admins.docs == []


@pytest.mark.asyncio
async def test_no_seeding_without_password(fake_db):
    with patch("club_admin_api.services.admin_service.settings") as mock_settings:
        mock_settings.ADMINS_COLLECTION = "admins"
        mock_settings.USERS_COLLECTION = "users"
        mock_settings.DEFAULT_ADMIN_PASSWORD = None

        assert await AdminService().ensure_default_admin() is None
    assert fake_db.admins.docs == []


# Staff users


@pytest.mark.asyncio
async def test_create_user_with_unknown_club(fake_db, seed, mock_mail):
    admin = build_context(seed.admin(), "admins")
    payload = UserCreateRequest(email="staff@esprit.tn", nom="Ben Ali", prenom="Sami", clubAssigne="65a1b2c3d4e5f60718293a4b")

    with pytest.raises(ValidationFailed) as exc:
        await user_service.create_user(payload, admin)

    assert exc.value.message == "Club assigné non trouvé"
    assert fake_db.users.docs == []
    mock_mail.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_user(fake_db, seed, mock_mail):
    admin = build_context(seed.admin(), "admins")
    club = seed.club()
    payload = UserCreateRequest(
        email="Staff@Esprit.tn",
        nom="Ben Ali",
        prenom="Sami",
        permissions=["edit_club"],
        clubAssigne=str(club["_id"]),
    )

    user, password = await user_service.create_user(payload, admin)

    stored = fake_db.users.docs[0]
    assert stored["email"] == "staff@esprit.tn"
    assert stored["clubAssigne"] == club["_id"]
    assert stored["permissions"] == ["edit_club"]
    assert verify_password(password, stored["password"])
    assert "password" not in user
    assert user["club"]["nom"] == "Robotique"
    assert fake_db.logs.docs[-1]["action"] == "create_user"


@pytest.mark.asyncio
async def test_admin_resets_user_password(fake_db, seed, mock_mail):
    admin = build_context(seed.admin(), "admins")
    user = seed.user()

    password = await user_service.reset_password(str(user["_id"]), admin)

    assert verify_password(password, fake_db.users.get(user["_id"])["password"])
    assert not verify_password(seed.password, fake_db.users.get(user["_id"])["password"])
    assert password in mock_mail.await_args.args[2]


# Clubs


@pytest.mark.asyncio
async def test_club_activation(fake_db, seed, mock_mail):
    admin = build_context(seed.admin(), "admins")
    club = seed.club(statut="en_attente", valide=False)

    result = await club_service.update_status(str(club["_id"]), ClubStatusUpdate(statut="actif"), admin)

    stored = fake_db.clubs.get(club["_id"])
    assert result["statut"] == "actif"
    assert stored["valide"] is True
    assert stored["valideePar"] == fake_db.admins.docs[0]["_id"]
    assert mock_mail.await_args.args[1] == "Votre club a été activé"
    assert fake_db.logs.docs[-1]["action"] == "approve_club"


@pytest.mark.asyncio
async def test_club_deletion_cascades(fake_db, seed):
    admin = build_context(seed.admin(), "admins")
    club = seed.club()
    other = seed.club(email="other@esprit.tn")
    fake_db.events.seed(titre="A", clubId=club["_id"])
    fake_db.events.seed(titre="B", clubId=other["_id"])
    user = seed.user(clubAssigne=club["_id"])

    await club_service.delete_club(str(club["_id"]), admin)

    assert fake_db.clubs.get(club["_id"]) is None
    assert [event["titre"] for event in fake_db.events.docs] == ["B"]
    assert "clubAssigne" not in fake_db.users.get(user["_id"])
    assert fake_db.logs.docs[-1]["action"] == "delete_club"
