"""
Password management: changes by the signed-in principal and resets by emailed link.

The raw token only ever travels in the email; the principal document stores its sha256 hash and
an expiry. Requesting a reset answers identically whether or not the email exists.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from club_admin_api.config import settings
from club_admin_api.errors import PrincipalNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.log_models import LogAction
from club_admin_api.models.principal_models import PrincipalContext
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.mail_service import mail_service
from club_admin_api.utils.security_utils import generate_reset_token, hash_password, hash_token, to_object_id, verify_password

logger = get_logger(prefix="[PASSWORD]")

GENERIC_RESET_MESSAGE = "Si cet email existe, un lien de réinitialisation a été envoyé"


def check_new_password(new_password: str, confirm_password: Optional[str] = None) -> None:
    if confirm_password is not None and new_password != confirm_password:
        raise ValidationFailed("Les mots de passe ne correspondent pas")
    if len(new_password or "") < settings.PASSWORD_MIN_LENGTH:
        raise ValidationFailed(
            f"Le mot de passe doit contenir au moins {settings.PASSWORD_MIN_LENGTH} caractères"
        )


class PasswordService:
    async def change_password(
        self, principal: PrincipalContext, current_password: str, new_password: str, ip_address: Optional[str] = None
    ) -> None:
        """
        Replace the signed-in principal's password after checking the current one.

        Raises:
            ValidationFailed: New password too short, or current password wrong.
            PrincipalNotFound: The principal document disappeared.
        """
        if not current_password or not new_password:
            raise ValidationFailed("Mot de passe actuel et nouveau mot de passe requis")
        if len(new_password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationFailed(
                f"Le nouveau mot de passe doit contenir au moins {settings.PASSWORD_MIN_LENGTH} caractères"
            )

        collection = identity_resolver.collection_for(principal)
        oid = to_object_id(principal.id)
        document = await collection.find_one({"_id": oid}, {"password": 1})
        if not document:
            raise PrincipalNotFound()
        if not verify_password(current_password, document.get("password")):
            raise ValidationFailed("Mot de passe actuel incorrect")

        await collection.update_one(
            {"_id": oid}, {"$set": {"password": hash_password(new_password), "updatedAt": datetime.now(timezone.utc)}}
        )
        await audit_log_service.log_password_change(oid, principal.actor_type, ip_address)

    def reset_link(self, token: str, user_type: str) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}&type={user_type}"

    async def request_reset(
        self, email: str, user_type: str, ip_address: Optional[str] = None, user_agent: Optional[str] = None
    ) -> None:
        """Store a hashed reset token and email the link. Silent when the email is unknown."""
        collection = identity_resolver.collection_for_type(user_type)
        normalized = email.strip().lower()
        principal = await collection.find_one({"email": normalized})
        if not principal:
            logger.info("Reset requested for unknown %s email %s", user_type, normalized)
            return

        raw_token, token_hash = generate_reset_token()
        expires = datetime.now(timezone.utc) + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await collection.update_one(
            {"_id": principal["_id"]},
            {"$set": {"resetPasswordToken": token_hash, "resetPasswordExpires": expires}},
        )

        name = principal.get("nom") or principal.get("prenom") or "Utilisateur"
        await mail_service.send_mail(
            normalized,
            "Réinitialisation de votre mot de passe - ESPRIT Student",
            f"Bonjour {name},\n\n"
            "Vous avez demandé la réinitialisation de votre mot de passe pour votre compte ESPRIT Student.\n"
            f"Utilisez le lien suivant : {self.reset_link(raw_token, user_type)}\n\n"
            f"Ce lien expirera dans {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
            "Si vous n'avez pas demandé cette réinitialisation, ignorez ce message.",
        )

        await audit_log_service.append(
            principal["_id"],
            user_type,
            LogAction.PASSWORD_RESET_REQUESTED,
            f"Demande de réinitialisation de mot de passe pour {normalized}",
            details={"email": normalized, "userType": user_type, "ipAddress": ip_address, "userAgent": user_agent},
        )

    async def _find_by_token(self, token: str, user_type: str, projection: Optional[Dict[str, int]] = None):
        collection = identity_resolver.collection_for_type(user_type)
        principal = await collection.find_one(
            {"resetPasswordToken": hash_token(token), "resetPasswordExpires": {"$gt": datetime.now(timezone.utc)}},
            projection,
        )
        if not principal:
            raise ValidationFailed("Token invalide ou expiré")
        return collection, principal

    async def verify_token(self, token: str, user_type: str) -> Dict[str, Any]:
        _, principal = await self._find_by_token(token, user_type, {"email": 1, "nom": 1, "prenom": 1})
        return {"email": principal.get("email"), "nom": principal.get("nom"), "prenom": principal.get("prenom")}

    async def reset_password(
        self,
        token: str,
        user_type: str,
        new_password: str,
        confirm_password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Replace the password of the principal holding a valid token and consume the token.

        Raises:
            ValidationFailed: Mismatched or short password, unknown user type, invalid or expired token.
        """
        check_new_password(new_password, confirm_password)
        collection, principal = await self._find_by_token(token, user_type)

        await collection.update_one(
            {"_id": principal["_id"]},
            {
                "$set": {"password": hash_password(new_password), "updatedAt": datetime.now(timezone.utc)},
                "$unset": {"resetPasswordToken": "", "resetPasswordExpires": ""},
            },
        )
        logger.info("Password reset completed for %s %s", user_type, principal["_id"])

        await audit_log_service.append(
            principal["_id"],
            user_type,
            LogAction.PASSWORD_RESET_COMPLETED,
            f"Mot de passe réinitialisé pour {principal.get('email')}",
            details={"email": principal.get("email"), "userType": user_type, "ipAddress": ip_address, "userAgent": user_agent},
        )


password_service = PasswordService()
