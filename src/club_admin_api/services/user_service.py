"""
Staff user management (administrators only): listing, creation with a generated password,
updates, deletion, password reset and role/status statistics.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import PrincipalNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.common import build_pagination, serialize_document, serialize_documents
from club_admin_api.models.log_models import LogAction, TargetType
from club_admin_api.models.principal_models import (
    PrincipalContext,
    UserCreateRequest,
    UserStatus,
    UserUpdateRequest,
    new_user_document,
)
from club_admin_api.services.audit_log_service import audit_log_service
from club_admin_api.services.club_service import search_filter
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.mail_service import mail_service
from club_admin_api.utils.security_utils import generate_password, hash_password, to_object_id

logger = get_logger(prefix="[USERS]")


def _users():
    return db_manager.get_collection(settings.USERS_COLLECTION)


class UserService:
    async def _assignable_club(self, club_id: Optional[str]) -> Any:
        """ObjectId of an existing club to assign, `None` when unassigned."""
        if not club_id:
            return None
        oid = to_object_id(club_id)
        club = await db_manager.get_collection(settings.CLUBS_COLLECTION).find_one({"_id": oid}, {"_id": 1}) if oid else None
        if not club:
            raise ValidationFailed("Club assigné non trouvé")
        return oid

    async def _with_club(self, user: Dict[str, Any]) -> Dict[str, Any]:
        data = serialize_document(user)
        if user.get("clubAssigne"):
            club = await db_manager.get_collection(settings.CLUBS_COLLECTION).find_one(
                {"_id": user["clubAssigne"]}, {"nom": 1, "categorie": 1}
            )
            data["club"] = serialize_document(club) if club else None
        return data

    async def get_user_document(self, user_id: Any) -> Dict[str, Any]:
        oid = to_object_id(user_id)
        user = await _users().find_one({"_id": oid}) if oid else None
        if not user:
            raise PrincipalNotFound()
        return user

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        statut: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = search_filter(search, ("nom", "prenom", "email"))
        if role:
            query["role"] = role
        if statut:
            query["statut"] = statut

        total = await _users().count_documents(query)
        users = await _users().find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit).to_list(length=limit)
        return {"users": serialize_documents(users), "pagination": build_pagination(page, limit, len(users), total)}

    async def get_user(self, user_id: Any) -> Dict[str, Any]:
        return await self._with_club(await self.get_user_document(user_id))

    async def create_user(self, payload: UserCreateRequest, admin: PrincipalContext) -> Tuple[Dict[str, Any], str]:
        """
        Create a staff user and email the generated password.

        Raises:
            Conflict: The email is already used by any principal.
            ValidationFailed: The assigned club does not exist.
        """
        await identity_resolver.ensure_email_available(payload.email, "Un utilisateur avec cet email existe déjà")
        club_oid = await self._assignable_club(payload.clubAssigne)

        password = generate_password()
        document = new_user_document(payload, hash_password(password), club_oid)
        result = await _users().insert_one(document)
        document["_id"] = result.inserted_id
        logger.info("User %s created by admin %s", result.inserted_id, admin.id)

        await mail_service.send_mail(
            payload.email,
            "Création de votre compte - Esprit Student",
            f"Bonjour {payload.prenom} {payload.nom},\n\nVotre compte utilisateur a été créé.\n\n"
            f"Vos identifiants :\nEmail: {payload.email}\nMot de passe: {password}\nRôle: {payload.role.value}\n\n"
            "Veuillez vous connecter et changer votre mot de passe.\n\nCordialement,\nL'équipe Esprit Student",
        )
        await audit_log_service.log_user_action(
            admin.id,
            admin.actor_type,
            LogAction.CREATE_USER,
            f"Création de l'utilisateur: {payload.email}",
            TargetType.USER,
            result.inserted_id,
            {"role": payload.role.value},
        )
        return await self._with_club(document), password

    async def update_user(self, user_id: Any, payload: UserUpdateRequest, admin: PrincipalContext) -> Dict[str, Any]:
        user = await self.get_user_document(user_id)
        changes = payload.model_dump(exclude_unset=True)
        update: Dict[str, Any] = {}
        for key in ("nom", "prenom", "telephone"):
            if key in changes and (changes[key] or key == "telephone"):
                update[key] = changes[key]
        if payload.role is not None:
            update["role"] = payload.role.value
        if payload.statut is not None:
            update["statut"] = payload.statut.value
        if payload.permissions is not None:
            update["permissions"] = [p.value for p in payload.permissions]
        if "clubAssigne" in changes:
            current = str(user["clubAssigne"]) if user.get("clubAssigne") else None
            if payload.clubAssigne and payload.clubAssigne != current:
                update["clubAssigne"] = await self._assignable_club(payload.clubAssigne)
            elif not payload.clubAssigne:
                update["clubAssigne"] = None

        update["updatedAt"] = datetime.now(timezone.utc)
        await _users().update_one({"_id": user["_id"]}, {"$set": update})
        await audit_log_service.log_user_action(
            admin.id,
            admin.actor_type,
            LogAction.UPDATE_USER,
            f"Modification de l'utilisateur: {user.get('email')}",
            TargetType.USER,
            user["_id"],
            {"updatedFields": sorted(key for key in update if key != "updatedAt")},
        )
        return await self._with_club({**user, **update})

    async def delete_user(self, user_id: Any, admin: PrincipalContext) -> None:
        user = await self.get_user_document(user_id)
        await _users().delete_one({"_id": user["_id"]})
        logger.info("User %s deleted by admin %s", user["_id"], admin.id)
        await audit_log_service.log_user_action(
            admin.id,
            admin.actor_type,
            LogAction.DELETE_USER,
            f"Suppression de l'utilisateur: {user.get('email')}",
            TargetType.USER,
            user["_id"],
        )

    async def reset_password(self, user_id: Any, admin: PrincipalContext) -> str:
        """Replace a user's password with a generated one and email it. Returns the new password."""
        user = await self.get_user_document(user_id)
        password = generate_password()
        await _users().update_one(
            {"_id": user["_id"]},
            {"$set": {"password": hash_password(password), "updatedAt": datetime.now(timezone.utc)}},
        )
        await mail_service.send_mail(
            user["email"],
            "Réinitialisation de votre mot de passe - Esprit Student",
            f"Bonjour {user.get('prenom', '')} {user.get('nom', '')},\n\nVotre mot de passe a été réinitialisé.\n\n"
            f"Nouveau mot de passe: {password}\n\nVeuillez vous connecter et changer votre mot de passe.\n\n"
            "Cordialement,\nL'équipe Esprit Student",
        )
        await audit_log_service.log_user_action(
            admin.id,
            admin.actor_type,
            LogAction.UPDATE_USER,
            f"Réinitialisation du mot de passe de {user.get('email')}",
            TargetType.USER,
            user["_id"],
            {"passwordReset": True},
        )
        return password

    async def stats(self) -> Dict[str, Any]:
        by_role = await (
            _users().aggregate([{"$group": {"_id": "$role", "count": {"$sum": 1}}}, {"$sort": {"count": -1}}]).to_list(length=None)
        )
        return {
            "total": await _users().count_documents({}),
            "active": await _users().count_documents({"statut": UserStatus.ACTIF.value}),
            "inactive": await _users().count_documents({"statut": UserStatus.INACTIF.value}),
            "suspended": await _users().count_documents({"statut": UserStatus.SUSPENDU.value}),
            "byRole": by_role,
        }


user_service = UserService()
