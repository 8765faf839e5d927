"""
# Identity Resolver

Finds the principal behind a set of credentials or a token subject across the three principal
collections.

## Lookup Order

Credentials are looked up in **admins, then users, then clubs**, by lowercased email. The first
collection holding the email wins, so an email present in two collections always resolves to the
earlier one. `ensure_email_available()` keeps that situation from arising on create paths.

## Status Gate

Admins are never status gated. Users and clubs authenticate only while `statut == "actif"`; the
gate runs before the password check, so a suspended account learns it is suspended even with a
wrong password.

## Legacy Admin Source

Older deployments stored administrators as users with `role=admin`. `resolve_by_id(..., "admin")`
falls back to that source when the `admins` collection has no match.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from club_admin_api.config import settings
from club_admin_api.database import db_manager
from club_admin_api.errors import AccountDisabled, Conflict, InvalidCredentials, PrincipalNotFound, ValidationFailed
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.common import SENSITIVE_FIELDS
from club_admin_api.models.principal_models import ACTIVE_STATUS, PrincipalContext, UserRole, UserType
from club_admin_api.utils.security_utils import to_object_id, verify_password

logger = get_logger(prefix="[IDENTITY]")


def _public_data(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in doc.items() if key not in SENSITIVE_FIELDS}


def build_context(doc: Dict[str, Any], source: str) -> PrincipalContext:
    """
    Derive the principal context for a document found in `source` (`admins|users|clubs`).

    Admin documents give `role=admin, userType=admin`; user documents keep their role and are
    tagged `admin` when that role is admin; club documents give `role=club, userType=club`.
    """
    if source == "admins":
        role, user_type = UserRole.ADMIN.value, UserType.ADMIN
    elif source == "users":
        role = doc.get("role") or UserRole.CLUB_MANAGER.value
        user_type = UserType.ADMIN if role == UserRole.ADMIN.value else UserType.USER
    else:
        role, user_type = "club", UserType.CLUB

    return PrincipalContext(
        id=str(doc["_id"]),
        email=doc.get("email", ""),
        role=role,
        user_type=user_type,
        user_data=_public_data(doc),
        source=source,
    )


class IdentityResolver:
    """Resolves credentials and token subjects to a `PrincipalContext`."""

    def _collections(self) -> Tuple[Tuple[str, str], ...]:
        return (
            ("admins", settings.ADMINS_COLLECTION),
            ("users", settings.USERS_COLLECTION),
            ("clubs", settings.CLUBS_COLLECTION),
        )

    async def find_by_email(self, email: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return `(source, document)` for the first collection holding `email`."""
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        for source, collection_name in self._collections():
            doc = await db_manager.get_collection(collection_name).find_one({"email": normalized})
            if doc:
                return source, doc
        return None

    async def resolve(self, email: str, password: str) -> PrincipalContext:
        """
        Authenticate credentials.

        Raises:
            PrincipalNotFound: No collection holds the email.
            AccountDisabled: The user or club is not `actif`.
            InvalidCredentials: The password does not match.
        """
        found = await self.find_by_email(email)
        if not found:
            logger.info("Login attempt for unknown email %s", email)
            raise PrincipalNotFound()

        source, doc = found
        if source != "admins" and doc.get("statut") != ACTIVE_STATUS:
            logger.warning("Login refused for %s account %s with status %s", source, doc["_id"], doc.get("statut"))
            raise AccountDisabled()

        if not verify_password(password, doc.get("password")):
            logger.info("Wrong password for %s account %s", source, doc["_id"])
            raise InvalidCredentials()

        if source != "admins":
            collection_name = dict(self._collections())[source]
            await db_manager.get_collection(collection_name).update_one(
                {"_id": doc["_id"]}, {"$set": {"derniereConnexion": datetime.now(timezone.utc)}}
            )

        return build_context(doc, source)

    async def _legacy_admin_user(self, oid: Any) -> Optional[Dict[str, Any]]:
        doc = await db_manager.get_collection(settings.USERS_COLLECTION).find_one(
            {"_id": oid, "role": UserRole.ADMIN.value}
        )
        if doc:
            logger.debug("Admin %s resolved through the users collection", oid)
        return doc

    async def resolve_by_id(self, principal_id: Any, user_type: Any) -> Optional[PrincipalContext]:
        """
        Load the principal a token refers to.

        Returns `None` for malformed ids, unknown user types and missing documents. Status is not
        checked here; the access gate does that.
        """
        oid = to_object_id(principal_id)
        if oid is None:
            return None
        tag = str(user_type or "").lower()

        if tag == UserType.ADMIN.value:
            doc = await db_manager.get_collection(settings.ADMINS_COLLECTION).find_one({"_id": oid})
            if doc:
                return build_context(doc, "admins")
            doc = await self._legacy_admin_user(oid)
            return build_context(doc, "users") if doc else None
        if tag == UserType.CLUB.value:
            doc = await db_manager.get_collection(settings.CLUBS_COLLECTION).find_one({"_id": oid})
            return build_context(doc, "clubs") if doc else None
        if tag == UserType.USER.value:
            doc = await db_manager.get_collection(settings.USERS_COLLECTION).find_one({"_id": oid})
            return build_context(doc, "users") if doc else None
        return None

    async def find_email_owner(self, email: str) -> Optional[str]:
        """Name of the collection already holding `email`, or `None`."""
        found = await self.find_by_email(email)
        return found[0] if found else None

    async def ensure_email_available(self, email: str, message: Optional[str] = None) -> None:
        """Raise `Conflict` (with `message` if given) when any principal collection already uses `email`."""
        owner = await self.find_email_owner(email)
        if owner:
            logger.info("Email %s already used in %s", email, owner)
            raise Conflict(message)

    def collection_for(self, principal: PrincipalContext):
        """Collection holding the document of an authenticated principal."""
        return db_manager.get_collection(dict(self._collections())[principal.source or "admins"])

    def collection_for_type(self, user_type: Optional[str]):
        """Collection of the principal kind named by `user_type` (`admin`, `club`, `user`)."""
        source = (user_type or "").strip().lower() + "s"
        name = dict(self._collections()).get(source)
        if name is None:
            raise ValidationFailed("Type d'utilisateur invalide")
        return db_manager.get_collection(name)


identity_resolver = IdentityResolver()
