"""
# Access Control Dependencies

FastAPI dependencies enforcing the authentication and authorization rules of every protected
endpoint.

## Gate Order

`authorize(*roles)` runs these checks in order; the first failure ends the request:

1.  **Bearer token** present in `Authorization` (401 `Token d'accès requis`).
2.  **Token verification**: signature and expiry (401 `Token invalide` / `Token expiré`).
3.  **Principal still exists** (401 `Utilisateur non trouvé`).
4.  **Status**: non-admin principals must be `actif` (403 `Compte désactivé ou suspendu`).
5.  **Role**: when roles are given, the principal's `userType` must be one of them (403).

The resolved `PrincipalContext` is stored on `request.state.principal` and returned.

## Finer Grained Gates

- `ensure_own_resource(...)`: clubs may only touch their own club, staff users only their
  assigned club. Administrators bypass it.
- `check_permission(name)`: staff users need `name` in their permissions. Administrators bypass it.
- `optional_authorize`: resolves a principal when possible and never rejects.

## Usage

```python
club_editors = authorize("admin", "user")

@router.put("/{id}/profile")
async def update_club(
    id: str,
    principal: PrincipalContext = Depends(club_editors),
    _perm: PrincipalContext = Depends(check_permission("edit_club", gate=club_editors)),
    _own: PrincipalContext = Depends(ensure_own_resource(gate=club_editors)),
):
    ...
```

## Module Attributes

Attributes:
    bearer_scheme (HTTPBearer): Bearer extractor that leaves error reporting to the gate.
    authenticated (Callable): Dependency accepting any active principal.
"""

from typing import Any, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from club_admin_api.errors import AccountDisabled, ClubAdminError, Forbidden, PrincipalNotFound, Unauthorized
from club_admin_api.managers.logging_manager import get_logger
from club_admin_api.models.principal_models import ACTIVE_STATUS, PrincipalContext, UserType
from club_admin_api.services.identity_resolver import identity_resolver
from club_admin_api.services.token_service import token_service

logger = get_logger(prefix="[ACCESS]")

bearer_scheme = HTTPBearer(auto_error=False)

OWN_CLUB_MESSAGE = "Vous ne pouvez modifier que votre propre club"
ASSIGNED_CLUB_MESSAGE = "Vous ne pouvez modifier que le club qui vous est assigné"


def _as_http(error: ClubAdminError) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=error.status_code, detail=error.message, headers=headers)


async def resolve_principal(credentials: Optional[HTTPAuthorizationCredentials]) -> PrincipalContext:
    """
    Turn bearer credentials into an active principal.

    Raises:
        Unauthorized: Missing token, invalid or expired token, principal gone.
        AccountDisabled: Non-admin principal whose status is not `actif`.
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthorized()

    claims = token_service.verify(credentials.credentials)
    principal = await identity_resolver.resolve_by_id(claims.get("id"), claims.get("userType"))
    if principal is None:
        raise Unauthorized(PrincipalNotFound.default_message)

    if principal.user_type != UserType.ADMIN and principal.user_data.get("statut") != ACTIVE_STATUS:
        raise AccountDisabled()
    return principal


def authorize(*roles: str) -> Callable[..., Any]:
    """
    Build a dependency that authenticates the request and optionally restricts `userType`.

    Args:
        *roles: Accepted `userType` values (`admin`, `club`, `user`). Empty accepts any principal.
    """

    async def dependency(
        request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
    ) -> PrincipalContext:
        try:
            principal = await resolve_principal(credentials)
        except ClubAdminError as e:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, e.message)
            raise _as_http(e)

        if roles and principal.user_type.value not in roles:
            logger.info("Role %s refused on %s %s", principal.user_type.value, request.method, request.url.path)
            raise _as_http(Forbidden())

        request.state.principal = principal
        return principal

    return dependency


# Any authenticated principal; shared so FastAPI resolves it once per request
authenticated = authorize()


async def optional_authorize(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[PrincipalContext]:
    """Principal for requests carrying a valid token, `None` otherwise. Never rejects."""
    if credentials is None:
        return None
    try:
        principal = await resolve_principal(credentials)
    except ClubAdminError as e:
        logger.debug("Optional authentication ignored: %s", e.message)
        return None
    request.state.principal = principal
    return principal


async def _requested_club_id(request: Request, path_params: tuple) -> Optional[str]:
    for name in path_params:
        value = request.path_params.get(name)
        if value:
            return str(value)
    if request.method in ("POST", "PUT", "PATCH"):
        try:
            body = await request.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("clubId"):
            return str(body["clubId"])
    return None


def ensure_own_resource(*path_params: str, gate: Optional[Callable[..., Any]] = None) -> Callable[..., Any]:
    """
    Build a dependency restricting non-admin principals to their own club.

    The club id is read from the first present path parameter in `path_params` (default `id`,
    `clubId`), then from `clubId` in a JSON body. Requests naming no club pass. `gate` is the
    route's own `authorize(...)` dependency so the principal is resolved once per request.
    """
    names = path_params or ("id", "clubId")

    async def dependency(
        request: Request, principal: PrincipalContext = Depends(gate or authenticated)
    ) -> PrincipalContext:
        if principal.is_admin:
            return principal

        club_id = await _requested_club_id(request, names)
        if club_id is None:
            return principal

        if principal.user_type == UserType.CLUB and club_id != principal.id:
            raise _as_http(Forbidden(OWN_CLUB_MESSAGE))
        if principal.user_type == UserType.USER and club_id != principal.assigned_club_id:
            raise _as_http(Forbidden(ASSIGNED_CLUB_MESSAGE))
        return principal

    return dependency


def check_permission(name: str, gate: Optional[Callable[..., Any]] = None) -> Callable[..., Any]:
    """Build a dependency requiring permission `name`, granted implicitly to administrators."""

    async def dependency(principal: PrincipalContext = Depends(gate or authenticated)) -> PrincipalContext:
        if principal.role == "admin" or name in principal.permissions:
            return principal
        raise _as_http(Forbidden(f"Permission '{name}' requise"))

    return dependency
