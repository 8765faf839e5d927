"""
# Error Taxonomy

Domain exceptions raised by services and dependencies. Each carries the HTTP status it maps to
and a human-readable (French, user-facing) message. `main.py` registers a single handler that
renders any `ClubAdminError` as `{"success": false, "message": ...}`.

| Exception | Status | Raised when |
|-----------|--------|-------------|
| `ValidationFailed` | 400 | Missing or malformed input, business rule violated |
| `Conflict` | 400 | Duplicate unique field (email) |
| `Unauthorized` / `TokenInvalid` / `TokenExpired` / `InvalidCredentials` | 401 | Authentication failed |
| `Forbidden` / `AccountDisabled` | 403 | Role, ownership, permission or status gate failed |
| `ResourceNotFound` / `PrincipalNotFound` | 404 | Entity absent |
| `InternalError` | 500 | Unexpected failure, message never leaks internals |
"""

from typing import Any, Dict, Optional


class ClubAdminError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Erreur interne du serveur"

    def __init__(self, message: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        body.update(self.extra)
        return body


class ValidationFailed(ClubAdminError):
    status_code = 400
    default_message = "Données invalides"


class Conflict(ClubAdminError):
    status_code = 400
    default_message = "Cet email est déjà utilisé"


class Unauthorized(ClubAdminError):
    status_code = 401
    default_message = "Token d'accès requis"


class TokenInvalid(Unauthorized):
    default_message = "Token invalide"


class TokenExpired(Unauthorized):
    default_message = "Token expiré"


class InvalidCredentials(Unauthorized):
    default_message = "Mot de passe incorrect"


class Forbidden(ClubAdminError):
    status_code = 403
    default_message = "Accès refusé - permissions insuffisantes"


class AccountDisabled(Forbidden):
    default_message = "Compte désactivé ou suspendu"


class ResourceNotFound(ClubAdminError):
    status_code = 404
    default_message = "Ressource non trouvée"


class PrincipalNotFound(ResourceNotFound):
    default_message = "Utilisateur non trouvé"


class InternalError(ClubAdminError):
    status_code = 500
