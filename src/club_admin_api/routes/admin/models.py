"""
# Admin Models

Query parsing and response shapes of the administrator endpoints.

## Key Models

### 1. Log Filter Parameters
- **Purpose**: Turns the query string of `GET /api/admin/logs` into a validated `LogFilter`.
- **Fields**: `action`, `userId`, `dateFrom`, `dateTo`.
- **Errors**: An unknown action or an inverted date range answers 400 instead of 422.

### 2. Maintenance Results
- **Purpose**: Documents the counters returned by test-log purge and orphan cleanup.

### 3. Administrator Accounts
- **InitialSetupRequest**: First administrator created through `/api/admin-management/initial-setup`.
- **AdminPasswordResetRequest**: Target email and optional new password; a password is generated
  when omitted.

## Usage Example

```python
@router.get("/logs")
async def list_logs(filters: LogFilter = Depends(log_filter_params)):
    ...
```
"""

from datetime import datetime
from typing import Optional, TypedDict

from fastapi import Query
from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

from club_admin_api.errors import ValidationFailed
from club_admin_api.models.log_models import LogFilter


class PurgeResult(TypedDict):
    deletedCount: int


class OrphanCleanupResult(TypedDict):
    totalLogsChecked: int
    orphanLogsFound: int
    orphanLogsDeleted: int


def log_filter_params(
    action: Optional[str] = Query(None, description="Action tag, e.g. `login` or `approve_club`"),
    userId: Optional[str] = Query(None, description="Actor id"),
    dateFrom: Optional[datetime] = Query(None, description="Lower bound on `createdAt`"),
    dateTo: Optional[datetime] = Query(None, description="Upper bound on `createdAt`"),
) -> LogFilter:
    """Build the log filter, mapping validation problems onto `ValidationFailed`."""
    try:
        return LogFilter(action=action or None, userId=userId or None, dateFrom=dateFrom, dateTo=dateTo)
    except ValidationError as e:
        errors = e.errors()
        message = str(errors[0].get("msg", "Filtres invalides")) if errors else "Filtres invalides"
        raise ValidationFailed(message.removeprefix("Value error, "))


class InitialSetupRequest(BaseModel):
    nom: str = Field(..., min_length=1, max_length=50)
    prenom: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("nom", "prenom")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Tous les champs sont requis")
        return v


class AdminPasswordResetRequest(BaseModel):
    email: EmailStr
    newPassword: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()
