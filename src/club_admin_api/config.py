"""
# Configuration Management Module

This module provides the **configuration system** for the Club Admin API. It is built on
**Pydantic Settings**, loading values from a configuration file and the process environment and
validating them once at import time.

## Configuration Loading Hierarchy

```
┌─────────────────────────────────────────────────────────────┐
│         Configuration Loading Hierarchy                     │
│  (Higher layers override lower layers)                      │
├─────────────────────────────────────────────────────────────┤
│  1. Environment Variables (HIGHEST PRIORITY)                │
│  2. CLUB_ADMIN_API_CONFIG_PATH (custom config file path)    │
│  3. .clubadmin File (Project Root)                          │
│  4. .env File (Project Root)                                │
│  5. Default Values (LOWEST PRIORITY)                        │
└─────────────────────────────────────────────────────────────┘
```

If no configuration file is found the application runs in **environment-only mode**.

## Secret Management

- `SECRET_KEY` (JWT signing key) is a `SecretStr` with no usable default. The
  `no_hardcoded_secrets` validator rejects empty values and obvious placeholders.
- `MONGODB_PASSWORD`, `MAIL_PASSWORD` and `DEFAULT_ADMIN_PASSWORD` are `SecretStr` so they never
  leak through `repr()` or logs.

## Configuration Groups

| Group | Purpose |
|-------|---------|
| **Server** | Host, port, debug mode, CORS origins |
| **JWT** | Signing key, algorithm, token lifetime (24h by default) |
| **MongoDB** | Connection URL, database name, timeouts, credentials, collection names |
| **Mail** | SMTP transport used for credentials and notification emails |
| **Password Reset** | Frontend link base and token lifetime |
| **Bootstrap** | Default administrator seeded on first start |
| **Logging** | Root log level |

## Usage

```python
from club_admin_api.config import settings

secret = settings.SECRET_KEY.get_secret_value()
admins = settings.ADMINS_COLLECTION
```

## Module Attributes

Attributes:
    CONFIG_FILENAME (str): Preferred config file name in the project root (`.clubadmin`).
    DEFAULT_ENV_FILENAME (str): Fallback config file name (`.env`).
    CONFIG_ENV_VAR (str): Environment variable pointing at a custom config file.
    PROJECT_ROOT (Path): Root directory used for config file discovery.
    CONFIG_PATH (Optional[str]): The discovered config file, if any.
    settings (Settings): Global settings instance.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
CONFIG_FILENAME: str = ".clubadmin"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "CLUB_ADMIN_API_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determine the configuration file path based on a fixed precedence order.

    1.  **Environment Variable**: `CLUB_ADMIN_API_CONFIG_PATH` (if set and the file exists).
    2.  **Project Config**: `.clubadmin` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, which triggers environment-variable-only mode.

    Returns:
        Optional[str]: The path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    project_path: Path = PROJECT_ROOT / CONFIG_FILENAME
    if project_path.exists():
        return str(project_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    Values come from environment variables or the discovered configuration file. Critical
    secrets and the MongoDB URL are validated at startup so a misconfigured deployment fails
    fast instead of serving requests with an unsigned or unreachable backend.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 3000
    DEBUG: bool = True
    CORS_ORIGINS: str = ""  # Comma separated extra origins

    # JWT configuration
    SECRET_KEY: SecretStr = SecretStr("")  # Must be set in .clubadmin or environment
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # MongoDB configuration
    MONGODB_URL: str = ""  # Must be set in .clubadmin or environment
    MONGODB_DATABASE: str = "club_admin"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[SecretStr] = None

    # Collection names
    ADMINS_COLLECTION: str = "admins"
    CLUBS_COLLECTION: str = "clubs"
    USERS_COLLECTION: str = "users"
    EVENTS_COLLECTION: str = "events"
    LOGS_COLLECTION: str = "logs"

    # Mail configuration
    MAIL_ENABLED: bool = False
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USE_TLS: bool = True
    MAIL_USER: Optional[str] = None
    MAIL_PASSWORD: Optional[SecretStr] = None
    MAIL_FROM_NAME: str = "ESPRIT Student"
    MAIL_TIMEOUT_SECONDS: int = 10

    # Password policy and reset
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    FRONTEND_URL: str = "http://localhost:5173"

    # Bootstrap administrator
    AUTO_CREATE_ADMIN: bool = True
    DEFAULT_ADMIN_EMAIL: str = "admin@esprit.tn"
    DEFAULT_ADMIN_PASSWORD: Optional[SecretStr] = None
    DEFAULT_ADMIN_NOM: str = "Admin"
    DEFAULT_ADMIN_PRENOM: str = "Système"

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("SECRET_KEY", mode="before")
    @classmethod
    def no_hardcoded_secrets(cls, v: Any, info: Any) -> Any:
        """
        Validate that critical secrets are not hardcoded or empty.

        Rejects values containing placeholder text like "change" or "0000", and empty or
        whitespace-only values.

        Raises:
            ValueError: If the value is empty, hardcoded, or insecure.
        """
        raw = v.get_secret_value() if isinstance(v, SecretStr) else v
        if not raw or "change" in str(raw).lower() or "0000" in str(raw) or not str(raw).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .clubadmin and not hardcoded!")
        return v

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """Validate that the MongoDB URL is not empty."""
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .clubadmin and not empty!")
        return v

    @field_validator("ACCESS_TOKEN_EXPIRE_MINUTES", "PASSWORD_RESET_EXPIRE_MINUTES", "PASSWORD_MIN_LENGTH")
    @classmethod
    def validate_positive_integers(cls, v: int, info: Any) -> int:
        """Ensure lifetimes and length limits are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return v

    @property
    def is_production(self) -> bool:
        """True when debug mode is off."""
        return not self.DEBUG

    @property
    def cors_origin_list(self) -> List[str]:
        """Extra CORS origins parsed from `CORS_ORIGINS`."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def mail_configured(self) -> bool:
        """Whether outbound mail can actually be sent."""
        return bool(self.MAIL_ENABLED and self.MAIL_USER and self.MAIL_PASSWORD)


# Global settings instance
settings: Settings = Settings()
