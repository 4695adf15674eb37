"""
# Configuration Management Module

Settings for the Club Sphere API, built on **Pydantic Settings**.

## Loading Hierarchy

Higher layers override lower layers:

1. **Environment variables** (highest priority)
2. **`CLUB_SPHERE_CONFIG_PATH`**: explicit path to a dotenv-style file
3. **`.env`** in the project root
4. **Defaults** declared on `Settings` (lowest priority)

If no file is found the application runs in environment-only mode.

## Configuration Groups

| Group | Settings |
|-------|----------|
| **Server** | `HOST`, `PORT`, `DEBUG`, `LOG_LEVEL`, `CORS_ORIGINS`, `METRICS_ENABLED` |
| **MongoDB** | `MONGODB_URL`, `MONGODB_DATABASE`, connection timeouts |
| **Identity** | `FIREBASE_ADMIN_KEY`, `FIREBASE_PROJECT_ID` |
| **Payments** | `RAZORPAY_KEY_ID`, `RAZORPAY_KEY_SECRET`, `PAYMENT_CURRENCY`, `SITE_DOMAIN` |

## Usage

```python
from club_sphere.config import settings

settings.MONGODB_URL
settings.RAZORPAY_KEY_SECRET.get_secret_value()
settings.identity_project_id
```

Secrets are typed as `SecretStr` so they never end up in logs by accident.
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "CLUB_SPHERE_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path.

    Checks, in order:
    1.  **Environment Variable**: `CLUB_SPHERE_CONFIG_PATH` (if set and the file exists).
    2.  **Dotenv Config**: `.env` file in the project root directory.
    3.  **Fallback**: `None`, which means environment variables only.

    Returns:
        Optional[str]: The path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=False)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, log level and CORS origins.
    *   **Database**: MongoDB connection string, database name and timeouts.
    *   **Identity**: Firebase service-account blob used to verify ID tokens.
    *   **Payments**: Razorpay credentials, charge currency and the public site origin
        used to build post-payment redirect URLs.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"
    METRICS_ENABLED: bool = True

    # MongoDB configuration
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "club_sphere_db"
    MONGODB_CONNECTION_TIMEOUT: int = 10000
    MONGODB_SERVER_SELECTION_TIMEOUT: int = 5000

    # Identity provider (Firebase service account JSON)
    FIREBASE_ADMIN_KEY: SecretStr = SecretStr("")
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Payment gateway
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: SecretStr = SecretStr("")
    PAYMENT_CURRENCY: str = "USD"
    SITE_DOMAIN: str = "http://localhost:5173"

    @field_validator("MONGODB_URL", mode="before")
    @classmethod
    def no_empty_urls(cls, v: Any, info: Any) -> Any:
        """
        Validates that the MongoDB URL is not empty.

        Raises:
            ValueError: If the URL is empty or whitespace.
        """
        if not v or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .env and not empty!")
        return v

    @field_validator("MONGODB_CONNECTION_TIMEOUT", "MONGODB_SERVER_SELECTION_TIMEOUT", "PORT", mode="before")
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        """Validates that numeric settings are positive integers."""
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @field_validator("SITE_DOMAIN", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def identity_project_id(self) -> Optional[str]:
        """
        Project id the identity tokens must be issued for.

        Uses `FIREBASE_PROJECT_ID` when set, otherwise the `project_id` field of the
        `FIREBASE_ADMIN_KEY` service-account blob.

        Raises:
            ValueError: If the service-account blob is present but is not valid JSON.
        """
        if self.FIREBASE_PROJECT_ID:
            return self.FIREBASE_PROJECT_ID
        raw = self.FIREBASE_ADMIN_KEY.get_secret_value()
        if not raw:
            return None
        try:
            service_account = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_ADMIN_KEY is not a valid service account JSON document") from e
        return service_account.get("project_id")

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings: Settings = Settings()
