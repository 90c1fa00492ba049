"""
core/config.py -- AdminDesk configuration, read once via pydantic-settings.

Every environment lookup in the project goes through get_settings(); other
modules never read os.environ themselves (the CLI's ADMINDESK_PASSWORD
prompt override is the one exception).

Settings maps each field to the upper-cased env var of the same name
(secret_key -> SECRET_KEY) and also reads a local .env file. get_settings()
is wrapped in lru_cache, so the first call fixes the values for the process.
The after-validator resolves the DEBUG-dependent defaults: the signing key
and the cookie Secure flag.

Security notes:
  SECRET_KEY must be at least 32 characters in every mode.

  With DEBUG=true and no SECRET_KEY, a fixed placeholder is used. It is
  public, so anyone can mint tokens under it; without DEBUG the app
  refuses to start instead.

  SEED_ADMIN_PASSWORD defaults to the documented bootstrap value. Rotate
  it after first start (python main.py set-password admin).

Layer rule: core/ is the kernel. Nothing here imports from api/, web/,
auth/, or audit/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("admindesk.config")

# Development-only signing key. Never valid in production (see validator).
DEV_SECRET_KEY = "admindesk-dev-secret-change-this-before-deploying"

DEFAULT_ADMIN_PASSWORD = "admin123"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'admindesk.db'}"


class Settings(BaseSettings):
    """AdminDesk settings, read from the environment and an optional .env.

    Every field has a default, so tests construct Settings() with no .env
    present. validate_secret_key() applies the deployment rules once the
    fields are resolved.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either substitutes the dev placeholder or raises.
    secret_key: str = ""
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # None = "secure in production": resolved to `not debug` by the validator.
    secure_cookies: Optional[bool] = None
    token_expire_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    db_pool_size: int = Field(default=10, ge=1)
    db_pool_timeout: float = Field(default=30.0, gt=0)

    # ------------------------------------------------------------------
    # Bootstrap account
    # ------------------------------------------------------------------

    seed_admin_username: str = "admin"
    seed_admin_email: str = "admin@dashboard.local"
    seed_admin_password: str = DEFAULT_ADMIN_PASSWORD

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:8000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy and resolve secure_cookies.

        Dev mode (DEBUG=true): fall back to DEV_SECRET_KEY with a warning.
            Tokens survive restarts but can be forged by anyone who has
            read the source -- acceptable for local dev only.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing or equal to the dev placeholder.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = DEV_SECRET_KEY
                logger.warning(
                    "WARNING: Using the development SECRET_KEY placeholder. "
                    "Tokens signed with it can be forged -- never deploy this configuration."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is not set. Provide a key of at least 32 characters "
                    "via the environment or .env, "
                    "or set DEBUG=true for local development."
                )
        elif self.secret_key == DEV_SECRET_KEY and not self.debug:
            raise ValueError("SECRET_KEY must not be the development placeholder in production mode.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY is too short; use at least 32 characters.")
        if self.secure_cookies is None:
            self.secure_cookies = not self.debug
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance.

    Tests that need different environment values either call
    get_settings.cache_clear() or use Settings.model_copy(update=...).
    """
    return Settings()
