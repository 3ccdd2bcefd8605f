"""Application settings loaded from environment with safe fallbacks.

Environment precedence:
- Loads `.env` from the repo root before reading process env vars.
- Most values are pulled straight from env; booleans go through `_env_flag` so `"0"/"false"` work.
- CORS is normalized from `CORS_ORIGINS` (comma-separated) with a conservative default allowlist.
- Gateway URLs are optional: a missing classifier URL makes scans fail as unavailable,
  a missing compliance URL routes every listing through the local keyword heuristic.

Key expectations (defaults in parentheses):
- `APP_ENV` controls settings class selection (`production` default).
- Database: `DATABASE_URL` or `TEST_DATABASE_URL`, with `_test` suffix enforced in tests.
- Auth: `SECRET_KEY` / `ALGORITHM` (`HS256`) / `ACCESS_TOKEN_EXPIRE_MINUTES` (`60 * 24 * 14`).
- Storage: `UPLOADS_ROOT` (repo `uploads/`) served under `UPLOADS_BASE_URL` (`/uploads`).
"""

import logging
import os
from pathlib import Path
from typing import ClassVar, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Base directory of the project; used for resolving relative paths reliably.
# (__file__ is ecoscan/core/config/settings.py, so we need to traverse three levels up)
BASE_DIR = Path(__file__).resolve().parents[3]


load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)

DEFAULT_PROHIBITED_TERMS = (
    "weapon",
    "gun",
    "drug",
    "stolen",
    "fake",
    "counterfeit",
    "illegal",
)


def _env_flag(name: str, *, default: Optional[bool] = False) -> Optional[bool]:
    """
    Helper to parse boolean-like environment variables.
    """
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Behavior highlights:
    - Loads `.env` at repo root, then lets process env override.
    - Enforces safe DB URLs (prefers `DATABASE_URL`, ensures `_test` suffix for test DBs).
    - Comma-separated lists (CORS origins, prohibited terms) are kept as raw strings and
      normalized through properties so env parsing never trips on JSON decoding.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: Optional[str] = os.getenv("DATABASE_URL")
    test_database_url: Optional[str] = os.getenv("TEST_DATABASE_URL")
    environment: str = os.getenv("APP_ENV", "production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: Optional[str] = os.getenv("LOG_DIR", "logs")
    use_json_logs: bool = bool(_env_flag("USE_JSON_LOGS", default=True))
    cors_origins: str = os.getenv("CORS_ORIGINS", "")
    SITE_NAME: str = os.getenv("SITE_NAME", "EcoScan")

    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-change")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 14)
    )

    classifier_url: Optional[str] = os.getenv("CLASSIFIER_URL")
    classifier_api_key: Optional[str] = os.getenv("CLASSIFIER_API_KEY")
    classifier_timeout: float = float(os.getenv("CLASSIFIER_TIMEOUT", "20"))

    compliance_url: Optional[str] = os.getenv("COMPLIANCE_URL")
    compliance_api_key: Optional[str] = os.getenv("COMPLIANCE_API_KEY")
    compliance_timeout: float = float(os.getenv("COMPLIANCE_TIMEOUT", "10"))
    prohibited_terms: str = os.getenv("PROHIBITED_TERMS", "")

    uploads_root: str = os.getenv("UPLOADS_ROOT", str(BASE_DIR / "uploads"))
    uploads_base_url: str = os.getenv("UPLOADS_BASE_URL", "/uploads")
    scan_rate_limit: str = os.getenv("SCAN_RATE_LIMIT", "30/minute")

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        env_override = os.getenv("APP_ENV")
        if env_override:
            object.__setattr__(self, "environment", env_override)
        if self.secret_key == "dev-secret-change" and (
            self.environment.lower() == "production"
        ):
            logger.warning(
                "SECRET_KEY is not set; tokens are signed with the development key."
            )

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [
            origin.strip() for origin in self.cors_origins.split(",") if origin.strip()
        ]
        if origins:
            return origins
        return ["http://localhost:5173", "http://localhost:8080"]

    @property
    def prohibited_term_list(self) -> list[str]:
        terms = [
            term.strip().lower()
            for term in self.prohibited_terms.split(",")
            if term.strip()
        ]
        return terms or list(DEFAULT_PROHIBITED_TERMS)

    def get_database_url(self, *, use_test: bool = False) -> str:
        """Resolve the SQLAlchemy database URL for runtime or tests.

        Priority: explicit `DATABASE_URL` (or `TEST_DATABASE_URL` when requested),
        finally a local sqlite file. Enforces dedicated test DB names to avoid
        destructive writes to prod data.
        """
        if use_test:
            test_url = self.test_database_url or "sqlite:///./test.db"
            if test_url.startswith("sqlite"):
                return test_url
            if "_test" not in test_url:
                raise ValueError(
                    "Test database URL must point to a dedicated test database (contains '_test')."
                )
            return test_url

        if self.database_url:
            return self.database_url

        # Fail open to local SQLite so the app can start (health checks) when env vars are missing.
        return "sqlite:///./ecoscan.db"
