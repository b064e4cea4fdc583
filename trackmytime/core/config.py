import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config(BaseModel):
    app_name: str = "TrackMyTime"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./trackmytime.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    jwt_algorithm: str = "HS256"

    # Identity provider directory (JSON file of user profiles)
    identity_directory_path: Optional[str] = Field(default=os.getenv("IDENTITY_DIRECTORY_PATH"))
    allow_impersonation: bool = _env_flag("ALLOW_IMPERSONATION", "true")
    impersonation_header: str = "X-Act-As"

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS — comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

    # Views whose cached payloads are invalidated after a status change
    revalidate_paths: List[str] = ["/", "/time-off"]

    # Demo data & client cache
    seed_demo_data: bool = _env_flag("SEED_DEMO_DATA", "false")
    snapshot_store_path: str = os.getenv("SNAPSHOT_STORE_PATH", ".cache/trackmytime-approved-requests.json")


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("⚠ Using insecure default SECRET_KEY — only acceptable in development.")
