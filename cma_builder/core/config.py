import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://127.0.0.1:8000")
    DEFAULT_RETURN_PATH: str = os.getenv("DEFAULT_RETURN_PATH", "/dashboard")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Design provider (Canva Connect)
    CANVA_CLIENT_ID: str | None = os.getenv("CANVA_CLIENT_ID")
    CANVA_CLIENT_SECRET: str | None = os.getenv("CANVA_CLIENT_SECRET")
    CANVA_REDIRECT_URI: str = os.getenv("CANVA_REDIRECT_URI", "http://127.0.0.1:8000/auth/callback")
    CANVA_AUTH_URL: str = os.getenv("CANVA_AUTH_URL", "https://www.canva.com/api/oauth/authorize")
    CANVA_API_BASE: str = os.getenv("CANVA_API_BASE", "https://api.canva.com/rest/v1")
    CANVA_SCOPES: str = os.getenv(
        "CANVA_SCOPES",
        "design:content:read design:content:write design:meta:read "
        "brandtemplate:content:read brandtemplate:meta:read asset:read asset:write",
    )

    # OAuth state signing; falls back to the client secret when unset
    OAUTH_STATE_SECRET: str | None = os.getenv("OAUTH_STATE_SECRET")
    OAUTH_STATE_TTL_SECONDS: int = int(os.getenv("OAUTH_STATE_TTL_SECONDS", "600"))

    # Listings provider (Repliers)
    LISTINGS_API_BASE: str = os.getenv("LISTINGS_API_BASE", "https://api.repliers.io")
    LISTINGS_API_KEY: str = os.getenv("LISTINGS_API_KEY", "")
    LISTINGS_IMAGE_CDN: str = os.getenv("LISTINGS_IMAGE_CDN", "https://cdn.repliers.io/")

    # Report store
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./cma.db")
    ECHO_SQL: bool = os.getenv("ECHO_SQL", "false").lower() == "true"

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Rate-limit counters
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

    @property
    def state_secret(self) -> str:
        return self.OAUTH_STATE_SECRET or self.CANVA_CLIENT_SECRET or "cma-oauth-state-secret"

    @property
    def cookies_secure(self) -> bool:
        return self.ENV == "prod"

settings = Settings()
