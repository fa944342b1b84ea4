from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Strongly-typed settings model loaded from env / .env.

    Notes:
        - Construct once at startup and hand it to `create_app`; nothing in the
          service reads settings from module globals.
        - Secrets and DSNs must be provided; there are no insecure defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        protected_namespaces=()
    )

    ENV: str = Field(..., description="Deployment environment, e.g. dev/staging/prod")
    SERVICE_NAME: str = Field(default="quizgrade", description="Service name")

    DATABASE_DSN: str = Field(..., description="SQLAlchemy async DSN, e.g. postgresql+asyncpg://...")

    JWT_PUBLIC_KEY: str = Field(..., description="JWT verification key (public key, or shared secret for HS*)")
    JWT_ALGORITHM: str = Field(default="RS256", description="Accepted JWT signing algorithm")
    OIDC_AUDIENCE: str = Field(..., description="OIDC audience")
    OIDC_ISSUER: str | None = Field(default=None, description="OIDC issuer URL; issuer is checked when set")

    IO_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0, description="Timeout applied to each store round-trip")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
