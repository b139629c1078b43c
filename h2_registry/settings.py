import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.production"), extra="ignore")

    ENVIRONMENT: str = "LOCAL"

    # Ledger database (SQLite locally, any SQLAlchemy URL in deployment)
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DATABASE_TEST_FP: str = "h2_registry_test.db"

    # Account granted main_admin at genesis
    MAIN_ADMIN_ADDRESS: str | None = os.getenv("MAIN_ADMIN_ADDRESS")

    # Upper bound on credits minted from a single certification
    MAX_MINT_AMOUNT: int = 1000

    # Observation mirror
    ESDB_ENABLED: bool = False
    ESDB_CONNECTION_STRING: str = os.getenv("ESDB_CONNECTION_STRING", "eventstore.db")
    ESDB_STREAM_NAME: str = "h2-ledger-observations"

    LOG_LEVEL: str = "INFO"
    CORS_ALLOWED_ORIGINS: str = ""

    @property
    def database_url(self) -> str:
        """Return DATABASE_URL, falling back to a local SQLite file."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DATABASE_TEST_FP}"

    @property
    def esdb_url(self) -> str:
        return f"esdb://{self.ESDB_CONNECTION_STRING}:2113?tls=false"

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins into a clean list."""
        if not self.CORS_ALLOWED_ORIGINS:
            return []
        return [
            o.strip().strip("'\"").rstrip("/")
            for o in self.CORS_ALLOWED_ORIGINS.split(",")
            if o.strip()
        ]


settings = Settings()
