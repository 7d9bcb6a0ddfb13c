from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Process-level settings, read once from the environment at startup."""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "Invoice Status Processor"
    ENVIRONMENT: str = "development"

    # Control plane
    HOST: str = "localhost"
    PORT: int = 8080

    # Hot-reloadable processing config (connection target, interval, retries)
    CONFIG_PATH: str = "config.json"
    CONFIG_WATCH_ENABLED: bool = True
    CONFIG_SETTLE_SECONDS: float = 0.1

    # Placeholder outcome policy
    SUCCESS_PROBABILITY: float = 0.3

    # Upper bound for a single cycle transaction (PostgreSQL only)
    TRANSACTION_TIMEOUT_SECONDS: int = 30
    CREATE_SCHEMA: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

settings = Settings()
