from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEBUG: bool = False
    ENVIRONMENT: str = "DEV"
    API_VERSION: str = "0.1.0"
    APP_BASE_URL: str = "https://app.promptflow.ai"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://promptflow.ai",
        "https://app.promptflow.ai",
    ]

    # Shared secret presented by the web tier and the scheduler
    INTERNAL_API_KEY: SecretStr = SecretStr("dev-internal-key")

    def validate_prod(self) -> None:
        """Sanity checks for production environment."""
        if self.ENVIRONMENT.upper() == "PROD":
            if self.INTERNAL_API_KEY.get_secret_value() == "dev-internal-key":
                raise ValueError("INTERNAL_API_KEY must be set in production")
            if not self.CORS_ORIGINS:
                raise ValueError("CORS_ORIGINS must be set in production")
