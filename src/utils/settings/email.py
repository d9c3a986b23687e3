"""Email settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    RESEND_API_KEY: str = ""
    EMAIL_FROM_DOMAIN: str = "mail.promptflow.ai"
    EMAIL_FROM_NAME: str = "PromptFlow"
    EMAIL_REPLY_TO: str = "support@promptflow.ai"
