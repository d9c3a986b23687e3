"""Credit engine settings: bonus amounts, expiries and automation parameters."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CreditSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Transactions carrying this source tag count toward automation tiers
    AUTOMATION_SOURCE_TAG: str = "n8n_api"
    AUTOMATION_WINDOW_DAYS: int = 30
    AUTOMATION_BONUS_EXPIRY_DAYS: int = 30

    WELCOME_BONUS_EXPIRY_DAYS: int = 90

    REFERRAL_INVITEE_BONUS: int = 20_000
    REFERRAL_INVITER_BONUS: int = 50_000
    REFERRAL_MIN_SPEND: int = 10_000
    REFERRAL_INVITEE_EXPIRY_DAYS: int = 90
    REFERRAL_INVITER_EXPIRY_DAYS: int = 180

    CREATOR_PAYOUT_EXPIRY_DAYS: int = 90
    PLATFORM_FEE_PERCENT: int = 20

    PURCHASE_BONUS_EXPIRY_DAYS: int = 90
    # None means purchased credits never expire
    PURCHASED_CREDIT_EXPIRY_DAYS: int | None = 365

    AUTO_RENEWAL_MAX_ATTEMPTS: int = 3
    AUTO_RENEWAL_WINDOW_HOURS: int = 24
    AUTO_RENEWAL_DEFAULT_THRESHOLD: int = 1_000_000
    AUTO_RENEWAL_MIN_THRESHOLD: int = 100_000
    AUTO_RENEWAL_THRESHOLD_PERCENT: int = 10
