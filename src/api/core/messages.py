"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"

    # Authentication & Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_API_KEY = "INVALID_API_KEY"

    # User management
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # Credit management
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    CREDITS_BURNED = "CREDITS_BURNED"
    CREDITS_GRANTED = "CREDITS_GRANTED"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"

    # Referrals
    REFERRAL_PROCESSED = "REFERRAL_PROCESSED"

    # Billing
    BUNDLE_NOT_FOUND = "BUNDLE_NOT_FOUND"
    BUNDLE_NOT_ELIGIBLE = "BUNDLE_NOT_ELIGIBLE"
    CHECKOUT_CREATED = "CHECKOUT_CREATED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    AUTO_RENEWAL_UPDATED = "AUTO_RENEWAL_UPDATED"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    # Authentication & Authorization
    MessageCode.UNAUTHORIZED: "Authentication required",
    MessageCode.INVALID_API_KEY: "Invalid internal API key",
    # User management
    MessageCode.USER_NOT_FOUND: "User not found",
    # Credit management
    MessageCode.INSUFFICIENT_CREDITS: "Insufficient credits",
    MessageCode.CREDITS_BURNED: "Credits deducted successfully",
    MessageCode.CREDITS_GRANTED: "Credits granted successfully",
    MessageCode.MODEL_NOT_FOUND: "Model not found",
    # Referrals
    MessageCode.REFERRAL_PROCESSED: "Referral processed",
    # Billing
    MessageCode.BUNDLE_NOT_FOUND: "Credit bundle not found",
    MessageCode.BUNDLE_NOT_ELIGIBLE: "Not eligible for this credit bundle",
    MessageCode.CHECKOUT_CREATED: "Checkout session created",
    MessageCode.PAYMENT_FAILED: "Payment failed",
    MessageCode.AUTO_RENEWAL_UPDATED: "Auto-renewal preferences updated",
    # Validation errors
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class PaginationInfo(BaseModel):
    """Common pagination information."""

    total: int
    limit: int
    offset: int
    has_more: bool


class Paginated(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T]
    pagination: PaginationInfo


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )

    @classmethod
    def error(
        cls,
        message_code: MessageCode,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create an error response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Error occurred"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
