"""Domain errors raised by the credit engine services.

The HTTP layer translates these into ``PromptFlowException`` responses.
"""

from uuid import UUID


class CreditEngineError(Exception):
    """Base class for credit engine errors."""


class ModelNotFound(CreditEngineError):
    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Model with ID '{model_id}' not found")


class InsufficientCredits(CreditEngineError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits: required {required}, available {available}"
        )


class DuplicateProvenance(CreditEngineError):
    """A grant with this provenance was already recorded."""

    def __init__(self, provenance: str, bucket_id: UUID | None = None):
        self.provenance = provenance
        self.bucket_id = bucket_id
        super().__init__(f"Credits already granted for provenance '{provenance}'")


class ExternalPaymentFailure(CreditEngineError):
    def __init__(self, message: str, code: str | None = None):
        self.code = code
        super().__init__(message)


class AttemptBudgetExceeded(CreditEngineError):
    def __init__(self, user_id: UUID, attempts: int):
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            f"Auto-renewal attempt budget exhausted for user {user_id} ({attempts} attempts)"
        )


class UserNotFound(CreditEngineError):
    def __init__(self, user_id: UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class BundleNotFound(CreditEngineError):
    def __init__(self, bundle_id: str):
        self.bundle_id = bundle_id
        super().__init__(f"Credit bundle '{bundle_id}' not found")


class BundleNotEligible(CreditEngineError):
    def __init__(self, bundle_id: str, required_burn: int, monthly_burn: int):
        self.bundle_id = bundle_id
        self.required_burn = required_burn
        self.monthly_burn = monthly_burn
        super().__init__(
            f"Bundle '{bundle_id}' requires {required_burn:,} monthly automation credits"
        )
