from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.models import AutoRenewalLog, AutoRenewalStatus
from src.utils.logger import get_logger
from src.utils.settings.email import EmailSettings
from src.utils.settings.stripe import StripeSettings

logger = get_logger(__name__)

HealthState = Literal["healthy", "degraded", "unhealthy"]


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    service: str
    status: HealthState
    connected: bool
    details: dict
    error: str | None = None


@dataclass
class OverallHealthStatus:
    """Overall health status with individual service results."""

    status: HealthState
    services: dict[str, HealthCheckResult]
    timestamp: str


class HealthService:
    """Health checks for the database and the payment and email collaborators."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_database_health(self) -> HealthCheckResult:
        try:
            result = await self.db.execute(text("SELECT 1 as test"))
            test_value = result.scalar()

            return HealthCheckResult(
                service="database",
                status="healthy",
                connected=True,
                details={"test_query_result": test_value},
            )
        except Exception as e:
            logger.error(f"Database health check error: {e}")
            return HealthCheckResult(
                service="database",
                status="unhealthy",
                connected=False,
                details={},
                error=str(e),
            )

    async def check_payments_health(self) -> HealthCheckResult:
        """Stripe configuration plus recent auto-renewal failures. No network calls."""
        settings = StripeSettings()
        configured = bool(
            settings.STRIPE_SECRET_KEY.get_secret_value()
            and settings.STRIPE_WEBHOOK_SECRET
        )
        try:
            since = datetime.now(timezone.utc).replace(
                hour=0, minute=0, second=0, microsecond=0
            )
            result = await self.db.execute(
                select(func.count(AutoRenewalLog.id)).where(
                    AutoRenewalLog.status == AutoRenewalStatus.FAILED,
                    AutoRenewalLog.created_at >= since,
                )
            )
            failed_today = int(result.scalar_one())
        except Exception as e:
            logger.error(f"Payments health check error: {e}")
            return HealthCheckResult(
                service="payments",
                status="unhealthy",
                connected=False,
                details={"configured": configured},
                error=str(e),
            )

        return HealthCheckResult(
            service="payments",
            status="healthy" if configured else "degraded",
            connected=configured,
            details={
                "configured": configured,
                "auto_renewal_failures_today": failed_today,
            },
        )

    async def check_email_health(self) -> HealthCheckResult:
        configured = bool(EmailSettings().RESEND_API_KEY)
        return HealthCheckResult(
            service="email",
            status="healthy" if configured else "degraded",
            connected=configured,
            details={"configured": configured},
        )

    async def run_all_checks(self) -> OverallHealthStatus:
        """Run all health checks and return overall status."""
        # Checks share one session, so they run one after another
        results = [
            await self.check_database_health(),
            await self.check_payments_health(),
            await self.check_email_health(),
        ]

        services = {}
        overall_status: HealthState = "healthy"
        for service_result in results:
            if service_result.status == "unhealthy":
                overall_status = "unhealthy"
            elif service_result.status == "degraded" and overall_status == "healthy":
                overall_status = "degraded"
            services[service_result.service] = service_result

        return OverallHealthStatus(
            status=overall_status,
            services=services,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
