from fastapi import APIRouter

from src.api.automation.router import router as automation_router
from src.api.billing.router import router as billing_router
from src.api.credits.router import router as credits_router
from src.api.cron.router import router as cron_router
from src.api.health.router import router as health_router
from src.api.referrals.router import router as referrals_router
from src.api.stripe.router import router as stripe_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Include domain routers
v1_router.include_router(automation_router)
v1_router.include_router(billing_router)
v1_router.include_router(credits_router)
v1_router.include_router(cron_router)
v1_router.include_router(referrals_router)

# Main API router
api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(stripe_router)
api_router.include_router(v1_router)
