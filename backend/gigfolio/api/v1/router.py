"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from gigfolio.api.v1 import onboarding

router = APIRouter()

router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
