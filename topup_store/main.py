"""
Top-up Storefront — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from topup_store.config import get_settings
from topup_store.api.health import router as health_router
from topup_store.api.accounts import router as accounts_router
from topup_store.api.orders import router as orders_router
from topup_store.api.rewards import router as rewards_router
from topup_store.api.admin import router as admin_router
from topup_store.api.lookup import router as lookup_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Top-up orders, gifting and reward redemption over a user ledger",
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(orders_router)
app.include_router(rewards_router)
app.include_router(admin_router)
app.include_router(lookup_router)
