"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from app.api import (
    admin,
    beta_tester,
    favorites,
    feedback,
    generate,
    health,
    me,
    payments,
    styles,
    uploads,
    visitors,
    webhooks,
)

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(styles.router, prefix="/styles", tags=["styles"])
api_router.include_router(generate.router, tags=["generate"])
api_router.include_router(uploads.router, tags=["uploads"])
api_router.include_router(favorites.router, prefix="/me/favorites", tags=["favorites"])
api_router.include_router(me.router, prefix="/me", tags=["me"])
api_router.include_router(payments.router, tags=["topups"])
api_router.include_router(webhooks.router, tags=["webhooks"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
api_router.include_router(visitors.router, prefix="/visitor", tags=["visitors"])
api_router.include_router(beta_tester.router, prefix="/beta-tester", tags=["beta-tester"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
