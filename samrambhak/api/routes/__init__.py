"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from samrambhak.api.routes.auth_routes import router as auth_router
from samrambhak.api.routes.password_reset_routes import router as password_reset_router
from samrambhak.api.routes.profile_routes import router as profile_router
from samrambhak.api.routes.post_routes import router as post_router
from samrambhak.api.routes.community_routes import router as community_router
from samrambhak.api.routes.business_routes import router as business_router
from samrambhak.api.routes.job_routes import router as job_router
from samrambhak.api.routes.promotion_routes import router as promotion_router
from samrambhak.api.routes.notification_routes import router as notification_router
from samrambhak.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(password_reset_router)
api_router.include_router(profile_router)
api_router.include_router(post_router)
api_router.include_router(community_router)
api_router.include_router(business_router)
api_router.include_router(job_router)
api_router.include_router(promotion_router)
api_router.include_router(notification_router)
api_router.include_router(admin_router)
