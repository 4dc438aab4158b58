"""API v1 main router.

Aggregates all v1 API routers into a single router for inclusion in the app.
"""

from fastapi import APIRouter

from ptflio.api.v1.github import router as github_router
from ptflio.api.v1.health import router as health_router
from ptflio.api.v1.instagram import router as instagram_router
from ptflio.api.v1.revalidate import router as revalidate_router
from ptflio.api.v1.youtube import router as youtube_router

router = APIRouter()

# Include sub-routers
router.include_router(health_router, prefix="/health", tags=["Health"])
router.include_router(youtube_router, prefix="/youtube", tags=["YouTube"])
router.include_router(github_router, prefix="/github", tags=["GitHub"])
router.include_router(instagram_router, prefix="/instagram", tags=["Instagram"])
router.include_router(revalidate_router, prefix="/revalidate", tags=["Cache"])
