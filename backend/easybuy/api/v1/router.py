"""
API v1 router - aggregates all endpoint routers.
"""

from fastapi import APIRouter

from easybuy.api.v1.endpoints import action, controller, health

api_router = APIRouter()

api_router.include_router(
    action.router,
    tags=["Read dispatcher"],
)

api_router.include_router(
    controller.router,
    tags=["Write dispatcher"],
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"],
)
