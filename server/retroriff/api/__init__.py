from fastapi import APIRouter

from retroriff.api import harvest

api_router = APIRouter()


@api_router.get("/health", tags=["health"])
def api_health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "ok", "service": "api"}


api_router.include_router(harvest.router, prefix="/harvest", tags=["harvest"])
