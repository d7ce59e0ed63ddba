from fastapi import APIRouter

from cannamap.api import auth, locations, reviews, votes
from cannamap.schemas.common import HealthResponse

api_router = APIRouter()


@api_router.get("/health", tags=["health"], response_model=HealthResponse)
def api_health_check() -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    return HealthResponse(status="ok", service="api")


api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(votes.router, prefix="/locations", tags=["votes"])
api_router.include_router(reviews.router, prefix="/locations", tags=["reviews"])
