from fastapi import APIRouter

from content_api.api.routes import auth, health, vacancies
from content_api.api.routes.lookups import departments_router, employments_router, experiences_router

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(vacancies.router, prefix="/vacancies", tags=["vacancies"])
api_router.include_router(departments_router, prefix="/departments", tags=["departments"])
api_router.include_router(employments_router, prefix="/employments", tags=["employments"])
api_router.include_router(experiences_router, prefix="/experiences", tags=["experiences"])
