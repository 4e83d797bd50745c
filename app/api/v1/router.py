from fastapi import APIRouter
from app.api.v1.endpoints import admin, analytics, auth, signup_analytics, users

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(signup_analytics.router, prefix="/signup-analytics", tags=["signup-analytics"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
