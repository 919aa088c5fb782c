from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.emails import router as emails_router
from app.api.v1.users import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(emails_router, prefix="/emails", tags=["emails"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
