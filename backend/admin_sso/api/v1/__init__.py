"""API v1 package."""

from fastapi import APIRouter

from admin_sso.api.v1.sso import router as sso_router

api_router = APIRouter()
api_router.include_router(sso_router)
