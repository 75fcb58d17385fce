from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admin_sso.api.v1 import api_router
from admin_sso.config import get_settings
from admin_sso.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name, openapi_url=f"{settings.api_prefix}/openapi.json"
)

# CORS Configuration
# ==================
# Only needed when the admin panel is served from another origin than this API.
# DEVELOPMENT (debug=True): any origin is accepted.
# PRODUCTION: only settings.frontend_url.
if settings.frontend_url:
    cors_origins = ["*"] if settings.debug else [settings.frontend_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=not settings.debug,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check():
    return JSONResponse(content={"status": "ok"}, status_code=200)
