import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from clinica.config import Settings, get_settings
from clinica.exceptions import ClinicError
from clinica.routers import auth as auth_router
from clinica.routers import dashboard, portals
from clinica.services import Services, build_services
from clinica.services.bootstrap import ensure_admin_user

logger = logging.getLogger(__name__)


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers so authenticated pages are never cached."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


async def clinic_error_handler(request: Request, exc: ClinicError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    # Unknown user and wrong password render identically
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "code": exc.code},
    )


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or get_settings()
    services = services or build_services(settings)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: load the document then make sure an administrator exists
        await services.store.ensure_loaded()
        await ensure_admin_user(services.store, settings.admin_username, settings.admin_password)
        yield

    app = FastAPI(
        title="Clinica Backend",
        description="Authentication and role-gated views over a flat-file record store",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_middleware(NoCacheMiddleware)
    app.add_exception_handler(ClinicError, clinic_error_handler)

    app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(dashboard.router, prefix="/api/admin", tags=["Admin"])
    app.include_router(portals.router, prefix="/api", tags=["Portals"])

    @app.get("/api/health")
    async def health_check():
        return {"status": "healthy", "service": "clinica-backend"}

    return app
