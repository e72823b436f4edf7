"""FastAPI application bootstrap for clinaccess."""
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from .config import Settings
from .domain.errors import IllegalSecuredObjectAccess, TargetNotFoundError, TargetResolutionError
from .domain.policy import AccessPolicy, Actor
from .infra.db import init_db, make_engine
from .routers import audit, patients, permissions, procedures
from .services.access import build_access_control

ActorProvider = Callable[[Request], Optional[Actor]]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    yield


async def _access_denied(request: Request, exc: IllegalSecuredObjectAccess) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Access denied"})


async def _target_not_found(request: Request, exc: TargetNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _target_unresolved(request: Request, exc: TargetResolutionError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Access could not be determined"},
    )


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    policy: Optional[AccessPolicy] = None,
    actor_provider: Optional[ActorProvider] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    engine = engine or make_engine(settings.database_url)

    app = FastAPI(title="clinaccess API", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.access_control = build_access_control(settings, engine, policy=policy)
    app.state.actor_provider = actor_provider

    app.add_exception_handler(IllegalSecuredObjectAccess, _access_denied)
    app.add_exception_handler(TargetNotFoundError, _target_not_found)
    app.add_exception_handler(TargetResolutionError, _target_unresolved)

    app.include_router(procedures.router, prefix="/procedures", tags=["procedures"])
    app.include_router(patients.router, prefix="/patients", tags=["patients"])
    app.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
    app.include_router(audit.router, prefix="/audit", tags=["audit"])

    return app
