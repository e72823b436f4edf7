"""Dependency injection utilities."""
from collections.abc import Generator

from fastapi import HTTPException, Request, status
from sqlmodel import Session

from .domain.policy import Actor
from .infra.db import get_session
from .services.access import AccessControl


def db_session(request: Request) -> Generator[Session, None, None]:
    """Provide a scoped DB session to FastAPI endpoints."""
    with get_session(request.app.state.engine) as session:
        yield session


def access_control(request: Request) -> AccessControl:
    return request.app.state.access_control


def current_actor(request: Request) -> Actor:
    """Ask the host's identity subsystem for the authenticated actor."""
    provider = getattr(request.app.state, "actor_provider", None)
    actor = provider(request) if provider is not None else None
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return actor
