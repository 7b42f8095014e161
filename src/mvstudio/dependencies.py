"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mvstudio.errors.exceptions import AuthenticationError
from mvstudio.logging_config import bind_request_context
from mvstudio.providers.registry import ProviderRegistry
from mvstudio.services.orchestrator import JobOrchestrator


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    bind_request_context(get_trace_id(request), user["sub"])
    return user


def get_provider_registry(request: Request) -> ProviderRegistry:
    return request.app.state.provider_registry


async def get_orchestrator(
    request: Request,
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> JobOrchestrator:
    deadline = request.app.state.settings.job_submit_deadline_seconds
    return JobOrchestrator(db, registry, submit_deadline_seconds=deadline)


# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
TraceId = Annotated[str, Depends(get_trace_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
Registry = Annotated[ProviderRegistry, Depends(get_provider_registry)]
Orchestrator = Annotated[JobOrchestrator, Depends(get_orchestrator)]
