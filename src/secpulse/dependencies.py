"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from secpulse.sync.context import SyncContext


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_sync_context(request: Request) -> SyncContext:
    return request.app.state.sync_context


# Type aliases for dependency injection
DBSession = Annotated[object, Depends(get_db)]
TraceId = Annotated[str, Depends(get_trace_id)]
Context = Annotated[SyncContext, Depends(get_sync_context)]
