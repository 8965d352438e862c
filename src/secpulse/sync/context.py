"""Explicit runtime context shared by the scheduler, workers and API layer."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from secpulse.config import Settings
from secpulse.events.broadcast import Broadcaster, NullBroadcaster, RedisBroadcaster
from secpulse.sync.gateway import PersistenceGateway
from secpulse.sync.manager import ConnectorManager
from secpulse.workers.queue import JobQueue


@dataclass
class SyncContext:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    redis: object | None
    broadcaster: Broadcaster
    gateway: PersistenceGateway
    manager: ConnectorManager
    queue: JobQueue

    @classmethod
    def build(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        redis=None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SyncContext":
        """Wire the pipeline together. *transport* overrides outbound HTTP (tests)."""
        broadcaster = RedisBroadcaster(redis) if redis is not None else NullBroadcaster()
        gateway = PersistenceGateway(session_factory, broadcaster)
        manager = ConnectorManager(
            session_factory,
            gateway,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )
        return cls(
            settings=settings,
            session_factory=session_factory,
            redis=redis,
            broadcaster=broadcaster,
            gateway=gateway,
            manager=manager,
            queue=JobQueue(session_factory, redis),
        )
