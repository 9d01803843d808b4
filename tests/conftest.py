"""Shared fixtures: isolated registries, an API client and identity tokens."""
import os
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Dict

# Settings are read at import time, so the environment is prepared first
os.environ["TESTING"] = "true"
os.environ["REGISTRY_OWNER"] = "0xOwner"
os.environ.setdefault("SECURITY_SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONITORING_LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import boxoffice.models  # noqa: E402,F401
from boxoffice.core.database_manager import Base  # noqa: E402
from boxoffice.core.security import create_access_token  # noqa: E402
from boxoffice.schemas.event import EventCreate  # noqa: E402
from boxoffice.services.payments import LocalPaymentGateway  # noqa: E402
from boxoffice.services.registry import EventRegistry  # noqa: E402

OWNER = "0xOwner"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def gateway() -> LocalPaymentGateway:
    return LocalPaymentGateway()


@pytest_asyncio.fixture
async def registry(
    session_factory: async_sessionmaker[AsyncSession], gateway: LocalPaymentGateway
) -> EventRegistry:
    registry = EventRegistry(session_factory, owner=OWNER, payments=gateway)
    await registry.initialize()
    return registry


@pytest.fixture
def new_event() -> Callable[..., EventCreate]:
    def _new_event(
        name: str, date: int = 1000, price: int = 20, max_tickets: int = 1500
    ) -> EventCreate:
        return EventCreate(name=name, date=date, price=price, max_tickets=max_tickets)

    return _new_event


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from boxoffice.main import app

    # The lifespan builds a fresh in-memory database and registry per client
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(identity: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(identity)}"}

    return _headers
