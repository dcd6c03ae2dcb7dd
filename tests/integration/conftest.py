"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Pre-condition: alembic upgrade head. Tests are skipped when Postgres is
not reachable.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from src.dex_common.database import ping_database
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session", autouse=True)
async def require_database() -> None:
    try:
        await ping_database("trade_records")
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"Postgres with migrated schema not available: {exc}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
