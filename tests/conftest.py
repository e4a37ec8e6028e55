"""
Pytest configuration and shared fixtures.

Provides:
- Async test support
- In-memory database fixtures
- API client fixtures (raw httpx and PlotlineClient, both in-process)
- A transport that fails selected requests
- Sample data factories
"""

import os
from typing import AsyncGenerator, Callable, Optional

import httpx
import pytest
import pytest_asyncio

# Settings are cached on first use; point them at an in-memory database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast isolated tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: tests against the API and database")
    config.addinivalue_line("markers", "e2e: full end-to-end outline workflows")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory database with all tables."""
    from plotline.services.database import create_db_engine, init_db

    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from sqlalchemy.orm import sessionmaker

    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    """Settings with defaults, independent of the environment cache."""
    from plotline.config import Settings

    return Settings(database_url="sqlite://")


@pytest.fixture
def store(db_session, settings):
    from plotline.services.plot_store import PlotStore

    return PlotStore(db_session, settings)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(session_factory):
    """Application wired to the per-test database."""
    from plotline.main import create_app
    from plotline.services.database import get_db

    application = create_app()

    # Sessions must open and close on the event loop thread: the in-memory
    # database is a single shared connection
    async def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Raw HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class FailingTransport(httpx.AsyncBaseTransport):
    """
    Wraps a transport and answers matching requests with an error.

    Usage:
        transport = FailingTransport(inner)
        transport.fail_when = lambda request: request.method == "POST"
    """

    def __init__(self, inner: httpx.AsyncBaseTransport, status_code: int = 500):
        self.inner = inner
        self.status_code = status_code
        self.fail_when: Optional[Callable[[httpx.Request], bool]] = None
        self.failed: list[str] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.fail_when is not None and self.fail_when(request):
            self.failed.append(f"{request.method} {request.url.path}")
            return httpx.Response(
                self.status_code,
                json={"success": False, "error": "Simulated failure", "code": "internal_error"},
                request=request,
            )
        return await self.inner.handle_async_request(request)


@pytest.fixture
def failing_transport(app) -> FailingTransport:
    return FailingTransport(httpx.ASGITransport(app=app))


@pytest_asyncio.fixture
async def plotline_client(failing_transport):
    """PlotlineClient over the in-process app; failures can be injected."""
    from plotline.client import PlotlineClient

    async with PlotlineClient("http://test", transport=failing_transport) as client:
        yield client


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def make_project(api_client):
    """Factory that creates a project through the API."""
    async def _create(title: str = "The Long Winter", **fields) -> dict:
        response = await api_client.post("/api/projects", json={"title": title, **fields})
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def make_element(api_client):
    """Factory that creates a plot element through the API."""
    async def _create(project_id: str, title: str, type: str, **fields) -> dict:
        response = await api_client.post(
            "/api/plot-elements",
            json={"projectId": project_id, "title": title, "type": type, **fields},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def make_character(api_client):
    async def _create(project_id: str, name: str = "Alice", role: str = "protagonist", **fields) -> dict:
        response = await api_client.post(
            "/api/characters",
            json={"projectId": project_id, "name": name, "role": role, **fields},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def make_node():
    """Factory for PlotElementResponse values used by client-side unit tests."""
    from plotline.models.plot_element import PlotElementResponse

    def _create(id: str, type: str = "chapter", order: int = 1, parent_id: Optional[str] = None, **fields):
        return PlotElementResponse(
            id=id,
            project_id=fields.pop("project_id", "p1"),
            parent_id=parent_id,
            title=fields.pop("title", id),
            type=type,
            order=order,
            **fields,
        )
    return _create
