from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from family_events.main import create_app
from family_events.settings import Settings


@pytest.fixture(params=["csv", "database"])
def app_settings(request: pytest.FixtureRequest, make_settings: Callable[..., Settings]) -> Settings:
    if request.param == "database":
        return make_settings(storage_backend="database", database_url="sqlite://")
    return make_settings()


@pytest.fixture()
def app(app_settings: Settings) -> FastAPI:
    return create_app(settings=app_settings)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest.fixture()
def admin_password(app_settings: Settings) -> str:
    return app_settings.admin_password_value


@pytest.fixture()
def submission_body() -> Callable[..., dict]:
    def _make(
        *,
        email: str = "Asha@Example.com",
        name: str = "Asha",
        family: list[dict] | None = None,
        **primary: str,
    ) -> dict:
        return {
            "primary": {"email": email, "name": name, **primary},
            "family": family or [],
        }

    return _make
