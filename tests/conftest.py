"""Shared test fixtures for the superagent server."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from superagent_server.config import Settings, get_settings
from superagent_server.dependencies import get_gateway, get_local_tools, get_model
from superagent_server.main import create_app
from superagent_server.rate_limit import limiter
from superagent_server.tools import LocalTool, build_local_tools
from tests.fakes import FakeGateway, FakeModel


@pytest.fixture(autouse=True)
def disable_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="development",
        composio_api_key="test-composio-key",
        google_generative_ai_api_key="test-google-key",
        agent_model="agent-model",
        slide_model="slide-model",
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def local_tools(model: FakeModel, settings: Settings) -> dict[str, LocalTool]:
    return build_local_tools(model, slide_model=settings.slide_model)


@pytest.fixture
def app(
    settings: Settings,
    gateway: FakeGateway,
    model: FakeModel,
    local_tools: dict[str, LocalTool],
) -> FastAPI:
    """Application with external clients replaced by fakes.

    The lifespan is not run (no `with TestClient(...)`), so app.state holds
    no real clients.
    """
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_model] = lambda: model
    app.dependency_overrides[get_local_tools] = lambda: local_tools
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
