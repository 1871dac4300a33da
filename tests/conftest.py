"""
Pytest configuration and fixtures.

Provides reusable fixtures for FastAPI testing:
- settings: Settings for an isolated test app (memory store, local storage)
- cognito / fake_session: Stand-in for the Cognito user pool API
- memory_store / sql_store: Both model store strategies
- app / client: Application built with create_app and the fakes above
"""

from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from botocore.exceptions import ClientError
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import NullPool

from apps.api.auth.service import IdentityProxy
from apps.api.config import Settings
from apps.api.main import create_app
from apps.api.registry.schemas import ModelCreate
from apps.api.registry.store import MemoryModelStore, ModelStore, SqlModelStore
from db.base import Base
from db.models import MLModel  # noqa: F401
from packages.shared.storage import LocalFileStorage

# =============================================================================
# Test Data
# =============================================================================

MODEL_PAYLOAD = {
    "name": "M1-v1",
    "description": "A sufficiently long description",
    "algorithm": "xgboost",
    "function": "classification",
    "modelType": "python",
}


def make_model(store: ModelStore, actor: str = "tester", **overrides: Any) -> dict:
    """Create a model directly in a store."""
    return store.create_model(ModelCreate(**{**MODEL_PAYLOAD, **overrides}), actor)


def cognito_error(code: str, message: str = "backend message", operation: str = "Op") -> ClientError:
    """Build the ClientError botocore raises for a Cognito error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def cognito_user(username: str = "jdoe", role: str | None = "editor") -> dict:
    """A GetUser response."""
    attributes = [
        {"Name": "email", "Value": f"{username}@example.com"},
        {"Name": "name", "Value": "Jane Doe"},
    ]
    if role is not None:
        attributes.append({"Name": "custom:role", "Value": role})
    return {"Username": username, "UserAttributes": attributes}


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every store timestamp one second later than the previous one."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ticks = iter(range(10_000))

    def _now() -> datetime:
        return start + timedelta(seconds=next(ticks))

    monkeypatch.setattr("apps.api.registry.store._utcnow", _now)


# =============================================================================
# Fake Cognito
# =============================================================================


class FakeSession:
    """aioboto3.Session stand-in whose clients all share one AsyncMock."""

    def __init__(self) -> None:
        self.client_mock = AsyncMock()
        self.services: list[str] = []

    def client(self, service_name: str, **kwargs: Any):
        self.services.append(service_name)

        @asynccontextmanager
        async def _client():
            yield self.client_mock

        return _client()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def cognito(fake_session: FakeSession) -> AsyncMock:
    """The mocked cognito-idp client; configure return values per test."""
    return fake_session.client_mock


@pytest.fixture
def identity(fake_session: FakeSession) -> IdentityProxy:
    return IdentityProxy(client_id="test-client", region="us-east-1", session=fake_session)


# =============================================================================
# Settings / Storage
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(
        _env_file=None,
        model_store="memory",
        storage_backend="local",
        local_artifact_path=str(tmp_path / "artifacts"),
        cognito_client_id="test-client",
        frontend_url=None,
        enforce_permissions=False,
        enable_mlflow_integration=False,
    )


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(base_path=str(tmp_path / "artifacts"))


# =============================================================================
# Model Stores
# =============================================================================


@pytest.fixture
def memory_store() -> MemoryModelStore:
    return MemoryModelStore()


@pytest.fixture
def sql_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """SQLite file database with the models table created."""
    engine = create_engine(f"sqlite:///{tmp_path / 'models.db'}", poolclass=NullPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sql_engine: Engine) -> SqlModelStore:
    return SqlModelStore(sql_engine)


# =============================================================================
# App / Client
# =============================================================================


@pytest.fixture
def app(
    settings: Settings,
    memory_store: MemoryModelStore,
    storage: LocalFileStorage,
    identity: IdentityProxy,
) -> FastAPI:
    """Application wired to the memory store, local storage and fake Cognito."""
    return create_app(settings, store=memory_store, storage=storage, identity=identity)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """
    Create a TestClient for the FastAPI app.

    Scope: function (fresh app and client per test)
    """
    app.dependency_overrides.clear()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
