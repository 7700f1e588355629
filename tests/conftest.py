import asyncio
import os
import tempfile

# Settings are read at import time
os.environ["DATABASE_URI"] = "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(), "dispatchlink.db")
os.environ["LOG_FILE"] = ""
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from dispatchlink.db import session as db_session
from dispatchlink.db.init_db import init_db
from main import app
from tests.fakes import FakeBus

PASSWORD = "secret1"


@pytest.fixture
def engine(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", db_session.create_session_factory(engine))
    asyncio.run(init_db(engine))
    return engine


@pytest.fixture
def run_db(engine):
    """Run `func(session)` to completion on a fresh session."""
    factory = db_session.create_session_factory(engine)

    def run(func):
        async def runner():
            async with factory() as session:
                return await func(session)

        return asyncio.run(runner())

    return run


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def client(engine, bus):
    with TestClient(app) as client:
        app.state.registry.initialize_transport(bus.publish)
        yield client


@pytest.fixture
def make_user(client):
    """Register a user and return (user json, auth headers, token)."""

    def make(username, role="Citizen"):
        resp = client.post("/api/auth/register", json={"username": username, "password": PASSWORD, "role": role})
        assert resp.status_code == 201, resp.text
        login = client.post("/api/auth/login", data={"username": username, "password": PASSWORD})
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return resp.json(), {"Authorization": f"Bearer {token}"}, token

    return make


@pytest.fixture
def connect(client):
    """Open a live socket for a token and wait until it is registered."""

    def open_socket(stack, token):
        ws = stack.enter_context(client.websocket_connect(f"/api/ws?token={token}"))
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
        return ws

    return open_socket
