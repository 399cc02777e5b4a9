"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
wire the app to the in-memory store and a fake payment processor so API
tests never need a database or network.
"""
from __future__ import annotations

import os
from typing import List

import httpx
from httpx import ASGITransport
import pytest

# Importing backend.web.main builds a module-level app from the environment.
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("EDUMANAGE_ENV", "test")

from backend.storage.memory import MemoryDocumentStore  # noqa: E402
from backend.teaching.services import teacher_requests  # noqa: E402
from backend.tests.utils.fake_payments import FakePaymentGateway  # noqa: E402
from backend.tests.utils.stores import open_memory_store  # noqa: E402
from backend.web.config import AppConfig  # noqa: E402
from backend.web.main import create_app  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def request_clock(monkeypatch: pytest.MonkeyPatch) -> List[str]:
    """Strictly increasing timestamps for the teacher request workflow.

    Returns the list of issued stamps; the last entry is the latest one.
    """
    issued: List[str] = []

    def _now() -> str:
        stamp = f"2030-01-01T00:00:{len(issued):02d}+00:00"
        issued.append(stamp)
        return stamp

    monkeypatch.setattr(teacher_requests, "now_iso", _now)
    return issued


@pytest.fixture
def store() -> MemoryDocumentStore:
    return open_memory_store()


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def app(store: MemoryDocumentStore, gateway: FakePaymentGateway):
    return create_app(AppConfig(env="test", store_backend="memory"), store=store, gateway=gateway)


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
