"""Pytest fixtures and test utilities."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from yieldbook.config import Settings
from yieldbook.models.property import Property, PropertyCreate
from yieldbook.storage import MemoryPropertyStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _build_record(
    record_id: str,
    price: float,
    location: str,
    rental_yield: float,
    minutes: int = 0,
) -> Property:
    """Build a stored record created ``minutes`` after BASE_TIME."""
    created = BASE_TIME + timedelta(minutes=minutes)
    return Property(
        id=record_id,
        price=price,
        location=location,
        rental_yield=rental_yield,
        created_at=created,
        updated_at=created,
    )


@pytest.fixture
def make_record():
    """Factory for stored records with fixed timestamps."""
    return _build_record


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings with no database and no .env file."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("YIELDBOOK_DATABASE_URL", raising=False)
    return Settings(_env_file=None)


@pytest.fixture
def memory_store() -> MemoryPropertyStore:
    """Empty in-memory store."""
    return MemoryPropertyStore()


@pytest.fixture
def sample_payloads() -> list[PropertyCreate]:
    """Two Paris listings and one in Lyon, in creation order."""
    return [
        PropertyCreate(price=1000, location="Paris", rental_yield=4.5),
        PropertyCreate(price=500, location="Lyon", rental_yield=6.0),
        PropertyCreate(price=1500, location="Paris", rental_yield=3.0),
    ]


@pytest.fixture
def seeded_store(
    memory_store: MemoryPropertyStore,
    sample_payloads: list[PropertyCreate],
) -> MemoryPropertyStore:
    """Memory store holding the sample payloads."""

    async def seed():
        for payload in sample_payloads:
            await memory_store.create(payload)

    asyncio.run(seed())
    return memory_store


@pytest.fixture
def sample_records() -> list[Property]:
    """Stored records, newest first, as the memory store keeps them."""
    return [
        _build_record("5", 320000, "Montreal", 5.5, minutes=4),
        _build_record("4", 180000, "laval", 7.25, minutes=3),
        _build_record("3", 640000, "Quebec City", 4.0, minutes=2),
        _build_record("2", 320000, "Longueuil", 6.1, minutes=1),
        _build_record("1", 950000, "Montreal-Nord", 3.2, minutes=0),
    ]


@pytest.fixture
def client(settings: Settings, memory_store: MemoryPropertyStore):
    """Test client serving from the memory_store fixture."""
    app = create_app(settings=settings, store=memory_store)
    with TestClient(app) as test_client:
        yield test_client
