"""Shared fixtures: in-memory SQLite ledger, stub rate oracle, FastAPI test client."""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger.config import Settings
from ledger.core.errors import RateResolutionFailure
from ledger.database import build_engine, create_tables
from ledger.main import create_app
from ledger.model.order import Order, Tracking


class StubRateClient:
    """Stands in for ExchangeRateClient; records every pair it is asked for."""

    def __init__(self, rate=None, error=None):
        self._rate = rate
        self._error = error
        self.calls = []

    def fetch_pair(self, base, quote):
        self.calls.append((base, quote))
        if self._error:
            raise self._error
        return Decimal(str(self._rate))


@pytest.fixture()
def settings():
    return Settings(
        database_url="sqlite://",
        exchange_api_key="test-key",
        local_currency="HNL",
        foreign_currency="USD",
        supported_currencies="HNL,USD",
    )


@pytest.fixture()
def engine(settings):
    eng = build_engine(settings)
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def rate_client():
    return StubRateClient(rate="26.38")


@pytest.fixture()
def failing_rate_client():
    return StubRateClient(error=RateResolutionFailure("oracle down"))


@pytest.fixture()
def make_client(settings, engine):
    def _make(rate_client):
        app = create_app(settings=settings, engine=engine, rate_client=rate_client)
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture()
def client(make_client, rate_client):
    with make_client(rate_client) as c:
        yield c


@pytest.fixture()
def count_rows(engine):
    def _count(model, **filters):
        with Session(engine) as session:
            stmt = select(func.count()).select_from(model)
            for column, value in filters.items():
                stmt = stmt.where(getattr(model, column) == value)
            return session.execute(stmt).scalar_one()

    return _count


@pytest.fixture()
def order_count(count_rows):
    return lambda: count_rows(Order)


@pytest.fixture()
def tracking_count(count_rows):
    return lambda **filters: count_rows(Tracking, **filters)
