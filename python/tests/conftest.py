"""Shared pytest fixtures for OpenFolio persistence tests."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

import pytest
from openfolio.model.document import (
    FxData,
    ProjectDocument,
    ProjectSettings,
    Security,
)


@pytest.fixture
def sample_document() -> ProjectDocument:
    """Provide a project with light and heavy data in every section."""
    return ProjectDocument(
        id="3f1c2a9e-0000-4000-8000-000000000001",
        name="Family Depot",
        created="2024-01-02T09:00:00+00:00",
        modified="2024-06-30T18:15:00+00:00",
        settings=ProjectSettings(
            base_currency="EUR",
            wealth_goal=500000.0,
            wealth_goal_currency="EUR",
        ),
        portfolios=[{"id": "p1", "name": "Main"}],
        transactions=[
            {
                "id": "t1",
                "date": "2024-01-15",
                "type": "Buy",
                "isin": "IE00B4L5Y983",
                "shares": 10,
                "amount": -850.0,
                "currency": "EUR",
                "broker": "Scalable",
                "portfolioId": "p1",
            },
            {
                "id": "t2",
                "date": "2024-02-01",
                "type": "Deposit",
                "amount": 1000.0,
                "currency": "EUR",
                "broker": "Scalable",
                "portfolioId": "p1",
            },
        ],
        securities={
            "IE00B4L5Y983": Security(
                isin="IE00B4L5Y983",
                name="iShares Core MSCI World",
                currency="EUR",
                symbol="EUNL.DE",
                quote_type="ETF",
                extra={"marketCap": 9.1e10, "dividendHistorySynced": True},
                price_history={"2024-01-15": 85.0, "2024-01-16": 85.4},
            ),
            "US0378331005": Security(
                isin="US0378331005",
                name="Apple Inc.",
                currency="USD",
                symbol="AAPL",
                quote_type="Stock",
            ),
        },
        cash_accounts=[
            {
                "id": "c1",
                "name": "Main EUR",
                "portfolioId": "p1",
                "currency": "EUR",
                "balanceHistory": {"2024-02-01": 1000.0},
            },
        ],
        cash_movements=[{"id": "m1", "date": "2024-02-01", "amount": 1000.0}],
        fx_data=FxData(
            rates={"USD": {"2024-01-15": 1.09, "2024-01-16": 1.088}},
            last_updated="2024-01-16",
        ),
    )


@pytest.fixture
def raw_sqlite() -> Callable[..., bytes]:
    """Build raw SQLite file bytes from a list of SQL statements."""

    def _build(*statements: str) -> bytes:
        conn = sqlite3.connect(":memory:")
        try:
            for sql in statements:
                conn.execute(sql)
            conn.commit()
            return conn.serialize()
        finally:
            conn.close()

    return _build
