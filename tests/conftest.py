"""Shared fixtures: a fully built registry with every outbound call mocked."""

from datetime import datetime, timezone

import httpx
import pytest

from stock_valuation_mcp.config import Settings
from stock_valuation_mcp.dispatcher import ToolDispatcher
from stock_valuation_mcp.main import create_registry
from stock_valuation_mcp.providers.set_watch import SetWatchClient
from stock_valuation_mcp.providers.web import WebClient

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

STATISTICS = {
    "PTT": {
        "eps": 5,
        "peRatio": 10,
        "dividendPerShare": 2,
        "freeCashFlow": 1000,
        "sharesOutstanding": 100,
        "marketCap": 5000,
        "pbRatio": 1.2,
        "dividendYield": 4.0,
        "returnOnEquity": 12.5,
        "beta5Y": 0.9,
    },
    "NODIV": {
        "eps": 5,
        "peRatio": 10,
        "dividendPerShare": 0,
        "freeCashFlow": 1000,
        "sharesOutstanding": 100,
    },
}


def _statement(fiscal_year, data):
    return {"date": f"{fiscal_year}-12-31", "fiscalYear": fiscal_year, "currency": "THB", "data": data}


STATEMENTS = {
    "Income": [
        _statement(2024, {"revenue": 1000, "netIncome": 100, "grossProfit": 400, "operatingIncome": 150}),
        _statement(2023, {"revenue": 900, "netIncome": 80, "grossProfit": 350, "operatingIncome": 120}),
    ],
    "Balance Sheet": [
        _statement(
            2024,
            {
                "totalAssets": 2000,
                "totalLiabilities": 800,
                "totalShareholdersEquity": 1200,
                "totalCurrentAssets": 600,
                "totalCurrentLiabilities": 300,
            },
        ),
    ],
    "Cash Flow": [
        _statement(2024, {"operatingCashFlow": 180, "freeCashFlow": 120}),
    ],
}

RATIOS = [
    {"fiscalYear": 2024, "PE": 10, "PBV": 1.0, "ROE": 12, "ROA": 6, "ROIC": 9, "forwordPE": 9.5},
    {"fiscalYear": 2023, "PE": 12, "PBV": 1.2, "ROE": 12, "ROA": 6, "ROIC": 9},
    {"fiscalYear": 2022, "PE": 14, "PBV": 1.4, "ROE": 12, "ROA": 6, "ROIC": 9},
]


def set_watch_handler(request: httpx.Request) -> httpx.Response:
    parts = request.url.path.strip("/").split("/")
    if parts[:2] == ["mypick", "snapStatistics"]:
        data = STATISTICS.get(parts[2].removesuffix(".BK"))
        return httpx.Response(200, json=data) if data else httpx.Response(404)
    if parts[:2] == ["mypick", "snapFinancials"]:
        if parts[2] != "PTT.BK":
            return httpx.Response(404)
        return httpx.Response(200, json=STATEMENTS[parts[3]])
    if parts[:2] == ["mypick", "Ratio4Chart"]:
        if parts[2] != "PTT.BK":
            return httpx.Response(404)
        return httpx.Response(200, json=RATIOS)
    return httpx.Response(500)


def offline_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="offline")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(fs_root=tmp_path)


@pytest.fixture
def set_watch_client(settings):
    return SetWatchClient(settings, transport=httpx.MockTransport(set_watch_handler))


@pytest.fixture
def registry(settings, set_watch_client):
    return create_registry(
        settings,
        set_watch=set_watch_client,
        web=WebClient(settings, transport=httpx.MockTransport(offline_handler)),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def dispatcher(registry):
    return ToolDispatcher(registry)
