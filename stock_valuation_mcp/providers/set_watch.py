from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import anyio
import httpx

from ..config import Settings
from ..logging_config import get_logger
from . import DataProviderError

logger = get_logger(__name__)

STATEMENT_PATHS = {
    "income": "Income",
    "balance_sheet": "Balance Sheet",
    "cash_flow": "Cash Flow",
}

STATEMENT_LABELS = {
    "income": "Income statement",
    "balance_sheet": "Balance sheet",
    "cash_flow": "Cash flow statement",
}


def exchange_symbol(symbol: str) -> str:
    """SET Watch keys stocks by their Yahoo-style Bangkok ticker."""
    return f"{symbol.strip().upper()}.BK"


class SetWatchClient:
    """
    Thin async client for the SET Watch API (Thai listed stocks).

    A fresh httpx.AsyncClient is opened per call. Pass `transport` to route
    requests somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._base_url = settings.set_watch_api_host.rstrip("/")
        self._timeout = settings.set_watch_api_timeout
        self._headers = settings.set_watch_headers()
        self._transport = transport

    async def _get(self, path: str, not_found: str, failure: str) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise DataProviderError(not_found) from e
            raise DataProviderError(f"{failure}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise DataProviderError(f"{failure}: {e}") from e
        except ValueError as e:
            raise DataProviderError(f"{failure}: invalid JSON response") from e

    async def fetch_statistics(self, symbol: str) -> Dict[str, Any]:
        ticker = exchange_symbol(symbol)
        data = await self._get(
            f"/mypick/snapStatistics/{quote(ticker, safe='')}",
            not_found=f"Stock symbol {symbol} not found",
            failure=f"Failed to fetch data for {symbol}",
        )
        if not isinstance(data, dict):
            raise DataProviderError(f"Failed to fetch data for {symbol}: unexpected response shape")
        return data

    async def fetch_statement(self, kind: str, symbol: str, period: str = "TTM") -> List[Dict[str, Any]]:
        """Fetch one statement type; `kind` is a key of STATEMENT_PATHS."""
        ticker = exchange_symbol(symbol)
        label = STATEMENT_LABELS[kind]
        path = f"/mypick/snapFinancials/{quote(ticker, safe='')}/{quote(STATEMENT_PATHS[kind])}/{quote(period, safe='')}"
        data = await self._get(
            path,
            not_found=f"{label} data not found for {symbol}",
            failure=f"Failed to fetch {label.lower()} for {symbol}",
        )
        if not isinstance(data, list):
            raise DataProviderError(f"Failed to fetch {label.lower()} for {symbol}: unexpected response shape")
        return data

    async def fetch_all_statements(self, symbol: str, period: str = "TTM") -> Dict[str, List[Dict[str, Any]]]:
        """Fetch income, balance sheet and cash flow concurrently."""
        results: Dict[str, List[Dict[str, Any]]] = {}
        errors: List[DataProviderError] = []

        async def _fetch(kind: str) -> None:
            try:
                results[kind] = await self.fetch_statement(kind, symbol, period)
            except DataProviderError as e:
                errors.append(e)

        async with anyio.create_task_group() as tg:
            for kind in STATEMENT_PATHS:
                tg.start_soon(_fetch, kind)

        if errors:
            raise DataProviderError(
                f"Failed to fetch financial statements for {symbol}: {errors[0]}"
            ) from errors[0]

        return {
            "income": results["income"],
            "balanceSheet": results["balance_sheet"],
            "cashFlow": results["cash_flow"],
        }

    async def fetch_ratios(self, symbol: str, period: str = "TTM") -> List[Dict[str, Any]]:
        ticker = exchange_symbol(symbol)
        data = await self._get(
            f"/mypick/Ratio4Chart/{quote(ticker, safe='')}/{quote(period, safe='')}",
            not_found=f"Historical ratio data not found for {symbol}",
            failure=f"Failed to fetch historical ratios for {symbol}",
        )
        if not isinstance(data, list):
            raise DataProviderError(f"Failed to fetch historical ratios for {symbol}: unexpected response shape")
        return data
