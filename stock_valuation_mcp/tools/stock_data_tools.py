from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..logging_config import get_logger
from ..providers.set_watch import SetWatchClient, exchange_symbol
from . import RegisteredTool, define_tool
from .helpers import majority_vote, number, object_schema, string
from .valuation_tools import dcf_valuation, ddm_valuation, pe_band_valuation

logger = get_logger(__name__)

THAI_MARKET_PES = [8, 10, 12, 15, 18, 20, 22, 25, 15, 13, 11, 9]
COMPLETE_VALUATION_TERMINAL_GROWTH = 0.025

# Output key -> SET Watch statistics field
STOCK_FIELDS = {
    "eps": "eps",
    "dividend": "dividendPerShare",
    "freeCashFlow": "freeCashFlow",
    "sharesOutstanding": "sharesOutstanding",
    "marketCap": "marketCap",
    "peRatio": "peRatio",
    "pbRatio": "pbRatio",
    "psRatio": "psRatio",
    "dividendYield": "dividendYield",
    "roe": "returnOnEquity",
    "beta": "beta5Y",
    "debtToEquity": "debtToEquity",
    "currentRatio": "currentRatio",
    "quickRatio": "quickRatio",
    "grossMargin": "grossMargin",
    "operatingMargin": "operatingMargin",
    "profitMargin": "profitMargin",
    "altmanZScore": "altmanZScore",
    "piotroskiFScore": "piotroskiFScore",
}


def _num(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def implied_price(data: Dict[str, Any]) -> float:
    """SET Watch statistics carry no quote; price is reconstructed as PE x EPS."""
    return _num(data, "peRatio") * _num(data, "eps")


def _vote(pe_recommendation: str) -> str:
    return {"Undervalued": "Buy", "Overvalued": "Sell"}.get(pe_recommendation, "Hold")


class StockDataTools:
    def __init__(self, client: SetWatchClient) -> None:
        self._client = client

    async def fetch_stock_data(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        symbol = arguments["symbol"]
        data = await self._client.fetch_statistics(symbol)

        result: Dict[str, Any] = {
            "symbol": exchange_symbol(symbol),
            "currentPrice": implied_price(data),
        }
        for key, source in STOCK_FIELDS.items():
            result[key] = data.get(source)
        result["rawData"] = data
        return result

    async def complete_valuation(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fetch statistics and run PE band, DDM and DCF on them.

        A model whose preconditions the company does not meet (no dividend,
        negative free cash flow, ...) is reported with a note and left out
        of the overall vote.
        """
        symbol = arguments["symbol"]
        required_return = arguments["requiredReturn"]
        growth_rate = arguments["growthRate"]
        discount_rate = arguments["discountRate"]
        years = int(arguments["years"])

        data = await self._client.fetch_statistics(symbol)
        ticker = exchange_symbol(symbol)
        price = implied_price(data)
        eps = _num(data, "eps")
        dividend = _num(data, "dividendPerShare")

        votes: List[str] = []
        valuations: Dict[str, Any] = {}

        pe_band = pe_band_valuation(ticker, price, eps, THAI_MARKET_PES)
        valuations["peBand"] = pe_band
        votes.append(_vote(pe_band["recommendation"]))

        ddm: Optional[Dict[str, Any]] = None
        if dividend > 0:
            try:
                ddm = ddm_valuation(ticker, price, dividend, required_return, growth_rate)
            except ValueError as e:
                valuations["ddm"] = {"note": f"DDM not applicable: {e}", "dividend": dividend}
            else:
                valuations["ddm"] = ddm
                votes.append(ddm["recommendation"])
        else:
            valuations["ddm"] = {"note": "No dividend - DDM not applicable", "dividend": 0}

        dcf: Optional[Dict[str, Any]] = None
        try:
            dcf = dcf_valuation(
                ticker,
                price,
                _num(data, "freeCashFlow"),
                _num(data, "sharesOutstanding"),
                growth_rate,
                discount_rate,
                years=years,
                terminal_growth_rate=COMPLETE_VALUATION_TERMINAL_GROWTH,
            )
        except ValueError as e:
            valuations["dcf"] = {"note": f"DCF not applicable: {e}"}
        else:
            valuations["dcf"] = dcf
            votes.append(dcf["recommendation"])

        overall = majority_vote(votes)
        logger.info("complete_valuation %s -> %s (%s)", ticker, overall, ", ".join(votes))

        return {
            "symbol": ticker,
            "currentPrice": price,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
            "data": {
                "marketCap": data.get("marketCap"),
                "eps": data.get("eps"),
                "peRatio": data.get("peRatio"),
                "pbRatio": data.get("pbRatio"),
                "dividendYield": data.get("dividendYield"),
                "roe": data.get("returnOnEquity"),
                "beta": data.get("beta5Y"),
            },
            "valuations": valuations,
            "overallRecommendation": overall,
            "summary": {
                "peBand": pe_band["recommendation"],
                "ddm": ddm["recommendation"] if ddm else "N/A",
                "dcf": dcf["recommendation"] if dcf else "N/A",
                "overall": overall,
            },
        }


def build_tools(client: SetWatchClient) -> List[RegisteredTool]:
    tools = StockDataTools(client)
    symbol = string('Stock symbol without .BK suffix (e.g., "ADVANC" for ADVANC.BK)')

    return [
        define_tool(
            "fetch_stock_data",
            "Fetch stock statistics from the SET Watch API for Thai stocks",
            object_schema({"symbol": symbol}, required=["symbol"]),
            tools.fetch_stock_data,
        ),
        define_tool(
            "complete_valuation",
            "Fetch stock data and run all valuation models (PE Band, DDM, DCF)",
            object_schema(
                {
                    "symbol": symbol,
                    "requiredReturn": number("Required rate of return for DDM (decimal)", default=0.1),
                    "growthRate": number("Growth rate for DDM and DCF (decimal)", default=0.05),
                    "discountRate": number("Discount rate/WACC for DCF (decimal)", default=0.1),
                    "years": {"type": "integer", "minimum": 1, "maximum": 50, "default": 5,
                              "description": "Number of years for DCF projection"},
                },
                required=["symbol"],
            ),
            tools.complete_valuation,
        ),
    ]
