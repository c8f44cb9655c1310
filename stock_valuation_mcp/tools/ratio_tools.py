from __future__ import annotations

from typing import Any, Dict, List, Sequence

from ..providers.set_watch import SetWatchClient, exchange_symbol
from . import RegisteredTool, define_tool
from .helpers import majority_vote, mean, object_schema, string

PERIODS = ["TTM", "Quarterly"]
TREND_THRESHOLD = 0.05


def _series(rows: List[Dict[str, Any]], key: str, positive_only: bool = False) -> List[float]:
    values = []
    for row in rows:
        value = row.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if positive_only and value <= 0:
            continue
        values.append(float(value))
    return values


def _relative_change(values: Sequence[float]) -> float:
    """Relative change across the last three periods (0 when it cannot be computed)."""
    if len(values) < 2:
        return 0.0
    recent = values[-3:]
    if recent[0] == 0:
        return 0.0
    return (recent[-1] - recent[0]) / abs(recent[0])


def valuation_trend(values: Sequence[float]) -> str:
    change = _relative_change(values)
    if abs(change) < TREND_THRESHOLD:
        return "stable"
    return "increasing" if change > 0 else "decreasing"


def profitability_trend(values: Sequence[float]) -> str:
    change = _relative_change(values)
    if abs(change) < TREND_THRESHOLD:
        return "stable"
    return "improving" if change > 0 else "declining"


def percentile(value: float, values: Sequence[float]) -> float:
    """Rank of `value` within `values`; 50 when it is not one of them."""
    ordered = sorted(values)
    if len(ordered) < 2 or value not in ordered:
        return 50.0
    return ordered.index(value) / (len(ordered) - 1) * 100


def _band_status(label: str, current: float, average: float) -> str:
    if current < average * 0.8:
        return f"{label} is low compared to historical average (potentially undervalued)"
    if current > average * 1.2:
        return f"{label} is high compared to historical average (potentially overvalued)"
    return f"{label} is within normal historical range"


def _profitability_status(roe: float) -> str:
    if roe > 15:
        return "Excellent profitability (ROE > 15%)"
    if roe > 10:
        return "Good profitability (ROE > 10%)"
    if roe > 5:
        return "Moderate profitability (ROE > 5%)"
    return "Low profitability (ROE < 5%)"


def analyze_ratios(symbol: str, period: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a SET Watch ratio history.

    The first row is the current period; series are taken in the order the
    API returns them.
    """
    if not rows:
        raise ValueError(f"No historical ratio data for {symbol}")

    current = rows[0]
    current_pe = _series([current], "PE")[0] if _series([current], "PE") else 0.0
    current_pbv = _series([current], "PBV")[0] if _series([current], "PBV") else 0.0
    current_roe = _series([current], "ROE")[0] if _series([current], "ROE") else 0.0

    pes = _series(rows, "PE", positive_only=True)
    pbvs = _series(rows, "PBV", positive_only=True)
    roes = _series(rows, "ROE")

    average_pe = mean(pes)
    average_pbv = mean(pbvs)

    trend = {
        "pe": valuation_trend(pes),
        "pbv": valuation_trend(pbvs),
        "roe": profitability_trend(roes),
        "roa": profitability_trend(_series(rows, "ROA")),
        "roic": profitability_trend(_series(rows, "ROIC")),
    }

    positive = sum([trend["pe"] == "decreasing", trend["pbv"] == "decreasing", trend["roe"] == "improving"])
    negative = sum([trend["pe"] == "increasing", trend["pbv"] == "increasing", trend["roe"] == "declining"])
    if positive > negative:
        overall_trend = "Positive trend: Valuation becoming more attractive while profitability improving"
    elif negative > positive:
        overall_trend = "Negative trend: Valuation becoming less attractive or profitability declining"
    else:
        overall_trend = "Mixed trend: No clear direction in valuation and profitability"

    return {
        "symbol": exchange_symbol(symbol),
        "period": period,
        "data": rows,
        "currentPE": current_pe,
        "historicalPEs": pes,
        "averagePE": average_pe,
        "minPE": min(pes) if pes else 0,
        "maxPE": max(pes) if pes else 0,
        "pePercentile": percentile(current_pe, pes),
        "currentPBV": current_pbv,
        "historicalPBVs": pbvs,
        "averagePBV": average_pbv,
        "minPBV": min(pbvs) if pbvs else 0,
        "maxPBV": max(pbvs) if pbvs else 0,
        "pbvPercentile": percentile(current_pbv, pbvs),
        "currentROE": current_roe,
        "historicalROEs": roes,
        "averageROE": mean(roes),
        "trend": trend,
        "summary": {
            "peStatus": _band_status("PE", current_pe, average_pe),
            "pbvStatus": _band_status("P/B", current_pbv, average_pbv),
            "profitabilityStatus": _profitability_status(current_roe),
            "overallTrend": overall_trend,
        },
    }


def ratio_signals(analysis: Dict[str, Any]) -> Dict[str, List[str]]:
    """Split the analysis into bullish and bearish reasons."""
    buy: List[str] = []
    sell: List[str] = []

    cheap_pe = analysis["currentPE"] < analysis["averagePE"] * 0.8
    cheap_pbv = analysis["currentPBV"] < analysis["averagePBV"] * 0.8
    rich_pe = analysis["currentPE"] > analysis["averagePE"] * 1.2
    rich_pbv = analysis["currentPBV"] > analysis["averagePBV"] * 1.2
    if cheap_pe and cheap_pbv:
        buy.append("Both PE and P/B are below historical averages - potentially undervalued")
    elif rich_pe or rich_pbv:
        sell.append("PE or P/B is above historical averages - potentially overvalued")

    roe_trend = analysis["trend"]["roe"]
    if roe_trend == "improving" and analysis["currentROE"] > 10:
        buy.append("ROE is improving and above 10% - strong profitability")
    elif roe_trend == "declining":
        sell.append("ROE is declining - profitability weakening")

    overall = analysis["summary"]["overallTrend"]
    if overall.startswith("Positive"):
        buy.append("Overall positive trend detected")
    elif overall.startswith("Negative"):
        sell.append("Overall negative trend detected")

    return {"buy": buy, "sell": sell}


class RatioTools:
    def __init__(self, client: SetWatchClient) -> None:
        self._client = client

    async def fetch(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        symbol = arguments["symbol"]
        period = arguments["period"]
        rows = await self._client.fetch_ratios(symbol, period)
        latest = rows[0] if rows else {}

        return {
            "symbol": exchange_symbol(symbol),
            "period": period,
            "data": rows,
            "summary": {
                "totalPeriods": len(rows),
                "latestPeriod": latest.get("fiscalYear") or "N/A",
                "currentPE": latest.get("PE") or 0,
                "currentPBV": latest.get("PBV") or 0,
                "currentROE": latest.get("ROE") or 0,
                # the API spells this field "forwordPE"
                "forwardPE": latest.get("forwordPE") or 0,
            },
        }

    async def analyze(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        symbol = arguments["symbol"]
        period = arguments["period"]
        rows = await self._client.fetch_ratios(symbol, period)
        analysis = analyze_ratios(symbol, period, rows)

        signals = ratio_signals(analysis)
        votes = ["Buy"] * len(signals["buy"]) + ["Sell"] * len(signals["sell"])
        recommendation = majority_vote(votes)
        reasons = signals["buy"] + signals["sell"]

        analysis.update(
            {
                "recommendation": recommendation,
                "reasons": reasons,
                "investmentSummary": f"{recommendation} - {'; '.join(reasons) or 'no clear signals'}",
            }
        )
        return analysis


def build_tools(client: SetWatchClient) -> List[RegisteredTool]:
    tools = RatioTools(client)
    schema = object_schema(
        {
            "symbol": string('Stock symbol without .BK suffix (e.g., "AP" for AP.BK)'),
            "period": string(
                "Time period - TTM (Trailing Twelve Months) or Quarterly",
                enum=PERIODS,
                default="TTM",
            ),
        },
        required=["symbol"],
    )

    return [
        define_tool(
            "fetch_historical_ratios",
            "Fetch historical financial ratios (PE, PBV, ROE, ROA, ROIC) from the SET Watch API",
            schema,
            tools.fetch,
        ),
        define_tool(
            "analyze_historical_ratios",
            "Fetch and analyze historical ratios with trend analysis and valuation assessment",
            schema,
            tools.analyze,
        ),
    ]
