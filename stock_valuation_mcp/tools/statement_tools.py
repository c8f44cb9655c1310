"""
Financial statement tools backed by the SET Watch API.

Each single-statement tool returns the raw periods plus a short summary
with key findings, so a model reading the result gets the headline numbers
without walking the whole payload.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..providers.set_watch import STATEMENT_LABELS, SetWatchClient, exchange_symbol
from . import RegisteredTool, define_tool
from .helpers import object_schema, string

PERIODS = ["TTM", "Quarterly", "Annual"]

RELATED_TOOLS = {
    "income": ["fetch_balance_sheet", "fetch_cash_flow_statement", "fetch_all_financial_statements"],
    "balance_sheet": ["fetch_income_statement", "fetch_cash_flow_statement", "fetch_all_financial_statements"],
    "cash_flow": ["fetch_income_statement", "fetch_balance_sheet", "fetch_all_financial_statements"],
}


def format_baht(value: float) -> str:
    return f"฿{value:,.2f}"


def _latest_values(statements: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not statements:
        return {}
    latest = statements[0].get("data")
    return latest if isinstance(latest, dict) else {}


def _ratio(numerator: Any, denominator: Any) -> Optional[float]:
    """numerator / denominator when both are usable non-zero numbers."""
    for value in (numerator, denominator):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
            return None
    return numerator / denominator


def statement_summary(statements: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not statements:
        return None
    latest = statements[0]
    return {
        "latestPeriod": latest.get("date"),
        "fiscalYear": latest.get("fiscalYear"),
        "fiscalQuarter": latest.get("fiscalQuarter"),
        "currency": latest.get("currency"),
        "totalPeriods": len(statements),
    }


def key_findings(kind: str, ticker: str, period: str, statements: List[Dict[str, Any]]) -> List[str]:
    summary = statement_summary(statements)
    if summary is None:
        return []

    label = STATEMENT_LABELS[kind]
    findings = [
        f"{label} for {ticker} ({period})",
        f"Latest: {summary['latestPeriod']} (FY{summary['fiscalYear']})",
        f"Total periods: {summary['totalPeriods']}",
        f"Currency: {summary['currency']}",
    ]

    latest = _latest_values(statements)
    if kind == "income":
        net_margin = _ratio(latest.get("netIncome"), latest.get("revenue"))
        if net_margin is not None:
            findings.append(f"Revenue: {format_baht(latest['revenue'])} | Net Margin: {net_margin * 100:.1f}%")
        gross_margin = _ratio(latest.get("grossProfit"), latest.get("revenue"))
        if gross_margin is not None:
            findings.append(f"Gross Margin: {gross_margin * 100:.1f}%")
    elif kind == "balance_sheet":
        debt_ratio = _ratio(latest.get("totalLiabilities"), latest.get("totalAssets"))
        if debt_ratio is not None:
            findings.append(
                f"Total Assets: {format_baht(latest['totalAssets'])} | Debt Ratio: {debt_ratio * 100:.1f}%"
            )
        current_ratio = _ratio(latest.get("totalCurrentAssets"), latest.get("totalCurrentLiabilities"))
        if current_ratio is not None:
            findings.append(f"Current Ratio: {current_ratio:.2f}x")
    elif kind == "cash_flow":
        for field, caption in (("operatingCashFlow", "Operating CF"), ("freeCashFlow", "Free CF")):
            value = latest.get(field)
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value:
                findings.append(f"{caption}: {format_baht(value)}")
    return findings


def ratio_analysis(statements: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Dict[str, float]]:
    """Headline ratios computed from the latest period of each statement."""
    income = _latest_values(statements["income"])
    balance = _latest_values(statements["balanceSheet"])
    cash_flow = _latest_values(statements["cashFlow"])

    candidates = {
        "profitability": {
            "netMargin": (_ratio(income.get("netIncome"), income.get("revenue")), 100),
            "operatingMargin": (_ratio(income.get("operatingIncome"), income.get("revenue")), 100),
            "grossMargin": (_ratio(income.get("grossProfit"), income.get("revenue")), 100),
        },
        "liquidity": {
            "currentRatio": (_ratio(balance.get("totalCurrentAssets"), balance.get("totalCurrentLiabilities")), 1),
        },
        "leverage": {
            "debtToEquity": (_ratio(balance.get("totalLiabilities"), balance.get("totalShareholdersEquity")), 1),
            "debtToAssets": (_ratio(balance.get("totalLiabilities"), balance.get("totalAssets")), 1),
        },
        "cashFlow": {
            "operatingCashFlowToCurrentLiabilities": (
                _ratio(cash_flow.get("operatingCashFlow"), balance.get("totalCurrentLiabilities")),
                1,
            ),
            "freeCashFlowMargin": (_ratio(cash_flow.get("freeCashFlow"), income.get("revenue")), 100),
        },
    }

    analysis: Dict[str, Dict[str, float]] = {}
    for group, ratios in candidates.items():
        analysis[group] = {name: value * scale for name, (value, scale) in ratios.items() if value is not None}
    return analysis


class StatementTools:
    def __init__(self, client: SetWatchClient) -> None:
        self._client = client

    async def fetch_single(self, kind: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        symbol = arguments["symbol"]
        period = arguments["period"]
        ticker = exchange_symbol(symbol)
        statements = await self._client.fetch_statement(kind, symbol, period)
        label = STATEMENT_LABELS[kind]
        has_data = bool(statements)

        return {
            "symbol": ticker,
            "period": period,
            "statementType": label,
            "data": statements,
            "summary": statement_summary(statements),
            "keyFindings": key_findings(kind, ticker, period, statements),
            "warnings": [] if has_data else ["No data available"],
            "relatedTools": RELATED_TOOLS[kind],
        }

    async def fetch_all(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        symbol = arguments["symbol"]
        period = arguments["period"]
        statements = await self._client.fetch_all_statements(symbol, period)
        latest_income = statements["income"][0] if statements["income"] else {}

        return {
            "symbol": exchange_symbol(symbol),
            "period": period,
            "statements": statements,
            "analysis": ratio_analysis(statements),
            "summary": {
                "incomeStatementCount": len(statements["income"]),
                "balanceSheetCount": len(statements["balanceSheet"]),
                "cashFlowStatementCount": len(statements["cashFlow"]),
                "latestDate": latest_income.get("date") or "N/A",
                "currency": latest_income.get("currency") or "N/A",
            },
        }


def build_tools(client: SetWatchClient) -> List[RegisteredTool]:
    tools = StatementTools(client)
    schema = object_schema(
        {
            "symbol": string('Stock symbol without .BK suffix (e.g., "ADVANC" for ADVANC.BK)'),
            "period": string(
                "Time period - TTM (Trailing Twelve Months), Quarterly, or Annual",
                enum=PERIODS,
                default="TTM",
            ),
        },
        required=["symbol"],
    )

    async def _income(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await tools.fetch_single("income", arguments)

    async def _balance_sheet(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await tools.fetch_single("balance_sheet", arguments)

    async def _cash_flow(arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await tools.fetch_single("cash_flow", arguments)

    return [
        define_tool(
            "fetch_income_statement",
            "Fetch income statement data from the SET Watch API for Thai stocks",
            schema,
            _income,
        ),
        define_tool(
            "fetch_balance_sheet",
            "Fetch balance sheet data from the SET Watch API for Thai stocks",
            schema,
            _balance_sheet,
        ),
        define_tool(
            "fetch_cash_flow_statement",
            "Fetch cash flow statement data from the SET Watch API for Thai stocks",
            schema,
            _cash_flow,
        ),
        define_tool(
            "fetch_all_financial_statements",
            "Fetch income statement, balance sheet and cash flow together, with headline ratio analysis",
            schema,
            tools.fetch_all,
        ),
    ]
