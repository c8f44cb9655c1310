from __future__ import annotations

from typing import Any, Dict, List

from . import RegisteredTool, define_tool
from .helpers import number, object_schema, string


def _quality_label(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Average"
    if score >= 20:
        return "Poor"
    return "Very Poor"


def _bankruptcy_risk(z_score: float) -> str:
    if z_score >= 3:
        return "Very Low"
    if z_score >= 2.5:
        return "Low"
    if z_score >= 1.8:
        return "Medium"
    if z_score >= 1:
        return "High"
    return "Very High"


def _financial_strength(f_score: int) -> str:
    if f_score >= 8:
        return "Excellent"
    if f_score >= 6:
        return "Good"
    if f_score >= 4:
        return "Average"
    if f_score >= 2:
        return "Weak"
    return "Poor"


def piotroski_score(arguments: Dict[str, Any]) -> int:
    """
    Single-period approximation of the Piotroski F-score.

    The real score compares two fiscal years; with one period of data each
    signal is tested against a fixed threshold instead. Optional inputs that
    are missing simply earn no point.
    """
    total_assets = arguments["totalAssets"]
    net_income = arguments["netIncome"]
    ocf = arguments["operatingCashFlow"]

    checks = [
        net_income > 0,
        ocf > 0,
        ocf > net_income,
        arguments["ebit"] / total_assets > 0,
        arguments["workingCapital"] > 0,
    ]

    long_term_debt = arguments.get("longTermDebt")
    checks.append(long_term_debt is not None and long_term_debt / total_assets < 0.4)

    current_ratio = arguments.get("currentRatio")
    checks.append(current_ratio is not None and current_ratio > 1.5)

    gross_margin = arguments.get("grossMargin")
    checks.append(gross_margin is not None and gross_margin > 20)

    asset_turnover = arguments.get("assetTurnover")
    if asset_turnover is None:
        asset_turnover = arguments["sales"] / total_assets
    checks.append(asset_turnover > 1)

    return sum(1 for passed in checks if passed)


async def _handle_health_score(arguments: Dict[str, Any]) -> Dict[str, Any]:
    total_assets = arguments["totalAssets"]
    total_liabilities = arguments["totalLiabilities"]
    if total_assets <= 0:
        raise ValueError("Total assets must be positive")
    if total_liabilities <= 0:
        raise ValueError("Total liabilities must be positive")

    z_score = (
        arguments["workingCapital"] / total_assets * 1.2
        + arguments["retainedEarnings"] / total_assets * 1.4
        + arguments["ebit"] / total_assets * 3.3
        + arguments["marketValueEquity"] / total_liabilities * 0.6
        + arguments["sales"] / total_assets * 1.0
    )
    f_score = piotroski_score(arguments)
    risk = _bankruptcy_risk(z_score)
    strength = _financial_strength(f_score)
    overall = round(z_score / 5 * 50 + f_score / 9 * 50)

    return {
        "symbol": arguments["symbol"],
        "altmanZScore": round(z_score, 2),
        "piotroskiFScore": f_score,
        "bankruptcyRisk": risk,
        "financialStrength": strength,
        "overallScore": overall,
        "recommendation": (
            f"{strength} financial health with {risk.lower()} bankruptcy risk. "
            f"Overall score: {overall}/100. Altman Z-Score: {z_score:.2f}."
        ),
    }


async def _handle_dupont(arguments: Dict[str, Any]) -> Dict[str, Any]:
    revenue = arguments["revenue"]
    total_assets = arguments["totalAssets"]
    equity = arguments["shareholdersEquity"]
    previous_roe = arguments.get("previousROE")
    if not revenue or not total_assets or not equity:
        raise ValueError("revenue, totalAssets and shareholdersEquity must be non-zero")

    margin = arguments["netIncome"] / revenue
    turnover = revenue / total_assets
    leverage = total_assets / equity
    roe = margin * turnover * leverage

    trend = "Stable"
    if previous_roe:
        # previousROE is given in percent
        change = (roe * 100 - previous_roe) / abs(previous_roe)
        if change > 0.05:
            trend = "Improving"
        elif change < -0.05:
            trend = "Declining"

    margin_label = "Strong" if margin > 0.1 else "Good" if margin > 0.05 else "Weak"
    lines = [
        f"ROE: {roe * 100:.2f}% breakdown:",
        f"- Net Profit Margin: {margin * 100:.2f}% ({margin_label})",
        f"- Asset Turnover: {turnover:.2f}x ({'Efficient' if turnover > 1 else 'Needs improvement'})",
        f"- Financial Leverage: {leverage:.2f}x ({'Conservative' if leverage < 2 else 'Aggressive'})",
    ]
    if trend != "Stable":
        lines.append(f"ROE is {trend.lower()} compared to previous period.")

    return {
        "symbol": arguments["symbol"],
        "roe": roe * 100,
        "components": {
            "netProfitMargin": margin * 100,
            "assetTurnover": turnover,
            "financialLeverage": leverage,
        },
        "analysis": "\n".join(lines),
        "trend": trend,
    }


async def _handle_cash_flow_quality(arguments: Dict[str, Any]) -> Dict[str, Any]:
    net_income = arguments["netIncome"]
    ocf = arguments["operatingCashFlow"]
    previous_ocf = arguments.get("previousYearOCF")
    if not net_income or not ocf:
        raise ValueError("netIncome and operatingCashFlow must be non-zero")

    free_cash_flow = ocf - arguments["capitalExpenditures"]
    ocf_to_net_income = ocf / abs(net_income)
    fcf_to_ocf = free_cash_flow / ocf

    score = 100
    if ocf_to_net_income < 1:
        score -= 30
    if ocf_to_net_income < 0.8:
        score -= 20
    if fcf_to_ocf < 0.7:
        score -= 25
    if fcf_to_ocf < 0.5:
        score -= 15

    ocf_growth = None
    if previous_ocf:
        ocf_growth = (ocf - previous_ocf) / abs(previous_ocf)
        if ocf_growth < 0:
            score -= 20
        elif ocf_growth > 0.1:
            score += 10

    quality = _quality_label(score)
    return {
        "symbol": arguments["symbol"],
        "operatingCashFlow": ocf,
        "freeCashFlow": free_cash_flow,
        "ocfToNetIncome": round(ocf_to_net_income, 2),
        "fcfToOcf": round(fcf_to_ocf, 2),
        "ocfGrowth": ocf_growth,
        "qualityScore": score,
        "quality": quality,
        "analysis": (
            f"Cash flow quality is {quality.lower()} with score {score}/100. "
            f"OCF/Net Income ratio: {ocf_to_net_income:.2f}, FCF/OCF ratio: {fcf_to_ocf:.2f}."
        ),
    }


async def _handle_earnings_quality(arguments: Dict[str, Any]) -> Dict[str, Any]:
    net_income = arguments["netIncome"]
    ocf = arguments["operatingCashFlow"]
    revenue = arguments["revenue"]
    receivables = arguments.get("accountsReceivable")
    previous_ar = arguments.get("previousYearAR")
    previous_revenue = arguments.get("previousYearRevenue")
    if not net_income or not ocf:
        raise ValueError("netIncome and operatingCashFlow must be non-zero")

    accruals = (net_income - ocf) / abs(ocf)

    # Receivables growing much faster than sales is a revenue-recognition flag
    revenue_quality = 100
    if receivables is not None and previous_ar and previous_revenue:
        ar_growth = (receivables - previous_ar) / previous_ar
        revenue_growth = (revenue - previous_revenue) / previous_revenue
        if ar_growth > revenue_growth * 1.5:
            revenue_quality -= 30

    accrual_score = 100
    if accruals > 0.1:
        accrual_score -= 40
    if accruals > 0.05:
        accrual_score -= 20
    if accruals < -0.05:
        accrual_score += 20

    score = round((accrual_score + revenue_quality) / 2)
    quality = _quality_label(score)
    return {
        "symbol": arguments["symbol"],
        "accruals": round(accruals, 3),
        "ocfToEarnings": round(ocf / net_income, 2),
        "revenueQuality": revenue_quality,
        "qualityScore": score,
        "quality": quality,
        "analysis": (
            f"Earnings quality is {quality.lower()} ({score}/100). Accruals ratio: {accruals:.3f}. "
            + ("Watch for high accruals" if accruals > 0 else "Good cash conversion")
        ),
    }


def build_tools() -> List[RegisteredTool]:
    symbol = string("Stock symbol")

    health_schema = object_schema(
        {
            "symbol": symbol,
            "workingCapital": number("Working capital"),
            "totalAssets": number("Total assets"),
            "retainedEarnings": number("Retained earnings"),
            "ebit": number("EBIT (Earnings Before Interest and Taxes)"),
            "marketValueEquity": number("Market value of equity"),
            "totalLiabilities": number("Total liabilities"),
            "sales": number("Sales/Revenue"),
            "netIncome": number("Net income"),
            "operatingCashFlow": number("Operating cash flow"),
            "currentRatio": number("Current ratio"),
            "grossMargin": number("Gross margin (%)"),
            "assetTurnover": number("Asset turnover ratio"),
            "longTermDebt": number("Long-term debt"),
            "commonSharesOutstanding": number("Common shares outstanding"),
        },
        required=[
            "symbol", "workingCapital", "totalAssets", "retainedEarnings", "ebit",
            "marketValueEquity", "totalLiabilities", "sales", "netIncome", "operatingCashFlow",
        ],
    )

    return [
        define_tool(
            "calculate_financial_health_score",
            "Calculate a financial health score from the Altman Z-Score and a Piotroski F-Score approximation",
            health_schema,
            _handle_health_score,
        ),
        define_tool(
            "analyze_dupont",
            "Decompose ROE using DuPont analysis to identify sources of profitability",
            object_schema(
                {
                    "symbol": symbol,
                    "netIncome": number("Net income"),
                    "revenue": number("Revenue/Sales"),
                    "totalAssets": number("Total assets"),
                    "shareholdersEquity": number("Shareholders equity"),
                    "previousROE": number("Previous period ROE (%)"),
                },
                required=["symbol", "netIncome", "revenue", "totalAssets", "shareholdersEquity"],
            ),
            _handle_dupont,
        ),
        define_tool(
            "analyze_cash_flow_quality",
            "Analyze cash flow quality and sustainability of earnings",
            object_schema(
                {
                    "symbol": symbol,
                    "netIncome": number("Net income"),
                    "operatingCashFlow": number("Operating cash flow"),
                    "capitalExpenditures": number("Capital expenditures (positive number)"),
                    "depreciation": number("Depreciation & amortization"),
                    "changesInWorkingCapital": number("Changes in working capital"),
                    "previousYearOCF": number("Previous year operating cash flow"),
                },
                required=["symbol", "netIncome", "operatingCashFlow", "capitalExpenditures"],
            ),
            _handle_cash_flow_quality,
        ),
        define_tool(
            "analyze_earnings_quality",
            "Assess earnings quality by comparing accrual and cash earnings",
            object_schema(
                {
                    "symbol": symbol,
                    "netIncome": number("Net income"),
                    "operatingCashFlow": number("Operating cash flow"),
                    "revenue": number("Revenue"),
                    "accountsReceivable": number("Accounts receivable"),
                    "inventory": number("Inventory"),
                    "previousYearAR": number("Previous year accounts receivable"),
                    "previousYearRevenue": number("Previous year revenue"),
                },
                required=["symbol", "netIncome", "operatingCashFlow", "revenue"],
            ),
            _handle_earnings_quality,
        ),
    ]
