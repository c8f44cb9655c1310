from __future__ import annotations

import math
from typing import Any, Dict, List

from . import RegisteredTool, define_tool
from .helpers import number, object_schema, string


async def _handle_graham_number(arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Graham number: sqrt(22.5 * EPS * book value per share).

    22.5 is a PE of 15 times a P/B of 1.5. Margin of safety here is measured
    against the Graham number, so positive means the price sits below it.
    """
    symbol = arguments["symbol"]
    eps = arguments["eps"]
    book_value = arguments["bookValue"]
    current_price = arguments["currentPrice"]

    product = 22.5 * eps * book_value
    if product <= 0:
        raise ValueError("Graham number requires positive EPS and book value")

    graham_number = math.sqrt(product)
    margin = (graham_number - current_price) / graham_number * 100

    if margin >= 30:
        recommendation = "Buy"
        analysis = (
            "Stock is significantly undervalued according to Graham's formula. "
            f"Current price represents {abs(margin):.1f}% margin of safety."
        )
    elif margin >= 0:
        recommendation = "Hold"
        analysis = f"Stock is fairly valued according to Graham's formula with {margin:.1f}% margin of safety."
    else:
        recommendation = "Sell"
        analysis = f"Stock is overvalued according to Graham's formula by {abs(margin):.1f}%."

    return {
        "symbol": symbol,
        "currentPrice": current_price,
        "grahamNumber": graham_number,
        "marginOfSafety": margin,
        "recommendation": recommendation,
        "analysis": analysis,
    }


async def _handle_discounted_earnings(arguments: Dict[str, Any]) -> Dict[str, Any]:
    symbol = arguments["symbol"]
    current_price = arguments["currentPrice"]
    eps = arguments["eps"]
    growth_rate = arguments["growthRate"]
    discount_rate = arguments["discountRate"]
    years = int(arguments["years"])
    terminal_pe = arguments["terminalPE"]

    if discount_rate <= -1:
        raise ValueError("Discount rate must be greater than -100%")

    projected_eps: List[float] = []
    present_value_sum = 0.0
    running_eps = eps
    for year in range(1, years + 1):
        running_eps *= 1 + growth_rate
        projected_eps.append(running_eps)
        present_value_sum += running_eps / (1 + discount_rate) ** year

    terminal_value = running_eps * terminal_pe
    intrinsic_value = present_value_sum + terminal_value / (1 + discount_rate) ** years
    if intrinsic_value <= 0:
        raise ValueError("Projected earnings give a non-positive intrinsic value")

    margin = (intrinsic_value - current_price) / intrinsic_value * 100
    if margin >= 20:
        recommendation = "Buy"
    elif margin >= -20:
        recommendation = "Hold"
    else:
        recommendation = "Sell"

    return {
        "symbol": symbol,
        "currentPrice": current_price,
        "eps": eps,
        "growthRate": growth_rate,
        "discountRate": discount_rate,
        "years": years,
        "terminalPE": terminal_pe,
        "projectedEPS": projected_eps,
        "terminalValue": terminal_value,
        "intrinsicValue": intrinsic_value,
        "marginOfSafety": margin,
        "recommendation": recommendation,
        "analysis": (
            f"Discounted earnings model suggests {recommendation} with {margin:.1f}% margin of safety. "
            f"Projected EPS in {years} years: {running_eps:.2f}"
        ),
    }


async def _handle_asset_based(arguments: Dict[str, Any]) -> Dict[str, Any]:
    symbol = arguments["symbol"]
    current_price = arguments["currentPrice"]
    book_value = arguments["bookValuePerShare"]
    total_assets = arguments.get("totalAssets")
    total_liabilities = arguments.get("totalLiabilities")
    shares = arguments.get("sharesOutstanding")
    discount = arguments["liquidationDiscount"]

    liquidation_value = book_value * (1 - discount)

    # Net-net working capital, approximated from the balance-sheet totals
    net_net = 0.0
    if total_assets and total_liabilities and shares:
        net_net = (total_assets * 0.5 - total_liabilities) / shares

    intrinsic_value = min(book_value, liquidation_value, net_net if net_net > 0 else book_value)
    if intrinsic_value <= 0:
        raise ValueError("Book value per share must be positive")

    margin = (intrinsic_value - current_price) / intrinsic_value * 100
    if margin >= 50:
        recommendation = "Buy"
    elif margin >= 0:
        recommendation = "Hold"
    else:
        recommendation = "Sell"

    return {
        "symbol": symbol,
        "currentPrice": current_price,
        "bookValuePerShare": book_value,
        "liquidationValue": liquidation_value,
        "netNetWorkingCapital": net_net,
        "intrinsicValue": intrinsic_value,
        "marginOfSafety": margin,
        "priceToBook": current_price / book_value,
        "recommendation": recommendation,
        "analysis": (
            f"Asset-based valuation indicates {recommendation}. "
            f"Conservative liquidation value: {liquidation_value:.2f}. "
            f"Current P/B: {current_price / book_value:.2f}x"
        ),
    }


async def _handle_ev_ebitda(arguments: Dict[str, Any]) -> Dict[str, Any]:
    symbol = arguments["symbol"]
    enterprise_value = arguments["enterpriseValue"]
    ebitda = arguments["ebitda"]
    industry_average = arguments.get("industryAverage")

    if ebitda == 0:
        raise ValueError("EBITDA must be non-zero")

    ratio = enterprise_value / ebitda

    if industry_average:
        difference = (industry_average - ratio) / industry_average * 100
        if ratio < industry_average * 0.8:
            relative, recommendation = "Undervalued", "Buy"
            analysis = (
                f"EV/EBITDA of {ratio:.2f}x is {abs(difference):.1f}% below "
                f"industry average of {industry_average}x"
            )
        elif ratio > industry_average * 1.2:
            relative, recommendation = "Overvalued", "Sell"
            analysis = (
                f"EV/EBITDA of {ratio:.2f}x is {abs(difference):.1f}% above "
                f"industry average of {industry_average}x"
            )
        else:
            relative, recommendation = "Fairly Valued", "Hold"
            analysis = f"EV/EBITDA of {ratio:.2f}x is close to industry average of {industry_average}x"
    else:
        if ratio < 6:
            relative, recommendation = "Undervalued", "Buy"
        elif ratio > 12:
            relative, recommendation = "Overvalued", "Sell"
        else:
            relative, recommendation = "Fairly Valued", "Hold"
        analysis = f"EV/EBITDA ratio of {ratio:.2f}x looks {relative.lower()} on an absolute basis"

    return {
        "symbol": symbol,
        "currentPrice": arguments["currentPrice"],
        "enterpriseValue": enterprise_value,
        "ebitda": ebitda,
        "evEbitdaRatio": ratio,
        "industryAverage": industry_average or 0,
        "relativeValuation": relative,
        "recommendation": recommendation,
        "analysis": analysis,
    }


def _dividend_risk_level(score: float) -> str:
    if score >= 80:
        return "Very Safe"
    if score >= 60:
        return "Safe"
    if score >= 40:
        return "Moderate"
    if score >= 20:
        return "Risky"
    return "Very Risky"


async def _handle_dividend_safety(arguments: Dict[str, Any]) -> Dict[str, Any]:
    symbol = arguments["symbol"]
    current_price = arguments["currentPrice"]
    dividend = arguments["dividend"]
    eps = arguments["eps"]
    free_cash_flow = arguments["freeCashFlow"]
    shares = arguments["sharesOutstanding"]
    history: List[float] = arguments.get("historicalDividends") or []

    if current_price <= 0 or eps == 0 or shares <= 0 or free_cash_flow == 0:
        raise ValueError("currentPrice, sharesOutstanding must be positive and eps, freeCashFlow non-zero")

    current_yield = dividend / current_price * 100
    payout_ratio = dividend / eps * 100
    fcf_payout = dividend / (free_cash_flow / shares) * 100

    growth_rate = 0.0
    years_of_growth = 0
    if len(history) >= 2 and history[0] > 0 and history[-1] > 0:
        years_of_growth = len(history) - 1
        growth_rate = (history[-1] / history[0]) ** (1 / years_of_growth) - 1

    score = 100
    if payout_ratio > 80:
        score -= 40
    elif payout_ratio > 60:
        score -= 20
    elif payout_ratio > 50:
        score -= 10

    if fcf_payout > 70:
        score -= 30
    elif fcf_payout > 50:
        score -= 15
    elif fcf_payout > 40:
        score -= 5

    if growth_rate > 0.10:
        score += 10
    elif growth_rate > 0.05:
        score += 5

    if years_of_growth >= 5:
        score += 10
    elif years_of_growth >= 3:
        score += 5

    score = max(0, min(100, score))
    risk_level = _dividend_risk_level(score)

    return {
        "symbol": symbol,
        "currentYield": current_yield,
        "payoutRatio": payout_ratio,
        "freeCashFlowPayout": fcf_payout,
        "dividendGrowthRate": growth_rate,
        "yearsOfGrowth": years_of_growth,
        "safetyScore": score,
        "riskLevel": risk_level,
        "recommendation": (
            f"Dividend appears {risk_level.lower()} with {score}/100 safety score. "
            f"Current yield: {current_yield:.2f}%, Payout ratio: {payout_ratio:.1f}%"
        ),
    }


def build_tools() -> List[RegisteredTool]:
    symbol = string("Stock symbol")
    price = number("Current market price")

    return [
        define_tool(
            "calculate_graham_number",
            "Calculate Benjamin Graham's intrinsic value formula for defensive stocks",
            object_schema(
                {
                    "symbol": symbol,
                    "eps": number("Earnings per share (EPS)"),
                    "bookValue": number("Book value per share"),
                    "currentPrice": price,
                },
                required=["symbol", "eps", "bookValue", "currentPrice"],
            ),
            _handle_graham_number,
        ),
        define_tool(
            "calculate_discounted_earnings",
            "Calculate intrinsic value using a discounted earnings projection",
            object_schema(
                {
                    "symbol": symbol,
                    "currentPrice": price,
                    "eps": number("Current earnings per share"),
                    "growthRate": number("Expected EPS growth rate (decimal)"),
                    "discountRate": number("Discount rate (decimal)"),
                    "years": {"type": "integer", "minimum": 1, "maximum": 50, "default": 10,
                              "description": "Years to project"},
                    "terminalPE": number("Terminal PE multiple", default=15),
                },
                required=["symbol", "currentPrice", "eps", "growthRate", "discountRate"],
            ),
            _handle_discounted_earnings,
        ),
        define_tool(
            "calculate_asset_based_valuation",
            "Calculate intrinsic value based on company assets and liquidation value",
            object_schema(
                {
                    "symbol": symbol,
                    "currentPrice": price,
                    "bookValuePerShare": number("Book value per share"),
                    "totalAssets": number("Total assets"),
                    "totalLiabilities": number("Total liabilities"),
                    "sharesOutstanding": number("Shares outstanding"),
                    "liquidationDiscount": number(
                        "Liquidation discount (decimal)", default=0.3, minimum=0, maximum=1
                    ),
                },
                required=["symbol", "currentPrice", "bookValuePerShare"],
            ),
            _handle_asset_based,
        ),
        define_tool(
            "calculate_ev_ebitda_valuation",
            "Compare the EV/EBITDA multiple against an industry average or absolute thresholds",
            object_schema(
                {
                    "symbol": symbol,
                    "currentPrice": price,
                    "enterpriseValue": number("Enterprise value"),
                    "ebitda": number("EBITDA"),
                    "industryAverage": number("Industry average EV/EBITDA"),
                    "sharesOutstanding": number("Shares outstanding"),
                    "debt": number("Total debt"),
                    "cash": number("Cash and cash equivalents"),
                },
                required=["symbol", "currentPrice", "enterpriseValue", "ebitda"],
            ),
            _handle_ev_ebitda,
        ),
        define_tool(
            "analyze_dividend_safety",
            "Analyze dividend safety and sustainability",
            object_schema(
                {
                    "symbol": symbol,
                    "currentPrice": price,
                    "dividend": number("Annual dividend per share"),
                    "eps": number("Earnings per share"),
                    "freeCashFlow": number("Free cash flow"),
                    "sharesOutstanding": number("Shares outstanding"),
                    "historicalDividends": {
                        "type": "array",
                        "items": {"type": "number"},
                        "description": "Historical dividends, oldest first (e.g. last 5 years)",
                    },
                },
                required=["symbol", "currentPrice", "dividend", "eps", "freeCashFlow", "sharesOutstanding"],
            ),
            _handle_dividend_safety,
        ),
    ]
