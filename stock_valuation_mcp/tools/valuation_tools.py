"""
Core valuation models: PE band, dividend discount (Gordon growth) and
discounted cash flow.

The pure `*_valuation` functions are shared with `complete_valuation`,
which feeds them live SET Watch data.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from . import RegisteredTool, define_tool
from .helpers import (
    mean,
    number,
    object_schema,
    premium_analysis,
    premium_recommendation,
    price_premium,
    string,
)

DEFAULT_HISTORICAL_PES = [15, 18, 20, 22, 25, 23, 21, 19, 17, 16, 18, 20]
DEFAULT_TERMINAL_GROWTH = 0.025


def price_to_earnings(price: float, eps: float) -> float:
    return price / eps if eps > 0 else 0.0


def pe_percentile(value: float, pes: Sequence[float]) -> float:
    """Rank of `value` in the sorted PEs; an absent value ranks at index -1."""
    ordered = sorted(pes)
    index = ordered.index(value) if value in ordered else -1
    if len(ordered) == 1:
        return 100.0 if index == 0 else 0.0
    return index / (len(ordered) - 1) * 100


def pe_band_valuation(
    symbol: str,
    current_price: float,
    eps: float,
    historical_pes: Optional[Sequence[float]] = None,
) -> Dict[str, Any]:
    pes = list(DEFAULT_HISTORICAL_PES if historical_pes is None else historical_pes)
    if not pes:
        raise ValueError("At least one historical PE value is required")

    current_pe = price_to_earnings(current_price, eps)
    min_pe, max_pe = min(pes), max(pes)
    percentile = pe_percentile(current_pe, pes)
    lower, upper = min_pe * eps, max_pe * eps

    if current_price < lower:
        recommendation = "Undervalued"
        analysis = (
            f"Stock is trading below its historical PE range. Current PE ({current_pe:.2f}) "
            f"is lower than {percentile:.1f}% of historical values."
        )
    elif current_price > upper:
        recommendation = "Overvalued"
        analysis = (
            f"Stock is trading above its historical PE range. Current PE ({current_pe:.2f}) "
            f"is higher than {percentile:.1f}% of historical values."
        )
    else:
        recommendation = "Fairly Valued"
        analysis = (
            f"Stock is trading within its historical PE range. Current PE ({current_pe:.2f}) "
            f"is at the {percentile:.1f}th percentile of historical values."
        )

    return {
        "symbol": symbol,
        "currentPE": current_pe,
        "averagePE": mean(pes),
        "minPE": min_pe,
        "maxPE": max_pe,
        "pePercentile": percentile,
        "fairValueRange": {"lower": lower, "upper": upper},
        "recommendation": recommendation,
        "analysis": analysis,
    }


def ddm_valuation(
    symbol: str,
    current_price: float,
    dividend: float,
    required_return: float,
    growth_rate: float,
) -> Dict[str, Any]:
    if required_return <= growth_rate:
        raise ValueError("Required return must be greater than growth rate")
    if dividend < 0:
        raise ValueError("Dividend cannot be negative")

    next_dividend = dividend * (1 + growth_rate)
    intrinsic_value = next_dividend / (required_return - growth_rate)
    premium = price_premium(current_price, intrinsic_value)

    return {
        "symbol": symbol,
        "currentPrice": current_price,
        "dividend": dividend,
        "requiredReturn": required_return,
        "growthRate": growth_rate,
        "intrinsicValue": intrinsic_value,
        "marginOfSafety": premium,
        "recommendation": premium_recommendation(premium),
        "analysis": premium_analysis("Dividend discount model", premium, intrinsic_value),
    }


def dcf_valuation(
    symbol: str,
    current_price: float,
    free_cash_flow: float,
    shares_outstanding: float,
    growth_rate: float,
    discount_rate: float,
    years: int = 5,
    terminal_growth_rate: float = DEFAULT_TERMINAL_GROWTH,
) -> Dict[str, Any]:
    if free_cash_flow <= 0:
        raise ValueError("Free cash flow must be positive")
    if shares_outstanding <= 0:
        raise ValueError("Shares outstanding must be positive")
    if discount_rate <= terminal_growth_rate:
        raise ValueError("Discount rate must be greater than terminal growth rate")

    projections: List[Dict[str, float]] = []
    projected = free_cash_flow
    npv = 0.0
    for year in range(1, years + 1):
        projected *= 1 + growth_rate
        present_value = projected / (1 + discount_rate) ** year
        npv += present_value
        projections.append({"year": year, "fcf": projected, "presentValue": present_value})

    terminal_value = projected * (1 + terminal_growth_rate) / (discount_rate - terminal_growth_rate)
    terminal_present_value = terminal_value / (1 + discount_rate) ** years
    total_npv = npv + terminal_present_value
    intrinsic_value = total_npv / shares_outstanding
    premium = price_premium(current_price, intrinsic_value)

    return {
        "symbol": symbol,
        "currentPrice": current_price,
        "freeCashFlow": free_cash_flow,
        "growthRate": growth_rate,
        "discountRate": discount_rate,
        "terminalGrowthRate": terminal_growth_rate,
        "terminalValue": terminal_value,
        "intrinsicValue": intrinsic_value,
        "marginOfSafety": premium,
        "npv": total_npv,
        "recommendation": premium_recommendation(premium),
        "analysis": premium_analysis("DCF analysis", premium, intrinsic_value),
        "projections": projections,
    }


async def _handle_pe_band(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return pe_band_valuation(
        arguments["symbol"],
        arguments["currentPrice"],
        arguments["eps"],
        arguments.get("historicalPEs"),
    )


async def _handle_ddm(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return ddm_valuation(
        arguments["symbol"],
        arguments["currentPrice"],
        arguments["dividend"],
        arguments["requiredReturn"],
        arguments["growthRate"],
    )


async def _handle_dcf(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return dcf_valuation(
        arguments["symbol"],
        arguments["currentPrice"],
        arguments["freeCashFlow"],
        arguments["sharesOutstanding"],
        arguments["growthRate"],
        arguments["discountRate"],
        years=int(arguments["years"]),
        terminal_growth_rate=arguments["terminalGrowthRate"],
    )


def build_tools() -> List[RegisteredTool]:
    symbol = string("Stock symbol (e.g., AAPL)")
    current_price = number("Current stock price")

    pe_band_schema = object_schema(
        {
            "symbol": symbol,
            "currentPrice": current_price,
            "eps": number("Earnings per share (EPS)"),
            "historicalPEs": {
                "type": "array",
                "items": {"type": "number"},
                "description": "Historical PE ratios (defaults to a typical 12-period band when omitted)",
            },
        },
        required=["symbol", "currentPrice", "eps"],
    )

    ddm_schema = object_schema(
        {
            "symbol": symbol,
            "currentPrice": current_price,
            "dividend": number("Annual dividend per share"),
            "requiredReturn": number("Required rate of return (as decimal, e.g., 0.1 for 10%)"),
            "growthRate": number("Expected dividend growth rate (as decimal, e.g., 0.05 for 5%)"),
        },
        required=["symbol", "currentPrice", "dividend", "requiredReturn", "growthRate"],
    )

    dcf_schema = object_schema(
        {
            "symbol": symbol,
            "currentPrice": current_price,
            "freeCashFlow": number("Annual free cash flow"),
            "sharesOutstanding": number("Number of shares outstanding"),
            "years": {"type": "integer", "minimum": 1, "maximum": 50, "default": 5,
                      "description": "Number of years to project"},
            "growthRate": number("FCF growth rate for the projection period (as decimal)"),
            "discountRate": number("Discount rate/WACC (as decimal)"),
            "terminalGrowthRate": number("Terminal growth rate (as decimal)", default=DEFAULT_TERMINAL_GROWTH),
        },
        required=["symbol", "currentPrice", "freeCashFlow", "sharesOutstanding", "growthRate", "discountRate"],
    )

    return [
        define_tool(
            "calculate_pe_band",
            "Calculate PE band valuation for a stock",
            pe_band_schema,
            _handle_pe_band,
        ),
        define_tool(
            "calculate_ddm",
            "Calculate Dividend Discount Model (Gordon growth) valuation",
            ddm_schema,
            _handle_ddm,
        ),
        define_tool(
            "calculate_dcf",
            "Calculate Discounted Cash Flow valuation",
            dcf_schema,
            _handle_dcf,
        ),
    ]
