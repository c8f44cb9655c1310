from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    if not denominator:
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def price_premium(current_price: float, intrinsic_value: float) -> Optional[float]:
    """
    Percent by which the market price exceeds intrinsic value.

    Negative means the stock trades below its estimated worth. Undefined
    (None) when the intrinsic value is zero.
    """
    if not intrinsic_value:
        return None
    return (current_price - intrinsic_value) / intrinsic_value * 100


def premium_recommendation(premium: Optional[float]) -> str:
    """Buy below a 20% discount, Sell above a 20% premium."""
    if premium is None:
        return "Sell"
    if premium < -20:
        return "Buy"
    if premium > 20:
        return "Sell"
    return "Hold"


def premium_analysis(model: str, premium: Optional[float], intrinsic_value: float) -> str:
    if premium is None:
        return f"{model} gives no intrinsic value; the stock cannot be justified on this model."
    if premium < -20:
        return (
            f"{model} suggests the stock is undervalued with {abs(premium):.1f}% margin of safety. "
            f"Intrinsic value: {intrinsic_value:.2f}"
        )
    if premium > 20:
        return (
            f"{model} suggests the stock is overvalued with {premium:.1f}% premium. "
            f"Intrinsic value: {intrinsic_value:.2f}"
        )
    return (
        f"{model} suggests the stock is fairly valued with {premium:.1f}% deviation. "
        f"Intrinsic value: {intrinsic_value:.2f}"
    )


def majority_vote(recommendations: List[str]) -> str:
    buys = recommendations.count("Buy")
    sells = recommendations.count("Sell")
    if buys > sells:
        return "Buy"
    if sells > buys:
        return "Sell"
    return "Hold"


def number(description: str, **extra: Any) -> Dict[str, Any]:
    """Shorthand for a `number` property schema."""
    return {"type": "number", "description": description, **extra}


def string(description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


def object_schema(properties: Dict[str, Any], required: Sequence[str] = ()) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return schema
