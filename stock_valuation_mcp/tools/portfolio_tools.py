from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence

from . import RegisteredTool, define_tool
from .helpers import mean, number, object_schema, string


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation over the common prefix of two series; 0 when undefined."""
    n = min(len(x), len(y))
    if n == 0:
        return 0.0
    mean_x = mean(x[:n])
    mean_y = mean(y[:n])
    numerator = sum_x = sum_y = 0.0
    for a, b in zip(x[:n], y[:n]):
        dx, dy = a - mean_x, b - mean_y
        numerator += dx * dy
        sum_x += dx * dx
        sum_y += dy * dy
    denominator = math.sqrt(sum_x * sum_y)
    return numerator / denominator if denominator else 0.0


async def _handle_position_size(arguments: Dict[str, Any]) -> Dict[str, Any]:
    portfolio_value = arguments["portfolioValue"]
    price = arguments["currentPrice"]
    stop_loss = arguments["stopLossPrice"]
    risk_per_trade = arguments["riskPerTrade"]
    max_position_percent = arguments["maxPositionPercent"]

    if portfolio_value <= 0 or price <= 0:
        raise ValueError("portfolioValue and currentPrice must be positive")
    if stop_loss >= price:
        raise ValueError("Stop loss price must be below the current price")

    risk_amount = portfolio_value * risk_per_trade
    risk_per_share = price - stop_loss
    shares = math.floor(risk_amount / risk_per_share)

    max_position_value = portfolio_value * max_position_percent
    capped = shares * price > max_position_value
    if capped:
        shares = math.floor(max_position_value / price)

    position_value = shares * price
    return {
        "symbol": arguments["symbol"],
        "portfolioValue": portfolio_value,
        "riskPerTrade": risk_per_trade,
        "stopLoss": stop_loss,
        "maxPositionSize": math.floor(max_position_value / price),
        "sharesToBuy": shares,
        "positionValue": position_value,
        "positionPercent": position_value / portfolio_value,
        "riskAmount": shares * risk_per_share,
        "cappedByMaxPosition": capped,
    }


async def _handle_portfolio_metrics(arguments: Dict[str, Any]) -> Dict[str, Any]:
    positions: List[Dict[str, Any]] = arguments["positions"]
    risk_free = arguments["riskFreeRate"]
    market_return = arguments["marketReturn"]
    if not positions:
        raise ValueError("At least one position is required")

    total_value = 0.0
    total_cost = 0.0
    returns: List[float] = []
    for pos in positions:
        value = pos["shares"] * pos["currentPrice"]
        cost = pos["shares"] * pos["costBasis"]
        if cost <= 0:
            raise ValueError(f"Position {pos.get('symbol', '?')} must have a positive cost basis")
        total_value += value
        total_cost += cost
        returns.append((value - cost) / cost)
    if total_value <= 0:
        raise ValueError("Portfolio value must be positive")

    weighted_beta = 0.0
    weighted_expected = 0.0
    for pos in positions:
        weight = pos["shares"] * pos["currentPrice"] / total_value
        weighted_beta += weight * pos.get("beta", 1.0)
        weighted_expected += weight * pos.get("expectedReturn", 0.0)

    average_return = mean(returns)
    volatility = math.sqrt(mean([(r - average_return) ** 2 for r in returns]))
    sharpe = (weighted_expected - risk_free) / volatility if volatility > 0 else 0.0
    max_drawdown = abs(min(0.0, min(returns)))
    alpha = weighted_expected - (risk_free + weighted_beta * (market_return - risk_free))
    var_95 = total_value * (average_return - 1.96 * volatility)

    return {
        "totalValue": total_value,
        "totalCost": total_cost,
        "unrealizedReturn": (total_value - total_cost) / total_cost,
        "expectedReturn": weighted_expected,
        "volatility": volatility,
        "sharpeRatio": sharpe,
        "maxDrawdown": max_drawdown,
        "var": var_95,
        "beta": weighted_beta,
        "alpha": alpha,
        "analysis": "\n".join(
            [
                "Portfolio performance analysis:",
                f"Expected Return: {weighted_expected * 100:.2f}%",
                f"Volatility: {volatility * 100:.2f}%",
                f"Sharpe Ratio: {sharpe:.2f}",
                f"Alpha: {alpha * 100:.2f}%",
                f"Beta: {weighted_beta:.2f}",
            ]
        ),
    }


async def _handle_rebalancing(arguments: Dict[str, Any]) -> Dict[str, Any]:
    positions: List[Dict[str, Any]] = arguments["positions"]
    portfolio_value = arguments["portfolioValue"]
    threshold = arguments["rebalancingThreshold"]

    recommendations = []
    total_drift = 0.0
    for pos in positions:
        drift = abs(pos["currentWeight"] - pos["targetWeight"])
        total_drift += drift
        if drift <= threshold:
            continue
        if pos["currentPrice"] <= 0:
            raise ValueError(f"Position {pos['symbol']} must have a positive price")

        target_value = portfolio_value * pos["targetWeight"]
        current_value = portfolio_value * pos["currentWeight"]
        difference = target_value - current_value
        recommendations.append(
            {
                "symbol": pos["symbol"],
                "action": "BUY" if difference > 0 else "SELL",
                "shares": abs(difference / pos["currentPrice"]),
                "currentValue": round(current_value, 2),
                "targetValue": round(target_value, 2),
                "currentWeight": round(pos["currentWeight"] * 100, 1),
                "targetWeight": round(pos["targetWeight"] * 100, 1),
                "drift": round(drift * 100, 1),
            }
        )

    needs_rebalancing = total_drift > threshold * len(positions)
    summary = (
        "Portfolio needs rebalancing." if needs_rebalancing else "Portfolio is within target allocations."
    )
    return {
        "needsRebalancing": needs_rebalancing,
        "totalDrift": round(total_drift * 100, 2),
        "recommendations": recommendations,
        "analysis": f"{summary} Total drift: {total_drift * 100:.2f}%",
    }


def _diversification(average: float) -> str:
    if average < 0.3:
        return "Excellent"
    if average < 0.5:
        return "Good"
    if average < 0.7:
        return "Average"
    return "Poor"


async def _handle_correlation(arguments: Dict[str, Any]) -> Dict[str, Any]:
    symbols: List[str] = arguments["symbols"]
    returns: List[List[float]] = arguments["returns"]
    if len(symbols) < 2:
        raise ValueError("At least two symbols are required")
    if len(returns) != len(symbols):
        raise ValueError("Provide exactly one return series per symbol")

    n = len(symbols)
    matrix = [[pearson(returns[i], returns[j]) for j in range(n)] for i in range(n)]
    pairs = [matrix[i][j] for i in range(n) for j in range(i + 1, n)]
    average = mean(pairs)
    score = _diversification(average)

    return {
        "symbols": symbols,
        "correlationMatrix": matrix,
        "averageCorrelation": round(average, 3),
        "diversificationScore": score,
        "analysis": (
            f"Portfolio diversification is {score.lower()}. Average correlation: {average:.3f}. "
            + ("Consider adding uncorrelated assets." if average > 0.7 else "Good diversification!")
        ),
    }


def build_tools() -> List[RegisteredTool]:
    holding = object_schema(
        {
            "symbol": {"type": "string"},
            "shares": {"type": "number", "minimum": 0},
            "currentPrice": {"type": "number"},
            "costBasis": {"type": "number"},
            "beta": {"type": "number"},
            "expectedReturn": {"type": "number"},
        },
        required=["symbol", "shares", "currentPrice", "costBasis"],
    )
    allocation = object_schema(
        {
            "symbol": {"type": "string"},
            "currentWeight": {"type": "number", "minimum": 0, "maximum": 1},
            "targetWeight": {"type": "number", "minimum": 0, "maximum": 1},
            "currentPrice": {"type": "number"},
        },
        required=["symbol", "currentWeight", "targetWeight", "currentPrice"],
    )

    return [
        define_tool(
            "calculate_position_size",
            "Calculate position size from portfolio risk budget and stop loss",
            object_schema(
                {
                    "symbol": string("Stock symbol"),
                    "portfolioValue": number("Total portfolio value"),
                    "currentPrice": number("Current stock price"),
                    "riskPerTrade": number("Risk per trade (fraction of portfolio)", default=0.02,
                                           minimum=0, maximum=1),
                    "stopLossPrice": number("Stop loss price"),
                    "maxPositionPercent": number("Maximum position size (fraction of portfolio)",
                                                 default=0.2, minimum=0, maximum=1),
                },
                required=["symbol", "portfolioValue", "currentPrice", "stopLossPrice"],
            ),
            _handle_position_size,
        ),
        define_tool(
            "calculate_portfolio_metrics",
            "Calculate portfolio performance metrics and risk measures",
            object_schema(
                {
                    "positions": {"type": "array", "items": holding},
                    "riskFreeRate": number("Risk-free rate (decimal)", default=0.03),
                    "marketReturn": number("Expected market return (decimal)", default=0.08),
                },
                required=["positions"],
            ),
            _handle_portfolio_metrics,
        ),
        define_tool(
            "analyze_portfolio_rebalancing",
            "Analyze allocation drift and recommend rebalancing trades",
            object_schema(
                {
                    "positions": {"type": "array", "items": allocation},
                    "portfolioValue": number("Total portfolio value"),
                    "rebalancingThreshold": number("Per-position drift threshold (decimal)", default=0.05),
                },
                required=["positions", "portfolioValue"],
            ),
            _handle_rebalancing,
        ),
        define_tool(
            "analyze_correlation",
            "Calculate correlation between positions for diversification analysis",
            object_schema(
                {
                    "symbols": {"type": "array", "items": {"type": "string"}, "description": "Stock symbols"},
                    "returns": {
                        "type": "array",
                        "items": {"type": "array", "items": {"type": "number"}},
                        "description": "Historical returns matrix [symbol][period]",
                    },
                },
                required=["symbols", "returns"],
            ),
            _handle_correlation,
        ),
    ]
