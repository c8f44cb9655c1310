"""Financial analysis and portfolio management tools."""

import pytest

from stock_valuation_mcp.tools.financial_analysis_tools import piotroski_score
from stock_valuation_mcp.tools.portfolio_tools import pearson

pytestmark = pytest.mark.anyio

HEALTH_ARGS = {
    "symbol": "X",
    "workingCapital": 200,
    "totalAssets": 1000,
    "retainedEarnings": 300,
    "ebit": 150,
    "marketValueEquity": 1500,
    "totalLiabilities": 500,
    "sales": 1200,
    "netIncome": 100,
    "operatingCashFlow": 150,
}


async def test_financial_health_score(dispatcher):
    result = await dispatcher.dispatch("calculate_financial_health_score", HEALTH_ARGS)
    value = result.value

    assert value["altmanZScore"] == pytest.approx(4.155, abs=0.01)
    assert value["bankruptcyRisk"] == "Very Low"
    assert value["piotroskiFScore"] == 6
    assert value["financialStrength"] == "Good"
    assert value["overallScore"] == 75


async def test_piotroski_optional_inputs_earn_points():
    full = {**HEALTH_ARGS, "longTermDebt": 100, "currentRatio": 2.0, "grossMargin": 35}
    assert piotroski_score(full) == 9


async def test_health_score_needs_positive_totals(dispatcher):
    result = await dispatcher.dispatch("calculate_financial_health_score", {**HEALTH_ARGS, "totalAssets": 0})
    assert result.error.code == -32603
    assert "Total assets must be positive" in result.error.message


async def test_dupont_breakdown(dispatcher):
    result = await dispatcher.dispatch(
        "analyze_dupont",
        {
            "symbol": "X",
            "netIncome": 10,
            "revenue": 100,
            "totalAssets": 200,
            "shareholdersEquity": 100,
            "previousROE": 8,
        },
    )
    value = result.value
    assert value["roe"] == pytest.approx(10)
    assert value["components"] == pytest.approx(
        {"netProfitMargin": 10, "assetTurnover": 0.5, "financialLeverage": 2}
    )
    assert value["trend"] == "Improving"


async def test_cash_flow_quality(dispatcher):
    result = await dispatcher.dispatch(
        "analyze_cash_flow_quality",
        {"symbol": "X", "netIncome": 100, "operatingCashFlow": 150, "capitalExpenditures": 30, "previousYearOCF": 120},
    )
    value = result.value
    assert value["freeCashFlow"] == 120
    assert value["ocfToNetIncome"] == 1.5
    assert value["fcfToOcf"] == 0.8
    assert value["qualityScore"] == 110
    assert value["quality"] == "Excellent"


async def test_earnings_quality_returns_numbers(dispatcher):
    result = await dispatcher.dispatch(
        "analyze_earnings_quality",
        {"symbol": "X", "netIncome": 100, "operatingCashFlow": 150, "revenue": 1000},
    )
    value = result.value
    assert value["accruals"] == pytest.approx(-0.333)
    assert value["ocfToEarnings"] == 1.5
    assert isinstance(value["qualityScore"], int)


async def test_position_size_within_cap(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_position_size",
        {"symbol": "X", "portfolioValue": 100000, "currentPrice": 50, "stopLossPrice": 45},
    )
    value = result.value
    assert value["sharesToBuy"] == 400
    assert value["positionValue"] == 20000
    assert value["cappedByMaxPosition"] is False


async def test_position_size_capped_by_max_position(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_position_size",
        {"symbol": "X", "portfolioValue": 100000, "currentPrice": 50, "stopLossPrice": 49},
    )
    value = result.value
    assert value["sharesToBuy"] == 400
    assert value["cappedByMaxPosition"] is True
    assert value["riskAmount"] == pytest.approx(400)


async def test_position_size_rejects_stop_above_price(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_position_size",
        {"symbol": "X", "portfolioValue": 100000, "currentPrice": 50, "stopLossPrice": 55},
    )
    assert "Stop loss price must be below the current price" in result.error.message


async def test_portfolio_metrics(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_portfolio_metrics",
        {
            "positions": [
                {"symbol": "A", "shares": 10, "currentPrice": 110, "costBasis": 100, "beta": 1.2, "expectedReturn": 0.1},
                {"symbol": "B", "shares": 10, "currentPrice": 90, "costBasis": 100},
            ]
        },
    )
    value = result.value
    assert value["totalValue"] == 2000
    assert value["totalCost"] == 2000
    assert value["unrealizedReturn"] == 0
    assert value["beta"] == pytest.approx(0.55 * 1.2 + 0.45 * 1.0)
    assert value["maxDrawdown"] == pytest.approx(0.1)


async def test_portfolio_metrics_reports_nested_field(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_portfolio_metrics",
        {"positions": [{"symbol": "A", "shares": 10, "currentPrice": 110}]},
    )
    assert result.error.code == -32602
    assert "positions[0].costBasis" in result.error.message


async def test_rebalancing(dispatcher):
    result = await dispatcher.dispatch(
        "analyze_portfolio_rebalancing",
        {
            "portfolioValue": 10000,
            "positions": [
                {"symbol": "A", "currentWeight": 0.7, "targetWeight": 0.5, "currentPrice": 100},
                {"symbol": "B", "currentWeight": 0.3, "targetWeight": 0.5, "currentPrice": 50},
            ],
        },
    )
    value = result.value
    assert value["needsRebalancing"] is True
    actions = {r["symbol"]: (r["action"], r["shares"]) for r in value["recommendations"]}
    assert actions["A"] == ("SELL", pytest.approx(20))
    assert actions["B"] == ("BUY", pytest.approx(40))


async def test_correlation(dispatcher):
    result = await dispatcher.dispatch(
        "analyze_correlation",
        {"symbols": ["A", "B"], "returns": [[0.01, 0.02, 0.03], [0.02, 0.04, 0.06]]},
    )
    value = result.value
    assert value["correlationMatrix"][0][1] == pytest.approx(1.0)
    assert value["diversificationScore"] == "Poor"

    too_few = await dispatcher.dispatch("analyze_correlation", {"symbols": ["A"], "returns": [[0.1]]})
    assert "At least two symbols are required" in too_few.error.message


async def test_pearson_undefined_is_zero():
    assert pearson([1, 1, 1], [1, 2, 3]) == 0
    assert pearson([], []) == 0
