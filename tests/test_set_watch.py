"""SET Watch client and the tools built on it, against a mocked API."""

import httpx
import pytest

from stock_valuation_mcp.config import Settings
from stock_valuation_mcp.providers import DataProviderError
from stock_valuation_mcp.providers.set_watch import SetWatchClient, exchange_symbol

pytestmark = pytest.mark.anyio


def test_exchange_symbol():
    assert exchange_symbol(" ptt ") == "PTT.BK"


async def test_client_sends_configured_headers():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"eps": 1})

    settings = Settings(
        set_watch_api_host="https://api.example.test/",
        api_auth_header="X-Api-Key",
        api_auth_value="secret",
    )
    client = SetWatchClient(settings, transport=httpx.MockTransport(handler))
    assert await client.fetch_statistics("ptt") == {"eps": 1}

    assert seen["url"] == "https://api.example.test/mypick/snapStatistics/PTT.BK"
    assert seen["headers"]["X-Api-Key"] == "secret"
    assert seen["headers"]["User-Agent"] == "Stock-Valuation-MCP-Server/1.0.0"


async def test_client_maps_http_failures():
    def server_error(request):
        return httpx.Response(500)

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    settings = Settings()
    with pytest.raises(DataProviderError, match="Failed to fetch data for PTT: HTTP 500"):
        await SetWatchClient(settings, transport=httpx.MockTransport(server_error)).fetch_statistics("PTT")
    with pytest.raises(DataProviderError, match="Failed to fetch data for PTT: connection refused"):
        await SetWatchClient(settings, transport=httpx.MockTransport(unreachable)).fetch_statistics("PTT")


async def test_symbol_cannot_change_the_request_path():
    seen = {}

    def handler(request):
        seen["path"] = request.url.raw_path
        return httpx.Response(200, json={})

    client = SetWatchClient(Settings(), transport=httpx.MockTransport(handler))
    await client.fetch_statistics("../x")

    assert seen["path"] == b"/mypick/snapStatistics/..%2FX.BK"


async def test_statement_path_quotes_statement_name(set_watch_client):
    rows = await set_watch_client.fetch_statement("balance_sheet", "PTT", "TTM")
    assert rows[0]["data"]["totalAssets"] == 2000


async def test_fetch_stock_data(dispatcher):
    result = await dispatcher.dispatch("fetch_stock_data", {"symbol": "ptt"})
    value = result.value

    assert value["symbol"] == "PTT.BK"
    assert value["currentPrice"] == 50
    assert value["dividend"] == 2
    assert value["roe"] == 12.5
    assert value["rawData"]["beta5Y"] == 0.9


async def test_unknown_symbol_is_a_handler_error(dispatcher):
    result = await dispatcher.dispatch("fetch_stock_data", {"symbol": "XYZ"})
    assert result.error.code == -32603
    assert result.error.message == "Tool execution failed: Stock symbol XYZ not found"


async def test_complete_valuation(dispatcher):
    result = await dispatcher.dispatch("complete_valuation", {"symbol": "PTT"})
    value = result.value

    assert value["currentPrice"] == 50
    assert value["summary"] == {"peBand": "Fairly Valued", "ddm": "Hold", "dcf": "Buy", "overall": "Buy"}
    assert value["valuations"]["ddm"]["intrinsicValue"] == pytest.approx(42)
    assert len(value["valuations"]["dcf"]["projections"]) == 5


async def test_complete_valuation_without_dividend(dispatcher):
    result = await dispatcher.dispatch("complete_valuation", {"symbol": "NODIV"})
    value = result.value

    assert "note" in value["valuations"]["ddm"]
    assert value["summary"]["ddm"] == "N/A"
    assert value["overallRecommendation"] == "Buy"


async def test_income_statement_summary(dispatcher):
    result = await dispatcher.dispatch("fetch_income_statement", {"symbol": "PTT"})
    value = result.value

    assert value["period"] == "TTM"
    assert value["statementType"] == "Income statement"
    assert value["summary"]["totalPeriods"] == 2
    assert "Revenue: ฿1,000.00 | Net Margin: 10.0%" in value["keyFindings"]
    assert value["warnings"] == []


async def test_statement_period_enum(dispatcher):
    result = await dispatcher.dispatch("fetch_balance_sheet", {"symbol": "PTT", "period": "Monthly"})
    assert result.error.code == -32602


async def test_fetch_all_financial_statements(dispatcher):
    result = await dispatcher.dispatch("fetch_all_financial_statements", {"symbol": "PTT"})
    value = result.value

    assert value["summary"]["incomeStatementCount"] == 2
    assert value["summary"]["currency"] == "THB"
    assert value["analysis"]["profitability"]["netMargin"] == pytest.approx(10)
    assert value["analysis"]["liquidity"]["currentRatio"] == pytest.approx(2)
    assert value["analysis"]["cashFlow"]["freeCashFlowMargin"] == pytest.approx(12)


async def test_fetch_all_reports_the_failing_statement(dispatcher):
    result = await dispatcher.dispatch("fetch_all_financial_statements", {"symbol": "XYZ"})
    assert "Failed to fetch financial statements for XYZ" in result.error.message


async def test_fetch_historical_ratios(dispatcher):
    result = await dispatcher.dispatch("fetch_historical_ratios", {"symbol": "PTT"})
    summary = result.value["summary"]

    assert summary["totalPeriods"] == 3
    assert summary["latestPeriod"] == 2024
    assert summary["forwardPE"] == 9.5


async def test_analyze_historical_ratios(dispatcher):
    result = await dispatcher.dispatch("analyze_historical_ratios", {"symbol": "PTT", "period": "Quarterly"})
    value = result.value

    assert value["period"] == "Quarterly"
    assert value["averagePE"] == pytest.approx(12)
    assert value["minPE"] == 10 and value["maxPE"] == 14
    assert value["pePercentile"] == 0
    assert value["trend"]["roe"] == "stable"
    assert value["recommendation"] in {"Buy", "Hold", "Sell"}
