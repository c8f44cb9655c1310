"""Tool registry construction and lookup."""

import pytest

from stock_valuation_mcp.errors import ToolNotFound
from stock_valuation_mcp.tools import ToolRegistry, define_tool

EXPECTED_TOOLS = {
    "calculate_pe_band",
    "calculate_ddm",
    "calculate_dcf",
    "calculate_graham_number",
    "calculate_discounted_earnings",
    "calculate_asset_based_valuation",
    "calculate_ev_ebitda_valuation",
    "analyze_dividend_safety",
    "calculate_financial_health_score",
    "analyze_dupont",
    "analyze_cash_flow_quality",
    "analyze_earnings_quality",
    "calculate_position_size",
    "calculate_portfolio_metrics",
    "analyze_portfolio_rebalancing",
    "analyze_correlation",
    "fetch_stock_data",
    "complete_valuation",
    "fetch_income_statement",
    "fetch_balance_sheet",
    "fetch_cash_flow_statement",
    "fetch_all_financial_statements",
    "fetch_historical_ratios",
    "analyze_historical_ratios",
    "calculate_statistics",
    "linear_regression",
    "calculate_compound_interest",
    "convert_currency",
    "calculate_loan",
    "get_current_time",
    "convert_timezone",
    "calculate_time_diff",
    "format_datetime",
    "web_search",
    "web_fetch",
    "news_search",
    "read_file",
    "write_file",
    "list_directory",
    "file_exists",
    "delete_file",
    "search_files",
}


async def _noop(arguments):
    return arguments


def _tool(name):
    return define_tool(name, f"{name} tool", {"type": "object", "properties": {}}, _noop)


def test_registry_contains_every_tool_group(registry):
    """All groups are registered, each name exactly once"""
    names = registry.names()
    assert set(names) == EXPECTED_TOOLS
    assert len(names) == len(set(names)) == len(registry)


def test_duplicate_name_across_groups_is_rejected():
    with pytest.raises(ValueError, match="Tool 'dup' already registered"):
        ToolRegistry([[_tool("a"), _tool("dup")], [_tool("dup")]])


def test_list_tools_keeps_registration_order():
    registry = ToolRegistry([[_tool("b"), _tool("a")], [_tool("c")]])
    assert [t.name for t in registry.list_tools()] == ["b", "a", "c"]


def test_find_is_exact_and_case_sensitive():
    registry = ToolRegistry([[_tool("calculate_ddm")]])
    assert registry.find("calculate_ddm").name == "calculate_ddm"
    assert "calculate_ddm" in registry

    with pytest.raises(ToolNotFound) as excinfo:
        registry.find("Calculate_DDM")
    assert excinfo.value.message == "Unknown tool: Calculate_DDM"


def test_every_schema_is_an_object_schema(registry):
    for tool in registry:
        schema = tool.input_schema
        assert schema["type"] == "object", tool.name
        assert isinstance(schema["properties"], dict), tool.name
        for field in schema.get("required", []):
            assert field in schema["properties"], f"{tool.name}.{field}"
        assert tool.spec.description, tool.name
