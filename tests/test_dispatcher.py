"""
End-to-end dispatch: lookup, validation, handler errors and response
envelopes for calls made through the shared JSON-RPC routing.
"""

import json

import anyio
import pytest

from stock_valuation_mcp.envelope import dispatch_response
from stock_valuation_mcp.protocol import handle_message, render_frame

pytestmark = pytest.mark.anyio

DDM_ARGS = {
    "symbol": "TEST",
    "currentPrice": 100,
    "dividend": 4,
    "requiredReturn": 0.1,
    "growthRate": 0.05,
}
PE_BAND_ARGS = {
    "symbol": "TEST",
    "currentPrice": 150,
    "eps": 5,
    "historicalPEs": [20, 22, 25, 23, 21, 19],
}


def _call(request_id, name, arguments):
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments},
    }


def _payload(response):
    content = response["result"]["content"]
    assert len(content) == 1 and content[0]["type"] == "text"
    return json.loads(content[0]["text"])


async def test_ddm_success(dispatcher):
    response = await handle_message(dispatcher, _call(1, "calculate_ddm", DDM_ARGS))
    payload = _payload(response)

    assert response["jsonrpc"] == "2.0"
    assert payload["intrinsicValue"] == pytest.approx(84.0)
    assert payload["recommendation"] == "Hold"


async def test_missing_required_field_is_invalid_params(dispatcher):
    arguments = {k: v for k, v in DDM_ARGS.items() if k != "growthRate"}
    response = await handle_message(dispatcher, _call(2, "calculate_ddm", arguments))

    assert response["error"]["code"] == -32602
    assert "growthRate" in response["error"]["message"]


async def test_handler_precondition_is_internal_error(dispatcher):
    arguments = {**DDM_ARGS, "growthRate": 0.1}
    response = await handle_message(dispatcher, _call(3, "calculate_ddm", arguments))

    assert response["error"]["code"] == -32603
    assert "Required return must be greater than growth rate" in response["error"]["message"]
    assert response["error"]["data"] == "Required return must be greater than growth rate"


async def test_oversized_integer_is_invalid_params(dispatcher):
    result = await dispatcher.dispatch("calculate_pe_band", {**PE_BAND_ARGS, "currentPrice": 10**400})

    assert result.error.code == -32602
    assert "currentPrice" in result.error.message


@pytest.mark.parametrize("request_id", ["abc-123", 42])
async def test_request_id_round_trips(dispatcher, request_id):
    ok = await handle_message(dispatcher, _call(request_id, "calculate_pe_band", PE_BAND_ARGS))
    failed = await handle_message(dispatcher, _call(request_id, "no_such_tool", {}))

    assert ok["id"] == request_id
    assert failed["id"] == request_id


async def test_repeated_calls_render_identical_bytes(dispatcher):
    first = await dispatcher.dispatch("calculate_pe_band", PE_BAND_ARGS)
    second = await dispatcher.dispatch("calculate_pe_band", dict(PE_BAND_ARGS))

    assert render_frame(dispatch_response(7, first)) == render_frame(dispatch_response(7, second))
    assert first.value["recommendation"] == "Overvalued"


async def test_unknown_tool(dispatcher):
    result = await dispatcher.dispatch("no_such_tool", {})

    assert not result.ok
    assert result.error.code == -32601
    assert result.error.message == "Unknown tool: no_such_tool"


async def test_catalog_lists_every_registered_tool(dispatcher, registry):
    response = await handle_message(dispatcher, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    tools = response["result"]["tools"]

    assert [t["name"] for t in tools] == registry.names()
    for tool in tools:
        assert set(tool) >= {"name", "description", "inputSchema"}


async def test_concurrent_calls_are_independent(dispatcher):
    results = {}

    async def run(index):
        if index % 2:
            outcome = await dispatcher.dispatch("calculate_ddm", {**DDM_ARGS, "dividend": index})
        else:
            outcome = await dispatcher.dispatch("calculate_pe_band", {**PE_BAND_ARGS, "eps": index + 1})
        results[index] = outcome

    async with anyio.create_task_group() as tg:
        for index in range(20):
            tg.start_soon(run, index)

    for index, outcome in results.items():
        assert outcome.ok
        if index % 2:
            assert outcome.value["dividend"] == index
            assert outcome.value["intrinsicValue"] == pytest.approx(index * 1.05 / 0.05)
        else:
            assert outcome.value["currentPE"] == pytest.approx(150 / (index + 1))


async def test_handler_receives_defaults(dispatcher):
    result = await dispatcher.dispatch(
        "calculate_dcf",
        {
            "symbol": "X",
            "currentPrice": 10,
            "freeCashFlow": 100,
            "sharesOutstanding": 10,
            "growthRate": 0.05,
            "discountRate": 0.1,
        },
    )
    assert result.ok
    assert len(result.value["projections"]) == 5
    assert result.value["terminalGrowthRate"] == 0.025
