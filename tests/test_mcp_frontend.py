import json

import pytest

from tgmcp.commands import build_dispatcher
from tgmcp.errors import ErrorKind
from tgmcp.frontends.mcp import McpFrontend, ToolCallFailed

from tests.conftest import FakeBackend, build_manager


@pytest.fixture
def frontend(store):
    store.save("+1000", "T1")
    manager = build_manager(store, FakeBackend(accepted_tokens=("T1",)))
    return McpFrontend(build_dispatcher(manager))


def test_tools_mirror_command_definitions(frontend):
    tools = {tool.name: tool for tool in frontend.list_tools()}
    assert set(tools) == {"getDialogs", "getMessages", "sendMessage", "executeMethod"}
    assert tools["getMessages"].inputSchema["required"] == ["session", "chatId"]


@pytest.mark.asyncio
async def test_successful_call_returns_json_text(frontend):
    content = await frontend.call_tool("getDialogs", {"session": "+1000", "limit": 1})
    assert content[0].type == "text"
    payload = json.loads(content[0].text)
    assert payload[0]["name"] == "Durov"


@pytest.mark.asyncio
async def test_failed_call_raises_with_error_kind(frontend):
    with pytest.raises(ToolCallFailed) as exc_info:
        await frontend.call_tool("getMessages", {"session": "+1000"})

    assert exc_info.value.result.error_kind is ErrorKind.INVALID_PARAMETERS
    assert json.loads(str(exc_info.value))["errorKind"] == "InvalidParameters"


@pytest.mark.asyncio
async def test_missing_arguments(frontend):
    with pytest.raises(ToolCallFailed) as exc_info:
        await frontend.call_tool("getDialogs", None)
    assert "session" in exc_info.value.result.message
