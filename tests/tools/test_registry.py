"""Tests for the tool registry and qualified tool names."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from client.mcp_server import MCPServerConfig
from common.types import (
    qualify_tool_name,
    sanitize_name,
    split_qualified_name,
    validate_server_name,
)
from tools.registry import MCPServerTool, ToolRegistry, build_registry, load_server_configs


def make_server(name: str, tools: list[dict], running: bool = True, whitelist=None) -> Mock:
    server = Mock()
    server.name = name
    server.is_running = running
    server.config = MCPServerConfig(name=name, command="node", tool_whitelist=whitelist or [])
    server.get_tools.return_value = tools
    server.call_tool = AsyncMock(return_value={"content": [{"type": "text", "text": "done"}]})
    return server


@pytest.mark.unit
class TestQualifiedNames:
    """Test naming helpers."""

    def test_qualify_and_split(self) -> None:
        name = qualify_tool_name("GitHub", "issue_write")
        assert name == "GitHub__issue_write"
        assert split_qualified_name(name) == ("GitHub", "issue_write")

    def test_sanitize_replaces_unsafe_characters(self) -> None:
        assert sanitize_name("My Server.v2") == "My_Server_v2"
        assert qualify_tool_name("My Server", "do-it") == "My_Server__do-it"

    def test_split_without_separator(self) -> None:
        assert split_qualified_name("search") == ("", "search")

    def test_validate_server_name(self) -> None:
        validate_server_name("My Server-1_a")
        with pytest.raises(ValueError, match="empty"):
            validate_server_name("  ")
        with pytest.raises(ValueError, match="invalid characters"):
            validate_server_name("bad/name")


@pytest.mark.unit
class TestToolRegistry:
    """Test registration and collection."""

    @pytest.mark.asyncio
    async def test_collect_includes_registered_tools(self, registry) -> None:
        tools = await registry.collect_tools()
        assert sorted(tools) == ["GitHub__issue_read", "GitHub__issue_write"]

    def test_register_duplicate_tool_rejected(self, registry, github_tools) -> None:
        with pytest.raises(ValueError, match="already registered"):
            registry.register_tool("GitHub", github_tools["issue_write"])

    def test_register_whitelisted_tool(self, github_tools) -> None:
        registry = ToolRegistry()
        name = registry.register_tool("Local", github_tools["issue_read"], whitelisted=True)

        assert name == "Local__issue_read"
        assert registry.get_whitelist() == {"Local__issue_read"}

    @pytest.mark.asyncio
    async def test_mcp_server_tools_are_qualified(self) -> None:
        registry = ToolRegistry()
        server = make_server(
            "Jira",
            [{"name": "create", "description": "Create issue", "input_schema": {"type": "object"}}],
            whitelist=["create"],
        )
        registry.add_server(server)

        tools = await registry.collect_tools()

        assert list(tools) == ["Jira__create"]
        tool = tools["Jira__create"]
        assert isinstance(tool, MCPServerTool)
        assert tool.get_definition("Jira__create").name == "Jira__create"
        assert registry.get_whitelist() == {"Jira__create"}

        result = await tool.execute({"summary": "x"}, tool_call_id="call_1")
        server.call_tool.assert_awaited_once_with("create", {"summary": "x"})
        assert result["content"][0]["text"] == "done"

    @pytest.mark.asyncio
    async def test_server_filter_and_stopped_servers(self) -> None:
        registry = ToolRegistry()
        registry.add_server(make_server("Jira", [{"name": "create"}]))
        registry.add_server(make_server("Slack", [{"name": "post"}]))
        registry.add_server(make_server("Down", [{"name": "gone"}], running=False))

        assert list(await registry.collect_tools(["Slack"])) == ["Slack__post"]
        assert sorted(await registry.collect_tools()) == ["Jira__create", "Slack__post"]

    def test_resolve_server_name(self, github_tools) -> None:
        registry = ToolRegistry()
        registry.register_tool("My Server", github_tools["issue_read"])
        registry.add_server(make_server("Jira Cloud", []))

        assert registry.resolve_server_name("My_Server") == "My Server"
        assert registry.resolve_server_name("Jira_Cloud") == "Jira Cloud"
        assert registry.resolve_server_name("Unknown") == "Unknown"

    def test_duplicate_server_rejected(self) -> None:
        registry = ToolRegistry()
        registry.add_server(make_server("Jira", []))
        with pytest.raises(ValueError, match="already exists"):
            registry.add_server(make_server("Jira", []))


@pytest.mark.unit
class TestServerConfigs:
    """Test loading MCP server configs."""

    def test_missing_file_means_no_servers(self, tmp_path) -> None:
        assert load_server_configs(tmp_path / "missing.json") == []

    def test_load_and_build(self, tmp_path) -> None:
        path = tmp_path / "servers.json"
        path.write_text(
            json.dumps(
                [
                    {"name": "GitHub", "command": "npx", "args": ["-y", "gh"]},
                    {"name": "Off", "command": "npx", "enabled": False},
                ]
            )
        )

        configs = load_server_configs(path)
        assert [c.name for c in configs] == ["GitHub", "Off"]
        assert configs[0].args == ["-y", "gh"]

        registry = build_registry(configs)
        assert list(registry.servers) == ["GitHub"]
        assert not registry.servers["GitHub"].is_running

    def test_non_list_config_rejected(self, tmp_path) -> None:
        path = tmp_path / "servers.json"
        path.write_text(json.dumps({"name": "GitHub"}))
        with pytest.raises(ValueError, match="JSON list"):
            load_server_configs(path)
