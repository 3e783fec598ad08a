# OpenCode platform
from typing import Any

from agentx.errors import ParseError
from agentx.models import TRANSPORT_SSE, TRANSPORT_STDIO, Agent, Command, MCPServer
from agentx.platforms.base import (
    MCPTranslator,
    NativeDocument,
    Platform,
    PlatformTranslator,
    as_string_list,
    as_string_map,
    as_text,
    build_meta,
    remaining,
)


def tools_map(value: Any, source: object = None) -> dict[str, bool]:
    """OpenCode agents list tools as {tool: enabled}; a plain list means all enabled."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): bool(v) for k, v in value.items()}
    return {tool: True for tool in as_string_list(value, source, "tools")}


class OpenCodeTranslator(PlatformTranslator):
    """OpenCode markdown dialect.

    ABOUTME: Agent tools are a {name: bool} map; disabled entries are kept in extra["tools"]
    ABOUTME: Commands carry description/agent/model only; the body is the template
    """

    platform = "opencode"
    allowed_tools_key = "allowed_tools"

    def agent_to_native(self, agent: Agent) -> NativeDocument:
        extra = dict(agent.extra)
        tools = tools_map(extra.pop("tools", None))
        for tool in agent.tools:
            tools[tool] = True
        meta = build_meta(
            [
                ("description", agent.description),
                ("model", agent.model),
                ("tools", tools),
            ],
            extra,
        )
        return NativeDocument(meta=meta, body=agent.instructions)

    def agent_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Agent:
        meta = doc.meta
        tools = tools_map(meta.get("tools"), source)
        extra = remaining(meta, {"name", "description", "model", "tools"})
        disabled = {tool: False for tool, enabled in tools.items() if not enabled}
        if disabled:
            extra["tools"] = disabled
        return Agent(
            name=name,
            description=as_text(meta.get("description")),
            instructions=doc.body,
            model=as_text(meta.get("model")),
            tools=[tool for tool, enabled in tools.items() if enabled],
            extra=extra,
        )

    def command_to_native(self, command: Command) -> NativeDocument:
        meta = build_meta(
            [
                ("description", command.description),
                ("agent", command.agent),
                ("model", command.model),
            ],
            command.extra,
        )
        return NativeDocument(meta=meta, body=command.instructions)

    def command_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Command:
        meta = doc.meta
        return Command(
            name=name,
            description=as_text(meta.get("description")),
            instructions=doc.body,
            agent=as_text(meta.get("agent")),
            model=as_text(meta.get("model")),
            extra=remaining(meta, {"name", "description", "agent", "model"}),
        )


class OpenCodeMCPTranslator(MCPTranslator):
    """MCP servers under the "mcp" key of opencode.json.

    ABOUTME: local/remote transport tags, command is one list (command + args)
    ABOUTME: environment <-> env, enabled: false <-> disabled
    """

    platform = "opencode"
    servers_key = "mcp"
    type_key = "type"
    transport_in = {"local": TRANSPORT_STDIO, "remote": TRANSPORT_SSE}
    transport_out = {TRANSPORT_STDIO: "local", TRANSPORT_SSE: "remote"}

    def server_from_native(self, name: str, entry: dict[str, Any], source: object = None) -> MCPServer:
        raw_command = entry.get("command")
        if isinstance(raw_command, str):
            argv = [raw_command] if raw_command else []
        else:
            argv = as_string_list(raw_command or [], source, "command")
        command = argv[0] if argv else ""
        url = as_text(entry.get("url"))
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ParseError(f"server '{name}': enabled must be a boolean", source)
        return MCPServer(
            name=name,
            transport=self.transport_from_tag(entry.get("type"), url, command),
            command=command,
            args=argv[1:],
            url=url,
            headers=as_string_map(entry.get("headers"), source, "headers"),
            env=as_string_map(entry.get("environment"), source, "environment"),
            disabled=not enabled,
            extra=remaining(entry, {"type", "command", "url", "headers", "environment", "enabled"}),
        )

    def server_to_native(self, server: MCPServer) -> dict[str, Any]:
        entry: dict[str, Any] = dict(server.extra)
        entry["type"] = self.tag_for(server)
        if server.command:
            entry["command"] = [server.command, *server.args]
        if server.url:
            entry["url"] = server.url
        if server.headers:
            entry["headers"] = dict(server.headers)
        if server.env:
            entry["environment"] = dict(server.env)
        if server.disabled:
            entry["enabled"] = False
        return entry


class OpenCodePlatform(Platform):
    """OpenCode (~/.config/opencode, opencode.json)."""

    name = "opencode"
    translator = OpenCodeTranslator()
    mcp_translator = OpenCodeMCPTranslator()
