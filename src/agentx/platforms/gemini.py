# Gemini CLI platform
from typing import Any

import tomli

from agentx.errors import ParseError
from agentx.models import TRANSPORT_SSE, TRANSPORT_STDIO, Command, MCPServer, ResourceKind
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
from agentx.utils.toml_writer import dumps_flat

# ABOUTME: Canonical placeholder -> Gemini placeholder (written)
PLATFORM_VARIABLES = {
    "$ARGUMENTS": "{{args}}",
    "$SELECTION": "{{selection}}",
}

# ABOUTME: Gemini placeholder -> canonical placeholder (read); {{argument}} is an older spelling
CANONICAL_VARIABLES = {
    "{{args}}": "$ARGUMENTS",
    "{{argument}}": "$ARGUMENTS",
    "{{selection}}": "$SELECTION",
}


# ABOUTME: Gemini's key for streamable HTTP servers ("url" means SSE)
HTTP_URL_KEY = "httpUrl"


def to_platform_variables(text: str) -> str:
    for canonical, native in PLATFORM_VARIABLES.items():
        text = text.replace(canonical, native)
    return text


def to_canonical_variables(text: str) -> str:
    for native, canonical in CANONICAL_VARIABLES.items():
        text = text.replace(native, canonical)
    return text


class GeminiTranslator(PlatformTranslator):
    """Gemini CLI: markdown agents and skills, TOML commands.

    ABOUTME: Command files hold description + prompt; other TOML keys are kept in extra
    """

    platform = "gemini"

    def encode(self, kind: ResourceKind, doc: NativeDocument) -> str:
        if kind is not ResourceKind.COMMAND:
            return super().encode(kind, doc)
        data = dict(doc.meta)
        data["prompt"] = doc.body
        return dumps_flat(data, multiline_keys=("prompt",))

    def decode(self, kind: ResourceKind, text: str, source: object = None) -> NativeDocument:
        if kind is not ResourceKind.COMMAND:
            return super().decode(kind, text, source)
        try:
            data = tomli.loads(text)
        except tomli.TOMLDecodeError as e:
            raise ParseError(f"invalid TOML: {e}", source) from e
        prompt = data.pop("prompt", "")
        if not isinstance(prompt, str):
            raise ParseError("prompt must be a string", source)
        return NativeDocument(meta=data, body=prompt)

    def command_to_native(self, command: Command) -> NativeDocument:
        meta = build_meta([("description", command.description)], command.extra)
        return NativeDocument(meta=meta, body=to_platform_variables(command.instructions))

    def command_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Command:
        meta = doc.meta
        return Command(
            name=name,
            description=as_text(meta.get("description")),
            instructions=to_canonical_variables(doc.body),
            extra=remaining(meta, {"name", "description", "prompt"}),
        )


class GeminiMCPTranslator(MCPTranslator):
    """MCP servers under "mcpServers" in settings.json.

    ABOUTME: No transport tag; url or httpUrl means sse, otherwise stdio
    ABOUTME: httpUrl (streamable HTTP) stays in extra so it is written back under the same key
    ABOUTME: enabled: false <-> disabled
    """

    platform = "gemini"
    servers_key = "mcpServers"
    type_key = None
    transport_out = {TRANSPORT_STDIO: "stdio", TRANSPORT_SSE: "sse"}

    def server_from_native(self, name: str, entry: dict[str, Any], source: object = None) -> MCPServer:
        command = as_text(entry.get("command"))
        url = as_text(entry.get("url") or entry.get(HTTP_URL_KEY))
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ParseError(f"server '{name}': enabled must be a boolean", source)
        return MCPServer(
            name=name,
            transport=self.infer_transport(url, command),
            command=command,
            args=as_string_list(entry.get("args") or [], source, "args"),
            url=url,
            headers=as_string_map(entry.get("headers"), source, "headers"),
            env=as_string_map(entry.get("env"), source, "env"),
            disabled=not enabled,
            extra=remaining(entry, {"command", "args", "url", "headers", "env", "enabled"}),
        )

    def server_to_native(self, server: MCPServer) -> dict[str, Any]:
        entry: dict[str, Any] = dict(server.extra)
        if server.command:
            entry["command"] = server.command
        if server.args:
            entry["args"] = list(server.args)
        if not server.url:
            entry.pop(HTTP_URL_KEY, None)
        elif HTTP_URL_KEY in entry:
            entry[HTTP_URL_KEY] = server.url
        else:
            entry["url"] = server.url
        if server.headers:
            entry["headers"] = dict(server.headers)
        if server.env:
            entry["env"] = dict(server.env)
        if server.disabled:
            entry["enabled"] = False
        return entry


class GeminiPlatform(Platform):
    """Gemini CLI (~/.gemini, settings.json)."""

    name = "gemini"
    translator = GeminiTranslator()
    mcp_translator = GeminiMCPTranslator()
