# Platform translator base classes
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentx.errors import ParseError, UnsupportedKindError
from agentx.models import (
    TRANSPORT_SSE,
    TRANSPORT_STDIO,
    Agent,
    Command,
    MCPConfig,
    MCPServer,
    Resource,
    ResourceKind,
    Scope,
    Skill,
    Transport,
)
from agentx.paths import PLATFORM_LAYOUTS, PlatformLayout, PlatformPaths
from agentx.utils import frontmatter
from agentx.utils.fileio import dumps_json

ALL_KINDS = frozenset(ResourceKind)

# ABOUTME: A top-level value carrying any of these keys looks like an MCP server entry
SERVER_HINT_KEYS = frozenset({"command", "url", "type", "httpUrl", "transport"})


@dataclass
class NativeDocument:
    """A resource in one platform's on-disk shape, before encoding to text.

    ABOUTME: meta is the header (YAML frontmatter or TOML table), body the markdown/prompt
    """
    meta: dict[str, Any] = field(default_factory=dict)
    body: str = ""


def as_string_list(value: Any, source: object = None, key: str = "") -> list[str]:
    """Coerce a header value into a list of strings.

    ABOUTME: Accepts a YAML list, or a string split on commas (or whitespace if it has none)

    Examples:
        >>> as_string_list("Read, Grep")
        ['Read', 'Grep']
        >>> as_string_list("Read Grep")
        ['Read', 'Grep']
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, str):
        parts = value.split(",") if "," in value else value.split()
        return [part.strip() for part in parts if part.strip()]
    raise ParseError(f"{key or 'value'} must be a string or list of strings", source)


def as_string_map(value: Any, source: object = None, key: str = "") -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ParseError(f"{key or 'value'} must be a mapping", source)
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def compatibility_list(value: Any, source: object = None) -> list[str]:
    """Skill compatibility may be a list, a single string or a {platform: version} map."""
    if isinstance(value, dict):
        return [f"{k} {'' if v is None else v}".strip() for k, v in value.items()]
    if isinstance(value, str):
        return [value] if value.strip() else []
    return as_string_list(value, source, "compatibility")


def build_meta(pairs: list[tuple[str, Any]], extra: dict[str, Any]) -> dict[str, Any]:
    """Header dict with empty values dropped, known keys first then extra.

    ABOUTME: Key order is fixed so repeated installs write identical bytes
    """
    meta: dict[str, Any] = {}
    for key, value in pairs:
        if value in ("", None) or value == [] or value == {}:
            continue
        meta[key] = value
    for key, value in extra.items():
        if key not in meta:
            meta[key] = value
    return meta


def remaining(meta: dict[str, Any], consumed: set[str]) -> dict[str, Any]:
    return {k: v for k, v in meta.items() if k not in consumed}


class PlatformTranslator:
    """Canonical resources <-> NativeDocument for one platform.

    ABOUTME: One typed conversion per variant; to_native/from_native only dispatch
    ABOUTME: Default methods implement the Claude Code markdown dialect
    ABOUTME: Subclasses override the variants where their platform differs
    """

    platform = ""
    supported_kinds: frozenset[ResourceKind] = ALL_KINDS
    allowed_tools_key = "allowed-tools"

    def supports(self, kind: ResourceKind) -> bool:
        return kind in self.supported_kinds

    def _require(self, kind: ResourceKind) -> None:
        if not self.supports(kind):
            raise UnsupportedKindError(self.platform, str(kind))

    # Text encoding

    def encode(self, kind: ResourceKind, doc: NativeDocument) -> str:
        """Render a native document to file text."""
        self._require(kind)
        return frontmatter.render(doc.meta, doc.body)

    def decode(self, kind: ResourceKind, text: str, source: object = None) -> NativeDocument:
        """Parse file text into a native document.

        Raises:
            ParseError: Malformed header (or a skill without one)
        """
        self._require(kind)
        parsed = frontmatter.parse(text, required=kind is ResourceKind.SKILL, source=source)
        return NativeDocument(meta=parsed.meta, body=parsed.body)

    # Dispatch

    def to_native(self, resource: Resource) -> NativeDocument:
        if isinstance(resource, Agent):
            return self.agent_to_native(resource)
        if isinstance(resource, Skill):
            return self.skill_to_native(resource)
        if isinstance(resource, Command):
            return self.command_to_native(resource)
        raise TypeError(f"{type(resource).__name__} has no document form")

    def from_native(
        self, kind: ResourceKind, name: str, doc: NativeDocument, source: object = None
    ) -> Resource:
        if kind is ResourceKind.AGENT:
            return self.agent_from_native(name, doc, source)
        if kind is ResourceKind.SKILL:
            return self.skill_from_native(name, doc, source)
        if kind is ResourceKind.COMMAND:
            return self.command_from_native(name, doc, source)
        raise TypeError(f"{kind} has no document form")

    # Agents

    def agent_to_native(self, agent: Agent) -> NativeDocument:
        self._require(ResourceKind.AGENT)
        meta = build_meta(
            [
                ("description", agent.description),
                ("model", agent.model),
                ("tools", ", ".join(agent.tools)),
            ],
            agent.extra,
        )
        return NativeDocument(meta=meta, body=agent.instructions)

    def agent_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Agent:
        self._require(ResourceKind.AGENT)
        meta = doc.meta
        return Agent(
            name=name,
            description=as_text(meta.get("description")),
            instructions=doc.body,
            model=as_text(meta.get("model")),
            tools=as_string_list(meta.get("tools"), source, "tools"),
            extra=remaining(meta, {"name", "description", "model", "tools"}),
        )

    # Skills (Agent Skills layout, shared by every platform)

    def skill_to_native(self, skill: Skill) -> NativeDocument:
        self._require(ResourceKind.SKILL)
        pairs: list[tuple[str, Any]] = [
            ("name", skill.name),
            ("description", skill.description),
            ("license", skill.license),
            ("compatibility", list(skill.compatibility)),
            ("metadata", dict(skill.metadata)),
            (self.allowed_tools_key, list(skill.allowed_tools)),
        ]
        return NativeDocument(meta=build_meta(pairs, skill.extra), body=skill.instructions)

    def skill_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Skill:
        self._require(ResourceKind.SKILL)
        meta = doc.meta
        description = as_text(meta.get("description"))
        if not description.strip():
            raise ParseError("skill description is required", source)
        return Skill(
            name=name,
            description=description,
            instructions=doc.body,
            license=as_text(meta.get("license")),
            compatibility=compatibility_list(meta.get("compatibility"), source),
            metadata=as_string_map(meta.get("metadata"), source, "metadata"),
            allowed_tools=as_string_list(meta.get(self.allowed_tools_key), source, self.allowed_tools_key),
            extra=remaining(
                meta,
                {"name", "description", "license", "compatibility", "metadata", self.allowed_tools_key},
            ),
        )

    # Commands

    def command_to_native(self, command: Command) -> NativeDocument:
        self._require(ResourceKind.COMMAND)
        meta = build_meta(
            [
                ("description", command.description),
                ("argument-hint", command.argument_hint),
                ("model", command.model),
                ("agent", command.agent),
                (self.allowed_tools_key, list(command.allowed_tools)),
            ],
            command.extra,
        )
        return NativeDocument(meta=meta, body=command.instructions)

    def command_from_native(self, name: str, doc: NativeDocument, source: object = None) -> Command:
        self._require(ResourceKind.COMMAND)
        meta = doc.meta
        return Command(
            name=name,
            description=as_text(meta.get("description")),
            instructions=doc.body,
            argument_hint=as_text(meta.get("argument-hint")),
            model=as_text(meta.get("model")),
            agent=as_text(meta.get("agent")),
            allowed_tools=as_string_list(meta.get(self.allowed_tools_key), source, self.allowed_tools_key),
            extra=remaining(
                meta,
                {"name", "description", "argument-hint", "model", "agent", self.allowed_tools_key},
            ),
        )


class MCPTranslator:
    """Raw MCP config JSON <-> canonical MCPConfig.

    ABOUTME: Accepts the wrapped shape ({servers_key: {...}}) and a bare servers map
    ABOUTME: Top-level keys other than servers_key survive a read/write cycle untouched
    ABOUTME: transport_in/transport_out are the platform's transport vocabulary
    """

    platform = ""
    servers_key = "mcpServers"
    type_key: str | None = "type"
    transport_in: dict[str, Transport] = {"stdio": TRANSPORT_STDIO, "sse": TRANSPORT_SSE}
    transport_out: dict[str, str] = {TRANSPORT_STDIO: "stdio", TRANSPORT_SSE: "sse"}

    # Raw bytes

    def to_canonical(self, raw: str | bytes, source: object = None) -> MCPConfig:
        """Parse raw JSON.

        Raises:
            ParseError: Malformed JSON or a non-object document
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if not raw.strip():
            return MCPConfig()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"invalid JSON: {e}", source) from e
        if not isinstance(data, dict):
            raise ParseError("expected a JSON object at top level", source)
        return self.decode(data, source)

    def from_canonical(self, config: MCPConfig) -> str:
        """Serialise to 2-space, key-sorted JSON with a trailing newline."""
        return dumps_json(self.encode(config))

    # Parsed JSON

    def is_bare(self, data: dict[str, Any]) -> bool:
        """True when data is a servers map without the wrapper key."""
        if not data or self.servers_key in data:
            return False
        return all(isinstance(v, dict) and SERVER_HINT_KEYS & v.keys() for v in data.values())

    def decode(self, data: dict[str, Any], source: object = None) -> MCPConfig:
        if self.servers_key in data:
            servers_raw = data[self.servers_key]
            unknown = {k: v for k, v in data.items() if k != self.servers_key}
        elif self.is_bare(data):
            servers_raw = data
            unknown = {}
        else:
            servers_raw = {}
            unknown = dict(data)

        if servers_raw is None:
            servers_raw = {}
        if not isinstance(servers_raw, dict):
            raise ParseError(f"'{self.servers_key}' must be an object", source)

        servers: dict[str, MCPServer] = {}
        for name, entry in servers_raw.items():
            if not isinstance(entry, dict):
                raise ParseError(f"server '{name}' must be an object", source)
            servers[name] = self.server_from_native(name, entry, source)
        return MCPConfig(servers=servers, unknown_fields=unknown)

    def encode(self, config: MCPConfig) -> dict[str, Any]:
        result: dict[str, Any] = dict(config.unknown_fields)
        result[self.servers_key] = {
            name: self.server_to_native(server) for name, server in config.servers.items()
        }
        return result

    # Transport vocabulary

    def infer_transport(self, url: str, command: str) -> Transport:
        """Fallback when the entry carries no recognised tag: URL means sse, otherwise stdio."""
        if url:
            return TRANSPORT_SSE
        return TRANSPORT_STDIO

    def transport_from_tag(self, tag: Any, url: str, command: str) -> Transport:
        if isinstance(tag, str) and tag.lower() in self.transport_in:
            return self.transport_in[tag.lower()]
        return self.infer_transport(url, command)

    def tag_for(self, server: MCPServer) -> str:
        transport = server.transport or self.infer_transport(server.url, server.command)
        return self.transport_out[transport]

    # Server entries (Claude-style keys by default)

    def server_from_native(self, name: str, entry: dict[str, Any], source: object = None) -> MCPServer:
        known = {"command", "args", "url", "headers", "env", "platforms", "disabled"}
        if self.type_key:
            known.add(self.type_key)
        command = as_text(entry.get("command"))
        url = as_text(entry.get("url"))
        tag = entry.get(self.type_key) if self.type_key else None
        return MCPServer(
            name=name,
            transport=self.transport_from_tag(tag, url, command),
            command=command,
            args=as_string_list(entry.get("args") or [], source, "args"),
            url=url,
            headers=as_string_map(entry.get("headers"), source, "headers"),
            env=as_string_map(entry.get("env"), source, "env"),
            platforms=as_string_list(entry.get("platforms") or [], source, "platforms"),
            disabled=bool(entry.get("disabled", False)),
            extra=remaining(entry, known),
        )

    def server_to_native(self, server: MCPServer) -> dict[str, Any]:
        entry: dict[str, Any] = dict(server.extra)
        if self.type_key:
            entry[self.type_key] = self.tag_for(server)
        if server.command:
            entry["command"] = server.command
        if server.args:
            entry["args"] = list(server.args)
        if server.url:
            entry["url"] = server.url
        if server.headers:
            entry["headers"] = dict(server.headers)
        if server.env:
            entry["env"] = dict(server.env)
        if server.platforms:
            entry["platforms"] = list(server.platforms)
        if server.disabled:
            entry["disabled"] = True
        return entry


class CanonicalMCPTranslator(MCPTranslator):
    """Reads agentx's own MCP source files.

    ABOUTME: Tag key is "transport"; "type" and every platform's vocabulary are accepted too
    """

    platform = "canonical"
    type_key = "transport"
    transport_in = {
        "stdio": TRANSPORT_STDIO,
        "local": TRANSPORT_STDIO,
        "sse": TRANSPORT_SSE,
        "http": TRANSPORT_SSE,
        "remote": TRANSPORT_SSE,
    }

    def server_from_native(self, name: str, entry: dict[str, Any], source: object = None) -> MCPServer:
        if "transport" not in entry and "type" in entry:
            entry = {("transport" if k == "type" else k): v for k, v in entry.items()}
        return super().server_from_native(name, entry, source)


class Platform:
    """One assistant platform: layout, document translator and MCP translator.

    ABOUTME: Subclasses set name, translator and mcp_translator
    ABOUTME: Layout comes from the static PLATFORM_LAYOUTS table
    """

    name = ""
    translator: PlatformTranslator
    mcp_translator: MCPTranslator

    @property
    def layout(self) -> PlatformLayout:
        return PLATFORM_LAYOUTS[self.name]

    @property
    def display_name(self) -> str:
        return self.layout.display_name

    def supports(self, kind: ResourceKind) -> bool:
        if kind is ResourceKind.MCP:
            return True
        return self.translator.supports(kind)

    def paths(
        self,
        scope: Scope,
        project_root: Path | None = None,
        home: Path | None = None,
        cwd: Path | None = None,
        user_dir: Path | None = None,
    ) -> PlatformPaths:
        return PlatformPaths(
            self.layout, scope, project_root=project_root, home=home, cwd=cwd, user_dir=user_dir
        )

    def is_installed(self, home: Path | None = None, user_dir: Path | None = None) -> bool:
        """True if the platform's user directory exists."""
        return self.paths(Scope.USER, home=home, user_dir=user_dir).base_dir().is_dir()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
