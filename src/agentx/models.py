# Core data models for agentx
import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal


class ResourceKind(str, Enum):
    """The four kinds of resource agentx can place on a platform."""

    SKILL = "skill"
    COMMAND = "command"
    AGENT = "agent"
    MCP = "mcp"

    def __str__(self) -> str:
        return self.value


class Scope(Enum):
    """Configuration layer a read or write targets.

    ABOUTME: DEFAULT is what an unrecognised scope string parses to
    ABOUTME: Path resolution treats DEFAULT the same as USER
    """

    DEFAULT = "default"
    USER = "user"
    PROJECT = "project"
    LOCAL = "local"
    MANAGED = "managed"

    @classmethod
    def parse(cls, value: str) -> "Scope":
        """Parse a scope name case-insensitively, falling back to DEFAULT."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.DEFAULT

    def __str__(self) -> str:
        return self.value


Transport = Literal["stdio", "sse", ""]

TRANSPORT_STDIO: Transport = "stdio"
TRANSPORT_SSE: Transport = "sse"


@dataclass(frozen=True)
class Agent:
    """Canonical agent persona.

    ABOUTME: extra carries platform-specific frontmatter keys untouched
    """
    kind: ClassVar[ResourceKind] = ResourceKind.AGENT

    name: str
    description: str = ""
    instructions: str = ""
    model: str = ""
    tools: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Skill:
    """Canonical skill (SKILL.md inside a directory named after the skill).

    ABOUTME: Follows the Agent Skills layout; header and description are required
    """
    kind: ClassVar[ResourceKind] = ResourceKind.SKILL

    name: str
    description: str = ""
    instructions: str = ""
    license: str = ""
    compatibility: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    allowed_tools: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Command:
    """Canonical slash command."""
    kind: ClassVar[ResourceKind] = ResourceKind.COMMAND

    name: str
    description: str = ""
    instructions: str = ""
    argument_hint: str = ""
    model: str = ""
    agent: str = ""
    allowed_tools: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MCPServer:
    """Canonical MCP server connection.

    ABOUTME: transport is "stdio", "sse", or "" when the source never said
    ABOUTME: extra keeps per-server keys no translator understands
    """
    kind: ClassVar[ResourceKind] = ResourceKind.MCP

    name: str
    transport: Transport = ""
    command: str = ""
    args: list[str] = field(default_factory=list)
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    platforms: list[str] = field(default_factory=list)
    disabled: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def description(self) -> str:
        if self.url:
            return self.url
        return " ".join([self.command, *self.args]).strip()

    @property
    def is_remote(self) -> bool:
        if self.transport:
            return self.transport == TRANSPORT_SSE
        return bool(self.url) and not self.command


Resource = Skill | Command | Agent | MCPServer

RESOURCE_TYPES: dict[ResourceKind, type] = {
    ResourceKind.SKILL: Skill,
    ResourceKind.COMMAND: Command,
    ResourceKind.AGENT: Agent,
    ResourceKind.MCP: MCPServer,
}


@dataclass
class MCPConfig:
    """Canonical MCP configuration for one file.

    ABOUTME: unknown_fields holds top-level keys outside the servers map
    ABOUTME: They are written back verbatim on every save
    """
    servers: dict[str, MCPServer] = field(default_factory=dict)
    unknown_fields: dict[str, Any] = field(default_factory=dict)


def is_identical(new: Resource, existing: Resource) -> bool:
    """Return True if two resources carry the same content.

    ABOUTME: Field-by-field equality; instructions compared with surrounding whitespace stripped
    ABOUTME: Lists compare in order - a permuted list is a different resource
    """
    if type(new) is not type(existing):
        return False

    for f in dataclasses.fields(new):
        left = getattr(new, f.name)
        right = getattr(existing, f.name)
        if f.name == "instructions":
            left, right = left.strip(), right.strip()
        if left != right:
            return False
    return True
