# Claude Code platform
from agentx.models import TRANSPORT_SSE, TRANSPORT_STDIO
from agentx.platforms.base import MCPTranslator, Platform, PlatformTranslator


class ClaudeTranslator(PlatformTranslator):
    """Markdown + YAML frontmatter for agents, skills and commands.

    ABOUTME: Agent tools are written as a comma-separated string, as Claude Code documents them
    """

    platform = "claude"


class ClaudeMCPTranslator(MCPTranslator):
    """MCP servers in ~/.claude.json and .mcp.json.

    ABOUTME: Claude calls remote servers "http"; inbound "sse" is accepted as well
    """

    platform = "claude"
    servers_key = "mcpServers"
    type_key = "type"
    transport_in = {"stdio": TRANSPORT_STDIO, "http": TRANSPORT_SSE, "sse": TRANSPORT_SSE}
    transport_out = {TRANSPORT_STDIO: "stdio", TRANSPORT_SSE: "http"}


class ClaudePlatform(Platform):
    """Claude Code (~/.claude, ~/.claude.json)."""

    name = "claude"
    translator = ClaudeTranslator()
    mcp_translator = ClaudeMCPTranslator()
