# Tests for Gemini CLI platform translators
import json
from dataclasses import replace

import pytest

from agentx.errors import ParseError
from agentx.models import Agent, Command, MCPServer, ResourceKind, Skill
from agentx.platforms import GeminiPlatform
from agentx.platforms.gemini import (
    GeminiMCPTranslator,
    GeminiTranslator,
    to_canonical_variables,
    to_platform_variables,
)


def test_gemini_platform_properties() -> None:
    platform = GeminiPlatform()

    assert platform.name == "gemini"
    assert platform.display_name == "Gemini CLI"
    assert platform.supports(ResourceKind.AGENT)
    assert platform.supports(ResourceKind.COMMAND)
    assert platform.supports(ResourceKind.MCP)


def test_agent_is_markdown() -> None:
    translator = GeminiTranslator()
    agent = Agent(name="reviewer", description="Code reviewer", instructions="Review the diff.")

    text = translator.encode(ResourceKind.AGENT, translator.to_native(agent))

    assert text == "---\ndescription: Code reviewer\n---\n\nReview the diff.\n"
    assert translator.from_native(ResourceKind.AGENT, "reviewer", translator.decode(ResourceKind.AGENT, text)) == agent


def test_agent_without_metadata_round_trip() -> None:
    translator = GeminiTranslator()
    agent = Agent(name="helper", instructions="Help out.")

    text = translator.encode(ResourceKind.AGENT, translator.to_native(agent))

    assert text == "Help out.\n"
    assert translator.from_native(ResourceKind.AGENT, "helper", translator.decode(ResourceKind.AGENT, text)) == agent


class TestCommands:
    """Gemini commands are TOML with description and prompt."""

    def test_encode_toml(self) -> None:
        translator = GeminiTranslator()
        command = Command(name="review", description="Review code", instructions="Review $ARGUMENTS")

        text = translator.encode(ResourceKind.COMMAND, translator.to_native(command))

        assert text == 'description = "Review code"\nprompt = """\nReview {{args}}"""\n'

    def test_round_trip(self) -> None:
        translator = GeminiTranslator()
        command = Command(
            name="review",
            description='Say "hi"',
            instructions="Line 1\nUse $ARGUMENTS and $SELECTION\n\tindented",
        )

        text = translator.encode(ResourceKind.COMMAND, translator.to_native(command))
        back = translator.from_native(ResourceKind.COMMAND, "review", translator.decode(ResourceKind.COMMAND, text))

        assert back == command

    def test_extra_keys_preserved(self) -> None:
        translator = GeminiTranslator()
        doc = translator.decode(ResourceKind.COMMAND, 'description = "d"\nprompt = "p"\nversion = 2\n')

        command = translator.from_native(ResourceKind.COMMAND, "c", doc)

        assert command.extra == {"version": 2}

    def test_invalid_toml(self) -> None:
        with pytest.raises(ParseError, match="invalid TOML"):
            GeminiTranslator().decode(ResourceKind.COMMAND, "prompt = ")

    def test_prompt_must_be_string(self) -> None:
        with pytest.raises(ParseError, match="prompt"):
            GeminiTranslator().decode(ResourceKind.COMMAND, "prompt = 3\n")

    def test_variables(self) -> None:
        assert to_platform_variables("$ARGUMENTS / $SELECTION") == "{{args}} / {{selection}}"
        assert to_canonical_variables("{{argument}} {{args}}") == "$ARGUMENTS $ARGUMENTS"


def test_skill_is_markdown() -> None:
    translator = GeminiTranslator()
    skill = Skill(name="pdf", description="PDFs", instructions="Use it.")

    text = translator.encode(ResourceKind.SKILL, translator.to_native(skill))

    assert text.startswith("---\nname: pdf\n")
    assert translator.from_native(ResourceKind.SKILL, "pdf", translator.decode(ResourceKind.SKILL, text)) == skill


class TestGeminiMCP:
    """Tests for GeminiMCPTranslator."""

    def test_no_type_tag(self) -> None:
        entry = GeminiMCPTranslator().server_to_native(MCPServer(name="fs", command="npx", args=["fs"]))

        assert entry == {"command": "npx", "args": ["fs"]}

    def test_http_url_is_remote(self) -> None:
        config = GeminiMCPTranslator().to_canonical('{"mcpServers": {"api": {"httpUrl": "https://api.example.com"}}}')

        server = config.servers["api"]
        assert server.transport == "sse"
        assert server.url == "https://api.example.com"

    def test_http_url_written_back_as_http_url(self) -> None:
        """Test that a streamable HTTP entry keeps its key through a read/write cycle."""
        translator = GeminiMCPTranslator()
        raw = '{"mcpServers": {"api": {"httpUrl": "https://api.example.com/mcp"}}}'

        data = json.loads(translator.from_canonical(translator.to_canonical(raw)))

        assert data["mcpServers"]["api"] == {"httpUrl": "https://api.example.com/mcp"}

    def test_sse_url_stays_url(self) -> None:
        translator = GeminiMCPTranslator()
        raw = '{"mcpServers": {"events": {"url": "https://api.example.com/sse"}}}'

        data = json.loads(translator.from_canonical(translator.to_canonical(raw)))

        assert data["mcpServers"]["events"] == {"url": "https://api.example.com/sse"}

    def test_changed_url_keeps_http_url_key(self) -> None:
        translator = GeminiMCPTranslator()
        server = translator.server_from_native("api", {"httpUrl": "https://old.example.com"})

        entry = translator.server_to_native(replace(server, url="https://new.example.com"))

        assert entry == {"httpUrl": "https://new.example.com"}

    def test_enabled_false(self) -> None:
        translator = GeminiMCPTranslator()
        config = translator.to_canonical('{"mcpServers": {"x": {"command": "node", "enabled": false}}}')

        assert config.servers["x"].disabled is True
        assert json.loads(translator.from_canonical(config))["mcpServers"]["x"]["enabled"] is False

    def test_settings_preserved(self) -> None:
        """Test that the rest of settings.json survives a read/write cycle."""
        translator = GeminiMCPTranslator()
        raw = json.dumps({
            "theme": "GitHub",
            "selectedAuthType": "oauth-personal",
            "mcpServers": {"fs": {"command": "npx", "trust": True, "timeout": 600}},
        })

        first = translator.to_canonical(raw)
        data = json.loads(translator.from_canonical(first))

        assert data["theme"] == "GitHub"
        assert data["mcpServers"]["fs"]["trust"] is True
        assert translator.to_canonical(json.dumps(data)) == first

    def test_settings_without_servers(self) -> None:
        """Test that a settings file with no servers is not mistaken for a bare map."""
        config = GeminiMCPTranslator().to_canonical('{"theme": "GitHub", "general": {"vimMode": true}}')

        assert config.servers == {}
        assert config.unknown_fields == {"theme": "GitHub", "general": {"vimMode": True}}
