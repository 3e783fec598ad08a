# ABOUTME: Tests for the install orchestrator and canonical source loading
# ABOUTME: Real managers against a temporary home; failures injected through the manager factory
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from agentx.errors import (
    BackupError,
    CollisionError,
    InstallFailedError,
    InvalidResourceError,
    NotFoundError,
    ParseError,
    PartialInstallError,
    UnsupportedKindError,
)
from agentx.install import (
    AggregateStatus,
    InstallOptions,
    InstallOrchestrator,
    InstallStatus,
    OutcomeSet,
    TargetOutcome,
    load_resource,
    load_resources,
)
from agentx.managers import get_manager
from agentx.models import Agent, Command, MCPServer, ResourceKind, Scope, Skill
from agentx.platforms import ClaudePlatform, GeminiPlatform, OpenCodePlatform
from agentx.utils.backup import BackupGuard, BackupManager


@pytest.fixture
def backups(tmp_path: Path) -> BackupManager:
    return BackupManager(tmp_path / "backups")


def make_orchestrator(home: Path, backups: BackupManager, force: bool = False, **kwargs) -> InstallOrchestrator:
    options = InstallOptions(force=force, scope=Scope.USER, home=home)
    return InstallOrchestrator(options, backup_guard=BackupGuard(backups), **kwargs)


def claude_paths(home: Path):
    return ClaudePlatform().paths(Scope.USER, home=home)


def without_agents(*names: str):
    """Manager factory that reports agents unsupported on the named platforms."""
    def factory(platform, kind, paths):
        if kind is ResourceKind.AGENT and platform.name in names:
            raise UnsupportedKindError(platform.name, str(kind))
        return get_manager(platform, kind, paths)
    return factory


class TestInstallToAll:
    """Tests for InstallOrchestrator.install_to_all()."""

    def test_reviewer_on_fresh_platform(self, home: Path, backups: BackupManager) -> None:
        """Test installing an agent where nothing exists yet."""
        agent = Agent(name="reviewer", description="Code reviewer", instructions="Review the diff carefully.")

        result = make_orchestrator(home, backups).install_to_all(agent, [ClaudePlatform()])

        assert result.status is AggregateStatus.SUCCESS
        [outcome] = result.outcomes
        assert outcome.status is InstallStatus.INSTALLED
        assert not outcome.unchanged
        agent_file = home / ".claude" / "agents" / "reviewer.md"
        assert outcome.path == agent_file
        assert agent_file.read_text() == (
            "---\ndescription: Code reviewer\n---\n\nReview the diff carefully.\n"
        )

    def test_idempotent_reinstall(self, home: Path, backups: BackupManager) -> None:
        """Test that installing the same resource twice is a no-op the second time."""
        agent = Agent(name="reviewer", description="Code reviewer", instructions="Review.", tools=["Read"])
        orchestrator = make_orchestrator(home, backups)

        orchestrator.install_to_all(agent, ["claude"])
        agent_file = home / ".claude" / "agents" / "reviewer.md"
        before = agent_file.read_bytes()

        result = orchestrator.install_to_all(agent, ["claude"])

        assert result.status is AggregateStatus.SUCCESS
        assert result.outcomes[0].status is InstallStatus.INSTALLED
        assert result.outcomes[0].unchanged
        assert agent_file.read_bytes() == before

    def test_idempotent_when_platform_drops_fields(self, home: Path, backups: BackupManager) -> None:
        """Test that fields the platform cannot store do not cause a false collision."""
        command = Command(name="review", description="Review", instructions="Review $ARGUMENTS", argument_hint="[file]")
        orchestrator = make_orchestrator(home, backups)

        orchestrator.install_to_all(command, ["opencode", "gemini"])
        result = orchestrator.install_to_all(command, ["opencode", "gemini"])

        assert [o.unchanged for o in result.outcomes] == [True, True]

    def test_collision_without_force(self, home: Path, backups: BackupManager) -> None:
        orchestrator = make_orchestrator(home, backups)
        orchestrator.install_to_all(Agent(name="reviewer", description="Code reviewer"), ["claude"])
        agent_file = home / ".claude" / "agents" / "reviewer.md"
        before = agent_file.read_text()

        result = orchestrator.install_to_all(Agent(name="reviewer", description="Security reviewer"), ["claude"])

        assert result.outcomes[0].status is InstallStatus.COLLISION
        assert result.outcomes[0].path == agent_file
        assert result.status is AggregateStatus.FAILURE
        assert agent_file.read_text() == before
        with pytest.raises(CollisionError, match="--force"):
            result.raise_for_status()

    def test_force_overwrites_with_warning(self, home: Path, backups: BackupManager) -> None:
        make_orchestrator(home, backups).install_to_all(Agent(name="reviewer", description="Code reviewer"), ["claude"])

        result = make_orchestrator(home, backups, force=True).install_to_all(
            Agent(name="reviewer", description="Security reviewer"), ["claude"]
        )

        outcome = result.outcomes[0]
        assert outcome.status is InstallStatus.INSTALLED
        assert outcome.overwritten
        assert any(e.stage == "overwrite" and e.level == "warning" for e in result.events)
        assert "Security reviewer" in (home / ".claude" / "agents" / "reviewer.md").read_text()

    def test_gemini_agent_installed(self, home: Path, backups: BackupManager) -> None:
        agent = Agent(name="reviewer", description="Code reviewer", instructions="Review.")

        result = make_orchestrator(home, backups).install_to_all(agent, ["claude", "gemini"])

        assert [o.status for o in result.outcomes] == [InstallStatus.INSTALLED, InstallStatus.INSTALLED]
        assert (home / ".gemini" / "agents" / "reviewer.md").read_text() == (
            "---\ndescription: Code reviewer\n---\n\nReview.\n"
        )

    def test_unsupported_kind_is_skipped(self, home: Path, backups: BackupManager) -> None:
        agent = Agent(name="reviewer", description="Code reviewer")
        orchestrator = make_orchestrator(home, backups, manager_factory=without_agents("gemini"))

        result = orchestrator.install_to_all(agent, ["claude", "gemini"])

        assert [o.status for o in result.outcomes] == [InstallStatus.INSTALLED, InstallStatus.SKIPPED]
        assert result.status is AggregateStatus.SUCCESS

    def test_all_skipped_is_failure(self, home: Path, backups: BackupManager) -> None:
        orchestrator = make_orchestrator(home, backups, manager_factory=without_agents("gemini"))

        result = orchestrator.install_to_all(Agent(name="reviewer"), ["gemini"])

        assert result.status is AggregateStatus.FAILURE
        with pytest.raises(InstallFailedError):
            result.raise_for_status()

    def test_project_scope_without_root_is_skipped(self, home: Path, backups: BackupManager) -> None:
        options = InstallOptions(scope=Scope.PROJECT, home=home)
        orchestrator = InstallOrchestrator(options, backup_guard=BackupGuard(backups))

        result = orchestrator.install_to_all(Agent(name="reviewer"), ["claude"])

        assert result.outcomes[0].status is InstallStatus.SKIPPED

    def test_partial_failure(self, home: Path, backups: BackupManager) -> None:
        """Test A installed, B collides, C fails with permission denied."""
        command = Command(name="review", description="Review staged changes", instructions="Review.")
        opencode_file = OpenCodePlatform().paths(Scope.USER, home=home).command_path("review")
        opencode_file.parent.mkdir(parents=True)
        opencode_file.write_text("---\ndescription: Something else\n---\n\nOther.\n")

        def factory(platform, kind, paths):
            manager = get_manager(platform, kind, paths)
            if platform.name == "gemini":
                manager.install = MagicMock(side_effect=PermissionError(13, "Permission denied"))
            return manager

        result = make_orchestrator(home, backups, manager_factory=factory).install_to_all(
            command, ["claude", "opencode", "gemini"]
        )

        assert [o.platform for o in result.outcomes] == ["claude", "opencode", "gemini"]
        assert [o.status for o in result.outcomes] == [
            InstallStatus.INSTALLED,
            InstallStatus.COLLISION,
            InstallStatus.ERROR,
        ]
        assert "Permission denied" in result.outcomes[2].reason
        assert result.status is AggregateStatus.PARTIAL_FAILURE
        with pytest.raises(PartialInstallError):
            result.raise_for_status()

    def test_unexpected_exception_is_contained(self, home: Path, backups: BackupManager) -> None:
        def factory(platform, kind, paths):
            manager = get_manager(platform, kind, paths)
            if platform.name == "claude":
                manager.install = MagicMock(side_effect=RuntimeError("boom"))
            return manager

        result = make_orchestrator(home, backups, manager_factory=factory).install_to_all(
            Agent(name="reviewer"), ["claude", "opencode"]
        )

        assert result.outcomes[0].status is InstallStatus.ERROR
        assert "RuntimeError: boom" in result.outcomes[0].reason
        assert result.outcomes[1].status is InstallStatus.INSTALLED

    def test_unknown_platform_name(self, home: Path, backups: BackupManager) -> None:
        result = make_orchestrator(home, backups).install_to_all(Agent(name="reviewer"), ["cursor", "claude"])

        assert result.outcomes[0].status is InstallStatus.ERROR
        assert result.outcomes[0].platform == "cursor"
        assert result.status is AggregateStatus.PARTIAL_FAILURE

    def test_invalid_resource_errors(self, home: Path, backups: BackupManager) -> None:
        result = make_orchestrator(home, backups).install_to_all(Skill(name="pdf"), ["claude"])

        assert result.outcomes[0].status is InstallStatus.ERROR
        assert "description" in result.outcomes[0].reason
        assert not (home / ".claude" / "skills").exists()

    def test_unparseable_existing_is_collision(self, home: Path, backups: BackupManager) -> None:
        skill_file = claude_paths(home).skill_path("pdf")
        skill_file.parent.mkdir(parents=True)
        skill_file.write_text("no header at all\n")
        skill = Skill(name="pdf", description="Work with PDFs")

        result = make_orchestrator(home, backups).install_to_all(skill, ["claude"])

        assert result.outcomes[0].status is InstallStatus.COLLISION
        assert any(e.stage == "check" and e.level == "warning" for e in result.events)

        forced = make_orchestrator(home, backups, force=True).install_to_all(skill, ["claude"])
        assert forced.outcomes[0].overwritten
        assert skill_file.read_text().startswith("---\nname: pdf\n")

    def test_binary_existing_file_is_collision(self, home: Path, backups: BackupManager) -> None:
        agent_file = claude_paths(home).agent_path("reviewer")
        agent_file.parent.mkdir(parents=True)
        agent_file.write_bytes(b"\xff\xfe")

        result = make_orchestrator(home, backups).install_to_all(Agent(name="reviewer"), ["claude"])

        assert result.outcomes[0].status is InstallStatus.COLLISION
        assert agent_file.read_bytes() == b"\xff\xfe"

    def test_mcp_os_allow_list_includes_host(self, home: Path, backups: BackupManager, monkeypatch) -> None:
        monkeypatch.setattr("agentx.install.current_os", lambda: "linux")
        server = MCPServer(name="github", command="npx", platforms=["linux", "darwin"])

        result = make_orchestrator(home, backups).install_to_all(server, ["claude", "opencode"])

        assert [o.status for o in result.outcomes] == [InstallStatus.INSTALLED, InstallStatus.INSTALLED]
        assert result.status is AggregateStatus.SUCCESS

    def test_mcp_os_allow_list_excludes_host(self, home: Path, backups: BackupManager, monkeypatch) -> None:
        monkeypatch.setattr("agentx.install.current_os", lambda: "windows")
        server = MCPServer(name="github", command="npx", platforms=["linux", "darwin"])

        result = make_orchestrator(home, backups).install_to_all(server, ["claude", "opencode"])

        assert [o.status for o in result.outcomes] == [InstallStatus.SKIPPED, InstallStatus.SKIPPED]
        assert "windows" in result.outcomes[0].reason
        assert not (home / ".claude.json").exists()
        assert not (home / ".config" / "opencode" / "opencode.json").exists()

    def test_mcp_assistant_name_in_platforms_is_invalid(self, home: Path, backups: BackupManager) -> None:
        server = MCPServer(name="github", command="npx", platforms=["claude"])

        result = make_orchestrator(home, backups).install_to_all(server, ["claude"])

        assert result.outcomes[0].status is InstallStatus.ERROR
        assert "Unknown platform(s) claude" in result.outcomes[0].reason


class TestBackupBeforeMutate:
    """Tests for the backup step."""

    def test_existing_config_is_backed_up(self, home: Path, backups: BackupManager) -> None:
        claude_json = home / ".claude.json"
        claude_json.write_text('{"theme": "dark"}')

        make_orchestrator(home, backups).install_to_all(MCPServer(name="fs", command="npx"), ["claude"])

        [manifest] = backups.list_backups("claude")
        assert [f.original_path for f in manifest.files] == [str(claude_json.absolute())]
        assert "fs" in json.loads(claude_json.read_text())["mcpServers"]

    def test_backup_failure_blocks_write(self, home: Path) -> None:
        failing = MagicMock()
        failing.backup.side_effect = BackupError("disk full")
        orchestrator = InstallOrchestrator(
            InstallOptions(scope=Scope.USER, home=home), backup_guard=BackupGuard(failing)
        )

        result = orchestrator.install_to_all(Agent(name="reviewer"), ["claude", "opencode"])

        assert [o.status for o in result.outcomes] == [InstallStatus.ERROR, InstallStatus.ERROR]
        assert result.outcomes[0].reason == "backup failed: disk full"
        assert not (home / ".claude" / "agents").exists()
        assert result.status is AggregateStatus.FAILURE

    def test_install_many_backs_up_once(self, home: Path, backups: BackupManager) -> None:
        (home / ".claude.json").write_text("{}")
        servers = [MCPServer(name="a", command="npx"), MCPServer(name="b", command="npx")]

        result = make_orchestrator(home, backups).install_many(servers, ["claude"])

        assert [o.name for o in result.outcomes] == ["a", "b"]
        assert result.status is AggregateStatus.SUCCESS
        assert len(backups.list_backups("claude")) == 1


class TestEventsAndReport:
    """Tests for events and the JSON payload."""

    def test_on_event_receives_every_event(self, home: Path, backups: BackupManager) -> None:
        received = []
        orchestrator = make_orchestrator(
            home, backups, on_event=received.append, manager_factory=without_agents("gemini")
        )

        result = orchestrator.install_to_all(Agent(name="reviewer"), ["claude", "gemini"])

        assert received == result.events
        assert {e.stage for e in received} == {"write", "skip"}

    def test_to_dict_is_json_ready(self, home: Path, backups: BackupManager) -> None:
        result = make_orchestrator(home, backups).install_to_all(Agent(name="reviewer"), ["claude"])

        payload = json.loads(json.dumps(result.to_dict()))

        assert payload["status"] == "success"
        assert payload["outcomes"][0]["kind"] == "agent"
        assert payload["outcomes"][0]["status"] == "installed"
        assert payload["outcomes"][0]["path"].endswith("reviewer.md")


class TestOutcomeSet:
    """Tests for aggregate status rules."""

    @staticmethod
    def outcome(status: InstallStatus) -> TargetOutcome:
        return TargetOutcome(platform="p", kind=ResourceKind.AGENT, name="x", status=status)

    def test_empty_is_failure(self) -> None:
        assert OutcomeSet().status is AggregateStatus.FAILURE

    def test_installed_and_skipped_is_success(self) -> None:
        result = OutcomeSet([self.outcome(InstallStatus.INSTALLED), self.outcome(InstallStatus.SKIPPED)])
        assert result.status is AggregateStatus.SUCCESS
        result.raise_for_status()

    def test_errors_only_is_install_failed(self) -> None:
        result = OutcomeSet([self.outcome(InstallStatus.ERROR), self.outcome(InstallStatus.COLLISION)])
        assert result.status is AggregateStatus.FAILURE
        with pytest.raises(InstallFailedError):
            result.raise_for_status()


class TestLoadResources:
    """Tests for reading canonical source files."""

    def test_agent_markdown(self, tmp_path: Path) -> None:
        source = tmp_path / "reviewer.md"
        source.write_text(
            "---\ndescription: Code reviewer\ntools: Read, Grep\nmodel: sonnet\ncolor: blue\n---\n\nReview.\n"
        )

        agent = load_resource(source, ResourceKind.AGENT)

        assert agent == Agent(
            name="reviewer",
            description="Code reviewer",
            instructions="Review.",
            model="sonnet",
            tools=["Read", "Grep"],
            extra={"color": "blue"},
        )

    def test_agent_directory_and_name_override(self, tmp_path: Path) -> None:
        agent_dir = tmp_path / "some-dir"
        agent_dir.mkdir()
        (agent_dir / "AGENT.md").write_text("---\nname: auditor\n---\nAudit.\n")

        agent = load_resource(agent_dir, ResourceKind.AGENT)

        assert agent.name == "auditor"
        assert agent.instructions == "Audit."

    def test_skill_directory(self, tmp_path: Path) -> None:
        skill_dir = tmp_path / "pdf"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text(
            "---\nname: pdf\ndescription: PDFs\nallowed-tools: [Bash, Read]\n---\n\nUse pdftotext.\n"
        )

        skill = load_resource(skill_dir, ResourceKind.SKILL)

        assert skill.name == "pdf"
        assert skill.allowed_tools == ["Bash", "Read"]

    def test_skill_requires_header(self, tmp_path: Path) -> None:
        skill_dir = tmp_path / "pdf"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text("# PDF\n")

        with pytest.raises(ParseError):
            load_resources(skill_dir, ResourceKind.SKILL)

    def test_command(self, tmp_path: Path) -> None:
        source = tmp_path / "review.md"
        source.write_text("---\nargument-hint: '[file]'\n---\nReview $ARGUMENTS\n")

        command = load_resource(source, ResourceKind.COMMAND)

        assert command.name == "review"
        assert command.argument_hint == "[file]"

    def test_mcp_file_with_several_servers(self, tmp_path: Path) -> None:
        source = tmp_path / "servers.json"
        source.write_text(json.dumps({
            "mcpServers": {
                "zeta": {"transport": "http", "url": "https://z.example.com/mcp"},
                "alpha": {"type": "stdio", "command": "npx", "args": ["-y", "alpha"]},
            }
        }))

        servers = load_resources(source, ResourceKind.MCP)

        assert [s.name for s in servers] == ["alpha", "zeta"]
        assert servers[0].transport == "stdio"
        assert servers[1].transport == "sse"
        with pytest.raises(InvalidResourceError):
            load_resource(source, ResourceKind.MCP)

    def test_mcp_bare_map(self, tmp_path: Path) -> None:
        source = tmp_path / "github.json"
        source.write_text(json.dumps({"github": {"command": "npx", "env": {"TOKEN": "x"}}}))

        server = load_resource(source, ResourceKind.MCP)

        assert server.name == "github"
        assert server.env == {"TOKEN": "x"}

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            load_resources(tmp_path / "nope.md", ResourceKind.AGENT)
