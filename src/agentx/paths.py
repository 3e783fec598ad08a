# ABOUTME: Scope + platform -> concrete filesystem locations
# ABOUTME: Pure functions over a static layout table; nothing here touches the disk
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from agentx.models import ResourceKind, Scope

SKILL_FILENAME = "SKILL.md"


@dataclass(frozen=True)
class PlatformLayout:
    """Where one platform keeps its files.

    ABOUTME: user_dir is relative to home, project_dir relative to the project root
    ABOUTME: project_dir "" means the project root itself (OpenCode)
    ABOUTME: home_mcp_file set means user/local MCP config lives at the home root, outside user_dir
    """
    name: str
    display_name: str
    user_dir: str
    project_dir: str
    instructions_file: str
    mcp_file: str
    skills_subdir: str = "skills"
    commands_subdir: str = "commands"
    agents_subdir: str | None = "agents"
    command_extension: str = ".md"
    home_mcp_file: str = ""
    local_instructions_file: str = ""
    local_mcp_key: tuple[str, ...] = ()
    managed_mcp_file: str = ""
    supports_local: bool = False
    supports_managed: bool = False


PLATFORM_LAYOUTS: dict[str, PlatformLayout] = {
    "claude": PlatformLayout(
        name="claude",
        display_name="Claude Code",
        user_dir=".claude",
        project_dir=".claude",
        instructions_file="CLAUDE.md",
        mcp_file=".mcp.json",
        home_mcp_file=".claude.json",
        local_instructions_file="CLAUDE.local.md",
        local_mcp_key=("projects",),
        managed_mcp_file="managed-mcp.json",
        supports_local=True,
        supports_managed=True,
    ),
    "opencode": PlatformLayout(
        name="opencode",
        display_name="OpenCode",
        user_dir=".config/opencode",
        project_dir="",
        instructions_file="AGENTS.md",
        mcp_file="opencode.json",
        skills_subdir="skill",
        agents_subdir="agent",
    ),
    "gemini": PlatformLayout(
        name="gemini",
        display_name="Gemini CLI",
        user_dir=".gemini",
        project_dir=".gemini",
        instructions_file="GEMINI.md",
        mcp_file="settings.json",
        command_extension=".toml",
    ),
}


def get_layout(platform: str) -> PlatformLayout:
    """Return the layout for a platform name.

    Raises:
        ValueError: Unknown platform
    """
    try:
        return PLATFORM_LAYOUTS[platform]
    except KeyError:
        known = ", ".join(sorted(PLATFORM_LAYOUTS))
        raise ValueError(f"Unknown platform '{platform}'. Must be one of: {known}") from None


# ABOUTME: Operating systems an MCP server can be limited to
OS_NAMES = ("darwin", "linux", "windows")


def current_os() -> str:
    """Host operating system as one of OS_NAMES ("linux" for other Unixes)."""
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform == "win32":
        return "windows"
    return "linux"


def managed_dir() -> Path:
    """System-wide managed settings directory for Claude Code."""
    if sys.platform == "darwin":
        return Path("/Library/Application Support/ClaudeCode")
    if sys.platform == "win32":
        return Path(os.environ.get("ProgramData", r"C:\ProgramData")) / "ClaudeCode"
    return Path("/etc/claude-code")


class PlatformPaths:
    """Resolve every path a platform uses for one scope.

    ABOUTME: Every method returns None when the inputs are insufficient
    ABOUTME: (PROJECT without a root, or a scope the platform does not have)
    ABOUTME: DEFAULT resolves exactly like USER

    Args:
        platform: Platform name or layout
        scope: Target scope
        project_root: Project directory for PROJECT/LOCAL scope
        home: Home directory (defaults to Path.home())
        cwd: Working directory, used by LOCAL when project_root is unset
        user_dir: Override for the platform's user base directory

    Examples:
        >>> paths = PlatformPaths("claude", Scope.USER, home=Path("/home/u"))
        >>> paths.mcp_config_path()
        PosixPath('/home/u/.claude.json')
        >>> PlatformPaths("claude", Scope.PROJECT).base_dir() is None
        True
    """

    def __init__(
        self,
        platform: str | PlatformLayout,
        scope: Scope,
        project_root: Path | None = None,
        home: Path | None = None,
        cwd: Path | None = None,
        user_dir: Path | None = None,
    ) -> None:
        self.layout = platform if isinstance(platform, PlatformLayout) else get_layout(platform)
        self.scope = Scope.USER if scope is Scope.DEFAULT else scope
        self.project_root = project_root
        self.home = home if home is not None else Path.home()
        self.cwd = cwd
        self.user_dir = user_dir

    @property
    def platform(self) -> str:
        return self.layout.name

    def _local_root(self) -> Path | None:
        if self.project_root is not None:
            return self.project_root
        if self.cwd is not None:
            return self.cwd
        try:
            return Path.cwd()
        except OSError:
            return None

    def _user_base(self) -> Path:
        if self.user_dir is not None:
            return self.user_dir
        return self.home / self.layout.user_dir

    def base_dir(self) -> Path | None:
        layout = self.layout
        if self.scope is Scope.USER:
            return self._user_base()
        if self.scope is Scope.PROJECT:
            if self.project_root is None:
                return None
            if not layout.project_dir:
                return self.project_root
            return self.project_root / layout.project_dir
        if self.scope is Scope.LOCAL:
            if not layout.supports_local:
                return None
            root = self._local_root()
            return root / layout.project_dir if root is not None else None
        if self.scope is Scope.MANAGED:
            return managed_dir() if layout.supports_managed else None
        return None

    def _subdir(self, name: str | None) -> Path | None:
        base = self.base_dir()
        if base is None or name is None:
            return None
        return base / name

    def skill_dir(self) -> Path | None:
        return self._subdir(self.layout.skills_subdir)

    def command_dir(self) -> Path | None:
        return self._subdir(self.layout.commands_subdir)

    def agent_dir(self) -> Path | None:
        return self._subdir(self.layout.agents_subdir)

    def kind_dir(self, kind: ResourceKind) -> Path | None:
        """Directory holding resources of kind (None for MCP)."""
        if kind is ResourceKind.SKILL:
            return self.skill_dir()
        if kind is ResourceKind.COMMAND:
            return self.command_dir()
        if kind is ResourceKind.AGENT:
            return self.agent_dir()
        return None

    def mcp_config_path(self) -> Path | None:
        """MCP config file for this scope.

        ABOUTME: Claude USER and LOCAL share ~/.claude.json; PROJECT uses <root>/.claude/.mcp.json
        """
        layout = self.layout
        if self.scope in (Scope.USER, Scope.LOCAL) and layout.home_mcp_file:
            if self.scope is Scope.LOCAL and not layout.supports_local:
                return None
            return self.home / layout.home_mcp_file
        if self.scope is Scope.MANAGED:
            base = self.base_dir()
            return base / layout.managed_mcp_file if base and layout.managed_mcp_file else None

        base = self.base_dir()
        return base / layout.mcp_file if base is not None else None

    def local_mcp_key(self) -> tuple[str, ...] | None:
        """Key path under which LOCAL-scope servers are nested in the MCP file.

        Returns:
            e.g. ("projects", "/abs/project") for Claude LOCAL, None otherwise
        """
        if self.scope is not Scope.LOCAL or not self.layout.local_mcp_key:
            return None
        root = self._local_root()
        if root is None:
            return None
        return (*self.layout.local_mcp_key, str(root.absolute()))

    def instructions_path(self) -> Path | None:
        layout = self.layout
        if self.scope is Scope.USER or self.scope is Scope.MANAGED:
            base = self.base_dir()
            return base / layout.instructions_file if base is not None else None
        if self.scope is Scope.PROJECT:
            if self.project_root is None:
                return None
            return self.project_root / layout.instructions_file
        if self.scope is Scope.LOCAL and layout.supports_local and layout.local_instructions_file:
            root = self._local_root()
            return root / layout.local_instructions_file if root is not None else None
        return None

    def skill_path(self, name: str) -> Path | None:
        skill_dir = self.skill_dir()
        if not name or skill_dir is None:
            return None
        return skill_dir / name / SKILL_FILENAME

    def command_path(self, name: str) -> Path | None:
        command_dir = self.command_dir()
        if not name or command_dir is None:
            return None
        return command_dir / f"{name}{self.layout.command_extension}"

    def agent_path(self, name: str) -> Path | None:
        agent_dir = self.agent_dir()
        if not name or agent_dir is None:
            return None
        return agent_dir / f"{name}.md"

    def resource_path(self, kind: ResourceKind, name: str) -> Path | None:
        """File that holds one named resource (the MCP config file for MCP)."""
        if kind is ResourceKind.SKILL:
            return self.skill_path(name)
        if kind is ResourceKind.COMMAND:
            return self.command_path(name)
        if kind is ResourceKind.AGENT:
            return self.agent_path(name)
        return self.mcp_config_path()

    def backup_paths(self) -> list[Path]:
        """Everything agentx may mutate for this platform and scope.

        ABOUTME: Resource directories rather than the whole base dir, since OpenCode's
        ABOUTME: project base is the repository root
        """
        candidates = [
            self.mcp_config_path(),
            self.instructions_path(),
            self.skill_dir(),
            self.command_dir(),
            self.agent_dir(),
        ]
        paths: list[Path] = []
        for candidate in candidates:
            if candidate is not None and candidate not in paths:
                paths.append(candidate)
        return paths
