# Configuration loading and parsing for agentx
import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from agentx.paths import PLATFORM_LAYOUTS
from agentx.utils.backup import BACKUP_RETENTION
from agentx.utils.env import expand_path

# ABOUTME: Environment variable that relocates the config directory (tests, CI)
CONFIG_DIR_ENV = "AGENTX_CONFIG_DIR"

CONFIG_FILENAME = "config.json"

CONFIG_VERSION = "1.0"


@dataclass
class AgentxConfig:
    """agentx configuration loaded from config.json.

    ABOUTME: Paths are kept as written; expansion of ~ and ${VAR} happens on access
    """
    version: str = CONFIG_VERSION
    default_platforms: list[str] = field(default_factory=list)
    platform_dirs: dict[str, str] = field(default_factory=dict)
    backup_dir: str = ""
    backup_retention: int = BACKUP_RETENTION

    def user_dirs(self, home: Path | None = None) -> dict[str, Path]:
        """Per-platform user directory overrides as expanded paths."""
        return {name: expand_path(raw, home) for name, raw in self.platform_dirs.items()}

    def backup_root(self, home: Path | None = None) -> Path:
        """Backup root: configured dir, else <home>/.agentx/backups."""
        if self.backup_dir:
            return expand_path(self.backup_dir, home)
        base = home if home is not None else Path.home()
        return base / ".agentx" / "backups"


def get_config_dir() -> Path:
    """Return the agentx config directory.

    ABOUTME: $AGENTX_CONFIG_DIR if set, otherwise ~/.agentx
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".agentx"


def get_config_path() -> Path:
    """Return the path to the agentx config file.

    ABOUTME: File may not exist yet - use ensure_config_dir() first
    """
    return get_config_dir() / CONFIG_FILENAME


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist.

    Returns:
        Path to config directory (guaranteed to exist)
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def _check_platform(name: object, where: str) -> str:
    if not isinstance(name, str) or name not in PLATFORM_LAYOUTS:
        known = ", ".join(sorted(PLATFORM_LAYOUTS))
        raise ValueError(f"Unknown platform {name!r} in {where}. Must be one of: {known}")
    return name


def load_config(path: Path) -> AgentxConfig:
    """Load and parse agentx config from JSON file.

    ABOUTME: Uses built-in json module for JSON parsing
    ABOUTME: Missing file means defaults; anything malformed fails fast

    Args:
        path: Path to config.json file

    Returns:
        Parsed AgentxConfig

    Raises:
        json.JSONDecodeError: If JSON syntax is invalid
        ValueError: If a section is malformed or names an unknown platform
    """
    if not path.exists():
        return AgentxConfig()

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("Config must be a JSON object")

    # Validate required top-level structure
    if "agentx" not in data:
        raise ValueError("Missing required 'agentx' section in config")

    agentx_section = data["agentx"]
    if not isinstance(agentx_section, dict) or "version" not in agentx_section:
        raise ValueError("Missing required 'version' field in 'agentx' section")

    default_platforms = data.get("default_platforms", [])
    if not isinstance(default_platforms, list):
        raise ValueError("'default_platforms' must be a list")
    default_platforms = [_check_platform(name, "default_platforms") for name in default_platforms]

    platforms_section = data.get("platforms", {})
    if not isinstance(platforms_section, dict):
        raise ValueError("'platforms' must be an object")

    platform_dirs: dict[str, str] = {}
    for name, settings in platforms_section.items():
        _check_platform(name, "platforms")
        if not isinstance(settings, dict):
            raise ValueError(f"Platform '{name}' settings must be an object")
        config_dir = settings.get("config_dir")
        if config_dir is not None:
            if not isinstance(config_dir, str) or not config_dir:
                raise ValueError(f"Platform '{name}' has invalid 'config_dir'")
            platform_dirs[name] = config_dir

    backup_section = data.get("backup", {})
    if not isinstance(backup_section, dict):
        raise ValueError("'backup' must be an object")

    retention = backup_section.get("retention", BACKUP_RETENTION)
    if isinstance(retention, bool) or not isinstance(retention, int) or retention < 1:
        raise ValueError("'backup.retention' must be a positive integer")

    backup_dir = backup_section.get("dir", "")
    if not isinstance(backup_dir, str):
        raise ValueError("'backup.dir' must be a string")

    return AgentxConfig(
        version=str(agentx_section["version"]),
        default_platforms=default_platforms,
        platform_dirs=platform_dirs,
        backup_dir=backup_dir,
        backup_retention=retention,
    )


def save_config(path: Path, config: AgentxConfig) -> None:
    """Save config to JSON file.

    ABOUTME: Writes config to disk in standard agentx format
    ABOUTME: Creates parent directory if needed

    Raises:
        OSError: If file cannot be written
    """
    data: dict[str, object] = {
        "agentx": {"version": config.version},
        "default_platforms": list(config.default_platforms),
        "platforms": {name: {"config_dir": raw} for name, raw in config.platform_dirs.items()},
        "backup": {"retention": config.backup_retention},
    }
    if config.backup_dir:
        data["backup"]["dir"] = config.backup_dir  # type: ignore[index]

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
