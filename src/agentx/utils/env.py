# Environment variable expansion for config values
import os
import re
import warnings
from pathlib import Path

# ABOUTME: Pattern matches ${VAR_NAME} where VAR_NAME is uppercase with underscores
ENV_VAR_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)\}')


def expand_env_vars(value: str) -> str:
    """Expand environment variables in ${VAR} format.

    ABOUTME: Unset variables are left in place with a UserWarning

    Examples:
        >>> expand_env_vars("${HOME}/backups")
        '/Users/user/backups'
        >>> expand_env_vars("${UNSET_VAR}/x")
        '${UNSET_VAR}/x'  # with warning
    """
    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        if var_name in os.environ:
            return os.environ[var_name]
        warnings.warn(
            f"Environment variable '{var_name}' not found, keeping original",
            UserWarning,
            stacklevel=2
        )
        return match.group(0)

    return ENV_VAR_PATTERN.sub(replace_var, value)


def expand_path(value: str, home: Path | None = None) -> Path:
    """Expand ${VAR} references and a leading ~ in a configured path.

    ABOUTME: home replaces the real home directory for "~" (tests pass tmp_path)
    """
    expanded = expand_env_vars(value)
    if expanded == "~" or expanded.startswith("~/"):
        base = home if home is not None else Path.home()
        return base / expanded[2:] if len(expanded) > 1 else base
    return Path(expanded).expanduser()
