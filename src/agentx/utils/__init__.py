# ABOUTME: Utility modules for agentx
# ABOUTME: Exports env expansion, backup, file IO and validation helpers

from agentx.utils.backup import BackupGuard, BackupManager, get_backup_dir
from agentx.utils.env import expand_env_vars, expand_path
from agentx.utils.fileio import atomic_write_text, read_json_file, write_json_file
from agentx.utils.validation import (
    ValidationError,
    ensure_valid,
    validate_name,
    validate_resource,
    validate_server,
)

__all__ = [
    "expand_env_vars",
    "expand_path",
    "atomic_write_text",
    "read_json_file",
    "write_json_file",
    "ValidationError",
    "ensure_valid",
    "validate_name",
    "validate_resource",
    "validate_server",
    "BackupGuard",
    "BackupManager",
    "get_backup_dir",
]
