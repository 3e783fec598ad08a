# ABOUTME: File helpers shared by managers and backups
# ABOUTME: Every write goes through a temp file + os.replace so a crash never leaves half a file
import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any

from agentx.errors import ParseError

# ABOUTME: Permission bits for files agentx creates
DEFAULT_FILE_MODE = 0o644


def atomic_write_text(path: Path, content: str, mode: int | None = None) -> None:
    """Write text to path atomically.

    ABOUTME: Creates parent directories if needed
    ABOUTME: Temp file lives in the target directory so the rename stays on one filesystem
    ABOUTME: An existing file keeps its permission bits unless mode is given

    Args:
        path: Destination file
        content: Text to write (UTF-8)
        mode: Permission bits for the final file (default: existing file's, else 0o644)

    Raises:
        OSError: If the directory cannot be created or the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if mode is None:
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = DEFAULT_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".agentx-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def read_text_file(path: Path) -> str:
    """Read a UTF-8 text file.

    Raises:
        ParseError: If the bytes are not valid UTF-8
        OSError: If the file cannot be read
    """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"not valid UTF-8: {e}", path) from e


def read_json_file(path: Path) -> dict[str, Any]:
    """Read JSON file with error handling.

    ABOUTME: Returns empty dict if file doesn't exist
    ABOUTME: Raises ParseError for invalid JSON or a non-object document
    """
    if not path.exists():
        return {}

    text = read_text_file(path)
    if not text.strip():
        return {}

    try:
        result = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}", path) from e

    if not isinstance(result, dict):
        raise ParseError("expected a JSON object at top level", path)
    return result


def dumps_json(data: Any) -> str:
    """Serialise JSON the way every agentx-written file looks.

    ABOUTME: 2-space indentation, sorted keys, trailing newline
    """
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_json_file(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file atomically."""
    atomic_write_text(path, dumps_json(data))
