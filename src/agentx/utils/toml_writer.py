# Minimal TOML writer for agentx
import re
from typing import Any

# ABOUTME: Keys made only of these characters can be written bare
BARE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def dumps_flat(data: dict[str, Any], multiline_keys: tuple[str, ...] = ()) -> str:
    """Write a flat TOML document (Gemini CLI command files).

    ABOUTME: Minimal TOML writer handling only our subset (scalars, arrays, inline tables)
    ABOUTME: Keys listed in multiline_keys are written as triple-quoted strings
    ABOUTME: Key order follows the dict so output is deterministic

    Args:
        data: Top-level key/value pairs
        multiline_keys: String keys to emit as multi-line basic strings

    Returns:
        TOML document text ending in a newline

    Example output:
        description = "Review the staged diff"
        prompt = \"\"\"
        Review the following changes: {{args}}
        \"\"\"
    """
    lines: list[str] = []

    for key, value in data.items():
        if key in multiline_keys and isinstance(value, str):
            lines.append(f'{_format_key(key)} = """\n{_escape(value, multiline=True)}"""')
        else:
            lines.append(f"{_format_key(key)} = {_format_value(value)}")

    return "\n".join(lines) + "\n"


def _format_key(key: str) -> str:
    if BARE_KEY_PATTERN.match(key):
        return key
    return f'"{_escape(key)}"'


def _escape(text: str, multiline: bool = False) -> str:
    """Escape a string for a TOML basic string.

    ABOUTME: Newlines and tabs stay literal inside multi-line strings
    ABOUTME: Other control characters always become \\uXXXX escapes
    """
    out: list[str] = []
    for char in text:
        if char == "\\":
            out.append("\\\\")
        elif char == '"':
            out.append('\\"')
        elif char == "\n":
            out.append("\n" if multiline else "\\n")
        elif char == "\t":
            out.append("\t" if multiline else "\\t")
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    return "".join(out)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    if isinstance(value, list):
        return _format_array(value)
    if isinstance(value, dict):
        return _format_inline_table(value)
    raise TypeError(f"Cannot write {type(value).__name__} as TOML")


def _format_array(items: list[Any]) -> str:
    """Format list as TOML array.

    ABOUTME: Converts Python list to ["item1", "item2"] format
    """
    if not items:
        return "[]"

    return "[" + ", ".join(_format_value(item) for item in items) + "]"


def _format_inline_table(data: dict[str, Any]) -> str:
    """Format dict as TOML inline table.

    ABOUTME: Converts {"KEY": "value"} to { KEY = "value" } format
    """
    if not data:
        return "{}"

    pairs = [f"{_format_key(key)} = {_format_value(value)}" for key, value in data.items()]
    return "{ " + ", ".join(pairs) + " }"
