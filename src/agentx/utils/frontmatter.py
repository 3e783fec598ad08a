# ABOUTME: Markdown + YAML frontmatter codec used for agents, skills and commands
# ABOUTME: Explicit two-state scanner so boundary inputs behave predictably
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml

from agentx.errors import ParseError

DELIMITER = "---"


class _State(Enum):
    HEADER_OPEN = "open"
    HEADER_CLOSED = "closed"


@dataclass
class Document:
    """A parsed markdown document.

    ABOUTME: has_header distinguishes "no header" from "empty header"
    """
    meta: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    has_header: bool = False


def _is_delimiter(line: str) -> bool:
    return line.rstrip("\r\n") == DELIMITER


def _strip_one_newline(text: str, leading: bool) -> str:
    for newline in ("\r\n", "\n"):
        if leading and text.startswith(newline):
            return text[len(newline):]
        if not leading and text.endswith(newline):
            return text[: -len(newline)]
    return text


def parse(text: str, *, required: bool = False, source: object = None) -> Document:
    """Split a document into YAML header and body.

    ABOUTME: Header only exists if the very first line is exactly "---"
    ABOUTME: An unterminated header is a ParseError when required, otherwise plain body
    ABOUTME: One blank separator line after the header and one trailing newline are dropped

    Args:
        text: Full file content
        required: Whether a header must be present (skills)
        source: Path or label used in error messages

    Returns:
        Parsed Document

    Raises:
        ParseError: Missing/unterminated required header, invalid YAML,
            or a header that is not a mapping
    """
    lines = text.splitlines(keepends=True)

    if not lines or not _is_delimiter(lines[0]):
        if required:
            raise ParseError("missing frontmatter", source)
        return Document(body=_strip_one_newline(text, leading=False))

    state = _State.HEADER_OPEN
    header_lines: list[str] = []
    body = ""
    for index, line in enumerate(lines[1:], start=1):
        if _is_delimiter(line):
            state = _State.HEADER_CLOSED
            body = "".join(lines[index + 1:])
            break
        header_lines.append(line)

    if state is _State.HEADER_OPEN:
        if required:
            raise ParseError("missing closing frontmatter delimiter", source)
        return Document(body=_strip_one_newline(text, leading=False))

    try:
        meta = yaml.safe_load("".join(header_lines))
    except yaml.YAMLError as e:
        raise ParseError(f"invalid frontmatter: {e}", source) from e

    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ParseError("frontmatter must be a mapping", source)

    body = _strip_one_newline(body, leading=True)
    body = _strip_one_newline(body, leading=False)
    return Document(meta=meta, body=body, has_header=True)


def render(meta: dict[str, Any], body: str) -> str:
    """Render header + body.

    ABOUTME: Empty meta writes body only, unless the body itself opens with "---"
    ABOUTME: Key order follows the dict, so callers control determinism

    Args:
        meta: Header fields, already stripped of empty optional values
        body: Markdown body

    Returns:
        Document text
    """
    needs_header = bool(meta) or (body.splitlines() or [""])[0].rstrip("\r") == DELIMITER

    parts: list[str] = []
    if needs_header:
        parts.append(DELIMITER + "\n")
        if meta:
            parts.append(
                yaml.safe_dump(
                    meta,
                    sort_keys=False,
                    default_flow_style=False,
                    allow_unicode=True,
                )
            )
        parts.append(DELIMITER + "\n")
        if body:
            parts.append("\n")

    if body:
        parts.append(body + "\n")

    return "".join(parts)
