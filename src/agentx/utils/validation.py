# ABOUTME: Validation utilities for canonical resources
# ABOUTME: Names double as filenames and map keys, so their charset is restricted
import re
import shutil
from dataclasses import dataclass
from urllib.parse import urlparse

from agentx.errors import InvalidResourceError
from agentx.models import TRANSPORT_SSE, TRANSPORT_STDIO, MCPServer, Resource, Skill
from agentx.paths import OS_NAMES

# ABOUTME: Lowercase alphanumeric segments joined by single hyphens
NAME_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
MAX_NAME_LENGTH = 64

# ABOUTME: MCP server names are map keys only, so underscores and dots are allowed too
MCP_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class ValidationError:
    """Represents a validation error or warning.

    ABOUTME: Uses frozen dataclass for immutability
    ABOUTME: Severity level distinguishes between blocking errors and warnings
    """
    resource_name: str
    message: str
    severity: str  # 'error' or 'warning'


def validate_name(name: str, mcp: bool = False) -> ValidationError | None:
    """Validate a resource name.

    Args:
        name: Candidate name
        mcp: Use the looser MCP server key rules

    Returns:
        ValidationError if the name is unusable, None otherwise

    Examples:
        >>> validate_name("code-reviewer") is None
        True
        >>> validate_name("Code Reviewer").message
        "Invalid name 'Code Reviewer': use lowercase letters, digits and single hyphens"
    """
    if not name:
        return ValidationError(resource_name="", message="Name is required", severity="error")

    if len(name) > MAX_NAME_LENGTH:
        return ValidationError(
            resource_name=name,
            message=f"Name longer than {MAX_NAME_LENGTH} characters",
            severity="error",
        )

    pattern = MCP_NAME_PATTERN if mcp else NAME_PATTERN
    if not pattern.match(name):
        hint = "use letters, digits, '_', '.' and '-'" if mcp else (
            "use lowercase letters, digits and single hyphens"
        )
        return ValidationError(
            resource_name=name,
            message=f"Invalid name '{name}': {hint}",
            severity="error",
        )
    return None


def validate_url(url: str) -> ValidationError | None:
    """Validate that a URL is properly formatted.

    ABOUTME: Requires HTTP or HTTPS scheme and a host
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return ValidationError(
            resource_name="",
            message=f"URL must use HTTP or HTTPS scheme: {url}",
            severity="error",
        )
    if not parsed.netloc:
        return ValidationError(
            resource_name="",
            message=f"URL missing host/domain: {url}",
            severity="error",
        )
    return None


def validate_server(server: MCPServer) -> list[ValidationError]:
    """Validate an MCP server connection.

    ABOUTME: stdio servers need a command, sse servers need a URL
    ABOUTME: A command missing from PATH is only a warning - it may exist on the target machine
    """
    errors: list[ValidationError] = []

    if server.transport not in ("", TRANSPORT_STDIO, TRANSPORT_SSE):
        errors.append(ValidationError(
            resource_name=server.name,
            message=f"Unknown transport '{server.transport}'",
            severity="error",
        ))
        return errors

    unknown_os = [p for p in server.platforms if p not in OS_NAMES]
    if unknown_os:
        errors.append(ValidationError(
            resource_name=server.name,
            message=f"Unknown platform(s) {', '.join(unknown_os)}: must be one of {', '.join(OS_NAMES)}",
            severity="error",
        ))

    if server.is_remote:
        if not server.url:
            errors.append(ValidationError(
                resource_name=server.name,
                message="Remote server requires a URL",
                severity="error",
            ))
        else:
            url_error = validate_url(server.url)
            if url_error:
                errors.append(ValidationError(
                    resource_name=server.name,
                    message=url_error.message,
                    severity="error",
                ))
    else:
        if not server.command:
            errors.append(ValidationError(
                resource_name=server.name,
                message="stdio server requires a command",
                severity="error",
            ))
        elif shutil.which(server.command) is None:
            errors.append(ValidationError(
                resource_name=server.name,
                message=f"Command not found: {server.command}",
                severity="warning",
            ))

    return errors


def validate_resource(resource: Resource) -> list[ValidationError]:
    """Validate any canonical resource.

    Returns:
        List of ValidationError instances (empty if valid)
    """
    errors: list[ValidationError] = []

    name_error = validate_name(resource.name, mcp=isinstance(resource, MCPServer))
    if name_error:
        errors.append(name_error)

    if isinstance(resource, Skill) and not resource.description.strip():
        errors.append(ValidationError(
            resource_name=resource.name,
            message="Skill description is required",
            severity="error",
        ))

    if isinstance(resource, MCPServer):
        errors.extend(validate_server(resource))

    return errors


def ensure_valid(resource: Resource) -> None:
    """Raise InvalidResourceError if the resource has any blocking error."""
    messages = [e.message for e in validate_resource(resource) if e.severity == "error"]
    if messages:
        raise InvalidResourceError("; ".join(messages))
