# ABOUTME: Exception hierarchy for agentx
# ABOUTME: Builtin bases (LookupError, ValueError) keep callers' existing except clauses working


class AgentxError(Exception):
    """Base class for all agentx errors."""


class NotFoundError(AgentxError, LookupError):
    """A resource does not exist at the resolved location.

    ABOUTME: Recoverable - the install path treats it as "create"
    """

    def __init__(self, kind: str, name: str, platform: str = "") -> None:
        self.kind = kind
        self.name = name
        self.platform = platform
        where = f" on {platform}" if platform else ""
        super().__init__(f"{kind} '{name}' not found{where}")


class InvalidResourceError(AgentxError, ValueError):
    """A resource is missing its identity or has an invalid field."""


class ParseError(AgentxError, ValueError):
    """Malformed frontmatter, TOML or JSON.

    ABOUTME: Fatal to a single get(), skipped by list()
    """

    def __init__(self, message: str, path: object = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class UnsupportedKindError(AgentxError):
    """The platform has no native representation for a resource kind."""

    def __init__(self, platform: str, kind: str) -> None:
        self.platform = platform
        self.kind = kind
        super().__init__(f"{platform} does not support {kind}s")


class CollisionError(AgentxError):
    """A different resource with the same name already exists and force is off."""


class InstallFailedError(AgentxError):
    """No target platform reached the installed state."""


class PartialInstallError(AgentxError):
    """Some targets were installed while others collided or failed."""


class BackupError(AgentxError):
    """A pre-write backup could not be taken; the target must not be mutated."""


class ScopeSelectionCancelled(AgentxError):
    """The interactive scope prompt hit end-of-input."""
