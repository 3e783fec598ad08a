# agentx - Sync agents, skills, slash commands and MCP servers across AI coding assistants
__version__ = "0.1.0"

from agentx.errors import (
    AgentxError,
    BackupError,
    CollisionError,
    InstallFailedError,
    InvalidResourceError,
    NotFoundError,
    ParseError,
    PartialInstallError,
    ScopeSelectionCancelled,
    UnsupportedKindError,
)
from agentx.install import (
    AggregateStatus,
    InstallOptions,
    InstallOrchestrator,
    InstallStatus,
    OutcomeSet,
    load_resource,
    load_resources,
)
from agentx.models import (
    Agent,
    Command,
    MCPConfig,
    MCPServer,
    ResourceKind,
    Scope,
    Skill,
    is_identical,
)

__all__ = [
    "__version__",
    "Agent",
    "AgentxError",
    "AggregateStatus",
    "BackupError",
    "CollisionError",
    "Command",
    "InstallFailedError",
    "InstallOptions",
    "InstallOrchestrator",
    "InstallStatus",
    "InvalidResourceError",
    "MCPConfig",
    "MCPServer",
    "NotFoundError",
    "OutcomeSet",
    "ParseError",
    "PartialInstallError",
    "ResourceKind",
    "Scope",
    "ScopeSelectionCancelled",
    "Skill",
    "UnsupportedKindError",
    "is_identical",
    "load_resource",
    "load_resources",
]
