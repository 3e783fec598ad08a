# Install orchestration: one resource -> many platforms
import logging
import typing
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from agentx.errors import (
    AgentxError,
    BackupError,
    CollisionError,
    InstallFailedError,
    InvalidResourceError,
    NotFoundError,
    ParseError,
    PartialInstallError,
    UnsupportedKindError,
)
from agentx.managers import ResourceManager, get_manager
from agentx.models import RESOURCE_TYPES, Resource, ResourceKind, Scope, is_identical
from agentx.paths import SKILL_FILENAME, PlatformPaths, current_os
from agentx.platforms import CanonicalMCPTranslator, Platform, get_platform
from agentx.platforms.base import as_string_list, as_string_map, as_text
from agentx.utils import frontmatter
from agentx.utils.backup import BackupGuard
from agentx.utils.validation import ensure_valid

logger = logging.getLogger(__name__)

# ABOUTME: Canonical agent source file name (a directory may hold it)
AGENT_FILENAME = "AGENT.md"

ManagerFactory = Callable[[Platform, ResourceKind, PlatformPaths], ResourceManager]
EventCallback = Callable[["InstallEvent"], None]


class InstallStatus(str, Enum):
    """Terminal state of one target."""

    INSTALLED = "installed"
    COLLISION = "collision"
    ERROR = "error"
    SKIPPED = "skipped"


class AggregateStatus(str, Enum):
    """Overall result of an install across targets.

    ABOUTME: SKIPPED targets count neither for nor against
    """

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILURE = "failure"


@dataclass(frozen=True)
class InstallOptions:
    """Everything an install run depends on besides the resource itself.

    ABOUTME: user_dirs maps platform name -> user base dir override from config
    """
    force: bool = False
    scope: Scope = Scope.DEFAULT
    project_root: Path | None = None
    home: Path | None = None
    cwd: Path | None = None
    user_dirs: dict[str, Path] = field(default_factory=dict)


@dataclass(frozen=True)
class InstallEvent:
    """One progress record."""
    platform: str
    stage: str
    message: str
    level: str = "info"

    def to_dict(self) -> dict[str, str]:
        return {
            "platform": self.platform,
            "stage": self.stage,
            "message": self.message,
            "level": self.level,
        }


@dataclass
class TargetOutcome:
    """Result for one resource on one platform.

    ABOUTME: unchanged - identical resource already present, nothing written
    ABOUTME: overwritten - a different resource was replaced because force was set
    """
    platform: str
    kind: ResourceKind
    name: str
    status: InstallStatus
    path: Path | None = None
    reason: str = ""
    unchanged: bool = False
    overwritten: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "kind": str(self.kind),
            "name": self.name,
            "status": self.status.value,
            "path": str(self.path) if self.path is not None else None,
            "reason": self.reason,
            "unchanged": self.unchanged,
            "overwritten": self.overwritten,
        }


@dataclass
class OutcomeSet:
    """Per-target outcomes in caller order plus the events emitted on the way."""
    outcomes: list[TargetOutcome] = field(default_factory=list)
    events: list[InstallEvent] = field(default_factory=list)

    def _with(self, status: InstallStatus) -> list[TargetOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def installed(self) -> list[TargetOutcome]:
        return self._with(InstallStatus.INSTALLED)

    @property
    def collisions(self) -> list[TargetOutcome]:
        return self._with(InstallStatus.COLLISION)

    @property
    def errors(self) -> list[TargetOutcome]:
        return self._with(InstallStatus.ERROR)

    @property
    def skipped(self) -> list[TargetOutcome]:
        return self._with(InstallStatus.SKIPPED)

    @property
    def status(self) -> AggregateStatus:
        """SUCCESS, PARTIAL_FAILURE or FAILURE.

        ABOUTME: Zero installed targets is always FAILURE, even if everything was skipped
        """
        failed = bool(self.collisions or self.errors)
        if not self.installed:
            return AggregateStatus.FAILURE
        if failed:
            return AggregateStatus.PARTIAL_FAILURE
        return AggregateStatus.SUCCESS

    def extend(self, other: "OutcomeSet") -> None:
        self.outcomes.extend(other.outcomes)
        self.events.extend(other.events)

    def raise_for_status(self) -> None:
        """Raise the error matching the aggregate status (nothing on SUCCESS).

        Raises:
            PartialInstallError: Some targets installed, others collided or failed
            CollisionError: Nothing installed and every failure was a collision
            InstallFailedError: Nothing installed
        """
        status = self.status
        if status is AggregateStatus.SUCCESS:
            return
        if status is AggregateStatus.PARTIAL_FAILURE:
            failed = ", ".join(o.platform for o in self.collisions + self.errors)
            raise PartialInstallError(f"install incomplete on: {failed}")
        if self.collisions and not self.errors:
            where = ", ".join(f"{o.platform}: {o.path}" for o in self.collisions)
            raise CollisionError(f"already exists with different content ({where}); use --force to overwrite")
        raise InstallFailedError("nothing was installed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "events": [e.to_dict() for e in self.events],
        }


class InstallOrchestrator:
    """Apply resources to several platforms with backup, collision and idempotency handling.

    ABOUTME: Targets run sequentially in caller order; one target's failure never stops another
    ABOUTME: Every target is backed up (at most once per guard) before its first write

    Args:
        options: Force flag, scope and directories
        backup_guard: Shared at-most-once backup tracker
        manager_factory: Builds a manager for platform x kind (tests inject fakes)
        on_event: Optional callback receiving every InstallEvent as it happens
    """

    def __init__(
        self,
        options: InstallOptions,
        backup_guard: BackupGuard | None = None,
        manager_factory: ManagerFactory = get_manager,
        on_event: EventCallback | None = None,
    ) -> None:
        self.options = options
        self.backup_guard = backup_guard if backup_guard is not None else BackupGuard()
        self.manager_factory = manager_factory
        self.on_event = on_event

    def paths_for(self, platform: Platform) -> PlatformPaths:
        options = self.options
        return platform.paths(
            options.scope,
            project_root=options.project_root,
            home=options.home,
            cwd=options.cwd,
            user_dir=options.user_dirs.get(platform.name),
        )

    def install_to_all(
        self, resource: Resource, targets: Iterable[Platform | str]
    ) -> OutcomeSet:
        """Install one resource on every target.

        Returns:
            OutcomeSet with exactly one outcome per target, in order
        """
        result = OutcomeSet()
        for target in targets:
            result.outcomes.append(self._install_target(resource, target, result))
        return result

    def install_many(
        self, resources: Iterable[Resource], targets: Iterable[Platform | str]
    ) -> OutcomeSet:
        """Install several resources, sharing this orchestrator's backup guard."""
        targets = list(targets)
        result = OutcomeSet()
        for resource in resources:
            result.extend(self.install_to_all(resource, targets))
        return result

    def _emit(self, result: OutcomeSet, platform: str, stage: str, message: str, level: str = "info") -> None:
        event = InstallEvent(platform=platform, stage=stage, message=message, level=level)
        result.events.append(event)
        logger.log(logging.WARNING if level == "warning" else logging.DEBUG, "%s: %s", platform, message)
        if self.on_event is not None:
            self.on_event(event)

    def _install_target(
        self, resource: Resource, target: Platform | str, result: OutcomeSet
    ) -> TargetOutcome:
        kind = resource.kind
        name = resource.name
        platform_name = target if isinstance(target, str) else target.name

        def outcome(status: InstallStatus, **kwargs: Any) -> TargetOutcome:
            return TargetOutcome(platform=platform_name, kind=kind, name=name, status=status, **kwargs)

        try:
            platform = get_platform(target) if isinstance(target, str) else target
            platform_name = platform.name

            # 1. Can this platform hold the resource at all?
            paths = self.paths_for(platform)
            try:
                manager = self.manager_factory(platform, kind, paths)
            except UnsupportedKindError as e:
                self._emit(result, platform_name, "skip", str(e))
                return outcome(InstallStatus.SKIPPED, reason=str(e))

            path = manager.location(name)
            if path is None:
                reason = f"no {kind} location for {platform_name} at {paths.scope} scope"
                self._emit(result, platform_name, "skip", reason)
                return outcome(InstallStatus.SKIPPED, reason=reason)

            ensure_valid(resource)

            host = current_os()
            allowed = getattr(resource, "platforms", None)
            if allowed and host not in allowed:
                reason = f"{name} is limited to: {', '.join(allowed)} (this is {host})"
                self._emit(result, platform_name, "skip", reason)
                return outcome(InstallStatus.SKIPPED, reason=reason)

            # 2. Backup before any mutation
            try:
                self.backup_guard.ensure_backed_up(platform_name, paths.backup_paths())
            except (BackupError, OSError) as e:
                reason = f"backup failed: {e}"
                self._emit(result, platform_name, "backup", reason, level="error")
                return outcome(InstallStatus.ERROR, path=path, reason=reason)

            # 3. Compare with what is already there
            overwritten = False
            found = True
            existing: Resource | None = None
            try:
                existing = manager.get(name)
            except NotFoundError:
                found = False
            except ParseError as e:
                self._emit(result, platform_name, "check", f"existing {kind} is unreadable: {e}", level="warning")

            if found:
                if existing is not None and is_identical(manager.normalize(resource), existing):
                    self._emit(result, platform_name, "unchanged", f"{kind} {name} already up to date")
                    return outcome(InstallStatus.INSTALLED, path=path, unchanged=True)

                if not self.options.force:
                    reason = f"a different {kind} named '{name}' already exists at {path}"
                    self._emit(result, platform_name, "collision", reason, level="warning")
                    return outcome(InstallStatus.COLLISION, path=path, reason=reason)

                self._emit(
                    result, platform_name, "overwrite",
                    f"overwriting existing {kind} '{name}' on {platform.display_name}",
                    level="warning",
                )
                overwritten = True

            # 4. Write
            written = manager.install(resource)
            self._emit(result, platform_name, "write", f"installed {kind} {name} to {written}")
            return outcome(InstallStatus.INSTALLED, path=written, overwritten=overwritten)

        except (AgentxError, OSError, ValueError) as e:
            self._emit(result, platform_name, "error", str(e), level="error")
            return outcome(InstallStatus.ERROR, reason=str(e))
        except Exception as e:
            logger.debug("Unexpected error installing %s on %s", name, platform_name, exc_info=True)
            reason = f"{type(e).__name__}: {e}"
            self._emit(result, platform_name, "error", reason, level="error")
            return outcome(InstallStatus.ERROR, reason=reason)


# Canonical source files


def _coerce(annotation: Any, value: Any, source: object, key: str) -> Any:
    origin = typing.get_origin(annotation)
    if origin is list:
        return as_string_list(value, source, key)
    if origin is dict:
        return as_string_map(value, source, key)
    if annotation is bool:
        return bool(value)
    return as_text(value)


def resource_from_document(
    kind: ResourceKind, default_name: str, doc: frontmatter.Document, source: object = None
) -> Resource:
    """Build a canonical resource from a parsed canonical source document.

    ABOUTME: Header keys match field names ("allowed-tools" == "allowed_tools")
    ABOUTME: Anything else lands in extra
    """
    cls = RESOURCE_TYPES[kind]
    annotations = {f.name: f.type for f in fields(cls)}
    settable = set(annotations) - {"name", "instructions", "extra"}

    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in doc.meta.items():
        attr = str(key).replace("-", "_")
        if attr == "name":
            continue
        if attr in settable:
            values[attr] = _coerce(annotations[attr], value, source, str(key))
        else:
            extra[key] = value

    name = as_text(doc.meta.get("name")) or default_name
    return cls(name=name, instructions=doc.body, extra=extra, **values)


def _document_source(path: Path, kind: ResourceKind) -> tuple[Path, str]:
    if kind is ResourceKind.SKILL:
        file_path = path / SKILL_FILENAME if path.is_dir() else path
        return file_path, file_path.parent.name
    if kind is ResourceKind.AGENT and path.is_dir():
        return path / AGENT_FILENAME, path.name
    if kind is ResourceKind.AGENT and path.name == AGENT_FILENAME:
        return path, path.parent.name
    return path, path.stem


def load_resources(path: Path, kind: ResourceKind) -> list[Resource]:
    """Read canonical resources from a source file or directory.

    ABOUTME: Agents: AGENT.md (or a directory holding it) or any .md file
    ABOUTME: Skills: a directory holding SKILL.md, or the SKILL.md itself
    ABOUTME: MCP: a JSON file with one or more servers, wrapped or bare

    Raises:
        NotFoundError: The source does not exist
        ParseError: The source is malformed
    """
    if kind is ResourceKind.MCP:
        if not path.is_file():
            raise NotFoundError("source", str(path))
        config = CanonicalMCPTranslator().to_canonical(path.read_text(encoding="utf-8"), source=path)
        return [config.servers[name] for name in sorted(config.servers)]

    file_path, default_name = _document_source(path, kind)
    if not file_path.is_file():
        raise NotFoundError("source", str(file_path))

    doc = frontmatter.parse(
        file_path.read_text(encoding="utf-8"),
        required=kind is ResourceKind.SKILL,
        source=file_path,
    )
    return [resource_from_document(kind, default_name, doc, source=file_path)]


def load_resource(path: Path, kind: ResourceKind) -> Resource:
    """Read exactly one canonical resource.

    Raises:
        InvalidResourceError: An MCP source holding zero or several servers
    """
    resources = load_resources(path, kind)
    if len(resources) != 1:
        raise InvalidResourceError(f"{path} holds {len(resources)} {kind} definitions, expected 1")
    return resources[0]
