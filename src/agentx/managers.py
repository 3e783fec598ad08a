# ABOUTME: List/Get/Install/Uninstall for one platform x one resource kind
# ABOUTME: Managers own file IO; translators own the format
import json
import logging
import shutil
from dataclasses import replace
from pathlib import Path
from typing import cast

from agentx.errors import AgentxError, NotFoundError, ParseError, UnsupportedKindError
from agentx.models import RESOURCE_TYPES, MCPConfig, MCPServer, Resource, ResourceKind
from agentx.paths import SKILL_FILENAME, PlatformPaths
from agentx.platforms.base import Platform
from agentx.utils.fileio import atomic_write_text, read_json_file, read_text_file, write_json_file
from agentx.utils.validation import ensure_valid

logger = logging.getLogger(__name__)


class ResourceManager:
    """Base class for per-kind managers.

    ABOUTME: uninstall() is idempotent - a missing resource is not an error
    ABOUTME: normalize() pushes a resource through the platform's native form and back
    """

    kind: ResourceKind

    def __init__(self, platform: Platform, paths: PlatformPaths) -> None:
        self.platform = platform
        self.paths = paths

    def list(self) -> list[Resource]:
        raise NotImplementedError

    def get(self, name: str) -> Resource:
        raise NotImplementedError

    def install(self, resource: Resource) -> Path:
        raise NotImplementedError

    def uninstall(self, name: str) -> bool:
        raise NotImplementedError

    def normalize(self, resource: Resource) -> Resource:
        raise NotImplementedError

    def location(self, name: str) -> Path | None:
        """File the named resource lives in, or None if this scope has no place for it."""
        return self.paths.resource_path(self.kind, name)

    def _check(self, resource: Resource) -> None:
        expected = RESOURCE_TYPES[self.kind]
        if not isinstance(resource, expected):
            raise TypeError(f"{type(self).__name__} cannot install {type(resource).__name__}")
        ensure_valid(resource)

    def _unavailable(self) -> AgentxError:
        return AgentxError(
            f"{self.platform.name} has no {self.kind} location at {self.paths.scope} scope"
        )


class DocumentManager(ResourceManager):
    """Agents, commands and skills: one file per resource."""

    def directory(self) -> Path | None:
        return self.paths.kind_dir(self.kind)

    def names(self) -> list[str]:
        raise NotImplementedError

    def list(self) -> list[Resource]:
        """All parseable resources, sorted by name.

        ABOUTME: Entries that fail to parse are logged and skipped
        """
        resources: list[Resource] = []
        for name in sorted(self.names()):
            try:
                resources.append(self.get(name))
            except (ParseError, NotFoundError, OSError) as e:
                logger.warning("Skipping %s %s on %s: %s", self.kind, name, self.platform.name, e)
        return resources

    def get(self, name: str) -> Resource:
        """Read one resource.

        Raises:
            NotFoundError: No file for name
            ParseError: The file exists but is malformed
        """
        path = self.location(name)
        if path is None or not path.is_file():
            raise NotFoundError(str(self.kind), name, self.platform.name)

        translator = self.platform.translator
        text = read_text_file(path)
        doc = translator.decode(self.kind, text, source=path)
        return translator.from_native(self.kind, name, doc, source=path)

    def render(self, resource: Resource) -> str:
        translator = self.platform.translator
        return translator.encode(self.kind, translator.to_native(resource))

    def install(self, resource: Resource) -> Path:
        """Create or overwrite the resource's file atomically.

        Raises:
            InvalidResourceError: Bad name or missing required field
            UnsupportedKindError: Platform has no such kind
        """
        self._check(resource)
        path = self.location(resource.name)
        if path is None:
            raise self._unavailable()

        atomic_write_text(path, self.render(resource))
        logger.debug("Wrote %s %s to %s", self.kind, resource.name, path)
        return path

    def uninstall(self, name: str) -> bool:
        path = self.location(name)
        if path is None or not path.exists():
            logger.debug("%s %s not present on %s, nothing to remove", self.kind, name, self.platform.name)
            return False
        path.unlink()
        return True

    def normalize(self, resource: Resource) -> Resource:
        translator = self.platform.translator
        doc = translator.decode(self.kind, self.render(resource))
        return translator.from_native(self.kind, resource.name, doc)


class AgentManager(DocumentManager):
    kind = ResourceKind.AGENT

    def names(self) -> list[str]:
        directory = self.directory()
        if directory is None or not directory.is_dir():
            return []
        return [p.stem for p in directory.glob("*.md") if p.is_file()]


class CommandManager(DocumentManager):
    kind = ResourceKind.COMMAND

    def names(self) -> list[str]:
        directory = self.directory()
        if directory is None or not directory.is_dir():
            return []
        extension = self.paths.layout.command_extension
        return [p.stem for p in directory.glob(f"*{extension}") if p.is_file()]


class SkillManager(DocumentManager):
    """Skills are directories named after the skill holding a SKILL.md.

    ABOUTME: uninstall removes the whole skill directory, including bundled files
    """

    kind = ResourceKind.SKILL

    def names(self) -> list[str]:
        directory = self.directory()
        if directory is None or not directory.is_dir():
            return []
        return [p.name for p in directory.iterdir() if (p / SKILL_FILENAME).is_file()]

    def uninstall(self, name: str) -> bool:
        path = self.location(name)
        if path is None or not path.parent.exists():
            logger.debug("skill %s not present on %s, nothing to remove", name, self.platform.name)
            return False
        shutil.rmtree(path.parent)
        return True


class MCPManager(ResourceManager):
    """MCP servers inside one shared config file.

    ABOUTME: Every write is read-modify-write so unknown keys of the file survive
    ABOUTME: Claude LOCAL scope nests servers under projects.<abs project path>
    """

    kind = ResourceKind.MCP

    def config_path(self) -> Path | None:
        return self.paths.mcp_config_path()

    def load_config(self) -> MCPConfig:
        """Read the servers for this scope (empty config if the file is missing).

        Raises:
            ParseError: The file is not valid JSON or has a malformed server entry
        """
        path = self.config_path()
        if path is None:
            raise self._unavailable()

        translator = self.platform.mcp_translator
        key_path = self.paths.local_mcp_key()
        if key_path is None:
            if not path.exists():
                return MCPConfig()
            return translator.to_canonical(read_text_file(path), source=path)

        section = read_json_file(path)
        for key in key_path:
            section = section.get(key, {})
            if not isinstance(section, dict):
                raise ParseError(f"'{key}' must be an object", path)
        return translator.decode(section, source=path)

    def save_config(self, config: MCPConfig) -> Path:
        path = self.config_path()
        if path is None:
            raise self._unavailable()

        translator = self.platform.mcp_translator
        key_path = self.paths.local_mcp_key()
        if key_path is None:
            atomic_write_text(path, translator.from_canonical(config))
            return path

        full = read_json_file(path)
        section = full
        for key in key_path[:-1]:
            child = section.setdefault(key, {})
            if not isinstance(child, dict):
                raise ParseError(f"'{key}' must be an object", path)
            section = child
        section[key_path[-1]] = translator.encode(config)
        write_json_file(path, full)
        return path

    def list(self) -> list[Resource]:
        config = self.load_config()
        return [config.servers[name] for name in sorted(config.servers)]

    def get(self, name: str) -> MCPServer:
        config = self.load_config()
        if name not in config.servers:
            raise NotFoundError("mcp server", name, self.platform.name)
        return config.servers[name]

    def install(self, resource: Resource) -> Path:
        self._check(resource)
        server = cast(MCPServer, resource)
        config = self.load_config()
        config.servers[server.name] = server
        path = self.save_config(config)
        logger.debug("Wrote mcp server %s to %s", server.name, path)
        return path

    def uninstall(self, name: str) -> bool:
        path = self.config_path()
        if path is None or not path.exists():
            return False
        config = self.load_config()
        if name not in config.servers:
            logger.debug("mcp server %s not present on %s, nothing to remove", name, self.platform.name)
            return False
        del config.servers[name]
        self.save_config(config)
        return True

    def _set_disabled(self, name: str, disabled: bool) -> MCPServer:
        config = self.load_config()
        if name not in config.servers:
            raise NotFoundError("mcp server", name, self.platform.name)
        server = replace(config.servers[name], disabled=disabled)
        config.servers[name] = server
        self.save_config(config)
        return server

    def enable(self, name: str) -> MCPServer:
        """Clear the disabled flag of an existing server.

        Raises:
            NotFoundError: No server with that name
        """
        return self._set_disabled(name, False)

    def disable(self, name: str) -> MCPServer:
        """Set the disabled flag of an existing server.

        Raises:
            NotFoundError: No server with that name
        """
        return self._set_disabled(name, True)

    def normalize(self, resource: Resource) -> Resource:
        if not isinstance(resource, MCPServer):
            raise TypeError(f"MCPManager cannot normalize {type(resource).__name__}")
        translator = self.platform.mcp_translator
        entry = json.loads(json.dumps(translator.server_to_native(resource)))
        return translator.server_from_native(resource.name, entry)


MANAGER_TYPES: dict[ResourceKind, type[ResourceManager]] = {
    ResourceKind.AGENT: AgentManager,
    ResourceKind.COMMAND: CommandManager,
    ResourceKind.SKILL: SkillManager,
    ResourceKind.MCP: MCPManager,
}


def get_manager(platform: Platform, kind: ResourceKind, paths: PlatformPaths) -> ResourceManager:
    """Build the manager for platform x kind.

    Raises:
        UnsupportedKindError: The platform has no native form for kind
    """
    if not platform.supports(kind):
        raise UnsupportedKindError(platform.name, str(kind))
    return MANAGER_TYPES[kind](platform, paths)
