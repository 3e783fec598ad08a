# CLI interface for agentx
import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from agentx import __version__
from agentx.config import AgentxConfig, get_config_path, load_config
from agentx.errors import AgentxError, NotFoundError, ParseError, ScopeSelectionCancelled
from agentx.install import (
    AggregateStatus,
    InstallEvent,
    InstallOptions,
    InstallOrchestrator,
    InstallStatus,
    load_resources,
)
from agentx.managers import MCPManager, get_manager
from agentx.models import ResourceKind, Scope
from agentx.platforms import PLATFORM_NAMES, Platform, detect_installed, get_platform
from agentx.scope import resolve_scope
from agentx.utils.backup import BackupGuard, BackupManager
from agentx.utils.git import find_repo_root, is_git_repo

logger = logging.getLogger(__name__)

# ABOUTME: Exit codes
# 0 = success, 1 = partial success, 2 = usage/config error, 3 = all targets failed / fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

KIND_CHOICES = [kind.value for kind in ResourceKind]

STATUS_MARKS = {
    InstallStatus.INSTALLED: "✓",
    InstallStatus.COLLISION: "!",
    InstallStatus.ERROR: "✗",
    InstallStatus.SKIPPED: "-",
}


@dataclass
class Context:
    """Everything a command needs after flags, config and scope are resolved."""
    config: AgentxConfig
    home: Path
    scope: Scope
    project_root: Path | None
    platforms: list[Platform]

    @property
    def user_dirs(self) -> dict[str, Path]:
        return self.config.user_dirs(self.home)

    def paths(self, platform: Platform):
        return platform.paths(
            self.scope,
            project_root=self.project_root,
            home=self.home,
            cwd=self.project_root,
            user_dir=self.user_dirs.get(platform.name),
        )

    def backup_manager(self) -> BackupManager:
        return BackupManager(self.config.backup_root(self.home), self.config.backup_retention)


class UsageError(Exception):
    """Bad flags or configuration; maps to EXIT_CONFIG_ERROR."""


def _split_platforms(values: list[str] | None) -> list[str]:
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


def resolve_platforms(requested: list[str], config: AgentxConfig, home: Path) -> list[Platform]:
    """Pick target platforms.

    ABOUTME: Explicit --platform list > config default_platforms > every detected platform
    """
    try:
        if requested:
            return [get_platform(name) for name in requested]
        if config.default_platforms:
            return [get_platform(name) for name in config.default_platforms]
    except ValueError as e:
        raise UsageError(str(e)) from e

    detected = detect_installed(home, config.user_dirs(home))
    if not detected:
        raise UsageError(
            "No supported platform found. Use --platform to choose one of: "
            + ", ".join(PLATFORM_NAMES)
        )
    return detected


def build_context(args: argparse.Namespace) -> Context:
    """Load config and resolve scope, project root and platforms.

    Raises:
        UsageError: Invalid config, unknown platform or cancelled scope prompt
    """
    try:
        config = load_config(get_config_path())
    except ValueError as e:
        raise UsageError(f"Invalid config {get_config_path()}: {e}") from e

    home = Path.home()
    try:
        cwd: Path | None = Path.cwd()
    except OSError:
        cwd = None

    project_root: Path | None = None
    if getattr(args, "project_root", None):
        project_root = Path(args.project_root).resolve()
    elif cwd is not None:
        project_root = find_repo_root(cwd) or cwd

    try:
        resolution = resolve_scope(getattr(args, "scope", None) or "", cwd=cwd, is_repo=is_git_repo)
    except ScopeSelectionCancelled as e:
        raise UsageError(str(e)) from e

    if resolution.error:
        logger.warning(resolution.error)
    scope = resolution.scope
    if scope is Scope.DEFAULT:
        logger.warning("Unknown scope %r, using user scope", args.scope)

    platforms = resolve_platforms(_split_platforms(getattr(args, "platform", None)), config, home)
    return Context(
        config=config, home=home, scope=scope, project_root=project_root, platforms=platforms
    )


def _exit_code(succeeded: int, failed: int) -> int:
    if failed == 0:
        return EXIT_SUCCESS if succeeded else EXIT_FATAL
    return EXIT_PARTIAL if succeeded else EXIT_FATAL


def _print_event(event: InstallEvent) -> None:
    if event.level in ("warning", "error"):
        print(f"  {event.level.capitalize()}: {event.platform}: {event.message}", file=sys.stderr)


def cmd_install(args: argparse.Namespace) -> int:
    """Execute install command.

    ABOUTME: Loads canonical resources from SOURCE and installs them on every target
    ABOUTME: Exit code follows the aggregate status of all outcomes
    """
    try:
        ctx = build_context(args)
        kind = ResourceKind(args.kind)
        resources = load_resources(Path(args.source), kind)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (NotFoundError, ParseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if not resources:
        print(f"Error: no {kind} definitions found in {args.source}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    options = InstallOptions(
        force=args.force,
        scope=ctx.scope,
        project_root=ctx.project_root,
        home=ctx.home,
        cwd=ctx.project_root,
        user_dirs=ctx.user_dirs,
    )
    orchestrator = InstallOrchestrator(
        options,
        backup_guard=BackupGuard(ctx.backup_manager()),
        on_event=None if args.json else _print_event,
    )
    result = orchestrator.install_many(resources, ctx.platforms)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"agentx install v{__version__}")
        print()
        for outcome in result.outcomes:
            line = f"  {STATUS_MARKS[outcome.status]} {outcome.platform} {outcome.kind} {outcome.name}"
            if outcome.unchanged:
                line += " (unchanged)"
            elif outcome.overwritten:
                line += " (overwritten)"
            elif outcome.reason:
                line += f": {outcome.reason}"
            print(line)
        if result.collisions:
            print()
            print("Use --force to overwrite existing resources.")

    status = result.status
    if status is AggregateStatus.SUCCESS:
        return EXIT_SUCCESS
    if status is AggregateStatus.PARTIAL_FAILURE:
        return EXIT_PARTIAL
    return EXIT_FATAL


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: Lists resources of one kind on every target platform
    """
    try:
        ctx = build_context(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    kind = ResourceKind(args.kind)
    listing: dict[str, list[dict[str, str]] | None] = {}
    failed = 0

    for platform in ctx.platforms:
        if not platform.supports(kind):
            listing[platform.name] = None
            continue
        manager = get_manager(platform, kind, ctx.paths(platform))
        try:
            resources = manager.list()
        except (AgentxError, OSError) as e:
            print(f"Error: {platform.name}: {e}", file=sys.stderr)
            failed += 1
            continue
        listing[platform.name] = [
            {"name": r.name, "description": r.description} for r in resources
        ]

    if args.json:
        print(json.dumps(listing, indent=2))
    else:
        for platform_name, entries in listing.items():
            print(f"{platform_name}:")
            if entries is None:
                print(f"  ({kind}s not supported)")
            elif not entries:
                print("  (none)")
            else:
                for entry in entries:
                    suffix = f" - {entry['description']}" if entry["description"] else ""
                    print(f"  {entry['name']}{suffix}")
            print()

    succeeded = sum(1 for entries in listing.values() if entries is not None)
    return _exit_code(succeeded, failed) if failed else EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    """Execute remove command.

    ABOUTME: Backs up each platform, then removes the named resource
    ABOUTME: Absence is not an error
    """
    try:
        ctx = build_context(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    kind = ResourceKind(args.kind)
    guard = BackupGuard(ctx.backup_manager())
    succeeded = failed = 0

    for platform in ctx.platforms:
        if not platform.supports(kind):
            continue
        paths = ctx.paths(platform)
        manager = get_manager(platform, kind, paths)
        try:
            guard.ensure_backed_up(platform.name, paths.backup_paths())
            removed = manager.uninstall(args.name)
        except (AgentxError, OSError) as e:
            print(f"  ✗ {platform.name}: {e}", file=sys.stderr)
            failed += 1
            continue
        succeeded += 1
        state = "removed" if removed else "not present"
        print(f"  ✓ {platform.name}: {kind} {args.name} {state}")

    return _exit_code(succeeded, failed)


def _toggle(args: argparse.Namespace, enable: bool) -> int:
    try:
        ctx = build_context(args)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    guard = BackupGuard(ctx.backup_manager())
    succeeded = failed = 0
    verb = "enabled" if enable else "disabled"

    for platform in ctx.platforms:
        paths = ctx.paths(platform)
        manager = MCPManager(platform, paths)
        try:
            guard.ensure_backed_up(platform.name, paths.backup_paths())
            if enable:
                manager.enable(args.name)
            else:
                manager.disable(args.name)
        except (AgentxError, OSError) as e:
            print(f"  ✗ {platform.name}: {e}", file=sys.stderr)
            failed += 1
            continue
        succeeded += 1
        print(f"  ✓ {platform.name}: {args.name} {verb}")

    return _exit_code(succeeded, failed)


def cmd_enable(args: argparse.Namespace) -> int:
    """Execute enable command (MCP servers only)."""
    return _toggle(args, enable=True)


def cmd_disable(args: argparse.Namespace) -> int:
    """Execute disable command (MCP servers only)."""
    return _toggle(args, enable=False)


def cmd_backups(args: argparse.Namespace) -> int:
    """Execute backups command.

    ABOUTME: list / restore / prune backups taken before installs
    """
    try:
        config = load_config(get_config_path())
    except ValueError as e:
        print(f"Error: Invalid config: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    home = Path.home()
    manager = BackupManager(config.backup_root(home), config.backup_retention)

    try:
        names = _split_platforms(args.platform) or PLATFORM_NAMES
        platforms = [get_platform(name).name for name in names]
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        if args.action == "list":
            for platform_name in platforms:
                backups = manager.list_backups(platform_name)
                print(f"{platform_name}:")
                if not backups:
                    print("  (no backups)")
                for backup in backups:
                    print(f"  {backup.id}  {backup.created_at}  {len(backup.files)} file(s)")
            return EXIT_SUCCESS

        if args.action == "restore":
            if len(platforms) != 1 or not args.backup_id:
                print("Error: restore needs exactly one --platform and a backup ID", file=sys.stderr)
                return EXIT_CONFIG_ERROR
            restored = manager.restore(platforms[0], args.backup_id)
            print(f"Restored {len(restored)} file(s) from {platforms[0]}/{args.backup_id}")
            return EXIT_SUCCESS

        # prune
        keep = args.keep if args.keep is not None else config.backup_retention
        for platform_name in platforms:
            deleted = manager.prune(platform_name, keep)
            print(f"{platform_name}: removed {len(deleted)} backup(s)")
        return EXIT_SUCCESS

    except NotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (AgentxError, OSError, ValueError) as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return EXIT_FATAL


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--platform", "-p",
        action="append",
        help=f"Target platform ({', '.join(PLATFORM_NAMES)}); repeat or comma-separate"
    )
    parser.add_argument(
        "--scope", "-s",
        help="Configuration scope (user, project, local, managed)"
    )
    parser.add_argument(
        "--project-root",
        help="Project directory (defaults to the enclosing git repository)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentx",
        description="Sync agents, skills, slash commands and MCP servers across AI coding assistants"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"agentx v{__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # install command
    install_parser = subparsers.add_parser(
        "install",
        help="Install a resource from a canonical source file"
    )
    install_parser.add_argument("kind", choices=KIND_CHOICES, help="Resource kind")
    install_parser.add_argument("source", help="Source file or directory")
    _add_target_arguments(install_parser)
    install_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite resources that differ"
    )
    install_parser.add_argument("--json", action="store_true", help="Print outcomes as JSON")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List installed resources"
    )
    list_parser.add_argument("kind", choices=KIND_CHOICES, help="Resource kind")
    _add_target_arguments(list_parser)
    list_parser.add_argument("--json", action="store_true", help="Print as JSON")

    # remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Remove an installed resource"
    )
    remove_parser.add_argument("kind", choices=KIND_CHOICES, help="Resource kind")
    remove_parser.add_argument("name", help="Resource name")
    _add_target_arguments(remove_parser)

    # enable / disable commands
    for command, help_text in (("enable", "Enable an MCP server"), ("disable", "Disable an MCP server")):
        toggle_parser = subparsers.add_parser(command, help=help_text)
        toggle_parser.add_argument("name", help="MCP server name")
        _add_target_arguments(toggle_parser)

    # backups command
    backups_parser = subparsers.add_parser(
        "backups",
        help="List, restore or prune backups"
    )
    backups_parser.add_argument("action", choices=["list", "restore", "prune"])
    backups_parser.add_argument("backup_id", nargs="?", help="Backup ID (restore)")
    backups_parser.add_argument("--platform", "-p", action="append", help="Platform name")
    backups_parser.add_argument("--keep", type=int, help="Backups to keep (prune)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to appropriate command
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    # Dispatch to command
    if args.command == "install":
        return cmd_install(args)
    elif args.command == "list":
        return cmd_list(args)
    elif args.command == "remove":
        return cmd_remove(args)
    elif args.command == "enable":
        return cmd_enable(args)
    elif args.command == "disable":
        return cmd_disable(args)
    elif args.command == "backups":
        return cmd_backups(args)
    else:
        # No command specified, show help
        parser.print_help()
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
