# ABOUTME: Backup utilities for platform configuration files.
# ABOUTME: Each backup is a directory of copied files plus a manifest with SHA-256 hashes (keep last 5 per platform).
import hashlib
import json
import logging
import os
import shutil
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from agentx import __version__
from agentx.errors import BackupError, NotFoundError
from agentx.utils.fileio import atomic_write_text, dumps_json

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
MANIFEST_VERSION = 1

# ABOUTME: Default number of backups kept per platform
BACKUP_RETENTION = 5

# ABOUTME: Backup IDs sort lexically in creation order
BACKUP_ID_FORMAT = "%Y%m%dT%H%M%S_%f"

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class BackupFile:
    """One file captured by a backup."""
    original_path: str
    rel_path: str
    sha256: str
    mode: int


@dataclass(frozen=True)
class BackupManifest:
    """Contents of manifest.json.

    ABOUTME: id and path are filled in from the directory when loading
    """
    id: str
    platform: str
    created_at: str
    files: list[BackupFile] = field(default_factory=list)
    version: int = MANIFEST_VERSION
    tool_version: str = ""
    path: Path | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("id")
        data.pop("path")
        return data


def get_backup_dir() -> Path:
    """Get the default backup directory path.

    ABOUTME: Returns ~/.agentx/backups
    ABOUTME: Does not create the directory

    Examples:
        >>> get_backup_dir()
        PosixPath('/Users/user/.agentx/backups')
    """
    return Path.home() / ".agentx" / "backups"


def hash_file(path: Path) -> str:
    """Return the hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _rel_path_for(source: Path) -> str:
    # /home/u/.claude/x.md -> home/u/.claude/x.md, C:\x -> x
    absolute = source.absolute()
    return absolute.relative_to(absolute.anchor).as_posix()


def _iter_files(path: Path):
    if path.is_dir():
        for root, _dirs, files in os.walk(path):
            for name in sorted(files):
                yield Path(root) / name
    elif path.is_file():
        yield path


class BackupManager:
    """Create, list, restore and prune platform backups.

    ABOUTME: Layout is <root>/<platform>/<backup id>/ with a manifest.json per backup
    ABOUTME: Paths given to backup() may be files or directories (copied recursively)

    Args:
        root: Backup root directory (defaults to ~/.agentx/backups)
        retention: Backups kept per platform after each new backup
    """

    def __init__(self, root: Path | None = None, retention: int = BACKUP_RETENTION) -> None:
        self.root = root if root is not None else get_backup_dir()
        self.retention = retention if retention > 0 else BACKUP_RETENTION

    def platform_dir(self, platform: str) -> Path:
        return self.root / platform

    def backup(self, platform: str, paths: list[Path]) -> BackupManifest | None:
        """Copy every existing file under paths into a new backup.

        ABOUTME: Missing paths are skipped; nothing to copy returns None and creates nothing
        ABOUTME: Old backups beyond retention are pruned afterwards

        Args:
            platform: Platform name used as the backup subdirectory
            paths: Files or directories to capture

        Returns:
            Manifest of the new backup, or None if no file existed

        Raises:
            BackupError: If copying or writing the manifest fails
        """
        if not platform:
            raise BackupError("platform is required")

        sources: list[Path] = []
        for path in paths:
            for source in _iter_files(path):
                # Never back up a previous backup
                if self.root.absolute() in source.absolute().parents:
                    continue
                sources.append(source)

        if not sources:
            logger.debug("Nothing to back up for %s", platform)
            return None

        now = datetime.now(timezone.utc)
        backup_id = now.strftime(BACKUP_ID_FORMAT)
        backup_path = self.platform_dir(platform) / backup_id

        files: list[BackupFile] = []
        try:
            backup_path.mkdir(parents=True, exist_ok=False)
            for source in sources:
                rel_path = _rel_path_for(source)
                destination = backup_path / rel_path
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
                files.append(BackupFile(
                    original_path=str(source.absolute()),
                    rel_path=rel_path,
                    sha256=hash_file(destination),
                    mode=source.stat().st_mode & 0o7777,
                ))

            manifest = BackupManifest(
                id=backup_id,
                platform=platform,
                created_at=now.isoformat(),
                files=files,
                tool_version=__version__,
                path=backup_path,
            )
            atomic_write_text(backup_path / MANIFEST_NAME, dumps_json(manifest.to_dict()))
        except OSError as e:
            shutil.rmtree(backup_path, ignore_errors=True)
            raise BackupError(f"backing up {platform}: {e}") from e

        logger.debug("Backed up %d file(s) for %s to %s", len(files), platform, backup_path)

        try:
            self.prune(platform, self.retention)
        except OSError as e:
            logger.warning(f"Failed to prune old backups for {platform}: {e}")

        return manifest

    def get(self, platform: str, backup_id: str) -> BackupManifest:
        """Load one backup's manifest.

        Raises:
            NotFoundError: If the backup has no manifest
            BackupError: If the manifest cannot be parsed
        """
        backup_path = self.platform_dir(platform) / backup_id
        manifest_path = backup_path / MANIFEST_NAME
        if not manifest_path.is_file():
            raise NotFoundError("backup", backup_id, platform)

        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
            return BackupManifest(
                id=backup_id,
                platform=data["platform"],
                created_at=data["created_at"],
                files=[BackupFile(**entry) for entry in data.get("files", [])],
                version=data.get("version", MANIFEST_VERSION),
                tool_version=data.get("tool_version", ""),
                path=backup_path,
            )
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise BackupError(f"invalid manifest {manifest_path}: {e}") from e

    def list_backups(self, platform: str) -> list[BackupManifest]:
        """Return backups for platform, newest first.

        ABOUTME: Directories without a readable manifest are ignored
        """
        platform_dir = self.platform_dir(platform)
        if not platform_dir.is_dir():
            return []

        manifests: list[BackupManifest] = []
        for entry in platform_dir.iterdir():
            if not entry.is_dir():
                continue
            try:
                manifests.append(self.get(platform, entry.name))
            except (NotFoundError, BackupError) as e:
                logger.debug("Skipping backup directory %s: %s", entry, e)

        manifests.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        return manifests

    def restore(self, platform: str, backup_id: str) -> list[Path]:
        """Copy a backup's files back to their original locations.

        ABOUTME: Every file's hash is verified before anything is written

        Returns:
            Restored paths

        Raises:
            NotFoundError: Unknown backup
            BackupError: A backed-up file is missing or its hash does not match
        """
        manifest = self.get(platform, backup_id)
        backup_path = self.platform_dir(platform) / backup_id

        for entry in manifest.files:
            stored = backup_path / entry.rel_path
            if not stored.is_file():
                raise BackupError(f"backup {backup_id} is missing {entry.rel_path}")
            if hash_file(stored) != entry.sha256:
                raise BackupError(f"backup {backup_id} is corrupted: {entry.rel_path} hash mismatch")

        restored: list[Path] = []
        for entry in manifest.files:
            target = Path(entry.original_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(backup_path / entry.rel_path, target)
            os.chmod(target, entry.mode)
            restored.append(target)

        logger.debug("Restored %d file(s) from %s/%s", len(restored), platform, backup_id)
        return restored

    def prune(self, platform: str, keep: int | None = None) -> list[Path]:
        """Remove backups beyond the newest `keep` (defaults to retention).

        Returns:
            Deleted backup directories
        """
        if keep is None:
            keep = self.retention
        if keep < 0:
            raise ValueError("keep must be non-negative")

        deleted: list[Path] = []
        for manifest in self.list_backups(platform)[keep:]:
            backup_path = self.platform_dir(platform) / manifest.id
            shutil.rmtree(backup_path)
            deleted.append(backup_path)
            logger.debug(f"Deleted old backup: {backup_path}")
        return deleted


class BackupGuard:
    """At-most-once backup per platform for the lifetime of this object.

    ABOUTME: A successful backup (or nothing to back up) is remembered per platform
    ABOUTME: A failed backup is not remembered, so the next call retries
    """

    def __init__(self, manager: BackupManager | None = None) -> None:
        self.manager = manager if manager is not None else BackupManager()
        self._done: dict[str, BackupManifest | None] = {}

    def ensure_backed_up(self, platform: str, paths: list[Path]) -> BackupManifest | None:
        """Back up paths for platform unless already done by this guard.

        Raises:
            BackupError: If the backup fails; the caller must not mutate the platform
        """
        if platform in self._done:
            return self._done[platform]

        manifest = self.manager.backup(platform, paths)
        self._done[platform] = manifest
        return manifest

    def reset(self, platform: str | None = None) -> None:
        """Forget completed backups (all platforms, or one)."""
        if platform is None:
            self._done.clear()
        else:
            self._done.pop(platform, None)
