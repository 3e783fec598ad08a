# ABOUTME: Thin wrappers around the git executable
# ABOUTME: Only used to decide whether the working directory is inside a repository
import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 5  # seconds


def is_git_repo(path: Path) -> bool:
    """Return True if path is inside a git work tree.

    ABOUTME: Runs `git -C <path> rev-parse --is-inside-work-tree`
    ABOUTME: Missing git binary or a timeout count as "not a repository"
    """
    if shutil.which("git") is None:
        logger.debug("git not found on PATH, assuming %s is not a repository", path)
        return False

    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--is-inside-work-tree"],
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("git check failed for %s: %s", path, e)
        return False

    return result.returncode == 0 and result.stdout.strip() == "true"


def find_repo_root(path: Path) -> Path | None:
    """Return the top-level directory of the repository containing path."""
    if shutil.which("git") is None:
        return None

    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("git toplevel lookup failed for %s: %s", path, e)
        return None

    if result.returncode != 0:
        return None
    return Path(result.stdout.strip())
