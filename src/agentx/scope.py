# ABOUTME: Decide which configuration layer a command targets
# ABOUTME: Explicit request > interactive prompt (inside a repo) > PROJECT in a repo > USER
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from agentx.errors import ScopeSelectionCancelled
from agentx.models import Scope
from agentx.utils.git import is_git_repo

logger = logging.getLogger(__name__)

SCOPE_MENU = (
    "\nTarget configuration scope?\n"
    "  [1] Project (Shared, committed to Git)\n"
    "  [2] User    (Personal, global)\n"
    "  [3] Local   (Personal, this project only, gitignored)\n"
    "Selection [1]: "
)

# ABOUTME: Menu answers; blank selects the default entry
SCOPE_CHOICES: dict[str, Scope] = {
    "": Scope.PROJECT,
    "1": Scope.PROJECT,
    "project": Scope.PROJECT,
    "2": Scope.USER,
    "user": Scope.USER,
    "3": Scope.LOCAL,
    "local": Scope.LOCAL,
}


@dataclass
class ScopeResolution:
    """Outcome of resolve_scope.

    ABOUTME: error is set when the working directory could not be read (scope falls back to USER)
    """
    scope: Scope
    error: str | None = None
    warnings: list[str] = field(default_factory=list)


def _stdin_is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def _read_line() -> str:
    return input()


def _write(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


def prompt_for_scope(
    read_line: Callable[[], str] = _read_line,
    write: Callable[[str], None] = _write,
) -> ScopeResolution:
    """Ask the user to pick a scope.

    Raises:
        ScopeSelectionCancelled: read_line hit end of input
    """
    write(SCOPE_MENU)
    try:
        answer = read_line()
    except EOFError:
        raise ScopeSelectionCancelled("scope selection cancelled") from None

    choice = answer.strip().lower()
    if choice in SCOPE_CHOICES:
        return ScopeResolution(scope=SCOPE_CHOICES[choice])

    message = f"Invalid selection {answer.strip()!r}, defaulting to Project scope."
    logger.warning(message)
    write(message + "\n")
    return ScopeResolution(scope=Scope.PROJECT, warnings=[message])


def resolve_scope(
    requested: str = "",
    *,
    cwd: Path | None = None,
    is_repo: Callable[[Path], bool] = is_git_repo,
    is_interactive: Callable[[], bool] = _stdin_is_interactive,
    read_line: Callable[[], str] = _read_line,
    write: Callable[[str], None] = _write,
) -> ScopeResolution:
    """Resolve the target scope.

    ABOUTME: A non-empty request always wins; unrecognised names become Scope.DEFAULT
    ABOUTME: Collaborators are injectable so the prompt can be driven from tests

    Args:
        requested: Scope name from the command line ("" when not given)
        cwd: Working directory (defaults to Path.cwd())
        is_repo: Whether a path is inside a version-controlled project
        is_interactive: Whether stdin is a terminal
        read_line: Reads one answer; raises EOFError on end of input
        write: Prints the menu

    Returns:
        ScopeResolution

    Raises:
        ScopeSelectionCancelled: The prompt hit end of input

    Examples:
        >>> resolve_scope("Project").scope
        <Scope.PROJECT: 'project'>
        >>> resolve_scope("galaxy").scope
        <Scope.DEFAULT: 'default'>
    """
    if requested.strip():
        return ScopeResolution(scope=Scope.parse(requested))

    if cwd is None:
        try:
            cwd = Path.cwd()
        except OSError as e:
            logger.debug("Cannot read working directory: %s", e)
            return ScopeResolution(scope=Scope.USER, error=f"getting cwd: {e}")

    if not is_repo(cwd):
        return ScopeResolution(scope=Scope.USER)

    if not is_interactive():
        return ScopeResolution(scope=Scope.PROJECT)

    return prompt_for_scope(read_line=read_line, write=write)
