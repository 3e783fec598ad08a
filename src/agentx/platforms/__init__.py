# Platform registry
from pathlib import Path

from agentx.platforms.base import (
    CanonicalMCPTranslator,
    MCPTranslator,
    NativeDocument,
    Platform,
    PlatformTranslator,
)
from agentx.platforms.claude import ClaudePlatform
from agentx.platforms.gemini import GeminiPlatform
from agentx.platforms.opencode import OpenCodePlatform

# Registry of all available platforms, in display order
ALL_PLATFORMS: list[type[Platform]] = [
    ClaudePlatform,
    OpenCodePlatform,
    GeminiPlatform,
]

__all__ = [
    "Platform",
    "PlatformTranslator",
    "MCPTranslator",
    "CanonicalMCPTranslator",
    "NativeDocument",
    "ClaudePlatform",
    "OpenCodePlatform",
    "GeminiPlatform",
    "ALL_PLATFORMS",
    "PLATFORM_NAMES",
    "get_all_platforms",
    "get_platform",
    "detect_installed",
]

PLATFORM_NAMES: list[str] = [platform_cls.name for platform_cls in ALL_PLATFORMS]


def get_all_platforms() -> list[Platform]:
    """Instantiate and return all platforms.

    ABOUTME: Creates instances of all registered platforms
    ABOUTME: Returns list for easy iteration
    """
    return [platform_cls() for platform_cls in ALL_PLATFORMS]


def get_platform(name: str) -> Platform:
    """Look up a platform by name (case-insensitive).

    Raises:
        ValueError: Unknown platform
    """
    key = name.strip().lower()
    for platform_cls in ALL_PLATFORMS:
        if platform_cls.name == key:
            return platform_cls()
    raise ValueError(
        f"Unknown platform '{name}'. Must be one of: {', '.join(PLATFORM_NAMES)}"
    )


def detect_installed(
    home: Path | None = None, user_dirs: dict[str, Path] | None = None
) -> list[Platform]:
    """Return platforms whose user directory exists.

    Args:
        home: Home directory (defaults to Path.home())
        user_dirs: Per-platform user directory overrides
    """
    user_dirs = user_dirs or {}
    return [
        platform
        for platform in get_all_platforms()
        if platform.is_installed(home=home, user_dir=user_dirs.get(platform.name))
    ]
