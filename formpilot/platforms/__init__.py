from __future__ import annotations

from formpilot.config import FlowTimings
from formpilot.platforms.base import PlatformAdapter, SafeFix
from formpilot.platforms.workday import WorkdayPlatform
from formpilot.retry import Clock

PLATFORMS: list[type[PlatformAdapter]] = [
    WorkdayPlatform,
]


def get_platform(url: str, clock: Clock | None = None,
                 timings: FlowTimings | None = None) -> PlatformAdapter | None:
    """Adapter for the platform hosting ``url``; None when no known platform matches."""
    for cls in PLATFORMS:
        platform = cls(clock, timings)
        if platform.matches(url):
            return platform
    return None


__all__ = ["PLATFORMS", "PlatformAdapter", "SafeFix", "WorkdayPlatform", "get_platform"]
