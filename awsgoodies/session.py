"""
Explicit AWS session context.

The active profile is carried by a Session value that is handed to every
client and cache call. Nothing in the core reads AWS_PROFILE on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Session:
    """The AWS context a command runs under."""

    profile: str = ""

    @property
    def namespace(self) -> str:
        """Cache namespace for this session (``default`` when no profile)."""
        return self.profile or "default"

    def cli_args(self) -> list[str]:
        if self.profile:
            return ["--profile", self.profile]
        return []

    def with_profile(self, profile: str) -> "Session":
        return replace(self, profile=profile)


def resolve_profile(*candidates: str | None) -> str:
    """Return the first non-empty profile name from ``candidates``."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""
