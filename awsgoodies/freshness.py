"""Human-readable elapsed time ("2m ago")."""

from __future__ import annotations


def age_string(age_seconds: float) -> str:
    """Format elapsed seconds into coarse units.

    <60s -> "Xs ago", <1h -> "Xm ago", <1d -> "Xh ago", otherwise "Xd ago".
    Units are truncated with integer division, so 119 seconds is "1m ago".
    """
    seconds = max(0, int(age_seconds))

    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def freshness_label(age_seconds: float | None) -> str:
    """Label shown next to cached data; ``None`` means just fetched."""
    if age_seconds is None:
        return "fresh"
    return f"cached {age_string(age_seconds)}"
