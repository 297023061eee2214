"""
Persisted selection state.

One small JSON record with the last selected profile, repository and
pipeline, read once at startup and rewritten after every selection change.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from .fileio import write_json_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    """Last-used selections; an empty string means nothing is selected."""

    profile: str = ""
    repository: str = ""
    pipeline: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.profile or self.repository or self.pipeline)

    def with_profile(self, profile: str) -> "SelectionState":
        # Repository and pipeline names belong to the previous account.
        return SelectionState(profile=profile)

    def with_repository(self, repository: str) -> "SelectionState":
        return replace(self, repository=repository)

    def with_pipeline(self, pipeline: str) -> "SelectionState":
        return replace(self, pipeline=pipeline)


class StateStore:
    """Loads and saves the SelectionState file."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> SelectionState:
        """Read the persisted state; anything unusable yields an empty state."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return SelectionState()
        except OSError as e:
            logger.debug("state file unreadable (%s): %s", self.path, e)
            return SelectionState()

        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("state file malformed: %s", self.path)
            return SelectionState()

        if not isinstance(data, dict):
            return SelectionState()

        def text(field_name: str) -> str:
            value = data.get(field_name, "")
            return value if isinstance(value, str) else ""

        return SelectionState(
            profile=text("profile"),
            repository=text("repository"),
            pipeline=text("pipeline"),
        )

    def save(self, state: SelectionState) -> bool:
        """Overwrite the state file; returns False if it could not be written."""
        try:
            write_json_atomic(self.path, asdict(state))
        except OSError as e:
            logger.debug("state save failed (%s): %s", self.path, e)
            return False
        return True
