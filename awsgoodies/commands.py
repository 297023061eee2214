"""
Copy-paste command synthesis.

Builds structured command descriptors (CLI operation + ordered parameters)
from fetched records, and renders them to shell text in one place.
Commands are only ever printed for the user; nothing here executes them.

A command whose required values are missing from the record is skipped and
reported in ``SynthesisResult.skipped`` instead of being rendered with an
empty parameter.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .models import PendingApproval, PullRequest
from .session import Session

APPROVAL_STATES = ("APPROVE", "REVOKE")
APPROVAL_RESULTS = ("Approved", "Rejected")

DEFAULT_SUMMARIES = {
    "Approved": "Approved via aws-goodies",
    "Rejected": "Rejected via aws-goodies",
}

# Shape names reported in SynthesisResult.skipped
APPROVAL_STATE_SHAPE = "approval-state"
MERGE_SHAPE = "merge"
PIPELINE_APPROVAL_SHAPE = "pipeline-approval"

_STATE_LABELS = {
    "APPROVE": "Approve",
    "REVOKE": "Revoke approval (decline)",
}


@dataclass(frozen=True)
class CommandDescriptor:
    """An AWS CLI invocation: operation path plus ordered (flag, value) pairs."""

    operation: tuple[str, ...]
    params: tuple[tuple[str, str], ...]
    label: str = ""

    def param(self, flag: str) -> str | None:
        for name, value in self.params:
            if name == flag:
                return value
        return None


@dataclass
class SynthesisResult:
    commands: list[CommandDescriptor] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)

    def extend(self, other: "SynthesisResult") -> "SynthesisResult":
        self.commands.extend(other.commands)
        self.skipped.extend(other.skipped)
        return self

    def rendered(self) -> list[str]:
        return [render(command) for command in self.commands]


def render(command: CommandDescriptor) -> str:
    """Render a descriptor as a single shell-ready command line."""
    parts = ["aws", *command.operation]
    for flag, value in command.params:
        parts.append(flag)
        parts.append(shlex.quote(value))
    return " ".join(parts)


def _missing(required: Mapping[str, str]) -> list[str]:
    return [name for name, value in required.items() if not value]


def _params(pairs: Iterable[tuple[str, str]], session: Session | None) -> tuple[tuple[str, str], ...]:
    params = list(pairs)
    if session is not None and session.profile:
        params.append(("--profile", session.profile))
    return tuple(params)


def approval_state_commands(
    pr: PullRequest,
    session: Session | None = None,
    states: Iterable[str] = APPROVAL_STATES,
) -> SynthesisResult:
    """One update-pull-request-approval-state command per target state."""
    result = SynthesisResult()
    missing = _missing({
        "pull request id": pr.pull_request_id,
        "revision id": pr.revision_id,
    })
    if missing:
        result.skipped.append((APPROVAL_STATE_SHAPE, f"missing {', '.join(missing)}"))
        return result

    for state in states:
        if state not in APPROVAL_STATES:
            raise ValueError(f"Unknown approval state: {state}")
        result.commands.append(CommandDescriptor(
            operation=("codecommit", "update-pull-request-approval-state"),
            params=_params([
                ("--pull-request-id", pr.pull_request_id),
                ("--revision-id", pr.revision_id),
                ("--approval-state", state),
            ], session),
            label=f"{_STATE_LABELS[state]} pull request #{pr.pull_request_id}",
        ))
    return result


def merge_command(pr: PullRequest, session: Session | None = None) -> SynthesisResult:
    """A fast-forward merge command for the pull request's first target."""
    result = SynthesisResult()
    target = pr.target
    missing = _missing({
        "pull request id": pr.pull_request_id,
        "repository name": target.repository if target else "",
    })
    if missing or target is None:
        result.skipped.append((MERGE_SHAPE, f"missing {', '.join(missing)}"))
        return result

    pairs = [
        ("--pull-request-id", pr.pull_request_id),
        ("--repository-name", target.repository),
    ]
    if target.source_commit:
        pairs.append(("--source-commit-id", target.source_commit))

    if target.source_branch and target.destination_branch:
        label = f"Merge {target.source_branch} into {target.destination_branch} (fast-forward)"
    else:
        label = f"Merge pull request #{pr.pull_request_id} (fast-forward)"

    result.commands.append(CommandDescriptor(
        operation=("codecommit", "merge-pull-request-by-fast-forward"),
        params=_params(pairs, session),
        label=label,
    ))
    return result


def pull_request_commands(pr: PullRequest, session: Session | None = None) -> SynthesisResult:
    """Approve, revoke and merge commands for one pull request."""
    result = approval_state_commands(pr, session)
    if pr.target is not None and pr.target.is_merged:
        result.skipped.append((MERGE_SHAPE, "already merged"))
        return result
    return result.extend(merge_command(pr, session))


def approval_result_value(status: str, summary: str) -> str:
    """The ``--result`` shorthand value, e.g. ``summary="Looks good",status=Approved``."""
    summary = summary.replace('"', "'")
    return f'summary="{summary}",status={status}'


def pipeline_approval_commands(
    approval: PendingApproval,
    session: Session | None = None,
    summaries: Mapping[str, str] | None = None,
    results: Iterable[str] = APPROVAL_RESULTS,
) -> SynthesisResult:
    """One put-approval-result command per result (Approved, Rejected)."""
    result = SynthesisResult()
    missing = _missing({
        "pipeline name": approval.pipeline,
        "stage name": approval.stage,
        "action name": approval.action,
        "approval token": approval.token,
    })
    if missing:
        result.skipped.append((PIPELINE_APPROVAL_SHAPE, f"missing {', '.join(missing)}"))
        return result

    summaries = {**DEFAULT_SUMMARIES, **(summaries or {})}
    for status in results:
        if status not in APPROVAL_RESULTS:
            raise ValueError(f"Unknown approval result: {status}")
        verb = "Approve" if status == "Approved" else "Reject"
        result.commands.append(CommandDescriptor(
            operation=("codepipeline", "put-approval-result"),
            params=_params([
                ("--pipeline-name", approval.pipeline),
                ("--stage-name", approval.stage),
                ("--action-name", approval.action),
                ("--result", approval_result_value(status, summaries[status])),
                ("--token", approval.token),
            ], session),
            label=f"{verb} {approval.action} in {approval.stage}",
        ))
    return result
