"""
Decoded AWS CLI responses.

Raw CLI output is cached untouched; it is decoded into these dataclasses at
the boundary (see ``decode``). Decoding is defensive: unknown fields are
ignored and missing ones become empty strings or empty lists, so callers
check for emptiness instead of catching KeyError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Union

# Resource kinds, used as the first part of every cache key
IDENTITY = "identity"
REPO_LIST = "repo_list"
REPO_INFO = "repo_info"
PULL_REQUEST_LIST = "pull_requests"
PULL_REQUEST = "pull_request"
PULL_REQUEST_APPROVALS = "pr_approvals"
PIPELINE_LIST = "pipelines"
PIPELINE_STATE = "pipeline_state"
PIPELINE_EXECUTIONS = "pipeline_executions"

APPROVAL_ACTION_PENDING = "InProgress"


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def _timestamp(value: Any) -> str:
    """CLI v1 emits epoch floats, v2 emits ISO strings; normalize to ISO."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
        return dt.isoformat(timespec="seconds")
    return _text(value)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _unwrap(data: Any, wrapper: str) -> dict[str, Any]:
    data = _mapping(data)
    inner = data.get(wrapper)
    return inner if isinstance(inner, dict) else data


def short_ref(ref: str) -> str:
    """``refs/heads/main`` -> ``main``."""
    prefix = "refs/heads/"
    return ref[len(prefix):] if ref.startswith(prefix) else ref


def arn_name(arn: str) -> str:
    """Last path segment of an ARN (the user or role session name)."""
    return arn.rsplit("/", 1)[-1] if arn else ""


@dataclass
class CallerIdentity:
    """sts get-caller-identity."""
    kind: ClassVar[str] = IDENTITY

    account: str
    arn: str
    user_id: str

    @classmethod
    def from_api(cls, data: Any) -> "CallerIdentity":
        data = _mapping(data)
        return cls(
            account=_text(data.get("Account")),
            arn=_text(data.get("Arn")),
            user_id=_text(data.get("UserId")),
        )


@dataclass
class RepositorySummary:
    """One entry of codecommit list-repositories."""

    name: str
    repository_id: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "RepositorySummary":
        data = _mapping(data)
        return cls(
            name=_text(data.get("repositoryName")),
            repository_id=_text(data.get("repositoryId")),
        )


@dataclass
class RepositoryInfo:
    """codecommit get-repository."""
    kind: ClassVar[str] = REPO_INFO

    name: str
    repository_id: str = ""
    arn: str = ""
    description: str = ""
    default_branch: str = ""
    clone_url_http: str = ""
    clone_url_ssh: str = ""
    account_id: str = ""
    last_modified: str = ""
    created: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "RepositoryInfo":
        meta = _unwrap(data, "repositoryMetadata")
        return cls(
            name=_text(meta.get("repositoryName")),
            repository_id=_text(meta.get("repositoryId")),
            arn=_text(meta.get("Arn")),
            description=_text(meta.get("repositoryDescription")),
            default_branch=_text(meta.get("defaultBranch")),
            clone_url_http=_text(meta.get("cloneUrlHttp")),
            clone_url_ssh=_text(meta.get("cloneUrlSsh")),
            account_id=_text(meta.get("accountId")),
            last_modified=_timestamp(meta.get("lastModifiedDate")),
            created=_timestamp(meta.get("creationDate")),
        )


@dataclass
class PullRequestTarget:
    """Source/destination context of a pull request in one repository."""

    repository: str
    source_reference: str = ""
    destination_reference: str = ""
    source_commit: str = ""
    destination_commit: str = ""
    merge_base: str = ""
    is_merged: bool = False

    @property
    def source_branch(self) -> str:
        return short_ref(self.source_reference)

    @property
    def destination_branch(self) -> str:
        return short_ref(self.destination_reference)

    @classmethod
    def from_api(cls, data: Any) -> "PullRequestTarget":
        data = _mapping(data)
        merge = _mapping(data.get("mergeMetadata"))
        return cls(
            repository=_text(data.get("repositoryName")),
            source_reference=_text(data.get("sourceReference")),
            destination_reference=_text(data.get("destinationReference")),
            source_commit=_text(data.get("sourceCommit")),
            destination_commit=_text(data.get("destinationCommit")),
            merge_base=_text(data.get("mergeBase")),
            is_merged=merge.get("isMerged") is True,
        )


@dataclass
class PullRequest:
    """codecommit get-pull-request."""
    kind: ClassVar[str] = PULL_REQUEST

    pull_request_id: str
    revision_id: str = ""
    title: str = ""
    description: str = ""
    status: str = ""
    author_arn: str = ""
    created: str = ""
    last_activity: str = ""
    targets: list[PullRequestTarget] = field(default_factory=list)

    @property
    def target(self) -> PullRequestTarget | None:
        return self.targets[0] if self.targets else None

    @property
    def repository_name(self) -> str:
        return self.target.repository if self.target else ""

    @property
    def author(self) -> str:
        return arn_name(self.author_arn)

    @classmethod
    def from_api(cls, data: Any) -> "PullRequest":
        pr = _unwrap(data, "pullRequest")
        return cls(
            pull_request_id=_text(pr.get("pullRequestId", pr.get("id"))),
            revision_id=_text(pr.get("revisionId")),
            title=_text(pr.get("title")),
            description=_text(pr.get("description")),
            status=_text(pr.get("pullRequestStatus")),
            author_arn=_text(pr.get("authorArn")),
            created=_timestamp(pr.get("creationDate")),
            last_activity=_timestamp(pr.get("lastActivityDate")),
            targets=[
                PullRequestTarget.from_api(t) for t in _items(pr.get("pullRequestTargets"))
            ],
        )


@dataclass
class ApprovalState:
    """One reviewer's vote on a pull request revision."""

    user_arn: str
    state: str

    @property
    def user(self) -> str:
        return arn_name(self.user_arn)

    @classmethod
    def from_api(cls, data: Any) -> "ApprovalState":
        data = _mapping(data)
        return cls(
            user_arn=_text(data.get("userArn")),
            state=_text(data.get("approvalState")),
        )


@dataclass
class PipelineSummary:
    """One entry of codepipeline list-pipelines."""

    name: str
    version: str = ""
    created: str = ""
    updated: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "PipelineSummary":
        data = _mapping(data)
        return cls(
            name=_text(data.get("name")),
            version=_text(data.get("version")),
            created=_timestamp(data.get("created")),
            updated=_timestamp(data.get("updated")),
        )


@dataclass
class ActionState:
    name: str
    status: str = ""
    token: str = ""
    summary: str = ""
    last_status_change: str = ""
    external_url: str = ""

    @property
    def awaiting_approval(self) -> bool:
        return self.status == APPROVAL_ACTION_PENDING and bool(self.token)

    @classmethod
    def from_api(cls, data: Any) -> "ActionState":
        data = _mapping(data)
        latest = _mapping(data.get("latestExecution"))
        return cls(
            name=_text(data.get("actionName")),
            status=_text(latest.get("status")),
            token=_text(latest.get("token")),
            summary=_text(latest.get("summary")),
            last_status_change=_timestamp(latest.get("lastStatusChange")),
            external_url=_text(latest.get("externalExecutionUrl")),
        )


@dataclass
class StageState:
    name: str
    status: str = ""
    execution_id: str = ""
    actions: list[ActionState] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Any) -> "StageState":
        data = _mapping(data)
        latest = _mapping(data.get("latestExecution"))
        return cls(
            name=_text(data.get("stageName")),
            status=_text(latest.get("status")),
            execution_id=_text(latest.get("pipelineExecutionId")),
            actions=[ActionState.from_api(a) for a in _items(data.get("actionStates"))],
        )


@dataclass
class PendingApproval:
    """A manual-approval action waiting for a result."""

    pipeline: str
    stage: str
    action: str
    token: str
    summary: str = ""


@dataclass
class PipelineState:
    """codepipeline get-pipeline-state."""
    kind: ClassVar[str] = PIPELINE_STATE

    name: str
    version: str = ""
    updated: str = ""
    stages: list[StageState] = field(default_factory=list)

    def pending_approvals(self) -> list[PendingApproval]:
        pending = []
        for stage in self.stages:
            for action in stage.actions:
                if action.awaiting_approval:
                    pending.append(PendingApproval(
                        pipeline=self.name,
                        stage=stage.name,
                        action=action.name,
                        token=action.token,
                        summary=action.summary,
                    ))
        return pending

    @classmethod
    def from_api(cls, data: Any) -> "PipelineState":
        data = _mapping(data)
        return cls(
            name=_text(data.get("pipelineName")),
            version=_text(data.get("pipelineVersion")),
            updated=_timestamp(data.get("updated")),
            stages=[StageState.from_api(s) for s in _items(data.get("stageStates"))],
        )


@dataclass
class SourceRevision:
    action_name: str
    revision_id: str = ""
    summary: str = ""

    @property
    def short_id(self) -> str:
        return self.revision_id[:8]


@dataclass
class PipelineExecution:
    """One entry of codepipeline list-pipeline-executions."""
    kind: ClassVar[str] = PIPELINE_EXECUTIONS

    execution_id: str
    status: str = ""
    started: str = ""
    last_updated: str = ""
    trigger: str = ""
    source_revisions: list[SourceRevision] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Any) -> "PipelineExecution":
        data = _mapping(data)
        trigger = _mapping(data.get("trigger"))
        return cls(
            execution_id=_text(data.get("pipelineExecutionId")),
            status=_text(data.get("status")),
            started=_timestamp(data.get("startTime")),
            last_updated=_timestamp(data.get("lastUpdateTime")),
            trigger=_text(trigger.get("triggerType")),
            source_revisions=[
                SourceRevision(
                    action_name=_text(rev.get("actionName")),
                    revision_id=_text(rev.get("revisionId")),
                    summary=_text(rev.get("revisionSummary")),
                )
                for rev in _items(data.get("sourceRevisions"))
            ],
        )


ApiRecord = Union[
    CallerIdentity,
    RepositoryInfo,
    PullRequest,
    PipelineState,
    PipelineExecution,
]


def _decode_repo_list(data: Any) -> list[RepositorySummary]:
    repos = [RepositorySummary.from_api(r) for r in _items(_mapping(data).get("repositories"))]
    return sorted((r for r in repos if r.name), key=lambda r: r.name.lower())


def _decode_pull_request_ids(data: Any) -> list[str]:
    ids = _mapping(data).get("pullRequestIds")
    if not isinstance(ids, list):
        return []
    return [_text(i) for i in ids if _text(i)]


def _decode_approvals(data: Any) -> list[ApprovalState]:
    return [ApprovalState.from_api(a) for a in _items(_mapping(data).get("approvals"))]


def _decode_pipeline_list(data: Any) -> list[PipelineSummary]:
    pipelines = [PipelineSummary.from_api(p) for p in _items(_mapping(data).get("pipelines"))]
    return sorted((p for p in pipelines if p.name), key=lambda p: p.name.lower())


def _decode_executions(data: Any) -> list[PipelineExecution]:
    summaries = _items(_mapping(data).get("pipelineExecutionSummaries"))
    return [PipelineExecution.from_api(s) for s in summaries]


DECODERS: dict[str, Callable[[Any], Any]] = {
    IDENTITY: CallerIdentity.from_api,
    REPO_LIST: _decode_repo_list,
    REPO_INFO: RepositoryInfo.from_api,
    PULL_REQUEST_LIST: _decode_pull_request_ids,
    PULL_REQUEST: PullRequest.from_api,
    PULL_REQUEST_APPROVALS: _decode_approvals,
    PIPELINE_LIST: _decode_pipeline_list,
    PIPELINE_STATE: PipelineState.from_api,
    PIPELINE_EXECUTIONS: _decode_executions,
}


def decode(kind: str, payload: Any) -> Any:
    """Decode a raw CLI document of the given resource kind."""
    try:
        decoder = DECODERS[kind]
    except KeyError:
        raise ValueError(f"Unknown resource kind: {kind}") from None
    return decoder(payload)
