"""
Cache-aside reads of CodeCommit and CodePipeline data.

Every read goes: cache lookup -> on miss, AWS CLI call -> write back ->
decode. The returned Fetched carries the age of the data so views can show
how fresh it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from . import models
from .aws import AwsCli
from .cache import CacheKey, CacheStore
from .session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Fetched(Generic[T]):
    """A decoded value and its cache age in seconds (None = just fetched)."""

    value: T
    age: float | None = None

    @property
    def from_cache(self) -> bool:
        return self.age is not None


class Explorer:
    """Domain reads backed by the AWS CLI and the local cache."""

    def __init__(self, client: AwsCli, cache: CacheStore):
        self.client = client
        self.cache = cache

    def _fetch(
        self,
        session: Session,
        kind: str,
        name: str,
        loader: Callable[[], dict[str, Any]],
        refresh: bool = False,
    ) -> Fetched[Any]:
        key = CacheKey.for_session(session, kind, name)
        if not refresh:
            hit = self.cache.get(key)
            if hit is not None:
                return Fetched(models.decode(kind, hit.payload), hit.age)

        payload = loader()
        if not self.cache.set(key, payload):
            logger.debug("continuing without cache for %s", key)
        return Fetched(models.decode(kind, payload))

    def identity(self, session: Session, refresh: bool = False) -> Fetched[models.CallerIdentity]:
        return self._fetch(
            session, models.IDENTITY, "",
            lambda: self.client.get_caller_identity(session),
            refresh,
        )

    def repositories(
        self, session: Session, refresh: bool = False
    ) -> Fetched[list[models.RepositorySummary]]:
        return self._fetch(
            session, models.REPO_LIST, "",
            lambda: self.client.list_repositories(session),
            refresh,
        )

    def repository(
        self, session: Session, name: str, refresh: bool = False
    ) -> Fetched[models.RepositoryInfo]:
        return self._fetch(
            session, models.REPO_INFO, name,
            lambda: self.client.get_repository(session, name),
            refresh,
        )

    def pull_request_ids(
        self, session: Session, repository: str, refresh: bool = False
    ) -> Fetched[list[str]]:
        return self._fetch(
            session, models.PULL_REQUEST_LIST, repository,
            lambda: self.client.list_pull_requests(session, repository),
            refresh,
        )

    def pull_request(
        self, session: Session, pull_request_id: str, refresh: bool = False
    ) -> Fetched[models.PullRequest]:
        return self._fetch(
            session, models.PULL_REQUEST, pull_request_id,
            lambda: self.client.get_pull_request(session, pull_request_id),
            refresh,
        )

    def pull_requests(
        self,
        session: Session,
        repository: str,
        limit: int = 25,
        refresh: bool = False,
    ) -> Fetched[list[models.PullRequest]]:
        """Open pull requests of a repository; age is that of the id list."""
        ids = self.pull_request_ids(session, repository, refresh)
        prs = [
            self.pull_request(session, pr_id, refresh).value
            for pr_id in ids.value[:limit]
        ]
        return Fetched(prs, ids.age)

    def approvals(
        self, session: Session, pr: models.PullRequest, refresh: bool = False
    ) -> Fetched[list[models.ApprovalState]]:
        if not pr.revision_id:
            return Fetched([])
        return self._fetch(
            session, models.PULL_REQUEST_APPROVALS,
            f"{pr.pull_request_id}_{pr.revision_id}",
            lambda: self.client.get_pull_request_approval_states(
                session, pr.pull_request_id, pr.revision_id
            ),
            refresh,
        )

    def pipelines(
        self, session: Session, refresh: bool = False
    ) -> Fetched[list[models.PipelineSummary]]:
        return self._fetch(
            session, models.PIPELINE_LIST, "",
            lambda: self.client.list_pipelines(session),
            refresh,
        )

    def pipeline_state(
        self, session: Session, name: str, refresh: bool = False
    ) -> Fetched[models.PipelineState]:
        return self._fetch(
            session, models.PIPELINE_STATE, name,
            lambda: self.client.get_pipeline_state(session, name),
            refresh,
        )

    def pipeline_executions(
        self,
        session: Session,
        name: str,
        limit: int = 10,
        refresh: bool = False,
    ) -> Fetched[list[models.PipelineExecution]]:
        return self._fetch(
            session, models.PIPELINE_EXECUTIONS, f"{name}_{limit}",
            lambda: self.client.list_pipeline_executions(session, name, max_items=limit),
            refresh,
        )
