"""
AWS CLI client for AWS Goodies.

Runs the ``aws`` executable synchronously and returns parsed JSON.
The profile always comes from an explicit Session, never from the
environment. Calls are bounded by a fixed timeout and are never retried;
a failed call is reported to the caller as an AwsCliError.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from typing import Any

from .session import Session

logger = logging.getLogger(__name__)

AWS_EXECUTABLE = "aws"
DEFAULT_TIMEOUT = 30

# (tool name shown to the user, executable)
REQUIRED_TOOLS = (("aws-cli", AWS_EXECUTABLE),)

# Error codes meaning the named resource does not exist (anymore)
NOT_FOUND_CODES = frozenset({
    "RepositoryDoesNotExistException",
    "PullRequestDoesNotExistException",
    "PipelineNotFoundException",
    "PipelineExecutionNotFoundException",
})

_ERROR_CODE = re.compile(r"An error occurred \(([^)]+)\)")


class AwsCliError(Exception):
    """An AWS CLI call failed (auth, network, bad input, bad output)."""
    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode

    @property
    def code(self) -> str:
        """The AWS error code, e.g. ``ExpiredTokenException``, or empty."""
        match = _ERROR_CODE.search(str(self))
        return match.group(1) if match else ""

    @property
    def is_not_found(self) -> bool:
        return self.code in NOT_FOUND_CODES


class AwsTimeoutError(AwsCliError):
    """The call did not finish within the configured timeout."""
    def __init__(self, timeout: float):
        super().__init__(f"AWS CLI timed out after {timeout:g}s")
        self.timeout = timeout


class DependencyMissingError(Exception):
    """A required external tool is not installed."""
    def __init__(self, tools: list[str]):
        super().__init__(f"Missing required dependencies: {' '.join(tools)}")
        self.tools = tools


def check_dependencies() -> list[str]:
    """Return the names of required tools that are not on PATH."""
    return [name for name, executable in REQUIRED_TOOLS if shutil.which(executable) is None]


def _error_message(stderr: str) -> str:
    lines = [line.strip() for line in stderr.strip().splitlines() if line.strip()]
    if not lines:
        return "AWS CLI call failed"
    # The CLI prints the useful line last ("An error occurred (...) when calling ...")
    return lines[-1]


class AwsCli:
    """Thin synchronous wrapper around the AWS CLI."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, executable: str = AWS_EXECUTABLE):
        self.timeout = timeout
        self.executable = executable

    def _command(self, args: list[str], session: Session | None, output: str | None) -> list[str]:
        cmd = [self.executable, *args]
        if output:
            cmd += ["--output", output]
        if session is not None:
            cmd += session.cli_args()
        return cmd

    def _execute(self, cmd: list[str], capture: bool = True) -> subprocess.CompletedProcess:
        logger.debug("running: %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("timed out after %ss: %s", self.timeout, " ".join(cmd))
            raise AwsTimeoutError(self.timeout) from None
        except FileNotFoundError:
            raise DependencyMissingError(["aws-cli"]) from None

    def run(self, args: list[str], session: Session | None = None) -> dict[str, Any]:
        """Run ``aws <args> --output json`` and return the decoded document."""
        result = self._execute(self._command(args, session, "json"))
        if result.returncode != 0:
            raise AwsCliError(_error_message(result.stderr or ""), result.returncode)

        stdout = (result.stdout or "").strip()
        if not stdout:
            return {}
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise AwsCliError(f"Malformed response from AWS CLI: {e}") from e
        if not isinstance(data, dict):
            raise AwsCliError("Unexpected response from AWS CLI: expected a JSON object")
        return data

    # Profiles and credentials

    def list_profiles(self) -> list[str]:
        result = self._execute(self._command(["configure", "list-profiles"], None, None))
        if result.returncode != 0:
            raise AwsCliError(_error_message(result.stderr or ""), result.returncode)
        profiles = {line.strip() for line in (result.stdout or "").splitlines() if line.strip()}
        return sorted(profiles)

    def profile_exists(self, profile: str) -> bool:
        if not profile:
            return False
        return profile in self.list_profiles()

    def get_caller_identity(self, session: Session) -> dict[str, Any]:
        return self.run(["sts", "get-caller-identity"], session)

    def sso_login(self, session: Session) -> None:
        """Interactive: the CLI talks to the terminal and may open a browser."""
        result = self._execute(self._command(["sso", "login"], session, None), capture=False)
        if result.returncode != 0:
            raise AwsCliError(f"SSO login failed for profile: {session.profile}", result.returncode)

    def sso_logout(self, session: Session) -> None:
        result = self._execute(self._command(["sso", "logout"], session, None), capture=False)
        if result.returncode != 0:
            raise AwsCliError(f"SSO logout failed for profile: {session.profile}", result.returncode)

    # CodeCommit

    def list_repositories(self, session: Session) -> dict[str, Any]:
        return self.run(
            ["codecommit", "list-repositories", "--sort-by", "repositoryName"],
            session,
        )

    def get_repository(self, session: Session, repository: str) -> dict[str, Any]:
        return self.run(
            ["codecommit", "get-repository", "--repository-name", repository],
            session,
        )

    def list_pull_requests(
        self,
        session: Session,
        repository: str,
        status: str = "OPEN",
    ) -> dict[str, Any]:
        return self.run(
            [
                "codecommit", "list-pull-requests",
                "--repository-name", repository,
                "--pull-request-status", status,
            ],
            session,
        )

    def get_pull_request(self, session: Session, pull_request_id: str) -> dict[str, Any]:
        return self.run(
            ["codecommit", "get-pull-request", "--pull-request-id", pull_request_id],
            session,
        )

    def get_pull_request_approval_states(
        self,
        session: Session,
        pull_request_id: str,
        revision_id: str,
    ) -> dict[str, Any]:
        return self.run(
            [
                "codecommit", "get-pull-request-approval-states",
                "--pull-request-id", pull_request_id,
                "--revision-id", revision_id,
            ],
            session,
        )

    # CodePipeline

    def list_pipelines(self, session: Session) -> dict[str, Any]:
        return self.run(["codepipeline", "list-pipelines"], session)

    def get_pipeline_state(self, session: Session, pipeline: str) -> dict[str, Any]:
        return self.run(["codepipeline", "get-pipeline-state", "--name", pipeline], session)

    def list_pipeline_executions(
        self,
        session: Session,
        pipeline: str,
        max_items: int = 10,
    ) -> dict[str, Any]:
        return self.run(
            [
                "codepipeline", "list-pipeline-executions",
                "--pipeline-name", pipeline,
                "--max-items", str(max_items),
            ],
            session,
        )
