from __future__ import annotations

from unittest.mock import MagicMock

import click
import pytest

from awsgoodies.aws import AwsCliError, AwsTimeoutError
from awsgoodies.cache import CacheKey, CacheStore
from awsgoodies.config import GoodiesConfig
from awsgoodies.menu import Navigator
from awsgoodies.state import SelectionState, StateStore

REPOSITORY = {
    "repositoryMetadata": {
        "repositoryName": "svc-a",
        "defaultBranch": "main",
        "repositoryDescription": "Service A",
    }
}

PULL_REQUEST = {
    "pullRequest": {
        "pullRequestId": "123",
        "revisionId": "abc123",
        "title": "Add feature",
        "pullRequestStatus": "OPEN",
        "authorArn": "arn:aws:iam::1:user/jane",
        "pullRequestTargets": [
            {
                "repositoryName": "svc-a",
                "sourceReference": "refs/heads/feature",
                "destinationReference": "refs/heads/main",
                "sourceCommit": "aaaa",
            }
        ],
    }
}

PIPELINE_STATE = {
    "pipelineName": "p1",
    "stageStates": [
        {
            "stageName": "Approve",
            "latestExecution": {"status": "InProgress"},
            "actionStates": [
                {
                    "actionName": "ManualApproval",
                    "latestExecution": {"status": "InProgress", "token": "tok-1"},
                }
            ],
        }
    ],
}


@pytest.fixture
def config(tmp_path):
    config = GoodiesConfig.load(home=tmp_path / "home", environ={})
    config.cache.dir = str(tmp_path / "cache")
    return config


@pytest.fixture
def client():
    client = MagicMock()
    client.get_repository.return_value = REPOSITORY
    client.list_pull_requests.return_value = {"pullRequestIds": ["123"]}
    client.get_pull_request.return_value = PULL_REQUEST
    client.get_pull_request_approval_states.return_value = {"approvals": []}
    client.get_pipeline_state.return_value = PIPELINE_STATE
    client.list_pipeline_executions.return_value = {"pipelineExecutionSummaries": []}
    return client


def _navigator(config, client, state: SelectionState | None = None, initial_profile: str = ""):
    store = StateStore(config.state_path)
    if state is not None:
        store.save(state)
    return Navigator(
        config=config,
        client=client,
        cache=CacheStore(config.cache.path, ttl=config.cache.ttl),
        state_store=store,
        initial_profile=initial_profile,
    )


@pytest.fixture
def answers(monkeypatch):
    """Feed scripted answers to click.prompt."""
    queue: list[str] = []

    def fake_prompt(text, default=None, type=None, **kwargs):
        return queue.pop(0)

    monkeypatch.setattr(click, "prompt", fake_prompt)
    return queue


class TestSelections:
    def test_load_state_prefers_saved_profile(self, config, client):
        nav = _navigator(config, client, SelectionState(profile="saved"), initial_profile="env")
        nav.load_state()
        assert nav.session.profile == "saved"

    def test_load_state_falls_back_to_initial_profile_and_saves(self, config, client):
        nav = _navigator(config, client, initial_profile="env")
        nav.load_state()

        assert nav.session.profile == "env"
        assert StateStore(config.state_path).load() == SelectionState(profile="env")

    def test_change_profile_saves_and_resets_selections(self, config, client):
        nav = _navigator(config, client, SelectionState("a", "svc-a", "p1"))
        nav.load_state()

        nav.change_profile("b")

        assert nav.session.profile == "b"
        assert StateStore(config.state_path).load() == SelectionState(profile="b")

    def test_change_profile_clears_old_namespace(self, config, client):
        nav = _navigator(config, client, SelectionState(profile="a"))
        nav.load_state()
        a_key = CacheKey("identity", "a")
        b_key = CacheKey("identity", "b")
        nav.cache.set(a_key, {"Account": "1"})
        nav.cache.set(b_key, {"Account": "2"})

        nav.change_profile("b")

        assert nav.cache.get(a_key) is None
        assert nav.cache.get(b_key) is not None

    def test_switching_back_keeps_entries_when_not_clearing(self, config, client):
        config.cache.clear_on_switch = False
        nav = _navigator(config, client, SelectionState(profile="a"))
        nav.load_state()
        key = CacheKey("repo_info", "a", "svc-a")
        nav.cache.set(key, REPOSITORY)

        nav.change_profile("b")
        nav.change_profile("a")

        assert nav.cache.get(key).payload == REPOSITORY

    def test_reselecting_current_profile_keeps_selections(self, config, client):
        nav = _navigator(config, client, SelectionState("dev", "svc-a", "p1"))
        nav.load_state()
        key = CacheKey("identity", "dev")
        nav.cache.set(key, {"Account": "1"})

        nav.change_profile("dev")

        assert nav.state == SelectionState("dev", "svc-a", "p1")
        assert StateStore(config.state_path).load() == SelectionState("dev", "svc-a", "p1")
        assert nav.cache.get(key) is not None

    def test_picking_current_row_in_profile_menu(self, config, client, answers):
        client.list_profiles.return_value = ["dev", "prod"]
        answers.append("1")
        nav = _navigator(config, client, SelectionState("dev", "svc-a", ""))
        nav.load_state()

        nav.profile_menu()

        assert StateStore(config.state_path).load() == SelectionState("dev", "svc-a", "")

    def test_selecting_repository_persists(self, config, client):
        nav = _navigator(config, client, SelectionState(profile="a"))
        nav.load_state()
        nav.select_repository("svc-a")
        nav.select_pipeline("p1")
        assert StateStore(config.state_path).load() == SelectionState("a", "svc-a", "p1")


class TestAutoEnter:
    def test_failed_repository_is_forgotten(self, config, client, capsys):
        client.get_repository.side_effect = AwsCliError(
            "An error occurred (RepositoryDoesNotExistException) when calling the "
            "GetRepository operation: gone does not exist"
        )
        nav = _navigator(config, client, SelectionState("a", "gone", "p1"))
        nav.load_state()

        nav.auto_enter()

        saved = StateStore(config.state_path).load()
        assert saved == SelectionState(profile="a", repository="", pipeline="p1")
        captured = capsys.readouterr()
        assert "RepositoryDoesNotExistException" in captured.err
        assert "Forgetting repository 'gone'" in captured.out
        client.get_pipeline_state.assert_not_called()

    def test_failed_pipeline_is_forgotten(self, config, client):
        client.get_pipeline_state.side_effect = AwsCliError(
            "An error occurred (PipelineNotFoundException) when calling the "
            "GetPipelineState operation: p1 not found"
        )
        nav = _navigator(config, client, SelectionState(profile="a", pipeline="p1"))
        nav.load_state()

        nav.auto_enter()

        assert StateStore(config.state_path).load() == SelectionState(profile="a")

    def test_timeout_keeps_selection(self, config, client, capsys):
        client.get_repository.side_effect = AwsTimeoutError(30)
        nav = _navigator(config, client, SelectionState("a", "svc-a", "p1"))
        nav.load_state()

        nav.auto_enter()

        assert StateStore(config.state_path).load() == SelectionState("a", "svc-a", "p1")
        captured = capsys.readouterr()
        assert "timed out" in captured.err
        assert "Forgetting" not in captured.out

    def test_expired_credentials_keep_selection(self, config, client):
        client.get_pipeline_state.side_effect = AwsCliError(
            "An error occurred (ExpiredTokenException) when calling the "
            "GetPipelineState operation: The security token included in the request is expired",
            255,
        )
        nav = _navigator(config, client, SelectionState(profile="a", pipeline="p1"))
        nav.load_state()

        nav.auto_enter()

        assert StateStore(config.state_path).load() == SelectionState(profile="a", pipeline="p1")


class TestFlows:
    def test_start_reads_state_once(self, config, client, answers):
        answers.append("q")
        nav = _navigator(config, client, SelectionState(profile="a"))
        nav.state_store.load = MagicMock(wraps=nav.state_store.load)

        nav.start()

        nav.state_store.load.assert_called_once_with()

    def test_repository_to_pull_request_commands(self, config, client, answers, capsys):
        answers.extend(["1", "b", "q"])
        nav = _navigator(config, client, SelectionState(profile="sh-dev-pa", repository="svc-a"))

        nav.start()

        out = capsys.readouterr().out
        assert "Repository: svc-a" in out
        assert "--pull-request-id 123" in out
        assert "--revision-id abc123" in out
        assert "--approval-state APPROVE" in out
        assert "merge-pull-request-by-fast-forward" in out
        assert "--profile sh-dev-pa" in out
        assert out.rstrip().endswith("Bye.")
        client.get_repository.assert_called_once()
        assert client.get_repository.call_args[0][0].profile == "sh-dev-pa"

    def test_pipeline_approval_commands(self, config, client, answers, capsys):
        answers.append("q")
        nav = _navigator(config, client, SelectionState(profile="a", pipeline="p1"))

        nav.start()

        out = capsys.readouterr().out
        assert out.count("--token tok-1") == 2
        assert "status=Approved" in out
        assert "status=Rejected" in out

    def test_edit_summaries(self, config, client, answers, capsys):
        answers.extend(["e", "Ship it", "Not yet", "q"])
        nav = _navigator(config, client, SelectionState(profile="a", pipeline="p1"))

        nav.start()

        out = capsys.readouterr().out
        assert 'summary="Ship it",status=Approved' in out
        assert 'summary="Not yet",status=Rejected' in out

    def test_error_returns_to_main_menu(self, config, client, answers, capsys):
        client.list_pipelines.side_effect = AwsCliError("ExpiredToken")
        answers.extend(["3", "q"])
        nav = _navigator(config, client, SelectionState(profile="a"))

        nav.start()

        captured = capsys.readouterr()
        assert "Error: ExpiredToken" in captured.err
        assert "aws-goodies login a" in captured.err
        assert captured.out.count("AWS Goodies") == 2
        client.list_pipelines.assert_called_once()

    def test_invalid_choice_reprompts(self, config, client, answers, capsys):
        answers.extend(["9", "x", "q"])
        nav = _navigator(config, client, SelectionState(profile="a"))

        nav.start()

        assert capsys.readouterr().out.count("Invalid choice.") == 2

    def test_prompts_for_profile_when_none_is_set(self, config, client, answers):
        client.list_profiles.return_value = ["dev", "prod"]
        answers.extend(["2", "q"])
        nav = _navigator(config, client)

        nav.start()

        assert nav.session.profile == "prod"
        assert StateStore(config.state_path).load().profile == "prod"

    def test_clear_cache_from_main_menu(self, config, client, answers):
        answers.extend(["5", "q"])
        nav = _navigator(config, client, SelectionState(profile="a"))
        key = CacheKey("identity", "a")
        nav.cache.set(key, {"Account": "1"})

        nav.start()

        assert nav.cache.get(key) is None
