from __future__ import annotations

import pytest

from awsgoodies.commands import (
    APPROVAL_STATE_SHAPE,
    MERGE_SHAPE,
    PIPELINE_APPROVAL_SHAPE,
    CommandDescriptor,
    approval_result_value,
    approval_state_commands,
    merge_command,
    pipeline_approval_commands,
    pull_request_commands,
    render,
)
from awsgoodies.models import PendingApproval, PullRequest, PullRequestTarget
from awsgoodies.session import Session


def _pr(**kwargs) -> PullRequest:
    defaults = {
        "pull_request_id": "123",
        "revision_id": "abc123",
        "title": "Add feature",
        "targets": [
            PullRequestTarget(
                repository="svc-a",
                source_reference="refs/heads/feature/x",
                destination_reference="refs/heads/main",
                source_commit="f00dfeed",
            )
        ],
    }
    defaults.update(kwargs)
    return PullRequest(**defaults)


def _approval(**kwargs) -> PendingApproval:
    defaults = {
        "pipeline": "p1",
        "stage": "Approve",
        "action": "ManualApproval",
        "token": "tok-1",
    }
    defaults.update(kwargs)
    return PendingApproval(**defaults)


class TestRender:
    def test_render_joins_operation_and_params(self):
        command = CommandDescriptor(
            operation=("codecommit", "get-pull-request"),
            params=(("--pull-request-id", "123"),),
        )
        assert render(command) == "aws codecommit get-pull-request --pull-request-id 123"

    def test_render_quotes_values(self):
        command = CommandDescriptor(
            operation=("codepipeline", "put-approval-result"),
            params=(("--result", 'summary="ok",status=Approved'),),
        )
        assert render(command).endswith("""--result 'summary="ok",status=Approved'""")

    def test_param_lookup(self):
        command = CommandDescriptor(operation=("x",), params=(("--a", "1"),))
        assert command.param("--a") == "1"
        assert command.param("--b") is None


class TestApprovalState:
    def test_approve_and_revoke_include_ids(self):
        result = approval_state_commands(_pr())

        rendered = result.rendered()
        assert len(rendered) == 2
        for line in rendered:
            assert line.startswith("aws codecommit update-pull-request-approval-state")
            assert "--pull-request-id 123" in line
            assert "--revision-id abc123" in line
        assert "--approval-state APPROVE" in rendered[0]
        assert "--approval-state REVOKE" in rendered[1]
        assert result.skipped == []

    def test_decoded_record_with_numeric_id(self):
        pr = PullRequest.from_api({"id": 123, "revisionId": "abc123"})
        line = approval_state_commands(pr).rendered()[0]
        assert "--pull-request-id 123" in line
        assert "--revision-id abc123" in line

    def test_missing_revision_produces_no_commands(self):
        result = approval_state_commands(_pr(revision_id=""))

        assert result.commands == []
        assert result.skipped == [(APPROVAL_STATE_SHAPE, "missing revision id")]

    def test_missing_id_produces_no_commands(self):
        result = approval_state_commands(_pr(pull_request_id="", revision_id=""))
        assert result.commands == []
        assert result.skipped[0][1] == "missing pull request id, revision id"

    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            approval_state_commands(_pr(), states=("MAYBE",))

    def test_profile_is_appended(self):
        line = approval_state_commands(_pr(), Session("sh-dev-pa")).rendered()[0]
        assert line.endswith("--profile sh-dev-pa")


class TestMerge:
    def test_merge_command(self):
        result = merge_command(_pr())

        command = result.commands[0]
        assert command.operation == ("codecommit", "merge-pull-request-by-fast-forward")
        assert command.param("--repository-name") == "svc-a"
        assert command.param("--source-commit-id") == "f00dfeed"
        assert command.label == "Merge feature/x into main (fast-forward)"

    def test_merge_without_target_is_skipped(self):
        result = merge_command(_pr(targets=[]))
        assert result.commands == []
        assert result.skipped[0][0] == MERGE_SHAPE

    def test_pull_request_commands_without_revision_still_offer_merge(self):
        result = pull_request_commands(_pr(revision_id=""))

        operations = [c.operation[1] for c in result.commands]
        assert "update-pull-request-approval-state" not in operations
        assert operations == ["merge-pull-request-by-fast-forward"]

    def test_already_merged_skips_merge(self):
        target = PullRequestTarget(repository="svc-a", is_merged=True)
        result = pull_request_commands(_pr(targets=[target]))

        assert len(result.commands) == 2
        assert (MERGE_SHAPE, "already merged") in result.skipped


class TestPipelineApproval:
    def test_approved_and_rejected_share_everything_but_the_result(self):
        result = pipeline_approval_commands(_approval())

        approved, rejected = result.commands
        assert approved.param("--token") == "tok-1"
        assert rejected.param("--token") == "tok-1"
        assert "--token tok-1" in render(approved)
        assert "--token tok-1" in render(rejected)

        strip = lambda c: [p for p in c.params if p[0] != "--result"]
        assert strip(approved) == strip(rejected)
        assert approved.param("--result") == 'summary="Approved via aws-goodies",status=Approved'
        assert rejected.param("--result") == 'summary="Rejected via aws-goodies",status=Rejected'

    def test_rendered_shape(self):
        line = render(pipeline_approval_commands(_approval()).commands[0])
        assert line.startswith(
            "aws codepipeline put-approval-result --pipeline-name p1 "
            "--stage-name Approve --action-name ManualApproval --result "
        )

    def test_missing_token_is_skipped(self):
        result = pipeline_approval_commands(_approval(token=""))
        assert result.commands == []
        assert result.skipped == [(PIPELINE_APPROVAL_SHAPE, "missing approval token")]

    def test_custom_summaries(self):
        result = pipeline_approval_commands(
            _approval(), summaries={"Rejected": 'Needs "work"'}
        )
        assert result.commands[1].param("--result") == "summary=\"Needs 'work'\",status=Rejected"
        assert "Approved via aws-goodies" in result.commands[0].param("--result")


def test_approval_result_value():
    assert approval_result_value("Approved", "LGTM") == 'summary="LGTM",status=Approved'
