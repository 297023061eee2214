"""
Interactive navigation for AWS Goodies.

Menus:
    main           -> profiles | repositories | pipelines | identity | cache
    repository     -> open pull requests -> pull request detail + commands
    pipeline       -> stages, recent executions, pending approvals + commands

The last selected profile, repository and pipeline are saved after every
change. On startup a saved repository (or pipeline) is entered directly.
AWS errors are shown and the enclosing menu keeps running.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import click

from .aws import AwsCli, AwsCliError, AwsTimeoutError
from .cache import CacheStore
from .commands import (
    DEFAULT_SUMMARIES,
    SynthesisResult,
    pipeline_approval_commands,
    pull_request_commands,
    render,
)
from .config import GoodiesConfig
from .explorer import Explorer, Fetched
from .freshness import freshness_label
from .models import PipelineState, PullRequest
from .session import Session, resolve_profile
from .state import SelectionState, StateStore

logger = logging.getLogger(__name__)

BACK = "b"
REFRESH = "r"
QUIT = "q"
EDIT = "e"

ACTION_HINTS = {
    BACK: "back",
    REFRESH: "refresh",
    EDIT: "edit approval summary",
    QUIT: "quit",
}

RULE = "─" * 60
DOUBLE_RULE = "═" * 60


class QuitMenu(Exception):
    """The user asked to leave the interactive session."""


def _status_color(status: str) -> str | None:
    return {
        "Succeeded": "green",
        "InProgress": "blue",
        "Failed": "red",
        "Stopped": "yellow",
        "Stopping": "yellow",
        "Superseded": "yellow",
        "Cancelled": "yellow",
        "APPROVE": "green",
        "REVOKE": "yellow",
        "OPEN": "green",
        "CLOSED": "yellow",
    }.get(status)


def _status(status: str) -> str:
    return click.style(status or "-", fg=_status_color(status))


class Navigator:
    """Menu loop over the Explorer, with persisted selections."""

    def __init__(
        self,
        config: GoodiesConfig,
        client: AwsCli,
        cache: CacheStore,
        state_store: StateStore,
        explorer: Explorer | None = None,
        initial_profile: str = "",
    ):
        self.config = config
        self.client = client
        self.cache = cache
        self.state_store = state_store
        self.explorer = explorer or Explorer(client, cache)
        self.initial_profile = initial_profile
        self.state = SelectionState()
        self.session = Session()
        self.summaries: dict[str, str] = dict(DEFAULT_SUMMARIES)

    # Selection changes

    def _save(self, state: SelectionState) -> None:
        self.state = state
        if not self.state_store.save(state):
            logger.debug("selection not persisted; continuing in memory")

    def change_profile(self, profile: str) -> None:
        """Switch profile, dropping repository/pipeline selections.

        Re-selecting the active profile changes nothing.
        """
        old = self.session
        if profile == old.profile:
            return
        if self.config.cache.clear_on_switch:
            self.cache.clear_profile(old.namespace)
        self.session = old.with_profile(profile)
        self._save(self.state.with_profile(profile))

    def select_repository(self, name: str) -> None:
        self._save(self.state.with_repository(name))

    def select_pipeline(self, name: str) -> None:
        self._save(self.state.with_pipeline(name))

    def load_state(self) -> None:
        """Restore the saved selections and build the session from them."""
        self.state = self.state_store.load()
        profile = resolve_profile(self.state.profile, self.initial_profile)
        self.session = Session(profile=profile)
        if profile != self.state.profile:
            self._save(SelectionState(
                profile=profile,
                repository=self.state.repository,
                pipeline=self.state.pipeline,
            ))

    # Entry point

    def start(self) -> None:
        self.load_state()
        try:
            if not self.session.profile:
                self._guard(self.profile_menu)
            self.auto_enter()
            self.main_menu()
        except QuitMenu:
            pass
        click.echo("Bye.")

    def auto_enter(self) -> None:
        """Open the saved repository, or else the saved pipeline.

        A selection is only forgotten when AWS reports it no longer exists.
        """
        if self.state.repository:
            name = self.state.repository
            try:
                self.repository_view(name)
            except AwsCliError as e:
                self._show_error(e)
                if e.is_not_found:
                    click.secho(f"Forgetting repository '{name}'.", fg="yellow")
                    self.select_repository("")
        elif self.state.pipeline:
            name = self.state.pipeline
            try:
                self.pipeline_view(name)
            except AwsCliError as e:
                self._show_error(e)
                if e.is_not_found:
                    click.secho(f"Forgetting pipeline '{name}'.", fg="yellow")
                    self.select_pipeline("")

    # Prompt helpers

    def _guard(self, view: Callable[..., Any], *args: Any) -> bool:
        """Run a view; AWS errors are displayed and swallowed."""
        try:
            view(*args)
            return True
        except AwsCliError as e:
            self._show_error(e)
            return False

    def _show_error(self, error: AwsCliError) -> None:
        click.secho(f"Error: {error}", fg="red", err=True)
        if not isinstance(error, AwsTimeoutError):
            target = self.session.profile or "<profile>"
            click.secho(
                f"Your credentials may have expired. Try: aws-goodies login {target}",
                fg="yellow",
                err=True,
            )

    def _choose(self, options: list[str], actions: tuple[str, ...] = (BACK,)) -> int | str:
        """Prompt for a 1-based option number or an action letter."""
        for i, option in enumerate(options, 1):
            click.echo(f"  {i:>2}) {option}")
        hints = [f"{key}) {ACTION_HINTS[key]}" for key in (*actions, QUIT)]
        click.secho("  " + "  ".join(hints), dim=True)

        while True:
            answer = str(click.prompt("Select", type=str)).strip().lower()
            if answer == QUIT:
                raise QuitMenu()
            if answer in actions:
                return answer
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer) - 1
            click.secho("Invalid choice.", fg="red")

    def _heading(self, title: str, fetched: Fetched[Any] | None = None) -> None:
        click.echo(f"\n{DOUBLE_RULE}")
        line = click.style(title, fg="green", bold=True)
        if fetched is not None:
            line += "  " + click.style(f"({freshness_label(fetched.age)})", dim=True)
        click.echo(line)
        click.echo(DOUBLE_RULE)

    def _echo_commands(self, result: SynthesisResult) -> None:
        for command in result.commands:
            click.secho(f"  # {command.label}", fg="blue")
            click.echo(f"  {render(command)}")
        for shape, reason in result.skipped:
            click.secho(f"  ({shape} command unavailable: {reason})", fg="yellow")

    # Menus

    def main_menu(self) -> None:
        while True:
            self._heading("AWS Goodies")
            click.echo(f"  Profile:    {self.session.profile or '(default credentials)'}")
            if self.state.repository:
                click.echo(f"  Repository: {self.state.repository}")
            if self.state.pipeline:
                click.echo(f"  Pipeline:   {self.state.pipeline}")
            click.echo(RULE)

            choice = self._choose(
                [
                    "Switch profile",
                    "CodeCommit repositories",
                    "CodePipeline pipelines",
                    "Who am I",
                    "Clear cache",
                ],
                actions=(),
            )
            if choice == 0:
                self._guard(self.profile_menu)
            elif choice == 1:
                self._guard(self.repositories_menu)
            elif choice == 2:
                self._guard(self.pipelines_menu)
            elif choice == 3:
                self._guard(self.identity_view)
            elif choice == 4:
                self.cache.clear()
                click.secho("Cache cleared.", fg="green")

    def profile_menu(self) -> None:
        profiles = self.client.list_profiles()
        self._heading("AWS profiles")
        if not profiles:
            click.secho("No profiles configured.", fg="yellow")
            click.echo("Tip: configure one with 'aws configure --profile <name>'")
            return
        labels = [
            f"{p} (current)" if p == self.session.profile else p
            for p in profiles
        ]
        choice = self._choose(labels)
        if isinstance(choice, int):
            self.change_profile(profiles[choice])
            click.secho(f"Switched to profile: {profiles[choice]}", fg="green")

    def identity_view(self, refresh: bool = False) -> None:
        fetched = self.explorer.identity(self.session, refresh=refresh)
        identity = fetched.value
        self._heading(f"Profile: {self.session.profile or '(default)'}", fetched)
        click.echo(f"  Account ID: {identity.account or 'Unknown'}")
        click.echo(f"  User ARN:   {identity.arn or 'Unknown'}")
        click.echo(f"  User ID:    {identity.user_id or 'Unknown'}")

    def repositories_menu(self) -> None:
        refresh = False
        while True:
            fetched = self.explorer.repositories(self.session, refresh=refresh)
            refresh = False
            repos = fetched.value
            self._heading("CodeCommit repositories", fetched)
            if not repos:
                click.secho("No repositories found.", fg="yellow")
            choice = self._choose([r.name for r in repos], actions=(BACK, REFRESH))
            if choice == BACK:
                return
            if choice == REFRESH:
                refresh = True
                continue
            name = repos[choice].name
            self.select_repository(name)
            self._guard(self.repository_view, name)

    def repository_view(self, name: str) -> None:
        """Repository detail. Errors while loading propagate to the caller."""
        info = self.explorer.repository(self.session, name)
        prs = self.explorer.pull_requests(
            self.session, name, limit=self.config.browse.max_pull_requests
        )
        while True:
            repo = info.value
            self._heading(f"Repository: {repo.name or name}", info)
            if repo.description:
                click.echo(f"  {repo.description}")
            click.echo(f"  Default branch: {repo.default_branch or '-'}")
            click.echo(f"  Last modified:  {repo.last_modified or '-'}")
            if repo.clone_url_http:
                click.echo(f"  Clone (HTTPS):  {repo.clone_url_http}")
            if repo.clone_url_ssh:
                click.echo(f"  Clone (SSH):    {repo.clone_url_ssh}")

            click.echo(f"\n  Open pull requests ({freshness_label(prs.age)}):")
            options = []
            for pr in prs.value:
                target = pr.target
                branches = (
                    f"{target.source_branch} -> {target.destination_branch}" if target else ""
                )
                options.append(f"#{pr.pull_request_id} {pr.title[:50]}  [{pr.author}] {branches}")
            if not options:
                click.secho("  None.", dim=True)

            choice = self._choose(options, actions=(BACK, REFRESH))
            if choice == BACK:
                return
            if choice == REFRESH:
                try:
                    info = self.explorer.repository(self.session, name, refresh=True)
                    prs = self.explorer.pull_requests(
                        self.session, name,
                        limit=self.config.browse.max_pull_requests,
                        refresh=True,
                    )
                except AwsCliError as e:
                    self._show_error(e)
                continue
            self._guard(self.pull_request_view, prs.value[choice].pull_request_id)

    def show_pull_request(self, fetched: Fetched[PullRequest]) -> None:
        pr = fetched.value
        self._heading(f"Pull request #{pr.pull_request_id}: {pr.title}", fetched)
        click.echo(f"  Status:   {_status(pr.status)}")
        click.echo(f"  Author:   {pr.author or '-'}")
        click.echo(f"  Created:  {pr.created or '-'}")
        click.echo(f"  Activity: {pr.last_activity or '-'}")
        click.echo(f"  Revision: {pr.revision_id or '-'}")
        for target in pr.targets:
            merged = " (merged)" if target.is_merged else ""
            click.echo(
                f"  {target.repository}: {target.source_branch} -> "
                f"{target.destination_branch}{merged}"
            )
        if pr.description:
            click.echo(f"\n  {pr.description[:500]}")

    def pull_request_view(self, pull_request_id: str) -> None:
        refresh = False
        while True:
            fetched = self.explorer.pull_request(self.session, pull_request_id, refresh=refresh)
            approvals = self.explorer.approvals(self.session, fetched.value, refresh=refresh)
            refresh = False
            self.show_pull_request(fetched)

            click.echo("\n  Approvals:")
            if approvals.value:
                for approval in approvals.value:
                    click.echo(f"    {approval.user}: {_status(approval.state)}")
            else:
                click.secho("    None.", dim=True)

            click.echo(f"\n{RULE}")
            click.echo("  Commands:")
            self._echo_commands(pull_request_commands(fetched.value, self.session))
            click.echo(RULE)

            choice = self._choose([], actions=(BACK, REFRESH))
            if choice == BACK:
                return
            refresh = True

    def pipelines_menu(self) -> None:
        refresh = False
        while True:
            fetched = self.explorer.pipelines(self.session, refresh=refresh)
            refresh = False
            pipelines = fetched.value
            self._heading("CodePipeline pipelines", fetched)
            if not pipelines:
                click.secho("No pipelines found.", fg="yellow")
            choice = self._choose([p.name for p in pipelines], actions=(BACK, REFRESH))
            if choice == BACK:
                return
            if choice == REFRESH:
                refresh = True
                continue
            name = pipelines[choice].name
            self.select_pipeline(name)
            self._guard(self.pipeline_view, name)

    def show_pipeline(self, fetched: Fetched[PipelineState]) -> None:
        state = fetched.value
        self._heading(f"Pipeline: {state.name}", fetched)
        for stage in state.stages:
            click.echo(f"  {stage.name:<24} {_status(stage.status)}")
            for action in stage.actions:
                summary = f"  {action.summary}" if action.summary else ""
                click.echo(f"      {action.name:<20} {_status(action.status)}{summary}")

    def pipeline_view(self, name: str) -> None:
        """Pipeline detail. Errors while loading propagate to the caller."""
        state = self.explorer.pipeline_state(self.session, name)
        executions = self.explorer.pipeline_executions(
            self.session, name, limit=self.config.browse.max_executions
        )
        while True:
            self.show_pipeline(state)

            click.echo(f"\n  Recent executions ({freshness_label(executions.age)}):")
            for execution in executions.value:
                revision = execution.source_revisions[0] if execution.source_revisions else None
                detail = f"{revision.short_id} {revision.summary[:40]}" if revision else ""
                click.echo(
                    f"    {execution.execution_id[:8]}  {_status(execution.status):<10}  "
                    f"{execution.started or '-'}  {detail}"
                )
            if not executions.value:
                click.secho("    None.", dim=True)

            pending = state.value.pending_approvals()
            actions: tuple[str, ...] = (BACK, REFRESH)
            if pending:
                actions = (BACK, REFRESH, EDIT)
                click.echo(f"\n{RULE}")
                click.echo("  Pending approvals:")
                for approval in pending:
                    result = pipeline_approval_commands(approval, self.session, self.summaries)
                    self._echo_commands(result)
                click.echo(RULE)

            choice = self._choose([], actions=actions)
            if choice == BACK:
                return
            if choice == EDIT:
                for status, default in list(self.summaries.items()):
                    self.summaries[status] = click.prompt(
                        f"{status} summary", default=default, type=str
                    )
                continue
            try:
                state = self.explorer.pipeline_state(self.session, name, refresh=True)
                executions = self.explorer.pipeline_executions(
                    self.session, name,
                    limit=self.config.browse.max_executions,
                    refresh=True,
                )
            except AwsCliError as e:
                self._show_error(e)
