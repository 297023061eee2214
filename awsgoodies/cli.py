"""
AWS Goodies CLI - browse CodeCommit and CodePipeline from the terminal.

Commands:
    (none)    - Interactive menu (same as `menu`)
    current   - Show current profile and account info (alias: whoami)
    list      - List configured AWS profiles
    switch    - Switch to a different AWS profile
    login     - Login to AWS SSO
    logout    - Logout from AWS SSO
    validate  - Validate credentials for a profile
    table     - Format JSON from stdin as a table
    kv        - Format a JSON object from stdin as key-value pairs
    tree      - Show JSON from stdin as an indented tree
    cache     - Cache maintenance
    init      - Write a sample configuration file
"""

from __future__ import annotations

import json
import os
import sys

import click
from dotenv import load_dotenv

from .config import get_goodies_dir

# Load .env from the current directory, then from the settings directory
load_dotenv()
load_dotenv(get_goodies_dir() / ".env")

from . import __version__
from .aws import AwsCli, AwsCliError, check_dependencies
from .cache import CacheStore
from .config import SAMPLE_CONFIG, GoodiesConfig, ensure_goodies_dir
from .explorer import Explorer
from .formatting import render_kv, render_table, render_tree
from .freshness import freshness_label
from .logs import setup_logging
from .menu import Navigator
from .session import Session, resolve_profile
from .state import StateStore


PROFILE_HELP = """\
Profile naming convention: sh-<account>-<role>
  account: code-base, cicd, service-b, api, data
  role: dev (Developer), pu (PowerUser), do (DevOps-ReadOnly), pa (PullRequest-Approver)
  Example: sh-code-base-pa
"""


def _config() -> GoodiesConfig:
    return click.get_current_context().find_root().obj


def _client(config: GoodiesConfig) -> AwsCli:
    return AwsCli(timeout=config.timeout)


def _cache(config: GoodiesConfig) -> CacheStore:
    return CacheStore(config.cache.path, ttl=config.cache.ttl)


def _navigator(config: GoodiesConfig, load: bool = True) -> Navigator:
    cache = _cache(config)
    client = _client(config)
    navigator = Navigator(
        config=config,
        client=client,
        cache=cache,
        state_store=StateStore(config.state_path),
        explorer=Explorer(client, cache),
        initial_profile=os.environ.get("AWS_PROFILE", ""),
    )
    if load:
        navigator.load_state()
    return navigator


def _require_aws() -> None:
    missing = check_dependencies()
    if missing:
        click.secho(f"Error: Missing required dependencies: {' '.join(missing)}", fg="red", err=True)
        click.secho("Please install the missing tools to use aws-goodies", fg="yellow", err=True)
        sys.exit(1)


def _read_json_input() -> object:
    raw = click.get_text_stream("stdin").read()
    if not raw.strip():
        click.secho("No data to display", fg="yellow")
        sys.exit(0)
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        click.secho("Error: Invalid JSON format", fg="red", err=True)
        sys.exit(1)


def _echo_profiles(client: AwsCli, current: str) -> None:
    profiles = client.list_profiles()
    if not profiles:
        click.secho("No profiles configured", fg="yellow")
        click.secho("Tip: Configure profiles using 'aws configure --profile <name>'", fg="blue")
        sys.exit(1)
    click.secho("Available AWS profiles:", fg="green")
    for profile in profiles:
        if profile == current:
            click.secho(f"  * {profile} (current)", fg="green")
        else:
            click.echo(f"    {profile}")


def _show_identity(navigator: Navigator, refresh: bool) -> bool:
    try:
        fetched = navigator.explorer.identity(navigator.session, refresh=refresh)
    except AwsCliError as e:
        click.secho("Unable to retrieve account information", fg="red", err=True)
        click.secho(f"  {e}", fg="red", err=True)
        click.secho(
            f"Your credentials may have expired. Try: aws-goodies login {navigator.session.profile}",
            fg="yellow",
            err=True,
        )
        return False
    identity = fetched.value
    click.secho(f"Account ID: {identity.account or 'Unknown'}", fg="green")
    click.secho(f"User ARN: {identity.arn or 'Unknown'}", fg="green")
    click.secho(f"User ID: {identity.user_id or 'Unknown'}", fg="green")
    click.secho(f"({freshness_label(fetched.age)})", dim=True)
    return True


def _run_menu() -> None:
    _require_aws()
    config = _config()
    if not config.quiet:
        click.secho(f"AWS Goodies v{__version__} loaded", fg="green", nl=False)
        click.echo(" - Type 'aws-goodies --help' for usage")
    # start() reads the saved state itself
    _navigator(config, load=False).start()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context):
    """AWS Goodies - browse CodeCommit repositories, pull requests and
    CodePipeline executions, with cached responses and ready-to-paste
    approval commands.

    Run without a command to open the interactive menu.

    \b
    Examples:
        aws codecommit list-repositories | aws-goodies table
        aws sts get-caller-identity | aws-goodies kv
        aws codecommit list-pull-requests --repository-name REPO | aws-goodies tree

    \b
    Configuration (environment):
        AWS_TIMEOUT        Timeout for AWS commands (default: 30s)
        CACHE_TTL          Cache duration (default: 300s / 5 minutes)
        AWS_PROFILE_DEBUG  Set to 'true' to enable debug output
        AWS_GOODIES_QUIET  Set to 'true' to hide the startup banner
    """
    config = GoodiesConfig.load()
    setup_logging(debug=config.debug, log_file=config.log_path)
    ctx.obj = config

    if ctx.invoked_subcommand is None:
        _run_menu()


@main.command()
def menu():
    """Open the interactive menu."""
    _run_menu()


@main.command()
@click.option("--refresh", "-r", is_flag=True, help="Refresh cached account information")
def current(refresh: bool):
    """Show current AWS profile and account info."""
    _require_aws()
    navigator = _navigator(_config())
    if not navigator.session.profile:
        click.secho("No AWS profile currently set", fg="yellow")
        click.secho("Tip: Use 'aws-goodies switch <profile>' to set a profile", fg="blue")
        sys.exit(1)

    click.secho(f"Current AWS profile: {navigator.session.profile}", fg="green")
    if not _show_identity(navigator, refresh):
        sys.exit(1)


@main.command()
@click.option("--refresh", "-r", is_flag=True, help="Refresh cached account information")
@click.pass_context
def whoami(ctx: click.Context, refresh: bool):
    """Alias for `current`."""
    ctx.invoke(current, refresh=refresh)


@main.command("list")
def list_profiles():
    """List available AWS profiles."""
    _require_aws()
    navigator = _navigator(_config())
    try:
        _echo_profiles(navigator.client, navigator.session.profile)
    except AwsCliError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@main.command()
@click.argument("profile", required=False)
def switch(profile: str | None):
    """Switch to a different AWS profile."""
    _require_aws()
    navigator = _navigator(_config())

    try:
        if not profile:
            click.secho("Error: Please provide a profile name", fg="red", err=True)
            click.secho("Usage: aws-goodies switch <profile-name>", fg="blue")
            click.echo()
            _echo_profiles(navigator.client, navigator.session.profile)
            sys.exit(1)

        if not navigator.client.profile_exists(profile):
            click.secho(f"Error: Profile '{profile}' not found", fg="red", err=True)
            click.echo()
            _echo_profiles(navigator.client, navigator.session.profile)
            sys.exit(1)
    except AwsCliError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    navigator.change_profile(profile)
    click.secho(f"Switched to profile: {profile}", fg="green")
    click.echo()
    _show_identity(navigator, refresh=False)


def _target_profile(navigator: Navigator, profile: str | None, usage: str) -> str:
    target = resolve_profile(profile, navigator.session.profile)
    if not target:
        click.secho("Error: No profile specified or currently set", fg="red", err=True)
        click.secho(f"Usage: {usage}", fg="blue")
        sys.exit(1)
    return target


@main.command()
@click.argument("profile", required=False)
def login(profile: str | None):
    """Login to AWS SSO."""
    _require_aws()
    navigator = _navigator(_config())
    target = _target_profile(navigator, profile, "aws-goodies login [profile-name]")

    try:
        if not navigator.client.profile_exists(target):
            click.secho(f"Error: Profile '{target}' not found", fg="red", err=True)
            sys.exit(1)
        click.secho(f"Logging in to AWS SSO for profile: {target}", fg="blue")
        navigator.client.sso_login(Session(profile=target))
    except AwsCliError as e:
        click.secho(f"Failed to login to profile: {target} ({e})", fg="red", err=True)
        sys.exit(1)

    navigator.cache.clear()
    click.secho(f"Successfully logged in to profile: {target}", fg="green")
    if navigator.session.profile != target:
        navigator.change_profile(target)
        click.secho(f"Profile set to: {target}", fg="green")


@main.command()
@click.argument("profile", required=False)
def logout(profile: str | None):
    """Logout from AWS SSO."""
    _require_aws()
    navigator = _navigator(_config())
    target = _target_profile(navigator, profile, "aws-goodies logout [profile-name]")

    click.secho(f"Logging out from AWS SSO for profile: {target}", fg="blue")
    try:
        navigator.client.sso_logout(Session(profile=target))
    except AwsCliError as e:
        click.secho(f"Failed to logout from profile: {target} ({e})", fg="red", err=True)
        sys.exit(1)

    navigator.cache.clear()
    click.secho(f"Successfully logged out from profile: {target}", fg="green")


@main.command()
@click.argument("profile", required=False)
def validate(profile: str | None):
    """Validate credentials for a profile."""
    _require_aws()
    navigator = _navigator(_config())
    target = _target_profile(navigator, profile, "aws-goodies validate [profile-name]")

    click.secho(f"Validating credentials for profile: {target}", fg="blue")
    try:
        navigator.client.get_caller_identity(Session(profile=target))
    except AwsCliError:
        click.secho("✗ Credentials are invalid or expired", fg="red")
        click.secho(f"Try running: aws-goodies login {target}", fg="yellow")
        sys.exit(1)
    click.secho("✓ Credentials are valid", fg="green")


@main.command()
def table():
    """Format JSON array output (from stdin) as a table."""
    click.echo(render_table(_read_json_input()))


@main.command()
def kv():
    """Format a JSON object (from stdin) as key-value pairs."""
    try:
        click.echo(render_kv(_read_json_input()))
    except ValueError as e:
        click.secho(str(e), fg="yellow")
        sys.exit(1)


@main.command()
def tree():
    """Show JSON (from stdin) as an indented tree, paged when long."""
    click.echo_via_pager(render_tree(_read_json_input()))


@main.group("cache")
def cache_group():
    """Cache maintenance."""
    pass


@cache_group.command("clear")
@click.option("--profile", default=None, help="Only clear this profile's entries")
def cache_clear(profile: str | None):
    """Delete cached AWS responses."""
    cache = _cache(_config())
    if profile:
        cache.clear_profile(profile)
        click.echo(f"Cache cleared for profile: {profile}")
    else:
        cache.clear()
        click.echo("Cache cleared")


@cache_group.command("path")
def cache_path():
    """Print the cache directory."""
    click.echo(str(_config().cache.path))


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Write a sample configuration file."""
    config = _config()
    ensure_goodies_dir(config.home)
    if config.config_path.exists() and not force:
        click.echo(f"Skipped: {config.config_path} (already exists)")
    else:
        config.config_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
        click.echo(f"Created: {config.config_path}")
    click.echo()
    click.echo(PROFILE_HELP)


if __name__ == "__main__":
    main()
