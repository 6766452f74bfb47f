"""Click CLI group: deploy and profiles commands."""

from __future__ import annotations

import sys

import click

from deploykit.cli import reporting
from deploykit.cli.deploy import handle_fatal_error, resolve_deploy_args, run_deploy
from deploykit.config import ProfileOverrides, get_settings, load_profiles
from deploykit.errors import ConfigError
from deploykit.logging import bind_context, clear_context, configure_logging, verbose_level


@click.group()
def cli() -> None:
    """Deploy a Nuxt app to a PM2-managed host over ssh."""
    configure_logging(get_settings().log_level)


@cli.command()
@click.option("--profile", "-p", type=str, default=None, help="Deploy profile name.")
@click.option("--ssh", "-s", "ssh", type=str, default=None, help="Override SSH connection string.")
@click.option("--remote-dir", "-d", type=str, default=None, help="Override remote app directory.")
@click.option("--build-dir", "-b", type=str, default=None, help="Override local build output.")
@click.option("--env", "-e", "env", type=str, default=None, help="Override PM2 environment.")
@click.option("--pm2-app-name", type=str, default=None, help="Override PM2 app name.")
@click.option(
    "--pm2-restart-mode",
    type=str,
    default=None,
    help='Override PM2 restart mode ("startOrReload" or "reboot").',
)
@click.option("--skip-tests", "-T", is_flag=True, help="Skip the test suite.")
@click.option("--dry-run", "-n", is_flag=True, help="Rsync dry run; skip PM2 and baseline upload.")
@click.option("--skip-build", "-k", is_flag=True, help="Reuse the existing build output.")
@click.option("--verbose", "-V", is_flag=True, help="Stream child process output.")
@click.option("--churn-only", "-c", is_flag=True, help="Only compute client churn metrics.")
@click.option("--json", "json_output", is_flag=True, help="Print churn metrics as JSON.")
def deploy(
    profile: str | None,
    ssh: str | None,
    remote_dir: str | None,
    build_dir: str | None,
    env: str | None,
    pm2_app_name: str | None,
    pm2_restart_mode: str | None,
    skip_tests: bool,
    dry_run: bool,
    skip_build: bool,
    verbose: bool,
    churn_only: bool,
    json_output: bool,
) -> None:
    """Test, build, sync and restart the app described by a profile."""
    if verbose:
        configure_logging(verbose_level(get_settings().log_level))
    overrides = ProfileOverrides(
        ssh_connection_string=ssh,
        remote_dir=remote_dir,
        build_dir=build_dir,
        env=env,
        pm2_app_name=pm2_app_name,
        pm2_restart_mode=pm2_restart_mode,
    )
    args = resolve_deploy_args(
        profile,
        overrides,
        dry_run=dry_run,
        skip_tests=skip_tests,
        skip_build=skip_build,
        verbose=verbose,
        churn_only=churn_only,
        json_output=json_output,
    )
    clear_context()
    bind_context(profile=args.profile_name, dry_run=args.dry_run)
    try:
        run_deploy(args)
    except Exception as exc:
        reporting.unexpected_error(exc, args.profile_name)
        sys.exit(1)


@cli.command("profiles")
def profiles() -> None:
    """List the deploy profiles found in profiles.json."""
    try:
        catalog = load_profiles()
    except ConfigError as exc:
        handle_fatal_error("Configuration", exc, None)
    if catalog.source is not None:
        click.echo(f"source: {catalog.source}")
    for name in catalog.names():
        click.echo(name)


if __name__ == "__main__":
    cli()
