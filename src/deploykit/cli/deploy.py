"""Deploy command phases and their exit semantics.

Configuration, tests, build, sync and churn-only failures are fatal (exit 1).
PM2 failures are reported but non-fatal, except an unknown app name. Churn
failures during a full deploy are non-fatal.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import NoReturn

from deploykit.churn.local import client_asset_root
from deploykit.churn.service import RemoteTarget, compute_client_churn
from deploykit.cli import reporting
from deploykit.config import (
    ProfileCatalog,
    ProfileOverrides,
    ResolvedProfile,
    apply_overrides,
    load_profiles,
)
from deploykit.errors import (
    BuildError,
    ChurnError,
    ConfigError,
    Pm2Error,
    SyncError,
    TestRunError,
)
from deploykit.process import OutputOptions
from deploykit.steps.build import BuildCommand, BuildOptions, run_build
from deploykit.steps.pm2 import Pm2Options, update_pm2_app
from deploykit.steps.sync import SyncOptions, sync_build
from deploykit.steps.testsuite import TestOptions, run_tests

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DeployArgs:
    profile: ResolvedProfile
    dry_run: bool = False
    skip_tests: bool = False
    skip_build: bool = False
    verbose: bool = False
    churn_only: bool = False
    json_output: bool = False

    @property
    def profile_name(self) -> str:
        return self.profile.name

    def output(self) -> OutputOptions:
        return OutputOptions.for_verbosity(self.verbose)


def handle_fatal_error(label: str, err: BaseException, profile_name: str | None) -> NoReturn:
    reporting.fatal_error(label, err, profile_name)
    sys.exit(1)


def select_profile(
    catalog: ProfileCatalog, requested: str | None, *, verbose: bool = False
) -> ResolvedProfile:
    if not catalog.names():
        raise ConfigError(
            "No deploy profiles are configured; aborting.", code="CONFIG_PROFILE_FILE_NOT_FOUND"
        )
    if not requested:
        raise ConfigError(
            "Please choose a deploy profile with --profile/-p; no default profile is applied.",
            code="CONFIG_PROFILE_NOT_FOUND",
        )
    resolved = catalog.resolve(requested)
    if verbose:
        reporting.phase_success(f'Using profile "{requested}" from profiles.json')
    return resolved


def resolve_deploy_args(
    requested: str | None,
    overrides: ProfileOverrides,
    *,
    dry_run: bool = False,
    skip_tests: bool = False,
    skip_build: bool = False,
    verbose: bool = False,
    churn_only: bool = False,
    json_output: bool = False,
    loader: Callable[[], ProfileCatalog] = load_profiles,
) -> DeployArgs:
    try:
        resolved = select_profile(loader(), requested, verbose=verbose)
        merged = apply_overrides(resolved, overrides)
    except ConfigError as exc:
        handle_fatal_error("Configuration", exc, requested)
    return DeployArgs(
        profile=merged,
        dry_run=dry_run,
        skip_tests=skip_tests,
        skip_build=skip_build,
        verbose=verbose,
        churn_only=churn_only,
        json_output=json_output,
    )


def run_test_phase(args: DeployArgs) -> None:
    reporting.phase_start("Running test suite")
    if args.skip_tests:
        reporting.phase_success("Test suite skipped (per --skip-tests / -T).")
        return
    options = TestOptions(
        command=args.profile.test_command, args=args.profile.test_args, output=args.output()
    )
    try:
        run_tests(options)
    except TestRunError as exc:
        handle_fatal_error("Tests", exc, args.profile_name)
    reporting.phase_success("Test suite completed successfully.")


def run_build_phase(args: DeployArgs) -> None:
    reporting.phase_start("Running application build")
    if args.skip_build:
        reporting.phase_success("Build skipped (per --skip-build / -k).")
        return
    command = BuildCommand(args.profile.build_command, args.profile.build_args)
    try:
        run_build(command, BuildOptions(output=args.output()))
    except BuildError as exc:
        handle_fatal_error("Build", exc, args.profile_name)
    reporting.phase_success("Build completed successfully.")


def run_sync_phase(args: DeployArgs) -> None:
    reporting.phase_start("Syncing client bundle to server")
    options = SyncOptions(
        ssh_connection_string=args.profile.ssh_connection_string,
        remote_dir=args.profile.remote_dir,
        local_output_dir=args.profile.build_dir,
        dry_run=args.dry_run,
        output=args.output(),
    )
    try:
        sync_build(options)
    except SyncError as exc:
        handle_fatal_error("Build sync", exc, args.profile_name)
    reporting.phase_success("Client bundle sync complete.")


def run_pm2_phase(args: DeployArgs) -> None:
    profile = args.profile
    reporting.phase_start(f'Updating PM2 app "{profile.pm2_app_name}"')
    if args.dry_run:
        reporting.phase_success("PM2 update complete: skipped.")
        return
    options = Pm2Options(
        ssh_connection_string=profile.ssh_connection_string,
        remote_dir=profile.remote_dir,
        app_name=profile.pm2_app_name,
        env=profile.env,
        restart_mode=profile.pm2_restart_mode,
        output=args.output(),
    )
    try:
        result = update_pm2_app(options)
    except Pm2Error as exc:
        if exc.code == "PM2_APP_NAME_NOT_FOUND":
            handle_fatal_error("PM2 update", exc, args.profile_name)
        reporting.non_fatal_error("PM2 update", exc, args.profile_name)
        return
    reporting.pm2_success(profile.pm2_app_name, profile.pm2_restart_mode, result.instance_count)


def run_churn_phase(args: DeployArgs, *, fatal: bool = False) -> None:
    reporting.phase_start("Computing client churn metrics")
    target = RemoteTarget(
        ssh_connection_string=args.profile.ssh_connection_string,
        remote_dir=args.profile.remote_dir,
    )
    try:
        metrics = compute_client_churn(
            client_asset_root(args.profile.build_dir), target, upload_baseline=not args.dry_run
        )
    except ChurnError as exc:
        if fatal:
            handle_fatal_error("Client churn", exc, args.profile_name)
        reporting.non_fatal_error("Client churn", exc, args.profile_name)
        return
    reporting.churn_summary(metrics, dry_run=args.dry_run)
    if args.json_output:
        reporting.raw(json.dumps(metrics.to_dict(), indent=2))
    reporting.phase_success("Client churn analysis complete.")


def run_churn_only(args: DeployArgs) -> None:
    reporting.churn_only_start(args.profile_name)
    run_churn_phase(args, fatal=True)
    reporting.churn_only_success(args.profile_name)


def run_deploy(args: DeployArgs) -> None:
    if args.churn_only:
        run_churn_only(args)
        return
    reporting.deploy_start(args.profile_name)
    run_test_phase(args)
    run_build_phase(args)
    run_sync_phase(args)
    run_pm2_phase(args)
    run_churn_phase(args)
    reporting.deploy_success(args.profile_name)
