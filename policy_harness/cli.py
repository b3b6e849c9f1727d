from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click

from .config import HarnessConfig
from .errors import ConfigError, HarnessError, SettingsError, SuiteError, ToolLaunchError, ToolTimeoutError
from .fixture_check import FixtureCheck, parse_admission_response, run_check
from .logging_config import configure_logging
from .rewrite import preview_request
from .settings import load_settings
from .suite import load_suite, run_suite
from .tool_runner import ToolRunner


class InfrastructureFailure(click.ClickException):
    """The tool, policy or an input file is unusable; no verdict was reached."""

    exit_code = 2


@click.group()
@click.option("--config", "config_path", default=None, help="Path to policy-harness.yaml")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """Policy fixture harness CLI."""
    try:
        config = HarnessConfig.load(config_path).override(log_level=log_level)
    except ConfigError as exc:
        raise InfrastructureFailure(str(exc)) from exc
    configure_logging(config.log_level)
    ctx.obj = config


def _runner_config(ctx: click.Context, tool: Optional[str], timeout: Optional[float]) -> HarnessConfig:
    try:
        return ctx.obj.override(tool_path=tool, timeout=timeout)
    except ConfigError as exc:
        raise InfrastructureFailure(str(exc)) from exc


@cli.command("check")
@click.argument("fixture")
@click.option("--policy", default=None, help="Policy artifact (.wasm) to evaluate")
@click.option("--settings", default=None, help="Policy settings file passed to the tool")
@click.option("--tool", default=None, help="Policy evaluation tool (default: kwctl)")
@click.option("--timeout", default=None, type=float, help="Seconds before the tool is killed")
@click.option("--expect-denied", is_flag=True, default=False, help='Expect "allowed":false instead')
@click.pass_context
def check_cmd(
    ctx: click.Context,
    fixture: str,
    policy: Optional[str],
    settings: Optional[str],
    tool: Optional[str],
    timeout: Optional[float],
    expect_denied: bool,
) -> None:
    """Run the tool against one fixture and check its verdict."""
    config = _runner_config(ctx, tool, timeout)
    check = FixtureCheck(
        name=Path(fixture).stem,
        fixture=fixture,
        policy=policy or config.policy_path,
        settings=settings or config.settings_path,
        expect_allowed=not expect_denied,
    )
    try:
        outcome = run_check(
            check,
            tool_path=config.tool_path,
            runner=ToolRunner(default_timeout=config.timeout),
        )
    except ToolTimeoutError as exc:
        if exc.output:
            click.echo(exc.output)
        raise InfrastructureFailure(str(exc)) from exc
    except ToolLaunchError as exc:
        raise InfrastructureFailure(str(exc)) from exc

    response = parse_admission_response(outcome.result.output)
    if response is not None and isinstance(response.get("patch"), list):
        click.echo(f"patch operations: {len(response['patch'])}", err=True)
    if not outcome.passed:
        for failure in outcome.failures:
            click.echo(f"FAIL: {failure}", err=True)
        raise SystemExit(1)
    click.echo(f"PASS: {check.name}", err=True)


@cli.command("suite")
@click.argument("suite_file")
@click.option("--tool", default=None, help="Policy evaluation tool (default: kwctl)")
@click.option("--timeout", default=None, type=float, help="Seconds before the tool is killed")
@click.option("--quiet", is_flag=True, default=False, help="Do not echo tool output")
@click.pass_context
def suite_cmd(ctx: click.Context, suite_file: str, tool: Optional[str], timeout: Optional[float], quiet: bool) -> None:
    """Run every check listed in a YAML suite file."""
    config = _runner_config(ctx, tool, timeout)
    try:
        checks = load_suite(suite_file)
        outcomes = run_suite(
            checks,
            tool_path=config.tool_path,
            runner=ToolRunner(default_timeout=config.timeout),
            echo=None if quiet else click.echo,
        )
    except ToolTimeoutError as exc:
        if exc.output and not quiet:
            click.echo(exc.output)
        raise InfrastructureFailure(str(exc)) from exc
    except (SuiteError, ToolLaunchError) as exc:
        raise InfrastructureFailure(str(exc)) from exc

    for o in outcomes:
        status = "PASS" if o.passed else "FAIL"
        detail = "" if o.passed else f" ({'; '.join(o.failures)})"
        click.echo(f"{status} {o.check.name} [{o.result.duration_ms}ms]{detail}")
    if not all(o.passed for o in outcomes):
        raise SystemExit(1)


@cli.command("rewrite")
@click.argument("fixture")
@click.option("--settings", default=None, help="Policy settings file with the repos mapping")
@click.pass_context
def rewrite_cmd(ctx: click.Context, fixture: str, settings: Optional[str]) -> None:
    """Show the fixture's Pod with images moved to their mirror registries."""
    try:
        loaded = load_settings(settings or ctx.obj.settings_path)
        request_doc = json.loads(Path(fixture).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, SettingsError) as exc:
        raise InfrastructureFailure(str(exc)) from exc
    if not isinstance(request_doc, dict):
        raise InfrastructureFailure(f"{fixture}: expected a JSON object")
    pod = preview_request(request_doc, loaded)
    if pod is None:
        click.echo("fixture object is not a Pod; the policy accepts it unchanged")
        return
    click.echo(json.dumps(pod, indent=2))


@cli.command("validate-settings")
@click.argument("settings_file")
def validate_settings_cmd(settings_file: str) -> None:
    """Load and validate a policy settings file."""
    try:
        settings = load_settings(settings_file)
    except SettingsError as exc:
        raise InfrastructureFailure(str(exc)) from exc
    if not settings.repos:
        click.echo("repos mapping is empty")
    for src, dest in settings.repos.items():
        click.echo(f"{src} -> {dest}")


def main() -> int:
    try:
        rv = cli(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.exceptions.Abort:
        return 1
    except HarnessError as e:
        click.echo(f"Error: {e}", err=True)
        return 2
    except SystemExit as e:
        return int(e.code or 0)
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())
