from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import click

from .errors import CheckFailed, ToolLaunchError
from .tool_runner import DEFAULT_TIMEOUT, InvocationResult, ToolRunner

logger = logging.getLogger(__name__)

ALLOWED_MARKER = '"allowed":true'
DENIED_MARKER = '"allowed":false'

DEFAULT_TOOL = "kwctl"
DEFAULT_POLICY = "annotated-policy.wasm"


def _require_readable(path: str, what: str) -> None:
    if not os.path.isfile(path) or not os.access(path, os.R_OK):
        raise ToolLaunchError(f"{what} not found or unreadable: {path}")


def _build_argv(tool_path: str, args: Sequence[str], fixture_path: str) -> List[str]:
    return [str(tool_path), "run", "--request-path", str(fixture_path), *[str(a) for a in args]]


def run_fixture_check(
    tool_path: str,
    args: Sequence[str],
    fixture_path: str,
    *,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    runner: Optional[ToolRunner] = None,
) -> Tuple[int, str]:
    """Run ``<tool> run --request-path <fixture> <args...>`` once.

    Returns the exit status and the combined stdout/stderr text. Raises
    ToolLaunchError when the fixture is missing or the tool cannot be started.
    """
    _require_readable(str(fixture_path), "fixture")
    runner = runner or ToolRunner(default_timeout=timeout)
    result = runner.run(_build_argv(tool_path, args, fixture_path), timeout=timeout)
    return result.exit_code, result.output


@dataclass
class FixtureCheck:
    name: str
    fixture: str
    policy: str = DEFAULT_POLICY
    settings: Optional[str] = None
    expect_allowed: bool = True

    @property
    def marker(self) -> str:
        return ALLOWED_MARKER if self.expect_allowed else DENIED_MARKER

    def tool_args(self) -> List[str]:
        args: List[str] = []
        if self.settings:
            args += ["--settings-path", str(self.settings)]
        args.append(str(self.policy))
        return args

    def command(self, tool_path: str = DEFAULT_TOOL) -> List[str]:
        return _build_argv(tool_path, self.tool_args(), self.fixture)


@dataclass
class CheckOutcome:
    check: FixtureCheck
    result: InvocationResult
    failures: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures


def evaluate_result(check: FixtureCheck, result: InvocationResult) -> List[str]:
    failures: List[str] = []
    if result.exit_code != 0:
        failures.append(f"expected exit status 0, got {result.exit_code}")
    if check.marker not in result.output:
        failures.append(f"expected output to contain {check.marker}")
    return failures


def run_check(
    check: FixtureCheck,
    *,
    tool_path: str = DEFAULT_TOOL,
    runner: Optional[ToolRunner] = None,
    timeout: Optional[float] = None,
    echo: Optional[Callable[[str], None]] = click.echo,
) -> CheckOutcome:
    _require_readable(str(check.fixture), "fixture")
    if "://" not in str(check.policy):
        _require_readable(str(check.policy), "policy artifact")
    if check.settings:
        _require_readable(str(check.settings), "settings file")

    runner = runner or ToolRunner()
    logger.info("check %r: %s", check.name, " ".join(check.command(tool_path)))
    result = runner.run(check.command(tool_path), timeout=timeout)
    if echo is not None:
        echo(result.output)
    outcome = CheckOutcome(check=check, result=result, failures=evaluate_result(check, result))
    if outcome.passed:
        logger.info("check %r passed in %dms", check.name, result.duration_ms)
    else:
        logger.warning("check %r failed: %s", check.name, "; ".join(outcome.failures))
    return outcome


def assert_outcome(outcome: CheckOutcome) -> None:
    if outcome.failures:
        raise CheckFailed(
            f"check {outcome.check.name!r} failed: " + "; ".join(outcome.failures),
            output=outcome.result.output,
        )


def parse_admission_response(output: str) -> Optional[dict]:
    """Return the last JSON object printed by the tool, if any.

    A base64 ``patch`` field is decoded into the JSON Patch operations it
    carries. Log lines and other noise around the response are ignored.
    """
    for line in reversed(output.splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        patch = data.get("patch")
        if isinstance(patch, str):
            try:
                data["patch"] = json.loads(base64.b64decode(patch))
            except (binascii.Error, ValueError):
                logger.warning("response patch is not base64 encoded JSON; leaving it as is")
        return data
    return None

