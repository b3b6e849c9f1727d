from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click
import yaml

from .errors import SuiteError
from .fixture_check import DEFAULT_POLICY, DEFAULT_TOOL, CheckOutcome, FixtureCheck, run_check
from .tool_runner import ToolRunner

logger = logging.getLogger(__name__)


def _resolve(path: Optional[str], base: Path) -> Optional[str]:
    if not path:
        return None
    if "://" in path or Path(path).is_absolute():
        return path
    return str(base / path)


def _string(raw: Dict[str, Any], key: str, where: object) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise SuiteError(f"{where}: {key} must be a string, got {value!r}")
    return value


def load_suite(path: str) -> List[FixtureCheck]:
    """Load the checks listed in a YAML suite file.

    Relative paths are taken relative to the suite file. ``policy`` and
    ``settings`` may be given once at the top and overridden per check.
    """
    suite_path = Path(path)
    if not suite_path.exists():
        raise SuiteError(f"suite file not found: {suite_path}")
    try:
        text = suite_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SuiteError(f"cannot read suite file {suite_path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise SuiteError(f"cannot parse suite file {suite_path}: {exc}") from exc
    if not isinstance(raw, dict) or not isinstance(raw.get("checks"), list):
        raise SuiteError(f"{suite_path}: expected a mapping with a 'checks' list")

    base = suite_path.resolve().parent
    default_policy = _string(raw, "policy", suite_path) or DEFAULT_POLICY
    default_settings = _string(raw, "settings", suite_path)

    checks: List[FixtureCheck] = []
    for i, entry in enumerate(raw["checks"]):
        where = f"{suite_path}: check #{i + 1}"
        if not isinstance(entry, dict) or not entry.get("fixture"):
            raise SuiteError(f"{where} has no fixture")
        expect_allowed = entry.get("expect_allowed", True)
        if not isinstance(expect_allowed, bool):
            raise SuiteError(f"{where}: expect_allowed must be true or false, got {expect_allowed!r}")
        checks.append(
            FixtureCheck(
                name=str(entry.get("name") or entry["fixture"]),
                fixture=_resolve(_string(entry, "fixture", where), base),
                policy=_resolve(_string(entry, "policy", where) or default_policy, base),
                settings=_resolve(_string(entry, "settings", where) or default_settings, base),
                expect_allowed=expect_allowed,
            )
        )
    return checks


def run_suite(
    checks: List[FixtureCheck],
    *,
    tool_path: str = DEFAULT_TOOL,
    runner: Optional[ToolRunner] = None,
    timeout: Optional[float] = None,
    echo: Optional[Callable[[str], None]] = click.echo,
) -> List[CheckOutcome]:
    runner = runner or ToolRunner()
    outcomes = [run_check(c, tool_path=tool_path, runner=runner, timeout=timeout, echo=echo) for c in checks]
    failed = sum(1 for o in outcomes if not o.passed)
    logger.info("suite finished: %d passed, %d failed", len(outcomes) - failed, failed)
    return outcomes


def summarize(outcomes: List[CheckOutcome]) -> List[Dict[str, Any]]:
    return [
        {
            "name": o.check.name,
            "passed": o.passed,
            "exit_code": o.result.exit_code,
            "duration_ms": o.result.duration_ms,
            "failures": o.failures,
        }
        for o in outcomes
    ]
