from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .fixture_check import DEFAULT_POLICY, DEFAULT_TOOL
from .tool_runner import DEFAULT_TIMEOUT

CONFIG_FILE_NAME = "policy-harness.yaml"

ENV_TOOL = "POLICY_HARNESS_TOOL"
ENV_POLICY = "POLICY_HARNESS_POLICY"
ENV_SETTINGS = "POLICY_HARNESS_SETTINGS"
ENV_TIMEOUT = "POLICY_HARNESS_TIMEOUT"
ENV_LOG_LEVEL = "POLICY_HARNESS_LOG_LEVEL"


def _parse_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout must be a number of seconds, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {value!r}")
    return timeout


@dataclass
class HarnessConfig:
    """Where the tool and policy live and how long a check may run.

    Values come from, lowest to highest precedence: defaults, a
    ``policy-harness.yaml`` file, ``POLICY_HARNESS_*`` environment variables,
    and finally CLI options applied with :meth:`override`.
    """

    tool_path: str = DEFAULT_TOOL
    policy_path: str = DEFAULT_POLICY
    settings_path: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "WARNING"

    def override(self, **values: Any) -> "HarnessConfig":
        changes = {k: v for k, v in values.items() if v is not None}
        if "timeout" in changes:
            changes["timeout"] = _parse_timeout(changes["timeout"])
        return replace(self, **changes)

    @classmethod
    def from_file(cls, path: str) -> "HarnessConfig":
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"cannot read config file {p}: {exc}") from exc
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse config file {p}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{p}: expected a mapping")
        known = {"tool_path", "policy_path", "settings_path", "timeout", "log_level"}
        unknown = set(raw) - known
        if unknown:
            raise ConfigError(f"{p}: unknown keys {sorted(unknown)}")
        return cls().override(**raw)

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> "HarnessConfig":
        env = os.environ if environ is None else environ
        return self.override(
            tool_path=env.get(ENV_TOOL) or None,
            policy_path=env.get(ENV_POLICY) or None,
            settings_path=env.get(ENV_SETTINGS) or None,
            timeout=env.get(ENV_TIMEOUT) or None,
            log_level=env.get(ENV_LOG_LEVEL) or None,
        )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "HarnessConfig":
        return cls().with_env(environ)

    @classmethod
    def load(cls, path: Optional[str] = None, *, cwd: Optional[str] = None) -> "HarnessConfig":
        if path is None:
            candidate = Path(cwd or os.getcwd()) / CONFIG_FILE_NAME
            path = str(candidate) if candidate.exists() else None
        elif not Path(path).exists():
            raise ConfigError(f"config file not found: {path}")
        base = cls.from_file(path) if path else cls()
        return base.with_env()
