from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import SettingsError

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Settings of the mirror policy: source registry prefix -> mirror prefix."""

    repos: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "Settings":
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise SettingsError(f"settings must be a mapping, got {type(raw).__name__}")
        repos = raw.get("repos") or {}
        if not isinstance(repos, Mapping):
            raise SettingsError("'repos' must be a mapping of source to mirror")
        for src, dest in repos.items():
            if not isinstance(src, str) or not isinstance(dest, str):
                raise SettingsError(f"repos entry {src!r}: {dest!r} must map a string to a string")
        return cls(repos=dict(repos))

    def validate(self) -> None:
        logger.info("starting settings validation")
        if not self.repos:
            logger.info("mapping of repos is empty, skipping")

    def to_dict(self) -> Dict[str, Any]:
        return {"repos": dict(self.repos)}


def load_settings(path: Optional[str]) -> Settings:
    """Load settings from a YAML or JSON file. No path or an empty file gives defaults."""
    if not path:
        return Settings()
    p = Path(path)
    if not p.exists():
        raise SettingsError(f"settings file not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SettingsError(f"cannot read settings file {p}: {exc}") from exc
    try:
        if p.suffix == ".json":
            raw = json.loads(text) if text.strip() else None
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SettingsError(f"cannot parse settings file {p}: {exc}") from exc
    settings = Settings.from_mapping(raw)
    settings.validate()
    return settings


def dump_settings(settings: Settings, path: str) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(settings.to_dict(), f, sort_keys=False)
    return p
