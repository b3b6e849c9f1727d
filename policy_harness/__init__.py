"""Policy fixture harness.

Runs a policy evaluation tool (kwctl) against request fixtures and checks the
verdict it prints. Also carries the data rules of the registry mirror policy
under test:
- Image reference parsing and normalisation
- The ``repos`` settings mapping
- An offline preview of the registry rewrite
"""

from .errors import CheckFailed, HarnessError, ToolLaunchError, ToolTimeoutError
from .tool_runner import InvocationResult, ToolRunner
from .fixture_check import (
    ALLOWED_MARKER,
    DENIED_MARKER,
    CheckOutcome,
    FixtureCheck,
    assert_outcome,
    run_check,
    run_fixture_check,
)
from .image_ref import ImageRef
from .settings import Settings, load_settings
from .rewrite import preview_request, rewrite_image, rewrite_pod
from .suite import load_suite, run_suite
from .config import HarnessConfig

__all__ = [
    "ALLOWED_MARKER",
    "DENIED_MARKER",
    "CheckFailed",
    "CheckOutcome",
    "FixtureCheck",
    "HarnessConfig",
    "HarnessError",
    "ImageRef",
    "InvocationResult",
    "Settings",
    "ToolLaunchError",
    "ToolRunner",
    "ToolTimeoutError",
    "assert_outcome",
    "load_settings",
    "load_suite",
    "preview_request",
    "rewrite_image",
    "rewrite_pod",
    "run_check",
    "run_fixture_check",
    "run_suite",
]

__version__ = "0.1.0"
