from __future__ import annotations

from typing import Optional


class HarnessError(Exception):
    """Base class for every error raised by the harness."""


class ToolLaunchError(HarnessError):
    """The external tool or its inputs are unusable. Fatal to the check."""

    def __init__(self, message: str, *, argv: Optional[list] = None):
        super().__init__(message)
        self.argv = list(argv or [])


class ToolTimeoutError(ToolLaunchError):
    def __init__(self, message: str, *, argv: Optional[list] = None, output: str = ""):
        super().__init__(message, argv=argv)
        self.output = output


class CheckFailed(AssertionError):
    """A check ran but its assertions did not hold.

    The captured tool output is kept on the exception so test reports show it.
    """

    def __init__(self, message: str, *, output: str = ""):
        super().__init__(f"{message}\n--- captured output ---\n{output}" if output else message)
        self.output = output


class SettingsError(HarnessError):
    pass


class SuiteError(HarnessError):
    pass


class ConfigError(HarnessError):
    pass
