from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import ToolLaunchError, ToolTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


@dataclass
class InvocationResult:
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    argv: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, the text markers are searched in."""
        if self.stdout and self.stderr:
            sep = "" if self.stdout.endswith("\n") else "\n"
            return f"{self.stdout}{sep}{self.stderr}"
        return self.stdout or self.stderr


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class ToolRunner:
    """Run an external executable and capture what it prints.

    Commands are argv lists and never go through a shell. A non-zero exit is
    reported in the result; only failing to start the process, or running past
    the timeout, raises.
    """

    def __init__(self, cwd: Optional[str] = None, default_timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.default_cwd = cwd or os.getcwd()
        self.default_timeout = default_timeout

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: Optional[float] = None,
    ) -> InvocationResult:
        argv = [str(a) for a in argv]
        if not argv:
            raise ToolLaunchError("empty command")
        effective_cwd = self.default_cwd
        effective_timeout = timeout if timeout is not None else self.default_timeout

        logger.debug("running %s (cwd=%s, timeout=%s)", argv, effective_cwd, effective_timeout)
        start_time = time.time()
        try:
            completed = subprocess.run(
                argv,
                cwd=effective_cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=effective_timeout,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.TimeoutExpired as exc:
            partial = _decode(exc.stdout) + _decode(exc.stderr)
            raise ToolTimeoutError(
                f"{argv[0]} did not finish within {effective_timeout}s", argv=argv, output=partial
            ) from exc
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            raise ToolLaunchError(f"cannot launch {argv[0]}: {exc}", argv=argv) from exc

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug("%s exited with %d after %dms", argv[0], completed.returncode, duration_ms)
        return InvocationResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration_ms=duration_ms,
            argv=argv,
        )
