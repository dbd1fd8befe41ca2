"""
External tool invocation.

Tasks hand a fully resolved command line (and optionally extra
environment) to the executor. The only thing bitferry needs back is
whether the tool succeeded.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
from typing import Optional

logger = logging.getLogger("bitferry.executor")

_SECRET = re.compile(r"(password2?=)[^,:]+")


def redact(argv: list[str]) -> str:
    """Render a command line for logging with crypt passwords masked."""
    return _SECRET.sub(r"\1***", shlex.join(argv))


class Executor:
    """Runs external programs synchronously."""

    def run(
        self,
        argv: list[str],
        env: Optional[dict[str, str]] = None,
        cwd: Optional[str] = None,
        quiet: bool = False,
    ) -> bool:
        """Run a program to completion.

        Args:
            argv: Program and arguments.
            env: Extra environment variables on top of the current ones.
            cwd: Working directory.
            quiet: Capture output instead of passing it through, and do
                not log a failure (used for probes).

        Returns:
            True if the program exited with status 0.
        """
        logger.info("Executing %s", redact(argv))
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)
        try:
            result = subprocess.run(
                argv,
                env=full_env,
                cwd=cwd,
                capture_output=quiet,
                check=False,
            )
        except OSError as exc:
            logger.error("Cannot execute %s: %s", argv[0], exc)
            return False
        if result.returncode != 0 and not quiet:
            logger.error("%s exited with status %d", argv[0], result.returncode)
        return result.returncode == 0
