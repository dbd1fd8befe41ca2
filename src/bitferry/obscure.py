"""
Secret obscuring for task vaults.

Vault tokens are rclone-obscured passwords: rclone crypt consumes them
directly, restic gets the revealed plaintext through its environment.
Both directions are delegated to the rclone executable.
"""

from __future__ import annotations

import logging
import subprocess

from .errors import BitferryError

logger = logging.getLogger("bitferry.obscure")


class RcloneObscurer:
    """Obscure/reveal primitive backed by ``rclone obscure`` and ``rclone reveal``."""

    def __init__(self, executable: str = "rclone"):
        self.executable = executable

    def _pipe(self, command: str, text: str) -> str:
        try:
            result = subprocess.run(
                [self.executable, command, "-"],
                input=text,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise BitferryError(f"cannot execute {self.executable}: {exc}") from exc
        if result.returncode != 0:
            raise BitferryError(f"rclone {command} failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def obscure(self, plaintext: str) -> str:
        """Turn a plaintext secret into an opaque vault token."""
        return self._pipe("obscure", plaintext)

    def reveal(self, token: str) -> str:
        """Recover the plaintext secret from a vault token."""
        return self._pipe("reveal", token)
