"""
Bitferry: file synchronization/backup automation.

Keeps a durable description of where data lives (volumes) and what
should run against it (tasks). The heavy lifting is done by rclone
and restic; bitferry only tracks, persists and dispatches.
"""

import os

__version__ = "0.1.0"

BITFERRY_HOME = os.environ.get("BITFERRY_HOME", "~/.config/bitferry")
