"""
Utilities for working with CLI in tests.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

# Корень репозитория: pcache импортируется без установки пакета
REPO_ROOT = Path(__file__).resolve().parents[2]


def run_cli(root: Path, *args: str, env_extra: dict | None = None) -> subprocess.CompletedProcess:
    """
    Runs pcache.cli with specified arguments in the given directory.

    Args:
        root: Working directory for command execution
        *args: Command line arguments for pcache.cli
        env_extra: Additional environment variables

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env.pop("PC_CACHE", None)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    if env_extra:
        env.update(env_extra)
    return subprocess.run(
        [sys.executable, "-m", "pcache.cli", *args],
        cwd=root, env=env, capture_output=True, text=True, encoding="utf-8"
    )


def jload(s: str):
    """Parses JSON output of the CLI."""
    return json.loads(s)
