"""Common utilities for node commissioning."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    cwd: Optional[Path] = None,
    timeout: int = 600,
    capture: bool = True,
    env: Optional[dict] = None
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            check=False  # We handle return codes explicitly
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, '', f'Command timed out after {timeout}s'
    except OSError as e:
        return -1, '', str(e)


def split_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated string, dropping blanks and duplicates.

    Order of first appearance is kept so command lines stay stable.
    """
    if not value:
        return []
    items: list[str] = []
    for item in value.split(','):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items


def parse_key_values(pairs: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE strings into a dict.

    Raises:
        ValueError: If an item has no '=' or an empty key
    """
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got: {pair!r}")
        result[key] = value
    return result
