"""
Configuration loader for SpecFlow.

Settings come from an optional specflow.env file in the data directory,
then from the process environment, which wins.

  SPECFLOW_DATA_DIR       where snapshots live (default ~/.specflow)
  SPECFLOW_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR (default WARNING)
  SPECFLOW_DUE_SOON_DAYS  window for the due-soon view (default 3)
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from specflow.lib.constants import DUE_SOON_DAYS

logger = logging.getLogger(__name__)

ENV_FILE_NAME = "specflow.env"
DEFAULT_DATA_DIR = Path.home() / ".specflow"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')

# Values are never evaluated; these would only make sense to a shell
FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
]


@dataclass
class SpecflowConfig:
    """Resolved settings for one SpecFlow data directory."""
    data_dir: Path
    log_level: str = "WARNING"
    due_soon_days: int = DUE_SOON_DAYS


def read_env_file(path: Path) -> dict[str, str]:
    """
    Parse a KEY=value file without shell execution.

    Missing files yield an empty dict.

    Raises:
        ValueError: if a line is malformed or a value contains a shell construct
    """
    if not path.exists():
        return {}

    result = {}
    for lineno, raw in enumerate(path.read_text().splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue

        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        key, sep, value = line.partition('=')
        if not sep:
            raise ValueError(f"{path.name} line {lineno}: expected KEY=value")

        key = key.strip()
        value = value.strip()
        if not KEY_PATTERN.match(key):
            raise ValueError(f"{path.name} line {lineno}: invalid key '{key}'")

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]

        if any(re.search(p, value) for p in FORBIDDEN_PATTERNS):
            raise ValueError(f"{path.name} line {lineno}: shell syntax not allowed in value")

        result[key] = value

    return result


def _parse_log_level(raw: Optional[str]) -> str:
    if raw is None:
        return "WARNING"
    level = raw.strip().upper()
    if level not in VALID_LOG_LEVELS:
        logger.warning(f"Unknown SPECFLOW_LOG_LEVEL '{raw}', defaulting to WARNING")
        return "WARNING"
    return level


def _parse_due_soon_days(raw: Optional[str]) -> int:
    if raw is None:
        return DUE_SOON_DAYS
    try:
        days = int(raw)
    except ValueError:
        days = -1
    if days < 0:
        logger.warning(f"Invalid SPECFLOW_DUE_SOON_DAYS '{raw}', defaulting to {DUE_SOON_DAYS}")
        return DUE_SOON_DAYS
    return days


def load_config(data_dir: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> SpecflowConfig:
    """Resolve configuration.

    Args:
        data_dir: Explicit data directory (e.g. from --data-dir); beats the environment
        environ: Environment mapping, defaults to os.environ
    """
    env = dict(os.environ if environ is None else environ)

    resolved_dir = Path(data_dir or env.get("SPECFLOW_DATA_DIR") or DEFAULT_DATA_DIR).expanduser()

    settings = read_env_file(resolved_dir / ENV_FILE_NAME)
    settings.update({k: v for k, v in env.items() if k.startswith("SPECFLOW_")})

    return SpecflowConfig(
        data_dir=resolved_dir,
        log_level=_parse_log_level(settings.get("SPECFLOW_LOG_LEVEL")),
        due_soon_days=_parse_due_soon_days(settings.get("SPECFLOW_DUE_SOON_DAYS")),
    )
