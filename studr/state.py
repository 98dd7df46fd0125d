"""
Run ids and run directories under STUDR_HOME.

A run id records when the run started, in UTC, plus a short random suffix
so two runs in the same second never share a log:

    r-20240115T093000Z-3fa9c1
"""

import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

RUN_ID_PREFIX = "r-"
RUN_ID_PATTERN = re.compile(r"^r-\d{8}T\d{6}Z-[0-9a-f]{6}$")


def new_run_id(now: Optional[datetime] = None) -> str:
    """
    Generate a run ID for a run starting at ``now`` (UTC by default).

    Args:
        now: Start time; naive values are taken as UTC

    Returns:
        str: Run ID such as ``r-20240115T093000Z-3fa9c1``
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{RUN_ID_PREFIX}{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4().hex[:6]}"


def is_valid_run_id(run_id: str) -> bool:
    return bool(RUN_ID_PATTERN.match(run_id or ""))


def get_studr_home() -> Path:
    """
    Get the studr home directory.

    Returns:
        Path: STUDR_HOME, or .studr in the working directory
    """
    studr_home = os.environ.get("STUDR_HOME", ".studr")
    return Path(studr_home).resolve()


def get_run_dir(run_id: str, create: bool = False) -> Path:
    """
    Get the directory holding one run's event log.

    Args:
        run_id: Run ID
        create: Create the directory if it does not exist yet

    Returns:
        Path: Run directory

    Raises:
        ValueError: If run ID is invalid
    """
    if not is_valid_run_id(run_id):
        raise ValueError(f"Invalid run ID: {run_id}")

    run_dir = get_studr_home() / run_id
    if create:
        run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def list_runs() -> List[str]:
    """List run IDs found under STUDR_HOME, oldest first."""
    home = get_studr_home()
    if not home.exists():
        return []
    return sorted(p.name for p in home.iterdir() if p.is_dir() and is_valid_run_id(p.name))
