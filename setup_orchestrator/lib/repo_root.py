from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .command import run_cmd

logger = logging.getLogger(__name__)


def _package_parent() -> Path:
    # setup_orchestrator/lib/repo_root.py -> setup_orchestrator -> repo root
    return Path(__file__).resolve().parents[2]


def _git_toplevel(cwd: Path) -> Optional[Path]:
    try:
        r = run_cmd(["git", "rev-parse", "--show-toplevel"], cwd=str(cwd))
    except OSError:
        return None
    if r.returncode != 0:
        return None
    top = r.stdout.strip()
    return Path(top) if top else None


def find_repo_root(start: Optional[Path] = None) -> Path:
    """Version-control root if discoverable, else the package's parent directory."""

    fallback = _package_parent()
    top = _git_toplevel(start or fallback)
    if top is not None:
        logger.debug("Repository root from git: %s", top)
        return top.resolve()
    logger.debug("No git root found, using %s", fallback)
    return fallback
