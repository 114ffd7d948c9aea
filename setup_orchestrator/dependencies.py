from __future__ import annotations

import enum
import logging
from pathlib import Path

from .context import ExecutionContext
from .lib.command import run_cmd
from .restriction_config import DEPENDENCY_SUFFIX, NO_DEPENDENCY

logger = logging.getLogger(__name__)


class DependencyStatus(str, enum.Enum):
    NOT_REQUIRED = "not_required"
    CACHED = "cached"
    SATISFIED = "satisfied"
    MISSING = "missing"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self in (DependencyStatus.NOT_REQUIRED, DependencyStatus.CACHED, DependencyStatus.SATISFIED)


def script_argv(ctx: ExecutionContext, script: Path, args: list[str] | None = None) -> list[str]:
    """Launch line for a script, using the interpreter configured for its extension."""
    return [*ctx.config.interpreter_for(script.suffix), str(script), *(args or [])]


def resolve_dependency(command: str, ctx: ExecutionContext) -> DependencyStatus:
    per_platform = ctx.config.dependencies.get(command)
    if not per_platform:
        return DependencyStatus.NOT_REQUIRED

    key = ctx.platform + DEPENDENCY_SUFFIX
    ref = per_platform.get(key)
    if ref is None or ref is NO_DEPENDENCY:
        return DependencyStatus.NOT_REQUIRED

    script = ctx.resolve(str(ref))
    if script in ctx.dependency_cache:
        logger.debug("Dependency %s for %s already ran this session", script, command)
        return DependencyStatus.CACHED

    if not script.is_file():
        logger.warning("Dependency script for %s not found: %s (%s)", command, script, key)
        return DependencyStatus.MISSING

    logger.info("Running dependency %s for %s", script, command)
    try:
        r = run_cmd(
            script_argv(ctx, script),
            cwd=str(ctx.repo_root),
            capture=False,
            dry_run=ctx.dry_run,
        )
    except OSError as e:
        logger.warning("Dependency %s for %s could not be started: %s", script, command, e)
        return DependencyStatus.FAILED

    if ctx.dry_run:
        return DependencyStatus.SATISFIED

    if r.returncode != 0:
        logger.warning("Dependency %s for %s failed with exit code %s", script, command, r.returncode)
        return DependencyStatus.FAILED

    ctx.dependency_cache.add(script)
    return DependencyStatus.SATISFIED


def ensure_dependency(command: str, ctx: ExecutionContext) -> bool:
    return resolve_dependency(command, ctx).ok
