from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .context import ExecutionContext
from .dependencies import DependencyStatus, resolve_dependency, script_argv
from .lib.command import CmdResult, run_cmd, run_shell
from .restrictions import rejection_reason
from .setup_file import LineKind, SetupLine, classify_line, decode_line, read_setup_file

logger = logging.getLogger(__name__)


class LineStatus(str, enum.Enum):
    SKIPPED = "skipped"
    REJECTED = "rejected"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERROR = "error"


@dataclass(frozen=True)
class LineOutcome:
    line_number: int
    kind: Optional[LineKind]
    status: LineStatus
    admitted: bool = False
    dependency: DependencyStatus = DependencyStatus.NOT_REQUIRED
    exit_status: Optional[int] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value if self.kind else None
        d["status"] = self.status.value
        d["dependency"] = self.dependency.value
        return d


@dataclass
class RunResult:
    outcomes: List[LineOutcome] = field(default_factory=list)

    @property
    def admitted_lines(self) -> List[int]:
        return [o.line_number for o in self.outcomes if o.admitted]

    def counts(self) -> Dict[str, int]:
        out = {s.value: 0 for s in LineStatus}
        for o in self.outcomes:
            out[o.status.value] += 1
        return out


def _invoke(line: SetupLine, ctx: ExecutionContext) -> CmdResult:
    if line.kind is LineKind.FILE:
        script = ctx.resolve(line.target or "")
        if not script.is_file():
            raise FileNotFoundError(f"Script not found: {script}")
        return run_cmd(
            script_argv(ctx, script, line.args),
            cwd=str(ctx.repo_root),
            capture=False,
            dry_run=ctx.dry_run,
        )
    return run_shell(line.content, cwd=str(ctx.repo_root), dry_run=ctx.dry_run)


def run_line(line: SetupLine, ctx: ExecutionContext) -> LineOutcome:
    """Evaluate and (when admitted) execute a single classified line."""

    if not line.runnable:
        logger.debug("Line %d: %s", line.number, line.kind.value)
        return LineOutcome(line_number=line.number, kind=line.kind, status=LineStatus.SKIPPED)

    reason = rejection_reason(line, ctx.config, ctx.platform)
    if reason:
        logger.warning("Line %d skipped (%s): %s", line.number, line.target, reason)
        return LineOutcome(
            line_number=line.number,
            kind=line.kind,
            status=LineStatus.REJECTED,
            message=reason,
        )

    logger.info("Line %d admitted: %s", line.number, line.content)

    dep = DependencyStatus.NOT_REQUIRED
    if line.kind is LineKind.COMMAND:
        dep = resolve_dependency(line.target or "", ctx)
        if not dep.ok:
            # Best effort: the command still runs and may fail on its own.
            logger.warning("Line %d: dependency for %s %s, running anyway", line.number, line.target, dep.value)

    try:
        r = _invoke(line, ctx)
    except OSError as e:
        logger.error("Line %d could not be started: %s", line.number, e)
        return LineOutcome(
            line_number=line.number,
            kind=line.kind,
            status=LineStatus.ERROR,
            admitted=True,
            dependency=dep,
            message=str(e),
        )

    if r.ok:
        logger.info("Line %d succeeded (exit %s)", line.number, r.returncode)
        status = LineStatus.SUCCEEDED
        message = "dry run" if ctx.dry_run else ""
    else:
        logger.warning("Line %d failed (exit %s): %s", line.number, r.returncode, line.content)
        status = LineStatus.FAILED
        message = f"exit code {r.returncode}"

    return LineOutcome(
        line_number=line.number,
        kind=line.kind,
        status=status,
        admitted=True,
        dependency=dep,
        exit_status=r.returncode,
        message=message,
    )


def run_setup_lines(lines: Sequence[Union[str, bytes]], ctx: ExecutionContext) -> RunResult:
    """Run every line in file order; one line's failure never stops the next."""

    result = RunResult()

    for number, raw in enumerate(lines, start=1):
        line: Optional[SetupLine] = None
        try:
            line = classify_line(decode_line(raw, number), number, ctx.config.script_extensions)
            outcome = run_line(line, ctx)
        except Exception as e:
            logger.exception("Line %d raised: %r", number, raw.strip())
            outcome = LineOutcome(
                line_number=number,
                kind=line.kind if line else None,
                status=LineStatus.ERROR,
                message=str(e),
            )
        result.outcomes.append(outcome)

    counts = result.counts()
    logger.info(
        "Setup finished: %d succeeded, %d failed, %d rejected, %d errors, %d skipped",
        counts["succeeded"],
        counts["failed"],
        counts["rejected"],
        counts["error"],
        counts["skipped"],
    )
    return result


def run_setup_file(path: str | Path, ctx: ExecutionContext) -> RunResult:
    logger.info("Reading setup file %s", path)
    return run_setup_lines(read_setup_file(path), ctx)
