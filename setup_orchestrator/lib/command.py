from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    # None when nothing was executed (dry run).
    returncode: Optional[int]
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        # A missing exit status counts as success.
        return self.returncode is None or self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    cwd: str | None = None,
    capture: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - capture=False lets the child write straight to the console.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=None, stdout="", stderr="")

    p = subprocess.run(
        argv_list,
        text=True,
        errors="replace",
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE if capture else None,
        stderr=subprocess.PIPE if capture else None,
        cwd=cwd,
    )

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")


def run_shell(
    expression: str,
    *,
    cwd: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Evaluate a command expression through the system shell."""

    logger.info("SHELL %s", expression)

    if dry_run:
        return CmdResult(argv=[expression], returncode=None, stdout="", stderr="")

    p = subprocess.run(expression, shell=True, cwd=cwd, stdin=subprocess.DEVNULL)
    return CmdResult(argv=[expression], returncode=p.returncode, stdout="", stderr="")


def query_version(argv: Sequence[str], *, cwd: str | None = None) -> Optional[str]:
    """Return the first line of `<argv> --version`, trimmed.

    None when the program is missing, exits non-zero or prints nothing.
    """

    try:
        r = run_cmd([*argv, "--version"], cwd=cwd)
    except OSError as e:
        logger.debug("Version query for %s failed: %s", _fmt_argv(list(argv)), e)
        return None

    if r.returncode != 0:
        return None

    for text in (r.stdout, r.stderr):
        lines = text.strip().splitlines()
        if lines:
            first = lines[0].strip()
            return first or None
    return None
