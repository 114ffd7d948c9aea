"""Decide whether a setup line may run on this machine.

Platforms and versions are compared as exact strings. A version that cannot
be read (program missing, non-zero exit, empty output) never matches.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .lib.command import query_version
from .restriction_config import (
    UNRESTRICTED,
    CommandRestriction,
    FileRestriction,
    Requirement,
    RestrictionConfig,
    describe,
)
from .setup_file import LineKind, SetupLine

logger = logging.getLogger(__name__)

VersionQuery = Callable[[Sequence[str]], Optional[str]]


def _platform_mismatch(required: Requirement, platform: str) -> Optional[str]:
    if required is UNRESTRICTED or required == platform:
        return None
    return f"requires platform {required}, current platform is {platform}"


def _version_mismatch(
    required: Requirement,
    argv: Sequence[str],
    version_query: VersionQuery,
) -> Optional[str]:
    if required is UNRESTRICTED:
        return None
    live = version_query(argv)
    if live is None:
        return f"requires {argv[0]} version {required}, but its version could not be read"
    if live.strip() != required:
        return f"requires {argv[0]} version {required}, found {live.strip()}"
    return None


def _file_reason(
    r: FileRestriction,
    platform: str,
    version_query: VersionQuery,
) -> Optional[str]:
    reason = _platform_mismatch(r.platform, platform)
    if reason:
        return reason
    if r.interpreter_version is not UNRESTRICTED and r.interpreter is UNRESTRICTED:
        return f"requires interpreter version {r.interpreter_version}, but no interpreter is configured"
    if r.interpreter is UNRESTRICTED:
        return None
    return _version_mismatch(r.interpreter_version, [str(r.interpreter)], version_query)


def _command_reason(
    command: str,
    r: CommandRestriction,
    platform: str,
    version_query: VersionQuery,
) -> Optional[str]:
    reason = _platform_mismatch(r.platform, platform)
    if reason:
        return reason
    return _version_mismatch(r.version, [command], version_query)


def rejection_reason(
    line: SetupLine,
    config: RestrictionConfig,
    platform: str,
    *,
    version_query: Optional[VersionQuery] = None,
) -> Optional[str]:
    """None when the line may run, otherwise why it may not."""

    version_query = version_query or query_version

    if line.kind is LineKind.FILE:
        r = config.file_restriction(line.extension or "")
        if r is None:
            return None
        return _file_reason(r, platform, version_query)

    if line.kind is LineKind.COMMAND:
        r = config.command_restriction(line.target or "")
        if r is None:
            return None
        return _command_reason(line.target or "", r, platform, version_query)

    raise ValueError(f"Line {line.number} is {line.kind.value}; nothing to evaluate")


def can_execute(
    line: SetupLine,
    config: RestrictionConfig,
    platform: str,
    *,
    version_query: Optional[VersionQuery] = None,
) -> bool:
    reason = rejection_reason(line, config, platform, version_query=version_query)
    if reason:
        logger.debug("Line %d (%s) rejected: %s", line.number, line.target, reason)
        return False
    return True


def summarize(config: RestrictionConfig) -> list[str]:
    """One line per configured restriction, for --verbose startup logging."""

    out = []
    for ext, r in sorted(config.file_restrictions.items()):
        out.append(
            f"*{ext}: platform={describe(r.platform)} interpreter={describe(r.interpreter)} "
            f"version={describe(r.interpreter_version)}"
        )
    for name, c in sorted(config.command_restrictions.items()):
        out.append(f"{name}: platform={describe(c.platform)} version={describe(c.version)}")
    return out
