from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from .context import ExecutionContext
from .lib.env import PATHS
from .lib.platform_detect import UnmappedPlatformError, current_platform_signals, resolve_current_platform
from .lib.repo_root import find_repo_root
from .logging_utils import configure_logging
from .pipeline import RunResult, run_setup_file
from .report_store import build_report, save_report
from .restriction_config import ConfigError, load_restriction_config
from .restrictions import summarize

logger = logging.getLogger(__name__)


def run(
    *,
    repo_root: Path,
    setup_path: Path,
    config_path: Path,
    report_path: Optional[str] = None,
    dry_run: bool = False,
) -> RunResult:
    """Run the setup file against the restriction config.

    Raises on fatal problems (missing files, bad config, unknown platform);
    failures of individual lines are only logged.
    """

    for required in (setup_path, config_path):
        if not required.is_file():
            raise FileNotFoundError(f"Required file missing: {required}")

    cfg = load_restriction_config(config_path)
    for entry in summarize(cfg):
        logger.debug("Restriction %s", entry)

    env_signal, fallback_signal = current_platform_signals()
    platform = resolve_current_platform(env_signal, fallback_signal, cfg.platform_map)

    ctx = ExecutionContext(repo_root=repo_root, platform=platform, config=cfg, dry_run=dry_run)
    logger.info("Repository root %s, platform %s%s", repo_root, platform, " (dry run)" if dry_run else "")

    result = run_setup_file(setup_path, ctx)

    if report_path:
        save_report(report_path, build_report(result, ctx))
    return result


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="setup-orchestrator")
    p.add_argument("--root", default=None, help="Repository root (default: git top-level)")
    p.add_argument("--setup", default=None, help=f"Setup file (default: <root>/{PATHS.setup_file})")
    p.add_argument("--config", default=None, help=f"Restriction config (default: <root>/{PATHS.config_file})")
    p.add_argument("--log", default=None, help=f"Log file (default: <root>/{PATHS.log_default})")
    p.add_argument("--report", default=None, help="Write per-line outcomes to this file (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Evaluate restrictions without running anything")
    p.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console")

    args = p.parse_args(argv)

    root = Path(args.root).resolve() if args.root else find_repo_root()

    configure_logging(
        log_path=args.log or str(root / PATHS.log_default),
        console_level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        run(
            repo_root=root,
            setup_path=Path(args.setup) if args.setup else root / PATHS.setup_file,
            config_path=Path(args.config) if args.config else root / PATHS.config_file,
            report_path=args.report,
            dry_run=bool(args.dry_run),
        )
    except (OSError, ConfigError, UnmappedPlatformError, RuntimeError) as e:
        logger.error("Setup aborted: %s", e)
        return 1
    return 0
