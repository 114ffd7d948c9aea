from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .context import ExecutionContext
from .pipeline import RunResult

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def build_report(result: RunResult, ctx: ExecutionContext) -> Dict[str, Any]:
    return {
        "repo_root": str(ctx.repo_root),
        "platform": ctx.platform,
        "dry_run": ctx.dry_run,
        "counts": result.counts(),
        "dependencies_run": [str(p) for p in ctx.dependency_cache],
        "lines": [o.to_dict() for o in result.outcomes],
    }


def save_report(path: str, report: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fmt = _detect_format(p)
    if fmt in {"yaml", "yml"}:
        try:
            import yaml  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError(
                "YAML report requested but PyYAML is not available. "
                "Use a .json report path or install PyYAML."
            ) from e
        p.write_text(yaml.safe_dump(report, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(report, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    logger.info("Run report written to %s", p)
