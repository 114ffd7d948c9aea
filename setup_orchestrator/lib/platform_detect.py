from __future__ import annotations

import logging
import os
import platform
from typing import Mapping, Optional, Tuple

from .env import OS_ENV_VAR

logger = logging.getLogger(__name__)


class UnmappedPlatformError(RuntimeError):
    pass


def current_platform_signals() -> Tuple[Optional[str], str]:
    """Return (OS environment variable, platform.system()).

    Windows exports OS=Windows_NT; elsewhere the variable is normally unset.
    """

    return os.environ.get(OS_ENV_VAR), platform.system()


def resolve_current_platform(
    env_signal: Optional[str],
    fallback_signal: Optional[str],
    platform_map: Mapping[str, str],
) -> str:
    tried = []
    for source, signal in (("env", env_signal), ("fallback", fallback_signal)):
        raw = (signal or "").strip()
        if not raw:
            continue
        tried.append(raw)
        canonical = platform_map.get(raw)
        if canonical:
            logger.info("Platform %s -> %s (%s signal)", raw, canonical, source)
            return canonical
        logger.debug("Platform signal %s (%s) has no mapping", raw, source)

    raise UnmappedPlatformError(
        f"Cannot map platform signals {tried or ['<blank>']} through the platforms table "
        f"(known: {sorted(platform_map)})"
    )
