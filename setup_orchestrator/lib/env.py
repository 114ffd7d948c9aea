from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    setup_file: str = "setup.txt"
    config_file: str = "setup-config.yaml"
    log_default: str = "logs/setup-orchestrator.log"


PATHS = Paths()

# Raw platform signals.
OS_ENV_VAR = "OS"
