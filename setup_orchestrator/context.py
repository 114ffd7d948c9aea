from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Set

from .restriction_config import RestrictionConfig


class DependencyCache:
    """Absolute paths of prerequisite scripts that already succeeded this run."""

    def __init__(self) -> None:
        self._done: Set[Path] = set()

    def __contains__(self, path: object) -> bool:
        return path in self._done

    def __iter__(self) -> Iterator[Path]:
        return iter(sorted(self._done))

    def __len__(self) -> int:
        return len(self._done)

    def add(self, path: Path) -> None:
        self._done.add(path)


@dataclass
class ExecutionContext:
    repo_root: Path
    platform: str
    config: RestrictionConfig
    dry_run: bool = False
    dependency_cache: DependencyCache = field(default_factory=DependencyCache)

    def resolve(self, rel: str | Path) -> Path:
        p = Path(rel)
        if not p.is_absolute():
            p = self.repo_root / p
        return p.resolve()
