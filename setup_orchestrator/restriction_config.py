from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Tuple, Union

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


class _Sentinel(enum.Enum):
    UNRESTRICTED = "unrestricted"
    NO_DEPENDENCY = "no_dependency"

    def __repr__(self) -> str:
        return self.name


UNRESTRICTED = _Sentinel.UNRESTRICTED
NO_DEPENDENCY = _Sentinel.NO_DEPENDENCY

Requirement = Union[str, _Sentinel]
DependencyRef = Union[str, _Sentinel]

DEFAULT_SCRIPT_EXTENSIONS: FrozenSet[str] = frozenset({".ps1", ".sh", ".bash", ".py", ".cmd", ".bat"})

DEPENDENCY_SUFFIX = "_dependency"


@dataclass(frozen=True)
class FileRestriction:
    platform: Requirement = UNRESTRICTED
    interpreter: Requirement = UNRESTRICTED
    interpreter_args: Tuple[str, ...] = ()
    interpreter_version: Requirement = UNRESTRICTED


@dataclass(frozen=True)
class CommandRestriction:
    platform: Requirement = UNRESTRICTED
    version: Requirement = UNRESTRICTED


@dataclass(frozen=True)
class RestrictionConfig:
    platform_map: Mapping[str, str]
    file_restrictions: Mapping[str, FileRestriction] = field(default_factory=dict)
    command_restrictions: Mapping[str, CommandRestriction] = field(default_factory=dict)
    dependencies: Mapping[str, Mapping[str, DependencyRef]] = field(default_factory=dict)
    script_extensions: FrozenSet[str] = DEFAULT_SCRIPT_EXTENSIONS

    def file_restriction(self, extension: str) -> FileRestriction | None:
        return self.file_restrictions.get(extension.lower())

    def command_restriction(self, command: str) -> CommandRestriction | None:
        return self.command_restrictions.get(command)

    def interpreter_for(self, extension: str) -> list[str]:
        """argv prefix used to launch a script with this extension ([] = run directly)."""
        r = self.file_restriction(extension)
        if r is None or r.interpreter is UNRESTRICTED:
            return []
        return [str(r.interpreter), *r.interpreter_args]


def normalize_extension(pattern: str) -> str:
    """'*.PS1' / '.ps1' / 'ps1' -> '.ps1'."""
    ext = pattern.strip().lstrip("*").lower()
    if not ext.startswith("."):
        ext = "." + ext
    if ext == ".":
        raise ConfigError(f"Invalid extension pattern: {pattern!r}")
    return ext


def _requirement(value: Any, *, where: str) -> Requirement:
    # `false` (or an empty value) means the dimension is unrestricted.
    if value is None or value is False:
        return UNRESTRICTED
    if isinstance(value, str):
        v = value.strip()
        return v if v else UNRESTRICTED
    raise ConfigError(
        f"{where} must be false or a string, got {type(value).__name__} {value!r} "
        "(quote version numbers)"
    )


def _dependency_ref(value: Any, *, where: str) -> DependencyRef:
    if value is None or value is False:
        return NO_DEPENDENCY
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ConfigError(f"{where} must be false or a relative script path, got {value!r}")


def _mapping(value: Any, *, where: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping/object")
    return value


def _parse_files(raw: Mapping[str, Any]) -> Dict[str, FileRestriction]:
    out: Dict[str, FileRestriction] = {}
    for pattern, section in _mapping(raw.get("files"), where="files").items():
        sec = _mapping(section, where=f"files.{pattern}")
        ext = normalize_extension(str(pattern))

        args = sec.get("interpreter_args") or []
        if isinstance(args, str):
            args = args.split()
        if not isinstance(args, list):
            raise ConfigError(f"files.{pattern}.interpreter_args must be a list")

        out[ext] = FileRestriction(
            platform=_requirement(sec.get("platform"), where=f"files.{pattern}.platform"),
            interpreter=_requirement(sec.get("interpreter"), where=f"files.{pattern}.interpreter"),
            interpreter_args=tuple(str(a) for a in args),
            interpreter_version=_requirement(
                sec.get("interpreter_version"), where=f"files.{pattern}.interpreter_version"
            ),
        )
    return out


def _parse_commands(
    raw: Mapping[str, Any],
) -> Tuple[Dict[str, CommandRestriction], Dict[str, Dict[str, DependencyRef]]]:
    restrictions: Dict[str, CommandRestriction] = {}
    dependencies: Dict[str, Dict[str, DependencyRef]] = {}

    for name, section in _mapping(raw.get("commands"), where="commands").items():
        command = str(name)
        sec = _mapping(section, where=f"commands.{command}")

        restrictions[command] = CommandRestriction(
            platform=_requirement(sec.get("platform"), where=f"commands.{command}.platform"),
            version=_requirement(sec.get("version"), where=f"commands.{command}.version"),
        )

        deps = {
            str(key): _dependency_ref(value, where=f"commands.{command}.{key}")
            for key, value in sec.items()
            if str(key).endswith(DEPENDENCY_SUFFIX)
        }
        if deps:
            dependencies[command] = deps

    return restrictions, dependencies


def _parse_extensions(raw: Mapping[str, Any], files: Mapping[str, FileRestriction]) -> FrozenSet[str]:
    extra = raw.get("script_extensions") or []
    if not isinstance(extra, list):
        raise ConfigError("script_extensions must be a list")
    return frozenset(DEFAULT_SCRIPT_EXTENSIONS | {normalize_extension(str(e)) for e in extra} | set(files))


def parse_restriction_config(raw: Any) -> RestrictionConfig:
    """Build a RestrictionConfig from an already-decoded document."""

    if not isinstance(raw, dict):
        raise ConfigError("Restriction config must contain a mapping/object")

    platforms = raw.get("platforms")
    if platforms is None:
        raise ConfigError("Restriction config has no 'platforms' table")
    if not isinstance(platforms, dict) or not platforms:
        raise ConfigError("'platforms' must be a non-empty mapping of signal -> platform name")

    platform_map = {str(k): str(v) for k, v in platforms.items() if v}

    files = _parse_files(raw)
    commands, dependencies = _parse_commands(raw)

    return RestrictionConfig(
        platform_map=platform_map,
        file_restrictions=files,
        command_restrictions=commands,
        dependencies=dependencies,
        script_extensions=_parse_extensions(raw, files),
    )


def _load_yaml(text: str, path: Path) -> Any:
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError(f"PyYAML is required to read {path.name}") from e

    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e


def load_restriction_config(path: str | Path) -> RestrictionConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))

    try:
        text = p.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Cannot parse {p}: {e}") from e

    if p.suffix.lower() == ".json":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Cannot parse {p}: {e}") from e
    else:
        raw = _load_yaml(text, p)

    cfg = parse_restriction_config(raw)
    logger.info(
        "Loaded restriction config %s (platforms=%d files=%d commands=%d)",
        p,
        len(cfg.platform_map),
        len(cfg.file_restrictions),
        len(cfg.command_restrictions),
    )
    return cfg


def describe(requirement: Requirement) -> str:
    return "any" if requirement is UNRESTRICTED else str(requirement)

