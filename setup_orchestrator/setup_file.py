from __future__ import annotations

import codecs
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, List, Optional, Union

from .restriction_config import DEFAULT_SCRIPT_EXTENSIONS


class LineKind(str, enum.Enum):
    BLANK = "blank"
    COMMENT = "comment"
    FILE = "file"
    COMMAND = "command"


@dataclass(frozen=True)
class SetupLine:
    raw: str
    number: int
    content: str
    kind: LineKind
    target: Optional[str] = None
    args: List[str] = field(default_factory=list)
    # Matched script extension for FILE lines, e.g. ".ps1".
    extension: Optional[str] = None

    @property
    def runnable(self) -> bool:
        return self.kind in (LineKind.FILE, LineKind.COMMAND)


def _match_extension(target: str, extensions: AbstractSet[str]) -> Optional[str]:
    lowered = target.lower()
    # Longest suffix wins.
    for ext in sorted(extensions, key=len, reverse=True):
        if lowered.endswith(ext) and len(lowered) > len(ext):
            return ext
    return None


def classify_line(
    raw: str,
    number: int,
    script_extensions: AbstractSet[str] = DEFAULT_SCRIPT_EXTENSIONS,
) -> SetupLine:
    content = raw.strip()

    if not content:
        return SetupLine(raw=raw, number=number, content=content, kind=LineKind.BLANK)
    if content.startswith("#"):
        return SetupLine(raw=raw, number=number, content=content, kind=LineKind.COMMENT)

    target = content.split()[0]
    # Re-split the remainder so runs of spaces between arguments collapse.
    args = content[len(target):].split()

    ext = _match_extension(target, script_extensions)
    kind = LineKind.FILE if ext else LineKind.COMMAND
    return SetupLine(
        raw=raw,
        number=number,
        content=content,
        kind=kind,
        target=target,
        args=args,
        extension=ext,
    )


def read_setup_file(path: str | Path) -> List[bytes]:
    """Raw lines of the setup file; each one is decoded separately by decode_line."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    data = p.read_bytes()
    # Drop the BOM some Windows editors write.
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8):]
    return data.splitlines()


def decode_line(raw: Union[str, bytes], number: int) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Line {number} is not valid UTF-8: {e}") from e

