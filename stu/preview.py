from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field

TAB_WIDTH = 4


def _drop_control_chars(line: str) -> str:
    line = line.expandtabs(TAB_WIDTH)
    return "".join(ch for ch in line if unicodedata.category(ch) != "Cc")


def to_preview_lines(data: bytes) -> list[str]:
    """Decode object bytes as lossy UTF-8 and split them into display lines."""
    text = data.decode("utf-8", errors="replace")
    return [_drop_control_chars(line) for line in text.splitlines()]


@dataclass(frozen=True)
class ObjectPreview:
    map_key: str
    name: str
    data: bytes = field(repr=False)
    lines: tuple[str, ...] = ()

    @classmethod
    def from_bytes(cls, map_key: str, name: str, data: bytes) -> "ObjectPreview":
        return cls(
            map_key=map_key,
            name=name,
            data=data,
            lines=tuple(to_preview_lines(data)),
        )
