from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .error import StuError
from .s3 import FileDetail, FileVersion, Item


class NotificationLevel(Enum):
    NONE = "none"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel = NotificationLevel.NONE
    text: str = ""

    @classmethod
    def none(cls) -> "Notification":
        return cls()

    @classmethod
    def info(cls, text: str) -> "Notification":
        return cls(NotificationLevel.INFO, text)

    @classmethod
    def error(cls, text: str) -> "Notification":
        return cls(NotificationLevel.ERROR, text)


@dataclass(frozen=True)
class InitializeCompleted:
    path: tuple[str, ...]
    items: list[Item]


@dataclass(frozen=True)
class LoadObjectsCompleted:
    path: tuple[str, ...]
    items: list[Item]


@dataclass(frozen=True)
class LoadObjectCompleted:
    map_key: str
    detail: FileDetail
    versions: list[FileVersion]


@dataclass(frozen=True)
class DownloadObjectCompleted:
    path: Path
    data: bytes


@dataclass(frozen=True)
class PreviewLoadCompleted:
    map_key: str
    name: str
    data: bytes


CompletionPayload = Union[
    InitializeCompleted,
    LoadObjectsCompleted,
    LoadObjectCompleted,
    DownloadObjectCompleted,
    PreviewLoadCompleted,
]


@dataclass(frozen=True)
class Completion:
    """Outcome of one background task: exactly one of payload or error."""

    payload: Optional[CompletionPayload] = None
    error: Optional[StuError] = None
    target: Optional[tuple[str, object]] = None
