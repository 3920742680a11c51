from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Union

from .error import LocalIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def save_binary(path: PathLike, data: bytes) -> None:
    target = Path(path)
    temp_path = target.with_name(f"{target.name}.tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(data)
        temp_path.replace(target)
    except OSError as exc:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            logger.debug("could not remove %s", temp_path)
        raise LocalIOError(f"Failed to save {target}: {exc}") from exc
    logger.debug("saved %d bytes to %s", len(data), target)


def save_error_log(path: PathLike, error: BaseException) -> None:
    target = Path(path)
    line = f"{datetime.now().astimezone().isoformat()} [{type(error).__name__}] {error}\n"
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as handle:
            handle.write(line)
    except OSError as exc:
        raise LocalIOError(f"Failed to write error log {target}: {exc}") from exc


class Persistence:
    """Local storage for downloaded objects and the error log."""

    def save_binary(self, path: PathLike, data: bytes) -> None:
        save_binary(path, data)

    def save_error_log(self, path: PathLike, error: BaseException) -> None:
        save_error_log(path, error)
