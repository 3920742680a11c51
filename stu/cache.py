from __future__ import annotations

from typing import Optional, Sequence

from .s3 import FileDetail, FileVersion, Item

PathKey = tuple[str, ...]


def path_key(path: Sequence[str]) -> PathKey:
    return tuple(path)


class ObjectCache:
    """Session cache of listings per path and object metadata per key.

    Entries are only ever inserted or replaced; nothing is evicted.
    """

    def __init__(self) -> None:
        self._items: dict[PathKey, list[Item]] = {}
        self._details: dict[str, tuple[FileDetail, list[FileVersion]]] = {}

    def set_items(self, path: Sequence[str], items: Sequence[Item]) -> None:
        self._items[path_key(path)] = list(items)

    def get_items(self, path: Sequence[str]) -> list[Item]:
        return list(self._items.get(path_key(path), []))

    def get_items_len(self, path: Sequence[str]) -> int:
        return len(self._items.get(path_key(path), []))

    def exists_item(self, path: Sequence[str]) -> bool:
        return path_key(path) in self._items

    def get_item(self, path: Sequence[str], index: int) -> Optional[Item]:
        items = self._items.get(path_key(path))
        if items is None or index < 0 or index >= len(items):
            return None
        return items[index]

    def set_object_details(
        self, key: str, detail: FileDetail, versions: Sequence[FileVersion]
    ) -> None:
        self._details[key] = (detail, list(versions))

    def get_object_detail(self, key: str) -> Optional[FileDetail]:
        entry = self._details.get(key)
        if entry is None:
            return None
        return entry[0]

    def get_object_versions(self, key: str) -> Optional[list[FileVersion]]:
        entry = self._details.get(key)
        if entry is None:
            return None
        return list(entry[1])

    def exists_object_details(self, key: str) -> bool:
        return key in self._details
