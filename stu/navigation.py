from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from .cache import ObjectCache
from .error import ValidationError
from .preview import ObjectPreview
from .s3 import FileDetail, FileItem, FileVersion, Item
from .viewport import ViewportState


class DetailTab(Enum):
    DETAIL = 0
    VERSION = 1


@dataclass(frozen=True)
class Initializing:
    pass


@dataclass(frozen=True)
class Listing:
    pass


@dataclass(frozen=True)
class Detail:
    tab: DetailTab = DetailTab.DETAIL


@dataclass(frozen=True)
class Preview:
    scroll: int = 0


@dataclass(frozen=True)
class Help:
    previous: "ViewState"

    def __post_init__(self) -> None:
        if isinstance(self.previous, (Help, Initializing)):
            raise ValueError(f"help cannot wrap {self.previous!r}")


ViewState = Union[Initializing, Listing, Detail, Preview, Help]


@dataclass(frozen=True)
class LoadObjectsRequest:
    path: tuple[str, ...]


@dataclass(frozen=True)
class LoadObjectRequest:
    bucket: str
    key: str
    name: str
    size_byte: int
    map_key: str


LoadRequest = Union[LoadObjectsRequest, LoadObjectRequest]


def object_prefix(path: Sequence[str]) -> str:
    return "".join(f"{segment}/" for segment in path[1:])


def object_map_key(bucket: str, prefix: str, name: str) -> str:
    return f"{bucket}/{prefix}{name}"


class Navigator:
    """View state, breadcrumb path and viewport for one session.

    Transitions that need remote data return a request describing it; the
    caller decides how to fetch. Transitions from a state that does not
    support them do nothing.
    """

    def __init__(self, cache: ObjectCache, raw_height: int) -> None:
        self.cache = cache
        self.viewport = ViewportState(raw_height)
        self.view_state: ViewState = Initializing()
        self.path: list[str] = []
        self.preview: Optional[ObjectPreview] = None

    def _is_listing(self) -> bool:
        return isinstance(self.view_state, Listing)

    def _scroll_limit(self) -> int:
        if self.preview is None:
            return 0
        return max(len(self.preview.lines) - self.viewport.height, 0)

    def _scroll_to(self, scroll: int) -> bool:
        if not isinstance(self.view_state, Preview):
            return False
        self.view_state = Preview(max(0, min(scroll, self._scroll_limit())))
        return True

    def _preview_scroll(self) -> int:
        state = self.view_state
        return state.scroll if isinstance(state, Preview) else 0

    def current_bucket(self) -> Optional[str]:
        if not self.path:
            return None
        return self.path[0]

    def current_prefix(self) -> str:
        return object_prefix(self.path)

    def current_key_string(self) -> str:
        return f" {' / '.join(self.path)} "

    def current_items(self) -> list[Item]:
        return self.cache.get_items(self.path)

    def current_items_len(self) -> int:
        return self.cache.get_items_len(self.path)

    def current_selected(self) -> Optional[Item]:
        return self.cache.get_item(self.path, self.viewport.selected)

    def current_object_key(self) -> Optional[str]:
        selected = self.current_selected()
        bucket = self.current_bucket()
        if not isinstance(selected, FileItem) or bucket is None:
            return None
        return object_map_key(bucket, self.current_prefix(), selected.name)

    def current_file_detail(self) -> Optional[FileDetail]:
        key = self.current_object_key()
        if key is None:
            return None
        return self.cache.get_object_detail(key)

    def current_file_versions(self) -> Optional[list[FileVersion]]:
        key = self.current_object_key()
        if key is None:
            return None
        return self.cache.get_object_versions(key)

    def selected_file_request(self) -> LoadObjectRequest:
        selected = self.current_selected()
        bucket = self.current_bucket()
        if not isinstance(selected, FileItem) or bucket is None:
            raise ValidationError("No file is selected")
        prefix = self.current_prefix()
        return LoadObjectRequest(
            bucket=bucket,
            key=f"{prefix}{selected.name}",
            name=selected.name,
            size_byte=selected.size_byte,
            map_key=object_map_key(bucket, prefix, selected.name),
        )

    def finish_initialize(self, path: Sequence[str]) -> None:
        if not isinstance(self.view_state, Initializing):
            return
        self.path = list(path)
        self.viewport.select_first()
        self.view_state = Listing()

    def select_next(self) -> None:
        if self._scroll_to(self._preview_scroll() + 1):
            return
        if not self._is_listing():
            return
        total = self.current_items_len()
        if total == 0 or self.viewport.selected >= total - 1:
            self.viewport.select_first()
        else:
            self.viewport.select_next()

    def select_prev(self) -> None:
        if self._scroll_to(self._preview_scroll() - 1):
            return
        if not self._is_listing():
            return
        total = self.current_items_len()
        if total == 0:
            self.viewport.select_first()
        elif self.viewport.selected == 0:
            self.viewport.select_last(total)
        else:
            self.viewport.select_prev()

    def select_next_page(self) -> None:
        if self._scroll_to(self._preview_scroll() + self.viewport.height):
            return
        if self._is_listing():
            self.viewport.select_next_page(self.current_items_len())

    def select_prev_page(self) -> None:
        if self._scroll_to(self._preview_scroll() - self.viewport.height):
            return
        if self._is_listing():
            self.viewport.select_prev_page(self.current_items_len())

    def select_first(self) -> None:
        if self._scroll_to(0):
            return
        if self._is_listing():
            self.viewport.select_first()

    def select_last(self) -> None:
        if self._scroll_to(self._scroll_limit()):
            return
        if self._is_listing():
            self.viewport.select_last(self.current_items_len())

    def move_down(self) -> Optional[LoadRequest]:
        if not self._is_listing():
            return None
        selected = self.current_selected()
        if selected is None:
            return None
        if isinstance(selected, FileItem):
            request = self.selected_file_request()
            if self.cache.exists_object_details(request.map_key):
                self.view_state = Detail(DetailTab.DETAIL)
                return None
            return request
        self.path.append(selected.name)
        self.viewport.select_first()
        return self._request_if_missing()

    def move_up(self) -> Optional[LoadRequest]:
        state = self.view_state
        if isinstance(state, Listing):
            if not self.path:
                return None
            self.path.pop()
            self.viewport.select_first()
            return self._request_if_missing()
        if isinstance(state, Detail):
            self.view_state = Listing()
        elif isinstance(state, Preview):
            self.preview = None
            self.view_state = Detail(DetailTab.DETAIL)
        elif isinstance(state, Help):
            self.toggle_help()
        return None

    def back_to_bucket_list(self) -> Optional[LoadRequest]:
        if not self._is_listing():
            return None
        self.path.clear()
        self.viewport.select_first()
        return self._request_if_missing()

    def show_detail(self, map_key: str) -> bool:
        if not self._is_listing() or self.current_object_key() != map_key:
            return False
        self.view_state = Detail(DetailTab.DETAIL)
        return True

    def show_preview(self, preview: ObjectPreview) -> bool:
        if not isinstance(self.view_state, Detail):
            return False
        if self.current_object_key() != preview.map_key:
            return False
        self.preview = preview
        self.view_state = Preview()
        return True

    def visible_preview_lines(self) -> list[str]:
        state = self.view_state
        if not isinstance(state, Preview) or self.preview is None:
            return []
        stop = state.scroll + self.viewport.height
        return list(self.preview.lines[state.scroll : stop])

    def select_tabs(self) -> None:
        state = self.view_state
        if not isinstance(state, Detail):
            return
        if state.tab is DetailTab.DETAIL:
            self.view_state = Detail(DetailTab.VERSION)
        else:
            self.view_state = Detail(DetailTab.DETAIL)

    def toggle_help(self) -> None:
        state = self.view_state
        if isinstance(state, Initializing):
            return
        if isinstance(state, Help):
            self.view_state = state.previous
        else:
            self.view_state = Help(state)

    def _request_if_missing(self) -> Optional[LoadObjectsRequest]:
        if self.cache.exists_item(self.path):
            return None
        return LoadObjectsRequest(tuple(self.path))
