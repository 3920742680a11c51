from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Optional

from .cache import ObjectCache
from .config import Config
from .error import LocalIOError, RemoteCallError, StuError, ValidationError
from .event import (
    Completion,
    CompletionPayload,
    DownloadObjectCompleted,
    InitializeCompleted,
    LoadObjectCompleted,
    LoadObjectsCompleted,
    Notification,
    PreviewLoadCompleted,
)
from .file import Persistence
from .navigation import (
    Detail,
    Listing,
    LoadObjectRequest,
    LoadObjectsRequest,
    LoadRequest,
    Navigator,
    Preview,
    ViewState,
    object_prefix,
)
from .preview import ObjectPreview
from .s3 import ConsoleScope, FileDetail, FileVersion, Item

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.05


@dataclass(frozen=True)
class Frame:
    view_state: ViewState
    path: tuple[str, ...]
    selected: int
    offset: int
    height: int
    total: int
    items: list[Item]
    detail: Optional[FileDetail]
    versions: Optional[list[FileVersion]]
    notification: Notification
    busy: bool
    key_string: str = ""
    preview_lines: tuple[str, ...] = ()

    @property
    def visible_selected(self) -> int:
        return self.selected - self.offset


def split_prefix(prefix: Optional[str]) -> list[str]:
    if not prefix:
        return []
    return [part for part in prefix.split("/") if part]


def download_name(file_name: str) -> Optional[str]:
    """Reduce a user-typed file name to a bare name inside the download dir."""
    name = Path(file_name.strip()).name
    if name in ("", ".", ".."):
        return None
    return name


class Orchestrator:
    """Single owner of the cache and the navigation state.

    Remote-backed actions set the busy flag and spawn a task bound to a
    snapshot of their arguments. Tasks report back through a queue, and
    completions are applied one at a time by ``drain`` / ``poll`` on the
    owner's loop, so no reader ever sees a half-applied update.
    """

    def __init__(
        self,
        client,
        config: Config,
        raw_height: int,
        persistence: Optional[Persistence] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.persistence = persistence or Persistence()
        self.cache = ObjectCache()
        self.navigator = Navigator(self.cache, raw_height)
        self.notification = Notification.none()
        self.busy = True
        self._completions: asyncio.Queue[Completion] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._inflight: set[tuple[str, object]] = set()

    @property
    def view_state(self) -> ViewState:
        return self.navigator.view_state

    @property
    def path(self) -> list[str]:
        return self.navigator.path

    @property
    def viewport(self):
        return self.navigator.viewport

    def pending(self) -> int:
        return len(self._tasks)

    def _spawn(
        self,
        label: str,
        operation: Awaitable[CompletionPayload],
        target: Optional[tuple[str, object]] = None,
    ) -> None:
        self.busy = True
        if target is not None:
            self._inflight.add(target)
        logger.debug("request %s", label)
        task = asyncio.create_task(self._run(label, operation, target))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self,
        label: str,
        operation: Awaitable[CompletionPayload],
        target: Optional[tuple[str, object]],
    ) -> None:
        try:
            payload = await operation
        except StuError as exc:
            completion = Completion(error=exc, target=target)
        except Exception as exc:
            error = RemoteCallError(f"{exc}")
            error.__cause__ = exc
            completion = Completion(error=error, target=target)
        else:
            completion = Completion(payload=payload, target=target)
        logger.debug("complete %s (error=%s)", label, completion.error)
        self._completions.put_nowait(completion)

    def drain(self) -> int:
        applied = 0
        while True:
            try:
                completion = self._completions.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            self.apply(completion)
            applied += 1

    async def poll(self, timeout: float = POLL_INTERVAL_SECONDS) -> int:
        try:
            completion = await asyncio.wait_for(self._completions.get(), timeout)
        except asyncio.TimeoutError:
            return 0
        self.apply(completion)
        return 1 + self.drain()

    async def wait_idle(self) -> int:
        applied = 0
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
            applied += self.drain()
        return applied + self.drain()

    def apply(self, completion: Completion) -> None:
        if completion.target is not None:
            self._inflight.discard(completion.target)
        if completion.error is not None:
            self._report_error(completion.error)
        elif completion.payload is not None:
            self._apply_payload(completion.payload)
        self.busy = False

    def _apply_payload(self, payload: CompletionPayload) -> None:
        if isinstance(payload, InitializeCompleted):
            self.cache.set_items(payload.path, payload.items)
            self.navigator.finish_initialize(payload.path)
        elif isinstance(payload, LoadObjectsCompleted):
            self.cache.set_items(payload.path, payload.items)
        elif isinstance(payload, LoadObjectCompleted):
            self.cache.set_object_details(
                payload.map_key, payload.detail, payload.versions
            )
            self.navigator.show_detail(payload.map_key)
        elif isinstance(payload, DownloadObjectCompleted):
            self._save_download(payload.path, payload.data)
        elif isinstance(payload, PreviewLoadCompleted):
            self.navigator.show_preview(
                ObjectPreview.from_bytes(payload.map_key, payload.name, payload.data)
            )

    def _save_download(self, path: Path, data: bytes) -> None:
        try:
            self.persistence.save_binary(path, data)
        except LocalIOError as exc:
            self._report_error(exc)
            return
        self.notification = Notification.info(
            f"Download completed successfully: {path}"
        )

    def _report_error(self, error: StuError) -> None:
        logger.warning("%s: %s", type(error).__name__, error)
        self.notification = Notification.error(f"{error}")
        try:
            self.persistence.save_error_log(self.config.error_log_path(), error)
        except LocalIOError as exc:
            logger.warning("%s", exc)

    def initialize(self, bucket: Optional[str] = None, prefix: Optional[str] = None) -> None:
        path: tuple[str, ...] = ()
        if bucket:
            path = (bucket, *split_prefix(prefix))
        self._spawn("initialize", self._fetch_initial(path))

    async def _fetch_initial(self, path: tuple[str, ...]) -> InitializeCompleted:
        items = await self._fetch_items(path)
        return InitializeCompleted(path=path, items=items)

    async def _fetch_items(self, path: tuple[str, ...]) -> list[Item]:
        if not path:
            return list(await self.client.list_top_level())
        return list(await self.client.list_children(path[0], object_prefix(path)))

    def load_objects(self, path: tuple[str, ...]) -> None:
        target = ("objects", path)
        if target in self._inflight:
            return
        self._spawn(f"load_objects {path}", self._fetch_objects(path), target)

    async def _fetch_objects(self, path: tuple[str, ...]) -> LoadObjectsCompleted:
        items = await self._fetch_items(path)
        return LoadObjectsCompleted(path=path, items=items)

    def load_object(self, request: LoadObjectRequest) -> None:
        target = ("object", request.map_key)
        if target in self._inflight:
            return
        self._spawn(
            f"load_object {request.map_key}", self._fetch_object(request), target
        )

    async def _fetch_object(self, request: LoadObjectRequest) -> LoadObjectCompleted:
        detail, versions = await asyncio.gather(
            self.client.get_object_metadata(
                request.bucket, request.key, request.name, request.size_byte
            ),
            self.client.get_object_versions(request.bucket, request.key),
        )
        return LoadObjectCompleted(
            map_key=request.map_key, detail=detail, versions=list(versions)
        )

    def open_preview(self) -> None:
        request = self._detail_file_request()
        if request is None:
            return
        target = ("preview", request.map_key)
        if target in self._inflight:
            return
        self._spawn(
            f"preview {request.map_key}", self._fetch_preview(request), target
        )

    async def _fetch_preview(self, request: LoadObjectRequest) -> PreviewLoadCompleted:
        data = await self.client.get_object_bytes(request.bucket, request.key)
        return PreviewLoadCompleted(map_key=request.map_key, name=request.name, data=data)

    def download_object(self) -> None:
        preview = self._current_preview()
        if preview is not None:
            self._save_download(self.config.download_file_path(preview.name), preview.data)
            return
        request = self._detail_file_request()
        if request is None:
            return
        path = self.config.download_file_path(request.name)
        self._spawn(f"download {request.map_key}", self._fetch_bytes(request, path))

    def download_object_as(self, file_name: str) -> None:
        name = download_name(file_name)
        if name is None:
            return
        path = self.config.download_file_path(name)
        preview = self._current_preview()
        if preview is not None:
            self._save_download(path, preview.data)
            return
        request = self._detail_file_request()
        if request is None:
            return
        self._spawn(
            f"download {request.map_key} as {name}", self._fetch_bytes(request, path)
        )

    async def _fetch_bytes(
        self, request: LoadObjectRequest, path: Path
    ) -> DownloadObjectCompleted:
        data = await self.client.get_object_bytes(request.bucket, request.key)
        return DownloadObjectCompleted(path=path, data=data)

    def _current_preview(self) -> Optional[ObjectPreview]:
        if not isinstance(self.view_state, Preview):
            return None
        return self.navigator.preview

    def _detail_file_request(self) -> Optional[LoadObjectRequest]:
        if not isinstance(self.view_state, Detail):
            return None
        try:
            return self.navigator.selected_file_request()
        except ValidationError:
            return None

    def open_console(self) -> None:
        state = self.view_state
        bucket = self.navigator.current_bucket()
        prefix = self.navigator.current_prefix()
        if isinstance(state, Listing):
            if bucket is None:
                scope = ConsoleScope()
            else:
                scope = ConsoleScope(bucket=bucket, prefix=prefix)
        elif isinstance(state, Detail):
            request = self._detail_file_request()
            if request is None:
                return
            scope = ConsoleScope(bucket=request.bucket, prefix=prefix, name=request.name)
        else:
            return
        try:
            self.client.open_console_url(scope)
        except Exception as exc:
            error = RemoteCallError(f"{exc}")
            error.__cause__ = exc
            self._report_error(error)

    def _dispatch(self, request: Optional[LoadRequest]) -> None:
        if isinstance(request, LoadObjectsRequest):
            self.load_objects(request.path)
        elif isinstance(request, LoadObjectRequest):
            self.load_object(request)

    def select_next(self) -> None:
        self.navigator.select_next()

    def select_prev(self) -> None:
        self.navigator.select_prev()

    def select_next_page(self) -> None:
        self.navigator.select_next_page()

    def select_prev_page(self) -> None:
        self.navigator.select_prev_page()

    def select_first(self) -> None:
        self.navigator.select_first()

    def select_last(self) -> None:
        self.navigator.select_last()

    def move_down(self) -> None:
        self._dispatch(self.navigator.move_down())

    def move_up(self) -> None:
        self._dispatch(self.navigator.move_up())

    def back_to_bucket_list(self) -> None:
        self._dispatch(self.navigator.back_to_bucket_list())

    def select_tabs(self) -> None:
        self.navigator.select_tabs()

    def toggle_help(self) -> None:
        self.navigator.toggle_help()

    def resize(self, raw_height: int) -> None:
        self.navigator.viewport.resize(raw_height)

    def frame(self) -> Frame:
        navigator = self.navigator
        viewport = navigator.viewport
        items = navigator.current_items()
        start, stop = viewport.visible_range(len(items))
        return Frame(
            view_state=navigator.view_state,
            path=tuple(navigator.path),
            selected=viewport.selected,
            offset=viewport.offset,
            height=viewport.height,
            total=len(items),
            items=items[start:stop],
            detail=navigator.current_file_detail(),
            versions=navigator.current_file_versions(),
            notification=self.notification,
            busy=self.busy,
            key_string=navigator.current_key_string(),
            preview_lines=tuple(navigator.visible_preview_lines()),
        )
