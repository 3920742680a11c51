from __future__ import annotations

import argparse
import logging
import shutil
import sys
from datetime import datetime
from typing import Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Input, Static

from .config import Config
from .error import FatalStartupError
from .event import NotificationLevel
from .navigation import Detail, DetailTab, Help, Initializing, Preview
from .orchestrator import POLL_INTERVAL_SECONDS, Frame, Orchestrator
from .s3 import (
    PATH_STYLES,
    BucketItem,
    FileDetail,
    FileItem,
    FileVersion,
    Item,
    PrefixItem,
    S3Service,
)
from .viewport import FIXED_CHROME_ROWS

logger = logging.getLogger(__name__)

ONE_MB = 1024**2
HUNDRED_MB = 100 * ONE_MB
ONE_GB = 1024**3
TEN_GB = 10 * ONE_GB
SIZE_COLUMN_WIDTH = 10
MODIFIED_COLUMN_WIDTH = 16

HELP_LINES = [
    ("j / Down", "Select next item"),
    ("k / Up", "Select previous item"),
    ("Ctrl+f / Ctrl+b", "Next / previous page"),
    ("g / G", "Select first / last item"),
    ("Enter / l", "Open bucket, folder or file detail"),
    ("Backspace / h", "Go back"),
    ("~", "Back to bucket list"),
    ("Tab", "Switch detail / version tab"),
    ("p", "Preview object"),
    ("s", "Download object (or previewed bytes)"),
    ("S", "Download object as..."),
    ("x", "Open management console in browser"),
    ("?", "Toggle help"),
    ("q / Ctrl+c", "Quit"),
]


class DownloadDialog(ModalScreen[Optional[str]]):
    BINDINGS = [
        ("escape", "cancel", "Cancel"),
    ]
    CSS = """
    DownloadDialog {
        align: center middle;
    }

    #download-dialog {
        width: 60;
        max-width: 80;
        min-width: 40;
        height: auto;
        min-height: 7;
        margin: 1 2;
        padding: 1 2;
        border: round $panel;
        background: $panel;
        color: $text;
    }

    #download-actions {
        width: 100%;
        align: center middle;
        margin-top: 1;
        height: auto;
    }

    #download-name {
        width: 100%;
    }

    #download-ok {
        margin-left: 2;
    }
    """

    def __init__(self, default_name: str, label: str = "Save as:") -> None:
        super().__init__()
        self._default_name = default_name
        self._label = label

    def compose(self) -> ComposeResult:
        with Vertical(id="download-dialog"):
            yield Static(self._label)
            yield Input(value=self._default_name, id="download-name")
            with Horizontal(id="download-actions"):
                yield Button("Cancel", id="download-cancel", compact=True)
                yield Button("Download", id="download-ok", compact=True)

    def on_mount(self) -> None:
        self.query_one("#download-name", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "download-cancel":
            self.dismiss(None)
        elif event.button.id == "download-ok":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "download-name":
            return
        self._submit()

    def _submit(self) -> None:
        value = self.query_one("#download-name", Input).value.strip()
        if not value:
            return
        self.dismiss(value)

    def action_cancel(self) -> None:
        self.dismiss(None)


def format_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PB"


def size_style(size: int) -> str:
    if size < ONE_MB:
        return "green"
    if size < HUNDRED_MB:
        return "#ffd700"
    if size < ONE_GB:
        return "#ff8c00"
    if size < TEN_GB:
        return "red"
    return "bold red"


def format_time(value: Optional[datetime]) -> str:
    if not value:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def item_icon(item: Item) -> str:
    if isinstance(item, BucketItem):
        return "🪣"
    if isinstance(item, PrefixItem):
        return "📁"
    return "  "


def item_label(item: Item) -> str:
    if isinstance(item, PrefixItem):
        return f"{item.name}/"
    return item.name


def render_item_line(item: Item, width: int, selected: bool) -> Text:
    name_width = max(1, width - SIZE_COLUMN_WIDTH - MODIFIED_COLUMN_WIDTH - 5)
    line = Text(no_wrap=True, overflow="ellipsis", end="")
    line.append(f"{item_icon(item)} ")
    name = Text(item_label(item), style="bold" if not isinstance(item, FileItem) else "")
    name.truncate(name_width, overflow="ellipsis", pad=True)
    line.append_text(name)
    line.append(" ")
    if isinstance(item, FileItem):
        line.append(
            format_size(item.size_byte).rjust(SIZE_COLUMN_WIDTH),
            style=size_style(item.size_byte),
        )
    else:
        line.append(" " * SIZE_COLUMN_WIDTH)
    line.append(" ")
    line.append(format_time(item.last_modified).rjust(MODIFIED_COLUMN_WIDTH), style="dim")
    if selected:
        line.stylize("reverse")
    return line


def render_listing(frame: Frame, width: int) -> Text:
    if frame.total == 0:
        return Text("No items", style="dim")
    lines = Text("\n").join(
        render_item_line(item, width, index == frame.visible_selected)
        for index, item in enumerate(frame.items)
    )
    return lines


def render_tabs(tab: DetailTab) -> Text:
    tabs = Text()
    for candidate, label in ((DetailTab.DETAIL, "Detail"), (DetailTab.VERSION, "Version")):
        style = "bold reverse" if candidate is tab else "dim"
        tabs.append(f" {label} ", style=style)
        tabs.append(" ")
    return tabs


def render_detail(detail: Optional[FileDetail]) -> Text:
    if detail is None:
        return Text("No detail", style="dim")
    rows = [
        ("Name", detail.name),
        ("Size", f"{format_size(detail.size_byte)} ({detail.size_byte:,} bytes)"),
        ("Last Modified", format_time(detail.last_modified)),
        ("ETag", detail.e_tag),
        ("Content-Type", detail.content_type),
        ("Storage class", detail.storage_class),
        ("Key", detail.key),
        ("S3 URI", detail.s3_uri),
        ("ARN", detail.arn),
        ("Object URL", detail.object_url),
    ]
    text = Text()
    for label, value in rows:
        text.append(f"{label}:\n", style="bold")
        text.append(f"  {value}\n")
    return text


def render_versions(versions: Optional[list[FileVersion]]) -> Text:
    if not versions:
        return Text("No versions", style="dim")
    text = Text()
    for version in versions:
        latest = " (latest)" if version.is_latest else ""
        text.append(f"Version ID: {version.version_id}{latest}\n", style="bold")
        text.append(f"  Last Modified: {format_time(version.last_modified)}\n")
        text.append(f"  Size: {format_size(version.size_byte)}\n")
    return text


def render_preview(lines: tuple[str, ...]) -> Text:
    if not lines:
        return Text("Empty object", style="dim")
    return Text("\n".join(lines), no_wrap=True, overflow="ellipsis")


def render_status(frame: Frame) -> Text:
    status = Text()
    if frame.busy:
        status.append("Loading...", style="dim")
    notification = frame.notification
    if notification.level is NotificationLevel.NONE:
        return status
    if status:
        status.append("  ")
    if notification.level is NotificationLevel.ERROR:
        status.append(notification.text, style="bold red")
    else:
        status.append(notification.text, style="green")
    return status


def render_help() -> Text:
    text = Text()
    for keys, description in HELP_LINES:
        text.append(f"{keys:>18}", style="bold")
        text.append(f"  {description}\n")
    return text


class StuApp(App):
    CSS = """
    #path-bar {
        height: 3;
        padding: 0 1;
        border: round $panel;
        background: $surface;
        color: $text;
        content-align: left middle;
    }

    #content {
        height: 1fr;
        padding: 0 1;
        border: round $panel;
        overflow-y: hidden;
    }

    #status {
        height: 1;
        padding: 0 1;
        background: $surface;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False),
        Binding("j", "select_next", "Down", show=False),
        Binding("down", "select_next", "Down", show=False),
        Binding("k", "select_prev", "Up", show=False),
        Binding("up", "select_prev", "Up", show=False),
        Binding("ctrl+f", "select_next_page", "Page down", show=False),
        Binding("ctrl+b", "select_prev_page", "Page up", show=False),
        Binding("g", "select_first", "First", show=False),
        Binding("G", "select_last", "Last", show=False),
        Binding("enter", "move_down", "Open"),
        Binding("l", "move_down", "Open", show=False),
        Binding("backspace", "move_up", "Back"),
        Binding("h", "move_up", "Back", show=False),
        Binding("tilde", "back_to_bucket_list", "Buckets"),
        Binding("tab", "select_tabs", "Tab", priority=True),
        Binding("s", "download", "Download"),
        Binding("S", "download_as", "Download as"),
        Binding("p", "open_preview", "Preview"),
        Binding("x", "open_console", "Console"),
        Binding("question_mark", "toggle_help", "Help"),
    ]

    def __init__(
        self,
        service,
        config: Config,
        bucket: Optional[str] = None,
        prefix: Optional[str] = None,
        raw_height: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.service = service
        self.config = config
        self._start_bucket = bucket
        self._start_prefix = prefix
        height = raw_height or shutil.get_terminal_size().lines
        self.orchestrator = Orchestrator(service, config, height)
        self._last_frame: Optional[Frame] = None

    def compose(self) -> ComposeResult:
        yield Static(" ", id="path-bar")
        yield Static("", id="content")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.path_bar = self.query_one("#path-bar", Static)
        self.content_pane = self.query_one("#content", Static)
        self.status_bar = self.query_one("#status", Static)
        self.orchestrator.resize(self.size.height)
        self.orchestrator.initialize(self._start_bucket, self._start_prefix)
        self.set_interval(POLL_INTERVAL_SECONDS, self._tick)
        self.render_frame(force=True)

    def on_resize(self, event) -> None:
        self.orchestrator.resize(event.size.height)
        if self._last_frame is not None:
            self.render_frame(force=True)

    def _tick(self) -> None:
        self.orchestrator.drain()
        self.render_frame()

    def render_frame(self, force: bool = False) -> None:
        frame = self.orchestrator.frame()
        if not force and frame == self._last_frame:
            return
        self._last_frame = frame
        self.path_bar.update(self._render_path(frame))
        self.content_pane.update(self._render_content(frame))
        self.status_bar.update(render_status(frame))

    def _render_path(self, frame: Frame) -> Text:
        if not frame.path:
            return Text(" Buckets ", style="bold")
        return Text(frame.key_string, style="bold")

    def _render_content(self, frame: Frame) -> Text:
        state = frame.view_state
        if isinstance(state, Initializing):
            return Text("Loading...", style="dim")
        if isinstance(state, Help):
            return render_help()
        if isinstance(state, Preview):
            return render_preview(frame.preview_lines)
        if isinstance(state, Detail):
            body = (
                render_detail(frame.detail)
                if state.tab is DetailTab.DETAIL
                else render_versions(frame.versions)
            )
            return Text("\n").join([render_tabs(state.tab), Text(""), body])
        width = max(20, self.content_pane.size.width)
        return render_listing(frame, width)

    def _handle(self, operation) -> None:
        operation()
        self.render_frame()

    def action_select_next(self) -> None:
        self._handle(self.orchestrator.select_next)

    def action_select_prev(self) -> None:
        self._handle(self.orchestrator.select_prev)

    def action_select_next_page(self) -> None:
        self._handle(self.orchestrator.select_next_page)

    def action_select_prev_page(self) -> None:
        self._handle(self.orchestrator.select_prev_page)

    def action_select_first(self) -> None:
        self._handle(self.orchestrator.select_first)

    def action_select_last(self) -> None:
        self._handle(self.orchestrator.select_last)

    def action_move_down(self) -> None:
        self._handle(self.orchestrator.move_down)

    def action_move_up(self) -> None:
        self._handle(self.orchestrator.move_up)

    def action_back_to_bucket_list(self) -> None:
        self._handle(self.orchestrator.back_to_bucket_list)

    def action_select_tabs(self) -> None:
        if isinstance(self.screen, ModalScreen):
            self.screen.focus_next()
            return
        self._handle(self.orchestrator.select_tabs)

    def action_toggle_help(self) -> None:
        self._handle(self.orchestrator.toggle_help)

    def action_download(self) -> None:
        self._handle(self.orchestrator.download_object)

    def action_open_console(self) -> None:
        self._handle(self.orchestrator.open_console)

    def action_open_preview(self) -> None:
        self._handle(self.orchestrator.open_preview)

    def action_download_as(self) -> None:
        state = self.orchestrator.view_state
        navigator = self.orchestrator.navigator
        if isinstance(state, Preview) and navigator.preview is not None:
            default_name = navigator.preview.name
        elif isinstance(state, Detail):
            detail = navigator.current_file_detail()
            default_name = detail.name if detail else ""
        else:
            return

        def on_result(name: Optional[str]) -> None:
            if name:
                self.orchestrator.download_object_as(name)
            self.render_frame()

        self.push_screen(DownloadDialog(default_name), on_result)


def _process_prefix(prefix: Optional[str]) -> Optional[str]:
    if prefix is None:
        return None
    return prefix.rstrip("/")


def _configure_logging(debug: bool, config: Config) -> None:
    if not debug:
        logging.getLogger("stu").addHandler(logging.NullHandler())
        return
    path = config.debug_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s")
    )
    root = logging.getLogger("stu")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stu", description="S3 terminal UI")
    parser.add_argument("-r", "--region", help="AWS region")
    parser.add_argument("-e", "--endpoint-url", help="AWS endpoint url")
    parser.add_argument("-p", "--profile", help="AWS profile name")
    parser.add_argument("-b", "--bucket", help="Target bucket name")
    parser.add_argument("-x", "--prefix", help="Target prefix")
    parser.add_argument(
        "--path-style",
        choices=PATH_STYLES,
        default="auto",
        help="Path style type for object paths",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    return parser


def _run_browser(args: argparse.Namespace) -> int:
    config = Config.load()
    _configure_logging(args.debug, config)
    height = shutil.get_terminal_size().lines
    if height <= FIXED_CHROME_ROWS:
        raise FatalStartupError(f"Terminal is too small ({height} rows)")
    service = S3Service(
        profile=args.profile,
        region=args.region,
        endpoint_url=args.endpoint_url,
        path_style=args.path_style,
        default_region=config.default_region,
    )
    service.connect()
    app = StuApp(
        service,
        config,
        bucket=args.bucket,
        prefix=_process_prefix(args.prefix),
        raw_height=height,
    )
    app.run()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        return _run_browser(args)
    except FatalStartupError as exc:
        print(f"stu: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
