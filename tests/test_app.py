import logging
import tempfile
import unittest
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from stu.app import (
    _configure_logging,
    _process_prefix,
    format_size,
    format_time,
    item_label,
    render_detail,
    render_help,
    render_item_line,
    render_listing,
    render_preview,
    render_status,
    render_versions,
    size_style,
)
from stu.config import Config
from stu.event import Notification
from stu.navigation import Listing
from stu.orchestrator import Frame
from stu.s3 import BucketItem, FileDetail, FileItem, FileVersion, PrefixItem


def make_frame(items, selected: int = 0, offset: int = 0) -> Frame:
    return Frame(
        view_state=Listing(),
        path=("bucket",),
        selected=selected,
        offset=offset,
        height=10,
        total=len(items),
        items=tuple(items),
        detail=None,
        versions=None,
        notification=Notification.none(),
        busy=False,
    )


class TestAppHelpers(unittest.TestCase):
    def test_format_size(self) -> None:
        self.assertEqual(format_size(0), "0 B")
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(1024), "1.0 KB")
        self.assertEqual(format_size(1536), "1.5 KB")
        self.assertEqual(format_size(3 * 1024**3), "3.0 GB")

    def test_size_style(self) -> None:
        self.assertEqual(size_style(10), "green")
        self.assertEqual(size_style(20 * 1024**4), "bold red")

    def test_format_time(self) -> None:
        self.assertEqual(format_time(None), "")
        self.assertEqual(format_time(datetime(2024, 1, 2, 3, 4)), "2024-01-02 03:04")

    def test_item_label(self) -> None:
        self.assertEqual(item_label(BucketItem("alpha")), "alpha")
        self.assertEqual(item_label(PrefixItem("logs")), "logs/")
        self.assertEqual(item_label(FileItem("a.txt", 1)), "a.txt")

    def test_render_item_line(self) -> None:
        line = render_item_line(FileItem("a.txt", 2048), 60, selected=False)
        self.assertIn("a.txt", line.plain)
        self.assertIn("2.0 KB", line.plain)
        selected = render_item_line(PrefixItem("logs"), 60, selected=True)
        self.assertIn("logs/", selected.plain)
        self.assertTrue(any(span.style == "reverse" for span in selected.spans))

    def test_render_listing(self) -> None:
        self.assertEqual(render_listing(make_frame([]), 60).plain, "No items")
        frame = make_frame([FileItem("a.txt", 1), FileItem("b.txt", 1)], selected=1)
        lines = render_listing(frame, 60).plain.split("\n")
        self.assertEqual(len(lines), 2)
        self.assertIn("b.txt", lines[1])

    def test_render_detail_and_versions(self) -> None:
        self.assertEqual(render_detail(None).plain, "No detail")
        detail = FileDetail(
            name="a.txt",
            size_byte=2048,
            last_modified=None,
            e_tag="abc",
            content_type="text/plain",
            storage_class="STANDARD",
            key="logs/a.txt",
            s3_uri="s3://bucket/logs/a.txt",
            arn="arn:aws:s3:::bucket/logs/a.txt",
            object_url="https://bucket.s3.us-east-1.amazonaws.com/logs/a.txt",
        )
        plain = render_detail(detail).plain
        self.assertIn("s3://bucket/logs/a.txt", plain)
        self.assertIn("2,048 bytes", plain)
        self.assertEqual(render_versions([]).plain, "No versions")
        versions = render_versions([FileVersion("v1", 10, None, True)]).plain
        self.assertIn("Version ID: v1 (latest)", versions)

    def test_render_status_keeps_busy_visible_with_notification(self) -> None:
        frame = replace(
            make_frame([]),
            busy=True,
            notification=Notification.info("Download completed successfully: x"),
        )
        plain = render_status(frame).plain
        self.assertIn("Loading", plain)
        self.assertIn("Download completed successfully: x", plain)

        idle = replace(frame, busy=False)
        self.assertEqual(render_status(idle).plain, "Download completed successfully: x")
        failed = replace(idle, notification=Notification.error("AccessDenied"))
        self.assertEqual(render_status(failed).plain, "AccessDenied")
        self.assertEqual(render_status(make_frame([])).plain, "")
        self.assertEqual(render_status(replace(make_frame([]), busy=True)).plain, "Loading...")

    def test_render_preview(self) -> None:
        self.assertEqual(render_preview(()).plain, "Empty object")
        self.assertEqual(render_preview(("one", "two")).plain, "one\ntwo")

    def test_render_help_lists_quit(self) -> None:
        self.assertIn("Quit", render_help().plain)

    def test_process_prefix(self) -> None:
        self.assertIsNone(_process_prefix(None))
        self.assertEqual(_process_prefix("logs/2024/"), "logs/2024")
        self.assertEqual(_process_prefix("logs"), "logs")


class TestConfigureLogging(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("stu")
        self.saved_handlers = list(self.logger.handlers)
        self.saved_level = self.logger.level

    def tearDown(self) -> None:
        for handler in self.logger.handlers:
            if handler not in self.saved_handlers:
                handler.close()
        self.logger.handlers = self.saved_handlers
        self.logger.setLevel(self.saved_level)

    def test_debug_writes_to_debug_log(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = Config(download_dir=Path(tmp) / "dl", base_dir=Path(tmp))
            _configure_logging(True, config)
            logging.getLogger("stu.test").debug("hello debug")
            for handler in self.logger.handlers:
                handler.flush()
            content = config.debug_log_path().read_text(encoding="utf-8")
            self.assertIn("hello debug", content)
            for handler in list(self.logger.handlers):
                if handler not in self.saved_handlers:
                    handler.close()
                    self.logger.removeHandler(handler)

    def test_without_debug_adds_null_handler(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = Config(download_dir=Path(tmp) / "dl", base_dir=Path(tmp))
            _configure_logging(False, config)
            self.assertFalse(config.debug_log_path().exists())
        self.assertTrue(
            any(isinstance(h, logging.NullHandler) for h in self.logger.handlers)
        )


if __name__ == "__main__":
    unittest.main()
