import tempfile
import unittest
from pathlib import Path

from stu.app import DownloadDialog, StuApp
from stu.config import Config
from stu.navigation import Detail, DetailTab, Help, Listing, Preview
from stu.s3 import BucketItem, FileDetail, FileItem, PrefixItem


class _StubService:
    def __init__(self) -> None:
        self.children = {
            ("alpha", ""): [PrefixItem("logs"), FileItem("a.txt", 4)],
            ("alpha", "logs/"): [FileItem("app.log", 2)],
        }

    async def list_top_level(self):
        return [BucketItem("alpha"), BucketItem("beta")]

    async def list_children(self, bucket, prefix):
        return list(self.children.get((bucket, prefix), []))

    async def get_object_metadata(self, bucket, key, name, size_byte):
        return FileDetail(
            name=name,
            size_byte=size_byte,
            last_modified=None,
            e_tag="etag",
            content_type="text/plain",
            storage_class="STANDARD",
            key=key,
            s3_uri=f"s3://{bucket}/{key}",
            arn=f"arn:aws:s3:::{bucket}/{key}",
            object_url=f"https://{bucket}.s3.us-east-1.amazonaws.com/{key}",
        )

    async def get_object_versions(self, bucket, key):
        return []

    async def get_object_bytes(self, bucket, key):
        return b"data"

    def open_console_url(self, scope) -> None:
        return None


class TestTuiMount(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        base = Path(self.tmp.name)
        self.config = Config(download_dir=base / "download", base_dir=base)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def make_app(self, **kwargs) -> StuApp:
        return StuApp(_StubService(), self.config, raw_height=24, **kwargs)

    async def test_app_mounts_and_lists_buckets(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.pause()
            self.assertEqual(app.orchestrator.view_state, Listing())
            frame = app.orchestrator.frame()
            self.assertEqual([item.name for item in frame.items], ["alpha", "beta"])
            self.assertFalse(frame.busy)

    async def test_enter_opens_bucket_and_backspace_returns(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.press("enter")
            await app.orchestrator.wait_idle()
            await pilot.pause()
            self.assertEqual(app.orchestrator.path, ["alpha"])
            self.assertEqual(app.orchestrator.frame().total, 2)
            await pilot.press("backspace")
            self.assertEqual(app.orchestrator.path, [])

    async def test_starts_inside_prefix(self) -> None:
        app = self.make_app(bucket="alpha", prefix="logs")
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.pause()
            self.assertEqual(app.orchestrator.path, ["alpha", "logs"])
            self.assertEqual(
                [item.name for item in app.orchestrator.frame().items], ["app.log"]
            )

    async def test_help_toggles(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.press("question_mark")
            self.assertEqual(app.orchestrator.view_state, Help(Listing()))
            await pilot.press("question_mark")
            self.assertEqual(app.orchestrator.view_state, Listing())

    async def test_detail_tabs_and_download_as(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.press("enter")
            await app.orchestrator.wait_idle()
            await pilot.press("j")
            await pilot.press("enter")
            await app.orchestrator.wait_idle()
            await pilot.pause()
            self.assertEqual(app.orchestrator.view_state, Detail(DetailTab.DETAIL))
            await pilot.press("tab")
            self.assertEqual(app.orchestrator.view_state, Detail(DetailTab.VERSION))

            await pilot.press("S")
            await pilot.pause()
            self.assertIsInstance(app.screen, DownloadDialog)
            dialog_input = app.screen.query_one("#download-name")
            self.assertEqual(dialog_input.value, "a.txt")
            dialog_input.value = "copy.txt"
            await pilot.press("enter")
            await pilot.pause()
            await app.orchestrator.wait_idle()
            await pilot.pause()
            saved = self.config.download_dir / "copy.txt"
            self.assertEqual(saved.read_bytes(), b"data")

    async def open_file_detail(self, app: StuApp, pilot) -> None:
        await app.orchestrator.wait_idle()
        await pilot.press("enter")
        await app.orchestrator.wait_idle()
        await pilot.press("j")
        await pilot.press("enter")
        await app.orchestrator.wait_idle()
        await pilot.pause()

    async def test_preview_opens_saves_and_returns(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await self.open_file_detail(app, pilot)
            await pilot.press("p")
            await app.orchestrator.wait_idle()
            await pilot.pause()
            self.assertEqual(app.orchestrator.view_state, Preview())
            self.assertEqual(app.orchestrator.frame().preview_lines, ("data",))

            await pilot.press("s")
            await pilot.pause()
            saved = self.config.download_dir / "a.txt"
            self.assertEqual(saved.read_bytes(), b"data")

            await pilot.press("backspace")
            self.assertEqual(app.orchestrator.view_state, Detail(DetailTab.DETAIL))

    async def test_tab_in_download_dialog_keeps_detail_tab(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await self.open_file_detail(app, pilot)
            await pilot.press("S")
            await pilot.pause()
            await pilot.press("tab")
            await pilot.pause()
            self.assertIsInstance(app.screen, DownloadDialog)
            self.assertEqual(app.orchestrator.view_state, Detail(DetailTab.DETAIL))

    async def test_download_dialog_escape_cancels(self) -> None:
        app = self.make_app()
        async with app.run_test() as pilot:
            await app.orchestrator.wait_idle()
            await pilot.press("enter")
            await app.orchestrator.wait_idle()
            await pilot.press("j")
            await pilot.press("enter")
            await app.orchestrator.wait_idle()
            await pilot.press("S")
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
            self.assertNotIsInstance(app.screen, DownloadDialog)
            self.assertEqual(app.orchestrator.pending(), 0)
            self.assertFalse(self.config.download_dir.exists())


if __name__ == "__main__":
    unittest.main()
