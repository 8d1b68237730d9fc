"""导出测试。

测试成功结果的收集、文件命名与去重以及写入目录。
"""

from pathlib import Path

import pytest

from py_image_edit_mcp.engine.export import ExportCollector, write_entries
from py_image_edit_mcp.engine.orchestrator import BatchOrchestrator
from py_image_edit_mcp.engine.queue import BatchQueue
from py_image_edit_mcp.models.constants import OutputFormat
from py_image_edit_mcp.models.edit_result import ExportEntry
from py_image_edit_mcp.models.edit_settings import DEFAULT_SETTINGS
from py_image_edit_mcp.utils.naming_helpers import FileNamingStrategy, PathResolver


def _run(make_source, capability, names: list[str], selected: int | None = None):
    batch = BatchQueue()
    batch.add_images([make_source(name) for name in names])
    ids = [item.id for item in batch.items]
    batch.select(ids[:selected] if selected is not None else ids)
    BatchOrchestrator(capability).run_sync(batch, DEFAULT_SETTINGS)
    return batch


class TestFileNaming:
    """文件命名策略测试"""

    @pytest.mark.parametrize(
        ("source_name", "output_format", "expected"),
        [
            ("photo.png", OutputFormat.JPEG, "photo_edited.jpg"),
            ("holiday.photo.png", OutputFormat.PNG, "holiday_edited.png"),
            ("scan", OutputFormat.WEBP, "scan_edited.webp"),
            ("dir/sub/cat.webp", OutputFormat.PNG, "cat_edited.png"),
            (".hidden.png", OutputFormat.PNG, "image_edited.png"),
            ("", OutputFormat.JPEG, "image_edited.jpg"),
        ],
    )
    def test_generate_output_name(self, source_name, output_format, expected):
        assert (
            FileNamingStrategy.generate_output_name(source_name, output_format)
            == expected
        )

    def test_custom_suffix(self):
        name = FileNamingStrategy.generate_output_name(
            "photo.png", OutputFormat.PNG, suffix="_ai"
        )
        assert name == "photo_ai.png"

    def test_deduplicate(self):
        assert FileNamingStrategy.deduplicate(
            ["a.png", "a.png", "b.png", "a.png"]
        ) == ["a.png", "a_1.png", "b.png", "a_2.png"]

    def test_ensure_unique_path(self, tmp_path: Path):
        target = tmp_path / "a.png"
        assert PathResolver.ensure_unique_path(target) == target

        target.write_bytes(b"x")
        assert PathResolver.ensure_unique_path(target) == tmp_path / "a_1.png"


class TestExportCollector:
    """导出收集测试"""

    def test_one_of_three_selected(self, make_source, capability):
        batch = _run(make_source, capability, ["a.png", "b.png", "c.png"], selected=1)

        entries = ExportCollector().collect_succeeded(batch, OutputFormat.PNG)

        assert len(entries) == 1
        assert entries[0].filename == "a_edited.png"
        assert entries[0].data == b"edited:a.png"

    def test_no_success_returns_empty(self, make_source, capability_factory):
        capability = capability_factory(fail_names={"a.png"})
        batch = _run(make_source, capability, ["a.png"])

        assert ExportCollector().collect_succeeded(batch, OutputFormat.PNG) == []

    def test_skips_failed_items_and_keeps_order(self, make_source, capability_factory):
        capability = capability_factory(fail_names={"b.png"})
        batch = _run(make_source, capability, ["c.png", "b.png", "a.png"])

        entries = ExportCollector().collect_succeeded(batch, OutputFormat.JPEG)

        assert [e.filename for e in entries] == ["c_edited.jpg", "a_edited.jpg"]

    def test_duplicate_stems_are_disambiguated(self, make_source, capability):
        batch = _run(make_source, capability, ["photo.png", "photo.jpg", "photo.webp"])

        entries = ExportCollector().collect_succeeded(batch, OutputFormat.WEBP)

        assert [e.filename for e in entries] == [
            "photo_edited.webp",
            "photo_edited_1.webp",
            "photo_edited_2.webp",
        ]

    def test_collect_is_deterministic(self, make_source, capability):
        batch = _run(make_source, capability, ["a.png", "b.png"])
        collector = ExportCollector()

        assert collector.collect_succeeded(
            batch, OutputFormat.PNG
        ) == collector.collect_succeeded(batch, OutputFormat.PNG)


class TestWriteEntries:
    """写入目录测试"""

    def test_write_entries(self, output_dir: Path):
        entries = [
            ExportEntry(item_id="1", filename="a_edited.png", data=b"one"),
            ExportEntry(item_id="2", filename="b_edited.png", data=b"two"),
        ]

        written = write_entries(entries, output_dir)

        assert [p.name for p in written] == ["a_edited.png", "b_edited.png"]
        assert (output_dir / "b_edited.png").read_bytes() == b"two"

    def test_existing_files_are_not_overwritten(self, output_dir: Path):
        (output_dir / "a_edited.png").write_bytes(b"old")
        entry = ExportEntry(item_id="1", filename="a_edited.png", data=b"new")

        written = write_entries([entry], output_dir)

        assert written == [output_dir / "a_edited_1.png"]
        assert (output_dir / "a_edited.png").read_bytes() == b"old"

    def test_creates_missing_directory(self, tmp_path: Path):
        target = tmp_path / "nested" / "out"
        entry = ExportEntry(item_id="1", filename="x.png", data=b"x")

        write_entries([entry], target)

        assert (target / "x.png").exists()
