"""集成测试。

测试编辑器会话、便捷函数以及 MCP 服务器工具。
"""

import asyncio
import json
import textwrap
from pathlib import Path

import pytest

from py_image_edit_mcp import ImageEditor, edit_images, get_version
from py_image_edit_mcp.core.intake import RawImage
from py_image_edit_mcp.exceptions import ConfigurationError, ImageEditError
from py_image_edit_mcp.models.constants import OutputFormat
from py_image_edit_mcp.models.edit_settings import DEFAULT_SETTINGS
from py_image_edit_mcp.models.instructions import StageKind
from py_image_edit_mcp.models.work_item import WorkItemState
from py_image_edit_mcp.persistence import InMemoryStore, SettingsRepository


class TestImageEditor:
    """编辑器会话测试"""

    def test_complete_workflow(self, sample_files, capability, output_dir: Path):
        editor = ImageEditor(capability)
        report = editor.load_paths(
            [sample_files["photo"], sample_files["text"], sample_files["jpeg"]]
        )
        editor.update_settings({"output_format": "jpg", "resize": {"enabled": True}})
        editor.select_all()

        summary = editor.run_sync()
        written = editor.export_to(output_dir)

        assert [r.name for r in report.rejected] == ["notes.txt"]
        assert summary.get_success_count() == 2
        assert [p.name for p in written] == ["photo_edited.jpg", "holiday_edited.jpg"]

    def test_settings_snapshot_per_run(self, make_source, capability):
        editor = ImageEditor(capability)
        data = make_source().data
        editor.load_images([RawImage("a.png", data), RawImage("b.png", data)])
        editor.select_all()

        async def scenario():
            task = asyncio.create_task(editor.run())
            await asyncio.sleep(0)
            editor.update_settings({"rotation_angle_degrees": 90})
            return await task

        asyncio.run(scenario())

        assert editor.settings.rotation_angle_degrees == 90
        assert len(capability.calls) == 2
        assert not any(call.has(StageKind.ROTATION) for call in capability.calls)

    def test_update_settings_clamp(self, capability):
        editor = ImageEditor(capability)

        with pytest.raises(ConfigurationError):
            editor.update_settings({"output_quality_pct": 150})
        assert editor.update_settings(
            {"output_quality_pct": 150}, clamp=True
        ).output_quality_pct == 100

    def test_reset_settings(self, capability):
        editor = ImageEditor(capability)
        editor.update_settings(
            {"rotation_angle_degrees": 30, "crop": {"enabled": True}}
        )

        editor.reset_settings("crop")
        assert editor.settings.rotation_angle_degrees == 30
        assert editor.reset_settings() == DEFAULT_SETTINGS

    def test_failed_load_keeps_current_batch(self, sample_files, capability):
        editor = ImageEditor(capability)
        editor.load_paths([sample_files["photo"]])

        editor.load_paths([sample_files["text"]])

        assert [item.source.name for item in editor.items] == ["photo.png"]

    def test_rerun_only_failed_subset(self, sample_files, capability_factory):
        capability = capability_factory(fail_names={"logo.png"})
        editor = ImageEditor(capability)
        editor.load_paths([sample_files["photo"], sample_files["transparent"]])
        editor.select_all()
        editor.run_sync()

        capability.fail_names.clear()
        editor.deselect_all()
        editor.select(
            item.id for item in editor.items if item.state == WorkItemState.FAILED
        )
        summary = editor.run_sync()

        assert summary.get_total_count() == 1
        assert all(item.state == WorkItemState.SUCCEEDED for item in editor.items)
        assert len(capability.calls) == 3

    def test_settings_repository(self, capability):
        repository = SettingsRepository(InMemoryStore())
        editor = ImageEditor(capability, repository=repository)
        editor.update_settings({"output_format": "WEBP"})
        editor.save_settings()

        restored = ImageEditor(capability, repository=repository)
        assert restored.settings.output_format == OutputFormat.WEBP

    def test_save_without_repository(self, capability):
        with pytest.raises(ImageEditError):
            ImageEditor(capability).save_settings()

    def test_auto_run(self, sample_files, capability):
        editor = ImageEditor(capability, auto_run=True)
        editor.load_paths([sample_files["photo"]])

        first = asyncio.run(editor.maybe_auto_run())
        second = asyncio.run(editor.maybe_auto_run())

        assert first is not None and first.get_success_count() == 1
        assert second is None


class TestEditImages:
    """便捷函数测试"""

    def test_edit_images_writes_results(self, sample_files, capability, output_dir):
        result = edit_images(
            [sample_files["photo"].parent],
            capability,
            settings={"output_format": "WEBP"},
            output_dir=output_dir,
        )

        assert result["success"]
        assert result["error"] is None
        assert sorted(Path(p).name for p in result["exported"]) == [
            "holiday_edited.webp",
            "logo_edited.webp",
            "photo_edited.webp",
        ]

    def test_edit_images_reports_failures(self, sample_files, capability_factory):
        capability = capability_factory(fail_names={"photo.png"})

        result = edit_images([sample_files["photo"], sample_files["text"]], capability)

        assert result["success"] is False
        assert result["result"].get_failure_count() == 1
        assert result["exported"] == []
        assert len(result["rejected"]) == 1

    def test_edit_images_nothing_to_do(self, sample_files, capability):
        result = edit_images([sample_files["text"]], capability)

        assert result["success"] is False
        assert result["result"] is None
        assert result["error"]

    def test_edit_images_invalid_settings(self, sample_files, capability):
        result = edit_images(
            [sample_files["photo"]],
            capability,
            settings={"rotation_angle_degrees": 720},
        )

        assert result["success"] is False
        assert "rotation_angle_degrees" in result["error"]


class TestMCPServer:
    """MCP服务器功能测试"""

    def test_mcp_server_imports(self):
        from py_image_edit_mcp.mcp_server import mcp

        assert mcp is not None

    def test_mcp_tools_registered(self):
        from py_image_edit_mcp.mcp_server import (
            compile_edit_instructions,
            compress_images,
            edit_images,
            get_default_settings,
            upscale_images,
        )

        assert compile_edit_instructions.name == "compile_edit_instructions"
        assert get_default_settings.name == "get_default_settings"
        assert edit_images.name == "edit_images"
        assert compress_images.name == "compress_images"
        assert upscale_images.name == "upscale_images"

    def test_preview_instructions(self, sample_files):
        from py_image_edit_mcp.mcp_server import preview_instructions

        response = preview_instructions(
            str(sample_files["photo"]), {"rotation_angle_degrees": 90}
        )

        assert response["success"]
        assert response["source"]["width"] == 64
        assert [s["kind"] for s in response["stages"]] == [
            "rotation",
            "transparency",
            "encoding",
        ]
        assert "rotate the image by 90 degrees" in response["prompt"]

    def test_preview_errors(self, sample_files):
        from py_image_edit_mcp.mcp_server import preview_instructions

        bad_settings = preview_instructions(
            str(sample_files["photo"]), {"crop": {"x_pct": 500}}
        )
        bad_file = preview_instructions(str(sample_files["text"]))

        assert bad_settings["error_type"] == "validation"
        assert bad_file["error_type"] == "file"

    def test_resolve_backend_requires_configuration(self):
        from py_image_edit_mcp.mcp_server import resolve_backend

        with pytest.raises(ConfigurationError):
            resolve_backend()

    def test_resolve_backend_from_env(self, tmp_path, monkeypatch):
        from py_image_edit_mcp.config import reset_config
        from py_image_edit_mcp.mcp_server import resolve_backend

        (tmp_path / "env_backend.py").write_text(
            textwrap.dedent(
                """
                def transform(image_bytes, mime_type, instructions):
                    return image_bytes
                """
            ),
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.setenv("PIE_TRANSFORM_BACKEND", "env_backend:transform")
        reset_config()

        assert hasattr(resolve_backend(), "transform")


class TestMCPTools:
    """通过 MCP 客户端调用处理工具"""

    @pytest.fixture
    def backend(self, tmp_path, monkeypatch):
        from py_image_edit_mcp.config import reset_config

        (tmp_path / "mcp_backend.py").write_text(
            textwrap.dedent(
                """
                def transform(image_bytes, mime_type, instructions):
                    return b"out:" + instructions.source.name.encode()
                """
            ),
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.setenv("PIE_TRANSFORM_BACKEND", "mcp_backend:transform")
        reset_config()

    @staticmethod
    def _call(name: str, arguments: dict) -> dict:
        from fastmcp import Client

        from py_image_edit_mcp.mcp_server import mcp

        async def scenario():
            async with Client(mcp) as client:
                result = await client.call_tool(name, arguments)
            return json.loads(result.content[0].text)

        return asyncio.run(scenario())

    def test_edit_images_inside_server_loop(self, backend, sample_files, output_dir):
        response = self._call(
            "edit_images",
            {
                "input_paths": [str(sample_files["photo"])],
                "output_dir": str(output_dir),
                "settings": {"rotation_angle_degrees": 90},
            },
        )

        assert response["success"] is True
        assert response["result"]["successful_files"] == 1
        written = output_dir / "photo_edited.png"
        assert written.read_bytes() == b"out:photo.png"

    def test_compress_images_with_preset(self, backend, sample_files, output_dir):
        response = self._call(
            "compress_images",
            {
                "input_paths": [str(sample_files["jpeg"])],
                "output_dir": str(output_dir),
                "settings": {"output_format": "jpeg"},
                "preset": "low",
            },
        )

        assert response["success"] is True
        assert [Path(p).name for p in response["exported"]] == [
            "holiday_compressed_q40.jpg"
        ]

    def test_compress_images_unknown_preset(self, backend, sample_files, output_dir):
        response = self._call(
            "compress_images",
            {
                "input_paths": [str(sample_files["photo"])],
                "output_dir": str(output_dir),
                "preset": "ultra",
            },
        )

        assert response["success"] is False
        assert response["error_type"] == "validation"

    def test_upscale_images(self, backend, sample_files, output_dir):
        response = self._call(
            "upscale_images",
            {
                "input_paths": [str(sample_files["photo"])],
                "output_dir": str(output_dir),
            },
        )

        assert response["success"] is True
        assert (output_dir / "photo_upscaled.png").exists()

    def test_missing_backend(self, sample_files, output_dir):
        response = self._call(
            "edit_images",
            {
                "input_paths": [str(sample_files["photo"])],
                "output_dir": str(output_dir),
            },
        )

        assert response["success"] is False
        assert response["error_type"] == "configuration"

    def test_default_settings_per_kind(self):
        edit = self._call("get_default_settings", {})
        compress = self._call("get_default_settings", {"kind": "compress"})

        assert edit["schema_version"] == "v3"
        assert compress["settings"]["quality_pct"] == 75
        assert "schema_version" not in compress

    def test_preview_compression(self, sample_files):
        response = self._call(
            "compile_edit_instructions",
            {
                "image_path": str(sample_files["photo"]),
                "settings": {"quality_pct": 10},
                "kind": "compress",
            },
        )

        assert response["kind"] == "compress"
        assert response["prompt"].startswith("Visually compress this image.")


class TestPackage:
    def test_version(self):
        assert get_version() == "0.1.0"

    def test_main_version_flag(self, monkeypatch, capsys):
        from py_image_edit_mcp.__main__ import main

        monkeypatch.setattr("sys.argv", ["py_image_edit_mcp", "--version"])
        main()

        assert capsys.readouterr().out.strip() == "py-image-edit-mcp 0.1.0"
