"""压缩与放大工具测试。

测试工具设置、指令编译与渲染、工具注册表，以及两种工具在批量流程中的导出命名。
"""

from pathlib import Path

import pytest

from py_image_edit_mcp import ImageEditor, process_images
from py_image_edit_mcp.core.compiler import compile_compression, compile_upscale
from py_image_edit_mcp.core.prompt_renderer import (
    UPSCALE_PROMPT,
    build_preview,
    describe_detail_level,
    describe_quality,
    render_prompt,
)
from py_image_edit_mcp.engine.tools import TOOL_PROFILES, get_profile
from py_image_edit_mcp.exceptions import ConfigurationError
from py_image_edit_mcp.models.constants import OutputFormat
from py_image_edit_mcp.models.edit_settings import DEFAULT_SETTINGS
from py_image_edit_mcp.models.tool_settings import (
    DEFAULT_COMPRESSION_SETTINGS,
    DEFAULT_UPSCALE_SETTINGS,
    CompressionSettings,
    QualityPreset,
    ResolutionPreset,
    TransformKind,
)
from py_image_edit_mcp.persistence.settings_store import (
    InMemoryStore,
    SettingsRepository,
)


class TestCompressionSettings:
    """压缩设置测试"""

    def test_defaults(self):
        settings = CompressionSettings()
        assert settings.quality_pct == 75
        assert settings.detail_level_pct == 75
        assert settings.target_resolution == ResolutionPreset.ORIGINAL
        assert settings.output_format == OutputFormat.PNG

    @pytest.mark.parametrize(
        ("preset", "expected"),
        [
            (QualityPreset.LOW, (40, 40)),
            (QualityPreset.MEDIUM, (75, 75)),
            (QualityPreset.HIGH, (90, 90)),
        ],
    )
    def test_with_preset(self, preset, expected):
        settings = CompressionSettings(quality_pct=10).with_preset(preset)
        assert (settings.quality_pct, settings.detail_level_pct) == expected

    def test_format_aliases(self):
        assert CompressionSettings(output_format="jpg").output_format == (
            OutputFormat.JPEG
        )
        assert CompressionSettings(output_format="image/webp").output_format == (
            OutputFormat.WEBP
        )

    def test_builder_rejects_and_clamps(self):
        builder = get_profile("compress").builder()

        with pytest.raises(ConfigurationError) as exc_info:
            builder.update(DEFAULT_COMPRESSION_SETTINGS, {"quality_pct": 0})
        assert "quality_pct" in exc_info.value.message

        clamped = builder.update(
            DEFAULT_COMPRESSION_SETTINGS,
            {"quality_pct": 150, "detail_level_pct": -3},
            clamp=True,
        )
        assert clamped.quality_pct == 100
        assert clamped.detail_level_pct == 1

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigurationError):
            get_profile("compress").builder().from_dict({"rotation_angle_degrees": 90})

    @pytest.mark.parametrize(
        ("preset", "expected"),
        [
            (ResolutionPreset.ORIGINAL, None),
            (ResolutionPreset.FULL_HD, (1920, 1080)),
            (ResolutionPreset.HD, (1280, 720)),
            (ResolutionPreset.SD, (640, 480)),
        ],
    )
    def test_resolution_bounding_box(self, preset, expected):
        assert preset.bounding_box == expected

    def test_upscale_is_always_png(self):
        assert DEFAULT_UPSCALE_SETTINGS.output_format == OutputFormat.PNG


class TestCompressionInstructions:
    """压缩与放大指令的编译和渲染测试"""

    def test_compile_compression(self, make_source):
        settings = CompressionSettings(
            quality_pct=30,
            target_resolution=ResolutionPreset.HD,
            output_format="webp",
        )
        source = make_source("photo.png").descriptor

        instructions = compile_compression(settings, source)

        assert instructions.kind == TransformKind.COMPRESS
        assert instructions.source == source
        assert instructions.quality_pct == 30
        assert instructions.bounding_box == (1280, 720)
        assert instructions.mime_type == "image/webp"

    @pytest.mark.parametrize(
        ("value", "fragment"),
        [
            (1, "extremely aggressive"),
            (20, "extremely aggressive"),
            (21, "heavy visual compression"),
            (60, "moderate visual compression"),
            (61, "light visual compression"),
            (100, "very light visual compression"),
        ],
    )
    def test_quality_bands(self, value, fragment):
        assert describe_quality(value).startswith(fragment)

    @pytest.mark.parametrize(
        ("value", "fragment"),
        [(20, "minimal detail"), (21, "low detail"), (81, "original detail")],
    )
    def test_detail_bands(self, value, fragment):
        assert describe_detail_level(value).startswith(fragment)

    def test_render_without_resolution(self, make_source):
        instructions = compile_compression(
            DEFAULT_COMPRESSION_SETTINGS, make_source().descriptor
        )
        prompt = render_prompt(instructions)

        assert prompt.startswith("Visually compress this image.")
        assert describe_quality(75) in prompt
        assert describe_detail_level(75) in prompt
        assert "bounding box" not in prompt

    def test_render_with_resolution(self, make_source):
        settings = CompressionSettings(target_resolution=ResolutionPreset.SD)
        prompt = render_prompt(compile_compression(settings, make_source().descriptor))

        assert "fit within a 640x480 bounding box" in prompt
        assert prompt.endswith("based on these instructions.")

    def test_upscale(self, make_source):
        instructions = compile_upscale(
            DEFAULT_UPSCALE_SETTINGS, make_source().descriptor
        )

        assert instructions.mime_type == "image/png"
        assert render_prompt(instructions) == UPSCALE_PROMPT

    def test_preview_has_single_stage(self, make_source):
        instructions = compile_compression(
            CompressionSettings(target_resolution=ResolutionPreset.HD),
            make_source().descriptor,
        )
        preview = build_preview(instructions)

        assert len(preview["stages"]) == 1
        stage = preview["stages"][0]
        assert stage["kind"] == "compress"
        assert stage["bounding_box"] == [1280, 720]
        assert "source" not in stage
        assert preview["prompt"] == render_prompt(instructions)

    def test_render_rejects_unknown_type(self):
        with pytest.raises(TypeError):
            render_prompt(DEFAULT_SETTINGS)


class TestToolProfiles:
    """工具注册表测试"""

    def test_every_kind_registered(self):
        assert set(TOOL_PROFILES) == set(TransformKind)

    def test_get_profile_accepts_names(self):
        assert get_profile("upscale").kind is TransformKind.UPSCALE
        assert get_profile(TransformKind.EDIT).default_settings == DEFAULT_SETTINGS

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_profile("sharpen")
        assert "sharpen" in exc_info.value.message

    @pytest.mark.parametrize(
        ("kind", "settings", "suffix"),
        [
            ("edit", DEFAULT_SETTINGS, "_edited"),
            ("compress", CompressionSettings(quality_pct=60), "_compressed_q60"),
            ("upscale", DEFAULT_UPSCALE_SETTINGS, "_upscaled"),
        ],
    )
    def test_filename_suffix(self, kind, settings, suffix):
        assert get_profile(kind).filename_suffix(settings) == suffix

    def test_settings_type_mismatch(self):
        with pytest.raises(ConfigurationError):
            get_profile("compress").check_settings(DEFAULT_SETTINGS)


class TestToolWorkflows:
    """压缩与放大在批量流程中的行为测试"""

    def test_compress_session(self, sample_files, capability, output_dir):
        editor = ImageEditor(capability, kind="compress")
        editor.update_settings({"quality_pct": 40, "output_format": "jpeg"})
        editor.load_paths([sample_files["photo"], sample_files["jpeg"]])
        editor.select_all()

        summary = editor.run_sync()
        written = editor.export_to(output_dir)

        assert summary.get_success_count() == 2
        assert all(call.kind == TransformKind.COMPRESS for call in capability.calls)
        assert [path.name for path in written] == [
            "photo_compressed_q40.jpg",
            "holiday_compressed_q40.jpg",
        ]

    def test_upscale_with_mapping_settings(self, sample_files, capability, output_dir):
        result = process_images(
            [sample_files["photo"]],
            capability,
            kind=TransformKind.UPSCALE,
            settings={},
            output_dir=output_dir,
        )

        assert result["success"] is True
        assert [Path(path).name for path in result["exported"]] == [
            "photo_upscaled.png"
        ]
        assert capability.calls[0].kind == TransformKind.UPSCALE

    def test_compress_invalid_settings(self, sample_files, capability):
        result = process_images(
            [sample_files["photo"]],
            capability,
            kind="compress",
            settings={"quality_pct": 500},
        )

        assert result["success"] is False
        assert "quality_pct" in result["error"]
        assert capability.calls == []

    def test_reset_uses_tool_defaults(self, capability):
        editor = ImageEditor(capability, kind=TransformKind.COMPRESS)
        editor.update_settings({"quality_pct": 10})

        assert editor.reset_settings() == DEFAULT_COMPRESSION_SETTINGS

    def test_repository_only_for_edit(self, capability):
        repository = SettingsRepository(InMemoryStore())
        with pytest.raises(ConfigurationError):
            ImageEditor(capability, repository=repository, kind="upscale")
