"""Tests for the MCP tool layer: inputs, rendering and the model catalogue."""

import json

import pytest
from pydantic import ValidationError

from video_generation_mcp import server
from video_generation_mcp.config import VisionSettings
from video_generation_mcp.errors import ErrorKind, ToolResult, UnknownModelError
from video_generation_mcp.generation import generate_videos
from video_generation_mcp.models import ModelMode
from video_generation_mcp.server import (
    CalculateCutsInput,
    ConcatenateSegmentsInput,
    FeedbackMode,
    GenerateVideoInput,
    GetModelsInput,
    HtmlVideoFeedbackInput,
    ImagesToVideoInput,
    ModelSort,
    VideoFileInput,
    list_models,
    run_generate_video,
    run_html_video_feedback,
)

from conftest import FakeReplicate


class TestGenerateVideoInput:
    def test_single_prompt(self):
        params = GenerateVideoInput(model="veo-3", prompt="  a cat  ")
        assert params.prompts() == ["a cat"]
        assert params.to_request().model_id == "veo-3"

    def test_prompt_list(self):
        params = GenerateVideoInput(model="kling-v2.1-master", prompt=["a", "b"], resolution="1080p", seed=3)
        request = params.to_request()
        assert params.prompts() == ["a", "b"]
        assert request.resolution == "1080p"
        assert request.seed == 3

    @pytest.mark.parametrize("prompt", ["", [], ["ok", "  "]])
    def test_empty_prompts_rejected(self, prompt):
        with pytest.raises(ValidationError):
            GenerateVideoInput(model="veo-3", prompt=prompt)

    def test_unknown_model_rejected(self):
        with pytest.raises(ValidationError):
            GenerateVideoInput(model="sora-9", prompt="x")

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            GenerateVideoInput(model="veo-3", prompt="x", quality="max")


class TestRunGenerateVideo:
    @pytest.mark.asyncio
    async def test_missing_token_is_rendered(self, settings):
        result = await run_generate_video(
            GenerateVideoInput(model="veo-3", prompt="x"), settings.model_copy(update={"api_token": None})
        )
        assert not result.ok
        assert result.error_kind == ErrorKind.MISSING_CREDENTIAL
        assert result.render().startswith("[Video Generation] Error (MissingCredential): REPLICATE_API_TOKEN")

    @pytest.mark.asyncio
    async def test_image_on_text_only_model(self, settings):
        result = await run_generate_video(
            GenerateVideoInput(model="hunyuan-video", prompt="x", image="https://example.test/a.png"), settings
        )
        assert result.error_kind == ErrorKind.UNSUPPORTED_IMAGE_INPUT

    @pytest.mark.asyncio
    async def test_success_renders_json(self, settings, tmp_path, monkeypatch):
        fake = FakeReplicate()
        monkeypatch.setattr(server, "generate_videos", _with_client(fake))
        result = await run_generate_video(
            GenerateVideoInput(model="veo-3", prompt=["a", "b"], save_path=str(tmp_path)), settings
        )

        assert result.ok
        body = json.loads(result.render())
        assert body["status"] == "all_successful"
        assert body["completed"] == 2
        assert [v["index"] for v in body["videos"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_tool_reads_settings_from_environment(self, monkeypatch):
        monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)
        text = await server.generate_video(GenerateVideoInput(model="veo-3", prompt="x"))
        assert "MissingCredential" in text


def _with_client(fake):
    async def _generate(base, prompts, settings, save_path=None):
        async with fake.client() as client:
            return await generate_videos(base, prompts, settings, save_path=save_path, client=client)

    return _generate


class TestListModels:
    def test_all_models_sorted_by_name(self):
        data = list_models(GetModelsInput())
        ids = [m["id"] for m in data["models"]]
        assert data["summary"]["total"] == 22
        assert ids == sorted(ids)

    def test_filters_combine(self):
        data = list_models(GetModelsInput(model_filter="WAN", type_filter=ModelMode.IMAGE_TO_VIDEO))
        assert {m["id"] for m in data["models"]} == {"wan-i2v-720p", "wan-i2v-480p"}

    def test_audio_filter(self):
        data = list_models(GetModelsInput(has_audio=True))
        assert data["summary"]["with_audio"] == 2

    def test_resolution_filter(self):
        data = list_models(GetModelsInput(resolution_filter="4K"))
        assert {m["id"] for m in data["models"]} == {"veo-3", "veo-3-fast", "veo-2"}

    def test_sort_by_duration(self):
        models = list_models(GetModelsInput(sort_by=ModelSort.MAX_DURATION))["models"]
        durations = [m["max_duration_seconds"] for m in models]
        assert durations == sorted(durations, reverse=True)

    def test_no_match(self):
        data = list_models(GetModelsInput(model_filter="nothing-like-this"))
        assert data["models"] == []
        assert data["summary"]["total"] == 0


class TestToolRendering:
    def test_failure_text(self):
        result = ToolResult.failure(UnknownModelError("Unknown model: x"), "Models")
        assert result.render() == "[Models] Error (UnknownModel): Unknown model: x"
        assert result.error_kind == ErrorKind.UNKNOWN_MODEL

    def test_unexpected_error(self):
        result = ToolResult.failure(RuntimeError("boom"))
        assert result.error_kind == ErrorKind.UNEXPECTED
        assert result.render() == "Error: RuntimeError - boom"

    @pytest.mark.asyncio
    async def test_metadata_for_missing_file(self, tmp_path):
        text = await server.get_video_metadata(VideoFileInput(file_path=str(tmp_path / "none.mp4")))
        assert text.startswith("[Video Metadata] Error (InputNotFound)")

    @pytest.mark.asyncio
    async def test_get_models_tool_returns_json(self):
        body = json.loads(await server.get_models(GetModelsInput(model_filter="veo")))
        assert body["summary"]["total"] == 3

    @pytest.mark.asyncio
    async def test_calculate_desired_cuts_tool(self):
        body = json.loads(await server.calculate_desired_cuts(CalculateCutsInput(cut_rate_per_minute=12, audio_len_seconds=90)))
        assert body["desired_cuts"] == 18.0


class TestEditingInputs:
    def test_concatenate_needs_inputs(self):
        with pytest.raises(ValidationError):
            ConcatenateSegmentsInput(inputs=[], output="/tmp/o.mp4")

    def test_images_to_video_fps_bounds(self):
        with pytest.raises(ValidationError):
            ImagesToVideoInput(images=["/tmp/a.png"], output="/tmp/o.mp4", fps=0)

    def test_feedback_mode_defaults_to_normal(self):
        params = HtmlVideoFeedbackInput(video_file=" /tmp/page.mp4 ", description="Landing page")
        assert params.mode == FeedbackMode.NORMAL
        assert params.video_file == "/tmp/page.mp4"

    @pytest.mark.asyncio
    async def test_concatenate_missing_file(self, tmp_path):
        text = await server.concatenate_segments(
            ConcatenateSegmentsInput(inputs=[str(tmp_path / "gone.mp4")], output=str(tmp_path / "o.mp4"))
        )
        assert text.startswith("[Concatenate Segments] Error (InputNotFound)")

    @pytest.mark.asyncio
    async def test_images_to_video_rejects_video_input(self, tmp_path):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"mp4")
        text = await server.images_to_video(ImagesToVideoInput(images=[str(clip)], output=str(tmp_path / "o.mp4")))
        assert text.startswith("[Images to Video] Error (InvalidArgument)")

    @pytest.mark.asyncio
    async def test_feedback_without_key(self, tmp_path):
        video = tmp_path / "page.mp4"
        video.write_bytes(b"mp4")
        result = await run_html_video_feedback(
            HtmlVideoFeedbackInput(video_file=str(video), description="Landing page"), VisionSettings()
        )
        assert result.error_kind == ErrorKind.MISSING_CREDENTIAL
        assert result.render().startswith("[HTML Video Feedback] Error (MissingCredential): OPENROUTER_API_KEY")
