"""Tests for the multi-prompt fan-out and its aggregate result."""

from pathlib import Path

import pytest

from video_generation_mcp import generation
from video_generation_mcp.errors import (
    ArtifactDownloadFailedError,
    MissingCredentialError,
    MissingImageInputError,
    ProviderRejectedError,
    UnknownModelError,
)
from video_generation_mcp.generation import BatchStatus, build_requests, generate_videos, summarize
from video_generation_mcp.params import GenerationRequest

from conftest import FakeReplicate


def _request(**overrides):
    fields = {"model_id": "veo-3", "prompt": "placeholder"}
    fields.update(overrides)
    return GenerationRequest(**fields)


class TestBuildRequests:
    def test_seed_offset_per_prompt(self):
        requests = build_requests(_request(seed=10), ["a", "b", "c"])
        assert [r.seed for r in requests] == [10, 11, 12]
        assert [r.prompt for r in requests] == ["a", "b", "c"]

    def test_single_prompt_keeps_seed(self):
        assert build_requests(_request(seed=10), ["a"])[0].seed == 10

    def test_seed_zero_is_offset(self):
        assert [r.seed for r in build_requests(_request(seed=0), ["a", "b"])] == [0, 1]

    def test_no_seed_stays_unset(self):
        assert all(r.seed is None for r in build_requests(_request(), ["a", "b"]))


class TestGenerateVideos:
    @pytest.mark.asyncio
    async def test_one_failed_submission_does_not_sink_the_batch(self, settings, tmp_path):
        fake = FakeReplicate(reject_prompts={"b"})
        async with fake.client() as client:
            result = await generate_videos(
                _request(), ["a", "b", "c"], settings, save_path=str(tmp_path), client=client
            )

        assert result.completed_count == 2
        assert result.status == BatchStatus.PARTIAL
        assert [o.succeeded for o in result.outcomes] == [True, False, True]
        assert isinstance(result.outcomes[1].error, ProviderRejectedError)
        assert result.outcomes[1].status == "not_submitted"

        saved = sorted(Path(o.artifact.local_path).name for o in result.outcomes if o.artifact)
        assert saved[0].startswith("veo-3_a_") and saved[0].endswith("_p1.mp4")
        assert saved[1].startswith("veo-3_c_") and saved[1].endswith("_p3.mp4")
        assert fake.count("POST", "/predictions") == 3
        assert fake.count("GET", "/predictions/job-b") == 0

    @pytest.mark.asyncio
    async def test_malformed_output_stays_with_its_prompt(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"job-b": [
            {"status": "succeeded", "output": [{"url": "https://cdn.replicate.test/b.mp4"}]},
        ]})
        async with fake.client() as client:
            result = await generate_videos(
                _request(), ["a", "b", "c"], settings, save_path=str(tmp_path), client=client
            )

        assert result.status == BatchStatus.PARTIAL
        assert result.completed_count == 2
        assert isinstance(result.outcomes[1].error, ArtifactDownloadFailedError)
        assert len(list(tmp_path.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_stays_with_its_prompt(self, settings, tmp_path, monkeypatch):
        real_await = generation.await_completion

        async def _flaky(client, settings, job_id, *args, **kwargs):
            if job_id == "job-b":
                raise RuntimeError("disk vanished")
            return await real_await(client, settings, job_id, *args, **kwargs)

        monkeypatch.setattr(generation, "await_completion", _flaky)
        fake = FakeReplicate()
        async with fake.client() as client:
            result = await generate_videos(
                _request(), ["a", "b", "c"], settings, save_path=str(tmp_path), client=client
            )

        assert [o.succeeded for o in result.outcomes] == [True, False, True]
        assert result.outcomes[1].status == "error"
        assert summarize(result)["videos"][1]["error"] == "RuntimeError: disk vanished"

    @pytest.mark.asyncio
    async def test_all_successful(self, settings, tmp_path, fake_replicate):
        async with fake_replicate.client() as client:
            result = await generate_videos(
                _request(seed=7), ["a", "b"], settings, save_path=str(tmp_path), client=client
            )

        assert result.status == BatchStatus.ALL_SUCCESSFUL
        assert [o.payload["seed"] for o in result.outcomes] == [7, 8]
        assert len(list(tmp_path.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_failed_generation_is_reported_per_prompt(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"job-b": [{"status": "failed", "error": "boom"}]})
        async with fake.client() as client:
            result = await generate_videos(
                _request(), ["a", "b"], settings, save_path=str(tmp_path), client=client
            )

        assert result.status == BatchStatus.PARTIAL
        assert result.outcomes[1].status == "failed"
        summary = summarize(result)
        entry = summary["videos"][1]
        assert entry["index"] == 2
        assert entry["monitor_url"] == "https://replicate.test/p/job-b"
        assert entry["error"] == "GenerationFailed: Video generation failed: boom"

    @pytest.mark.asyncio
    async def test_none_completed(self, settings, tmp_path):
        fake = FakeReplicate(reject_prompts={"a"})
        async with fake.client() as client:
            result = await generate_videos(_request(), ["a"], settings, save_path=str(tmp_path), client=client)

        assert result.status == BatchStatus.NONE
        assert summarize(result)["completed"] == 0

    @pytest.mark.asyncio
    async def test_missing_token_makes_no_requests(self, settings, tmp_path, fake_replicate):
        no_token = settings.model_copy(update={"api_token": None})
        async with fake_replicate.client() as client:
            with pytest.raises(MissingCredentialError):
                await generate_videos(_request(), ["a", "b"], no_token, save_path=str(tmp_path), client=client)
        assert fake_replicate.requests == []

    @pytest.mark.asyncio
    async def test_unknown_model(self, settings, fake_replicate):
        async with fake_replicate.client() as client:
            with pytest.raises(UnknownModelError, match="Available models"):
                await generate_videos(_request(model_id="sora-9"), ["a"], settings, client=client)
        assert fake_replicate.requests == []

    @pytest.mark.asyncio
    async def test_image_model_without_image(self, settings, fake_replicate):
        async with fake_replicate.client() as client:
            with pytest.raises(MissingImageInputError):
                await generate_videos(_request(model_id="wan-i2v-720p"), ["a"], settings, client=client)
        assert fake_replicate.requests == []

    @pytest.mark.asyncio
    async def test_local_image_is_uploaded_before_submission(self, settings, tmp_path, fake_replicate, monkeypatch):
        uploads = []

        async def _fake_upload(image_path, storage):
            uploads.append(image_path)
            return "https://project.supabase.test/storage/v1/object/public/images/frame.png"

        monkeypatch.setattr(generation, "upload_local_image", _fake_upload)
        async with fake_replicate.client() as client:
            result = await generate_videos(
                _request(model_id="wan-i2v-720p", image="/tmp/frame.png"), ["a"], settings,
                save_path=str(tmp_path), client=client,
            )

        assert uploads == ["/tmp/frame.png"]
        assert result.outcomes[0].payload["image"].startswith("https://project.supabase.test/")

    @pytest.mark.asyncio
    async def test_unsupported_resolution_adds_warning(self, settings, tmp_path, fake_replicate):
        async with fake_replicate.client() as client:
            result = await generate_videos(
                _request(model_id="veo-2", resolution="480p"), ["a"], settings,
                save_path=str(tmp_path), client=client,
            )

        assert result.outcomes[0].payload["resolution"] == "720p"
        assert "480p" in summarize(result)["warnings"][0]


class TestSummarize:
    @pytest.mark.asyncio
    async def test_verbose_includes_parameters(self, settings, tmp_path, fake_replicate):
        async with fake_replicate.client() as client:
            result = await generate_videos(_request(), ["a"], settings, save_path=str(tmp_path), client=client)

        summary = summarize(result, verbose=True)
        assert summary["model_details"]["audio"] is True
        assert summary["videos"][0]["parameters"]["prompt"] == "a"
        assert "parameters" not in summarize(result)["videos"][0]
        assert summary["output_dir"] == str(tmp_path)
