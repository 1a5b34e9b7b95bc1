"""Tests for prediction submission and the polling/download loop."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

from video_generation_mcp import replicate
from video_generation_mcp.config import PollingConfig
from video_generation_mcp.errors import (
    ArtifactDownloadFailedError,
    GenerationCanceledError,
    GenerationFailedError,
    GenerationTimedOutError,
    MissingCredentialError,
    ProviderRejectedError,
    ProviderUnreachableError,
)
from video_generation_mcp.replicate import SubmittedJob, await_completion, submit

from conftest import FakeReplicate


class TestSubmittedJob:
    def test_from_api_reads_monitor_url_and_output(self):
        job = SubmittedJob.from_api(
            {"id": "abc", "status": "succeeded", "output": ["https://x/a.mp4", "https://x/b.mp4"],
             "urls": {"web": "https://replicate.com/p/abc"}},
        )
        assert job.job_id == "abc"
        assert job.monitor_url == "https://replicate.com/p/abc"
        assert job.output_url() == "https://x/a.mp4"
        assert job.is_terminal

    def test_non_string_output_has_no_url(self):
        job = SubmittedJob.from_api({"id": "abc", "status": "succeeded", "output": [{"url": "https://x/a.mp4"}]})
        assert job.output_url() is None
        assert job.has_output

    def test_empty_output_has_no_url(self):
        assert SubmittedJob.from_api({"id": "abc", "status": "processing", "output": []}).output_url() is None
        assert not SubmittedJob.from_api({"id": "abc", "status": "processing"}).is_terminal


class TestSubmit:
    @pytest.mark.asyncio
    async def test_posts_version_and_input(self, settings, fake_replicate):
        async with fake_replicate.client() as client:
            job = await submit(client, settings, "google/veo-3", {"prompt": "a cat"})

        assert job.job_id == "job-a cat"
        assert job.status == "starting"
        assert job.built_input == {"prompt": "a cat"}
        request = fake_replicate.requests[0]
        assert str(request.url) == "https://api.replicate.test/v1/predictions"
        assert request.headers["Authorization"] == "Bearer r8_test"

    @pytest.mark.asyncio
    async def test_rejection_carries_provider_detail(self, settings):
        fake = FakeReplicate(reject_prompts={"bad"})
        async with fake.client() as client:
            with pytest.raises(ProviderRejectedError) as exc_info:
                await submit(client, settings, "google/veo-3", {"prompt": "bad"})

        assert exc_info.value.status_code == 422
        assert "invalid input" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_is_unreachable(self, settings):
        def _refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(_refuse)) as client:
            with pytest.raises(ProviderUnreachableError):
                await submit(client, settings, "google/veo-3", {"prompt": "a cat"})

    @pytest.mark.asyncio
    async def test_missing_token_fails_before_request(self, settings, fake_replicate):
        no_token = settings.model_copy(update={"api_token": None})
        async with fake_replicate.client() as client:
            with pytest.raises(MissingCredentialError):
                await submit(client, no_token, "google/veo-3", {"prompt": "a cat"})
        assert fake_replicate.requests == []


class TestAwaitCompletion:
    @pytest.mark.asyncio
    async def test_polls_until_succeeded_then_downloads_once(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [
            {"status": "starting"},
            {"status": "processing"},
            {"status": "succeeded", "output": "https://cdn.replicate.test/abc.mp4"},
        ]})
        async with fake.client() as client:
            artifact = await await_completion(client, settings, "abc", "veo-3", "A cat, on a mat!", tmp_path)

        assert fake.count("GET", "/predictions/abc") == 3
        assert fake.count("GET", "cdn.replicate.test") == 1
        saved = Path(artifact.local_path)
        assert saved.parent == tmp_path
        assert saved.read_bytes() == fake.video_bytes
        assert saved.name.startswith("veo-3_A_cat__on_a_mat__")
        assert saved.suffix == ".mp4"

    @pytest.mark.asyncio
    async def test_succeeded_without_output_keeps_polling(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [
            {"status": "succeeded", "output": None},
            {"status": "succeeded", "output": ["https://cdn.replicate.test/abc.webm"]},
        ]})
        async with fake.client() as client:
            artifact = await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)

        assert fake.count("GET", "/predictions/abc") == 2
        assert artifact.local_path.endswith(".webm")

    @pytest.mark.asyncio
    async def test_failed_job_raises_without_download(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [
            {"status": "processing"},
            {"status": "failed", "error": "NSFW content detected"},
        ]})
        async with fake.client() as client:
            with pytest.raises(GenerationFailedError, match="NSFW content detected"):
                await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)

        assert fake.count("GET", "cdn.replicate.test") == 0
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_failed_job_without_message(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [{"status": "failed"}]})
        async with fake.client() as client:
            with pytest.raises(GenerationFailedError, match="Unknown error"):
                await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)

    @pytest.mark.asyncio
    async def test_canceled_job(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [{"status": "canceled"}]})
        async with fake.client() as client:
            with pytest.raises(GenerationCanceledError):
                await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)

    @pytest.mark.asyncio
    async def test_budget_exhausted_times_out_without_download(self, settings, tmp_path, monkeypatch):
        clock = iter([0.0, 0.0, 400.0, 800.0, 1200.0])
        monkeypatch.setattr(replicate, "time", SimpleNamespace(monotonic=lambda: next(clock)))
        quick = settings.model_copy(update={"polling": PollingConfig(interval_seconds=0, timeout_seconds=900)})
        fake = FakeReplicate(statuses={"abc": [{"status": "processing"}]})

        async with fake.client() as client:
            with pytest.raises(GenerationTimedOutError, match="15 minutes"):
                await await_completion(client, quick, "abc", "veo-3", "x", tmp_path)

        assert fake.count("GET", "/predictions/abc") == 3
        assert fake.count("GET", "cdn.replicate.test") == 0

    @pytest.mark.asyncio
    async def test_succeeded_with_unusable_output(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [{"status": "succeeded", "output": {"video": 1}}]})
        async with fake.client() as client:
            with pytest.raises(ArtifactDownloadFailedError, match="without a video URL"):
                await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)
        assert fake.count("GET", "/predictions/abc") == 1

    @pytest.mark.asyncio
    async def test_sleeps_the_configured_interval_between_polls(self, settings, tmp_path, monkeypatch):
        sleeps = []

        async def _fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr(
            replicate, "asyncio", SimpleNamespace(sleep=_fake_sleep, get_running_loop=asyncio.get_running_loop)
        )
        paced = settings.model_copy(update={"polling": PollingConfig(interval_seconds=7.5, timeout_seconds=900)})
        fake = FakeReplicate(statuses={"abc": [
            {"status": "starting"},
            {"status": "processing"},
            {"status": "succeeded", "output": "https://cdn.replicate.test/abc.mp4"},
        ]})
        async with fake.client() as client:
            await await_completion(client, paced, "abc", "veo-3", "x", tmp_path)

        assert sleeps == [7.5, 7.5]

    def test_default_polling_is_ten_seconds_for_fifteen_minutes(self):
        polling = PollingConfig()
        assert polling.interval_seconds == 10
        assert polling.timeout_seconds == 900

    @pytest.mark.asyncio
    async def test_download_failure(self, settings, tmp_path):
        fake = FakeReplicate(statuses={"abc": [
            {"status": "succeeded", "output": "https://elsewhere.test/abc.mp4"},
        ]})
        async with fake.client() as client:
            with pytest.raises(ArtifactDownloadFailedError):
                await await_completion(client, settings, "abc", "veo-3", "x", tmp_path)
