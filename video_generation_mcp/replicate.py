"""Replicate prediction API: submit a job, poll it, download the result."""

import asyncio
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import GenerationSettings
from .errors import (
    ArtifactDownloadFailedError,
    GenerationCanceledError,
    GenerationFailedError,
    GenerationTimedOutError,
    ProviderRejectedError,
    ProviderUnreachableError,
)
from .storage import extension_from_url, generate_filename, save_artifact


class JobStatus(str, Enum):
    """Prediction statuses reported by Replicate."""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED}


class SubmittedJob(BaseModel):
    """Snapshot of a prediction as last reported by the API."""
    model_config = ConfigDict(frozen=True)

    job_id: str
    status: str
    monitor_url: Optional[str] = None
    built_input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    error: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict, built_input: Optional[dict] = None) -> "SubmittedJob":
        urls = data.get("urls") or {}
        error = data.get("error")
        return cls(
            job_id=data.get("id", ""),
            status=data.get("status", JobStatus.STARTING.value),
            monitor_url=urls.get("web"),
            built_input=built_input if built_input is not None else (data.get("input") or {}),
            output=data.get("output"),
            error=str(error) if error else None,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}

    @property
    def has_output(self) -> bool:
        return self.output not in (None, "", [])

    def output_url(self) -> Optional[str]:
        """The artifact URL, or None unless the output is a URL string (or a list starting with one)."""
        output = self.output[0] if isinstance(self.output, list) and self.output else self.output
        return output if isinstance(output, str) and output else None


class SavedArtifact(BaseModel):
    """A video downloaded and written to local disk."""
    model_config = ConfigDict(frozen=True)

    local_path: str


def _headers(api_token: str) -> dict:
    """Bearer-token JSON headers for the Replicate API."""
    return {
        "Authorization": f"Bearer {api_token}",
        "Content-Type": "application/json",
    }


def _error_detail(response: httpx.Response) -> str:
    """Pull the provider's error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("detail", "error", "title"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


def new_http_client(timeout: float) -> httpx.AsyncClient:
    """Shared client for API calls and downloads; output URLs redirect to the CDN."""
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


# ============================================================================
# Submission and status
# ============================================================================

async def submit(
    client: httpx.AsyncClient,
    settings: GenerationSettings,
    version: str,
    provider_input: dict,
) -> SubmittedJob:
    """Create one prediction. Never retried."""
    api_token = settings.require_token()
    try:
        response = await client.post(
            f"{settings.api_base}/predictions",
            json={"version": version, "input": provider_input},
            headers=_headers(api_token),
        )
    except httpx.TransportError as e:
        raise ProviderUnreachableError(f"Could not reach Replicate API: {e}") from e

    if response.is_error:
        raise ProviderRejectedError(
            f"Replicate API error: {_error_detail(response)}", status_code=response.status_code
        )

    return SubmittedJob.from_api(response.json(), built_input=provider_input)


async def fetch_prediction(
    client: httpx.AsyncClient,
    settings: GenerationSettings,
    job_id: str,
) -> SubmittedJob:
    """Current state of prediction ``job_id``."""
    api_token = settings.require_token()
    try:
        response = await client.get(
            f"{settings.api_base}/predictions/{job_id}",
            headers=_headers(api_token),
        )
    except httpx.TransportError as e:
        raise ProviderUnreachableError(f"Could not reach Replicate API: {e}") from e

    if response.is_error:
        raise ProviderRejectedError(
            f"Failed to check prediction status: {_error_detail(response)}",
            status_code=response.status_code,
        )
    return SubmittedJob.from_api(response.json())


async def download_artifact(client: httpx.AsyncClient, url: str, timeout: float) -> bytes:
    """Fetch the raw bytes at ``url``; any failure is ArtifactDownloadFailedError."""
    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        raise ArtifactDownloadFailedError(f"Failed to download video: {e}") from e
    if response.is_error:
        raise ArtifactDownloadFailedError(f"Failed to download video: {_error_detail(response)}")
    return response.content


# ============================================================================
# Polling loop
# ============================================================================

async def await_completion(
    client: httpx.AsyncClient,
    settings: GenerationSettings,
    job_id: str,
    model_id: str,
    prompt: str,
    save_dir: Path,
    filename_suffix: Optional[str] = None,
) -> SavedArtifact:
    """Poll ``job_id`` until it is terminal, then save the video locally.

    Polls every ``settings.polling.interval_seconds`` for at most
    ``settings.polling.timeout_seconds``. A ``succeeded`` status without an
    output is treated as still processing.
    """
    polling = settings.polling
    start = time.monotonic()

    while time.monotonic() - start < polling.timeout_seconds:
        job = await fetch_prediction(client, settings, job_id)
        url = job.output_url()

        if job.status == JobStatus.SUCCEEDED.value and url:
            data = await download_artifact(client, url, settings.download_timeout_seconds)
            filename = generate_filename(
                model_id, prompt, extension=extension_from_url(url), suffix=filename_suffix
            )
            path = await asyncio.get_running_loop().run_in_executor(
                None, save_artifact, data, save_dir, filename
            )
            print(f"[INFO] Video saved to: {path}", file=sys.stderr)
            return SavedArtifact(local_path=str(path))
        elif job.status == JobStatus.SUCCEEDED.value and job.has_output:
            raise ArtifactDownloadFailedError(f"Prediction {job_id} succeeded without a video URL: {job.output!r:.200}")
        elif job.status == JobStatus.FAILED.value:
            raise GenerationFailedError(f"Video generation failed: {job.error or 'Unknown error'}")
        elif job.status == JobStatus.CANCELED.value:
            raise GenerationCanceledError("Video generation was canceled")

        print(f"[POLL] {job_id}: {job.status}", file=sys.stderr)
        await asyncio.sleep(polling.interval_seconds)

    minutes = polling.timeout_seconds / 60
    raise GenerationTimedOutError(f"Video generation timed out after {minutes:g} minutes")
