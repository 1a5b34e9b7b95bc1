"""Fan-out of one generation call over one or more prompts."""

import asyncio
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from .config import GenerationSettings
from .errors import ErrorKind, VideoToolError
from .models import ModelDescriptor, get_model
from .params import GenerationRequest, adapt, check_image_input, resolution_supported
from .replicate import SavedArtifact, SubmittedJob, await_completion, new_http_client, submit
from .storage import is_local_file_path, upload_local_image


class BatchStatus(str, Enum):
    """Overall outcome of a multi-prompt generation."""
    ALL_SUCCESSFUL = "all_successful"
    PARTIAL = "partial"
    NONE = "none"


_STATUS_BY_KIND = {
    ErrorKind.GENERATION_FAILED: "failed",
    ErrorKind.GENERATION_CANCELED: "canceled",
    ErrorKind.GENERATION_TIMED_OUT: "timed_out",
}


@dataclass
class PromptOutcome:
    """What happened to one prompt: its payload, job, saved file or error."""

    index: int
    prompt: str
    payload: dict[str, Any]
    job: Optional[SubmittedJob] = None
    artifact: Optional[SavedArtifact] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None

    @property
    def status(self) -> str:
        if self.artifact is not None:
            return "succeeded"
        if isinstance(self.error, VideoToolError) and self.error.kind in _STATUS_BY_KIND:
            return _STATUS_BY_KIND[self.error.kind]
        if self.job is None:
            return "not_submitted"
        return self.job.status if self.error is None else "error"


@dataclass
class AggregateResult:
    """All prompt outcomes of one generate call, in prompt order."""

    descriptor: ModelDescriptor
    outcomes: list[PromptOutcome]
    save_dir: Path
    warnings: list[str] = field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def status(self) -> BatchStatus:
        completed = self.completed_count
        if completed and completed == len(self.outcomes):
            return BatchStatus.ALL_SUCCESSFUL
        if completed:
            return BatchStatus.PARTIAL
        return BatchStatus.NONE


def build_requests(base: GenerationRequest, prompts: list[str]) -> list[GenerationRequest]:
    """One request per prompt; seeds are offset by index in multi-prompt batches."""
    multiple = len(prompts) > 1
    requests = []
    for index, prompt in enumerate(prompts):
        seed = base.seed + index if (base.seed is not None and multiple) else base.seed
        requests.append(base.model_copy(update={"prompt": prompt, "seed": seed}))
    return requests


async def run_all(
    requests: list[GenerationRequest],
    descriptor: ModelDescriptor,
    settings: GenerationSettings,
    save_dir: Path,
    client: Optional[httpx.AsyncClient] = None,
) -> AggregateResult:
    """Submit every request concurrently, then await every job concurrently.

    The credential check and all payloads are built before the first network
    call, so those errors abort the whole batch. Anything that goes wrong
    afterwards is recorded on that prompt's outcome only.
    """
    settings.require_token()
    outcomes = [
        PromptOutcome(index=i, prompt=r.prompt, payload=adapt(r, descriptor))
        for i, r in enumerate(requests)
    ]
    multiple = len(outcomes) > 1

    async def _submit_one(outcome: PromptOutcome) -> None:
        try:
            outcome.job = await submit(http, settings, descriptor.backend_version, outcome.payload)
        except Exception as e:
            print(f"[WARNING] Prompt {outcome.index + 1} was not submitted: {e}", file=sys.stderr)
            outcome.error = e

    async def _complete_one(outcome: PromptOutcome) -> None:
        if outcome.job is None or not outcome.job.job_id:
            return
        try:
            outcome.artifact = await await_completion(
                http,
                settings,
                outcome.job.job_id,
                descriptor.id,
                outcome.prompt,
                save_dir,
                filename_suffix=f"p{outcome.index + 1}" if multiple else None,
            )
        except Exception as e:
            print(f"[WARNING] Prompt {outcome.index + 1} did not complete: {e}", file=sys.stderr)
            outcome.error = e

    http = client or new_http_client(settings.request_timeout_seconds)
    try:
        await asyncio.gather(*(_submit_one(o) for o in outcomes))
        await asyncio.gather(*(_complete_one(o) for o in outcomes))
    finally:
        if client is None:
            await http.aclose()

    return AggregateResult(descriptor=descriptor, outcomes=outcomes, save_dir=save_dir)


async def generate_videos(
    base: GenerationRequest,
    prompts: list[str],
    settings: GenerationSettings,
    save_path: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> AggregateResult:
    """Validate, upload a local image if needed, then fan out over ``prompts``."""
    descriptor = get_model(base.model_id)
    check_image_input(base, descriptor)
    settings.require_token()

    if base.image and is_local_file_path(base.image):
        uploaded = await upload_local_image(base.image, settings.storage)
        base = base.model_copy(update={"image": uploaded})

    warnings = []
    if base.resolution and not resolution_supported(base, descriptor):
        warnings.append(
            f"Resolution {base.resolution} is not supported by {descriptor.id} "
            f"({', '.join(descriptor.supported_resolutions)}); the model default was used."
        )

    result = await run_all(
        build_requests(base, prompts), descriptor, settings,
        settings.resolve_save_dir(save_path), client=client,
    )
    result.warnings.extend(warnings)
    return result


# ============================================================================
# Summaries
# ============================================================================

def _outcome_summary(outcome: PromptOutcome, verbose: bool) -> dict:
    """JSON entry for one prompt; failed prompts keep their monitor URL and error."""
    job = outcome.job
    entry: dict[str, Union[str, int, dict, None]] = {
        "index": outcome.index + 1,
        "prompt": outcome.prompt,
        "prediction_id": job.job_id if job else None,
        "status": outcome.status,
    }
    if outcome.artifact:
        entry["saved_path"] = outcome.artifact.local_path
    elif job and job.monitor_url:
        entry["monitor_url"] = job.monitor_url
    if outcome.error is not None:
        kind = outcome.error.kind.value if isinstance(outcome.error, VideoToolError) else type(outcome.error).__name__
        entry["error"] = f"{kind}: {outcome.error}"
    if verbose:
        entry["parameters"] = outcome.payload
    return entry


def summarize(result: AggregateResult, verbose: bool = False) -> dict:
    """
    JSON response for a generate call.

    ``verbose`` adds model details and the exact payload sent for each prompt.
    """
    descriptor = result.descriptor
    total = len(result.outcomes)
    summary: dict[str, Any] = {
        "status": result.status.value,
        "model": descriptor.id,
        "backend_version": descriptor.backend_version,
        "completed": result.completed_count,
        "total": total,
        "videos": [_outcome_summary(o, verbose) for o in result.outcomes],
        "output_dir": str(result.save_dir),
    }
    if result.warnings:
        summary["warnings"] = result.warnings
    if verbose:
        summary["model_details"] = {
            "mode": descriptor.mode.value,
            "features": descriptor.features,
            "max_duration_seconds": descriptor.max_duration_seconds,
            "resolutions": list(descriptor.supported_resolutions),
            "audio": descriptor.supports_audio,
        }
    return summary
