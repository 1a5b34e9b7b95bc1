"""Frame-by-frame design review of a rendered web page video with a vision model."""

import asyncio
import base64
import sys
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from . import media
from .config import VisionSettings
from .errors import InvalidArgumentError, ProviderRejectedError, ProviderUnreachableError

FEEDBACK_MODES = ("normal", "advanced")

# ffmpeg cannot seek exactly to the end of the stream
END_MARGIN_SECONDS = 0.1

_FIRST_FRAME_PROMPT = """You are reviewing a screenshot from a video of an AI-generated web page.
This is the FIRST frame (0.5 seconds in), showing the page's initial state.

Video description: {description}

Give critical, actionable feedback on:
1. Spacing and layout
2. Visual hierarchy of headings, subheadings and body text
3. How easy the content is to understand and navigate
4. How quickly the opening frame communicates the page's purpose
5. Visual polish: misalignments, overlaps, rough edges
6. How well this frame matches the description above"""

_LAST_FRAME_PROMPT = """You are reviewing a screenshot from a video of an AI-generated web page.
This is the FINAL frame, showing the page after all animations and transitions.

Video description: {description}

Give critical, actionable feedback on:
1. Quality of the finished layout
2. Completeness: missing or cut-off content
3. Visual coherence of the final design
4. Usability of the final state
5. Strengths and weaknesses of the rendered page
6. How well the result achieves the description above"""

_TIMELINE_FRAME_PROMPT = """You are reviewing a screenshot from a video of an AI-generated web page.
This is frame {number} of {total}, taken {timestamp:.1f} seconds into the video.

Video description: {description}

Give critical, actionable feedback on:
1. What is happening at this moment and whether animations look right
2. Layout quality at this moment
3. Whether the progress matches what should be on screen by now
4. Readability of the content
5. Consistency with the overall design
6. How this frame contributes to the description above"""


def frame_plan(duration: float, mode: str) -> list[tuple[str, float]]:
    """
    Which frames to review, as ``(label, timestamp)`` pairs.

    ``normal`` looks at the first (0.5 s) and last frame; ``advanced`` looks
    at one frame per second starting at 0.5 s.
    """
    if mode not in FEEDBACK_MODES:
        raise InvalidArgumentError(f"mode must be one of {', '.join(FEEDBACK_MODES)}")
    if duration <= 0:
        raise InvalidArgumentError("Video has no duration to sample frames from")

    last = max(duration - END_MARGIN_SECONDS, 0.0)
    if mode == "normal":
        return [("first", min(0.5, last)), ("last", last)]

    plan = []
    t = 0.5
    while t < duration:
        plan.append((f"frame_{len(plan) + 1}", min(t, last)))
        t += 1
    return plan or [("frame_1", last)]


def frame_prompt(label: str, timestamp: float, index: int, total: int, description: str) -> str:
    if label == "first":
        return _FIRST_FRAME_PROMPT.format(description=description)
    if label == "last":
        return _LAST_FRAME_PROMPT.format(description=description)
    return _TIMELINE_FRAME_PROMPT.format(number=index + 1, total=total, timestamp=timestamp, description=description)


async def review_frame(client: httpx.AsyncClient, settings: VisionSettings, image_b64: str, prompt: str) -> str:
    """
    Ask the vision model about one JPEG frame.

    Returns the model's text answer.
    """
    api_key = settings.require_key()
    request_body = {
        "model": settings.model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"}},
                    {"type": "text", "text": prompt},
                ],
            }
        ],
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "HTTP-Referer": "https://video-generation-mcp.local",
        "X-Title": "Video Generation MCP",
        "Content-Type": "application/json",
    }

    try:
        response = await client.post(f"{settings.api_base}/chat/completions", json=request_body, headers=headers)
    except httpx.TransportError as e:
        raise ProviderUnreachableError(f"Could not reach vision API: {e}") from e

    if response.status_code != 200:
        error_text = response.text[:300]
        try:
            error_json = response.json()
        except ValueError:
            error_json = None
        if isinstance(error_json, dict) and "error" in error_json:
            error_text = str(error_json["error"])
        raise ProviderRejectedError(f"Vision API error ({response.status_code}): {error_text}",
                                    status_code=response.status_code)

    choices = response.json().get("choices", [])
    if not choices:
        raise ProviderRejectedError("No response from vision API")
    return choices[0].get("message", {}).get("content") or ""


async def get_html_video_feedback(
    video_file: str,
    mode: str,
    description: str,
    settings: VisionSettings,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    """
    Extract frames from ``video_file`` and collect design feedback on each.

    Frames are written to a temporary directory that is removed afterwards.
    All frames are reviewed concurrently.
    """
    src = media.require_file(video_file)
    settings.require_key()
    duration = await media.media_duration(src)
    plan = frame_plan(duration, mode)

    http = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    try:
        with tempfile.TemporaryDirectory(prefix="video_feedback_") as tmp:
            frames = []
            for label, timestamp in plan:
                path = await media.extract_frame_at(src, timestamp, Path(tmp) / f"{label}.jpg")
                frames.append(base64.b64encode(path.read_bytes()).decode("ascii"))

            answers = await asyncio.gather(*(
                review_frame(http, settings, image_b64, frame_prompt(label, ts, i, len(plan), description))
                for i, ((label, ts), image_b64) in enumerate(zip(plan, frames))
            ))
    finally:
        if client is None:
            await http.aclose()

    print(f"[INFO] Reviewed {len(plan)} frames of {src.name}", file=sys.stderr)
    return {
        "video": src.name,
        "mode": mode,
        "description": description,
        "duration_seconds": round(duration, 3),
        "model": settings.model,
        "frames": [
            {"frame": label, "timestamp": f"{ts:.1f}s", "feedback": answer}
            for (label, ts), answer in zip(plan, answers)
        ],
    }
