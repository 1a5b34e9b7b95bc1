#!/usr/bin/env python3
"""
MCP Server for AI video generation, editing and analysis.

Generates videos with the models hosted on Replicate (Veo, HunyuanVideo,
Kling, Seedance, WAN and more) and edits or inspects local videos with FFmpeg.
"""

import json
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from mcp.server.fastmcp import FastMCP

from . import media
from .config import GenerationSettings, VisionSettings
from .errors import ToolResult
from .generation import generate_videos, summarize
from .models import (
    ALL_RESOLUTIONS,
    QUALITY_ORDER,
    SPEED_ORDER,
    VIDEO_MODELS,
    ModelMode,
    cost_estimate,
    quality_tier,
    speed_estimate,
    supported_parameters,
)
from .params import GenerationRequest
from .vision import get_html_video_feedback as review_video_frames

# Initialize the MCP server
mcp = FastMCP("video_generation_mcp")


# ============================================================================
# Enums
# ============================================================================

VideoModel = Enum("VideoModel", {key.upper().replace("-", "_").replace(".", "_"): key for key in VIDEO_MODELS}, type=str)
VideoModel.__doc__ = "Video generation models available on the inference backend."

Resolution = Enum("Resolution", {f"R_{r.upper()}": r for r in ALL_RESOLUTIONS}, type=str)
Resolution.__doc__ = "Output resolutions understood by at least one model."


class AspectRatio(str, Enum):
    """Supported aspect ratios for video generation."""
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"


class CameraMovement(str, Enum):
    """Camera moves for director-style models."""
    STATIC = "static"
    PAN = "pan"
    TILT = "tilt"
    ZOOM = "zoom"
    DOLLY = "dolly"


class ModelSort(str, Enum):
    """Sort orders for the model catalogue."""
    NAME = "name"
    MAX_DURATION = "max_duration"
    QUALITY = "quality"
    SPEED = "speed"


class AudioFormat(str, Enum):
    """Audio formats for extracted soundtracks."""
    MP3 = "mp3"
    WAV = "wav"
    AAC = "aac"
    FLAC = "flac"


class TrimMode(str, Enum):
    """Which input sets the length of a merged video."""
    VIDEO = "video"
    AUDIO = "audio"
    NONE = "none"


class FeedbackMode(str, Enum):
    """How many frames the vision review looks at."""
    NORMAL = "normal"
    ADVANCED = "advanced"


# ============================================================================
# Input Models
# ============================================================================

class GenerateVideoInput(BaseModel):
    """Input for generating one or more videos."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True, extra='forbid')

    model: VideoModel = Field(..., description="The video generation model to use")
    prompt: Union[str, list[str]] = Field(
        ...,
        description="Text prompt describing the video, or a list of prompts to generate several videos in parallel",
    )
    image: Optional[str] = Field(
        default=None,
        description="Image URL or local file path for image-to-video models (local files are uploaded first)",
        max_length=2000
    )
    duration: Optional[float] = Field(default=None, description="Video duration in seconds (capped at the model maximum)", gt=0)
    resolution: Optional[Resolution] = Field(default=None, description="Video resolution")
    fps: Optional[int] = Field(default=None, description="Frames per second", gt=0, le=120)
    guidance_scale: Optional[float] = Field(default=None, description="Guidance scale for generation quality")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible results (offset per prompt)")
    aspect_ratio: Optional[AspectRatio] = Field(default=None, description="Video aspect ratio (Veo models)")
    negative_prompt: Optional[str] = Field(default=None, description="What to avoid in the video", max_length=1000)
    enhance_prompt: Optional[bool] = Field(default=None, description="Whether to enhance the prompt (Veo models)")
    generate_audio: Optional[bool] = Field(default=None, description="Whether to generate audio (Veo models)")
    camera_movement: Optional[CameraMovement] = Field(default=None, description="Camera movement (director models)")
    motion_intensity: Optional[int] = Field(default=None, description="Motion intensity level (1-10, Kling models)", ge=1, le=10)
    save_path: Optional[str] = Field(default=None, description="Directory to save videos in, relative to the working directory (default: 'videos')")
    verbose: bool = Field(default=False, description="Include model details and the exact parameters sent per video")

    @field_validator("prompt")
    @classmethod
    def _prompts_not_empty(cls, value):
        prompts = [value] if isinstance(value, str) else value
        if not prompts or any(not p.strip() for p in prompts):
            raise ValueError("prompt must be a non-empty string or a list of non-empty strings")
        return value

    def prompts(self) -> list[str]:
        return [self.prompt] if isinstance(self.prompt, str) else list(self.prompt)

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            model_id=self.model.value,
            prompt=self.prompts()[0],
            image=self.image,
            duration=self.duration,
            resolution=self.resolution.value if self.resolution else None,
            fps=self.fps,
            guidance_scale=self.guidance_scale,
            seed=self.seed,
            aspect_ratio=self.aspect_ratio.value if self.aspect_ratio else None,
            negative_prompt=self.negative_prompt,
            enhance_prompt=self.enhance_prompt,
            generate_audio=self.generate_audio,
            camera_movement=self.camera_movement.value if self.camera_movement else None,
            motion_intensity=self.motion_intensity,
        )


class GetModelsInput(BaseModel):
    """Filters for the model catalogue."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    model_filter: Optional[str] = Field(default=None, description="Filter models by name (partial match, case-insensitive)")
    type_filter: Optional[ModelMode] = Field(default=None, description="Filter by model type")
    resolution_filter: Optional[Resolution] = Field(default=None, description="Filter by supported resolution")
    has_audio: Optional[bool] = Field(default=None, description="Filter models that support audio generation")
    sort_by: ModelSort = Field(default=ModelSort.NAME, description="Sort models by name, max_duration, quality or speed")


class VideoFileInput(BaseModel):
    """Input for reading metadata from a local video file."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    file_path: str = Field(..., description="Absolute path to the video file", min_length=1)


class AdjustSpeedInput(BaseModel):
    """Input for changing a video's playback speed."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    speed_factor: float = Field(..., description="Speed factor (0.5 = half speed, 2.0 = double speed)", gt=0)
    output: str = Field(..., description="Absolute path for the output video file", min_length=1)


class ScaleVideoInput(BaseModel):
    """Input for resizing a video."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    width: int = Field(..., description="Target width in pixels", gt=0)
    height: int = Field(..., description="Target height in pixels", gt=0)
    output: str = Field(..., description="Absolute path for the output video file", min_length=1)
    maintain_aspect: bool = Field(default=False, description="Fit inside width x height keeping the aspect ratio")


class ApplyFiltersInput(BaseModel):
    """Input for applying an FFmpeg video filter string."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    filter_string: str = Field(..., description="FFmpeg filter string (e.g., 'eq=brightness=0.1:contrast=1.2')", min_length=1)
    output: str = Field(..., description="Absolute path for the output video file", min_length=1)
    copy_audio: bool = Field(default=True, description="Copy the audio stream unchanged (false drops audio)")


class SeparateAudioVideoInput(BaseModel):
    """Input for splitting a video into a silent video and an audio file."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    video_output: str = Field(..., description="Absolute path for the video-only output file", min_length=1)
    audio_output: str = Field(..., description="Absolute path for the audio-only output file", min_length=1)
    audio_format: AudioFormat = Field(default=AudioFormat.MP3, description="Audio format: mp3, wav, aac or flac")


class MergeAudioVideoInput(BaseModel):
    """Input for adding an audio file to a video."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    video_input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    audio_input: str = Field(..., description="Absolute path to the input audio file", min_length=1)
    output: str = Field(..., description="Absolute path for the merged output file", min_length=1)
    replace_audio: bool = Field(default=True, description="Replace the video's audio (false mixes both tracks)")
    trim_to_match: TrimMode = Field(
        default=TrimMode.NONE,
        description="'video' trims to the video length, 'audio' trims to the audio length, 'none' keeps both"
    )


class ConcatenateSegmentsInput(BaseModel):
    """Input for joining videos and images into one video."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    inputs: list[str] = Field(..., description="Absolute paths to video and/or image files, in playback order", min_length=1)
    output: str = Field(..., description="Absolute path for the output video file", min_length=1)
    image_durations: Optional[list[float]] = Field(
        default=None, description="Seconds to show each image input, in order (default: 2 seconds each)"
    )
    re_encode: Optional[bool] = Field(
        default=None, description="Re-encode onto a common canvas (always on when images are included)"
    )
    fps: float = Field(default=25, description="Frame rate when re-encoding", gt=0, le=120)
    resolution: Optional[str] = Field(default=None, description="Canvas size as WIDTHxHEIGHT when re-encoding (default: 1920x1080)")


class ImagesToVideoInput(BaseModel):
    """Input for building a slideshow video from images."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    images: list[str] = Field(..., description="Absolute paths to image files, in playback order", min_length=1)
    output: str = Field(..., description="Absolute path for the output video file", min_length=1)
    durations: Optional[list[float]] = Field(
        default=None, description="Seconds per image; must have one entry per image (default: 2 seconds each)"
    )
    fps: float = Field(default=25, description="Frame rate of the output video", gt=0, le=120)
    resolution: Optional[str] = Field(default=None, description="Canvas size as WIDTHxHEIGHT (default: 1920x1080)")
    audio_input: Optional[str] = Field(default=None, description="Optional audio file to use as the soundtrack")
    loop_audio: bool = Field(default=False, description="Loop the audio to cover the whole slideshow")


class GetContentInput(BaseModel):
    """Input for taking screenshots of a video at regular intervals."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    input: str = Field(..., description="Absolute path to the input video file", min_length=1)
    output_directory: str = Field(..., description="Directory to write the screenshots to", min_length=1)
    interval: float = Field(default=0.5, description="Seconds between screenshots", gt=0)
    resolution: str = Field(default="720p", description="Screenshot size: 480p, 720p, 1080p or WIDTHxHEIGHT")


class HtmlVideoFeedbackInput(BaseModel):
    """Input for a vision-model review of a recorded web page video."""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    video_file: str = Field(..., description="Absolute path to the input video file", min_length=1)
    mode: FeedbackMode = Field(
        default=FeedbackMode.NORMAL,
        description="'normal' reviews the first and last frames, 'advanced' reviews one frame per second"
    )
    description: str = Field(..., description="What the video is supposed to show", min_length=1, max_length=4000)


class CalculateCutsInput(BaseModel):
    """Input for the cut-rate calculator."""
    model_config = ConfigDict(extra='forbid')

    cut_rate_per_minute: float = Field(..., description="Target cut rate in cuts per minute", gt=0)
    audio_len_seconds: float = Field(..., description="Length of the audio in seconds", gt=0)


# ============================================================================
# Utility Functions
# ============================================================================


def _json(payload: dict) -> str:
    """Serialize a tool response the same way for every tool."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _model_entry(model_id: str) -> dict:
    """Catalogue entry for one model: capabilities, estimates and defaults."""
    descriptor = VIDEO_MODELS[model_id]
    return {
        "id": model_id,
        "company": descriptor.company,
        "version": descriptor.backend_version,
        "type": descriptor.mode.value,
        "quality": quality_tier(model_id),
        "speed": speed_estimate(model_id),
        "cost": cost_estimate(descriptor),
        "max_duration_seconds": descriptor.max_duration_seconds,
        "resolutions": list(descriptor.supported_resolutions),
        "audio": descriptor.supports_audio,
        "features": descriptor.features,
        "parameters": supported_parameters(descriptor),
        "defaults": dict(descriptor.default_parameters),
    }


def list_models(params: GetModelsInput) -> dict:
    """Filter and sort the catalogue, with summary counts over the matches."""
    entries = [_model_entry(model_id) for model_id in VIDEO_MODELS]

    if params.model_filter:
        needle = params.model_filter.lower()
        entries = [e for e in entries if needle in e["id"].lower()]
    if params.type_filter:
        entries = [e for e in entries if e["type"] == params.type_filter.value]
    if params.resolution_filter:
        entries = [e for e in entries if params.resolution_filter.value in e["resolutions"]]
    if params.has_audio is not None:
        entries = [e for e in entries if e["audio"] == params.has_audio]

    if params.sort_by == ModelSort.MAX_DURATION:
        entries.sort(key=lambda e: -e["max_duration_seconds"])
    elif params.sort_by == ModelSort.QUALITY:
        entries.sort(key=lambda e: -QUALITY_ORDER[e["quality"]])
    elif params.sort_by == ModelSort.SPEED:
        entries.sort(key=lambda e: -SPEED_ORDER[e["speed"]])
    else:
        entries.sort(key=lambda e: e["id"])

    companies: dict[str, int] = {}
    for e in entries:
        companies[e["company"]] = companies.get(e["company"], 0) + 1

    return {
        "summary": {
            "total": len(entries),
            "companies": companies,
            "with_audio": sum(1 for e in entries if e["audio"]),
            "by_type": {mode.value: sum(1 for e in entries if e["type"] == mode.value) for mode in ModelMode},
            "by_quality": {tier: sum(1 for e in entries if e["quality"] == tier) for tier in QUALITY_ORDER},
        },
        "models": entries,
    }


async def run_generate_video(params: GenerateVideoInput, settings: Optional[GenerationSettings] = None) -> ToolResult:
    """Run a generation request and wrap the outcome; settings default to the environment."""
    try:
        settings = settings or GenerationSettings.from_env()
        result = await generate_videos(params.to_request(), params.prompts(), settings, save_path=params.save_path)
        return ToolResult.success(_json(summarize(result, verbose=params.verbose)))
    except Exception as e:
        return ToolResult.failure(e, "Video Generation")


async def _media_result(context: str, coro) -> ToolResult:
    """Await a media operation and wrap its dict (or its error) as a ToolResult."""
    try:
        result = await coro
        return ToolResult.success(_json({"status": "success", **result}))
    except Exception as e:
        return ToolResult.failure(e, context)



async def run_html_video_feedback(params: HtmlVideoFeedbackInput, settings: Optional[VisionSettings] = None) -> ToolResult:
    """Review a web page video frame by frame; settings default to the environment."""
    try:
        settings = settings or VisionSettings.from_env()
        result = await review_video_frames(params.video_file, params.mode.value, params.description, settings)
        return ToolResult.success(_json({"status": "success", **result}))
    except Exception as e:
        return ToolResult.failure(e, "HTML Video Feedback")


# ============================================================================
# MCP Tools
# ============================================================================

@mcp.tool(
    name="generate_video",
    annotations={
        "title": "Generate Video with AI Models",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True
    }
)
async def generate_video(params: GenerateVideoInput) -> str:
    """Generate videos with the latest AI models (Veo 3, HunyuanVideo, Mochi-1, LTX-Video, Seedance, Hailuo, Kling, WAN, ...).

    Submits one prediction per prompt, waits for all of them to finish and
    downloads each video into the save directory.

    Args:
        params (GenerateVideoInput): Input containing:
            - model (VideoModel): Model id, see get_models
            - prompt (str | list[str]): One prompt, or several to generate in parallel
            - image (Optional[str]): Image URL or local path for image-to-video models
            - duration, resolution, fps, guidance_scale, seed, aspect_ratio,
              negative_prompt, enhance_prompt, generate_audio, camera_movement,
              motion_intensity: optional overrides (ignored by models that do not use them)
            - save_path (Optional[str]): Output directory (default: 'videos')
            - verbose (bool): Include model details and exact parameters

    Returns:
        str: JSON with:
            - status: 'all_successful', 'partial' or 'none'
            - completed / total: number of saved videos
            - videos: per prompt index, prediction_id, status and saved_path
              (or monitor_url and error when it did not finish)

    Note:
        Generation takes from 30 seconds to several minutes per video; each
        job is polled for at most 15 minutes.
    """
    return (await run_generate_video(params)).render()


@mcp.tool(
    name="get_models",
    annotations={
        "title": "List Video Generation Models",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def get_models(params: GetModelsInput) -> str:
    """Get information about all available video generation models.

    Returns capabilities, quality/speed/cost estimates, supported parameters
    and defaults, with optional filters and sorting.

    Args:
        params (GetModelsInput): Input containing:
            - model_filter (Optional[str]): Partial, case-insensitive model id match
            - type_filter (Optional[ModelMode]): text-to-video, image-to-video or both
            - resolution_filter (Optional[Resolution]): Only models supporting this resolution
            - has_audio (Optional[bool]): Only models with (or without) audio generation
            - sort_by (ModelSort): name, max_duration, quality or speed

    Returns:
        str: JSON with:
            - summary: total, companies, with_audio, by_type, by_quality
            - models: id, company, version, type, quality, speed, cost,
              max_duration_seconds, resolutions, audio, features, parameters, defaults

    Example:
        type_filter: "image-to-video", sort_by: "quality"
    """
    try:
        return ToolResult.success(_json(list_models(params))).render()
    except Exception as e:
        return ToolResult.failure(e, "Models").render()




@mcp.tool(
    name="get_video_metadata",
    annotations={
        "title": "Get Video Metadata",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def get_video_metadata(params: VideoFileInput) -> str:
    """Extract video metadata with FFprobe.

    Args:
        params (VideoFileInput): Input containing:
            - file_path (str): Absolute path to the video file

    Returns:
        str: JSON with:
            - file: path, size, duration
            - video: width, height, resolution, aspect_ratio, orientation, fps, codec, bitrate
            - audio: codec, sample_rate, channels, channel_layout, bitrate (null without audio)
            - format: container and overall bitrate
            - stats: orientation flags and stream counts
    """
    return (await _media_result("Video Metadata", media.get_video_metadata(params.file_path))).render()


@mcp.tool(
    name="adjust_video_speed",
    annotations={
        "title": "Adjust Video Speed",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def adjust_video_speed(params: AdjustSpeedInput) -> str:
    """Change playback speed of a video and its audio.

    Video is re-timed with setpts; audio with chained atempo filters so the
    pitch stays the same.

    Args:
        params (AdjustSpeedInput): Input containing:
            - input (str): Absolute path to the input video
            - speed_factor (float): 0.5 = half speed, 2.0 = double speed
            - output (str): Absolute path for the output video

    Returns:
        str: JSON with status, output, speed_factor, video_filter and audio_filter

    Example:
        speed_factor: 1.5 for a slightly faster cut
    """
    return (await _media_result(
        "Video Speed", media.adjust_video_speed(params.input, params.speed_factor, params.output)
    )).render()


@mcp.tool(
    name="scale_video",
    annotations={
        "title": "Scale Video",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def scale_video(params: ScaleVideoInput) -> str:
    """Resize a video to a target resolution.

    Args:
        params (ScaleVideoInput): Input containing:
            - input (str): Absolute path to the input video
            - width, height (int): Target size in pixels
            - output (str): Absolute path for the output video
            - maintain_aspect (bool): Fit inside width x height instead of stretching

    Returns:
        str: JSON with status, output, scale_filter and maintain_aspect

    Example:
        width: 1080, height: 1920 for a vertical 9:16 video
    """
    return (await _media_result(
        "Video Scaling",
        media.scale_video(params.input, params.width, params.height, params.output, params.maintain_aspect),
    )).render()


@mcp.tool(
    name="apply_video_filters",
    annotations={
        "title": "Apply FFmpeg Video Filters",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def apply_video_filters(params: ApplyFiltersInput) -> str:
    """Apply a custom FFmpeg video filter string.

    Args:
        params (ApplyFiltersInput): Input containing:
            - input (str): Absolute path to the input video
            - filter_string (str): Value passed to ffmpeg's -vf
            - output (str): Absolute path for the output video
            - copy_audio (bool): Keep the audio unchanged (false removes it)

    Returns:
        str: JSON with status, output, filter_string and audio ('copied' or 'removed')

    Example filter strings:
        - eq=brightness=0.1:contrast=1.2 (brightness and contrast)
        - hue=s=0 (grayscale)
        - boxblur=5 (blur)
    """
    return (await _media_result(
        "Video Filters",
        media.apply_video_filters(params.input, params.filter_string, params.output, params.copy_audio),
    )).render()


@mcp.tool(
    name="separate_audio_and_video",
    annotations={
        "title": "Separate Audio and Video",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def separate_audio_and_video(params: SeparateAudioVideoInput) -> str:
    """Split a video into a silent video file and an audio file.

    Args:
        params (SeparateAudioVideoInput): Input containing:
            - input (str): Absolute path to the input video
            - video_output (str): Where to write the video without audio
            - audio_output (str): Where to write the audio track
            - audio_format (AudioFormat): 'mp3', 'wav', 'aac' or 'flac'

    Returns:
        str: JSON with status, video_output, audio_output and audio_codec
    """
    return (await _media_result(
        "Audio/Video Separation",
        media.separate_audio_and_video(
            params.input, params.video_output, params.audio_output, params.audio_format.value
        ),
    )).render()


@mcp.tool(
    name="merge_audio_and_video",
    annotations={
        "title": "Merge Audio and Video",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def merge_audio_and_video(params: MergeAudioVideoInput) -> str:
    """Add an audio file to a video, replacing or mixing with the existing audio.

    Args:
        params (MergeAudioVideoInput): Input containing:
            - video_input (str): Absolute path to the video
            - audio_input (str): Absolute path to the audio file
            - output (str): Absolute path for the merged video
            - replace_audio (bool): Replace the soundtrack (false mixes both)
            - trim_to_match (TrimMode): 'video', 'audio' or 'none'

    Returns:
        str: JSON with status, output, audio_handling, trim_to_match and,
        when trimming, the video, audio and final durations

    Example:
        Background music under narration: replace_audio false, trim_to_match "video"
    """
    return (await _media_result(
        "Audio/Video Merge",
        media.merge_audio_and_video(
            params.video_input, params.audio_input, params.output,
            params.replace_audio, params.trim_to_match.value,
        ),
    )).render()


@mcp.tool(
    name="concatenate_segments",
    annotations={
        "title": "Concatenate Videos and Images",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def concatenate_segments(params: ConcatenateSegmentsInput) -> str:
    """Join video clips and still images, in order, into a single video.

    Clips of the same format are joined by stream copy, which is fast and
    lossless. When images are included, or re_encode is set, every segment
    is scaled and padded onto one canvas and re-encoded with H.264.

    Args:
        params (ConcatenateSegmentsInput): Input containing:
            - inputs (list[str]): Video and image paths in playback order
            - output (str): Absolute path for the output video
            - image_durations (Optional[list[float]]): Seconds per image (default 2)
            - re_encode (Optional[bool]): Force re-encoding of video-only inputs
            - fps (float): Output frame rate when re-encoding (default 25)
            - resolution (Optional[str]): WIDTHxHEIGHT canvas (default 1920x1080)

    Returns:
        str: JSON with status, output, inputs with their detected type,
        image_count, video_count, method, fps and resolution

    Example:
        inputs: ["/clips/title.png", "/clips/intro.mp4", "/clips/main.mp4"], image_durations: [3]
    """
    return (await _media_result(
        "Concatenate Segments",
        media.concatenate_segments(
            params.inputs, params.output, params.image_durations,
            params.re_encode, params.fps, params.resolution,
        ),
    )).render()


@mcp.tool(
    name="images_to_video",
    annotations={
        "title": "Create Video from Images",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def images_to_video(params: ImagesToVideoInput) -> str:
    """Turn a sequence of images into a slideshow video, optionally with audio.

    Args:
        params (ImagesToVideoInput): Input containing:
            - images (list[str]): Image paths in playback order
            - output (str): Absolute path for the output video
            - durations (Optional[list[float]]): Seconds per image, one per image (default 2)
            - fps (float): Output frame rate (default 25)
            - resolution (Optional[str]): WIDTHxHEIGHT canvas (default 1920x1080)
            - audio_input (Optional[str]): Soundtrack; the video is cut to the slideshow length
            - loop_audio (bool): Repeat a short soundtrack to fill the slideshow

    Returns:
        str: JSON with status, output, image_count, durations,
        total_duration_seconds, fps, resolution and audio

    Example:
        images: ["/shots/1.png", "/shots/2.png"], durations: [3, 5], audio_input: "/music/bed.mp3", loop_audio: true
    """
    return (await _media_result(
        "Images to Video",
        media.images_to_video(
            params.images, params.output, params.durations, params.fps,
            params.resolution, params.audio_input, params.loop_audio,
        ),
    )).render()


@mcp.tool(
    name="get_content",
    annotations={
        "title": "Extract Video Screenshots",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def get_content(params: GetContentInput) -> str:
    """Take screenshots at regular intervals so the video content can be reviewed.

    Earlier screenshots in output_directory are replaced. Read the images
    listed in the response afterwards to evaluate the video.

    Args:
        params (GetContentInput): Input containing:
            - input (str): Absolute path to the input video
            - output_directory (str): Where to write screenshot_000001.png, ...
            - interval (float): Seconds between screenshots (default 0.5)
            - resolution (str): '480p', '720p', '1080p' or WIDTHxHEIGHT

    Returns:
        str: JSON with status, output_directory, screenshot_count, screenshots,
        interval_seconds and resolution
    """
    return (await _media_result(
        "Video Content",
        media.extract_frames(params.input, params.output_directory, params.interval, params.resolution),
    )).render()


@mcp.tool(
    name="get_html_video_feedback",
    annotations={
        "title": "Get Design Feedback on a Web Page Video",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True
    }
)
async def get_html_video_feedback(params: HtmlVideoFeedbackInput) -> str:
    """Review a recorded web page video with a vision model (Gemini via OpenRouter).

    Frames are extracted with FFmpeg and each one is sent to the model
    together with the intended description. Requires OPENROUTER_API_KEY.

    Args:
        params (HtmlVideoFeedbackInput): Input containing:
            - video_file (str): Absolute path to the video
            - mode (FeedbackMode): 'normal' (first and last frame) or 'advanced' (every second)
            - description (str): What the page and its animation should show

    Returns:
        str: JSON with status, video, mode, description, duration_seconds, model
        and frames (frame, timestamp, feedback)

    Example:
        description: "Landing page for a coffee brand; hero fades in, then three product cards slide up"
    """
    return (await run_html_video_feedback(params)).render()


@mcp.tool(
    name="calculate_desired_cuts",
    annotations={
        "title": "Calculate Desired Cuts",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": False
    }
)
async def calculate_desired_cuts(params: CalculateCutsInput) -> str:
    """Number of cuts needed to hit a cut rate over an audio track.

    Args:
        params (CalculateCutsInput): Input containing:
            - cut_rate_per_minute (float): Target cuts per minute
            - audio_len_seconds (float): Length of the audio

    Returns:
        str: JSON with desired_cuts, desired_cuts_rounded, desired_cuts_ceiling,
        audio_len_minutes and a message

    Example:
        cut_rate_per_minute: 12, audio_len_seconds: 90 gives 18 cuts
    """
    return _json(media.calculate_desired_cuts(params.cut_rate_per_minute, params.audio_len_seconds))


# ============================================================================
# Server Entry Point
# ============================================================================

def main():
    """Entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
