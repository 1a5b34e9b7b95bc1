"""Local media jobs run through ffmpeg/ffprobe (via ffmpeg-python)."""

import asyncio
import functools
import math
import os
import sys
import tempfile
from fractions import Fraction
from pathlib import Path
from typing import Any, Optional

import ffmpeg

from .errors import InputNotFoundError, InvalidArgumentError, MediaCommandFailedError

AUDIO_CODECS = {"mp3": "mp3", "wav": "pcm_s16le", "aac": "aac", "flac": "flac"}

SCREENSHOT_SCALES = {"480p": "854:480", "720p": "1280:720", "1080p": "1920:1080"}

SCREENSHOT_PATTERN = "screenshot_%06d.png"
SCREENSHOT_GLOB = "screenshot_*.png"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv", ".webm"}

DEFAULT_SEGMENT_SIZE = (1920, 1080)
DEFAULT_IMAGE_SECONDS = 2.0


# ============================================================================
# Helpers
# ============================================================================

def require_file(path: str) -> Path:
    """Return ``path`` as a Path, or raise InputNotFoundError if it is not a file."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise InputNotFoundError(f"File not found: {path}")
    return p


def prepare_output(path: str) -> Path:
    """Create the parent directory of an output file and return its Path."""
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def _stderr_tail(e: ffmpeg.Error, lines: int = 8) -> str:
    """Last few lines of ffmpeg's stderr, which is where it explains failures."""
    if not e.stderr:
        return str(e)
    text = e.stderr.decode("utf8", errors="replace").strip()
    return "\n".join(text.splitlines()[-lines:])


async def _in_executor(func, *args, **kwargs):
    """Run a blocking call on the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def run_ffmpeg(stream, description: str) -> None:
    """
    Run an ffmpeg-python stream off the event loop.

    Output files are overwritten. A failing run or a missing ffmpeg binary
    raises MediaCommandFailedError carrying the tail of ffmpeg's stderr.
    """
    print(f"[INFO] ffmpeg: {description}", file=sys.stderr)
    try:
        await _in_executor(stream.run, capture_stdout=True, capture_stderr=True, overwrite_output=True)
    except ffmpeg.Error as e:
        raise MediaCommandFailedError(f"ffmpeg failed ({description}): {_stderr_tail(e)}") from e
    except FileNotFoundError as e:
        raise MediaCommandFailedError("ffmpeg executable not found. Install FFmpeg and make sure it is on PATH.") from e


async def probe(path: Path) -> dict:
    """Raw ``ffprobe`` JSON (streams and format) for ``path``."""
    try:
        return await _in_executor(ffmpeg.probe, str(path))
    except ffmpeg.Error as e:
        raise MediaCommandFailedError(f"ffprobe failed for {path}: {_stderr_tail(e)}") from e
    except FileNotFoundError as e:
        raise MediaCommandFailedError("ffprobe executable not found. Install FFmpeg and make sure it is on PATH.") from e


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_frame_rate(rate: Optional[str]) -> Optional[float]:
    """Parse an ffprobe rate such as ``30000/1001``."""
    if not rate:
        return None
    try:
        value = Fraction(rate)
    except (ValueError, ZeroDivisionError):
        return None
    return float(value) if value else None


def parse_size(resolution: Optional[str]) -> tuple[int, int]:
    """Parse ``WIDTHxHEIGHT``; ``None`` gives the default 1920x1080 canvas."""
    if not resolution:
        return DEFAULT_SEGMENT_SIZE
    width, sep, height = resolution.lower().partition("x")
    if not (sep and width.isdigit() and height.isdigit() and int(width) > 0 and int(height) > 0):
        raise InvalidArgumentError(f"Resolution must look like WIDTHxHEIGHT, got {resolution!r}")
    return int(width), int(height)


# ============================================================================
# Metadata
# ============================================================================

def summarize_probe(data: dict, path: str) -> dict:
    """Reduce raw ffprobe JSON to the fields the metadata tool reports."""
    streams = data.get("streams", [])
    fmt = data.get("format", {})
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if video is None:
        raise InvalidArgumentError("No video stream found in the file")

    duration = float(fmt.get("duration") or video.get("duration") or 0)
    width = _int_or_none(video.get("width")) or 0
    height = _int_or_none(video.get("height")) or 0
    if width > height:
        orientation = "landscape"
    elif height > width:
        orientation = "portrait"
    else:
        orientation = "square"

    fps = parse_frame_rate(video.get("r_frame_rate"))
    size_bytes = _int_or_none(fmt.get("size")) or 0
    minutes, seconds = divmod(duration, 60)

    summary = {
        "file": {
            "path": path,
            "size_bytes": size_bytes,
            "size_mb": round(size_bytes / (1024 * 1024), 2),
            "duration_seconds": round(duration, 3),
            "duration_display": f"{int(minutes)}:{seconds:06.3f}",
        },
        "video": {
            "width": width,
            "height": height,
            "resolution": f"{width}x{height}",
            "aspect_ratio": f"{width}:{height}" if width and height else "unknown",
            "orientation": orientation,
            "fps": round(fps, 2) if fps else None,
            "codec": video.get("codec_name", "unknown"),
            "bitrate_kbps": round(int(video["bit_rate"]) / 1000) if _int_or_none(video.get("bit_rate")) else None,
        },
        "audio": None,
        "format": {
            "container": fmt.get("format_name", "unknown"),
            "container_long_name": fmt.get("format_long_name", "unknown"),
            "bitrate_kbps": round(int(fmt["bit_rate"]) / 1000) if _int_or_none(fmt.get("bit_rate")) else None,
        },
        "stats": {
            "is_landscape": orientation == "landscape",
            "is_portrait": orientation == "portrait",
            "has_audio": audio is not None,
            "video_stream_count": sum(1 for s in streams if s.get("codec_type") == "video"),
            "audio_stream_count": sum(1 for s in streams if s.get("codec_type") == "audio"),
        },
    }
    if audio is not None:
        summary["audio"] = {
            "codec": audio.get("codec_name", "unknown"),
            "sample_rate": _int_or_none(audio.get("sample_rate")),
            "channels": audio.get("channels"),
            "channel_layout": audio.get("channel_layout", "unknown"),
            "bitrate_kbps": round(int(audio["bit_rate"]) / 1000) if _int_or_none(audio.get("bit_rate")) else None,
        }
    return summary


async def get_video_metadata(file_path: str) -> dict:
    """Probe ``file_path`` and return its metadata summary."""
    path = require_file(file_path)
    return summarize_probe(await probe(path), file_path)


async def media_duration(path: Path) -> float:
    """Container duration in seconds (0 when ffprobe reports none)."""
    data = await probe(path)
    return float(data.get("format", {}).get("duration") or 0)


# ============================================================================
# Transforms
# ============================================================================

def atempo_chain(speed_factor: float) -> list[float]:
    """Split a tempo change into steps inside atempo's 0.5-2.0 range."""
    steps = []
    remaining = speed_factor
    while remaining > 2.0:
        steps.append(2.0)
        remaining /= 2.0
    while remaining < 0.5:
        steps.append(0.5)
        remaining /= 0.5
    steps.append(round(remaining, 6))
    return steps


async def adjust_video_speed(input_path: str, speed_factor: float, output_path: str) -> dict:
    """
    Re-time a video by ``speed_factor`` (2.0 plays twice as fast).

    Video timestamps are scaled with ``setpts``; audio is re-timed with a
    chain of ``atempo`` filters so pitch is preserved.
    """
    if speed_factor <= 0:
        raise InvalidArgumentError("Speed factor must be greater than 0")
    src = require_file(input_path)
    dst = prepare_output(output_path)

    setpts = f"setpts={1 / speed_factor:g}*PTS"
    atempo = ",".join(f"atempo={step:g}" for step in atempo_chain(speed_factor))
    stream = ffmpeg.input(str(src)).output(
        str(dst), **{"filter:v": setpts, "filter:a": atempo, "c:v": "libx264", "c:a": "aac"}
    )
    await run_ffmpeg(stream, f"speed x{speed_factor}")
    return {"output": str(dst), "speed_factor": speed_factor, "video_filter": setpts, "audio_filter": atempo}


async def scale_video(input_path: str, width: int, height: int, output_path: str,
                      maintain_aspect: bool = False) -> dict:
    """Resize to ``width`` x ``height``; with ``maintain_aspect`` the video fits inside that box."""
    if width <= 0 or height <= 0:
        raise InvalidArgumentError("Width and height must be greater than 0")
    src = require_file(input_path)
    dst = prepare_output(output_path)

    scale = f"scale={width}:{height}"
    if maintain_aspect:
        scale += ":force_original_aspect_ratio=decrease"
    stream = ffmpeg.input(str(src)).output(str(dst), vf=scale, **{"c:v": "libx264", "c:a": "copy"})
    await run_ffmpeg(stream, scale)
    return {"output": str(dst), "scale_filter": scale, "maintain_aspect": maintain_aspect}


async def apply_video_filters(input_path: str, filter_string: str, output_path: str,
                              copy_audio: bool = True) -> dict:
    """Apply a caller-supplied ``-vf`` filter string, copying or dropping the audio."""
    if not filter_string.strip():
        raise InvalidArgumentError("Filter string must not be empty")
    src = require_file(input_path)
    dst = prepare_output(output_path)

    audio_args = {"c:a": "copy"} if copy_audio else {"an": None}
    stream = ffmpeg.input(str(src)).output(str(dst), vf=filter_string, **{"c:v": "libx264"}, **audio_args)
    await run_ffmpeg(stream, f"filters {filter_string}")
    return {"output": str(dst), "filter_string": filter_string, "audio": "copied" if copy_audio else "removed"}


async def separate_audio_and_video(input_path: str, video_output: str, audio_output: str,
                                   audio_format: str = "mp3") -> dict:
    """Write a silent copy of the video and the audio track as ``audio_format``."""
    codec = AUDIO_CODECS.get(audio_format)
    if codec is None:
        raise InvalidArgumentError(f"Unsupported audio format: {audio_format}")
    src = require_file(input_path)
    video_dst = prepare_output(video_output)
    audio_dst = prepare_output(audio_output)

    video_stream = ffmpeg.input(str(src)).output(str(video_dst), an=None, **{"c:v": "copy"})
    audio_stream = ffmpeg.input(str(src)).output(str(audio_dst), vn=None, **{"c:a": codec})
    await asyncio.gather(
        run_ffmpeg(video_stream, "strip audio"),
        run_ffmpeg(audio_stream, f"extract audio as {audio_format}"),
    )
    return {"video_output": str(video_dst), "audio_output": str(audio_dst), "audio_codec": codec}


async def merge_audio_and_video(video_input: str, audio_input: str, output_path: str,
                                replace_audio: bool = True, trim_to_match: str = "none") -> dict:
    """
    Put an audio file onto a video.

    ``replace_audio`` swaps the soundtrack; otherwise both tracks are mixed
    with ``amix``. ``trim_to_match`` cuts the output to the length of the
    ``video`` or the ``audio`` input, or leaves it alone (``none``).
    """
    if trim_to_match not in ("video", "audio", "none"):
        raise InvalidArgumentError("trim_to_match must be 'video', 'audio' or 'none'")
    video_src = require_file(video_input)
    audio_src = require_file(audio_input)
    dst = prepare_output(output_path)

    durations = {}
    output_args: dict[str, Any] = {"c:v": "copy", "c:a": "aac"}
    if trim_to_match != "none":
        durations["video"], durations["audio"] = await asyncio.gather(
            media_duration(video_src), media_duration(audio_src)
        )
        output_args["t"] = durations[trim_to_match]

    video_in = ffmpeg.input(str(video_src))
    audio_in = ffmpeg.input(str(audio_src))
    if replace_audio:
        audio_track = audio_in.audio
    else:
        audio_track = ffmpeg.filter(
            [video_in.audio, audio_in.audio], "amix", inputs=2, duration="first", dropout_transition=3
        )
    stream = ffmpeg.output(video_in.video, audio_track, str(dst), **output_args)
    await run_ffmpeg(stream, "merge audio" if replace_audio else "mix audio")

    result = {
        "output": str(dst),
        "audio_handling": "replaced" if replace_audio else "mixed",
        "trim_to_match": trim_to_match,
    }
    if durations:
        result["video_duration_seconds"] = round(durations["video"], 2)
        result["audio_duration_seconds"] = round(durations["audio"], 2)
        result["final_duration_seconds"] = round(durations[trim_to_match], 2)
    return result


# ============================================================================
# Joining segments
# ============================================================================

def media_kind(path: str) -> str:
    """``image`` or ``video`` by file extension."""
    ext = Path(path).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    raise InvalidArgumentError(
        f"Unsupported file type: {path}. Images: {', '.join(sorted(IMAGE_EXTENSIONS))}; "
        f"videos: {', '.join(sorted(VIDEO_EXTENSIONS))}"
    )


def _normalized_segment(stream, size: tuple[int, int], fps: float):
    """Fit one input onto a common canvas so segments can be concatenated."""
    width, height = size
    return (
        stream.video
        .filter("scale", width, height, force_original_aspect_ratio="decrease")
        .filter("pad", width, height, -1, -1, color="black")
        .filter("setsar", 1)
        .filter("fps", fps=fps)
        .filter("format", "yuv420p")
        .filter("setpts", "PTS-STARTPTS")
    )


def _image_input(path: Path, seconds: float):
    return ffmpeg.input(str(path), loop=1, t=seconds)


async def concatenate_segments(inputs: list[str], output_path: str,
                               image_durations: Optional[list[float]] = None,
                               re_encode: Optional[bool] = None, fps: float = 25,
                               resolution: Optional[str] = None) -> dict:
    """
    Join videos and still images, in order, into one video.

    Videos alone are joined with the concat demuxer and stream copy unless
    ``re_encode`` is set. Any image forces re-encoding: every segment is then
    scaled and padded onto one canvas (``resolution``, default 1920x1080) and
    joined with the ``concat`` filter. Images are shown for the matching entry
    of ``image_durations`` (2 seconds when missing). Audio is not carried over
    when re-encoding.
    """
    if not inputs:
        raise InvalidArgumentError("At least one input file is required")
    if fps <= 0:
        raise InvalidArgumentError("fps must be greater than 0")
    kinds = [media_kind(p) for p in inputs]
    sources = [require_file(p) for p in inputs]
    size = parse_size(resolution)
    dst = prepare_output(output_path)

    image_count = kinds.count("image")
    durations = list(image_durations or [])
    if any(d <= 0 for d in durations):
        raise InvalidArgumentError("Image durations must be greater than 0")
    if re_encode is None or image_count:
        re_encode = bool(image_count) or bool(re_encode)

    if not re_encode:
        method = "stream copy (concat demuxer)"
        list_fd, list_path = tempfile.mkstemp(prefix="concat_", suffix=".txt", dir=str(dst.parent))
        try:
            with os.fdopen(list_fd, "w", encoding="utf8") as f:
                for src in sources:
                    escaped = str(src.resolve()).replace("'", "'\\''")
                    f.write(f"file '{escaped}'\n")
            stream = ffmpeg.input(list_path, f="concat", safe=0).output(str(dst), c="copy")
            await run_ffmpeg(stream, f"concat {len(sources)} videos")
        finally:
            os.remove(list_path)
    else:
        method = "re-encode (concat filter)"
        segments = []
        image_index = 0
        for src, kind in zip(sources, kinds):
            if kind == "image":
                seconds = durations[image_index] if image_index < len(durations) else DEFAULT_IMAGE_SECONDS
                image_index += 1
                segments.append(_normalized_segment(_image_input(src, seconds), size, fps))
            else:
                segments.append(_normalized_segment(ffmpeg.input(str(src)), size, fps))
        joined = ffmpeg.concat(*segments, v=1, a=0)
        stream = joined.output(str(dst), vcodec="libx264", pix_fmt="yuv420p", r=fps)
        await run_ffmpeg(stream, f"concat {len(segments)} segments")

    return {
        "output": str(dst),
        "inputs": [{"path": p, "type": k} for p, k in zip(inputs, kinds)],
        "image_count": image_count,
        "video_count": kinds.count("video"),
        "method": method,
        "fps": fps if re_encode else None,
        "resolution": f"{size[0]}x{size[1]}" if re_encode else None,
    }


async def images_to_video(images: list[str], output_path: str,
                          durations: Optional[list[float]] = None, fps: float = 25,
                          resolution: Optional[str] = None, audio_input: Optional[str] = None,
                          loop_audio: bool = False) -> dict:
    """
    Build a slideshow from still images, optionally with a soundtrack.

    Each image is held for its entry in ``durations`` (2 seconds each by
    default). With ``audio_input`` the output is cut to the slideshow length;
    ``loop_audio`` repeats a short track to fill it.
    """
    if not images:
        raise InvalidArgumentError("At least one image is required")
    if fps <= 0:
        raise InvalidArgumentError("fps must be greater than 0")
    for image in images:
        if media_kind(image) != "image":
            raise InvalidArgumentError(f"Not an image file: {image}")
    if durations is None:
        durations = [DEFAULT_IMAGE_SECONDS] * len(images)
    elif len(durations) != len(images):
        raise InvalidArgumentError("Number of durations must match number of images")
    if any(d <= 0 for d in durations):
        raise InvalidArgumentError("Image durations must be greater than 0")

    sources = [require_file(p) for p in images]
    audio_src = require_file(audio_input) if audio_input else None
    size = parse_size(resolution)
    dst = prepare_output(output_path)
    total = float(sum(durations))

    segments = [_normalized_segment(_image_input(src, seconds), size, fps) for src, seconds in zip(sources, durations)]
    video = ffmpeg.concat(*segments, v=1, a=0)
    video_args = {"vcodec": "libx264", "pix_fmt": "yuv420p", "r": fps}
    if audio_src is not None:
        audio_in = ffmpeg.input(str(audio_src), stream_loop=-1) if loop_audio else ffmpeg.input(str(audio_src))
        stream = ffmpeg.output(video, audio_in.audio, str(dst), t=total, acodec="aac", **video_args)
    else:
        stream = video.output(str(dst), **video_args)
    await run_ffmpeg(stream, f"slideshow of {len(sources)} images")

    return {
        "output": str(dst),
        "image_count": len(sources),
        "durations": durations,
        "total_duration_seconds": total,
        "fps": fps,
        "resolution": f"{size[0]}x{size[1]}",
        "audio": (Path(audio_input).name + (" (looped)" if loop_audio else "")) if audio_input else None,
    }


# ============================================================================
# Frames
# ============================================================================

def screenshot_scale(resolution: str) -> str:
    """Map ``720p``-style names or ``WIDTHxHEIGHT`` to a scale argument."""
    if resolution in SCREENSHOT_SCALES:
        return SCREENSHOT_SCALES[resolution]
    width, sep, height = resolution.lower().partition("x")
    if sep and width.isdigit() and height.isdigit():
        return f"{width}:{height}"
    return SCREENSHOT_SCALES["720p"]


async def extract_frames(input_path: str, output_directory: str, interval: float = 0.5,
                         resolution: str = "720p") -> dict:
    """
    Save one screenshot every ``interval`` seconds into ``output_directory``.

    Screenshots left by an earlier run in the same directory are removed
    first, so the directory only ever holds the frames of the latest video.
    """
    if interval <= 0:
        raise InvalidArgumentError("Interval must be greater than 0")
    src = require_file(input_path)
    out_dir = Path(output_directory).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    for stale in out_dir.glob(SCREENSHOT_GLOB):
        stale.unlink()

    vf = f"fps=1/{interval:g},scale={screenshot_scale(resolution)}"
    stream = ffmpeg.input(str(src)).output(str(out_dir / SCREENSHOT_PATTERN), vf=vf)
    await run_ffmpeg(stream, f"frames every {interval:g}s")

    screenshots = sorted(out_dir.glob(SCREENSHOT_GLOB))
    return {"output_directory": str(out_dir), "screenshot_count": len(screenshots), "interval_seconds": interval,
            "resolution": resolution, "screenshots": [p.name for p in screenshots]}


async def extract_frame_at(input_path: Path, timestamp: float, output_path: Path) -> Path:
    """Write the single frame at ``timestamp`` seconds to ``output_path``."""
    stream = ffmpeg.input(str(input_path)).output(str(output_path), ss=f"{timestamp:.3f}", vframes=1)
    await run_ffmpeg(stream, f"frame at {timestamp:.1f}s")
    return output_path


def calculate_desired_cuts(cut_rate_per_minute: float, audio_len_seconds: float) -> dict:
    """Cuts needed to hit ``cut_rate_per_minute`` over ``audio_len_seconds`` of audio."""
    desired = cut_rate_per_minute * audio_len_seconds / 60.0
    return {
        "desired_cuts": desired,
        "desired_cuts_rounded": int(math.floor(desired + 0.5)),
        "desired_cuts_ceiling": math.ceil(desired),
        "audio_len_minutes": audio_len_seconds / 60,
        "message": (
            f"For {audio_len_seconds:g} seconds of audio at {cut_rate_per_minute:g} cuts/min: "
            f"{desired:.2f} cuts (rounded: {int(math.floor(desired + 0.5))}, ceiling: {math.ceil(desired)})"
        ),
    }
