"""Translate one generic generation request into a model's input payload.

Every backend model speaks its own dialect (``guidance_scale`` vs
``guide_scale``, ``video_size`` instead of ``resolution``, ``image_url``
instead of ``image`` ...). Each dialect is a small pure function registered in
``MODEL_MAPPERS``; models without an entry fall back to ``_generic``.
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from .errors import MissingImageInputError, UnsupportedImageInputError
from .models import ModelDescriptor, ModelMode


class GenerationRequest(BaseModel):
    """One prompt's worth of validated generation parameters."""
    model_config = ConfigDict(frozen=True)

    model_id: str
    prompt: str
    image: Optional[str] = None
    duration: Optional[float] = None
    resolution: Optional[str] = None
    fps: Optional[int] = None
    guidance_scale: Optional[float] = None
    seed: Optional[int] = None
    aspect_ratio: Optional[str] = None
    negative_prompt: Optional[str] = None
    enhance_prompt: Optional[bool] = None
    generate_audio: Optional[bool] = None
    camera_movement: Optional[str] = None
    motion_intensity: Optional[int] = None


Payload = dict[str, Any]
Mapper = Callable[[Payload, GenerationRequest, ModelDescriptor], None]


def check_image_input(request: GenerationRequest, descriptor: ModelDescriptor) -> None:
    """Reject requests whose image input does not match the model's mode."""
    if descriptor.mode == ModelMode.IMAGE_TO_VIDEO and not request.image:
        raise MissingImageInputError(f"Model {descriptor.id} requires an image input")
    if descriptor.mode == ModelMode.TEXT_TO_VIDEO and request.image:
        raise UnsupportedImageInputError(
            f"Model {descriptor.id} is text-to-video only and doesn't accept image input"
        )


def resolution_supported(request: GenerationRequest, descriptor: ModelDescriptor) -> bool:
    """True when a resolution was requested and the model lists it."""
    return request.resolution is not None and request.resolution in descriptor.supported_resolutions


# ============================================================================
# Per-family mappers
# ============================================================================

def _set_resolution(payload: Payload, request: GenerationRequest, descriptor: ModelDescriptor) -> None:
    if resolution_supported(request, descriptor):
        payload["resolution"] = request.resolution


def _set_fps(payload: Payload, request: GenerationRequest) -> None:
    if request.fps is not None:
        payload["fps"] = request.fps


def _set_guidance(payload: Payload, request: GenerationRequest, key: str = "guidance_scale") -> None:
    if request.guidance_scale is not None:
        payload[key] = request.guidance_scale


def _veo_3(payload, request, descriptor):
    if request.aspect_ratio:
        payload["aspect_ratio"] = request.aspect_ratio
    if request.enhance_prompt is not None:
        payload["enhance_prompt"] = request.enhance_prompt
    if request.generate_audio is not None:
        payload["generate_audio"] = request.generate_audio


def _veo_2(payload, request, descriptor):
    _set_resolution(payload, request, descriptor)
    _set_fps(payload, request)
    _set_guidance(payload, request)


_HUNYUAN_VIDEO_SIZES = {"720p": "720x1280", "1280p": "1280x720"}


def _hunyuan(payload, request, descriptor):
    """HunyuanVideo takes ``video_size`` instead of ``resolution``."""
    video_size = _HUNYUAN_VIDEO_SIZES.get(request.resolution or "")
    if video_size:
        payload["video_size"] = video_size
    _set_guidance(payload, request)


def _mochi(payload, request, descriptor):
    _set_guidance(payload, request)
    _set_fps(payload, request)


def _ltx(payload, request, descriptor):
    _set_fps(payload, request)


def _image_only(payload, request, descriptor):
    pass


def _seedance(payload, request, descriptor):
    """Seedance reads the image from ``image_url`` and needs the mode switched."""
    _set_resolution(payload, request, descriptor)
    if request.image:
        payload.pop("image", None)
        payload["mode"] = "image-to-video"
        payload["image_url"] = request.image


def _resolution_only(payload, request, descriptor):
    _set_resolution(payload, request, descriptor)


def _minimax_director(payload, request, descriptor):
    _set_resolution(payload, request, descriptor)
    if request.camera_movement:
        payload["camera_movement"] = request.camera_movement


def _kling(payload, request, descriptor):
    _set_resolution(payload, request, descriptor)
    if request.motion_intensity is not None:
        payload["motion_intensity"] = request.motion_intensity


def _wan(payload, request, descriptor):
    """WAN calls guidance ``guide_scale``."""
    _set_fps(payload, request)
    _set_guidance(payload, request, key="guide_scale")


def _generic(payload, request, descriptor):
    """Fallback for models without their own mapper."""
    _set_resolution(payload, request, descriptor)
    _set_fps(payload, request)
    _set_guidance(payload, request)
    if request.image and descriptor.accepts_image:
        payload["image"] = request.image


MODEL_MAPPERS: dict[str, Mapper] = {
    "veo-3": _veo_3,
    "veo-3-fast": _veo_3,
    "veo-2": _veo_2,
    "hunyuan-video": _hunyuan,
    "mochi-1": _mochi,
    "ltx-video": _ltx,
    "pyramid-flow": _image_only,
    "seedance-pro": _seedance,
    "seedance-lite": _seedance,
    "hailuo-2": _resolution_only,
    "minimax-video": _resolution_only,
    "minimax-director": _minimax_director,
    "kling-v2.1-master": _kling,
    "kling-v1.6-pro": _kling,
    "ray-flash-2": _resolution_only,
    "ray-2": _resolution_only,
    "luma-ray": _resolution_only,
    "wan-t2v-720p": _wan,
    "wan-t2v-480p": _wan,
    "wan-i2v-720p": _wan,
    "wan-i2v-480p": _wan,
    "pixverse-v4.5": _resolution_only,
}


def adapt(request: GenerationRequest, descriptor: ModelDescriptor) -> Payload:
    """Build the provider input payload for ``request`` on ``descriptor``.

    Defaults come first, then the prompt and the common overrides, then the
    model's own mapper. Requested resolutions the model does not list are
    left out of the payload.
    """
    check_image_input(request, descriptor)

    payload: Payload = dict(descriptor.default_parameters)
    payload["prompt"] = request.prompt

    if request.duration is not None:
        duration = min(request.duration, descriptor.max_duration_seconds)
        payload["duration"] = int(duration) if float(duration).is_integer() else duration
    if request.seed is not None:
        payload["seed"] = request.seed
    if request.negative_prompt:
        payload["negative_prompt"] = request.negative_prompt
    if request.image and descriptor.accepts_image:
        payload["image"] = request.image

    mapper = MODEL_MAPPERS.get(descriptor.id, _generic)
    mapper(payload, request, descriptor)
    return payload
