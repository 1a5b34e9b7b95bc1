"""Registry of the video models available on the inference backend."""

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnknownModelError


class ModelMode(str, Enum):
    """Which inputs a model accepts."""
    TEXT_TO_VIDEO = "text-to-video"
    IMAGE_TO_VIDEO = "image-to-video"
    BOTH = "both"


class ModelDescriptor(BaseModel):
    """Capability record of one backend model variant."""
    model_config = ConfigDict(frozen=True)

    id: str
    backend_version: str
    mode: ModelMode
    max_duration_seconds: float
    supported_resolutions: tuple[str, ...]
    supports_audio: bool = False
    default_parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def accepts_image(self) -> bool:
        return self.mode in (ModelMode.IMAGE_TO_VIDEO, ModelMode.BOTH)

    @property
    def company(self) -> str:
        return self.backend_version.split("/")[0]

    @property
    def features(self) -> list[str]:
        if self.mode == ModelMode.BOTH:
            features = ["Text-to-Video & Image-to-Video"]
        elif self.mode == ModelMode.IMAGE_TO_VIDEO:
            features = ["Image-to-Video"]
        else:
            features = ["Text-to-Video"]
        if self.supports_audio:
            features.append("Audio Generation")
        if self.max_duration_seconds >= 10:
            features.append("Long Duration")
        if "1080p" in self.supported_resolutions or "4K" in self.supported_resolutions:
            features.append("High Resolution")
        return features


def _model(model_id: str, version: str, mode: ModelMode, max_duration: float,
           resolutions: list[str], defaults: dict, has_audio: bool = False) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        backend_version=version,
        mode=mode,
        max_duration_seconds=max_duration,
        supported_resolutions=tuple(resolutions),
        supports_audio=has_audio,
        default_parameters=dict(defaults),
    )


T2V = ModelMode.TEXT_TO_VIDEO
I2V = ModelMode.IMAGE_TO_VIDEO
BOTH = ModelMode.BOTH

_VEO_3_DEFAULTS = {
    "duration": 5,
    "aspect_ratio": "16:9",
    "enhance_prompt": True,
    "generate_audio": True,
    "person_generation": "allow_all",
}

_WAN_DEFAULTS = {"duration": 5, "fps": 25, "guide_scale": 4, "steps": 50}

_MODELS = [
    # Google Veo
    _model("veo-3", "google/veo-3", T2V, 30, ["720p", "1080p", "4K"], _VEO_3_DEFAULTS, has_audio=True),
    _model("veo-3-fast", "google/veo-3-fast", T2V, 30, ["720p", "1080p", "4K"], _VEO_3_DEFAULTS, has_audio=True),
    _model("veo-2", "google/veo-2", T2V, 30, ["720p", "1080p", "4K"], {
        "duration": 5,
        "resolution": "720p",
        "fps": 24,
        "guidance_scale": 7.5,
        "num_inference_steps": 50,
    }),
    # Tencent
    _model("hunyuan-video", "tencent/hunyuan-video", T2V, 10, ["720p", "1280p"], {
        "video_size": "720x1280",
        "video_length": 129,
        "inference_steps": 50,
        "guidance_scale": 6,
        "flow_reverse": False,
        "cpu_offload": True,
    }),
    # Genmo
    _model("mochi-1", "genmoai/mochi-1", T2V, 5.4, ["480p"], {
        "num_frames": 31,
        "height": 480,
        "width": 848,
        "num_inference_steps": 64,
        "guidance_scale": 4.5,
        "fps": 30,
    }),
    # Lightricks
    _model("ltx-video", "lightricks/ltx-video", T2V, 10, ["768p"], {
        "duration": 5,
        "fps": 24,
        "resolution": "768x512",
    }),
    _model("pyramid-flow", "zsxkib/pyramid-flow", BOTH, 10, ["768p"], {
        "duration": 5,
        "resolution": "768p",
        "flow_steps": 50,
    }),
    # ByteDance
    _model("seedance-pro", "bytedance/seedance-1-pro", BOTH, 10, ["480p", "720p", "1080p"], {
        "duration": 5,
        "resolution": "480p",
        "mode": "text-to-video",
    }),
    _model("seedance-lite", "bytedance/seedance-1-lite", BOTH, 10, ["480p", "720p"], {
        "duration": 5,
        "resolution": "480p",
        "mode": "text-to-video",
    }),
    # MiniMax
    _model("hailuo-2", "minimax/hailuo-02", BOTH, 10, ["720p", "1080p"], {
        "duration": 6,
        "resolution": "720p",
    }),
    _model("minimax-video", "minimax/video-01", T2V, 6, ["720p"], {
        "duration": 6,
        "resolution": "720p",
        "fps": 25,
    }),
    _model("minimax-director", "minimax/video-01-director", BOTH, 10, ["720p", "1080p"], {
        "duration": 6,
        "resolution": "720p",
        "camera_movement": "static",
    }),
    # Kuaishou
    _model("kling-v2.1-master", "kwaivgi/kling-v2.1-master", BOTH, 10, ["720p", "1080p"], {
        "duration": 5,
        "resolution": "720p",
        "motion_intensity": 5,
    }),
    _model("kling-v1.6-pro", "kwaivgi/kling-v1.6-pro", BOTH, 10, ["1080p"], {
        "duration": 5,
        "resolution": "1080p",
    }),
    # Luma
    _model("ray-flash-2", "luma/ray-flash-2-720p", BOTH, 10, ["720p"], {"duration": 5, "resolution": "720p"}),
    _model("ray-2", "luma/ray-2-720p", BOTH, 10, ["720p"], {"duration": 5, "resolution": "720p"}),
    _model("luma-ray", "luma/ray", BOTH, 10, ["720p", "1080p"], {"duration": 5, "resolution": "720p"}),
    # Alibaba WAN
    _model("wan-t2v-720p", "wavespeedai/wan-2.1-t2v-720p", T2V, 5, ["720p"], {**_WAN_DEFAULTS, "resolution": "720p"}),
    _model("wan-i2v-720p", "wavespeedai/wan-2.1-i2v-720p", I2V, 5, ["720p"], {**_WAN_DEFAULTS, "resolution": "720p"}),
    _model("wan-t2v-480p", "wavespeedai/wan-2.1-t2v-480p", T2V, 5, ["480p"], {**_WAN_DEFAULTS, "resolution": "480p"}),
    _model("wan-i2v-480p", "wavespeedai/wan-2.1-i2v-480p", I2V, 5, ["480p"], {**_WAN_DEFAULTS, "resolution": "480p"}),
    # PixVerse
    _model("pixverse-v4.5", "pixverse/pixverse-v4.5", BOTH, 8, ["540p", "720p", "1080p"], {
        "duration": 5,
        "resolution": "720p",
    }),
]

VIDEO_MODELS: Mapping[str, ModelDescriptor] = MappingProxyType({m.id: m for m in _MODELS})

ALL_RESOLUTIONS = ("480p", "540p", "720p", "768p", "1080p", "1280p", "4K")


def get_model(model_id: str) -> ModelDescriptor:
    """Look up a descriptor; unknown ids are a hard error."""
    try:
        return VIDEO_MODELS[model_id]
    except KeyError:
        raise UnknownModelError(
            f"Unknown model: {model_id}. Available models: {', '.join(sorted(VIDEO_MODELS))}"
        ) from None


# ============================================================================
# Catalogue heuristics
# ============================================================================

QUALITY_ORDER = {"Premium": 4, "High": 3, "Medium": 2, "Standard": 1}
SPEED_ORDER = {"Very Fast": 4, "Fast": 3, "Medium": 2, "Slow": 1}


def quality_tier(model_id: str) -> str:
    if "veo-3" in model_id or "veo-2" in model_id:
        return "Premium"
    if "kling" in model_id and "master" in model_id:
        return "Premium"
    if any(key in model_id for key in ("hailuo-2", "hunyuan", "seedance-pro", "kling", "ray")):
        return "High"
    if any(key in model_id for key in ("pixverse", "wan", "lite")):
        return "Medium"
    return "Standard"


def speed_estimate(model_id: str) -> str:
    if any(key in model_id for key in ("fast", "flash", "ltx")):
        return "Very Fast"
    if "lite" in model_id or ("wan" in model_id and "480p" in model_id):
        return "Fast"
    if "mochi" in model_id or "veo-3" in model_id or "hunyuan" in model_id:
        return "Slow"
    return "Medium"


def _resolution_height(resolution: str) -> int:
    # "4K" carries no pixel count
    if resolution.upper() == "4K":
        return 2160
    digits = "".join(ch for ch in resolution if ch.isdigit())
    return int(digits) if digits else 0


def cost_estimate(descriptor: ModelDescriptor) -> str:
    quality = quality_tier(descriptor.id)
    base = {"Premium": 4.0, "High": 2.5, "Medium": 1.5}.get(quality, 1.0)
    if descriptor.supports_audio:
        base *= 1.3
    max_res = max(_resolution_height(r) for r in descriptor.supported_resolutions)
    if max_res >= 1080:
        base *= 1.5
    if max_res >= 2160:
        base *= 2

    if base >= 4:
        return "Very High"
    if base >= 2.5:
        return "High"
    if base >= 1.5:
        return "Medium"
    return "Low"


def supported_parameters(descriptor: ModelDescriptor) -> list[str]:
    """Tool parameters that have an effect on the given model."""
    params = ["prompt", "duration"]
    if descriptor.accepts_image:
        params.append("image")

    model_id = descriptor.id
    if "veo" in model_id:
        params.extend(["aspect_ratio", "enhance_prompt", "generate_audio"])
    if "kling" in model_id:
        params.extend(["motion_intensity", "resolution"])
    if "minimax-director" in model_id:
        params.append("camera_movement")
    if "wan" in model_id:
        params.extend(["fps", "guidance_scale"])
    if "seedance" in model_id:
        params.append("resolution")

    params.extend(["seed", "negative_prompt"])
    # keep first occurrence order
    return list(dict.fromkeys(params))
