"""Local artifact files and uploads of local images to object storage."""

import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlparse

import httpx

from .config import StorageSettings
from .errors import ImageUploadFailedError, InputNotFoundError, InvalidArgumentError, LocalWriteFailedError

VIDEO_EXTENSIONS = {"mp4", "webm", "mov", "mkv", "avi", "gif"}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


# ============================================================================
# Filenames
# ============================================================================

def sanitize_prompt(prompt: str, limit: int = 50) -> str:
    """First ``limit`` characters of the prompt, non-alphanumerics as ``_``."""
    return _UNSAFE_CHARS.sub("_", prompt[:limit])


def file_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 instant with ``:`` and ``.`` replaced by ``-``."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def extension_from_url(url: str, default: str = "mp4") -> str:
    suffix = Path(urlparse(url).path).suffix.lstrip(".").lower()
    return suffix if suffix in VIDEO_EXTENSIONS else default


def generate_filename(model_id: str, prompt: str, extension: str = "mp4",
                      now: Optional[datetime] = None, suffix: Optional[str] = None) -> str:
    """Build ``{model}_{prompt}_{timestamp}[_{suffix}].{extension}``."""
    parts = [model_id, sanitize_prompt(prompt), file_timestamp(now)]
    if suffix:
        parts.append(suffix)
    return f"{'_'.join(parts)}.{extension}"


# ============================================================================
# Saving
# ============================================================================

def save_artifact(data: bytes, save_dir: Path, filename: str) -> Path:
    """Write ``data`` to a new file under ``save_dir`` and return its path.

    Files are created exclusively; if the name is taken a counter is appended
    instead of overwriting the existing file.
    """
    try:
        save_dir.mkdir(parents=True, exist_ok=True)
        stem, dot, ext = filename.rpartition(".")
        candidate = save_dir / filename
        counter = 1
        while True:
            try:
                with open(candidate, "xb") as f:
                    f.write(data)
                return candidate
            except FileExistsError:
                counter += 1
                candidate = save_dir / f"{stem}_{counter}{dot}{ext}"
    except OSError as e:
        raise LocalWriteFailedError(f"Could not write video to {save_dir}: {e}") from e


# ============================================================================
# Image upload
# ============================================================================

def is_local_file_path(image: str) -> bool:
    """True unless ``image`` is a URL (``scheme://...``) or a ``data:`` URI."""
    parsed = urlparse(image)
    if parsed.scheme.lower() == "data":
        return False
    return not (parsed.scheme and image[len(parsed.scheme):].startswith("://"))


IMAGE_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}


def public_object_url(storage: StorageSettings, object_path: str) -> str:
    """Public download URL of an object in a public bucket."""
    return f"{storage.url}/storage/v1/object/public/{storage.bucket}/{object_path}"


async def upload_local_image(
    image_path: str,
    storage: StorageSettings,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Upload a local image file to the Supabase Storage bucket.

    Returns the public URL of the uploaded image.
    """
    path = Path(image_path).expanduser()
    if not path.is_file():
        raise InputNotFoundError(f"File not found: {image_path}")

    ext = path.suffix.lower()
    if ext not in IMAGE_CONTENT_TYPES:
        raise InvalidArgumentError(
            f"Invalid image file type: {ext or '(none)'}. Supported formats: {', '.join(IMAGE_CONTENT_TYPES)}"
        )

    base_url, service_key = storage.require_credentials()
    object_path = f"{storage.folder}/{file_timestamp()}_{quote(path.name)}"
    headers = {
        "Authorization": f"Bearer {service_key}",
        "apikey": service_key,
        "Content-Type": IMAGE_CONTENT_TYPES[ext],
        "x-upsert": "false",
    }

    print(f"[INFO] Uploading local image to storage: {path}", file=sys.stderr)
    http = client or httpx.AsyncClient(timeout=120)
    try:
        response = await http.post(
            f"{base_url}/storage/v1/object/{storage.bucket}/{object_path}",
            content=path.read_bytes(),
            headers=headers,
        )
    except httpx.HTTPError as e:
        raise ImageUploadFailedError(f"Failed to upload image: {e}") from e
    finally:
        if client is None:
            await http.aclose()

    if response.is_error:
        raise ImageUploadFailedError(
            f"Failed to upload image (HTTP {response.status_code}): {response.text[:300]}"
        )

    url = public_object_url(storage, object_path)
    print(f"[INFO] Image uploaded: {url}", file=sys.stderr)
    return url
