"""Error taxonomy and the result type returned by every tool entry point."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Machine-readable category of a tool failure."""
    UNKNOWN_MODEL = "UnknownModel"
    MISSING_IMAGE_INPUT = "MissingImageInput"
    UNSUPPORTED_IMAGE_INPUT = "UnsupportedImageInput"
    MISSING_CREDENTIAL = "MissingCredential"
    PROVIDER_REJECTED = "ProviderRejected"
    PROVIDER_UNREACHABLE = "ProviderUnreachable"
    GENERATION_FAILED = "GenerationFailed"
    GENERATION_CANCELED = "GenerationCanceled"
    GENERATION_TIMED_OUT = "GenerationTimedOut"
    ARTIFACT_DOWNLOAD_FAILED = "ArtifactDownloadFailed"
    LOCAL_WRITE_FAILED = "LocalWriteFailed"
    IMAGE_UPLOAD_FAILED = "ImageUploadFailed"
    INPUT_NOT_FOUND = "InputNotFound"
    INVALID_ARGUMENT = "InvalidArgument"
    MEDIA_COMMAND_FAILED = "MediaCommandFailed"
    UNEXPECTED = "Unexpected"


class VideoToolError(Exception):
    """Base class for every error a tool reports back to the caller."""

    kind = ErrorKind.UNEXPECTED


class UnknownModelError(VideoToolError):
    """The requested model id is not in the registry."""

    kind = ErrorKind.UNKNOWN_MODEL


class MissingImageInputError(VideoToolError):
    """An image-to-video model was called without an image."""

    kind = ErrorKind.MISSING_IMAGE_INPUT


class UnsupportedImageInputError(VideoToolError):
    """A text-to-video model was given an image."""

    kind = ErrorKind.UNSUPPORTED_IMAGE_INPUT


class MissingCredentialError(VideoToolError):
    """A required API key or token is not configured."""

    kind = ErrorKind.MISSING_CREDENTIAL


class ProviderRejectedError(VideoToolError):
    """The remote API answered with an error status."""

    kind = ErrorKind.PROVIDER_REJECTED

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderUnreachableError(VideoToolError):
    """The remote API could not be reached at all."""

    kind = ErrorKind.PROVIDER_UNREACHABLE


class GenerationFailedError(VideoToolError):
    """The prediction finished with status ``failed``."""

    kind = ErrorKind.GENERATION_FAILED


class GenerationCanceledError(VideoToolError):
    """The prediction was canceled on the provider side."""

    kind = ErrorKind.GENERATION_CANCELED


class GenerationTimedOutError(VideoToolError):
    """The prediction did not finish within the polling budget."""

    kind = ErrorKind.GENERATION_TIMED_OUT


class ArtifactDownloadFailedError(VideoToolError):
    """The finished video could not be fetched from its output URL."""

    kind = ErrorKind.ARTIFACT_DOWNLOAD_FAILED


class LocalWriteFailedError(VideoToolError):
    """The downloaded video could not be written to disk."""

    kind = ErrorKind.LOCAL_WRITE_FAILED


class ImageUploadFailedError(VideoToolError):
    """A local image could not be published to object storage."""

    kind = ErrorKind.IMAGE_UPLOAD_FAILED


class InputNotFoundError(VideoToolError):
    """A local input file does not exist."""

    kind = ErrorKind.INPUT_NOT_FOUND


class InvalidArgumentError(VideoToolError):
    """A tool argument is out of range or malformed."""

    kind = ErrorKind.INVALID_ARGUMENT


class MediaCommandFailedError(VideoToolError):
    """ffmpeg or ffprobe failed or is not installed."""

    kind = ErrorKind.MEDIA_COMMAND_FAILED


def _handle_error(e: Exception, context: str = "") -> str:
    """Format errors consistently."""
    prefix = f"[{context}] " if context else ""

    if isinstance(e, VideoToolError):
        return f"{prefix}Error ({e.kind.value}): {e}"

    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        if status == 401:
            return f"{prefix}Error: Authentication failed. Check your API keys."
        elif status == 403:
            return f"{prefix}Error: Access forbidden. Check API permissions."
        elif status == 404:
            return f"{prefix}Error: Resource not found."
        elif status == 429:
            return f"{prefix}Error: Rate limit exceeded. Please wait before retrying."
        elif status == 402:
            return f"{prefix}Error: Insufficient credits. Please add funds to your account."
        return f"{prefix}Error: API request failed (HTTP {status})"

    elif isinstance(e, httpx.TimeoutException):
        return f"{prefix}Error: Request timed out. Try again later."

    elif isinstance(e, ValueError):
        return f"{prefix}Error: {str(e)}"

    return f"{prefix}Error: {type(e).__name__} - {str(e)}"


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool call: either success text or a failure to report.

    Tool entry points build one of these and only call :meth:`render` at the
    MCP boundary, so the caller always receives text rather than an exception.
    """

    text: str
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        """A successful result carrying the response text."""
        return cls(text=text)

    @classmethod
    def failure(cls, e: Exception, context: str = "") -> "ToolResult":
        """A failed result rendered from ``e``; non-taxonomy errors are ``Unexpected``."""
        kind = e.kind if isinstance(e, VideoToolError) else ErrorKind.UNEXPECTED
        return cls(text=_handle_error(e, context), error_kind=kind)

    def render(self) -> str:
        """Text sent back to the MCP client."""
        return self.text
