"""Error taxonomy and the guard used around every external call."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class AssistantError(RuntimeError):
    """Base class for failures surfaced by the voice assistant."""


class DetectionError(AssistantError):
    """Keyword engine failed to start, stop, or report a keyword."""


class SpeechCaptureError(AssistantError):
    """No speech was heard or transcription failed."""


class ConsentError(AssistantError):
    """The spoken yes/no decision could not be captured."""


class CaptureError(AssistantError):
    """Screenshot capture or on-screen text extraction failed."""


class InferenceError(AssistantError):
    """The language model call failed or returned nothing usable."""


class SynthesisError(AssistantError):
    """Speech synthesis or audio playback failed."""


async def guarded(
    awaitable: Awaitable[T],
    *,
    error_type: type[AssistantError],
    operation: str,
    timeout: float | None = None,
) -> T:
    """Await an external call and translate its failures into `error_type`.

    Errors already in the taxonomy pass through untouched, as does
    cancellation. A `timeout` of ``None`` waits indefinitely.
    """
    try:
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)
    except AssistantError:
        raise
    except asyncio.TimeoutError as error:
        raise error_type(f"{operation} timed out after {timeout:g}s") from error
    except Exception as error:
        raise error_type(f"{operation} failed: {error}") from error
