"""Screen-capture implementations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Protocol

from ivee_voice.errors import CaptureError
from ivee_voice.types import CapturedScreen

LOGGER = logging.getLogger(__name__)


class ScreenTextExtractor(Protocol):
    """Reads the text visible in a screenshot."""

    def extract_text(self, screen: CapturedScreen) -> str:
        """Return the text found on screen."""


@dataclass(slots=True)
class MSSScreenCapturer:
    """Captures screenshots from a selected monitor using mss."""

    monitor_index: int = 1

    def capture(self) -> CapturedScreen:
        """Capture current screen contents as PNG bytes."""
        try:
            import mss
            import mss.tools
        except ImportError as error:
            raise CaptureError("mss is required for screenshot capture.") from error

        with mss.mss() as session:
            if len(session.monitors) == 0:
                raise CaptureError("No screens found.")
            fallback_index: int = 1 if len(session.monitors) > 1 else 0
            if self.monitor_index < 0 or self.monitor_index >= len(session.monitors):
                monitor = session.monitors[fallback_index]
            else:
                monitor = session.monitors[self.monitor_index]

            screenshot = session.grab(monitor)
            png_bytes: bytes = mss.tools.to_png(screenshot.rgb, screenshot.size)
            width, height = screenshot.size
            return CapturedScreen(
                png_bytes=png_bytes,
                width=width,
                height=height,
                captured_at=datetime.now(timezone.utc),
            )


@dataclass(slots=True)
class MSSScreenReader:
    """Takes a screenshot and attaches the text extracted from it."""

    capturer: MSSScreenCapturer
    text_extractor: ScreenTextExtractor
    logger: logging.Logger = LOGGER

    async def capture_with_text(self) -> CapturedScreen:
        """Capture the screen and extract its text off the event loop."""
        started_at: datetime = datetime.now(timezone.utc)
        screen: CapturedScreen = await asyncio.to_thread(self._capture)
        text: str = await asyncio.to_thread(self.text_extractor.extract_text, screen)
        elapsed: float = (datetime.now(timezone.utc) - started_at).total_seconds()
        self.logger.info("Screenshot and text extraction completed in %.2fs", elapsed)
        return replace(screen, text=text.strip())

    def _capture(self) -> CapturedScreen:
        try:
            return self.capturer.capture()
        except CaptureError:
            raise
        except Exception as error:
            raise CaptureError(f"Screenshot capture failed: {error}") from error
