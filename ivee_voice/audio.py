"""Audio playback for synthesized speech and cues."""

from __future__ import annotations

import asyncio
import logging
import platform
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ivee_voice.errors import SynthesisError
from ivee_voice.types import AudioCue

LOGGER = logging.getLogger(__name__)


def default_cue_paths(cue_dir: Path) -> dict[AudioCue, Path]:
    """Map every cue to `<cue_dir>/<cue>.wav`."""
    return {cue: cue_dir / f"{cue.value}.wav" for cue in AudioCue}


@dataclass(slots=True)
class LocalAudioOutput:
    """Writes WAV audio to disk and plays it with the platform player."""

    output_dir: Path
    cue_paths: Mapping[AudioCue, Path] = field(default_factory=dict)
    cleanup_after_playback: bool = True
    logger: logging.Logger = LOGGER

    async def play(self, wav_bytes: bytes) -> None:
        """Play synthesized WAV audio and return once playback ends."""
        if not wav_bytes:
            raise SynthesisError("No audio to play.")
        await asyncio.to_thread(self._play_bytes, wav_bytes)

    async def play_cue(self, cue: AudioCue) -> None:
        """Play a cue file; cues without a file on disk are skipped."""
        path: Path | None = self.cue_paths.get(cue)
        if path is None or not path.is_file():
            self.logger.debug("No audio file for %s cue; skipping.", cue.value)
            return
        await asyncio.to_thread(self._play, path)

    def _play_bytes(self, wav_bytes: bytes) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target_path: Path = self._build_output_path()
        target_path.write_bytes(wav_bytes)
        try:
            self._play(target_path)
        finally:
            if self.cleanup_after_playback:
                self._safe_delete(target_path)

    def _build_output_path(self) -> Path:
        """Create a timestamped output path for a WAV artifact."""
        timestamp: str = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        return self.output_dir / f"response_{timestamp}.wav"

    def _safe_delete(self, path: Path) -> None:
        """Delete generated WAV file while swallowing cleanup errors."""
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            self.logger.warning("Audio cleanup failed for %s: %s", path, error)

    def _play(self, path: Path) -> None:
        """Play WAV file with platform-specific methods."""
        os_name: str = platform.system()
        if os_name == "Windows":
            self._play_windows(path)
            return

        player_command: list[str] | None = self._resolve_unix_player(path)
        if player_command is None:
            raise SynthesisError("No compatible audio player found (afplay/aplay/paplay).")
        completed = subprocess.run(player_command, check=False, capture_output=True)
        if completed.returncode != 0:
            raise SynthesisError(
                f"Audio player exited with status {completed.returncode} for {path.name}."
            )

    def _play_windows(self, path: Path) -> None:
        """Play WAV on Windows using the standard library."""
        import winsound

        winsound.PlaySound(str(path), winsound.SND_FILENAME)

    def _resolve_unix_player(self, path: Path) -> list[str] | None:
        """Resolve the first available Unix audio player command."""
        if shutil.which("afplay"):
            return ["afplay", str(path)]
        if shutil.which("aplay"):
            return ["aplay", "-q", str(path)]
        if shutil.which("paplay"):
            return ["paplay", str(path)]
        return None
