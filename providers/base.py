from __future__ import annotations

from pathlib import Path
from typing import Protocol

from core.binaries import ToolHandle


class DownloadEngine(Protocol):
    def fetch(self, url: str, filename: str) -> Path:
        """Download url into the engine's output directory; return the file actually written.

        Raises FetchFailed with the tool's message on failure.
        """


class EngineFactory(Protocol):
    def __call__(self, *, yt_dlp: ToolHandle, ffmpeg: ToolHandle, output_dir: Path) -> DownloadEngine:
        """Build an engine; raises InitFailed when the binaries cannot be used."""
