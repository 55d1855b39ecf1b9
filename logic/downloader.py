from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.binaries import ToolHandle
from core.errors import DownloadError, InitFailed
from providers.base import DownloadEngine, EngineFactory
from providers.ytdlp import YtDlpEngine


@dataclass(frozen=True)
class DownloadRequest:
    url: str
    output_dir: Path
    filename: str


@dataclass(frozen=True)
class DownloadSuccess:
    path: Path


@dataclass(frozen=True)
class DownloadFailure:
    error: str


DownloadOutcome = DownloadSuccess | DownloadFailure


def build_request(url: str, output_dir: Path, filename: str) -> DownloadRequest:
    url = (url or "").strip()
    if not url:
        raise ValueError("URL cannot be empty")
    if not filename:
        raise ValueError("Filename cannot be empty")
    if not Path(output_dir).is_dir():
        raise ValueError(f"Output directory does not exist: {output_dir}")
    return DownloadRequest(url=url, output_dir=Path(output_dir), filename=filename)


def _build_engine(factory: EngineFactory, request: DownloadRequest, tools: tuple[ToolHandle, ToolHandle]) -> DownloadEngine:
    yt_dlp, ffmpeg = tools
    try:
        return factory(yt_dlp=yt_dlp, ffmpeg=ffmpeg, output_dir=request.output_dir)
    except DownloadError:
        raise
    except Exception as ex:
        raise InitFailed(f"Could not initialize downloader: {ex}") from ex


def run_download(
    request: DownloadRequest,
    tools: tuple[ToolHandle, ToolHandle],
    *,
    engine_factory: EngineFactory = YtDlpEngine,
) -> Path:
    """Build the engine and fetch once. Returns the path the engine reports."""

    engine = _build_engine(engine_factory, request, tools)
    print(f"[download] Fetching {request.url}")
    return engine.fetch(request.url, request.filename)


def download(
    request: DownloadRequest,
    tools: tuple[ToolHandle, ToolHandle],
    *,
    engine_factory: EngineFactory = YtDlpEngine,
) -> DownloadOutcome:
    try:
        path = run_download(request, tools, engine_factory=engine_factory)
    except DownloadError as ex:
        return DownloadFailure(error=str(ex))
    return DownloadSuccess(path=path)
