from __future__ import annotations

import argparse
import sys
from functools import partial

from core.binaries import build_locator
from core.config import LOCATOR_MODES, DownloaderConfig
from core.errors import DependencyError, OutputDirError, ProvisionError
from core.provision import ensure_binaries
from logic.dependencies import check_dependencies, install_help
from logic.downloader import build_request, download
from logic.output import resolve_output
from logic.reporter import report
from providers.ytdlp import YtDlpEngine

USAGE = """YouTube Video Downloader
========================

Usage:
  yt-dwn --download <URL>    Download video
  yt-dwn --download          Download video (interactive)

Options:
  -o, --output DIR    Output directory (default: Downloads/)
  -f, --filename NAME Custom filename
  --locator MODE      Where to look for yt-dlp/ffmpeg: path, local (libs/) or auto
  --libs-dir DIR      Local install directory (default: libs/)
  --install-deps      Download missing yt-dlp/ffmpeg into the libs directory

Examples:
  yt-dwn --download https://youtu.be/example
  yt-dwn --download -o ~/Videos -f myvideo.mp4"""


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="yt-dwn", description="Youtube video downloader")
    ap.add_argument("url", nargs="?", default=None, help="Video URL (prompted when omitted)")
    ap.add_argument("-d", "--download", action="store_true", help="Download video")
    ap.add_argument("-o", "--output", dest="output_dir", default=None, help="Output dir (default: Downloads)")
    ap.add_argument("-f", "--filename", default=None, help="Output filename (default: video_<timestamp>.mp4)")
    ap.add_argument("--locator", default=None, choices=list(LOCATOR_MODES), help="Binary lookup strategy.")
    ap.add_argument("--libs-dir", default=None, help="Local directory holding yt-dlp/ffmpeg.")
    ap.add_argument("--install-deps", action="store_true", help="Download missing binaries into --libs-dir.")
    return ap


def _prompt_url() -> str:
    print("Enter YouTube video URL:")
    return sys.stdin.readline()


def _fail(msg: str) -> int:
    print(msg, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if not args.download:
        print(USAGE)
        return 0

    try:
        cfg = DownloaderConfig.from_env().with_overrides(
            output_dir=args.output_dir,
            locator_mode=args.locator,
            libs_dir=args.libs_dir,
        )
    except ValueError as ex:
        return _fail(f"Error: {ex}")

    url = args.url if args.url is not None else _prompt_url()
    url = url.strip()
    if not url:
        return _fail("Error: URL cannot be empty")
    if args.filename is not None and not args.filename.strip():
        return _fail("Error: Filename cannot be empty")

    if args.install_deps:
        try:
            ensure_binaries(cfg.libs_dir)
        except ProvisionError as ex:
            return _fail(f"Error: {ex}")
        if cfg.locator_mode == "path":
            # Freshly installed tools live in libs_dir, not on PATH.
            cfg = cfg.with_overrides(locator_mode="auto")

    try:
        tools = check_dependencies(build_locator(cfg.locator_mode, cfg.libs_dir))
    except DependencyError as ex:
        return _fail(install_help(ex.missing, libs_dir=cfg.libs_dir))

    try:
        out_dir, filename = resolve_output(cfg.output_dir, args.filename)
    except OutputDirError as ex:
        return _fail(f"Error: {ex}")

    request = build_request(url, out_dir, filename)
    try:
        outcome = download(request, tools, engine_factory=partial(YtDlpEngine, merge_format=cfg.merge_format))
    except KeyboardInterrupt:
        print("\nInterrupted. Partial files were left in place.", file=sys.stderr)
        return 130

    return report(outcome)


if __name__ == "__main__":
    raise SystemExit(main())
