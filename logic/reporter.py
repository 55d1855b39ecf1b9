from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from logic.downloader import DownloadFailure, DownloadOutcome


def format_size(size_bytes: int) -> str:
    size_mb = size_bytes / 1024.0 / 1024.0
    size_gb = size_mb / 1024.0
    if size_gb >= 1.0:
        return f"{size_gb:.2f} GB ({size_mb:.0f} MB)"
    return f"{size_mb:.2f} MB"


def file_size(path: Path) -> int | None:
    try:
        return Path(path).stat().st_size
    except OSError:
        return None


def report(outcome: DownloadOutcome, *, out: TextIO | None = None, err: TextIO | None = None) -> int:
    """Print the outcome for the operator and return the process exit code."""

    out = out or sys.stdout
    err = err or sys.stderr

    if isinstance(outcome, DownloadFailure):
        print(f"Error: {outcome.error}", file=err)
        return 1

    print("Video downloaded successfully!", file=out)
    print(f"Saved to: {outcome.path}", file=out)
    # Size is best-effort: the file may already be gone.
    size_bytes = file_size(outcome.path)
    if size_bytes is not None:
        print(f"File size: {format_size(size_bytes)}", file=out)
    print("Download Complete!", file=out)
    return 0
