from __future__ import annotations

import subprocess
import sys
from collections import deque
from pathlib import Path

from core.binaries import ToolHandle, run_capture
from core.errors import FetchFailed, InitFailed

# Prefix for the line yt-dlp prints once the final file is in place.
SAVED_MARKER = "__ytdwn_saved__ "


def _error_summary(tail: list[str]) -> str:
    errors = [ln.strip() for ln in tail if ln.strip().startswith("ERROR:")]
    if errors:
        return "\n".join(errors)
    lines = [ln.rstrip() for ln in tail if ln.strip()]
    return "\n".join(lines[-10:]) or "yt-dlp exited with an error"


class YtDlpEngine:
    """Runs the yt-dlp executable, with ffmpeg for merging, into one output directory."""

    def __init__(self, *, yt_dlp: ToolHandle, ffmpeg: ToolHandle, output_dir: Path, merge_format: str = "mp4"):
        if yt_dlp.path is None or ffmpeg.path is None:
            raise InitFailed("yt-dlp and ffmpeg paths are required")
        if not Path(output_dir).is_dir():
            raise InitFailed(f"Output directory does not exist: {output_dir}")

        try:
            cp = run_capture([str(yt_dlp.path), "--version"], timeout=60)
        except (OSError, subprocess.SubprocessError) as ex:
            raise InitFailed(f"Cannot run {yt_dlp.path}: {ex}") from ex
        if cp.returncode != 0:
            raise InitFailed(f"{yt_dlp.path} --version failed:\n{cp.stdout.strip()}")

        self.yt_dlp = yt_dlp
        self.ffmpeg = ffmpeg
        self.output_dir = Path(output_dir)
        self.merge_format = merge_format
        self.version = cp.stdout.strip()
        print(f"[yt-dlp] version {self.version}")

    def build_args(self, url: str, filename: str) -> list[str]:
        return [
            str(self.yt_dlp.path),
            "--no-playlist",
            "--newline",
            "--ffmpeg-location",
            str(self.ffmpeg.path),
            "--merge-output-format",
            self.merge_format,
            "-o",
            # Output templates expand %; a literal filename must not.
            str(self.output_dir / filename).replace("%", "%%"),
            # --print implies --quiet/--simulate; keep downloading and showing progress.
            "--no-simulate",
            "--progress",
            "--print",
            f"after_move:{SAVED_MARKER}%(filepath)s",
            "--",
            url,
        ]

    def fetch(self, url: str, filename: str) -> Path:
        args = self.build_args(url, filename)
        tail: deque[str] = deque(maxlen=300)
        saved: str | None = None

        try:
            proc = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as ex:
            raise FetchFailed(f"Cannot start yt-dlp: {ex}") from ex

        assert proc.stdout is not None
        try:
            for line in proc.stdout:
                if line.startswith(SAVED_MARKER):
                    saved = line[len(SAVED_MARKER):].strip()
                    continue
                tail.append(line)
                sys.stdout.write(line)
                sys.stdout.flush()
            rc = proc.wait()
        except (OSError, ValueError) as ex:
            raise FetchFailed(f"Lost yt-dlp output: {ex}") from ex
        finally:
            # The child never outlives fetch, whatever interrupted the read.
            if proc.poll() is None:
                proc.terminate()
                proc.wait()

        if rc != 0:
            raise FetchFailed(_error_summary(list(tail)))

        return Path(saved) if saved else self.output_dir / filename
