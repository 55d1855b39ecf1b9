from __future__ import annotations

from datetime import datetime
from pathlib import Path

from core.errors import OutputDirError


def default_filename(now: datetime | None = None) -> str:
    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"video_{ts}.mp4"


def ensure_output_dir(requested_dir: str | Path) -> Path:
    p = Path(requested_dir).expanduser()
    try:
        p.mkdir(parents=True, exist_ok=True)
    except OSError as ex:
        raise OutputDirError(f"Cannot create output directory {p}: {ex.strerror or ex}") from ex
    return p


def resolve_output(
    requested_dir: str | Path, requested_filename: str | None, *, now: datetime | None = None
) -> tuple[Path, str]:
    """Create the destination directory and pick the filename.

    A supplied filename is kept exactly as given (no extension handling);
    otherwise a timestamped video_<YYYYMMDD_HHMMSS>.mp4 is used.
    """

    out_dir = ensure_output_dir(requested_dir)
    filename = requested_filename if requested_filename is not None else default_filename(now)
    print(f"[output] {out_dir / filename}")
    return out_dir, filename
