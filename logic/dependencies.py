from __future__ import annotations

from core.binaries import FFMPEG, REQUIRED_TOOLS, YT_DLP, BinaryLocator, ToolHandle, resolve_tool
from core.errors import DependencyError

TOOL_HOMEPAGES = {
    YT_DLP: "https://github.com/yt-dlp/yt-dlp",
    FFMPEG: "https://ffmpeg.org",
}


def check_dependencies(locator: BinaryLocator) -> tuple[ToolHandle, ToolHandle]:
    """Resolve yt-dlp and ffmpeg; raise DependencyError naming every missing tool."""

    handles = [resolve_tool(locator, name) for name in REQUIRED_TOOLS]
    missing = [h.name for h in handles if not h.found]
    for h in handles:
        if h.found:
            print(f"[deps] {h.name}: {h.path}")
    if missing:
        raise DependencyError(missing)

    yt_dlp, ffmpeg = handles
    return yt_dlp, ffmpeg


def install_help(missing: list[str], *, libs_dir: str = "libs") -> str:
    lines = ["Dependencies not found!", "Please install:"]
    lines.extend([f"- {name} ({TOOL_HOMEPAGES.get(name, '')})" for name in missing])
    lines.append(f"And make sure they're in your PATH (or in {libs_dir}/ with --locator local).")
    lines.append("Or rerun with --install-deps to download them automatically.")
    return "\n".join(lines)
