from __future__ import annotations

import platform
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

YT_DLP = "yt-dlp"
FFMPEG = "ffmpeg"
REQUIRED_TOOLS = (YT_DLP, FFMPEG)


@dataclass(frozen=True)
class ToolHandle:
    name: str
    path: Path | None = None

    @property
    def found(self) -> bool:
        return self.path is not None


class BinaryLocator(Protocol):
    def locate(self, name: str) -> Path | None:
        """Return the executable path for name, or None when it is not available."""


def exe_name(name: str) -> str:
    return f"{name}.exe" if platform.system().lower() == "windows" else name


@dataclass(frozen=True)
class SystemPathLocator:
    """Looks tools up on the process PATH."""

    def locate(self, name: str) -> Path | None:
        found = shutil.which(name)
        if not found:
            return None
        return Path(found).resolve()


@dataclass(frozen=True)
class LocalDirLocator:
    """Looks tools up in a fixed install directory (libs/ by default)."""

    libs_dir: str = "libs"

    def locate(self, name: str) -> Path | None:
        base = Path(self.libs_dir)
        for candidate in (base / name, base / exe_name(name)):
            if candidate.is_file():
                return candidate.resolve()
        return None


@dataclass(frozen=True)
class ChainedLocator:
    locators: tuple[BinaryLocator, ...]

    def locate(self, name: str) -> Path | None:
        for loc in self.locators:
            p = loc.locate(name)
            if p is not None:
                return p
        return None


def build_locator(mode: str, libs_dir: str = "libs") -> BinaryLocator:
    if mode == "path":
        return SystemPathLocator()
    if mode == "local":
        return LocalDirLocator(libs_dir=libs_dir)
    if mode == "auto":
        return ChainedLocator(locators=(SystemPathLocator(), LocalDirLocator(libs_dir=libs_dir)))
    raise ValueError(f"Unknown locator mode: {mode!r}")


def resolve_tool(locator: BinaryLocator, name: str) -> ToolHandle:
    return ToolHandle(name=name, path=locator.locate(name))


def run_capture(args: list[str], *, timeout: float | None = None) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True, check=False, timeout=timeout
    )
