from __future__ import annotations

import platform
import shutil
import tarfile
import zipfile
from pathlib import Path

import requests

from core.binaries import FFMPEG, YT_DLP, LocalDirLocator, exe_name
from core.errors import ProvisionError

YT_DLP_RELEASE = "https://github.com/yt-dlp/yt-dlp/releases/latest/download"

_YT_DLP_ASSETS = {
    "windows": "yt-dlp.exe",
    "darwin": "yt-dlp_macos",
    "linux": "yt-dlp_linux",
}

_FFMPEG_ARCHIVES = {
    "windows": "https://www.gyan.dev/ffmpeg/builds/ffmpeg-release-essentials.zip",
    # Evermeet constant URL for latest static release
    "darwin": "https://evermeet.cx/ffmpeg/getrelease/zip",
    "linux": "https://johnvansickle.com/ffmpeg/releases/ffmpeg-release-amd64-static.tar.xz",
}


def _platform() -> str:
    return platform.system().lower()


def _download(url: str, dest: Path) -> None:
    print(f"[install] Downloading {url}...")
    # Stream into a side file so an interrupted download never looks installed.
    part = dest.with_name(dest.name + ".part")
    try:
        with requests.get(url, stream=True, timeout=120) as r:
            r.raise_for_status()
            with open(part, "wb") as f:
                for chunk in r.iter_content(chunk_size=1024 * 1024):
                    if chunk:
                        f.write(chunk)
        part.replace(dest)
    except requests.RequestException as ex:
        raise ProvisionError(f"Failed to download {url}: {ex}") from ex
    finally:
        part.unlink(missing_ok=True)


def _make_executable(p: Path) -> None:
    if _platform() != "windows":
        p.chmod(0o755)


def install_yt_dlp(libs_dir: Path) -> Path:
    asset = _YT_DLP_ASSETS.get(_platform())
    if not asset:
        raise ProvisionError(f"yt-dlp auto-install not implemented for {_platform()}")

    target = libs_dir / exe_name(YT_DLP)
    _download(f"{YT_DLP_RELEASE}/{asset}", target)
    _make_executable(target)
    return target


def _extract(archive: Path, dest: Path) -> None:
    if archive.name.endswith(".zip"):
        with zipfile.ZipFile(archive, "r") as z:
            z.extractall(dest)
    else:
        with tarfile.open(archive, "r:*") as t:
            t.extractall(dest, filter="data")


def install_ffmpeg(libs_dir: Path) -> Path:
    sys_platform = _platform()
    url = _FFMPEG_ARCHIVES.get(sys_platform)
    if not url:
        raise ProvisionError(f"ffmpeg auto-install not implemented for {sys_platform}")

    archive_name = "ffmpeg.tar.xz" if url.endswith(".tar.xz") else "ffmpeg.zip"
    archive = libs_dir / archive_name
    _download(url, archive)

    extract_root = libs_dir / "ffmpeg_temp"
    if extract_root.exists():
        shutil.rmtree(extract_root)
    extract_root.mkdir(parents=True, exist_ok=True)

    try:
        print(f"[install] Extracting {archive.name}...")
        try:
            _extract(archive, extract_root)
        except (zipfile.BadZipFile, tarfile.TarError) as ex:
            raise ProvisionError(f"Could not extract {archive}: {ex}") from ex

        binary = exe_name(FFMPEG)
        candidates = [c for c in extract_root.glob(f"**/{binary}") if c.is_file()]
        if not candidates:
            raise ProvisionError(f"Could not find {binary} binary in {archive}")

        target = libs_dir / binary
        shutil.move(str(candidates[0]), str(target))
        _make_executable(target)
        return target
    finally:
        shutil.rmtree(extract_root, ignore_errors=True)
        archive.unlink(missing_ok=True)


_INSTALLERS = {
    YT_DLP: install_yt_dlp,
    FFMPEG: install_ffmpeg,
}


def ensure_binaries(libs_dir: str) -> dict[str, Path]:
    """Make sure yt-dlp and ffmpeg exist in libs_dir, downloading what is missing.

    Returns the path of each tool inside libs_dir.
    """

    libs_path = Path(libs_dir)
    libs_path.mkdir(parents=True, exist_ok=True)
    local = LocalDirLocator(libs_dir=str(libs_path))

    out: dict[str, Path] = {}
    for name, installer in _INSTALLERS.items():
        existing = local.locate(name)
        if existing is not None:
            print(f"[install] {name} already present: {existing}")
            out[name] = existing
            continue
        out[name] = installer(libs_path).resolve()
        print(f"[install] {name} installed to {out[name]}")
    return out
