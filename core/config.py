from __future__ import annotations

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

LOCATOR_MODES = ("path", "local", "auto")


@dataclass(frozen=True)
class DownloaderConfig:
    output_dir: str = "Downloads"
    locator_mode: str = "path"  # path | local | auto
    libs_dir: str = "libs"
    merge_format: str = "mp4"

    def __post_init__(self) -> None:
        if self.locator_mode not in LOCATOR_MODES:
            raise ValueError(
                f"Unknown locator mode {self.locator_mode!r} (expected one of: {', '.join(LOCATOR_MODES)})"
            )

    @classmethod
    def from_env(cls) -> DownloaderConfig:
        """Build config from YTDWN_* env vars (a local .env is loaded first)."""

        load_dotenv()
        defaults = cls()
        return cls(
            output_dir=os.getenv("YTDWN_OUTPUT_DIR", "").strip() or defaults.output_dir,
            locator_mode=os.getenv("YTDWN_LOCATOR", "").strip().lower() or defaults.locator_mode,
            libs_dir=os.getenv("YTDWN_LIBS_DIR", "").strip() or defaults.libs_dir,
            merge_format=os.getenv("YTDWN_MERGE_FORMAT", "").strip() or defaults.merge_format,
        )

    def with_overrides(self, **values: str | None) -> DownloaderConfig:
        """Return a copy with every non-None value applied."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})
