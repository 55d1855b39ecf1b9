from __future__ import annotations


class DependencyError(RuntimeError):
    """One or more required executables could not be located."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Dependencies not found: {', '.join(self.missing)}")


class OutputDirError(OSError):
    pass


class DownloadError(RuntimeError):
    pass


class InitFailed(DownloadError):
    pass


class FetchFailed(DownloadError):
    pass


class ProvisionError(RuntimeError):
    pass
