from __future__ import annotations

from typing import Optional


class InstallerError(RuntimeError):
    """Base for every failure that aborts a run.

    Carries enough context (package, version, step) for the user to diagnose
    the failure; the pipeline fills in whatever the raising code did not know.
    """

    exit_code = 1

    def __init__(
        self,
        message: str,
        *,
        package: Optional[str] = None,
        version: Optional[str] = None,
        step: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.package = package
        self.version = version
        self.step = step

    def with_context(
        self,
        *,
        package: Optional[str] = None,
        version: Optional[str] = None,
        step: Optional[str] = None,
    ) -> "InstallerError":
        self.package = self.package or package
        self.version = self.version or version
        self.step = self.step or step
        return self

    def __str__(self) -> str:
        where = []
        if self.package:
            where.append(f"{self.package} {self.version}" if self.version else self.package)
        if self.step:
            where.append(f"step {self.step}")
        prefix = f"[{', '.join(where)}] " if where else ""
        return f"{prefix}{type(self).__name__}: {self.message}"


class ManifestError(InstallerError):
    exit_code = 2


class ConfigError(InstallerError):
    exit_code = 2


class NetworkError(InstallerError):
    exit_code = 10


class HTTPError(InstallerError):
    exit_code = 11

    def __init__(self, message: str, *, status_code: int, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ChecksumMismatchError(InstallerError):
    exit_code = 12

    def __init__(self, message: str, *, expected: str, actual: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


class ExtractionError(InstallerError):
    exit_code = 13


class FilesystemError(InstallerError):
    exit_code = 14


class SmokeTestFailure(InstallerError):
    exit_code = 15


class InstallLockedError(FilesystemError):
    exit_code = 16
