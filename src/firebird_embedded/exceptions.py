"""Custom exception hierarchy for firebird_embedded."""

from __future__ import annotations

from pathlib import Path


class FirebirdEmbeddedError(Exception):
    """Base exception for all firebird_embedded errors."""


class ProvisionConfigError(FirebirdEmbeddedError):
    """Invalid or missing configuration."""


class UnsupportedPlatformError(FirebirdEmbeddedError):
    """Operation invoked outside the supported platform (Android)."""

    def __init__(self, message: str, *, platform: str = "") -> None:
        self.platform = platform
        super().__init__(message)


class FilesystemError(FirebirdEmbeddedError):
    """Directory creation or file write failed."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        self.path = path
        super().__init__(message)


class AssetLoadError(FirebirdEmbeddedError):
    """The asset manifest or a single bundled asset could not be read."""

    def __init__(self, message: str, *, asset: str = "") -> None:
        self.asset = asset
        super().__init__(message)
