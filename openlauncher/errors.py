"""
Error types raised by the OpenLauncher core.

Every condition a caller has to tell apart gets its own class so the
presentation layer can branch on the type instead of parsing messages.
All of them carry a human-readable message.
"""
from typing import Optional


class LauncherError(Exception):
    """Base class for all launcher errors"""


# Build catalog

class CatalogFetchError(LauncherError):
    """Listing builds for a game failed. The catalog cache is left as it was."""

    def __init__(self, message: str, game_id: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.game_id = game_id
        self.status = status


class CatalogTimeoutError(CatalogFetchError):
    pass


class CatalogAuthError(CatalogFetchError):
    """Rejected credentials or exhausted rate limit (HTTP 401/403)."""


class CatalogNetworkError(CatalogFetchError):
    pass


class CatalogResponseError(CatalogFetchError):
    """The release source answered with something we could not parse."""


# Asset selection

class NoApplicableAssetError(LauncherError):
    """A build has nothing that runs on this machine."""

    def __init__(self, build_version: str):
        super().__init__(f"Build {build_version} has no download for this platform")
        self.build_version = build_version


# Install / launch

class DownloadBusyError(LauncherError):
    def __init__(self, game_id: str):
        super().__init__(f"A download is already in progress for {game_id}")
        self.game_id = game_id


class DownloadFailedError(LauncherError):
    """Download or activation did not complete; the previous install is untouched."""

    def __init__(self, message: str, game_id: Optional[str] = None):
        super().__init__(message)
        self.game_id = game_id


class DownloadNetworkError(DownloadFailedError):
    pass


class DownloadDiskError(DownloadFailedError):
    pass


class CorruptArtifactError(DownloadFailedError):
    """Size/digest mismatch, unreadable archive or missing executable."""


class DownloadCancelledError(DownloadFailedError):
    pass


class InstallUnavailableError(LauncherError):
    def __init__(self, game_id: str):
        super().__init__(f"{game_id} is not installed")
        self.game_id = game_id


class LaunchFailedError(LauncherError):
    def __init__(self, message: str, game_id: Optional[str] = None):
        super().__init__(message)
        self.game_id = game_id
