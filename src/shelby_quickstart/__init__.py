"""Quickstart scripts for the Shelby blob-storage network."""

__version__ = "0.1.0"

from .client import ShelbyClient, BlobInfo, DownloadResult
from .async_client import AsyncShelbyClient
from .errors import (
    ShelbyError,
    ConfigError,
    AccountsFileError,
    UploadErrorKind,
    classify_upload_error,
)
from .driver import BatchUploadDriver, BatchSummary, DriverConfig

__all__ = [
    "ShelbyClient",
    "AsyncShelbyClient",
    "BlobInfo",
    "DownloadResult",
    "ShelbyError",
    "ConfigError",
    "AccountsFileError",
    "UploadErrorKind",
    "classify_upload_error",
    "BatchUploadDriver",
    "BatchSummary",
    "DriverConfig",
]
