# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Exceptions - Custom exceptions for the imgbackup package.
"""


class ImageBackupError(Exception):
    """Base exception for all imgbackup errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ImageBackupError):
    """Raised when configuration is invalid."""

    pass


class TagParseError(ConfigurationError):
    """Raised when a custom tag list cannot be parsed."""

    pass


class ProviderError(ImageBackupError):
    """Raised when a cloud provider call fails."""

    pass


class ImageNotFoundError(ProviderError):
    """Raised when an image cannot be found by identifier."""

    pass


class ImageWaitTimeoutError(ProviderError):
    """Raised when an image does not become available within the attempt ceiling."""

    pass


class TagApplyError(ProviderError):
    """Raised when applied tags are not reflected on the resource."""

    pass


class InstanceIdentityUnavailableError(ProviderError):
    """Raised when the instance metadata service cannot be reached."""

    pass


class SnapshotTaggingError(ImageBackupError):
    """Raised after tag propagation failed on one or more snapshots."""

    def __str__(self) -> str:
        return self.message


class NotificationError(ImageBackupError):
    """Raised when a failure notification cannot be delivered."""

    pass
