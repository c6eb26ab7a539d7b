# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for imgbackup.

These helpers centralize wording for common configuration errors so that
the config layer and the command line present consistent, actionable messages.
"""


def explain_metadata_unavailable() -> str:
    """
    Explain that the instance metadata service is not reachable.
    """

    return (
        "program is not running with EC2 Instance or metadata service is not available"
    )


def explain_invalid_custom_tag(entry: str) -> str:
    """
    Explain that a custom tag entry is malformed.
    """

    return (
        f"Invalid custom tag: {entry!r}. "
        "Each entry must be written as key:value with exactly one colon, "
        "and entries are separated by commas (e.g. env:prod,team:infra)."
    )


def explain_invalid_generation(value: object) -> str:
    """
    Explain that the backup generation count is invalid.
    """

    return (
        f"Invalid backup generation: {value!r}. "
        "It must be a non-negative integer number of images to keep."
    )


def explain_invalid_mail_port(value: object) -> str:
    """
    Explain that the mail server port is invalid.
    """

    return (
        f"Invalid mail server port: {value!r}. "
        "It must be an integer between 1 and 65535."
    )


def explain_invalid_log_level(value: str | None) -> str:
    """
    Explain that IMGBACKUP_LOG_LEVEL is invalid.
    """

    return (
        f"Invalid log level: {value!r}. "
        "Expected one of: 'debug', 'info', 'warning', 'error'."
    )
