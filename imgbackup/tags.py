# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Tag helpers - Provenance tag sets and custom tag parsing.

Every image and snapshot produced by a backup run carries the same tag set:
the three fingerprint tags followed by the caller's custom tags, in the
order they were supplied.
"""

from typing import Iterable, List

from imgbackup.errors import explain_invalid_custom_tag
from imgbackup.exceptions import TagParseError
from imgbackup.models import Tag

BACKUP_TYPE_KEY = "BackupType"
BACKUP_TYPE_AUTO = "auto"
NAME_KEY = "Name"
SERVICE_KEY = "Service"


def build_backup_tags(
    name: str,
    service: str,
    custom_tags: Iterable[Tag] = (),
) -> List[Tag]:
    """
    Build the ordered tag set applied to an image and its snapshots.

    Args:
        name: Display name of the backed-up instance
        service: Service label
        custom_tags: Extra tags, appended in the order given

    Returns:
        [BackupType:auto, Name:<name>, Service:<service>, *custom_tags]
    """
    tags = [
        Tag(BACKUP_TYPE_KEY, BACKUP_TYPE_AUTO),
        Tag(NAME_KEY, name),
        Tag(SERVICE_KEY, service),
    ]
    tags.extend(custom_tags)
    return tags


def parse_custom_tags(text: str) -> List[Tag]:
    """
    Parse a comma-separated list of key:value pairs.

    Every entry must contain exactly one colon and a non-empty key. Empty
    entries (e.g. from a leading or trailing comma) are rejected.

    Raises:
        TagParseError: On the first malformed entry
    """
    tags: List[Tag] = []
    for entry in text.split(","):
        parts = entry.split(":")
        if len(parts) != 2 or not parts[0]:
            raise TagParseError(
                explain_invalid_custom_tag(entry),
                details={"entry": entry},
            )
        tags.append(Tag(key=parts[0], value=parts[1]))
    return tags


def format_custom_tags(tags: Iterable[Tag]) -> str:
    """Render tags back into the key:value,key:value form."""
    return ",".join(str(t) for t in tags)
