# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Creation and Tag Propagation Tests.
"""

from datetime import datetime

import pytest

from conftest import INSTANCE_ID, custom_tags
from imgbackup.backup.creator import create_image_backup, format_image_timestamp
from imgbackup.exceptions import ProviderError, SnapshotTaggingError
from imgbackup.models import BackupRequest, Tag

EXPECTED_TAGS = [
    Tag("BackupType", "auto"),
    Tag("Name", "test"),
    Tag("Service", "service"),
]


def test_image_timestamp_has_minute_resolution():
    assert format_image_timestamp(datetime(2026, 10, 19, 5, 7, 59)) == "202610190507"


@pytest.mark.asyncio
async def test_create_tags_image_and_every_snapshot(gateway, backup_request):
    gateway.volume_devices = [("/dev/xvda", True), ("/dev/xvdb", True), ("/dev/xvdc", True)]

    image_id = await create_image_backup(
        gateway, backup_request, now=datetime(2026, 10, 19, 5, 7)
    )

    assert gateway.calls_to("create_image") == [(INSTANCE_ID, "test", "202610190507")]
    assert gateway.images[image_id].name == "test-202610190507"

    snapshot_ids = gateway.images[image_id].snapshot_ids
    applied = gateway.calls_to("apply_tags")
    assert [resource for resource, _ in applied] == [image_id, *snapshot_ids]
    assert all(tags == EXPECTED_TAGS for _, tags in applied)


@pytest.mark.asyncio
async def test_create_appends_custom_tags_in_order(gateway):
    request = BackupRequest(
        instance_id=INSTANCE_ID,
        name="web",
        service="shop",
        generation=3,
        custom_tags=tuple(custom_tags()),
    )

    image_id = await create_image_backup(gateway, request)

    assert [str(t) for t in gateway.tags[image_id]] == [
        "BackupType:auto",
        "Name:web",
        "Service:shop",
        "env:prod",
        "team:infra",
    ]


@pytest.mark.asyncio
async def test_create_skips_ephemeral_mappings(gateway, backup_request):
    gateway.volume_devices = [("/dev/xvda", True), ("/dev/sdb", False)]

    image_id = await create_image_backup(gateway, backup_request)

    applied = [resource for resource, _ in gateway.calls_to("apply_tags")]
    assert len(applied) == 2
    assert applied[0] == image_id
    assert applied[1].startswith("snap-")


@pytest.mark.asyncio
async def test_create_image_failure_stops_immediately(gateway, backup_request):
    gateway.fail_create_image = True

    with pytest.raises(ProviderError):
        await create_image_backup(gateway, backup_request)

    assert gateway.calls_to("apply_tags") == []


@pytest.mark.asyncio
async def test_image_tagging_failure_stops_before_snapshots(gateway, backup_request):
    original_create = gateway.create_image

    async def create_and_break_tagging(instance_id, name, timestamp):
        image_id = await original_create(instance_id, name, timestamp)
        gateway.fail_tags_for.add(image_id)
        return image_id

    gateway.create_image = create_and_break_tagging

    with pytest.raises(ProviderError):
        await create_image_backup(gateway, backup_request)

    assert gateway.calls_to("list_snapshot_ids") == []


@pytest.mark.asyncio
async def test_snapshot_failures_are_aggregated(gateway, backup_request):
    """Every snapshot is attempted; the error lists every failure."""
    gateway.volume_devices = [("/dev/xvda", True), ("/dev/xvdb", True), ("/dev/xvdc", True)]
    original_create = gateway.create_image

    async def create_and_break_snapshots(instance_id, name, timestamp):
        image_id = await original_create(instance_id, name, timestamp)
        snapshots = gateway.images[image_id].snapshot_ids
        gateway.fail_tags_for.update({snapshots[0], snapshots[2]})
        return image_id

    gateway.create_image = create_and_break_snapshots

    with pytest.raises(SnapshotTaggingError) as exc_info:
        await create_image_backup(gateway, backup_request)

    image_id = gateway.calls_to("list_snapshot_ids")[0]
    snapshots = gateway.images[image_id].snapshot_ids

    # All three snapshots were attempted
    assert [r for r, _ in gateway.calls_to("apply_tags")][1:] == snapshots
    # The middle one was tagged
    assert gateway.tags[snapshots[1]] == EXPECTED_TAGS

    errors = exc_info.value.details["errors"]
    assert len(errors) == 2
    assert snapshots[0] in errors[0]
    assert snapshots[2] in errors[1]
    assert str(exc_info.value) == ", ".join(errors)
    assert exc_info.value.details["image_id"] == image_id
