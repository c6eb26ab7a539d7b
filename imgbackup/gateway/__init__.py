# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Provider gateways - EC2 adapter, in-memory adapter and the shared contract.
"""

from imgbackup.gateway.base import ProviderGateway
from imgbackup.gateway.ec2 import EC2Gateway, open_ec2_gateway, resolve_region
from imgbackup.gateway.memory import InMemoryGateway
from imgbackup.gateway.metadata import InstanceMetadataClient

__all__ = [
    "ProviderGateway",
    "EC2Gateway",
    "open_ec2_gateway",
    "resolve_region",
    "InMemoryGateway",
    "InstanceMetadataClient",
]
