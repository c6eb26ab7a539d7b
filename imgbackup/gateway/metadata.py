# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Instance metadata client (IMDSv2).

Only meaningful when the process runs on the instance being backed up:
it provides the instance id and the region of the current host.
"""

from typing import Any, Dict

import httpx
import structlog

from imgbackup.errors import explain_metadata_unavailable
from imgbackup.exceptions import InstanceIdentityUnavailableError

logger = structlog.get_logger()

IMDS_ENDPOINT = "http://169.254.169.254"
TOKEN_PATH = "/latest/api/token"
IDENTITY_DOCUMENT_PATH = "/latest/dynamic/instance-identity/document"
TOKEN_TTL_SECONDS = 21600


class InstanceMetadataClient:
    """Small async client for the instance metadata service."""

    def __init__(
        self,
        endpoint: str = IMDS_ENDPOINT,
        timeout: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._endpoint,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def get_instance_identity_document(self) -> Dict[str, Any]:
        """
        Fetch the instance identity document.

        Raises:
            InstanceIdentityUnavailableError: If the service cannot be reached
        """
        try:
            async with self._client() as client:
                token_response = await client.put(
                    TOKEN_PATH,
                    headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
                )
                token_response.raise_for_status()

                response = await client.get(
                    IDENTITY_DOCUMENT_PATH,
                    headers={"X-aws-ec2-metadata-token": token_response.text},
                )
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("instance_metadata_unavailable", error=str(e))
            raise InstanceIdentityUnavailableError(explain_metadata_unavailable()) from e

    async def available(self) -> bool:
        """Return True when the metadata service answers."""
        try:
            await self.get_instance_identity_document()
        except InstanceIdentityUnavailableError:
            return False
        return True

    async def get_instance_id(self) -> str:
        return await self._document_field("instanceId")

    async def get_region(self) -> str:
        return await self._document_field("region")

    async def _document_field(self, key: str) -> str:
        document = await self.get_instance_identity_document()
        try:
            return document[key]
        except (KeyError, TypeError) as e:
            logger.debug("instance_identity_field_missing", field=key)
            raise InstanceIdentityUnavailableError(
                explain_metadata_unavailable(),
                details={"missing": key},
            ) from e
