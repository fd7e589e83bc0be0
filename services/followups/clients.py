from __future__ import annotations

import logging

import httpx

from shared.contracts.models import AdoptionRecord, NotificationRequest

logger = logging.getLogger(__name__)


class HttpAdoptionLookup:
    """Adoption lookup backed by the adoptions service REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def get(self, adoption_id: str) -> AdoptionRecord | None:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(f"/adoptions/{adoption_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
        return AdoptionRecord.model_validate(response.json())


class HttpNotificationSink:
    """Notification sink posting to the notifications service; failures are reported, not raised."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, request: NotificationRequest) -> bool:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post("/notifications", json=request.model_dump(mode="json"))
                response.raise_for_status()
            except httpx.HTTPError as exc:
                logger.error(
                    "Failed to send %s notification to user %s: %s",
                    request.kind.value,
                    request.user_id,
                    exc,
                )
                return False
        return True
