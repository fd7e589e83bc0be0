import asyncio
import json

import httpx
import pytest

from services.followups.clients import HttpAdoptionLookup, HttpNotificationSink
from shared.contracts.enums import NotificationKind, ReferenceType
from shared.contracts.models import NotificationRequest


def _lookup(handler) -> HttpAdoptionLookup:
    return HttpAdoptionLookup("http://adoptions.test/", transport=httpx.MockTransport(handler))


def _sink(handler) -> HttpNotificationSink:
    return HttpNotificationSink("http://notifications.test", transport=httpx.MockTransport(handler))


def _notification() -> NotificationRequest:
    return NotificationRequest(
        user_id="adopter-1",
        kind=NotificationKind.FOLLOWUP_REMINDER,
        title="Adoption follow-up pending",
        message="You have a pending follow-up",
        reference_id="followup-1",
        reference_type=ReferenceType.FOLLOWUP,
    )


def test_adoption_lookup_parses_record():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/adoptions/adoption-1"
        return httpx.Response(
            200,
            json={
                "adoption_id": "adoption-1",
                "adopter_id": "adopter-1",
                "owner_id": "shelter-1",
                "animal_id": "animal-1",
                "animal_name": "Luna",
                "approval_date": "2026-02-25T09:00:00Z",
                "status": "approved",
            },
        )

    record = asyncio.run(_lookup(handler).get("adoption-1"))

    assert record.owner_id == "shelter-1"
    assert record.animal_name == "Luna"
    assert record.approval_date.year == 2026


def test_adoption_lookup_returns_none_for_unknown_adoption():
    record = asyncio.run(_lookup(lambda request: httpx.Response(404)).get("missing"))
    assert record is None


def test_adoption_lookup_raises_on_server_error():
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(_lookup(lambda request: httpx.Response(500)).get("adoption-1"))


def test_notification_sink_posts_json():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "n-1"})

    assert asyncio.run(_sink(handler).send(_notification())) is True
    assert captured["path"] == "/notifications"
    assert captured["body"]["user_id"] == "adopter-1"
    assert captured["body"]["kind"] == "followup_reminder"
    assert captured["body"]["reference_type"] == "followup"


def test_notification_sink_reports_failures_without_raising():
    def unavailable(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(_sink(unavailable).send(_notification())) is False
    assert asyncio.run(_sink(unreachable).send(_notification())) is False
