import asyncio
import itertools
import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import PASSWORD, FakeGoogle
from daansetu.main import create_app
from daansetu.repos.inmemory import InMemoryRepo
from daansetu.services import donations as donation_service

_seq = itertools.count(1)


@pytest.fixture
def tc(settings):
    app = create_app(settings=settings, repo=InMemoryRepo(), google_verifier=FakeGoogle())
    with TestClient(app) as client:
        yield client


def _signup(tc, role: str) -> str:
    n = next(_seq)
    r = tc.post("/auth/signup", json={
        "email": f"live-{role}{n}@daansetu.org", "password": PASSWORD,
        "display_name": f"{role.title()} {n}", "role": role,
    })
    assert r.status_code == 201, r.text
    return r.json()["access_token"]


def _refused(tc, path: str) -> WebSocketDisconnect:
    with pytest.raises(WebSocketDisconnect) as ex:
        with tc.websocket_connect(path):
            pass
    return ex.value


def test_bad_token_is_refused(tc):
    assert _refused(tc, "/ws/notifications?token=garbage").code == 1008


def test_signed_out_token_is_refused(tc):
    token = _signup(tc, "donor")
    assert tc.post("/auth/logout", headers={"Authorization": f"Bearer {token}"}).status_code == 204
    assert _refused(tc, f"/ws/notifications?token={token}").code == 1008


def test_wrong_role_is_refused(tc):
    token = _signup(tc, "ngo")
    assert _refused(tc, f"/ws/donations/mine?token={token}").code == 1008


def test_snapshot_then_push_after_write(tc, donation_body):
    token = _signup(tc, "donor")
    with tc.websocket_connect(f"/ws/donations/mine?token={token}") as ws:
        assert ws.receive_json() == {"data": []}
        r = tc.post("/donations", headers={"Authorization": f"Bearer {token}"}, json=donation_body)
        assert r.status_code == 201
        pushed = ws.receive_json()
        assert [d["id"] for d in pushed["data"]] == [r.json()["id"]]


def test_notification_stream_sees_broadcasts(tc, donation_body):
    ngo = _signup(tc, "ngo")
    donor = _signup(tc, "donor")
    with tc.websocket_connect(f"/ws/notifications?token={ngo}") as ws:
        assert ws.receive_json() == {"data": []}
        tc.post("/donations", headers={"Authorization": f"Bearer {donor}"}, json=donation_body)
        pushed = ws.receive_json()["data"]
        assert [n["type"] for n in pushed] == ["donationCreated"]


def test_slow_first_snapshot_sends_error_and_closes(tc, monkeypatch):
    token = _signup(tc, "donor")

    async def stalled(repo, donor_id):
        await asyncio.sleep(5)
        return []

    monkeypatch.setattr(donation_service, "list_donor_donations", stalled)
    with tc.websocket_connect(f"/ws/donations/mine?token={token}") as ws:
        assert ws.receive_json() == {"error": "Loading took too long. Please refresh the page."}
        with pytest.raises(WebSocketDisconnect) as ex:
            ws.receive_json()
        assert ex.value.code == 1011


def test_closing_socket_drops_subscription(tc):
    token = _signup(tc, "donor")
    feed = tc.app.state.feed
    with tc.websocket_connect(f"/ws/notifications?token={token}") as ws:
        ws.receive_json()
        assert feed.subscriber_count == 1
    # the server notices the close on its own loop
    for _ in range(100):
        if feed.subscriber_count == 0:
            break
        time.sleep(0.02)
    assert feed.subscriber_count == 0
