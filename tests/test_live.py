import asyncio
from contextlib import aclosing

import pytest

from daansetu.core.errors import SubscriptionTimeoutError
from daansetu.core.events import ChangeFeed
from daansetu.repos.inmemory import InMemoryRepo
from daansetu.schemas import DonationIn, UserProfile
from daansetu.services import live
from daansetu.services.donations import create_donation
from daansetu.services.users import create_user_profile

pytestmark = pytest.mark.anyio


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def store(feed):
    return InMemoryRepo(feed=feed)


def _rice():
    return DonationIn(title="Rice", category="food", quantity=2, address="MG Road")


async def test_watch_emits_initial_and_on_change(store, feed):
    donor = await create_user_profile(store, "d1", "d1@daansetu.org", "Asha", "donor")
    async with aclosing(live.watch_user_donations(store, feed, donor)) as stream:
        first = await live.first_snapshot(stream, timeout=1)
        assert first == []

        await create_donation(store, donor, _rice())
        second = await asyncio.wait_for(stream.__anext__(), 1)
        assert [d.title for d in second] == ["Rice"]


async def test_unrelated_collections_do_not_wake_watchers(store, feed):
    donor = await create_user_profile(store, "d1", "d1@daansetu.org", "Asha", "donor")
    async with aclosing(live.watch_user_donations(store, feed, donor)) as stream:
        await live.first_snapshot(stream, timeout=1)
        await store.insert("reports", {"title": "x"})
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(stream.__anext__(), 0.1)


async def test_notification_stream_sees_broadcasts(store, feed):
    ngo = await create_user_profile(store, "n1", "n1@daansetu.org", "Seva", "ngo")
    donor = await create_user_profile(store, "d1", "d1@daansetu.org", "Asha", "donor")
    async with aclosing(live.watch_notifications(store, feed, ngo)) as stream:
        assert await live.first_snapshot(stream, timeout=1) == []
        # listing a donation broadcasts to every NGO
        await create_donation(store, donor, _rice())
        snapshot = await asyncio.wait_for(stream.__anext__(), 1)
        assert [n.type for n in snapshot] == ["donationCreated"]


async def test_first_snapshot_times_out():
    async def never():
        await asyncio.sleep(10)
        yield []

    with pytest.raises(SubscriptionTimeoutError) as ex:
        await live.first_snapshot(never(), timeout=0.05)
    assert ex.value.status_code == 504


async def test_closing_stream_unsubscribes(store, feed):
    donor = await create_user_profile(store, "d1", "d1@daansetu.org", "Asha", "donor")
    async with aclosing(live.watch_user_donations(store, feed, donor)) as stream:
        await live.first_snapshot(stream, timeout=1)
        assert feed.subscriber_count == 1
    assert feed.subscriber_count == 0


async def test_app_wires_store_to_feed(app, client, make_user, donation_body):
    donor_h, donor = await make_user("donor")
    user = UserProfile.model_validate(await app.state.repo.get("users", donor["id"]))
    async with aclosing(live.watch_user_donations(app.state.repo, app.state.feed, user)) as stream:
        await live.first_snapshot(stream, timeout=1)
        await client.post("/donations", headers=donor_h, json=donation_body)
        snapshot = await asyncio.wait_for(stream.__anext__(), 1)
        assert len(snapshot) == 1
