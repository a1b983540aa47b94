import asyncio

import pytest
from httpx import AsyncClient

from daansetu.core.errors import InvalidTransitionError
from daansetu.services import donations as donation_service
from daansetu.services.users import get_user_profile

pytestmark = pytest.mark.anyio


async def _create(client: AsyncClient, headers, body) -> dict:
    r = await client.post("/donations", headers=headers, json=body)
    assert r.status_code == 201, r.text
    return r.json()


async def test_create_donation_starts_available(client, make_user, donation_body):
    donor_h, donor = await make_user("donor", name="Asha")
    d = await _create(client, donor_h, donation_body)
    assert d["status"] == "available"
    assert d["donor_id"] == donor["id"]
    assert d["donor_name"] == "Asha"
    assert d["created_at"]

    r = await client.get(f"/donations/{d['id']}", headers=donor_h)
    assert r.status_code == 200
    assert r.json()["title"] == "Rice bags"


async def test_create_requires_donor_role(client, make_user, donation_body):
    ngo_h, _ = await make_user("ngo", verified=True)
    r = await client.post("/donations", headers=ngo_h, json=donation_body)
    assert r.status_code == 403


async def test_create_rejects_missing_fields(client, make_user):
    donor_h, _ = await make_user("donor")
    r = await client.post("/donations", headers=donor_h, json={"title": "x", "category": "food"})
    assert r.status_code == 422


async def test_anonymous_access_is_refused(client):
    r = await client.get("/donations")
    assert r.status_code == 401


async def test_claim_then_deliver(client, make_user, donation_body):
    donor_h, donor = await make_user("donor")
    ngo_h, ngo = await make_user("ngo", name="Seva Trust", verified=True)
    d = await _create(client, donor_h, donation_body)

    r = await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)
    assert r.status_code == 200, r.text
    claimed = r.json()
    assert claimed["status"] == "claimed"
    assert claimed["claimed_by"] == ngo["id"]
    assert claimed["claimed_by_name"] == "Seva Trust"
    assert claimed["claimed_at"]

    r = await client.get("/donations/claimed", headers=ngo_h)
    assert [x["id"] for x in r.json()] == [d["id"]]

    r = await client.post(f"/donations/{d['id']}/deliver", headers=ngo_h)
    assert r.status_code == 200
    assert r.json()["status"] == "delivered"
    assert r.json()["delivered_at"]

    # donor was told about the claim
    r = await client.get("/notifications", headers=donor_h)
    assert any(n["type"] == "donationClaimed" for n in r.json())


async def test_unverified_ngo_cannot_claim(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_h, _ = await make_user("ngo")
    d = await _create(client, donor_h, donation_body)
    r = await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)
    assert r.status_code == 403


async def test_claim_non_available_fails_without_mutation(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_a, _ = await make_user("ngo", verified=True)
    ngo_b, _ = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)

    assert (await client.post(f"/donations/{d['id']}/claim", headers=ngo_a)).status_code == 200
    before = (await client.get(f"/donations/{d['id']}", headers=donor_h)).json()

    r = await client.post(f"/donations/{d['id']}/claim", headers=ngo_b)
    assert r.status_code == 409
    assert r.json()["detail"] == "Donation is not available for claiming"

    after = (await client.get(f"/donations/{d['id']}", headers=donor_h)).json()
    assert after == before


async def test_concurrent_claims_exactly_one_wins(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_a, a = await make_user("ngo", verified=True)
    ngo_b, b = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)

    results = await asyncio.gather(
        client.post(f"/donations/{d['id']}/claim", headers=ngo_a),
        client.post(f"/donations/{d['id']}/claim", headers=ngo_b),
    )
    codes = sorted(r.status_code for r in results)
    assert codes == [200, 409]
    loser = next(r for r in results if r.status_code == 409)
    assert "not available" in loser.json()["detail"]

    final = (await client.get(f"/donations/{d['id']}", headers=donor_h)).json()
    assert final["claimed_by"] in (a["id"], b["id"])


async def test_claim_unknown_donation_is_404(client, make_user):
    ngo_h, _ = await make_user("ngo", verified=True)
    r = await client.post("/donations/nope/claim", headers=ngo_h)
    assert r.status_code == 404


async def test_cancel_from_available_and_claimed(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_h, _ = await make_user("ngo", verified=True)
    first = await _create(client, donor_h, donation_body)
    second = await _create(client, donor_h, donation_body)

    r = await client.post(f"/donations/{first['id']}/cancel", headers=donor_h)
    assert r.json()["status"] == "cancelled"

    await client.post(f"/donations/{second['id']}/claim", headers=ngo_h)
    r = await client.post(f"/donations/{second['id']}/cancel", headers=donor_h)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


async def test_terminal_states_have_no_exit(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_h, _ = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)
    await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)
    await client.post(f"/donations/{d['id']}/deliver", headers=ngo_h)

    assert (await client.post(f"/donations/{d['id']}/cancel", headers=donor_h)).status_code == 409
    assert (await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)).status_code == 409
    assert (await client.post(f"/donations/{d['id']}/deliver", headers=ngo_h)).status_code == 409

    c = await _create(client, donor_h, donation_body)
    await client.post(f"/donations/{c['id']}/cancel", headers=donor_h)
    assert (await client.post(f"/donations/{c['id']}/claim", headers=ngo_h)).status_code == 409
    assert (await client.post(f"/donations/{c['id']}/deliver", headers=donor_h)).status_code == 409


async def test_deliver_requires_claim(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    d = await _create(client, donor_h, donation_body)
    r = await client.post(f"/donations/{d['id']}/deliver", headers=donor_h)
    assert r.status_code == 409


async def test_only_owner_can_cancel(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    other_h, _ = await make_user("donor")
    d = await _create(client, donor_h, donation_body)
    r = await client.post(f"/donations/{d['id']}/cancel", headers=other_h)
    assert r.status_code == 403


async def test_edit_only_while_available(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_h, _ = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)

    r = await client.patch(f"/donations/{d['id']}", headers=donor_h, json={"quantity": 8})
    assert r.status_code == 200
    assert r.json()["quantity"] == 8
    assert r.json()["title"] == "Rice bags"

    await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)
    r = await client.patch(f"/donations/{d['id']}", headers=donor_h, json={"quantity": 9})
    assert r.status_code == 409


async def test_delete_available_donation(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    d = await _create(client, donor_h, donation_body)
    r = await client.delete(f"/donations/{d['id']}", headers=donor_h)
    assert r.status_code == 204
    assert (await client.get(f"/donations/{d['id']}", headers=donor_h)).status_code == 404


async def test_list_filters_and_mine(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    other_h, _ = await make_user("donor")
    mine = await _create(client, donor_h, donation_body)
    theirs = await _create(client, other_h, {**donation_body, "title": "Blankets", "category": "clothes"})
    await client.post(f"/donations/{theirs['id']}/cancel", headers=other_h)

    r = await client.get("/donations/mine", headers=donor_h)
    assert [x["id"] for x in r.json()] == [mine["id"]]

    r = await client.get("/donations", headers=donor_h, params={"status": "available"})
    assert [x["id"] for x in r.json()] == [mine["id"]]

    r = await client.get("/donations", headers=donor_h)
    assert {x["id"] for x in r.json()} == {mine["id"], theirs["id"]}


async def test_nearby_donations(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    near = await _create(client, donor_h, donation_body)
    far = await _create(client, donor_h, {**donation_body, "address": "Mysuru",
                                          "location": {"lat": 12.2958, "lng": 76.6394}})
    unlocated = await _create(client, donor_h, {**donation_body, "location": None})

    r = await client.get("/donations/nearby", headers=donor_h,
                         params={"lat": 12.9784, "lng": 77.6408, "radius_km": 10})
    assert r.status_code == 200
    got = r.json()
    ids = [x["id"] for x in got]
    assert near["id"] in ids and unlocated["id"] in ids
    assert far["id"] not in ids
    located = [x for x in got if x["distance"] is not None]
    assert all(x["distance"] <= 10 for x in located)
    assert next(x for x in got if x["id"] == unlocated["id"])["distance"] is None


async def test_null_for_required_field_is_rejected(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    d = await _create(client, donor_h, donation_body)

    for body in ({"title": None}, {"quantity": None}, {"images": None}):
        r = await client.patch(f"/donations/{d['id']}", headers=donor_h, json=body)
        assert r.status_code == 422, body

    # clearing the location is allowed
    r = await client.patch(f"/donations/{d['id']}", headers=donor_h, json={"location": None})
    assert r.status_code == 200
    assert r.json()["location"] is None

    assert (await client.get("/donations", headers=donor_h)).status_code == 200
    assert (await client.get(f"/donations/{d['id']}", headers=donor_h)).json()["title"] == "Rice bags"


async def test_delete_claimed_donation_is_refused(client, make_user, donation_body):
    donor_h, _ = await make_user("donor")
    ngo_h, ngo = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)
    await client.post(f"/donations/{d['id']}/claim", headers=ngo_h)

    r = await client.delete(f"/donations/{d['id']}", headers=donor_h)
    assert r.status_code == 409
    kept = (await client.get(f"/donations/{d['id']}", headers=donor_h)).json()
    assert kept["status"] == "claimed"
    assert kept["claimed_by"] == ngo["id"]


async def test_delete_loses_to_a_claim_made_after_the_read(make_user, repo, monkeypatch, client, donation_body):
    donor_h, donor = await make_user("donor")
    _, ngo = await make_user("ngo", verified=True)
    d = await _create(client, donor_h, donation_body)
    donor_profile = await get_user_profile(repo, donor["id"])
    ngo_profile = await get_user_profile(repo, ngo["id"])

    real_get = donation_service.get_donation

    async def claimed_meanwhile(repo_, donation_id):
        donation = await real_get(repo_, donation_id)
        await donation_service.claim_donation(repo_, donation_id, ngo_profile)
        return donation

    monkeypatch.setattr(donation_service, "get_donation", claimed_meanwhile)
    with pytest.raises(InvalidTransitionError):
        await donation_service.delete_donation(repo, d["id"], donor_profile)
    assert (await repo.get("donations", d["id"]))["status"] == "claimed"
