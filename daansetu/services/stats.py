# daansetu/services/stats.py
from collections import Counter

from daansetu.core.states import DONATION_STATES
from daansetu.schemas import (
    AdminDashboard,
    Donation,
    DonorDashboard,
    NgoDashboard,
    TopDonor,
    UserProfile,
)
from daansetu.services.documents import parse_many
from daansetu.services.requests import ngo_request_stats


async def donor_overview(repo, user: UserProfile, recent: int = 5) -> DonorDashboard:
    docs = await repo.find("donations", {"donor_id": user.id}, sort=[("created_at", -1)])
    donations = parse_many(Donation, docs)
    counts = Counter(d.status for d in donations)
    return DonorDashboard(
        total_donations=len(donations),
        by_status={s: counts.get(s, 0) for s in DONATION_STATES},
        recent=donations[:recent],
    )


async def ngo_overview(repo, user: UserProfile) -> NgoDashboard:
    return NgoDashboard(
        claimed_count=await repo.count("donations", {"claimed_by": user.id, "status": "claimed"}),
        delivered_count=await repo.count("donations", {"claimed_by": user.id, "status": "delivered"}),
        requests=await ngo_request_stats(repo, user.id),
        verification_status=user.verification_status,
    )


async def top_donors(repo, limit: int = 5) -> list[TopDonor]:
    docs = await repo.find("donations")
    counts = Counter(d["donor_id"] for d in docs)
    names = {d["donor_id"]: d.get("donor_name", "") for d in docs}
    return [TopDonor(donor_id=k, name=names[k], count=v) for k, v in counts.most_common(limit)]


async def admin_overview(repo) -> AdminDashboard:
    """
    Platform-wide counters for the admin dashboard.
    Counts come straight from the store; top donors are aggregated here.
    """
    donations = await repo.find("donations")
    return AdminDashboard(
        users_by_role={r: await repo.count("users", {"role": r}) for r in ("donor", "ngo", "admin")},
        total_donations=len(donations),
        donations_by_status={s: sum(1 for d in donations if d.get("status") == s) for s in DONATION_STATES},
        donations_by_category=dict(Counter(d.get("category", "other") for d in donations)),
        total_requests=await repo.count("requests"),
        top_donors=await top_donors(repo),
        pending_verifications=await repo.count("verificationRequests", {"status": "pending"}),
        open_reports=await repo.count("reports", {"status": {"$in": ["pending", "investigating"]}}),
    )


async def compute_overview(repo, user: UserProfile):
    if user.role == "admin":
        return await admin_overview(repo)
    if user.role == "ngo":
        return await ngo_overview(repo, user)
    return await donor_overview(repo, user)
