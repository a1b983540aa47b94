import logging
from typing import List

from daansetu.core.errors import PermissionDeniedError
from daansetu.schemas import Report, ReportIn, ReportUpdate, UserProfile
from daansetu.services.documents import check_update, load, parse, parse_many, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "reports"

OPEN_STATUSES = ["pending", "investigating"]
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


async def create_report(repo, user: UserProfile, data: ReportIn) -> Report:
    now = utcnow()
    doc = {
        **data.model_dump(),
        "reported_by": user.id,
        "reporter_role": user.role,
        "status": "pending",
        "created_at": now,
        "updated_at": now,
    }
    report = parse(Report, await repo.insert(COLLECTION, doc))
    logger.info("report %s filed by %s on %s %s", report.id, user.id, report.reference_type, report.reference_id)
    return report


async def get_report(repo, report_id: str, user: UserProfile) -> Report:
    report = await load(repo, COLLECTION, Report, report_id, "Report")
    if user.role != "admin" and report.reported_by != user.id:
        raise PermissionDeniedError("Not allowed to view this report")
    return report


async def update_report(repo, report_id: str, data: ReportUpdate) -> Report:
    report = await load(repo, COLLECTION, Report, report_id, "Report")
    fields = data.model_dump(exclude_unset=True)
    fields["updated_at"] = utcnow()
    check_update(Report, report, fields)
    return parse(Report, await repo.update(COLLECTION, report_id, fields))


async def list_pending_reports(repo, limit: int = 10) -> List[Report]:
    """Open reports, highest priority first, then oldest first."""
    docs = await repo.find(COLLECTION, {"status": {"$in": OPEN_STATUSES}}, sort=[("created_at", 1)])
    reports = parse_many(Report, docs)
    # stable sort keeps the oldest-first order within a priority
    reports.sort(key=lambda r: PRIORITY_RANK[r.priority])
    return reports[:limit]


async def list_my_reports(repo, user: UserProfile) -> List[Report]:
    return parse_many(Report, await repo.find(COLLECTION, {"reported_by": user.id}, sort=[("created_at", -1)]))
