from typing import List

from fastapi import APIRouter, Depends, Query, status

from daansetu.core.security import get_current_user, require_roles
from daansetu.deps import get_repo
from daansetu.schemas import ContactIn, ContactMessage, Report, ReportIn, ReportUpdate, UserProfile
from daansetu.services import contact as contact_service
from daansetu.services import reports as report_service

router = APIRouter(tags=["reports"])


@router.post("/reports", response_model=Report, status_code=status.HTTP_201_CREATED)
async def file_report(body: ReportIn, user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await report_service.create_report(repo, user, body)


@router.get("/reports/mine", response_model=List[Report])
async def my_reports(user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await report_service.list_my_reports(repo, user)


@router.get("/reports/pending", response_model=List[Report])
async def pending(limit: int = Query(10, ge=1, le=100), _: UserProfile = Depends(require_roles("admin")),
                  repo=Depends(get_repo)):
    return await report_service.list_pending_reports(repo, limit)


@router.get("/reports/{report_id}", response_model=Report)
async def detail(report_id: str, user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await report_service.get_report(repo, report_id, user)


@router.patch("/reports/{report_id}", response_model=Report)
async def update(report_id: str, body: ReportUpdate, _: UserProfile = Depends(require_roles("admin")),
                 repo=Depends(get_repo)):
    return await report_service.update_report(repo, report_id, body)


# public contact form, no session needed
@router.post("/contact", response_model=ContactMessage, status_code=status.HTTP_201_CREATED, tags=["contact"])
async def contact(body: ContactIn, repo=Depends(get_repo)):
    return await contact_service.submit_contact_form(repo, body)
