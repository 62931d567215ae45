from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academics.auth.rbac import check_permission
from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import ClassReportsGenerate, ClassReportsResult, ReportCardGenerate, ReportCardResponse, ReportRemarksUpdate
from . import batch, service

router = APIRouter(prefix="/api/v1/report-cards", tags=["report-cards"])


@router.post(
    "/generate",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "create"))],
)
async def generate_student_report(
    payload: ReportCardGenerate,
    db: AsyncSession = Depends(get_db),
) -> ReportCardResponse:
    """Generate (or regenerate) one student's report card for a term. Remarks are preserved."""
    try:
        return await service.generate_report_card(db, payload.student_id, payload.term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post(
    "/generate-bulk",
    response_model=ClassReportsResult,
    dependencies=[Depends(check_permission("report_cards", "create"))],
)
async def generate_class_reports(
    payload: ClassReportsGenerate,
    db: AsyncSession = Depends(get_db),
) -> ClassReportsResult:
    """Generate report cards for a whole class. Check failures: a 200 does not mean every student succeeded."""
    try:
        return await batch.generate_class_reports(db, payload.class_id, payload.term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get(
    "/class",
    response_model=List[ReportCardResponse],
    dependencies=[Depends(check_permission("report_cards", "read"))],
)
async def get_class_reports(
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> List[ReportCardResponse]:
    try:
        return await service.get_class_reports(db, class_id, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get(
    "/student",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "read"))],
)
async def get_student_report(
    student_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> ReportCardResponse:
    try:
        return await service.get_student_report(db, student_id, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.put(
    "/remarks",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "update"))],
)
async def update_report_remarks(
    payload: ReportRemarksUpdate,
    db: AsyncSession = Depends(get_db),
) -> ReportCardResponse:
    """Set class teacher and/or principal remarks on a generated report card."""
    try:
        return await service.update_report_remarks(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
