from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from academics.auth.dependencies import get_current_user
from academics.auth.rbac import check_permission
from academics.auth.schemas import CurrentUser
from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import PromotionCandidateResponse, PromotionProcessRequest, PromotionProcessResult
from . import processor, service

router = APIRouter(prefix="/api/v1/promotions", tags=["promotions"])

POLICY_VERSION_HEADER = "X-Promotion-Policy-Version"


@router.get(
    "/candidates",
    response_model=List[PromotionCandidateResponse],
    dependencies=[Depends(check_permission("promotions", "read"))],
)
async def get_promotion_candidates(
    response: Response,
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> List[PromotionCandidateResponse]:
    """Recommended PROMOTE/RETAIN per student. Send the policy version header back when processing."""
    try:
        candidates = await service.evaluate_candidates(db, class_id, term_id)
        response.headers[POLICY_VERSION_HEADER] = await service.current_policy_version(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return candidates


@router.post(
    "/process",
    response_model=PromotionProcessResult,
    dependencies=[Depends(check_permission("promotions", "create"))],
)
async def process_promotions(
    payload: PromotionProcessRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> PromotionProcessResult:
    """Commit reviewed decisions. Check skipped: a 200 does not mean every student moved."""
    try:
        return await processor.process_promotions(
            db,
            payload.decisions,
            payload.current_term_id,
            processed_by=current_user.id,
            policy_version=payload.policy_version,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
