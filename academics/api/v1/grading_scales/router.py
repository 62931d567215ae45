from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from academics.auth.rbac import check_permission
from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import GradingScaleCreate, GradingScaleResponse, GradingScaleUpdate
from . import service

router = APIRouter(prefix="/api/v1/grading-scales", tags=["grading-scales"])


@router.get(
    "",
    response_model=List[GradingScaleResponse],
    dependencies=[Depends(check_permission("grading_scales", "read"))],
)
async def list_grading_scales(
    db: AsyncSession = Depends(get_db),
) -> List[GradingScaleResponse]:
    """List the grading bands, highest first."""
    return await service.list_grading_scales(db)


@router.post(
    "",
    response_model=GradingScaleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("grading_scales", "create"))],
)
async def create_grading_scale(
    payload: GradingScaleCreate,
    db: AsyncSession = Depends(get_db),
) -> GradingScaleResponse:
    """Create a grading band. Rejected when the range overlaps an existing band."""
    try:
        return await service.create_grading_scale(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.put(
    "/{scale_id}",
    response_model=GradingScaleResponse,
    dependencies=[Depends(check_permission("grading_scales", "update"))],
)
async def update_grading_scale(
    scale_id: UUID,
    payload: GradingScaleUpdate,
    db: AsyncSession = Depends(get_db),
) -> GradingScaleResponse:
    try:
        return await service.update_grading_scale(db, scale_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.delete(
    "/{scale_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("grading_scales", "delete"))],
)
async def delete_grading_scale(
    scale_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await service.delete_grading_scale(db, scale_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
