from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import NotFoundError, PersistenceError, ValidationError
from academics.core.models import GradingScale

from .schemas import GradingScaleCreate, GradingScaleResponse, GradingScaleUpdate


def _to_response(scale: GradingScale) -> GradingScaleResponse:
    return GradingScaleResponse(
        id=scale.id,
        grade=scale.grade,
        min_score=scale.min_score,
        max_score=scale.max_score,
        gpa_point=scale.gpa_point,
        remark=scale.remark,
        created_at=scale.created_at,
        updated_at=scale.updated_at,
    )


def _validate_range(min_score: Decimal, max_score: Decimal) -> None:
    if min_score > max_score:
        raise ValidationError("min_score must not exceed max_score", field="max_score")


async def _ensure_no_overlap(
    db: AsyncSession,
    min_score: Decimal,
    max_score: Decimal,
    exclude_id: Optional[UUID] = None,
) -> None:
    """Two closed ranges overlap when each starts before the other ends."""
    stmt = select(GradingScale).where(
        GradingScale.min_score <= max_score,
        GradingScale.max_score >= min_score,
    )
    if exclude_id is not None:
        stmt = stmt.where(GradingScale.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    clash = result.scalar_one_or_none()
    if clash:
        raise ValidationError(
            f"Score range overlaps with existing grade '{clash.grade}' ({clash.min_score}-{clash.max_score})",
            field="min_score",
        )


async def _get_scale(db: AsyncSession, scale_id: UUID) -> GradingScale:
    result = await db.execute(select(GradingScale).where(GradingScale.id == scale_id))
    scale = result.scalar_one_or_none()
    if not scale:
        raise NotFoundError("Grading scale not found")
    return scale


async def _commit(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise PersistenceError(message)


async def list_grading_scales(db: AsyncSession) -> List[GradingScaleResponse]:
    """All bands, highest band first."""
    result = await db.execute(
        select(GradingScale).order_by(GradingScale.min_score.desc(), GradingScale.max_score.desc())
    )
    return [_to_response(s) for s in result.scalars().all()]


async def create_grading_scale(db: AsyncSession, payload: GradingScaleCreate) -> GradingScaleResponse:
    _validate_range(payload.min_score, payload.max_score)
    await _ensure_no_overlap(db, payload.min_score, payload.max_score)
    scale = GradingScale(
        grade=payload.grade.strip(),
        min_score=payload.min_score,
        max_score=payload.max_score,
        gpa_point=payload.gpa_point,
        remark=payload.remark,
    )
    db.add(scale)
    await _commit(db, "Failed to create grading scale")
    await db.refresh(scale)
    return _to_response(scale)


async def update_grading_scale(
    db: AsyncSession,
    scale_id: UUID,
    payload: GradingScaleUpdate,
) -> GradingScaleResponse:
    """Partial update. The resulting range is re-validated against every other band."""
    scale = await _get_scale(db, scale_id)
    min_score = payload.min_score if payload.min_score is not None else scale.min_score
    max_score = payload.max_score if payload.max_score is not None else scale.max_score
    if payload.min_score is not None or payload.max_score is not None:
        _validate_range(min_score, max_score)
        await _ensure_no_overlap(db, min_score, max_score, exclude_id=scale_id)
    if payload.grade is not None:
        scale.grade = payload.grade.strip()
    scale.min_score = min_score
    scale.max_score = max_score
    if payload.gpa_point is not None:
        scale.gpa_point = payload.gpa_point
    if payload.remark is not None:
        scale.remark = payload.remark
    await _commit(db, "Failed to update grading scale")
    await db.refresh(scale)
    return _to_response(scale)


async def delete_grading_scale(db: AsyncSession, scale_id: UUID) -> None:
    scale = await _get_scale(db, scale_id)
    await db.delete(scale)
    await _commit(db, "Failed to delete grading scale")
