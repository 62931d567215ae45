"""
Score → grade resolution against an immutable snapshot of the grading policy.

Batches load the policy once and pass it to every resolution so that all students
in one run are graded against the same bands, even if an administrator edits the
scale table mid-run.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import InvalidScore, NoMatchingScale, ValidationError
from academics.core.models import GradingScale
from academics.core.scoring import as_decimal

Score = Union[Decimal, int, float, str]

MIN_SCORE = Decimal("0")
MAX_SCORE = Decimal("100")


class ScaleBand(BaseModel):
    grade: str
    min_score: Decimal
    max_score: Decimal
    gpa_point: Decimal
    remark: Optional[str] = None

    class Config:
        frozen = True

    def contains(self, score: Decimal) -> bool:
        return self.min_score <= score <= self.max_score


class GradeResult(BaseModel):
    grade: str
    gpa_point: Decimal
    remark: Optional[str] = None

    class Config:
        frozen = True


def resolve(score: Score, scales: Sequence[ScaleBand]) -> GradeResult:
    """
    Map a 0-100 score to its grade. When bands overlap (misconfiguration), the band
    with the highest min_score wins; no matching band raises NoMatchingScale.
    """
    value = as_decimal(score)
    if not value.is_finite() or value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidScore(score)
    best: Optional[ScaleBand] = None
    for band in scales:
        if band.contains(value) and (best is None or band.min_score > best.min_score):
            best = band
    if best is None:
        raise NoMatchingScale(value)
    return GradeResult(grade=best.grade, gpa_point=best.gpa_point, remark=best.remark)


class GradingPolicy(BaseModel):
    """Snapshot of the configured bands, highest band first."""

    bands: Tuple[ScaleBand, ...] = ()

    class Config:
        frozen = True

    @classmethod
    def from_scales(cls, scales: Iterable[GradingScale]) -> "GradingPolicy":
        bands = [
            ScaleBand(
                grade=s.grade,
                min_score=as_decimal(s.min_score),
                max_score=as_decimal(s.max_score),
                gpa_point=as_decimal(s.gpa_point if s.gpa_point is not None else 0),
                remark=s.remark,
            )
            for s in scales
        ]
        bands.sort(key=lambda b: (b.min_score, b.max_score, b.grade), reverse=True)
        return cls(bands=tuple(bands))

    @property
    def is_empty(self) -> bool:
        return not self.bands

    def require_configured(self) -> None:
        if self.is_empty:
            raise ValidationError("No grading scales configured", field="grading_scales")

    def resolve(self, score: Score) -> GradeResult:
        return resolve(score, self.bands)

    def fingerprint(self) -> str:
        """Stable text form of the bands; feeds the promotion policy version."""
        return ";".join(
            f"{b.grade}:{b.min_score.normalize()}-{b.max_score.normalize()}:{b.gpa_point.normalize()}"
            for b in self.bands
        )


async def load_grading_policy(db: AsyncSession) -> GradingPolicy:
    """Read the grading scale table once and freeze it."""
    result = await db.execute(
        select(GradingScale).order_by(GradingScale.min_score.desc(), GradingScale.max_score.desc())
    )
    return GradingPolicy.from_scales(result.scalars().all())
