from typing import Dict, Optional, Union

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def detail(self) -> Union[str, Dict[str, str]]:
        """HTTPException detail for this error."""
        return self.message


class ValidationError(ServiceError):
    """Rejected input (bad range, missing field, bad grading-scale configuration). Raised before any write."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.field = field

    @property
    def detail(self) -> Union[str, Dict[str, str]]:
        if self.field is None:
            return self.message
        return {"message": self.message, "field": self.field}


class InvalidScore(ValidationError):
    def __init__(self, score) -> None:
        super().__init__(f"Score {score} is outside the range 0-100", field="score")
        self.score = score


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class NoResultsForTerm(ServiceError):
    """Student has no subject results for the term yet; not gradeable."""

    def __init__(self, student_id, term_id) -> None:
        super().__init__(
            f"No subject results recorded for student {student_id} in term {term_id}",
            422,
        )
        self.student_id = student_id
        self.term_id = term_id


class NoMatchingScale(ServiceError):
    """No configured grading band contains the score."""

    def __init__(self, score) -> None:
        super().__init__(
            f"No grading scale covers score {score}; review the grading scale configuration",
            422,
        )
        self.score = score


class StalePolicyError(ServiceError):
    def __init__(self, expected: str, current: str) -> None:
        super().__init__(
            "Promotion policy changed since candidates were evaluated; re-evaluate candidates before processing",
            status.HTTP_409_CONFLICT,
        )
        self.expected = expected
        self.current = current


class PersistenceError(ServiceError):
    """Underlying storage failure."""

    def __init__(self, message: str = "Failed to persist changes") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
