"""
Quiz attempt bookkeeping: attempt gate, history snapshot, attempt recording
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from coursequiz.config import settings
from coursequiz.errors import AttemptLimitReached
from coursequiz.models import QuizResult, QuizAnswer
from coursequiz.schemas.quiz import GradedAnswer

logger = logging.getLogger(__name__)


@dataclass
class AttemptSnapshot:
    """Attempt count plus newest-first history for one user and chapter"""
    attempt_count: int
    history: List[QuizResult]


class AttemptService:
    """
    Service for quiz attempts

    The count check and the insert are separate round trips; two concurrent
    submissions can both pass the gate before either commits.
    """

    def __init__(self, max_attempts: Optional[int] = None):
        self._max_attempts = max_attempts

    @property
    def max_attempts(self) -> int:
        if self._max_attempts is not None:
            return self._max_attempts
        return settings.MAX_QUIZ_ATTEMPTS

    def count_attempts(self, db: Session, user_id: str, chapter_id: str) -> int:
        return db.query(func.count(QuizResult.id)).filter(
            QuizResult.user_id == user_id,
            QuizResult.chapter_id == chapter_id
        ).scalar() or 0

    def get_snapshot(self, db: Session, user_id: str, chapter_id: str) -> AttemptSnapshot:
        """Read-through fetch of attempt count and history"""
        history = db.query(QuizResult).options(
            selectinload(QuizResult.answers)
        ).filter(
            QuizResult.user_id == user_id,
            QuizResult.chapter_id == chapter_id
        ).order_by(QuizResult.created_at.desc()).all()

        return AttemptSnapshot(attempt_count=len(history), history=history)

    def attempts_remaining(self, attempts_used: int) -> int:
        return max(self.max_attempts - attempts_used, 0)

    def ensure_can_generate(self, db: Session, user_id: str, chapter_id: str) -> int:
        """
        Refuse generation once the attempt limit is reached

        Returns:
            Number of attempts already used

        Raises:
            AttemptLimitReached: count >= max attempts
        """
        attempts = self.count_attempts(db, user_id, chapter_id)
        if attempts >= self.max_attempts:
            logger.warning(
                f"Attempt limit reached: user={user_id}, chapter={chapter_id}, "
                f"attempts={attempts}/{self.max_attempts}"
            )
            raise AttemptLimitReached(f"{attempts} of {self.max_attempts} attempts used")
        return attempts

    def record_attempt(
        self,
        db: Session,
        user_id: str,
        course_id: str,
        chapter_id: str,
        graded_answers: List[GradedAnswer]
    ) -> QuizResult:
        """Persist one graded attempt with its answers"""
        result = QuizResult(
            user_id=user_id,
            course_id=course_id,
            chapter_id=chapter_id,
            score=sum(1 for answer in graded_answers if answer.is_correct),
            total_questions=len(graded_answers),
            answers=[
                QuizAnswer(
                    position=position,
                    question=answer.question,
                    user_answer=answer.user_answer,
                    correct_answer=answer.correct_answer,
                    is_correct=answer.is_correct
                )
                for position, answer in enumerate(graded_answers)
            ]
        )

        db.add(result)
        db.commit()
        db.refresh(result)

        logger.info(
            f"Quiz attempt saved: {result.id}, user={user_id}, chapter={chapter_id}, "
            f"score={result.score}/{result.total_questions}"
        )
        return result


# Global instance
attempt_service = AttemptService()
