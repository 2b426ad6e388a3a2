"""
Quiz grading service
Multiple choice answers are matched against the correct option text
"""
import logging
from typing import List, Tuple

from coursequiz.schemas.quiz import SubmittedAnswer, GradedAnswer

logger = logging.getLogger(__name__)


class GradingService:
    """Service for grading quiz submissions"""

    def grade_answers(self, answers: List[SubmittedAnswer]) -> Tuple[List[GradedAnswer], int]:
        """
        Grade a complete quiz submission

        Args:
            answers: Submitted answers in question order

        Returns:
            Tuple of (graded answers, number correct)
        """
        graded = [
            GradedAnswer(
                question=answer.question,
                user_answer=answer.user_answer,
                correct_answer=answer.correct_answer,
                is_correct=self._is_correct(answer.user_answer, answer.correct_answer)
            )
            for answer in answers
        ]
        correct = sum(1 for answer in graded if answer.is_correct)

        logger.info(f"Quiz graded: {correct}/{len(graded)}")
        return graded, correct

    def _is_correct(self, user_answer: str, correct_answer: str) -> bool:
        """Exact match ignoring case and surrounding whitespace"""
        if not user_answer or not user_answer.strip():
            return False
        return user_answer.strip().lower() == correct_answer.strip().lower()

    def generate_feedback(self, correct: int, total: int) -> str:
        """Overall feedback message"""
        if total and correct == total:
            return "Perfect score! Excellent work!"
        return "Keep practicing to improve your understanding!"


# Global instance
grading_service = GradingService()
