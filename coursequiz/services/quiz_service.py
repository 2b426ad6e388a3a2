"""
Quiz generation flow: attempt gate, difficulty tier, model request, parsing
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from coursequiz.config import settings
from coursequiz.schemas.quiz import Quiz, QuizQuestion
from coursequiz.services.attempt_service import attempt_service
from coursequiz.services.gemini_service import gemini_service
from coursequiz.services.quiz_parser import parse_quiz
from coursequiz.services.xp_service import xp_service, difficulty_for_xp

logger = logging.getLogger(__name__)


def fallback_quiz() -> Quiz:
    """Fixed placeholder served when a completion cannot be used"""
    return Quiz(questions=[
        QuizQuestion(
            question="Could not generate quiz. Please try again.",
            options=["Try again", "Refresh page", "Use different content", "Contact support"],
            correct_answer="Try again",
        )
    ])


def enforce_quiz_length(quiz: Quiz, length: int) -> Quiz:
    """Truncate to `length` questions; shorter quizzes are kept as they are"""
    count = len(quiz.questions)
    if count > length:
        logger.warning(f"Expected {length} questions, got {count}; truncating")
        return Quiz(questions=quiz.questions[:length])
    if count < length:
        logger.warning(f"Expected {length} questions, got {count}")
    return quiz


@dataclass
class GeneratedQuiz:
    quiz: Quiz
    difficulty: str
    attempts_used: int
    fallback: bool = False


class QuizService:
    """Ties the attempt gate, xp store, requester and parser together"""

    def __init__(self, requester=None, attempts=None, xp=None):
        self.requester = requester or gemini_service
        self.attempts = attempts or attempt_service
        self.xp = xp or xp_service

    def generate(self, db: Session, user_id: str, chapter_id: str, content: str) -> GeneratedQuiz:
        """
        Generate a quiz for one user and chapter

        Raises:
            AttemptLimitReached: before any call to the model
            RequestFailed, EmptyResponse: the model call failed
            ParseFailed, StructureInvalid: the completion was unusable and
                the placeholder fallback is disabled
        """
        attempts_used = self.attempts.ensure_can_generate(db, user_id, chapter_id)
        difficulty = difficulty_for_xp(self.xp.get_xp(user_id))

        logger.info(f"Generating {difficulty} quiz for user={user_id}, chapter={chapter_id}")
        completion = self.requester.request_quiz(content, difficulty)

        result = parse_quiz(
            completion,
            require_explanation=settings.REQUIRE_EXPLANATION,
            repair_membership=settings.REPAIR_ANSWER_MEMBERSHIP
        )
        if not result.ok:
            if settings.QUIZ_FALLBACK_ON_FAILURE:
                logger.warning(f"Serving placeholder quiz after {result.error.code}")
                return GeneratedQuiz(fallback_quiz(), difficulty, attempts_used, fallback=True)
            raise result.error

        quiz = enforce_quiz_length(result.quiz, settings.QUIZ_LENGTH)
        return GeneratedQuiz(quiz, difficulty, attempts_used)


# Global instance
quiz_service = QuizService()
