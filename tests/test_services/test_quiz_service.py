import json
import pytest
from unittest.mock import MagicMock

from coursequiz.config import settings
from coursequiz.errors import AttemptLimitReached, ParseFailed, RequestFailed
from coursequiz.schemas.quiz import GradedAnswer, Quiz, QuizQuestion
from coursequiz.services.attempt_service import AttemptService
from coursequiz.services.quiz_service import QuizService, enforce_quiz_length
from coursequiz.services.xp_service import XPService


def quiz_json(count):
    return json.dumps({"questions": [
        {
            "question": f"Question {index + 1}?",
            "options": ["A", "B", "C", "D"],
            "correctAnswer": "A",
            "explanation": "Because A.",
        }
        for index in range(count)
    ]})


def make_quiz(count):
    return Quiz(questions=[
        QuizQuestion(question=f"Q{index}?", options=["A", "B"], correct_answer="A")
        for index in range(count)
    ])


@pytest.fixture
def requester():
    return MagicMock()


@pytest.fixture
def attempts():
    return AttemptService(max_attempts=3)


@pytest.fixture
def service(requester, attempts, fake_redis):
    return QuizService(requester=requester, attempts=attempts, xp=XPService(redis_client=fake_redis))


class TestQuizService:
    """Tests for the generation flow with a mocked requester."""

    def test_generate_returns_parsed_quiz(self, service, requester, db_session):
        requester.request_quiz.return_value = quiz_json(5)

        generated = service.generate(db_session, "user-1", "chapter-1", "Cells")

        assert len(generated.quiz.questions) == 5
        assert generated.difficulty == "beginner"
        assert generated.attempts_used == 0
        assert generated.fallback is False
        requester.request_quiz.assert_called_once_with("Cells", "beginner")

    def test_difficulty_follows_xp(self, service, requester, fake_redis, db_session):
        fake_redis.hset("user:user-1", "xp", 25)
        requester.request_quiz.return_value = quiz_json(5)

        generated = service.generate(db_session, "user-1", "chapter-1", "Cells")

        assert generated.difficulty == "intermediate"
        requester.request_quiz.assert_called_once_with("Cells", "intermediate")

    def test_limit_reached_refuses_before_request(self, service, requester, attempts, db_session):
        answers = [GradedAnswer(question="Q?", user_answer="A", correct_answer="A", is_correct=True)]
        for _ in range(3):
            attempts.record_attempt(db_session, "user-1", "course-1", "chapter-1", answers)

        with pytest.raises(AttemptLimitReached):
            service.generate(db_session, "user-1", "chapter-1", "Cells")

        requester.request_quiz.assert_not_called()

    def test_request_failure_propagates(self, service, requester, db_session):
        requester.request_quiz.side_effect = RequestFailed("timeout")

        with pytest.raises(RequestFailed):
            service.generate(db_session, "user-1", "chapter-1", "Cells")

    def test_parse_failure_raises(self, service, requester, db_session):
        requester.request_quiz.return_value = "Sorry, I can't do that."

        with pytest.raises(ParseFailed):
            service.generate(db_session, "user-1", "chapter-1", "Cells")

    def test_parse_failure_serves_placeholder_when_enabled(self, service, requester, db_session, monkeypatch):
        monkeypatch.setattr(settings, "QUIZ_FALLBACK_ON_FAILURE", True)
        requester.request_quiz.return_value = "Sorry, I can't do that."

        generated = service.generate(db_session, "user-1", "chapter-1", "Cells")

        assert generated.fallback is True
        assert generated.quiz.questions[0].question == "Could not generate quiz. Please try again."
        assert generated.quiz.questions[0].correct_answer == "Try again"

    def test_extra_questions_are_truncated(self, service, requester, db_session):
        requester.request_quiz.return_value = quiz_json(7)

        generated = service.generate(db_session, "user-1", "chapter-1", "Cells")

        assert [q.question for q in generated.quiz.questions] == [f"Question {i}?" for i in range(1, 6)]


def test_enforce_quiz_length_keeps_short_quiz():
    quiz = make_quiz(3)
    assert enforce_quiz_length(quiz, 5) is quiz


def test_enforce_quiz_length_truncates():
    assert len(enforce_quiz_length(make_quiz(8), 5).questions) == 5
