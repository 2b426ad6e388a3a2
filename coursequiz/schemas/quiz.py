"""
Pydantic schemas for quiz-related requests and responses

Wire names are camelCase (`correctAnswer`, `totalQuestions`, ...); the
snake_case field names are accepted on input as well.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class CamelModel(BaseModel):
    """Base schema serialising field names as camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class QuizQuestion(CamelModel):
    """Single multiple-choice question"""
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=1)
    correct_answer: str = Field(..., min_length=1)
    explanation: Optional[str] = None


class Quiz(CamelModel):
    """Ordered list of questions"""
    questions: List[QuizQuestion]


class ChapterContent(CamelModel):
    """Chapter text the quiz is generated from"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    def as_text(self) -> str:
        if self.description:
            return f"{self.title}\n\n{self.description}"
        return self.title


class QuizGenerateRequest(CamelModel):
    """Request schema for quiz generation"""
    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    content: ChapterContent


class QuizResponse(CamelModel):
    """Response containing a generated quiz"""
    questions: List[QuizQuestion]
    total_questions: int
    difficulty: str
    attempts_remaining: int
    fallback: bool = False


class AttemptCountRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)


class AttemptCountResponse(CamelModel):
    attempts: int


class SubmittedAnswer(CamelModel):
    """One answered question as sent by the client"""
    question: str
    user_answer: str
    correct_answer: str


class GradedAnswer(CamelModel):
    """One answered question after grading"""
    question: str
    user_answer: str
    correct_answer: str
    is_correct: bool

    class Config:
        from_attributes = True


class QuizResultSubmission(CamelModel):
    """Schema for submitting a finished quiz"""
    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    answers: List[SubmittedAnswer] = Field(..., min_length=1)


class QuizHistoryEntry(CamelModel):
    """A stored attempt as shown in quiz history"""
    id: UUID
    score: int
    total_questions: int
    answers: List[GradedAnswer]
    created_at: datetime

    class Config:
        from_attributes = True


class QuizResultResponse(QuizHistoryEntry):
    """Response after an attempt is recorded"""
    user_id: str
    course_id: str
    chapter_id: str
    feedback: Optional[str] = None
    xp: Optional[int] = None


class QuizHistoryResponse(CamelModel):
    """Attempt count plus history for one user and chapter"""
    attempt_count: int
    history: List[QuizHistoryEntry]


class UserXPResponse(CamelModel):
    user_id: str
    xp: int
    difficulty: str
