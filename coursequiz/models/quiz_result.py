"""
QuizResult model - stores one graded quiz attempt and its answers
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from coursequiz.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class QuizResult(Base):
    """
    Quiz results table - one immutable row per submitted attempt
    """
    __tablename__ = "quiz_results"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)
    course_id = Column(String(255), nullable=False, index=True)
    chapter_id = Column(String(255), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    answers = relationship(
        "QuizAnswer",
        back_populates="result",
        order_by="QuizAnswer.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<QuizResult(user_id={self.user_id}, chapter_id={self.chapter_id}, score={self.score}/{self.total_questions})>"


class QuizAnswer(Base):
    """
    Quiz answers table - per-question outcome of an attempt
    """
    __tablename__ = "quiz_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    result_id = Column(Uuid(as_uuid=True), ForeignKey("quiz_results.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    question = Column(Text, nullable=False)
    user_answer = Column(Text, nullable=False)
    correct_answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    result = relationship("QuizResult", back_populates="answers")

    def __repr__(self):
        return f"<QuizAnswer(result_id={self.result_id}, position={self.position}, correct={self.is_correct})>"
