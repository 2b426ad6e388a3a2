"""
Quiz generation, attempt and history API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging
from coursequiz.database import get_db
from coursequiz.schemas.quiz import (
    QuizGenerateRequest,
    QuizResponse,
    AttemptCountRequest,
    AttemptCountResponse,
    QuizHistoryResponse,
    QuizHistoryEntry,
    QuizResultSubmission,
    QuizResultResponse,
    GradedAnswer,
)
from coursequiz.services.attempt_service import attempt_service
from coursequiz.services.grading_service import grading_service
from coursequiz.services.quiz_service import quiz_service
from coursequiz.services.xp_service import xp_service


router = APIRouter(prefix="/api/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.post("", response_model=QuizResponse)
async def generate_quiz(request: QuizGenerateRequest, db: Session = Depends(get_db)):
    """
    Generate a quiz for a chapter using Gemini AI

    - Refuses once the user has used every attempt for the chapter
    - Picks the difficulty tier from the user's xp
    - Parses and repairs the model completion into a validated quiz
    """
    generated = quiz_service.generate(
        db,
        user_id=request.user_id,
        chapter_id=request.chapter_id,
        content=request.content.as_text(),
    )

    return QuizResponse(
        questions=generated.quiz.questions,
        total_questions=len(generated.quiz.questions),
        difficulty=generated.difficulty,
        attempts_remaining=attempt_service.attempts_remaining(generated.attempts_used),
        fallback=generated.fallback,
    )


@router.post("/attempts", response_model=AttemptCountResponse)
async def count_attempts(request: AttemptCountRequest, db: Session = Depends(get_db)):
    """Number of recorded attempts for a user and chapter"""
    attempts = attempt_service.count_attempts(db, request.user_id, request.chapter_id)
    return AttemptCountResponse(attempts=attempts)


@router.get("/history", response_model=QuizHistoryResponse)
async def get_history(
    user_id: str = Query(..., alias="userId"),
    chapter_id: str = Query(..., alias="chapterId"),
    db: Session = Depends(get_db)
):
    """Attempt count and newest-first history for a user and chapter"""
    snapshot = attempt_service.get_snapshot(db, user_id, chapter_id)
    return QuizHistoryResponse(
        attempt_count=snapshot.attempt_count,
        history=[QuizHistoryEntry.model_validate(result) for result in snapshot.history],
    )


@router.post("/results", response_model=QuizResultResponse, status_code=201)
async def submit_results(submission: QuizResultSubmission, db: Session = Depends(get_db)):
    """
    Grade and record a finished quiz

    Each correct answer adds one xp to the user's profile.
    """
    graded, correct = grading_service.grade_answers(submission.answers)

    try:
        result = attempt_service.record_attempt(
            db,
            user_id=submission.user_id,
            course_id=submission.course_id,
            chapter_id=submission.chapter_id,
            graded_answers=graded,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to record quiz attempt: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to record quiz attempt")

    xp = xp_service.add_xp(submission.user_id, correct)

    return QuizResultResponse(
        id=result.id,
        user_id=result.user_id,
        course_id=result.course_id,
        chapter_id=result.chapter_id,
        score=result.score,
        total_questions=result.total_questions,
        answers=[GradedAnswer.model_validate(answer) for answer in result.answers],
        created_at=result.created_at,
        feedback=grading_service.generate_feedback(correct, len(graded)),
        xp=xp,
    )
