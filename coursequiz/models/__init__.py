"""
Database models package
"""
from coursequiz.models.quiz_result import QuizResult, QuizAnswer

__all__ = ["QuizResult", "QuizAnswer"]
