"""
Gemini AI service: sends chapter text to the model and returns its completion
"""
import google.generativeai as genai
from coursequiz.config import settings
from coursequiz.errors import RequestFailed, EmptyResponse
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)


class GeminiService:
    """Quiz requester: one prompt in, one completion string out, no retries"""

    def __init__(self, model_name: Optional[str] = None):
        self.model = genai.GenerativeModel(model_name or settings.GEMINI_MODEL)

    def request_quiz(self, content: str, difficulty: str, num_questions: Optional[int] = None) -> str:
        """
        Ask the model for a multiple-choice quiz on a chapter

        Args:
            content: Chapter title and description text
            difficulty: beginner/intermediate/advanced
            num_questions: Questions to request (default QUIZ_LENGTH)

        Returns:
            Raw completion text

        Raises:
            RequestFailed: the service call raised
            EmptyResponse: the service returned no text
        """
        prompt = self._create_quiz_prompt(content, difficulty, num_questions or settings.QUIZ_LENGTH)

        try:
            response = self.model.generate_content(prompt)
        except Exception as e:
            logger.error(f"Gemini request failed: {str(e)}")
            raise RequestFailed(f"Quiz generation request failed: {str(e)}") from e

        try:
            text = response.text
        except ValueError as e:
            # The SDK refuses .text when the candidate was blocked or empty
            logger.warning(f"Gemini returned no usable text: {str(e)}")
            raise EmptyResponse("Generation service returned no text") from e

        if not text or not text.strip():
            logger.warning("Gemini returned an empty completion")
            raise EmptyResponse("Generation service returned no text")

        logger.info(f"Received {difficulty} quiz completion ({len(text)} chars)")
        return text

    def _create_quiz_prompt(self, content: str, difficulty: str, num_questions: int) -> str:
        """Create structured prompt for quiz generation"""

        return f"""
Create a {difficulty} level quiz with {num_questions} multiple choice questions based on this text: "{content}"

Return your response in this exact JSON format:
{{
  "questions": [
    {{
      "question": "Question text here?",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "correctAnswer": "Option 1",
      "explanation": "Why this answer is correct"
    }}
  ]
}}

Make sure to:
1. Use valid JSON syntax
2. Include exactly {num_questions} questions
3. Provide 4 options for each question
4. Include the correct answer in the options array
5. Match the question difficulty to a {difficulty} learner
"""


# Global instance
gemini_service = GeminiService()
