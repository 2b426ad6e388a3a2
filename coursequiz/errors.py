"""
Error kinds for one quiz-generation attempt

Every failure is scoped to a single attempt; none is fatal to the process
and none is retried automatically.
"""

TRY_AGAIN_MESSAGE = "Could not generate quiz. Please try again."


class QuizGenerationError(Exception):
    """Base class for quiz-generation failures"""

    code = "quiz_generation_failed"
    status_code = 502
    public_message = TRY_AGAIN_MESSAGE

    def __init__(self, detail: str = ""):
        self.detail = detail or self.code
        super().__init__(self.detail)


class RequestFailed(QuizGenerationError):
    """Network or service error while contacting the generation service"""
    code = "request_failed"


class EmptyResponse(QuizGenerationError):
    """The generation service returned no text"""
    code = "empty_response"


class ParseFailed(QuizGenerationError):
    """Neither direct nor repaired JSON parsing produced a value"""
    code = "parse_failed"


class StructureInvalid(QuizGenerationError):
    """Parsed value is missing required quiz fields"""
    code = "structure_invalid"


class AttemptLimitReached(QuizGenerationError):
    """The user has used every quiz attempt for this chapter"""
    code = "attempt_limit_reached"
    status_code = 429
    public_message = "Maximum quiz attempts reached for this chapter."
