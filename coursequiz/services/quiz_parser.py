"""
Quiz parser/validator: model completion text -> validated Quiz

Pipeline, in order:
    1. clean_completion  - strip fences and prose, keep the outer {...}
    2. direct parse      - strict json.loads
    3. repair_json       - heuristic text fixes, then strict json.loads again
    4. decode_quiz       - explicit field-presence checks, all-or-nothing
    5. answer membership - force correctAnswer into options (toggleable)

parse_quiz() never raises for bad model output; it returns a tagged
QuizParseResult carrying either the quiz or the error.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from coursequiz.errors import ParseFailed, StructureInvalid, QuizGenerationError
from coursequiz.schemas.quiz import Quiz, QuizQuestion

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```(?:json|JSON)?")
WHITESPACE_PATTERN = re.compile(r"\s+")
CONTROL_WHITESPACE_PATTERN = re.compile(r"[\r\n\t]+")
ESCAPE_PATTERN = re.compile(r'\\(["\\/bfnrtu])?')
BAREWORD_KEY_PATTERN = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
PYTHON_LITERAL_PATTERN = re.compile(r"\b(True|False|None)\b")
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")
STRUCTURAL_SPACE_PATTERN = re.compile(r"\s*([{}\[\]:,])\s*")

PYTHON_LITERALS = {"True": "true", "False": "false", "None": "null"}

# Characters that may follow the closing quote of a single-quoted value
SINGLE_QUOTE_TERMINATORS = ",:}]"


@dataclass
class QuizParseResult:
    """Tagged outcome of parse_quiz: either quiz or error is set"""
    quiz: Optional[Quiz] = None
    error: Optional[QuizGenerationError] = None
    repaired_json: bool = False
    repaired_questions: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and self.quiz is not None

    def unwrap(self) -> Quiz:
        """Return the quiz or raise the carried error"""
        if self.error is not None:
            raise self.error
        return self.quiz


# ---------------------------------------------------------------------------
# String-literal aware helpers
# ---------------------------------------------------------------------------

def _string_end(text: str, start: int) -> int:
    """Index just past the double-quoted literal opening at `start`"""
    escaped = False
    for index in range(start + 1, len(text)):
        char = text[index]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            return index + 1
    return len(text)


def _split_strings(text: str) -> List[Tuple[bool, str]]:
    """Split text into (is_string_literal, segment) pairs on double-quoted literals"""
    segments = []
    position = 0
    while position < len(text):
        quote = text.find('"', position)
        if quote == -1:
            segments.append((False, text[position:]))
            break
        if quote > position:
            segments.append((False, text[position:quote]))
        end = _string_end(text, quote)
        segments.append((True, text[quote:end]))
        position = end
    return segments


def _map_outside_strings(text: str, fn: Callable[[str], str]) -> str:
    return "".join(
        segment if is_string else fn(segment)
        for is_string, segment in _split_strings(text)
    )


def _map_inside_strings(text: str, fn: Callable[[str], str]) -> str:
    return "".join(
        fn(segment) if is_string else segment
        for is_string, segment in _split_strings(text)
    )


# ---------------------------------------------------------------------------
# Stage 1: cleaning
# ---------------------------------------------------------------------------

def clean_completion(completion: Optional[str]) -> str:
    """
    Strip wrapper noise from a completion

    Drops everything outside the first `{` and the last `}`, removes code
    fences left between string literals, and collapses whitespace. String
    literals keep their fences and whitespace, except raw control
    characters which strict JSON rejects anyway.

    Raises:
        ParseFailed: no object-shaped substring is present
    """
    text = completion or ""

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ParseFailed("No JSON object found in completion")

    text = text[start:end + 1]
    text = _map_outside_strings(
        text,
        lambda segment: WHITESPACE_PATTERN.sub(" ", FENCE_PATTERN.sub(" ", segment))
    )
    text = _map_inside_strings(text, lambda segment: CONTROL_WHITESPACE_PATTERN.sub(" ", segment))
    return text.strip()


# ---------------------------------------------------------------------------
# Stage 3: heuristic repair
# ---------------------------------------------------------------------------

def _keep_valid_escape(match: re.Match) -> str:
    return match.group(0) if match.group(1) else ""


def _single_quote_end(text: str, start: int) -> Optional[int]:
    """Closing quote of a single-quoted value: a `'` followed by a terminator or the end"""
    index = text.find("'", start + 1)
    while index != -1:
        rest = text[index + 1:].lstrip()
        if not rest or rest[0] in SINGLE_QUOTE_TERMINATORS:
            return index
        index = text.find("'", index + 1)
    return None


def _convert_single_quotes(text: str) -> str:
    """Rewrite single-quoted strings as double-quoted JSON strings"""
    out = []
    position = 0
    while position < len(text):
        char = text[position]
        if char == '"':
            end = _string_end(text, position)
            out.append(text[position:end])
            position = end
            continue
        if char == "'":
            end = _single_quote_end(text, position)
            if end is not None:
                inner = re.sub(r'(?<!\\)"', r'\\"', text[position + 1:end])
                out.append(f'"{inner}"')
                position = end + 1
                continue
        out.append(char)
        position += 1
    return "".join(out)


def _repair_structure(segment: str) -> str:
    segment = BAREWORD_KEY_PATTERN.sub(r'\1"\2":', segment)
    segment = PYTHON_LITERAL_PATTERN.sub(lambda m: PYTHON_LITERALS[m.group(1)], segment)
    segment = TRAILING_COMMA_PATTERN.sub(r"\1", segment)
    segment = STRUCTURAL_SPACE_PATTERN.sub(r"\1", segment)
    return segment


def repair_json(text: str) -> str:
    """
    Apply text-level fixes for common model formatting defects

    - stray backslashes that do not start a JSON escape are dropped
    - single-quoted strings become double-quoted
    - bareword object keys are quoted
    - Python literals True/False/None become JSON literals
    - trailing commas before ] or } are removed
    - whitespace around structural characters is dropped
    """
    repaired = ESCAPE_PATTERN.sub(_keep_valid_escape, text)
    repaired = _convert_single_quotes(repaired)
    return _map_outside_strings(repaired, _repair_structure)


def load_json(cleaned: str) -> Tuple[Any, bool]:
    """
    Strict parse, falling back to one heuristic-repair parse

    Returns:
        Tuple of (parsed value, whether repair was needed)

    Raises:
        ParseFailed: both attempts failed
    """
    try:
        return json.loads(cleaned), False
    except (json.JSONDecodeError, RecursionError) as e:
        logger.info(f"Direct parse failed ({type(e).__name__}); trying heuristic repair")

    repaired = repair_json(cleaned)
    logger.debug(f"Repaired completion: {repaired[:500]}")
    try:
        return json.loads(repaired), True
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse quiz JSON after repair: {e}")
        raise ParseFailed(f"Could not parse completion as JSON: {e.msg}") from e
    except RecursionError as e:
        logger.error("Failed to parse quiz JSON after repair: nesting too deep")
        raise ParseFailed("Could not parse completion as JSON: nesting too deep") from e


# ---------------------------------------------------------------------------
# Stage 5: structural validation
# ---------------------------------------------------------------------------

def _text(value: Any) -> Optional[str]:
    """Strings pass through, numbers become strings, anything else is None"""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _decode_question(index: int, raw: Any, require_explanation: bool) -> QuizQuestion:
    label = f"Question {index + 1}"
    if not isinstance(raw, dict):
        raise StructureInvalid(f"{label} is not an object")

    question = _text(raw.get("question"))
    if _is_blank(question):
        raise StructureInvalid(f"{label} is missing 'question'")

    raw_options = raw.get("options")
    if not isinstance(raw_options, list) or not raw_options:
        raise StructureInvalid(f"{label} is missing 'options'")
    options = [_text(option) for option in raw_options]
    if any(option is None for option in options):
        raise StructureInvalid(f"{label} has a non-text option")

    correct_answer = _text(raw.get("correctAnswer", raw.get("correct_answer")))
    if _is_blank(correct_answer):
        raise StructureInvalid(f"{label} is missing 'correctAnswer'")

    explanation = _text(raw.get("explanation"))
    if require_explanation and _is_blank(explanation):
        raise StructureInvalid(f"{label} is missing 'explanation'")

    return QuizQuestion(
        question=question,
        options=options,
        correct_answer=correct_answer,
        explanation=explanation,
    )


def decode_quiz(data: Any, require_explanation: bool = False) -> Quiz:
    """
    Typed decoder for the parsed completion

    Raises:
        StructureInvalid: any required field is missing on any question
    """
    if not isinstance(data, dict):
        raise StructureInvalid("Completion is not a JSON object")

    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        raise StructureInvalid("Completion has no 'questions' list")
    if not raw_questions:
        raise StructureInvalid("Completion has no questions")

    return Quiz(questions=[
        _decode_question(index, raw, require_explanation)
        for index, raw in enumerate(raw_questions)
    ])


# ---------------------------------------------------------------------------
# Stage 6: answer-membership repair
# ---------------------------------------------------------------------------

def normalize_answer(value: str) -> str:
    return value.strip().lower()


def matching_options(question: QuizQuestion) -> List[str]:
    """Options equal to the correct answer after normalization"""
    target = normalize_answer(question.correct_answer)
    return [option for option in question.options if normalize_answer(option) == target]


def repair_answer_membership(question: QuizQuestion) -> bool:
    """
    Make correct_answer a member of options, in place

    A question whose answer matches an option (ignoring case and
    surrounding whitespace) is left untouched. With no match, the last
    option is overwritten with the answer and the other options keep
    their order.

    Returns:
        True when an option was overwritten
    """
    matches = matching_options(question)
    if len(matches) > 1:
        logger.warning(
            f"Correct answer {question.correct_answer!r} matches {len(matches)} options "
            f"for {question.question!r}"
        )
    if matches:
        return False

    logger.warning(
        f"Correct answer {question.correct_answer!r} not in options for "
        f"{question.question!r}; replacing last option {question.options[-1]!r}"
    )
    question.options[-1] = question.correct_answer
    return True


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def parse_quiz(
    completion: Optional[str],
    require_explanation: bool = False,
    repair_membership: bool = True
) -> QuizParseResult:
    """
    Run the full pipeline over one completion

    Args:
        completion: Raw text returned by the generation service
        require_explanation: Reject questions without an explanation
        repair_membership: Patch answers missing from options instead of
            rejecting the quiz

    Returns:
        QuizParseResult with either the quiz or a ParseFailed /
        StructureInvalid error; never a partial quiz
    """
    logger.debug(f"Raw completion: {(completion or '')[:500]}")

    try:
        cleaned = clean_completion(completion)
        logger.debug(f"Cleaned completion: {cleaned[:500]}")
        data, repaired_json = load_json(cleaned)
        quiz = decode_quiz(data, require_explanation)
    except (ParseFailed, StructureInvalid) as e:
        logger.warning(f"Quiz parsing failed [{e.code}]: {e.detail}")
        return QuizParseResult(error=e)

    repaired_questions = []
    for index, question in enumerate(quiz.questions):
        if not repair_membership and not matching_options(question):
            error = StructureInvalid(f"Correct answer not found in options at question {index + 1}")
            logger.warning(f"Quiz parsing failed [{error.code}]: {error.detail}")
            return QuizParseResult(error=error, repaired_json=repaired_json)
        if repair_answer_membership(question):
            repaired_questions.append(index)

    logger.info(
        f"Parsed quiz with {len(quiz.questions)} questions "
        f"(json repaired: {repaired_json}, answers repaired: {len(repaired_questions)})"
    )
    return QuizParseResult(
        quiz=quiz,
        repaired_json=repaired_json,
        repaired_questions=repaired_questions,
    )
