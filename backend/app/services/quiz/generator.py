"""Quiz question generation with structured output and a static fallback."""

import logging
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from app.core.config import settings
from app.prompts import get_question_user_prompt, get_questions_system_prompt
from app.services.llm_service.llm_schemas import QUESTION_SCHEMAS
from app.services.llm_service.structured_output import strict_output
from app.services.quiz.fallback import get_fallback_questions

logger = logging.getLogger(__name__)

SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"

OUTPUT_FORMATS: Dict[str, Dict[str, str]] = {
    "open_ended": {
        "question": "question",
        "answer": "answer with max length of 15 words",
    },
    "mcq": {
        "question": "question",
        "answer": "answer with max length of 15 words",
        "option1": "option1 with max length of 15 words",
        "option2": "option2 with max length of 15 words",
        "option3": "option3 with max length of 15 words",
    },
}


def _validate_questions(raw: Any, question_type: str) -> List[Dict[str, str]]:
    """Keep the elements that form complete question records."""
    if not isinstance(raw, list):
        raw = [raw] if raw else []

    schema = QUESTION_SCHEMAS[question_type]
    valid = []
    for item in raw:
        try:
            valid.append(schema.model_validate(item).model_dump())
        except ValidationError as e:
            logger.warning(f"Dropping invalid {question_type} question: {e.error_count()} error(s)")
    return valid


async def generate_questions(
    topic: str,
    amount: int,
    question_type: str,
    llm: Any = None,
) -> Tuple[List[Dict[str, str]], str]:
    """Generate *amount* questions about *topic*.

    Args:
        topic: Free-text quiz topic.
        amount: Number of questions requested.
        question_type: ``"mcq"`` or ``"open_ended"``.
        llm: Optional chat model passed through to the extractor.

    Returns:
        ``(questions, source)`` where source is ``"model"`` or ``"fallback"``.
    """
    if question_type not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported question type: {question_type!r}")

    user_prompt = get_question_user_prompt(topic, question_type)

    try:
        raw = await strict_output(
            get_questions_system_prompt(question_type),
            [user_prompt] * amount,
            OUTPUT_FORMATS[question_type],
            temperature=settings.QUESTIONS_TEMPERATURE,
            num_tries=settings.STRUCTURED_OUTPUT_TRIES,
            llm=llm,
        )
    except Exception as e:
        logger.error(f"Question generation failed: {type(e).__name__}: {e}", exc_info=True)
        raw = []

    questions = _validate_questions(raw, question_type)[:amount]
    if questions:
        logger.info(f"Generated {len(questions)} {question_type} questions about {topic!r}")
        return questions, SOURCE_MODEL

    logger.info(f"Using fallback questions for {topic!r} ({question_type}, {amount})")
    return get_fallback_questions(topic, question_type, amount), SOURCE_FALLBACK
