"""Static fallback questions used when model generation fails.

The bank is built once at import time and never mutated; callers always
receive fresh dict copies.
"""

from __future__ import annotations

import logging
import random
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)

Record = Mapping[str, str]

PROGRAMMING_KEYWORDS = ("programming", "coding", "javascript", "python")
SCIENCE_KEYWORDS = ("science", "chemistry", "physics", "biology")


def _freeze(*records: Dict[str, str]) -> Tuple[Record, ...]:
    return tuple(MappingProxyType(dict(r)) for r in records)


def _mcq(question: str, answer: str, option1: str, option2: str, option3: str) -> Dict[str, str]:
    return {
        "question": question,
        "answer": answer,
        "option1": option1,
        "option2": option2,
        "option3": option3,
    }


def _open(question: str, answer: str) -> Dict[str, str]:
    return {"question": question, "answer": answer}


# ── Question bank ─────────────────────────────────────────────

_MCQ_BANK: Mapping[str, Tuple[Record, ...]] = MappingProxyType({
    "general": _freeze(
        _mcq("What is the capital of France?", "Paris", "London", "Berlin", "Rome"),
        _mcq("Which planet is known as the Red Planet?", "Mars", "Venus", "Jupiter", "Mercury"),
        _mcq("Who wrote 'Romeo and Juliet'?", "William Shakespeare", "Charles Dickens", "Jane Austen", "Mark Twain"),
        _mcq("What is the chemical symbol for gold?", "Au", "Ag", "Fe", "Cu"),
        _mcq("What is the largest ocean on Earth?", "Pacific Ocean", "Atlantic Ocean", "Indian Ocean", "Arctic Ocean"),
    ),
    "programming": _freeze(
        _mcq("Which language is primarily used for web development?", "JavaScript", "C++", "Swift", "Rust"),
        _mcq(
            "What does HTML stand for?",
            "HyperText Markup Language",
            "High Tech Modern Language",
            "Hyper Transfer Modeling Language",
            "Home Tool Management Language",
        ),
        _mcq("Which of these is a JavaScript framework?", "React", "Django", "Flask", "Laravel"),
    ),
    "science": _freeze(
        _mcq("What is the chemical formula for water?", "H2O", "CO2", "NaCl", "O2"),
        _mcq("Which element has the atomic number 1?", "Hydrogen", "Oxygen", "Carbon", "Helium"),
    ),
})

_OPEN_ENDED_BANK: Mapping[str, Tuple[Record, ...]] = MappingProxyType({
    "general": _freeze(
        _open("Name the longest river in the world.", "Nile River"),
        _open("Who painted the Mona Lisa?", "Leonardo da Vinci"),
        _open("What year did World War II end?", "1945"),
        _open("What is the largest mammal on Earth?", "Blue Whale"),
        _open("What is the capital of Japan?", "Tokyo"),
    ),
    "programming": _freeze(
        _open("What programming language was created by Guido van Rossum?", "Python"),
        _open("What does CSS stand for?", "Cascading Style Sheets"),
        _open("What is the main purpose of a database?", "To store, retrieve, and manage data"),
    ),
    "science": _freeze(
        _open("What is photosynthesis?", "Process by which plants convert light energy into chemical energy"),
        _open(
            "What is Newton's First Law of Motion?",
            "An object at rest stays at rest, and an object in motion stays in motion",
        ),
    ),
})

FALLBACK_BANK: Mapping[str, Mapping[str, Tuple[Record, ...]]] = MappingProxyType({
    "mcq": _MCQ_BANK,
    "open_ended": _OPEN_ENDED_BANK,
})


# ── Lookup ────────────────────────────────────────────────────


def topic_bucket(topic: str) -> str:
    """Map a free-text topic to ``programming``, ``science`` or ``general``."""
    topic_lower = (topic or "").lower()
    if any(k in topic_lower for k in PROGRAMMING_KEYWORDS):
        return "programming"
    if any(k in topic_lower for k in SCIENCE_KEYWORDS):
        return "science"
    return "general"


def get_fallback_questions(topic: str, question_type: str, amount: int = 5) -> List[Dict[str, str]]:
    """Return exactly *amount* fallback questions for *topic*.

    Short buckets are repeated in order and truncated; otherwise a random
    selection is returned.  Any type other than ``mcq`` is treated as
    open-ended.
    """
    if amount <= 0:
        return []

    bank = FALLBACK_BANK["mcq"] if question_type == "mcq" else FALLBACK_BANK["open_ended"]
    bucket = topic_bucket(topic)
    questions = bank[bucket]

    if len(questions) < amount:
        repeats = -(-amount // len(questions))
        selected = (questions * repeats)[:amount]
    else:
        selected = random.sample(questions, amount)

    logger.info("Serving %d fallback %s questions from the %s bucket", amount, question_type, bucket)
    return [dict(q) for q in selected]
