"""Prompt template loader.

Each ``get_*_prompt`` function loads a ``.txt`` template from this
package directory and substitutes placeholders.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict

_DIR = os.path.dirname(__file__)

_SYSTEM_TEMPLATES = {
    "open_ended": "open_ended_system_prompt.txt",
    "mcq": "mcq_system_prompt.txt",
}

_QUESTION_KIND = {
    "open_ended": "open-ended question",
    "mcq": "mcq question",
}


@lru_cache(maxsize=32)
def _load(filename: str) -> str:
    """Read a template file, caching the result."""
    with open(os.path.join(_DIR, filename), encoding="utf-8") as f:
        return f.read()


def _render(filename: str, subs: Dict[str, str]) -> str:
    """Load *filename* and apply all substitutions."""
    text = _load(filename)
    for key, val in subs.items():
        text = text.replace(key, val)
    return text.strip()


# ── Public helpers ────────────────────────────────────────


def get_questions_system_prompt(question_type: str) -> str:
    filename = _SYSTEM_TEMPLATES.get(question_type, _SYSTEM_TEMPLATES["open_ended"])
    return _load(filename).strip()


def get_question_user_prompt(topic: str, question_type: str) -> str:
    return _render("question_user_prompt.txt", {
        "{{QUESTION_KIND}}": _QUESTION_KIND.get(question_type, _QUESTION_KIND["open_ended"]),
        "{{TOPIC}}": topic,
    })
