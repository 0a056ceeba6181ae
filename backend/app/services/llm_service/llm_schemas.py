"""Pydantic schemas for validating structured LLM outputs."""

from typing import Dict, Literal, Type

from pydantic import BaseModel, field_validator

QuestionType = Literal["mcq", "open_ended"]


# ── Questions ─────────────────────────────────────────────

class OpenEndedQuestion(BaseModel):
    question: str
    answer: str

    @field_validator("question", "answer", mode="before")
    @classmethod
    def _stringify(cls, v):
        # Models sometimes answer with bare numbers ("answer": 1945)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("question", "answer", mode="after")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class MCQQuestion(OpenEndedQuestion):
    option1: str
    option2: str
    option3: str

    @field_validator("option1", "option2", "option3", mode="before")
    @classmethod
    def _stringify_options(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


QUESTION_SCHEMAS: Dict[str, Type[OpenEndedQuestion]] = {
    "open_ended": OpenEndedQuestion,
    "mcq": MCQQuestion,
}
