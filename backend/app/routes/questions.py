"""Question generation route."""

import logging
from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.services.quiz.generator import generate_questions

logger = logging.getLogger(__name__)
router = APIRouter()


class QuestionsRequest(BaseModel):
    amount: int = Field(ge=1, le=10)
    topic: str = Field(min_length=4, max_length=50)
    type: Literal["mcq", "open_ended"]


@router.post("/api/questions")
async def create_questions(request: QuestionsRequest):
    try:
        questions, source = await generate_questions(
            request.topic,
            request.amount,
            request.type,
        )
        return JSONResponse(content={"questions": questions, "source": source})
    except Exception as e:
        logger.error(f"Error in questions route: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred.", "details": str(e)},
        )
