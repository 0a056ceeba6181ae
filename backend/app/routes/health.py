"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "llm_model": settings.OPENAI_MODEL,
        "environment": settings.ENVIRONMENT,
    }
