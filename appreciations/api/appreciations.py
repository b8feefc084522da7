"""
Report-card generation API.

- POST /api/appreciations/generate        One student appreciation
- POST /api/appreciations/class-summary   Class council summary ("bilan")
- POST /api/appreciations/generate-batch  Whole class, one credit per student
- POST /api/appreciations/clipboard       Format texts for pasting
"""

import logging

from fastapi import APIRouter, Depends

from appreciations.core.auth import get_current_user
from appreciations.features.ai import service as ai_service
from appreciations.features.appreciations.workspace import build_clipboard_text
from appreciations.models.ai import (
    BatchGenerateRequest,
    BatchGenerateResponse,
    ClassSummaryRequest,
    ClipboardRequest,
    ClipboardResponse,
    GenerateAppreciationRequest,
    GeneratedAppreciation,
    GeneratedText,
)
from appreciations.models.profile import AuthenticatedUser

logger = logging.getLogger("appreciations")

router = APIRouter(prefix="/api/appreciations", tags=["appreciations"])


@router.post("/generate", response_model=GeneratedAppreciation)
def generate(body: GenerateAppreciationRequest, user: AuthenticatedUser = Depends(get_current_user)):
    """
    Errors:
        400: Unknown tone, attribution or anonymization level
        402: Not enough credits
        429/502: Provider rate limit or failure (credits are not refunded)
    """
    return ai_service.generate_student_appreciation(user.id, body)


@router.post("/class-summary", response_model=GeneratedText)
def class_summary(body: ClassSummaryRequest, user: AuthenticatedUser = Depends(get_current_user)):
    return ai_service.generate_class_summary(user.id, body)


@router.post("/generate-batch", response_model=BatchGenerateResponse)
def generate_batch(body: BatchGenerateRequest, user: AuthenticatedUser = Depends(get_current_user)):
    return ai_service.generate_batch(user.id, body)


@router.post("/clipboard", response_model=ClipboardResponse)
def clipboard(body: ClipboardRequest, user: AuthenticatedUser = Depends(get_current_user)):
    entries = body.entries
    text = build_clipboard_text(entries)
    count = sum(1 for e in entries if e.text and e.text.strip())
    return ClipboardResponse(text=text, count=count)
