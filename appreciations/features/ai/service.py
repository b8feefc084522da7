"""Report-card generation service.

Builds anonymized prompts, calls Groq chat completions, then cleans,
validates and fits the text to the requested length. Credits are consumed
before the provider is called.
"""

import logging
from typing import List, Optional

import groq

from appreciations.core.config import settings
from appreciations.core.errors import AppError, RateLimitError, UpstreamError
from appreciations.features.ai.postprocess import (
    ValidationResult,
    clean_generated_text,
    truncate_intelligently,
    validate_appreciation,
)
from appreciations.features.ai.prompts import student_messages, summary_messages
from appreciations.features.appreciations.workspace import StudentAppreciations, StudentTones
from appreciations.features.credits.service import consume_credits
from appreciations.features.preferences.service import get_anonymization_level
from appreciations.features.privacy.anonymizer import (
    anonymize_all,
    anonymize_text,
    count_placeholders,
    finalize_for_level,
)
from appreciations.models.ai import (
    BatchError,
    BatchGenerateRequest,
    BatchGenerateResponse,
    ClassSummaryRequest,
    GenerateAppreciationRequest,
    GeneratedAppreciation,
    GeneratedText,
    StudentInput,
    SUMMARY_MAX_CHARS,
    SUMMARY_MIN_CHARS,
    ValidationReport,
)
from appreciations.models.catalog import (
    AnonymizationLevel,
    AppreciationTone,
    Attribution,
    DEFAULT_TONE,
    get_attribution_config,
    get_tone_config,
    parse_enum,
)
from appreciations.models.credits import (
    ConsumeCreditsRequest,
    ConsumeCreditsResult,
    CreditAction,
    RegenerationType,
    Tool,
)

logger = logging.getLogger("appreciations")

STUDENT_MIN_RATIO = 0.75
TEMPERATURE = 0.7
MAX_TOKENS = 600

# Positive value of each class summary option
SUMMARY_POSITIVE_OPTIONS = {
    "work_level": "serious",
    "behavior": "respectful",
    "participation": "active",
    "progression": "improving",
}


def get_groq_client():
    if not settings.GROQ_API_KEY:
        raise UpstreamError("Service de génération indisponible (GROQ_API_KEY manquante)")
    return groq.Groq(api_key=settings.GROQ_API_KEY)


def complete(messages: List[dict], max_tokens: int = MAX_TOKENS) -> str:
    """Run one chat completion and return the message content."""
    client = get_groq_client()
    try:
        response = client.chat.completions.create(
            messages=messages,
            model=settings.GROQ_MODEL,
            temperature=TEMPERATURE,
            max_tokens=max_tokens,
        )
    except groq.RateLimitError:
        logger.warning("ai.rate_limited", extra={"event_type": "ai"})
        raise RateLimitError("Trop de requêtes. Veuillez patienter quelques instants.")
    except groq.APIError as e:
        logger.error("ai.provider_error", extra={"event_type": "ai", "error_message": str(e)[:200]})
        raise UpstreamError("Erreur du service de génération. Veuillez réessayer.")

    content = (response.choices[0].message.content or "").strip() if response.choices else ""
    if not content:
        raise UpstreamError("Réponse vide du service de génération")
    return content


def _report(validation: ValidationResult) -> ValidationReport:
    return ValidationReport(
        is_valid=validation.is_valid,
        errors=validation.errors,
        warnings=validation.warnings,
    )


def _consume(
    user_id: str,
    action: CreditAction,
    class_id: Optional[str],
    is_regeneration: bool,
    regeneration_type: RegenerationType,
) -> ConsumeCreditsResult:
    return consume_credits(
        user_id,
        ConsumeCreditsRequest(
            tool=Tool.REPORTCARD,
            action=action,
            students_cost=1,
            class_id=class_id,
            is_regeneration=is_regeneration,
            regeneration_type=regeneration_type if is_regeneration else None,
        ),
    )


def resolve_anonymization_level(user_id: str, requested: Optional[str]) -> AnonymizationLevel:
    if requested is None:
        return get_anonymization_level(user_id)
    return parse_enum(AnonymizationLevel, requested, "anonymization level")


def attribution_label(student: StudentInput) -> Optional[str]:
    if not student.attribution:
        return None
    return get_attribution_config(parse_enum(Attribution, student.attribution, "attribution")).label


def _generate_for_student(
    student: StudentInput,
    tone: AppreciationTone,
    max_chars: int,
    level: AnonymizationLevel,
    attribution: Optional[str],
) -> GeneratedAppreciation:
    min_chars = int(max_chars * STUDENT_MIN_RATIO)
    name = student.first_name
    messages = student_messages(
        tone_instruction=get_tone_config(tone).instruction,
        min_chars=min_chars,
        max_chars=max_chars,
        average=student.average,
        absences=student.absences,
        observations=anonymize_all(student.observations, name),
        subjects=anonymize_all(student.subjects, name),
        attribution_label=attribution,
    )

    raw = complete(messages)
    # The model may still echo a name it guessed; keep the placeholder form
    text = clean_generated_text(anonymize_text(raw, name), student.teacher_names)
    text, _ = finalize_for_level(text, name, level)

    validation = validate_appreciation(text, min_chars, max_chars)
    text = truncate_intelligently(text, max_chars)

    return GeneratedAppreciation(
        text=text,
        character_count=len(text),
        min_chars=min_chars,
        max_chars=max_chars,
        tone=tone.value,
        validation=_report(validation),
        anonymization_level=level,
        placeholder_count=count_placeholders(text),
    )


def generate_student_appreciation(user_id: str, req: GenerateAppreciationRequest) -> GeneratedAppreciation:
    tone = parse_enum(AppreciationTone, req.tone or DEFAULT_TONE, "tone")
    level = resolve_anonymization_level(user_id, req.anonymization_level)
    attribution = attribution_label(req)

    credits = _consume(
        user_id, CreditAction.APPRECIATION, req.class_id, req.is_regeneration, RegenerationType.APPRECIATION
    )
    result = _generate_for_student(req, tone, req.max_chars, level, attribution)

    logger.info(
        "ai.appreciation_generated",
        extra={
            "user_id": user_id,
            "event_type": "ai",
            "tone": tone.value,
            "chars": result.character_count,
            "valid": result.validation.is_valid,
        },
    )
    return result.model_copy(
        update={"credits": credits.new_balance, "was_free_regeneration": credits.was_free_regeneration}
    )


def derive_summary_tone(req: ClassSummaryRequest) -> AppreciationTone:
    """elogieux with 3+ positive indicators, standard with 2, severe otherwise."""
    positives = sum(
        1 for field, positive in SUMMARY_POSITIVE_OPTIONS.items() if getattr(req, field) == positive
    )
    if positives >= 3:
        return AppreciationTone.ELOGIEUX
    if positives >= 2:
        return AppreciationTone.STANDARD
    return AppreciationTone.SEVERE


def generate_class_summary(user_id: str, req: ClassSummaryRequest) -> GeneratedText:
    tone = parse_enum(AppreciationTone, req.tone, "tone") if req.tone else derive_summary_tone(req)
    labels = req.labels or {}

    credits = _consume(user_id, CreditAction.BILAN, req.class_id, req.is_regeneration, RegenerationType.BILAN)

    messages = summary_messages(
        tone_instruction=get_tone_config(tone).instruction,
        min_chars=SUMMARY_MIN_CHARS,
        max_chars=SUMMARY_MAX_CHARS,
        work_level=labels.get("work_level", req.work_level),
        behavior=labels.get("behavior", req.behavior),
        participation=labels.get("participation", req.participation),
        progression=labels.get("progression", req.progression),
        total_students=req.total_students,
        average_grade=req.average_grade,
    )
    text = clean_generated_text(complete(messages))
    validation = validate_appreciation(text, SUMMARY_MIN_CHARS, SUMMARY_MAX_CHARS)
    text = truncate_intelligently(text, SUMMARY_MAX_CHARS)

    logger.info(
        "ai.summary_generated",
        extra={"user_id": user_id, "event_type": "ai", "tone": tone.value, "chars": len(text)},
    )
    return GeneratedText(
        text=text,
        character_count=len(text),
        min_chars=SUMMARY_MIN_CHARS,
        max_chars=SUMMARY_MAX_CHARS,
        tone=tone.value,
        validation=_report(validation),
        credits=credits.new_balance,
        was_free_regeneration=credits.was_free_regeneration,
    )


def generate_batch(user_id: str, req: BatchGenerateRequest) -> BatchGenerateResponse:
    """Generate one appreciation per student; a failure only affects its own index."""
    tones = StudentTones(parse_enum(AppreciationTone, req.default_tone or DEFAULT_TONE, "tone"))
    tones.set_many(req.tones)
    level = resolve_anonymization_level(user_id, req.anonymization_level)

    results = StudentAppreciations()
    results.set_loading_all(True)
    placeholder_counts = {}
    errors = {}

    for index, student in enumerate(req.students):
        results.set_loading_index(index)
        try:
            attribution = attribution_label(student)
            _consume(user_id, CreditAction.BATCH, req.class_id, False, RegenerationType.APPRECIATION)
            generated = _generate_for_student(student, tones.get_tone(index), req.max_chars, level, attribution)
        except AppError as e:
            results.update_text(index, "")
            errors[index] = BatchError(code=e.code, message=e.message)
            continue
        results.update_text(index, generated.text)
        placeholder_counts[index] = generated.placeholder_count

    results.set_loading_index(None)
    results.set_loading_all(False)

    logger.info(
        "ai.batch_generated",
        extra={"user_id": user_id, "event_type": "ai", "students": len(req.students), "failures": len(errors)},
    )
    return BatchGenerateResponse(
        texts=results.texts,
        tones={i: tones.get_tone(i).value for i in range(len(req.students))},
        placeholder_counts=placeholder_counts,
        errors=errors,
    )
