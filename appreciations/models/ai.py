"""
appreciations/models/ai.py
Request/response models for AI generation endpoints.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from appreciations.models.catalog import AnonymizationLevel
from appreciations.models.credits import CreditBalance

DEFAULT_MAX_CHARS = 400
SUMMARY_MIN_CHARS = 200
SUMMARY_MAX_CHARS = 300


class StudentInput(BaseModel):
    first_name: str = Field(default="", max_length=100)
    average: Optional[float] = Field(default=None, ge=0, le=20)
    absences: Optional[int] = Field(default=None, ge=0)
    observations: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list, description="Per-subject teacher remarks")
    attribution: Optional[str] = None
    teacher_names: List[str] = Field(default_factory=list, description="Names to scrub from the output")


class GenerateAppreciationRequest(StudentInput):
    tone: Optional[str] = None
    max_chars: int = Field(default=DEFAULT_MAX_CHARS, ge=100, le=1000)
    anonymization_level: Optional[str] = None
    class_id: Optional[str] = None
    is_regeneration: bool = False


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class GeneratedText(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    character_count: int
    min_chars: int
    max_chars: int
    tone: str
    validation: ValidationReport
    credits: Optional[CreditBalance] = None
    was_free_regeneration: bool = False


class GeneratedAppreciation(GeneratedText):
    anonymization_level: AnonymizationLevel
    placeholder_count: int = 0


class ClassSummaryRequest(BaseModel):
    work_level: str
    behavior: str
    participation: str
    progression: str
    labels: Optional[Dict[str, str]] = Field(
        default=None, description="Display labels keyed by field name, defaults to the raw values"
    )
    total_students: int = Field(ge=0)
    average_grade: Optional[float] = Field(default=None, ge=0, le=20)
    tone: Optional[str] = None
    class_id: Optional[str] = None
    is_regeneration: bool = False


class ClipboardEntry(BaseModel):
    name: str = ""
    text: str = ""


class ClipboardRequest(BaseModel):
    entries: List[ClipboardEntry] = Field(default_factory=list)


class ClipboardResponse(BaseModel):
    text: str
    count: int


class BatchGenerateRequest(BaseModel):
    students: List[StudentInput] = Field(min_length=1, max_length=60)
    default_tone: Optional[str] = None
    tones: Dict[int, str] = Field(default_factory=dict, description="Tone per student index")
    max_chars: int = Field(default=DEFAULT_MAX_CHARS, ge=100, le=1000)
    anonymization_level: Optional[str] = None
    class_id: Optional[str] = None


class BatchError(BaseModel):
    code: str
    message: str


class BatchGenerateResponse(BaseModel):
    texts: List[str]
    tones: Dict[int, str]
    placeholder_counts: Dict[int, int] = Field(default_factory=dict)
    errors: Dict[int, BatchError] = Field(default_factory=dict)
