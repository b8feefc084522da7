"""
Cleanup and checks applied to every generated text.

Report cards must not carry numeric grades, class names or teacher names;
the model is told so, and whatever slips through is removed here.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

_UPPER = "A-ZÀ-ÜØÆŒ"

_GRADE_PATTERNS = [
    re.compile(r"\b\d{1,2}[,.]\d{1,2}\s*(?:/\s*20)?\b"),
    re.compile(r"\b\d{1,2}\s*/\s*20\b"),
    re.compile(r"\bavec\s+une\s+moyenne\s+de\s+\d+[,.]?\d*\b", re.IGNORECASE),
    re.compile(r"\bune\s+moyenne\s+de\s+\d+[,.]?\d*\b", re.IGNORECASE),
    re.compile(r"\bmoyenne\s+(?:de\s+)?\d+[,.]?\d*\b", re.IGNORECASE),
    re.compile(r"\bde\s+\d{1,2}[,.]?\d*\s*(?:/\s*20)?\b"),
    re.compile(r"\b\d{1,2}\s*points?\b", re.IGNORECASE),
    re.compile(r"\b\d{2,3}\s*%"),
]

_CLASS_NAME_PATTERNS = [
    re.compile(r"\bla\s+classe\s+de\s+\d+[eè](?:me)?\d*\b", re.IGNORECASE),
    re.compile(r"\bcette\s+classe\s+de\s+\d+[eè](?:me)?\b", re.IGNORECASE),
    re.compile(r"\bles\s+élèves\s+de\s+\d+[eè](?:me)?\b", re.IGNORECASE),
    re.compile(r"\bla\s+\d+[eè](?:me)?\d*\b", re.IGNORECASE),
    re.compile(r"\b(?:classe|élèves)\s+de\s+\d+[A-Z]+\b", re.IGNORECASE),
]

_TITLE_AND_NAME = re.compile(rf"\b(?:M\.|Mme|Mlle)\s+[{_UPPER}][-{_UPPER}]+(?:\s+[{_UPPER}][-{_UPPER}]+)*\b")
_REFERENCE_TO_TEACHER = re.compile(
    rf"\b(?:selon|pour|notamment|avec|chez|d'après)\s+(?:M\.|Mme|Mlle)\s+[{_UPPER}][-{_UPPER}]+\b",
    re.IGNORECASE,
)
_UPPERCASE_NAMES = re.compile(rf"\b[{_UPPER}]{{2,}}(?:\s+[{_UPPER}]{{2,}})+\b")
_UPPERCASE_FALSE_POSITIVES = ("FRANCE", "PARIS", "EDUCATION NATIONALE", "BULLETIN", "TRIMESTRE")

_VALIDATION_GRADE_PATTERNS = [
    (re.compile(r"\b\d{1,2}[,.]\d{1,2}\s*(?:/\s*20)?\b"), "Note décimale"),
    (re.compile(r"\b\d{1,2}\s*/\s*20\b"), "Note sur 20"),
    (re.compile(r"\bmoyenne\s+(?:de\s+)?\d+[,.]?\d*\b", re.IGNORECASE), "Moyenne chiffrée"),
    (re.compile(r"\bde\s+\d{1,2}[,.]?\d*\b"), "Référence numérique"),
]
_VALIDATION_CLASS_PATTERNS = [
    re.compile(r"\b(?:la|cette)\s+classe\s+de\s+\d+[eè](?:me)?\b", re.IGNORECASE),
    re.compile(r"\bla\s+\d+[eè](?:me)?\d*\b", re.IGNORECASE),
]
_REPETITION = re.compile(r"\b(\w{5,})\s+\1\b", re.IGNORECASE)

SENTENCE_CUT_RATIO = 0.85
WORD_CUT_RATIO = 0.9


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def tidy_whitespace(text: str) -> str:
    """Collapse runs of whitespace and orphan punctuation left by removals."""
    result = re.sub(r"\s+", " ", text)
    result = re.sub(r",\s*,", ",", result)
    result = re.sub(r"\s+\.", ".", result)
    result = re.sub(r"\s+,", ",", result)
    result = re.sub(r"\.\s*\.", ".", result)
    return result.strip()


def remove_grades_and_class_names(text: str) -> str:
    result = text
    for pattern in _GRADE_PATTERNS:
        result = pattern.sub("", result)
    for pattern in _CLASS_NAME_PATTERNS:
        result = pattern.sub("", result)
    return tidy_whitespace(result)


def _is_uppercase_name(match: str) -> bool:
    if any(fp in match for fp in _UPPERCASE_FALSE_POSITIVES):
        return False
    return 4 < len(match) < 40


def remove_teacher_references(text: str, known_names: Optional[Iterable[str]] = None) -> str:
    """Drop "M. DUPONT"-style mentions, upper-case surnames and any known teacher names."""
    result = text
    for name in known_names or []:
        name = name.strip()
        if not name:
            continue
        escaped = re.escape(name)
        result = re.sub(rf"\b(?:M\.|Mme|Mlle)\.?\s*{escaped}\b", "", result, flags=re.IGNORECASE)
        result = re.sub(rf"\b{escaped}\b", "", result, flags=re.IGNORECASE)

    result = _REFERENCE_TO_TEACHER.sub("", result)
    result = _TITLE_AND_NAME.sub("", result)
    result = _UPPERCASE_NAMES.sub(lambda m: "" if _is_uppercase_name(m.group(0)) else m.group(0), result)
    return tidy_whitespace(result)


def clean_generated_text(text: str, known_names: Optional[Iterable[str]] = None) -> str:
    return remove_grades_and_class_names(remove_teacher_references(text.strip(), known_names))


def truncate_intelligently(text: str, max_length: int) -> str:
    """
    Fit text into max_length characters.

    Prefer the last sentence end past 85% of the limit, then the last space
    past 90% (closing with "."), else cut hard and append "...".
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    best_cut = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if best_cut > max_length * SENTENCE_CUT_RATIO:
        return text[: best_cut + 1].strip()

    last_space = truncated.rfind(" ")
    if last_space > max_length * WORD_CUT_RATIO:
        return text[:last_space].strip() + "."

    return text[: max_length - 3].strip() + "..."


def validate_appreciation(text: str, min_length: int, max_length: int) -> ValidationResult:
    errors: List[str] = []
    warnings: List[str] = []

    if len(text) < min_length:
        errors.append(f"Trop court : {len(text)}/{min_length} caractères minimum requis")
    if len(text) > max_length:
        warnings.append(f"Dépassement : {len(text)}/{max_length} caractères (troncature appliquée)")

    for pattern, desc in _VALIDATION_GRADE_PATTERNS:
        match = pattern.search(text)
        if match:
            errors.append(f'{desc} détectée : "{match.group(0)}"')

    match = _TITLE_AND_NAME.search(text)
    if match:
        errors.append(f'Titre + Nom (M./Mme) détecté(e) : "{match.group(0)}"')
    uppercase = [m for m in _UPPERCASE_NAMES.findall(text) if _is_uppercase_name(m)]
    if uppercase:
        errors.append(f'Nom en MAJUSCULES détecté(e) : "{uppercase[0]}"')

    for pattern in _VALIDATION_CLASS_PATTERNS:
        match = pattern.search(text)
        if match:
            errors.append(f'Nom de classe détecté : "{match.group(0)}"')

    if len([s for s in text.split(".") if s.strip()]) < 2:
        warnings.append("Structure trop courte : au moins 2 phrases recommandées")

    repetition = _REPETITION.search(text)
    if repetition:
        warnings.append(f'Répétition détectée : "{repetition.group(0)}"')

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
