"""
First-name anonymization for AI prompts.

The student's first name never leaves the server: it is swapped for the
{prénom} placeholder before a prompt is built. Depending on the user's
anonymization level the name is put back afterwards (standard) or left for
manual replacement (maximal).
"""

import re
from typing import Iterable, Optional, Tuple

from appreciations.models.catalog import AnonymizationLevel, FIRST_NAME_PLACEHOLDER

_PLACEHOLDER_RE = re.compile(r"\{pr[ée]nom\}", re.IGNORECASE)


def _name_pattern(first_name: str) -> Optional[re.Pattern]:
    name = (first_name or "").strip()
    if not name:
        return None
    return re.compile(rf"(?<![\w-]){re.escape(name)}(?![\w-])", re.IGNORECASE)


def anonymize_text(text: Optional[str], first_name: Optional[str]) -> str:
    """Replace every whole-word occurrence of first_name with the placeholder."""
    if not text:
        return ""
    pattern = _name_pattern(first_name)
    if pattern is None:
        return text
    return pattern.sub(FIRST_NAME_PLACEHOLDER, text)


def anonymize_all(values: Iterable[Optional[str]], first_name: Optional[str]) -> list:
    return [anonymize_text(v, first_name) for v in values]


def count_placeholders(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(_PLACEHOLDER_RE.findall(text))


def reinject_first_name(text: Optional[str], first_name: Optional[str]) -> str:
    """Put the first name back in place of {prénom} (and the unaccented {prenom})."""
    if not text:
        return ""
    name = (first_name or "").strip()
    if not name:
        return text
    return _PLACEHOLDER_RE.sub(lambda _: name, text)


def finalize_for_level(
    text: str, first_name: Optional[str], level: AnonymizationLevel
) -> Tuple[str, int]:
    """
    Apply the anonymization level to a generated text.

    Returns:
        (text, placeholder_count) where placeholder_count is what the user
        still has to replace by hand
    """
    if level == AnonymizationLevel.STANDARD:
        text = reinject_first_name(text, first_name)
    return text, count_placeholders(text)
