"""Prompt templates for report-card generation.

Prompts are French. They never contain the student's first name: callers
pass text that has already been through the anonymizer, so the model only
ever sees the {prénom} placeholder.
"""

from typing import Iterable, Optional, Sequence

from appreciations.models.catalog import FIRST_NAME_PLACEHOLDER

STUDENT_SYSTEM_PROMPT = (
    "Tu es un assistant pour enseignants français. Tu génères des appréciations "
    "de bulletin scolaire.\n\n"
    "Règles STRICTES :\n"
    "- Entre {min_chars} et {max_chars} caractères\n"
    "- Commence par une phrase sur le travail du trimestre\n"
    "- Mentionne la participation orale\n"
    "- Évoque l'attitude et le sérieux\n"
    "- Mentionne les absences si nombreuses (>5)\n"
    "- Reste professionnel et constructif\n"
    "- Désigne l'élève uniquement par {placeholder} (3ème personne)\n"
    "- PAS de notes numériques dans le texte\n"
    "- PAS de nom de professeur ni de nom de classe\n\n"
    "TONALITÉ : {tone_instruction}"
)

SUMMARY_SYSTEM_PROMPT = (
    "Tu es un assistant pour enseignants français. Génère un bilan de classe pour "
    "le bulletin du conseil de classe.\n\n"
    "CONTRAINTES STRICTES :\n"
    "- Entre {min_chars} et {max_chars} caractères\n"
    "- Ton professionnel adapté au contexte officiel\n"
    "- Synthétique et percutant, deux phrases courtes maximum\n\n"
    "STRUCTURE :\n"
    "- Décrire l'ambiance générale de travail\n"
    "- Mentionner le comportement collectif\n"
    "- Évoquer la participation\n"
    "- Conclure sur la progression ou les attentes\n\n"
    "TONALITÉ : {tone_instruction}\n\n"
    "IMPORTANT :\n"
    "- Ne pas utiliser de formules génériques vides\n"
    "- Aucun chiffre, aucun nom de professeur, d'élève ou de classe"
)


def _join(values: Optional[Iterable[str]]) -> str:
    return ", ".join(v.strip() for v in (values or []) if v and v.strip())


def student_messages(
    *,
    tone_instruction: str,
    min_chars: int,
    max_chars: int,
    average: Optional[float],
    absences: Optional[int],
    observations: Sequence[str],
    subjects: Sequence[str],
    attribution_label: Optional[str] = None,
) -> list:
    lines = [f"Prénom: {FIRST_NAME_PLACEHOLDER}"]
    if average is not None:
        lines.append(f"Moyenne: {average:.1f}/20")
    if absences:
        lines.append(f"Absences: {absences}")
    obs = _join(observations)
    if obs:
        lines.append(f"Observations: {obs}")
    subj = _join(subjects)
    if subj:
        lines.append(f"Remarques des enseignants: {subj}")
    if attribution_label:
        lines.append(f"Décision du conseil: {attribution_label}")

    system = STUDENT_SYSTEM_PROMPT.format(
        min_chars=min_chars,
        max_chars=max_chars,
        tone_instruction=tone_instruction,
        placeholder=FIRST_NAME_PLACEHOLDER,
    )
    user = "Génère une appréciation pour cet élève:\n" + "\n".join(lines)
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def summary_messages(
    *,
    tone_instruction: str,
    min_chars: int,
    max_chars: int,
    work_level: str,
    behavior: str,
    participation: str,
    progression: str,
    total_students: int,
    average_grade: Optional[float],
) -> list:
    system = SUMMARY_SYSTEM_PROMPT.format(
        min_chars=min_chars, max_chars=max_chars, tone_instruction=tone_instruction
    )
    lines = [
        f"- Niveau de travail : {work_level}",
        f"- Comportement : {behavior}",
        f"- Participation : {participation}",
        f"- Progression : {progression}",
        f"- Nombre d'élèves : {total_students}",
    ]
    if average_grade is not None:
        lines.append(f"- Moyenne de classe : {average_grade:.1f}/20")
    user = (
        "Génère un bilan de classe avec ces caractéristiques :\n"
        + "\n".join(lines)
        + "\n\nLe bilan doit refléter fidèlement ces caractéristiques et être "
        "utilisable directement dans un bulletin officiel."
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]
