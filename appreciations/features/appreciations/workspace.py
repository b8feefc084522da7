"""
Per-student working state for a class being processed.

StudentTones keeps the tone chosen for each student index; StudentAppreciations
keeps the generated texts, their justifications and loading flags. Both are
plain in-process objects used by the batch generation endpoint.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from appreciations.models.ai import ClipboardEntry
from appreciations.models.catalog import AppreciationTone, DEFAULT_TONE, parse_enum


class Justification(BaseModel):
    """Links a sentence of an appreciation to the data it came from."""

    model_config = ConfigDict(frozen=True)

    sentence: str
    source: str
    quotes: List[str] = Field(default_factory=list)


class StudentTones:
    """Tone per student index, falling back to a default."""

    def __init__(self, default_tone: AppreciationTone = DEFAULT_TONE):
        self.default_tone = parse_enum(AppreciationTone, default_tone, "tone")
        self._tones: Dict[int, AppreciationTone] = {}

    @property
    def tones(self) -> Dict[int, AppreciationTone]:
        return dict(self._tones)

    def set_tone(self, index: int, tone) -> None:
        self._tones[index] = parse_enum(AppreciationTone, tone, "tone")

    def get_tone(self, index: int) -> AppreciationTone:
        return self._tones.get(index, self.default_tone)

    def set_many(self, tones: Mapping[int, object]) -> None:
        parsed = {int(i): parse_enum(AppreciationTone, t, "tone") for i, t in tones.items()}
        self._tones.update(parsed)

    def reset(self) -> None:
        self._tones.clear()


class StudentAppreciations:
    """Generated texts for a class, indexed like the student list."""

    def __init__(self, initial_texts: Optional[Sequence[str]] = None):
        self.texts: List[str] = list(initial_texts or [])
        self.justifications: Dict[int, List[Justification]] = {}
        self.loading_index: Optional[int] = None
        self.is_loading_all = False

    def update_text(self, index: int, text: str) -> None:
        if index < 0:
            raise IndexError(f"negative student index: {index}")
        if index >= len(self.texts):
            self.texts.extend([""] * (index + 1 - len(self.texts)))
        self.texts[index] = text

    def update_justifications(self, index: int, justifications: Sequence[Justification]) -> None:
        self.justifications[index] = list(justifications)

    def set_loading_index(self, index: Optional[int]) -> None:
        self.loading_index = index

    def set_loading_all(self, loading: bool) -> None:
        self.is_loading_all = loading

    def reset_all(self) -> None:
        self.texts = []
        self.justifications = {}
        self.loading_index = None
        self.is_loading_all = False


def build_clipboard_text(entries: Sequence[ClipboardEntry]) -> str:
    """
    Clipboard-ready text: a lone appreciation as is, otherwise one
    "Name : text" block per student separated by a blank line.
    """
    filled = [e for e in entries if e.text and e.text.strip()]
    if not filled:
        return ""
    if len(filled) == 1 and len(entries) == 1:
        return filled[0].text.strip()

    blocks = []
    for entry in filled:
        name = entry.name.strip()
        text = entry.text.strip()
        blocks.append(f"{name} : {text}" if name else text)
    return "\n\n".join(blocks)
