import pytest

from appreciations.core.errors import ValidationError
from appreciations.features.appreciations.workspace import (
    Justification,
    StudentAppreciations,
    StudentTones,
    build_clipboard_text,
)
from appreciations.models.ai import ClipboardEntry
from appreciations.models.catalog import AppreciationTone


def test_tones_fall_back_to_default():
    tones = StudentTones()
    assert tones.get_tone(3) == AppreciationTone.STANDARD

    tones.set_tone(3, "severe")
    assert tones.get_tone(3) == AppreciationTone.SEVERE
    assert tones.get_tone(4) == AppreciationTone.STANDARD


def test_tones_set_many_and_reset():
    tones = StudentTones("elogieux")
    tones.set_many({0: "encourageant", "2": AppreciationTone.SEVERE})
    assert tones.tones == {0: AppreciationTone.ENCOURAGEANT, 2: AppreciationTone.SEVERE}

    tones.reset()
    assert tones.tones == {}
    assert tones.get_tone(0) == AppreciationTone.ELOGIEUX


def test_invalid_tone_rejected():
    with pytest.raises(ValidationError):
        StudentTones().set_tone(0, "ironic")


def test_update_text_pads_missing_slots():
    state = StudentAppreciations(["premier"])
    state.update_text(3, "quatrième")
    assert state.texts == ["premier", "", "", "quatrième"]

    state.update_text(0, "modifié")
    assert state.texts[0] == "modifié"


def test_update_text_rejects_negative_index():
    with pytest.raises(IndexError):
        StudentAppreciations().update_text(-1, "x")


def test_loading_flags_and_reset():
    state = StudentAppreciations(["a", "b"])
    state.set_loading_all(True)
    state.set_loading_index(1)
    state.update_justifications(1, [Justification(sentence="b", source="observations", quotes=["b"])])
    assert state.is_loading_all and state.loading_index == 1
    assert state.justifications[1][0].source == "observations"

    state.reset_all()
    assert state.texts == []
    assert state.justifications == {}
    assert state.loading_index is None
    assert state.is_loading_all is False


def test_clipboard_single_entry_is_plain_text():
    assert build_clipboard_text([ClipboardEntry(name="Emma", text="  Bon travail.  ")]) == "Bon travail."


def test_clipboard_multiple_entries_are_named_blocks():
    entries = [
        ClipboardEntry(name="Emma", text="Bon travail."),
        ClipboardEntry(name="Lucas", text=""),
        ClipboardEntry(name="Inès", text="Très bien."),
    ]
    assert build_clipboard_text(entries) == "Emma : Bon travail.\n\nInès : Très bien."


def test_clipboard_empty():
    assert build_clipboard_text([]) == ""
    assert build_clipboard_text([ClipboardEntry(name="Emma", text="   ")]) == ""


def test_clipboard_endpoint(client, auth_headers):
    resp = client.post(
        "/api/appreciations/clipboard",
        json={"entries": [{"name": "Emma", "text": "Bon travail."}, {"name": "Tom", "text": "À revoir."}]},
        headers=auth_headers(),
    )
    assert resp.status_code == 200
    assert resp.json() == {"text": "Emma : Bon travail.\n\nTom : À revoir.", "count": 2}
