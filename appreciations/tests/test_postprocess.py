from appreciations.features.ai.postprocess import (
    clean_generated_text,
    truncate_intelligently,
    validate_appreciation,
)


class TestTruncate:
    def test_short_text_untouched(self):
        assert truncate_intelligently("Bon trimestre.", 100) == "Bon trimestre."

    def test_cuts_at_sentence_end_past_85_percent(self):
        text = "a" * 90 + ". " + "b" * 50
        assert truncate_intelligently(text, 100) == "a" * 90 + "."

    def test_cuts_at_word_past_90_percent(self):
        text = "mot " * 40
        assert truncate_intelligently(text, 100) == " ".join(["mot"] * 25) + "."

    def test_hard_cut_with_ellipsis(self):
        result = truncate_intelligently("x" * 200, 100)
        assert result == "x" * 97 + "..."
        assert len(result) == 100


class TestClean:
    def test_removes_grades(self):
        assert clean_generated_text("Bon trimestre, 15/20 en moyenne. Continuez ainsi.") == (
            "Bon trimestre, en moyenne. Continuez ainsi."
        )

    def test_removes_teacher_reference(self):
        result = clean_generated_text("Selon M. MARTIN, Emma progresse. Bravo.")
        assert "MARTIN" not in result
        assert "Emma progresse." in result

    def test_removes_known_teacher_names(self):
        result = clean_generated_text("Mme Durand félicite Emma. Très bien.", ["Durand"])
        assert "Durand" not in result
        assert result.startswith("félicite Emma.")

    def test_removes_class_names(self):
        result = clean_generated_text("La 3eme est dynamique. Bravo.")
        assert "3eme" not in result
        assert result == "est dynamique. Bravo."

    def test_placeholder_survives(self):
        text = "{prénom} fournit un travail sérieux. Les résultats suivent."
        assert clean_generated_text(text) == text


class TestValidate:
    def test_valid_text(self):
        text = "{prénom} fournit un travail sérieux. Les résultats sont encourageants."
        result = validate_appreciation(text, 50, 100)
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_too_short(self):
        result = validate_appreciation("Bien. Oui.", 50, 100)
        assert not result.is_valid
        assert result.errors[0].startswith("Trop court")

    def test_grade_detected(self):
        result = validate_appreciation("Il obtient 12/20 ce trimestre. Bon travail.", 10, 100)
        assert not result.is_valid
        assert any("Note sur 20" in e for e in result.errors)

    def test_title_and_uppercase_names_detected(self):
        titled = validate_appreciation("M. DUPONT note des progrès. Très bien.", 10, 100)
        assert any(e.startswith("Titre + Nom") for e in titled.errors)

        shouted = validate_appreciation("Emma travaille avec JEAN DUPONT. Bien.", 10, 100)
        assert any("MAJUSCULES" in e for e in shouted.errors)

    def test_warnings_do_not_invalidate(self):
        result = validate_appreciation("Un seul bloc sans aucun point final", 10, 20)
        assert result.is_valid
        assert any(w.startswith("Dépassement") for w in result.warnings)
        assert any(w.startswith("Structure trop courte") for w in result.warnings)

    def test_repetition_warning(self):
        result = validate_appreciation("Travail sérieux sérieux ce trimestre. Bravo.", 10, 100)
        assert any(w.startswith("Répétition") for w in result.warnings)
