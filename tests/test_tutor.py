"""Tests for the tutor catalog and system prompt."""

from __future__ import annotations

import pytest

from lingolive.tutor.languages import (
    Language,
    Proficiency,
    TutorPreferences,
    build_system_prompt,
    parse_language,
    parse_proficiency,
)


class TestCatalog:
    def test_ten_languages(self) -> None:
        assert len(Language) == 10
        assert {l.value for l in Language} == {
            "Spanish", "French", "German", "Japanese", "Chinese",
            "Italian", "Portuguese", "English", "Korean", "Hindi",
        }

    def test_three_levels(self) -> None:
        assert [p.value for p in Proficiency] == ["beginner", "intermediate", "advanced"]

    def test_parse_language_case_insensitive(self) -> None:
        assert parse_language("japanese") is Language.JAPANESE
        assert parse_language("  Hindi ") is Language.HINDI

    def test_parse_unknown_language(self) -> None:
        with pytest.raises(ValueError, match="Unsupported language 'Klingon'"):
            parse_language("Klingon")

    def test_parse_proficiency(self) -> None:
        assert parse_proficiency("Advanced") is Proficiency.ADVANCED
        with pytest.raises(ValueError, match="Must be one of"):
            parse_proficiency("expert")

    def test_default_preferences(self) -> None:
        prefs = TutorPreferences()
        assert prefs.native_language is Language.ENGLISH
        assert prefs.target_language is Language.SPANISH
        assert prefs.proficiency is Proficiency.BEGINNER


class TestSystemPrompt:
    def test_includes_languages_and_level(self) -> None:
        prompt = build_system_prompt(TutorPreferences(
            native_language=Language.GERMAN,
            target_language=Language.KOREAN,
            proficiency=Proficiency.INTERMEDIATE,
        ))
        assert "named Lingo" in prompt
        assert "The user's native language is German." in prompt
        assert "learn Korean and is at a intermediate level" in prompt
        assert "1. Speak PRIMARILY in German for clarity." in prompt
        assert "5. Correct pronunciation gently." in prompt

    def test_prompt_is_deterministic(self) -> None:
        prefs = TutorPreferences()
        assert build_system_prompt(prefs) == build_system_prompt(prefs)
