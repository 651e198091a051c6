"""Tutor catalog — supported languages, proficiency levels, and the
system instruction that turns the model into a language tutor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from textwrap import dedent


class Language(str, Enum):
    """Languages offered in both the native and target selectors."""

    SPANISH = "Spanish"
    FRENCH = "French"
    GERMAN = "German"
    JAPANESE = "Japanese"
    CHINESE = "Chinese"
    ITALIAN = "Italian"
    PORTUGUESE = "Portuguese"
    ENGLISH = "English"
    KOREAN = "Korean"
    HINDI = "Hindi"


class Proficiency(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


def parse_language(name: str) -> Language:
    """Look up a language by display name (case-insensitive).

    Raises:
        ValueError: If the language is not supported.
    """
    for language in Language:
        if language.value.lower() == name.strip().lower():
            return language
    available = ", ".join(language.value for language in Language)
    raise ValueError(f"Unsupported language '{name}'. Available: {available}")


def parse_proficiency(name: str) -> Proficiency:
    """Look up a proficiency level by name (case-insensitive).

    Raises:
        ValueError: If the level is unknown.
    """
    try:
        return Proficiency(name.strip().lower())
    except ValueError:
        available = ", ".join(level.value for level in Proficiency)
        raise ValueError(
            f"Unknown proficiency '{name}'. Must be one of: {available}"
        ) from None


@dataclass(frozen=True)
class TutorPreferences:
    """Learner settings chosen before a session starts.

    Attributes:
        native_language: Language the tutor explains things in.
        target_language: Language being learned.
        proficiency: Learner's current level.
    """

    native_language: Language = Language.ENGLISH
    target_language: Language = Language.SPANISH
    proficiency: Proficiency = Proficiency.BEGINNER


_SYSTEM_PROMPT_TEMPLATE = dedent("""\
    You are a professional and patient language tutor named Lingo.
    The user's native language is {native}.
    The user is trying to learn {target} and is at a {level} level.

    PEDAGOGICAL STRATEGY:
    1. Speak PRIMARILY in {native} for clarity.
    2. Introduce {target} step-by-step. Use short phrases and specific vocabulary.
    3. Immediately explain target language phrases in {native}.
    4. Encourage repetition.
    5. Correct pronunciation gently.

    Maintain a concise, back-and-forth educational dialogue.""")


def build_system_prompt(preferences: TutorPreferences) -> str:
    """Render the tutor system instruction for the given preferences."""
    return _SYSTEM_PROMPT_TEMPLATE.format(
        native=preferences.native_language.value,
        target=preferences.target_language.value,
        level=preferences.proficiency.value,
    )
