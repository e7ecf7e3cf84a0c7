"""Tutor persona and the local formatting rules every response must satisfy."""

import re
from typing import Iterable

from ..core.config import settings

TUTOR_NAME = "Kaelo"

SYSTEM_INSTRUCTION = f"""You are {TUTOR_NAME}, a warm, patient, and encouraging AI tutor.

Your personality: warm, patient, structured, encouraging
Your teaching approach: step-by-step
Your tone: warm, friendly, patient

Key rules:
- Keep messages short and mobile-friendly
- Use bullet points and clear formatting
- Always end with a question
- Be encouraging, never condescending
- Break complex topics into small steps
- Check understanding frequently
- Celebrate effort, not just correct answers

Error correction style:
- Start with encouragement
- Explain what went wrong gently
- Provide simpler examples
- Offer retry opportunities

Never say: "you are wrong" or "that's incorrect"
Always say: "that's a great attempt" or "you're on the right track\""""

REPLACEMENT_PHRASE = "that's a great attempt"
NEXT_STEP_CUE = " Does that make sense?"

_NEXT_STEP_WORDS = re.compile(r"\b(?:ready|try)", re.IGNORECASE)


def get_system_instruction(extra: str | None = None) -> str:
    """Persona instruction, optionally followed by task-specific guidance."""
    if not extra:
        return SYSTEM_INSTRUCTION
    return f"{SYSTEM_INSTRUCTION}\n\n{extra}"


def has_next_step(text: str) -> bool:
    """True when text ends with a question or exclamation, or invites a next step."""
    stripped = text.rstrip()
    return stripped.endswith(("?", "!")) or bool(_NEXT_STEP_WORDS.search(stripped))


def validate_response(
    text: str,
    max_length: int | None = None,
    forbidden_phrases: Iterable[str] | None = None
) -> tuple[bool, list[str]]:
    """Check a response against the identity rules without changing it.

    Returns:
        Tuple of (valid, issues)
    """
    max_length = settings.max_response_length if max_length is None else max_length
    phrases = settings.forbidden_phrases if forbidden_phrases is None else list(forbidden_phrases)
    issues = []

    if len(text) > max_length:
        issues.append(f"Response too long ({len(text)} chars, max {max_length})")

    lowered = text.lower()
    for phrase in phrases:
        if phrase and phrase.lower() in lowered:
            issues.append(f'Contains forbidden phrase: "{phrase}"')

    if not has_next_step(text):
        issues.append("Response should end with a question or clear next step")

    return not issues, issues


def enforce_identity(
    text: str,
    max_length: int | None = None,
    forbidden_phrases: Iterable[str] | None = None
) -> str:
    """Rewrite text so it satisfies the identity rules.

    Forbidden phrases are substituted, the text is capped at ``max_length``
    on a word boundary and a next-step cue is appended when missing.
    Applying it to its own output returns the output unchanged.
    """
    max_length = settings.max_response_length if max_length is None else max_length
    phrases = settings.forbidden_phrases if forbidden_phrases is None else list(forbidden_phrases)

    result = text.strip()
    for phrase in phrases:
        if phrase:
            result = re.sub(re.escape(phrase), REPLACEMENT_PHRASE, result, flags=re.IGNORECASE)

    needs_cue = not has_next_step(result)
    projected = len(result) + (len(NEXT_STEP_CUE) if needs_cue else 0)

    if projected > max_length:
        result = _truncate(result, max_length - len(NEXT_STEP_CUE))
        needs_cue = True

    if needs_cue:
        result = f"{result}{NEXT_STEP_CUE}" if result else NEXT_STEP_CUE.strip()

    return result


def _truncate(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text

    cut = text[:limit]
    # Drop the partial word at the cut
    if not text[limit].isspace() and " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:-")
