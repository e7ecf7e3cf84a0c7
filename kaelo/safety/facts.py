"""Per-session fact ledger used for contradiction checks."""

import re
from typing import Iterable

# Polarity phrase -> phrases that contradict it
POLARITY_OPPOSITES: dict[str, tuple[str, ...]] = {
    "is true": ("is false", "is not true", "is incorrect"),
    "is false": ("is true", "is correct"),
}

SUBJECT_WORDS = 3

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


class SessionFactLedger:
    """Statements the tutor has asserted during one session.

    Created at session start from stored memory, extended after every
    response and cleared together with the session.
    """

    def __init__(self, session_id: str, facts: Iterable[str] = ()):
        self.session_id = session_id
        self._facts: list[str] = list(facts)
        self._new_facts: list[str] = []

    @property
    def facts(self) -> list[str]:
        return list(self._facts)

    @property
    def new_facts(self) -> list[str]:
        """Facts recorded since the ledger was loaded."""
        return list(self._new_facts)

    def record_fact(self, fact: str) -> None:
        fact = fact.strip()
        if fact and fact not in self._facts:
            self._facts.append(fact)
            self._new_facts.append(fact)

    def record_statements(self, text: str) -> list[str]:
        """Record every sentence of ``text`` that carries a polarity phrase."""
        recorded = []
        for sentence in _SENTENCE_SPLIT.split(text):
            padded = f" {_normalize(sentence)} "
            if any(f" {phrase} " in padded for phrase in POLARITY_OPPOSITES):
                before = len(self._facts)
                self.record_fact(sentence)
                if len(self._facts) > before:
                    recorded.append(sentence.strip())
        return recorded

    def clear(self) -> None:
        self._facts = []
        self._new_facts = []

    def __len__(self) -> int:
        return len(self._facts)


def _normalize(text: str) -> str:
    return " ".join(re.findall(r"[a-z0-9']+", text.lower()))


def contradicts(text: str, fact: str) -> bool:
    """Check whether ``text`` asserts the opposite polarity of ``fact``.

    Only the first polarity phrase found in the fact is considered. When the
    fact names a subject before the phrase, the opposite phrase must follow
    the same subject (its last few words) in ``text``.
    """
    # Padding keeps matches on word boundaries
    fact_norm = f" {_normalize(fact)} "
    text_norm = f" {_normalize(text)} "

    for phrase, opposites in POLARITY_OPPOSITES.items():
        if f" {phrase} " not in fact_norm:
            continue
        subject_words = fact_norm.split(f" {phrase} ", 1)[0].split()[-SUBJECT_WORDS:]
        prefix = " ".join(subject_words)
        return any(
            f" {prefix} {opposite} ".replace("  ", " ") in text_norm
            for opposite in opposites
        )

    return False
