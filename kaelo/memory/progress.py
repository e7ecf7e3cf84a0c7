"""Progress tracking over the append-only progress history."""

from collections import Counter
from typing import Iterable, Literal

from pydantic import BaseModel, Field

from ..core.domain.memory import DifficultyLevel, ProgressEntry

TREND_WINDOW = 10
TREND_MARGIN = 0.1


class ProgressStats(BaseModel):
    """Aggregated accuracy and trend statistics."""

    total_exercises: int = 0
    correct_exercises: int = 0
    accuracy: float = 0.0
    average_difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    topics_covered: list[str] = Field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    confusion_signals: int = 0
    improvement_trend: Literal["improving", "stable", "declining"] = "stable"


class TopicStats(BaseModel):
    """Per-topic accuracy."""

    topic: str
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


class ProgressTracker:
    """Aggregates progress entries into accuracy, streak and trend figures."""

    def __init__(self, entries: Iterable[ProgressEntry] = ()):
        self._entries: list[ProgressEntry] = list(entries)

    def add_entry(self, entry: ProgressEntry) -> None:
        self._entries.append(entry)

    def get_entries(self) -> list[ProgressEntry]:
        return list(self._entries)

    def get_entries_for_topic(self, topic: str) -> list[ProgressEntry]:
        return [entry for entry in self._entries if entry.topic == topic]

    def clear(self) -> None:
        self._entries = []

    def topic_breakdown(self) -> list[TopicStats]:
        """Accuracy per topic, in order of first appearance."""
        stats: dict[str, TopicStats] = {}
        for entry in self._entries:
            topic_stats = stats.setdefault(entry.topic, TopicStats(topic=entry.topic))
            topic_stats.total += 1
            if entry.correct:
                topic_stats.correct += 1
        return list(stats.values())

    def get_stats(self) -> ProgressStats:
        """Calculate progress statistics.

        Returns:
            ProgressStats over every recorded entry
        """
        total = len(self._entries)
        if total == 0:
            return ProgressStats()

        correct = sum(1 for entry in self._entries if entry.correct)

        # Most frequent difficulty, ties resolved by first occurrence
        difficulty_counts = Counter(entry.difficulty for entry in self._entries)
        average_difficulty = difficulty_counts.most_common(1)[0][0]

        topics_covered = list(dict.fromkeys(entry.topic for entry in self._entries))

        current_streak = 0
        for entry in reversed(self._entries):
            if not entry.correct:
                break
            current_streak += 1

        longest_streak = 0
        running = 0
        for entry in self._entries:
            running = running + 1 if entry.correct else 0
            longest_streak = max(longest_streak, running)

        confusion_signals = sum(1 for entry in self._entries if entry.errors)

        return ProgressStats(
            total_exercises=total,
            correct_exercises=correct,
            accuracy=correct / total,
            average_difficulty=average_difficulty,
            topics_covered=topics_covered,
            current_streak=current_streak,
            longest_streak=longest_streak,
            confusion_signals=confusion_signals,
            improvement_trend=self._trend(),
        )

    def _trend(self) -> Literal["improving", "stable", "declining"]:
        # Last window vs the window before it
        if len(self._entries) < TREND_WINDOW * 2:
            return "stable"

        recent = self._entries[-TREND_WINDOW:]
        previous = self._entries[-TREND_WINDOW * 2:-TREND_WINDOW]
        recent_accuracy = sum(1 for e in recent if e.correct) / len(recent)
        previous_accuracy = sum(1 for e in previous if e.correct) / len(previous)

        if recent_accuracy > previous_accuracy + TREND_MARGIN:
            return "improving"
        if recent_accuracy < previous_accuracy - TREND_MARGIN:
            return "declining"
        return "stable"
