"""Difficulty recommendations from recent performance. No model call."""

from typing import Literal

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from ..core.domain.memory import DifficultyLevel
from .base import Capability

RECENT_WINDOW = 5
INCREASE_ACCURACY = 0.9
INCREASE_MIN_ENTRIES = 3
DECREASE_ACCURACY = 0.5
DECREASE_MIN_ENTRIES = 2

LEVELS = list(DifficultyLevel)

Recommendation = Literal["increase", "decrease", "maintain"]


class DifficultyAdvisorCapability(Capability):
    """Recommends raising, lowering or keeping the exercise difficulty."""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.DIFFICULTY_ADVISOR

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        data = request.input
        current = current_level(request)
        recent = data.performance_history[-RECENT_WINDOW:]

        if not recent:
            return self.respond(
                request,
                f"Let's keep practicing at the {current.value} level so I can see how it's going. "
                f"Ready for a question?",
                success=False,
                recommendation="maintain",
                new_level=current.value,
                reason="No performance history yet",
            )

        accuracy = sum(1 for entry in recent if entry.correct) / len(recent)
        recommendation, reason = recommend(accuracy, len(recent))
        new_level = shift_level(current, recommendation)

        return self.respond(
            request,
            _describe(recommendation, new_level),
            recommendation=recommendation,
            new_level=new_level.value,
            reason=reason,
            metadata={"accuracy": accuracy, "recent_count": len(recent)},
        )


def current_level(request: CapabilityRequest) -> DifficultyLevel:
    """Level named in the request, else the profile's, else medium."""
    data = request.input
    if data.level in {level.value for level in LEVELS}:
        return DifficultyLevel(data.level)
    if data.student_profile and data.student_profile.current_difficulty:
        return data.student_profile.current_difficulty
    return DifficultyLevel.MEDIUM


def recommend(accuracy: float, count: int) -> tuple[Recommendation, str]:
    if accuracy >= INCREASE_ACCURACY and count >= INCREASE_MIN_ENTRIES:
        return "increase", f"Student answered {count} recent questions with {accuracy:.0%} accuracy"
    if accuracy < DECREASE_ACCURACY and count >= DECREASE_MIN_ENTRIES:
        return "decrease", "Student struggling with current difficulty"
    return "maintain", "Performance is appropriate for current level"


def shift_level(level: DifficultyLevel, recommendation: Recommendation) -> DifficultyLevel:
    """Move one step along the ladder, clamped at both ends."""
    index = LEVELS.index(level)
    if recommendation == "increase":
        return LEVELS[min(index + 1, len(LEVELS) - 1)]
    if recommendation == "decrease":
        return LEVELS[max(index - 1, 0)]
    return level


def _describe(recommendation: Recommendation, level: DifficultyLevel) -> str:
    if recommendation == "increase":
        return f"You're doing brilliantly! Let's step up to {level.value} questions. Ready?"
    if recommendation == "decrease":
        return f"Let's build confidence with some {level.value} questions first. Ready to try one?"
    return f"You're on the right track at the {level.value} level. Ready for the next one?"
