"""Progress analysis over the progress history. No model call."""

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from ..memory.progress import ProgressTracker
from .base import Capability

STRENGTH_ACCURACY = 0.8
WEAKNESS_ACCURACY = 0.6


class AnalyzerCapability(Capability):
    """Summarises strengths, weaknesses and trend from graded attempts."""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.ANALYZER

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        tracker = ProgressTracker(request.input.performance_history)
        stats = tracker.get_stats()

        if stats.total_exercises == 0:
            return self.respond(
                request,
                "We haven't done any exercises together yet. Ready to try your first one?",
                strengths=[],
                weaknesses=[],
                trend="insufficient_data",
            )

        strengths = []
        weaknesses = []
        for topic_stats in tracker.topic_breakdown():
            if topic_stats.accuracy >= STRENGTH_ACCURACY:
                strengths.append(topic_stats.topic)
            elif topic_stats.accuracy < WEAKNESS_ACCURACY:
                weaknesses.append(topic_stats.topic)

        return self.respond(
            request,
            format_analysis(stats.total_exercises, stats.accuracy, strengths, weaknesses),
            strengths=strengths,
            weaknesses=weaknesses,
            trend=stats.improvement_trend,
            stats=stats.model_dump(mode="json"),
        )


def format_analysis(
    total: int,
    accuracy: float,
    strengths: list[str],
    weaknesses: list[str]
) -> str:
    lines = [f"You've completed {total} exercises with {accuracy:.0%} accuracy."]
    if strengths:
        lines.append(f"- Strong areas: {', '.join(strengths)}")
    if weaknesses:
        lines.append(f"- Worth more practice: {', '.join(weaknesses)}")
    lines.append("Which topic would you like to work on next?")
    return "\n".join(lines)
