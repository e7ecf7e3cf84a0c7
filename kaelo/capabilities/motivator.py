"""Motivation and encouragement."""

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from .base import ModelBackedCapability

TRIGGER_PROMPTS = {
    "correct_answer_hard_question": "Generate an encouraging message for the student who just solved a hard question.",
    "completed_session": "Generate a motivational message celebrating the student's completed study session.",
    "streak_milestone": "Generate a celebration message for the student who reached a study streak milestone.",
    "default": "Generate a motivational message to encourage the student.",
}


class MotivatorCapability(ModelBackedCapability):
    """Celebrates progress and encourages learners who feel stuck."""

    instruction = """You are the Motivator. Your role is to motivate and encourage students.
- Celebrate achievements and progress
- Use positive, uplifting language
- Be genuine and specific
- Keep messages short and impactful
- Time your messages appropriately"""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.MOTIVATOR

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        trigger = getattr(request.metadata, "trigger", None) or "default"
        prompt = TRIGGER_PROMPTS.get(trigger, TRIGGER_PROMPTS["default"])
        prompt = f"{prompt}\n\nThe student said: {request.input.message}"

        result = await self.prompt(prompt)
        return self.respond(
            request,
            result.text,
            model_used=result.model,
            metadata={"trigger": trigger},
        )
