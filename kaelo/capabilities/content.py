"""Lesson content and exercise generation."""

from ..core.domain.capabilities import (
    CapabilityRequest,
    CapabilityResponse,
    CapabilityTag,
    TaskType,
)
from .base import ModelBackedCapability

KEY_POINT_LIMIT = 5


class ContentExpertCapability(ModelBackedCapability):
    """Generates clear, structured lesson content and practice exercises."""

    instruction = """You are the Content Expert. Your role is to generate clear, structured lesson content.
- Explain topics simply and clearly
- Provide relevant examples and analogies
- Break content into digestible chunks
- Align with curriculum when specified
- Keep explanations mobile-friendly and concise"""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.CONTENT_EXPERT

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        data = request.input
        topic = data.topic or "general topic"
        level = data.level or "intermediate"

        if request.task == TaskType.GENERATE:
            prompt = (
                f"Create one practice exercise for:\n"
                f"Topic: {topic}\n"
                f"Level: {level}\n"
                f"Request: {data.message}\n\n"
                f"State the question clearly and do not reveal the answer."
            )
        else:
            prompt = (
                f"Generate content for:\n"
                f"Topic: {topic}\n"
                f"Level: {level}\n"
                f"Context: {data.message or 'general learning'}\n\n"
                f"Please provide a clear explanation with examples."
            )

        result = await self.prompt(prompt)
        return self.respond(
            request,
            result.text,
            model_used=result.model,
            content=result.text,
            key_points=extract_key_points(result.text),
            topic=data.topic,
        )


def extract_key_points(text: str) -> list[str]:
    """First non-empty lines of the generated content."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[:KEY_POINT_LIMIT]
