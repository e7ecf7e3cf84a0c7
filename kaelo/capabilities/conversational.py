"""Default tutor capability.

Runs the teaching conversation: a diagnostic phase for new learners, a
step-by-step teaching loop with confusion detection, and gentle feedback
while practising. Repair, fallback and synthesis requests from the
coordinator use the general phase.
"""

import logging
import re
from typing import Literal

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from ..core.domain.messages import Message
from .base import ModelBackedCapability, conversation_messages

logger = logging.getLogger(__name__)

Phase = Literal["diagnostic", "teaching", "practice", "general"]

DIAGNOSTIC_INSTRUCTION = """You are in the diagnostic phase. Ask friendly questions to understand:
- Subject/topic they want to learn
- Their current level (beginner/intermediate/advanced)
- Their goals (exam prep, homework help, etc.)
- Exam timeline if applicable
- Available study time
- Any difficulties they're facing
- Preferred learning pace

Keep questions short and ask one at a time."""

TEACHING_INSTRUCTION = """Teaching Flow:
1. Start simple - introduce the concept with a concise definition
2. Break into small steps - explain one piece at a time
3. Use examples - provide relatable examples for each step
4. Check understanding - ask a quick question after each piece
5. Adapt based on response - simplify if confused, deepen if understanding
6. Summarize - recap key points at the end
7. Ask if ready to continue - always end with a question

Keep each message short (2-3 sentences max). Use bullet points for clarity."""

REEXPLANATION_INSTRUCTION = """The student is confused. Use re-explanation strategy:
1. Start with encouragement ("No problem! This can be tricky. Let's try another angle.")
2. Use simpler language - rephrase with basic vocabulary
3. Provide a new analogy - different from before
4. Use a real-world example - something tangible
5. Break into even smaller steps
6. Ask guiding questions to lead them to understanding

Be extra patient and supportive."""

PRACTICE_INSTRUCTION = """The student has submitted an answer. Provide gentle, encouraging feedback.
- Start with positive reinforcement
- If incorrect, explain gently what went wrong
- Provide a simpler example if needed
- Offer to try another question
- Keep it encouraging and supportive"""

CONFUSION_PATTERNS = [
    re.compile(r"(i don'?t (understand|get it)|confused|not sure|unclear|help)", re.IGNORECASE),
    re.compile(r"(what\?|huh\?|i'm lost|doesn't make sense)", re.IGNORECASE),
]

ANSWER_PATTERNS = [
    re.compile(r"^(the answer is|it's|it is|i think|i believe|my answer is)", re.IGNORECASE),
    re.compile(r"^(a\)|b\)|c\)|d\)|true|false)$", re.IGNORECASE),
    re.compile(r"^[a-d]\)", re.IGNORECASE),
]

STEP_PATTERNS = [
    re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE),
    re.compile(r"^[-•*]\s+(.+)$", re.MULTILINE),
    re.compile(r"^Step \d+:\s+(.+)$", re.MULTILINE | re.IGNORECASE),
]


class ConversationalCapability(ModelBackedCapability):
    """Primary tutor voice and the default dispatch target."""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.CONVERSATIONAL

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        phase = self.determine_phase(request)
        logger.debug(f"Conversational phase for session {request.input.session_id}: {phase}")

        if phase == "diagnostic":
            return await self._reply(request, DIAGNOSTIC_INSTRUCTION, phase)
        if phase == "practice" and looks_like_answer(request.input.message):
            return await self._reply(
                request,
                PRACTICE_INSTRUCTION,
                phase,
                content=f"My answer: {request.input.message}",
            )
        if phase in ("teaching", "practice"):
            return await self._teach(request)
        return await self._reply(request, "", "general")

    def determine_phase(self, request: CapabilityRequest) -> Phase:
        """Pick the conversation phase for a request.

        An explicit ``phase`` hint in the request metadata wins.
        """
        hinted = getattr(request.metadata, "phase", None)
        if hinted in ("diagnostic", "teaching", "practice", "general"):
            return hinted

        profile = request.input.student_profile
        history = request.input.conversation_history
        if profile is None or not profile.level:
            return "diagnostic"
        if len(history) < 3:
            return "diagnostic"

        recent = history[-3:]
        if any("exercise" in m.content.lower() or "question" in m.content.lower() for m in recent):
            return "practice"
        return "teaching"

    async def _teach(self, request: CapabilityRequest) -> CapabilityResponse:
        if detect_confusion(request.input.message, request.input.conversation_history):
            return await self._reply(
                request,
                REEXPLANATION_INSTRUCTION,
                "re-explanation",
                confusion_detected=True,
            )

        result = await self.generate(conversation_messages(request), TEACHING_INSTRUCTION)
        return self.respond(
            request,
            result.text,
            model_used=result.model,
            content=result.text,
            steps=extract_steps(result.text),
            metadata={"phase": "teaching"},
        )

    async def _reply(
        self,
        request: CapabilityRequest,
        instruction: str,
        phase: str,
        content: str | None = None,
        confusion_detected: bool = False
    ) -> CapabilityResponse:
        result = await self.generate(conversation_messages(request, content), instruction)
        metadata = {"phase": phase}
        if confusion_detected:
            metadata["confusion_detected"] = True
        return self.respond(
            request,
            result.text,
            model_used=result.model,
            content=result.text,
            metadata=metadata,
        )


def detect_confusion(message: str, history: list[Message]) -> bool:
    """Explicit confusion phrases, or repeated errors in recent history."""
    if any(pattern.search(message) for pattern in CONFUSION_PATTERNS):
        return True

    error_count = sum(
        1 for m in history[-3:]
        if "wrong" in m.content.lower() or "incorrect" in m.content.lower()
    )
    return error_count >= 2


def looks_like_answer(message: str) -> bool:
    return any(pattern.search(message.strip()) for pattern in ANSWER_PATTERNS)


def extract_steps(text: str) -> list[str]:
    """Numbered, bulleted or "Step N:" lines from a response."""
    steps = []
    for pattern in STEP_PATTERNS:
        steps.extend(match.group(1).strip() for match in pattern.finditer(text))
    return steps
