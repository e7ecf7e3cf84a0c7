"""Answer evaluation."""

import json
import logging
import re
from typing import Any

from ..core.domain.capabilities import CapabilityRequest, CapabilityResponse, CapabilityTag
from .base import ModelBackedCapability

logger = logging.getLogger(__name__)


class EvaluatorCapability(ModelBackedCapability):
    """Assesses a learner's answer and writes gentle feedback.

    Correctness is only decided when the request carries an exercise with an
    expected answer; otherwise ``is_correct`` is left as None and no
    progress is recorded for the attempt.
    """

    instruction = """You are the Evaluator. Your role is to assess student answers.
- Be gentle and encouraging
- Diagnose understanding level (fully_understood, partially_understood, misunderstood, careless_mistake, confused)
- Provide constructive feedback
- Explain what went wrong if incorrect
- Offer simpler examples if needed
- Always start with positive reinforcement"""

    @property
    def tag(self) -> CapabilityTag:
        return CapabilityTag.EVALUATOR

    async def handle(self, request: CapabilityRequest) -> CapabilityResponse:
        data = request.input
        answer = data.user_answer or data.message
        exercise = data.exercise
        level = data.level or (data.student_profile.level if data.student_profile else None)

        prompt = (
            f"Evaluate this answer:\n\n"
            f"Exercise: {json.dumps(exercise) if exercise else 'not provided'}\n"
            f"Student Answer: {answer}\n"
            f"Student Level: {level or 'intermediate'}\n\n"
            f"Provide evaluation with diagnosis and feedback."
        )
        result = await self.prompt(prompt)

        is_correct = check_correctness(exercise, answer) if exercise else None
        if is_correct is None:
            diagnosis = None
            confidence = 0.5
        else:
            diagnosis = "fully_understood" if is_correct else "partially_understood"
            confidence = 0.9 if is_correct else 0.6

        logger.debug(f"Evaluated answer for session {data.session_id}: correct={is_correct}")

        return self.respond(
            request,
            result.text,
            model_used=result.model,
            is_correct=is_correct,
            diagnosis=diagnosis,
            feedback=result.text,
            confidence_score=confidence,
            exercise_id=(exercise or {}).get("id"),
            topic=(exercise or {}).get("topic") or data.topic,
        )


def check_correctness(exercise: dict[str, Any], user_answer: str) -> bool | None:
    """Case-insensitive whole-word match of the answer against the expected answer.

    Returns None when the exercise carries no expected answer.
    """
    expected = str(exercise.get("answer") or "").lower().strip()
    if not expected:
        return None
    answer = user_answer.lower().strip()
    if answer == expected:
        return True
    return re.search(rf"(?<!\w){re.escape(expected)}(?!\w)", answer) is not None
